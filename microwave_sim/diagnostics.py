import os
import numpy as _np
from .backend import to_np
from .equations import equations, numeric_readouts
from .particles import FAST, SLOW


class Diagnostics:
    def __init__(self, outdir="output", diag_interval=10, snap_interval=100, cfg=None):
        self.outdir = outdir
        self.diag_interval = max(1, int(diag_interval))
        self.snap_interval = max(1, int(snap_interval))
        self.cfg = cfg
        os.makedirs(outdir, exist_ok=True)

        # Population Data: [it, frame, pool, cap, mean_vx, fast, slow]
        self.population_data = []
        # Read-outs: [it, value_1, value_2, ...] in readout_labels order
        self.readout_data = []
        self.readout_labels = None

    def record_population(self, it, frame, pool, cap):
        vx = to_np(pool.vx)
        n = int(vx.shape[0])
        mean_vx = float(_np.mean(vx)) if n else 0.0
        fast = pool.count(FAST)
        slow = pool.count(SLOW)
        self.population_data.append([it, frame, n, cap, mean_vx, fast, slow])
        return n, mean_vx, fast, slow

    def record_readouts(self, it, device_id, inputs):
        """Numeric device read-outs at this frame (they follow live input changes)."""
        values = numeric_readouts(device_id, inputs)
        if self.readout_labels is None:
            self.readout_labels = list(values)
        row = [float(it)] + [values.get(k, _np.nan) for k in self.readout_labels]
        self.readout_data.append(row)
        return values

    def save_snapshot(self, it, surface):
        outpath = os.path.join(self.outdir, f"frame_{it:05d}.png")
        surface.savefig(outpath)
        return outpath

    # Save all basic simulation parameters to params.txt
    def save_params(self, device_id=None, inputs=None):
        cfg = self.cfg
        out = ["### Microwave Device Simulation Parameters\n"]
        if cfg is not None:
            for k, v in cfg.__dict__.items():
                out.append(f"{k} = {v}")

        if device_id is not None:
            out.append("\n--- Device ---")
            out.append(f"device_id = {device_id}")
            for k, v in (inputs or {}).items():
                out.append(f"{k} = {v:g}" if isinstance(v, float) else f"{k} = {v}")

            out.append("\n--- Read-outs ---")
            for label, r in equations(device_id, inputs).items():
                out.append(f"{label} = {r}")

        with open(os.path.join(self.outdir, "params.txt"), "w", encoding="utf-8") as f:
            f.write("\n".join(out))

    def finalize_and_save(self, device_id=None, inputs=None):
        _np.savetxt(os.path.join(self.outdir, "population.txt"),
                    _np.array(self.population_data, dtype=float).reshape(-1, 7),
                    header="it  frame  pool  cap  mean_vx  fast  slow")

        if self.readout_labels:
            _np.savetxt(os.path.join(self.outdir, "readouts.txt"),
                        _np.array(self.readout_data, dtype=float),
                        header="it | " + " | ".join(self.readout_labels),
                        encoding="utf-8")

        self.save_params(device_id, inputs)
