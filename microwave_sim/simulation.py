import math

from . import backend, visual
from .backend import xp
from .dataclass import SimConfig, GLOBAL_MAX
from .descriptors import resolve_inputs
from .devices import get_model
from .diagnostics import Diagnostics
from .equations import equations
from .model import FrameContext
from .particles import Particles
from .render import Surface


class Simulation:
    """
    Frame driver for the active device.

    Owns the particle pool and the frame counter. A host (FuncAnimation, a GIF
    recorder, a test) calls tick() once per displayed frame; input changes made
    through update() are picked up at the start of the next tick.
    """

    def __init__(self, cfg: SimConfig, surface=None, verbose=True):
        self.cfg = cfg
        cfg.compute_scales(verbose=verbose)   # validate before any frame runs
        backend.seed(cfg.seed)

        self.surface = surface if surface is not None else Surface(cfg.width, cfg.height, cfg.dpi)
        self.inputs = cfg.to_inputs()
        self.pool = Particles()
        self.frame = 0.0
        self.cap = 0
        self.device_id = None
        self.model = None
        self.host = None
        self.diag = None
        self.set_device(self.inputs.device_id)

    # ---------------- inputs ----------------
    def set_device(self, device_id):
        """The one reset path: empty pool, frame counter back to zero, new model."""
        self.pool.clear()
        self.frame = 0.0
        self.cap = 0
        self.device_id = device_id
        self.model = get_model(device_id)

    def update(self, **changes):
        self.inputs = self.inputs.with_changes(**changes)

    def resolved_inputs(self):
        return resolve_inputs(self.inputs.device_id, self.inputs.inputs)

    def readouts(self):
        return equations(self.inputs.device_id, self.inputs.inputs)

    def context(self, dt=None):
        inp = self.inputs
        return FrameContext(
            inputs=self.resolved_inputs(),
            frame=self.frame,
            time_scale=inp.time_scale if dt is None else float(dt),
            density=inp.particle_density,
            width=self.surface.width,
            height=self.surface.height,
            cap=min(self.cfg.max_particles, GLOBAL_MAX),
        )

    def soft_cap(self, ctx):
        cap = self.model.soft_cap(ctx) if self.model is not None else 0
        if not math.isfinite(cap):
            cap = 0
        return max(0, int(min(ctx.cap, math.floor(cap))))

    # ---------------- frame ----------------
    def tick(self, dt_simulated=None):
        inp = self.inputs
        if inp.device_id != self.device_id:
            self.set_device(inp.device_id)

        s = self.surface
        s.fit_to_container()
        s.clear(visual.BACKGROUND)

        if inp.running:
            self.frame += inp.time_scale if dt_simulated is None else float(dt_simulated)
            self.pool.truncate(min(self.cfg.max_particles, GLOBAL_MAX))

        if self.model is None:
            s.present()
            return

        ctx = self.context(dt_simulated)
        ctx.cap = self.soft_cap(ctx)
        self.cap = ctx.cap
        self.pool.truncate(ctx.cap)

        if inp.running:
            self.model.advance(self.pool, ctx)

        self.model.draw(s, self.pool, ctx)
        s.present()

    # ---------------- hosts ----------------
    def attach(self, host):
        self.host = host

    def dispose(self):
        """Cancel the pending frame of whatever host is driving us."""
        if self.host is not None:
            self.host.cancel()
            self.host = None

    def run(self, frames=None, verbose=True, on_frame=None):
        """Headless loop with diagnostics; on_frame(it) runs after every tick."""
        cfg = self.cfg
        frames = int(cfg.frames if frames is None else frames)
        self.diag = Diagnostics(cfg.outdir, cfg.diag_interval, cfg.snap_interval, cfg=cfg)

        for it in range(frames):
            self.tick()
            if on_frame is not None:
                on_frame(it)

            # population / read-out diag
            if it > 0 and (it % self.diag.diag_interval) == 0 or (it == frames - 1):
                n, mean_vx, fast, slow = self.diag.record_population(it, self.frame, self.pool, self.cap)
                self.diag.record_readouts(it, self.inputs.device_id, self.inputs.inputs)
                if verbose:
                    print(f"[frame {it:6d}] t={self.frame:9.2f}  pool={n:6d}/{self.cap:<6d} "
                          f"<vx>={mean_vx:+.3f}  fast={fast}  slow={slow}")

            # snapshot diag
            if it > 0 and (it % self.diag.snap_interval) == 0 or (it == frames - 1):
                path = self.diag.save_snapshot(it, self.surface)
                if verbose:
                    vmax = float(xp.max(xp.abs(self.pool.vx))) if len(self.pool) else 0.0
                    print(f"[frame {it:6d}] snapshot -> {path}  max|vx| = {vmax:.3f}")

        self.diag.finalize_and_save(self.inputs.device_id, self.resolved_inputs())
        return self.diag
