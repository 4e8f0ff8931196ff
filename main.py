"""
Particle animations of microwave tube and solid-state device internals
- Devices: two/multi-cavity klystron, reflex klystron, TWT, O-type BWO,
  magnetron, carcinotron, Gunn, tunnel, IMPATT, TRAPATT
- One physics/drawing model per device, driven frame by frame
- Rendering: matplotlib (Agg when headless, a window with --show)
- Particle arrays: CuPy if MWSIM_DEVICE=gpu/auto, otherwise NumPy

Outputs (under ./output, headless run):
  - <device>.gif                   # the recorded animation
  - population.txt                 # [it, frame, pool, cap, mean_vx, fast, slow]
  - readouts.txt                   # [it, numeric device read-outs ...]
  - params.txt                     # configuration, resolved inputs, read-outs
  - frame_00000.png ...            # snapshots every snap_interval frames

Usage:
  python main.py klystron2 --frames 300 --set Vi=1200 --set L=8
  python main.py magnetron --fidelity high --show
"""

import argparse
import glob
import os
import shutil

from microwave_sim.backend import CUPY
from microwave_sim.dataclass import SimConfig, FIDELITY_DENSITY
from microwave_sim.descriptors import device_ids, get_descriptor
from microwave_sim.simulation import Simulation


def parse_assignments(pairs):
    """["Vo=12", "Io=300"] -> {"Vo": 12.0, "Io": 300.0}"""
    inputs = {}
    for item in pairs or []:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"--set expects KEY=VALUE, got {item!r}")
        try:
            inputs[key.strip()] = float(value)
        except ValueError:
            raise ValueError(f"--set {key.strip()}: {value!r} is not a number")
    return inputs


def clean_outdir(out_dir):
    # Auto-clean output directory
    os.makedirs(out_dir, exist_ok=True)
    for f in glob.glob(os.path.join(out_dir, "*")):
        if os.path.isfile(f):
            os.remove(f)
        elif os.path.isdir(f):
            shutil.rmtree(f)


def build_parser():
    ap = argparse.ArgumentParser(description="Microwave device particle animations")
    ap.add_argument("device", nargs="?", default="klystron2",
                    help="device id: " + ", ".join(device_ids()))
    ap.add_argument("--frames", type=int, default=600)
    ap.add_argument("--fidelity", choices=sorted(FIDELITY_DENSITY), default="medium")
    ap.add_argument("--time-scale", type=float, default=1.0)
    ap.add_argument("--set", action="append", default=[], metavar="KEY=VALUE",
                    help="device parameter override (repeatable)")
    ap.add_argument("--show", action="store_true", help="open an interactive window instead of recording")
    ap.add_argument("--outdir", default="output")
    ap.add_argument("--fps", type=int, default=30)
    ap.add_argument("--seed", type=int, default=12345)
    return ap


# MAIN
if __name__ == "__main__":
    args = build_parser().parse_args()
    print(f"Backend: {'CuPy (GPU)' if CUPY else 'NumPy (CPU)'}")

    desc = get_descriptor(args.device)
    if desc is None:
        print(f"[config] unknown device {args.device!r}: frames will be empty")
    else:
        print(f"[config] {desc.name} ({desc.family})")

    # 在 main 里定义输入参数
    cfg = SimConfig(
        device_id=args.device,
        inputs=parse_assignments(args.set),
        fidelity=args.fidelity,
        time_scale=args.time_scale,

        width=960,    # px
        height=540,   # px
        dpi=100,

        frames=args.frames,
        diag_interval=10,
        snap_interval=100,
        fps=args.fps,
        seed=args.seed,
        outdir=args.outdir,
    )

    if args.show:
        from microwave_sim.animation import show
        from microwave_sim.render import Surface
        sim = Simulation(cfg, surface=Surface(cfg.width, cfg.height, cfg.dpi, interactive=True))
        show(sim, interval=int(1000 / cfg.fps))
    else:
        import matplotlib
        matplotlib.use("Agg")
        from microwave_sim.animation import record
        clean_outdir(cfg.outdir)
        sim = Simulation(cfg)
        record(sim, os.path.join(cfg.outdir, f"{cfg.device_id}.gif"), frames=cfg.frames, fps=cfg.fps)
