import os

import numpy as np
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from diagnostics.config_paths import OUT, FIGS
from diagnostics.diag_utils import load_population, load_readouts, load_params, moving_average


def plot_population(pop, device):
    fig, axes = plt.subplots(3, 1, figsize=(8, 8), sharex=True)

    # ---------- 粒子数 vs 软上限 ----------
    axes[0].plot(pop["frame"], pop["pool"], label="pool size")
    axes[0].plot(pop["frame"], pop["cap"], "--", label="soft cap")
    axes[0].set_ylabel("particles")
    axes[0].legend()

    # ---------- 平均速度 ----------
    axes[1].plot(pop["frame"], pop["mean_vx"], alpha=0.4, label="<vx>")
    smooth = moving_average(pop["mean_vx"], 5)
    if smooth.size != pop["mean_vx"].size:
        axes[1].plot(pop["frame"][2:2 + smooth.size], smooth, label="<vx> (5-pt avg)")
    axes[1].set_ylabel("px / frame")
    axes[1].legend()

    # ---------- fast / slow ----------
    axes[2].plot(pop["frame"], pop["fast"], color="#ef4444", label="fast")
    axes[2].plot(pop["frame"], pop["slow"], color="#64748b", label="slow")
    axes[2].set_xlabel("simulated frame")
    axes[2].set_ylabel("count")
    axes[2].legend()

    fig.suptitle(f"Particle population: {device}")
    fig.tight_layout()
    path = os.path.join(FIGS, "population.png")
    fig.savefig(path, dpi=150)
    plt.close(fig)
    return path


def plot_readouts(it, readouts, device):
    labels = [k for k, v in readouts.items() if np.all(np.isfinite(v))]
    if not labels:
        return None
    fig, axes = plt.subplots(len(labels), 1, figsize=(8, 1.8 * len(labels)), sharex=True, squeeze=False)
    for ax, label in zip(axes[:, 0], labels):
        ax.plot(it, readouts[label], marker=".")
        ax.set_ylabel(label, rotation=0, ha="right", fontsize=8)
    axes[-1, 0].set_xlabel("frame index")
    fig.suptitle(f"Device read-outs: {device}")
    fig.tight_layout()
    path = os.path.join(FIGS, "readouts.png")
    fig.savefig(path, dpi=150)
    plt.close(fig)
    return path


if __name__ == "__main__":
    params = load_params(OUT)
    device = params.get("device_id", "?")
    print(f"[diag] saved {plot_population(load_population(OUT), device)}")
    try:
        it, readouts = load_readouts(OUT)
    except FileNotFoundError as e:
        print(f"[diag] {e}")
    else:
        path = plot_readouts(it, readouts, device)
        if path:
            print(f"[diag] saved {path}")
