# diagnostics/diag_utils.py
import os, glob, numpy as np

POPULATION_COLUMNS = ("it", "frame", "pool", "cap", "mean_vx", "fast", "slow")


def ensure_dir(path):
    os.makedirs(path, exist_ok=True)
    return path


def load_population(outdir="output"):
    """population.txt as a {column: array} dict."""
    path = os.path.join(outdir, "population.txt")
    if not os.path.exists(path):
        raise FileNotFoundError(f"{path} not found.")
    data = np.atleast_2d(np.loadtxt(path))
    return {name: data[:, i] for i, name in enumerate(POPULATION_COLUMNS)}


def load_readouts(outdir="output"):
    """readouts.txt -> (it, {label: values})"""
    path = os.path.join(outdir, "readouts.txt")
    if not os.path.exists(path):
        raise FileNotFoundError(f"{path} not found.")
    with open(path, encoding="utf-8") as f:
        header = f.readline().lstrip("#").strip()
    labels = [s.strip() for s in header.split("|")][1:]
    data = np.atleast_2d(np.loadtxt(path, encoding="utf-8"))
    return data[:, 0], {label: data[:, i + 1] for i, label in enumerate(labels)}


def load_params(outdir="output"):
    """params.txt key = value lines (section headers skipped)."""
    path = os.path.join(outdir, "params.txt")
    if not os.path.exists(path):
        raise FileNotFoundError(f"{path} not found.")
    out = {}
    with open(path, encoding="utf-8") as f:
        for line in f:
            key, sep, value = line.partition(" = ")
            if sep:
                out[key.strip()] = value.strip()
    return out


def list_snapshots(outdir="output"):
    return sorted(glob.glob(os.path.join(outdir, "frame_*.png")))


def moving_average(y, n=5):
    """平滑曲线 (边缘用 'valid' 截掉)"""
    y = np.asarray(y, dtype=float)
    if n <= 1 or y.size < n:
        return y
    return np.convolve(y, np.ones(n) / n, mode="valid")
