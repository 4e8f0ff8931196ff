# -*- coding: utf-8 -*-
"""
backend.py
Array module for the particle pool: NumPy by default, CuPy when asked for.
MWSIM_DEVICE = "cpu" | "gpu" | "auto" (gpu falls back to cpu only under auto).
"""

import os

import numpy as np

FORCE_DEVICE = os.environ.get("MWSIM_DEVICE", "cpu")
SEED = 12345


def _load_cupy():
    import cupy as cp
    cp.cuda.Stream.null.synchronize()   # fails here when no device is present
    return cp


def select_backend(device):
    """-> (array module, is_cupy)"""
    device = device.lower()
    if device not in ("cpu", "gpu", "auto"):
        raise ValueError(f'MWSIM_DEVICE must be "cpu", "gpu", or "auto", got {device!r}')
    if device == "cpu":
        return np, False
    try:
        return _load_cupy(), True
    except Exception as e:
        if device == "gpu":
            raise RuntimeError("Forced GPU mode but CuPy is unavailable: " + str(e))
        return np, False


xp, CUPY = select_backend(FORCE_DEVICE)
xp.random.seed(SEED)


def to_xp(a):
    """host value/array -> active backend (no-op on NumPy)"""
    return xp.asarray(a) if CUPY else a


def to_np(a):
    """backend array -> NumPy (no-op on NumPy)"""
    return xp.asnumpy(a) if CUPY else a


def zeros_like_shape(shape, dtype=xp.float64):
    return xp.zeros(shape, dtype=dtype)


def seed(value):
    """Re-seed the backend RNG (particle jitter, stochastic launches)."""
    xp.random.seed(int(value))


def uniform(n):
    """n samples in [0, 1) on the active backend."""
    return xp.random.random(int(n)).astype(xp.float64)


def chance(p):
    """Single Bernoulli draw, returned as a host bool."""
    return float(xp.random.random()) < p
