import math
import os, sys

import numpy as np
import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.append(ROOT)

from microwave_sim.backend import to_np, to_xp
from microwave_sim.dataclass import SimConfig, GLOBAL_MAX
from microwave_sim.descriptors import device_ids, get_params, resolve_inputs
from microwave_sim.devices import MODELS
from microwave_sim.model import FrameContext
from microwave_sim.particles import (
    Particles, NEUTRAL, FAST, SLOW, DOMAIN, EXTRACTING, FILLING, HOLE, ELECTRON,
)
from microwave_sim.simulation import Simulation
from microwave_sim.slow_wave import twt_envelope
from microwave_sim import visual as V

W, H = 480, 270


def make_sim(device_id="klystron2", inputs=None, fidelity="low", **kw):
    cfg = SimConfig(device_id=device_id, inputs=dict(inputs or {}), fidelity=fidelity,
                    width=W, height=H, dpi=50, seed=7, **kw)
    return Simulation(cfg, verbose=False)


def make_ctx(device_id, inputs=None, frame=0.0, density=6.0, cap=GLOBAL_MAX, width=960, height=540):
    return FrameContext(inputs=resolve_inputs(device_id, inputs), frame=frame, time_scale=1.0,
                        density=density, width=width, height=height, cap=cap)


def arr(pool, name):
    return np.asarray(to_np(getattr(pool, name)))


# ========================================
# Pool never exceeds min(GLOBAL_MAX, soft cap) for any device
# ========================================
@pytest.mark.parametrize("device_id", device_ids())
def test_pool_respects_soft_cap(device_id):
    sim = make_sim(device_id)
    for _ in range(60):
        sim.tick()
        ctx = sim.context()
        bound = min(GLOBAL_MAX, math.floor(sim.model.soft_cap(ctx)))
        assert len(sim.pool) <= sim.cap <= bound
        assert np.all(np.isfinite(arr(sim.pool, "x")))
        assert np.all(np.isfinite(arr(sim.pool, "vx")))
    assert sim.surface.frames_presented == 60
    assert sim.frame == 60.0


def test_max_particles_override():
    sim = make_sim("klystron2", max_particles=50, time_scale=4.0)
    for _ in range(200):
        sim.tick()
        assert len(sim.pool) <= 50
    assert sim.cap == 50


def test_time_scale_advances_frame_counter():
    sim = make_sim("twt", time_scale=2.5)
    for _ in range(4):
        sim.tick()
    assert sim.frame == 10.0
    sim.tick(dt_simulated=0.5)
    assert sim.frame == 10.5


# ========================================
# Pause: frame counter and particle state frozen, drawing continues
# ========================================
def test_pause_freezes_state():
    sim = make_sim("klystron2")
    for _ in range(30):
        sim.tick()
    sim.update(running=False)
    frame = sim.frame
    before = sim.pool.snapshot()
    presented = sim.surface.frames_presented

    for _ in range(5):
        sim.tick()

    assert sim.frame == frame
    after = sim.pool.snapshot()
    for name in ("x", "y", "vx", "state"):
        assert np.array_equal(before[name], after[name])
    assert sim.surface.frames_presented == presented + 5

    sim.update(running=True)
    sim.tick()
    assert sim.frame == frame + 1.0


# ========================================
# Device switch resets the pool and frame counter
# ========================================
def test_device_switch_resets():
    sim = make_sim("klystron2")
    for _ in range(20):
        sim.tick()
    assert len(sim.pool) > 0 and sim.frame > 0

    sim.update(device_id="magnetron", running=False)
    sim.tick()
    assert sim.device_id == "magnetron"
    assert len(sim.pool) == 0
    assert sim.frame == 0.0

    sim.update(running=True)
    sim.tick()
    assert sim.frame == 1.0
    assert len(sim.pool) > 0


def test_input_change_applies_next_tick():
    sim = make_sim("klystron2")
    sim.tick()
    sim.update(inputs={"Io": 20})
    sim.tick()
    assert sim.cap == math.floor(V.KLY2_CAP_PER_MA * 20)
    assert sim.resolved_inputs()["Io"] == 20.0
    assert sim.readouts()["Bunching Param (X)"].value > 0


# ========================================
# Unknown device: empty black frame, no exception
# ========================================
def test_unknown_device_draws_black_frame():
    sim = make_sim("no-such-device")
    for _ in range(3):
        sim.tick()
    assert sim.model is None
    assert len(sim.pool) == 0
    assert sim.readouts() == {}
    img = sim.surface.to_array()
    assert img.ndim == 3 and img.shape[-1] == 4
    assert np.all(img[..., :3] == 0)


def test_rendered_frame_has_content():
    sim = make_sim("magnetron")
    for _ in range(10):
        sim.tick()
    img = sim.surface.to_array()
    assert img[..., :3].max() > 0


# ========================================
# Recycling: injection coordinates and base velocity restored
# ========================================
def test_klystron_recycle_resets_to_gun():
    model = MODELS["klystron2"]
    ctx = make_ctx("klystron2", cap=400)
    g = model.geometry(ctx)
    pool = Particles()
    pool.inject(3, x=g["exit"] + 10.0, vx=5.0, base_vx=1.0, state=FAST, stage=1)

    model.advance(pool, ctx)

    x = arr(pool, "x")[:3]
    assert np.all((x > -10.0) & (x <= 0.0))
    assert np.all(arr(pool, "vx")[:3] == arr(pool, "base_vx")[:3])
    assert np.allclose(arr(pool, "base_vx")[:3], g["v_px"])
    assert np.all(arr(pool, "state")[:3] == NEUTRAL)
    assert np.all(arr(pool, "stage")[:3] == -1)
    y = arr(pool, "y")[:3]
    assert np.all(np.abs(y - ctx.cy) <= 12.5)


def test_klystron_velocities_clamped():
    model = MODELS["klystron2"]
    ctx = make_ctx("klystron2", {"Vi": 10000}, cap=400)
    pool = Particles()
    for i in range(300):
        ctx.frame = float(i)
        model.advance(pool, ctx)
        ratio = arr(pool, "vx") / arr(pool, "base_vx")
        assert np.all(ratio >= V.KLY2_MIN_SPEED * V.KLY2_CATCHER_DAMP - 1e-12)
        assert np.all(ratio <= V.KLY2_MAX_SPEED + 1e-12)


def test_multicavity_guard_band():
    model = MODELS["klystronMulti"]
    ctx = make_ctx("klystronMulti", {"Vi": 5000, "G": 30})
    pool = Particles()
    for i in range(400):
        ctx.frame = float(i)
        model.advance(pool, ctx)
    ratio = arr(pool, "vx") / arr(pool, "base_vx")
    assert len(pool) > 0
    assert np.all(ratio >= V.KLYM_GUARD_MIN - 1e-12)
    assert np.all(ratio <= V.KLYM_MAX_SPEED + 1e-12)


def test_reflex_recycle_at_repeller():
    model = MODELS["reflex"]
    ctx = make_ctx("reflex")
    g = model.geometry(ctx)
    pool = Particles()
    pool.inject(2, x=g["repeller"] + 50.0, vx=1.0, base_vx=1.0, state=FAST, stage=0)
    model.advance(pool, ctx)
    assert np.all(arr(pool, "x")[:2] == V.REFLEX_GUN_X)
    assert np.all(arr(pool, "state")[:2] == NEUTRAL)


# ========================================
# Magnetron: polar bounds and respawn at the cathode
# ========================================
def test_magnetron_radius_bounds():
    sim = make_sim("magnetron")
    ctx = sim.context()
    g = sim.model.geometry(ctx)
    for _ in range(80):
        sim.tick()
        r = arr(sim.pool, "r")
        assert np.all(r >= g["ra"])
        assert np.all(r <= g["rb"])
        theta = arr(sim.pool, "theta")
        assert np.all((theta >= 0) & (theta < 2 * math.pi))


def test_magnetron_respawn_at_cathode():
    model = MODELS["magnetron"]
    ctx = make_ctx("magnetron", density=2.0, width=W, height=H)
    g = model.geometry(ctx)
    pool = Particles()
    pool.inject(5, r=g["rb"] + 10.0, theta=0.0)

    model.advance(pool, ctx)

    r = arr(pool, "r")[:5]
    assert np.all((r >= g["ra"]) & (r < g["ra"] + 1.0))
    x, y = arr(pool, "x")[:5], arr(pool, "y")[:5]
    assert np.allclose(np.hypot(x - ctx.cx, y - ctx.cy), r)


def test_carcinotron_absorbed_then_recycled():
    model = MODELS["carcinotron"]
    ctx = make_ctx("carcinotron")
    g = model.geometry(ctx)
    pool = Particles()
    pool.inject(3, x=g["start"] + 10.0, y=g["anode"] - 10.0, base_y=g["anode"] - 100.0)
    model.advance(pool, ctx)
    # straight back to the cathode end
    x = arr(pool, "x")[:3]
    assert np.all((x >= 50.0) & (x < 65.0))


# ========================================
# Solid-state devices
# ========================================
def test_gunn_below_threshold_no_domain():
    model = MODELS["gunn"]
    ctx = make_ctx("gunn", {"V": 2})
    pool = Particles()
    for _ in range(500):
        model.advance(pool, ctx)
    assert len(pool) == 0


def test_gunn_single_domain():
    model = MODELS["gunn"]
    ctx = make_ctx("gunn", {"V": 20}, cap=1)
    pool = Particles()
    seen = False
    for _ in range(800):
        model.advance(pool, ctx)
        assert pool.count(DOMAIN) <= 1
        seen = seen or len(pool) == 1
    assert seen


def test_tunnel_no_bias_no_particles():
    model = MODELS["tunnel"]
    ctx = make_ctx("tunnel", {"Vbias": 0}, cap=V.TUNNEL_CAP)
    pool = Particles()
    for _ in range(300):
        model.advance(pool, ctx)
    assert len(pool) == 0


def test_tunnel_particles_fade_out():
    model = MODELS["tunnel"]
    ctx = make_ctx("tunnel", {"Vbias": 0}, cap=V.TUNNEL_CAP)
    pool = Particles()
    pool.inject(4, x=ctx.cx, y=ctx.cy - 5.0, vy=0.0, life=0.05)
    model.advance(pool, ctx)
    assert len(pool) == 4
    for _ in range(3):
        model.advance(pool, ctx)
    assert len(pool) == 0


def test_impatt_below_breakdown_idle():
    model = MODELS["impatt"]
    pool = Particles()
    for i in range(400):
        model.advance(pool, make_ctx("impatt", {"Vd": 60}, frame=float(i)))
    assert len(pool) == 0


def test_impatt_pairs_split_by_carrier():
    model = MODELS["impatt"]
    pool = Particles()
    # sin(0.05·frame) > 0.8 around frame ≈ 19..43
    for i in range(20, 40):
        model.advance(pool, make_ctx("impatt", {"Vd": 100, "I": 200}, frame=float(i)))
    assert pool.count(HOLE) > 0 and pool.count(ELECTRON) > 0
    state, vx = arr(pool, "state"), arr(pool, "vx")
    assert np.all(vx[state == HOLE] < 0)
    assert np.all(vx[state == ELECTRON] > 0)


def test_trapatt_fill_then_extract():
    model = MODELS["trapatt"]
    ctx = make_ctx("trapatt", {"V": 150})
    g = model.geometry(ctx)
    pool = Particles()
    pool.inject(2, x=g["switch"] + 0.5, vx=V.TRAPATT_FILL_VX, state=FILLING)
    model.advance(pool, ctx)
    assert np.all(arr(pool, "state")[:2] == EXTRACTING)
    assert np.allclose(arr(pool, "vx")[:2], V.TRAPATT_EXTRACT_VX * 1.5)

    # past the end: back to the fill zone
    pool.x[:2] = g["end"] + 1.0
    model.advance(pool, ctx)
    assert np.all(arr(pool, "x")[:2] == g["fill_start"])
    assert np.all(arr(pool, "state")[:2] == FILLING)


# ========================================
# Zero-valued inputs: every device ticks and reports without raising
# ========================================
@pytest.mark.parametrize("device_id", device_ids())
def test_zero_inputs_never_raise(device_id):
    for p in get_params(device_id):
        sim = make_sim(device_id, {p.id: 0.0})
        for _ in range(5):
            sim.tick()
        assert np.all(np.isfinite(arr(sim.pool, "x"))), p.id
        out = sim.readouts()
        assert out, p.id
        for r in out.values():
            assert str(r)


# ========================================
# Two-cavity klystron: one buncher kick, one catcher damping
# ========================================
def _kly2_at_buncher(sin_val, n=3):
    model = MODELS["klystron2"]
    ctx = make_ctx("klystron2", cap=n)
    g = model.geometry(ctx)
    ctx.frame = math.asin(sin_val) / g["omega"]
    pool = Particles()
    pool.inject(n, x=g["buncher"] + 0.5, vx=g["v_px"], base_vx=g["v_px"], state=NEUTRAL, stage=-1)
    model.advance(pool, ctx)
    return model, ctx, g, pool


@pytest.mark.parametrize("sin_val, state", [
    (0.15, FAST), (0.05, NEUTRAL), (0.0, NEUTRAL), (-0.05, NEUTRAL), (-0.15, SLOW),
])
def test_klystron_buncher_split(sin_val, state):
    _, _, g, pool = _kly2_at_buncher(sin_val)
    assert np.all(arr(pool, "state") == state)
    assert np.all(arr(pool, "stage") == 0)
    ratio = arr(pool, "vx") / arr(pool, "base_vx")
    if sin_val > 0:
        assert np.all(ratio > 1.0)
    elif sin_val < 0:
        assert np.all(ratio < 1.0)
    else:
        assert np.allclose(ratio, 1.0)


def test_klystron_buncher_kicks_once():
    model, ctx, g, pool = _kly2_at_buncher(0.5)
    vx = arr(pool, "vx").copy()
    # opposite RF phase on the next frame: already-bunched particles ignore it
    ctx.frame = math.asin(-0.5) / g["omega"]
    model.advance(pool, ctx)
    assert np.all(arr(pool, "x") < g["catcher"])
    assert np.array_equal(arr(pool, "vx"), vx)
    assert np.all(arr(pool, "state") == FAST)
    assert np.all(arr(pool, "stage") == 0)


def test_klystron_catcher_damps_once():
    model = MODELS["klystron2"]
    ctx = make_ctx("klystron2", cap=3)
    g = model.geometry(ctx)
    pool = Particles()
    pool.inject(3, x=g["catcher"] + 0.5, vx=g["v_px"] * 1.5, base_vx=g["v_px"], state=FAST, stage=0)

    model.advance(pool, ctx)
    assert np.all(arr(pool, "stage") == 1)
    assert np.allclose(arr(pool, "vx"), g["v_px"] * 1.5 * V.KLY2_CATCHER_DAMP)

    model.advance(pool, ctx)
    assert np.all(arr(pool, "stage") == 1)
    assert np.allclose(arr(pool, "vx"), g["v_px"] * 1.5 * V.KLY2_CATCHER_DAMP)


# ========================================
# Multi-cavity klystron: stage climbs one cavity at a time
# ========================================
def test_multicavity_stage_marches():
    model = MODELS["klystronMulti"]
    ctx = make_ctx("klystronMulti", cap=1)
    g = model.geometry(ctx)
    pool = Particles()
    pool.inject(1, x=g["cavities"][0] - 5.0, vx=g["v_px"], base_vx=g["v_px"], state=NEUTRAL, stage=-1)

    stages = [-1]
    for i in range(2000):
        ctx.frame = float(i)
        model.advance(pool, ctx)
        x, stage = float(arr(pool, "x")[0]), int(arr(pool, "stage")[0])
        if stage != stages[-1]:
            stages.append(stage)
        if x > g["catcher"] + 20.0:
            break
    assert stages == list(range(-1, g["N"]))


# ========================================
# TWT: no interaction inside the attenuator
# ========================================
def test_twt_envelope_zero_in_attenuator():
    model = MODELS["twt"]
    g = model.geometry(make_ctx("twt", {"atten": 1}))
    xs = np.array([g["start"] + 1.0, g["atten_start"] + 1.0,
                   0.5 * (g["atten_start"] + g["atten_end"]), g["atten_end"] - 1.0, g["end"] - 1.0])
    amp = np.asarray(to_np(twt_envelope(to_xp(xs), g)))
    assert np.all(amp[1:4] == 0.0)
    assert amp[0] > 0 and amp[4] > 0

    g_off = model.geometry(make_ctx("twt", {"atten": 0}))
    amp = np.asarray(to_np(twt_envelope(to_xp(xs), g_off)))
    assert np.all(amp > 0)


def test_twt_attenuator_keeps_velocity():
    model = MODELS["twt"]
    ctx = make_ctx("twt", {"atten": 1}, cap=2)
    g = model.geometry(ctx)
    pool = Particles()
    pool.inject(2, x=g["atten_start"] + 2.0, y=ctx.cy, vx=g["v0"] * 1.7, base_vx=g["v0"], state=NEUTRAL)
    model.advance(pool, ctx)
    assert np.allclose(arr(pool, "vx"), g["v0"] * 1.7)
    assert np.all(arr(pool, "state") == FAST)


# ========================================
# O-type BWO: three velocity levels, tagged by the wave sign
# ========================================
def test_obwo_three_level_velocity():
    model = MODELS["obwo"]
    ctx = make_ctx("obwo", cap=4, frame=0.0)
    g = model.geometry(ctx)
    crest = (math.pi / 2 + 6 * math.pi) / V.OBWO_K        # sin = +1
    trough = (3 * math.pi / 2 + 6 * math.pi) / V.OBWO_K   # sin = -1
    node = 7 * math.pi / V.OBWO_K                          # sin = 0
    assert g["start"] < crest < trough < g["end"]

    pool = Particles()
    pool.inject(4, x=np.array([crest, trough, node, g["start"] - 30.0]), y=ctx.cy,
                vx=g["v0"] * 1.3, base_vx=g["v0"], state=NEUTRAL)
    model.advance(pool, ctx)

    ratio = arr(pool, "vx") / arr(pool, "base_vx")
    assert np.allclose(ratio, [0.7, 1.8, 1.0, 1.0])
    assert list(arr(pool, "state")) == [SLOW, FAST, NEUTRAL, NEUTRAL]


# ========================================
# Host bookkeeping
# ========================================
def test_dispose_cancels_host():
    class DummyHost:
        cancelled = False

        def cancel(self):
            self.cancelled = True

    sim = make_sim("twt")
    host = DummyHost()
    sim.attach(host)
    sim.dispose()
    assert host.cancelled
    assert sim.host is None
    sim.dispose()
