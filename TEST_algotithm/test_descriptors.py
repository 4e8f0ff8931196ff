import math
import os, sys

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.append(ROOT)

from microwave_sim import physics
from microwave_sim.backend import select_backend, to_np, to_xp
from microwave_sim.dataclass import SimConfig, SimulationInputs, FIDELITY_DENSITY, GLOBAL_MAX
from microwave_sim.descriptors import DEVICES, device_ids, get_descriptor, get_params, resolve_inputs
from microwave_sim.devices import MODELS, get_model
from microwave_sim.equations import equations, numeric_readouts, Readout

ALL_IDS = ("klystron2", "klystronMulti", "reflex", "twt", "obwo", "magnetron",
           "carcinotron", "gunn", "tunnel", "impatt", "trapatt")


# ========================================
# Descriptor table
# ========================================
def test_every_device_registered():
    assert device_ids() == ALL_IDS
    assert set(MODELS) == set(ALL_IDS)
    for device_id in ALL_IDS:
        assert MODELS[device_id].device_id == device_id
        assert get_descriptor(device_id).id == device_id
        assert get_model(device_id) is MODELS[device_id]
    assert get_model("nope") is None


def test_param_ranges_are_consistent():
    for d in DEVICES:
        ids = [p.id for p in d.params]
        assert len(ids) == len(set(ids)), d.id
        for p in d.params:
            assert p.min <= p.default <= p.max, (d.id, p.id)
            assert p.step > 0


def test_descriptor_serialisation():
    d = get_descriptor("klystron2").asdict()
    assert d["id"] == "klystron2"
    assert d["family"] == "O-TYPE"
    assert set(d["theory"]) == {"plain", "latex"}
    vo = d["params"][0]
    assert vo == {"id": "Vo", "label": "Beam Voltage (V₀)", "unit": "kV",
                  "min": 0.5, "max": 200, "def": 10, "step": 0.5}


def test_get_params_unknown_device():
    assert get_params("nope") == []
    assert get_descriptor("nope") is None
    assert len(get_params("magnetron")) == 6


# ========================================
# resolve_inputs: missing / non-numeric values fall back to defaults
# ========================================
def test_resolve_inputs_defaults():
    r = resolve_inputs("klystron2", {})
    assert r == {"Vo": 10.0, "Io": 200.0, "Vi": 800.0, "f": 3.0, "L": 5.0, "d": 3.0}
    assert resolve_inputs("klystron2", None) == r


def test_resolve_inputs_bad_values():
    r = resolve_inputs("klystron2", {"Vo": "abc", "Io": None, "Vi": math.nan,
                                     "f": math.inf, "L": "7.5", "extra": 1})
    assert r["Vo"] == 10.0
    assert r["Io"] == 200.0
    assert r["Vi"] == 800.0
    assert r["f"] == 3.0
    assert r["L"] == 7.5
    assert r["extra"] == 1


def test_resolve_inputs_unknown_device_passthrough():
    assert resolve_inputs("nope", {"a": 1}) == {"a": 1}


# ========================================
# Read-out registry
# ========================================
def test_every_device_has_readouts():
    for device_id in ALL_IDS:
        out = equations(device_id)
        assert out, device_id
        for label, r in out.items():
            assert isinstance(r, Readout)
            assert str(r)


def test_unknown_device_readouts_empty():
    assert equations("nope", {"Vo": 1}) == {}
    assert numeric_readouts("nope") == {}


def test_multicavity_total_gain():
    out = equations("klystronMulti", {"N": 4, "G": 8})
    assert out["Total Gain"].value == 24
    assert out["Total Gain"].value == physics.cascade_gain_db(4, 8)
    assert abs(out["Power Gain"].value - 10 ** 2.4) < 1e-6


def test_magnetron_cutoff_state():
    # default operating point sits below the Hull cut-off
    out = equations("magnetron")
    assert out["Cut-off State"].value is True
    assert out["Hull Cutoff"].value > 26
    # numeric view drops the boolean
    assert "Cut-off State" not in numeric_readouts("magnetron")
    assert "Hull Cutoff" in numeric_readouts("magnetron")


def test_tunnel_negative_resistance_readout():
    assert equations("tunnel", {"Vbias": 150})["Negative Resistance"].value is True
    assert equations("tunnel", {"Vbias": 50})["Negative Resistance"].value is False
    assert equations("tunnel", {"Vbias": 50})["Tunnel Current"].value == 5.0


def test_reflex_readouts_follow_mode():
    T = physics.reflex_round_trip_time(600, 350, 3e-3)
    f_GHz = 2.75 / T / 1e9
    out = equations("reflex", {"Vo": 600, "Vr": 350, "L": 3, "f": f_GHz})
    assert out["Mode Number"].value == 2
    assert out["Oscillation Strength"].value > 0.99


def test_reflex_transit_and_round_trip_times():
    # single pass 2L/v0 and the repeller round trip are reported separately
    out = equations("reflex", {"Vo": 600, "Vr": 350, "L": 3, "f": 9})
    v0 = math.sqrt(2 * 1.6e-19 * 600 / 9.11e-31)
    assert abs(out["Transit Time"].value - 2 * 3e-3 / v0 * 1e9) < 1e-9
    T = physics.reflex_round_trip_time(600, 350, 3e-3)
    assert abs(out["Round-Trip Time"].value - T * 1e9) < 1e-9
    assert out["Transit Time"].unit == out["Round-Trip Time"].unit == "ns"


def test_reflex_zero_beam_voltage():
    out = equations("reflex", {"Vo": 0})
    assert out["Transit Time"].text == "∞"
    assert out["Round-Trip Time"].value == 0.0


def test_infinite_readout_formats():
    out = equations("klystron2", {"Vi": 0})
    assert out["Optimum Drift (L_opt)"].text == "∞"


# ========================================
# Configuration validation
# ========================================
def test_simulation_inputs_validation():
    with pytest.raises(ValueError):
        SimulationInputs(fidelity="ultra")
    with pytest.raises(ValueError):
        SimulationInputs(time_scale=0)
    with pytest.raises(ValueError):
        SimulationInputs(time_scale=math.nan)
    s = SimulationInputs(fidelity="high", time_scale=2)
    assert s.particle_density == FIDELITY_DENSITY["high"]
    assert s.with_changes(running=False).running is False
    assert s.running is True


def test_sim_config_compute_scales():
    cfg = SimConfig(fidelity="low")
    cfg.compute_scales(verbose=False)
    assert cfg.particle_density == 2.0
    with pytest.raises(ValueError):
        SimConfig(max_particles=GLOBAL_MAX + 1).compute_scales(verbose=False)
    with pytest.raises(ValueError):
        SimConfig(width=0).compute_scales(verbose=False)
    with pytest.raises(ValueError):
        SimConfig(time_scale=-1).compute_scales(verbose=False)


# ========================================
# Array backend selection
# ========================================
def test_select_backend_cpu_and_bad_name():
    module, is_cupy = select_backend("CPU")
    assert module.__name__ == "numpy"
    assert is_cupy is False
    with pytest.raises(ValueError):
        select_backend("tpu")


def test_to_xp_round_trip_host_values():
    a = to_np(to_xp([1.0, 2.0, 3.0]))
    assert list(a) == [1.0, 2.0, 3.0]
    assert float(to_np(to_xp(2.5))) == 2.5
