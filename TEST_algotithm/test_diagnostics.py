import importlib
import os, sys

import numpy as np
import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.append(ROOT)

from microwave_sim.animation import record, AnimationHost
from microwave_sim.dataclass import SimConfig
from microwave_sim.render import Surface, state_colors
from microwave_sim.simulation import Simulation
from diagnostics.diag_utils import (
    ensure_dir, load_population, load_readouts, load_params, list_snapshots, moving_average,
)
import main


def make_cfg(outdir, device_id="klystron2", **kw):
    return SimConfig(device_id=device_id, fidelity="low", width=320, height=180, dpi=40,
                     outdir=str(outdir), diag_interval=5, snap_interval=10, **kw)


# ========================================
# Headless run writes the diagnostic files
# ========================================
def test_run_writes_outputs(tmp_path):
    sim = Simulation(make_cfg(tmp_path), verbose=False)
    diag = sim.run(frames=25, verbose=False)

    pop = load_population(tmp_path)
    # it = 5, 10, 15, 20 and the last frame 24
    assert np.array_equal(pop["it"], [5, 10, 15, 20, 24])
    assert np.array_equal(pop["frame"], [6, 11, 16, 21, 25])
    assert np.all(pop["pool"] <= pop["cap"])
    assert np.all(pop["fast"] + pop["slow"] <= pop["pool"])
    assert len(diag.population_data) == 5

    it, readouts = load_readouts(tmp_path)
    assert np.array_equal(it, pop["it"])
    assert "Bunching Param (X)" in readouts
    assert np.allclose(readouts["Bunching Param (X)"], readouts["Bunching Param (X)"][0])

    params = load_params(tmp_path)
    assert params["device_id"] == "klystron2"
    assert params["fidelity"] == "low"
    assert float(params["Vo"]) == 10.0

    snaps = [os.path.basename(p) for p in list_snapshots(tmp_path)]
    assert snaps == ["frame_00010.png", "frame_00020.png", "frame_00024.png"]


def test_readouts_follow_input_changes(tmp_path):
    sim = Simulation(make_cfg(tmp_path, device_id="klystronMulti"), verbose=False)

    def bump(it):
        if it == 9:
            sim.update(inputs={"N": 6})

    sim.run(frames=20, verbose=False, on_frame=bump)
    it, readouts = load_readouts(tmp_path)
    gain = readouts["Total Gain"]
    assert gain[0] == 24.0
    assert gain[-1] == 40.0


def test_missing_files_raise(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_population(tmp_path)
    with pytest.raises(FileNotFoundError):
        load_readouts(tmp_path)
    with pytest.raises(FileNotFoundError):
        load_params(tmp_path)
    assert list_snapshots(tmp_path) == []


def test_ensure_dir_nested(tmp_path):
    path = os.path.join(str(tmp_path), "a", "b", "figs")
    assert ensure_dir(path) == path
    assert os.path.isdir(path)
    # already there: no error
    assert ensure_dir(path) == path


def test_config_paths_creates_figs(tmp_path, monkeypatch):
    monkeypatch.setenv("MWSIM_OUT", str(tmp_path))
    sys.modules.pop("diagnostics.config_paths", None)
    cp = importlib.import_module("diagnostics.config_paths")
    assert cp.OUT == os.path.abspath(str(tmp_path))
    assert cp.FIGS == os.path.join(cp.OUT, "figs")
    assert os.path.isdir(cp.FIGS)
    sys.modules.pop("diagnostics.config_paths", None)


def test_moving_average():
    y = np.arange(10.0)
    assert np.allclose(moving_average(y, 5), np.arange(2.0, 8.0))
    assert np.array_equal(moving_average(y[:3], 5), y[:3])


# ========================================
# GIF recording through PillowWriter
# ========================================
def test_record_gif(tmp_path):
    sim = Simulation(make_cfg(tmp_path, device_id="tunnel"), verbose=False)
    path = os.path.join(str(tmp_path), "tunnel.gif")
    record(sim, path, frames=6, fps=10, verbose=False)
    assert os.path.getsize(path) > 0
    assert os.path.exists(os.path.join(str(tmp_path), "population.txt"))


def test_animation_host_cancel():
    sim = Simulation(make_cfg("unused", device_id="twt"), verbose=False)
    host = AnimationHost(sim, interval=10)
    assert sim.host is host
    assert not host.pending
    host._step(0)
    assert sim.frame == 1.0
    sim.dispose()
    assert host.cancelled
    host._step(1)
    assert sim.frame == 1.0


# ========================================
# Surface helpers
# ========================================
def test_surface_resize():
    s = Surface(200, 100, dpi=50)
    assert (s.width, s.height) == (200, 100)
    s.set_size(300, 150)
    assert (s.width, s.height) == (300, 150)
    assert s.px_to_pt(50) == 72.0


def test_state_colors_palette():
    c = state_colors(np.array([0, 1, 2, 7]), {1: "#ff0000", 2: "#0000ff"}, default="#ffffff")
    assert c.shape == (4, 4)
    assert np.allclose(c[0], [1, 1, 1, 1])
    assert np.allclose(c[1], [1, 0, 0, 1])
    assert np.allclose(c[2], [0, 0, 1, 1])
    assert np.allclose(c[3], [1, 1, 1, 1])


# ========================================
# Command line helpers
# ========================================
def test_parse_assignments():
    assert main.parse_assignments(["Vo=12", " Io = 300"]) == {"Vo": 12.0, "Io": 300.0}
    assert main.parse_assignments(None) == {}
    with pytest.raises(ValueError):
        main.parse_assignments(["Vo"])
    with pytest.raises(ValueError):
        main.parse_assignments(["=3"])
    with pytest.raises(ValueError):
        main.parse_assignments(["Vo=fast"])


def test_build_parser_defaults():
    args = main.build_parser().parse_args(["magnetron", "--frames", "12", "--set", "Vo=30"])
    assert args.device == "magnetron"
    assert args.frames == 12
    assert args.set == ["Vo=30"]
