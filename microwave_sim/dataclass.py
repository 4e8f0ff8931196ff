from dataclasses import dataclass, asdict, field, replace
import math

# fidelity → particle density scalar (multiplies the density-driven soft caps)
FIDELITY_DENSITY = {"low": 2.0, "medium": 6.0, "high": 12.0}

# hard ceiling on the pool regardless of device or inputs
GLOBAL_MAX = 35_000


def particle_density(fidelity):
    try:
        return FIDELITY_DENSITY[fidelity]
    except KeyError:
        raise ValueError(f"fidelity must be one of {sorted(FIDELITY_DENSITY)}, got {fidelity!r}")


def _check_time_scale(time_scale):
    ts = float(time_scale)
    if not math.isfinite(ts) or ts <= 0.0:
        raise ValueError(f"time_scale must be a finite number > 0, got {time_scale!r}")
    return ts


# ---------------------- Per-frame inputs ----------------------
@dataclass(frozen=True)
class SimulationInputs:
    """What the driver reads at the start of every tick."""
    device_id: str = "klystron2"
    running: bool = True
    inputs: dict = field(default_factory=dict)   # sparse; missing keys use device defaults
    fidelity: str = "medium"
    time_scale: float = 1.0

    def __post_init__(self):
        particle_density(self.fidelity)
        object.__setattr__(self, "time_scale", _check_time_scale(self.time_scale))
        object.__setattr__(self, "inputs", dict(self.inputs or {}))

    @property
    def particle_density(self):
        return FIDELITY_DENSITY[self.fidelity]

    def with_changes(self, **changes):
        return replace(self, **changes)


# ---------------------- Configuration Class ----------------------
@dataclass
class SimConfig:
    # === 用户输入参数 ===
    device_id: str = "klystron2"
    running: bool = True
    inputs: dict = field(default_factory=dict)
    fidelity: str = "medium"      # low / medium / high
    time_scale: float = 1.0       # simulated frames advanced per tick

    width: int = 960              # [px] drawing surface
    height: int = 540             # [px]
    dpi: int = 100

    max_particles: int = GLOBAL_MAX
    seed: int = 12345
    outdir: str = "output"
    frames: int = 600             # headless run length
    diag_interval: int = 10
    snap_interval: int = 100
    fps: int = 30

    # === 自动计算量 ===
    def compute_scales(self, verbose=True):
        """Validate the configuration and derive the particle density scalar."""
        self.particle_density = particle_density(self.fidelity)
        self.time_scale = _check_time_scale(self.time_scale)
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"surface size must be positive, got {self.width}x{self.height}")
        if not 0 < int(self.max_particles) <= GLOBAL_MAX:
            raise ValueError(f"max_particles must be in (0, {GLOBAL_MAX}], got {self.max_particles}")
        self.max_particles = int(self.max_particles)

        if verbose:
            print("=== Simulation Configuration ===")
            print(f"[config] device={self.device_id}  fidelity={self.fidelity} "
                  f"(density={self.particle_density:g})  time_scale={self.time_scale:g}")
            print(f"[config] surface={self.width}x{self.height}px @ {self.dpi} dpi  "
                  f"cap={self.max_particles}  seed={self.seed}")
            if self.inputs:
                print(f"[config] inputs={self.inputs}")

    def to_inputs(self):
        return SimulationInputs(
            device_id=self.device_id,
            running=self.running,
            inputs=dict(self.inputs),
            fidelity=self.fidelity,
            time_scale=self.time_scale,
        )

    def asdict(self):
        """转换为普通 dict，便于写入 params.txt"""
        return asdict(self)
