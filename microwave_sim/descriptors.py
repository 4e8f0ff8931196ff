"""
Device descriptor table: parameter schemas, names and theory strings.

Plain records only. Read-out formulas live in equations.py and the animation
behaviour in the per-device model modules, so this table can be serialised and
checked on its own.
"""
import math
from dataclasses import dataclass, asdict


@dataclass(frozen=True)
class ParamSpec:
    id: str
    label: str
    unit: str
    min: float
    max: float
    default: float
    step: float

    def asdict(self):
        d = asdict(self)
        d["def"] = d.pop("default")
        return d


@dataclass(frozen=True)
class DeviceDescriptor:
    id: str
    name: str
    family: str
    desc: str
    params: tuple
    theory_plain: str = ""
    theory_latex: str = ""

    def param(self, param_id):
        for p in self.params:
            if p.id == param_id:
                return p
        return None

    def defaults(self):
        return {p.id: p.default for p in self.params}

    def asdict(self):
        return {
            "id": self.id,
            "name": self.name,
            "family": self.family,
            "desc": self.desc,
            "params": [p.asdict() for p in self.params],
            "theory": {"plain": self.theory_plain, "latex": self.theory_latex},
        }


P = ParamSpec

DEVICES = (
    # ================= O-TYPE (linear beam) =================
    DeviceDescriptor(
        id="klystron2", name="Two-Cavity Klystron", family="O-TYPE",
        desc="Fundamental velocity modulation device. Separates beam acceleration from interaction.",
        params=(
            P("Vo", "Beam Voltage (V₀)", "kV", 0.5, 200, 10, 0.5),
            P("Io", "Beam Current (I₀)", "mA", 1, 5000, 200, 10),
            P("Vi", "RF Input (V₁)", "V", 0, 10000, 800, 50),
            P("f", "Frequency", "GHz", 0.1, 100, 3, 0.1),
            P("L", "Drift Length", "cm", 0.1, 50, 5, 0.1),
            P("d", "Gap Spacing", "mm", 0.1, 20, 3, 0.1),
        ),
        theory_plain="Bunching Parameter: X = βVᵢ/(2V₀)θ₀, Coupling: β = sin(θg/2)/(θg/2), Gain ∝ J₁(X)",
        theory_latex=r"X = \frac{\beta V_1}{2V_0}\theta_0, \quad \beta = \frac{\sin(\theta_g/2)}{\theta_g/2}, \quad I_2 = 2I_0 J_1(X)",
    ),
    DeviceDescriptor(
        id="klystronMulti", name="Multi-Cavity Klystron", family="O-TYPE",
        desc="Cascaded bunching for high gain amplification. Used in radar and broadcast.",
        params=(
            P("Vo", "Beam Voltage", "kV", 1, 800, 15, 0.5),
            P("Io", "Beam Current", "mA", 10, 5000, 500, 50),
            P("Vi", "Input RF", "V", 0, 5000, 500, 50),
            P("f", "Frequency", "GHz", 0.1, 50, 3, 0.1),
            P("N", "Number of Cavities", "", 2, 12, 4, 1),
            P("L", "Stage Spacing", "cm", 1, 20, 5, 0.5),
            P("d", "Gap Spacing", "mm", 0.1, 20, 3, 0.1),
            P("G", "Gain/Stage", "dB", 1, 30, 8, 0.5),
        ),
        theory_plain="Total Gain: G_total = (N−1) × G_stage, Power Out: P_out = P_in × 10^(G/10), Efficiency: η = P_out/(V₀I₀)",
        theory_latex=r"G_{total} = (N-1) G_{stage}, \quad P_{out} = P_{in} \times 10^{G/10}, \quad \eta = \frac{P_{out}}{V_0 I_0}",
    ),
    DeviceDescriptor(
        id="reflex", name="Reflex Klystron", family="O-TYPE",
        desc="Single-cavity oscillator using a repeller electrode to fold the drift space.",
        params=(
            P("Vo", "Beam Voltage", "V", 200, 1000, 600, 10),
            P("Vr", "Repeller Voltage", "V", 0, 800, 350, 10),
            P("L", "Repeller Spacing", "mm", 1, 10, 3, 0.1),
            P("f", "Frequency", "GHz", 1, 40, 9, 0.1),
            P("Io", "Beam Current", "mA", 5, 120, 20, 5),
        ),
        theory_plain="Transit Time: T = (n + 3/4)/f, Mode Number: n = 1,2,3..., Repeller Voltage: Vᵣ = V₀(1 - 2L²f²m/eV₀)",
        theory_latex=r"T = \frac{n + 3/4}{f}, \quad V_r = V_0\left(1 - \frac{2L^2 f^2 m}{eV_0}\right)",
    ),
    DeviceDescriptor(
        id="twt", name="Traveling Wave Tube", family="O-TYPE",
        desc="Broadband amplifier using slow-wave structures for continuous interaction.",
        params=(
            P("Vo", "Beam Voltage", "kV", 1, 10, 3, 0.1),
            P("Io", "Beam Current", "mA", 10, 500, 100, 10),
            P("atten", "Attenuator (0=OFF, 1=ON)", "", 0, 1, 1, 1),
            P("Vi", "Input Signal", "V", 0, 100, 20, 1),
            P("N", "Helix Length", "λ", 10, 100, 40, 1),
            P("C", "Pierce Parameter", "", 0.01, 0.5, 0.1, 0.01),
        ),
        theory_plain="Gain: G = (47.3 × C × N)dB, Pierce Param: C = (I₀Z₀/4V₀)^(1/3), Phase Velocity: vₚ = c/n_helix",
        theory_latex=r"G = 47.3CN \text{ dB}, \quad C = \left(\frac{I_0 Z_0}{4V_0}\right)^{1/3}, \quad v_p = \frac{c}{n}",
    ),
    DeviceDescriptor(
        id="obwo", name="O-Type BWO", family="O-TYPE",
        desc="O-Type Backward Wave Oscillator. Kinetic energy conversion with continuous bunching along the tube axis.",
        params=(
            P("Vo", "Beam Voltage", "kV", 1, 20, 5, 0.1),
            P("Io", "Beam Current", "mA", 10, 500, 100, 10),
            P("f", "Frequency", "GHz", 1, 100, 10, 0.5),
            P("L", "Structure Length", "cm", 5, 30, 15, 0.5),
        ),
        theory_plain="Beam Velocity: v = √(2eV/m)",
        theory_latex=r"v_e = \sqrt{\frac{2e V_{0}}{m}} \approx v_{phase}",
    ),
    # ================= CROSSED-FIELD (M-TYPE) =================
    DeviceDescriptor(
        id="magnetron", name="Cylindrical Magnetron", family="CROSSED-FIELD (M-TYPE)",
        desc="High-power crossed-field oscillator. Ubiquitous in radar and microwave ovens.",
        params=(
            P("Vo", "Anode Voltage", "kV", 1, 1000, 26, 0.5),
            P("Bo", "Magnetic Field", "mT", 10, 600, 336, 5),
            P("N", "Number of Cavities", "", 6, 16, 8, 2),
            P("ra", "Cathode Radius", "mm", 5, 20, 10, 0.5),
            P("rb", "Anode Radius", "mm", 20, 50, 30, 1),
            P("tune", "Mech. Tuning", "%", 0, 100, 0, 5),
        ),
        theory_plain="Hull Cutoff: Vₕ = (eB²/8m)(rᵦ² - rₐ²), Hartree: Vₐ = Vₕ[1-(rₐ/rᵦ)^(2/N)], Freq: f = v_drift/(πrᵦ)",
        theory_latex=r"V_H = \frac{eB^2}{8m}(r_b^2 - r_a^2), \quad V_a = V_H\left[1-\left(\frac{r_a}{r_b}\right)^{2/N}\right]",
    ),
    DeviceDescriptor(
        id="carcinotron", name="Carcinotron (M-BWO)", family="CROSSED-FIELD (M-TYPE)",
        desc="M-Type Backward Wave Oscillator. Uses crossed E and B fields. Electrons drift perpendicular to both fields.",
        params=(
            P("Vo", "Anode Voltage", "kV", 1, 50, 20, 0.5),
            P("Bo", "Magnetic Field", "mT", 50, 800, 350, 5),
            P("d", "Sole-Anode Gap", "mm", 1, 15, 8, 0.5),
        ),
        theory_plain="Drift Velocity: v_e = E/B",
        theory_latex=r"v_e = \frac{E}{B} = \frac{V_a}{d \cdot B}",
    ),
    # ================= SOLID-STATE =================
    DeviceDescriptor(
        id="gunn", name="Gunn Diode", family="SOLID-STATE",
        desc="Transferred Electron Device (TED). Relies on bulk material properties rather than PN junctions. Uses n-type GaAs or InP.",
        params=(
            P("V", "Bias Voltage", "V", 0, 30, 12, 0.5),
            P("L", "Active Length", "µm", 5, 20, 10, 0.5),
            P("A", "Active Area", "mm²", 0.01, 1, 0.1, 0.01),
            P("T", "Temperature", "°C", 20, 150, 50, 5),
            P("Nd", "Doping Density", "cm⁻³", 1e14, 1e17, 1e16, 1e15),
            P("vd", "Domain Velocity", "cm/s", 5e6, 2e7, 1e7, 5e5),
            P("Vth", "Threshold Field", "kV/cm", 2, 5, 3.2, 0.1),
        ),
        theory_plain="Ridley-Watkins-Hilsum (RWH) Theory. Two-Valley Model (GaAs). Threshold Field ~ 3000 V/cm.",
        theory_latex=r"v_d = \mu E, \quad n_0 L > 10^{12} \text{ cm}^{-2} \text{ (for oscillation)}",
    ),
    DeviceDescriptor(
        id="tunnel", name="Tunnel Diode", family="QUANTUM EFFECT",
        desc="Heavily doped PN junction using quantum mechanical tunneling. Very high speed.",
        params=(
            P("Vbias", "Bias Voltage", "mV", 0, 600, 150, 10),
            P("Ip", "Peak Current", "mA", 1, 100, 10, 1),
            P("Vp", "Peak Voltage", "mV", 50, 150, 100, 5),
            P("Vv", "Valley Voltage", "mV", 200, 600, 350, 20),
            P("Iv", "Valley Current", "mA", 0.1, 5, 1, 0.1),
            P("Cj", "Junction Capacitance", "pF", 0.5, 20, 5, 0.5),
            P("Rs", "Series Resistance", "Ω", 1, 20, 5, 1),
        ),
        theory_plain="Total Current = Diffusion + Tunneling + Excess Current. Negative Resistance Region.",
        theory_latex=r"I_{total} = I_{diff} + I_{tunnel} + I_{excess}, \quad V_p < V < V_v",
    ),
    DeviceDescriptor(
        id="impatt", name="IMPATT Diode", family="AVALANCHE TRANSIT",
        desc="IMPact ionisation Avalanche Transit Time. Read Diode structure (n+-p-i-p+).",
        params=(
            P("Vd", "Breakdown Voltage", "V", 50, 150, 90, 1),
            P("I", "Current", "mA", 10, 500, 200, 10),
            P("W", "Drift Width", "µm", 0.5, 5, 2, 0.1),
            P("eps", "Permittivity", "F/m", 8e-12, 13e-12, 12e-12, 1e-12),
            P("vs", "Saturation Velocity", "cm/s", 5e6, 2e7, 1e7, 5e5),
        ),
        theory_plain="Total Delay = Avalanche Delay (90°) + Transit Time Delay (90°) = 180°. Negative Resistance.",
        theory_latex=r"\theta = \omega \tau = \pi, \quad f \approx \frac{v_d}{2L}, \quad \eta \approx 5-10\%",
    ),
    DeviceDescriptor(
        id="trapatt", name="TRAPATT Diode", family="AVALANCHE TRANSIT",
        desc="Trapped Plasma Avalanche Triggered Transit. High efficiency microwave generator derived from IMPATT.",
        params=(
            P("V", "Pulse Voltage", "V", 50, 200, 100, 5),
            P("I", "Peak Current", "A", 10, 100, 40, 5),
            P("W", "Drift Width", "µm", 2, 10, 5, 0.5),
            P("alpha", "Ionization Rate", "cm⁻¹", 5e3, 2e4, 1e4, 5e2),
            P("rho", "Plasma Density", "cm⁻³", 1e13, 1e17, 1e15, 1e14),
        ),
        theory_plain="Trapped Plasma Mode. High Efficiency (15-60%). High Current Densities.",
        theory_latex=r"\eta \approx 15-60\%, \quad P_{pk} \approx 1.2 \text{ kW}",
    ),
)

_BY_ID = {d.id: d for d in DEVICES}


def device_ids():
    return tuple(_BY_ID)


def get_descriptor(device_id):
    return _BY_ID.get(device_id)


def get_params(device_id):
    d = _BY_ID.get(device_id)
    return list(d.params) if d is not None else []


def resolve_inputs(device_id, inputs=None):
    """
    Full parameter map for a device: every schema key present, falling back to
    the schema default when the caller omits a key or passes a non-number.
    Keys outside the schema are passed through untouched.
    """
    inputs = dict(inputs or {})
    d = _BY_ID.get(device_id)
    if d is None:
        return inputs
    resolved = dict(inputs)
    for p in d.params:
        value = inputs.get(p.id)
        try:
            value = float(value)
        except (TypeError, ValueError):
            value = None
        if value is None or not math.isfinite(value):
            value = float(p.default)
        resolved[p.id] = value
    return resolved
