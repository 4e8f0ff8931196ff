"""
Read-out registry: device id -> pure function of the resolved inputs.

Each function returns an ordered {label: Readout} map. `value` is numeric
wherever the quantity is, so diagnostics can log it; `text` is the formatted
string a panel would show.
"""
import math
from dataclasses import dataclass

from . import physics
from .descriptors import resolve_inputs


@dataclass(frozen=True)
class Readout:
    value: object
    unit: str
    text: str = ""

    def __str__(self):
        return f"{self.text or self.value} {self.unit}".strip()


def _r(value, unit, fmt):
    if isinstance(value, (int, float)) and not math.isfinite(value):
        return Readout(value, unit, "∞" if value > 0 else "-∞" if value < 0 else "NaN")
    return Readout(value, unit, format(value, fmt))


def _klystron2(p):
    k = physics.klystron_beam(p["Vo"], p["Io"], p["Vi"], p["f"], p["L"], p["d"])
    return {
        "Beam Velocity (v₀)": _r(k.v0, "m/s", ".2e"),
        "Gap Transit Angle (θg)": _r(k.theta_g, "rad", ".2f"),
        "Coupling Coeff (β)": _r(k.beta, "", ".3f"),
        "DC Transit Angle (θ₀)": _r(k.theta_0, "rad", ".1f"),
        "Bunching Param (X)": _r(k.X, "", ".3f"),
        "RF Current (I₂)": _r(k.I2 * 1e3, "mA", ".2f"),
        "Beam Loading (G_B)": _r(k.G_B, "S", ".2e"),
        "Optimum Drift (L_opt)": _r(k.L_opt * 100.0, "cm", ".2f"),
    }


def _klystron_multi(p):
    total = physics.cascade_gain_db(p["N"], p["G"])
    power_gain = 10.0 ** (total / 10.0)
    pin = p["Vi"] ** 2 / 50.0           # across a 50 Ω line
    pout = pin * power_gain
    pdc = (p["Vo"] * 1e3) * (p["Io"] * 1e-3)
    eta = min(0.6, pout / pdc) if pdc > 0 else 0.0
    return {
        "Total Gain": _r(total, "dB", ".1f"),
        "Power Gain": _r(power_gain, "x", ".2e"),
        "Est. Efficiency": _r(eta * 100.0, "%", ".1f"),
    }


def _reflex(p):
    m = physics.reflex_mode(p["Vo"], p["Vr"], p["L"], p["f"])
    L = p["L"] * 1e-3
    v0 = math.sqrt(2.0 * physics.E_CHARGE * max(p["Vo"], 0.0) / physics.M_ELECTRON)
    return {
        "Mode Number": Readout(m.mode, "", str(m.mode)),
        "Transit Time": _r(physics.ratio(2.0 * L, v0) * 1e9, "ns", ".3f"),
        "Round-Trip Time": _r(m.transit_time * 1e9, "ns", ".3f"),
        "Oscillation Strength": _r(m.strength, "", ".2f"),
        "Repeller Field": _r(physics.uniform_field(p["Vr"], L), "V/m", ".0f"),
    }


def _twt(p):
    G = physics.pierce_gain_db(p["C"], p["N"], launch_loss=False)
    v0 = math.sqrt(2.0 * physics.E_OVER_M * p["Vo"] * 1e3)
    return {
        "Small-Signal Gain": _r(G, "dB", ".1f"),
        "Net Gain (launch loss)": _r(physics.pierce_gain_db(p["C"], p["N"]), "dB", ".1f"),
        "Pierce Parameter": _r(p["C"], "", ".3f"),
        "Beam Velocity": _r(v0 * 1e-6, "10⁶ m/s", ".2f"),
        "Output Power": _r(p["Vi"] * 10.0 ** (G / 20.0), "W", ".2f"),
    }


def _obwo(p):
    return {
        "Beam Velocity": _r(physics.beam_velocity(p["Vo"] * 1e3) * 1e-6, "10⁶ m/s", ".2f"),
        "Approx Output Power": _r(p["Vo"] * p["Io"] * 0.15, "W", ".1f"),
    }


def _magnetron(p):
    B = p["Bo"] * 1e-3
    ra = p["ra"] * 1e-3
    rb = p["rb"] * 1e-3
    V0 = p["Vo"] * 1e3
    Vc = physics.hull_cutoff_voltage(B, ra, rb)
    Va = physics.hartree_voltage(Vc, ra, rb, p["N"])
    gap = rb - ra
    v_drift = physics.exb_drift_velocity(V0 / gap, B) if gap > 0 else 0.0
    f = physics.magnetron_frequency(V0, B, rb, p["tune"])
    return {
        "Hull Cutoff": _r(Vc / 1e3, "kV", ".2f"),
        "Hartree Voltage": _r(Va / 1e3, "kV", ".2f"),
        "Drift Velocity": _r(v_drift, "m/s", ".0f"),
        "Frequency": _r(f * 1e-9, "GHz", ".2f"),
        "Cut-off State": Readout(V0 < Vc, "", "magnetically insulated" if V0 < Vc else "beyond cut-off"),
    }


def _carcinotron(p):
    E = physics.uniform_field(p["Vo"] * 1e3, p["d"] * 1e-3)
    v = physics.exb_drift_velocity(E, p["Bo"] * 1e-3)
    return {
        "Electric Field (E)": _r(E / 1e6, "MV/m", ".2f"),
        "Drift Velocity (ve)": _r(v, "m/s", ".2e"),
        "Approx Frequency": _r(v / 1e7 * 2.5, "GHz", ".2f"),
    }


def _gunn(p):
    E = physics.gunn_field(p["V"], p["L"])
    L_cm = p["L"] * 1e-4
    return {
        "Electric Field": _r(E / 1e3, "kV/cm", ".2f"),
        "Threshold Field": _r(p["Vth"], "kV/cm", "g"),
        "Frequency": _r(physics.ratio(p["vd"], L_cm) / 1e9, "GHz", ".3f"),
        "Mode Criterion (n₀L)": _r(p["Nd"] * L_cm, "cm⁻²", ".2e"),
    }


def _tunnel(p):
    I = physics.tunnel_current(p["Vbias"], p["Vp"], p["Vv"], p["Ip"], p["Iv"])
    return {
        "Tunnel Current": _r(I, "mA", ".3f"),
        "Peak-Valley Ratio": _r(physics.ratio(p["Ip"], p["Iv"]), "", ".2f"),
        "Negative Resistance": Readout(p["Vp"] <= p["Vbias"] < p["Vv"], "",
                                       "yes" if p["Vp"] <= p["Vbias"] < p["Vv"] else "no"),
        "Operating Point": _r(p["Vbias"], "mV", "g"),
    }


def _impatt(p):
    tau = physics.avalanche_transit_time(p["W"], p["vs"])
    return {
        "Avalanche Field": _r(physics.uniform_field(p["Vd"], p["W"] * 1e-4), "V/cm", ".0f"),
        "Transit Time": _r(tau * 1e12, "ps", ".2f"),
        "Approx Frequency": _r(physics.ratio(1.0, 2.0 * tau) / 1e9, "GHz", ".1f"),
    }


def _trapatt(p):
    return {
        "Peak Power": _r(p["V"] * p["I"], "W", ".0f"),
        "Efficiency": Readout("15-60", "%", "15-60"),
    }


EQUATIONS = {
    "klystron2": _klystron2,
    "klystronMulti": _klystron_multi,
    "reflex": _reflex,
    "twt": _twt,
    "obwo": _obwo,
    "magnetron": _magnetron,
    "carcinotron": _carcinotron,
    "gunn": _gunn,
    "tunnel": _tunnel,
    "impatt": _impatt,
    "trapatt": _trapatt,
}


def equations(device_id, inputs=None):
    fn = EQUATIONS.get(device_id)
    if fn is None:
        return {}
    return fn(resolve_inputs(device_id, inputs))


def numeric_readouts(device_id, inputs=None):
    """Only the float/int read-outs, for logging."""
    out = {}
    for label, r in equations(device_id, inputs).items():
        if isinstance(r.value, bool):
            continue
        if isinstance(r.value, (int, float)):
            out[label] = float(r.value)
    return out
