"""
Closed-form device physics (SI units unless a name says otherwise).

Everything here is a plain scalar function of the operating point. Device models
and the read-out registry both call into this module, so a quantity such as the
bunching parameter has exactly one definition.
"""
import math
from dataclasses import dataclass

E_CHARGE = 1.6e-19        # C
M_ELECTRON = 9.11e-31     # kg
E_OVER_M = 1.759e11       # C/kg
V0_COEFF = 5.93e5         # v0 = 5.93e5 * sqrt(V0)  [m/s]

ANGLE_EPS = 1e-4          # |θ/2| below this → sinc limit


# ------------------------------------------------------------------
# Beam / gap basics
# ------------------------------------------------------------------
def beam_velocity(V0):
    # Physical form: v0 = sqrt(2 e V0 / m) ≈ 0.593e6 sqrt(V0)
    return V0_COEFF * math.sqrt(max(V0, 0.0))


def transit_angle(f, distance, velocity):
    """θ = ω·d / v, with ω = 2πf."""
    if velocity <= 0.0:
        return math.inf
    return 2.0 * math.pi * f * distance / velocity


def coupling_coefficient(theta_g):
    """β = sin(θg/2)/(θg/2); tends to 1 as the gap angle vanishes."""
    half = 0.5 * theta_g
    if abs(half) <= ANGLE_EPS:
        return 1.0
    if not math.isfinite(half):
        return 0.0
    return math.sin(half) / half


def bunching_parameter(beta, Vi, V0, theta_0):
    # X = β Vi / (2 V0) · θ0
    if V0 <= 0.0:
        return 0.0
    return beta * Vi / (2.0 * V0) * theta_0


def bessel_j1(x):
    """Truncated series J1(x) ≈ x/2 − x³/16 + x⁵/384 (good for x < 3)."""
    if x < 0:
        return -bessel_j1(-x)
    return x / 2.0 - x ** 3 / 16.0 + x ** 5 / 384.0


def beam_loading_conductance(I0, V0, beta, theta_g):
    # G_B = (G0/2)(β² − β cos(θg/2)),  G0 = I0/V0
    G0 = I0 / V0 if V0 > 0 else 0.0
    if not math.isfinite(theta_g):
        return 0.5 * G0 * beta ** 2
    return 0.5 * G0 * (beta ** 2 - beta * math.cos(0.5 * theta_g))


def optimum_drift_length(V0, v0, omega, beta, Vi):
    """Drift length giving X = 1.841 (maximum of J1)."""
    denom = omega * beta * Vi
    if denom == 0.0:
        return math.inf
    return 3.682 * V0 * v0 / denom


@dataclass(frozen=True)
class KlystronBeam:
    V0: float            # V
    I0: float            # A
    Vi: float            # V
    v0: float            # m/s
    omega: float         # rad/s
    theta_g: float       # rad
    beta: float
    theta_0: float       # rad
    X: float
    J1: float
    I2: float            # A
    mod_depth: float     # β Vi / 2V0
    G_B: float           # S
    L_opt: float         # m


def klystron_beam(Vo_kV, Io_mA, Vi, f_GHz, L_cm, d_mm):
    """Two-cavity klystron operating point from the panel units."""
    V0 = Vo_kV * 1e3
    I0 = Io_mA * 1e-3
    v0 = beam_velocity(V0)
    f = f_GHz * 1e9
    omega = 2.0 * math.pi * f
    theta_g = transit_angle(f, d_mm * 1e-3, v0)
    beta = coupling_coefficient(theta_g)
    theta_0 = transit_angle(f, L_cm * 1e-2, v0)
    X = bunching_parameter(beta, Vi, V0, theta_0)
    J1 = bessel_j1(X)
    return KlystronBeam(
        V0=V0, I0=I0, Vi=Vi, v0=v0, omega=omega,
        theta_g=theta_g, beta=beta, theta_0=theta_0,
        X=X, J1=J1, I2=2.0 * I0 * J1,
        mod_depth=beta * Vi / (2.0 * V0) if V0 > 0 else 0.0,
        G_B=beam_loading_conductance(I0, V0, beta, theta_g),
        L_opt=optimum_drift_length(V0, v0, omega, beta, Vi),
    )


def stage_voltage(Vi, gain_db, idx, V0, saturation=1.2):
    """RF gap voltage at cavity idx of a cascade, saturating at 1.2·V0."""
    g = 10.0 ** (gain_db / 20.0)
    return min(Vi * g ** idx, saturation * V0)


def cascade_gain_db(n_cavities, gain_db_stage):
    """Total gain over the N-1 drift stages of an N-cavity cascade."""
    return max(int(n_cavities) - 1, 0) * gain_db_stage


# ------------------------------------------------------------------
# Reflex klystron
# ------------------------------------------------------------------
def reflex_round_trip_time(V0, Vr, L):
    # T' = 4 L v0 / ((e/m)(V0 + Vr)),  v0 = sqrt(2 e V0 / m)
    v0 = math.sqrt(2.0 * E_CHARGE * max(V0, 0.0) / M_ELECTRON)
    accel = (E_CHARGE / M_ELECTRON) * (V0 + Vr)
    if accel <= 0.0:
        return math.inf
    return 4.0 * L * v0 / accel


@dataclass(frozen=True)
class ReflexMode:
    transit_time: float   # s
    n_cycles: float       # T'·f
    mode: int             # n in (n + 3/4)
    detuning: float       # cycles away from n + 3/4
    strength: float       # 0..1


def reflex_mode(Vo, Vr, L_mm, f_GHz, width=0.15, floor=0.05):
    """How close the round trip sits to an (n + 3/4) cycle resonance."""
    T = reflex_round_trip_time(Vo, Vr, L_mm * 1e-3)
    if not math.isfinite(T):
        return ReflexMode(T, math.inf, 0, 0.5, 0.0)
    N = T * f_GHz * 1e9
    n = math.floor(N - 0.75 + 0.5)
    detuning = abs(N - (n + 0.75))
    strength = math.exp(-(detuning / width) ** 2)
    if strength < floor:
        strength = 0.0
    return ReflexMode(T, N, int(n), detuning, strength)


def reflex_stop_distance_ratio(v_launch, decel, drift_length):
    """s = v²/2a relative to the cavity–repeller distance."""
    if decel <= 0.0 or drift_length <= 0.0:
        return math.inf
    return v_launch * v_launch / (2.0 * decel * drift_length)


# ------------------------------------------------------------------
# Crossed-field devices
# ------------------------------------------------------------------
def uniform_field(V, gap):
    """E = V/gap across a planar gap; a closed gap gives an unbounded field."""
    if gap <= 0.0:
        return math.copysign(math.inf, V) if V else 0.0
    return V / gap


def exb_drift_velocity(E, B):
    """v = E/B; zero field gives no drift."""
    if B == 0.0:
        return 0.0
    return E / B


def hull_cutoff_voltage(B, ra, rb):
    # V_H = (e/8m) B² rb² (1 − ra²/rb²)² = (e/8m) B² (rb² − ra²)² / rb²
    if rb <= 0.0:
        return math.inf if B != 0.0 and ra != 0.0 else 0.0
    return (E_OVER_M / 8.0) * B * B * (rb * rb - ra * ra) ** 2 / (rb * rb)


def hartree_voltage(V_hull, ra, rb, N):
    # N → 0 or rb → 0: (ra/rb)^(2/N) vanishes
    if N <= 0 or rb <= 0.0:
        return V_hull
    return V_hull * (1.0 - (ra / rb) ** (2.0 / N))


def magnetron_frequency(V0, B, rb, tune_pct=0.0):
    if B == 0.0 or rb == 0.0:
        return 0.0
    return V0 / (B * math.pi * rb * rb) * (1.0 + tune_pct / 100.0)


# ------------------------------------------------------------------
# Slow-wave / solid-state
# ------------------------------------------------------------------
def pierce_gain_db(C, N, launch_loss=True):
    """G ≈ −9.54 + 47.3·C·N dB (without the launch loss when asked)."""
    return (-9.54 if launch_loss else 0.0) + 47.3 * C * N


def gunn_field(V, L_um):
    """Average field in V/cm across an active length in µm."""
    return uniform_field(V, L_um * 1e-4)


def tunnel_current(V, Vp, Vv, Ip, Iv):
    """Piecewise tunnel-diode characteristic (mA for mV inputs)."""
    if V < Vp:
        return Ip / Vp * V if Vp > 0 else 0.0
    if V < Vv:
        # Vv > V >= Vp here, so the valley sits strictly above the peak
        return Ip - (Ip - Iv) / (Vv - Vp) * (V - Vp)
    return Iv + (V - Vv) * 0.1


def avalanche_transit_time(W_um, vs_cm):
    """Carrier transit time (s) across a drift width at saturation velocity."""
    if vs_cm <= 0.0:
        return math.inf
    return (W_um * 1e-4) / vs_cm


def ratio(num, den):
    """num/den, with the limiting value when den is zero."""
    if den == 0:
        return math.copysign(math.inf, num) if num else 0.0
    return num / den
