"""
Visual mapping layer.

Every number in here is a legibility constant, not physics: pixel speed maps,
modulation boosts, on-screen angular frequencies, colour tables. Keeping them
together lets physics.py stay testable in SI units while the look of the
animation is tuned in one place.
"""

BACKGROUND = "#000000"

# ---------------------- colours ----------------------
METAL_STOPS = {
    "steel": ("#1e293b", "#475569", "#1e293b"),
    "copper": ("#5D2E18", "#D6885A", "#5D2E18"),
    "gold": ("#8A6E2F", "#FCD34D", "#8A6E2F"),
    "glass": ((100 / 255, 149 / 255, 237 / 255, 0.1),
              (100 / 255, 149 / 255, 237 / 255, 0.2),
              (100 / 255, 149 / 255, 237 / 255, 0.1)),
}
OUTLINE = (1.0, 1.0, 1.0, 0.1)
LAYER_OUTLINE = (1.0, 1.0, 1.0, 0.15)
MESA_OUTLINE = (1.0, 1.0, 1.0, 0.2)
GAP_LINE = "#60a5fa"
LABEL_DIM = "#94a3b8"

ELECTRON = "#60a5fa"
FAST = "#ef4444"
SLOW = "#e2e8f0"
BUNCH = "#ffffff"
HOLE = "#ef4444"
RETURNING = "#fbbf24"

HUD_WHITE = "#ffffff"
HUD_GOOD = "#4ade80"
HUD_WARN = "#facc15"
HUD_BAD = "#f87171"
HUD_INFO = "#60a5fa"

# ---------------------- two-cavity klystron ----------------------
KLY2_PX_GAIN = 3.0            # v_px = 3·Vo_kV^0.4
KLY2_PX_EXP = 0.4
KLY2_BUNCHER_FRAC = 0.2       # buncher at 0.2·W
KLY2_PX_PER_CM = 50.0
KLY2_MOD_BOOST = 150.0        # depth shown = 150·βVi/2V0
KLY2_OMEGA_PER_GHZ = 0.15
KLY2_CAP_PER_MA = 400.0 / 200.0
KLY2_INJECT_PER_MA = 1.0 / 100.0
KLY2_MIN_SPEED = 0.3
KLY2_MAX_SPEED = 3.0
KLY2_CATCHER_DAMP = 0.8
KLY2_GLOW_GAIN = 1.7

# ---------------------- multi-cavity klystron ----------------------
KLYM_PX_GAIN = 4.0            # v_px = 4·(Vo/10)^0.4
KLYM_START_FRAC = 0.15
KLYM_PX_PER_CM = 50.0
KLYM_MIN_PX_PER_CM = 20.0
KLYM_SENSITIVITY = 800.0      # tanh(800·depth)
KLYM_MAX_KICK = 0.4
KLYM_DEBUNCH = 0.9
KLYM_MIN_SPEED = 0.2
KLYM_MAX_SPEED = 3.0
KLYM_CATCHER_DAMP = 0.95
KLYM_GUARD_MIN = 0.1          # floor after repeated catcher damping
KLYM_DENSITY_MAX = 8.0
KLYM_DENSITY_MA = 50.0
KLYM_CAP_PER_FACTOR = 1000.0

# ---------------------- reflex klystron ----------------------
REFLEX_PX_GAIN = 5.0          # v_px = 5·sqrt(Vo/300)
REFLEX_OMEGA = 0.25
REFLEX_FIELD_DIVISOR = 14000.0
REFLEX_CAVITY_FRAC = 0.2
REFLEX_REPELLER_FRAC = 0.9
REFLEX_GUN_X = 20.0
REFLEX_GAP_HALF = 15.0
REFLEX_DENSITY_MAX = 6.0
REFLEX_DENSITY_MA = 20.0
REFLEX_CAP_PER_FACTOR = 800.0
REFLEX_MAX_SPEED = 2.0

# ---------------------- TWT / O-BWO ----------------------
SLOWWAVE_PX_GAIN = 2.5        # v_px = 2.5·sqrt(Vo_kV)
TWT_K = 0.15
TWT_OMEGA = 0.25
TWT_MARGIN = 80.0
TWT_ATTEN_FRAC = 0.45
TWT_ATTEN_WIDTH = 40.0
TWT_CAP_PER_MA = 45.0
TWT_INJECT_PER_MA = 8.0 / 100.0
TWT_MIN_SPEED = 0.25
TWT_MAX_SPEED = 4.0
OBWO_K = 0.15
OBWO_OMEGA = 0.2
OBWO_MARGIN = 100.0
OBWO_CAP_PER_DENSITY = 3500.0

# ---------------------- crossed field ----------------------
MAG_PX_PER_MM = 3.5
MAG_SECONDS_PER_FRAME = 8e-10  # simulated seconds per animation frame
MAG_OMEGA_MIN = 0.005
MAG_OMEGA_MAX = 0.6
MAG_SPOKE_VOLTAGE = 12.0       # kV
MAG_CAP_PER_DENSITY = 3500.0
CARC_DRIFT_SCALE = 1.8e-7      # px/frame per m/s
CARC_DRIFT_MIN = 2.0
CARC_DRIFT_MAX = 40.0
CARC_BUNCHING = 2.5
CARC_CAP = 7000
CARC_INJECT = 30

# ---------------------- solid state ----------------------
GUNN_BAR_PX = 300.0
GUNN_DRIFT_PX = 3.2            # px/frame at vd = 1e7 cm/s
GUNN_LAUNCH_CHANCE = 0.03
TUNNEL_CAP = 300
TUNNEL_BURST_CHANCE = 0.2
TUNNEL_DECAY = 0.02
IMPATT_LAYERS = (("p+", "Contact", 40, "#7f1d1d"),
                 ("p", "Avalanche", 60, "#b91c1c"),
                 ("n", "Drift Region", 160, "#d97706"),
                 ("n+", "Contact", 60, "#1e3a8a"))
IMPATT_BREAKDOWN_V = 80.0
IMPATT_PULSE_OMEGA = 0.05
IMPATT_PULSE_GATE = 0.8
IMPATT_HOLE_VX = -2.5
IMPATT_ELECTRON_VX = 3.5
TRAPATT_LAYERS = (("p+", "", 50, "#7f1d1d"),
                  ("n (Drift)", "Plasma Zone", 200, "#c2410c"),
                  ("n+", "", 50, "#172554"))
TRAPATT_FILL_VX = 1.0
TRAPATT_EXTRACT_VX = 8.0
TRAPATT_CAP_PER_AMP = 2.5
