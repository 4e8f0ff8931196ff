# diagnostics/config_paths.py
"""
Path configuration shared by the plotting scripts.
The output folder can be redirected with MWSIM_OUT (same value as main.py --outdir).
"""
import os

from diagnostics.diag_utils import ensure_dir

THIS_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_ROOT = os.path.abspath(os.path.join(THIS_DIR, ".."))

# --- Recorded run ---
OUT = os.path.abspath(os.path.join(PROJECT_ROOT, os.environ.get("MWSIM_OUT", "output")))
if not os.path.isdir(OUT):
    raise FileNotFoundError(f"Output folder not found: {OUT} (run main.py first)")

# --- Figures ---
FIGS = ensure_dir(os.path.join(OUT, "figs"))

print(f"[config_paths] Output directory: {OUT}")
print(f"[config_paths] Figures directory: {FIGS}")
