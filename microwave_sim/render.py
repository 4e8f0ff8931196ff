"""
Drawing surface and stateless drawing primitives.

A Surface is one matplotlib Figure with a single full-bleed Axes in pixel
coordinates (origin top-left, y down), so the primitives can use the same
numbers a 2D canvas would. Primitives know nothing about physics; anything
with a non-finite coordinate is skipped instead of reaching matplotlib.
"""
import math

import numpy as np
from matplotlib.figure import Figure
from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.colors import LinearSegmentedColormap, to_rgba, to_rgba_array
from matplotlib.lines import Line2D
from matplotlib.patches import Circle, Polygon, Rectangle, Wedge

from . import visual
from .backend import to_np


class Surface:
    def __init__(self, width=960, height=540, dpi=100, interactive=False):
        self.dpi = int(dpi)
        if interactive:
            import matplotlib.pyplot as plt
            self.fig = plt.figure(figsize=(width / self.dpi, height / self.dpi), dpi=self.dpi)
        else:
            self.fig = Figure(figsize=(width / self.dpi, height / self.dpi), dpi=self.dpi)
            FigureCanvasAgg(self.fig)
        self.ax = self.fig.add_axes([0.0, 0.0, 1.0, 1.0])
        self.interactive = bool(interactive)
        self.width = int(width)
        self.height = int(height)
        self.frames_presented = 0
        self.clear(visual.BACKGROUND)

    # ---------------- frame lifecycle ----------------
    def fit_to_container(self):
        """Adopt the figure's current pixel size (the window may have been resized)."""
        w, h = self.fig.get_size_inches() * self.fig.dpi
        self.width = max(1, int(round(w)))
        self.height = max(1, int(round(h)))
        return self.width, self.height

    def set_size(self, width, height):
        self.fig.set_size_inches(width / self.fig.dpi, height / self.fig.dpi)
        self.fit_to_container()

    def clear(self, color=visual.BACKGROUND):
        ax = self.ax
        ax.cla()
        ax.set_xlim(0, self.width)
        ax.set_ylim(self.height, 0)
        ax.set_autoscale_on(False)
        ax.axis("off")
        self.fig.set_facecolor(color)
        ax.set_facecolor(color)

    def present(self):
        self.frames_presented += 1
        if self.interactive:
            self.fig.canvas.draw_idle()

    def px_to_pt(self, px):
        """Canvas pixels to matplotlib points."""
        return px * 72.0 / self.dpi

    def to_array(self):
        """RGBA (H, W, 4) uint8 copy of the rendered frame."""
        canvas = self.fig.canvas
        canvas.draw()
        return np.asarray(canvas.buffer_rgba()).copy()

    def savefig(self, path):
        self.fig.savefig(path, dpi=self.dpi, facecolor=self.fig.get_facecolor())


def _finite(*values):
    return all(math.isfinite(v) for v in values)


# ============================================================
# Primitives
# ============================================================
_GRADIENT = np.linspace(0.0, 1.0, 64).reshape(-1, 1)
_CMAPS = {}


def _metal_cmap(kind):
    if kind not in visual.METAL_STOPS:
        kind = "steel"
    cmap = _CMAPS.get(kind)
    if cmap is None:
        cmap = LinearSegmentedColormap.from_list(f"metal_{kind}", visual.METAL_STOPS[kind])
        _CMAPS[kind] = cmap
    return cmap


def draw_metal(s, x, y, w, h, kind="steel"):
    """Vertical three-stop gradient block with a faint outline."""
    if not _finite(x, y, w, h) or w <= 0 or h <= 0:
        return
    s.ax.imshow(_GRADIENT, cmap=_metal_cmap(kind), extent=(x, x + w, y + h, y),
                origin="upper", aspect="auto", interpolation="bilinear", zorder=1)
    s.ax.add_patch(Rectangle((x, y), w, h, fill=False, edgecolor=visual.OUTLINE,
                             linewidth=1, zorder=1.1))


def draw_glow_band(s, x, y, w, h, color="#ffffff", peak=0.8):
    """Horizontal transparent -> peak -> transparent band (travelling field domain)."""
    if not _finite(x, y, w, h) or w <= 0 or h <= 0:
        return
    r, g, b, _ = to_rgba(color)
    cmap = LinearSegmentedColormap.from_list(
        "band", [(r, g, b, 0.0), (r, g, b, peak), (r, g, b, 0.0)])
    s.ax.imshow(_GRADIENT.T, cmap=cmap, extent=(x, x + w, y + h, y),
                origin="upper", aspect="auto", interpolation="bilinear", zorder=2)


def draw_rect(s, x, y, w, h, color, alpha=None, zorder=1):
    if not _finite(x, y, w, h) or w <= 0 or h <= 0:
        return
    s.ax.add_patch(Rectangle((x, y), w, h, facecolor=color, edgecolor="none",
                             alpha=alpha, zorder=zorder))


def draw_label(s, text, x, y, color="#ffffff", align="center", size=10,
               weight="normal", family="monospace"):
    if not _finite(x, y):
        return
    s.ax.text(x, y, text, color=color, ha=align, va="baseline",
              fontsize=s.px_to_pt(size), fontweight=weight, fontfamily=family, zorder=5)


def draw_cavity(s, x, cy, w, h, label=None, color=None, glow=0.0):
    """Two copper blocks around the beam with a dashed gap marker between them."""
    if not _finite(x, cy):
        return
    if glow > 0.0 and color is not None:
        draw_halo(s, x, cy, 0.5 * w + 15.0 * glow, color, alpha=0.35 * min(glow, 1.0))
    draw_metal(s, x - w / 2, cy - h - 20, w, h, "copper")
    draw_metal(s, x - w / 2, cy + 20, w, h, "copper")
    s.ax.add_line(Line2D([x, x], [cy - 20, cy + 20], color=color or visual.GAP_LINE,
                         linewidth=2, linestyle=(0, (4, 4)), zorder=2))
    if label:
        draw_label(s, label, x, cy - h - 30, visual.LABEL_DIM, weight="bold")


def draw_layer(s, x, y, w, h, color, label=None, sublabel=None):
    """Semiconductor layer: filled block, outline, title and optional caption."""
    if not _finite(x, y, w, h):
        return
    s.ax.add_patch(Rectangle((x, y), w, h, facecolor=color, edgecolor=visual.LAYER_OUTLINE,
                             linewidth=1, zorder=1))
    if label:
        draw_label(s, label, x + w / 2, y + 15, (1, 1, 1, 0.9), size=11,
                   weight="bold", family="sans-serif")
    if sublabel:
        draw_label(s, sublabel, x + w / 2, y + h - 10, (1, 1, 1, 0.6))


def draw_trapezoid(s, x, y, w_top, w_bottom, h, color):
    """Mesa: narrow top edge at y, wide bottom edge at y + h."""
    if not _finite(x, y, w_top, w_bottom, h):
        return
    inset = (w_bottom - w_top) / 2
    pts = [(x + inset, y), (x + inset + w_top, y), (x + w_bottom, y + h), (x, y + h)]
    s.ax.add_patch(Polygon(pts, closed=True, facecolor=color,
                           edgecolor=visual.MESA_OUTLINE, zorder=1))


def draw_polygon(s, pts, color, edgecolor="none", linewidth=0, zorder=1):
    pts = [(px, py) for px, py in pts if _finite(px, py)]
    if len(pts) < 3:
        return
    s.ax.add_patch(Polygon(pts, closed=True, facecolor=color, edgecolor=edgecolor,
                           linewidth=linewidth, zorder=zorder))


def draw_disc(s, x, y, r, color, edgecolor="none", linewidth=0, alpha=None, zorder=1):
    if not _finite(x, y, r) or r <= 0:
        return
    s.ax.add_patch(Circle((x, y), r, facecolor=color, edgecolor=edgecolor,
                          linewidth=linewidth, alpha=alpha, zorder=zorder))


def draw_wedge(s, x, y, r, theta1, theta2, color, zorder=1):
    """Filled sector, angles in degrees measured on screen (0 = +x)."""
    if not _finite(x, y, r) or r <= 0:
        return
    s.ax.add_patch(Wedge((x, y), r, theta1, theta2, facecolor=color,
                         edgecolor="none", zorder=zorder))


def draw_halo(s, x, y, r, color, alpha=0.3):
    draw_disc(s, x, y, r, color, alpha=alpha, zorder=0.5)


def draw_polyline(s, xs, ys, color, linewidth=1, dashed=False, zorder=2):
    """Open polyline; NaN vertices break the line into separate runs."""
    xs = np.asarray(xs, dtype=float)
    ys = np.asarray(ys, dtype=float)
    if xs.size < 2:
        return
    s.ax.add_line(Line2D(xs, ys, color=color, linewidth=linewidth,
                         linestyle=(0, (4, 4)) if dashed else "-", zorder=zorder))


def state_colors(state, palette, default=visual.ELECTRON):
    """Per-particle RGBA rows from an int state column and a {state: colour} map."""
    state = np.asarray(to_np(state), dtype=np.int64)
    table = np.tile(np.array(to_rgba(default)), (max(palette, default=0) + 1, 1))
    for tag, color in palette.items():
        table[tag] = to_rgba(color)
    out = np.tile(np.array(to_rgba(default)), (state.size, 1))
    known = (state >= 0) & (state < table.shape[0])
    out[known] = table[state[known]]
    return out


def draw_particles(s, x, y, colors=visual.ELECTRON, radius=3.0, glow=True, alpha=None):
    """
    Glowing particles: a soft underlay plus the solid core.

    colors: one colour or an (N, 4) RGBA array; radius: scalar or per-particle
    (canvas pixels); alpha: optional per-particle opacity.
    """
    x = np.asarray(to_np(x), dtype=float)
    y = np.asarray(to_np(y), dtype=float)
    if x.size == 0:
        return
    ok = np.isfinite(x) & np.isfinite(y)
    if not ok.any():
        return

    rgba = to_rgba_array(colors) if isinstance(colors, str) else np.asarray(colors, dtype=float)
    if rgba.shape[0] == 1:
        rgba = np.repeat(rgba, x.size, axis=0)
    rgba = rgba.copy()
    if alpha is not None:
        rgba[:, 3] = np.clip(np.asarray(to_np(alpha), dtype=float), 0.0, 1.0) * rgba[:, 3]

    size = np.broadcast_to(np.asarray(to_np(radius), dtype=float), x.shape)
    area = (2.0 * size * 72.0 / s.dpi) ** 2

    x, y, rgba, area = x[ok], y[ok], rgba[ok], area[ok]
    if glow:
        halo = rgba.copy()
        halo[:, 3] *= 0.25
        s.ax.scatter(x, y, s=area * 4.0, c=halo, linewidths=0, zorder=3)
    s.ax.scatter(x, y, s=area, c=rgba, linewidths=0, zorder=4)
