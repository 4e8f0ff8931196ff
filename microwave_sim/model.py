import math
from dataclasses import dataclass

from .backend import xp
from .dataclass import GLOBAL_MAX
from . import render, visual


@dataclass
class FrameContext:
    """Read-only view of one tick, handed to the active device model."""
    inputs: dict            # resolved: every schema key present
    frame: float
    time_scale: float
    density: float
    width: int
    height: int
    cap: int = GLOBAL_MAX

    @property
    def cx(self):
        return self.width / 2

    @property
    def cy(self):
        return self.height / 2


def clamp_velocity(vx, base, lo, hi):
    """Replace non-finite entries by the base velocity, then clip to [lo, hi]·base."""
    vx = xp.where(xp.isfinite(vx), vx, base)
    a = lo * base
    b = hi * base
    return xp.clip(vx, xp.minimum(a, b), xp.maximum(a, b))


def ceil_count(value):
    if not math.isfinite(value) or value <= 0:
        return 0
    return int(math.ceil(value))


class DeviceModel:
    """
    One device's physics + drawing.

    Subclasses fill in soft_cap/geometry/launch/advance/draw. advance() runs
    only while the simulation is running; draw() runs on every tick.
    """
    device_id = None

    def soft_cap(self, ctx):
        return GLOBAL_MAX

    def geometry(self, ctx):
        return {}

    def launch(self, n, ctx):
        """Field values for n freshly injected particles."""
        return {}

    def respawn(self, n, ctx):
        """Field values for n particles recycled in place; defaults to launch()."""
        return self.launch(n, ctx)

    def advance(self, pool, ctx):
        raise NotImplementedError

    def draw(self, surface, pool, ctx):
        raise NotImplementedError

    def hud(self, ctx):
        """[(text, colour), ...] status lines drawn top-left."""
        return []

    # ---------------- shared helpers ----------------
    def _inject(self, pool, ctx, count):
        n = min(int(count), int(ctx.cap) - len(pool))
        if n <= 0:
            return 0
        return pool.inject(n, **self.launch(n, ctx))

    def _recycle(self, pool, mask, ctx):
        n = int(xp.count_nonzero(mask))
        if n == 0:
            return 0
        return pool.recycle(mask, **self.respawn(n, ctx))

    def _draw_hud(self, surface, lines):
        y = 30
        for line in lines:
            text, color = line[0], line[1]
            size = line[2] if len(line) > 2 else 14
            render.draw_label(surface, text, 20, y, color, align="left", size=size)
            y += size + 6

    def __repr__(self):
        return f"<{type(self).__name__} {self.device_id}>"


def hud_color(ok):
    return visual.HUD_GOOD if ok else visual.HUD_BAD
