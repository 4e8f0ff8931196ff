import math

from .backend import xp, uniform
from .model import DeviceModel, clamp_velocity, ceil_count, hud_color
from .particles import NEUTRAL, FAST, SLOW, TURNING, RETURNING
from . import physics, render, visual as V


def drift_status(stop_ratio):
    """Where the beam turns round, as a fraction of the cavity–repeller distance."""
    if stop_ratio > 0.95:
        return "TOO LONG (Hit Repeller)"
    if stop_ratio > 0.7:
        return "LONG DRIFT (Low Vr)"
    if stop_ratio < 0.4:
        return "SHORT DRIFT (High Vr)"
    return "NORMAL DRIFT"


class ReflexKlystron(DeviceModel):
    """
    Single resonator, folded drift. Electrons are modulated on the forward
    pass, braked by a uniform repeller field and sent back through the gap.
    """
    device_id = "reflex"

    def mode(self, ctx):
        p = ctx.inputs
        return physics.reflex_mode(p["Vo"], p["Vr"], p["L"], p["f"])

    def geometry(self, ctx):
        p = ctx.inputs
        W = ctx.width
        v_px = V.REFLEX_PX_GAIN * math.sqrt(max(p["Vo"], 0.0) / 300.0)
        field = (p["Vo"] + p["Vr"]) / V.REFLEX_FIELD_DIVISOR
        cavity = V.REFLEX_CAVITY_FRAC * W
        repeller = V.REFLEX_REPELLER_FRAC * W
        return {
            "v_px": v_px,
            "field": field,
            "cavity": cavity,
            "repeller": repeller,
            "stop_ratio": physics.reflex_stop_distance_ratio(v_px, field, repeller - cavity),
        }

    def density_factor(self, ctx):
        return min(V.REFLEX_DENSITY_MAX, ctx.inputs["Io"] / V.REFLEX_DENSITY_MA)

    def soft_cap(self, ctx):
        return V.REFLEX_CAP_PER_FACTOR * self.density_factor(ctx)

    def launch(self, n, ctx):
        v_px = self.geometry(ctx)["v_px"]
        return dict(
            x=V.REFLEX_GUN_X,
            y=ctx.cy + (uniform(n) - 0.5) * 15.0,
            vx=v_px, base_vx=v_px, state=NEUTRAL, stage=-1,
        )

    def advance(self, pool, ctx):
        g = self.geometry(ctx)
        strength = self.mode(ctx).strength
        ts = ctx.time_scale
        self._inject(pool, ctx, ceil_count(2.0 * self.density_factor(ctx)))
        if len(pool) == 0:
            return

        # forward pass through the resonator gap
        sin_val = math.sin(ctx.frame * V.REFLEX_OMEGA)
        hit = (pool.vx > 0) & (xp.abs(pool.x - g["cavity"]) < V.REFLEX_GAP_HALF) & (pool.stage < 0)
        if bool(hit.any()):
            amp = 0.2 + 0.3 * strength
            pool.vx[hit] *= 1.0 + amp * sin_val
            pool.state[hit] = FAST if sin_val > 0.1 else SLOW if sin_val < -0.1 else NEUTRAL
            pool.stage[hit] = 0

        # repeller region: uniform deceleration
        past = pool.x > g["cavity"]
        pool.vx[past] -= g["field"] * ts
        pool.vx = clamp_velocity(pool.vx, pool.base_vx, -V.REFLEX_MAX_SPEED, V.REFLEX_MAX_SPEED)
        pool.x += pool.vx * ts

        past = pool.x > g["cavity"]
        turning = past & (xp.abs(pool.vx) < 0.5)
        pool.state[turning] = TURNING
        pool.state[past & ~turning & (pool.vx < 0)] = RETURNING

        done = (pool.x > g["repeller"]) | ((pool.x < V.REFLEX_GUN_X) & (pool.vx < 0))
        self._recycle(pool, done, ctx)

    def draw(self, s, pool, ctx):
        p = ctx.inputs
        g = self.geometry(ctx)
        cy = ctx.cy
        rep = g["repeller"]
        strength = self.mode(ctx).strength

        render.draw_metal(s, 0, cy - 50, rep, 15)
        render.draw_metal(s, 0, cy + 35, rep, 15)

        render.draw_wedge(s, rep, cy, 60, 126, 234, "#ef4444")
        render.draw_label(s, f"REPELLER (-{p['Vr']:g}V)", rep - 15, cy, "#ffffff")
        render.draw_label(s, drift_status(g["stop_ratio"]), rep - 15, cy + 15, "#fca5a5")

        if strength > 0.6:
            color, glow = "#f43f5e", strength
        elif strength > 0.2:
            color, glow = "#facc15", 0.4
        else:
            color, glow = "#475569", 0.0
        render.draw_cavity(s, g["cavity"], cy, 50, 80, "RESONATOR", color, glow=glow)

        palette = {TURNING: "#ffffff", RETURNING: V.RETURNING, FAST: "#f87171", SLOW: "#93c5fd"}
        # tags only show inside the drift space
        shown = xp.where(pool.x > g["cavity"], pool.state, NEUTRAL)
        colors = render.state_colors(shown, palette)
        radius = xp.where(shown == TURNING, 5.0, 3.0)
        render.draw_particles(s, pool.x, pool.y, colors, radius=radius)
        self._draw_hud(s, self.hud(ctx))

    def hud(self, ctx):
        m = self.mode(ctx)
        if m.strength > 0.8:
            return [(f"OSCILLATING (Mode {m.mode})", hud_color(True))]
        return [("NO OSCILLATION", hud_color(False))]
