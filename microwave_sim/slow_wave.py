"""
Slow-wave structure devices: helix TWT and the O-type backward-wave oscillator.

No discrete gaps here. Every particle inside the structure feels a travelling
sinusoid each frame, phase = k·x − ω·frame, whose envelope grows along the
tube (TWT) or decays toward the collector (BWO).
"""
import math

import numpy as np

from .backend import xp, uniform
from .model import DeviceModel, clamp_velocity, ceil_count
from .particles import NEUTRAL, FAST, SLOW
from . import physics, render, visual as V


def twt_envelope(x, g):
    """Wave amplitude at axial position x (array) along the helix."""
    L = g["end"] - g["start"]
    in_atten = g["atten"] & (x >= g["atten_start"]) & (x <= g["atten_end"])
    after = g["atten"] & (x > g["atten_end"])
    progress = (x - g["start"]) / L
    regrow = (x - g["atten_end"]) / (g["end"] - g["atten_end"])
    amp = xp.where(after, 2.0 + xp.exp(regrow * 2.5), 1.0 + xp.exp(progress * 3.0))
    return xp.where(in_atten, 0.0, amp)


class TravelingWaveTube(DeviceModel):
    device_id = "twt"

    def geometry(self, ctx):
        p = ctx.inputs
        start = V.TWT_MARGIN
        end = ctx.width - V.TWT_MARGIN
        atten_start = start + (end - start) * V.TWT_ATTEN_FRAC
        return {
            "start": start,
            "end": end,
            "atten_start": atten_start,
            "atten_end": atten_start + V.TWT_ATTEN_WIDTH,
            "atten": bool(p["atten"] > 0.5),
            "v0": math.sqrt(max(p["Vo"], 0.0)) * V.SLOWWAVE_PX_GAIN,
            "tightness": p["Vi"] / 20.0,
        }

    def soft_cap(self, ctx):
        return V.TWT_CAP_PER_MA * ctx.inputs["Io"]

    def launch(self, n, ctx):
        v0 = self.geometry(ctx)["v0"]
        return dict(
            x=20.0 - uniform(n),
            y=ctx.cy + (uniform(n) - 0.5) * 4.0,
            vx=v0, base_vx=v0, state=NEUTRAL,
        )

    def advance(self, pool, ctx):
        g = self.geometry(ctx)
        self._inject(pool, ctx, ceil_count(ctx.inputs["Io"] * V.TWT_INJECT_PER_MA))
        if len(pool) == 0:
            return

        before = pool.x < g["start"]
        pool.vx[before] = pool.base_vx[before]
        pool.state[before] = NEUTRAL

        inside = (pool.x >= g["start"]) & (pool.x < g["end"])
        if bool(inside.any()):
            x = pool.x[inside]
            base = pool.base_vx[inside]
            amp = twt_envelope(x, g)
            force = xp.sin(x * V.TWT_K - ctx.frame * V.TWT_OMEGA) * amp * g["tightness"]
            # electrons give up energy more readily than they take it
            force = xp.where(force > 0, force * 2.0, force * 1.2)
            vx = xp.where(amp > 0, base + 2.0 * force, pool.vx[inside])
            vx = clamp_velocity(vx, base, V.TWT_MIN_SPEED, V.TWT_MAX_SPEED)
            pool.vx[inside] = vx
            ratio = vx / base
            pool.state[inside] = xp.where(ratio < 0.96, SLOW,
                                          xp.where(ratio > 1.05, FAST, NEUTRAL)).astype(pool.state.dtype)

        pool.x += pool.vx * ctx.time_scale
        self._recycle(pool, pool.x > ctx.width + 50.0, ctx)

    def draw(self, s, pool, ctx):
        g = self.geometry(ctx)
        cy = ctx.cy
        W = ctx.width

        render.draw_rect(s, 10, cy - 15, 30, 30, "#60a5fa")
        render.draw_label(s, "GUN", 15, cy - 20, "#ffffff", align="left")

        # periodic-permanent-magnet focusing stack
        pitch = 25.0
        m = g["start"] - 10.0
        while m < g["end"] + 10.0:
            color = "#ef4444" if int(math.floor((m / pitch) % 2)) == 0 else "#3b82f6"
            render.draw_rect(s, m, cy - 45, pitch - 2, 10, color)
            render.draw_rect(s, m, cy + 35, pitch - 2, 10, color)
            m += pitch

        hx = np.arange(g["start"], g["end"] + 1e-9, 2.0)
        in_atten = g["atten"] & (hx >= g["atten_start"]) & (hx <= g["atten_end"])
        after = g["atten"] & (hx > g["atten_end"])
        progress = (hx - g["start"]) / (g["end"] - g["start"])
        regrow = (hx - g["atten_end"]) / (g["end"] - g["atten_end"])
        amp = np.where(after, 5.0 + np.exp(regrow * 2.5) * 2.0, 5.0 + np.exp(progress * 2.8) * 3.0)
        amp = np.where(in_atten, 0.0, amp)
        hy = cy + np.sin(hx * V.TWT_K - ctx.frame * V.TWT_OMEGA) * amp
        if g["atten"]:
            cut = (np.abs(hx - g["atten_start"]) < 2) | (np.abs(hx - g["atten_end"]) < 2)
            hy[cut] = np.nan
        render.draw_polyline(s, hx, hy, "#f59e0b", linewidth=2)

        if g["atten"]:
            render.draw_rect(s, g["atten_start"], cy - 12, V.TWT_ATTEN_WIDTH, 24, (50 / 255, 50 / 255, 50 / 255, 0.9))
            render.draw_label(s, "ATTEN", g["atten_start"] + 2, cy - 15, "#ffffff", align="left")

        render.draw_rect(s, W - 60, cy - 25, 40, 50, "#334155")

        visible = (pool.x > 0) & (pool.x < W)
        slow = visible & (pool.state == SLOW)
        fast = visible & (pool.state == FAST)
        rest = visible & ~slow & ~fast
        render.draw_particles(s, pool.x[rest], pool.y[rest], "#3b82f6", radius=2.0, glow=False)
        render.draw_particles(s, pool.x[fast], pool.y[fast], V.FAST, radius=2.2, glow=False)
        render.draw_particles(s, pool.x[slow], pool.y[slow], V.BUNCH, radius=3.5)

    def hud(self, ctx):
        p = ctx.inputs
        G = physics.pierce_gain_db(p["C"], p["N"])
        return [(f"Gain: {G:.1f} dB  (Attenuator {'ON' if p['atten'] > 0.5 else 'OFF'})", V.HUD_WHITE)]


class BackwardWaveOscillatorO(DeviceModel):
    device_id = "obwo"

    def geometry(self, ctx):
        return {
            "start": V.OBWO_MARGIN,
            "end": ctx.width - V.OBWO_MARGIN,
            "v0": math.sqrt(max(ctx.inputs["Vo"], 0.0)) * V.SLOWWAVE_PX_GAIN,
        }

    def soft_cap(self, ctx):
        return V.OBWO_CAP_PER_DENSITY * ctx.density

    def launch(self, n, ctx):
        v0 = self.geometry(ctx)["v0"]
        return dict(x=50.0, y=ctx.cy + (uniform(n) - 0.5) * 10.0,
                    vx=v0, base_vx=v0, state=NEUTRAL)

    def advance(self, pool, ctx):
        g = self.geometry(ctx)
        self._inject(pool, ctx, ceil_count(4.0 * ctx.density))
        if len(pool) == 0:
            return

        x = pool.x
        base = pool.base_vx
        inside = (x > g["start"]) & (x < g["end"])
        wave = xp.sin(x * V.OBWO_K - ctx.frame * V.OBWO_OMEGA)
        amp = 1.0 - ((x - g["start"]) / (g["end"] - g["start"])) * 0.6
        val = xp.where(inside, wave * amp, 0.0)

        pool.vx = xp.where(val > 0.15, base * 0.7, xp.where(val < -0.15, base * 1.8, base))
        pool.state = xp.where(val > 0.15, SLOW,
                              xp.where(val < -0.15, FAST, NEUTRAL)).astype(pool.state.dtype)

        pool.x += pool.vx * ctx.time_scale
        self._recycle(pool, pool.x > ctx.width + 50.0, ctx)

    def draw(self, s, pool, ctx):
        g = self.geometry(ctx)
        cy = ctx.cy
        W = ctx.width
        start, end = g["start"], g["end"]
        pitch, h = 30.0, 40.0

        # interdigital vanes: one segment per vane, NaN between them
        xs, ys = [], []
        x = start
        while x <= end:
            xs += [x, x, np.nan, x + pitch / 2, x + pitch / 2, np.nan]
            ys += [cy - h, cy - 10, np.nan, cy + h, cy + 10, np.nan]
            x += pitch
        render.draw_polyline(s, xs, ys, "#d97706", linewidth=4)
        render.draw_polyline(s, [0, W], [cy, cy], (1, 1, 1, 0.1), linewidth=1)

        render.draw_rect(s, 20, cy - 20, 30, 40, "#60a5fa")
        render.draw_label(s, "GUN", 25, cy - 25, "#ffffff", align="left", family="sans-serif")
        render.draw_rect(s, W - 50, cy - 30, 40, 60, "#334155")
        render.draw_label(s, "COLLECTOR", W - 100, cy - 35, V.LABEL_DIM, align="left")

        render.draw_polyline(s, [start, start - 20], [cy - h, cy - h - 30], "#ec4899", linewidth=4)
        render.draw_label(s, "RF OUT", start - 40, cy - h - 35, "#ec4899", align="left",
                          size=12, weight="bold", family="sans-serif")

        slow = pool.state == SLOW
        fast = pool.state == FAST
        rest = ~slow & ~fast
        render.draw_particles(s, pool.x[rest], pool.y[rest], V.ELECTRON, radius=2.5, glow=False)
        render.draw_particles(s, pool.x[fast], pool.y[fast], V.FAST, radius=2.0, glow=False)
        render.draw_particles(s, pool.x[slow], pool.y[slow], V.BUNCH, radius=3.5)
