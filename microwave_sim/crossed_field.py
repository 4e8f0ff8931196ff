"""
Crossed-field (M-type) devices.

Magnetron particles live in polar form around the cathode; carcinotron
particles drift along a planar sole/anode gap. In both the drift comes from
E/B, compressed into on-screen units by the visual layer.
"""
import math

import numpy as np

from .backend import xp, uniform
from .model import DeviceModel, ceil_count, hud_color
from .particles import NEUTRAL, FAST, SLOW, ABSORBED
from . import physics, render, visual as V


class Magnetron(DeviceModel):
    device_id = "magnetron"

    def geometry(self, ctx):
        p = ctx.inputs
        ra = p["ra"] * V.MAG_PX_PER_MM
        rb = max(p["rb"] * V.MAG_PX_PER_MM, ra + 1.0)
        N = max(1, int(p["N"]))

        B = p["Bo"] * 1e-3
        ra_m = p["ra"] * 1e-3
        rb_m = max(p["rb"] * 1e-3, ra_m + 1e-4)
        E = p["Vo"] * 1e3 / (rb_m - ra_m)
        omega = physics.exb_drift_velocity(E, B) / rb_m * V.MAG_SECONDS_PER_FRAME
        omega = min(max(omega, V.MAG_OMEGA_MIN), V.MAG_OMEGA_MAX)

        hub = ra + p["Vo"] * 2.5 - p["Bo"] * 0.12
        hub = max(min(hub, rb - 15.0), ra + 5.0)
        return {
            "ra": ra,
            "rb": rb,
            "N": N,
            "omega": omega,
            "hub": hub,
            "spokes": p["Vo"] > V.MAG_SPOKE_VOLTAGE,
        }

    def soft_cap(self, ctx):
        return math.floor(V.MAG_CAP_PER_DENSITY * ctx.density)

    def _place(self, r, theta, ctx):
        return dict(r=r, theta=theta,
                    x=ctx.cx + xp.cos(theta) * r, y=ctx.cy + xp.sin(theta) * r)

    def launch(self, n, ctx):
        g = self.geometry(ctx)
        r = xp.minimum(g["ra"] + uniform(n) * 4.0, g["rb"])
        return self._place(r, uniform(n) * 2.0 * math.pi, ctx)

    def respawn(self, n, ctx):
        # back onto the cathode surface, within one pixel
        g = self.geometry(ctx)
        r = g["ra"] + uniform(n) * min(1.0, g["rb"] - g["ra"])
        return self._place(r, uniform(n) * 2.0 * math.pi, ctx)

    def advance(self, pool, ctx):
        g = self.geometry(ctx)
        ts = ctx.time_scale
        self._inject(pool, ctx, ceil_count(6.0 * ctx.density))
        n = len(pool)
        if n == 0:
            return

        pool.theta = xp.mod(pool.theta + g["omega"] * ts, 2.0 * math.pi)
        sector = 2.0 * math.pi / g["N"]
        spoke = xp.mod(pool.theta, sector) < sector * 0.3

        r = pool.r
        if g["spokes"]:
            grow = spoke
            r = xp.where(grow, r + 1.2 * ts * (ctx.inputs["Vo"] / 30.0), r)
        else:
            grow = xp.zeros(n, dtype=bool)
        # off-spoke charge relaxes toward the hub
        shrink = ~grow & (r > g["hub"])
        jitter = ~grow & ~shrink
        r = xp.where(shrink, r - 2.5 * ts, r)
        r = xp.where(jitter, r + (uniform(n) - 0.4) * ts, r)
        r = xp.maximum(r, g["ra"])

        pool.r = r
        pool.x = ctx.cx + xp.cos(pool.theta) * r
        pool.y = ctx.cy + xp.sin(pool.theta) * r
        self._recycle(pool, pool.r > g["rb"], ctx)

    def draw(self, s, pool, ctx):
        p = ctx.inputs
        g = self.geometry(ctx)
        cx, cy = ctx.cx, ctx.cy
        ra, rb = g["ra"], g["rb"]

        render.draw_disc(s, cx, cy, rb + 50, "#b45309", edgecolor="#78350f",
                         linewidth=s.px_to_pt(4))
        render.draw_disc(s, cx, cy, rb, "#000000")

        hole_r, hole_d = 18.0, rb + 22.0
        pin_r = (hole_r - 2.0) * (p["tune"] / 100.0)
        for i in range(g["N"]):
            ang = i / g["N"] * 2.0 * math.pi
            c, sn = math.cos(ang), math.sin(ang)
            hx, hy = cx + c * hole_d, cy + sn * hole_d
            render.draw_disc(s, hx, hy, hole_r, "#1e1e1e", zorder=1.2)
            # slot from the interaction space into the resonator hole
            slot = [(rb - 2, -5), (rb + 22, -5), (rb + 22, 5), (rb - 2, 5)]
            render.draw_polygon(s, [(cx + u * c - v * sn, cy + u * sn + v * c) for u, v in slot],
                                "#1e1e1e", zorder=1.2)
            if pin_r > 0:
                render.draw_disc(s, hx, hy, pin_r, "#fbbf24", edgecolor="#78350f",
                                 linewidth=s.px_to_pt(1), zorder=1.3)
                render.draw_disc(s, hx - 2, hy - 2, 0.5 * pin_r, "#fcd34d", zorder=1.4)

        render.draw_halo(s, cx, cy, ra + 10, (251 / 255, 191 / 255, 36 / 255), alpha=0.5)
        render.draw_disc(s, cx, cy, ra, "#fbbf24", zorder=1.5)
        render.draw_disc(s, cx, cy, ra * 0.3, "#ffffff", zorder=1.6)

        render.draw_particles(s, pool.x, pool.y, V.ELECTRON, radius=2.0, glow=False)

        if p["tune"] > 0:
            render.draw_label(s, f"TUNING INSERTION: {p['tune']:g}%", cx, cy + rb + 80,
                              "#fbbf24", size=11)
        self._draw_hud(s, self.hud(ctx))

    def hud(self, ctx):
        p = ctx.inputs
        Vh = physics.hull_cutoff_voltage(p["Bo"] * 1e-3, p["ra"] * 1e-3, p["rb"] * 1e-3) / 1e3
        insulated = p["Vo"] < Vh
        return [(f"V0 = {p['Vo']:g} kV   Hull cutoff = {Vh:.1f} kV", V.HUD_WHITE),
                ("MAGNETICALLY INSULATED" if insulated else "BEYOND CUT-OFF (current to anode)",
                 hud_color(insulated))]


class Carcinotron(DeviceModel):
    device_id = "carcinotron"

    def geometry(self, ctx):
        p = ctx.inputs
        E = physics.uniform_field(p["Vo"] * 1e3, p["d"] * 1e-3)
        drift = physics.exb_drift_velocity(E, p["Bo"] * 1e-3) * V.CARC_DRIFT_SCALE
        return {
            "start": 100.0,
            "end": ctx.width - 100.0,
            "sole": ctx.cy + 60.0,
            "anode": ctx.cy - 60.0,
            "drift": min(max(drift, V.CARC_DRIFT_MIN), V.CARC_DRIFT_MAX),
        }

    def soft_cap(self, ctx):
        return V.CARC_CAP

    def launch(self, n, ctx):
        g = self.geometry(ctx)
        sole = g["sole"]
        return dict(
            x=50.0 + uniform(n) * 15.0,
            y=sole - 15.0 - uniform(n) * 25.0,
            base_y=sole - 25.0,
            vx=g["drift"], base_vx=g["drift"], state=NEUTRAL,
        )

    def advance(self, pool, ctx):
        g = self.geometry(ctx)
        ts = ctx.time_scale
        self._inject(pool, ctx, V.CARC_INJECT)
        if len(pool) == 0:
            return

        phase = pool.x * 0.1 - ctx.frame * 0.3
        rf = xp.sin(phase)
        pool.vx = g["drift"] + rf * V.CARC_BUNCHING
        pool.x += pool.vx * ts
        target = pool.base_y + xp.sin(phase + math.pi / 2) * 20.0

        # decelerating phase hands potential energy to the wave and climbs to the anode
        past = pool.x > g["start"]
        up = past & (rf < -0.1)
        down = past & ~(rf < -0.1)
        pool.base_y = xp.where(up, pool.base_y - 0.6 * ts,
                               xp.where(down, pool.base_y + 0.3 * ts, pool.base_y))
        pool.state[up] = SLOW
        pool.state[down] = FAST

        pool.y += (target - pool.y) * 0.2
        hit = pool.y <= g["anode"] + 5.0
        pool.y = xp.where(hit, g["anode"] + 5.0, xp.minimum(pool.y, g["sole"] - 5.0))
        pool.state[hit] = ABSORBED

        self._recycle(pool, (pool.x > ctx.width + 20.0) | hit, ctx)

    def draw(self, s, pool, ctx):
        g = self.geometry(ctx)
        W = ctx.width
        start, end, sole, anode = g["start"], g["end"], g["sole"], g["anode"]

        render.draw_rect(s, start, sole, end - start, 15, "#1e293b")
        render.draw_label(s, "SOLE (-)", W / 2, sole + 30, V.LABEL_DIM)

        render.draw_rect(s, start, anode - 20, end - start, 20, "#b45309")
        for x in np.arange(start, end, 20.0):
            render.draw_rect(s, x, anode, 10, 20, "#d97706")
        render.draw_label(s, "ANODE (+)", W / 2, anode - 30, "#fbbf24")

        render.draw_polygon(s, [(30, sole), (start, sole - 10), (start, sole)], "#60a5fa")
        render.draw_polyline(s, [start, start - 30], [anode, anode - 30], "#ec4899", linewidth=4)
        render.draw_label(s, "RF OUT", start - 60, anode - 40, "#ec4899", align="left")
        render.draw_rect(s, end, sole - 60, 30, 70, "#475569")

        slow = pool.state == SLOW
        rest = ~slow
        colors = render.state_colors(pool.state[rest], {FAST: V.FAST}, default="#3b82f6")
        render.draw_particles(s, pool.x[rest], pool.y[rest], colors, radius=2.0, glow=False)
        render.draw_particles(s, pool.x[slow], pool.y[slow], V.BUNCH, radius=2.5, glow=False)
