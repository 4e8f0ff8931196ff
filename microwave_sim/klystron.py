"""
Linear-beam klystrons: two-cavity amplifier and N-cavity cascade.

Velocity modulation happens once per cavity crossing; `stage` holds the index
of the last cavity a particle went through (-1 before the buncher).
"""
import math

from .backend import xp, uniform
from .model import DeviceModel, clamp_velocity, ceil_count
from .particles import NEUTRAL, FAST, SLOW
from . import physics, render, visual as V


def bunching_status(X):
    if X < 1.0:
        return "UNDER-BUNCHED (Increase L or Vi)", V.HUD_WARN
    if 1.8 <= X <= 1.9:
        return "OPTIMAL BUNCHING (Max Power!)", V.HUD_GOOD
    if X > 2.0:
        return "OVER-BUNCHED (Crossover)", V.HUD_BAD
    return "GOOD BUNCHING", V.HUD_INFO


def _classify(sin_val):
    if sin_val > 0.1:
        return FAST
    if sin_val < -0.1:
        return SLOW
    return NEUTRAL


class TwoCavityKlystron(DeviceModel):
    device_id = "klystron2"

    def beam(self, ctx):
        p = ctx.inputs
        return physics.klystron_beam(p["Vo"], p["Io"], p["Vi"], p["f"], p["L"], p["d"])

    def geometry(self, ctx):
        p = ctx.inputs
        W = ctx.width
        v_px = V.KLY2_PX_GAIN * max(p["Vo"], 0.0) ** V.KLY2_PX_EXP
        buncher = V.KLY2_BUNCHER_FRAC * W
        catcher = buncher + p["L"] * V.KLY2_PX_PER_CM
        return {
            "v_px": v_px,
            "buncher": buncher,
            "catcher": catcher,
            "exit": max(W, catcher + 150.0) + 50.0,
            "tube": max(W, catcher + 100.0),
            "collector": max(W - 60.0, catcher + 100.0),
            "omega": V.KLY2_OMEGA_PER_GHZ * p["f"],
        }

    def soft_cap(self, ctx):
        return V.KLY2_CAP_PER_MA * ctx.inputs["Io"]

    def launch(self, n, ctx):
        v_px = self.geometry(ctx)["v_px"]
        return dict(
            x=-uniform(n) * 10.0,
            y=ctx.cy + (uniform(n) - 0.5) * 25.0,
            vx=v_px, base_vx=v_px, state=NEUTRAL, stage=-1,
        )

    def advance(self, pool, ctx):
        g = self.geometry(ctx)
        k = self.beam(ctx)
        self._inject(pool, ctx, ceil_count(ctx.inputs["Io"] * V.KLY2_INJECT_PER_MA))
        if len(pool) == 0:
            return

        # buncher: one velocity kick per particle, phase of the RF at arrival
        sin_val = math.sin(ctx.frame * g["omega"])
        depth = k.mod_depth * V.KLY2_MOD_BOOST
        hit = (pool.stage < 0) & (pool.x >= g["buncher"])
        if bool(hit.any()):
            factor = max(1.0 + depth * sin_val, V.KLY2_MIN_SPEED)
            pool.vx[hit] = pool.base_vx[hit] * factor
            pool.state[hit] = _classify(sin_val)
            pool.stage[hit] = 0

        # catcher: energy handed to the output cavity once
        caught = (pool.stage == 0) & (pool.x >= g["catcher"])
        pool.vx[caught] *= V.KLY2_CATCHER_DAMP
        pool.stage[caught] = 1

        pool.vx = clamp_velocity(pool.vx, pool.base_vx,
                                 V.KLY2_MIN_SPEED * V.KLY2_CATCHER_DAMP, V.KLY2_MAX_SPEED)
        pool.x += pool.vx * ctx.time_scale
        self._recycle(pool, pool.x > g["exit"], ctx)

    def output_glow(self, ctx):
        return min(1.0, V.KLY2_GLOW_GAIN * abs(self.beam(ctx).J1))

    def draw(self, s, pool, ctx):
        g = self.geometry(ctx)
        cy = ctx.cy
        glow = self.output_glow(ctx)

        render.draw_metal(s, 0, cy - 60, g["tube"], 20)
        render.draw_metal(s, 0, cy + 40, g["tube"], 20)

        in_signal = math.sin(ctx.frame * g["omega"])
        render.draw_cavity(s, g["buncher"], cy, 60, 90, "RF IN",
                           "#60a5fa" if in_signal > 0 else "#3b82f6")

        out_color = (244 / 255, 63 / 255, 94 / 255, 0.2 + 0.8 * glow)
        if glow > 0.3:
            render.draw_halo(s, g["catcher"] + 25, cy, 60 * glow, "#f43f5e", alpha=glow * 0.3)
        render.draw_cavity(s, g["catcher"], cy, 60, 90, "RF OUT", out_color)

        render.draw_metal(s, g["collector"], cy - 50, 60, 100)
        render.draw_label(s, "COLLECTOR", g["collector"] + 5, cy + 5, V.LABEL_DIM, align="left")

        colors = render.state_colors(pool.state, {FAST: V.FAST, SLOW: V.SLOW})
        render.draw_particles(s, pool.x, pool.y, colors, radius=3.0)
        self._draw_hud(s, self.hud(ctx))

    def hud(self, ctx):
        X = self.beam(ctx).X
        return [(f"Bunching Param (X): {X:.3f}", V.HUD_WHITE), bunching_status(X)]


class MultiCavityKlystron(DeviceModel):
    device_id = "klystronMulti"

    def geometry(self, ctx):
        p = ctx.inputs
        W = ctx.width
        N = max(1, int(math.floor(p["N"])))
        L = p["L"]

        px_per_cm = V.KLYM_PX_PER_CM
        start = V.KLYM_START_FRAC * W
        total_cm = (N - 1) * L
        available = W - start - 100.0
        if total_cm > 0 and total_cm * px_per_cm > available:
            px_per_cm = available / total_cm
        px_per_cm = max(px_per_cm, V.KLYM_MIN_PX_PER_CM)

        cavities = [start + i * L * px_per_cm for i in range(N)]
        catcher = cavities[-1]
        collector = catcher + 80.0
        V0 = p["Vo"] * 1e3
        theta_g = physics.transit_angle(p["f"] * 1e9, p["d"] * 1e-3, physics.beam_velocity(V0))
        return {
            "N": N,
            "cavities": cavities,
            "catcher": catcher,
            "collector": collector,
            "total": collector + 60.0,
            "v_px": V.KLYM_PX_GAIN * (max(p["Vo"], 0.0) / 10.0) ** 0.4,
            "omega": V.KLY2_OMEGA_PER_GHZ * p["f"],
            "beta": physics.coupling_coefficient(theta_g),
            "V0": V0,
        }

    def density_factor(self, ctx):
        return min(V.KLYM_DENSITY_MAX, ctx.inputs["Io"] / V.KLYM_DENSITY_MA)

    def soft_cap(self, ctx):
        return V.KLYM_CAP_PER_FACTOR * self.density_factor(ctx)

    def launch(self, n, ctx):
        v_px = self.geometry(ctx)["v_px"]
        return dict(
            x=-uniform(n) * 10.0,
            y=ctx.cy + (uniform(n) - 0.5) * 20.0,
            vx=v_px, base_vx=v_px, state=NEUTRAL, stage=-1,
        )

    def advance(self, pool, ctx):
        p = ctx.inputs
        g = self.geometry(ctx)
        self._inject(pool, ctx, ceil_count(2.0 * self.density_factor(ctx)))
        if len(pool) == 0:
            return

        phase = ctx.frame * g["omega"]
        for idx, cav in enumerate(g["cavities"]):
            hit = (pool.x >= cav) & (pool.x < cav + 20.0) & (pool.stage < idx)
            if not bool(hit.any()):
                continue
            sin_val = math.sin(phase - idx * math.pi / 2)
            V_stage = physics.stage_voltage(p["Vi"], p["G"], idx, g["V0"])
            depth = g["beta"] * V_stage / (2.0 * g["V0"]) if g["V0"] > 0 else 0.0
            impact = math.tanh(depth * V.KLYM_SENSITIVITY)
            dv = V.KLYM_MAX_KICK * impact * sin_val
            # debunching between stages when the wave does not reinforce
            if idx > 0 and abs(sin_val) < 0.1:
                dv *= V.KLYM_DEBUNCH

            base = pool.base_vx[hit]
            vx = clamp_velocity(pool.vx[hit] + base * dv, base, V.KLYM_MIN_SPEED, V.KLYM_MAX_SPEED)
            pool.vx[hit] = vx
            pool.stage[hit] = idx
            ratio = vx / base
            pool.state[hit] = xp.where(ratio > 1.05, FAST,
                                       xp.where(ratio < 0.95, SLOW, NEUTRAL)).astype(pool.state.dtype)

        catcher = g["catcher"]
        near = (pool.x > catcher + 10.0) & (pool.x < catcher + 30.0)
        pool.vx[near] *= V.KLYM_CATCHER_DAMP

        pool.vx = clamp_velocity(pool.vx, pool.base_vx, V.KLYM_GUARD_MIN, V.KLYM_MAX_SPEED)
        pool.x += pool.vx * ctx.time_scale
        self._recycle(pool, pool.x > g["total"] + 50.0, ctx)

    def draw(self, s, pool, ctx):
        p = ctx.inputs
        g = self.geometry(ctx)
        cy = ctx.cy
        N = g["N"]

        render.draw_metal(s, 0, cy - 60, g["total"], 20)
        render.draw_metal(s, 0, cy + 40, g["total"], 20)

        gain = 10.0 ** (p["G"] / 20.0)
        for idx, cav in enumerate(g["cavities"]):
            if idx == 0:
                label, color = "IN", "#60a5fa"
            elif idx == N - 1:
                label, color = "OUT", "#f43f5e"
            else:
                label, color = f"{idx}", V.LABEL_DIM
            # glows once the stage RF exceeds ~10% of the beam voltage
            V_stage = p["Vi"] * gain ** idx
            glow = math.tanh(V_stage / (g["V0"] * 0.1)) if g["V0"] > 0 else 0.0
            render.draw_cavity(s, cav, cy, 40, 70, label, color, glow=glow if glow > 0.1 else 0.0)

        render.draw_rect(s, g["collector"], cy - 50, 50, 100, "#1e293b")
        render.draw_label(s, "COLLECTOR", g["collector"] + 25, cy, "#ffffff")

        colors = render.state_colors(pool.state, {FAST: V.FAST, SLOW: V.SLOW})
        render.draw_particles(s, pool.x, pool.y, colors, radius=2.5)
        self._draw_hud(s, self.hud(ctx))

    def hud(self, ctx):
        total = physics.cascade_gain_db(ctx.inputs["N"], ctx.inputs["G"])
        return [
            (f"Gain: {total:.1f} dB", V.HUD_WHITE),
            ("(Visuals Enhanced for Visibility)", V.LABEL_DIM, 12),
        ]
