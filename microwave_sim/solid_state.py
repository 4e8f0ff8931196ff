"""
Solid-state devices. These are localised effect visualisations rather than
beams: a travelling Gunn domain, tunnelling bursts, IMPATT avalanche pulses
and the TRAPATT fill/extract cycle.
"""
import math

from .backend import xp, to_np, uniform, chance
from .model import DeviceModel, hud_color
from .particles import DOMAIN, HOLE, ELECTRON, FILLING, EXTRACTING
from . import physics, render, visual as V


class GunnDiode(DeviceModel):
    device_id = "gunn"

    def geometry(self, ctx):
        p = ctx.inputs
        E = physics.gunn_field(p["V"], p["L"])
        return {
            "start": ctx.cx - V.GUNN_BAR_PX / 2,
            "E": E,
            "Eth": p["Vth"] * 1e3,
            "active": E > p["Vth"] * 1e3,
            "drift": (p["vd"] / 1e7) * V.GUNN_DRIFT_PX,
        }

    def soft_cap(self, ctx):
        return 1

    def launch(self, n, ctx):
        g = self.geometry(ctx)
        return dict(x=g["start"] + 10.0, y=ctx.cy, vx=g["drift"], base_vx=g["drift"], state=DOMAIN)

    def advance(self, pool, ctx):
        g = self.geometry(ctx)
        ts = ctx.time_scale
        # nucleate a new domain at the cathode once the previous one is gone
        if g["active"] and pool.count(DOMAIN) == 0 and chance(V.GUNN_LAUNCH_CHANCE * ts):
            self._inject(pool, ctx, 1)
        if len(pool) == 0:
            return
        pool.x += pool.vx * ts
        pool.remove(pool.x > g["start"] + V.GUNN_BAR_PX - 10.0)

    def draw(self, s, pool, ctx):
        g = self.geometry(ctx)
        cx, cy = ctx.cx, ctx.cy
        start, L = g["start"], V.GUNN_BAR_PX

        render.draw_metal(s, start - 30, cy - 40, 30, 80, "gold")
        render.draw_layer(s, start, cy - 40, L, 80, "#059669" if g["active"] else "#047857",
                          "n- GaAs", "Active Region")
        render.draw_metal(s, start + L, cy - 40, 30, 80, "gold")
        render.draw_metal(s, start - 30, cy + 45, L + 60, 20, "copper")
        render.draw_label(s, "Heat Sink", cx, cy + 60, "#fbbf24")

        for x in to_np(pool.x):
            render.draw_glow_band(s, x - 20, cy - 38, 40, 76)
            render.draw_label(s, "High E-Field", x, cy - 50, "#ffffff")
        self._draw_hud(s, self.hud(ctx))

    def hud(self, ctx):
        g = self.geometry(ctx)
        return [(f"E = {g['E'] / 1e3:.2f} kV/cm   E_th = {g['Eth'] / 1e3:g} kV/cm", V.HUD_WHITE),
                ("DOMAIN TRANSIT MODE" if g["active"] else "BELOW THRESHOLD (ohmic)",
                 hud_color(g["active"]))]


class TunnelDiode(DeviceModel):
    device_id = "tunnel"

    def current(self, ctx):
        p = ctx.inputs
        return physics.tunnel_current(p["Vbias"], p["Vp"], p["Vv"], p["Ip"], p["Iv"])

    def soft_cap(self, ctx):
        return V.TUNNEL_CAP

    def launch(self, n, ctx):
        return dict(
            x=ctx.cx + (uniform(n) - 0.5) * 20.0,
            y=ctx.cy - 5.0,
            vx=uniform(n) - 0.5,
            vy=2.0 + uniform(n),
            life=1.0,
        )

    def advance(self, pool, ctx):
        p = ctx.inputs
        ts = ctx.time_scale
        # tunnelling only under forward bias, busier near the current peak
        if p["Vbias"] > 0:
            rate = min(max(physics.ratio(self.current(ctx), p["Ip"]), 0.1), 1.0)
            if chance(V.TUNNEL_BURST_CHANCE * rate):
                self._inject(pool, ctx, 1)
        if len(pool) == 0:
            return
        pool.y += pool.vy * ts
        pool.x += pool.vx * ts
        pool.life -= V.TUNNEL_DECAY * ts
        pool.remove((pool.life <= 0) | (pool.y > ctx.cy + 60.0))

    def draw(self, s, pool, ctx):
        cx, cy = ctx.cx, ctx.cy
        render.draw_metal(s, cx - 80, cy + 60, 160, 20, "gold")
        render.draw_label(s, "Anode", cx, cy + 75, "#000000")
        render.draw_metal(s, cx - 90, cy - 60, 20, 140, "steel")
        render.draw_metal(s, cx + 70, cy - 60, 20, 140, "steel")
        render.draw_trapezoid(s, cx - 60, cy, 60, 120, 60, "#991b1b")
        render.draw_label(s, "p++ Ge/GaAs", cx, cy + 40, (1, 1, 1, 0.8))
        render.draw_wedge(s, cx, cy, 15, 180, 360, "#cbd5e1", zorder=1.2)
        render.draw_label(s, "n++ Dot", cx, cy - 5, "#000000")
        render.draw_polyline(s, [cx - 30, cx + 30], [cy, cy], "#fbbf24", linewidth=2)
        render.draw_polyline(s, [cx, cx], [cy - 15, cy - 60], "#d1d5db", linewidth=1)
        render.draw_metal(s, cx - 80, cy - 80, 160, 20, "gold")
        render.draw_label(s, "Cathode", cx, cy - 65, "#000000")

        render.draw_particles(s, pool.x, pool.y, V.ELECTRON, radius=2.0, alpha=pool.life)
        self._draw_hud(s, self.hud(ctx))

    def hud(self, ctx):
        p = ctx.inputs
        ndr = p["Vp"] <= p["Vbias"] < p["Vv"]
        return [(f"I = {self.current(ctx):.2f} mA @ {p['Vbias']:g} mV", V.HUD_WHITE),
                ("NEGATIVE RESISTANCE REGION" if ndr else "POSITIVE RESISTANCE", hud_color(ndr))]


class ImpattDiode(DeviceModel):
    device_id = "impatt"

    def geometry(self, ctx):
        total = sum(w for _, _, w, _ in V.IMPATT_LAYERS)
        start = ctx.cx - total / 2
        w_contact, w_aval = V.IMPATT_LAYERS[0][2], V.IMPATT_LAYERS[1][2]
        return {
            "start": start,
            "total": total,
            "junction": start + w_contact + w_aval,
            "breakdown": ctx.inputs["Vd"] > V.IMPATT_BREAKDOWN_V,
            "peak": math.sin(ctx.frame * V.IMPATT_PULSE_OMEGA) > V.IMPATT_PULSE_GATE,
        }

    def soft_cap(self, ctx):
        return 6.0 * ctx.inputs["I"]

    def launch(self, n, ctx):
        # alternating hole / electron rows, one pair per two rows
        g = self.geometry(ctx)
        holes = (xp.arange(n) % 2) == 0
        spread = uniform(n) * 10.0
        ve = V.IMPATT_ELECTRON_VX * (ctx.inputs["vs"] / 1e7)
        return dict(
            x=xp.where(holes, g["junction"] - spread, g["junction"] + spread),
            y=ctx.cy + (uniform(n) - 0.5) * 40.0,
            vx=xp.where(holes, V.IMPATT_HOLE_VX, ve),
            base_vx=xp.where(holes, V.IMPATT_HOLE_VX, ve),
            state=xp.where(holes, HOLE, ELECTRON),
            life=100.0,
        )

    def advance(self, pool, ctx):
        g = self.geometry(ctx)
        if g["breakdown"] and g["peak"]:
            pairs = max(1, int(math.floor(3.0 * ctx.inputs["I"] / 200.0 + 0.5)))
            self._inject(pool, ctx, 2 * pairs)
        if len(pool) == 0:
            return
        pool.x += pool.vx * ctx.time_scale
        gone = ((pool.state == HOLE) & (pool.x < g["start"])) | \
               ((pool.state == ELECTRON) & (pool.x > g["start"] + g["total"]))
        pool.remove(gone)

    def draw(self, s, pool, ctx):
        g = self.geometry(ctx)
        cx, cy = ctx.cx, ctx.cy
        x = g["start"]
        for label, sub, w, color in V.IMPATT_LAYERS:
            render.draw_layer(s, x, cy - 60, w, 120, color, label, sub)
            x += w
        w_contact, w_aval = V.IMPATT_LAYERS[0][2], V.IMPATT_LAYERS[1][2]
        render.draw_rect(s, g["start"] + w_contact, cy - 60, w_aval, 120, (1, 1, 0, 0.1), zorder=1.1)
        render.draw_label(s, "High E-Field", g["start"] + w_contact + w_aval / 2, cy - 75, "#fbbf24")

        colors = render.state_colors(pool.state, {HOLE: V.HOLE, ELECTRON: V.ELECTRON})
        render.draw_particles(s, pool.x, pool.y, colors, radius=3.0)

        peak = g["peak"]
        render.draw_disc(s, cx, cy + 80, 5, V.HUD_GOOD if peak else "#334155")
        render.draw_label(s, "GENERATION" if peak else "WAITING", cx, cy + 95,
                          V.HUD_GOOD if peak else V.LABEL_DIM)
        if not g["breakdown"]:
            self._draw_hud(s, [("BELOW BREAKDOWN (no avalanche)", V.HUD_BAD)])


class TrapattDiode(DeviceModel):
    device_id = "trapatt"

    def geometry(self, ctx):
        widths = [w for _, _, w, _ in V.TRAPATT_LAYERS]
        start = ctx.cx - sum(widths) / 2
        fill_start = start + widths[0]
        return {
            "start": start,
            "fill_start": fill_start,
            "switch": fill_start + widths[1] - 10.0,
            "end": start + sum(widths),
            "extract_vx": V.TRAPATT_EXTRACT_VX * (ctx.inputs["V"] / 100.0),
        }

    def soft_cap(self, ctx):
        return V.TRAPATT_CAP_PER_AMP * ctx.inputs["I"]

    def launch(self, n, ctx):
        g = self.geometry(ctx)
        return dict(
            x=g["fill_start"] + uniform(n) * 20.0,
            y=ctx.cy + (uniform(n) - 0.5) * 60.0,
            vx=V.TRAPATT_FILL_VX, base_vx=V.TRAPATT_FILL_VX, state=FILLING,
        )

    def respawn(self, n, ctx):
        g = self.geometry(ctx)
        return dict(
            x=g["fill_start"],
            y=ctx.cy + (uniform(n) - 0.5) * 60.0,
            vx=V.TRAPATT_FILL_VX, base_vx=V.TRAPATT_FILL_VX, state=FILLING,
        )

    def advance(self, pool, ctx):
        g = self.geometry(ctx)
        self._inject(pool, ctx, 1)
        if len(pool) == 0:
            return
        pool.x += pool.vx * ctx.time_scale
        # plasma reaches the n+ edge: avalanche front releases it
        switch = (pool.state == FILLING) & (pool.x > g["switch"])
        pool.state[switch] = EXTRACTING
        pool.vx[switch] = g["extract_vx"]
        self._recycle(pool, pool.x > g["end"], ctx)

    def draw(self, s, pool, ctx):
        g = self.geometry(ctx)
        cy = ctx.cy
        x = g["start"]
        for label, sub, w, color in V.TRAPATT_LAYERS:
            render.draw_layer(s, x, cy - 50, w, 100, color, label, sub or None)
            x += w

        filling = pool.state == FILLING
        render.draw_particles(s, pool.x[~filling], pool.y[~filling], V.ELECTRON, radius=4.0)
        render.draw_particles(s, pool.x[filling], pool.y[filling], "#ffffff", radius=4.0)
