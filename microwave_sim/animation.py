"""
Hosts that drive Simulation.tick(): an interactive FuncAnimation window and a
headless GIF recorder.
"""
from matplotlib.animation import FuncAnimation, PillowWriter


class AnimationHost:
    """Schedules one tick per timer callback until cancelled."""

    def __init__(self, sim, interval=33, frames=None):
        self.sim = sim
        self.interval = int(interval)
        self.frames = frames
        self.anim = None
        self.cancelled = False
        sim.attach(self)

    def _step(self, _i):
        if not self.cancelled:
            self.sim.tick()
        return []

    def start(self):
        self.cancelled = False
        self.anim = FuncAnimation(self.sim.surface.fig, self._step, frames=self.frames,
                                  interval=self.interval, blit=False, cache_frame_data=False)
        return self.anim

    def cancel(self):
        self.cancelled = True
        if self.anim is not None and self.anim.event_source is not None:
            self.anim.event_source.stop()

    @property
    def pending(self):
        return self.anim is not None and not self.cancelled


def show(sim, interval=33):
    import matplotlib.pyplot as plt
    host = AnimationHost(sim, interval=interval)
    host.start()
    plt.show()
    sim.dispose()
    return host


def record(sim, path, frames=None, fps=30, verbose=True):
    """Run the headless loop (with diagnostics) and grab every frame into a GIF."""
    fig = sim.surface.fig
    writer = PillowWriter(fps=fps)
    with writer.saving(fig, path, dpi=sim.surface.dpi):
        diag = sim.run(frames, verbose=verbose,
                       on_frame=lambda it: writer.grab_frame(facecolor=fig.get_facecolor()))
    if verbose:
        print(f"[diag] animation saved to {path}")
    return diag
