from .klystron import TwoCavityKlystron, MultiCavityKlystron
from .reflex import ReflexKlystron
from .slow_wave import TravelingWaveTube, BackwardWaveOscillatorO
from .crossed_field import Magnetron, Carcinotron
from .solid_state import GunnDiode, TunnelDiode, ImpattDiode, TrapattDiode

# device id -> physics/drawing strategy (stateless; one shared instance each)
MODELS = {
    m.device_id: m
    for m in (
        TwoCavityKlystron(),
        MultiCavityKlystron(),
        ReflexKlystron(),
        TravelingWaveTube(),
        BackwardWaveOscillatorO(),
        Magnetron(),
        Carcinotron(),
        GunnDiode(),
        TunnelDiode(),
        ImpattDiode(),
        TrapattDiode(),
    )
}


def get_model(device_id):
    return MODELS.get(device_id)
