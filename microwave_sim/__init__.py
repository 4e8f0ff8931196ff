from .dataclass import SimConfig, SimulationInputs, GLOBAL_MAX, FIDELITY_DENSITY
from .descriptors import DEVICES, get_descriptor, get_params, resolve_inputs
from .equations import equations
from .devices import MODELS
from .simulation import Simulation
