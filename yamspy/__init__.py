from .coaxial import CachedCoAxialRecurrence
from .config import Config
from .coupling import Coupling
from .electromagnetic import ElectroMagnetic
from .exceptions import ConfigurationError, SolverError
from .geometry import ExternalExcitation, Geometry, SecondHarmonicSource
from .initial_field import InitialField
from .linalg import BlockCyclicMatrix, Communicator, Context
from .particles import Scatterer
from .result import Result
from .solver import Solver, solve
from .yams import YAMS

__version__ = "0.1.0"
