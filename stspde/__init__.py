"""Space-time SPDE/GMRF model for counts on a mesh."""

from stspde.data import make_data, make_params, FIXED_EFFECTS, RANDOM_EFFECTS
from stspde.model import SpaceTimeModel

__version__ = "1.0"
