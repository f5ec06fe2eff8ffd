from .base import Binner
from .equal_width import EqualWidthBinner
from .equal_count import EqualCountBinner
from .max_mutual_info import MaxMutualInfoBinner
from .poisson_mixture import PoissonMixtureBinner

__all__ = [
    "Binner",
    "EqualWidthBinner",
    "EqualCountBinner",
    "MaxMutualInfoBinner",
    "PoissonMixtureBinner",
]
