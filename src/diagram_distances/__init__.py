from .config import DEFAULTS, AuctionParams
from .distances import bottleneck_distance, wasserstein_distance
from .errors import (
    AssignmentConsistencyError,
    ConvergenceError,
    DiagramDistanceError,
    DiagramValidationError,
)
from .logger import configure_logging, get_logger
from .pairwise import (
    PairwiseDistances,
    bottleneck_pairwise_distances,
    wasserstein_pairwise_distances,
)

__version__ = '0.1.0'
