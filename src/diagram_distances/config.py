"""
Distance Configuration

Centralized defaults for the auction and the distance front-ends.

Usage:
    from diagram_distances.config import DEFAULTS, AuctionParams

    params = AuctionParams(wasserstein_power=2.0, delta=DEFAULTS.tolerance)
"""

import math
from dataclasses import dataclass, replace


@dataclass(frozen=True)
class DistanceDefaults:
    """Package-wide defaults for the public distance functions."""

    # Relative error for both distances (0 is exact Bottleneck only)
    tolerance: float = 1e-4

    # Wasserstein power
    power: float = 1.0

    # Powers above this are computed as Bottleneck distance
    max_wasserstein_power: float = 20.0

    # Norm used between diagram points
    internal_p: float = math.inf

    # Epsilon is divided by this after each unsuccessful phase
    epsilon_common_ratio: float = 5.0

    # Phase budget of the epsilon-scaling loop
    max_num_phases: int = 200

    # Power of the auction that seeds the Bottleneck bisection
    bottleneck_seed_power: float = 1.0

    # Loosest relative error accepted from that auction
    bottleneck_seed_delta: float = 0.01


DEFAULTS = DistanceDefaults()


@dataclass(frozen=True)
class AuctionParams:
    """
    Parameters of one auction run.

    ``initial_epsilon`` and ``epsilon_common_ratio`` left at 0 are filled in
    by :meth:`resolved` once the largest cost of the problem is known.
    """

    wasserstein_power: float = DEFAULTS.power
    delta: float = DEFAULTS.tolerance
    internal_p: float = DEFAULTS.internal_p
    initial_epsilon: float = 0.0
    epsilon_common_ratio: float = DEFAULTS.epsilon_common_ratio
    max_num_phases: int = DEFAULTS.max_num_phases
    dim: int = 2
    tolerate_max_iter_exceeded: bool = False
    return_matching: bool = False
    # Run the assignment consistency check after every phase
    debug: bool = False

    def __post_init__(self):
        if self.wasserstein_power < 1.0:
            raise ValueError(f"wasserstein_power must be >= 1, got {self.wasserstein_power}")
        if self.delta < 0.0:
            raise ValueError(f"delta must be non-negative, got {self.delta}")
        if self.initial_epsilon < 0.0:
            raise ValueError(f"initial_epsilon must be non-negative, got {self.initial_epsilon}")
        if self.epsilon_common_ratio < 0.0:
            raise ValueError(f"epsilon_common_ratio must be non-negative, got {self.epsilon_common_ratio}")
        if self.max_num_phases < 1:
            raise ValueError(f"max_num_phases must be positive, got {self.max_num_phases}")

    def resolved(self, max_val: float) -> "AuctionParams":
        """Returns a copy with zero-valued epsilon settings replaced by defaults."""
        ratio = self.epsilon_common_ratio or DEFAULTS.epsilon_common_ratio
        initial_epsilon = self.initial_epsilon
        if initial_epsilon == 0.0:
            # All costs zero: any positive epsilon gives an optimal matching
            initial_epsilon = max_val / 4 if max_val > 0 else 1.0
        return replace(self, initial_epsilon=initial_epsilon, epsilon_common_ratio=ratio)
