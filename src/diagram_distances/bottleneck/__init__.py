from .api import bottleneck_matching_distance
from .exact import bottleneck_bisection, matching_lower_bound, threshold_matching
