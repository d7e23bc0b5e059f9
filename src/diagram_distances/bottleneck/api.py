from typing import List, Tuple, Union

from ..auction.runner import AuctionRunnerGS
from ..config import DEFAULTS, AuctionParams
from ..logger import get_logger
from ..utils import PointSet
from .exact import bottleneck_bisection, matching_lower_bound

log = get_logger(__name__)


def bottleneck_matching_distance(
    bidders: PointSet,
    items: PointSet,
    tol: float = DEFAULTS.tolerance,
    internal_p: float = DEFAULTS.internal_p,
    return_matching: bool = False,
) -> Union[float, Tuple[float, List[Tuple[int, int]]]]:
    """
    Bottleneck distance between two padded point sets.

    An auction at ``DEFAULTS.bottleneck_seed_power`` provides a perfect
    matching whose largest distance bounds the answer from above; the
    threshold bisection then narrows it down to the exact value (tol = 0)
    or to within a relative error of ``tol``.
    """
    if tol < 0:
        raise ValueError(f"tol must be non-negative, got {tol}")
    if len(bidders) != len(items):
        raise ValueError(f"Bidders and items must have equal size. Got {len(bidders)} and {len(items)}.")

    if len(bidders) == 0:
        return (0.0, []) if return_matching else 0.0

    params = AuctionParams(
        wasserstein_power=DEFAULTS.bottleneck_seed_power,
        delta=max(tol, DEFAULTS.bottleneck_seed_delta),
        internal_p=internal_p,
        tolerate_max_iter_exceeded=True,
    )
    runner = AuctionRunnerGS(bidders, items, params)
    seed = runner.run_auction()
    distances = runner.oracle.distances.numpy()
    lower = matching_lower_bound(distances)

    value, matching = bottleneck_bisection(distances, tol=tol, lower=lower, upper=seed.max_cost)
    log.debug(
        "bottleneck_bisection_complete",
        size=len(bidders),
        lower=lower,
        upper=seed.max_cost,
        value=value,
        tol=tol,
    )

    if return_matching:
        pairs = [(int(bidders.ids[b]), int(items.ids[i])) for b, i in enumerate(matching)]
        return value, pairs
    return value
