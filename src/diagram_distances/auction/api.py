from typing import Optional

from ..config import AuctionParams
from ..utils import PointSet
from .runner import AuctionResult, AuctionRunnerGS

# Registry of auction runners. Only the Gauss-Seidel runner exists today.
RUNNERS = {
    'gs': AuctionRunnerGS,
}


def wasserstein_auction(
    bidders: PointSet,
    items: PointSet,
    params: Optional[AuctionParams] = None,
    prices=None,
    runner: str = 'gs',
) -> AuctionResult:
    """
    Matches two padded point sets of equal size with the epsilon-scaling auction.

    Args:
        bidders, items: output of ``utils.pad_diagrams``.
        params: auction parameters; ``params.delta`` is the relative error.
        prices: optional item prices from an earlier run (warm start).
        runner: key of ``RUNNERS``.

    Returns:
        AuctionResult with ``cost`` (sum of distance ** p), ``distance``
        and, if ``params.return_matching``, the (bidder_id, item_id) pairs.
    """
    if runner not in RUNNERS:
        raise ValueError(f"Runner '{runner}' not available. Options: {list(RUNNERS.keys())}")

    auction = RUNNERS[runner](bidders, items, params or AuctionParams(), prices=prices)
    return auction.run_auction()
