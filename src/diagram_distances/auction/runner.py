import heapq
import math
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import torch

from ..config import AuctionParams
from ..errors import AssignmentConsistencyError, ConvergenceError
from ..logger import get_logger
from ..utils import PointSet
from .oracle import AuctionOracle

log = get_logger(__name__)


@dataclass
class AuctionResult:
    cost: float = 0.0
    distance: float = 0.0
    # Largest ground distance among matched pairs
    max_cost: float = 0.0
    num_rounds: int = 0
    num_phases: int = 0
    start_epsilon: float = 0.0
    final_epsilon: float = 0.0
    final_relative_error: float = math.inf
    matching: List[Tuple[int, int]] = field(default_factory=list)
    prices: Optional[torch.Tensor] = None

    def compute_distance(self, wasserstein_power: float):
        self.distance = self.cost ** (1.0 / wasserstein_power)


class AuctionRunnerGS:
    """
    Gauss-Seidel auction: one unassigned bidder bids at a time.

    The runner is the only writer of the two assignment maps. An entry of
    None means unassigned; ``unassigned_bidders`` always holds exactly the
    bidders whose entry is None.
    """

    def __init__(self, bidders: PointSet, items: PointSet, params: AuctionParams = None, prices=None):
        if len(bidders) != len(items):
            raise ValueError(f"Bidders and items must have equal size. Got {len(bidders)} and {len(items)}.")

        params = params or AuctionParams()
        self.bidders = bidders
        self.items = items
        self.num_bidders = len(bidders)
        self.num_items = len(items)
        self.oracle = AuctionOracle(bidders, items, params.wasserstein_power, params.internal_p)
        if prices is not None:
            self.oracle.set_prices(prices)
        self.params = params.resolved(self.oracle.max_val_)

        self.bidders_to_items: List[Optional[int]] = [None] * self.num_bidders
        self.items_to_bidders: List[Optional[int]] = [None] * self.num_items
        self.unassigned_bidders = set()
        # Min-heap over the same bidders, so the lowest index bids first
        self._bid_queue: List[int] = []
        self.result = AuctionResult()
        self.is_distance_computed = False

    def assign_item_to_bidder(self, item_idx: int, bidder_idx: int):
        self.result.num_rounds += 1
        # Only unassigned bidders bid
        assert self.bidders_to_items[bidder_idx] is None
        old_item_owner = self.items_to_bidders[item_idx]

        self.bidders_to_items[bidder_idx] = item_idx
        self.items_to_bidders[item_idx] = bidder_idx
        self.unassigned_bidders.discard(bidder_idx)

        # Item was stolen: its previous owner bids again
        if old_item_owner is not None:
            self.bidders_to_items[old_item_owner] = None
            self.unassigned_bidders.add(old_item_owner)
            heapq.heappush(self._bid_queue, old_item_owner)

    def flush_assignment(self):
        """Unassigns everybody. Only valid once the previous phase produced a perfect matching."""
        assert not self.unassigned_bidders
        self.bidders_to_items = [None] * self.num_bidders
        self.items_to_bidders = [None] * self.num_items
        self.unassigned_bidders = set(range(self.num_bidders))
        self._bid_queue = list(range(self.num_bidders))
        self.oracle.adjust_prices()

    def run_auction_phase(self):
        self.result.num_phases += 1
        while self._bid_queue:
            bidder_idx = heapq.heappop(self._bid_queue)
            item_idx, bid_value = self.oracle.get_optimal_bid(bidder_idx)
            self.assign_item_to_bidder(item_idx, bidder_idx)
            self.oracle.set_price(item_idx, bid_value)

        if self.params.debug:
            self.sanity_check(require_perfect=True)

    def run_auction_phases(self):
        params = self.params
        result = self.result
        result.final_relative_error = math.inf

        self.oracle.set_epsilon(params.initial_epsilon)
        result.start_epsilon = self.oracle.get_epsilon()
        result.final_epsilon = self.oracle.get_epsilon()

        for phase_num in range(params.max_num_phases):
            self.flush_assignment()
            self.run_auction_phase()
            current_result = self.get_distance_to_qth_power_internal()

            if current_result == 0.0:
                # Costs are non-negative, nothing beats a zero-cost matching
                result.final_relative_error = 0.0
                self._log_phase(phase_num, current_result)
                return

            denominator = current_result - self.num_bidders * self.oracle.get_epsilon()
            current_result = current_result ** (1.0 / params.wasserstein_power)
            if denominator > 0:
                denominator = denominator ** (1.0 / params.wasserstein_power)
                result.final_relative_error = (current_result - denominator) / denominator

            self._log_phase(phase_num, current_result)
            if result.final_relative_error <= params.delta:
                return

            next_epsilon = self.oracle.get_epsilon() / params.epsilon_common_ratio
            if next_epsilon < self._min_epsilon():
                # Bids would no longer move prices in float64, keep this matching
                log.warning(
                    "auction_epsilon_floor_reached",
                    num_phases=result.num_phases,
                    epsilon=self.oracle.get_epsilon(),
                    relative_error=result.final_relative_error,
                    delta=params.delta,
                )
                return
            self.oracle.set_epsilon(next_epsilon)
            result.final_epsilon = next_epsilon

        if params.tolerate_max_iter_exceeded:
            log.warning(
                "auction_max_phases_exceeded",
                num_phases=result.num_phases,
                max_num_phases=params.max_num_phases,
                relative_error=result.final_relative_error,
                delta=params.delta,
            )
        else:
            raise ConvergenceError(
                f"Auction stopped after {result.num_phases} of {params.max_num_phases} phases with relative "
                f"error {result.final_relative_error} > {params.delta}. Current result is "
                f"{result.cost ** (1.0 / params.wasserstein_power)}.",
                result=result,
            )

    def _min_epsilon(self) -> float:
        scale = max(1.0, self.oracle.max_val_, float(self.oracle.prices.abs().max()) if self.num_items else 0.0)
        return torch.finfo(torch.float64).eps * scale * self.num_bidders

    def _log_phase(self, phase_num: int, distance: float):
        log.debug(
            "auction_phase_complete",
            phase=phase_num,
            epsilon=self.oracle.get_epsilon(),
            distance=distance,
            relative_error=self.result.final_relative_error,
            rounds=self.result.num_rounds,
        )

    def run_auction(self) -> AuctionResult:
        if self.num_bidders == 1:
            # Nothing to bid for
            self.unassigned_bidders = {0}
            self.assign_item_to_bidder(0, 0)
            self.result.cost = self.oracle.get_cost(0, 0)
            self.result.final_relative_error = 0.0
        elif self.num_bidders > 1:
            self.run_auction_phases()
        else:
            self.result.final_relative_error = 0.0

        result = self.result
        result.compute_distance(self.params.wasserstein_power)
        result.max_cost = max(
            (self.oracle.get_distance(b, i) for b, i in enumerate(self.bidders_to_items)),
            default=0.0,
        )
        result.prices = self.oracle.get_prices()
        self.is_distance_computed = True

        if self.params.return_matching:
            result.matching = [
                (int(self.bidders.ids[bidder_idx]), int(self.items.ids[item_idx]))
                for bidder_idx, item_idx in enumerate(self.bidders_to_items)
            ]
        return result

    def get_item_bidder_cost(self, item_idx: Optional[int], bidder_idx: Optional[int], tolerate_invalid_idx: bool = False) -> float:
        if item_idx is not None and bidder_idx is not None:
            return self.oracle.get_cost(bidder_idx, item_idx)
        if tolerate_invalid_idx:
            return 0.0
        raise AssignmentConsistencyError(
            f"Invalid index in get_item_bidder_cost, item_idx = {item_idx}, bidder_idx = {bidder_idx}"
        )

    def get_distance_to_qth_power_internal(self) -> float:
        self.result.cost = sum(
            self.get_item_bidder_cost(item_idx, bidder_idx)
            for bidder_idx, item_idx in enumerate(self.bidders_to_items)
        )
        return self.result.cost

    def get_wasserstein_cost(self) -> float:
        assert self.is_distance_computed
        return self.result.cost

    def get_wasserstein_distance(self) -> float:
        assert self.is_distance_computed
        return self.result.cost ** (1.0 / self.params.wasserstein_power)

    def sanity_check(self, require_perfect: bool = False):
        """
        Verifies that the two assignment maps are mutually consistent and
        duplicate-free, and that ``unassigned_bidders`` mirrors the bidder map.
        """
        if len(self.bidders_to_items) != self.num_bidders:
            raise AssignmentConsistencyError(
                f"Wrong size of bidders_to_items, must be {self.num_bidders}, is {len(self.bidders_to_items)}"
            )
        if len(self.items_to_bidders) != self.num_items:
            raise AssignmentConsistencyError(
                f"Wrong size of items_to_bidders, must be {self.num_items}, is {len(self.items_to_bidders)}"
            )

        seen_items = set()
        for bidder_idx, item_idx in enumerate(self.bidders_to_items):
            if item_idx is None:
                continue
            if not 0 <= item_idx < self.num_items:
                raise AssignmentConsistencyError(f"Bidder {bidder_idx} holds out-of-range item {item_idx}")
            if item_idx in seen_items:
                raise AssignmentConsistencyError(f"Item {item_idx} appears in bidders_to_items more than once")
            seen_items.add(item_idx)
            if self.items_to_bidders[item_idx] != bidder_idx:
                raise AssignmentConsistencyError(
                    f"Inconsistency: bidder_idx = {bidder_idx}, item_idx in bidders_to_items = {item_idx}, "
                    f"bidder_idx in items_to_bidders = {self.items_to_bidders[item_idx]}"
                )

        seen_bidders = set()
        for item_idx, bidder_idx in enumerate(self.items_to_bidders):
            if bidder_idx is None:
                continue
            if bidder_idx in seen_bidders:
                raise AssignmentConsistencyError(f"Bidder {bidder_idx} appears in items_to_bidders more than once")
            seen_bidders.add(bidder_idx)
            if not 0 <= bidder_idx < self.num_bidders or self.bidders_to_items[bidder_idx] != item_idx:
                raise AssignmentConsistencyError(
                    f"Inconsistency: item_idx = {item_idx}, bidder_idx in items_to_bidders = {bidder_idx}"
                )

        unassigned = {b for b, i in enumerate(self.bidders_to_items) if i is None}
        if unassigned != set(self.unassigned_bidders):
            raise AssignmentConsistencyError("unassigned_bidders does not mirror bidders_to_items")
        if require_perfect and unassigned:
            raise AssignmentConsistencyError("Auction did not give a perfect matching")
