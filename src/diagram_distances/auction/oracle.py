import torch
from typing import Optional, Tuple

from ..utils import PointSet, distance_matrix


class AuctionOracle:
    """
    Owns the item prices of one auction and answers bid requests.

    Costs are cached as a dense (n, n) weight tensor, weights[b, i] being
    dist(bidder b, item i) ** wasserstein_power. Bidders look for the item
    with the smallest cost + price.
    """

    def __init__(self, bidders: PointSet, items: PointSet, wasserstein_power: float = 1.0, internal_p: float = float("inf")):
        self.num_items = len(items)
        self.wasserstein_power = wasserstein_power
        self.distances = distance_matrix(bidders, items, internal_p)
        self.weights = self.distances.pow(wasserstein_power)
        self.prices = torch.zeros(self.num_items, dtype=torch.float64)
        self.epsilon = 1.0
        # Upper bound on every bidder/item cost
        self.max_val_ = float(self.weights.max()) if self.weights.numel() else 0.0

    def get_optimal_bid(self, bidder_idx: int) -> Tuple[int, float]:
        """
        Args:
            bidder_idx: internal index of the bidding bidder.

        Returns:
            (item_idx, bid_value) where item_idx is the first item with the
            smallest cost + price and the bid raises its price by the margin
            to the runner-up plus epsilon.
        """
        if self.num_items == 0:
            raise ValueError("Cannot bid: the item set is empty.")

        values = self.weights[bidder_idx] + self.prices

        # argmin returns the first minimum, so ties go to the lowest index
        best_item_idx = int(torch.argmin(values))
        best_value = values[best_item_idx].item()

        if self.num_items > 1:
            values[best_item_idx] = float("inf")
            second_best_value = values.min().item()
        else:
            second_best_value = best_value

        bid_value = self.prices[best_item_idx].item() + (second_best_value - best_value) + self.epsilon
        return best_item_idx, bid_value

    def set_price(self, item_idx: int, new_price: float):
        assert new_price >= self.prices[item_idx].item(), "prices only go up within a phase"
        self.prices[item_idx] = new_price

    def adjust_prices(self):
        # Shifting all prices by a constant keeps every bidder's preference order
        if self.num_items:
            self.prices -= self.prices.min()

    def set_prices(self, prices):
        prices = torch.as_tensor(prices, dtype=torch.float64).flatten()
        if prices.numel() != self.num_items:
            raise ValueError(f"Expected {self.num_items} prices, got {prices.numel()}")
        self.prices = prices.clone()

    def get_prices(self) -> torch.Tensor:
        return self.prices.clone()

    def set_epsilon(self, epsilon: float):
        if not epsilon > 0.0:
            raise ValueError(f"epsilon must be strictly positive, got {epsilon}")
        self.epsilon = epsilon

    def get_epsilon(self) -> float:
        return self.epsilon

    def get_cost(self, bidder_idx: int, item_idx: int) -> float:
        return self.weights[bidder_idx, item_idx].item()

    def get_distance(self, bidder_idx: int, item_idx: int) -> float:
        return self.distances[bidder_idx, item_idx].item()
