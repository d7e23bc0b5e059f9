from .api import wasserstein_auction, RUNNERS
from .oracle import AuctionOracle
from .runner import AuctionResult, AuctionRunnerGS
