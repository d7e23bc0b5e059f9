import numpy as np
import pytest

from helpers import random_diagram


@pytest.fixture
def rng():
    return np.random.default_rng(42)


@pytest.fixture
def diagram_pair(rng):
    return random_diagram(rng, 12), random_diagram(rng, 9)
