import numpy as np
import pytest

from lsq_descent import make_problem


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def problem():
    """The 10 x 20 standard-normal problem with x0 = 0."""
    return make_problem(10, 20, seed=42)
