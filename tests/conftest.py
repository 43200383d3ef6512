"""
Shared pytest fixtures.
"""

import copy

import pytest

from tests.builders import FakeClock, PIXEL_CONFIG, V_SIGN, make_hand


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def v_hand():
    return make_hand(V_SIGN)


@pytest.fixture
def fist_hand():
    return make_hand()


@pytest.fixture
def pixel_config():
    return copy.deepcopy(PIXEL_CONFIG)


@pytest.fixture
def collected():
    """Sink that stores every emitted detection."""
    results = []

    def sink(result):
        results.append(result)

    sink.results = results
    return sink
