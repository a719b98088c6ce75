"""Shared pytest fixtures for relay tests."""

import pytest

from lifecycle import LifecycleController
from state import RelayState

from .helpers import RelayHarness


@pytest.fixture
def state():
    return RelayState()


@pytest.fixture
def controller(state):
    return LifecycleController(state)


@pytest.fixture
def harness():
    return RelayHarness()
