"""Shared fixtures for the Spiral Stair Studio test suite."""
import sys
import os
import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from spiral_model import DEFAULT_CONFIG, StairInput
from spiral_calc import calculate


@pytest.fixture
def default_config():
    """Returns a copy of the default spiral stair configuration."""
    return DEFAULT_CONFIG.copy()


@pytest.fixture
def tall_config():
    """160" rise: needs a mid-landing."""
    config = DEFAULT_CONFIG.copy()
    config["overall_height"] = 160.0
    return config


@pytest.fixture
def default_derived():
    return calculate(StairInput.from_config(DEFAULT_CONFIG))


@pytest.fixture
def make_derived():
    """Factory: calculate() for DEFAULT_CONFIG with overrides."""
    def _make(**overrides):
        config = DEFAULT_CONFIG.copy()
        config.update(overrides)
        return calculate(StairInput.from_config(config))
    return _make
