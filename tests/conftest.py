"""Shared fixtures for csiprep tests."""

import numpy as np
import pytest

from csiprep.testing import MockCSIGenerator


@pytest.fixture
def mock_generator():
    """Synthetic 3-link capture at 1 kHz with a 10 Hz motion signature."""
    return MockCSIGenerator(num_packets=3000, num_links=3, fs=1000.0, motion_freq=10.0, seed=7)


@pytest.fixture
def csi_matrix(mock_generator):
    """Raw 3000 x 92 capture matrix."""
    return mock_generator.generate()


@pytest.fixture
def csi_matrix_with_rssi():
    """Raw capture with three trailing RSSI columns."""
    return MockCSIGenerator(num_packets=3000, num_links=3, rssi_columns=3, seed=11).generate()


@pytest.fixture
def rng():
    return np.random.default_rng(1234)
