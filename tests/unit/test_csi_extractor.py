import logging

import numpy as np
import pytest

from csiprep.config.devices import (
    DeviceProfile,
    available_devices,
    get_device_profile,
    register_device_profile,
)
from csiprep.core.csi_extractor import CSIExtractor, extract_csi
from csiprep.exceptions import MalformedInput, UnsupportedDevice


def _raw_matrix(num_packets, num_links, extra_columns=0, seed=0):
    rng = np.random.default_rng(seed)
    timing = np.column_stack([np.arange(num_packets) * 1000.0, np.arange(1, num_packets + 1)])
    csi = rng.standard_normal((num_packets, num_links * 30)) + 1j * rng.standard_normal((num_packets, num_links * 30))
    extra = rng.uniform(-60, -30, (num_packets, extra_columns))
    return np.hstack([timing, csi, extra])


class TestDeviceProfiles:
    """Device profile registry"""

    def test_iwl5300_layout(self):
        """Test the built-in iwl5300 profile"""
        profile = get_device_profile("IWL5300")

        assert profile.name == "iwl5300"
        assert profile.subcarriers_per_link == 30
        assert profile.timing_columns == 2
        assert "iwl5300" in available_devices()

    def test_unknown_device(self):
        """Test unknown devices raise UnsupportedDevice"""
        with pytest.raises(UnsupportedDevice) as exc_info:
            get_device_profile("ax210")

        assert exc_info.value.device == "ax210"

    def test_register_device_profile(self):
        """Test new layouts are added without touching extraction code"""
        profile = DeviceProfile(name="test-narrow", subcarriers_per_link=4, timing_columns=2)
        register_device_profile(profile)

        matrix = np.hstack([np.column_stack([np.zeros(10), np.arange(10)]), np.ones((10, 8))])
        extracted = extract_csi(matrix, "test-narrow")

        assert extracted.csi.shape == (10, 2, 4)
        assert extracted.rssi is None

    def test_invalid_profile(self):
        """Test profiles need a positive number of subcarriers"""
        with pytest.raises(ValueError):
            DeviceProfile(name="broken", subcarriers_per_link=0)


class TestExtractCsi:
    """CSI extraction from raw capture matrices"""

    def test_three_links_no_rssi(self):
        """Test a 92-column capture splits into three links"""
        matrix = _raw_matrix(50, 3)
        extracted = extract_csi(matrix)

        assert extracted.csi.shape == (50, 3, 30)
        assert extracted.csi.dtype == np.complex128
        assert extracted.rssi is None
        assert extracted.num_packets == 50
        assert extracted.num_links == 3
        assert extracted.num_subcarriers == 30
        np.testing.assert_array_equal(extracted.csi[:, 1, :], matrix[:, 32:62])

    def test_trailing_rssi_columns(self):
        """Test leftover columns after the last link become RSSI"""
        matrix = _raw_matrix(20, 2, extra_columns=3)
        extracted = extract_csi(matrix)

        assert extracted.num_links == 2
        assert extracted.rssi.shape == (20, 3)
        np.testing.assert_allclose(extracted.rssi, matrix[:, 62:].real)

    def test_timing_columns(self):
        """Test timing is read from the first two columns and is read-only"""
        matrix = _raw_matrix(10, 1)
        extracted = extract_csi(matrix)

        np.testing.assert_array_equal(extracted.timing.bfee_count, np.arange(1, 11))
        assert len(extracted.timing) == 10
        assert extracted.timing.is_monotonic
        with pytest.raises(ValueError):
            extracted.timing.bfee_count[0] = 99

    def test_tensor_does_not_alias_input(self):
        """Test the CSI tensor is a copy of the caller's matrix"""
        matrix = _raw_matrix(10, 1)
        original = matrix.copy()
        extracted = extract_csi(matrix)

        extracted.csi[:] = 0

        np.testing.assert_array_equal(matrix, original)

    def test_too_few_columns(self):
        """Test a matrix without a complete link block is rejected"""
        matrix = np.ones((10, 31))

        with pytest.raises(MalformedInput):
            extract_csi(matrix)

    @pytest.mark.parametrize("matrix", [
        np.ones(92),
        np.ones((0, 92)),
        np.ones((2, 3, 92)),
    ])
    def test_wrong_shape(self, matrix):
        """Test non-2D and empty matrices are rejected"""
        with pytest.raises(MalformedInput):
            extract_csi(matrix)

    def test_nan_values(self):
        """Test NaN entries are rejected"""
        matrix = _raw_matrix(10, 1)
        matrix[3, 5] = np.nan

        with pytest.raises(MalformedInput, match="NaN"):
            extract_csi(matrix)

    def test_non_numeric_input(self):
        """Test non-numeric matrices are rejected"""
        with pytest.raises(MalformedInput):
            extract_csi(np.full((4, 92), "x"))


class TestCSIExtractor:
    """Class wrapper around extract_csi"""

    def test_warns_on_non_monotonic_bfee_count(self, caplog):
        """Test decreasing bfee_count is logged but not modified"""
        matrix = _raw_matrix(10, 1)
        matrix[5, 1] = 1.0
        extractor = CSIExtractor(logger=logging.getLogger("test.csi_extractor"))

        with caplog.at_level(logging.WARNING, logger="test.csi_extractor"):
            extracted = extractor.extract(matrix)

        assert "bfee_count" in caplog.text
        assert extracted.timing.bfee_count[5] == 1.0

    def test_bfee_count_wraparound_is_not_a_reorder(self, caplog):
        """Test the 16-bit bfee_count rolling over from 65535 to 0 is not logged"""
        matrix = _raw_matrix(10, 1)
        matrix[:, 1] = (np.arange(10) + 65531) % 65536
        extractor = CSIExtractor(logger=logging.getLogger("test.csi_extractor"))

        with caplog.at_level(logging.WARNING, logger="test.csi_extractor"):
            extracted = extractor.extract(matrix)

        assert extracted.timing.bfee_count[4] == 65535.0
        assert extracted.timing.bfee_count[5] == 0.0
        assert extracted.timing.is_monotonic
        assert "bfee_count" not in caplog.text

    def test_repeated_bfee_count_across_wraparound(self):
        """Test a repeated counter value is still out of order after a rollover"""
        matrix = _raw_matrix(6, 1)
        matrix[:, 1] = [65534, 65535, 0, 0, 1, 2]

        assert not extract_csi(matrix).timing.is_monotonic

    def test_unknown_device(self):
        """Test constructing an extractor for an unknown device"""
        with pytest.raises(UnsupportedDevice):
            CSIExtractor("nexmon")
