"""CSI extraction from raw capture matrices."""

import logging
from dataclasses import dataclass
from typing import Optional, Union

import numpy as np

from csiprep.config.devices import DeviceProfile, get_device_profile
from csiprep.exceptions import MalformedInput

logger = logging.getLogger(__name__)

BFEE_COUNT_MODULUS = 2 ** 16


def _read_only(array: np.ndarray) -> np.ndarray:
    array.flags.writeable = False
    return array


@dataclass(frozen=True)
class TimingInfo:
    """Per-packet timing columns. Read-only, used for validation only."""
    timestamp_low: np.ndarray
    bfee_count: np.ndarray

    def __len__(self) -> int:
        return len(self.timestamp_low)

    @property
    def is_monotonic(self) -> bool:
        """Whether bfee_count strictly increases from packet to packet.

        The counter is 16 bits wide, so 65535 followed by 0 is an increase.
        Steps are taken modulo 2**16; a step in the lower half of that range
        is forward, anything else is a repeat or a reorder.
        """
        steps = np.mod(np.diff(self.bfee_count), BFEE_COUNT_MODULUS)
        return bool(np.all((steps > 0) & (steps < BFEE_COUNT_MODULUS // 2)))


@dataclass(frozen=True)
class ExtractedCsi:
    """Data structure for one parsed capture."""
    timing: TimingInfo
    csi: np.ndarray
    rssi: Optional[np.ndarray]
    device: str

    @property
    def num_packets(self) -> int:
        return self.csi.shape[0]

    @property
    def num_links(self) -> int:
        return self.csi.shape[1]

    @property
    def num_subcarriers(self) -> int:
        return self.csi.shape[2]


def validate_csi_matrix(csi_matrix: np.ndarray) -> np.ndarray:
    """Check that ``csi_matrix`` is a non-empty, NaN-free numeric 2-D array.

    Returns:
        The input as an ndarray

    Raises:
        MalformedInput: If any check fails
    """
    if not isinstance(csi_matrix, np.ndarray):
        try:
            csi_matrix = np.asarray(csi_matrix)
        except (TypeError, ValueError) as e:
            raise MalformedInput(f"CSI matrix is not array-like: {e}")

    if csi_matrix.dtype.kind not in "iufc":
        raise MalformedInput(f"CSI matrix must be numeric, got dtype {csi_matrix.dtype}")

    if csi_matrix.ndim != 2:
        raise MalformedInput(f"CSI matrix must be 2D (packets, columns), got shape {csi_matrix.shape}")

    if csi_matrix.size == 0:
        raise MalformedInput(f"CSI matrix cannot be empty, got shape {csi_matrix.shape}")

    if np.any(np.isnan(csi_matrix)):
        raise MalformedInput("CSI matrix contains NaN values")

    return csi_matrix


def extract_csi(
    csi_matrix: np.ndarray,
    profile: Union[str, DeviceProfile] = "iwl5300",
) -> ExtractedCsi:
    """Split a raw capture matrix into timing, CSI tensor and RSSI.

    Columns are laid out as ``[timestamp_low, bfee_count, link 0 subcarriers,
    link 1 subcarriers, ..., rssi...]``. Any columns after the last complete
    link block are RSSI.

    Args:
        csi_matrix: Raw capture, one row per packet
        profile: Device profile or its registered name

    Returns:
        Extracted capture. The CSI tensor is a fresh complex128 array of shape
        (packets, links, subcarriers) that never aliases ``csi_matrix``.

    Raises:
        MalformedInput: If the matrix is invalid or holds no complete link
        UnsupportedDevice: If ``profile`` names an unknown device
    """
    profile = get_device_profile(profile)
    csi_matrix = validate_csi_matrix(csi_matrix)

    num_packets, num_columns = csi_matrix.shape
    width = profile.subcarriers_per_link
    csi_columns = num_columns - profile.timing_columns
    num_links = csi_columns // width if csi_columns > 0 else 0

    if num_links <= 0:
        raise MalformedInput(
            f"{profile.name} captures need {profile.timing_columns} timing columns plus at least "
            f"one block of {width} CSI columns, got {num_columns} column(s)"
        )

    csi_start = profile.timing_columns
    csi_end = csi_start + num_links * width

    timing = TimingInfo(
        timestamp_low=_read_only(np.real(csi_matrix[:, 0]).astype(float)),
        bfee_count=_read_only(np.real(csi_matrix[:, 1]).astype(float)),
    )

    csi = np.array(csi_matrix[:, csi_start:csi_end], dtype=np.complex128, copy=True)
    csi = csi.reshape(num_packets, num_links, width)

    rssi = None
    if csi_end < num_columns:
        rssi = _read_only(np.array(np.real(csi_matrix[:, csi_end:]), dtype=float, copy=True))

    return ExtractedCsi(timing=timing, csi=csi, rssi=rssi, device=profile.name)


class CSIExtractor:
    """Extracts CSI tensors from raw capture matrices of one device type."""

    def __init__(self, device: Union[str, DeviceProfile] = "iwl5300", logger: Optional[logging.Logger] = None):
        """Initialize CSI extractor.

        Args:
            device: Device profile or its registered name
            logger: Optional logger instance

        Raises:
            UnsupportedDevice: If the device is unknown
        """
        self.profile = get_device_profile(device)
        self.logger = logger or logging.getLogger(__name__)

    def extract(self, csi_matrix: np.ndarray) -> ExtractedCsi:
        """Extract timing, CSI and RSSI from ``csi_matrix``.

        Raises:
            MalformedInput: If the matrix does not match the device layout
        """
        extracted = extract_csi(csi_matrix, self.profile)

        if extracted.num_packets > 1 and not extracted.timing.is_monotonic:
            self.logger.warning("bfee_count is not strictly increasing, packets may be dropped or reordered")

        self.logger.debug(
            f"Extracted {extracted.num_packets} packets, {extracted.num_links} link(s) x "
            f"{extracted.num_subcarriers} subcarriers, "
            f"{0 if extracted.rssi is None else extracted.rssi.shape[1]} RSSI column(s)"
        )
        return extracted
