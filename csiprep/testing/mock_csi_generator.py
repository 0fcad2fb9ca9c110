"""
Synthetic CSI capture generator for testing and development.

Produces raw capture matrices in the iwl5300 column layout
(timestamp_low, bfee_count, links x subcarriers CSI, RSSI) carrying a
sinusoidal motion signature, a per-packet common phase offset and Gaussian
noise.

WARNING: The generated data does NOT represent real WiFi signals.
"""

import logging
from typing import Optional

import numpy as np

from csiprep.config.devices import DeviceProfile, get_device_profile

logger = logging.getLogger(__name__)

MOCK_MODE_BANNER = (
    "MOCK MODE ACTIVE - generating synthetic CSI, the capture does NOT represent real WiFi signals"
)


class MockCSIGenerator:
    """Generator for synthetic raw CSI captures.

    Each CSI value is ``(a + m(t)) * exp(j(theta + phi(t))) + noise`` where
    ``a`` is a static per-subcarrier amplitude, ``m(t)`` the motion
    sinusoid, ``theta`` a static per-subcarrier phase and ``phi(t)`` a
    per-packet phase offset shared by every link. Output is reproducible
    for a given seed.
    """

    def __init__(
        self,
        num_packets: int = 3000,
        num_links: int = 3,
        fs: float = 1000.0,
        motion_freq: float = 10.0,
        motion_amplitude: float = 0.5,
        noise_level: float = 0.01,
        rssi_columns: int = 0,
        phase_offsets: bool = True,
        device: str = "iwl5300",
        seed: Optional[int] = 0,
    ):
        """Initialize mock CSI generator.

        Args:
            num_packets: Number of packets (rows)
            num_links: Number of antenna links
            fs: Packet rate in Hz
            motion_freq: Frequency of the simulated motion (Hz)
            motion_amplitude: Amplitude of the motion-induced variation
            noise_level: Standard deviation of additive complex Gaussian noise
            rssi_columns: Number of trailing RSSI columns
            phase_offsets: Add a random per-packet common phase offset
            device: Device profile that fixes the column layout
            seed: Random seed, None for a fresh one
        """
        if num_packets <= 0 or num_links <= 0:
            raise ValueError("num_packets and num_links must be positive")
        if fs <= 0:
            raise ValueError("fs must be positive")
        if rssi_columns < 0:
            raise ValueError("rssi_columns must be non-negative")

        self.profile: DeviceProfile = get_device_profile(device)
        self.num_packets = num_packets
        self.num_links = num_links
        self.fs = fs
        self.motion_freq = motion_freq
        self.motion_amplitude = motion_amplitude
        self.noise_level = noise_level
        self.rssi_columns = rssi_columns
        self.phase_offsets = phase_offsets
        self.seed = seed

        self._banner_shown = False

    @property
    def num_columns(self) -> int:
        return self.profile.timing_columns + self.num_links * self.profile.subcarriers_per_link + self.rssi_columns

    def show_banner(self) -> None:
        """Log the mock mode warning (once per generator)."""
        if not self._banner_shown:
            logger.warning(MOCK_MODE_BANNER)
            self._banner_shown = True

    def time_axis(self) -> np.ndarray:
        return np.arange(self.num_packets) / self.fs

    def generate_tensor(self) -> np.ndarray:
        """Generate the CSI tensor (packets, links, subcarriers)."""
        rng = np.random.default_rng(self.seed)
        shape = (self.num_links, self.profile.subcarriers_per_link)

        amplitude = rng.uniform(0.8, 1.2, shape)
        static_phase = rng.uniform(-np.pi, np.pi, shape)

        t = self.time_axis()
        motion = self.motion_amplitude * np.sin(2 * np.pi * self.motion_freq * t)

        if self.phase_offsets:
            common_phase = rng.uniform(-np.pi, np.pi, self.num_packets)
        else:
            common_phase = np.zeros(self.num_packets)

        envelope = amplitude[np.newaxis] + motion[:, np.newaxis, np.newaxis]
        phase = static_phase[np.newaxis] + common_phase[:, np.newaxis, np.newaxis]
        tensor = envelope * np.exp(1j * phase)

        if self.noise_level > 0:
            noise_shape = (self.num_packets,) + shape
            tensor = tensor + self.noise_level * (
                rng.standard_normal(noise_shape) + 1j * rng.standard_normal(noise_shape)
            )
        return tensor

    def generate(self) -> np.ndarray:
        """Generate a raw capture matrix (packets, columns).

        Returns:
            Complex matrix in the device column layout
        """
        self.show_banner()

        tensor = self.generate_tensor()
        t = self.time_axis()

        timestamp_low = np.round(t * 1e6)
        bfee_count = np.arange(1, self.num_packets + 1, dtype=float)
        columns = [
            timestamp_low[:, np.newaxis],
            bfee_count[:, np.newaxis],
            tensor.reshape(self.num_packets, -1),
        ]

        if self.rssi_columns:
            rng = np.random.default_rng(None if self.seed is None else self.seed + 1)
            columns.append(rng.uniform(-60.0, -30.0, (self.num_packets, self.rssi_columns)))

        matrix = np.hstack(columns).astype(np.complex128)
        logger.debug(f"Generated synthetic capture with shape {matrix.shape}")
        return matrix
