"""Device profile registry mapping device names to CSI column layouts."""

import logging
from dataclasses import dataclass
from typing import Dict, List, Union

from csiprep.exceptions import UnsupportedDevice

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeviceProfile:
    """Column layout of one capture device.

    Attributes:
        name: Registry key, lower case
        subcarriers_per_link: CSI columns per antenna link
        timing_columns: Leading columns holding timestamp_low and bfee_count
    """
    name: str
    subcarriers_per_link: int = 30
    timing_columns: int = 2

    def __post_init__(self):
        if self.subcarriers_per_link <= 0:
            raise ValueError("subcarriers_per_link must be positive")
        if self.timing_columns < 0:
            raise ValueError("timing_columns must be non-negative")


# Intel Wi-Fi Link 5300 (Linux 802.11n CSI Tool)
IWL5300 = DeviceProfile(name="iwl5300", subcarriers_per_link=30, timing_columns=2)

_DEVICE_PROFILES: Dict[str, DeviceProfile] = {
    IWL5300.name: IWL5300,
}


def get_device_profile(name: Union[str, DeviceProfile]) -> DeviceProfile:
    """Look up a device profile by name (case-insensitive).

    Raises:
        UnsupportedDevice: If no profile is registered under ``name``
    """
    if isinstance(name, DeviceProfile):
        return name
    if not isinstance(name, str):
        raise UnsupportedDevice(repr(name), available_devices())
    profile = _DEVICE_PROFILES.get(name.strip().lower())
    if profile is None:
        raise UnsupportedDevice(name, available_devices())
    return profile


def register_device_profile(profile: DeviceProfile) -> None:
    """Register (or replace) a device profile."""
    key = profile.name.lower()
    if key in _DEVICE_PROFILES:
        logger.warning(f"Replacing device profile '{key}'")
    _DEVICE_PROFILES[key] = profile


def available_devices() -> List[str]:
    return sorted(_DEVICE_PROFILES)
