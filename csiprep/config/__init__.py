"""
Configuration package: runtime settings, device profiles and suite configs
"""

from csiprep.config.devices import (
    DeviceProfile,
    available_devices,
    get_device_profile,
    register_device_profile,
)
from csiprep.config.settings import Settings, get_settings, get_test_settings
from csiprep.config.suites import (
    BaseSuiteConfig,
    CARMConfig,
    InFitConfig,
    SuiteConfig,
    WiDanceConfig,
    available_suites,
    default_config,
    resolve_config,
)

__all__ = [
    'DeviceProfile',
    'available_devices',
    'get_device_profile',
    'register_device_profile',
    'Settings',
    'get_settings',
    'get_test_settings',
    'BaseSuiteConfig',
    'CARMConfig',
    'InFitConfig',
    'SuiteConfig',
    'WiDanceConfig',
    'available_suites',
    'default_config',
    'resolve_config',
]
