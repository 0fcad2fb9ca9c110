"""
csiprep
=======

Signal conditioning for WiFi channel state information (CSI) captures.

Turns a raw capture matrix into a denoised, phase-calibrated spectrogram
using one of the InFit, WiDance or CARM preprocessing suites.

Example usage:
    >>> import csiprep
    >>> result = csiprep.process(matrix, {"suite": "carm", "fs": 500})
    >>> spectrogram, frequencies, times = result[:3]

For CLI usage:
    $ csiprep process capture.npy -o spectrogram.npz --suite widance
    $ csiprep suites
"""

import logging

__version__ = "0.3.0"
__author__ = "csiprep developers"
__license__ = "MIT"

# Package metadata
__title__ = "csiprep"
__description__ = "Denoising, phase calibration and STFT preprocessing for WiFi CSI captures"

# Version info tuple
__version_info__ = tuple(int(x) for x in __version__.split('.'))

from csiprep.exceptions import (
    InsufficientSamples,
    InvalidParameter,
    MalformedInput,
    PreprocessingError,
    UnsupportedDevice,
    UnsupportedField,
    UnsupportedSuite,
)
from csiprep.config.suites import available_suites, default_config, resolve_config
from csiprep.core.pipeline import CSIPreprocessor, ProcessResult, process

__all__ = [
    '__version__',
    'process',
    'resolve_config',
    'default_config',
    'available_suites',
    'CSIPreprocessor',
    'ProcessResult',
    'PreprocessingError',
    'InvalidParameter',
    'UnsupportedField',
    'UnsupportedSuite',
    'UnsupportedDevice',
    'MalformedInput',
    'InsufficientSamples',
]

# Library logging stays silent unless the application configures it
logging.getLogger(__name__).addHandler(logging.NullHandler())
