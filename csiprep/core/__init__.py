"""
Core signal conditioning stages for csiprep
"""

from .phase_calibration import (
    ConjugateMultiplication,
    CsiPower,
    PhaseCalibrator,
    get_calibrator,
    register_calibrator,
)
from .csi_extractor import CSIExtractor, ExtractedCsi, TimingInfo, extract_csi
from .denoise import Denoiser, apply_frequency_filter, pca_denoise, remove_dc, sliding_windows
from .spectrum import SpectralEstimator, Spectrogram, compute_spectrogram
from .pipeline import (
    CSIPreprocessor,
    ProcessResult,
    SuiteBinding,
    get_suite_binding,
    process,
    register_suite,
)

__all__ = [
    'ConjugateMultiplication',
    'CsiPower',
    'PhaseCalibrator',
    'get_calibrator',
    'register_calibrator',
    'CSIExtractor',
    'ExtractedCsi',
    'TimingInfo',
    'extract_csi',
    'Denoiser',
    'apply_frequency_filter',
    'pca_denoise',
    'remove_dc',
    'sliding_windows',
    'SpectralEstimator',
    'Spectrogram',
    'compute_spectrogram',
    'CSIPreprocessor',
    'ProcessResult',
    'SuiteBinding',
    'get_suite_binding',
    'process',
    'register_suite',
]
