"""Suite orchestration and the public ``process`` entry point.

A suite binds a configuration class to an ordered sequence of stages. The
preprocessor validates that a capture can support every stage before any
numeric work starts, then runs the stages in order and returns a
:class:`ProcessResult`.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, NamedTuple, Optional, Tuple, Type

import numpy as np

from csiprep.config.settings import get_settings
from csiprep.config.suites import (
    BaseSuiteConfig,
    CARMConfig,
    InFitConfig,
    SuiteConfig,
    WiDanceConfig,
    register_suite_config,
    resolve_config,
)
from csiprep.core.csi_extractor import CSIExtractor, ExtractedCsi, TimingInfo
from csiprep.core.denoise import Denoiser, design_filter, filter_padlen
from csiprep.core.phase_calibration import ConjugateMultiplication, get_calibrator
from csiprep.core.spectrum import SpectralEstimator, Spectrogram
from csiprep.exceptions import InsufficientSamples, InvalidParameter, UnsupportedSuite

logger = logging.getLogger(__name__)

STAGES = ("calibrate", "denoise", "spectrum")
DEFAULT_STAGES = STAGES


@dataclass(frozen=True)
class SuiteBinding:
    """A named suite: its configuration class and ordered stage names."""
    name: str
    config_class: Type[BaseSuiteConfig]
    stages: Tuple[str, ...] = DEFAULT_STAGES

    def __post_init__(self):
        unknown = [stage for stage in self.stages if stage not in STAGES]
        if unknown:
            raise ValueError(f"Unknown stage(s) {unknown}, must be drawn from {list(STAGES)}")
        if not self.stages or self.stages[-1] != "spectrum":
            raise ValueError("The last stage of a suite must be 'spectrum'")


SUITES: Dict[str, SuiteBinding] = {}


def register_suite(binding: SuiteBinding) -> None:
    """Register a suite binding and make its configuration resolvable."""
    if binding.config_class.suite.lower() != binding.name.lower():
        raise ValueError(
            f"Suite name {binding.name!r} does not match its configuration class "
            f"({binding.config_class.suite!r})"
        )
    key = binding.name.lower()
    if key in SUITES:
        logger.warning(f"Replacing registered suite {binding.name}")
    SUITES[key] = binding
    register_suite_config(binding.config_class)


def get_suite_binding(name: str) -> SuiteBinding:
    """Look up a suite binding by name (case-insensitive).

    Raises:
        UnsupportedSuite: If no suite is registered under ``name``
    """
    binding = SUITES.get(str(name).strip().lower()) if isinstance(name, str) else None
    if binding is None:
        raise UnsupportedSuite(str(name), [b.name for b in SUITES.values()])
    return binding


class ProcessResult(NamedTuple):
    """Output of one preprocessing run."""
    spectrogram: np.ndarray
    frequencies: np.ndarray
    times: np.ndarray
    timing: TimingInfo
    rssi: Optional[np.ndarray]
    config: SuiteConfig


class CSIPreprocessor:
    """Runs one suite's stages over extracted captures."""

    def __init__(
        self,
        config: SuiteConfig,
        logger: Optional[logging.Logger] = None,
        max_workers: int = 1,
    ):
        """Initialize preprocessor.

        Args:
            config: Resolved suite configuration
            logger: Optional logger instance
            max_workers: Threads used for per-channel filtering and STFT

        Raises:
            UnsupportedSuite: If the configuration's suite is not registered
        """
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self.max_workers = max(1, int(max_workers))
        self.binding = get_suite_binding(config.suite)

        self.extractor = CSIExtractor(config.device, logger=self.logger)
        self.calibrator = get_calibrator(config.phase_calibration, logger=self.logger)
        self.denoiser = Denoiser(config, logger=self.logger, max_workers=self.max_workers)
        self.estimator = SpectralEstimator(config, logger=self.logger, max_workers=self.max_workers)

        self._stage_handlers: Dict[str, Callable[[Any], Any]] = {
            "calibrate": self._calibrate,
            "denoise": self.denoiser.denoise,
            "spectrum": self.estimator.estimate,
        }

    def _calibrate(self, tensor: np.ndarray) -> np.ndarray:
        return self.calibrator.calibrate(tensor, self.config)

    def _uses_reference_link(self) -> bool:
        return (
            "calibrate" in self.binding.stages
            and self.config.phase_calibration == ConjugateMultiplication.name
            and not self.config.antenna_selection
        )

    def check_support(self, extracted: ExtractedCsi) -> None:
        """Verify that a capture is long and wide enough for every stage.

        Raises:
            InsufficientSamples: If the record is shorter than a stage requires
            InvalidParameter: If a PCA component or the reference link does not
                exist in this capture
        """
        config = self.config
        num_packets = extracted.num_packets
        num_channels = extracted.num_links * extracted.num_subcarriers

        if num_packets < config.pca_window:
            raise InsufficientSamples("pca", config.pca_window, num_packets)

        if num_packets < config.stft_window:
            raise InsufficientSamples("stft", config.stft_window, num_packets)

        padlen = filter_padlen(design_filter(config.fs, config.filter_type, config.passband))
        if num_packets <= padlen:
            raise InsufficientSamples("filter", padlen + 1, num_packets)

        highest = max(config.pca_components)
        if highest > num_channels:
            raise InvalidParameter(
                "pca", f"component {highest} exceeds the {num_channels} channel(s) of the capture"
            )

        if self._uses_reference_link() and config.reference_link >= extracted.num_links:
            raise InvalidParameter(
                "reference_link",
                f"link {config.reference_link} does not exist, capture has {extracted.num_links} link(s)",
            )

    def run(self, extracted: ExtractedCsi) -> ProcessResult:
        """Run the bound stages over an extracted capture."""
        data: Any = extracted.csi
        for stage in self.binding.stages:
            self.logger.debug(f"{self.config.suite}: running stage '{stage}'")
            data = self._stage_handlers[stage](data)

        spectrogram: Spectrogram = data
        self.logger.info(
            f"{self.config.suite}: {extracted.num_packets} packets x {extracted.num_links} link(s) -> "
            f"spectrogram {spectrogram.data.shape[0]}x{spectrogram.data.shape[1]}"
        )
        return ProcessResult(
            spectrogram=spectrogram.data,
            frequencies=spectrogram.frequencies,
            times=spectrogram.times,
            timing=extracted.timing,
            rssi=extracted.rssi,
            config=self.config,
        )

    def process_matrix(self, csi_matrix: np.ndarray) -> ProcessResult:
        """Extract, check and run a raw capture matrix."""
        extracted = self.extractor.extract(csi_matrix)
        self.check_support(extracted)
        return self.run(extracted)


def process(
    csi_matrix: np.ndarray,
    options: Optional[Mapping[str, Any]] = None,
    max_workers: Optional[int] = None,
    logger: Optional[logging.Logger] = None,
    **kwargs: Any,
) -> ProcessResult:
    """Preprocess one raw CSI capture into a spectrogram.

    The configuration is resolved before the matrix is touched, so unknown
    suites and invalid options fail without any numeric work.

    Args:
        csi_matrix: Raw capture (packets x columns)
        options: Suite name and parameter overrides, e.g.
            ``{"suite": "carm", "fs": 500}``
        max_workers: Threads for per-channel work. Defaults to the
            ``max_workers`` setting.
        logger: Optional logger instance
        **kwargs: Further options, merged after ``options``

    Returns:
        ProcessResult with the spectrogram, its axes, timing, RSSI and the
        resolved configuration

    Raises:
        PreprocessingError: Any subclass, see :mod:`csiprep.exceptions`
    """
    config = resolve_config(overrides=options, **kwargs)
    if max_workers is None:
        max_workers = get_settings().max_workers

    preprocessor = CSIPreprocessor(config, logger=logger, max_workers=max_workers)
    return preprocessor.process_matrix(csi_matrix)


for _config_class in (InFitConfig, WiDanceConfig, CARMConfig):
    register_suite(SuiteBinding(_config_class.suite, _config_class))
