"""Suite configuration records and the parameter resolver.

Each suite (InFit, WiDance, CARM) has its own immutable configuration class
with suite-specific defaults and a fixed set of fields a caller may override.
Instances validate themselves on construction, so an invalid configuration
cannot exist. :func:`resolve_config` merges caller overrides onto a suite's
default instance with :func:`dataclasses.replace`.
"""

import logging
import math
from dataclasses import asdict, dataclass, fields, replace
from typing import Any, ClassVar, Dict, FrozenSet, List, Mapping, Optional, Tuple, Type, Union

import numpy as np

from csiprep.config.devices import get_device_profile
from csiprep.exceptions import InvalidParameter, UnsupportedField, UnsupportedSuite

logger = logging.getLogger(__name__)

DEFAULT_SUITE = "infit"

FILTER_TYPES = ("lpf", "bpf", "hpf")

_FILTER_ALIASES = {
    "lpf": "lpf", "low": "lpf", "lowpass": "lpf", "low-pass": "lpf",
    "bpf": "bpf", "band": "bpf", "bandpass": "bpf", "band-pass": "bpf",
    "hpf": "hpf", "high": "hpf", "highpass": "hpf", "high-pass": "hpf",
}

# Option keys of the public invocation contract -> dataclass field names
OPTION_ALIASES = {
    "filter": "filter_type",
    "dcRemove": "dc_remove",
    "phaseCalibration": "phase_calibration",
    "antennaSelection": "antenna_selection",
    "referenceLink": "reference_link",
}

# Dataclass field names -> names reported in errors
_FIELD_LABELS = {"filter_type": "filter"}


def _label(name: str) -> str:
    return _FIELD_LABELS.get(name, name)


def _numeric_vector(name: str, value: Any) -> np.ndarray:
    """Coerce a scalar or flat sequence into a 1-D float array."""
    if isinstance(value, (str, bytes, bool)) or value is None:
        raise InvalidParameter(name, f"expected numeric value(s), got {value!r}")
    try:
        array = np.asarray(value)
    except (TypeError, ValueError):
        raise InvalidParameter(name, f"expected numeric value(s), got {value!r}")
    if array.dtype.kind not in "iuf":
        raise InvalidParameter(name, f"expected numeric value(s), got {value!r}")
    if array.ndim > 1:
        raise InvalidParameter(name, f"expected a flat sequence, got shape {array.shape}")
    array = np.atleast_1d(array).astype(float)
    if not np.all(np.isfinite(array)):
        raise InvalidParameter(name, "values must be finite")
    return array


def _integer_tuple(name: str, value: Any) -> Tuple[int, ...]:
    array = _numeric_vector(name, value)
    if not np.all(array == np.round(array)):
        raise InvalidParameter(name, f"values must be integers, got {value!r}")
    return tuple(int(v) for v in array)


def _window_pair(name: str, window: int, stride: int) -> None:
    if window <= 0 or stride <= 0:
        raise InvalidParameter(name, f"window and stride must be positive, got ({window}, {stride})")
    if stride > window:
        raise InvalidParameter(name, f"stride {stride} exceeds window {window}")


@dataclass(frozen=True)
class BaseSuiteConfig:
    """Resolved parameters of one preprocessing run.

    Attributes:
        fs: Sampling rate in Hz
        filter_type: 'lpf', 'bpf' or 'hpf'
        passband: Cut-off frequencies in Hz (one edge, or two for 'bpf')
        dc_remove: (window, stride) for sliding-window DC removal
        pca: (window, stride, component numbers...) with 1-based components
        stft: (window, stride, cleanup window); cleanup window 0 disables cleanup
        phase_calibration: Registered phase calibration strategy name
        antenna_selection: Choose the reference link by signal strength
        reference_link: Fixed reference link when antenna selection is off
        device: Device profile name
    """

    suite: ClassVar[str] = ""
    accepted_fields: ClassVar[FrozenSet[str]] = frozenset()

    fs: float = 1000.0
    filter_type: str = "bpf"
    passband: Tuple[float, ...] = (2.0, 200.0)
    dc_remove: Tuple[int, int] = (4000, 1000)
    pca: Tuple[int, ...] = (1000, 1000) + tuple(range(1, 16))
    stft: Tuple[int, int, int] = (512, 32, 5)
    phase_calibration: str = "conjMul"
    antenna_selection: bool = False
    reference_link: int = 0
    device: str = "iwl5300"

    def __post_init__(self):
        self._normalize()
        self._validate()
        self._validate_suite()

    def _set(self, name: str, value: Any) -> None:
        object.__setattr__(self, name, value)

    def _normalize(self) -> None:
        """Coerce every field to its canonical type."""
        # imported here, csiprep.core imports this module
        from csiprep.core.phase_calibration import canonical_calibrator_name

        # fs
        if isinstance(self.fs, bool):
            raise InvalidParameter("fs", f"expected a positive number, got {self.fs!r}")
        fs = _numeric_vector("fs", self.fs)
        if fs.size != 1:
            raise InvalidParameter("fs", f"expected a scalar, got {fs.size} values")
        self._set("fs", float(fs[0]))

        # filter
        if not isinstance(self.filter_type, str):
            raise InvalidParameter("filter", f"expected one of {list(FILTER_TYPES)}, got {self.filter_type!r}")
        filter_type = _FILTER_ALIASES.get(self.filter_type.strip().lower())
        if filter_type is None:
            raise InvalidParameter("filter", f"expected one of {list(FILTER_TYPES)}, got {self.filter_type!r}")
        self._set("filter_type", filter_type)

        self._set("passband", tuple(float(v) for v in _numeric_vector("passband", self.passband)))
        self._set("dc_remove", _integer_tuple("dc_remove", self.dc_remove))
        self._set("pca", _integer_tuple("pca", self.pca))
        self._set("stft", _integer_tuple("stft", self.stft))
        self._set("phase_calibration", canonical_calibrator_name(self.phase_calibration))

        if not isinstance(self.antenna_selection, (bool, np.bool_)):
            raise InvalidParameter("antenna_selection", f"expected a boolean, got {self.antenna_selection!r}")
        self._set("antenna_selection", bool(self.antenna_selection))

        if isinstance(self.reference_link, bool) or not isinstance(self.reference_link, (int, np.integer)):
            raise InvalidParameter("reference_link", f"expected an integer, got {self.reference_link!r}")
        self._set("reference_link", int(self.reference_link))

        self._set("device", get_device_profile(self.device).name)

    def _validate(self) -> None:
        """Check the cross-field constraints shared by every suite."""
        if not self.fs > 0 or not math.isfinite(self.fs):
            raise InvalidParameter("fs", f"must be positive, got {self.fs}")

        passband = self.passband
        expected_edges = 2 if self.filter_type == "bpf" else 1
        if len(passband) != expected_edges:
            raise InvalidParameter(
                "passband",
                f"'{self.filter_type}' needs {expected_edges} edge(s), got {len(passband)}",
            )
        if any(edge <= 0 for edge in passband):
            raise InvalidParameter("passband", f"edges must be positive, got {passband}")
        if any(b <= a for a, b in zip(passband, passband[1:])):
            raise InvalidParameter("passband", f"edges must be strictly increasing, got {passband}")
        nyquist = self.fs / 2.0
        if passband[-1] >= nyquist:
            raise InvalidParameter(
                "passband", f"edge {passband[-1]} Hz must be below the Nyquist frequency {nyquist} Hz"
            )

        if len(self.dc_remove) != 2:
            raise InvalidParameter("dc_remove", f"expected (window, stride), got {self.dc_remove}")
        _window_pair("dc_remove", *self.dc_remove)

        if len(self.pca) < 3:
            raise InvalidParameter(
                "pca", f"expected (window, stride, components...), got {self.pca}"
            )
        if any(v <= 0 for v in self.pca):
            raise InvalidParameter("pca", f"values must be positive, got {self.pca}")
        _window_pair("pca", self.pca_window, self.pca_stride)
        components = self.pca_components
        if len(set(components)) != len(components):
            raise InvalidParameter("pca", f"duplicate component numbers in {components}")
        if max(components) > self.pca_window:
            raise InvalidParameter(
                "pca", f"component {max(components)} exceeds the window size {self.pca_window}"
            )

        if self.dc_window < self.pca_window:
            raise InvalidParameter(
                "dc_remove",
                f"window {self.dc_window} must not be smaller than the pca window {self.pca_window}",
            )

        if len(self.stft) != 3:
            raise InvalidParameter("stft", f"expected (window, stride, cleanup window), got {self.stft}")
        if any(v < 0 for v in self.stft):
            raise InvalidParameter("stft", f"values must be non-negative, got {self.stft}")
        _window_pair("stft", self.stft_window, self.stft_stride)

        if self.reference_link < 0:
            raise InvalidParameter("reference_link", f"must be non-negative, got {self.reference_link}")

    def _validate_suite(self) -> None:
        """Hook for suite-specific invariants."""
        pass

    @property
    def name(self) -> str:
        return self.suite

    @property
    def dc_window(self) -> int:
        return self.dc_remove[0]

    @property
    def dc_stride(self) -> int:
        return self.dc_remove[1]

    @property
    def pca_window(self) -> int:
        return self.pca[0]

    @property
    def pca_stride(self) -> int:
        return self.pca[1]

    @property
    def pca_components(self) -> Tuple[int, ...]:
        return self.pca[2:]

    @property
    def stft_window(self) -> int:
        return self.stft[0]

    @property
    def stft_stride(self) -> int:
        return self.stft[1]

    @property
    def cleanup_window(self) -> int:
        return self.stft[2]

    def to_dict(self) -> Dict[str, Any]:
        """Return the configuration as a plain dictionary, including the suite tag."""
        data = asdict(self)
        data["suite"] = self.suite
        return data


_COMMON_FIELDS = frozenset({
    "fs", "passband", "dc_remove", "pca", "stft", "phase_calibration", "device",
})


@dataclass(frozen=True)
class InFitConfig(BaseSuiteConfig):
    """InFit: band-pass denoising, conjugate multiplication, STFT with cleanup."""

    suite: ClassVar[str] = "InFit"
    accepted_fields: ClassVar[FrozenSet[str]] = _COMMON_FIELDS | {
        "filter_type", "antenna_selection", "reference_link",
    }


@dataclass(frozen=True)
class WiDanceConfig(BaseSuiteConfig):
    """WiDance: band-pass [2, 200] Hz with antenna selection always enabled."""

    suite: ClassVar[str] = "WiDance"
    accepted_fields: ClassVar[FrozenSet[str]] = _COMMON_FIELDS | {"filter_type"}

    pca: Tuple[int, ...] = (1000, 1000, 1, 2)
    stft: Tuple[int, int, int] = (1024, 32, 0)
    antenna_selection: bool = True

    def _validate_suite(self) -> None:
        if not self.antenna_selection:
            raise InvalidParameter("antenna_selection", "WiDance always selects the reference antenna")


@dataclass(frozen=True)
class CARMConfig(BaseSuiteConfig):
    """CARM: CSI power, low-pass 200 Hz and spectrogram cleanup always enabled.

    The default PCA keeps components 2..6 and drops component 1, the strongest
    component common to all subcarriers. When the motion is that component, as
    with a single clean tone, the spectrogram peaks at its power harmonic
    instead; pass ``pca`` including component 1 to keep the fundamental.
    """

    suite: ClassVar[str] = "CARM"
    accepted_fields: ClassVar[FrozenSet[str]] = _COMMON_FIELDS | {
        "antenna_selection", "reference_link",
    }

    filter_type: str = "lpf"
    passband: Tuple[float, ...] = (200.0,)
    pca: Tuple[int, ...] = (1000, 1000, 2, 3, 4, 5, 6)
    stft: Tuple[int, int, int] = (1024, 32, 5)
    phase_calibration: str = "power"

    def _validate_suite(self) -> None:
        if self.filter_type != "lpf":
            raise InvalidParameter("filter", "CARM always uses a low-pass filter")
        if self.cleanup_window <= 0:
            raise InvalidParameter("stft", "CARM always cleans the spectrogram, cleanup window must be positive")


SuiteConfig = Union[InFitConfig, WiDanceConfig, CARMConfig]

_SUITE_CONFIGS: Dict[str, Type[BaseSuiteConfig]] = {}


def register_suite_config(config_class: Type[BaseSuiteConfig]) -> None:
    """Make a configuration class resolvable by its suite name."""
    _SUITE_CONFIGS[config_class.suite.lower()] = config_class


def available_suites() -> List[str]:
    return [config_class.suite for config_class in _SUITE_CONFIGS.values()]


def get_suite_config_class(suite: str) -> Type[BaseSuiteConfig]:
    """Look up a suite's configuration class (case-insensitive).

    Raises:
        UnsupportedSuite: If no suite is registered under ``suite``
    """
    if not isinstance(suite, str):
        raise UnsupportedSuite(repr(suite), available_suites())
    config_class = _SUITE_CONFIGS.get(suite.strip().lower())
    if config_class is None:
        raise UnsupportedSuite(suite, available_suites())
    return config_class


def default_config(suite: str = DEFAULT_SUITE) -> BaseSuiteConfig:
    """Return the default configuration of ``suite``."""
    return get_suite_config_class(suite)()


def resolve_config(
    suite: Optional[str] = None,
    overrides: Optional[Mapping[str, Any]] = None,
    **kwargs: Any,
) -> SuiteConfig:
    """Resolve a suite name and caller overrides into a validated configuration.

    Args:
        suite: Suite name, case-insensitive. Defaults to InFit.
        overrides: Option mapping using the invocation keys (``fs``, ``filter``,
            ``passband``, ``dcRemove``, ``pca``, ``stft``, ``phaseCalibration``,
            ``device``) or their snake_case field names
        **kwargs: Additional overrides, merged after ``overrides``

    Returns:
        Immutable suite configuration

    Raises:
        UnsupportedSuite: If the suite is unknown
        UnsupportedField: If any override key is not accepted by the suite
        InvalidParameter: If any value violates its constraint
        UnsupportedDevice: If the device profile is unknown
    """
    options = dict(overrides or {})
    options.update(kwargs)

    requested = options.pop("suite", None)
    if suite is None:
        suite = requested if requested is not None else DEFAULT_SUITE
    elif requested is not None and str(requested).lower() != str(suite).lower():
        raise InvalidParameter("suite", f"conflicting suite names {suite!r} and {requested!r}")

    config_class = get_suite_config_class(suite)

    field_names = {f.name for f in fields(config_class)}
    changes: Dict[str, Any] = {}
    unsupported = []
    for key, value in options.items():
        name = OPTION_ALIASES.get(key, key)
        if name not in field_names or name not in config_class.accepted_fields:
            unsupported.append(key)
            continue
        changes[name] = value

    if unsupported:
        raise UnsupportedField(unsupported, config_class.suite)

    config = replace(config_class(), **changes)
    logger.debug(f"Resolved {config.suite} configuration: {config.to_dict()}")
    return config


for _config_class in (InFitConfig, WiDanceConfig, CARMConfig):
    register_suite_config(_config_class)
