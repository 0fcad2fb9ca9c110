"""Phase calibration strategies for CSI tensors.

Raw CSI phase carries per-packet offsets (carrier frequency offset, sampling
time offset) shared by every antenna of the receiver. Multiplying each link by
the conjugate of a reference link cancels that common term. The phase
difference between antennas, which encodes motion-induced path length
changes, survives.

New strategies are added with :func:`register_calibrator` and selected through
the ``phase_calibration`` configuration field.
"""

import logging
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Protocol, Tuple

import numpy as np

from csiprep.exceptions import InvalidParameter, MalformedInput

if TYPE_CHECKING:
    from csiprep.config.suites import SuiteConfig


class PhaseCalibrator(Protocol):
    """Protocol for phase calibration strategies."""

    def calibrate(self, tensor: np.ndarray, config: "SuiteConfig") -> np.ndarray:
        """Return a calibrated copy of a (packets, links, subcarriers) tensor."""
        ...


def _validate_tensor(tensor: np.ndarray) -> None:
    if not isinstance(tensor, np.ndarray):
        raise MalformedInput(f"CSI tensor must be ndarray, got {type(tensor).__name__}")
    if tensor.ndim != 3:
        raise MalformedInput(
            f"CSI tensor must be 3D (packets, links, subcarriers), got shape {tensor.shape}"
        )
    if tensor.size == 0:
        raise MalformedInput("CSI tensor cannot be empty")


def select_reference_link(tensor: np.ndarray) -> int:
    """Pick the link with the highest mean amplitude as the reference.

    Args:
        tensor: Complex CSI tensor (packets, links, subcarriers)

    Returns:
        Index of the strongest link
    """
    _validate_tensor(tensor)
    strength = np.mean(np.abs(tensor), axis=(0, 2))
    return int(np.argmax(strength))


class ConjugateMultiplication:
    """Conjugate multiplication against a reference antenna link."""

    name = "conjMul"

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def reference_link(self, tensor: np.ndarray, config: "SuiteConfig") -> int:
        """Resolve the reference link for ``tensor``.

        Raises:
            InvalidParameter: If the configured reference link does not exist
        """
        num_links = tensor.shape[1]
        if config.antenna_selection:
            reference = select_reference_link(tensor)
            self.logger.debug(f"Antenna selection picked link {reference} of {num_links}")
            return reference

        reference = config.reference_link
        if reference >= num_links:
            raise InvalidParameter(
                "reference_link",
                f"link {reference} does not exist, capture has {num_links} link(s)",
            )
        return reference

    def calibrate(self, tensor: np.ndarray, config: "SuiteConfig") -> np.ndarray:
        """Multiply every link by the conjugate of the reference link.

        The shape is preserved. The reference link itself becomes its
        (real, non-negative) power, so a second pass with the same reference
        leaves all phases unchanged.

        Args:
            tensor: Complex CSI tensor (packets, links, subcarriers)
            config: Resolved suite configuration

        Returns:
            Calibrated complex tensor
        """
        _validate_tensor(tensor)
        reference = self.reference_link(tensor, config)
        return tensor * np.conj(tensor[:, reference:reference + 1, :])


class CsiPower:
    """Self-conjugate multiplication, i.e. the CSI power |H|^2.

    Drops phase entirely, which is how amplitude-based suites (CARM) remove the
    per-packet phase noise.
    """

    name = "power"

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def calibrate(self, tensor: np.ndarray, config: "SuiteConfig") -> np.ndarray:
        _validate_tensor(tensor)
        return np.abs(tensor) ** 2


CalibratorFactory = Callable[..., PhaseCalibrator]

# lower-case key -> (registered name, factory)
_CALIBRATORS: Dict[str, Tuple[str, CalibratorFactory]] = {}
_ALIASES: Dict[str, str] = {}


def register_calibrator(
    name: str,
    factory: CalibratorFactory,
    aliases: Tuple[str, ...] = (),
) -> None:
    """Register a phase calibration strategy under ``name``.

    Args:
        name: Name used in the ``phase_calibration`` configuration field
        factory: Callable accepting an optional ``logger`` keyword and
            returning an object with a ``calibrate(tensor, config)`` method
        aliases: Alternative names accepted for the same strategy
    """
    key = name.lower()
    _CALIBRATORS[key] = (name, factory)
    for alias in aliases:
        _ALIASES[alias.lower()] = key


def canonical_calibrator_name(name: str) -> str:
    """Normalize a calibrator name to its registered spelling.

    Raises:
        InvalidParameter: If no strategy is registered under ``name``
    """
    if not isinstance(name, str):
        raise InvalidParameter("phase_calibration", f"expected a method name, got {name!r}")
    key = name.strip().lower()
    key = _ALIASES.get(key, key)
    if key not in _CALIBRATORS:
        raise InvalidParameter(
            "phase_calibration",
            f"unknown method {name!r}, must be one of {available_calibrators()}",
        )
    return _CALIBRATORS[key][0]


def get_calibrator(name: str, logger: Optional[logging.Logger] = None) -> PhaseCalibrator:
    """Instantiate the calibration strategy registered under ``name``."""
    key = canonical_calibrator_name(name).lower()
    _, factory = _CALIBRATORS[key]
    return factory(logger=logger)


def available_calibrators() -> List[str]:
    return sorted(registered for registered, _ in _CALIBRATORS.values())


register_calibrator(
    ConjugateMultiplication.name,
    ConjugateMultiplication,
    aliases=("conjuMulti", "conjugate"),
)
register_calibrator(CsiPower.name, CsiPower, aliases=("csiPower",))
