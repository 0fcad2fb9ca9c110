"""Exception taxonomy for the CSI preprocessing pipeline.

Every failure is deterministic in the input and the configuration, so none of
these are retried internally. Callers must correct the input instead.
"""

from typing import Iterable, Optional


class PreprocessingError(Exception):
    """Base class for all preprocessing failures."""
    pass


class InvalidParameter(PreprocessingError):
    """Raised when a configuration value violates its constraint."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"Invalid parameter '{field}': {message}")


class UnsupportedField(PreprocessingError):
    """Raised when overrides contain keys the selected suite does not accept."""

    def __init__(self, fields: Iterable[str], suite: Optional[str] = None):
        self.fields = sorted(fields)
        self.suite = suite
        listed = ", ".join(f"<{name}>" for name in self.fields)
        where = f" for suite '{suite}'" if suite else ""
        super().__init__(f"Unsupported field name/s{where}: {listed}")


class UnsupportedSuite(PreprocessingError):
    """Raised when the requested suite is not registered."""

    def __init__(self, suite: str, known: Iterable[str] = ()):
        self.suite = suite
        known = list(known)
        hint = f". Must be one of {known}" if known else ""
        super().__init__(f"Unsupported suite: {suite!r}{hint}")


class UnsupportedDevice(PreprocessingError):
    """Raised when no device profile matches the requested device."""

    def __init__(self, device: str, known: Iterable[str] = ()):
        self.device = device
        known = list(known)
        hint = f". Must be one of {known}" if known else ""
        super().__init__(f"Unsupported device: {device!r}{hint}")


class MalformedInput(PreprocessingError):
    """Raised when the raw CSI matrix does not match the device layout."""
    pass


class InsufficientSamples(PreprocessingError):
    """Raised when a stage needs more packets than the capture holds."""

    def __init__(self, stage: str, required: int, available: int):
        self.stage = stage
        self.required = required
        self.available = available
        super().__init__(
            f"{stage} requires at least {required} samples, got {available}"
        )
