"""Denoising stage: sliding-window DC removal, PCA filtering and band filtering."""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence, Tuple

import numpy as np
import scipy.linalg
import scipy.signal

from csiprep.exceptions import InsufficientSamples, InvalidParameter

logger = logging.getLogger(__name__)

_BTYPES = {"lpf": "lowpass", "hpf": "highpass", "bpf": "bandpass"}


def sliding_windows(n: int, size: int, stride: int) -> List[slice]:
    """Generate window slices over ``n`` samples.

    Windows start at 0, stride, 2*stride, ... and are clipped to ``n``.
    Generation stops after the first window that reaches the end, so the last
    window may be shorter than ``size`` but is never padded.

    Args:
        n: Number of samples
        size: Window length
        stride: Step between window starts

    Returns:
        List of slices covering ``[0, n)``
    """
    if n <= 0:
        return []
    if size <= 0 or stride <= 0:
        raise InvalidParameter("window", f"size and stride must be positive, got ({size}, {stride})")
    if stride > size:
        raise InvalidParameter("window", f"stride {stride} exceeds window {size}, samples would be skipped")

    windows = []
    start = 0
    while True:
        end = min(start + size, n)
        windows.append(slice(start, end))
        if end >= n:
            break
        start += stride
    return windows


def _as_channels(x: np.ndarray) -> Tuple[np.ndarray, Tuple[int, ...]]:
    """Flatten a (T, ...) array to (T, C) and return the original shape."""
    x = np.asarray(x)
    if x.ndim == 0:
        raise InvalidParameter("x", "expected an array with a time axis")
    return x.reshape(x.shape[0], -1), x.shape


def remove_dc(x: np.ndarray, window: int, stride: int) -> np.ndarray:
    """Subtract the per-channel mean of each sliding window.

    Where windows overlap the outputs are averaged. A window longer than the
    record covers the whole record, i.e. the global mean is removed.

    Args:
        x: Signal with time along axis 0
        window: DC window length in samples
        stride: Step between windows

    Returns:
        Signal of the same shape with the DC component removed
    """
    flat, shape = _as_channels(x)
    n = flat.shape[0]

    out = np.zeros(flat.shape, dtype=np.result_type(flat.dtype, float))
    counts = np.zeros(n)
    for w in sliding_windows(n, window, stride):
        segment = flat[w]
        out[w] += segment - segment.mean(axis=0, keepdims=True)
        counts[w] += 1

    out /= counts[:, np.newaxis]
    return out.reshape(shape)


def pca_denoise(
    x: np.ndarray,
    window: int,
    stride: int,
    components: Sequence[int],
) -> np.ndarray:
    """Rebuild each window from selected principal components.

    Channels are flattened to (T, C). Each window is decomposed with an SVD and
    reconstructed from the 1-based ``components`` only. The reconstruction is
    uncentred, so all components give back the input and an empty selection
    gives zeros. Component numbers beyond a window's rank contribute nothing.

    Args:
        x: Signal with time along axis 0
        window: PCA window length in samples
        stride: Step between windows
        components: 1-based principal component numbers to keep

    Returns:
        Denoised signal of the same shape

    Raises:
        InsufficientSamples: If the record is shorter than one window
    """
    flat, shape = _as_channels(x)
    n = flat.shape[0]
    if n < window:
        raise InsufficientSamples("pca", window, n)

    indices = sorted({int(c) - 1 for c in components})
    if any(i < 0 for i in indices):
        raise InvalidParameter("pca", f"component numbers are 1-based, got {list(components)}")

    out = np.zeros(flat.shape, dtype=np.result_type(flat.dtype, float))
    counts = np.zeros(n)
    for w in sliding_windows(n, window, stride):
        counts[w] += 1
        segment = flat[w]
        if not indices:
            continue
        u, s, vh = scipy.linalg.svd(segment, full_matrices=False)
        keep = [i for i in indices if i < s.size]
        if keep:
            out[w] += (u[:, keep] * s[keep]) @ vh[keep, :]

    out /= counts[:, np.newaxis]
    return out.reshape(shape)


def design_filter(
    fs: float,
    filter_type: str,
    passband: Sequence[float],
    order: int = 4,
) -> np.ndarray:
    """Design a Butterworth filter as second-order sections.

    Args:
        fs: Sampling rate in Hz
        filter_type: 'lpf', 'hpf' or 'bpf'
        passband: Cut-off edge(s) in Hz
        order: Filter order

    Returns:
        Second-order sections, shape (n_sections, 6)
    """
    btype = _BTYPES.get(filter_type)
    if btype is None:
        raise InvalidParameter("filter", f"expected one of {list(_BTYPES)}, got {filter_type!r}")

    edges = [float(edge) for edge in passband]
    wn = edges if btype == "bandpass" else edges[0]
    return scipy.signal.butter(order, wn, btype=btype, fs=fs, output="sos")


def filter_padlen(sos: np.ndarray) -> int:
    """Default edge padding used by :func:`scipy.signal.sosfiltfilt` for ``sos``."""
    trailing_zeros = min(int((sos[:, 2] == 0).sum()), int((sos[:, 5] == 0).sum()))
    return 3 * (2 * len(sos) + 1 - trailing_zeros)


def _filter_block(sos: np.ndarray, block: np.ndarray) -> np.ndarray:
    if np.iscomplexobj(block):
        real = scipy.signal.sosfiltfilt(sos, block.real, axis=0)
        imag = scipy.signal.sosfiltfilt(sos, block.imag, axis=0)
        return real + 1j * imag
    return scipy.signal.sosfiltfilt(sos, block, axis=0)


def apply_frequency_filter(
    x: np.ndarray,
    fs: float,
    filter_type: str,
    passband: Sequence[float],
    order: int = 4,
    max_workers: int = 1,
) -> np.ndarray:
    """Zero-phase Butterworth filtering along the time axis.

    Real and imaginary parts are filtered independently. With
    ``max_workers > 1`` channel chunks are filtered on a thread pool; every
    channel is still filtered exactly as in the sequential case.

    Args:
        x: Signal with time along axis 0
        fs: Sampling rate in Hz
        filter_type: 'lpf', 'hpf' or 'bpf'
        passband: Cut-off edge(s) in Hz
        order: Filter order
        max_workers: Threads used for channel chunks

    Returns:
        Filtered signal of the same shape

    Raises:
        InsufficientSamples: If the record is not longer than the filter padding
    """
    sos = design_filter(fs, filter_type, passband, order)
    padlen = filter_padlen(sos)

    flat, shape = _as_channels(x)
    n = flat.shape[0]
    if n <= padlen:
        raise InsufficientSamples("filter", padlen + 1, n)

    num_channels = flat.shape[1]
    if max_workers <= 1 or num_channels <= 1:
        return _filter_block(sos, flat).reshape(shape)

    chunks = np.array_split(np.arange(num_channels), min(max_workers, num_channels))
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        results = list(executor.map(lambda idx: _filter_block(sos, flat[:, idx]), chunks))

    return np.concatenate(results, axis=1).reshape(shape)


class Denoiser:
    """Runs DC removal, PCA filtering and band filtering for one configuration."""

    def __init__(self, config, logger: Optional[logging.Logger] = None, max_workers: int = 1):
        """Initialize denoiser.

        Args:
            config: Resolved suite configuration
            logger: Optional logger instance
            max_workers: Threads used for the band filter
        """
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self.max_workers = max(1, int(max_workers))

    def denoise(self, tensor: np.ndarray) -> np.ndarray:
        """Denoise a (packets, links, subcarriers) tensor.

        Args:
            tensor: Calibrated CSI tensor

        Returns:
            Denoised tensor of the same shape

        Raises:
            InsufficientSamples: If the record is too short for PCA or the filter
        """
        config = self.config
        num_packets = tensor.shape[0]

        if config.dc_window > num_packets:
            self.logger.debug(
                f"DC window {config.dc_window} exceeds {num_packets} packets, removing the record mean"
            )
        self.logger.debug(f"Removing DC with window={config.dc_window}, stride={config.dc_stride}")
        x = remove_dc(tensor, config.dc_window, config.dc_stride)

        self.logger.debug(
            f"PCA filtering with window={config.pca_window}, stride={config.pca_stride}, "
            f"components={list(config.pca_components)}"
        )
        x = pca_denoise(x, config.pca_window, config.pca_stride, config.pca_components)

        self.logger.debug(f"Applying {config.filter_type} filter, passband={list(config.passband)} Hz")
        return apply_frequency_filter(
            x,
            config.fs,
            config.filter_type,
            config.passband,
            max_workers=self.max_workers,
        )
