"""Spectral estimation: multi-channel STFT spectrogram with optional cleanup."""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional

import numpy as np
import scipy.fft
import scipy.ndimage
import scipy.signal

from csiprep.exceptions import InsufficientSamples, InvalidParameter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Spectrogram:
    """Time-frequency magnitude summed over channels.

    Attributes:
        data: Magnitudes, shape (frequency bins, time frames)
        frequencies: Bin frequencies in Hz, ascending
        times: Frame centres in seconds
    """
    data: np.ndarray
    frequencies: np.ndarray
    times: np.ndarray

    @property
    def shape(self):
        return self.data.shape

    def dominant_frequencies(self) -> np.ndarray:
        """Frequency of the strongest bin in every frame."""
        return self.frequencies[np.argmax(self.data, axis=0)]


def _channel_magnitudes(
    block: np.ndarray,
    fs: float,
    window: int,
    stride: int,
    two_sided: bool,
):
    """STFT magnitudes of a (channels, T) block, shape (channels, F, N)."""
    frequencies, times, zxx = scipy.signal.stft(
        block,
        fs=fs,
        window="hann",
        nperseg=window,
        noverlap=window - stride,
        detrend=False,
        return_onesided=not two_sided,
        boundary=None,
        padded=False,
        axis=-1,
    )
    if two_sided:
        frequencies = scipy.fft.fftshift(frequencies)
        zxx = scipy.fft.fftshift(zxx, axes=-2)
    return frequencies, times, np.abs(zxx)


def compute_spectrogram(
    x: np.ndarray,
    fs: float,
    window: int,
    stride: int,
    cleanup_window: int = 0,
    max_workers: int = 1,
) -> Spectrogram:
    """Compute the channel-summed STFT magnitude of ``x``.

    Each channel is transformed with a Hann window, no boundary extension and
    no padding. Complex input yields a two-sided, fft-shifted frequency axis,
    real input a one-sided one. With ``cleanup_window > 0`` the result is
    smoothed along frequency with a moving average of that length.

    Args:
        x: Signal with time along axis 0 and any channel layout after it
        fs: Sampling rate in Hz
        window: STFT window length in samples
        stride: Step between frames in samples
        cleanup_window: Frequency smoothing length, 0 disables it
        max_workers: Threads used for channel chunks

    Returns:
        Spectrogram

    Raises:
        InsufficientSamples: If ``x`` is shorter than one window
    """
    x = np.asarray(x)
    if x.ndim == 0:
        raise InvalidParameter("x", "expected an array with a time axis")
    if window <= 0 or stride <= 0 or stride > window:
        raise InvalidParameter("stft", f"invalid window/stride ({window}, {stride})")
    if cleanup_window < 0:
        raise InvalidParameter("stft", f"cleanup window must be non-negative, got {cleanup_window}")

    num_samples = x.shape[0]
    if num_samples < window:
        raise InsufficientSamples("stft", window, num_samples)

    channels = x.reshape(num_samples, -1).T
    two_sided = np.iscomplexobj(channels)
    num_channels = channels.shape[0]

    if max_workers <= 1 or num_channels <= 1:
        frequencies, times, magnitudes = _channel_magnitudes(channels, fs, window, stride, two_sided)
    else:
        chunks = np.array_split(np.arange(num_channels), min(max_workers, num_channels))
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            results = list(executor.map(
                lambda idx: _channel_magnitudes(channels[idx], fs, window, stride, two_sided),
                chunks,
            ))
        frequencies, times = results[0][0], results[0][1]
        magnitudes = np.concatenate([result[2] for result in results], axis=0)

    data = magnitudes.sum(axis=0)

    if cleanup_window > 0:
        data = scipy.ndimage.uniform_filter1d(data, size=cleanup_window, axis=0, mode="nearest")

    return Spectrogram(data=data, frequencies=frequencies, times=times)


class SpectralEstimator:
    """Computes spectrograms with the STFT parameters of one configuration."""

    def __init__(self, config, logger: Optional[logging.Logger] = None, max_workers: int = 1):
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self.max_workers = max(1, int(max_workers))

    def estimate(self, x: np.ndarray) -> Spectrogram:
        """Compute the spectrogram of a denoised tensor.

        Raises:
            InsufficientSamples: If the record is shorter than one STFT window
        """
        config = self.config
        self.logger.debug(
            f"STFT with window={config.stft_window}, stride={config.stft_stride}, "
            f"cleanup={config.cleanup_window}"
        )
        spectrogram = compute_spectrogram(
            x,
            config.fs,
            config.stft_window,
            config.stft_stride,
            cleanup_window=config.cleanup_window,
            max_workers=self.max_workers,
        )
        self.logger.debug(
            f"Spectrogram has {spectrogram.data.shape[0]} bins x {spectrogram.data.shape[1]} frames"
        )
        return spectrogram
