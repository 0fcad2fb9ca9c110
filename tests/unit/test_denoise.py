import numpy as np
import pytest

from csiprep.config.suites import resolve_config
from csiprep.core.denoise import (
    Denoiser,
    apply_frequency_filter,
    design_filter,
    filter_padlen,
    pca_denoise,
    remove_dc,
    sliding_windows,
)
from csiprep.exceptions import InsufficientSamples, InvalidParameter


def _tone(freq, fs=1000.0, n=4000, amplitude=1.0):
    t = np.arange(n) / fs
    return amplitude * np.sin(2 * np.pi * freq * t)


def _rms(x):
    return np.sqrt(np.mean(np.abs(x) ** 2))


class TestSlidingWindows:
    """Window generation"""

    def test_exact_fit(self):
        """Test windows that tile the record exactly"""
        windows = sliding_windows(3000, 1000, 1000)

        assert [(w.start, w.stop) for w in windows] == [(0, 1000), (1000, 2000), (2000, 3000)]

    def test_overlapping_with_truncated_edge(self):
        """Test the last window is truncated, not padded"""
        windows = sliding_windows(10, 4, 3)

        assert [(w.start, w.stop) for w in windows] == [(0, 4), (3, 7), (6, 10)]

    def test_stops_after_reaching_end(self):
        """Test generation stops at the first window reaching the end"""
        windows = sliding_windows(11, 4, 3)

        assert [(w.start, w.stop) for w in windows] == [(0, 4), (3, 7), (6, 10), (9, 11)]

    def test_window_larger_than_record(self):
        """Test a window longer than the record covers the whole record"""
        assert sliding_windows(300, 4000, 1000) == [slice(0, 300)]

    def test_stride_larger_than_window(self):
        """Test a stride that would leave uncovered samples is rejected"""
        with pytest.raises(InvalidParameter) as exc_info:
            sliding_windows(10, 4, 6)

        assert exc_info.value.field == "window"

    def test_stages_reject_gapped_windows(self):
        """Test DC removal and PCA never return NaN for skipped samples"""
        with pytest.raises(InvalidParameter):
            remove_dc(np.ones((10, 1)), 4, 6)

        with pytest.raises(InvalidParameter):
            pca_denoise(np.ones((10, 2)), 4, 6, [1])


class TestRemoveDc:
    """Sliding-window DC removal"""

    def test_single_window_gives_zero_mean(self, rng):
        """Test one window removes the per-channel mean"""
        x = rng.standard_normal((500, 3, 4)) + 5.0 + 2j

        result = remove_dc(x, 500, 500)

        assert result.shape == x.shape
        np.testing.assert_allclose(result.mean(axis=0), 0, atol=1e-12)

    def test_window_larger_than_record(self, rng):
        """Test an oversized window removes the global mean"""
        x = rng.standard_normal((300, 6)) + 3.0

        result = remove_dc(x, 4000, 1000)

        np.testing.assert_allclose(result, x - x.mean(axis=0), atol=1e-12)

    def test_removes_piecewise_offsets(self):
        """Test non-overlapping windows each lose their own offset"""
        x = np.concatenate([np.full(100, 2.0), np.full(100, -7.0)])[:, np.newaxis]

        result = remove_dc(x, 100, 100)

        np.testing.assert_allclose(result, 0, atol=1e-12)

    def test_overlap_is_averaged(self):
        """Test overlapping outputs are averaged"""
        x = np.arange(6, dtype=float)[:, np.newaxis]

        result = remove_dc(x, 4, 2)

        # windows [0, 4) and [2, 6) with means 1.5 and 3.5
        expected = np.array([-1.5, -0.5, (0.5 - 1.5) / 2, (1.5 - 0.5) / 2, 0.5, 1.5])
        np.testing.assert_allclose(result[:, 0], expected)


class TestPcaDenoise:
    """Windowed PCA reconstruction"""

    def test_all_components_is_identity(self, rng):
        """Test keeping every component reproduces the input"""
        x = rng.standard_normal((400, 2, 5)) + 1j * rng.standard_normal((400, 2, 5))

        result = pca_denoise(x, 200, 200, range(1, 11))

        np.testing.assert_allclose(result, x, atol=1e-10)

    def test_no_components_is_zero(self, rng):
        """Test an empty selection yields zeros"""
        x = rng.standard_normal((400, 8))

        result = pca_denoise(x, 200, 100, [])

        np.testing.assert_array_equal(result, np.zeros_like(x))

    def test_components_beyond_rank_contribute_nothing(self, rng):
        """Test component numbers above the channel count are ignored"""
        x = rng.standard_normal((300, 4))

        result = pca_denoise(x, 300, 300, [1, 2, 3, 4, 5, 6])

        np.testing.assert_allclose(result, x, atol=1e-10)

    def test_keeps_dominant_component(self, rng):
        """Test a rank-one signal survives when only the first component is kept"""
        signal = _tone(10, n=1000)[:, np.newaxis] * rng.uniform(1, 2, 12)[np.newaxis, :]
        noisy = signal + 0.01 * rng.standard_normal(signal.shape)

        result = pca_denoise(noisy, 500, 500, [1])

        assert _rms(result - signal) < _rms(noisy - signal)

    def test_dropping_first_component(self, rng):
        """Test 1-based numbering: dropping component 1 removes a rank-one signal"""
        signal = _tone(10, n=1000)[:, np.newaxis] * rng.uniform(1, 2, 12)[np.newaxis, :]

        result = pca_denoise(signal, 1000, 1000, [2, 3])

        np.testing.assert_allclose(result, 0, atol=1e-9)

    def test_record_shorter_than_window(self, rng):
        """Test PCA refuses records shorter than one window"""
        with pytest.raises(InsufficientSamples) as exc_info:
            pca_denoise(rng.standard_normal((999, 3)), 1000, 1000, [1])

        assert exc_info.value.stage == "pca"
        assert exc_info.value.required == 1000
        assert exc_info.value.available == 999


class TestFrequencyFilter:
    """Zero-phase Butterworth filtering"""

    def test_bandpass_passes_in_band_tone(self):
        """Test a tone inside the band keeps its amplitude within 5%"""
        x = _tone(50)[:, np.newaxis]

        result = apply_frequency_filter(x, 1000.0, "bpf", (2.0, 200.0))

        core = slice(500, -500)
        assert abs(_rms(result[core]) / _rms(x[core]) - 1) < 0.05

    def test_bandpass_attenuates_out_of_band_tone(self):
        """Test a tone outside the band is attenuated below 10%"""
        x = _tone(400)[:, np.newaxis]

        result = apply_frequency_filter(x, 1000.0, "bpf", (2.0, 200.0))

        core = slice(500, -500)
        assert _rms(result[core]) / _rms(x[core]) < 0.1

    def test_lowpass(self):
        """Test a low-pass passes low tones and stops high tones"""
        low = apply_frequency_filter(_tone(20)[:, np.newaxis], 1000.0, "lpf", (100.0,))
        high = apply_frequency_filter(_tone(300)[:, np.newaxis], 1000.0, "lpf", (100.0,))

        core = slice(500, -500)
        assert abs(_rms(low[core]) / _rms(_tone(20)[core]) - 1) < 0.05
        assert _rms(high[core]) / _rms(_tone(300)[core]) < 0.1

    def test_real_and_imaginary_filtered_independently(self):
        """Test complex input equals filtering both parts separately"""
        real = _tone(30)
        imag = _tone(450)
        x = (real + 1j * imag)[:, np.newaxis]

        result = apply_frequency_filter(x, 1000.0, "bpf", (2.0, 200.0))
        expected_real = apply_frequency_filter(real[:, np.newaxis], 1000.0, "bpf", (2.0, 200.0))
        expected_imag = apply_frequency_filter(imag[:, np.newaxis], 1000.0, "bpf", (2.0, 200.0))

        np.testing.assert_allclose(result.real, expected_real)
        np.testing.assert_allclose(result.imag, expected_imag)

    def test_parallel_matches_sequential(self, rng):
        """Test threaded channel chunks give the same output"""
        x = rng.standard_normal((2000, 3, 30)) + 1j * rng.standard_normal((2000, 3, 30))

        sequential = apply_frequency_filter(x, 1000.0, "bpf", (2.0, 200.0), max_workers=1)
        parallel = apply_frequency_filter(x, 1000.0, "bpf", (2.0, 200.0), max_workers=4)

        assert parallel.shape == x.shape
        np.testing.assert_allclose(parallel, sequential, rtol=1e-12, atol=1e-12)

    def test_record_not_longer_than_padding(self):
        """Test filtering refuses records shorter than the filtfilt padding"""
        padlen = filter_padlen(design_filter(1000.0, "bpf", (2.0, 200.0)))

        with pytest.raises(InsufficientSamples) as exc_info:
            apply_frequency_filter(np.ones((padlen, 2)), 1000.0, "bpf", (2.0, 200.0))

        assert exc_info.value.stage == "filter"
        assert exc_info.value.required == padlen + 1


class TestDenoiser:
    """Denoise stage driven by a suite configuration"""

    def test_denoise_preserves_shape(self, rng):
        """Test DC removal, PCA and filtering keep the tensor shape"""
        config = resolve_config("infit")
        tensor = rng.standard_normal((2000, 2, 30)) + 1j * rng.standard_normal((2000, 2, 30))

        result = Denoiser(config).denoise(tensor)

        assert result.shape == tensor.shape
        assert np.all(np.isfinite(result))

    def test_denoise_real_input_stays_real(self, rng):
        """Test power tensors are filtered as real data"""
        config = resolve_config("carm")
        tensor = rng.uniform(0.5, 1.5, (2000, 2, 30))

        result = Denoiser(config).denoise(tensor)

        assert not np.iscomplexobj(result)
        assert result.shape == tensor.shape
