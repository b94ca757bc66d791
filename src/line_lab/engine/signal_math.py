"""Signal math kernel.

Axis generation, a recursive radix-2 FFT, noise injection, attenuation, a
single-pole low-pass filter and the SNR/BER statistics used by the rest of the
engine. Every function returns a new array and leaves its inputs untouched.
"""

from collections.abc import Sequence
from enum import StrEnum

import numpy as np
import numpy.typing as npt
from scipy import signal as scipy_signal

from line_lab.errors import InvalidArgumentError, LengthMismatchError

FloatArray = npt.NDArray[np.float64]
ComplexArray = npt.NDArray[np.complex128]


class NoiseKind(StrEnum):
  """Distribution of the additive noise produced by `add_noise`."""

  GAUSSIAN = "gaussian"
  UNIFORM = "uniform"


def time_axis(sample_rate: float, duration: float) -> FloatArray:
  """Sample instants for a signal of the given duration.

  Args:
    sample_rate: Sample rate in Hz, must be positive.
    duration: Signal duration in seconds, must not be negative.

  Returns:
    `floor(sample_rate * duration)` instants spaced `1 / sample_rate` apart,
    starting at 0.
  """
  if not np.isfinite(sample_rate) or sample_rate <= 0:
    msg = f"Sample rate must be finite and positive, got {sample_rate}"
    raise InvalidArgumentError(msg)
  if not np.isfinite(duration) or duration < 0:
    msg = f"Duration must be finite and not negative, got {duration}"
    raise InvalidArgumentError(msg)

  product = sample_rate * duration
  if not np.isfinite(product):
    msg = f"{duration}s at {sample_rate}Hz is too many samples"
    raise InvalidArgumentError(msg)
  n_samples = int(np.floor(product))
  return np.arange(n_samples, dtype=np.float64) * (1 / sample_rate)


def frequency_axis(sample_rate: float, sample_count: int) -> FloatArray:
  """Frequency bins of a `sample_count`-point transform at `sample_rate`."""
  if sample_rate <= 0:
    msg = f"Sample rate must be positive, got {sample_rate}"
    raise InvalidArgumentError(msg)
  if sample_count <= 0:
    msg = f"Sample count must be positive, got {sample_count}"
    raise InvalidArgumentError(msg)

  return np.arange(sample_count, dtype=np.float64) * (sample_rate / sample_count)


def _is_power_of_two(n: int) -> bool:
  return n > 0 and (n & (n - 1)) == 0


def _fft_recursive(x: ComplexArray) -> ComplexArray:
  n = len(x)
  if n == 1:
    return x.copy()

  even = _fft_recursive(x[0::2])
  odd = _fft_recursive(x[1::2])

  k = np.arange(n // 2)
  twiddled = np.exp(-2j * np.pi * k / n) * odd
  return np.concatenate([even + twiddled, even - twiddled])


def fft(samples: Sequence[complex] | npt.ArrayLike) -> ComplexArray:
  """Discrete Fourier transform by recursive radix-2 decimation in time.

  The input is split into even and odd indexed halves, each half is
  transformed recursively and the halves are recombined with the twiddle
  factors `exp(-2j*pi*k/N)`.

  Args:
    samples: Real or complex samples. The length must be a power of two;
      inputs of length 0 or 1 are returned unchanged.

  Returns:
    Complex spectrum with the same length as the input.

  Raises:
    InvalidArgumentError: If the length is greater than one and not a power
      of two. The input is never zero-padded.
  """
  x = np.asarray(samples, dtype=np.complex128)
  n = len(x)
  if n <= 1:
    return x.copy()
  if not _is_power_of_two(n):
    msg = f"FFT length must be a power of two, got {n}"
    raise InvalidArgumentError(msg)

  return _fft_recursive(x)


def magnitude_spectrum(
  samples: npt.ArrayLike, sample_rate: float
) -> tuple[FloatArray, FloatArray]:
  """Frequency bins and FFT magnitudes of a power-of-two length signal."""
  spectrum = fft(samples)
  freqs = frequency_axis(sample_rate, len(spectrum))
  return freqs, np.abs(spectrum)


def add_noise(
  samples: npt.ArrayLike,
  kind: NoiseKind = NoiseKind.GAUSSIAN,
  power: float = 0.1,
  rng: np.random.Generator | None = None,
) -> FloatArray:
  """Add random noise to a real signal.

  Gaussian noise uses the Box-Muller transform of two uniform draws per
  sample; uniform noise is drawn from [-1, 1). The noise is scaled by
  `power` before being added.

  Args:
    samples: Input signal.
    kind: Noise distribution.
    power: Scale applied to the unit noise.
    rng: Random source. A fresh unseeded generator is used when omitted.

  Returns:
    Noisy copy of the input.
  """
  x = np.asarray(samples, dtype=np.float64)
  rng = rng if rng is not None else np.random.default_rng()

  if NoiseKind(kind) is NoiseKind.GAUSSIAN:
    # 1 - U keeps u1 in (0, 1] so the logarithm stays finite
    u1 = 1.0 - rng.random(len(x))
    u2 = rng.random(len(x))
    noise = np.sqrt(-2 * np.log(u1)) * np.cos(2 * np.pi * u2)
  else:
    noise = (rng.random(len(x)) - 0.5) * 2

  return x + noise * power


def attenuate(samples: npt.ArrayLike, factor: float) -> FloatArray:
  """Scale every sample by `factor`."""
  return np.asarray(samples, dtype=np.float64) * factor


def low_pass_filter(
  samples: npt.ArrayLike, cutoff_freq: float, sample_rate: float
) -> FloatArray:
  """Single-pole IIR low-pass filter.

  Implements `y[0] = x[0]` and `y[i] = a*x[i] + (1 - a)*y[i-1]` with
  `a = cutoff / (cutoff + sample_rate)`.
  """
  if sample_rate <= 0:
    msg = f"Sample rate must be positive, got {sample_rate}"
    raise InvalidArgumentError(msg)
  if cutoff_freq < 0:
    msg = f"Cutoff frequency must not be negative, got {cutoff_freq}"
    raise InvalidArgumentError(msg)

  x = np.asarray(samples, dtype=np.float64)
  if len(x) == 0:
    return x.copy()

  alpha = cutoff_freq / (cutoff_freq + sample_rate)
  # Initial state chosen so that the first output equals the first input
  zi = np.array([(1 - alpha) * x[0]])
  filtered, _ = scipy_signal.lfilter([alpha], [1.0, -(1 - alpha)], x, zi=zi)
  return filtered


def snr(original: npt.ArrayLike, noisy: npt.ArrayLike) -> float:
  """Signal-to-noise ratio in dB of `noisy` measured against `original`.

  Raises:
    LengthMismatchError: If the two signals differ in length.
    InvalidArgumentError: If the signals are empty.
  """
  x = np.asarray(original, dtype=np.float64)
  y = np.asarray(noisy, dtype=np.float64)
  if len(x) != len(y):
    msg = f"Signal lengths differ: {len(x)} != {len(y)}"
    raise LengthMismatchError(msg)
  if len(x) == 0:
    msg = "SNR needs at least one sample"
    raise InvalidArgumentError(msg)

  signal_power = float(np.mean(x**2))
  noise_power = float(np.mean((y - x) ** 2))
  if noise_power == 0:
    return float("inf")
  if signal_power == 0:
    return float("-inf")
  return float(10 * np.log10(signal_power / noise_power))


def ber(original_bits: npt.ArrayLike, received_bits: npt.ArrayLike) -> float:
  """Fraction of positions where the received bits differ from the originals.

  Raises:
    LengthMismatchError: If the two bit sequences differ in length.
  """
  sent = np.asarray(original_bits)
  received = np.asarray(received_bits)
  if len(sent) != len(received):
    msg = f"Bit sequence lengths differ: {len(sent)} != {len(received)}"
    raise LengthMismatchError(msg)
  if len(sent) == 0:
    return 0.0

  return float(np.count_nonzero(sent != received) / len(sent))
