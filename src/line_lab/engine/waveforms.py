"""Waveform value type, bit sequence handling and reference tone generators."""

from collections.abc import Sequence
from typing import NamedTuple

import numpy as np
import numpy.typing as npt
from pydantic import BaseModel, Field, field_validator, model_validator

from line_lab.engine.signal_math import time_axis
from line_lab.errors import InvalidArgumentError

BitArray = npt.NDArray[np.uint8]
BitsLike = str | Sequence[int] | npt.NDArray[np.integer] | npt.NDArray[np.bool_]


class Waveform(BaseModel):
  """A sampled signal: sample instants and the amplitude at each instant.

  Attributes:
    time: Strictly increasing sample instants in seconds.
    amplitude: Unitless amplitude at each instant.

  Both arrays are copied on construction and made read-only.
  """

  time: np.ndarray
  amplitude: np.ndarray

  model_config = {"frozen": True, "arbitrary_types_allowed": True}

  @field_validator("time", "amplitude", mode="before")
  @classmethod
  def _as_float_array(cls, value: npt.ArrayLike) -> np.ndarray:
    array = np.array(value, dtype=np.float64)
    if array.ndim != 1:
      msg = f"Waveform arrays must be one-dimensional, got shape {array.shape}"
      raise ValueError(msg)
    return array

  @model_validator(mode="after")
  def _check_shape(self) -> "Waveform":
    if len(self.time) != len(self.amplitude):
      msg = (
        f"time and amplitude lengths differ: "
        f"{len(self.time)} != {len(self.amplitude)}"
      )
      raise ValueError(msg)
    if np.any(np.diff(self.time) <= 0):
      msg = "time must be strictly increasing"
      raise ValueError(msg)
    self.time.flags.writeable = False
    self.amplitude.flags.writeable = False
    return self

  def __len__(self) -> int:
    return len(self.time)

  @property
  def duration(self) -> float:
    """Span between the first and last sample in seconds."""
    if len(self.time) == 0:
      return 0.0
    return float(self.time[-1] - self.time[0])


class ToneParameters(BaseModel):
  """Parameters of a reference tone."""

  amplitude: float = 1.0
  frequency: float = Field(default=1.0, ge=0.0)
  phase: float = 0.0
  sample_rate: float = Field(default=1000.0, gt=0.0)
  duration: float = Field(default=1.0, ge=0.0)

  model_config = {"frozen": True}


class SymbolGrid(NamedTuple):
  """Per-sample indexing shared by the line encoders and the modulators.

  Attributes:
    time: Sample instants `i / sample_rate`.
    index: Index of the bit (or symbol) each sample belongs to.
    position: Fractional position of each sample inside its bit, in [0, 1).
  """

  time: npt.NDArray[np.float64]
  index: npt.NDArray[np.intp]
  position: npt.NDArray[np.float64]


def samples_per_unit(unit_duration: float, sample_rate: float) -> int:
  """Number of samples covering one bit or symbol.

  Raises:
    InvalidArgumentError: If the duration or rate is not finite and positive, or if
      the product is too small to hold a single sample.
  """
  if not np.isfinite(unit_duration) or unit_duration <= 0:
    msg = f"Bit duration must be finite and positive, got {unit_duration}"
    raise InvalidArgumentError(msg)
  if not np.isfinite(sample_rate) or sample_rate <= 0:
    msg = f"Sample rate must be finite and positive, got {sample_rate}"
    raise InvalidArgumentError(msg)

  product = unit_duration * sample_rate
  if not np.isfinite(product):
    msg = f"Duration {unit_duration}s at {sample_rate}Hz is too many samples"
    raise InvalidArgumentError(msg)
  count = int(np.floor(product))
  if count == 0:
    msg = (
      f"Duration {unit_duration}s at {sample_rate}Hz yields zero samples "
      f"per unit"
    )
    raise InvalidArgumentError(msg)
  return count


def symbol_grid(n_units: int, unit_duration: float, sample_rate: float) -> SymbolGrid:
  """Sample grid for `n_units` consecutive bits or symbols."""
  per_unit = samples_per_unit(unit_duration, sample_rate)
  i = np.arange(n_units * per_unit)
  return SymbolGrid(
    time=i / sample_rate,
    index=i // per_unit,
    position=(i % per_unit) / per_unit,
  )


def parse_bits(bits: BitsLike) -> BitArray:
  """Normalize a bit sequence to a `uint8` array of zeros and ones.

  Args:
    bits: Either a string made of `'0'` and `'1'` characters or a
      one-dimensional sequence of 0/1 values.

  Returns:
    A new array; the input is not modified.

  Raises:
    InvalidArgumentError: If any element is not a 0 or a 1.
  """
  if isinstance(bits, str):
    invalid = set(bits) - {"0", "1"}
    if invalid:
      msg = f"Bit string may only contain '0' and '1', found {sorted(invalid)}"
      raise InvalidArgumentError(msg)
    return np.array([int(c) for c in bits], dtype=np.uint8)

  array = np.asarray(bits)
  if array.ndim != 1:
    msg = f"Bit sequence must be one-dimensional, got shape {array.shape}"
    raise InvalidArgumentError(msg)
  if array.size and not np.all(np.isin(array, (0, 1))):
    msg = "Bit sequence may only contain the values 0 and 1"
    raise InvalidArgumentError(msg)
  return array.astype(np.uint8)


def random_bits(
  rng: np.random.Generator | None = None,
  min_length: int = 4,
  max_length: int = 11,
) -> str:
  """Random bit string with a length drawn from [min_length, max_length]."""
  if min_length < 0 or max_length < min_length:
    msg = f"Invalid length range [{min_length}, {max_length}]"
    raise InvalidArgumentError(msg)

  rng = rng if rng is not None else np.random.default_rng()
  length = int(rng.integers(min_length, max_length + 1))
  return "".join(str(b) for b in rng.integers(0, 2, size=length))


def sine_wave(params: ToneParameters) -> Waveform:
  """`A*sin(2*pi*f*t + phase)` sampled over the configured duration."""
  t = time_axis(params.sample_rate, params.duration)
  amplitude = params.amplitude * np.sin(2 * np.pi * params.frequency * t + params.phase)
  return Waveform(time=t, amplitude=amplitude)


def cosine_wave(params: ToneParameters) -> Waveform:
  """`A*cos(2*pi*f*t + phase)` sampled over the configured duration."""
  t = time_axis(params.sample_rate, params.duration)
  amplitude = params.amplitude * np.cos(2 * np.pi * params.frequency * t + params.phase)
  return Waveform(time=t, amplitude=amplitude)


def square_wave(params: ToneParameters) -> Waveform:
  """Square wave taking the sign of the matching sine."""
  t = time_axis(params.sample_rate, params.duration)
  sine = np.sin(2 * np.pi * params.frequency * t + params.phase)
  return Waveform(time=t, amplitude=params.amplitude * np.sign(sine))


def downsample(waveform: Waveform, max_points: int) -> Waveform:
  """Thin a waveform to roughly `max_points` samples for display.

  Keeps every `len // max_points`-th sample; waveforms that are already
  short enough are returned as they are.
  """
  if max_points <= 0:
    msg = f"max_points must be positive, got {max_points}"
    raise InvalidArgumentError(msg)
  if len(waveform) <= max_points:
    return waveform

  step = len(waveform) // max_points
  return Waveform(
    time=waveform.time[::step], amplitude=waveform.amplitude[::step]
  )
