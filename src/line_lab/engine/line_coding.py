"""Baseband line encoders.

Each encoder maps a bit sequence to a sampled two-level waveform. All
encoders share the same sample grid: `floor(bit_duration * sample_rate)`
samples per bit, sample `i` at `t = i / sample_rate`.

Typical Usage:
  ```python
  from line_lab.engine.line_coding import EncodingKind, encode

  waveform = encode("10110100", EncodingKind.MANCHESTER, 1.0, 1000)
  ```
"""

from abc import ABC, abstractmethod
from enum import StrEnum

import numpy as np
import numpy.typing as npt

from line_lab.engine.waveforms import (
  BitArray,
  BitsLike,
  SymbolGrid,
  Waveform,
  parse_bits,
  symbol_grid,
)
from line_lab.errors import InvalidArgumentError


class EncodingKind(StrEnum):
  """Supported line codes."""

  NRZ = "NRZ"
  MANCHESTER = "Manchester"
  DIFFERENTIAL_MANCHESTER = "DifferentialManchester"


class LineEncoder(ABC):
  """Abstract base class for line encoders.

  Subclasses only decide the level of each sample; the sample grid and
  argument checks live here.
  """

  @abstractmethod
  def levels(self, bits: BitArray, grid: SymbolGrid) -> npt.NDArray[np.float64]:
    """Amplitude of every sample in `grid` for the given bits."""

  @property
  @abstractmethod
  def kind(self) -> EncodingKind:
    """The line code implemented by this encoder."""

  def encode(
    self, bits: BitsLike, bit_duration: float, sample_rate: float
  ) -> Waveform:
    """Encode a bit sequence into a sampled waveform.

    Args:
      bits: Bit string or sequence of 0/1 values.
      bit_duration: Seconds per bit.
      sample_rate: Samples per second.

    Returns:
      Waveform with `len(bits) * floor(bit_duration * sample_rate)` samples.

    Raises:
      InvalidArgumentError: On malformed bits, non-positive duration or rate,
        or zero samples per bit.
    """
    bit_array = parse_bits(bits)
    grid = symbol_grid(len(bit_array), bit_duration, sample_rate)
    return Waveform(time=grid.time, amplitude=self.levels(bit_array, grid))


class NRZEncoder(LineEncoder):
  """Non-return-to-zero: +1 for a one, -1 for a zero, held for the whole bit."""

  def levels(self, bits: BitArray, grid: SymbolGrid) -> npt.NDArray[np.float64]:
    return np.where(bits[grid.index] == 1, 1.0, -1.0)

  @property
  def kind(self) -> EncodingKind:
    return EncodingKind.NRZ


class ManchesterEncoder(LineEncoder):
  """Manchester code.

  A zero is high then low, a one is low then high, switching at mid-bit.
  """

  def levels(self, bits: BitArray, grid: SymbolGrid) -> npt.NDArray[np.float64]:
    first_half = grid.position < 0.5
    zero_levels = np.where(first_half, 1.0, -1.0)
    return np.where(bits[grid.index] == 0, zero_levels, -zero_levels)

  @property
  def kind(self) -> EncodingKind:
    return EncodingKind.MANCHESTER


class DifferentialManchesterEncoder(LineEncoder):
  """Differential Manchester code.

  A running polarity starts at +1 and flips at the start of every zero bit.
  Every bit carries the polarity in its first half and the opposite level in
  its second half, so each bit has a mid-bit transition and a one adds a
  transition at the bit start.
  """

  def levels(self, bits: BitArray, grid: SymbolGrid) -> npt.NDArray[np.float64]:
    flips = np.cumsum(bits == 0)
    polarity = np.where(flips % 2 == 0, 1.0, -1.0)
    per_sample = polarity[grid.index]
    return np.where(grid.position < 0.5, per_sample, -per_sample)

  @property
  def kind(self) -> EncodingKind:
    return EncodingKind.DIFFERENTIAL_MANCHESTER


ENCODERS: dict[EncodingKind, LineEncoder] = {
  encoder.kind: encoder
  for encoder in (NRZEncoder(), ManchesterEncoder(), DifferentialManchesterEncoder())
}


def get_encoder(kind: EncodingKind | str) -> LineEncoder:
  """Encoder instance for a line code."""
  try:
    return ENCODERS[EncodingKind(kind)]
  except ValueError as e:
    msg = f"Unknown encoding {kind!r}, expected one of {[k.value for k in EncodingKind]}"
    raise InvalidArgumentError(msg) from e


def encode(
  bits: BitsLike,
  kind: EncodingKind | str,
  bit_duration: float,
  sample_rate: float,
) -> Waveform:
  """Encode `bits` with the line code `kind`. See `LineEncoder.encode`."""
  return get_encoder(kind).encode(bits, bit_duration, sample_rate)
