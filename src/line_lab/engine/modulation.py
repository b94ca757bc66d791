"""Carrier modulators (ASK, FSK, PSK, QAM).

Every modulator maps a bit sequence and a `ModulationParameters` value to a
sampled passband waveform. Parameters are passed explicitly on each call; no
modulator holds configuration state.
"""

import math
from abc import ABC, abstractmethod
from collections.abc import Sequence
from enum import StrEnum
from typing import Any

import numpy as np
import numpy.typing as npt
from pydantic import BaseModel, Field, field_validator

from line_lab.engine.waveforms import (
  BitArray,
  BitsLike,
  Waveform,
  parse_bits,
  symbol_grid,
)
from line_lab.errors import InvalidArgumentError


class ModulationKind(StrEnum):
  """Supported carrier modulations."""

  ASK = "ASK"
  FSK = "FSK"
  PSK = "PSK"
  QAM = "QAM"


class ConstellationPoint(BaseModel):
  """A QAM constellation point.

  Attributes:
    i: In-phase component.
    q: Quadrature component.
  """

  i: float
  q: float

  model_config = {"frozen": True}


DEFAULT_QAM_CONSTELLATION: tuple[ConstellationPoint, ...] = (
  ConstellationPoint(i=-1.0, q=-1.0),  # 00
  ConstellationPoint(i=-1.0, q=1.0),  # 01
  ConstellationPoint(i=1.0, q=-1.0),  # 10
  ConstellationPoint(i=1.0, q=1.0),  # 11
)


def check_constellation_size(size: int) -> None:
  """Reject constellation sizes that are not a power of two >= 2.

  Raises:
    InvalidArgumentError: If `size` is below 2 or not a power of two.
  """
  if size < 2 or size & (size - 1):
    msg = f"Constellation size must be a power of two >= 2, got {size}"
    raise InvalidArgumentError(msg)


class ModulationParameters(BaseModel):
  """Carrier configuration shared by all modulation kinds.

  Attributes:
    carrier_freq: Carrier frequency in Hz (ASK, PSK, QAM).
    amplitude: Nominal carrier amplitude.
    phase: Nominal carrier phase in radians.
    ask_amplitude0: ASK amplitude for a zero bit.
    ask_amplitude1: ASK amplitude for a one bit.
    fsk_freq0: FSK frequency for a zero bit in Hz.
    fsk_freq1: FSK frequency for a one bit in Hz.
    psk_phase0: PSK phase for a zero bit in radians.
    psk_phase1: PSK phase for a one bit in radians.
    qam_constellation: Ordered constellation; point `n` carries the bit
      pattern of `n` written MSB first. Its size must be a power of two
      no smaller than 2.

  Out-of-range fields raise pydantic's `ValidationError`; a constellation
  of the wrong size raises `InvalidArgumentError`.
  """

  carrier_freq: float = Field(default=10.0, gt=0.0)
  amplitude: float = 1.0
  phase: float = 0.0
  ask_amplitude0: float = 0.2
  ask_amplitude1: float = 1.0
  fsk_freq0: float = Field(default=8.0, gt=0.0)
  fsk_freq1: float = Field(default=12.0, gt=0.0)
  psk_phase0: float = math.pi
  psk_phase1: float = 0.0
  qam_constellation: tuple[ConstellationPoint, ...] = DEFAULT_QAM_CONSTELLATION

  model_config = {"frozen": True}

  def __init__(self, **data: Any) -> None:
    super().__init__(**data)
    check_constellation_size(len(self.qam_constellation))

  @field_validator("qam_constellation", mode="before")
  @classmethod
  def _coerce_points(cls, value: Any) -> Any:
    # Accept plain (I, Q) pairs alongside ConstellationPoint instances
    if isinstance(value, Sequence) and not isinstance(value, str):
      return tuple(
        {"i": p[0], "q": p[1]} if isinstance(p, Sequence) else p for p in value
      )
    return value

  @property
  def bits_per_symbol(self) -> int:
    """Bits carried by one QAM symbol."""
    size = len(self.qam_constellation)
    check_constellation_size(size)
    return size.bit_length() - 1


class CarrierModulator(ABC):
  """Abstract base class for carrier modulators."""

  @abstractmethod
  def modulate(
    self,
    bits: BitsLike,
    params: ModulationParameters,
    bit_duration: float,
    sample_rate: float,
  ) -> Waveform:
    """Modulate a bit sequence onto the carrier.

    Args:
      bits: Bit string or sequence of 0/1 values.
      params: Carrier configuration.
      bit_duration: Seconds per bit.
      sample_rate: Samples per second.

    Returns:
      The modulated waveform.

    Raises:
      InvalidArgumentError: On malformed bits, non-positive duration or rate,
        or zero samples per bit or symbol.
    """

  @property
  @abstractmethod
  def kind(self) -> ModulationKind:
    """The modulation implemented by this modulator."""


class BinaryKeyingModulator(CarrierModulator):
  """Base for modulators that key one carrier property per bit."""

  @abstractmethod
  def carrier(
    self,
    ones: npt.NDArray[np.bool_],
    t: npt.NDArray[np.float64],
    params: ModulationParameters,
  ) -> npt.NDArray[np.float64]:
    """Carrier samples given, per sample, whether the current bit is a one."""

  def modulate(
    self,
    bits: BitsLike,
    params: ModulationParameters,
    bit_duration: float,
    sample_rate: float,
  ) -> Waveform:
    bit_array = parse_bits(bits)
    grid = symbol_grid(len(bit_array), bit_duration, sample_rate)
    ones = bit_array[grid.index] == 1
    return Waveform(time=grid.time, amplitude=self.carrier(ones, grid.time, params))


class ASKModulator(BinaryKeyingModulator):
  """Amplitude shift keying: the bit selects the carrier amplitude."""

  def carrier(
    self,
    ones: npt.NDArray[np.bool_],
    t: npt.NDArray[np.float64],
    params: ModulationParameters,
  ) -> npt.NDArray[np.float64]:
    amplitude = np.where(ones, params.ask_amplitude1, params.ask_amplitude0)
    return amplitude * np.cos(2 * np.pi * params.carrier_freq * t)

  @property
  def kind(self) -> ModulationKind:
    return ModulationKind.ASK


class FSKModulator(BinaryKeyingModulator):
  """Frequency shift keying: the bit selects the tone frequency."""

  def carrier(
    self,
    ones: npt.NDArray[np.bool_],
    t: npt.NDArray[np.float64],
    params: ModulationParameters,
  ) -> npt.NDArray[np.float64]:
    frequency = np.where(ones, params.fsk_freq1, params.fsk_freq0)
    return np.cos(2 * np.pi * frequency * t)

  @property
  def kind(self) -> ModulationKind:
    return ModulationKind.FSK


class PSKModulator(BinaryKeyingModulator):
  """Binary phase shift keying: the bit selects the carrier phase."""

  def carrier(
    self,
    ones: npt.NDArray[np.bool_],
    t: npt.NDArray[np.float64],
    params: ModulationParameters,
  ) -> npt.NDArray[np.float64]:
    phase = np.where(ones, params.psk_phase1, params.psk_phase0)
    return np.cos(2 * np.pi * params.carrier_freq * t + phase)

  @property
  def kind(self) -> ModulationKind:
    return ModulationKind.PSK


def qam_symbol_indices(bits: BitsLike, bits_per_symbol: int) -> npt.NDArray[np.intp]:
  """Group bits MSB first into constellation indices.

  A trailing partial group is padded with zeros.
  """
  if bits_per_symbol <= 0:
    msg = f"Bits per symbol must be positive, got {bits_per_symbol}"
    raise InvalidArgumentError(msg)

  bit_array: BitArray = parse_bits(bits)
  pad = (-len(bit_array)) % bits_per_symbol
  if pad:
    bit_array = np.concatenate([bit_array, np.zeros(pad, dtype=np.uint8)])

  groups = bit_array.reshape(-1, bits_per_symbol).astype(np.intp)
  weights = 2 ** np.arange(bits_per_symbol - 1, -1, -1, dtype=np.intp)
  return groups @ weights


class QAMModulator(CarrierModulator):
  """Quadrature amplitude modulation.

  Each symbol's constellation point drives the in-phase (cosine) and
  quadrature (sine) carriers. A symbol lasts `bits_per_symbol` bit periods.
  """

  def modulate(
    self,
    bits: BitsLike,
    params: ModulationParameters,
    bit_duration: float,
    sample_rate: float,
  ) -> Waveform:
    k = params.bits_per_symbol
    symbols = qam_symbol_indices(bits, k)
    grid = symbol_grid(len(symbols), k * bit_duration, sample_rate)

    points = params.qam_constellation
    i_levels = np.array([p.i for p in points])[symbols[grid.index]]
    q_levels = np.array([p.q for p in points])[symbols[grid.index]]

    phase = 2 * np.pi * params.carrier_freq * grid.time
    amplitude = i_levels * np.cos(phase) + q_levels * np.sin(phase)
    return Waveform(time=grid.time, amplitude=amplitude)

  @property
  def kind(self) -> ModulationKind:
    return ModulationKind.QAM


MODULATORS: dict[ModulationKind, CarrierModulator] = {
  modulator.kind: modulator
  for modulator in (ASKModulator(), FSKModulator(), PSKModulator(), QAMModulator())
}


def get_modulator(kind: ModulationKind | str) -> CarrierModulator:
  """Modulator instance for a modulation kind."""
  try:
    return MODULATORS[ModulationKind(kind)]
  except ValueError as e:
    msg = (
      f"Unknown modulation {kind!r}, expected one of "
      f"{[k.value for k in ModulationKind]}"
    )
    raise InvalidArgumentError(msg) from e


def modulate(
  bits: BitsLike,
  kind: ModulationKind | str,
  params: ModulationParameters | None = None,
  bit_duration: float = 1.0,
  sample_rate: float = 1000.0,
) -> Waveform:
  """Modulate `bits` with `kind`. See `CarrierModulator.modulate`."""
  params = params if params is not None else ModulationParameters()
  return get_modulator(kind).modulate(bits, params, bit_duration, sample_rate)
