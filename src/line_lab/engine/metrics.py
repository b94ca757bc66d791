"""Figures of merit derived from a modulation configuration.

These are closed-form teaching approximations, not error-probability bounds.
"""

import itertools
import math

from pydantic import BaseModel

from line_lab.engine.modulation import ModulationKind, ModulationParameters
from line_lab.errors import InvalidArgumentError

# Used directly in the symbol error estimate
ASSUMED_SNR_DB = 20.0
BINARY_MIN_DISTANCE = 2.0


class ModulationMetrics(BaseModel):
  """Summary figures for one modulation configuration.

  Attributes:
    spectral_efficiency: Bits per symbol.
    power_efficiency_db: `10*log10(1 / average symbol power)`.
    min_distance: Minimum Euclidean distance between symbols.
    symbol_error_rate: Illustrative symbol error estimate.
  """

  spectral_efficiency: float
  power_efficiency_db: float
  min_distance: float
  symbol_error_rate: float

  model_config = {"frozen": True}


def spectral_efficiency(kind: ModulationKind, params: ModulationParameters) -> float:
  """1 bit/symbol for the binary keyings, log2(M) for QAM."""
  if kind is ModulationKind.QAM:
    return float(params.bits_per_symbol)
  return 1.0


def power_efficiency_db(kind: ModulationKind, params: ModulationParameters) -> float:
  """Power efficiency relative to unit average power, in dB.

  FSK and PSK keep a constant envelope and are the 0 dB reference.

  Raises:
    InvalidArgumentError: If the average symbol power is zero.
  """
  if kind is ModulationKind.ASK:
    avg_power = (params.ask_amplitude0**2 + params.ask_amplitude1**2) / 2
  elif kind is ModulationKind.QAM:
    points = params.qam_constellation
    avg_power = sum(p.i**2 + p.q**2 for p in points) / len(points)
  else:
    return 0.0

  if avg_power == 0:
    msg = f"{kind} configuration has zero average power"
    raise InvalidArgumentError(msg)
  return 10 * math.log10(1 / avg_power)


def min_distance(kind: ModulationKind, params: ModulationParameters) -> float:
  """Minimum pairwise distance of the QAM constellation, 2.0 otherwise."""
  if kind is not ModulationKind.QAM:
    return BINARY_MIN_DISTANCE

  return min(
    math.hypot(a.i - b.i, a.q - b.q)
    for a, b in itertools.combinations(params.qam_constellation, 2)
  )


def symbol_error_rate(kind: ModulationKind, params: ModulationParameters) -> float:
  """`0.5 * exp(-d_min^2 * SNR / 4)` at the fixed assumed SNR."""
  distance = min_distance(kind, params)
  return 0.5 * math.exp(-(distance**2) * ASSUMED_SNR_DB / 4)


def compute_metrics(
  kind: ModulationKind | str, params: ModulationParameters | None = None
) -> ModulationMetrics:
  """All figures of merit for `kind` under `params`."""
  try:
    kind = ModulationKind(kind)
  except ValueError as e:
    msg = f"Unknown modulation {kind!r}"
    raise InvalidArgumentError(msg) from e
  params = params if params is not None else ModulationParameters()

  return ModulationMetrics(
    spectral_efficiency=spectral_efficiency(kind, params),
    power_efficiency_db=power_efficiency_db(kind, params),
    min_distance=min_distance(kind, params),
    symbol_error_rate=symbol_error_rate(kind, params),
  )
