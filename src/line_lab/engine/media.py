"""Transmission media reference data and link-level estimates.

This module holds the static characteristics of the supported media and the
channel parameter model the packet simulator consumes, plus quick estimates
(link budget, cost, configuration checks) derived from them.

Typical Usage:
  ```python
  from line_lab.engine.media import MediumKind, default_parameters, estimate_link

  params = default_parameters(MediumKind.OPTICAL_FIBER)
  estimate = estimate_link(params)
  ```
"""

import math
from enum import StrEnum
from types import MappingProxyType

from pydantic import BaseModel, Field

from line_lab.errors import InvalidArgumentError

REFERENCE_SIGNAL_POWER_DBM = 20.0
NOISE_FLOOR_DBM = -80.0
CABLE_PROPAGATION_SPEED = 2e8  # m/s
FREE_SPACE_PROPAGATION_SPEED = 3e8  # m/s


class MediumKind(StrEnum):
  """Physical transmission media."""

  COAXIAL = "coaxial"
  TWISTED_PAIR = "twisted_pair"
  OPTICAL_FIBER = "optical_fiber"
  WIRELESS = "wireless"


class MediumProfile(BaseModel):
  """Static characteristics of a transmission medium.

  Attributes:
    name: Human-readable medium name.
    max_distance: Longest supported span in meters.
    typical_attenuation: Typical attenuation in dB/km.
    bandwidth: Usable bandwidth in Hz.
    cost: Relative cost, 1 (cheap) to 5.
    complexity: Relative installation complexity, 1 to 5.
    description: Short description of the medium.
  """

  name: str
  max_distance: float
  typical_attenuation: float
  bandwidth: float
  cost: int = Field(ge=1, le=5)
  complexity: int = Field(ge=1, le=5)
  description: str

  model_config = {"frozen": True}


MEDIUM_PROFILES: MappingProxyType[MediumKind, MediumProfile] = MappingProxyType({
  MediumKind.COAXIAL: MediumProfile(
    name="Coaxial cable",
    max_distance=500.0,
    typical_attenuation=20.0,
    bandwidth=1e6,
    cost=2,
    complexity=2,
    description=(
      "Inner conductor, insulator, outer conductor and jacket. Suited to "
      "high-frequency signals with good interference rejection."
    ),
  ),
  MediumKind.TWISTED_PAIR: MediumProfile(
    name="Twisted pair",
    max_distance=100.0,
    typical_attenuation=50.0,
    bandwidth=1e5,
    cost=1,
    complexity=1,
    description=(
      "Two insulated conductors twisted together. Cheap and easy to install "
      "but limited in distance and bandwidth."
    ),
  ),
  MediumKind.OPTICAL_FIBER: MediumProfile(
    name="Optical fiber",
    max_distance=40000.0,
    typical_attenuation=0.2,
    bandwidth=1e8,
    cost=4,
    complexity=4,
    description=(
      "Carries the signal as light. Very wide bandwidth, low loss and immune "
      "to electromagnetic interference, at a higher cost."
    ),
  ),
  MediumKind.WIRELESS: MediumProfile(
    name="Wireless",
    max_distance=10000.0,
    typical_attenuation=100.0,
    bandwidth=1e7,
    cost=3,
    complexity=5,
    description=(
      "Propagates as electromagnetic waves. Flexible, but exposed to "
      "environmental interference and high path loss."
    ),
  ),
})


class ChannelParameters(BaseModel):
  """Physical channel configuration.

  Attributes:
    medium: Transmission medium.
    distance: Span length in meters.
    attenuation: Attenuation coefficient in dB/km.
    noise_level: Relative noise level in [0, 1].
    distortion: Relative distortion level in [0, 1].
    bandwidth: Channel bandwidth in Hz.
  """

  medium: MediumKind = MediumKind.COAXIAL
  distance: float = Field(default=100.0, gt=0.0)
  attenuation: float = Field(default=20.0, ge=0.0)
  noise_level: float = Field(default=0.1, ge=0.0, le=1.0)
  distortion: float = Field(default=0.1, ge=0.0, le=1.0)
  bandwidth: float = Field(default=1e6, gt=0.0)

  model_config = {"frozen": True}


class LinkEstimate(BaseModel):
  """Rough link budget for a channel configuration."""

  total_attenuation_db: float
  estimated_snr_db: float
  bandwidth_utilization_pct: float
  propagation_delay_us: float
  estimated_ber: float
  power_loss_pct: float

  model_config = {"frozen": True}


class ChannelValidation(BaseModel):
  """Outcome of checking a channel configuration against its medium."""

  is_valid: bool
  warnings: list[str] = Field(default_factory=list)
  errors: list[str] = Field(default_factory=list)


def get_medium_profile(kind: MediumKind | str) -> MediumProfile:
  """Static profile of a medium."""
  try:
    return MEDIUM_PROFILES[MediumKind(kind)]
  except ValueError as e:
    msg = f"Unknown medium {kind!r}, expected one of {[k.value for k in MediumKind]}"
    raise InvalidArgumentError(msg) from e


def estimate_link(params: ChannelParameters) -> LinkEstimate:
  """Closed-form link budget: attenuation, SNR, delay, BER and power loss."""
  profile = get_medium_profile(params.medium)

  total_attenuation = params.attenuation * params.distance / 1000
  noise_power = NOISE_FLOOR_DBM + 20 * math.log10(params.noise_level + 0.01)
  snr_db = REFERENCE_SIGNAL_POWER_DBM - total_attenuation - noise_power

  if params.medium is MediumKind.WIRELESS:
    speed = FREE_SPACE_PROPAGATION_SPEED
  else:
    speed = CABLE_PROPAGATION_SPEED

  return LinkEstimate(
    total_attenuation_db=total_attenuation,
    estimated_snr_db=snr_db,
    bandwidth_utilization_pct=min(100.0, params.bandwidth / profile.bandwidth * 100),
    propagation_delay_us=params.distance / speed * 1e6,
    estimated_ber=10 ** -(snr_db / 10 + 6),
    power_loss_pct=(1 - 10 ** (-total_attenuation / 10)) * 100,
  )


def validate_channel(params: ChannelParameters) -> ChannelValidation:
  """Check a configuration against the limits of its medium."""
  profile = get_medium_profile(params.medium)
  warnings: list[str] = []
  errors: list[str] = []

  if params.distance > profile.max_distance:
    errors.append(
      f"Distance {params.distance:g} m exceeds the {profile.name} maximum of "
      f"{profile.max_distance:g} m"
    )
  if params.distance > profile.max_distance * 0.8:
    warnings.append("Distance is close to the medium limit; signal quality may suffer")
  if params.bandwidth > profile.bandwidth:
    warnings.append("Requested bandwidth exceeds the medium bandwidth")
  if params.attenuation > profile.typical_attenuation * 2:
    warnings.append("Attenuation is high; an amplifier may be needed")
  if params.noise_level > 0.5:
    warnings.append("Noise level is high; check for environmental interference")
  if params.distortion > 0.3:
    warnings.append("Distortion is high; signal integrity may be affected")

  return ChannelValidation(is_valid=not errors, warnings=warnings, errors=errors)


def total_cost(params: ChannelParameters) -> float:
  """Relative deployment cost of the configured span."""
  profile = get_medium_profile(params.medium)
  return profile.cost * 100 + params.distance * profile.cost + profile.complexity * 50


def default_parameters(kind: MediumKind | str) -> ChannelParameters:
  """Starting configuration for a medium."""
  profile = get_medium_profile(kind)
  return ChannelParameters(
    medium=MediumKind(kind),
    distance=min(100.0, profile.max_distance),
    attenuation=profile.typical_attenuation,
    noise_level=0.1,
    distortion=0.1,
    bandwidth=min(1e6, profile.bandwidth),
  )


def optimized_parameters(params: ChannelParameters) -> ChannelParameters:
  """Low-impairment configuration for the same medium and distance."""
  profile = get_medium_profile(params.medium)
  return params.model_copy(
    update={
      "attenuation": profile.typical_attenuation,
      "noise_level": 0.05,
      "distortion": 0.02,
      "bandwidth": float(math.floor(profile.bandwidth * 0.8)),
    }
  )
