"""Session configuration for line_lab."""

from pydantic import BaseModel, Field

from line_lab.engine.line_coding import EncodingKind
from line_lab.engine.modulation import ModulationKind


class Config(BaseModel):
  """Configuration of an encoding and transmission session.

  Attributes:
    bit_string: Bits to encode, as a string of '0' and '1'.
    encoding: Line code used for the baseband waveform.
    modulation: Carrier modulation used for the passband waveform.
    bit_duration: Seconds per bit.
    sample_rate: Samples per second.
    carrier_freq: Carrier frequency in Hz.
    speed_factor: Packet simulation rate multiplier.
    seed: Seed for the random source; None draws fresh entropy.
  """

  bit_string: str = Field(
    "10110100", description="Bits to encode.", min_length=1, pattern=r"^[01]+$"
  )
  encoding: EncodingKind = Field(EncodingKind.NRZ, description="Line code.")
  modulation: ModulationKind = Field(ModulationKind.ASK, description="Modulation.")
  bit_duration: float = Field(1.0, description="Seconds per bit.", gt=0)
  sample_rate: float = Field(1000.0, description="Samples per second.", gt=0)
  carrier_freq: float = Field(10.0, description="Carrier frequency in Hz.", gt=0)
  speed_factor: float = Field(1.0, description="Simulation rate multiplier.", gt=0)
  seed: int | None = Field(None, description="Random seed.")
