"""Signal processing and channel simulation engine."""

from line_lab.engine import media
from line_lab.engine.channel import (
  PacketArrival,
  PacketSimulator,
  SignalPacket,
  TransmissionStats,
  packet_amplitude,
)
from line_lab.engine.line_coding import (
  DifferentialManchesterEncoder,
  EncodingKind,
  LineEncoder,
  ManchesterEncoder,
  NRZEncoder,
  encode,
)
from line_lab.engine.media import (
  ChannelParameters,
  MediumKind,
  MediumProfile,
  get_medium_profile,
)
from line_lab.engine.metrics import ModulationMetrics, compute_metrics
from line_lab.engine.modulation import (
  ASKModulator,
  CarrierModulator,
  ConstellationPoint,
  FSKModulator,
  ModulationKind,
  ModulationParameters,
  PSKModulator,
  QAMModulator,
  modulate,
)
from line_lab.engine.waveforms import Waveform, parse_bits

__all__ = [
  # Line coding
  "DifferentialManchesterEncoder",
  "EncodingKind",
  "LineEncoder",
  "ManchesterEncoder",
  "NRZEncoder",
  "encode",
  # Modulation
  "ASKModulator",
  "CarrierModulator",
  "ConstellationPoint",
  "FSKModulator",
  "ModulationKind",
  "ModulationMetrics",
  "ModulationParameters",
  "PSKModulator",
  "QAMModulator",
  "compute_metrics",
  "modulate",
  # Channel
  "ChannelParameters",
  "MediumKind",
  "MediumProfile",
  "PacketArrival",
  "PacketSimulator",
  "SignalPacket",
  "TransmissionStats",
  "get_medium_profile",
  "media",
  "packet_amplitude",
  # Waveforms
  "Waveform",
  "parse_bits",
]
