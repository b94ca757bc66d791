"""Tick-driven simulation of signal packets crossing a transmission medium.

Packets travel along a normalized path from the transmitter (position 0) to
the receiver (position 1). On every tick each in-flight packet advances and
its amplitude is recomputed from the channel impairments at its new position.
A packet that reaches the receiver is counted once as received, and as an
error if its last amplitude was below `ERROR_AMPLITUDE_THRESHOLD`.

The simulator is single-threaded: the host calls `step` once per frame and
must not interleave calls.
"""

import itertools
import logging
import math
from collections import deque
from types import MappingProxyType

import numpy as np
from pydantic import BaseModel

from line_lab.engine.media import ChannelParameters
from line_lab.engine.waveforms import Waveform
from line_lab.errors import InvalidArgumentError

logger = logging.getLogger(__name__)

DEFAULT_DELTA_TIME = 0.016  # s, one frame at ~60 fps
SPEED_SCALE = 0.2
ERROR_AMPLITUDE_THRESHOLD = 0.1
MIN_AMPLITUDE = 0.01
NOISE_SCALE = 0.1
DISTORTION_SCALE = 0.1
EYE_HISTORY_LENGTH = 50


class SignalPacket(BaseModel):
  """A waveform snapshot travelling through the channel.

  Attributes:
    id: Identifier, unique per simulator.
    payload: Waveform captured at transmit time.
    position: Path position, 0 at the transmitter and 1 at the receiver.
    amplitude: Amplitude scale after the impairments at `position`.
    created_at: Simulation clock value when the packet was transmitted.
  """

  id: int
  payload: Waveform
  position: float = 0.0
  amplitude: float = 1.0
  created_at: float = 0.0


class PacketArrival(BaseModel):
  """A packet reaching the receiver."""

  packet_id: int
  errored: bool
  amplitude: float

  model_config = {"frozen": True}


class TransmissionStats(BaseModel):
  """Aggregate transmission counters.

  Attributes:
    transmitted: Packets handed to `transmit`.
    received: Packets that reached the receiver.
    errors: Received packets whose amplitude fell below the error threshold.
    ber: `errors / received`, 0 before anything is received.
    snr_db: SNR implied by the configured noise level.
  """

  transmitted: int = 0
  received: int = 0
  errors: int = 0
  ber: float = 0.0
  snr_db: float = 0.0

  model_config = {"frozen": True}


def packet_amplitude(
  position: float, params: ChannelParameters, rng: np.random.Generator
) -> float:
  """Amplitude of a unit signal after travelling to `position`.

  Applies distance attenuation, additive uniform noise and a position
  dependent distortion ripple, in that order. The result is floored at
  `MIN_AMPLITUDE`.
  """
  loss_db = params.attenuation * (position * params.distance) / 1000
  amplitude = 10 ** (-loss_db / 20)

  amplitude += (rng.random() - 0.5) * params.noise_level * NOISE_SCALE

  amplitude *= 1 + math.sin(position * 4 * math.pi) * params.distortion * DISTORTION_SCALE

  return max(MIN_AMPLITUDE, amplitude)


def noise_snr_db(noise_level: float) -> float:
  """SNR of a unit-power signal against the configured noise level."""
  noise_power = noise_level**2
  return 10 * math.log10(1.0 / max(0.001, noise_power))


class PacketSimulator:
  """Moves packets through a channel and keeps transmission statistics."""

  def __init__(
    self,
    params: ChannelParameters | None = None,
    speed_factor: float = 1.0,
    rng: np.random.Generator | None = None,
    seed: int | None = None,
    record_eye_diagram: bool = False,
  ) -> None:
    """Initialize the simulator.

    Args:
      params: Channel configuration. Defaults to `ChannelParameters()`.
      speed_factor: Simulation rate multiplier applied to every tick.
      rng: Random source for the per-step noise draws.
      seed: Seed for a new generator, used only when `rng` is omitted.
      record_eye_diagram: Keep the payloads of recently arrived packets.
    """
    if not math.isfinite(speed_factor) or speed_factor < 0:
      msg = f"Speed factor must be finite and not negative, got {speed_factor}"
      raise InvalidArgumentError(msg)

    self.params = params if params is not None else ChannelParameters()
    self.speed_factor = speed_factor
    self.record_eye_diagram = record_eye_diagram
    self._rng = rng if rng is not None else np.random.default_rng(seed)

    self._packets: dict[int, SignalPacket] = {}
    self._ids = itertools.count()
    self._clock = 0.0
    self._eye_history: deque[Waveform] = deque(maxlen=EYE_HISTORY_LENGTH)

    self._transmitted = 0
    self._received = 0
    self._errors = 0

  @property
  def in_flight(self) -> MappingProxyType[int, SignalPacket]:
    """Live packets keyed by id.

    The mapping is read-only but the packets are the simulator's own
    objects, not copies. Setting a packet's `position` places it on the
    path (e.g. just short of the receiver); the next `step` recomputes its
    amplitude from there.
    """
    return MappingProxyType(self._packets)

  @property
  def eye_history(self) -> list[Waveform]:
    """Payloads of the most recently arrived packets, oldest first."""
    return list(self._eye_history)

  @property
  def clock(self) -> float:
    """Simulated seconds elapsed over all steps."""
    return self._clock

  def update_parameters(self, params: ChannelParameters) -> None:
    """Use `params` from the next step on; packets keep their positions."""
    self.params = params

  def transmit(self, waveform: Waveform) -> int:
    """Launch a packet carrying `waveform` and count it as transmitted.

    Returns:
      The new packet id.
    """
    packet = SignalPacket(
      id=next(self._ids), payload=waveform, created_at=self._clock
    )
    self._packets[packet.id] = packet
    self._transmitted += 1
    logger.debug(f"Packet {packet.id} transmitted ({len(waveform)} samples)")
    return packet.id

  def step(self, delta_time: float = DEFAULT_DELTA_TIME) -> list[PacketArrival]:
    """Advance every in-flight packet by one tick.

    Args:
      delta_time: Tick length in seconds.

    Returns:
      Arrival events for the packets that reached the receiver this tick,
      in packet id order.
    """
    if not math.isfinite(delta_time) or delta_time < 0:
      msg = f"delta_time must be finite and not negative, got {delta_time}"
      raise InvalidArgumentError(msg)

    advance = self.speed_factor * delta_time * SPEED_SCALE
    arrivals: list[PacketArrival] = []

    for packet_id in sorted(self._packets):
      packet = self._packets[packet_id]
      packet.position += advance

      if packet.position >= 1.0:
        arrivals.append(self._receive(packet))
        del self._packets[packet_id]
      else:
        packet.amplitude = packet_amplitude(packet.position, self.params, self._rng)

    self._clock += delta_time
    return arrivals

  def _receive(self, packet: SignalPacket) -> PacketArrival:
    errored = packet.amplitude < ERROR_AMPLITUDE_THRESHOLD
    self._received += 1
    if errored:
      self._errors += 1
    if self.record_eye_diagram:
      self._eye_history.append(packet.payload)

    logger.debug(
      f"Packet {packet.id} arrived with amplitude {packet.amplitude:.3f}"
      f"{' (error)' if errored else ''}"
    )
    return PacketArrival(
      packet_id=packet.id, errored=errored, amplitude=packet.amplitude
    )

  def stop_transmission(self) -> None:
    """Drop every in-flight packet without counting it."""
    self._packets.clear()

  def average_amplitude(self) -> float:
    """Mean amplitude over the in-flight packets, 0 when there are none."""
    if not self._packets:
      return 0.0
    return sum(p.amplitude for p in self._packets.values()) / len(self._packets)

  def get_stats(self) -> TransmissionStats:
    """Snapshot of the counters with derived BER and SNR."""
    ber = self._errors / self._received if self._received > 0 else 0.0
    return TransmissionStats(
      transmitted=self._transmitted,
      received=self._received,
      errors=self._errors,
      ber=ber,
      snr_db=noise_snr_db(self.params.noise_level),
    )

  def reset_stats(self) -> None:
    """Zero the counters and forget the eye diagram history."""
    self._transmitted = 0
    self._received = 0
    self._errors = 0
    self._eye_history.clear()
