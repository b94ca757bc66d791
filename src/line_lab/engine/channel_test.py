"""Tests for the packet channel simulator."""

import itertools

import numpy as np
import pytest

from line_lab.engine.channel import (
  EYE_HISTORY_LENGTH,
  MIN_AMPLITUDE,
  PacketSimulator,
  noise_snr_db,
  packet_amplitude,
)
from line_lab.engine.media import ChannelParameters
from line_lab.engine.waveforms import Waveform
from line_lab.errors import InvalidArgumentError

CLEAN = ChannelParameters(attenuation=0.0, noise_level=0.0, distortion=0.0)
LOSSY = ChannelParameters(
  distance=1000, attenuation=1000.0, noise_level=0.0, distortion=0.0
)


@pytest.fixture
def waveform() -> Waveform:
  """A short payload."""
  return Waveform(time=[0.0, 0.5, 1.0], amplitude=[1.0, -1.0, 1.0])


def run_until_idle(simulator: PacketSimulator, max_steps: int = 1000) -> int:
  """Step until no packets are in flight, returning the number of steps."""
  for steps in range(1, max_steps + 1):
    simulator.step()
    if not simulator.in_flight:
      return steps
  msg = "packets never arrived"
  raise AssertionError(msg)


class TestPacketAmplitude:
  """Tests for the per-position impairment model."""

  @pytest.mark.parametrize(
    ("position", "attenuation", "noise", "distortion"),
    list(
      itertools.product(
        [0.0, 0.3, 0.99], [0.0, 20.0, 500.0], [0.0, 1.0], [0.0, 1.0]
      )
    ),
  )
  def test_floor(self, position, attenuation, noise, distortion) -> None:
    """Test that the amplitude never drops below the floor."""
    params = ChannelParameters(
      distance=500,
      attenuation=attenuation,
      noise_level=noise,
      distortion=distortion,
    )
    rng = np.random.default_rng(0)
    for _ in range(20):
      assert packet_amplitude(position, params, rng) >= MIN_AMPLITUDE

  def test_no_impairments(self) -> None:
    """Test that a clean channel leaves the amplitude at 1."""
    rng = np.random.default_rng(0)
    assert packet_amplitude(0.37, CLEAN, rng) == 1.0

  def test_attenuation_only(self) -> None:
    """Test the dB to linear amplitude conversion."""
    params = ChannelParameters(
      distance=1000, attenuation=20.0, noise_level=0.0, distortion=0.0
    )
    rng = np.random.default_rng(0)
    assert packet_amplitude(0.5, params, rng) == pytest.approx(10 ** (-10 / 20))

  def test_noise_snr(self) -> None:
    """Test the SNR implied by the noise level."""
    assert noise_snr_db(0.1) == pytest.approx(20.0)
    assert noise_snr_db(0.0) == pytest.approx(30.0)


class TestPacketSimulator:
  """Tests for the simulator lifecycle and counters."""

  def test_transmit_counts_immediately(self, waveform) -> None:
    """Test that transmitted counts at transmit time, before any step."""
    simulator = PacketSimulator(CLEAN, seed=0)
    first = simulator.transmit(waveform)
    second = simulator.transmit(waveform)
    assert second > first
    assert simulator.get_stats().transmitted == 2
    assert simulator.get_stats().received == 0
    assert set(simulator.in_flight) == {first, second}

  def test_packet_state(self, waveform) -> None:
    """Test the state of a freshly launched packet."""
    simulator = PacketSimulator(CLEAN, seed=0)
    simulator.step()
    simulator.step()
    packet_id = simulator.transmit(waveform)
    packet = simulator.in_flight[packet_id]
    assert packet.position == 0.0
    assert packet.amplitude == 1.0
    assert packet.created_at == simulator.clock
    assert packet.payload is waveform

  def test_arrival_in_one_step(self, waveform) -> None:
    """Test that a packet just short of the receiver arrives next step."""
    simulator = PacketSimulator(CLEAN, seed=0)
    packet_id = simulator.transmit(waveform)
    simulator.in_flight[packet_id].position = 0.999999

    arrivals = simulator.step()

    assert [a.packet_id for a in arrivals] == [packet_id]
    assert not arrivals[0].errored
    assert packet_id not in simulator.in_flight
    stats = simulator.get_stats()
    assert stats.received == 1
    assert stats.errors == 0

  def test_crossing_time(self, waveform) -> None:
    """Test that a packet needs about 1 / (0.016 * 0.2) ticks to arrive."""
    simulator = PacketSimulator(CLEAN, seed=0)
    simulator.transmit(waveform)
    assert 312 <= run_until_idle(simulator) <= 314

  def test_speed_factor(self, waveform) -> None:
    """Test that doubling the speed halves the crossing time."""
    simulator = PacketSimulator(CLEAN, speed_factor=2.0, seed=0)
    simulator.transmit(waveform)
    assert 156 <= run_until_idle(simulator) <= 158

  def test_zero_speed_freezes(self, waveform) -> None:
    """Test that a zero speed factor keeps packets in place."""
    simulator = PacketSimulator(CLEAN, speed_factor=0.0, seed=0)
    packet_id = simulator.transmit(waveform)
    for _ in range(10):
      simulator.step()
    assert simulator.in_flight[packet_id].position == 0.0

  def test_received_once(self, waveform) -> None:
    """Test that every packet is counted exactly once."""
    simulator = PacketSimulator(seed=1)
    for _ in range(5):
      simulator.transmit(waveform)
      simulator.step()
    run_until_idle(simulator)
    for _ in range(10):
      simulator.step()

    stats = simulator.get_stats()
    assert stats.transmitted == 5
    assert stats.received == 5

  def test_weak_packet_is_error(self, waveform) -> None:
    """Test that arrivals below the threshold are counted as errors."""
    simulator = PacketSimulator(LOSSY, seed=0)
    simulator.transmit(waveform)
    run_until_idle(simulator)

    stats = simulator.get_stats()
    assert stats.received == 1
    assert stats.errors == 1
    assert stats.ber == 1.0

  def test_stop_transmission(self, waveform) -> None:
    """Test that stopped packets are dropped without being counted."""
    simulator = PacketSimulator(CLEAN, seed=0)
    for _ in range(3):
      simulator.transmit(waveform)
    simulator.step()
    simulator.stop_transmission()

    assert not simulator.in_flight
    stats = simulator.get_stats()
    assert stats.transmitted == 3
    assert stats.received == 0
    assert stats.errors == 0

  def test_stop_transmission_twice(self, waveform) -> None:
    """Test that a repeated stop is harmless and later ticks count nothing."""
    simulator = PacketSimulator(CLEAN, seed=0)
    for _ in range(3):
      simulator.transmit(waveform)
    simulator.step()
    simulator.stop_transmission()
    simulator.stop_transmission()

    for _ in range(400):
      assert simulator.step() == []

    assert not simulator.in_flight
    stats = simulator.get_stats()
    assert (stats.transmitted, stats.received, stats.errors) == (3, 0, 0)

  def test_reset_stats(self, waveform) -> None:
    """Test that reset zeroes the counters and clears the eye history."""
    simulator = PacketSimulator(LOSSY, seed=0, record_eye_diagram=True)
    simulator.transmit(waveform)
    run_until_idle(simulator)
    assert len(simulator.eye_history) == 1

    simulator.reset_stats()

    stats = simulator.get_stats()
    assert (stats.transmitted, stats.received, stats.errors) == (0, 0, 0)
    assert stats.ber == 0.0
    assert simulator.eye_history == []

  def test_eye_history_is_bounded(self, waveform) -> None:
    """Test that only the most recent payloads are kept."""
    simulator = PacketSimulator(CLEAN, seed=0, record_eye_diagram=True)
    for _ in range(EYE_HISTORY_LENGTH + 10):
      simulator.transmit(waveform)
    run_until_idle(simulator)
    assert len(simulator.eye_history) == EYE_HISTORY_LENGTH

  def test_eye_history_off_by_default(self, waveform) -> None:
    """Test that payloads are not kept unless requested."""
    simulator = PacketSimulator(CLEAN, seed=0)
    simulator.transmit(waveform)
    run_until_idle(simulator)
    assert simulator.eye_history == []

  def test_seeded_runs_match(self, waveform) -> None:
    """Test that the same seed reproduces the same arrivals."""

    def run(seed: int) -> list:
      simulator = PacketSimulator(seed=seed)
      arrivals = []
      for _ in range(4):
        simulator.transmit(waveform)
        arrivals.extend(simulator.step())
      while simulator.in_flight:
        arrivals.extend(simulator.step())
      return arrivals

    assert run(7) == run(7)

  def test_negative_delta_time(self, waveform) -> None:
    """Test that a negative tick is rejected and changes nothing."""
    simulator = PacketSimulator(CLEAN, seed=0)
    packet_id = simulator.transmit(waveform)
    simulator.step()
    position = simulator.in_flight[packet_id].position
    clock = simulator.clock

    with pytest.raises(InvalidArgumentError):
      simulator.step(-0.016)

    assert simulator.in_flight[packet_id].position == position
    assert simulator.clock == clock

  @pytest.mark.parametrize("delta_time", [float("nan"), float("inf")])
  def test_non_finite_delta_time(self, waveform, delta_time) -> None:
    """Test that a non-finite tick is rejected and the packet still arrives."""
    simulator = PacketSimulator(CLEAN, seed=0)
    packet_id = simulator.transmit(waveform)
    simulator.step()
    position = simulator.in_flight[packet_id].position
    clock = simulator.clock

    with pytest.raises(InvalidArgumentError):
      simulator.step(delta_time)

    assert simulator.in_flight[packet_id].position == position
    assert simulator.clock == clock
    run_until_idle(simulator)
    assert simulator.get_stats().received == 1

  @pytest.mark.parametrize("speed_factor", [-1.0, float("nan"), float("inf")])
  def test_invalid_speed_factor(self, speed_factor) -> None:
    """Test that negative or non-finite speed factors are rejected."""
    with pytest.raises(InvalidArgumentError):
      PacketSimulator(speed_factor=speed_factor)

  def test_in_flight_packets_are_live(self, waveform) -> None:
    """Test that in_flight exposes the packets themselves behind a read-only map."""
    simulator = PacketSimulator(CLEAN, seed=0)
    packet_id = simulator.transmit(waveform)

    with pytest.raises(TypeError):
      del simulator.in_flight[packet_id]  # type: ignore[attr-defined]

    simulator.in_flight[packet_id].position = 0.5
    simulator.step()
    assert simulator.in_flight[packet_id].position == pytest.approx(0.5032)

  def test_clock(self) -> None:
    """Test that the clock sums the tick lengths."""
    simulator = PacketSimulator(seed=0)
    simulator.step(0.5)
    simulator.step(0.25)
    assert simulator.clock == pytest.approx(0.75)

  def test_stats_snr(self) -> None:
    """Test that the reported SNR follows the configured noise level."""
    simulator = PacketSimulator(ChannelParameters(noise_level=0.1), seed=0)
    assert simulator.get_stats().snr_db == pytest.approx(20.0)

    simulator.update_parameters(ChannelParameters(noise_level=0.0))
    assert simulator.get_stats().snr_db == pytest.approx(30.0)

  def test_update_parameters_keeps_packets(self, waveform) -> None:
    """Test that packets keep their position across a parameter change."""
    simulator = PacketSimulator(CLEAN, seed=0)
    packet_id = simulator.transmit(waveform)
    simulator.step()
    position = simulator.in_flight[packet_id].position

    simulator.update_parameters(LOSSY)
    simulator.step()

    packet = simulator.in_flight[packet_id]
    assert packet.position > position
    assert packet.amplitude < 1.0

  def test_average_amplitude(self, waveform) -> None:
    """Test the mean amplitude of the packets in flight."""
    simulator = PacketSimulator(CLEAN, seed=0)
    assert simulator.average_amplitude() == 0.0
    simulator.transmit(waveform)
    simulator.transmit(waveform)
    simulator.step()
    assert simulator.average_amplitude() == pytest.approx(1.0)

  def test_injected_generator(self, waveform) -> None:
    """Test that an injected generator takes precedence over the seed."""
    a = PacketSimulator(rng=np.random.default_rng(3), seed=99)
    b = PacketSimulator(rng=np.random.default_rng(3), seed=5)
    for simulator in (a, b):
      simulator.transmit(waveform)
      simulator.step()
    assert a.average_amplitude() == b.average_amplitude()
