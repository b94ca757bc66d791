"""Tests for the waveform type and bit handling helpers."""

import numpy as np
import pytest
from pydantic import ValidationError

from line_lab.engine.waveforms import (
  ToneParameters,
  Waveform,
  cosine_wave,
  downsample,
  parse_bits,
  random_bits,
  samples_per_unit,
  sine_wave,
  square_wave,
  symbol_grid,
)
from line_lab.errors import InvalidArgumentError


class TestWaveform:
  """Tests for the Waveform model."""

  def test_construction(self) -> None:
    """Test that lists are converted to float arrays."""
    waveform = Waveform(time=[0, 1, 2], amplitude=[1, -1, 1])
    assert len(waveform) == 3
    assert waveform.time.dtype == np.float64
    assert waveform.duration == 2.0

  def test_length_mismatch(self) -> None:
    """Test that unequal array lengths are rejected."""
    with pytest.raises(ValidationError):
      Waveform(time=[0.0, 1.0], amplitude=[1.0])

  def test_time_must_increase(self) -> None:
    """Test that non-increasing time is rejected."""
    with pytest.raises(ValidationError):
      Waveform(time=[0.0, 0.0, 1.0], amplitude=[1.0, 1.0, 1.0])

  def test_arrays_are_read_only(self) -> None:
    """Test that returned arrays cannot be modified in place."""
    waveform = Waveform(time=[0.0, 1.0], amplitude=[1.0, 2.0])
    with pytest.raises(ValueError):
      waveform.amplitude[0] = 5.0

  def test_source_array_is_copied(self) -> None:
    """Test that mutating the source array does not affect the waveform."""
    amplitude = np.array([1.0, 2.0])
    waveform = Waveform(time=[0.0, 1.0], amplitude=amplitude)
    amplitude[0] = 9.0
    assert waveform.amplitude[0] == 1.0

  def test_empty(self) -> None:
    """Test that an empty waveform is valid."""
    waveform = Waveform(time=[], amplitude=[])
    assert len(waveform) == 0
    assert waveform.duration == 0.0


class TestParseBits:
  """Tests for bit sequence parsing."""

  def test_string(self) -> None:
    """Test parsing of a bit string."""
    np.testing.assert_array_equal(parse_bits("1011"), [1, 0, 1, 1])

  def test_sequence(self) -> None:
    """Test parsing of an integer sequence."""
    bits = parse_bits([0, 1, 1])
    assert bits.dtype == np.uint8
    np.testing.assert_array_equal(bits, [0, 1, 1])

  def test_bool_array(self) -> None:
    """Test parsing of a boolean array."""
    np.testing.assert_array_equal(parse_bits(np.array([True, False])), [1, 0])

  @pytest.mark.parametrize("bits", ["10a1", "1 0", "2", [0, 2], [0.5, 1]])
  def test_rejects_malformed(self, bits) -> None:
    """Test that anything other than zeros and ones is rejected."""
    with pytest.raises(InvalidArgumentError):
      parse_bits(bits)

  def test_empty(self) -> None:
    """Test that an empty sequence is accepted."""
    assert len(parse_bits("")) == 0

  def test_random_bits(self) -> None:
    """Test random bit strings are reproducible and within length bounds."""
    a = random_bits(np.random.default_rng(4))
    b = random_bits(np.random.default_rng(4))
    assert a == b
    assert 4 <= len(a) <= 11
    assert set(a) <= {"0", "1"}


class TestSymbolGrid:
  """Tests for the shared per-sample indexing."""

  def test_grid(self) -> None:
    """Test indices, positions and sample instants."""
    grid = symbol_grid(2, 1.0, 4)
    np.testing.assert_array_equal(grid.index, [0, 0, 0, 0, 1, 1, 1, 1])
    np.testing.assert_allclose(grid.position[:4], [0.0, 0.25, 0.5, 0.75])
    np.testing.assert_allclose(grid.time, np.arange(8) / 4)

  @pytest.mark.parametrize(
    ("duration", "rate"),
    [
      (0.0001, 1000),
      (0.0, 1000),
      (1.0, 0),
      (-1.0, 100),
      (1.0, float("inf")),
      (float("inf"), 1000),
      (float("nan"), 1000),
      (1.0, float("nan")),
      (1e200, 1e200),
    ],
  )
  def test_invalid_units(self, duration, rate) -> None:
    """Test zero samples per unit and non-positive or non-finite arguments."""
    with pytest.raises(InvalidArgumentError):
      samples_per_unit(duration, rate)


class TestTones:
  """Tests for the reference tone generators."""

  def test_sine(self) -> None:
    """Test sine samples."""
    params = ToneParameters(amplitude=2.0, frequency=5.0, sample_rate=100, duration=0.1)
    waveform = sine_wave(params)
    t = np.arange(10) * (1 / 100)
    np.testing.assert_allclose(waveform.amplitude, 2.0 * np.sin(2 * np.pi * 5.0 * t))

  def test_cosine_phase(self) -> None:
    """Test that a quarter-period phase turns cosine into minus sine."""
    params = ToneParameters(frequency=1.0, phase=np.pi / 2, sample_rate=8, duration=1)
    waveform = cosine_wave(params)
    t = np.arange(8) / 8
    np.testing.assert_allclose(waveform.amplitude, -np.sin(2 * np.pi * t), atol=1e-12)

  def test_square_levels(self) -> None:
    """Test that square wave samples take only the amplitude levels or zero."""
    params = ToneParameters(amplitude=3.0, frequency=2.0, sample_rate=1000, duration=1)
    levels = set(np.unique(square_wave(params).amplitude))
    assert levels <= {-3.0, 0.0, 3.0}

  def test_downsample(self) -> None:
    """Test thinning of long waveforms."""
    waveform = sine_wave(ToneParameters(sample_rate=1000, duration=1.0))
    thinned = downsample(waveform, 100)
    assert len(thinned) == 100
    assert thinned.time[1] == waveform.time[10]

  def test_downsample_short_waveform(self) -> None:
    """Test that short waveforms are returned unchanged."""
    waveform = Waveform(time=[0.0, 1.0], amplitude=[0.0, 1.0])
    assert downsample(waveform, 10) is waveform

  def test_downsample_rejects_zero(self) -> None:
    """Test that a non-positive point budget is rejected."""
    waveform = Waveform(time=[0.0, 1.0], amplitude=[0.0, 1.0])
    with pytest.raises(InvalidArgumentError):
      downsample(waveform, 0)
