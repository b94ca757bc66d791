"""Command line front end for the line_lab engine.

Examples:
  line-lab encode 10110100 --encoding Manchester
  line-lab modulate 0011 --modulation QAM --carrier-freq 5
  line-lab simulate 1011 --medium wireless --distance 2000 --packets 20
"""

import logging
from typing import Annotated

import numpy as np
import typer
from pydantic import ValidationError

from line_lab.config import Config
from line_lab.engine.channel import DEFAULT_DELTA_TIME, PacketSimulator
from line_lab.engine.line_coding import EncodingKind, encode
from line_lab.engine.media import (
  ChannelParameters,
  MediumKind,
  default_parameters,
  estimate_link,
  get_medium_profile,
  total_cost,
  validate_channel,
)
from line_lab.engine.metrics import compute_metrics
from line_lab.engine.modulation import ModulationKind, ModulationParameters, modulate
from line_lab.engine.signal_math import magnitude_spectrum
from line_lab.engine.waveforms import Waveform, downsample
from line_lab.errors import LineLabError
from line_lab.setup_logging import setup_logging

logger = logging.getLogger(__name__)

app = typer.Typer(help="Line coding, modulation and channel simulation.")

BitsArg = Annotated[str, typer.Argument(help="Bit string, e.g. 10110100.")]
BitDurationOpt = Annotated[
  float, typer.Option("--bit-duration", "-d", help="Seconds per bit.")
]
SampleRateOpt = Annotated[
  float, typer.Option("--sample-rate", "-r", help="Samples per second.")
]
MaxPointsOpt = Annotated[
  int, typer.Option("--max-points", help="Samples to print after thinning.")
]


@app.callback()
def main(
  log_level: Annotated[
    str, typer.Option("--log-level", help="Logging level.")
  ] = "WARNING",
) -> None:
  """Line coding, modulation and channel simulation."""
  setup_logging(level=log_level)


def _load_config(**values) -> Config:
  try:
    return Config(**values)
  except ValidationError as e:
    logger.error(f"Invalid configuration: {e}")
    raise typer.Exit(code=1) from e


def _print_waveform(waveform: Waveform, max_points: int) -> None:
  typer.echo(f"samples: {len(waveform)}  duration: {waveform.duration:.4f}s")
  shown = downsample(waveform, max_points)
  for t, a in zip(shown.time, shown.amplitude, strict=True):
    typer.echo(f"{t:10.4f} {a:+.4f}")


@app.command("encode")
def encode_command(
  bits: BitsArg,
  encoding: Annotated[
    EncodingKind, typer.Option("--encoding", "-e", help="Line code.")
  ] = EncodingKind.NRZ,
  bit_duration: BitDurationOpt = 1.0,
  sample_rate: SampleRateOpt = 1000.0,
  max_points: MaxPointsOpt = 32,
) -> None:
  """Encode a bit string with a line code and print the waveform."""
  config = _load_config(
    bit_string=bits,
    encoding=encoding,
    bit_duration=bit_duration,
    sample_rate=sample_rate,
  )
  try:
    waveform = encode(
      config.bit_string, config.encoding, config.bit_duration, config.sample_rate
    )
    typer.echo(f"encoding: {config.encoding}")
    _print_waveform(waveform, max_points)
  except LineLabError as e:
    logger.error(str(e))
    raise typer.Exit(code=1) from e


@app.command("modulate")
def modulate_command(
  bits: BitsArg,
  modulation: Annotated[
    ModulationKind, typer.Option("--modulation", "-m", help="Modulation.")
  ] = ModulationKind.ASK,
  carrier_freq: Annotated[
    float, typer.Option("--carrier-freq", "-f", help="Carrier frequency in Hz.")
  ] = 10.0,
  bit_duration: BitDurationOpt = 1.0,
  sample_rate: SampleRateOpt = 1000.0,
  max_points: MaxPointsOpt = 32,
) -> None:
  """Modulate a bit string onto a carrier and print the waveform."""
  config = _load_config(
    bit_string=bits,
    modulation=modulation,
    carrier_freq=carrier_freq,
    bit_duration=bit_duration,
    sample_rate=sample_rate,
  )
  params = ModulationParameters(
    carrier_freq=config.carrier_freq,
    fsk_freq0=config.carrier_freq * 0.8,
    fsk_freq1=config.carrier_freq * 1.2,
  )
  try:
    waveform = modulate(
      config.bit_string,
      config.modulation,
      params,
      config.bit_duration,
      config.sample_rate,
    )
    typer.echo(f"modulation: {config.modulation}")
    _print_waveform(waveform, max_points)
  except LineLabError as e:
    logger.error(str(e))
    raise typer.Exit(code=1) from e


@app.command("metrics")
def metrics_command(
  modulation: Annotated[
    ModulationKind, typer.Option("--modulation", "-m", help="Modulation.")
  ] = ModulationKind.QAM,
) -> None:
  """Print the figures of merit of a modulation with default parameters."""
  metrics = compute_metrics(modulation, ModulationParameters())
  typer.echo(f"spectral efficiency: {metrics.spectral_efficiency:.2f} bit/s/Hz")
  typer.echo(f"power efficiency:    {metrics.power_efficiency_db:.1f} dB")
  typer.echo(f"minimum distance:    {metrics.min_distance:.2f}")
  typer.echo(f"symbol error rate:   {metrics.symbol_error_rate:.3e}")


@app.command("spectrum")
def spectrum_command(
  bits: BitsArg,
  encoding: Annotated[
    EncodingKind, typer.Option("--encoding", "-e", help="Line code.")
  ] = EncodingKind.NRZ,
  bit_duration: BitDurationOpt = 1.0,
  sample_rate: SampleRateOpt = 1000.0,
  peaks: Annotated[int, typer.Option("--peaks", help="Bins to print.")] = 5,
) -> None:
  """Print the strongest spectral bins of an encoded bit string."""
  config = _load_config(
    bit_string=bits,
    encoding=encoding,
    bit_duration=bit_duration,
    sample_rate=sample_rate,
  )
  try:
    waveform = encode(
      config.bit_string, config.encoding, config.bit_duration, config.sample_rate
    )
  except LineLabError as e:
    logger.error(str(e))
    raise typer.Exit(code=1) from e

  # Largest power-of-two prefix of the waveform
  n = 1 << (len(waveform).bit_length() - 1)
  logger.info(f"Transforming the first {n} of {len(waveform)} samples")
  freqs, magnitudes = magnitude_spectrum(waveform.amplitude[:n], config.sample_rate)

  half = max(1, n // 2)
  order = np.argsort(magnitudes[:half])[::-1][:peaks]
  for idx in order:
    typer.echo(f"{freqs[idx]:10.3f} Hz {magnitudes[idx]:12.4f}")


@app.command("medium")
def medium_command(
  medium: Annotated[MediumKind, typer.Argument(help="Transmission medium.")],
  distance: Annotated[
    float | None, typer.Option("--distance", help="Span in meters.")
  ] = None,
) -> None:
  """Describe a medium and estimate its link budget."""
  profile = get_medium_profile(medium)
  params = default_parameters(medium)
  if distance is not None:
    try:
      params = ChannelParameters(**(params.model_dump() | {"distance": distance}))
    except ValidationError as e:
      logger.error(f"Invalid channel parameters: {e}")
      raise typer.Exit(code=1) from e

  estimate = estimate_link(params)
  validation = validate_channel(params)

  typer.echo(f"{profile.name}: {profile.description}")
  typer.echo(f"max distance:       {profile.max_distance:g} m")
  typer.echo(f"typical attenuation:{profile.typical_attenuation:g} dB/km")
  typer.echo(f"total attenuation:  {estimate.total_attenuation_db:.1f} dB")
  typer.echo(f"estimated SNR:      {estimate.estimated_snr_db:.1f} dB")
  typer.echo(f"propagation delay:  {estimate.propagation_delay_us:.2f} us")
  typer.echo(f"estimated BER:      {estimate.estimated_ber:.1e}")
  typer.echo(f"relative cost:      {total_cost(params):.0f}")
  for message in validation.errors:
    logger.error(message)
  for message in validation.warnings:
    logger.warning(message)


@app.command("simulate")
def simulate_command(
  bits: BitsArg,
  medium: Annotated[
    MediumKind, typer.Option("--medium", help="Transmission medium.")
  ] = MediumKind.COAXIAL,
  distance: Annotated[float, typer.Option("--distance", help="Meters.")] = 100.0,
  attenuation: Annotated[
    float | None, typer.Option("--attenuation", help="dB/km, medium typical if unset.")
  ] = None,
  noise: Annotated[float, typer.Option("--noise", help="Noise level 0-1.")] = 0.1,
  distortion: Annotated[
    float, typer.Option("--distortion", help="Distortion level 0-1.")
  ] = 0.1,
  packets: Annotated[int, typer.Option("--packets", "-n", help="Packets.")] = 10,
  speed: Annotated[float, typer.Option("--speed", help="Speed factor.")] = 1.0,
  seed: Annotated[int | None, typer.Option("--seed", help="Random seed.")] = None,
) -> None:
  """Send packets through a channel and report the transmission statistics."""
  config = _load_config(bit_string=bits, speed_factor=speed, seed=seed)
  try:
    params = ChannelParameters(
      medium=medium,
      distance=distance,
      attenuation=(
        attenuation
        if attenuation is not None
        else get_medium_profile(medium).typical_attenuation
      ),
      noise_level=noise,
      distortion=distortion,
    )
  except ValidationError as e:
    logger.error(f"Invalid channel parameters: {e}")
    raise typer.Exit(code=1) from e

  waveform = encode(
    config.bit_string, config.encoding, config.bit_duration, config.sample_rate
  )
  simulator = PacketSimulator(
    params, speed_factor=config.speed_factor, seed=config.seed
  )

  for _ in range(packets):
    simulator.transmit(waveform)
    simulator.step(DEFAULT_DELTA_TIME)
  while simulator.in_flight:
    simulator.step(DEFAULT_DELTA_TIME)

  stats = simulator.get_stats()
  logger.info(f"Simulated {simulator.clock:.2f}s of channel time")
  typer.echo(f"transmitted: {stats.transmitted}")
  typer.echo(f"received:    {stats.received}")
  typer.echo(f"errors:      {stats.errors}")
  typer.echo(f"BER:         {stats.ber:.4f}")
  typer.echo(f"SNR:         {stats.snr_db:.1f} dB")


if __name__ == "__main__":
  app()
