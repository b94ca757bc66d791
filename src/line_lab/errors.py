"""Exception types raised by the line_lab engine."""


class LineLabError(Exception):
  """Base class for all engine failures."""


class InvalidArgumentError(LineLabError, ValueError):
  """An argument is outside the domain the operation accepts.

  Raised for non-positive durations or rates, parameter combinations that
  yield zero samples per bit or symbol, malformed bit sequences and
  degenerate constellations.
  """


class LengthMismatchError(LineLabError, ValueError):
  """Two sequences that must be compared sample by sample differ in length."""
