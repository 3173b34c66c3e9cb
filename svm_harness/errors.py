"""
Error types raised by the experiment harness.

Every error derives from HarnessError so the command line entry point can
report harness failures separately from unexpected crashes.
"""


class HarnessError(Exception):
    """Base class for all harness errors."""


class ShapeMismatch(HarnessError, ValueError):
    """Label and feature counts (or feature dimensionalities) disagree."""


class EmptyProblem(HarnessError, ValueError):
    """Evaluation attempted on a problem without samples."""


class InvalidFoldCount(HarnessError, ValueError):
    """Fold count outside [2, total_samples]."""


class DegenerateGridSpec(HarnessError, ValueError):
    """Grid specification that cannot produce a geometric sequence."""


class SolverRejectedParameters(HarnessError, ValueError):
    """The solver's parameter check refused the configuration."""


class PersistenceFailure(HarnessError, OSError):
    """Saving or loading a model failed."""


class UnknownMode(HarnessError, ValueError):
    """Unrecognized run mode token."""


class DatasetUnavailable(HarnessError, RuntimeError):
    """The dataset source returned no training data."""
