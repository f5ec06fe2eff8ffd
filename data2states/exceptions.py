"""Error taxonomy for state conversion.

Every validation error is raised before any output is produced, so a
failing call never returns a partially converted raster.
"""


class StateConversionError(ValueError):
    """Base class for all data2states errors."""


class InputShapeError(StateConversionError):
    """Raster or method table has an unexpected shape."""


class DuplicateAssignmentError(StateConversionError):
    """The same (category, variable) pair was assigned more than once."""


class InvalidMethodError(StateConversionError):
    """Unknown method name or malformed method parameters."""


class DependencyError(StateConversionError):
    """A max-mutual-information reference cannot be resolved."""


class BinCountExceededError(StateConversionError):
    """Max-mutual-information requested more than MAX_MI_BINS states."""


class ProbabilityMismatchError(StateConversionError):
    """Manual Poisson-mixture probabilities do not match the state count."""


class ProbabilityNormalizationError(StateConversionError):
    """A manual probability row is negative or does not sum to one."""


class ConvergenceError(StateConversionError):
    """The Poisson-mixture likelihood fit did not converge."""
