"""data2states — discretize experimental measurements into integer states.

Public API:
    data2states         — single-call conversion returning (states, method results)
    StateConverter      — main orchestrator
    load_raster         — load a raster from file
    load_method_table   — load a method table from file
    write_states        — write a stated raster to NPY / NPZ
    write_method_results — write method results to JSON / CSV
"""

from .converter import ConversionResult, StateConverter, data2states
from .exceptions import (
    BinCountExceededError,
    ConvergenceError,
    DependencyError,
    DuplicateAssignmentError,
    InputShapeError,
    InvalidMethodError,
    ProbabilityMismatchError,
    ProbabilityNormalizationError,
    StateConversionError,
)
from .io.loaders import load_method_table, load_raster
from .io.writers import write_method_results, write_states
from .methods import MethodKind

__version__ = "0.1.0"

__all__ = [
    "data2states",
    "StateConverter",
    "ConversionResult",
    "MethodKind",
    "load_raster",
    "load_method_table",
    "write_states",
    "write_method_results",
    "StateConversionError",
    "InputShapeError",
    "DuplicateAssignmentError",
    "InvalidMethodError",
    "DependencyError",
    "BinCountExceededError",
    "ProbabilityMismatchError",
    "ProbabilityNormalizationError",
    "ConvergenceError",
    "__version__",
]
