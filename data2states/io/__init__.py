from .loaders import load_method_table, load_raster
from .writers import results_to_frame, write_method_results, write_states

__all__ = [
    "load_method_table",
    "load_raster",
    "results_to_frame",
    "write_method_results",
    "write_states",
]
