"""
Core simulation components: phantoms, pressure synthesis, acoustics, noise.
"""

from .tissue import (make_disc, make_multi_disc_phantom, smiley_phantom,
                     validate_dimensions, generate_pressure_fields, TissuePressureGenerator)
from .acoustics import (GridGeometry, TraceShape, AcousticForwardModel, ImageReconstructor,
                        DirectLineArray, TimeOfFlightLineArray, probe_trace_shape,
                        as_forward_model, as_reconstructor)
from .noise import NoiseModel, GaussianTraceNoise, NoiseInjector, NoiseStatistics, task_rng

__all__ = [
    "make_disc", "make_multi_disc_phantom", "smiley_phantom",
    "validate_dimensions", "generate_pressure_fields", "TissuePressureGenerator",
    "GridGeometry", "TraceShape", "AcousticForwardModel", "ImageReconstructor",
    "DirectLineArray", "TimeOfFlightLineArray", "probe_trace_shape",
    "as_forward_model", "as_reconstructor",
    "NoiseModel", "GaussianTraceNoise", "NoiseInjector", "NoiseStatistics", "task_rng"
]
