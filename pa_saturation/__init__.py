"""
PA Saturation Simulation Framework
==================================

Simulates multispectral photoacoustic imaging of a tissue phantom and
recovers absorber saturation by spectral unmixing:

- Initial pressure synthesis from absorption spectra and concentrations
- Line-array acoustic forward models and reconstructors
- Calibrated, reproducible Gaussian trace noise
- Per-pixel non-negative least squares unmixing
- Noise level x concentration scenario sweeps
"""

__version__ = "0.1.0"

from . import core
from . import analysis
from .config import SimulationConfig
from .exceptions import PASaturationError, DimensionMismatch
from .simulation import (ResultGrid, SimulationResult, SimulationOrchestrator,
                         run_spectral_unmixing_simulation)

__all__ = [
    "core", "analysis",
    "SimulationConfig", "PASaturationError", "DimensionMismatch",
    "ResultGrid", "SimulationResult", "SimulationOrchestrator",
    "run_spectral_unmixing_simulation"
]
