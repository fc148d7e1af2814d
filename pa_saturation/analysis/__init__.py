"""
Analysis tools: spectral unmixing, absorption-matrix conditioning, recovery.
"""

from .unmixing import (UnmixingResult, SpectralUnmixer, spectral_unmix, nnls_batch,
                       CONCENTRATION_FLOOR, UNMIXING_METHODS)
from .condition import (condition_number, singular_value_spectrum,
                        ConditionAnalysis, analyze_absorption_matrix)
from .recovery import (true_saturation, mean_concentrations_in_mask, concentration_ratio_in_mask,
                       saturation_error, measured_noise_levels, summarize_grid)

__all__ = [
    "UnmixingResult", "SpectralUnmixer", "spectral_unmix", "nnls_batch",
    "CONCENTRATION_FLOOR", "UNMIXING_METHODS",
    "condition_number", "singular_value_spectrum",
    "ConditionAnalysis", "analyze_absorption_matrix",
    "true_saturation", "mean_concentrations_in_mask", "concentration_ratio_in_mask",
    "saturation_error", "measured_noise_levels", "summarize_grid"
]
