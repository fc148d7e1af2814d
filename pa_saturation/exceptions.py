"""
Exception types raised by the simulation pipeline.

Only structural problems are raised. Numerically degenerate pixels in the
unmixing step (zero total concentration, non-positive solver output) are
corrected in place by flooring and never surface as exceptions.
"""


class PASaturationError(Exception):
    """Base class for all errors raised by pa_saturation."""


class DimensionMismatch(PASaturationError, ValueError):
    """
    Absorption matrix, wavelengths, concentrations, type names or mask
    disagree in shape.

    Raised before any simulation work starts, so a run that fails with this
    error produces no partial results.
    """
