"""
Tissue phantoms and initial pressure synthesis.

The initial photoacoustic pressure generated by a laser pulse at wavelength
w is proportional to the local optical absorption. For a mixture of
absorber types with concentrations C(t, x, y) the linear mixing model is:

    P(w, c, x, y) = mask(x, y) · Σ_t ε(w, t) · C(c, t)

    - P: initial pressure for wavelength w and concentration scenario c
    - ε: absorption coefficient of type t at wavelength w
    - C: relative concentration of type t in scenario c (uniform in the mask)

This module builds the masks (discs and multi-disc phantoms) and evaluates
the model for every wavelength/scenario pair at once.
"""

import numpy as np
from typing import Optional, Sequence, Tuple

from ..exceptions import DimensionMismatch


def make_disc(Nx: int, Ny: int, cx: int, cy: int, radius: float) -> np.ndarray:
    """
    Create a filled disc on an (Nx, Ny) grid.

    Parameters
    ----------
    Nx, Ny : int
        Grid size in pixels.
    cx, cy : int
        Zero-based pixel indices of the disc centre.
    radius : float
        Disc radius in pixels. Pixels with centre distance ≤ radius are set.

    Returns
    -------
    np.ndarray
        Boolean mask of shape (Nx, Ny).

    Examples
    --------
    >>> disc = make_disc(9, 9, 4, 4, 1)
    >>> int(disc.sum())
    5
    """
    if radius < 0:
        raise ValueError(f"Disc radius must be non-negative, got {radius}")
    x = np.arange(Nx)[:, None]
    y = np.arange(Ny)[None, :]
    return (x - cx) ** 2 + (y - cy) ** 2 <= radius ** 2


def make_multi_disc_phantom(Nx: int, Ny: int,
                            discs: Sequence[Tuple[int, int, float]],
                            magnitudes: Optional[Sequence[float]] = None
                            ) -> np.ndarray:
    """
    Superpose several discs into one phantom.

    Parameters
    ----------
    Nx, Ny : int
        Grid size in pixels.
    discs : sequence of (cx, cy, radius)
        Disc centres (zero-based) and radii in pixels.
    magnitudes : sequence of float, optional
        Value added inside each disc. Default is 1 for every disc.

    Returns
    -------
    np.ndarray
        Float array of shape (Nx, Ny). Overlapping discs add up.
    """
    if magnitudes is None:
        magnitudes = [1.0] * len(discs)
    if len(magnitudes) != len(discs):
        raise ValueError(f"Expected {len(discs)} magnitudes, got {len(magnitudes)}")

    phantom = np.zeros((Nx, Ny))
    for (cx, cy, radius), magnitude in zip(discs, magnitudes):
        phantom += magnitude * make_disc(Nx, Ny, cx, cy, radius)
    return phantom


# Two eyes and a five-disc mouth on a 200 x 200 grid
SMILEY_DISCS = (
    (49, 59, 4), (49, 139, 4),
    (99, 59, 3), (114, 79, 3), (119, 99, 3), (114, 119, 3), (99, 139, 3),
)


def smiley_phantom(Nx: int = 200, Ny: int = 200, magnitude: float = 3.0) -> np.ndarray:
    """
    Seven-disc "smiley" phantom used for line-sensor reconstruction checks.

    Disc positions are defined for a 200 x 200 grid and rescaled to (Nx, Ny).

    Returns
    -------
    np.ndarray
        Float phantom of shape (Nx, Ny) with value ``magnitude`` inside discs.
    """
    sx, sy = Nx / 200.0, Ny / 200.0
    discs = [(int(round(cx * sx)), int(round(cy * sy)), r * min(sx, sy))
             for cx, cy, r in SMILEY_DISCS]
    return make_multi_disc_phantom(Nx, Ny, discs, [magnitude] * len(discs))


def validate_dimensions(epsilon: np.ndarray,
                        wavelengths: np.ndarray,
                        concentrations: np.ndarray,
                        type_names: Optional[Sequence[str]] = None,
                        mask: Optional[np.ndarray] = None,
                        Nx: Optional[int] = None,
                        Ny: Optional[int] = None):
    """
    Check that every per-wavelength and per-type input agrees.

    Parameters
    ----------
    epsilon : np.ndarray
        Absorption matrix, shape (num_wavelengths, num_types).
    wavelengths : np.ndarray
        Wavelength list, length num_wavelengths.
    concentrations : np.ndarray
        Scenario matrix, shape (num_scenarios, num_types).
    type_names : sequence of str, optional
        Names of the absorber types, length num_types.
    mask : np.ndarray, optional
        Tissue mask, checked against (Nx, Ny) when both are given.

    Raises
    ------
    DimensionMismatch
        If any of the shapes disagree.
    """
    epsilon = np.asarray(epsilon)
    wavelengths = np.asarray(wavelengths)
    concentrations = np.asarray(concentrations)

    if epsilon.ndim != 2:
        raise DimensionMismatch(f"epsilon must be 2-D (num_wavelengths, num_types), got shape {epsilon.shape}")
    if concentrations.ndim != 2:
        raise DimensionMismatch(f"concentrations must be 2-D (num_scenarios, num_types), "
                                f"got shape {concentrations.shape}")

    num_wavelengths, num_types = epsilon.shape
    if wavelengths.ndim != 1 or wavelengths.size != num_wavelengths:
        raise DimensionMismatch(f"epsilon has {num_wavelengths} rows but {wavelengths.size} wavelengths were given")
    if concentrations.shape[1] != num_types:
        raise DimensionMismatch(f"epsilon has {num_types} type columns but concentrations "
                                f"have {concentrations.shape[1]}")
    if type_names is not None and len(type_names) != num_types:
        raise DimensionMismatch(f"epsilon has {num_types} type columns but {len(type_names)} type names were given")
    if mask is not None and Nx is not None and Ny is not None:
        if np.shape(mask) != (Nx, Ny):
            raise DimensionMismatch(f"mask has shape {np.shape(mask)}, expected ({Nx}, {Ny})")


def generate_pressure_fields(mask: np.ndarray,
                             epsilon: np.ndarray,
                             concentrations: np.ndarray,
                             wavelengths: np.ndarray,
                             Nx: int, Ny: int) -> np.ndarray:
    """
    Evaluate the linear mixing model for every wavelength and scenario.

    Parameters
    ----------
    mask : np.ndarray
        Tissue mask, shape (Nx, Ny). Non-zero values scale the pressure.
    epsilon : np.ndarray
        Absorption matrix, shape (num_wavelengths, num_types).
    concentrations : np.ndarray
        Scenario matrix, shape (num_scenarios, num_types).
    wavelengths : np.ndarray
        Wavelength list, length num_wavelengths.
    Nx, Ny : int
        Grid size.

    Returns
    -------
    np.ndarray
        Pressure tensor of shape (num_wavelengths, num_scenarios, Nx, Ny).

    Raises
    ------
    DimensionMismatch
        Before any computation if the inputs disagree.
    """
    validate_dimensions(epsilon, wavelengths, concentrations, mask=mask, Nx=Nx, Ny=Ny)

    epsilon = np.asarray(epsilon, dtype=np.float64)
    concentrations = np.asarray(concentrations, dtype=np.float64)
    mask = np.asarray(mask, dtype=np.float64)

    # Absorbed energy per (wavelength, scenario): ε · Cᵀ
    absorption = epsilon @ concentrations.T
    return absorption[:, :, None, None] * mask[None, None, :, :]


class TissuePressureGenerator:
    """
    Pressure field factory bound to one phantom and one absorption table.

    Parameters
    ----------
    mask : np.ndarray
        Tissue mask, shape (Nx, Ny).
    epsilon : np.ndarray
        Absorption matrix, shape (num_wavelengths, num_types).
    wavelengths : np.ndarray
        Wavelength list matching the rows of ``epsilon``.
    """

    def __init__(self, mask: np.ndarray, epsilon: np.ndarray, wavelengths: np.ndarray):
        self.mask = np.asarray(mask)
        self.epsilon = np.asarray(epsilon, dtype=np.float64)
        self.wavelengths = np.asarray(wavelengths)
        self.Nx, self.Ny = self.mask.shape

    def generate(self, concentrations: np.ndarray) -> np.ndarray:
        """Pressure tensor (num_wavelengths, num_scenarios, Nx, Ny) for the given scenarios."""
        return generate_pressure_fields(self.mask, self.epsilon, concentrations,
                                        self.wavelengths, self.Nx, self.Ny)

    def field(self, wavelength_index: int, concentration: np.ndarray) -> np.ndarray:
        """Single (Nx, Ny) pressure field for one wavelength and one scenario row."""
        return self.generate(np.atleast_2d(concentration))[wavelength_index, 0]

    @property
    def num_wavelengths(self) -> int:
        return self.epsilon.shape[0]

    @property
    def num_types(self) -> int:
        return self.epsilon.shape[1]

    def __repr__(self) -> str:
        return (f"TissuePressureGenerator(grid=({self.Nx}, {self.Ny}), "
                f"wavelengths={self.wavelengths.tolist()}, num_types={self.num_types})")
