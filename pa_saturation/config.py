"""
Run configuration for the spectral unmixing simulation.

One ``SimulationConfig`` carries every input of a run. Defaults reproduce
the reference experiment: a small disc of tissue on a 200 x 200 grid of
1 µm pixels, deoxy- and oxy-hemoglobin (Hb, HbO) imaged at 770 and 780 nm,
two concentration scenarios and two noise levels.
"""

import dataclasses
import numpy as np
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from .core.acoustics import GridGeometry
from .core.tissue import make_disc, validate_dimensions
from .analysis.unmixing import UNMIXING_METHODS

DEFAULT_GRID_SIZE = 200
DEFAULT_PIXEL_SIZE = 1e-6                   # [m]
DEFAULT_DISC_RADIUS = 4                     # [pixels]
DEFAULT_NOISE_STRENGTH = 50.0


def default_epsilon() -> np.ndarray:
    """Absorption of (Hb, HbO) at (770, 780) nm."""
    return np.array([[1361.0, 636.0],
                     [1075.0, 710.0]])


@dataclass
class SimulationConfig:
    """
    Inputs of one simulation run.

    Parameters
    ----------
    mask : np.ndarray, optional
        Tissue mask of shape (Nx, Ny). Default is a disc of radius 4 pixels
        centred on pixel (Nx//2 - 1, Ny//2 - 1), i.e. (99, 99) on the
        200 x 200 grid.
    epsilon : np.ndarray
        Absorption matrix (num_wavelengths, num_types). Rows follow
        ``wavelengths``, columns follow ``type_names``.
    wavelengths : np.ndarray
        Excitation wavelengths [nm].
    concentrations : np.ndarray
        Scenario matrix (num_scenarios, num_types) of relative concentrations.
    type_names : tuple of str
        Absorber names, in column order of ``epsilon``.
    noise_levels : np.ndarray
        Fractions of ``noise_strength`` to simulate.
    noise_strength : float
        Noise standard deviation at noise level 1.
    Nx, Ny : int
        Grid size in pixels.
    dx, dy : float
        Pixel size [m].
    seed : int, optional
        Root seed for noise. A fresh seed is drawn and logged when None.
    unmixing_method : str
        NNLS solver: "auto", "active-set" or "scipy".
    n_workers : int
        Worker processes for the (noise level, scenario) sweep. 1 runs
        sequentially in the calling process.
    """
    mask: Optional[np.ndarray] = None
    epsilon: np.ndarray = field(default_factory=default_epsilon)
    wavelengths: np.ndarray = field(default_factory=lambda: np.array([770, 780]))
    concentrations: np.ndarray = field(default_factory=lambda: np.array([[0.25, 0.75],
                                                                         [0.5, 0.5]]))
    type_names: Tuple[str, ...] = ("Hb", "HbO")
    noise_levels: np.ndarray = field(default_factory=lambda: np.array([0.0, 0.05]))
    noise_strength: float = DEFAULT_NOISE_STRENGTH
    Nx: int = DEFAULT_GRID_SIZE
    Ny: int = DEFAULT_GRID_SIZE
    dx: float = DEFAULT_PIXEL_SIZE
    dy: float = DEFAULT_PIXEL_SIZE
    seed: Optional[int] = None
    unmixing_method: str = "auto"
    n_workers: int = 1

    def __post_init__(self):
        if self.mask is None:
            self.mask = make_disc(self.Nx, self.Ny, self.Nx // 2 - 1, self.Ny // 2 - 1,
                                  DEFAULT_DISC_RADIUS)
        self.mask = np.asarray(self.mask)
        self.epsilon = np.atleast_2d(np.asarray(self.epsilon, dtype=np.float64))
        self.wavelengths = np.atleast_1d(np.asarray(self.wavelengths))
        self.concentrations = np.atleast_2d(np.asarray(self.concentrations, dtype=np.float64))
        self.type_names = tuple(self.type_names)
        self.noise_levels = np.atleast_1d(np.asarray(self.noise_levels, dtype=np.float64))

    def validate(self):
        """
        Check the configuration before any simulation work.

        Raises
        ------
        DimensionMismatch
            If epsilon, wavelengths, concentrations, type names or mask disagree.
        ValueError
            If a scalar setting is out of range.
        """
        validate_dimensions(self.epsilon, self.wavelengths, self.concentrations,
                            type_names=self.type_names, mask=self.mask, Nx=self.Nx, Ny=self.Ny)

        if self.Nx <= 0 or self.Ny <= 0:
            raise ValueError(f"Grid size must be positive, got ({self.Nx}, {self.Ny})")
        if self.dx <= 0 or self.dy <= 0:
            raise ValueError(f"Pixel size must be positive, got ({self.dx}, {self.dy})")
        if self.noise_levels.ndim != 1 or self.noise_levels.size == 0:
            raise ValueError("noise_levels must be a non-empty 1-D sequence")
        if np.any(self.noise_levels < 0):
            raise ValueError(f"noise_levels must be non-negative, got {self.noise_levels.tolist()}")
        if self.noise_strength < 0:
            raise ValueError(f"noise_strength must be non-negative, got {self.noise_strength}")
        if self.unmixing_method not in UNMIXING_METHODS:
            raise ValueError(f"Unknown method: {self.unmixing_method}")
        if self.n_workers < 1:
            raise ValueError(f"n_workers must be at least 1, got {self.n_workers}")

    def replace(self, **changes) -> "SimulationConfig":
        """Copy of this configuration with ``changes`` applied."""
        return dataclasses.replace(self, **changes)

    @property
    def num_wavelengths(self) -> int:
        return self.epsilon.shape[0]

    @property
    def num_types(self) -> int:
        return self.epsilon.shape[1]

    @property
    def num_scenarios(self) -> int:
        return self.concentrations.shape[0]

    @property
    def num_noise_levels(self) -> int:
        return self.noise_levels.size

    @property
    def noise_sigmas(self) -> np.ndarray:
        """Absolute noise standard deviation of every noise level."""
        return self.noise_strength * self.noise_levels

    @property
    def grid(self) -> GridGeometry:
        return GridGeometry(Nx=self.Nx, Ny=self.Ny, dx=self.dx, dy=self.dy)

    def summary(self) -> Dict[str, Any]:
        """Scalar description of the run, for logging."""
        return {
            'grid': f"{self.Nx} x {self.Ny} @ ({self.dx:g}, {self.dy:g}) m",
            'mask_pixels': int(np.count_nonzero(self.mask)),
            'wavelengths': self.wavelengths.tolist(),
            'type_names': list(self.type_names),
            'num_scenarios': self.num_scenarios,
            'noise_sigmas': self.noise_sigmas.tolist(),
            'unmixing_method': self.unmixing_method,
            'n_workers': self.n_workers,
        }
