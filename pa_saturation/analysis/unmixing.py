"""
Spectral unmixing of multi-wavelength photoacoustic images.

Each pixel's values across wavelengths b ∈ ℝ^W are explained by the
linear mixing model b = ε · c with c ∈ ℝ^T the absorber concentrations.
The concentrations are recovered by non-negative least squares:

    minimize ‖ε·c − b‖²   subject to  c ≥ 0

independently for every pixel. From the per-pixel solution:

1. Components ≤ 0 are floored to 1e-9
2. Total concentration: sum_C = Σ_t c_t (floored to 1e-9 where exactly zero)
3. Saturation: s_t = c_t / sum_C
4. Weighted average saturation over the image:
       w_avg_t = Σ s_t · sum_C² / Σ sum_C²
   which lets high-signal pixels dominate low-signal background.

The floors silently absorb both degenerate background pixels and any
solver output that is not strictly positive. Both are counted and logged at
DEBUG level, but never raised.

When there are more absorber types than wavelengths the problem is
underdetermined: NNLS still returns a minimizer, which need not be unique.
"""

import numpy as np
from dataclasses import dataclass
from itertools import combinations
from typing import List, Optional, Sequence, Tuple
from scipy.optimize import nnls

from ..exceptions import DimensionMismatch
from ..utils.logging_config import get_logger

logger = get_logger(__name__)

CONCENTRATION_FLOOR = 1e-9
MAX_ACTIVE_SET_TYPES = 8
UNMIXING_METHODS = ("auto", "active-set", "scipy")


@dataclass(frozen=True)
class UnmixingResult:
    """
    Unmixed maps for one (noise level, scenario) pair.

    Attributes
    ----------
    total_concentration : np.ndarray
        Total concentration sum_C, shape (Nx, Ny).
    saturations : np.ndarray
        Saturation maps by type, shape (num_types, Nx, Ny).
    concentrations : np.ndarray
        Concentration maps by type, shape (num_types, Nx, Ny).
    weighted_average_saturation : np.ndarray
        Signal-weighted average saturation by type, shape (num_types,).
    """
    total_concentration: np.ndarray
    saturations: np.ndarray
    concentrations: np.ndarray
    weighted_average_saturation: np.ndarray

    @property
    def num_types(self) -> int:
        return self.concentrations.shape[0]

    @property
    def grid_shape(self) -> Tuple[int, int]:
        return self.total_concentration.shape

    def __repr__(self) -> str:
        w_avg = ", ".join(f"{w:.4f}" for w in self.weighted_average_saturation)
        return f"UnmixingResult(grid={self.grid_shape}, num_types={self.num_types}, w_avg=[{w_avg}])"


def _support_sets(num_types: int) -> List[Tuple[int, ...]]:
    """All non-empty subsets of type indices, smallest first."""
    sets = []
    for size in range(1, num_types + 1):
        sets.extend(combinations(range(num_types), size))
    return sets


def _nnls_active_set(A: np.ndarray, B: np.ndarray) -> np.ndarray:
    """
    Exact batched NNLS by enumerating support sets.

    The NNLS minimizer with support S is the unconstrained least squares
    solution on the columns in S. Solving every S for all pixels at once and
    keeping, per pixel, the feasible candidate with the least residual gives
    the NNLS solution. Cost grows as 2^T, so this is meant for few types.
    """
    num_types = A.shape[1]
    n_pixels = B.shape[1]

    # Empty support: c = 0, residual ‖b‖²
    best_X = np.zeros((num_types, n_pixels))
    best_residual = np.sum(B ** 2, axis=0)

    for support in _support_sets(num_types):
        cols = list(support)
        A_S = A[:, cols]
        X_S = np.linalg.pinv(A_S) @ B
        feasible = np.all(X_S >= 0, axis=0)
        residual = np.sum((A_S @ X_S - B) ** 2, axis=0)

        better = feasible & (residual < best_residual)
        if not np.any(better):
            continue
        best_residual = np.where(better, residual, best_residual)
        best_X[:, better] = 0.0
        best_X[np.ix_(cols, np.flatnonzero(better))] = X_S[:, better]

    return best_X


def _nnls_scipy(A: np.ndarray, B: np.ndarray) -> np.ndarray:
    """Per-pixel NNLS with scipy.optimize.nnls."""
    num_types = A.shape[1]
    X = np.zeros((num_types, B.shape[1]))
    for p in np.flatnonzero(np.any(B != 0, axis=0)):
        X[:, p], _ = nnls(A, B[:, p])
    return X


def resolve_method(method: str, num_types: int) -> str:
    """Pick the concrete solver for ``method`` and ``num_types``."""
    if method not in UNMIXING_METHODS:
        raise ValueError(f"Unknown method: {method}")
    if method == "auto":
        return "active-set" if num_types <= MAX_ACTIVE_SET_TYPES else "scipy"
    return method


def nnls_batch(epsilon: np.ndarray, observations: np.ndarray, method: str = "auto") -> np.ndarray:
    """
    Solve many small NNLS problems sharing one system matrix.

    Parameters
    ----------
    epsilon : np.ndarray
        System matrix, shape (num_wavelengths, num_types).
    observations : np.ndarray
        One observation vector per column, shape (num_wavelengths, n_pixels).
    method : str
        "active-set" (batched, exact), "scipy" (per-pixel scipy.optimize.nnls)
        or "auto" (active-set up to 8 types, scipy above).

    Returns
    -------
    np.ndarray
        Non-negative solutions, shape (num_types, n_pixels).
    """
    A = np.asarray(epsilon, dtype=np.float64)
    B = np.asarray(observations, dtype=np.float64)
    if B.ndim == 1:
        B = B[:, None]
    if B.shape[0] != A.shape[0]:
        raise DimensionMismatch(f"Observations have {B.shape[0]} wavelengths, epsilon has {A.shape[0]}")

    if resolve_method(method, A.shape[1]) == "active-set":
        return _nnls_active_set(A, B)
    return _nnls_scipy(A, B)


def spectral_unmix(epsilon: np.ndarray, image_stack: np.ndarray, method: str = "auto") -> UnmixingResult:
    """
    Unmix a stack of per-wavelength images into concentration maps.

    Parameters
    ----------
    epsilon : np.ndarray
        Absorption matrix, shape (num_wavelengths, num_types).
    image_stack : np.ndarray
        Reconstructed images, shape (num_wavelengths, Nx, Ny).
    method : str
        NNLS solver, see ``nnls_batch``.

    Returns
    -------
    UnmixingResult
        Total concentration, saturation and concentration maps and the
        weighted average saturation by type.
    """
    epsilon = np.asarray(epsilon, dtype=np.float64)
    image_stack = np.asarray(image_stack, dtype=np.float64)
    if image_stack.ndim != 3 or image_stack.shape[0] != epsilon.shape[0]:
        raise DimensionMismatch(f"Image stack has shape {image_stack.shape}, expected "
                                f"({epsilon.shape[0]}, Nx, Ny)")

    num_types = epsilon.shape[1]
    _, Nx, Ny = image_stack.shape

    solution = nnls_batch(epsilon, image_stack.reshape(epsilon.shape[0], -1), method=method)
    concentrations = solution.reshape(num_types, Nx, Ny)

    non_positive = concentrations <= 0
    concentrations[non_positive] = CONCENTRATION_FLOOR

    total = concentrations.sum(axis=0)
    zero_total = total == 0
    total[zero_total] = CONCENTRATION_FLOOR

    n_floored = int(np.count_nonzero(non_positive))
    if n_floored or np.any(zero_total):
        logger.debug(f"Floored {n_floored} concentration values and "
                     f"{int(np.count_nonzero(zero_total))} total-concentration pixels to {CONCENTRATION_FLOOR:g}")

    saturations = concentrations / total[None, :, :]

    weights = total ** 2
    weighted_average = np.sum(saturations * weights[None, :, :], axis=(1, 2)) / np.sum(weights)

    return UnmixingResult(
        total_concentration=total,
        saturations=saturations,
        concentrations=concentrations,
        weighted_average_saturation=weighted_average
    )


class SpectralUnmixer:
    """
    Unmixer bound to one absorption matrix.

    Parameters
    ----------
    epsilon : np.ndarray
        Absorption matrix, shape (num_wavelengths, num_types).
    method : str
        NNLS solver, see ``nnls_batch``.
    type_names : sequence of str, optional
        Absorber names, used in log messages only.
    """

    def __init__(self, epsilon: np.ndarray, method: str = "auto",
                 type_names: Optional[Sequence[str]] = None):
        self.epsilon = np.asarray(epsilon, dtype=np.float64)
        if self.epsilon.ndim != 2:
            raise DimensionMismatch(f"epsilon must be 2-D, got shape {self.epsilon.shape}")
        self.method = resolve_method(method, self.epsilon.shape[1])
        self.type_names = tuple(type_names) if type_names is not None else None

        if self.is_underdetermined:
            logger.warning(f"{self.num_types} absorber types but only {self.num_wavelengths} wavelengths: "
                           "unmixed concentrations are not unique")

    @property
    def num_wavelengths(self) -> int:
        return self.epsilon.shape[0]

    @property
    def num_types(self) -> int:
        return self.epsilon.shape[1]

    @property
    def is_underdetermined(self) -> bool:
        return self.num_types > self.num_wavelengths

    def unmix(self, image_stack: np.ndarray) -> UnmixingResult:
        """Unmix a (num_wavelengths, Nx, Ny) image stack."""
        return spectral_unmix(self.epsilon, image_stack, method=self.method)

    def __repr__(self) -> str:
        names = f", types={list(self.type_names)}" if self.type_names else ""
        return f"SpectralUnmixer(W={self.num_wavelengths}, T={self.num_types}, method='{self.method}'{names})"
