"""
Conditioning of the absorption matrix.

The condition number κ(ε) = σ_max / σ_min bounds how much relative noise
in the reconstructed images is amplified in the unmixed concentrations.
Absorption spectra of chemically similar absorbers (e.g. Hb and HbO at
neighbouring wavelengths) give nearly parallel columns and large κ.

This module analyzes:
1. Condition number and singular value spectrum of ε
2. Effective rank, and whether the system is underdetermined
"""

import numpy as np
from dataclasses import dataclass


ILL_CONDITIONED_THRESHOLD = 1e6


def condition_number(A: np.ndarray) -> float:
    """
    Compute condition number of a matrix.

    κ(A) = σ_max / σ_min

    Parameters
    ----------
    A : np.ndarray
        Input matrix.

    Returns
    -------
    float
        Condition number (≥ 1, or inf if singular).
    """
    try:
        return float(np.linalg.cond(A))
    except np.linalg.LinAlgError:
        return np.inf


def singular_value_spectrum(A: np.ndarray) -> np.ndarray:
    """
    Compute singular values of a matrix.

    Parameters
    ----------
    A : np.ndarray
        Input matrix.

    Returns
    -------
    np.ndarray
        Singular values in descending order.
    """
    return np.linalg.svd(A, compute_uv=False)


@dataclass
class ConditionAnalysis:
    """
    Results of absorption matrix analysis.

    Attributes
    ----------
    condition_number : float
        κ = σ_max / σ_min over the min(W, T) singular values.
    singular_values : np.ndarray
        All singular values.
    effective_rank : int
        Number of singular values above ``rank_threshold · σ_max``.
    num_wavelengths : int
        Rows of ε.
    num_types : int
        Columns of ε.
    """
    condition_number: float
    singular_values: np.ndarray
    effective_rank: int
    num_wavelengths: int
    num_types: int

    @property
    def is_underdetermined(self) -> bool:
        """More absorber types than wavelengths."""
        return self.num_types > self.num_wavelengths

    @property
    def is_rank_deficient(self) -> bool:
        return self.effective_rank < self.num_types

    @property
    def is_ill_conditioned(self) -> bool:
        return self.condition_number > ILL_CONDITIONED_THRESHOLD


def analyze_absorption_matrix(epsilon: np.ndarray, rank_threshold: float = 1e-10) -> ConditionAnalysis:
    """
    Condition analysis of an absorption matrix.

    Parameters
    ----------
    epsilon : np.ndarray
        Absorption matrix, shape (num_wavelengths, num_types).
    rank_threshold : float
        Relative threshold for the effective rank.

    Returns
    -------
    ConditionAnalysis
        Analysis results.
    """
    epsilon = np.asarray(epsilon, dtype=np.float64)
    svs = singular_value_spectrum(epsilon)
    sigma_max = svs[0] if svs.size else 0.0

    effective_rank = int(np.sum(svs > rank_threshold * sigma_max)) if sigma_max > 0 else 0
    cond = sigma_max / svs[-1] if svs.size and svs[-1] > 0 else np.inf

    return ConditionAnalysis(
        condition_number=float(cond),
        singular_values=svs,
        effective_rank=effective_rank,
        num_wavelengths=epsilon.shape[0],
        num_types=epsilon.shape[1]
    )
