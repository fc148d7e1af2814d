"""
Recovery and noise diagnostics for finished simulations.

Compares unmixed maps with the concentrations that generated them, and
recovers the injected noise levels from the exposed trace tensors.
"""

import numpy as np
from typing import Any, Dict, List, Optional, Sequence

from .unmixing import UnmixingResult
from ..core.noise import NoiseStatistics
from ..exceptions import DimensionMismatch


def _mask_indices(result: UnmixingResult, mask: np.ndarray) -> np.ndarray:
    mask = np.asarray(mask, dtype=bool)
    if mask.shape != result.grid_shape:
        raise DimensionMismatch(f"Mask has shape {mask.shape}, result grid is {result.grid_shape}")
    if not np.any(mask):
        raise ValueError("Mask selects no pixels")
    return mask


def true_saturation(concentration_row: np.ndarray) -> np.ndarray:
    """Saturation implied by one row of the concentration matrix."""
    row = np.asarray(concentration_row, dtype=np.float64)
    total = row.sum()
    if total <= 0:
        raise ValueError(f"Concentration row must have a positive sum, got {row.tolist()}")
    return row / total


def mean_concentrations_in_mask(result: UnmixingResult, mask: np.ndarray) -> np.ndarray:
    """
    Mean unmixed concentration of every type over the masked pixels.

    Returns
    -------
    np.ndarray
        Shape (num_types,).
    """
    mask = _mask_indices(result, mask)
    return result.concentrations[:, mask].mean(axis=1)


def concentration_ratio_in_mask(result: UnmixingResult, mask: np.ndarray) -> np.ndarray:
    """Mean masked concentrations normalized to sum to one."""
    means = mean_concentrations_in_mask(result, mask)
    return means / means.sum()


def saturation_error(result: UnmixingResult, concentration_row: np.ndarray,
                     mask: np.ndarray) -> np.ndarray:
    """
    Mean absolute saturation error inside the mask.

    Parameters
    ----------
    result : UnmixingResult
        Unmixed maps of one (noise level, scenario) slot.
    concentration_row : np.ndarray
        Concentrations of the scenario that generated the data.
    mask : np.ndarray
        Pixels to evaluate, shape (Nx, Ny).

    Returns
    -------
    np.ndarray
        Error by type, shape (num_types,).
    """
    mask = _mask_indices(result, mask)
    truth = true_saturation(concentration_row)
    if truth.size != result.num_types:
        raise DimensionMismatch(f"Concentration row has {truth.size} types, result has {result.num_types}")
    return np.mean(np.abs(result.saturations[:, mask] - truth[:, None]), axis=1)


def measured_noise_levels(noisy_traces: np.ndarray, base_traces: np.ndarray,
                          noise_strength: float) -> np.ndarray:
    """
    Estimate the noise level of every row of a noisy-trace tensor.

    Parameters
    ----------
    noisy_traces : np.ndarray
        Shape (num_noise_levels, num_wavelengths, num_scenarios,
        num_transducers, num_time_samples).
    base_traces : np.ndarray
        Noise-free traces, shape (num_wavelengths, num_scenarios,
        num_transducers, num_time_samples).
    noise_strength : float
        Noise standard deviation at noise level 1.

    Returns
    -------
    np.ndarray
        Sample standard deviation of ``noisy - base`` divided by
        ``noise_strength``, shape (num_noise_levels,).
    """
    noisy_traces = np.asarray(noisy_traces, dtype=np.float64)
    base_traces = np.asarray(base_traces, dtype=np.float64)
    if noisy_traces.shape[1:] != base_traces.shape:
        raise DimensionMismatch(f"Noisy traces {noisy_traces.shape} do not match base traces {base_traces.shape}")
    if noise_strength <= 0:
        raise ValueError(f"noise_strength must be positive, got {noise_strength}")

    levels = np.empty(noisy_traces.shape[0])
    for n in range(noisy_traces.shape[0]):
        stats = NoiseStatistics.from_samples(noisy_traces[n] - base_traces)
        levels[n] = stats.std / noise_strength
    return levels


def summarize_grid(result, config, mask: Optional[np.ndarray] = None) -> List[Dict[str, Any]]:
    """
    One row per (noise level, scenario) of a finished run.

    Parameters
    ----------
    result : SimulationResult
        Output of ``SimulationOrchestrator.run``.
    config : SimulationConfig
        Configuration of that run.
    mask : np.ndarray, optional
        Pixels for the saturation error. Defaults to ``config.mask``.

    Returns
    -------
    list of dict
        Keys ``noise_level``, ``noise_sigma``, ``scenario``, and per type
        name ``<name>_true``, ``<name>_w_avg`` and ``<name>_error``.
    """
    mask = config.mask if mask is None else mask
    names: Sequence[str] = config.type_names
    rows = []
    for (n, c), unmixed in result.grid:
        truth = true_saturation(config.concentrations[c])
        error = saturation_error(unmixed, config.concentrations[c], mask)
        row: Dict[str, Any] = {
            'noise_level': float(config.noise_levels[n]),
            'noise_sigma': float(config.noise_sigmas[n]),
            'scenario': c,
        }
        for t, name in enumerate(names):
            row[f"{name}_true"] = float(truth[t])
            row[f"{name}_w_avg"] = float(unmixed.weighted_average_saturation[t])
            row[f"{name}_error"] = float(error[t])
        rows.append(row)
    return rows
