"""
Measurement noise for simulated transducer traces.

Noise is additive, zero-mean Gaussian and independent for every element of
a trace. Its standard deviation is

    σ = noise_strength · noise_level

so the configured noise levels are fractions of one maximum strength.

Every (noise level, wavelength, scenario) combination gets its own random
generator derived from a root seed and the combination's indices. Draws are
therefore reproducible, independent between combinations, and do not
depend on the order (or process) in which combinations are evaluated.
"""

import numpy as np
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple


class NoiseModel(ABC):
    """
    Abstract base class for trace noise models.
    """

    @abstractmethod
    def sample(self, shape: Tuple[int, ...], rng: Optional[np.random.Generator] = None) -> np.ndarray:
        """
        Sample an additive noise realization.

        Parameters
        ----------
        shape : tuple of int
            Shape of the trace the noise is added to.
        rng : np.random.Generator, optional
            Random number generator for reproducibility.

        Returns
        -------
        np.ndarray
            Noise array of the requested shape.
        """
        pass

    def apply(self, trace: np.ndarray, rng: Optional[np.random.Generator] = None) -> np.ndarray:
        """Return ``trace`` plus a fresh noise realization (input is not modified)."""
        trace = np.asarray(trace, dtype=np.float64)
        return trace + self.sample(trace.shape, rng)


@dataclass
class GaussianTraceNoise(NoiseModel):
    """
    Independent Gaussian noise on every trace sample.

    Parameters
    ----------
    sigma : float
        Standard deviation of the noise, in trace units.
    """
    sigma: float = 0.0

    def sample(self, shape: Tuple[int, ...], rng: Optional[np.random.Generator] = None) -> np.ndarray:
        if rng is None:
            rng = np.random.default_rng()
        return self.sigma * rng.standard_normal(shape)

    def apply(self, trace: np.ndarray, rng: Optional[np.random.Generator] = None) -> np.ndarray:
        # No draw at sigma = 0: adding signed zeros would flip the sign bit of -0.0 entries
        if self.sigma == 0:
            return np.array(trace, dtype=np.float64, copy=True)
        return super().apply(trace, rng)

    def __repr__(self) -> str:
        return f"GaussianTraceNoise(σ={self.sigma:.4g})"


def task_rng(seed: int, key: Sequence[int]) -> np.random.Generator:
    """
    Independent generator for one (noise, wavelength, scenario) task.

    Parameters
    ----------
    seed : int
        Root entropy of the run.
    key : sequence of int
        Task indices, used as the spawn key of the seed sequence.

    Returns
    -------
    np.random.Generator
    """
    return np.random.default_rng(np.random.SeedSequence(seed, spawn_key=tuple(int(k) for k in key)))


class NoiseInjector:
    """
    Adds calibrated Gaussian noise to noise-free traces.

    Parameters
    ----------
    noise_strength : float
        Maximum noise standard deviation; a noise level scales it.
    seed : int, optional
        Root entropy. A fresh one is drawn from the OS when None and is
        available afterwards as ``injector.seed``.
    """

    def __init__(self, noise_strength: float, seed: Optional[int] = None):
        if noise_strength < 0:
            raise ValueError(f"noise_strength must be non-negative, got {noise_strength}")
        self.noise_strength = float(noise_strength)
        self.seed = int(np.random.SeedSequence().entropy if seed is None else seed)

    def sigma(self, noise_level: float) -> float:
        """Noise standard deviation for ``noise_level``."""
        return self.noise_strength * noise_level

    def model(self, noise_level: float) -> GaussianTraceNoise:
        return GaussianTraceNoise(sigma=self.sigma(noise_level))

    def inject(self, base_trace: np.ndarray, noise_level: float, key: Sequence[int]) -> np.ndarray:
        """
        Noisy copy of ``base_trace``.

        Parameters
        ----------
        base_trace : np.ndarray
            Noise-free trace. Not modified.
        noise_level : float
            Fraction of ``noise_strength`` to use as standard deviation.
        key : sequence of int
            (noise index, wavelength index, scenario index) of the task.

        Returns
        -------
        np.ndarray
            ``base_trace + noise``; bit-identical to ``base_trace`` when
            ``noise_level`` is 0.
        """
        return self.model(noise_level).apply(base_trace, task_rng(self.seed, key))

    def __repr__(self) -> str:
        return f"NoiseInjector(noise_strength={self.noise_strength}, seed={self.seed})"


@dataclass
class NoiseStatistics:
    """
    Summary statistics of a noise realization.
    """
    mean: float
    std: float
    max_abs: float
    n_samples: int

    @classmethod
    def from_samples(cls, noise: np.ndarray) -> "NoiseStatistics":
        """Compute statistics from noise samples (e.g. noisy minus base trace)."""
        noise = np.asarray(noise, dtype=np.float64)
        return cls(
            mean=float(np.mean(noise)),
            std=float(np.std(noise)),
            max_abs=float(np.max(np.abs(noise))) if noise.size else 0.0,
            n_samples=int(noise.size)
        )
