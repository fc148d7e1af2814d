"""
End-to-end spectral unmixing simulation.

For one configuration the orchestrator:

1. Generates the pressure field of every (wavelength, scenario) pair
2. Probes the forward model once to learn the trace shape, then allocates
   the trace and image holders
3. Simulates the noise-free trace of every (wavelength, scenario) pair
4. For every (noise level, wavelength, scenario) adds an independent noise
   realization and reconstructs an image
5. For every (noise level, scenario) unmixes the wavelength stack
6. Collects the unmixing results into a write-once ResultGrid

Steps 4 and 5 are independent between (noise level, scenario) pairs and run
as one task per pair, sequentially or in worker processes. Noise-free
traces are shared read-only; each task derives its noise from its own
indices, so the results do not depend on the number of workers.

Any error aborts the whole run; no partial results are returned.
"""

import multiprocessing as mp
import numpy as np
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, Optional, Sequence, Tuple, Union

from .config import SimulationConfig
from .core.acoustics import (AcousticForwardModel, GridGeometry, ImageReconstructor,
                             TimeOfFlightLineArray, as_forward_model, as_reconstructor,
                             probe_trace_shape)
from .core.noise import NoiseInjector
from .core.tissue import TissuePressureGenerator
from .analysis.condition import analyze_absorption_matrix
from .analysis.unmixing import SpectralUnmixer, UnmixingResult
from .exceptions import DimensionMismatch
from .utils.logging_config import get_logger

logger = get_logger(__name__)


class ResultGrid:
    """
    Unmixing results indexed by (noise level index, scenario index).

    Every slot is written exactly once; after ``freeze`` the grid is
    read-only.

    Parameters
    ----------
    num_noise_levels : int
        Number of rows.
    num_scenarios : int
        Number of columns.
    type_names : sequence of str, optional
        Absorber names, in the order of the per-type result axes.
    """

    def __init__(self, num_noise_levels: int, num_scenarios: int,
                 type_names: Optional[Sequence[str]] = None):
        self.num_noise_levels = num_noise_levels
        self.num_scenarios = num_scenarios
        self.type_names = tuple(type_names) if type_names is not None else None
        self._slots: Dict[Tuple[int, int], UnmixingResult] = {}
        self._frozen = False

    def _check_index(self, noise_index: int, scenario_index: int):
        if not (0 <= noise_index < self.num_noise_levels and 0 <= scenario_index < self.num_scenarios):
            raise IndexError(f"Slot ({noise_index}, {scenario_index}) outside grid of shape {self.shape}")

    def set(self, noise_index: int, scenario_index: int, result: UnmixingResult):
        """Store the result of one slot. Each slot accepts exactly one write."""
        if self._frozen:
            raise RuntimeError("ResultGrid is frozen")
        self._check_index(noise_index, scenario_index)
        key = (noise_index, scenario_index)
        if key in self._slots:
            raise RuntimeError(f"Slot {key} already written")
        self._slots[key] = result

    def freeze(self):
        """Mark the grid read-only. Every slot must be filled."""
        missing = self.num_noise_levels * self.num_scenarios - len(self._slots)
        if missing:
            raise RuntimeError(f"Cannot freeze ResultGrid with {missing} empty slots")
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.num_noise_levels, self.num_scenarios)

    def __getitem__(self, index: Tuple[int, int]) -> UnmixingResult:
        noise_index, scenario_index = index
        self._check_index(noise_index, scenario_index)
        return self._slots[(noise_index, scenario_index)]

    def __iter__(self) -> Iterator[Tuple[Tuple[int, int], UnmixingResult]]:
        for noise_index in range(self.num_noise_levels):
            for scenario_index in range(self.num_scenarios):
                key = (noise_index, scenario_index)
                if key in self._slots:
                    yield key, self._slots[key]

    def __len__(self) -> int:
        return len(self._slots)

    def weighted_average_table(self) -> np.ndarray:
        """Weighted average saturations, shape (num_noise_levels, num_scenarios, num_types)."""
        return np.stack([
            np.stack([self[n, c].weighted_average_saturation for c in range(self.num_scenarios)])
            for n in range(self.num_noise_levels)
        ])

    def __repr__(self) -> str:
        state = "frozen" if self._frozen else f"{len(self._slots)} filled"
        return f"ResultGrid(shape={self.shape}, {state})"


@dataclass
class SimulationResult:
    """
    Everything produced by one run.

    Attributes
    ----------
    grid : ResultGrid
        Unmixing results by (noise level, scenario).
    pressure_fields : np.ndarray
        (num_wavelengths, num_scenarios, Nx, Ny).
    base_traces : np.ndarray
        Noise-free traces (num_wavelengths, num_scenarios, num_transducers,
        num_time_samples).
    noisy_traces : np.ndarray
        Noisy traces (num_noise_levels, num_wavelengths, num_scenarios,
        num_transducers, num_time_samples), kept so the injected noise can be
        checked against the configuration.
    reconstructed_images : np.ndarray
        (num_noise_levels, num_wavelengths, num_scenarios, Nx, Ny).
    seed : int
        Root noise seed actually used.
    """
    grid: ResultGrid
    pressure_fields: np.ndarray = field(repr=False)
    base_traces: np.ndarray = field(repr=False)
    noisy_traces: np.ndarray = field(repr=False)
    reconstructed_images: np.ndarray = field(repr=False)
    seed: int = 0

    def __getitem__(self, index: Tuple[int, int]) -> UnmixingResult:
        return self.grid[index]


def _run_sweep_task(noise_index: int, scenario_index: int, noise_level: float,
                    base_traces: np.ndarray, injector: NoiseInjector,
                    reconstructor: ImageReconstructor, unmixer: SpectralUnmixer,
                    grid: GridGeometry):
    """
    Noise, reconstruction and unmixing for one (noise level, scenario) pair.

    ``base_traces`` holds the noise-free traces of this scenario for every
    wavelength, shape (num_wavelengths, num_transducers, num_time_samples).
    """
    num_wavelengths = base_traces.shape[0]
    noisy = np.empty_like(base_traces)
    images = np.empty((num_wavelengths, grid.Nx, grid.Ny))

    for w in range(num_wavelengths):
        noisy[w] = injector.inject(base_traces[w], noise_level, key=(noise_index, w, scenario_index))
        image = np.asarray(reconstructor.reconstruct(noisy[w], grid.Nx, grid.Ny, grid.dx, grid.dy))
        if image.shape != grid.shape:
            raise DimensionMismatch(f"Reconstructor returned shape {image.shape}, expected {grid.shape}")
        images[w] = image

    return noise_index, scenario_index, noisy, images, unmixer.unmix(images)


class SimulationOrchestrator:
    """
    Runs the (noise level x scenario) sweep for one configuration.

    Parameters
    ----------
    config : SimulationConfig
        Run configuration.
    forward_model : AcousticForwardModel or callable, optional
        Pressure field -> trace. Default is ``TimeOfFlightLineArray()``.
    reconstructor : ImageReconstructor or callable, optional
        Trace -> image. Defaults to ``forward_model`` when it also
        implements ImageReconstructor.
    """

    def __init__(self, config: SimulationConfig,
                 forward_model: Optional[Union[AcousticForwardModel, Callable]] = None,
                 reconstructor: Optional[Union[ImageReconstructor, Callable]] = None):
        self.config = config
        if forward_model is None:
            forward_model = TimeOfFlightLineArray()
        if reconstructor is None:
            if not isinstance(forward_model, ImageReconstructor):
                raise ValueError("A reconstructor is required when the forward model cannot reconstruct")
            reconstructor = forward_model
        self.forward_model = as_forward_model(forward_model)
        self.reconstructor = as_reconstructor(reconstructor)

    def run(self) -> SimulationResult:
        """
        Execute the full sweep.

        Returns
        -------
        SimulationResult
            Frozen ResultGrid plus the intermediate tensors.

        Raises
        ------
        DimensionMismatch
            If the configuration or a model output has inconsistent shapes.
        """
        config = self.config
        config.validate()

        logger.info("Starting spectral unmixing simulation")
        for key, value in config.summary().items():
            logger.info(f"  {key}: {value}")

        conditioning = analyze_absorption_matrix(config.epsilon)
        logger.info(f"Absorption matrix condition number: {conditioning.condition_number:.3g} "
                    f"(rank {conditioning.effective_rank}/{conditioning.num_types})")
        if conditioning.is_ill_conditioned or conditioning.is_rank_deficient:
            logger.warning("Absorption matrix is ill-conditioned; unmixed concentrations will amplify noise")

        unmixer = SpectralUnmixer(config.epsilon, method=config.unmixing_method,
                                  type_names=config.type_names)
        injector = NoiseInjector(config.noise_strength, seed=config.seed)
        logger.info(f"Noise seed: {injector.seed}")

        grid = config.grid
        pressure = TissuePressureGenerator(config.mask, config.epsilon,
                                           config.wavelengths).generate(config.concentrations)

        base_traces = self._simulate_base_traces(pressure, grid)
        num_time, num_sensor = base_traces.shape[2:]

        noisy_traces = np.zeros((config.num_noise_levels, config.num_wavelengths,
                                 config.num_scenarios, num_time, num_sensor))
        images = np.zeros((config.num_noise_levels, config.num_wavelengths,
                           config.num_scenarios, config.Nx, config.Ny))
        result_grid = ResultGrid(config.num_noise_levels, config.num_scenarios,
                                 type_names=config.type_names)

        tasks = [
            (n, c, float(config.noise_levels[n]), base_traces[:, c], injector,
             self.reconstructor, unmixer, grid)
            for n in range(config.num_noise_levels)
            for c in range(config.num_scenarios)
        ]

        for n, c, noisy, recon, result in self._execute(tasks):
            noisy_traces[n, :, c] = noisy
            images[n, :, c] = recon
            result_grid.set(n, c, result)
            logger.debug(f"Slot (noise={config.noise_levels[n]:g}, scenario={c}) done: {result!r}")

        result_grid.freeze()
        logger.info(f"Simulation complete: {result_grid!r}")

        return SimulationResult(
            grid=result_grid,
            pressure_fields=pressure,
            base_traces=base_traces,
            noisy_traces=noisy_traces,
            reconstructed_images=images,
            seed=injector.seed
        )

    def _simulate_base_traces(self, pressure: np.ndarray, grid: GridGeometry) -> np.ndarray:
        """Probe for the trace shape, then fill every (wavelength, scenario) trace."""
        num_wavelengths, num_scenarios = pressure.shape[:2]

        probe = probe_trace_shape(self.forward_model, pressure[0, 0], grid)
        logger.info(f"Trace shape: {probe.num_transducers} transducers x {probe.num_time_samples} samples")

        base_traces = np.zeros((num_wavelengths, num_scenarios) + probe.shape)
        for w in range(num_wavelengths):
            for c in range(num_scenarios):
                if (w, c) == (0, 0):
                    trace = probe.probe_trace
                else:
                    trace = np.asarray(self.forward_model.forward(pressure[w, c], grid.Nx, grid.dx,
                                                                  grid.Ny, grid.dy))
                if trace.shape != probe.shape:
                    raise DimensionMismatch(f"Forward model returned shape {trace.shape} for "
                                            f"(wavelength={w}, scenario={c}), probe gave {probe.shape}")
                base_traces[w, c] = trace
        return base_traces

    def _execute(self, tasks):
        if self.config.n_workers == 1 or len(tasks) == 1:
            for task in tasks:
                yield _run_sweep_task(*task)
            return

        n_workers = min(self.config.n_workers, len(tasks))
        logger.info(f"Running {len(tasks)} sweep tasks on {n_workers} worker processes")
        with mp.Pool(n_workers) as pool:
            results = pool.starmap(_run_sweep_task, tasks)

        for result in results:
            yield result


def run_spectral_unmixing_simulation(config: Optional[SimulationConfig] = None,
                                     forward_model: Optional[Union[AcousticForwardModel, Callable]] = None,
                                     reconstructor: Optional[Union[ImageReconstructor, Callable]] = None,
                                     **overrides) -> SimulationResult:
    """
    Run a complete simulation in one call.

    Parameters
    ----------
    config : SimulationConfig, optional
        Base configuration. Default values when None.
    forward_model, reconstructor : optional
        Acoustic models, see ``SimulationOrchestrator``.
    **overrides
        Configuration fields to replace, e.g. ``noise_levels=[0, 0.1]``.

    Returns
    -------
    SimulationResult

    Examples
    --------
    >>> result = run_spectral_unmixing_simulation(noise_levels=[0.0], seed=1)  # doctest: +SKIP
    >>> result.grid.shape  # doctest: +SKIP
    (1, 2)
    """
    if config is None:
        config = SimulationConfig(**overrides)
    elif overrides:
        config = config.replace(**overrides)
    return SimulationOrchestrator(config, forward_model, reconstructor).run()
