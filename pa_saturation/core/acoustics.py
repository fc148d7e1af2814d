"""
Acoustic forward models and image reconstructors for a line transducer array.

The pipeline talks to the acoustic simulation through two narrow interfaces:

1. AcousticForwardModel: initial pressure (Nx, Ny) -> sensor trace
   (num_transducers, num_time_samples)
2. ImageReconstructor: sensor trace -> reconstructed image (Nx, Ny)

Both are deterministic. The trace shape is a property of the model and the
grid, so callers discover it with one probe call (``probe_trace_shape``)
before allocating trace storage.

Two analytic line-array implementations are provided:

- DirectLineArray: exact and cheap. Transducer j sits above column j and
  time sample t reads depth row t, so the trace is the transposed field.
- TimeOfFlightLineArray: transducers along the first grid row at spacing dy.
  Each pixel is binned into the time sample of its rounded time of flight;
  reconstruction is delay-and-sum back-projection.

Any wave-propagation toolkit can be plugged in by subclassing the two ABCs
or by wrapping plain functions with ``as_forward_model``/``as_reconstructor``.
"""

import numpy as np
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Callable, Tuple, Union

from ..exceptions import DimensionMismatch


@dataclass(frozen=True)
class GridGeometry:
    """
    Computational grid of the simulation.

    Attributes
    ----------
    Nx, Ny : int
        Number of pixels along x (depth) and y (array direction).
    dx, dy : float
        Pixel size in meters.
    """
    Nx: int
    Ny: int
    dx: float
    dy: float

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.Nx, self.Ny)


@dataclass(frozen=True)
class TraceShape:
    """
    Result of the probe phase.

    Attributes
    ----------
    num_transducers : int
        Number of transducer elements (rows of a trace).
    num_time_samples : int
        Number of recorded time samples (columns of a trace).
    probe_trace : np.ndarray
        The trace produced by the probe call.
    """
    num_transducers: int
    num_time_samples: int
    probe_trace: np.ndarray = field(repr=False, compare=False)

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.num_transducers, self.num_time_samples)


class AcousticForwardModel(ABC):
    """
    Abstract forward model: initial pressure -> transducer traces.
    """

    @abstractmethod
    def forward(self, pressure: np.ndarray, Nx: int, dx: float, Ny: int, dy: float) -> np.ndarray:
        """
        Simulate the sensor data recorded for one initial pressure field.

        Parameters
        ----------
        pressure : np.ndarray
            Initial pressure, shape (Nx, Ny).
        Nx, Ny : int
            Grid size in pixels.
        dx, dy : float
            Pixel size in meters.

        Returns
        -------
        np.ndarray
            Sensor trace, shape (num_transducers, num_time_samples).
        """
        pass


class ImageReconstructor(ABC):
    """
    Abstract reconstructor: transducer traces -> initial pressure image.
    """

    @abstractmethod
    def reconstruct(self, trace: np.ndarray, Nx: int, Ny: int, dx: float, dy: float) -> np.ndarray:
        """
        Reconstruct the initial pressure from one sensor trace.

        Parameters
        ----------
        trace : np.ndarray
            Sensor trace, shape (num_transducers, num_time_samples).
        Nx, Ny : int
            Grid size in pixels.
        dx, dy : float
            Pixel size in meters.

        Returns
        -------
        np.ndarray
            Reconstructed image, shape (Nx, Ny).
        """
        pass


def _check_field_shape(pressure: np.ndarray, Nx: int, Ny: int):
    if pressure.shape != (Nx, Ny):
        raise DimensionMismatch(f"Pressure field has shape {pressure.shape}, expected ({Nx}, {Ny})")


class DirectLineArray(AcousticForwardModel, ImageReconstructor):
    """
    Lossless line array: one transducer per column, one time sample per row.

    Forward and reconstruction are exact inverses, so the unmixing core can
    be exercised without any acoustic blurring.
    """

    def forward(self, pressure: np.ndarray, Nx: int, dx: float, Ny: int, dy: float) -> np.ndarray:
        pressure = np.asarray(pressure, dtype=np.float64)
        _check_field_shape(pressure, Nx, Ny)
        return np.ascontiguousarray(pressure.T)

    def reconstruct(self, trace: np.ndarray, Nx: int, Ny: int, dx: float, dy: float) -> np.ndarray:
        trace = np.asarray(trace, dtype=np.float64)
        if trace.shape != (Ny, Nx):
            raise DimensionMismatch(f"Trace has shape {trace.shape}, expected ({Ny}, {Nx})")
        return np.ascontiguousarray(trace.T)

    def __repr__(self) -> str:
        return "DirectLineArray()"


@lru_cache(maxsize=8)
def _time_of_flight_table(Nx: int, dx: float, Ny: int, dy: float,
                          sound_speed: float, cfl: float) -> Tuple[np.ndarray, int, float]:
    """
    Time-sample index of every (depth row, lateral offset) pair.

    Returns
    -------
    table : np.ndarray
        Integer array (Nx, Ny); ``table[i, k]`` is the sample at which a
        source at depth row i and lateral offset of k columns arrives.
    n_times : int
        Number of time samples needed to cover the grid diagonal.
    dt : float
        Time step in seconds.
    """
    dt = cfl * min(dx, dy) / sound_speed
    t_end = np.hypot(Nx * dx, Ny * dy) / sound_speed
    n_times = int(np.ceil(t_end / dt)) + 1

    depth = np.arange(Nx) * dx
    offset = np.arange(Ny) * dy
    distance = np.hypot(depth[:, None], offset[None, :])

    table = np.rint(distance / (sound_speed * dt)).astype(np.int64)
    table = np.clip(table, 0, n_times - 1)
    table.setflags(write=False)
    return table, n_times, dt


@dataclass
class TimeOfFlightLineArray(AcousticForwardModel, ImageReconstructor):
    """
    Line array on the first grid row with time-of-flight binning.

    Transducer j sits at (0, j·dy). The time step is chosen from the grid
    for stability, dt = cfl · min(dx, dy) / c, and the recording lasts
    long enough to cover the grid diagonal.

    Parameters
    ----------
    sound_speed : float
        Speed of sound in the medium [m/s].
    cfl : float
        Courant number used to pick the time step.
    positivity : bool
        If True, negative pixels of the reconstruction are set to zero.
    """
    sound_speed: float = 1540.0
    cfl: float = 0.3
    positivity: bool = False

    def _geometry(self, Nx: int, dx: float, Ny: int, dy: float):
        table, n_times, _ = _time_of_flight_table(int(Nx), float(dx), int(Ny), float(dy),
                                                  float(self.sound_speed), float(self.cfl))
        # |k - j| for transducer j (rows) and column k (columns)
        offsets = np.abs(np.arange(Ny)[None, :] - np.arange(Ny)[:, None])
        return table, n_times, offsets

    def time_step(self, dx: float, dy: float) -> float:
        """Time step [s] this model uses on a grid with spacing (dx, dy)."""
        return self.cfl * min(dx, dy) / self.sound_speed

    def forward(self, pressure: np.ndarray, Nx: int, dx: float, Ny: int, dy: float) -> np.ndarray:
        pressure = np.asarray(pressure, dtype=np.float64)
        _check_field_shape(pressure, Nx, Ny)
        table, n_times, offsets = self._geometry(Nx, dx, Ny, dy)

        weights = pressure.ravel()
        trace = np.empty((Ny, n_times))
        for j in range(Ny):
            arrival = table[:, offsets[j]]
            trace[j] = np.bincount(arrival.ravel(), weights=weights, minlength=n_times)
        return trace

    def reconstruct(self, trace: np.ndarray, Nx: int, Ny: int, dx: float, dy: float) -> np.ndarray:
        trace = np.asarray(trace, dtype=np.float64)
        table, n_times, offsets = self._geometry(Nx, dx, Ny, dy)
        if trace.shape != (Ny, n_times):
            raise DimensionMismatch(f"Trace has shape {trace.shape}, expected ({Ny}, {n_times})")

        image = np.zeros((Nx, Ny))
        for j in range(Ny):
            image += trace[j][table[:, offsets[j]]]
        image /= Ny

        if self.positivity:
            image[image < 0] = 0.0
        return image


@dataclass
class CallableForwardModel(AcousticForwardModel):
    """Adapter for a plain ``f(pressure, Nx, dx, Ny, dy) -> trace`` function."""
    func: Callable[..., np.ndarray]

    def forward(self, pressure: np.ndarray, Nx: int, dx: float, Ny: int, dy: float) -> np.ndarray:
        return np.asarray(self.func(pressure, Nx, dx, Ny, dy), dtype=np.float64)


@dataclass
class CallableReconstructor(ImageReconstructor):
    """Adapter for a plain ``f(trace, Nx, Ny, dx, dy) -> image`` function."""
    func: Callable[..., np.ndarray]

    def reconstruct(self, trace: np.ndarray, Nx: int, Ny: int, dx: float, dy: float) -> np.ndarray:
        return np.asarray(self.func(trace, Nx, Ny, dx, dy), dtype=np.float64)


def as_forward_model(model: Union[AcousticForwardModel, Callable]) -> AcousticForwardModel:
    """Return ``model`` unchanged, or wrap a plain function."""
    if isinstance(model, AcousticForwardModel):
        return model
    if callable(model):
        return CallableForwardModel(model)
    raise TypeError(f"Expected an AcousticForwardModel or a callable, got {type(model).__name__}")


def as_reconstructor(model: Union[ImageReconstructor, Callable]) -> ImageReconstructor:
    """Return ``model`` unchanged, or wrap a plain function."""
    if isinstance(model, ImageReconstructor):
        return model
    if callable(model):
        return CallableReconstructor(model)
    raise TypeError(f"Expected an ImageReconstructor or a callable, got {type(model).__name__}")


def probe_trace_shape(model: AcousticForwardModel, pressure: np.ndarray,
                      grid: GridGeometry) -> TraceShape:
    """
    Run one forward simulation to learn the trace shape.

    Parameters
    ----------
    model : AcousticForwardModel
        Forward model to probe.
    pressure : np.ndarray
        Any valid pressure field on ``grid``.
    grid : GridGeometry
        Grid the model will be run on.

    Returns
    -------
    TraceShape
        Shape metadata together with the probe trace.

    Raises
    ------
    DimensionMismatch
        If the model does not return a 2-D trace.
    """
    trace = np.asarray(model.forward(pressure, grid.Nx, grid.dx, grid.Ny, grid.dy), dtype=np.float64)
    if trace.ndim != 2:
        raise DimensionMismatch(f"Forward model must return a 2-D trace, got shape {trace.shape}")
    return TraceShape(num_transducers=trace.shape[0],
                      num_time_samples=trace.shape[1],
                      probe_trace=trace)
