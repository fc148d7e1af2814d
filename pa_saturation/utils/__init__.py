"""
Shared infrastructure for the simulation pipeline.
"""

from .logging_config import SimulationLogger, get_logger

__all__ = ["SimulationLogger", "get_logger"]
