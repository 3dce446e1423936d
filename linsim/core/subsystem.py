"""
linsim Subsystem Base

Lifecycle base class shared by the long-lived parts of the service
(the node store and the filesystem engine).

Version: 1.0.0
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum, auto

from linsim.logger import get_logger


class SubsystemState(Enum):
    """Lifecycle state of a subsystem."""
    CREATED = auto()
    INITIALIZED = auto()
    STOPPED = auto()
    ERROR = auto()


class Subsystem(ABC):
    """
    Abstract base class for service subsystems.

    Lifecycle:
        1. __init__() - Subsystem is created
        2. initialize() - Subsystem acquires resources
        3. cleanup() - Subsystem releases resources
    """

    def __init__(self, name: str):
        self._logger = get_logger(name)
        self._state = SubsystemState.CREATED

    @property
    def state(self) -> SubsystemState:
        return self._state

    def set_state(self, state: SubsystemState) -> None:
        """Set the subsystem state."""
        self._state = state
        self._logger.debug(f"State changed to {state.name}")

    @abstractmethod
    def initialize(self) -> None:
        """
        Initialize the subsystem.

        Raises:
            BootFailureError: If initialization fails
        """

    def cleanup(self) -> None:
        """Clean up subsystem resources. Default implementation does nothing."""

    def health_check(self) -> bool:
        """Return True while the subsystem is usable."""
        return self._state == SubsystemState.INITIALIZED
