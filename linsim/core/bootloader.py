"""
linsim Bootloader

The bootloader is responsible for:
- Loading configuration
- Initializing logging
- Connecting the node store
- Seeding the root and the shared system directories
- Handling boot failures

No user operation should reach the filesystem before a boot has
completed: seeding is what creates the root.

Version: 1.0.0
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional, TYPE_CHECKING
import time

if TYPE_CHECKING:
    from linsim.filesystem.engine import FilesystemEngine

from linsim.logger import Logger, get_logger, LogLevel
from linsim.exceptions import BootFailureError, CoreException, FileSystemException
from linsim.core.config_loader import ConfigLoader, get_config


class BootStage(Enum):
    """Boot process stages."""
    PRE_INIT = auto()
    CONFIG_LOAD = auto()
    LOGGING_INIT = auto()
    STORE_INIT = auto()
    SEED = auto()
    COMPLETE = auto()
    FAILED = auto()


@dataclass
class BootResult:
    """Result of the boot process."""
    success: bool
    stage: BootStage
    message: str
    elapsed_time: float
    error: Optional[Exception] = None


class Bootloader:
    """
    The filesystem bootloader.

    Boot Sequence:
        1. Load configuration
        2. Initialize logging
        3. Connect the node store and create the schema
        4. Seed the system directories
        5. Complete

    Example:
        >>> bootloader = Bootloader("linsim.json")
        >>> result = bootloader.boot()
        >>> if result.success:
        ...     engine = bootloader.get_engine()
    """

    def __init__(self, config_path: Optional[str] = None):
        self._config_path = config_path
        self._stage = BootStage.PRE_INIT
        self._logger: Optional[Logger] = None
        self._start_time: float = 0
        self._engine: Optional[FilesystemEngine] = None

    @property
    def stage(self) -> BootStage:
        """Get the current boot stage."""
        return self._stage

    def boot(self) -> BootResult:
        """
        Execute the boot sequence.

        Returns:
            BootResult indicating success or failure
        """
        self._start_time = time.time()

        try:
            # Stage 1: Load configuration
            self._stage = BootStage.CONFIG_LOAD
            ConfigLoader().load(self._config_path)

            # Stage 2: Initialize logging
            self._stage = BootStage.LOGGING_INIT
            self._init_logging()

            self._logger = get_logger('bootloader')
            self._logger.info("linsim bootloader starting")

            # Stage 3: Connect the store
            self._stage = BootStage.STORE_INIT
            self._init_store()

            # Stage 4: Seed system directories
            self._stage = BootStage.SEED
            self._engine.initialize()

            self._stage = BootStage.COMPLETE
            elapsed = time.time() - self._start_time

            self._logger.info(
                "Boot complete",
                context={'elapsed_ms': f"{elapsed * 1000:.2f}"}
            )

            return BootResult(
                success=True,
                stage=self._stage,
                message="Filesystem booted successfully",
                elapsed_time=elapsed
            )

        except (CoreException, FileSystemException) as e:
            failed_stage = self._stage
            self._stage = BootStage.FAILED
            elapsed = time.time() - self._start_time

            if self._logger:
                self._logger.critical(f"Boot failed at stage {failed_stage.name}: {e}")

            if self._engine is not None:
                self._engine.cleanup()
                self._engine = None

            return BootResult(
                success=False,
                stage=failed_stage,
                message=f"Boot failed: {e}",
                elapsed_time=elapsed,
                error=e
            )

    def _init_logging(self) -> None:
        """Initialize the logging system."""
        config = get_config()

        Logger.initialize(
            level=LogLevel.from_name(config.logging.level),
            log_file=config.logging.log_file,
            console_output=config.logging.console_output,
            use_colors=config.logging.use_colors
        )

    def _init_store(self) -> None:
        """Create the engine and connect its store."""
        # Import here to avoid circular dependency
        from linsim.filesystem.engine import FilesystemEngine
        from linsim.filesystem.store import NodeStore

        config = get_config()
        store = NodeStore(config.database)
        self._engine = FilesystemEngine(store, config)
        store.initialize()

        self._logger.debug("Node store initialized")

    def get_engine(self) -> Optional[FilesystemEngine]:
        """Get the booted engine, or None if boot failed."""
        return self._engine

    def shutdown(self) -> None:
        """Release the store's connections."""
        if self._logger:
            self._logger.info("Shutdown initiated")

        if self._engine is not None:
            self._engine.cleanup()
            self._engine = None

        if self._logger:
            self._logger.info("Shutdown complete")


def boot_filesystem(config_path: Optional[str] = None) -> FilesystemEngine:
    """
    Boot the filesystem and return a ready engine.

    Args:
        config_path: Path to a JSON configuration file; None uses defaults

    Raises:
        BootFailureError: If any boot stage fails
    """
    bootloader = Bootloader(config_path)
    result = bootloader.boot()
    if not result.success:
        raise BootFailureError(result.message, subsystem=result.stage.name.lower()) from result.error
    return bootloader.get_engine()
