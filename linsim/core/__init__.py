"""
linsim Core Module

Service plumbing shared by the filesystem:
- Bootloader
- Subsystem lifecycle
- Configuration Loader
"""

from .bootloader import Bootloader, BootStage, BootResult, boot_filesystem
from .subsystem import Subsystem, SubsystemState
from .config_loader import (
    ConfigLoader,
    Config,
    DatabaseConfig,
    LoggingConfig,
    FilesystemConfig,
    ProvisioningConfig,
    get_config,
)

__all__ = [
    # Bootloader
    'Bootloader',
    'BootStage',
    'BootResult',
    'boot_filesystem',
    # Subsystem
    'Subsystem',
    'SubsystemState',
    # Config
    'ConfigLoader',
    'Config',
    'DatabaseConfig',
    'LoggingConfig',
    'FilesystemConfig',
    'ProvisioningConfig',
    'get_config',
]
