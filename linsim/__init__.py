"""
linsim - A shared virtual Linux-style filesystem

One persistent tree of files and directories shared by many users, with
per-node ownership, rwx permission bits, permission-checked path
resolution and cycle-free moves.
"""

__version__ = "1.0.0"

from .core.bootloader import Bootloader, boot_filesystem
from .filesystem.engine import FilesystemEngine
from .filesystem.node import Node, NodeType

__all__ = [
    'Bootloader',
    'boot_filesystem',
    'FilesystemEngine',
    'Node',
    'NodeType',
]
