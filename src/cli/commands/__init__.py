"""CLI command modules."""

from .catalog import bundles, catalog, search
from .detect import detect
from .init import init
from .skills import install, installed, uninstall, updates
from .sync import preview, sync

__all__ = [
    "detect",
    "catalog",
    "search",
    "bundles",
    "preview",
    "sync",
    "install",
    "uninstall",
    "installed",
    "updates",
    "init",
]
