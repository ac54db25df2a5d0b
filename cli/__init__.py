"""Command line entry point for the co2mond collector."""

from importlib import import_module
from types import ModuleType

__all__ = []


def __getattr__(name: str) -> ModuleType:
    # ``cli.app`` names the module, so tests can patch its attributes.
    if name == "app":
        return import_module("cli.app")
    raise AttributeError(name)
