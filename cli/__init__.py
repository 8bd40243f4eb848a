"""Command line client for the sensor dashboard service."""

from importlib import import_module
from types import ModuleType

# The Typer application lives in ``cli.app``. It is deliberately not re-exported
# from the package root so that ``cli.app`` keeps resolving to the module
# itself; tests patch attributes such as ``cli.app.ApiClient`` on that module
# path, and shadowing it with the Typer instance would break them.


def __getattr__(name: str) -> ModuleType:
    if name == "app":
        return import_module("cli.app")
    raise AttributeError(name)


__all__ = []
