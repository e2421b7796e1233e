"""Resolve ``module:attribute`` import paths to callables."""

from __future__ import annotations

import importlib
from collections.abc import Callable
from typing import Any


def resolve_callable(import_path: str) -> Callable[..., Any]:
    """Import ``package.module:attribute`` and return the attribute.

    Dotted attributes after the colon are followed (``module:Class.factory``).
    Raises :class:`ValueError` for malformed paths and non-callable targets.
    """

    module_name, sep, attr_path = import_path.partition(":")
    if not sep or not module_name or not attr_path:
        raise ValueError(
            f"Invalid import path {import_path!r}; expected 'package.module:attribute'"
        )

    try:
        target: Any = importlib.import_module(module_name)
    except ImportError as exc:
        raise ValueError(f"Cannot import module {module_name!r}: {exc}") from exc

    for part in attr_path.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as exc:
            raise ValueError(f"{import_path!r} has no attribute {part!r}") from exc

    if not callable(target):
        raise ValueError(f"{import_path!r} does not refer to a callable")
    return target


__all__ = ["resolve_callable"]
