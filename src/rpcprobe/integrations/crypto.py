"""Default crypto provider: load a shared library into the process."""

from __future__ import annotations

import ctypes
from pathlib import Path


def load_shared_library(path: str) -> ctypes.CDLL:
    """Load the crypto library at ``path`` with process-global symbol visibility.

    Raises :class:`FileNotFoundError` with a ``library not found`` message when
    the file is absent, and lets :class:`OSError` from the dynamic loader
    propagate otherwise.
    """

    library = Path(path).expanduser()
    if not library.is_file():
        raise FileNotFoundError(f"library not found: {library}")
    return ctypes.CDLL(str(library), mode=ctypes.RTLD_GLOBAL)


__all__ = ["load_shared_library"]
