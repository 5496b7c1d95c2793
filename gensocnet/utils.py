"""Utility functions for gensocnet.

General-purpose helpers: config hashing, timing.
"""

from __future__ import annotations

import hashlib
import time
from contextlib import contextmanager
from typing import Generator


def config_hash(yaml_text: str) -> str:
    """SHA-256 of a YAML config string (for tagging saved results)."""
    return hashlib.sha256(yaml_text.encode('utf-8')).hexdigest()


@contextmanager
def timer(label: str = "") -> Generator[None, None, None]:
    """Simple context-manager timer. Prints elapsed time on exit."""
    start = time.perf_counter()
    yield
    elapsed = time.perf_counter() - start
    if label:
        print(f"[{label}] {elapsed:.3f}s")
    else:
        print(f"Elapsed: {elapsed:.3f}s")
