"""Language adapter registry.

Adapters are consulted in registration order; the first whose
``can_handle`` accepts a path owns that file.
"""

from __future__ import annotations

import logging
from typing import Iterable

from .base import Capture, LanguageAdapter, TreeSitterAdapter, resolve_by_name, run_query
from .go import GoAdapter
from .python import PythonAdapter
from .typescript import TypeScriptAdapter

logger = logging.getLogger("srcxref.adapters")

# Default registration order
DEFAULT_ADAPTERS: tuple[type[TreeSitterAdapter], ...] = (
    GoAdapter,
    TypeScriptAdapter,
    PythonAdapter,
)


def default_adapters() -> list[LanguageAdapter]:
    """Build the default adapter set. Raises AdapterInitError on failure."""
    adapters: list[LanguageAdapter] = [cls() for cls in DEFAULT_ADAPTERS]
    logger.debug("Default adapters: %s", ", ".join(a.lang for a in adapters))
    return adapters


class AdapterRegistry:
    """Ordered adapter list with first-match dispatch."""

    def __init__(self, adapters: Iterable[LanguageAdapter]):
        self._adapters: list[LanguageAdapter] = list(adapters)

    def __iter__(self):
        return iter(self._adapters)

    def __len__(self) -> int:
        return len(self._adapters)

    @property
    def languages(self) -> list[str]:
        return [a.lang for a in self._adapters]

    def pick(self, path: str) -> LanguageAdapter | None:
        for adapter in self._adapters:
            if adapter.can_handle(path):
                return adapter
        return None


__all__ = [
    "AdapterRegistry",
    "Capture",
    "DEFAULT_ADAPTERS",
    "GoAdapter",
    "LanguageAdapter",
    "PythonAdapter",
    "TreeSitterAdapter",
    "TypeScriptAdapter",
    "default_adapters",
    "resolve_by_name",
    "run_query",
]
