"""Registry resolving a model type to the mapper that manages it.

Foreign-key hydration consults a registry to find the mapper of a referenced
type.  Populate it during startup, optionally :meth:`~MapperRegistry.freeze`
it, then start serving reads.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Optional

from litemap.errors import RegistryFrozenError

if TYPE_CHECKING:  # pragma: no cover
    from litemap.core.mapper import Mapper

__all__ = ["MapperRegistry", "registry"]

logger = logging.getLogger(__name__)


class MapperRegistry:
    """Thread-safe table of ``model type -> Mapper``."""

    def __init__(self) -> None:
        self._mappers: dict[type, "Mapper"] = {}
        self._lock = threading.RLock()
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(self, mapper: "Mapper") -> None:
        """Register ``mapper`` under its model type; the last writer wins."""
        with self._lock:
            self._check_mutable()
            if mapper.model in self._mappers:
                logger.warning("Mapper for %s replaced", mapper.model.__name__)
            self._mappers[mapper.model] = mapper
            logger.debug("Registered mapper for %s", mapper.model.__name__)

    def register_all(self, *mappers: "Mapper") -> None:
        """Replace the whole registry with ``mappers``."""
        with self._lock:
            self._check_mutable()
            self._mappers = {mapper.model: mapper for mapper in mappers}

    def lookup(self, model: type) -> Optional["Mapper"]:
        with self._lock:
            return self._mappers.get(model)

    def mappers(self) -> list["Mapper"]:
        with self._lock:
            return list(self._mappers.values())

    def freeze(self) -> None:
        """Reject any further registration."""
        with self._lock:
            self._frozen = True

    def clear(self) -> None:
        """Drop every mapper and unfreeze (for testing)."""
        with self._lock:
            self._mappers.clear()
            self._frozen = False

    def _check_mutable(self) -> None:
        if self._frozen:
            raise RegistryFrozenError("Mapper registry is frozen")

    def __contains__(self, model: object) -> bool:
        with self._lock:
            return model in self._mappers

    def __len__(self) -> int:
        with self._lock:
            return len(self._mappers)


# Global registry instance
registry = MapperRegistry()
