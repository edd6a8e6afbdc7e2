"""Storage resolver registry: maps resolver names to resolver instances.

Usage::

    from capsule_artifacts.storage.registry import StorageResolverRegistry

    registry = StorageResolverRegistry()
    registry.register(MyBucketResolver())
    registry.freeze()

    registry.resolver_for("bucket")   # -> MyBucketResolver instance
    registry.resolver_for("missing")  # -> registry.default
"""
from __future__ import annotations

import logging
from importlib.metadata import entry_points
from typing import Dict, List, Optional

from capsule_artifacts.storage.base import StorageResolver
from capsule_artifacts.storage.default import DefaultResolver

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "capsule_artifacts.storage_resolvers"


class StorageResolverRegistry:
    """Holds the storage resolvers known to the process.

    The registry is filled once during start-up (:meth:`register`,
    :meth:`load_entry_points`) and is only read afterwards.  Lookup is total:
    :meth:`resolver_for` always returns a resolver, falling back to the
    built-in :class:`DefaultResolver`.
    """

    def __init__(self, default: Optional[StorageResolver] = None) -> None:
        self.default: StorageResolver = default if default is not None else DefaultResolver()
        self._resolvers: Dict[str, StorageResolver] = {}
        self._frozen = False

    def register(self, resolver: StorageResolver) -> None:
        """Register *resolver* under its own :attr:`~StorageResolver.name`.

        Raises
        ------
        RuntimeError
            If the registry has been frozen.
        ValueError
            If a resolver with the same name is already registered.
        """
        if self._frozen:
            raise RuntimeError(
                f"Cannot register storage resolver {resolver.name!r}: registry is frozen."
            )
        if resolver.name in self._resolvers:
            raise ValueError(f"Storage resolver {resolver.name!r} is already registered.")
        self._resolvers[resolver.name] = resolver

    def load_entry_points(self, group: str = ENTRY_POINT_GROUP) -> List[str]:
        """Register every resolver advertised under the *group* entry point.

        Each entry point must load to a zero-argument callable (usually the
        resolver class).  Returns the names that were registered.
        """
        loaded: List[str] = []
        for ep in entry_points(group=group):
            resolver = ep.load()()
            self.register(resolver)
            logger.debug("Loaded storage resolver %r from %s", resolver.name, ep.value)
            loaded.append(resolver.name)
        return loaded

    def freeze(self) -> None:
        """Make the registry read-only."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def resolver_for(self, name: Optional[str] = None) -> StorageResolver:
        """Return the resolver registered as *name*, or :attr:`default`.

        An unknown name is not an error; definitions stay valid whether or
        not the resolver they ask for is installed.
        """
        if name is None:
            return self.default
        resolver = self._resolvers.get(name)
        if resolver is None:
            logger.debug("Storage resolver %r is not registered, using %r", name, self.default.name)
            return self.default
        return resolver

    def names(self) -> List[str]:
        """Return registered resolver names in registration order."""
        return list(self._resolvers)

    def values(self) -> List[StorageResolver]:
        return list(self._resolvers.values())
