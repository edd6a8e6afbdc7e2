"""capsule_artifacts.storage – storage resolvers and their registry.

* :mod:`capsule_artifacts.storage.base` – :class:`StorageResolver` abstract base class
* :mod:`capsule_artifacts.storage.default` – :class:`DefaultResolver`, the built-in fallback
* :mod:`capsule_artifacts.storage.registry` – :class:`StorageResolverRegistry`
"""
from __future__ import annotations

from capsule_artifacts.storage.base import StorageResolver  # noqa: F401
from capsule_artifacts.storage.default import DEFAULT_RESOLVER_NAME, DefaultResolver  # noqa: F401
from capsule_artifacts.storage.registry import ENTRY_POINT_GROUP, StorageResolverRegistry  # noqa: F401

__all__ = [
    "DEFAULT_RESOLVER_NAME",
    "ENTRY_POINT_GROUP",
    "DefaultResolver",
    "StorageResolver",
    "StorageResolverRegistry",
]
