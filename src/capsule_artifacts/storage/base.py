"""Abstract base class for artifact storage resolvers.

A storage resolver decides where the files of an :class:`~capsule_artifacts.artifacts.Artifact`
end up once the build is done.  Resolvers are looked up by :attr:`StorageResolver.name`
through :class:`~capsule_artifacts.storage.registry.StorageResolverRegistry`.
"""
from __future__ import annotations

import abc
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from capsule_artifacts.artifacts import ArtifactList
    from capsule_artifacts.build_context import Component


class StorageResolver(abc.ABC):
    """Abstract base for all storage resolvers.

    Sub-classes **must** implement :attr:`name` and :meth:`store`.
    """

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Stable identifier referenced by ``ArtifactDefinition.storage_resolver``."""
        ...

    @abc.abstractmethod
    def store(self, component: "Component", artifacts: "ArtifactList") -> Any:
        """Persist *artifacts* produced for *component* and return a
        resolver-specific result (locations, ids, ...)."""
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
