"""Built-in fallback storage resolver."""
from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, List

from capsule_artifacts.storage.base import StorageResolver

if TYPE_CHECKING:
    from capsule_artifacts.artifacts import ArtifactList
    from capsule_artifacts.build_context import Component

DEFAULT_RESOLVER_NAME = "default"


class DefaultResolver(StorageResolver):
    """Leaves artifact files where the task wrote them.

    Used whenever a definition names no resolver, or names one that is not
    registered.  :meth:`store` writes nothing and reports the absolute paths
    of the files it was handed.
    """

    @property
    def name(self) -> str:
        return DEFAULT_RESOLVER_NAME

    def store(self, component: "Component", artifacts: "ArtifactList") -> List[Path]:
        stored: List[Path] = []
        for artifact in artifacts:
            stored.extend(artifact.absolute_paths())
        return stored
