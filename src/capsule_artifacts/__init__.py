"""capsule_artifacts – resolve the artifacts a build task left in its capsules.

* :mod:`capsule_artifacts.factory` – :class:`ArtifactFactory`
* :mod:`capsule_artifacts.artifacts` – definitions, artifacts, lists and maps
* :mod:`capsule_artifacts.paths` – :class:`PathResolver`
* :mod:`capsule_artifacts.storage` – storage resolvers and their registry
* :mod:`capsule_artifacts.build_context` – components, capsules, tasks
"""
from __future__ import annotations

from capsule_artifacts.artifacts import (  # noqa: F401
    DEFAULT_CONTEXT,
    Artifact,
    ArtifactDefinition,
    ArtifactFiles,
    ArtifactList,
    ArtifactMap,
)
from capsule_artifacts.build_context import (  # noqa: F401
    BuildContext,
    Capsule,
    CapsuleGraph,
    Component,
    Task,
)
from capsule_artifacts.exceptions import ArtifactError, CapsuleNotFound  # noqa: F401
from capsule_artifacts.factory import ArtifactFactory  # noqa: F401
from capsule_artifacts.paths import PathResolver  # noqa: F401
from capsule_artifacts.storage import DefaultResolver, StorageResolver, StorageResolverRegistry  # noqa: F401

__all__ = [
    "DEFAULT_CONTEXT",
    "Artifact",
    "ArtifactDefinition",
    "ArtifactError",
    "ArtifactFactory",
    "ArtifactFiles",
    "ArtifactList",
    "ArtifactMap",
    "BuildContext",
    "Capsule",
    "CapsuleGraph",
    "CapsuleNotFound",
    "Component",
    "DefaultResolver",
    "PathResolver",
    "StorageResolver",
    "StorageResolverRegistry",
    "Task",
]
