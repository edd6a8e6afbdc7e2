"""Turns artifact definitions into per-component artifacts after a task ran.

Usage::

    from capsule_artifacts.factory import ArtifactFactory
    from capsule_artifacts.storage import StorageResolverRegistry

    factory = ArtifactFactory(StorageResolverRegistry())
    artifact_map = factory.generate(ctx, definitions, task, "teambit.compilation/compiler")
    artifact_map["ui/button"]  # -> ArtifactList
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from capsule_artifacts.artifacts import (
    ENV_CONTEXT,
    COMPONENT_CONTEXT,
    Artifact,
    ArtifactDefinition,
    ArtifactFiles,
    ArtifactMap,
)
from capsule_artifacts.build_context import BuildContext, Component, Task
from capsule_artifacts.exceptions import CapsuleNotFound
from capsule_artifacts.paths import PathResolver
from capsule_artifacts.storage.base import StorageResolver
from capsule_artifacts.storage.registry import StorageResolverRegistry

logger = logging.getLogger(__name__)


class ArtifactFactory:
    """Resolves artifact definitions against the capsules of a build.

    ``"component"`` definitions are matched inside each component's capsule.
    ``"env"`` definitions are matched once inside the shared capsules root
    and the resulting artifact is given, as the same object, to every
    component.
    """

    def __init__(
        self,
        storage_resolvers: StorageResolverRegistry,
        path_resolver: Optional[PathResolver] = None,
    ) -> None:
        self.storage_resolvers = storage_resolvers
        self.path_resolver = path_resolver or PathResolver()

    def _storage_resolver(self, definition: ArtifactDefinition) -> StorageResolver:
        return self.storage_resolvers.resolver_for(definition.storage_resolver)

    def _context_path(
        self, context: BuildContext, component: Component, definition: ArtifactDefinition
    ) -> Path:
        if definition.artifact_context == COMPONENT_CONTEXT:
            capsule = context.capsule_graph.get_capsule(component.id)
            if capsule is None or not capsule.path:
                raise CapsuleNotFound(component.id)
            return Path(capsule.path)
        return Path(context.capsule_graph.capsules_root_dir)

    @staticmethod
    def _search_root(root_dir: Path, definition: ArtifactDefinition) -> Path:
        if not definition.root_dir:
            return root_dir
        return root_dir / definition.root_dir

    def _build(
        self,
        root_dir: Path,
        definition: ArtifactDefinition,
        task: Task,
        task_aspect_id: str,
    ) -> Optional[Artifact]:
        paths = self.path_resolver.resolve(
            self._search_root(root_dir, definition), definition.glob_patterns
        )
        if not paths:
            return None
        return Artifact(
            definition=definition,
            storage_resolver=self._storage_resolver(definition),
            files=ArtifactFiles(tuple(paths)),
            root_dir=root_dir,
            task=task,
            task_aspect_id=task_aspect_id,
        )

    def create_from_component(
        self,
        context: BuildContext,
        component: Component,
        definition: ArtifactDefinition,
        task: Task,
        task_aspect_id: str,
    ) -> Optional[Artifact]:
        """Resolve *definition* for a single *component*.

        Returns ``None`` when no file matched.

        Raises
        ------
        CapsuleNotFound
            If the definition is component-scoped and *component* has no
            capsule in the capsule graph.
        """
        root_dir = self._context_path(context, component, definition)
        return self._build(root_dir, definition, task, task_aspect_id)

    def generate(
        self,
        context: BuildContext,
        definitions: Sequence[ArtifactDefinition],
        task: Task,
        task_aspect_id: str,
    ) -> ArtifactMap:
        """Resolve every definition for every component of *context*.

        The returned map has one :class:`ArtifactList` per component, in
        context order; each list holds that component's artifacts in
        definition order.  A :class:`CapsuleNotFound` aborts the whole call.
        """
        collected: Dict[str, List[Artifact]] = {c.id: [] for c in context.components}

        for definition in definitions:
            if definition.artifact_context == ENV_CONTEXT:
                root_dir = Path(context.capsule_graph.capsules_root_dir)
                artifact = self._build(root_dir, definition, task, task_aspect_id)
                if artifact is None:
                    logger.debug("No files matched env artifact %r", definition.name or task.name)
                    continue
                for component in context.components:
                    collected[component.id].append(artifact)
                continue

            for component in context.components:
                artifact = self.create_from_component(
                    context, component, definition, task, task_aspect_id
                )
                if artifact is not None:
                    collected[component.id].append(artifact)

        logger.info(
            "Generated %d artifact(s) for %d component(s) of task %r",
            len({id(a) for artifacts in collected.values() for a in artifacts}),
            len(context.components),
            task.name,
        )
        return ArtifactMap.from_components(context.components, lambda c: collected[c.id])
