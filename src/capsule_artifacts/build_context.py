"""Build context handed to the artifact factory after a task has run.

Usage::

    from capsule_artifacts.build_context import (
        BuildContext, Capsule, CapsuleGraph, Component, Task,
    )

    graph = CapsuleGraph(
        capsules_root_dir=Path("/tmp/capsules"),
        capsules={"ui/button": Capsule(Path("/tmp/capsules/ui-button"))},
    )
    ctx = BuildContext(components=[Component("ui/button")], capsule_graph=graph)
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Protocol, runtime_checkable


@dataclass(frozen=True)
class Component:
    """A component under build, identified by ``id``."""

    id: str

    def __str__(self) -> str:
        return self.id


@dataclass(frozen=True)
class Task:
    """The build task whose outputs are being collected."""

    name: str
    description: str = ""


@dataclass(frozen=True)
class Capsule:
    """An isolated working directory in which one component was built."""

    path: Path


@runtime_checkable
class CapsuleLookup(Protocol):
    """Structural interface the factory needs from a capsule graph."""

    capsules_root_dir: Path

    def get_capsule(self, component_id: str) -> Optional[Capsule]:
        ...


@dataclass
class CapsuleGraph:
    """Maps component ids to capsules and exposes the shared capsules root.

    ``capsules_root_dir`` is the directory shared by every capsule of the
    build; ``"env"`` scoped artifacts are resolved against it.
    """

    capsules_root_dir: Path
    capsules: Dict[str, Capsule] = field(default_factory=dict)

    def get_capsule(self, component_id: str) -> Optional[Capsule]:
        return self.capsules.get(component_id)


@dataclass
class BuildContext:
    """Components under build plus the capsule graph they were built in.

    Component order is significant: the artifact map follows it.
    """

    components: List[Component]
    capsule_graph: CapsuleLookup

    def __post_init__(self) -> None:
        self.components = list(self.components)
        seen = set()
        for component in self.components:
            if component.id in seen:
                raise ValueError(f"Duplicate component id {component.id!r} in build context.")
            seen.add(component.id)
