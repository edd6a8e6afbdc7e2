"""Artifact definitions and the resolved artifacts produced from them.

An :class:`ArtifactDefinition` declares which files a task leaves behind and
how to store them.  :class:`~capsule_artifacts.factory.ArtifactFactory` binds
definitions to the files actually present in a capsule, producing
:class:`Artifact` instances grouped per component in an :class:`ArtifactMap`.
"""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, Union

from capsule_artifacts.build_context import Component, Task
from capsule_artifacts.paths import PatternGroup, flatten_patterns, validate_pattern
from capsule_artifacts.storage.base import StorageResolver

COMPONENT_CONTEXT = "component"
ENV_CONTEXT = "env"
DEFAULT_CONTEXT = COMPONENT_CONTEXT
ARTIFACT_CONTEXTS = (COMPONENT_CONTEXT, ENV_CONTEXT)


def _freeze_patterns(patterns: Any) -> Tuple[PatternGroup, ...]:
    if isinstance(patterns, str):
        return (patterns,)
    if not isinstance(patterns, (list, tuple)):
        raise ValueError(
            f"Glob patterns must be strings or sequences of strings, got {type(patterns).__name__}."
        )
    return tuple(p if isinstance(p, str) else _freeze_patterns(p) for p in patterns)


@dataclass(frozen=True)
class ArtifactDefinition:
    """Declares the files a task produces and how they are stored.

    ``glob_patterns`` may group patterns in nested sequences; they are
    flattened, in order, when matched.  ``root_dir`` narrows the search to a
    sub-directory of the context root.  ``context`` selects that root:
    ``"component"`` (the component's capsule, the default) or ``"env"``
    (the capsules root shared by the whole build).
    """

    glob_patterns: Tuple[PatternGroup, ...]
    name: Optional[str] = None
    description: str = ""
    root_dir: Optional[str] = None
    context: Optional[str] = None
    storage_resolver: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "glob_patterns", _freeze_patterns(self.glob_patterns))
        patterns = flatten_patterns(self.glob_patterns)
        if not patterns:
            raise ValueError("Artifact definition needs at least one glob pattern.")
        for pattern in patterns:
            validate_pattern(pattern)

        if self.context is not None and self.context not in ARTIFACT_CONTEXTS:
            raise ValueError(
                f"Unknown artifact context {self.context!r}. "
                f"Expected one of: {', '.join(ARTIFACT_CONTEXTS)}"
            )

        if self.root_dir is not None:
            root = PurePosixPath(str(self.root_dir).replace("\\", "/"))
            if root.is_absolute() or Path(self.root_dir).is_absolute():
                raise ValueError(f"root_dir {self.root_dir!r} must be a relative path.")
            if ".." in root.parts:
                raise ValueError(f"root_dir {self.root_dir!r} must not reach outside the context root.")

    @property
    def artifact_context(self) -> str:
        """The effective context, ``"component"`` when none was given."""
        return self.context or DEFAULT_CONTEXT

    @property
    def patterns(self) -> List[str]:
        return flatten_patterns(self.glob_patterns)


@dataclass(frozen=True)
class ArtifactFiles:
    """Ordered, relative posix paths of the files that make up an artifact."""

    paths: Tuple[str, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "paths", tuple(self.paths))

    def __iter__(self) -> Iterator[str]:
        return iter(self.paths)

    def __len__(self) -> int:
        return len(self.paths)

    def __contains__(self, path: object) -> bool:
        return path in self.paths

    def absolute(self, root: Path) -> List[Path]:
        return [Path(root) / p for p in self.paths]


@dataclass(frozen=True, eq=False)
class Artifact:
    """A definition bound to the files it matched.

    ``root_dir`` is the capsule (or capsules root, for ``"env"`` artifacts)
    the files are relative to; a definition's own ``root_dir`` only narrows
    the search and is not part of it.  Artifacts compare by identity: an
    ``"env"`` artifact is one object shared by every component of the build.
    """

    definition: ArtifactDefinition
    storage_resolver: StorageResolver
    files: ArtifactFiles
    root_dir: Path
    task: Task
    task_aspect_id: str

    @property
    def name(self) -> str:
        return self.definition.name or self.task.name

    @property
    def description(self) -> str:
        return self.definition.description

    @property
    def generated_by(self) -> str:
        return self.task_aspect_id

    @property
    def context(self) -> str:
        return self.definition.artifact_context

    def absolute_paths(self) -> List[Path]:
        return self.files.absolute(self.root_dir)

    def to_object(self) -> Dict[str, Any]:
        """Return a JSON-serialisable description of the artifact."""
        return {
            "name": self.name,
            "description": self.description,
            "generated_by": self.generated_by,
            "task": self.task.name,
            "context": self.context,
            "storage_resolver": self.storage_resolver.name,
            "root_dir": str(self.root_dir),
            "files": list(self.files),
        }


class ArtifactList(Sequence):
    """Immutable, ordered artifacts of one component."""

    def __init__(self, artifacts: Optional[List[Artifact]] = None) -> None:
        self._artifacts: Tuple[Artifact, ...] = tuple(artifacts or ())

    def __getitem__(self, index):
        if isinstance(index, slice):
            return ArtifactList(list(self._artifacts[index]))
        return self._artifacts[index]

    def __len__(self) -> int:
        return len(self._artifacts)

    def __repr__(self) -> str:
        return f"ArtifactList({[a.name for a in self._artifacts]!r})"

    def filter(self, predicate: Callable[[Artifact], bool]) -> "ArtifactList":
        return ArtifactList([a for a in self._artifacts if predicate(a)])

    def by_task(self, task_name: str) -> "ArtifactList":
        return self.filter(lambda a: a.task.name == task_name)

    def by_aspect(self, aspect_id: str) -> "ArtifactList":
        return self.filter(lambda a: a.task_aspect_id == aspect_id)

    def by_name(self, name: str) -> "ArtifactList":
        return self.filter(lambda a: a.name == name)

    def group_by_resolver(self) -> Dict[str, "ArtifactList"]:
        """Group artifacts by storage resolver name, in first-seen order."""
        groups: Dict[str, List[Artifact]] = {}
        for artifact in self._artifacts:
            groups.setdefault(artifact.storage_resolver.name, []).append(artifact)
        return {name: ArtifactList(items) for name, items in groups.items()}

    def store(self, component: Component) -> Dict[str, Any]:
        """Hand each resolver group to its resolver; returns results by resolver name."""
        results: Dict[str, Any] = {}
        for name, group in self.group_by_resolver().items():
            results[name] = group[0].storage_resolver.store(component, group)
        return results

    def to_object(self) -> List[Dict[str, Any]]:
        return [a.to_object() for a in self._artifacts]


class ArtifactMap(Mapping):
    """Read-only mapping of component id -> :class:`ArtifactList`.

    Holds exactly one entry per component of the build context, in context
    order, including components without artifacts.  Keys may be given as a
    component id or as a :class:`Component`.
    """

    def __init__(self, entries: Optional[Dict[str, Tuple[Component, ArtifactList]]] = None) -> None:
        self._entries: Dict[str, Tuple[Component, ArtifactList]] = dict(entries or {})

    @classmethod
    def from_components(
        cls,
        components: List[Component],
        artifacts_for: Callable[[Component], List[Artifact]],
    ) -> "ArtifactMap":
        return cls({c.id: (c, ArtifactList(artifacts_for(c))) for c in components})

    @staticmethod
    def _key(key: Union[str, Component]) -> str:
        return key.id if isinstance(key, Component) else key

    def __getitem__(self, key: Union[str, Component]) -> ArtifactList:
        return self._entries[self._key(key)][1]

    def __contains__(self, key: object) -> bool:
        if isinstance(key, (str, Component)):
            return self._key(key) in self._entries
        return False

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def components(self) -> List[Component]:
        return [component for component, _ in self._entries.values()]

    def items_with_components(self) -> Iterator[Tuple[Component, ArtifactList]]:
        return iter(self._entries.values())

    def to_object(self) -> Dict[str, List[Dict[str, Any]]]:
        return {cid: artifacts.to_object() for cid, (_, artifacts) in self._entries.items()}
