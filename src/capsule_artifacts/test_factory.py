"""Unit tests for the artifact factory and the types it produces.

Tests focus on:
- component vs. env scoped resolution
- CapsuleNotFound propagation
- storage resolver lookup and fallback
- ArtifactMap shape (one entry per component, context order)
- ArtifactList helpers and storage dispatch
"""
import os
import sys
from pathlib import Path

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest

from capsule_artifacts.artifacts import ArtifactDefinition, ArtifactList
from capsule_artifacts.build_context import BuildContext, Capsule, CapsuleGraph, Component, Task
from capsule_artifacts.exceptions import CapsuleNotFound
from capsule_artifacts.factory import ArtifactFactory
from capsule_artifacts.storage import DefaultResolver, StorageResolver, StorageResolverRegistry

ASPECT_ID = "teambit.compilation/compiler"


# ── helpers ─────────────────────────────────────────────────────────────────

def _touch(root: Path, *rel_paths: str) -> None:
    for rel in rel_paths:
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("x", encoding="utf-8")


def _context(tmp_path: Path, with_capsules=("X", "Y"), components=("X", "Y")) -> BuildContext:
    shared = tmp_path / "shared"
    shared.mkdir(exist_ok=True)
    capsules = {}
    for cid in with_capsules:
        capsule_dir = tmp_path / cid
        capsule_dir.mkdir(exist_ok=True)
        capsules[cid] = Capsule(capsule_dir)
    graph = CapsuleGraph(capsules_root_dir=shared, capsules=capsules)
    return BuildContext(components=[Component(c) for c in components], capsule_graph=graph)


class _RecordingResolver(StorageResolver):
    """A test resolver that records every store() call."""

    def __init__(self, name: str = "custom"):
        self._name = name
        self.calls = []

    @property
    def name(self) -> str:
        return self._name

    def store(self, component, artifacts):
        self.calls.append((component.id, [a.name for a in artifacts]))
        return len(artifacts)


TASK = Task(name="compile")


# ── ArtifactDefinition ───────────────────────────────────────────────────────

def test_definition_defaults_to_component_context():
    definition = ArtifactDefinition(glob_patterns=["dist/**"])
    assert definition.context is None
    assert definition.artifact_context == "component"


def test_definition_freezes_nested_patterns():
    definition = ArtifactDefinition(glob_patterns=[["a/*.js"], "b/*.ts"])
    assert definition.glob_patterns == (("a/*.js",), "b/*.ts")
    assert definition.patterns == ["a/*.js", "b/*.ts"]


@pytest.mark.parametrize(
    "kwargs",
    [
        {"glob_patterns": []},
        {"glob_patterns": [[]]},
        {"glob_patterns": ["/abs/*"]},
        {"glob_patterns": [{"dist/**": None}]},
        {"glob_patterns": {"dist/**": None}},
        {"glob_patterns": ["dist/**", [{"types/**"}]]},
        {"glob_patterns": ["dist/**"], "context": "workspace"},
        {"glob_patterns": ["dist/**"], "root_dir": "/abs"},
        {"glob_patterns": ["dist/**"], "root_dir": "../up"},
    ],
)
def test_invalid_definitions_raise(kwargs):
    with pytest.raises(ValueError):
        ArtifactDefinition(**kwargs)


# ── component scope ──────────────────────────────────────────────────────────

def test_component_scope_scenario(tmp_path):
    ctx = _context(tmp_path)
    _touch(tmp_path / "X", "dist/a.js")
    (tmp_path / "Y" / "dist").mkdir()
    definition = ArtifactDefinition(glob_patterns=["dist/**"], context="component")

    result = ArtifactFactory(StorageResolverRegistry()).generate(ctx, [definition], TASK, ASPECT_ID)

    assert list(result) == ["X", "Y"]
    assert len(result["X"]) == 1
    assert list(result["X"][0].files) == ["dist/a.js"]
    assert result["X"][0].root_dir == tmp_path / "X"
    assert list(result["Y"]) == []


def test_create_from_component_returns_none_without_matches(tmp_path):
    ctx = _context(tmp_path)
    definition = ArtifactDefinition(glob_patterns=["dist/**"])
    factory = ArtifactFactory(StorageResolverRegistry())
    assert factory.create_from_component(ctx, Component("X"), definition, TASK, ASPECT_ID) is None


def test_create_from_component_binds_task_and_aspect(tmp_path):
    ctx = _context(tmp_path)
    _touch(tmp_path / "X", "dist/a.js")
    definition = ArtifactDefinition(glob_patterns=["dist/*.js"], name="dist")
    artifact = ArtifactFactory(StorageResolverRegistry()).create_from_component(
        ctx, Component("X"), definition, TASK, ASPECT_ID
    )
    assert artifact is not None
    assert artifact.definition is definition
    assert artifact.task is TASK
    assert artifact.task_aspect_id == ASPECT_ID
    assert artifact.generated_by == ASPECT_ID
    assert artifact.name == "dist"
    assert artifact.absolute_paths() == [tmp_path / "X" / "dist" / "a.js"]


def test_root_dir_narrows_search_but_not_recorded_root(tmp_path):
    ctx = _context(tmp_path)
    _touch(tmp_path / "X", "dist/a.js", "b.js")
    definition = ArtifactDefinition(glob_patterns=["*.js"], root_dir="dist")
    artifact = ArtifactFactory(StorageResolverRegistry()).create_from_component(
        ctx, Component("X"), definition, TASK, ASPECT_ID
    )
    assert list(artifact.files) == ["a.js"]
    assert artifact.root_dir == tmp_path / "X"


def test_missing_capsule_raises_from_create(tmp_path):
    ctx = _context(tmp_path, with_capsules=("X",))
    definition = ArtifactDefinition(glob_patterns=["dist/**"])
    factory = ArtifactFactory(StorageResolverRegistry())
    with pytest.raises(CapsuleNotFound) as exc_info:
        factory.create_from_component(ctx, Component("Y"), definition, TASK, ASPECT_ID)
    assert exc_info.value.component_id == "Y"
    assert "'Y'" in str(exc_info.value)


def test_missing_capsule_aborts_generate(tmp_path):
    ctx = _context(tmp_path, with_capsules=("X",))
    _touch(tmp_path / "X", "dist/a.js")
    definition = ArtifactDefinition(glob_patterns=["dist/**"])
    with pytest.raises(CapsuleNotFound) as exc_info:
        ArtifactFactory(StorageResolverRegistry()).generate(ctx, [definition], TASK, ASPECT_ID)
    assert exc_info.value.component_id == "Y"


# ── env scope ────────────────────────────────────────────────────────────────

def test_env_scope_shares_one_instance(tmp_path):
    ctx = _context(tmp_path)
    _touch(tmp_path / "shared", "report.json")
    definition = ArtifactDefinition(glob_patterns=["report.json"], context="env")

    result = ArtifactFactory(StorageResolverRegistry()).generate(ctx, [definition], TASK, ASPECT_ID)

    assert len(result["X"]) == 1
    assert len(result["Y"]) == 1
    assert result["X"][0] is result["Y"][0]
    assert list(result["X"][0].files) == ["report.json"]
    assert result["X"][0].root_dir == tmp_path / "shared"


def test_env_scope_without_matches_contributes_nothing(tmp_path):
    ctx = _context(tmp_path)
    definition = ArtifactDefinition(glob_patterns=["report.json"], context="env")
    result = ArtifactFactory(StorageResolverRegistry()).generate(ctx, [definition], TASK, ASPECT_ID)
    assert [len(v) for v in result.values()] == [0, 0]


def test_env_scope_does_not_need_capsules(tmp_path):
    ctx = _context(tmp_path, with_capsules=())
    _touch(tmp_path / "shared", "coverage/summary.json")
    definition = ArtifactDefinition(glob_patterns=["*.json"], root_dir="coverage", context="env")
    result = ArtifactFactory(StorageResolverRegistry()).generate(ctx, [definition], TASK, ASPECT_ID)
    assert list(result["X"][0].files) == ["summary.json"]
    assert result["X"][0] is result["Y"][0]


# ── ArtifactMap shape ────────────────────────────────────────────────────────

def test_map_has_entry_per_component_in_context_order(tmp_path):
    ctx = _context(tmp_path, with_capsules=("c", "a", "b"), components=("c", "a", "b"))
    _touch(tmp_path / "a", "dist/a.js")
    definition = ArtifactDefinition(glob_patterns=["dist/**"])
    result = ArtifactFactory(StorageResolverRegistry()).generate(ctx, [definition], TASK, ASPECT_ID)
    assert list(result) == ["c", "a", "b"]
    assert [c.id for c in result.components()] == ["c", "a", "b"]
    assert result[Component("a")] is result["a"]
    assert Component("b") in result
    assert "zzz" not in result


def test_no_definitions_gives_empty_lists(tmp_path):
    ctx = _context(tmp_path)
    result = ArtifactFactory(StorageResolverRegistry()).generate(ctx, [], TASK, ASPECT_ID)
    assert len(result) == 2
    assert all(len(artifacts) == 0 for artifacts in result.values())


def test_artifacts_follow_definition_order(tmp_path):
    ctx = _context(tmp_path)
    _touch(tmp_path / "X", "dist/a.js", "types/a.d.ts")
    _touch(tmp_path / "shared", "report.json")
    definitions = [
        ArtifactDefinition(glob_patterns=["types/**"], name="types"),
        ArtifactDefinition(glob_patterns=["report.json"], name="report", context="env"),
        ArtifactDefinition(glob_patterns=["dist/**"], name="dist"),
    ]
    result = ArtifactFactory(StorageResolverRegistry()).generate(ctx, definitions, TASK, ASPECT_ID)
    assert [a.name for a in result["X"]] == ["types", "report", "dist"]
    assert [a.name for a in result["Y"]] == ["report"]


def test_map_to_object(tmp_path):
    ctx = _context(tmp_path)
    _touch(tmp_path / "X", "dist/a.js")
    definition = ArtifactDefinition(glob_patterns=["dist/**"], name="dist", description="compiled")
    result = ArtifactFactory(StorageResolverRegistry()).generate(ctx, [definition], TASK, ASPECT_ID)
    obj = result.to_object()
    assert obj["Y"] == []
    assert obj["X"][0]["name"] == "dist"
    assert obj["X"][0]["description"] == "compiled"
    assert obj["X"][0]["files"] == ["dist/a.js"]
    assert obj["X"][0]["storage_resolver"] == "default"
    assert obj["X"][0]["generated_by"] == ASPECT_ID


# ── storage resolvers ────────────────────────────────────────────────────────

def test_registered_resolver_is_used(tmp_path):
    ctx = _context(tmp_path)
    _touch(tmp_path / "X", "dist/a.js")
    custom = _RecordingResolver("custom")
    registry = StorageResolverRegistry()
    registry.register(custom)
    definition = ArtifactDefinition(glob_patterns=["dist/**"], storage_resolver="custom")

    result = ArtifactFactory(registry).generate(ctx, [definition], TASK, ASPECT_ID)
    assert result["X"][0].storage_resolver is custom


def test_unknown_resolver_falls_back_to_default(tmp_path):
    ctx = _context(tmp_path)
    _touch(tmp_path / "X", "dist/a.js")
    registry = StorageResolverRegistry()
    registry.register(_RecordingResolver("custom"))
    definition = ArtifactDefinition(glob_patterns=["dist/**"], storage_resolver="s3")

    result = ArtifactFactory(registry).generate(ctx, [definition], TASK, ASPECT_ID)
    assert result["X"][0].storage_resolver is registry.default
    assert isinstance(registry.default, DefaultResolver)


def test_registry_lookup_and_fallback():
    registry = StorageResolverRegistry()
    custom = _RecordingResolver("custom")
    registry.register(custom)
    assert registry.resolver_for("custom") is custom
    assert registry.resolver_for("missing") is registry.default
    assert registry.resolver_for(None) is registry.default
    assert registry.resolver_for() is registry.resolver_for("other")
    assert registry.names() == ["custom"]
    assert registry.values() == [custom]


def test_registry_rejects_duplicates_and_frozen_registration():
    registry = StorageResolverRegistry()
    registry.register(_RecordingResolver("custom"))
    with pytest.raises(ValueError, match="already registered"):
        registry.register(_RecordingResolver("custom"))
    registry.freeze()
    assert registry.frozen
    with pytest.raises(RuntimeError, match="frozen"):
        registry.register(_RecordingResolver("late"))


def test_registry_loads_entry_points(monkeypatch):
    class _EntryPoint:
        value = "tests:_RecordingResolver"

        def load(self):
            return lambda: _RecordingResolver("bucket")

    from capsule_artifacts.storage import registry as registry_module

    monkeypatch.setattr(registry_module, "entry_points", lambda group: [_EntryPoint()])
    registry = StorageResolverRegistry()
    assert registry.load_entry_points() == ["bucket"]
    assert registry.resolver_for("bucket").name == "bucket"


# ── ArtifactList ─────────────────────────────────────────────────────────────

def test_artifact_list_store_dispatches_per_resolver(tmp_path):
    ctx = _context(tmp_path)
    _touch(tmp_path / "X", "dist/a.js", "docs/readme.md")
    custom = _RecordingResolver("custom")
    registry = StorageResolverRegistry()
    registry.register(custom)
    definitions = [
        ArtifactDefinition(glob_patterns=["dist/**"], name="dist"),
        ArtifactDefinition(glob_patterns=["docs/**"], name="docs", storage_resolver="custom"),
    ]
    artifacts = ArtifactFactory(registry).generate(ctx, definitions, TASK, ASPECT_ID)["X"]

    groups = artifacts.group_by_resolver()
    assert list(groups) == ["default", "custom"]

    results = artifacts.store(Component("X"))
    assert results["default"] == [tmp_path / "X" / "dist" / "a.js"]
    assert results["custom"] == 1
    assert custom.calls == [("X", ["docs"])]


def test_artifact_list_filters(tmp_path):
    ctx = _context(tmp_path)
    _touch(tmp_path / "X", "dist/a.js")
    definition = ArtifactDefinition(glob_patterns=["dist/**"], name="dist")
    factory = ArtifactFactory(StorageResolverRegistry())
    compiled = factory.generate(ctx, [definition], TASK, ASPECT_ID)["X"]
    tested = factory.generate(ctx, [definition], Task("test"), "teambit.defender/tester")["X"]
    combined = ArtifactList(list(compiled) + list(tested))

    assert len(combined.by_task("compile")) == 1
    assert len(combined.by_aspect("teambit.defender/tester")) == 1
    assert len(combined.by_name("dist")) == 2
    assert isinstance(combined[:1], ArtifactList)
    assert len(ArtifactList()) == 0


def test_duplicate_component_ids_rejected(tmp_path):
    graph = CapsuleGraph(capsules_root_dir=tmp_path)
    with pytest.raises(ValueError, match="Duplicate component id"):
        BuildContext(components=[Component("X"), Component("X")], capsule_graph=graph)
