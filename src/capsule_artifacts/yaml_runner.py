"""YAML-driven artifact resolution for capsule_artifacts.

Loads an ``artifacts.yaml`` config describing a finished build (capsules,
components, the task that ran and its artifact definitions), resolves the
artifacts and optionally writes a JSON report.

Usage::

    python -m capsule_artifacts resolve --config artifacts.yaml
    python -m capsule_artifacts resolve --config artifacts.yaml --report out/report.json
"""
from __future__ import annotations

import datetime
import json
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from capsule_artifacts.artifacts import ArtifactDefinition, ArtifactMap
from capsule_artifacts.build_context import BuildContext, Capsule, CapsuleGraph, Component, Task
from capsule_artifacts.factory import ArtifactFactory
from capsule_artifacts.storage.registry import StorageResolverRegistry

_DEFINITION_KEYS = {
    "name",
    "description",
    "glob_patterns",
    "root_dir",
    "context",
    "storage_resolver",
}


# ── Config dataclasses ─────────────────────────────────────────────────────

@dataclass
class ComponentConfig:
    id: str
    capsule: Optional[str] = None  # relative to capsules_root; None = no capsule


@dataclass
class TaskConfig:
    name: str
    aspect_id: str
    description: str = ""


@dataclass
class BuildConfig:
    capsules_root: str
    task: TaskConfig
    name: str = "build"
    components: List[ComponentConfig] = field(default_factory=list)
    artifacts: List[ArtifactDefinition] = field(default_factory=list)


# ── Config loading ─────────────────────────────────────────────────────────

def _parse_definition(raw: Any, index: int, config_path: Path) -> ArtifactDefinition:
    if not isinstance(raw, dict):
        raise ValueError(
            f"Artifact #{index} in {config_path} must be a mapping, got {type(raw).__name__}."
        )
    unknown = sorted(set(raw) - _DEFINITION_KEYS)
    if unknown:
        raise ValueError(
            f"Artifact #{index} in {config_path} has unknown key(s): {', '.join(unknown)}."
        )
    if "glob_patterns" not in raw:
        raise ValueError(f"Artifact #{index} in {config_path} is missing required key 'glob_patterns'.")
    try:
        return ArtifactDefinition(
            glob_patterns=raw["glob_patterns"],
            name=raw.get("name"),
            description=raw.get("description") or "",
            root_dir=raw.get("root_dir"),
            context=raw.get("context"),
            storage_resolver=raw.get("storage_resolver"),
        )
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Artifact #{index} in {config_path}: {exc}") from exc


def load_config(config_path: Path) -> BuildConfig:
    """Load and parse an artifacts YAML config file.

    Raises
    ------
    FileNotFoundError
        If *config_path* does not exist.
    ValueError
        If the YAML is structurally invalid or a definition is malformed.
    """
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, encoding="utf-8") as fh:
        try:
            raw = yaml.safe_load(fh)
        except yaml.YAMLError as exc:
            raise ValueError(f"Config {config_path} is not valid YAML: {exc}") from exc

    if not isinstance(raw, dict) or "build" not in raw:
        raise ValueError(f"Config {config_path} must have a top-level 'build' key.")

    build_raw = raw.get("build") or {}
    if not isinstance(build_raw, dict):
        raise ValueError(
            f"'build' in {config_path} must be a mapping, got {type(build_raw).__name__}."
        )

    if "capsules_root" not in build_raw:
        raise ValueError(f"'build' in {config_path} is missing required key 'capsules_root'.")

    task_raw = build_raw.get("task")
    if not isinstance(task_raw, dict) or "name" not in task_raw or "aspect_id" not in task_raw:
        raise ValueError(
            f"'build.task' in {config_path} must be a mapping with 'name' and 'aspect_id'."
        )

    components_raw = build_raw.get("components", [])
    if not isinstance(components_raw, list):
        raise ValueError(f"'build.components' in {config_path} must be a list.")

    components: List[ComponentConfig] = []
    for i, c in enumerate(components_raw):
        if isinstance(c, str):
            c = {"id": c}
        if not isinstance(c, dict) or "id" not in c:
            raise ValueError(f"Component #{i} in {config_path} must be a mapping with an 'id'.")
        components.append(ComponentConfig(id=str(c["id"]), capsule=c.get("capsule")))

    artifacts_raw = build_raw.get("artifacts", [])
    if not isinstance(artifacts_raw, list):
        raise ValueError(f"'build.artifacts' in {config_path} must be a list.")

    return BuildConfig(
        name=build_raw.get("name", "build"),
        capsules_root=str(build_raw["capsules_root"]),
        task=TaskConfig(
            name=str(task_raw["name"]),
            aspect_id=str(task_raw["aspect_id"]),
            description=task_raw.get("description", ""),
        ),
        components=components,
        artifacts=[_parse_definition(a, i, config_path) for i, a in enumerate(artifacts_raw)],
    )


# ── Context building ───────────────────────────────────────────────────────

def build_context(config: BuildConfig, base_dir: Optional[Path] = None) -> BuildContext:
    """Create a :class:`BuildContext` from *config*.

    A relative ``capsules_root`` is taken relative to *base_dir* (usually the
    directory holding the config file).
    """
    capsules_root = Path(config.capsules_root)
    if base_dir is not None and not capsules_root.is_absolute():
        capsules_root = base_dir / capsules_root

    capsules: Dict[str, Capsule] = {
        c.id: Capsule(capsules_root / c.capsule)
        for c in config.components
        if c.capsule
    }
    return BuildContext(
        components=[Component(c.id) for c in config.components],
        capsule_graph=CapsuleGraph(capsules_root_dir=capsules_root, capsules=capsules),
    )


def default_registry() -> StorageResolverRegistry:
    """Registry with every installed entry-point resolver, frozen."""
    registry = StorageResolverRegistry()
    registry.load_entry_points()
    registry.freeze()
    return registry


# ── Report helpers ─────────────────────────────────────────────────────────

def _report_to_dict(
    run_id: str,
    config: BuildConfig,
    config_path: Path,
    artifact_map: ArtifactMap,
    started_at: str,
    finished_at: str,
    elapsed: float,
) -> dict:
    return {
        "run_id": run_id,
        "build_name": config.name,
        "config_path": str(config_path),
        "task": config.task.name,
        "aspect_id": config.task.aspect_id,
        "started_at": started_at,
        "finished_at": finished_at,
        "total_elapsed_sec": round(elapsed, 3),
        "components": [
            {"id": component.id, "artifacts": artifacts.to_object()}
            for component, artifacts in artifact_map.items_with_components()
        ],
    }


def _write_report(report: dict, report_path: Path) -> Path:
    report_path.parent.mkdir(parents=True, exist_ok=True)
    with open(report_path, "w", encoding="utf-8") as fh:
        json.dump(report, fh, indent=2)
    return report_path


# ── Main entry point ───────────────────────────────────────────────────────

def run_resolve(
    config_path: Path,
    report_path: Optional[Path] = None,
    registry: Optional[StorageResolverRegistry] = None,
) -> ArtifactMap:
    """Load *config_path*, resolve its artifacts and return the artifact map."""
    config = load_config(config_path)
    ctx = build_context(config, base_dir=config_path.parent)
    factory = ArtifactFactory(registry if registry is not None else default_registry())
    task = Task(name=config.task.name, description=config.task.description)

    run_id = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
    started_at = datetime.datetime.now().isoformat()

    print(f"\n📦 Artifacts: {config.name!r}")
    print(f"   Config   : {config_path}")
    print(f"   Capsules : {ctx.capsule_graph.capsules_root_dir}")
    print(f"   Task     : {task.name} ({config.task.aspect_id})")

    t0 = time.monotonic()
    artifact_map = factory.generate(ctx, config.artifacts, task, config.task.aspect_id)
    elapsed = time.monotonic() - t0

    for component, artifacts in artifact_map.items_with_components():
        if not artifacts:
            print(f"   ·  {component.id}: no artifacts")
            continue
        print(f"   ✓  {component.id}: {len(artifacts)} artifact(s)")
        for artifact in artifacts:
            print(f"      {artifact.name} [{artifact.storage_resolver.name}] {len(artifact.files)} file(s)")

    if report_path is not None:
        report = _report_to_dict(
            run_id,
            config,
            config_path,
            artifact_map,
            started_at,
            datetime.datetime.now().isoformat(),
            elapsed,
        )
        print(f"\n📄 Report: {_write_report(report, report_path)}")

    return artifact_map
