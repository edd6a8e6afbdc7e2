"""Errors raised while resolving task artifacts."""
from __future__ import annotations


class ArtifactError(Exception):
    """Base class for artifact resolution failures."""


class CapsuleNotFound(ArtifactError):
    """A component-scoped definition was resolved for a component that has no
    capsule in the capsule graph.

    The failure is fatal for the whole :meth:`ArtifactFactory.generate` call.
    """

    def __init__(self, component_id: str) -> None:
        self.component_id = component_id
        super().__init__(f"Capsule for component {component_id!r} was not found")
