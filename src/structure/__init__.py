"""Structural model of inspected projects.

The data types are imported eagerly; the builder is resolved lazily because
it depends on ``parse``, which itself depends on these types.
"""

from structure.project import (
    MigrationRecord,
    ModuleDescriptor,
    ProjectModel,
    SchemaEntity,
    SourceFacts,
)


def __getattr__(name: str) -> object:
    if name == "build_project_model":
        from structure.builder import build_project_model

        return build_project_model

    msg = f"module 'structure' has no attribute {name!r}"
    raise AttributeError(msg)


__all__ = [
    "MigrationRecord",
    "ModuleDescriptor",
    "ProjectModel",
    "SchemaEntity",
    "SourceFacts",
    "build_project_model",
]
