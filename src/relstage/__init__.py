from __future__ import annotations

from importlib import metadata

from relstage.domain.accessors import StagedParent
from relstage.domain.builder import RelationBuilder, RelationRegistry, registry_for
from relstage.domain.errors import ImproperAccess, InvalidChildAssignment, UnknownAssignmentKind

try:
    __version__ = metadata.version("relstage")
except metadata.PackageNotFoundError:
    __version__ = "0.0.0+local"

__all__ = [
    "ImproperAccess",
    "InvalidChildAssignment",
    "RelationBuilder",
    "RelationRegistry",
    "StagedParent",
    "UnknownAssignmentKind",
    "registry_for",
]
