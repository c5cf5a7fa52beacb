from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional


@dataclass(frozen=True)
class ProjectDefinition:
    """Read-only view of the target project, produced by an external parser.

    Recommendations share the same instance; it is never copied or mutated.
    """

    project_path: str
    target_framework: Optional[str] = None
    assembly_name: Optional[str] = None
    properties: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def __deepcopy__(self, memo):
        return self
