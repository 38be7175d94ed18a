from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from threading import Event
from typing import List, Optional, Protocol, Sequence

from ..core.models import BindMount, ExecutionResult, ResourceLimits


@dataclass(frozen=True)
class LaunchSpec:
    profile: Path
    command: List[str]
    stdin: bytes
    limits: ResourceLimits
    mounts: Sequence[BindMount] = field(default_factory=tuple)


class Launcher(Protocol):
    def launch(self, spec: LaunchSpec, cancel_event: Optional[Event] = None) -> ExecutionResult: ...
