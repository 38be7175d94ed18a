from __future__ import annotations
from pathlib import Path
from typing import List

from ..core.models import BindMount, Language, ResourceLimits
from ..core.settings import Settings


class Runner:
    """
    One language pipeline: where the source goes, the optional build step,
    and what runs inside the sandbox.
    """

    language: Language
    source_name: str
    # sandbox-side mount point for the runnable artifacts
    mount_point: str = "/work"

    def __init__(self, settings: Settings):
        self.settings = settings

    @property
    def profile(self) -> Path:
        return self.settings.profile_path(self.language.value)

    def source_path(self, workdir: Path) -> Path:
        return workdir / self.source_name

    def build(self, workdir: Path, limits: ResourceLimits) -> None:
        """Interpreted languages have nothing to build."""

    def artifact_dir(self, workdir: Path) -> Path:
        return workdir

    def mounts(self, workdir: Path) -> List[BindMount]:
        return [BindMount(str(self.artifact_dir(workdir)), self.mount_point, writable=False)]

    def command(self, workdir: Path, limits: ResourceLimits) -> List[str]:
        raise NotImplementedError
