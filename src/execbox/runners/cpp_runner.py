from pathlib import Path

from ..core.models import Language, ResourceLimits
from .base import Runner
from .compiler import compile_cpp


class CppRunner(Runner):
    language = Language.CPP
    source_name = "main.cpp"
    mount_point = "/app"
    binary_name = "app"

    def artifact_dir(self, workdir: Path) -> Path:
        return workdir / "build"

    def build(self, workdir: Path, limits: ResourceLimits) -> None:
        s = self.settings
        compile_cpp(
            self.source_path(workdir),
            self.artifact_dir(workdir) / self.binary_name,
            cxx=s.cxx_bin,
            std=s.cxx_std,
            opt=s.cxx_opt,
            static=s.cxx_static,
            timeout_s=s.compile_timeout_seconds,
        )

    def command(self, workdir: Path, limits: ResourceLimits):
        return [f"{self.mount_point}/{self.binary_name}"]
