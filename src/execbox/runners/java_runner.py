from pathlib import Path

from ..core.models import Language, ResourceLimits
from .base import Runner
from .compiler import compile_java

# left for JVM metaspace, code cache and thread stacks
JVM_OVERHEAD_MB = 56
MIN_HEAP_MB = 32


class JavaRunner(Runner):
    language = Language.JAVA
    source_name = "Main.java"
    mount_point = "/app"
    entry_class = "Main"

    def artifact_dir(self, workdir: Path) -> Path:
        return workdir / "classes"

    def build(self, workdir: Path, limits: ResourceLimits) -> None:
        compile_java(
            self.source_path(workdir),
            self.artifact_dir(workdir),
            javac=self.settings.javac_bin,
            entry_class=self.entry_class,
            timeout_s=self.settings.compile_timeout_seconds,
        )

    @staticmethod
    def heap_mb(limits: ResourceLimits) -> int:
        return max(MIN_HEAP_MB, limits.memory_mb - JVM_OVERHEAD_MB)

    def command(self, workdir: Path, limits: ResourceLimits):
        return [
            self.settings.java_bin,
            f"-Xmx{self.heap_mb(limits)}m",
            "-Xss1m",
            "-XX:+UseSerialGC",
            "-cp",
            self.mount_point,
            self.entry_class,
        ]
