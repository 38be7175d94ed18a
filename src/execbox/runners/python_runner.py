from pathlib import Path

from ..core.models import Language, ResourceLimits
from .base import Runner


class PythonRunner(Runner):
    language = Language.PYTHON
    source_name = "main.py"

    def command(self, workdir: Path, limits: ResourceLimits):
        return [self.settings.python_bin, "-u", f"{self.mount_point}/{self.source_name}"]
