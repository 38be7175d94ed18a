from __future__ import annotations
import shutil
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import structlog

from ..core.utils import new_invocation_id

log = structlog.get_logger(__name__)


class Workspace:
    """
    Per-invocation scratch directory under a shared temp root:
      <root>/<invocation_id>/
        ├─ <source>      (code sent by the caller)
        ├─ input.txt     (stdin payload)
        └─ build/ | classes/   (compiled artifacts)
    Exclusively owned by one invocation and removed when it ends.
    """

    def __init__(self, root: Path, invocation_id: Optional[str] = None):
        self.root = root if root.is_absolute() else root.resolve()
        self.invocation_id = invocation_id or new_invocation_id()
        self.path = self.root / self.invocation_id

    def create(self) -> Path:
        self.root.mkdir(parents=True, exist_ok=True)
        # exist_ok=False: a collision must fail loudly, never share a tree
        self.path.mkdir(mode=0o755)
        return self.path

    def write_source(self, name: str, code: str) -> Path:
        p = self.path / name
        p.write_text(code, encoding="utf-8")
        return p

    def write_stdin(self, data: bytes) -> Path:
        p = self.path / "input.txt"
        p.write_bytes(data)
        return p

    def destroy(self) -> None:
        try:
            shutil.rmtree(self.path)
        except FileNotFoundError:
            pass
        except OSError as e:
            # never mask the primary result
            log.warning("workspace.cleanup_failed", path=str(self.path), error=str(e))


@contextmanager
def workspace(root: Path) -> Iterator[Workspace]:
    ws = Workspace(root)
    ws.create()
    try:
        yield ws
    finally:
        ws.destroy()
