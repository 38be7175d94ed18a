import os
import stat
import sys
from dataclasses import dataclass, field
from pathlib import Path
from types import SimpleNamespace
from typing import List, Optional

import pytest

from execbox.core.models import ExecutionResult, ExecutionStatus
from execbox.core.settings import Settings
from execbox.executor.base import LaunchSpec

# Stand-in for nsjail: drops its flags, maps --bindmount destinations back to
# host paths and execs the command directly.
FAKE_NSJAIL = """#!{python}
import os, sys
args = sys.argv[1:]
mounts = []
i = 0
while i < len(args) and args[i] != "--":
    if args[i] == "--bindmount":
        src, dst, _mode = args[i + 1].rsplit(":", 2)
        mounts.append((dst, src))
        i += 2
        continue
    i += 1
cmd = args[i + 1:]

def remap(a):
    for dst, src in mounts:
        if a == dst:
            return src
        if a.startswith(dst + "/"):
            return src + a[len(dst):]
    return a

cmd = [remap(a) for a in cmd]
os.execv(cmd[0], cmd)
"""

# g++ stand-in: creates the -o target
FAKE_CXX_OK = """#!/bin/sh
out=""
while [ $# -gt 0 ]; do
  if [ "$1" = "-o" ]; then out="$2"; shift; fi
  shift
done
touch "$out"
"""

FAKE_CXX_FAIL = """#!/bin/sh
echo "main.cpp:3:5: error: expected ';' before 'return'" >&2
exit 1
"""

# javac stand-in: -d <dir> -encoding UTF-8 <src>
FAKE_JAVAC_OK = """#!/bin/sh
touch "$2/Main.class"
"""

FAKE_JAVAC_NO_MAIN = """#!/bin/sh
exit 0
"""


def write_script(path: Path, body: str) -> Path:
    path.write_text(body, encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def fake_nsjail(tmp_path) -> Path:
    return write_script(tmp_path / "fake-nsjail", FAKE_NSJAIL.format(python=sys.executable))


@pytest.fixture
def temp_root(tmp_path) -> Path:
    return tmp_path / "workspaces"


@pytest.fixture
def settings(tmp_path, fake_nsjail, temp_root) -> Settings:
    return Settings(
        nsjail_path=fake_nsjail,
        profiles_dir=tmp_path / "profiles",
        temp_root=temp_root,
        python_bin=sys.executable,
        cgroup_cpu_paths=[tmp_path / "no-cpu-counter"],
        cgroup_memory_paths=[tmp_path / "no-memory-counter"],
        log_json=False,
    )


@pytest.fixture
def scripts(tmp_path):
    d = tmp_path / "bin"
    d.mkdir()
    return SimpleNamespace(
        cxx_ok=write_script(d / "gxx-ok", FAKE_CXX_OK),
        cxx_fail=write_script(d / "gxx-fail", FAKE_CXX_FAIL),
        javac_ok=write_script(d / "javac-ok", FAKE_JAVAC_OK),
        javac_no_main=write_script(d / "javac-no-main", FAKE_JAVAC_NO_MAIN),
    )


@dataclass
class SpyLauncher:
    """Records every launch; optionally raises instead of returning."""

    raises: Optional[Exception] = None
    # returned in order; once exhausted every launch prints "spy\n"
    results: List[ExecutionResult] = field(default_factory=list)
    calls: List[LaunchSpec] = field(default_factory=list)
    seen_files: List[dict] = field(default_factory=list)

    def launch(self, spec, cancel_event=None):
        self.calls.append(spec)
        snapshot = {}
        for m in spec.mounts:
            src = Path(m.source)
            if src.is_dir():
                snapshot.update({p.name: p.read_bytes() for p in src.iterdir() if p.is_file()})
        self.seen_files.append(snapshot)
        if self.raises is not None:
            raise self.raises
        if self.results:
            return self.results.pop(0)
        return ExecutionResult(
            status=ExecutionStatus.OK,
            stdout="spy\n",
            stderr="",
            exit_code=0,
            cpu_time_ms=1,
            wall_time_ms=1,
            memory_kb=1,
        )


@pytest.fixture
def spy():
    return SpyLauncher()


@pytest.fixture
def leftovers(temp_root):
    """Entries still present under the workspace root."""
    return lambda: sorted(os.listdir(temp_root)) if temp_root.exists() else []
