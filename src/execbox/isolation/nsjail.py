from __future__ import annotations
from pathlib import Path
from typing import List, Sequence

from ..core.models import BindMount, ResourceLimits


def limit_flags(limits: ResourceLimits) -> List[str]:
    """rlimits forwarded to nsjail; the profile file still holds the isolation policy."""
    return [
        "--rlimit_as", str(limits.memory_mb),
        "--rlimit_cpu", str(limits.cpu_time_seconds),
        "--rlimit_nofile", str(limits.max_files),
        "--rlimit_nproc", str(limits.max_processes),
    ]


def build_nsjail_argv(
    nsjail_path: "Path | str",
    profile: "Path | str",
    command: Sequence[str],
    limits: ResourceLimits,
    mounts: Sequence[BindMount] = (),
    pass_limit_flags: bool = True,
) -> List[str]:
    argv = [str(nsjail_path), "--config", str(profile)]
    if pass_limit_flags:
        argv += limit_flags(limits)
    for m in mounts:
        argv += ["--bindmount", m.render()]
    argv.append("--")
    argv += [str(c) for c in command]
    return argv
