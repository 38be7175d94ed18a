from __future__ import annotations
from pathlib import Path
from typing import Iterable, List, Optional

import structlog

log = structlog.get_logger(__name__)

CGROOT = Path("/sys/fs/cgroup")

DEFAULT_CPU_PATHS = [
    CGROOT / "cpu/sandbox/cpuacct.usage",  # v1, nanoseconds
    CGROOT / "sandbox/cpu.stat",           # v2, usage_usec
]
DEFAULT_MEMORY_PATHS = [
    CGROOT / "memory/sandbox/memory.max_usage_in_bytes",  # v1
    CGROOT / "sandbox/memory.peak",                       # v2
]


def _read_cpu_ns(p: Path) -> int:
    txt = p.read_text().strip()
    if p.name == "cpu.stat":
        for line in txt.splitlines():
            key, _, val = line.partition(" ")
            if key == "usage_usec":
                return int(val) * 1000
        raise ValueError(f"usage_usec missing in {p}")
    return int(txt)


def _read_bytes(p: Path) -> int:
    return int(p.read_text().strip())


class ResourceAccountant:
    """
    Best-effort reads of the sandbox cgroup counters.

    Telemetry only: any missing file, parse error or permission problem
    yields the caller's fallback value.
    """

    def __init__(self, cpu_paths: Optional[Iterable[Path]] = None, memory_paths: Optional[Iterable[Path]] = None):
        self.cpu_paths: List[Path] = [Path(p) for p in (cpu_paths if cpu_paths is not None else DEFAULT_CPU_PATHS)]
        self.memory_paths: List[Path] = [Path(p) for p in (memory_paths if memory_paths is not None else DEFAULT_MEMORY_PATHS)]

    def cpu_time_ms(self, fallback: int) -> int:
        for p in self.cpu_paths:
            try:
                return _read_cpu_ns(p) // 1_000_000
            except (OSError, ValueError) as e:
                log.debug("accounting.fallback", counter="cpu", path=str(p), error=str(e))
        return fallback

    def memory_kb(self, fallback: int) -> int:
        for p in self.memory_paths:
            try:
                return _read_bytes(p) // 1024
            except (OSError, ValueError) as e:
                log.debug("accounting.fallback", counter="memory", path=str(p), error=str(e))
        return fallback
