from __future__ import annotations
from dataclasses import dataclass, asdict, field, fields
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

from .errors import UnsupportedLanguageError


class Language(str, Enum):
    PYTHON = "python"
    CPP = "cpp"
    JAVA = "java"

    @classmethod
    def parse(cls, value: "str | Language") -> "Language":
        if isinstance(value, Language):
            return value
        key = str(value or "").strip().lower()
        key = _LANGUAGE_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            raise UnsupportedLanguageError(f"Unsupported language: {value}") from None


_LANGUAGE_ALIASES = {
    "py": "python",
    "python3": "python",
    "c++": "cpp",
    "cxx": "cpp",
    "cc": "cpp",
}


class ExecutionStatus(str, Enum):
    OK = "OK"
    TIME_LIMIT = "TIME_LIMIT"
    MEMORY_LIMIT = "MEMORY_LIMIT"
    RUNTIME_ERROR = "RUNTIME_ERROR"
    OUTPUT_LIMIT = "OUTPUT_LIMIT"
    SECURITY_VIOLATION = "SECURITY_VIOLATION"
    SYSTEM_ERROR = "SYSTEM_ERROR"


# camelCase names used by callers of the engine
_LIMIT_ALIASES = {
    "memoryMB": "memory_mb",
    "cpuTimeSeconds": "cpu_time_seconds",
    "wallTimeSeconds": "wall_time_seconds",
    "maxOutputBytes": "max_output_bytes",
    "maxProcesses": "max_processes",
    "maxFiles": "max_files",
}


@dataclass(frozen=True)
class ResourceLimits:
    memory_mb: int
    cpu_time_seconds: int
    wall_time_seconds: int
    max_output_bytes: int
    max_processes: int
    max_files: int

    def __post_init__(self) -> None:
        for f in fields(self):
            v = getattr(self, f.name)
            if isinstance(v, bool) or not isinstance(v, int) or v <= 0:
                raise ValueError(f"{f.name} must be a positive integer, got {v!r}")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ResourceLimits":
        """Build limits from snake_case or camelCase keys. Every field is required."""
        norm = {_LIMIT_ALIASES.get(k, k): v for k, v in data.items()}
        names = [f.name for f in fields(cls)]
        missing = [n for n in names if n not in norm]
        if missing:
            raise ValueError(f"missing limit fields: {', '.join(missing)}")
        return cls(**{n: norm[n] for n in names})

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass(frozen=True)
class BindMount:
    source: str
    destination: str
    writable: bool = False

    def render(self) -> str:
        return f"{self.source}:{self.destination}:{'rw' if self.writable else 'ro'}"


@dataclass(frozen=True)
class ExecutionResult:
    status: ExecutionStatus
    stdout: str
    stderr: str
    exit_code: int
    cpu_time_ms: int
    wall_time_ms: int
    memory_kb: int

    @property
    def ok(self) -> bool:
        return self.status is ExecutionStatus.OK

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "stdout": self.stdout,
            "stderr": self.stderr,
            "exitCode": self.exit_code,
            "cpuTimeMs": self.cpu_time_ms,
            "wallTimeMs": self.wall_time_ms,
            "memoryKB": self.memory_kb,
        }


class Verdict(str, Enum):
    """Per-test judge outcome. Declared from best to worst."""

    AC = "AC"
    WA = "WA"
    TLE = "TLE"
    MLE = "MLE"
    RE = "RE"
    CE = "CE"

    @property
    def rank(self) -> int:
        return list(Verdict).index(self)

    def worsen(self, other: "Verdict") -> "Verdict":
        return other if other.rank > self.rank else self


@dataclass(frozen=True)
class JudgeCase:
    id: Union[int, str]
    output: str
    input: str = ""
    hidden: bool = False


@dataclass
class CaseResult:
    test_id: Union[int, str]
    verdict: Verdict
    time_ms: int
    memory_kb: int
    message: Optional[str] = None
    # withheld for hidden tests unless debugging
    input: Optional[str] = None
    expected: Optional[str] = None
    actual: Optional[str] = None
    stderr: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "testId": self.test_id,
            "verdict": self.verdict.value,
            "timeMs": self.time_ms,
            "memoryKB": self.memory_kb,
        }
        for name in ("message", "input", "expected", "actual", "stderr"):
            value = getattr(self, name)
            if value is not None:
                d[name] = value
        return d


@dataclass
class JudgeResult:
    verdict: Verdict
    time_ms: int
    memory_kb: int
    tests: List[CaseResult] = field(default_factory=list)
    compile_message: Optional[str] = None
    compile_diagnostics: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "verdict": self.verdict.value,
            "timeMs": self.time_ms,
            "memoryKB": self.memory_kb,
            "tests": [t.to_dict() for t in self.tests],
        }
        if self.compile_message is not None:
            d["compile"] = {"message": self.compile_message, "diagnostics": self.compile_diagnostics or ""}
        return d
