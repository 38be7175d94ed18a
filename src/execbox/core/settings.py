from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine configuration: SBX_* env vars, then conf/sandbox.yaml on top."""

    # ---- sandbox tool ----
    nsjail_path: Path = Path("/usr/bin/nsjail")
    profiles_dir: Path = Path("/sandbox/profiles")
    temp_root: Path = Path("/tmp/sandbox")
    pass_limit_flags: bool = True
    kill_on_output_limit: bool = True

    # ---- toolchains ----
    python_bin: str = "/usr/bin/python3"
    cxx_bin: str = "g++"
    cxx_std: str = "c++17"
    cxx_opt: str = "-O2"
    cxx_static: bool = True
    javac_bin: str = "javac"
    java_bin: str = "/usr/bin/java"
    compile_timeout_seconds: int = 30

    # ---- pre-flight ----
    max_code_bytes: int = 1024 * 1024

    # ---- exit code conventions ----
    timeout_exit_code: int = 124
    oom_exit_code: int = 137
    failure_exit_code: int = 1

    # ---- accounting (first readable file wins) ----
    cgroup_cpu_paths: List[Path] = [
        Path("/sys/fs/cgroup/cpu/sandbox/cpuacct.usage"),
        Path("/sys/fs/cgroup/sandbox/cpu.stat"),
    ]
    cgroup_memory_paths: List[Path] = [
        Path("/sys/fs/cgroup/memory/sandbox/memory.max_usage_in_bytes"),
        Path("/sys/fs/cgroup/sandbox/memory.peak"),
    ]

    # ---- logging ----
    log_level: str = "INFO"
    log_json: bool = True

    # per-language partial overrides of the default limit table
    limits: Dict[str, Dict[str, Any]] = {}

    model_config = SettingsConfigDict(env_prefix="SBX_", extra="ignore")

    def profile_path(self, language: str) -> Path:
        return self.profiles_dir / f"nsjail_{language}.cfg"


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        return {}
    return data if isinstance(data, dict) else {}


def load_settings(path: Optional[Path] = None) -> Settings:
    # 0) base from SBX_* env
    s = Settings()

    # 1) YAML: explicit path, else SANDBOX_CONF, else conf/sandbox.yaml
    conf = Path(path) if path else Path(os.environ.get("SANDBOX_CONF", "conf/sandbox.yaml"))
    data = _read_yaml(conf)
    if not data:
        return s

    known = set(Settings.model_fields)
    update = {k: v for k, v in data.items() if k in known}
    # validate through the model so YAML strings become Path/int/bool
    merged = Settings.model_validate({**s.model_dump(), **update})
    return s.model_copy(update={k: getattr(merged, k) for k in update})
