from __future__ import annotations
import subprocess
from pathlib import Path
from typing import List, Sequence

import structlog

from ..core.errors import CompileError
from ..core.utils import decode_output

log = structlog.get_logger(__name__)

# compiler diagnostics beyond this are cut
MAX_DIAGNOSTICS = 64 * 1024


def run_compiler(argv: Sequence[str], timeout_s: int, cwd: "Path | None" = None) -> None:
    """
    Run a compiler on the host, outside the sandbox. Raises CompileError on
    launch failure, timeout or non-zero exit, carrying stderr as diagnostics.
    """
    cmd: List[str] = [str(a) for a in argv]
    try:
        proc = subprocess.run(
            cmd,
            stdin=subprocess.DEVNULL,
            capture_output=True,
            timeout=timeout_s,
            cwd=str(cwd) if cwd else None,
            check=False,
        )
    except FileNotFoundError as e:
        log.warning("build.failed", compiler=cmd[0], reason="not_found")
        raise CompileError(f"Compiler error: {e}") from e
    except OSError as e:
        log.warning("build.failed", compiler=cmd[0], reason="launch_error", error=str(e))
        raise CompileError(f"Compiler error: {e}") from e
    except subprocess.TimeoutExpired as e:
        log.warning("build.failed", compiler=cmd[0], reason="timeout", timeout_s=timeout_s)
        raise CompileError(
            f"Compilation timed out after {timeout_s}s",
            decode_output((e.stderr or b"")[:MAX_DIAGNOSTICS]),
        ) from e

    if proc.returncode != 0:
        diag = decode_output((proc.stderr or proc.stdout or b"")[:MAX_DIAGNOSTICS])
        log.info("build.failed", compiler=cmd[0], reason="exit", exit_code=proc.returncode)
        raise CompileError("Compilation failed", diag, exit_code=proc.returncode)


def compile_cpp(
    source: Path,
    output: Path,
    *,
    cxx: str = "g++",
    std: str = "c++17",
    opt: str = "-O2",
    static: bool = True,
    timeout_s: int = 30,
) -> Path:
    argv = [cxx, f"-std={std}", opt]
    if static:
        argv.append("-static")
    argv += ["-o", str(output), str(source)]
    output.parent.mkdir(parents=True, exist_ok=True)
    run_compiler(argv, timeout_s, cwd=source.parent)
    return output


def compile_java(
    source: Path,
    output_dir: Path,
    *,
    javac: str = "javac",
    entry_class: str = "Main",
    timeout_s: int = 30,
) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    run_compiler([javac, "-d", str(output_dir), "-encoding", "UTF-8", str(source)], timeout_s, cwd=source.parent)
    # javac can exit 0 without emitting the entry point (e.g. no class Main)
    artifact = output_dir / f"{entry_class}.class"
    if not artifact.is_file():
        log.info("build.failed", compiler=javac, reason="missing_artifact", artifact=artifact.name)
        raise CompileError(f"{entry_class}.class not found after compilation")
    return artifact
