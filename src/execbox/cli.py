from __future__ import annotations
import argparse
import json
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from .core.errors import CompileError, SandboxError
from .core.settings import load_settings
from .core.utils import infer_lang_from_entry
from .logging import setup_logging
from .services.orchestrator import CodeRunner

LIMIT_OPTIONS = {
    "memory_mb": "--memory-mb",
    "cpu_time_seconds": "--cpu-seconds",
    "wall_time_seconds": "--wall-seconds",
    "max_output_bytes": "--max-output-bytes",
    "max_processes": "--max-processes",
    "max_files": "--max-files",
}


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="execbox", description="Run untrusted code inside the sandbox")
    sub = ap.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="run a source file and print the result as JSON")
    run.add_argument("file", type=Path)
    run.add_argument("--language", "-l", help="python | cpp | java (default: from file extension)")
    run.add_argument("--stdin-file", type=Path, help="file fed to the program's stdin")
    run.add_argument("--config", type=Path, help="YAML config (default: $SANDBOX_CONF or conf/sandbox.yaml)")
    for dest, flag in LIMIT_OPTIONS.items():
        run.add_argument(flag, dest=dest, type=int)
    return ap


def _cmd_run(args: argparse.Namespace) -> int:
    s = load_settings(args.config)
    setup_logging(s.log_level, s.log_json)
    runner = CodeRunner(s)

    language = args.language or infer_lang_from_entry(args.file.name)
    if language is None:
        print(f"cannot infer language from {args.file.name}; pass --language", file=sys.stderr)
        return 2

    overrides = {k: getattr(args, k) for k in LIMIT_OPTIONS if getattr(args, k) is not None}
    try:
        limits = replace(runner.default_limits(language), **overrides) if overrides else None
        stdin = args.stdin_file.read_bytes() if args.stdin_file else b""
        result = runner.run(language, args.file.read_text(encoding="utf-8"), stdin, limits)
    except CompileError as e:
        print(json.dumps({"error": "COMPILE_ERROR", "message": e.message, "diagnostics": e.diagnostics}, ensure_ascii=False))
        return 2
    except (SandboxError, ValueError, OSError) as e:
        print(json.dumps({"error": type(e).__name__, "message": str(e)}, ensure_ascii=False))
        return 2

    print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
    return 0 if result.ok else 1


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.command == "run":
        return _cmd_run(args)
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
