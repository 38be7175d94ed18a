from __future__ import annotations
import os
import signal
import subprocess
import threading
import time
from pathlib import Path
from threading import Event
from typing import IO, Callable, Optional

import structlog

from ..core.errors import ExecutionCancelledError
from ..core.models import ExecutionResult, ExecutionStatus
from ..core.settings import Settings
from ..core.utils import decode_output
from ..isolation.nsjail import build_nsjail_argv
from .accounting import ResourceAccountant
from .base import LaunchSpec

log = structlog.get_logger(__name__)

CHUNK = 64 * 1024
POLL_INTERVAL = 0.05
# readers get this long to drain after the process is gone
DRAIN_TIMEOUT = 2.0


class _CappedReader(threading.Thread):
    """
    Drains one pipe. Keeps the first `cap` bytes, counts everything, and
    fires `on_overflow` once when the running total first exceeds the cap.
    """

    def __init__(self, stream: IO[bytes], cap: int, on_overflow: Optional[Callable[[], None]] = None, name: str = ""):
        super().__init__(name=name, daemon=True)
        self.stream = stream
        self.cap = cap
        self.on_overflow = on_overflow
        self.buf = bytearray()
        self.total = 0

    @property
    def overflowed(self) -> bool:
        return self.total > self.cap

    def run(self) -> None:
        try:
            while True:
                chunk = self.stream.read1(CHUNK)
                if not chunk:
                    break
                was_over = self.overflowed
                self.total += len(chunk)
                room = self.cap - len(self.buf)
                if room > 0:
                    self.buf += chunk[:room]
                if self.overflowed and not was_over and self.on_overflow:
                    self.on_overflow()
        except (OSError, ValueError) as e:
            # pipe closed under us after a forced kill
            log.debug("sandbox.reader_closed", stream=self.name, error=str(e))
        finally:
            try:
                self.stream.close()
            except OSError:
                pass

    def text(self) -> str:
        return decode_output(bytes(self.buf), self.cap)


def _feed_stdin(stream: IO[bytes], data: bytes) -> None:
    try:
        if data:
            stream.write(data)
            stream.flush()
    except (BrokenPipeError, OSError):
        # child exited without reading all of stdin
        pass
    finally:
        try:
            stream.close()
        except OSError:
            pass


class SandboxLauncher:
    """
    Runs one command inside the sandbox tool and classifies the outcome.

    Every post-spawn condition comes back as an ExecutionResult. Only a
    caller-driven cancel raises.
    """

    def __init__(
        self,
        nsjail_path: "Path | str" = "/usr/bin/nsjail",
        accountant: Optional[ResourceAccountant] = None,
        *,
        timeout_exit_code: int = 124,
        oom_exit_code: int = 137,
        failure_exit_code: int = 1,
        pass_limit_flags: bool = True,
        kill_on_output_limit: bool = True,
    ):
        self.nsjail_path = Path(nsjail_path)
        self.accountant = accountant or ResourceAccountant()
        self.timeout_exit_code = timeout_exit_code
        self.oom_exit_code = oom_exit_code
        self.failure_exit_code = failure_exit_code
        self.pass_limit_flags = pass_limit_flags
        self.kill_on_output_limit = kill_on_output_limit

    @classmethod
    def from_settings(cls, s: Settings) -> "SandboxLauncher":
        return cls(
            s.nsjail_path,
            ResourceAccountant(s.cgroup_cpu_paths, s.cgroup_memory_paths),
            timeout_exit_code=s.timeout_exit_code,
            oom_exit_code=s.oom_exit_code,
            failure_exit_code=s.failure_exit_code,
            pass_limit_flags=s.pass_limit_flags,
            kill_on_output_limit=s.kill_on_output_limit,
        )

    # ---------- classification ----------

    def classify(self, exit_code: int, stdout_overflow: bool = False, stderr_overflow: bool = False) -> ExecutionStatus:
        if exit_code == self.timeout_exit_code:
            status = ExecutionStatus.TIME_LIMIT
        elif exit_code == self.oom_exit_code:
            status = ExecutionStatus.MEMORY_LIMIT
        elif exit_code != 0:
            status = ExecutionStatus.RUNTIME_ERROR
        else:
            status = ExecutionStatus.OK
        if stdout_overflow or stderr_overflow:
            status = ExecutionStatus.OUTPUT_LIMIT
        return status

    @staticmethod
    def normalize_returncode(rc: int) -> int:
        # Popen reports death-by-signal N as -N; shells and nsjail use 128+N
        return 128 - rc if rc < 0 else rc

    # ---------- run ----------

    def launch(self, spec: LaunchSpec, cancel_event: Optional[Event] = None) -> ExecutionResult:
        limits = spec.limits
        argv = build_nsjail_argv(
            self.nsjail_path, spec.profile, spec.command, limits,
            mounts=spec.mounts, pass_limit_flags=self.pass_limit_flags,
        )

        start = time.monotonic()
        try:
            p = subprocess.Popen(
                argv,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                start_new_session=True,
            )
        except OSError as e:
            log.error("sandbox.spawn_failed", tool=str(self.nsjail_path), error=str(e))
            return ExecutionResult(
                status=ExecutionStatus.SYSTEM_ERROR,
                stdout="",
                stderr=f"System error: {e}",
                exit_code=self.failure_exit_code,
                cpu_time_ms=0,
                wall_time_ms=0,
                memory_kb=0,
            )

        kill_lock = threading.Lock()

        def kill_group() -> None:
            with kill_lock:
                if p.returncode is not None:
                    return
                try:
                    os.killpg(p.pid, signal.SIGKILL)
                except ProcessLookupError:
                    pass
                except PermissionError:
                    p.kill()

        on_overflow = kill_group if self.kill_on_output_limit else None
        cap = limits.max_output_bytes
        out = _CappedReader(p.stdout, cap, on_overflow, name="stdout")
        err = _CappedReader(p.stderr, cap, on_overflow, name="stderr")
        feeder = threading.Thread(target=_feed_stdin, args=(p.stdin, spec.stdin), daemon=True)
        out.start()
        err.start()
        feeder.start()

        # deadline race: process exit vs wall-clock timer vs caller cancel
        deadline = start + limits.wall_time_seconds
        timed_out = cancelled = False
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                timed_out = True
                break
            try:
                p.wait(timeout=min(remaining, POLL_INTERVAL))
                break
            except subprocess.TimeoutExpired:
                if cancel_event is not None and cancel_event.is_set():
                    cancelled = True
                    break

        if timed_out or cancelled:
            kill_group()
            p.wait()

        wall_ms = int((time.monotonic() - start) * 1000)
        for t in (out, err, feeder):
            t.join(DRAIN_TIMEOUT)

        if cancelled:
            log.info("sandbox.cancelled", pid=p.pid, wall_ms=wall_ms)
            raise ExecutionCancelledError("execution cancelled by caller")

        if timed_out:
            log.info("sandbox.timeout", pid=p.pid, wall_limit_s=limits.wall_time_seconds)
            return ExecutionResult(
                status=ExecutionStatus.TIME_LIMIT,
                stdout=out.text(),
                stderr=err.text(),
                exit_code=self.timeout_exit_code,
                cpu_time_ms=limits.cpu_time_seconds * 1000,
                wall_time_ms=limits.wall_time_seconds * 1000,
                memory_kb=0,
            )

        exit_code = self.normalize_returncode(p.returncode)
        status = self.classify(exit_code, out.overflowed, err.overflowed)
        if status is ExecutionStatus.OUTPUT_LIMIT:
            log.info("sandbox.output_limit", stdout_bytes=out.total, stderr_bytes=err.total, cap=cap)

        cpu_ms = self.accountant.cpu_time_ms(limits.cpu_time_seconds * 1000)
        mem_kb = self.accountant.memory_kb(limits.memory_mb * 1024)

        log.info("sandbox.finished", status=status.value, exit_code=exit_code, wall_ms=wall_ms)
        return ExecutionResult(
            status=status,
            stdout=out.text(),
            stderr=err.text(),
            exit_code=exit_code,
            cpu_time_ms=cpu_ms,
            wall_time_ms=wall_ms,
            memory_kb=mem_kb,
        )
