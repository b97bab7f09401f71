"""Bridge for running external command-line tools under a wall-clock timeout."""

from __future__ import annotations

import asyncio
import contextlib
import os
import shutil
import signal
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from wanda.errors import ExecutableNotFoundError, NonZeroExitError, ProcessTimeoutError, SpawnError

KILL_GRACE_SECONDS = 2.0
_USE_PROCESS_GROUP = hasattr(os, "killpg")


@dataclass(frozen=True)
class ProcessResult:
    """Captured output of a process that exited with status 0."""

    stdout: str
    stderr: str
    exit_code: int


def resolve_executable(executable: str | os.PathLike[str] | None) -> Path | None:
    """Resolve an explicit path to an existing file, or a bare name through PATH."""
    if executable is None:
        return None
    raw = os.fspath(executable).strip()
    if not raw:
        return None
    if os.sep in raw or (os.altsep and os.altsep in raw):
        path = Path(raw).expanduser()
        return path if path.is_file() else None
    found = shutil.which(raw)
    return Path(found) if found else None


def executable_exists(executable: str | os.PathLike[str] | None) -> bool:
    return resolve_executable(executable) is not None


async def run_process(
    executable: str | os.PathLike[str],
    args: Sequence[str],
    *,
    timeout_seconds: float,
    cwd: str | os.PathLike[str] | None = None,
    extra_env: Mapping[str, str] | None = None,
    label: str = "process",
) -> ProcessResult:
    """Run one external process and classify its single terminal outcome.

    Raises:
        ExecutableNotFoundError: the executable does not resolve; nothing is spawned.
        SpawnError: the operating system refused to start the process.
        ProcessTimeoutError: the process was still running after ``timeout_seconds``.
        NonZeroExitError: the process exited with a nonzero status.
    """
    resolved = resolve_executable(executable)
    if resolved is None:
        raise ExecutableNotFoundError(os.fspath(executable), label=label)

    argv = [str(resolved), *(str(arg) for arg in args)]
    env = {**os.environ, **(extra_env or {})}
    logger.debug("process.spawn label={} argv={} timeout={} cwd={}", label, argv, timeout_seconds, cwd)
    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd,
            env=env,
            start_new_session=_USE_PROCESS_GROUP,
        )
    except OSError as exc:
        raise SpawnError(f"{label} failed to start: {exc!s}") from exc

    try:
        async with asyncio.timeout(timeout_seconds):
            stdout_bytes, stderr_bytes = await process.communicate()
    except TimeoutError:
        await _terminate(process)
        logger.debug("process.timeout label={} pid={}", label, process.pid)
        raise ProcessTimeoutError(timeout_seconds, label=label) from None
    except asyncio.CancelledError:
        await asyncio.shield(_terminate(process))
        logger.debug("process.cancelled label={} pid={}", label, process.pid)
        raise

    stdout = _decode(stdout_bytes)
    stderr = _decode(stderr_bytes)
    exit_code = process.returncode if process.returncode is not None else -1
    logger.debug("process.exit label={} code={}", label, exit_code)
    if exit_code != 0:
        message = stderr.strip() or stdout.strip() or f"{label} exited with code {exit_code}"
        raise NonZeroExitError(exit_code, message)
    return ProcessResult(stdout=stdout, stderr=stderr, exit_code=exit_code)


async def _terminate(process: asyncio.subprocess.Process) -> None:
    if process.returncode is not None:
        return
    _signal(process, signal.SIGTERM)
    try:
        async with asyncio.timeout(KILL_GRACE_SECONDS):
            await process.wait()
    except TimeoutError:
        _signal(process, getattr(signal, "SIGKILL", signal.SIGTERM))
        await process.wait()


def _signal(process: asyncio.subprocess.Process, sig: int) -> None:
    with contextlib.suppress(ProcessLookupError):
        if _USE_PROCESS_GROUP:
            # The child leads its own session, so its pid is the group id.
            os.killpg(process.pid, sig)
        else:
            process.send_signal(sig)


def _decode(data: bytes | None) -> str:
    return (data or b"").decode("utf-8", errors="replace")
