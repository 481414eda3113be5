"""Building and running the PhantomJS/YSlow audit command."""

import asyncio
import json
import logging
from collections.abc import Sequence

from perfgate.domain.models import AuditOptions, ProcessOutput, RunMode, ThresholdSet

logger = logging.getLogger(__name__)

IGNORE_SSL_ERRORS = "--ignore-ssl-errors=true"
SPAWN_FAILED = 127
TERMINATE_GRACE = 5.0
DRAIN_GRACE = 1.0
READ_CHUNK = 65536


def build_url(base_url: str, src: str) -> str:
    """Join base URL and target path. No separator is inserted."""
    return f"{base_url}{src}"


def build_command(
    binary: str,
    script: str,
    url: str,
    mode: RunMode,
    thresholds: ThresholdSet,
    options: AuditOptions,
    ci_format: str = "junit",
) -> list[str]:
    """Return the argv for one audit. Order matters to the script."""
    cmd = [binary, IGNORE_SSL_ERRORS, script]

    if mode == RunMode.MACHINE:
        cmd += ["--format", ci_format, "--info", "grade"]
    else:
        cmd += ["--info", "basic"]

    if options.user_agent:
        cmd += ["--ua", options.user_agent]
    if options.cdns:
        cmd += ["--cdns", ",".join(options.cdns)]
    if options.viewport:
        cmd += ["--viewport", options.viewport]
    if options.headers:
        cmd += ["--headers", json.dumps(options.headers)]

    if mode == RunMode.MACHINE and thresholds.score is not None:
        cmd.append(f"--threshold={int(thresholds.score)}")

    cmd.append(url)
    return cmd


class AuditProcessRunner:
    """Runs one audit process and captures its output.

    Does not interpret exit status or output.
    """

    def __init__(self, timeout: float | None = None) -> None:
        self._timeout = timeout

    async def run(self, command: Sequence[str]) -> ProcessOutput:
        """Spawn *command* and wait for it, killing it on timeout."""
        logger.debug("Spawning %s", " ".join(command))
        try:
            proc = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            logger.error("Failed to spawn %s: %s", command[0], exc)
            return ProcessOutput(stdout="", stderr=str(exc), returncode=SPAWN_FAILED)

        logger.info("Audit process spawned, pid=%s", proc.pid)
        stdout_buf = bytearray()
        stderr_buf = bytearray()
        readers = [
            asyncio.ensure_future(_drain(proc.stdout, stdout_buf)),
            asyncio.ensure_future(_drain(proc.stderr, stderr_buf)),
        ]
        timed_out = False
        try:
            await asyncio.wait_for(proc.wait(), timeout=self._timeout)
        except TimeoutError:
            logger.warning("Audit pid=%s timed out after %ss", proc.pid, self._timeout)
            timed_out = True
            await _stop(proc)
        except asyncio.CancelledError:
            logger.info("Audit pid=%s cancelled", proc.pid)
            for reader in readers:
                reader.cancel()
            await _stop(proc)
            raise

        # A grandchild may still hold the pipes open after a forced stop.
        _, lingering = await asyncio.wait(
            readers, timeout=DRAIN_GRACE if timed_out else None
        )
        for reader in lingering:
            reader.cancel()
        await asyncio.gather(*readers, return_exceptions=True)

        logger.info("Audit pid=%s exited with %s", proc.pid, proc.returncode)
        return ProcessOutput(
            stdout=stdout_buf.decode(errors="replace"),
            stderr=stderr_buf.decode(errors="replace"),
            returncode=proc.returncode,
            timed_out=timed_out,
        )


async def _drain(stream: asyncio.StreamReader | None, sink: bytearray) -> None:
    """Copy *stream* into *sink* until EOF, so partial output survives a kill."""
    if stream is None:
        return
    while True:
        chunk = await stream.read(READ_CHUNK)
        if not chunk:
            return
        sink.extend(chunk)


async def _stop(proc: asyncio.subprocess.Process) -> None:
    """Terminate the process, then kill it if it does not exit."""
    if proc.returncode is not None:
        return
    try:
        proc.terminate()
        await asyncio.wait_for(proc.wait(), timeout=TERMINATE_GRACE)
    except ProcessLookupError:
        return
    except TimeoutError:
        proc.kill()
        await proc.wait()
