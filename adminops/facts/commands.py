"""Run local instrumentation commands with a bounded timeout."""

from __future__ import annotations

import asyncio
import logging

from adminops.facts.models import CommandResult

logger = logging.getLogger(__name__)


def powershell(script: str) -> list[str]:
    return ["powershell", "-NoProfile", "-NonInteractive", "-Command", script]


async def run_command(argv: list[str], timeout: float = 30.0) -> CommandResult:
    """Execute ``argv`` and capture stdout.

    Never raises for a failing command: missing executables, non-zero exit
    and timeouts are reported through ``CommandResult.success``.
    """
    command = " ".join(argv)
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except (FileNotFoundError, PermissionError) as exc:
        return CommandResult(command=command, output="", success=False,
                             error=f"{argv[0]}: {exc.strerror or exc}")

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        logger.warning("Command timed out after %.0fs: %s", timeout, argv[0])
        return CommandResult(command=command, output="", success=False,
                             error=f"timed out after {timeout:.0f}s")

    output = stdout.decode("utf-8", errors="replace")
    if proc.returncode != 0:
        err = stderr.decode("utf-8", errors="replace").strip()
        return CommandResult(
            command=command, output=output, success=False,
            error=err or f"exit status {proc.returncode}",
            returncode=proc.returncode,
        )
    return CommandResult(command=command, output=output,
                         returncode=proc.returncode)
