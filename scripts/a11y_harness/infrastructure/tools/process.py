from __future__ import annotations

import asyncio
import logging

log = logging.getLogger(__name__)


async def run_command(args: list[str], timeout_secs: float) -> tuple[int, str, str]:
    """
    Run an external CLI and capture its output.

    The child is killed when the timeout expires or the awaiting task is
    cancelled; asyncio.TimeoutError / CancelledError then propagate.
    """
    log.debug("Running: %s", " ".join(args))
    proc = await asyncio.create_subprocess_exec(
        *args,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout_secs)
    except (asyncio.TimeoutError, asyncio.CancelledError):
        proc.kill()
        await proc.wait()
        raise
    return proc.returncode, stdout.decode("utf-8", "replace"), stderr.decode("utf-8", "replace")
