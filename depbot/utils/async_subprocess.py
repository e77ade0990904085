"""Async subprocess helper.

The mock platform discovers repositories and detects default branches by
running ``git`` and ``find``. Running them through ``asyncio`` keeps those
calls from blocking the event loop while other operations are awaited.

Example:
    >>> from depbot.utils.async_subprocess import run_command
    >>> stdout, stderr, code = await run_command(
    ...     "git", "rev-parse", "--abbrev-ref", "HEAD", cwd="/srv/repos/app/.git"
    ... )
    >>> stdout.strip()
    'main'
"""

import asyncio
import subprocess
from pathlib import Path


async def run_command(
    *args: str,
    cwd: Path | str | None = None,
    check: bool = True,
    timeout: float | None = None,
) -> tuple[str, str, int]:
    """Run a command asynchronously without shell interpolation.

    Args:
        *args: Executable followed by its arguments
        cwd: Working directory for the command; None keeps the current one
        check: Raise CalledProcessError when the exit code is non-zero
        timeout: Seconds to wait before the process is killed; None waits
            indefinitely

    Returns:
        Tuple of (stdout, stderr, return_code). Output is decoded as UTF-8
        with replacement for invalid bytes.

    Raises:
        subprocess.CalledProcessError: If check=True and the command fails
        asyncio.TimeoutError: If the timeout is exceeded
        FileNotFoundError: If the executable or cwd does not exist
    """
    process = await asyncio.create_subprocess_exec(
        *args,
        cwd=cwd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )

    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(
            process.communicate(),
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise

    stdout = (stdout_bytes or b"").decode("utf-8", errors="replace")
    stderr = (stderr_bytes or b"").decode("utf-8", errors="replace")

    if check and process.returncode != 0:
        raise subprocess.CalledProcessError(
            process.returncode,
            args,
            stdout,
            stderr,
        )

    return stdout, stderr, process.returncode or 0
