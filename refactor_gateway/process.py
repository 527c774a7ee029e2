#!/usr/bin/env python3
"""
Refactor Gateway - External command runner

pyright and the formatters are driven as subprocesses. Running them through
asyncio keeps the event loop free while they work.
"""

import asyncio
from dataclasses import dataclass


@dataclass
class CommandResult:
    returncode: int
    stdout: str
    stderr: str


async def run_command(
    args: list[str],
    input_text: str | None = None,
    cwd: str | None = None,
    timeout: float | None = None,
) -> CommandResult:
    """Run a command and collect its output.

    Raises FileNotFoundError if the executable does not exist and
    asyncio.TimeoutError if it does not finish within `timeout` seconds.
    """
    process = await asyncio.create_subprocess_exec(
        *args,
        stdin=asyncio.subprocess.PIPE if input_text is not None else asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        cwd=cwd,
    )
    data = input_text.encode("utf-8") if input_text is not None else None
    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(data), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise
    return CommandResult(
        returncode=process.returncode,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )
