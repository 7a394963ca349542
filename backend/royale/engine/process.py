"""Child-process execution for the external toolchain."""

import asyncio
import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

logger = logging.getLogger(__name__)

READ_CHUNK_BYTES = 64 * 1024


@dataclass
class CommandResult:
    """Result of one external tool invocation."""

    argv: list[str]
    exit_code: int
    stdout: str
    stderr: str
    duration_seconds: float
    timed_out: bool = False
    not_found: bool = False
    truncated: bool = False

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0 and not self.timed_out and not self.not_found and not self.truncated

    @property
    def combined_output(self) -> str:
        """stdout followed by stderr; build tools split diagnostics across both."""
        return "\n".join(part for part in (self.stdout, self.stderr) if part)


class ProcessRunner:
    """Runs external commands as child processes with a timeout and output cap."""

    def __init__(self, max_output_bytes: int = 10 * 1024 * 1024):
        self.max_output_bytes = max_output_bytes

    async def run(
        self,
        argv: Sequence[str],
        cwd: Optional[Path] = None,
        timeout_seconds: Optional[float] = None,
        env: Optional[dict[str, str]] = None,
    ) -> CommandResult:
        """
        Run a command and wait for it to exit or time out.

        Args:
            argv: Program and arguments
            cwd: Working directory
            timeout_seconds: Hard wall-clock limit, None for no limit
            env: Extra environment variables merged over the current ones

        Returns:
            CommandResult with captured output and exit status
        """
        argv = [str(arg) for arg in argv]
        process_env = {**os.environ, **env} if env else None
        start = time.monotonic()

        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                cwd=str(cwd) if cwd else None,
                env=process_env,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            logger.error(f"Executable not found: {argv[0]}")
            return CommandResult(
                argv=argv,
                exit_code=-1,
                stdout="",
                stderr=str(e),
                duration_seconds=0.0,
                not_found=True,
            )

        try:
            stdout, stderr, truncated = await asyncio.wait_for(
                self._collect(process),
                timeout=timeout_seconds,
            )
        except asyncio.TimeoutError:
            await self._kill(process)
            duration = time.monotonic() - start
            logger.warning(f"Command timed out after {duration:.2f}s: {argv[0]} {argv[1:3]}")
            return CommandResult(
                argv=argv,
                exit_code=-1,
                stdout="",
                stderr=f"Execution timed out after {timeout_seconds} seconds",
                duration_seconds=duration,
                timed_out=True,
            )

        if truncated:
            logger.warning(
                f"Command exceeded {self.max_output_bytes} bytes of output and was killed: {argv[0]} {argv[1:3]}"
            )

        return CommandResult(
            argv=argv,
            exit_code=process.returncode or 0,
            stdout=self._decode(stdout),
            stderr=self._decode(stderr),
            duration_seconds=time.monotonic() - start,
            truncated=truncated,
        )

    async def _collect(self, process: asyncio.subprocess.Process) -> tuple[bytes, bytes, bool]:
        """
        Read both pipes until the process closes them.

        Output is kept up to ``max_output_bytes`` across both streams; past
        that the process is killed so nothing more is buffered.
        """
        stdout = bytearray()
        stderr = bytearray()
        overflowed = False

        async def drain(stream: asyncio.StreamReader, buffer: bytearray) -> None:
            nonlocal overflowed
            while True:
                chunk = await stream.read(READ_CHUNK_BYTES)
                if not chunk:
                    return
                room = self.max_output_bytes - len(stdout) - len(stderr)
                buffer.extend(chunk[: max(room, 0)])
                if len(chunk) > room and not overflowed:
                    overflowed = True
                    # Later chunks are read and dropped until the pipes close
                    try:
                        process.kill()
                    except ProcessLookupError:
                        pass

        await asyncio.gather(drain(process.stdout, stdout), drain(process.stderr, stderr))
        await process.wait()
        return bytes(stdout), bytes(stderr), overflowed

    def _decode(self, data: bytes) -> str:
        return data.decode("utf-8", errors="replace") if data else ""

    async def _kill(self, process: asyncio.subprocess.Process) -> None:
        """Force kill a running process and reap it."""
        try:
            process.kill()
        except ProcessLookupError:
            return
        await process.wait()
