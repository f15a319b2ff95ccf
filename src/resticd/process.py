import asyncio
from collections.abc import Mapping

from pydantic import BaseModel


class ProcessResult(BaseModel):
    exit_code: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return not self.exit_code

    @property
    def failure(self) -> bool:
        return bool(self.exit_code)

    def diagnostics(self, tail: int = 20) -> str:
        """
        Text explaining a failure: stderr, or the last `tail` lines of stdout
        when stderr is empty
        """
        if stderr := self.stderr.strip():
            return stderr
        return "\n".join(self.stdout.strip().splitlines()[-tail:])


async def run_process(
    binary: str, *args: str, env: Mapping[str, str] | None = None
) -> ProcessResult:
    """
    Spawn `binary` with `args`, wait for it to exit and collect its output.

    Keyword arguments:
    `env` - full environment of the child process, `None` inherits the current one

    Raises `OSError` when the binary cannot be executed. If the caller is
    cancelled the child is killed and reaped before the cancellation propagates.
    """
    process = await asyncio.create_subprocess_exec(
        binary,
        *args,
        env=dict(env) if env is not None else None,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await process.communicate()
    except asyncio.CancelledError:
        try:
            process.kill()
        except ProcessLookupError:
            pass
        _ = await process.wait()
        raise

    return ProcessResult(
        exit_code=process.returncode or 0,
        stdout=stdout.decode(errors="replace"),
        stderr=stderr.decode(errors="replace"),
    )
