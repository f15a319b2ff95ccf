import logging
import os

from resticd.errors import ConfigurationError
from resticd.process import run_process


def parse_env(output: str) -> dict[str, str]:
    env: dict[str, str] = {}
    for line in output.splitlines():
        key, sep, value = line.partition("=")
        if sep and key:
            env[key] = value
    return env


async def login_shell_env() -> dict[str, str]:
    """
    Environment of the user's login shell.

    Background processes usually start without the `PATH` customizations
    made by shell profiles, so the shell from `SHELL` is asked to print its
    environment instead. Every call spawns a new shell.
    """
    shell = os.environ.get("SHELL")
    if not shell:
        raise ConfigurationError("SHELL environment variable is not set")

    result = await run_process(shell, "-l", "-c", "env", env=os.environ)
    if result.failure:
        raise ConfigurationError(
            f"login shell {shell} exited with code {result.exit_code}: {result.diagnostics()}"
        )

    return parse_env(result.stdout)


async def detect_restic(name: str = "restic") -> str | None:
    """
    Best effort lookup of the restic binary in the login shell `PATH`, `None` when not found
    """
    try:
        env = await login_shell_env()
        result = await run_process("which", name, env=env)
    except (ConfigurationError, OSError) as e:
        logging.error("restic lookup failed", extra={"binary": name, "error": str(e)})
        return None

    if result.failure:
        logging.warning(
            "restic not found in login shell",
            extra={"binary": name, "status": result.exit_code},
        )
        return None

    path = result.stdout.strip()
    logging.debug("restic lookup finished", extra={"binary": name, "path": path})
    return path or None
