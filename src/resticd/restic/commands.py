import os
from collections.abc import Mapping
from pathlib import Path
from typing import Annotated, ClassVar

from annotated_types import MinLen
from pydantic import BaseModel, ConfigDict

from resticd.config import BackupConfig
from resticd.errors import ConfigurationError
from resticd.restic.flags import TagFlag


class Invocation(BaseModel):
    """
    Command line and environment overlay of a single restic run
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    binary: Annotated[str, MinLen(1)]
    args: tuple[str, ...]
    env: dict[str, str]

    @property
    def cmd(self) -> list[str]:
        return [self.binary, *self.args]

    def environ(self, base: Mapping[str, str] | None = None) -> dict[str, str]:
        return dict(os.environ if base is None else base) | self.env


def environment(config: BackupConfig) -> dict[str, str]:
    env = {"RESTIC_REPOSITORY": config.repository}
    if config.password_file:
        env["RESTIC_PASSWORD_FILE"] = config.password_file
    if config.password_command:
        env["RESTIC_PASSWORD_COMMAND"] = config.password_command
    return env


def backup(config: BackupConfig, target: Path) -> Invocation:
    if not config.repository:
        raise ConfigurationError("restic repository not configured")
    if not config.bin_path:
        raise ConfigurationError("restic binary not configured")

    cmd = (
        "backup",
        target.absolute(),
        "--json",
        "--skip-if-unchanged",
        *TagFlag.of(config.tags),
    )
    return Invocation(
        binary=config.bin_path,
        args=tuple(map(str, cmd)),
        env=environment(config),
    )
