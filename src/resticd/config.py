from collections.abc import Iterable, Mapping
from typing import Any, ClassVar, TextIO

import toml
from pydantic import BaseModel, ConfigDict, NonNegativeInt, field_validator

from resticd.restic.flags import parse_tags


class CustomBase(BaseModel):
    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid", frozen=True)


class BackupConfig(CustomBase):
    """
    Everything needed to run one backup, fixed for the duration of the run.

    `enabled` only gates the interval timer, manual backups always run.
    Both `password_file` and `password_command` are forwarded when set,
    restic decides which one wins.
    """

    enabled: bool = False
    bin_path: str = ""
    repository: str = ""
    password_file: str = ""
    password_command: str = ""
    tags: tuple[str, ...] = ()
    interval: NonNegativeInt = 60 * 60

    @field_validator("tags", mode="before")
    @classmethod
    def split_tags(cls, tags: str | Iterable[str]) -> tuple[str, ...]:
        if isinstance(tags, str):
            return parse_tags(tags)
        return parse_tags(",".join(tags))

    @property
    def scheduled(self) -> bool:
        return self.enabled and self.interval > 0


def read_config(file: TextIO) -> dict[str, Any]:
    return toml.load(file)


def write_config(file: TextIO, values: Mapping[str, Any]) -> None:
    _ = toml.dump(dict(values), file)
