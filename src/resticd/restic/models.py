import logging
from collections.abc import Iterator
from datetime import datetime
from typing import Annotated, Literal

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from resticd.errors import NoSummaryError


class Error(BaseModel):
    """
    https://restic.readthedocs.io/en/latest/075_scripting.html#id5
    """

    class Detail(BaseModel):
        message: str

    message_type: Literal["error"]
    error: Detail
    during: str = ""
    item: str = ""

    def describe(self) -> str:
        if self.item:
            return f"{self.item}: {self.error.message}"
        return self.error.message


class ExitError(BaseModel):
    """
    https://restic.readthedocs.io/en/latest/075_scripting.html#exit-errors
    """

    message_type: Literal["exit_error"]
    code: int
    message: str

    def describe(self) -> str:
        return self.message


class BackupStatus(BaseModel):
    """
    https://restic.readthedocs.io/en/latest/075_scripting.html#status
    """

    message_type: Literal["status"]
    percent_done: float = 0.0
    files_done: int | None = None
    total_files: int | None = None
    error_count: int | None = None


class BackupVerboseStatus(BaseModel):
    """
    https://restic.readthedocs.io/en/latest/075_scripting.html#verbose-status

    Only printed when restic runs with `--verbose`.
    """

    message_type: Literal["verbose_status"]
    action: Literal["new", "unchanged", "modified", "scan_finished"]
    item: str = ""
    duration: float = 0.0
    data_size: int = 0
    data_size_in_repo: int = 0
    metadata_size: int = 0
    metadata_size_in_repo: int = 0
    total_files: int = 0


class BackupSummary(BaseModel):
    """
    https://restic.readthedocs.io/en/stable/075_scripting.html#summary

    Older restic releases omit some of the counters, so only the
    discriminator is required.
    """

    message_type: Literal["summary"]
    dry_run: bool = False
    files_new: int = 0
    files_changed: int = 0
    files_unmodified: int = 0
    dirs_new: int = 0
    dirs_changed: int = 0
    dirs_unmodified: int = 0
    data_blobs: int = 0
    tree_blobs: int = 0
    data_added: int = 0
    data_added_packed: int = 0
    total_files_processed: int = 0
    total_bytes_processed: int = 0
    backup_start: datetime | None = None
    backup_end: datetime | None = None
    total_duration: float = 0.0
    snapshot_id: str | None = None

    def notice(self) -> str:
        return (
            f"Restic backup [{round(self.total_duration * 1000)}ms]: "
            + f"Backed up {self.files_new} new files, "
            + f"{self.files_changed} modified files "
            + f"({self.total_files_processed} total files processed)"
        )


BackupMessage = Annotated[
    BackupStatus | BackupVerboseStatus | BackupSummary | Error | ExitError,
    Field(discriminator="message_type"),
]

_backup_message: TypeAdapter[BackupMessage] = TypeAdapter(BackupMessage)


def parse_messages(output: str) -> Iterator[BackupMessage]:
    """
    Messages of `restic --json` output, in order.

    Lines that are not messages are skipped, restic interleaves them with
    its JSON output (e.g. warnings printed by older releases).
    """
    for line in output.splitlines():
        try:
            message = _backup_message.validate_json(line)
        except ValidationError as e:
            logging.debug(e, extra={"exception": "ValidationError", "input": line})
            continue

        yield message


def parse_summary(stdout: str) -> BackupSummary:
    """
    Return the first summary message of `restic backup --json` output,
    raises `NoSummaryError` when there is none
    """
    for message in parse_messages(stdout):
        if isinstance(message, BackupSummary):
            return message

    raise NoSummaryError()


def error_messages(stderr: str) -> list[str]:
    return [
        message.describe()
        for message in parse_messages(stderr)
        if isinstance(message, Error | ExitError)
    ]
