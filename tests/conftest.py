from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest

from resticd.config import BackupConfig

SUMMARY = {
    "message_type": "summary",
    "files_new": 3,
    "files_changed": 1,
    "files_unmodified": 6,
    "dirs_new": 0,
    "dirs_changed": 1,
    "dirs_unmodified": 2,
    "data_blobs": 4,
    "tree_blobs": 2,
    "data_added": 2048,
    "data_added_packed": 1024,
    "total_files_processed": 10,
    "total_bytes_processed": 4096,
    "total_duration": 1.25,
    "snapshot_id": "abc123",
}

STATUS = {"message_type": "status", "percent_done": 0.5, "files_done": 5}


def restic_output(*messages: dict[str, Any] | str) -> str:
    lines = [m if isinstance(m, str) else json.dumps(m) for m in messages]
    return "\n".join(lines) + "\n"


class FakeProcess:
    def __init__(
        self,
        returncode: int = 0,
        stdout: str = "",
        stderr: str = "",
        release: asyncio.Event | None = None,
        reap: asyncio.Event | None = None,
    ) -> None:
        self.returncode: int | None = None
        self.killed = False
        self._returncode = returncode
        self._stdout = stdout
        self._stderr = stderr
        self._release = release
        self._reap = reap

    async def communicate(self) -> tuple[bytes, bytes]:
        if self._release is not None:
            await self._release.wait()
        self.returncode = self._returncode
        return self._stdout.encode(), self._stderr.encode()

    def kill(self) -> None:
        self.killed = True
        self.returncode = -9

    async def wait(self) -> int:
        if self._reap is not None:
            await self._reap.wait()
        return self.returncode if self.returncode is not None else self._returncode


class FakeExec:
    """
    Stand-in for `asyncio.create_subprocess_exec` answering by program name
    """

    def __init__(self) -> None:
        self.calls: list[tuple[list[str], dict[str, Any]]] = []
        self.processes: dict[str, FakeProcess] = {}
        self.errors: dict[str, OSError] = {}

    async def __call__(self, program: str, *args: str, **kwargs: Any) -> FakeProcess:
        self.calls.append(([program, *args], kwargs))
        if program in self.errors:
            raise self.errors[program]
        return self.processes.get(program, FakeProcess())

    def programs(self) -> list[str]:
        return [cmd[0] for cmd, _ in self.calls]


@pytest.fixture
def fake_exec(monkeypatch: pytest.MonkeyPatch) -> FakeExec:
    fake = FakeExec()
    monkeypatch.setattr(asyncio, "create_subprocess_exec", fake)
    return fake


@pytest.fixture
def sample_config() -> BackupConfig:
    return BackupConfig(
        enabled=True,
        bin_path="/usr/bin/restic",
        repository="/srv/restic-repo",
        password_file="/etc/restic/password",
        tags="vault, notes",
        interval=3600,
    )
