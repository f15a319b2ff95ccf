from __future__ import annotations

from pathlib import Path

import pytest
import toml

import resticd.settings as settings_module
from resticd.settings import Settings, load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "ENABLED",
        "BIN_PATH",
        "REPOSITORY",
        "PASSWORD_FILE",
        "PASSWORD_COMMAND",
        "TAGS",
        "INTERVAL",
        "TARGET",
        "CONFIG_FILE",
    ):
        monkeypatch.delenv(f"RESTICD_{name}", raising=False)


@pytest.fixture
def detected(monkeypatch: pytest.MonkeyPatch) -> list[str | None]:
    results: list[str | None] = ["/opt/homebrew/bin/restic"]

    async def fake_detect() -> str | None:
        return results[0]

    monkeypatch.setattr(settings_module, "detect_restic", fake_detect)
    return results


@pytest.mark.asyncio
async def test_environment_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RESTICD_ENABLED", "true")
    monkeypatch.setenv("RESTICD_BIN_PATH", "/usr/bin/restic")
    monkeypatch.setenv("RESTICD_REPOSITORY", "/srv/restic-repo")
    monkeypatch.setenv("RESTICD_TAGS", "obsidian, notes")
    monkeypatch.setenv("RESTICD_INTERVAL", "0")

    config = await load_config(Settings())

    assert config.enabled is True
    assert config.bin_path == "/usr/bin/restic"
    assert config.repository == "/srv/restic-repo"
    assert config.tags == ("obsidian", "notes")
    assert config.interval == 0


@pytest.mark.asyncio
async def test_config_file_overrides_environment(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    path = tmp_path / "resticd.toml"
    path.write_text('repository = "/mnt/backup"\ninterval = 600\n')
    monkeypatch.setenv("RESTICD_CONFIG_FILE", str(path))
    monkeypatch.setenv("RESTICD_BIN_PATH", "/usr/bin/restic")
    monkeypatch.setenv("RESTICD_REPOSITORY", "/srv/restic-repo")

    config = await load_config(Settings())

    assert config.repository == "/mnt/backup"
    assert config.interval == 600
    assert config.bin_path == "/usr/bin/restic"


@pytest.mark.asyncio
async def test_detected_binary_is_saved(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, detected: list[str | None]
) -> None:
    path = tmp_path / "resticd.toml"
    monkeypatch.setenv("RESTICD_CONFIG_FILE", str(path))
    monkeypatch.setenv("RESTICD_REPOSITORY", "/srv/restic-repo")

    config = await load_config(Settings())

    assert config.bin_path == "/opt/homebrew/bin/restic"
    assert toml.loads(path.read_text()) == {"bin_path": "/opt/homebrew/bin/restic"}


@pytest.mark.asyncio
async def test_saved_binary_keeps_environment_authoritative(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, detected: list[str | None]
) -> None:
    path = tmp_path / "resticd.toml"
    path.write_text('tags = "vault"\n')
    monkeypatch.setenv("RESTICD_CONFIG_FILE", str(path))
    monkeypatch.setenv("RESTICD_REPOSITORY", "/old")
    _ = await load_config(Settings())

    monkeypatch.setenv("RESTICD_REPOSITORY", "/new")
    detected[0] = None
    config = await load_config(Settings())

    assert config.repository == "/new"
    assert config.bin_path == "/opt/homebrew/bin/restic"
    assert config.tags == ("vault",)
    assert toml.loads(path.read_text()) == {
        "tags": "vault",
        "bin_path": "/opt/homebrew/bin/restic",
    }


@pytest.mark.asyncio
async def test_binary_not_detected(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, detected: list[str | None]
) -> None:
    detected[0] = None
    path = tmp_path / "resticd.toml"
    monkeypatch.setenv("RESTICD_CONFIG_FILE", str(path))

    config = await load_config(Settings())

    assert config.bin_path == ""
    assert not path.exists()


@pytest.mark.asyncio
async def test_configured_binary_skips_detection(
    monkeypatch: pytest.MonkeyPatch, detected: list[str | None]
) -> None:
    detected[0] = "/should/not/be/used"
    monkeypatch.setenv("RESTICD_BIN_PATH", "/usr/local/bin/restic")

    config = await load_config(Settings())

    assert config.bin_path == "/usr/local/bin/restic"
