import logging
from pathlib import Path
from typing import Any, ClassVar

from pydantic import NonNegativeInt
from pydantic_settings import BaseSettings, SettingsConfigDict

from resticd.config import BackupConfig, read_config, write_config
from resticd.shell import detect_restic


class Settings(BaseSettings):
    enabled: bool = False
    bin_path: str = ""
    repository: str = ""
    password_file: str = ""
    password_command: str = ""
    tags: str = ""
    interval: NonNegativeInt = 60 * 60

    target: Path = Path(".")
    config_file: Path | None = None

    host: str = "127.0.0.1"
    port: int = 8000

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_prefix="RESTICD_"
    )

    def __init__(self) -> None:
        super().__init__()

    def backup_values(self) -> dict[str, object]:
        return self.model_dump(include=set(BackupConfig.model_fields))


async def load_config(settings: Settings) -> BackupConfig:
    """
    Build `BackupConfig` from environment settings overlaid with `settings.config_file`.

    When no restic binary is configured it is looked up in the login shell,
    a path found that way is saved back into the config file. Only `bin_path`
    is written, other values keep coming from where they were set.
    """
    values = settings.backup_values()
    stored: dict[str, Any] = {}

    config_file = settings.config_file
    if config_file is not None and config_file.is_file():
        with config_file.open() as file:
            stored = read_config(file)
        values |= stored
        logging.debug("read config file", extra={"path": str(config_file)})

    config = BackupConfig.model_validate(values)

    if config.bin_path:
        return config

    bin_path = await detect_restic()
    if bin_path is None:
        logging.warning("restic binary not found, configure its path explicitly")
        return config

    config = config.model_copy(update={"bin_path": bin_path})
    logging.info("detected restic binary", extra={"path": bin_path})

    if config_file is not None:
        with config_file.open("w") as file:
            write_config(file, stored | {"bin_path": bin_path})

    return config
