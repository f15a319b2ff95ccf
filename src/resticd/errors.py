class BackupError(Exception):
    """
    Base class of every error reported for a backup run
    """


class ConfigurationError(BackupError):
    pass


class BusyError(BackupError):
    def __init__(self) -> None:
        super().__init__("restic backup already in progress")


class BackupFailedError(BackupError):
    def __init__(self, exit_code: int | None, diagnostics: str) -> None:
        self.exit_code: int | None = exit_code
        self.diagnostics: str = diagnostics

        if exit_code is None:
            super().__init__(f"restic could not be started: {diagnostics}")
        else:
            super().__init__(f"restic exited with code {exit_code}: {diagnostics}")


class NoSummaryError(BackupError):
    def __init__(self) -> None:
        super().__init__("no summary found in restic output")
