from __future__ import annotations

import traceback

UNKNOWN_CATEGORY = "unknown error"


class SystemMonitorError(Exception):
    """Uniform error raised at every collector boundary.

    ``category`` names the operation that failed (e.g. ``DiskUsageError``) and
    ``origin`` holds the formatted traceback of the underlying failure, if any.
    """

    def __init__(
        self,
        message: str,
        category: str | None = None,
        origin: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.category = category or UNKNOWN_CATEGORY
        self.origin = origin

    @classmethod
    def wrap(cls, exc: BaseException, message: str, category: str) -> SystemMonitorError:
        detail = exc.message if isinstance(exc, SystemMonitorError) else str(exc)
        origin = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        return cls(f"{message}: {detail}" if detail else message, category, origin)

    def to_dict(self) -> dict[str, str | None]:
        return {"message": self.message, "category": self.category, "origin": self.origin}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(category={self.category!r}, message={self.message!r})"


class CommandError(SystemMonitorError):
    """An external command could not be run or reported a failure."""

    def __init__(
        self,
        message: str,
        command: list[str],
        returncode: int | None = None,
        stderr: str | None = None,
    ) -> None:
        super().__init__(message, "CommandExecutionError")
        self.command = command
        self.returncode = returncode
        self.stderr = stderr


class OutputParsingError(SystemMonitorError):
    """Command output did not have the expected shape."""
