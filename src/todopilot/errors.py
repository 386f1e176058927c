"""Exception hierarchy shared by the stores, the provider layer and the assistant."""

from typing import Any


class AssistantError(Exception):
    """Base class for todopilot errors."""


class AiCallError(AssistantError):
    """The remote call produced no reply at all (network failure, timeout)."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ProviderHTTPError(AssistantError):
    """The provider answered with a non-2xx status."""

    def __init__(self, status: int | None, message: str):
        prefix = f"HTTP {status}: " if status is not None else ""
        super().__init__(f"{prefix}{message}")
        self.status = status
        self.message = message


class DialectMismatchError(ProviderHTTPError):
    """The provider rejected the structured-call dialect that was used."""

    def __init__(self, dialect: str, status: int | None, message: str):
        super().__init__(status, message)
        self.dialect = dialect


class MalformedReplyError(AssistantError):
    """The reply body is not a JSON object matching the response contract."""

    def __init__(self, message: str, raw: str):
        super().__init__(message)
        self.raw = raw


class BatchCreateError(AssistantError):
    """Some items of a batch creation failed.

    Items created before or after a failure stay in the store; this error
    only reports which ones made it.

    Attributes:
        created: Tasks that were persisted
        failures: (proposed task, reason) pairs that were not
    """

    def __init__(self, created: list[Any], failures: list[tuple[Any, str]]):
        self.created = created
        self.failures = failures
        total = len(created) + len(failures)
        super().__init__(f"{len(failures)} of {total} tasks could not be created")


class SessionBusyError(AssistantError):
    """A message was submitted while a request is still in flight."""

    def __init__(self) -> None:
        super().__init__("An assistant request is already in progress")
