"""Error taxonomy shared by the AnonAddy and HIBP clients."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from scripts.aliaswatch.models import Report


class ErrorKind(str, Enum):
    AUTH = "auth"
    NETWORK = "network"
    RATE_LIMITED = "rate_limited"
    UNEXPECTED = "unexpected"


class ServiceError(Exception):
    """A failure talking to one of the external services.

    Subclasses set SERVICE so messages say which API failed.
    """

    SERVICE: str = ""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        status: Optional[int] = None,
        retry_after: Optional[float] = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.status = status
        self.retry_after = retry_after

    def __str__(self) -> str:
        return f"{self.SERVICE} {self.kind.value}: {self.args[0]}"

    @classmethod
    def auth(cls, status: int) -> "ServiceError":
        return cls(ErrorKind.AUTH, f"credential rejected (HTTP {status})", status=status)

    @classmethod
    def network(cls, exc: BaseException) -> "ServiceError":
        return cls(ErrorKind.NETWORK, f"transport failure: {exc}")

    @classmethod
    def unexpected(cls, status: Optional[int], detail: str = "") -> "ServiceError":
        message = f"unexpected response (HTTP {status})"
        if detail:
            message = f"{message}: {detail}"
        return cls(ErrorKind.UNEXPECTED, message, status=status)

    @classmethod
    def rate_limited(cls, retry_after: float) -> "ServiceError":
        return cls(
            ErrorKind.RATE_LIMITED,
            f"rate limited, retry after {retry_after:.1f}s",
            status=429,
            retry_after=retry_after,
        )


class ProviderError(ServiceError):
    SERVICE = "anonaddy"


class OracleError(ServiceError):
    SERVICE = "hibp"


class RunAborted(Exception):
    """Raised by the pipeline on a fatal error.

    ``report`` holds the results completed before the failure; it is never
    a successful run.
    """

    def __init__(self, error: ServiceError, report: "Report") -> None:
        super().__init__(str(error))
        self.error = error
        self.report = report
