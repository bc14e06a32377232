"""Abstract base class for the AnonAddy and HIBP HTTP clients."""

from __future__ import annotations

import logging
import time
from abc import ABC
from typing import Any, Optional

import requests

from scripts.aliaswatch.config import HttpConfig
from scripts.aliaswatch.errors import ServiceError

logger = logging.getLogger("aliaswatch.client")

AUTH_STATUSES = (401, 403)


class BaseClient(ABC):
    """Each client declares SERVICE_NAME and the ServiceError subclass it raises.

    Raw responses never leave the client: callers get decoded records or a
    typed ERROR_CLASS exception.
    """

    SERVICE_NAME: str = ""
    ERROR_CLASS: type[ServiceError] = ServiceError

    def __init__(
        self,
        base_url: str,
        http: HttpConfig,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._base = base_url.rstrip("/")
        self._timeout = http.timeout
        self._session = session or requests.Session()

    def close(self) -> None:
        self._session.close()

    def _send(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        """Issue one request; transport failures become NETWORK errors."""
        url = f"{self._base}{path}"
        started = time.monotonic()
        try:
            resp = self._session.request(method, url, timeout=self._timeout, **kwargs)
        except requests.RequestException as exc:
            logger.warning(
                "%s %s failed: %s",
                method, path, exc,
                extra={"service": self.SERVICE_NAME},
            )
            raise self.ERROR_CLASS.network(exc) from exc
        logger.debug(
            "%s %s -> %d",
            method, path, resp.status_code,
            extra={
                "service": self.SERVICE_NAME,
                "status": resp.status_code,
                "duration_s": round(time.monotonic() - started, 3),
            },
        )
        return resp

    def _raise_for_status(self, resp: requests.Response, expected: int) -> None:
        if resp.status_code == expected:
            return
        if resp.status_code in AUTH_STATUSES:
            raise self.ERROR_CLASS.auth(resp.status_code)
        raise self.ERROR_CLASS.unexpected(resp.status_code, resp.text[:200])

    def _decode_json(self, resp: requests.Response) -> Any:
        try:
            return resp.json()
        except ValueError as exc:
            raise self.ERROR_CLASS.unexpected(resp.status_code, "malformed JSON body") from exc
