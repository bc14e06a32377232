"""Have I Been Pwned v3 client: breaches for a single email address."""

from __future__ import annotations

import datetime
import logging
import math
from typing import Any, Optional
from urllib.parse import quote

import requests

from scripts.aliaswatch.base_client import BaseClient
from scripts.aliaswatch.config import AppConfig
from scripts.aliaswatch.errors import OracleError
from scripts.aliaswatch.models import BreachRecord

logger = logging.getLogger("aliaswatch.hibp")

MAX_RETRY_AFTER = 300.0  # seconds


class HibpOracle(BaseClient):
    """Looks up breaches for an address.

    Never sleeps: a 429 is raised as a RATE_LIMITED OracleError carrying
    the wait, and pacing is left to the caller.
    """

    SERVICE_NAME = "hibp"
    ERROR_CLASS = OracleError

    def __init__(self, config: AppConfig, session: Optional[requests.Session] = None) -> None:
        super().__init__(config.hibp.host, config.http, session)
        self._default_retry_after = config.hibp.min_interval
        self._session.headers.update({
            "hibp-api-key": config.hibp.token,
            "user-agent": config.hibp.user_agent,
            "Accept": "application/json",
        })

    def check(self, address: str) -> list[BreachRecord]:
        resp = self._send(
            "GET",
            f"/api/v3/breachedaccount/{quote(address, safe='')}",
            params={"truncateResponse": "false"},
        )

        # ---------- NO BREACH ----------
        if resp.status_code == 404:
            return []

        # ---------- RATE LIMITED ----------
        if resp.status_code == 429:
            retry_after = self._retry_after(resp)
            logger.warning(
                "HIBP rate limit hit",
                extra={"service": self.SERVICE_NAME, "retry_after": retry_after},
            )
            raise OracleError.rate_limited(retry_after)

        self._raise_for_status(resp, 200)
        body = self._decode_json(resp)
        if not isinstance(body, list):
            raise OracleError.unexpected(resp.status_code, "breach list is not an array")
        return [self._parse_breach(raw, resp.status_code) for raw in body]

    def _retry_after(self, resp: requests.Response) -> float:
        raw = resp.headers.get("Retry-After", "")
        try:
            seconds = float(raw)
        except ValueError:
            return self._default_retry_after
        if not math.isfinite(seconds):
            return self._default_retry_after
        return min(max(seconds, 0.0), MAX_RETRY_AFTER)

    @staticmethod
    def _parse_breach(raw: Any, status: int) -> BreachRecord:
        try:
            name = raw["Name"]
        except (KeyError, TypeError) as exc:
            raise OracleError.unexpected(status, "breach without a Name") from exc
        return BreachRecord(
            name=name,
            title=raw.get("Title") or name,
            domain=raw.get("Domain") or "",
            date=_parse_date(raw.get("BreachDate")),
            description=raw.get("Description") or "",
        )


def _parse_date(value: Optional[str]) -> Optional[datetime.date]:
    if not value:
        return None
    try:
        return datetime.date.fromisoformat(value)
    except (TypeError, ValueError):
        return None
