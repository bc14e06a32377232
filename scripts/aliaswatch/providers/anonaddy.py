"""AnonAddy provider: paginated alias listing and alias deactivation."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional

import requests

from scripts.aliaswatch.base_client import BaseClient
from scripts.aliaswatch.config import AppConfig
from scripts.aliaswatch.errors import ErrorKind, ProviderError
from scripts.aliaswatch.models import Alias

logger = logging.getLogger("aliaswatch.anonaddy")


class AnonAddyProvider(BaseClient):
    SERVICE_NAME = "anonaddy"
    ERROR_CLASS = ProviderError

    def __init__(
        self,
        config: AppConfig,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        super().__init__(config.anonaddy.host, config.http, session)
        self._page_size = config.anonaddy.page_size
        self._retry_delay = config.deactivate_retry_delay
        self._sleep = sleep
        self._session.headers.update({
            "Authorization": f"Bearer {config.anonaddy.token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
            "X-Requested-With": "XMLHttpRequest",
        })

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def list_active_aliases(self) -> list[Alias]:
        """Fetch every alias page and return the active ones in listing order."""
        logger.info("Getting aliases from AnonAddy", extra={"service": self.SERVICE_NAME})
        aliases: list[Alias] = []
        seen: set[str] = set()
        total = 0
        page = 1

        while True:
            resp = self._send(
                "GET",
                "/api/v1/aliases",
                params={"page[number]": page, "page[size]": self._page_size},
            )
            self._raise_for_status(resp, 200)
            body = self._decode_json(resp)
            if not isinstance(body, dict):
                raise ProviderError.unexpected(resp.status_code, "alias listing is not an object")

            data = body.get("data") or []
            if not data:
                break
            parsed = [self._parse_alias(raw, resp.status_code) for raw in data]
            fresh = [a for a in parsed if a.id not in seen]
            if not fresh:
                # host ignored page[number] and served a page again
                logger.warning(
                    "Page %d repeats earlier aliases, stopping", page,
                    extra={"service": self.SERVICE_NAME},
                )
                break
            for alias in fresh:
                seen.add(alias.id)
                total += 1
                if alias.active:
                    aliases.append(alias)

            current, last = self._page_bounds(body, page, resp.status_code)
            if current >= last:
                break
            page = max(page, current) + 1

        logger.info(
            "Retrieved %d aliases, %d active", total, len(aliases),
            extra={"service": self.SERVICE_NAME},
        )
        return aliases

    @staticmethod
    def _page_bounds(body: dict, requested: int, status: int) -> tuple[int, float]:
        """(current_page, last_page) from the listing meta.

        current_page defaults to the page requested; last_page is unbounded
        when absent.
        """
        meta = body.get("meta") or {}
        current, last = meta.get("current_page", requested), meta.get("last_page")
        try:
            return int(current), (float("inf") if last is None else int(last))
        except (TypeError, ValueError) as exc:
            raise ProviderError.unexpected(
                status, f"bad page meta current_page={current!r} last_page={last!r}"
            ) from exc

    @staticmethod
    def _parse_alias(raw: Any, status: int) -> Alias:
        try:
            alias_id, email, active = raw["id"], raw["email"], raw["active"]
            description = raw.get("description")
        except (KeyError, TypeError, AttributeError) as exc:
            raise ProviderError.unexpected(status, f"malformed alias record: {exc}") from exc
        if not isinstance(email, str) or "@" not in email:
            raise ProviderError.unexpected(
                status, f"malformed alias record {alias_id!r}: email {email!r}"
            )
        return Alias(id=str(alias_id), address=email, active=bool(active), description=description)

    # ------------------------------------------------------------------
    # Deactivation
    # ------------------------------------------------------------------

    def deactivate(self, alias: Alias) -> None:
        """Mark the alias inactive at AnonAddy.

        Transport failures are retried once after a fixed delay; HTTP
        errors are not retried. The caller flips ``alias.active``.
        """
        if not alias.active:
            raise ValueError(f"alias {alias.id} is already inactive")

        logger.info("Deactivating alias", extra={"service": self.SERVICE_NAME, "alias_id": alias.id})
        try:
            resp = self._send("DELETE", f"/api/v1/active-aliases/{alias.id}")
        except ProviderError as exc:
            if exc.kind is not ErrorKind.NETWORK:
                raise
            logger.warning(
                "Deactivation failed, retrying in %.1fs", self._retry_delay,
                extra={"service": self.SERVICE_NAME, "alias_id": alias.id},
            )
            self._sleep(self._retry_delay)
            resp = self._send("DELETE", f"/api/v1/active-aliases/{alias.id}")
        self._raise_for_status(resp, 204)
