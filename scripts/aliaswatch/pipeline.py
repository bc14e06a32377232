"""Orchestrates the run: list aliases, check each for breaches, deactivate."""

from __future__ import annotations

import logging
from typing import Protocol

from scripts.aliaswatch.base_client import BaseClient
from scripts.aliaswatch.breach.hibp import HibpOracle
from scripts.aliaswatch.config import AppConfig
from scripts.aliaswatch.errors import (
    ErrorKind,
    OracleError,
    ProviderError,
    RunAborted,
    ServiceError,
)
from scripts.aliaswatch.models import Alias, BreachRecord, CheckResult, Report
from scripts.aliaswatch.pacing import RequestPacer
from scripts.aliaswatch.providers.anonaddy import AnonAddyProvider

logger = logging.getLogger("aliaswatch.pipeline")


class AliasSource(Protocol):
    def list_active_aliases(self) -> list[Alias]: ...


class BreachOracle(Protocol):
    def check(self, address: str) -> list[BreachRecord]: ...


class AliasDeactivator(Protocol):
    def deactivate(self, alias: Alias) -> None: ...


class AliasCheckPipeline:
    """Checks aliases strictly one at a time.

    Fatal errors (any listing failure, AUTH from either service) raise
    RunAborted carrying the results gathered so far. Everything else is
    recorded on the affected alias's CheckResult.
    """

    def __init__(
        self,
        source: AliasSource,
        oracle: BreachOracle,
        deactivator: AliasDeactivator,
        pacer: RequestPacer,
        max_rate_limit_retries: int = 3,
        dry_run: bool = False,
    ) -> None:
        self._source = source
        self._oracle = oracle
        self._deactivator = deactivator
        self._pacer = pacer
        self._max_rate_limit_retries = max_rate_limit_retries
        self._dry_run = dry_run

    def run(self) -> Report:
        report = Report()
        try:
            aliases = self._source.list_active_aliases()
        except ProviderError as exc:
            logger.error("Alias listing failed: %s", exc, extra={"service": exc.SERVICE})
            raise RunAborted(exc, report) from exc

        seen: set[str] = set()
        for alias in aliases:
            if alias.id in seen:
                logger.warning("Skipping duplicate alias in listing", extra={"alias_id": alias.id})
                continue
            seen.add(alias.id)
            try:
                result = self._process(alias)
            except ServiceError as exc:
                logger.error(
                    "Aborting run: %s", exc,
                    extra={"service": exc.SERVICE, "alias_id": alias.id},
                )
                raise RunAborted(exc, report) from exc
            report.append(result)

        logger.info("Run complete: %s", report.summary())
        return report

    def _process(self, alias: Alias) -> CheckResult:
        """Check and, when breached, deactivate one alias. AUTH errors propagate."""
        try:
            breaches = self._check(alias.address)
        except OracleError as exc:
            if exc.kind is ErrorKind.AUTH:
                raise
            return CheckResult(alias, error=exc.kind, error_message=str(exc))

        if not breaches:
            return CheckResult(alias)

        logger.info(
            "Alias found in breaches",
            extra={"alias_id": alias.id, "breaches": [b.name for b in breaches]},
        )
        if self._dry_run:
            return CheckResult(alias, breaches)

        try:
            self._deactivator.deactivate(alias)
        except ProviderError as exc:
            if exc.kind is ErrorKind.AUTH:
                raise
            logger.warning("Deactivation failed: %s", exc, extra={"alias_id": alias.id})
            return CheckResult(alias, breaches, error=exc.kind, error_message=str(exc))

        alias.active = False
        return CheckResult(alias, breaches, deactivated=True)

    def _check(self, address: str) -> list[BreachRecord]:
        """Query the oracle, re-issuing the request after each rate-limit wait."""
        retries = 0
        while True:
            self._pacer.wait()
            try:
                breaches = self._oracle.check(address)
            except OracleError as exc:
                self._pacer.mark(exc.retry_after)
                if exc.kind is ErrorKind.RATE_LIMITED and retries < self._max_rate_limit_retries:
                    retries += 1
                    continue
                raise
            self._pacer.mark()
            return breaches


def build_pipeline(
    config: AppConfig, dry_run: bool = False
) -> tuple[AliasCheckPipeline, list[BaseClient]]:
    """Wire the AnonAddy and HIBP clients from config.

    Returns the pipeline and the clients so the caller can close them.
    """
    provider = AnonAddyProvider(config)
    oracle = HibpOracle(config)
    pipeline = AliasCheckPipeline(
        source=provider,
        oracle=oracle,
        deactivator=provider,
        pacer=RequestPacer(config.hibp.min_interval),
        max_rate_limit_retries=config.hibp.max_rate_limit_retries,
        dry_run=dry_run,
    )
    return pipeline, [provider, oracle]
