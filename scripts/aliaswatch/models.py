"""Alias, breach and result records passed through the pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
import datetime
from typing import Any, Iterator, Optional

from scripts.aliaswatch.errors import ErrorKind


@dataclass
class Alias:
    id: str
    address: str
    active: bool
    description: Optional[str] = None


@dataclass(frozen=True)
class BreachRecord:
    name: str
    title: str = ""
    domain: str = ""
    date: Optional[datetime.date] = None
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "title": self.title,
            "domain": self.domain,
            "date": self.date.isoformat() if self.date else None,
            "description": self.description,
        }


@dataclass
class CheckResult:
    """Outcome of checking (and possibly deactivating) a single alias."""

    alias: Alias
    breaches: tuple[BreachRecord, ...] = ()
    deactivated: bool = False
    error: Optional[ErrorKind] = None
    error_message: Optional[str] = None

    def __post_init__(self) -> None:
        self.breaches = tuple(self.breaches)
        if self.deactivated and not self.breaches:
            raise ValueError(f"alias {self.alias.id} deactivated without a breach")
        if self.deactivated and self.error is not None:
            raise ValueError(f"alias {self.alias.id} deactivated despite error {self.error.value}")

    @property
    def breached(self) -> bool:
        return bool(self.breaches)

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.alias.id,
            "address": self.alias.address,
            "active": self.alias.active,
            "breaches": [b.to_dict() for b in self.breaches],
            "deactivated": self.deactivated,
            "error": self.error.value if self.error else None,
            "error_message": self.error_message,
        }


@dataclass
class Report:
    results: list[CheckResult] = field(default_factory=list)

    def append(self, result: CheckResult) -> None:
        self.results.append(result)

    def __iter__(self) -> Iterator[CheckResult]:
        return iter(self.results)

    def __len__(self) -> int:
        return len(self.results)

    def summary(self) -> dict[str, int]:
        return {
            "checked": len(self.results),
            "breached": sum(1 for r in self.results if r.breached),
            "deactivated": sum(1 for r in self.results if r.deactivated),
            "errors": sum(1 for r in self.results if not r.ok),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": self.summary(),
            "results": [r.to_dict() for r in self.results],
        }
