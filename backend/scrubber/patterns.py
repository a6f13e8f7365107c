from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Iterable, Literal

from pydantic import BaseModel, Field, ValidationError

from config import get_settings
from scrubber.catalog import INJECTION_RECORDS, SECRET_RECORDS

logger = logging.getLogger(__name__)

SEVERITIES: tuple[str, ...] = ("critical", "high", "medium", "low")
HIGH_SEVERITIES = frozenset({"critical", "high"})

DOMAIN_SECRET = "secret"
DOMAIN_INJECTION = "injection"


class PatternCatalogError(ValueError):
    """Raised when a pattern record cannot be validated or compiled."""


# ---------------------------------------------------------------------------
# Records and compiled patterns
# ---------------------------------------------------------------------------


class PatternRecord(BaseModel):
    """One catalog entry as written in Python or in an extension JSON file."""

    name: str = Field(..., min_length=1, max_length=64, pattern=r"^[a-z0-9_]+$")
    regex: str = Field(..., min_length=1)
    severity: Literal["critical", "high", "medium", "low"]
    description: str = Field(..., min_length=1)
    check_entropy: bool = Field(False, alias="checkEntropy")

    model_config = {"extra": "forbid", "populate_by_name": True, "frozen": True}


@dataclass(frozen=True)
class Pattern:
    """A compiled detector shared read-only by every scan."""

    name: str
    matcher: re.Pattern[str]
    severity: str
    domain: str
    description: str
    check_entropy: bool = False


@dataclass(frozen=True)
class PatternCatalog:
    """The full, immutable set of secret and injection detectors."""

    secrets: tuple[Pattern, ...]
    injections: tuple[Pattern, ...]

    def __len__(self) -> int:
        return len(self.secrets) + len(self.injections)

    def all(self) -> tuple[Pattern, ...]:
        return self.secrets + self.injections

    def get(self, name: str) -> Pattern | None:
        for pattern in self.all():
            if pattern.name == name:
                return pattern
        return None


# ---------------------------------------------------------------------------
# Compilation
# ---------------------------------------------------------------------------


def _validate(raw: dict, domain: str, index: int) -> PatternRecord:
    try:
        return PatternRecord.model_validate(raw)
    except ValidationError as exc:
        fields = ", ".join(
            ".".join(str(part) for part in err["loc"]) or "record"
            for err in exc.errors()
        )
        raise PatternCatalogError(
            f"Invalid {domain} pattern record #{index}: bad field(s) {fields}"
        ) from exc


def compile_record(record: PatternRecord, domain: str) -> Pattern:
    """Compile *record* into a :class:`Pattern` or raise ``PatternCatalogError``."""
    try:
        matcher = re.compile(record.regex, re.IGNORECASE)
    except re.error as exc:
        raise PatternCatalogError(
            f"Pattern {record.name!r} does not compile: {exc}"
        ) from exc
    return Pattern(
        name=record.name,
        matcher=matcher,
        severity=record.severity,
        domain=domain,
        description=record.description,
        check_entropy=record.check_entropy,
    )


def compile_records(records: Iterable[dict], domain: str) -> tuple[Pattern, ...]:
    return tuple(
        compile_record(_validate(raw, domain, index), domain)
        for index, raw in enumerate(records)
    )


def _read_extension_file(path: Path) -> tuple[list[dict], list[dict]]:
    """Read ``{"secrets": [...], "injections": [...]}`` from *path*."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise PatternCatalogError(f"Cannot read pattern file {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise PatternCatalogError(f"Pattern file {path} is not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise PatternCatalogError(f"Pattern file {path} must contain a JSON object")
    secrets = data.get("secrets", [])
    injections = data.get("injections", [])
    if not isinstance(secrets, list) or not isinstance(injections, list):
        raise PatternCatalogError(
            f"Pattern file {path}: 'secrets' and 'injections' must be lists"
        )
    return secrets, injections


def load_catalog(
    extra_file: str | Path | None = None,
    *,
    secret_records: Iterable[dict] = SECRET_RECORDS,
    injection_records: Iterable[dict] = INJECTION_RECORDS,
) -> PatternCatalog:
    """Validate and compile the built-in records plus an optional JSON file.

    Every failure (bad field, bad regex, duplicate name) is raised here so a
    scan can never hit a malformed pattern.
    """
    secret_records = list(secret_records)
    injection_records = list(injection_records)
    if extra_file:
        extra_secrets, extra_injections = _read_extension_file(Path(extra_file))
        secret_records.extend(extra_secrets)
        injection_records.extend(extra_injections)

    catalog = PatternCatalog(
        secrets=compile_records(secret_records, DOMAIN_SECRET),
        injections=compile_records(injection_records, DOMAIN_INJECTION),
    )

    seen: set[str] = set()
    for pattern in catalog.all():
        if pattern.name in seen:
            raise PatternCatalogError(f"Duplicate pattern name: {pattern.name}")
        seen.add(pattern.name)

    logger.info(
        "Pattern catalog compiled: %d secret, %d injection patterns",
        len(catalog.secrets),
        len(catalog.injections),
    )
    return catalog


@lru_cache
def get_catalog() -> PatternCatalog:
    """Process-wide catalog, compiled once on first use."""
    return load_catalog(get_settings().extra_patterns_file or None)
