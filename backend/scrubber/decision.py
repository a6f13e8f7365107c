from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Iterable, Mapping

from scrubber.options import MODE_BLOCK, BlockThreshold, SanitizeOptions
from scrubber.redactor import placeholder_spans, redact_secrets, resolve_overlaps, rewrite
from scrubber.scanner import Finding

logger = logging.getLogger(__name__)

ACTION_SECRETS_REDACTED = "secrets_redacted"
ACTION_INJECTIONS_REMOVED = "injections_removed"


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ThreatSummary:
    """Aggregated counts for a set of findings.  Carries no values."""

    secrets: int = 0
    injections: int = 0
    high_severity: int = 0
    by_name: Mapping[str, int] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def from_findings(
        cls,
        secrets: Iterable[Finding],
        injections: Iterable[Finding],
    ) -> "ThreatSummary":
        secrets = list(secrets)
        injections = list(injections)
        everything = secrets + injections
        return cls(
            secrets=len(secrets),
            injections=len(injections),
            high_severity=sum(1 for f in everything if f.is_high_severity),
            by_name=MappingProxyType(dict(Counter(f.name for f in everything))),
        )

    @property
    def total(self) -> int:
        return self.secrets + self.injections


@dataclass(frozen=True)
class Decision:
    """Outcome of one sanitize call.

    ``sanitized_text`` is ``None`` when the content was blocked; a blocked
    decision exposes only counts and a reason.
    """

    blocked: bool
    safe: bool
    sanitized_text: str | None
    summary: ThreatSummary = field(default_factory=ThreatSummary)
    reason: str | None = None
    actions: tuple[str, ...] = ()

    @classmethod
    def clean(cls, text: str = "") -> "Decision":
        """A trivially safe decision for content with nothing to scan."""
        return cls(blocked=False, safe=True, sanitized_text=text)


# ---------------------------------------------------------------------------
# Decision logic
# ---------------------------------------------------------------------------


def should_block(summary: ThreatSummary, threshold: BlockThreshold) -> bool:
    """True when any count reaches its threshold."""
    return (
        summary.secrets >= threshold.secrets
        or summary.injections >= threshold.injections
        or summary.high_severity >= threshold.high_severity
    )


def block_reason(summary: ThreatSummary) -> str:
    return (
        f"Content blocked: {summary.secrets} secrets, "
        f"{summary.injections} injections, "
        f"{summary.high_severity} high-severity threats"
    )


def _rejoined_secrets(
    sanitized: str,
    injections: list[Finding],
    rescan: Callable[[str], list[Finding]] | None,
) -> list[Finding]:
    """Secrets that only appear once injection spans are cut out.

    Deleting a span joins its neighbours, so a key split by a zero-width
    character or a control marker is whole again in *sanitized*.
    Placeholders already in the text are never re-matched.
    """
    if rescan is None or not any(f.length for f in injections):
        return []
    taken = placeholder_spans(sanitized)
    return [
        f
        for f in resolve_overlaps(rescan(sanitized))
        if not any(f.start < end and start < f.end for start, end in taken)
    ]


def decide(
    text: str,
    secrets: Iterable[Finding],
    injections: Iterable[Finding],
    options: SanitizeOptions,
    *,
    rescan: Callable[[str], list[Finding]] | None = None,
) -> Decision:
    """Block or clean *text* given its findings and the caller's options.

    Overlapping findings are resolved first, so a credential matched by two
    detectors is counted and redacted once.  *rescan* is the secret detector;
    when given, the cleaned text is checked again after injection removal
    and anything found there is redacted and counted too.
    """
    kept_secrets = resolve_overlaps(secrets)
    kept_injections = resolve_overlaps(injections)
    sanitized = rewrite(text, kept_secrets, kept_injections)

    rejoined = _rejoined_secrets(sanitized, kept_injections, rescan)
    if rejoined:
        logger.info("Redacting %d secret(s) rejoined by injection removal", len(rejoined))
        sanitized = redact_secrets(sanitized, rejoined)

    summary = ThreatSummary.from_findings(kept_secrets + rejoined, kept_injections)

    if options.mode == MODE_BLOCK and should_block(summary, options.block_threshold):
        logger.info(
            "Content blocked: %d secrets, %d injections, %d high-severity",
            summary.secrets,
            summary.injections,
            summary.high_severity,
        )
        return Decision(
            blocked=True,
            safe=False,
            sanitized_text=None,
            summary=summary,
            reason=block_reason(summary),
        )

    actions: list[str] = []
    if summary.secrets:
        actions.append(ACTION_SECRETS_REDACTED)
    if summary.injections:
        actions.append(ACTION_INJECTIONS_REMOVED)

    return Decision(
        blocked=False,
        safe=summary.total == 0,
        sanitized_text=sanitized,
        summary=summary,
        actions=tuple(actions),
    )
