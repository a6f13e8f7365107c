from __future__ import annotations

import re
from typing import Callable, Iterable

from scrubber.patterns import DOMAIN_INJECTION
from scrubber.scanner import Finding

PLACEHOLDER_FORMAT = "[REDACTED:{name}]"

_EXCESS_NEWLINES = re.compile(r"\n{3,}")
_REPEATED_SPACES = re.compile(r"[ \t]{2,}")
_PLACEHOLDER = re.compile(r"\[REDACTED:[a-z0-9_]+\]")


def placeholder(name: str) -> str:
    """Return the replacement token for a finding called *name*."""
    return PLACEHOLDER_FORMAT.format(name=name)


def placeholder_spans(text: str) -> list[tuple[int, int]]:
    """Offsets of every placeholder already present in *text*."""
    return [m.span() for m in _PLACEHOLDER.finditer(text)]


# ---------------------------------------------------------------------------
# Overlap resolution
# ---------------------------------------------------------------------------


def resolve_overlaps(findings: Iterable[Finding]) -> list[Finding]:
    """Return the non-overlapping subset of *findings*, ordered by offset.

    Findings are sorted by start offset; at the same start the longer
    (more specific) match wins, then the pattern name breaks ties.  Any
    finding that starts inside the last retained span is dropped.
    """
    ordered = sorted(findings, key=lambda f: (f.start, -f.length, f.name))
    retained: list[Finding] = []
    cursor = 0
    for finding in ordered:
        if retained and finding.start < cursor:
            continue
        retained.append(finding)
        cursor = max(cursor, finding.end)
    return retained


# ---------------------------------------------------------------------------
# Rewriting
# ---------------------------------------------------------------------------


def _splice(
    text: str,
    spans: list[Finding],
    replacement_for: Callable[[Finding], str],
) -> str:
    """Replace each span of *text*, last one first.

    *spans* must already be sorted and non-overlapping.  Working from the
    end keeps the offsets of spans not yet applied valid.
    """
    result = text
    for finding in reversed(spans):
        if not 0 <= finding.start <= finding.end <= len(text):
            raise ValueError(
                f"Finding {finding.name!r} span {finding.start}:{finding.end} "
                f"is outside a text of length {len(text)}"
            )
        if finding.length == 0:
            continue
        result = result[: finding.start] + replacement_for(finding) + result[finding.end :]
    return result


def _replacement(finding: Finding) -> str:
    if finding.domain == DOMAIN_INJECTION:
        return ""
    return placeholder(finding.name)


def normalize_whitespace(text: str) -> str:
    """Tidy the gaps left behind after large spans are deleted."""
    text = _EXCESS_NEWLINES.sub("\n\n", text)
    text = _REPEATED_SPACES.sub(" ", text)
    return text.strip()


def redact_secrets(text: str, findings: Iterable[Finding]) -> str:
    """Replace every retained secret span with ``[REDACTED:<name>]``."""
    spans = resolve_overlaps(findings)
    if not text or not spans:
        return text
    return _splice(text, spans, lambda f: placeholder(f.name))


def remove_injections(text: str, findings: Iterable[Finding]) -> str:
    """Delete every retained injection span, then normalise whitespace."""
    spans = [f for f in resolve_overlaps(findings) if f.length]
    if not text or not spans:
        return text
    return normalize_whitespace(_splice(text, spans, lambda f: ""))


def rewrite(
    text: str,
    secrets: Iterable[Finding],
    injections: Iterable[Finding] = (),
) -> str:
    """Redact secrets and remove injections in a single pass over *text*.

    Both finding sets carry offsets into the original *text*, so they are
    resolved together and applied once.  Where a secret and an injection
    overlap, the earlier (or longer) span wins.
    """
    spans = resolve_overlaps([*secrets, *injections])
    if not text or not spans:
        return text
    result = _splice(text, spans, _replacement)
    if any(f.domain == DOMAIN_INJECTION and f.length for f in spans):
        result = normalize_whitespace(result)
    return result
