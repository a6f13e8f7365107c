from __future__ import annotations

import logging
from dataclasses import dataclass, field

from scrubber.entropy import (
    DEFAULT_MAX_LENGTH,
    DEFAULT_MIN_LENGTH,
    DEFAULT_THRESHOLD,
    extract_high_entropy_tokens,
    is_high_entropy,
)
from scrubber.patterns import (
    DOMAIN_INJECTION,
    DOMAIN_SECRET,
    HIGH_SEVERITIES,
    SEVERITIES,
    Pattern,
    PatternCatalog,
    get_catalog,
)

logger = logging.getLogger(__name__)

ENTROPY_FINDING_NAME = "high_entropy_string"
ENTROPY_FINDING_SEVERITY = "medium"

SOURCE_PATTERN = "pattern"
SOURCE_ENTROPY = "entropy"
SOURCE_AI = "ai"


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Finding:
    """A single located secret or injection phrase.

    ``value`` is kept out of ``repr`` so a finding can be logged or shown in
    an assertion message without exposing the secret.
    """

    name: str
    severity: str
    value: str = field(repr=False)
    start: int
    length: int
    source: str = SOURCE_PATTERN
    domain: str = DOMAIN_SECRET

    @property
    def end(self) -> int:
        return self.start + self.length

    @property
    def is_high_severity(self) -> bool:
        return self.severity in HIGH_SEVERITIES


@dataclass
class ScanResult:
    """Everything one scan found, split by domain."""

    secrets: list[Finding] = field(default_factory=list)
    injections: list[Finding] = field(default_factory=list)

    @property
    def findings(self) -> list[Finding]:
        return self.secrets + self.injections

    @property
    def counts(self) -> dict[str, int]:
        """Raw counts by domain and by severity class."""
        counts = {severity: 0 for severity in SEVERITIES}
        for finding in self.findings:
            counts[finding.severity] = counts.get(finding.severity, 0) + 1
        counts["secrets"] = len(self.secrets)
        counts["injections"] = len(self.injections)
        counts["high_severity"] = sum(1 for f in self.findings if f.is_high_severity)
        return counts


# ---------------------------------------------------------------------------
# Scanner
# ---------------------------------------------------------------------------


class Scanner:
    """Runs every catalog pattern plus the entropy catch-all over a text.

    The scanner holds no per-call state, so one instance can serve many
    threads at once.
    """

    def __init__(
        self,
        catalog: PatternCatalog | None = None,
        *,
        entropy_threshold: float = DEFAULT_THRESHOLD,
        entropy_min_length: int = DEFAULT_MIN_LENGTH,
        entropy_max_length: int = DEFAULT_MAX_LENGTH,
    ) -> None:
        self._catalog = catalog if catalog is not None else get_catalog()
        self._entropy_threshold = entropy_threshold
        self._entropy_min_length = entropy_min_length
        self._entropy_max_length = entropy_max_length

    @property
    def catalog(self) -> PatternCatalog:
        return self._catalog

    # -- public API ----------------------------------------------------------

    def scan(self, text: str, *, detect_injections: bool = True) -> ScanResult:
        """Return every secret (and optionally injection) finding in *text*."""
        if not text:
            return ScanResult()
        result = ScanResult(
            secrets=self.detect_secrets(text),
            injections=self.detect_injections(text) if detect_injections else [],
        )
        logger.debug(
            "Scan complete: %d secret, %d injection findings",
            len(result.secrets),
            len(result.injections),
        )
        return result

    def detect_secrets(self, text: str) -> list[Finding]:
        findings: list[Finding] = []
        claimed: set[int] = set()

        for pattern in self._catalog.secrets:
            for finding in self._run_pattern(pattern, text):
                findings.append(finding)
                claimed.add(finding.start)

        # Catch-all for unlabeled random strings
        for token in extract_high_entropy_tokens(
            text,
            threshold=self._entropy_threshold,
            min_length=self._entropy_min_length,
            max_length=self._entropy_max_length,
        ):
            if token.position in claimed:
                continue
            findings.append(
                Finding(
                    name=ENTROPY_FINDING_NAME,
                    severity=ENTROPY_FINDING_SEVERITY,
                    value=token.value,
                    start=token.position,
                    length=len(token.value),
                    source=SOURCE_ENTROPY,
                    domain=DOMAIN_SECRET,
                )
            )
        return findings

    def detect_injections(self, text: str) -> list[Finding]:
        findings: list[Finding] = []
        for pattern in self._catalog.injections:
            findings.extend(self._run_pattern(pattern, text))
        return findings

    # -- helpers -------------------------------------------------------------

    def _run_pattern(self, pattern: Pattern, text: str) -> list[Finding]:
        found: list[Finding] = []
        for match in pattern.matcher.finditer(text):
            # Group 1, when it took part in the match, is the sensitive part.
            if match.re.groups and match.group(1) is not None:
                value, start = match.group(1), match.start(1)
            else:
                value, start = match.group(), match.start()
            if not value:
                continue
            if pattern.check_entropy and not is_high_entropy(
                value, self._entropy_threshold
            ):
                continue
            found.append(
                Finding(
                    name=pattern.name,
                    severity=pattern.severity,
                    value=value,
                    start=start,
                    length=len(value),
                    source=SOURCE_PATTERN,
                    domain=pattern.domain,
                )
            )
        return found
