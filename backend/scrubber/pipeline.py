"""Sanitize pipeline.

Wires the scanner, the optional AI pass, the decision engine and the
decision cache together.  ``Sanitizer.sanitize`` is the full async path;
``Sanitizer.sanitize_sync`` runs patterns and entropy only.
"""

from __future__ import annotations

import logging
import re
from functools import lru_cache
from typing import Any, Mapping

import httpx

from config import get_settings
from llm.client import AIAnalysis, AIFinding, analyze_with_ai
from scrubber.cache import DecisionCache
from scrubber.decision import Decision, decide
from scrubber.options import SanitizeOptions, coerce_options
from scrubber.patterns import DOMAIN_INJECTION, DOMAIN_SECRET, SEVERITIES
from scrubber.scanner import SOURCE_AI, Finding, Scanner, ScanResult

logger = logging.getLogger(__name__)

AI_SECRET_NAME = "ai_detected_secret"
AI_INJECTION_NAME = "ai_detected_injection"
AI_DEFAULT_SEVERITY = "medium"

_NAME_CHARS = re.compile(r"[^a-z0-9]+")

OptionsLike = SanitizeOptions | Mapping[str, Any]


# ---------------------------------------------------------------------------
# AI merge
# ---------------------------------------------------------------------------

def _ai_finding_name(raw: str, fallback: str) -> str:
    name = _NAME_CHARS.sub("_", raw.lower()).strip("_")[:64]
    return name or fallback


def _covered(position: int, findings: list[Finding]) -> bool:
    return any(f.start <= position < f.end for f in findings)


def _convert(
    items: tuple[AIFinding, ...],
    existing: list[Finding],
    *,
    text_length: int,
    domain: str,
    fallback_name: str,
) -> list[Finding]:
    converted: list[Finding] = []
    for item in items:
        position = min(max(item.position or 0, 0), text_length)
        if _covered(position, existing):
            continue
        severity = item.severity if item.severity in SEVERITIES else AI_DEFAULT_SEVERITY
        # Zero-length: counted by the decision, never spliced into the text.
        converted.append(
            Finding(
                name=_ai_finding_name(item.type, fallback_name),
                severity=severity,
                value="",
                start=position,
                length=0,
                source=SOURCE_AI,
                domain=domain,
            )
        )
    return converted


def merge_ai_findings(
    text: str,
    scan: ScanResult,
    analysis: AIAnalysis,
    *,
    min_confidence: float,
    detect_injections: bool = True,
) -> ScanResult:
    """Fold a confident AI analysis into *scan*.

    Only reports at offsets no pattern already covers are added.
    """
    if not analysis.ok or analysis.confidence < min_confidence:
        return scan

    secrets = scan.secrets + _convert(
        analysis.secrets,
        scan.secrets,
        text_length=len(text),
        domain=DOMAIN_SECRET,
        fallback_name=AI_SECRET_NAME,
    )
    injections = list(scan.injections)
    if detect_injections:
        injections += _convert(
            analysis.injections,
            scan.injections,
            text_length=len(text),
            domain=DOMAIN_INJECTION,
            fallback_name=AI_INJECTION_NAME,
        )
    return ScanResult(secrets=secrets, injections=injections)


# ---------------------------------------------------------------------------
# Sanitizer
# ---------------------------------------------------------------------------

class Sanitizer:
    """Holds the scanner and cache shared by every sanitize call."""

    def __init__(
        self,
        scanner: Scanner | None = None,
        cache: DecisionCache[Decision] | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._scanner = scanner if scanner is not None else Scanner()
        self._cache: DecisionCache[Decision] = cache if cache is not None else DecisionCache()
        self._transport = transport

    @property
    def scanner(self) -> Scanner:
        return self._scanner

    @property
    def cache(self) -> DecisionCache[Decision]:
        return self._cache

    # -- public API ----------------------------------------------------------

    async def sanitize(self, content: str | None, options: OptionsLike) -> Decision:
        """Scan, optionally consult the AI provider, then block or clean."""
        opts = coerce_options(options)
        if not self._has_content(content):
            return Decision.clean()

        key = self._key(content, opts, include_ai=opts.ai_enabled)
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Decision cache hit")
            return cached

        scan = self._scanner.scan(content, detect_injections=opts.detect_injections)
        store = True
        if opts.ai_enabled:
            analysis = await analyze_with_ai(content, opts.ai, transport=self._transport)
            # A failed round trip is retried on the next call, not cached.
            store = analysis.ok
            scan = merge_ai_findings(
                content,
                scan,
                analysis,
                min_confidence=opts.ai.min_confidence,
                detect_injections=opts.detect_injections,
            )
        return self._finish(key, content, scan, opts, store=store)

    def sanitize_sync(self, content: str | None, options: OptionsLike) -> Decision:
        """Pattern and entropy detection only.  The AI block is ignored."""
        opts = coerce_options(options)
        if not self._has_content(content):
            return Decision.clean()

        key = self._key(content, opts, include_ai=False)
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Decision cache hit")
            return cached

        scan = self._scanner.scan(content, detect_injections=opts.detect_injections)
        return self._finish(key, content, scan, opts)

    # -- helpers -------------------------------------------------------------

    @staticmethod
    def _has_content(content: Any) -> bool:
        if content is None or content == "":
            return False
        if not isinstance(content, str):
            raise TypeError(f"content must be a str, not {type(content).__name__}")
        return True

    def _key(self, content: str, opts: SanitizeOptions, *, include_ai: bool) -> str:
        return self._cache.hash_key(content, opts.cache_payload(include_ai=include_ai))

    def _finish(
        self,
        key: str,
        content: str,
        scan: ScanResult,
        opts: SanitizeOptions,
        *,
        store: bool = True,
    ) -> Decision:
        decision = decide(
            content,
            scan.secrets,
            scan.injections,
            opts,
            rescan=self._scanner.detect_secrets,
        )
        if store:
            self._cache.set(key, decision)
        logger.debug(
            "Sanitized %d chars in %s mode: blocked=%s secrets=%d injections=%d",
            len(content),
            opts.mode,
            decision.blocked,
            decision.summary.secrets,
            decision.summary.injections,
        )
        return decision


@lru_cache
def get_sanitizer() -> Sanitizer:
    """Process-wide sanitizer built from settings."""
    settings = get_settings()
    return Sanitizer(
        scanner=Scanner(entropy_threshold=settings.entropy_threshold),
        cache=DecisionCache(
            max_size=settings.cache_max_size,
            ttl=settings.cache_ttl_seconds,
        ),
    )


async def sanitize(content: str | None, options: OptionsLike) -> Decision:
    return await get_sanitizer().sanitize(content, options)


def sanitize_sync(content: str | None, options: OptionsLike) -> Decision:
    return get_sanitizer().sanitize_sync(content, options)
