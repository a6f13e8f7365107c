"""AI analysis client.

``analyze_with_ai()`` sends a truncated excerpt to the configured provider
and turns whatever comes back into an :class:`AIAnalysis` value.  It never
raises: transport errors, timeouts, bad status codes and unparseable replies
all become ``AIAnalysis.failure(...)`` so the caller can fall back to
pattern-only results.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any

import httpx

from llm.providers import create_provider
from scrubber.options import AIOptions

logger = logging.getLogger(__name__)

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AIFinding:
    """One threat reported by the model.  Positions are approximate."""

    type: str
    severity: str
    position: int | None = None


@dataclass(frozen=True)
class AIAnalysis:
    ok: bool
    secrets: tuple[AIFinding, ...] = ()
    injections: tuple[AIFinding, ...] = ()
    confidence: float = 0.0
    error: str | None = None

    @classmethod
    def failure(cls, reason: str) -> "AIAnalysis":
        return cls(ok=False, error=reason)


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------

def _coerce_finding(item: Any) -> AIFinding | None:
    if not isinstance(item, dict):
        return None
    position = item.get("position")
    if isinstance(position, bool) or not isinstance(position, (int, float)):
        position = None
    else:
        position = int(position)
    return AIFinding(
        type=str(item.get("type") or ""),
        severity=str(item.get("severity") or "").lower(),
        position=position,
    )


def _coerce_findings(items: Any) -> tuple[AIFinding, ...]:
    if not isinstance(items, list):
        return ()
    coerced = (_coerce_finding(item) for item in items)
    return tuple(f for f in coerced if f is not None)


def parse_analysis(text: str) -> AIAnalysis:
    """Extract the JSON object from a model reply.

    Prose before or after the object is ignored.  Anything that does not
    parse yields an empty analysis with confidence 0.
    """
    match = _JSON_OBJECT.search(text or "")
    if not match:
        return AIAnalysis(ok=True)
    try:
        data = json.loads(match.group())
    except json.JSONDecodeError:
        return AIAnalysis(ok=True)
    if not isinstance(data, dict):
        return AIAnalysis(ok=True)

    confidence = data.get("confidence")
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        confidence = 0.0

    return AIAnalysis(
        ok=True,
        secrets=_coerce_findings(data.get("secrets")),
        injections=_coerce_findings(data.get("injections")),
        confidence=max(0.0, min(1.0, float(confidence))),
    )


# ---------------------------------------------------------------------------
# Round trip
# ---------------------------------------------------------------------------

async def analyze_with_ai(
    content: str,
    options: AIOptions,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AIAnalysis:
    """Run one analysis request.  Failures are returned, not raised."""
    try:
        provider = create_provider(
            options.provider,
            options.model,
            endpoint=options.endpoint,
            api_key=options.api_key,
        )
    except ValueError:
        logger.warning("AI analysis skipped: unknown provider %r", options.provider)
        return AIAnalysis.failure("unknown_provider")

    excerpt = content[: options.max_chars]
    try:
        text = await provider.complete(excerpt, timeout=options.timeout, transport=transport)
    except httpx.TimeoutException:
        logger.warning("AI analysis via %s timed out", provider.provider_name)
        return AIAnalysis.failure("timeout")
    except Exception as exc:
        logger.warning(
            "AI analysis via %s failed (%s), using pattern results only",
            provider.provider_name,
            type(exc).__name__,
        )
        return AIAnalysis.failure(type(exc).__name__)

    analysis = parse_analysis(text)
    logger.debug(
        "AI analysis via %s: %d secrets, %d injections, confidence %.2f",
        provider.provider_name,
        len(analysis.secrets),
        len(analysis.injections),
        analysis.confidence,
    )
    return analysis
