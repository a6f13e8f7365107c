from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from scrubber.decision import Decision


# --- Sanitize Schemas ---

class ThresholdBody(BaseModel):
    secrets: int = Field(3, ge=1)
    injections: int = Field(2, ge=1)
    high_severity: int = Field(1, ge=1)


class AIRequest(BaseModel):
    enabled: bool = False
    provider: str | None = Field(None, max_length=20)
    model: str | None = Field(None, max_length=100)


class SanitizeRequest(BaseModel):
    content: str = Field(..., max_length=1_000_000)
    mode: Literal["block", "sanitize"]
    block_threshold: ThresholdBody | None = None
    detect_injections: bool = True
    ai: AIRequest | None = None


class ThreatCounts(BaseModel):
    secrets: int = 0
    injections: int = 0
    high_severity: int = 0
    by_name: dict[str, int] = {}  # pattern name -> count


class DecisionResponse(BaseModel):
    blocked: bool
    safe: bool
    sanitized: str | None = None
    threats: ThreatCounts
    reason: str | None = None
    actions: list[str] = []

    @classmethod
    def from_decision(cls, decision: Decision) -> "DecisionResponse":
        summary = decision.summary
        return cls(
            blocked=decision.blocked,
            safe=decision.safe,
            sanitized=decision.sanitized_text,
            threats=ThreatCounts(
                secrets=summary.secrets,
                injections=summary.injections,
                high_severity=summary.high_severity,
                by_name=dict(summary.by_name),
            ),
            reason=decision.reason,
            actions=list(decision.actions),
        )


# --- Catalog Schemas ---

class PatternResponse(BaseModel):
    name: str
    domain: str
    severity: str
    description: str
    check_entropy: bool = False
    regex: str


class PatternList(BaseModel):
    patterns: list[PatternResponse]
    secrets: int
    injections: int


# --- Provider Schemas ---

class ProviderResponse(BaseModel):
    name: str
    format: str
    endpoint: str
    requires_key: bool
    configured: bool


class ProviderList(BaseModel):
    providers: list[ProviderResponse]
    default_provider: str
    default_model: str
