from __future__ import annotations

import json
from typing import Any, Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError

MODE_BLOCK = "block"
MODE_SANITIZE = "sanitize"

DEFAULT_AI_TIMEOUT = 10.0
DEFAULT_AI_MAX_CHARS = 4000
DEFAULT_AI_MIN_CONFIDENCE = 0.5

# camelCase aliases are accepted alongside the field names; errors report field names.
_MODEL_CONFIG = ConfigDict(
    extra="forbid",
    frozen=True,
    populate_by_name=True,
    loc_by_alias=False,
)


class InvalidOptionsError(ValueError):
    """Raised when sanitize options are missing or malformed.

    The message names the offending fields only, never their values.
    """


class BlockThreshold(BaseModel):
    """Counts at which block mode rejects content."""

    secrets: int = Field(3, ge=1)
    injections: int = Field(2, ge=1)
    high_severity: int = Field(1, ge=1, alias="highSeverity")

    model_config = _MODEL_CONFIG


class AIOptions(BaseModel):
    """Settings for the optional provider round trip."""

    enabled: bool = False
    provider: str = "ollama"
    model: str = "llama3"
    endpoint: str | None = None
    api_key: str | None = Field(None, repr=False, alias="apiKey")
    timeout: float = Field(DEFAULT_AI_TIMEOUT, gt=0)
    max_chars: int = Field(DEFAULT_AI_MAX_CHARS, ge=1, alias="maxChars")
    min_confidence: float = Field(
        DEFAULT_AI_MIN_CONFIDENCE, ge=0.0, le=1.0, alias="minConfidence"
    )

    model_config = _MODEL_CONFIG


class SanitizeOptions(BaseModel):
    """Per-call options.  ``mode`` has no default and must be given."""

    mode: Literal["block", "sanitize"]
    block_threshold: BlockThreshold = Field(default_factory=BlockThreshold, alias="blockThreshold")
    detect_injections: bool = Field(True, alias="detectInjections")
    ai: AIOptions | None = None

    model_config = _MODEL_CONFIG

    @property
    def ai_enabled(self) -> bool:
        return self.ai is not None and self.ai.enabled

    def cache_payload(self, *, include_ai: bool) -> str:
        """Canonical JSON of the options that influence a decision.

        The API key never enters the payload.  When *include_ai* is False the
        AI block is left out, since a pattern-only run ignores it.
        """
        if include_ai and self.ai_enabled:
            exclude: dict[str, Any] = {"ai": {"api_key"}}
        else:
            exclude = {"ai": True}
        data = self.model_dump(mode="json", exclude=exclude)
        return json.dumps(data, sort_keys=True, separators=(",", ":"))


def coerce_options(options: SanitizeOptions | Mapping[str, Any] | None) -> SanitizeOptions:
    """Turn *options* into a validated :class:`SanitizeOptions`."""
    if isinstance(options, SanitizeOptions):
        return options
    if options is None:
        raise InvalidOptionsError('options.mode is required and must be "block" or "sanitize"')
    if not isinstance(options, Mapping):
        raise InvalidOptionsError("options must be a SanitizeOptions or a mapping")
    try:
        return SanitizeOptions.model_validate(dict(options))
    except ValidationError as exc:
        locations = sorted(
            {".".join(str(part) for part in err["loc"]) for err in exc.errors()}
        )
        if "mode" in locations:
            raise InvalidOptionsError(
                'options.mode is required and must be "block" or "sanitize"'
            ) from None
        raise InvalidOptionsError(
            f"Invalid sanitize options: {', '.join(locations)}"
        ) from None
