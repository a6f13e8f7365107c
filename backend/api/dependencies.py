from fastapi import Depends

from config import Settings
from scrubber.options import AIOptions, BlockThreshold, SanitizeOptions
from scrubber.patterns import PatternCatalog
from scrubber.pipeline import Sanitizer, get_sanitizer
from schemas.api import SanitizeRequest


def get_pipeline() -> Sanitizer:
    return get_sanitizer()


def get_pattern_catalog(sanitizer: Sanitizer = Depends(get_pipeline)) -> PatternCatalog:
    return sanitizer.scanner.catalog


def build_options(body: SanitizeRequest, settings: Settings) -> SanitizeOptions:
    """Map a request body onto sanitize options, filling gaps from settings.

    Endpoints and API keys only ever come from settings, never the request.
    """
    if body.block_threshold is not None:
        threshold = BlockThreshold(**body.block_threshold.model_dump())
    else:
        threshold = BlockThreshold(
            secrets=settings.block_secrets_threshold,
            injections=settings.block_injections_threshold,
            high_severity=settings.block_high_severity_threshold,
        )

    ai = None
    if body.ai is not None and body.ai.enabled:
        provider = body.ai.provider or settings.ai_provider
        ai = AIOptions(
            enabled=True,
            provider=provider,
            model=body.ai.model or settings.ai_model,
            endpoint=settings.endpoint_for(provider),
            api_key=settings.api_key_for(provider),
            timeout=settings.ai_timeout_seconds,
            max_chars=settings.ai_max_chars,
            min_confidence=settings.ai_min_confidence,
        )

    return SanitizeOptions(
        mode=body.mode,
        block_threshold=threshold,
        detect_injections=body.detect_injections,
        ai=ai,
    )

