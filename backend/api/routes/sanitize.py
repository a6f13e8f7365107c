"""Sanitize endpoint.

POST /api/sanitize — scan content and return a block/clean decision

A blocked result is still a 200; callers check ``blocked``.  An invalid
``mode`` fails request validation with a 422.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import build_options, get_pipeline
from config import Settings, get_settings
from schemas.api import DecisionResponse, SanitizeRequest
from scrubber.options import InvalidOptionsError
from scrubber.pipeline import Sanitizer

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("", response_model=DecisionResponse)
async def sanitize_content(
    body: SanitizeRequest,
    sanitizer: Sanitizer = Depends(get_pipeline),
    settings: Settings = Depends(get_settings),
):
    try:
        options = build_options(body, settings)
        decision = await sanitizer.sanitize(body.content, options)
    except InvalidOptionsError as exc:
        raise HTTPException(status_code=422, detail=str(exc))

    if decision.blocked:
        logger.info("Request blocked (%d threats)", decision.summary.total)
    return DecisionResponse.from_decision(decision)
