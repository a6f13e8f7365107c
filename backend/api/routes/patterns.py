"""Catalog endpoint.

GET /api/patterns — list every compiled detector with its metadata
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from api.dependencies import get_pattern_catalog
from schemas.api import PatternList, PatternResponse
from scrubber.patterns import PatternCatalog

router = APIRouter()


@router.get("", response_model=PatternList)
async def list_patterns(catalog: PatternCatalog = Depends(get_pattern_catalog)):
    return PatternList(
        patterns=[
            PatternResponse(
                name=p.name,
                domain=p.domain,
                severity=p.severity,
                description=p.description,
                check_entropy=p.check_entropy,
                regex=p.matcher.pattern,
            )
            for p in catalog.all()
        ],
        secrets=len(catalog.secrets),
        injections=len(catalog.injections),
    )
