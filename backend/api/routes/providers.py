"""AI provider endpoint.

GET /api/providers — list analysis providers and whether each is configured
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from config import Settings, get_settings
from llm.providers import PROVIDERS
from schemas.api import ProviderList, ProviderResponse

router = APIRouter()


@router.get("", response_model=ProviderList)
async def list_providers(settings: Settings = Depends(get_settings)):
    providers: list[ProviderResponse] = []
    for name, cls in PROVIDERS.items():
        requires_key = cls.auth_header is not None
        providers.append(ProviderResponse(
            name=name,
            format=cls.request_format,
            endpoint=settings.endpoint_for(name) or cls.default_endpoint,
            requires_key=requires_key,
            configured=not requires_key or settings.api_key_for(name) is not None,
        ))
    return ProviderList(
        providers=providers,
        default_provider=settings.ai_provider,
        default_model=settings.ai_model,
    )
