"""
Request-scoped helpers — build the extraction client from headers, hand out the store.

Both are FastAPI dependencies so tests can swap them via dependency_overrides.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from fastapi import Header, HTTPException

from app.config import settings
from app.exceptions import InputError
from app.services.llm_service import LLMExtractionClient
from app.services.section_store import YamlSectionStore

# Maps our provider key → the Settings field holding its server-side default key
PROVIDER_KEY_SETTING = {
    "groq": "groq_api_key",
    "google": "gemini_api_key",
    "openrouter": "openrouter_api_key",
    "anthropic": "anthropic_api_key",
}


def server_key(provider: str) -> str | None:
    """Server-side default key for a provider, if one is configured."""
    field = PROVIDER_KEY_SETTING.get(provider)
    return getattr(settings, field, None) if field else None


@lru_cache()
def get_section_store() -> YamlSectionStore:
    """FastAPI dependency: the process-wide YAML-backed section store."""
    return YamlSectionStore(Path(settings.data_dir) / "knowledge_bases.yaml")


async def get_extraction_client(
    x_llm_provider: Optional[str] = Header(None, alias="X-LLM-Provider"),
    x_llm_model: Optional[str] = Header(None, alias="X-LLM-Model"),
    x_llm_key: Optional[str] = Header(None, alias="X-LLM-Key"),
) -> LLMExtractionClient:
    """FastAPI dependency that builds a per-request extraction client."""
    provider = x_llm_provider or settings.llm_provider
    model_key = x_llm_model or settings.llm_model
    api_key = x_llm_key or server_key(provider)
    if not api_key:
        raise HTTPException(
            status_code=400,
            detail=f"Missing API key for provider '{provider}'. Send X-LLM-Key or configure a server key.",
        )
    try:
        return LLMExtractionClient(provider=provider, model_key=model_key, api_key=api_key)
    except InputError as e:
        raise HTTPException(status_code=400, detail=str(e))
