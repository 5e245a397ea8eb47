"""
LLM Service — the resume extraction client, via LiteLLM.

Responsibilities:
  • Resolve a provider/model from our registry into a LiteLLM model id
  • Send the extraction prompt, with the uploaded document attached when there is one
  • Wrap every provider failure (network, quota, auth) in ServiceError
  • Recover a single JSON object from the free-form reply (fences, preambles)
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Protocol

import litellm
from litellm import acompletion

from app.config import MODELS, PROMPT_CONFIG, settings
from app.exceptions import InputError, MalformedResponse, ServiceError
from app.prompts.resume_parser import build_prompt
from app.utils.text_cleanup import truncate

logger = logging.getLogger(__name__)

# Silence verbose LiteLLM logs in dev
litellm.suppress_debug_info = True
litellm.set_verbose = False

# Leading ```json / ``` and trailing ``` around the whole reply
_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*\n?(.*?)\n?\s*```$", re.S)

_SNIPPET_CHARS = 200


# ── Client ───────────────────────────────────────────────────────────────────


class ExtractionClient(Protocol):
    """Anything that can turn an instruction (+ optional document) into text."""

    model_id: str | None

    async def complete(
        self,
        instruction_text: str,
        attached_document: dict[str, str] | None = None,
    ) -> str: ...


def resolve_model(provider: str, model_key: str) -> dict[str, Any]:
    """Look up a model entry from our registry."""
    provider_models = MODELS.get(provider)
    if not provider_models:
        raise InputError(f"Unknown provider: {provider}")
    model_entry = provider_models.get(model_key)
    if not model_entry:
        raise InputError(f"Unknown model: {model_key} for provider {provider}")
    return model_entry


def get_providers_info() -> list[dict[str, Any]]:
    """
    Provider/model listing for the frontend's model picker.
    No secrets are exposed, only registry metadata.
    """
    providers = []
    for provider_key, models in MODELS.items():
        providers.append({
            "id": provider_key,
            "models": [
                {
                    "key": model_key,
                    "name": info["name"],
                    "model_id": info["model_id"],
                    "description": info["description"],
                    "recommended": info.get("recommended", False),
                    "supports_documents": info.get("supports_documents", False),
                }
                for model_key, info in models.items()
            ],
        })
    return providers


class LLMExtractionClient:
    """
    Extraction client backed by LiteLLM.

    One instance per request; the API key comes from the caller and is never
    stored server-side.
    """

    def __init__(
        self,
        *,
        provider: str,
        model_key: str,
        api_key: str | None,
        timeout: float | None = None,
    ):
        entry = resolve_model(provider, model_key)
        self.provider = provider
        self.model_key = model_key
        self.model_id: str | None = entry["model_id"]
        self.supports_documents: bool = entry.get("supports_documents", False)
        self._api_key = api_key
        self._timeout = timeout if timeout is not None else settings.llm_timeout_seconds

    async def complete(
        self,
        instruction_text: str,
        attached_document: dict[str, str] | None = None,
    ) -> str:
        """
        Send one extraction request and return the first text block of the reply.

        ``attached_document`` is ``{"base64": ..., "media_type": ...}``.
        """
        if attached_document and not self.supports_documents:
            raise InputError(
                f"Model '{self.model_key}' cannot read attached documents. "
                "Pick a document-capable model or upload DOCX/TXT instead."
            )

        content: list[dict[str, Any]] = []
        if attached_document:
            content.append(_document_part(attached_document))
        content.append({"type": "text", "text": instruction_text})

        config = PROMPT_CONFIG["resume_parser"]
        kwargs: dict[str, Any] = {
            "model": self.model_id,
            "messages": [{"role": "user", "content": content}],
            "temperature": config["temperature"],
            "max_tokens": config["max_tokens"],
            "timeout": self._timeout,
        }
        if self._api_key:
            kwargs["api_key"] = self._api_key

        logger.info(
            f"LLM call: provider={self.provider} model={self.model_id} "
            f"document={'yes' if attached_document else 'no'} timeout={self._timeout}s"
        )

        try:
            response = await acompletion(**kwargs)
        except Exception as e:
            logger.error(f"LLM error ({self.provider}/{self.model_key}): {e}")
            raise ServiceError(f"Error parsing resume: {e}") from e

        try:
            text = response.choices[0].message.content or ""
        except (AttributeError, IndexError) as e:
            raise ServiceError(f"Error parsing resume: unexpected response shape ({e})") from e

        logger.info(f"LLM response: {len(text)} chars, usage={getattr(response, 'usage', None)}")
        return text


def _document_part(attached_document: dict[str, str]) -> dict[str, Any]:
    """Build the LiteLLM content part for a base64 document."""
    media_type = attached_document["media_type"]
    data_url = f"data:{media_type};base64,{attached_document['base64']}"
    if media_type.startswith("image/"):
        return {"type": "image_url", "image_url": {"url": data_url}}
    return {"type": "file", "file": {"file_data": data_url}}


# ── Extraction ───────────────────────────────────────────────────────────────


async def request_extraction(
    client: ExtractionClient,
    *,
    resume_text: str | None = None,
    encoded_file: str | None = None,
    content_type: str | None = None,
) -> str:
    """Validate input and return the model's raw reply (no JSON recovery yet)."""
    if not resume_text and not encoded_file:
        raise InputError("Missing resumeText or encodedFile: nothing to parse.")
    if encoded_file and not content_type:
        raise InputError("Missing contentType for encodedFile.")

    if resume_text:
        return await client.complete(build_prompt(resume_text))
    return await client.complete(
        build_prompt(),
        attached_document={"base64": encoded_file, "media_type": content_type},
    )


def strip_code_fence(raw: str) -> str:
    """Remove a ```json ... ``` (or bare ```) wrapper around the reply, then trim."""
    text = raw.strip()
    match = _FENCE_RE.match(text)
    if match:
        return match.group(1).strip()
    return text


def parse_json_response(raw: str) -> dict[str, Any]:
    """
    Recover a single JSON object from free-form model output.

    Tries the (fence-stripped) text as-is first, then falls back to the
    substring between the first ``{`` and the last ``}``.
    """
    text = strip_code_fence(raw)

    try:
        parsed = json.loads(text)
        if isinstance(parsed, dict):
            return parsed
    except json.JSONDecodeError:
        pass

    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end > start:
        try:
            parsed = json.loads(text[start:end + 1])
            if isinstance(parsed, dict):
                return parsed
        except json.JSONDecodeError:
            pass

    snippet = truncate(raw.strip(), _SNIPPET_CHARS)
    raise MalformedResponse(
        f"Could not parse LLM response as a JSON object: {snippet}",
        snippet=snippet,
    )
