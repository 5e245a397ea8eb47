from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App
    app_name: str = "Resume Knowledge Base"
    debug: bool = True

    # CORS
    frontend_url: str = "http://localhost:5173"

    # Default extraction model (overridable per-request via headers)
    llm_provider: str = "google"
    llm_model: str = "gemini-2.0-flash"

    # LLM API Keys (per-request headers take precedence, these are optional server defaults)
    groq_api_key: Optional[str] = None
    openrouter_api_key: Optional[str] = None
    gemini_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None

    # Large PDFs can take many minutes to extract; keep this at or above 15 min
    llm_timeout_seconds: float = 900.0

    # Storage
    data_dir: str = "data"

    # Documents
    schema_version: str = "1.0.0"
    max_upload_bytes: int = 10 * 1024 * 1024

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()


# ── Model Registry ──────────────────────────────────────────────────────────

MODELS = {
    "google": {
        "gemini-2.0-flash": {
            "name": "Gemini 2.0 Flash",
            "model_id": "gemini/gemini-2.0-flash",
            "description": "Reads PDFs and images natively",
            "recommended": True,
            "supports_documents": True,
        },
        "gemini-1.5-flash": {
            "name": "Gemini 1.5 Flash",
            "model_id": "gemini/gemini-1.5-flash",
            "description": "Fallback when 2.0 hits rate limits",
            "recommended": False,
            "supports_documents": True,
        },
    },
    "anthropic": {
        "claude-3.5-sonnet": {
            "name": "Claude 3.5 Sonnet",
            "model_id": "anthropic/claude-3-5-sonnet-20240620",
            "description": "Strong on messy multi-column layouts",
            "recommended": True,
            "supports_documents": True,
        },
    },
    "groq": {
        "llama-3.3-70b": {
            "name": "LLaMA 3.3 70B",
            "model_id": "groq/llama-3.3-70b-versatile",
            "description": "Fast, text-only (DOCX/TXT uploads)",
            "recommended": True,
            "supports_documents": False,
        },
    },
    "openrouter": {
        "kimi-k2": {
            "name": "Kimi K2",
            "model_id": "openrouter/moonshotai/kimi-k2:free",
            "description": "Free tier, text-only",
            "recommended": False,
            "supports_documents": False,
        },
    },
}

# ── Prompt Configuration ────────────────────────────────────────────────────

PROMPT_CONFIG = {
    "resume_parser": {"temperature": 0.1, "max_tokens": 4096},
}
