from app.api import (
    import_routes,
    knowledge_base_routes,
    llm_routes,
)

__all__ = [
    "import_routes",
    "knowledge_base_routes",
    "llm_routes",
]
