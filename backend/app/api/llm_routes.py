from fastapi import APIRouter

from app.services.llm_service import get_providers_info

router = APIRouter()


@router.get("/providers")
async def list_providers():
    """
    List the extraction providers and their models.
    Models without ``supports_documents`` only accept DOCX/TXT uploads.
    """
    return {"providers": get_providers_info()}
