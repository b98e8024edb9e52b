import structlog
from fastapi import APIRouter, File, Request, UploadFile

from paygate.config import settings
from paygate.exceptions import ValidationError
from paygate.middleware.rate_limit import limiter
from paygate.schemas.upload import UploadResponse
from paygate.services.upload_service import store_upload

router = APIRouter()
logger = structlog.get_logger()


@router.post("/document", response_model=UploadResponse)
@limiter.limit(settings.rate_limit_uploads)
async def upload_document(
    request: Request,
    document: UploadFile | None = File(None),
):
    """
    Store a document for a later contact message.

    The returned filename is what the contact form sends as uploadedFilename.
    """
    if document is None:
        raise ValidationError("No file uploaded")

    stored = await store_upload(settings, document)
    logger.info("document_uploaded", filename=stored.filename, size=stored.size)

    return UploadResponse(
        filename=stored.filename,
        originalname=stored.original_name,
        mimetype=stored.content_type,
        size=stored.size,
        path=f"/uploads/{stored.filename}",
    )
