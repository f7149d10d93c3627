"""Uploads Router - CSV usage report ingestion.

Receives a base64-encoded CSV plus its filename, parses it and upserts one
row per (user, date).
"""

import base64
import binascii
import logging

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import require_account
from api.schemas.usage import UploadRequest, UploadResponse
from reports.importer import NO_DATA_MESSAGE, import_csv_text
from storage.database import DatabaseError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Uploads"], dependencies=[Depends(require_account)])


def _decode_upload(request: UploadRequest) -> str:
    try:
        raw = base64.b64decode(request.file)
    except (binascii.Error, ValueError):
        raise HTTPException(status_code=400, detail="File must be base64-encoded")
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="File must be UTF-8 encoded CSV")


@router.post("/upload", response_model=UploadResponse)
async def upload_usage_report(request: UploadRequest):
    """Import one usage report.

    Re-uploading the same file overwrites the same (user, date) rows.
    """
    if not request.file or not request.filename:
        raise HTTPException(status_code=400, detail="File and filename are required")

    content = _decode_upload(request)

    try:
        result = await import_csv_text(content, filename=request.filename)
    except DatabaseError as e:
        logger.error(f"Upload error: {e.message}")
        raise HTTPException(
            status_code=500,
            detail={"error": "Failed to process CSV file", "details": e.message},
        )

    if not result.success:
        raise HTTPException(
            status_code=400,
            detail={
                "error": NO_DATA_MESSAGE,
                "message": "The CSV file appears to be empty or improperly formatted",
            },
        )

    errors = result.error_messages()
    logger.info(
        f"Upload complete - {request.filename}: inserted {result.inserted_count}, "
        f"skipped {result.skipped_count}"
    )
    return UploadResponse(
        success=True,
        message="CSV uploaded and processed successfully",
        inserted_count=result.inserted_count,
        skipped_count=result.skipped_count,
        total_records=result.total_records,
        report_date=result.report_date,
        errors=errors or None,
    )
