"""Bill upload route: synchronous analysis of a single bill."""
from __future__ import annotations
import structlog
from fastapi import APIRouter, File, HTTPException, Request, UploadFile

from ...errors import BillInvariantError, OCRError, UnsupportedFileError
from ...models.internal import ResolutionSource
from ...pipeline import BillAnalysisPipeline

router = APIRouter()
logger = structlog.get_logger(__name__)


def get_pipeline(request: Request) -> BillAnalysisPipeline:
    return request.app.state.pipeline


@router.post("")
async def analyze_bill(request: Request, file: UploadFile = File(...)):
    """Upload a bill image or PDF and return the completed record.

    Every field of the record is filled in; ``provenance`` says which values
    were read from the bill and which were derived or synthesized.
    """
    file_bytes = await file.read()
    filename = file.filename or "upload"
    pipeline = get_pipeline(request)

    try:
        analysis = await pipeline.process(file_bytes, filename)
    except UnsupportedFileError as e:
        logger.info("bill_rejected", filename=filename, reason=e.detail)
        raise HTTPException(status_code=400, detail=e.user_message)
    except OCRError as e:
        logger.warning("bill_ocr_failed", filename=filename, error=e.detail)
        raise HTTPException(status_code=422, detail=e.user_message)
    except BillInvariantError as e:
        logger.error("bill_invariant_broken", filename=filename, error=e.detail, issues=len(e.issues))
        raise HTTPException(status_code=500, detail=e.user_message)

    logger.info(
        "bill_analyzed",
        filename=filename,
        synthesized=len(analysis.fields_from(ResolutionSource.SYNTHESIZED)),
    )
    return analysis.to_response()
