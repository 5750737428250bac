"""Health check endpoint."""
from __future__ import annotations
from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Liveness plus the OCR engine the pipeline is wired to."""
    return {
        "status": "ok",
        "service": "bill-analyzer-api",
        "ocr_engine": request.app.state.pipeline.ocr_client.get_engine_name(),
    }
