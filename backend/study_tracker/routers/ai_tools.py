"""AI tools router: stateless generation, parsing and extraction endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, UploadFile, File

from study_tracker.config import settings
from study_tracker.models.user import User
from study_tracker.schemas.study_material import GenerateMaterialRequest, ParseAssignmentRequest
from study_tracker.schemas.study_session import AnalyzeImageRequest
from study_tracker.middleware.auth import get_current_user
from study_tracker.middleware.rate_limit import ai_rate_limit
from study_tracker.services.ai_client import AIClientError
from study_tracker.services.ai_json import AIResponseParseError
from study_tracker.services.study_materials import generate_material, parse_assignment_text
from study_tracker.services.text_extraction import extract_text, UnsupportedFileType
from study_tracker.services.validation import VALID_MATERIAL_TYPES
from study_tracker.services.worklog_vision import analyze_worklog_image

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["ai"])


@router.post("/generate-study-material")
@ai_rate_limit
async def generate_study_material(
    request: Request,
    req: GenerateMaterialRequest,
    current_user: User = Depends(get_current_user),
):
    """Generate notes, a study guide, a practice test or flashcards from raw content."""
    if not req.content or not req.content.strip():
        raise HTTPException(status_code=400, detail="Content is required")
    if req.type not in VALID_MATERIAL_TYPES:
        raise HTTPException(
            status_code=400,
            detail="Valid type is required (notes, study_guide, practice_test, flashcards)",
        )
    try:
        return await generate_material(req.type, req.content)
    except (AIClientError, AIResponseParseError):
        logger.exception("Study material generation failed")
        raise HTTPException(status_code=500, detail="Failed to generate study material")


@router.post("/parse-assignment")
@ai_rate_limit
async def parse_assignment(
    request: Request,
    req: ParseAssignmentRequest,
    current_user: User = Depends(get_current_user),
):
    """Turn pasted assignment text into structured fields."""
    if not req.text or not req.text.strip():
        raise HTTPException(status_code=400, detail="Text is required")
    try:
        return await parse_assignment_text(req.text)
    except (AIClientError, AIResponseParseError):
        logger.exception("Assignment parsing failed")
        raise HTTPException(status_code=500, detail="Failed to parse assignment text")


@router.post("/extract-text")
async def extract_text_from_file(
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
):
    """Pull the text out of an uploaded PDF, DOCX, TXT, MD or RTF file."""
    data = await file.read()
    if len(data) > settings.MAX_UPLOAD_SIZE:
        raise HTTPException(status_code=400, detail="File too large")
    try:
        text = extract_text(data, file.filename or "", file.content_type or "")
    except UnsupportedFileType as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=500, detail=str(e))

    if not text:
        raise HTTPException(status_code=400, detail="Could not extract any text from the file")
    return {
        "text": text,
        "fileName": file.filename,
        "fileType": (file.content_type or "").lower() or "unknown",
    }


@router.post("/analyze-worklog-image")
@ai_rate_limit
async def analyze_image(
    request: Request,
    req: AnalyzeImageRequest,
    current_user: User = Depends(get_current_user),
):
    """Draft a worklog from a photo of completed schoolwork."""
    if not req.imageBase64:
        raise HTTPException(status_code=400, detail="No image provided")
    try:
        return await analyze_worklog_image(req.imageBase64, req.mimeType)
    except (AIClientError, AIResponseParseError):
        logger.exception("Worklog image analysis failed")
        raise HTTPException(status_code=500, detail="Failed to analyze image")
