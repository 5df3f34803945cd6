from typing import NoReturn

from fastapi import APIRouter, File, Form, HTTPException, Request, UploadFile, status

from app.ai.factory import get_text_generator
from app.core.config import settings
from app.core.errors import EngineError, LowConfidenceRejection
from app.core.rate_limit import rate_limit
from app.features.gap_analysis import analyze_gap
from app.features.quality_gate import validate_output
from app.features.scorer import score_resume
from app.normalize.job_target import resolve_job_target_label
from app.normalize.normalize_jd import extract_job_spec_with_warnings
from app.normalize.normalize_resume import structure_resume
from app.parsing.parse import ensure_usable_text, parse_upload
from app.schemas.analysis import GenerationResult, ParseResult, QualityGateResult
from app.schemas.api import (
    CoverLetterRequest,
    CoverLetterResponse,
    GenerateRequest,
    GenerateResponse,
    JobSpecResponse,
    JobTextRequest,
    ResumeJobRequest,
    ResumeTextRequest,
    ValidateRequest,
)
from app.schemas.normalized import GapReport, ScoreBreakdown
from app.services.cover_letter import generate_cover_letter
from app.services.pipeline import run_generation

router = APIRouter()

ALLOWED_UPLOAD_EXTENSIONS = {"pdf", "txt"}


def _raise_engine_http_error(exc: EngineError) -> NoReturn:
    detail: dict[str, object] = {"code": exc.code, "message": str(exc)}
    if isinstance(exc, LowConfidenceRejection):
        detail.update(confidence=exc.confidence, threshold=exc.threshold, warnings=exc.warnings)
    raise HTTPException(status_code=exc.status_code, detail=detail) from exc


def _generate(resume_text: str, job_text: str, job_url: str | None, prefer_heuristic_job: bool) -> GenerateResponse:
    try:
        result: GenerationResult = run_generation(
            resume_text,
            job_text,
            generator=get_text_generator(),
            prefer_heuristic_job=prefer_heuristic_job,
        )
    except EngineError as exc:
        _raise_engine_http_error(exc)
    label = resolve_job_target_label(job_text=job_text, job_url=job_url, analysis=result.analysis)
    return GenerateResponse(job_target_label=label, result=result)


@router.post("/resume/parse", response_model=ParseResult)
@rate_limit()
def parse_resume(request: Request, payload: ResumeTextRequest):
    _ = request
    try:
        text = ensure_usable_text(payload.resume_text)
        generator = None if payload.prefer_heuristic else get_text_generator()
        return structure_resume(text, generator=generator, prefer_heuristic=payload.prefer_heuristic)
    except EngineError as exc:
        _raise_engine_http_error(exc)


@router.post("/jobs/parse", response_model=JobSpecResponse)
@rate_limit()
def parse_job(request: Request, payload: JobTextRequest):
    _ = request
    job_spec, warnings = extract_job_spec_with_warnings(
        payload.job_text,
        generator=None if payload.prefer_heuristic else get_text_generator(),
        prefer_heuristic=payload.prefer_heuristic,
    )
    return JobSpecResponse(job_spec=job_spec, warnings=warnings)


@router.post("/resume/score", response_model=ScoreBreakdown)
@rate_limit()
def score(request: Request, payload: ResumeJobRequest):
    _ = request
    return score_resume(payload.resume, payload.job_spec)


@router.post("/resume/gap", response_model=GapReport)
@rate_limit()
def gap(request: Request, payload: ResumeJobRequest):
    _ = request
    return analyze_gap(payload.resume, payload.job_spec)


@router.post("/resume/validate", response_model=QualityGateResult)
@rate_limit()
def validate(request: Request, payload: ValidateRequest):
    _ = request
    return validate_output(payload.rewritten, payload.original, payload.evidence_pool, payload.evidence_map)


@router.post("/resume/generate", response_model=GenerateResponse)
@rate_limit()
def generate(request: Request, payload: GenerateRequest):
    _ = request
    return _generate(payload.resume_text, payload.job_text, payload.job_url, payload.prefer_heuristic_job)


@router.post("/resume/generate-from-pdf", response_model=GenerateResponse)
@rate_limit()
def generate_from_pdf(
    request: Request,
    file: UploadFile = File(...),
    job_text: str = Form(default=""),
    job_url: str | None = Form(default=None),
):
    _ = request
    filename = file.filename or "resume.pdf"
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if ext not in ALLOWED_UPLOAD_EXTENSIONS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported file type '.{ext}'. Allowed: {', '.join(sorted(ALLOWED_UPLOAD_EXTENSIONS))}.",
        )

    content = file.file.read(settings.max_upload_bytes + 1)
    if len(content) > settings.max_upload_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File too large. Maximum allowed size is {settings.max_upload_bytes // (1024 * 1024)} MB.",
        )

    try:
        document = parse_upload(content, filename)
    except EngineError as exc:
        _raise_engine_http_error(exc)
    return _generate(document.text, job_text, job_url, False)


@router.post("/cover-letter", response_model=CoverLetterResponse)
@rate_limit()
def cover_letter(request: Request, payload: CoverLetterRequest):
    _ = request
    generator = get_text_generator()
    job_spec = payload.job_spec
    warnings: list[str] = []
    if job_spec is None:
        job_spec, warnings = extract_job_spec_with_warnings(payload.job_text, generator=generator)
    result = generate_cover_letter(payload.resume, job_spec, payload.job_text, generator=generator)
    return CoverLetterResponse(text=result.text, source=result.source, warnings=[*warnings, *result.warnings])
