"""FastAPI application exposing card-number analysis.

Run with ``uvicorn cardbox.app.api:app`` or ``cardbox serve``.
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import Annotated, AsyncIterator

import httpx
from fastapi import Depends, FastAPI, File, HTTPException, Query, UploadFile
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, Field

from cardbox import __version__
from cardbox.app.config import load_settings, load_tracing_settings
from cardbox.domain.brands import POPULAR_BRANDS, BrandCategory, brands_in_category
from cardbox.infrastructure.ai.models import AnalysisResult
from cardbox.infrastructure.observability import (
    configure_tracing,
    format_prometheus,
    get_logger,
    log_exception,
)
from cardbox.services.card_analysis import CardAnalysisService

logger = get_logger(__name__)

SUPPORTED_CONTENT_TYPES = ("image/jpeg", "image/png", "image/webp")
DOWNLOAD_TIMEOUT = 30.0

_service: CardAnalysisService | None = None


def get_analysis_service() -> CardAnalysisService:
    """Return the process-wide analysis service, configured from ``$CARDBOX_CONFIG``."""
    global _service
    if _service is None:
        _service = CardAnalysisService(load_settings())
    return _service


def close_analysis_service() -> None:
    """Shut down the recognizer pool of the process-wide service, if any."""
    global _service
    if _service is not None:
        _service.close()
        _service = None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    tracing = load_tracing_settings()
    if tracing.enabled:
        configure_tracing(
            service_name=tracing.service_name, sample_rate=tracing.sample_rate
        )
    yield
    close_analysis_service()


app = FastAPI(
    title="CardBox API",
    description="Reads loyalty-card numbers from photographs",
    version=__version__,
    lifespan=lifespan,
)


AnalysisServiceDep = Annotated[CardAnalysisService, Depends(get_analysis_service)]


class AnalysisResponse(BaseModel):
    """Result of analysing one card photograph."""

    barcodes: list[str] = Field(default_factory=list)
    qrcodes: list[str] = Field(default_factory=list)
    text: str = Field(default="", description="Raw OCR transcript")
    numbers: list[str] = Field(
        default_factory=list, description="Card-number candidates, best first"
    )
    success: bool
    error: str | None = None
    barcode_format: str | None = Field(
        default=None, description="Symbology of the decoded barcode, e.g. EAN13"
    )
    best_value: str | None = Field(
        default=None, description="QR payload, else barcode, else best OCR number"
    )
    source: str = Field(description="'qr', 'barcode', 'ocr', 'none' or 'failed'")
    processing_time_ms: int

    @classmethod
    def from_result(cls, result: AnalysisResult, started: float) -> "AnalysisResponse":
        return cls(
            **result.to_dict(),
            best_value=result.best_value,
            source=result.source,
            processing_time_ms=int((time.perf_counter() - started) * 1000),
        )


class ImageURLRequest(BaseModel):
    """Request body for URL-based image analysis."""

    image_url: str = Field(description="URL of the image to analyze")


class TextRequest(BaseModel):
    """Request body for number extraction from already recognised text."""

    text: str = Field(description="OCR transcript or any free text")


class CandidateScoreResponse(BaseModel):
    candidate: str
    score: int
    components: dict[str, int] = Field(default_factory=dict)
    disqualified_by: str | None = None


class ExtractNumbersResponse(BaseModel):
    numbers: list[str] = Field(default_factory=list)
    candidates: list[CandidateScoreResponse] = Field(default_factory=list)


class BrandResponse(BaseModel):
    id: str
    name: str
    category: str
    logo_url: str
    description: str


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    tesseract_available: bool


@app.get("/")
async def root():
    """API root endpoint with links."""
    return {
        "name": "CardBox API",
        "version": __version__,
        "docs": "/docs",
        "endpoints": {
            "analyze": "/analyze",
            "analyze_url": "/analyze/url",
            "extract_numbers": "/extract-numbers",
            "brands": "/brands",
            "metrics": "/metrics",
        },
    }


@app.get("/health", response_model=HealthResponse)
async def health_check(service: AnalysisServiceDep) -> HealthResponse:
    """Check the health status of the service."""
    is_available = getattr(service.text_recognizer, "is_available", None)
    tesseract_ok = bool(is_available()) if callable(is_available) else True
    return HealthResponse(
        status="ok" if tesseract_ok else "degraded",
        version=__version__,
        tesseract_available=tesseract_ok,
    )


@app.post("/analyze", response_model=AnalysisResponse)
async def analyze_upload(
    service: AnalysisServiceDep,
    file: Annotated[UploadFile, File(description="Photograph of the card")],
) -> AnalysisResponse:
    """Analyse an uploaded card photograph.

    Accepts JPEG, PNG or WebP images. An image that cannot be decoded yields
    ``success=false`` with ``error`` set rather than an HTTP error.
    """
    if file.content_type not in SUPPORTED_CONTENT_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported content type: {file.content_type}. Use JPEG, PNG, or WebP.",
        )

    started = time.perf_counter()
    content = await file.read()
    result = await service.analyze(content)
    return AnalysisResponse.from_result(result, started)


@app.post("/analyze/url", response_model=AnalysisResponse)
async def analyze_url(
    request: ImageURLRequest, service: AnalysisServiceDep
) -> AnalysisResponse:
    """Download an image and analyse it."""
    started = time.perf_counter()
    try:
        async with httpx.AsyncClient(timeout=DOWNLOAD_TIMEOUT) as client:
            response = await client.get(request.image_url)
            response.raise_for_status()
    except httpx.HTTPError as e:
        logger.warning("Download of %s failed: %s", request.image_url, e)
        raise HTTPException(status_code=400, detail=f"Failed to download image: {e}")

    result = await service.analyze(response.content)
    return AnalysisResponse.from_result(result, started)


@app.post("/extract-numbers", response_model=ExtractNumbersResponse)
async def extract_numbers_from_text(
    request: TextRequest, service: AnalysisServiceDep
) -> ExtractNumbersResponse:
    """Extract card-number candidates from text, with their score breakdowns."""
    ranked = service.explain_text(request.text)
    return ExtractNumbersResponse(
        numbers=service.analyze_text(request.text),
        candidates=[
            CandidateScoreResponse(
                candidate=b.candidate,
                score=b.score,
                components=dict(b.components),
                disqualified_by=b.disqualified_by,
            )
            for b in ranked
        ],
    )


@app.get("/brands", response_model=list[BrandResponse])
async def list_brands(
    category: Annotated[str | None, Query(description="Filter by category")] = None,
) -> list[BrandResponse]:
    """List the popular brands offered when adding a card."""
    if category is None:
        brands = list(POPULAR_BRANDS)
    else:
        try:
            brands = brands_in_category(category)
        except ValueError:
            valid = ", ".join(c.value for c in BrandCategory)
            raise HTTPException(
                status_code=400,
                detail=f"Unknown category: {category}. Use one of: {valid}",
            )
    return [
        BrandResponse(
            id=b.id,
            name=b.name,
            category=b.category.value,
            logo_url=b.logo_url,
            description=b.description,
        )
        for b in brands
    ]


@app.get("/metrics", response_class=PlainTextResponse)
async def metrics() -> str:
    """Pipeline metrics in Prometheus text format."""
    return format_prometheus()


@app.exception_handler(Exception)
async def generic_exception_handler(request, exc):
    """Handle unexpected exceptions gracefully."""
    log_exception(logger, f"Unhandled error on {request.url.path}", exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "type": type(exc).__name__},
    )
