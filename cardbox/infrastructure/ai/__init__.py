"""Recognizers and heuristics for reading card numbers from photographs."""

from .barcode_decoder import (
    DEFAULT_PROFILES,
    BarcodeDecoder,
    BarcodeProfile,
    decode_barcode,
)
from .candidate_scoring import CandidateScorer, score_candidate, select_best
from .image_loading import ImageLoadError, load_image
from .issuer_profiles import (
    DEFAULT_ISSUER_PATTERNS,
    IssuerPattern,
    IssuerProfileError,
    load_issuer_patterns,
)
from .models import AnalysisResult, DecodedBarcode, ScoreBreakdown, format_result
from .number_extraction import extract_candidates, extract_numbers, fix_ocr_errors
from .qr_decoder import QRDecoder, decode_qr
from .text_recognizer import OCRError, TesseractOCR, recognize_text

__all__ = [
    # Results
    "AnalysisResult",
    "DecodedBarcode",
    "ScoreBreakdown",
    "format_result",
    # Image input
    "ImageLoadError",
    "load_image",
    # Recognizers
    "QRDecoder",
    "decode_qr",
    "BarcodeDecoder",
    "BarcodeProfile",
    "DEFAULT_PROFILES",
    "decode_barcode",
    "TesseractOCR",
    "OCRError",
    "recognize_text",
    # Candidate extraction and ranking
    "extract_candidates",
    "extract_numbers",
    "fix_ocr_errors",
    "CandidateScorer",
    "score_candidate",
    "select_best",
    # Issuer table
    "IssuerPattern",
    "IssuerProfileError",
    "DEFAULT_ISSUER_PATTERNS",
    "load_issuer_patterns",
]
