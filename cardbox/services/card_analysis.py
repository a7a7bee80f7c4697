"""Card photograph analysis service.

This service orchestrates the card analysis pipeline:
1. Load the photograph once (the only step whose failure is fatal)
2. Run the QR decoder, the barcode decoder and OCR concurrently, each under
   its own timeout
3. Extract and rank card-number candidates from the OCR text
4. Merge everything by reliability: QR code, then barcode, then OCR
"""

from __future__ import annotations

import asyncio
import contextvars
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Callable, Protocol, TypeVar

from cardbox.app.config import AnalysisSettings, SuppressionPolicy, load_settings
from cardbox.infrastructure.ai.barcode_decoder import BarcodeDecoder
from cardbox.infrastructure.ai.candidate_scoring import CandidateScorer
from cardbox.infrastructure.ai.image_loading import ImageLoadError, load_image
from cardbox.infrastructure.ai.issuer_profiles import (
    DEFAULT_ISSUER_PATTERNS,
    load_issuer_patterns,
)
from cardbox.infrastructure.ai.models import (
    AnalysisResult,
    DecodedBarcode,
    ScoreBreakdown,
)
from cardbox.infrastructure.ai.number_extraction import (
    extract_candidates,
    extract_numbers,
)
from cardbox.infrastructure.ai.qr_decoder import QRDecoder
from cardbox.infrastructure.ai.text_recognizer import OCRError, TesseractOCR
from cardbox.infrastructure.observability import (
    get_logger,
    log_context,
    log_exception,
    record_analysis,
    record_exception,
    record_recognizer_result,
    set_span_attribute,
    trace_span,
)

logger = get_logger(__name__)

T = TypeVar("T")


class QRDecoderLike(Protocol):
    def decode(self, image: Any) -> list[str]: ...


class BarcodeDecoderLike(Protocol):
    def decode_with_format(self, image: Any) -> DecodedBarcode | None: ...


class TextRecognizerLike(Protocol):
    def recognize_text(self, image: Any) -> str: ...


class CardAnalysisService:
    """Reads the number of a loyalty card from a photograph.

    Recognizers run on a private thread pool so that one which ignores its
    timeout cannot hold up the event loop's default executor.
    """

    def __init__(
        self,
        settings: AnalysisSettings | None = None,
        *,
        qr_decoder: QRDecoderLike | None = None,
        barcode_decoder: BarcodeDecoderLike | None = None,
        text_recognizer: TextRecognizerLike | None = None,
        scorer: CandidateScorer | None = None,
    ) -> None:
        self.settings = settings or AnalysisSettings()
        s = self.settings

        self.qr_decoder = qr_decoder or QRDecoder(max_edge=s.qr_max_edge)
        self.barcode_decoder = barcode_decoder or BarcodeDecoder(
            min_short_edge=s.barcode_min_short_edge,
            max_long_edge=s.barcode_max_long_edge,
            inter_attempt_delay=s.barcode_inter_attempt_delay,
        )
        self.text_recognizer = text_recognizer or TesseractOCR(
            languages=s.ocr_languages, char_whitelist=s.ocr_char_whitelist
        )
        if scorer is None:
            patterns = (
                load_issuer_patterns(s.issuer_profiles_path)
                if s.issuer_profiles_path
                else DEFAULT_ISSUER_PATTERNS
            )
            scorer = CandidateScorer(patterns)
        self.scorer = scorer
        self._executor = ThreadPoolExecutor(
            max_workers=6, thread_name_prefix="cardbox-recognizer"
        )

    @classmethod
    def from_config(cls, path: str | Path | None = None) -> "CardAnalysisService":
        """Create a service from a JSON config file (or ``$CARDBOX_CONFIG``)."""
        return cls(load_settings(path))

    def close(self) -> None:
        """Release the recognizer threads without waiting for stragglers."""
        self._executor.shutdown(wait=False)

    # ------------------------------------------------------------------
    # Image analysis
    # ------------------------------------------------------------------

    async def analyze(self, data: bytes) -> AnalysisResult:
        """Analyse image bytes and return the merged result.

        Never raises for bad input: an undecodable image yields a result with
        ``success=False`` and ``error`` set.
        """
        started = time.perf_counter()
        with log_context(image_bytes=len(data)), trace_span("analyze_card"):
            try:
                image = load_image(data)
            except ImageLoadError as e:
                logger.error("Image could not be loaded: %s", e)
                record_analysis("failed", time.perf_counter() - started)
                return AnalysisResult.failure(str(e))

            s = self.settings
            qrcodes, barcode, text = await asyncio.gather(
                self._run("qr", self.qr_decoder.decode, image.copy(), s.qr_timeout, []),
                self._run(
                    "barcode",
                    self.barcode_decoder.decode_with_format,
                    image.copy(),
                    s.barcode_timeout,
                    None,
                ),
                self._run(
                    "ocr",
                    self.text_recognizer.recognize_text,
                    image.copy(),
                    s.ocr_timeout,
                    "",
                ),
            )

            result = self.merge(qrcodes, barcode, text)
            set_span_attribute("source", result.source)
            logger.info(
                "Analysis finished: source=%s best=%s", result.source, result.best_value
            )
            record_analysis(result.source, time.perf_counter() - started)
            return result

    def analyze_sync(self, data: bytes) -> AnalysisResult:
        """Blocking wrapper around :meth:`analyze`."""
        return asyncio.run(self.analyze(data))

    def analyze_file(self, path: str | Path) -> AnalysisResult:
        """Analyse an image file from disk."""
        try:
            data = Path(path).read_bytes()
        except OSError as e:
            logger.error("Cannot read image file %s: %s", path, e)
            return AnalysisResult.failure(f"Cannot read image file: {e}")
        return self.analyze_sync(data)

    async def _run(
        self,
        name: str,
        func: Callable[[Any], T],
        image: Any,
        timeout: float,
        default: T,
    ) -> T:
        """Run one recognizer; failures and timeouts yield ``default``.

        The recognizer thread runs in a copy of the current context, so its
        log lines and spans keep the analysis context.
        """
        loop = asyncio.get_running_loop()
        started = time.perf_counter()
        with trace_span(f"recognizer.{name}", timeout=timeout):
            ctx = contextvars.copy_context()
            try:
                value = await asyncio.wait_for(
                    loop.run_in_executor(self._executor, ctx.run, func, image), timeout
                )
            except asyncio.TimeoutError as e:
                logger.warning("Recognizer %s timed out after %.1fs", name, timeout)
                record_exception(e)
                outcome, value = "timeout", default
            except OCRError as e:
                logger.warning("Recognizer %s failed: %s", name, e)
                record_exception(e)
                outcome, value = "error", default
            except Exception as e:
                log_exception(logger, f"Recognizer {name} crashed", e, recognizer=name)
                record_exception(e)
                outcome, value = "error", default
            else:
                outcome = "hit" if value else "empty"

            set_span_attribute("outcome", outcome)
            record_recognizer_result(name, outcome, time.perf_counter() - started)
            return value

    def merge(
        self,
        qrcodes: list[str],
        barcode: DecodedBarcode | None,
        text: str,
    ) -> AnalysisResult:
        """Combine recognizer outputs into an :class:`AnalysisResult`.

        A decoded QR code or barcode demotes the OCR numbers: depending on
        the suppression policy they are dropped, or kept as a few secondary
        alternatives that differ from the decoded payload.
        """
        qr_values = tuple(qrcodes[:1])
        barcode_values = (barcode.value,) if barcode else ()
        numbers = tuple(extract_numbers(text, self.scorer)) if text else ()

        machine_codes = qr_values + barcode_values
        if machine_codes:
            if self.settings.suppression is SuppressionPolicy.CLEAR:
                numbers = ()
            else:
                numbers = tuple(n for n in numbers if n not in machine_codes)[
                    : self.settings.secondary_numbers_limit
                ]

        return AnalysisResult(
            barcodes=barcode_values,
            qrcodes=qr_values,
            text=text,
            numbers=numbers,
            success=AnalysisResult.is_successful(
                qr_values, barcode_values, numbers, text
            ),
            barcode_format=barcode.symbology if barcode else None,
        )

    # ------------------------------------------------------------------
    # Text analysis
    # ------------------------------------------------------------------

    def analyze_text(self, text: str) -> list[str]:
        """Card-number candidates from already recognised text, best first."""
        return extract_numbers(text, self.scorer)

    def explain_text(self, text: str) -> list[ScoreBreakdown]:
        """Every candidate found in ``text`` with its score, highest first."""
        return self.scorer.rank(extract_candidates(text))
