"""OCR of card photographs with Tesseract."""

from __future__ import annotations

import pytesseract

from cardbox.infrastructure.observability.logging import get_logger
from cardbox.infrastructure.observability.tracing import traced

from .image_loading import ImageLoadError, ImageSource, ensure_image

logger = get_logger(__name__)

DEFAULT_LANGUAGES = "eng+fra"
FALLBACK_LANGUAGE = "eng"

# Digits, the letters the OCR correction table turns into digits, and the
# separators used in grouped card numbers.
DEFAULT_CHAR_WHITELIST = "0123456789OIlZSGTBgUWA|- "


class OCRError(Exception):
    """Raised when the OCR engine cannot produce text for an image."""


class TesseractOCR:
    """Runs Tesseract over an image and returns the raw transcript.

    Args:
        languages: Tesseract language string; when the packs are missing the
            recognizer retries with English only.
        char_whitelist: Characters Tesseract may emit. ``None`` disables the
            restriction.
        tesseract_cmd: Path to the tesseract executable. Auto-detected if None.
    """

    def __init__(
        self,
        languages: str = DEFAULT_LANGUAGES,
        char_whitelist: str | None = DEFAULT_CHAR_WHITELIST,
        tesseract_cmd: str | None = None,
    ) -> None:
        self.languages = languages
        self.char_whitelist = char_whitelist
        self.tesseract_cmd = tesseract_cmd
        self._tesseract_available: bool | None = None

    def is_available(self) -> bool:
        """Check if Tesseract is installed and callable."""
        if self._tesseract_available is not None:
            return self._tesseract_available

        try:
            if self.tesseract_cmd:
                pytesseract.pytesseract.tesseract_cmd = self.tesseract_cmd
            pytesseract.get_tesseract_version()
            self._tesseract_available = True
        except Exception as e:
            logger.warning("Tesseract not available: %s", str(e))
            self._tesseract_available = False

        return self._tesseract_available

    def _config(self) -> str:
        if not self.char_whitelist:
            return ""
        # Tesseract config values cannot hold raw spaces
        whitelist = self.char_whitelist.replace(" ", "")
        return f"-c preserve_interword_spaces=1 -c tessedit_char_whitelist={whitelist}"

    def _run(self, image, config: str) -> str:
        try:
            return pytesseract.image_to_string(image, lang=self.languages, config=config)
        except pytesseract.TesseractError:
            if self.languages == FALLBACK_LANGUAGE:
                raise
            # Fallback to English only if the other packs are not installed
            return pytesseract.image_to_string(
                image, lang=FALLBACK_LANGUAGE, config=config
            )

    @traced("recognize_text")
    def recognize_text(self, image: ImageSource) -> str:
        """Return the raw OCR text of ``image``.

        Raises:
            OCRError: If the image cannot be loaded or Tesseract fails.
        """
        try:
            picture = ensure_image(image)
        except ImageLoadError as e:
            raise OCRError(str(e)) from e

        config = self._config()
        try:
            try:
                text = self._run(picture, config)
            except pytesseract.TesseractError as e:
                if not config:
                    raise
                logger.info("Character whitelist rejected (%s), retrying unrestricted", e)
                text = self._run(picture, "")
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError) as e:
            raise OCRError(f"OCR failed: {e}") from e
        except RuntimeError as e:
            # pytesseract reports its own timeouts as RuntimeError
            raise OCRError(f"OCR failed: {e}") from e

        logger.debug("OCR produced %d characters", len(text))
        return text


def recognize_text(image: ImageSource) -> str:
    """Run OCR with the default settings."""
    return TesseractOCR().recognize_text(image)
