"""Tests for the card analysis orchestration (recognizers are faked)."""

import asyncio
import json
import logging
import time

import pytest

from cardbox.app.config import AnalysisSettings, SuppressionPolicy
from cardbox.infrastructure.ai.models import DecodedBarcode
from cardbox.infrastructure.ai.text_recognizer import OCRError
from cardbox.infrastructure.observability.logging import ContextualFormatter
from cardbox.infrastructure.observability.metrics import get_metrics_summary
from cardbox.services.card_analysis import CardAnalysisService


class FakeQR:
    def __init__(self, payloads=None, error=None, delay=0.0):
        self.payloads = payloads or []
        self.error = error
        self.delay = delay
        self.calls = 0

    def decode(self, image):
        self.calls += 1
        if self.delay:
            time.sleep(self.delay)
        if self.error:
            raise self.error
        return list(self.payloads)


class FakeBarcode:
    def __init__(self, found=None, error=None):
        self.found = found
        self.error = error
        self.calls = 0

    def decode_with_format(self, image):
        self.calls += 1
        if self.error:
            raise self.error
        return self.found


class FakeOCR:
    def __init__(self, text="", error=None):
        self.text = text
        self.error = error
        self.calls = 0

    def recognize_text(self, image):
        self.calls += 1
        if self.error:
            raise self.error
        return self.text


EAN = DecodedBarcode(value="4006381333931", symbology="EAN13", profile="HighRes-AllFormats")
OCR_TEXT = "Carte fidélité N° 4006381333931 client 4821 7305 96"


def _service(settings=None, qr=None, bc=None, ocr=None):
    return CardAnalysisService(
        settings,
        qr_decoder=qr or FakeQR(),
        barcode_decoder=bc or FakeBarcode(),
        text_recognizer=ocr or FakeOCR(),
    )


class TestAnalyze:
    """End-to-end analysis with faked recognizers."""

    def test_qr_code_is_reported(self, blank_png):
        service = _service(qr=FakeQR(["LIDL-908213"]))
        result = service.analyze_sync(blank_png)

        assert result.success is True
        assert result.qrcodes == ("LIDL-908213",)
        assert result.barcodes == ()
        assert result.numbers == ()
        assert result.best_value == "LIDL-908213"
        assert result.error is None

    def test_barcode_caps_ocr_numbers(self, blank_png):
        service = _service(bc=FakeBarcode(EAN), ocr=FakeOCR(OCR_TEXT))
        result = service.analyze_sync(blank_png)

        assert result.barcodes == ("4006381333931",)
        assert result.barcode_format == "EAN13"
        assert len(result.numbers) <= 2
        assert "4006381333931" not in result.numbers
        assert result.best_value == "4006381333931"

    def test_clear_policy_drops_ocr_numbers(self, blank_png):
        settings = AnalysisSettings(suppression=SuppressionPolicy.CLEAR)
        service = _service(settings, bc=FakeBarcode(EAN), ocr=FakeOCR(OCR_TEXT))
        result = service.analyze_sync(blank_png)

        assert result.barcodes == ("4006381333931",)
        assert result.numbers == ()
        assert result.text == OCR_TEXT

    def test_ocr_numbers_without_machine_code(self, blank_png):
        service = _service(ocr=FakeOCR("Carte fidélité N° 4006381333931"))
        result = service.analyze_sync(blank_png)

        assert result.success is True
        assert result.numbers[0] == "4006381333931"
        assert 1 <= len(result.numbers) <= 3
        assert result.source == "ocr"

    def test_nothing_found_is_not_an_error(self, blank_png):
        service = _service(ocr=FakeOCR("#@! ~"))
        result = service.analyze_sync(blank_png)

        assert result.success is False
        assert result.error is None
        assert result.qrcodes == result.barcodes == result.numbers == ()

    def test_undecodable_image_sets_error(self):
        qr, bc, ocr = FakeQR(), FakeBarcode(), FakeOCR()
        service = _service(qr=qr, bc=bc, ocr=ocr)
        result = service.analyze_sync(b"not an image")

        assert result.success is False
        assert result.error
        assert qr.calls == bc.calls == ocr.calls == 0

    def test_failing_recognizer_contributes_nothing(self, blank_png):
        service = _service(
            qr=FakeQR(error=RuntimeError("zbar crashed")),
            bc=FakeBarcode(EAN),
            ocr=FakeOCR(error=OSError("tesseract missing")),
        )
        result = service.analyze_sync(blank_png)

        assert result.success is True
        assert result.qrcodes == ()
        assert result.barcodes == ("4006381333931",)
        assert result.text == ""

    def test_slow_recognizer_times_out(self, blank_png):
        settings = AnalysisSettings(qr_timeout=0.05)
        service = _service(
            settings, qr=FakeQR(["LIDL-908213"], delay=0.5), bc=FakeBarcode(EAN)
        )
        try:
            result = service.analyze_sync(blank_png)
        finally:
            service.close()

        assert result.qrcodes == ()
        assert result.barcodes == ("4006381333931",)

    def test_analyze_is_a_coroutine(self, blank_png):
        service = _service(qr=FakeQR(["LIDL-908213"]))
        result = asyncio.run(service.analyze(blank_png))
        assert result.qrcodes == ("LIDL-908213",)

    def test_missing_file(self, tmp_path):
        result = _service().analyze_file(tmp_path / "missing.jpg")
        assert result.success is False
        assert "Cannot read image file" in result.error


class TestMerge:
    """Tests for the arbitration between recognizers."""

    def test_qr_hit_also_caps_numbers(self):
        result = _service().merge(["LIDL-908213"], None, OCR_TEXT)
        assert result.qrcodes == ("LIDL-908213",)
        assert len(result.numbers) <= 2

    def test_only_first_qr_payload_is_kept(self):
        result = _service().merge(["A-1", "B-2"], None, "")
        assert result.qrcodes == ("A-1",)

    def test_secondary_limit_is_configurable(self):
        settings = AnalysisSettings(secondary_numbers_limit=1)
        result = _service(settings).merge([], EAN, OCR_TEXT)
        assert len(result.numbers) <= 1

    def test_text_alone_can_make_a_success(self):
        result = _service().merge([], None, "MERCI DE VOTRE VISITE")
        assert result.numbers == ()
        assert result.success is True


class TestMetrics:
    def test_outcomes_are_recorded(self, blank_png):
        settings = AnalysisSettings(qr_timeout=0.05)
        service = _service(
            settings,
            qr=FakeQR(["x"], delay=0.5),
            bc=FakeBarcode(error=RuntimeError("boom")),
            ocr=FakeOCR("Carte fidélité N° 4006381333931"),
        )
        try:
            service.analyze_sync(blank_png)
        finally:
            service.close()

        counters = get_metrics_summary()["counters"]
        runs = counters["recognizer_runs_total"]
        assert runs["outcome=timeout,recognizer=qr"] == 1
        assert runs["outcome=error,recognizer=barcode"] == 1
        assert runs["outcome=hit,recognizer=ocr"] == 1
        assert counters["card_analyses_total"] == {"source=ocr": 1}


class TestRecognizerContext:
    def test_failures_are_recorded_on_the_span(self, blank_png, monkeypatch):
        recorded = []
        monkeypatch.setattr(
            "cardbox.services.card_analysis.record_exception", recorded.append
        )
        service = _service(
            bc=FakeBarcode(error=RuntimeError("zbar crashed")),
            ocr=FakeOCR(error=OCRError("tesseract missing")),
        )
        result = service.analyze_sync(blank_png)

        assert result.success is False
        assert sorted(type(e).__name__ for e in recorded) == ["OCRError", "RuntimeError"]

    def test_recognizer_threads_keep_the_log_context(self, blank_png):
        lines = []

        class ContextQR(FakeQR):
            def decode(self, image):
                record = logging.LogRecord(
                    "cardbox.test", logging.INFO, __file__, 1, "decoding", None, None
                )
                lines.append(ContextualFormatter("%(message)s").format(record))
                return []

        _service(qr=ContextQR()).analyze_sync(blank_png)

        assert lines == [f"decoding [image_bytes={len(blank_png)}]"]


class TestTextAnalysis:
    def test_explain_lists_every_candidate(self):
        breakdowns = _service().explain_text("Carte fidélité N° 4006381333931")
        assert breakdowns[0].candidate == "4006381333931"
        assert breakdowns[0].score == 63
        scores = [b.score for b in breakdowns]
        assert scores == sorted(scores, reverse=True)

    def test_issuer_table_from_config_changes_ranking(self, tmp_path):
        text = "9958274613 4006381333931"
        assert _service().analyze_text(text)[0] == "4006381333931"

        (tmp_path / "issuers.json").write_text(
            json.dumps([{"name": "house", "prefixes": ["99"], "length": 10, "bonus": 100}]),
            encoding="utf-8",
        )
        config = tmp_path / "cardbox.json"
        config.write_text(
            json.dumps({"analysis": {"issuer_profiles_path": "issuers.json"}}),
            encoding="utf-8",
        )

        service = CardAnalysisService.from_config(config)
        try:
            assert service.analyze_text(text)[0] == "9958274613"
        finally:
            service.close()

    @pytest.mark.parametrize("text", ["", "no digits here"])
    def test_no_candidates(self, text):
        assert _service().analyze_text(text) == []
