from __future__ import annotations

import importlib
import io
import json
import os
from pathlib import Path

import qrcode
from click.testing import CliRunner

from cardbox.app.config import CONFIG_ENV_VAR
from cardbox.infrastructure.ai.models import DecodedBarcode
from cardbox.interfaces.cli.__main__ import cli
from cardbox.interfaces.cli.analyze import analyze, extract
from cardbox.interfaces.cli.brands import brands
from cardbox.interfaces.cli.serve import serve
from cardbox.services.card_analysis import CardAnalysisService

# The package re-exports commands named like their modules, so fetch the modules directly
analyze_module = importlib.import_module("cardbox.interfaces.cli.analyze")
serve_module = importlib.import_module("cardbox.interfaces.cli.serve")


class _QR:
    def __init__(self, payloads):
        self.payloads = payloads

    def decode(self, image):
        return list(self.payloads)


class _Barcode:
    def __init__(self, found=None):
        self.found = found

    def decode_with_format(self, image):
        return self.found


class _OCR:
    def __init__(self, text=""):
        self.text = text

    def recognize_text(self, image):
        return self.text


def _stub_service(monkeypatch, qr=(), barcode=None, text=""):
    service = CardAnalysisService(
        qr_decoder=_QR(qr), barcode_decoder=_Barcode(barcode), text_recognizer=_OCR(text)
    )
    monkeypatch.setattr(analyze_module, "_build_service", lambda config_path: service)
    return service


def _png(tmp_path: Path, blank_png: bytes) -> Path:
    path = tmp_path / "card.png"
    path.write_bytes(blank_png)
    return path


def test_analyze_prints_summary(tmp_path, monkeypatch, blank_png) -> None:
    _stub_service(
        monkeypatch, barcode=DecodedBarcode("4006381333931", "EAN13", "HighRes-AllFormats")
    )
    result = CliRunner().invoke(analyze, [str(_png(tmp_path, blank_png))])

    assert result.exit_code == 0
    assert "Barcode (EAN13): 4006381333931" in result.output


def test_analyze_json_output(tmp_path, monkeypatch, blank_png) -> None:
    _stub_service(monkeypatch, qr=["LIDL-908213"])
    result = CliRunner().invoke(analyze, [str(_png(tmp_path, blank_png)), "--json"])

    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload["qrcodes"] == ["LIDL-908213"]
    assert payload["best_value"] == "LIDL-908213"
    assert payload["source"] == "qr"


def test_analyze_reports_undecodable_image(tmp_path, monkeypatch) -> None:
    _stub_service(monkeypatch)
    path = tmp_path / "card.jpg"
    path.write_bytes(b"not a jpeg")

    result = CliRunner().invoke(analyze, [str(path)])

    assert result.exit_code == 1
    assert "Analysis failed" in result.output


def test_analyze_rejects_bad_config(tmp_path, blank_png) -> None:
    config = tmp_path / "cardbox.json"
    config.write_text("{broken", encoding="utf-8")

    result = CliRunner().invoke(
        analyze, [str(_png(tmp_path, blank_png)), "--config", str(config)]
    )

    assert result.exit_code == 1
    assert "Cannot read config" in result.output


def test_analyze_decodes_real_qr_code(tmp_path, monkeypatch) -> None:
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    buf = io.BytesIO()
    qrcode.make("LIDL-908213").save(buf)
    path = tmp_path / "qr.png"
    path.write_bytes(buf.getvalue())

    result = CliRunner().invoke(analyze, [str(path), "--json"])

    assert result.exit_code == 0
    assert json.loads(result.output)["qrcodes"] == ["LIDL-908213"]


def test_extract_prints_numbers(monkeypatch) -> None:
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    result = CliRunner().invoke(extract, ["Carte fidélité N° 4006381333931"])

    assert result.exit_code == 0
    assert result.output.splitlines()[0] == "4006381333931"


def test_extract_explain_shows_table(monkeypatch) -> None:
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    result = CliRunner().invoke(extract, ["4006381333931", "--explain"])

    assert result.exit_code == 0
    assert "Candidates" in result.output
    assert "4006381333931" in result.output.splitlines()


def test_extract_without_candidates(monkeypatch) -> None:
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    result = CliRunner().invoke(extract, ["hello"])

    assert result.exit_code == 0
    assert "No card number found" in result.output


def test_brands_filtered_by_category() -> None:
    result = CliRunner().invoke(brands, ["--category", "sport"])

    assert result.exit_code == 0
    assert "Decathlon" in result.output
    assert "Go Sport" in result.output
    assert "Carrefour" not in result.output


def test_serve_runs_uvicorn(tmp_path, monkeypatch) -> None:
    calls = []
    monkeypatch.setattr(
        serve_module.uvicorn,
        "run",
        lambda app, **kwargs: calls.append((app, kwargs)),
    )
    config = tmp_path / "cardbox.json"
    config.write_text("{}", encoding="utf-8")
    monkeypatch.setenv(CONFIG_ENV_VAR, "")

    result = CliRunner().invoke(serve, ["--port", "9001", "--config", str(config)])

    assert result.exit_code == 0
    assert calls == [
        ("cardbox.app.api:app", {"host": "127.0.0.1", "port": 9001, "reload": False})
    ]
    assert os.environ[CONFIG_ENV_VAR] == os.path.abspath(str(config))


def test_group_lists_commands() -> None:
    result = CliRunner().invoke(cli, ["--help"])

    assert result.exit_code == 0
    for name in ("analyze", "extract", "brands", "serve"):
        assert name in result.output


def _quiet_group(monkeypatch) -> None:
    monkeypatch.setattr(
        "cardbox.interfaces.cli.__main__.configure_logging", lambda **kwargs: None
    )


def test_trace_flag_enables_tracing(monkeypatch) -> None:
    calls = []
    _quiet_group(monkeypatch)
    monkeypatch.setattr(
        "cardbox.interfaces.cli.__main__.configure_tracing",
        lambda **kwargs: calls.append(kwargs) or True,
    )

    result = CliRunner().invoke(cli, ["--trace", "brands", "--category", "sport"])

    assert result.exit_code == 0
    assert calls == [{"service_name": "cardbox-cli"}]


def test_tracing_is_off_without_the_flag(monkeypatch) -> None:
    calls = []
    _quiet_group(monkeypatch)
    monkeypatch.setattr(
        "cardbox.interfaces.cli.__main__.configure_tracing",
        lambda **kwargs: calls.append(kwargs) or True,
    )

    result = CliRunner().invoke(cli, ["brands"])

    assert result.exit_code == 0
    assert calls == []
