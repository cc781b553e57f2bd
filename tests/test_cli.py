"""CLI 行为测试。"""

import io
import json

import fitz
import pytesseract
from PIL import Image
from typer.testing import CliRunner

from folioscan.cli import app
from folioscan.core import DigitSequenceReport, Page, PipelineConfig, SourceError
from folioscan.segment import ExtractionResult

runner = CliRunner()


def _png() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (30, 40), "white").save(buffer, format="PNG")
    return buffer.getvalue()


def _result() -> ExtractionResult:
    page = Page(index=0, timestamp=0.25, image=_png(), width=30, height=40, source_frame_index=2, fingerprint=255)
    return ExtractionResult(pages=[page], width=30, height=40, duration=1.0, frame_count=9, change_points=[0])


def _patch(monkeypatch, captured=None):
    def fake_extract(video, cfg):
        if captured is not None:
            captured["cfg"] = cfg
        return _result()

    monkeypatch.setattr("folioscan.cli.load_config", lambda *_, **__: PipelineConfig())
    monkeypatch.setattr("folioscan.cli.extract_pages_from_file", fake_extract)
    monkeypatch.setattr(
        "folioscan.cli.check_numbering",
        lambda pages, reader: DigitSequenceReport(numbers=[7], unread=[]),
    )


def test_preview_json(monkeypatch, tmp_path):
    video = tmp_path / "book.mp4"
    video.write_bytes(b"fake")
    captured = {}
    _patch(monkeypatch, captured)

    args = ["preview", str(video), "--json", "--log-level", "WARNING", "--threshold", "0.3", "--strict-passes", "0"]
    result = runner.invoke(app, args)

    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data["pages"][0]["fingerprint"] == "00000000000000ff"
    assert data["change_points"] == [0]
    assert data["numbering"]["numbers"] == [7]
    assert captured["cfg"].detection.change_threshold == 0.3
    assert captured["cfg"].refine.strict_passes == 0


def test_preview_rejects_invalid_override(monkeypatch, tmp_path):
    video = tmp_path / "book.mp4"
    video.write_bytes(b"fake")
    _patch(monkeypatch)

    result = runner.invoke(app, ["preview", str(video), "--dup-hash", "99"])

    assert result.exit_code == 1
    assert "dedup.dup_hash" in result.output


def test_preview_reports_unreadable_video(monkeypatch, tmp_path):
    video = tmp_path / "book.mp4"
    video.write_bytes(b"fake")
    _patch(monkeypatch)

    def broken(video, cfg):
        raise SourceError("bad container")

    monkeypatch.setattr("folioscan.cli.extract_pages_from_file", broken)

    result = runner.invoke(app, ["preview", str(video)])

    assert result.exit_code == 1
    assert "bad container" in result.output


def test_convert_writes_pdf(monkeypatch, tmp_path):
    video = tmp_path / "book.mp4"
    video.write_bytes(b"fake")
    output = tmp_path / "out" / "book.pdf"
    _patch(monkeypatch)

    result = runner.invoke(app, ["convert", str(video), "-o", str(output), "--no-ocr"])

    assert result.exit_code == 0, result.output
    assert "导出完成" in result.output
    with fitz.open(output) as doc:
        assert doc.page_count == 1


def test_convert_without_tesseract_still_writes_pdf(monkeypatch, tmp_path):
    video = tmp_path / "book.mp4"
    video.write_bytes(b"fake")
    output = tmp_path / "book.pdf"

    def no_binary(*args, **kwargs):
        raise pytesseract.TesseractNotFoundError()

    monkeypatch.setattr("folioscan.cli.load_config", lambda *_, **__: PipelineConfig())
    monkeypatch.setattr("folioscan.cli.extract_pages_from_file", lambda video, cfg: _result())
    monkeypatch.setattr("folioscan.ocr.digits.pytesseract.image_to_string", no_binary)
    monkeypatch.setattr("folioscan.ocr.full_text.pytesseract.image_to_data", no_binary)

    result = runner.invoke(app, ["convert", str(video), "-o", str(output)])

    assert result.exit_code == 0, result.output
    assert "未识别: 1" in result.output
    assert output.exists()
