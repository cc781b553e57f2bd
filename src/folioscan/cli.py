"""folioscan Typer CLI，便于在命令行触发提取与导出流程。"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer

from folioscan.core import (
    AssemblyError,
    ConfigError,
    DigitSequenceReport,
    ExtractionCancelled,
    PipelineConfig,
    SourceError,
    load_config,
    setup_logging,
)
from folioscan.export import export_searchable_pdf
from folioscan.ocr import TesseractDigitReader, check_numbering
from folioscan.segment import extract_pages_from_file
from folioscan.segment.pipeline import ExtractionResult

app = typer.Typer(help="folioscan 开发 CLI：翻书视频 -> 页面 -> 可检索 PDF")


@app.callback()
def main() -> None:
    """folioscan 顶层 CLI，占位以展示子命令列表。"""

    return None


def _resolve_config(
    config_path: Optional[Path],
    *,
    sample_rate: Optional[float] = None,
    threshold: Optional[float] = None,
    strict_passes: Optional[int] = None,
    dup_hash: Optional[int] = None,
) -> PipelineConfig:
    cfg = load_config(config_path) if config_path else load_config()
    cfg = cfg.with_overrides("sampling", sample_rate_hz=sample_rate)
    cfg = cfg.with_overrides("detection", change_threshold=threshold)
    cfg = cfg.with_overrides("refine", strict_passes=strict_passes)
    return cfg.with_overrides("dedup", dup_hash=dup_hash)


def _run_extraction(video: Path, cfg: PipelineConfig) -> ExtractionResult:
    try:
        return extract_pages_from_file(video, cfg)
    except SourceError as exc:
        typer.echo(f"无法读取视频：{exc}", err=True)
        raise typer.Exit(code=1) from exc
    except ExtractionCancelled as exc:  # pragma: no cover - 仅在外部中断时出现
        typer.echo(f"已取消：{exc}", err=True)
        raise typer.Exit(code=130) from exc


def _echo_report(report: DigitSequenceReport) -> None:
    for line in report.summary_lines():
        typer.echo(f"  {line}")


@app.command("preview")
def preview_cmd(
    video: Path = typer.Argument(..., exists=True, resolve_path=True, help="翻书视频路径"),
    config_path: Optional[Path] = typer.Option(None, "--config", help="自定义配置文件"),
    sample_rate: Optional[float] = typer.Option(None, "--sample-rate", help="采样频率 (Hz)"),
    threshold: Optional[float] = typer.Option(None, "--threshold", help="换页阈值"),
    strict_passes: Optional[int] = typer.Option(None, "--strict-passes", help="严格模式轮数"),
    dup_hash: Optional[int] = typer.Option(None, "--dup-hash", help="pHash 去重阈值（含）"),
    digits: bool = typer.Option(True, "--digits/--no-digits", help="是否核对页码"),
    as_json: bool = typer.Option(False, "--json", help="以 JSON 输出结果"),
    log_level: str = typer.Option("INFO", "--log-level", help="日志级别"),
) -> None:
    """提取页面并输出摘要与页码核对结果，不写任何文件。"""

    setup_logging(log_level)
    try:
        cfg = _resolve_config(
            config_path,
            sample_rate=sample_rate,
            threshold=threshold,
            strict_passes=strict_passes,
            dup_hash=dup_hash,
        )
    except ConfigError as exc:
        typer.echo(f"配置错误：{exc}", err=True)
        raise typer.Exit(code=1) from exc

    result = _run_extraction(video, cfg)
    report = None
    if digits and cfg.ocr.digits_enabled and result.pages:
        report = check_numbering(result.pages, TesseractDigitReader.from_config(cfg.ocr))

    if as_json:
        payload = {
            "pages": [page.to_dict() for page in result.pages],
            "change_points": result.change_points,
            "refined_points": result.refined_points,
            "duplicates_dropped": result.duplicates_dropped,
            "numbering": report.to_dict() if report else None,
        }
        typer.echo(json.dumps(payload, ensure_ascii=False, indent=2))
        return

    typer.echo(
        f"检测到 {len(result.pages)} 页（采样 {result.frame_count} 帧，严格模式新增 {len(result.refined_points)} 个换页点，"
        f"去重丢弃 {result.duplicates_dropped}）"
    )
    for page in result.pages:
        typer.echo(f" - p{page.index + 1} t={page.timestamp:.2f}s")
    if report is not None:
        typer.echo("页码核对：")
        _echo_report(report)


@app.command("convert")
def convert_cmd(
    video: Path = typer.Argument(..., exists=True, resolve_path=True, help="翻书视频路径"),
    output: Path = typer.Option(Path("book_ocr.pdf"), "--output", "-o", help="PDF 输出路径"),
    config_path: Optional[Path] = typer.Option(None, "--config", help="自定义配置文件"),
    sample_rate: Optional[float] = typer.Option(None, "--sample-rate", help="采样频率 (Hz)"),
    threshold: Optional[float] = typer.Option(None, "--threshold", help="换页阈值"),
    strict_passes: Optional[int] = typer.Option(None, "--strict-passes", help="严格模式轮数"),
    dup_hash: Optional[int] = typer.Option(None, "--dup-hash", help="pHash 去重阈值（含）"),
    digits: bool = typer.Option(True, "--digits/--no-digits", help="是否核对页码"),
    ocr: bool = typer.Option(True, "--ocr/--no-ocr", help="是否生成全文 OCR 文字层"),
    lang: Optional[str] = typer.Option(None, "--lang", help="全文 OCR 语言，如 spa/eng"),
    log_level: str = typer.Option("INFO", "--log-level", help="日志级别"),
) -> None:
    """提取页面并导出带透明文字层的 PDF。"""

    setup_logging(log_level)
    try:
        cfg = _resolve_config(
            config_path,
            sample_rate=sample_rate,
            threshold=threshold,
            strict_passes=strict_passes,
            dup_hash=dup_hash,
        )
        cfg = cfg.with_overrides("ocr", full_enabled=ocr, full_lang=lang)
    except ConfigError as exc:
        typer.echo(f"配置错误：{exc}", err=True)
        raise typer.Exit(code=1) from exc

    result = _run_extraction(video, cfg)
    typer.echo(f"检测到 {len(result.pages)} 页")
    if digits and cfg.ocr.digits_enabled and result.pages:
        report = check_numbering(result.pages, TesseractDigitReader.from_config(cfg.ocr))
        typer.echo("页码核对：")
        _echo_report(report)

    try:
        exported = export_searchable_pdf(result.pages, cfg)
    except AssemblyError as exc:
        typer.echo(f"PDF 导出失败：{exc}", err=True)
        raise typer.Exit(code=1) from exc

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(exported.pdf)
    if exported.ocr_failures:
        typer.echo(f"以下页面未生成文字层：{', '.join(map(str, exported.ocr_failures))}", err=True)
    typer.echo(f"导出完成：{output}（{exported.page_count} 页）")


if __name__ == "__main__":  # pragma: no cover
    app()
