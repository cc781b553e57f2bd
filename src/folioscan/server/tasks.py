"""In-memory extraction session with a single worker thread."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytesseract

from folioscan.core import (
    DigitSequenceReport,
    ExtractionCancelled,
    FolioscanError,
    Page,
    PipelineConfig,
    get_logger,
    load_config,
)
from folioscan.core.logging_utils import forward_logs
from folioscan.export import ExportResult, export_searchable_pdf
from folioscan.ocr import DigitReader, TesseractDigitReader, check_numbering
from folioscan.segment import ExtractionResult, extract_pages_from_file

from .events import EventBroadcaster

logger = get_logger(__name__)

Extractor = Callable[..., ExtractionResult]
ReaderFactory = Callable[[PipelineConfig], DigitReader]


class ExtractionBusyError(RuntimeError):
    """Raised when an extraction is requested while another one is running."""


@dataclass(slots=True)
class SessionStatus:
    status: str
    progress: float
    message: str
    video: Optional[str]
    updated_at: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "progress": self.progress,
            "message": self.message,
            "video": self.video,
            "updated_at": self.updated_at,
        }


class SessionManager:
    """Holds the pages of the latest extraction; overlapping runs are rejected.

    Pages live only in memory. Starting a new extraction drops the previous
    session's pages; a failed export leaves them in place for a retry.
    """

    def __init__(
        self,
        broadcaster: EventBroadcaster,
        *,
        config: Optional[PipelineConfig] = None,
        extractor: Extractor = extract_pages_from_file,
        reader_factory: ReaderFactory = lambda cfg: TesseractDigitReader.from_config(cfg.ocr),
    ) -> None:
        self._lock = threading.Lock()
        self._broadcaster = broadcaster
        self._config = config or load_config()
        self._extractor = extractor
        self._reader_factory = reader_factory
        self._worker: Optional[threading.Thread] = None
        self._cancel = threading.Event()
        self._result: Optional[ExtractionResult] = None
        self._report: Optional[DigitSequenceReport] = None
        self._session_config = self._config
        self._status = SessionStatus("idle", 0.0, "", None, self._now())

    @property
    def config(self) -> PipelineConfig:
        return self._config

    def start(self, video_path: Path, config: Optional[PipelineConfig] = None) -> Dict[str, Any]:
        with self._lock:
            if self._worker is not None and self._worker.is_alive():
                raise ExtractionBusyError("an extraction is already running")
            self._session_config = config or self._config
            self._result = None
            self._report = None
            self._cancel = threading.Event()
            self._set_status("running", 0.0, "", video=str(video_path))
            self._worker = threading.Thread(
                target=self._run,
                args=(video_path, self._session_config, self._cancel),
                daemon=True,
            )
            self._worker.start()
        return self.snapshot()

    def cancel(self) -> bool:
        with self._lock:
            if self._worker is None or not self._worker.is_alive():
                return False
            self._cancel.set()
            return True

    def wait(self, timeout: Optional[float] = None) -> None:
        worker = self._worker
        if worker is not None:
            worker.join(timeout)

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            result = self._result
            report = self._report
            status = self._status.to_dict()
        payload: Dict[str, Any] = {"status": status, "pages": [], "numbering": None}
        if result is not None:
            payload["pages"] = [page.to_dict() for page in result.pages]
            payload["refined_points"] = len(result.refined_points)
            payload["duplicates_dropped"] = result.duplicates_dropped
        if report is not None:
            payload["numbering"] = report.to_dict()
        return payload

    def pages(self) -> List[Page]:
        with self._lock:
            return list(self._result.pages) if self._result else []

    def export(self, *, ocr: bool = True, lang: Optional[str] = None) -> ExportResult:
        """Build the searchable PDF from the current pages; AssemblyError propagates."""

        pages = self.pages()
        cfg = self._session_config.with_overrides("ocr", full_enabled=ocr, full_lang=lang)
        return export_searchable_pdf(pages, cfg)

    def _run(self, video_path: Path, config: PipelineConfig, cancel_event: threading.Event) -> None:
        last_progress = -1.0

        def progress_callback(value: float) -> None:
            nonlocal last_progress
            if value - last_progress < 0.01 and value < 1.0:
                return
            last_progress = value
            # extraction covers 0-0.9, numbering check the rest
            self._set_status("running", 0.9 * value, "")

        with forward_logs(self._broadcaster.publish_log):
            try:
                result = self._extractor(
                    video_path,
                    config,
                    progress_callback=progress_callback,
                    cancel_event=cancel_event,
                )
                with self._lock:
                    self._result = result
            except ExtractionCancelled as exc:
                self._discard_result()
                self._set_status("cancelled", 0.0, str(exc))
            except FolioscanError as exc:
                self._discard_result()
                self._set_status("error", 0.0, str(exc))
            except Exception as exc:
                logger.exception("Extraction crashed")
                self._discard_result()
                self._set_status("error", 0.0, str(exc))
            else:
                report, note = self._check_numbering(result, config)
                with self._lock:
                    self._report = report
                message = f"{len(result.pages)} pages"
                self._set_status("done", 1.0, f"{message}; {note}" if note else message)

    def _check_numbering(
        self, result: ExtractionResult, config: PipelineConfig
    ) -> Tuple[Optional[DigitSequenceReport], str]:
        """Numbering is advisory: an OCR failure leaves the pages intact and the report empty."""

        if not config.ocr.digits_enabled or not result.pages:
            return None, ""
        self._set_status("running", 0.9, "checking page numbers")
        try:
            return check_numbering(result.pages, self._reader_factory(config)), ""
        except (pytesseract.TesseractError, OSError) as exc:
            logger.warning("Page number check skipped: %s", exc)
            return None, f"page number check skipped: {exc}"

    def _discard_result(self) -> None:
        with self._lock:
            self._result = None

    def _set_status(self, status: str, progress: float, message: str, *, video: Optional[str] = None) -> None:
        current = self._status
        self._status = SessionStatus(
            status=status,
            progress=max(0.0, min(1.0, float(progress))),
            message=message,
            video=video if video is not None else current.video,
            updated_at=self._now(),
        )
        self._broadcaster.publish_status(self._status.to_dict())

    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat()
