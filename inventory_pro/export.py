"""Report generation lifecycle and the exporter boundary.

``ReportExporter.generate`` drives one report through

    idle -> fetching -> validating -> formatting -> exporting -> idle

and drops to ``failed`` (then back to ``idle``) when the fetch raises, the
batch is empty, nothing survives filtering, or a later step fails.
Every exit produces a :class:`ReportOutcome` carrying a user-facing title
and message; only re-entrant use raises. Whatever happens, the exporter is
idle again once ``generate`` returns or raises.

Rendering and saving are injected so the exporter can be driven without a
filesystem: a renderer turns a FormattedReport into document bytes, a saver
stores those bytes under a filename and returns where they went.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

from pydantic import BaseModel

from .pdf_report import render_report_pdf
from .reports import (
    FormattedReport,
    ReportType,
    build_report,
    filter_records,
    is_record_batch,
    report_filename,
)

logger = logging.getLogger("inventory_pro.export")

RecordFetcher = Callable[[], Any]
DocumentRenderer = Callable[[FormattedReport], bytes]


class FileSaver(Protocol):
    def save(self, document: bytes, filename: str) -> str: ...


class ReportState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    VALIDATING = "validating"
    FORMATTING = "formatting"
    EXPORTING = "exporting"
    FAILED = "failed"


class ReportErrorKind(str, Enum):
    MALFORMED_FIELD = "malformed_field"
    EMPTY_DATASET = "empty_dataset"
    NO_MATCHING_RECORDS = "no_matching_records"
    EXPORT_FAILED = "export_failed"
    FETCH_FAILED = "fetch_failed"


_TRANSITIONS: dict[ReportState, frozenset[ReportState]] = {
    ReportState.IDLE: frozenset({ReportState.FETCHING, ReportState.EXPORTING}),
    ReportState.FETCHING: frozenset({ReportState.VALIDATING, ReportState.FAILED}),
    ReportState.VALIDATING: frozenset({ReportState.FORMATTING, ReportState.FAILED}),
    ReportState.FORMATTING: frozenset({ReportState.EXPORTING, ReportState.FAILED}),
    ReportState.EXPORTING: frozenset({ReportState.IDLE, ReportState.FAILED}),
    ReportState.FAILED: frozenset({ReportState.IDLE}),
}


class ReportExportError(Exception):
    """Rendering or saving a report document failed."""

    def __init__(self, message: str, filename: str | None = None) -> None:
        super().__init__(message)
        self.filename = filename


class ReportInProgressError(RuntimeError):
    """A report is already being generated by this exporter."""


class ReportOutcome(BaseModel):
    """Result of one generate (or retry) run."""

    report_type: ReportType
    report_name: str
    success: bool
    title: str
    message: str
    error: ReportErrorKind | None = None
    # Set to MALFORMED_FIELD when some cells fell back to placeholders.
    warning: ReportErrorKind | None = None
    filename: str | None = None
    location: str | None = None
    report: FormattedReport | None = None
    document: bytes | None = None

    @property
    def can_retry_save(self) -> bool:
        return (
            not self.success
            and self.error is ReportErrorKind.EXPORT_FAILED
            and self.document is not None
            and self.filename is not None
        )


class LocalFileSaver:
    """Writes documents into a directory, creating it on first use."""

    def __init__(self, output_dir: str | Path) -> None:
        self.output_dir = Path(output_dir)

    def save(self, document: bytes, filename: str) -> str:
        path = self.output_dir / filename
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            path.write_bytes(document)
        except OSError as exc:
            raise ReportExportError(f"Could not write {path}: {exc}", filename) from exc
        logger.info("Saved report %s (%d bytes)", path, len(document))
        return str(path)


class ReportExporter:
    """Generates one report at a time and records its state transitions."""

    def __init__(
        self,
        saver: FileSaver,
        renderer: DocumentRenderer = render_report_pdf,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._saver = saver
        self._renderer = renderer
        self._clock = clock or datetime.now
        self._lock = threading.Lock()
        self._state = ReportState.IDLE
        self.history: list[ReportState] = [ReportState.IDLE]

    @property
    def state(self) -> ReportState:
        return self._state

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def _move(self, state: ReportState) -> None:
        if state not in _TRANSITIONS[self._state]:
            raise RuntimeError(f"Illegal report transition {self._state.value} -> {state.value}")
        self._state = state
        self.history.append(state)

    def _fail(
        self,
        kind: ReportErrorKind,
        report_type: ReportType,
        report_name: str,
        title: str,
        message: str,
        **extra: Any,
    ) -> ReportOutcome:
        self._move(ReportState.FAILED)
        logger.warning("Report %r failed (%s): %s", report_name, kind.value, message)
        outcome = ReportOutcome(
            report_type=report_type,
            report_name=report_name,
            success=False,
            title=title,
            message=message,
            error=kind,
            **extra,
        )
        self._move(ReportState.IDLE)
        return outcome

    def _acquire(self) -> None:
        if not self._lock.acquire(blocking=False):
            raise ReportInProgressError("A report is already being generated")
        # history covers the current run only
        self.history = [self._state]

    def _release(self) -> None:
        if self._state is not ReportState.IDLE:
            logger.error("Report run aborted in state %s; resetting to idle", self._state.value)
            self._state = ReportState.IDLE
            self.history.append(ReportState.IDLE)
        self._lock.release()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def generate(
        self,
        report_type: ReportType | str,
        report_name: str,
        fetch: RecordFetcher,
        now: datetime | None = None,
    ) -> ReportOutcome:
        """Fetch, validate, format, render and save one report.

        Raises:
            ReportInProgressError: another generate/retry is running.
        """
        self._acquire()
        try:
            return self._generate(report_type, report_name, fetch, now or self._clock())
        finally:
            self._release()

    def _generate(
        self,
        report_type: ReportType | str,
        report_name: str,
        fetch: RecordFetcher,
        now: datetime,
    ) -> ReportOutcome:
        kind = ReportType.parse(report_type)
        token = str(getattr(report_type, "value", report_type))

        self._move(ReportState.FETCHING)
        try:
            batch = fetch()
        except Exception as exc:
            logger.exception("Fetching records for %r failed", report_name)
            return self._fail(
                ReportErrorKind.FETCH_FAILED,
                kind,
                report_name,
                "Data Fetch Error",
                f"Could not retrieve the latest data for {report_name}: {exc}",
            )

        self._move(ReportState.VALIDATING)
        if not is_record_batch(batch) or len(batch) == 0:
            return self._fail(
                ReportErrorKind.EMPTY_DATASET,
                kind,
                report_name,
                "No Data Available",
                f"No records found for {report_name}. The data source may be empty.",
            )
        if not filter_records(batch, kind):
            return self._fail(
                ReportErrorKind.NO_MATCHING_RECORDS,
                kind,
                report_name,
                "No Matching Data",
                f'No matching records found for {report_name} of type "{token}".',
            )

        self._move(ReportState.FORMATTING)
        try:
            report = build_report(batch, report_type, report_name, now)
            filename = report_filename(report_name, now)
        except Exception as exc:
            logger.exception("Formatting %r failed", report_name)
            return self._fail(
                ReportErrorKind.EXPORT_FAILED,
                kind,
                report_name,
                "Export Error",
                f"Failed to generate {report_name}: {exc}",
            )

        self._move(ReportState.EXPORTING)
        try:
            document = self._renderer(report)
        except Exception as exc:
            logger.exception("Rendering %r failed", report_name)
            return self._fail(
                ReportErrorKind.EXPORT_FAILED,
                kind,
                report_name,
                "Export Error",
                f"Failed to generate {report_name}: {exc}",
                report=report,
                filename=filename,
            )
        return self._save(kind, report_name, report, document, filename)

    def _save(
        self,
        kind: ReportType,
        report_name: str,
        report: FormattedReport | None,
        document: bytes,
        filename: str,
    ) -> ReportOutcome:
        try:
            location = self._saver.save(document, filename)
        except Exception as exc:
            return self._fail(
                ReportErrorKind.EXPORT_FAILED,
                kind,
                report_name,
                "Download Error",
                f"The report was generated but could not be downloaded: {exc}",
                report=report,
                document=document,
                filename=filename,
            )
        self._move(ReportState.IDLE)
        logger.info("Report %r exported to %s", report_name, location)
        return ReportOutcome(
            report_type=kind,
            report_name=report_name,
            success=True,
            title="Report Generated",
            message=f"{report_name} has been downloaded as PDF.",
            warning=(
                ReportErrorKind.MALFORMED_FIELD
                if report is not None and report.degraded_cells
                else None
            ),
            filename=filename,
            location=location,
            report=report,
            document=document,
        )

    def retry_save(self, outcome: ReportOutcome) -> ReportOutcome:
        """Save an already rendered document again without re-fetching.

        Raises:
            ValueError: the outcome has no rendered document to save.
            ReportInProgressError: another generate/retry is running.
        """
        if not outcome.can_retry_save:
            raise ValueError("Outcome has no rendered document to retry")
        self._acquire()
        try:
            self._move(ReportState.EXPORTING)
            return self._save(
                outcome.report_type,
                outcome.report_name,
                outcome.report,
                outcome.document,
                outcome.filename,
            )
        finally:
            self._release()
