"""Event-processing pipeline for the QR image stage."""

import time
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar, Union

from .exceptions import (
    DownloadError,
    EventProcessingError,
    RenderError,
)
from .models import (
    GenerationRequest,
    ImageConfig,
    PipelineSettings,
    QRImageEvent,
    StatusCode,
    StatusUpdate,
    WorkItem,
    unique_by_id,
)
from .observability import EventCounters, LogContext
from .protocols import (
    Archiver,
    Downloader,
    ImageRenderer,
    LoggerProtocol,
    StatusRecorder,
    Uploader,
)
from .workspace import EventWorkspace

S = TypeVar("S")
T = TypeVar("T")


class EventState(Enum):
    """Lifecycle of one event through the pipeline."""

    RECEIVED = "received"
    VALIDATED = "validated"
    SKIPPED = "skipped"
    DOWNLOADING = "downloading"
    GENERATING = "generating"
    ARCHIVING = "archiving"
    UPLOADING = "uploading"
    RECORDING = "recording"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class Skipped:
    reason: str


@dataclass(frozen=True)
class Succeeded:
    """``url`` is None when the event had no process id to archive under."""

    url: Optional[str]
    files: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Failed:
    error: EventProcessingError


Outcome = Union[Skipped, Succeeded, Failed]


@dataclass
class _Run:
    """Per-event bookkeeping, owned by a single ``run`` call."""

    event: QRImageEvent
    context: LogContext
    state: EventState = EventState.RECEIVED
    started: float = field(default_factory=time.time)


def partition_items(items: Sequence[WorkItem]) -> Tuple[List[WorkItem], List[WorkItem]]:
    """Split work items into (with existing location, needing generation)."""
    with_location = [item for item in items if item.has_location]
    needs_generation = [item for item in items if not item.has_location]
    return with_location, needs_generation


def unique_file_names(paths: Sequence[Path]) -> List[str]:
    """Flat file names in first-seen order, duplicates dropped."""
    return list(dict.fromkeys(path.name for path in paths))


class QRImagePipeline:
    """Turns one QR image event into an uploaded archive and a status row."""

    def __init__(
        self,
        downloader: Downloader,
        renderer: ImageRenderer,
        archiver: Archiver,
        uploader: Uploader,
        status_recorder: StatusRecorder,
        logger: LoggerProtocol,
        settings: Optional[PipelineSettings] = None,
        counters: Optional[EventCounters] = None,
    ):
        self._downloader = downloader
        self._renderer = renderer
        self._archiver = archiver
        self._uploader = uploader
        self._status_recorder = status_recorder
        self._logger = logger
        self._settings = settings or PipelineSettings()
        self.counters = counters or EventCounters()

    @property
    def settings(self) -> PipelineSettings:
        return self._settings

    def process(self, event: QRImageEvent) -> None:
        """Process ``event`` and raise ``EventProcessingError`` if it failed."""
        outcome = self.run(event)
        if isinstance(outcome, Failed):
            raise outcome.error

    def run(self, event: QRImageEvent) -> Outcome:
        """Process ``event`` and report the result as an ``Outcome``."""
        run = _Run(
            event=event,
            context=LogContext(
                correlation_id=event.correlation_id, component="qr_image_pipeline"
            ).with_metadata(object_id=event.object_id),
        )
        self.counters.incr("total")
        self._logger.info(
            "Processing request",
            run.context,
            process_id=event.process_id,
            items=len(event.dialcodes),
        )

        if not event.is_valid(self._settings.expected_eid):
            self._transition(run, EventState.SKIPPED)
            self._logger.info(
                f"Eid other than {self._settings.expected_eid} or dialcodes not present",
                run.context,
                eid=event.eid,
            )
            self.counters.incr("skipped")
            return Skipped(reason="invalid event")
        self._transition(run, EventState.VALIDATED)

        try:
            with EventWorkspace(self._settings.temp_dir, event.correlation_id) as workspace:
                outcome = self._run_stages(run, workspace)
        except Exception as exc:  # noqa: BLE001
            return self._fail(run, exc)

        self._transition(run, EventState.DONE)
        self.counters.incr("success")
        self._logger.info(
            "Message processed successfully",
            run.context,
            processing_time_ms=round((time.time() - run.started) * 1000, 1),
        )
        return outcome

    def _run_stages(self, run: _Run, workspace: EventWorkspace) -> Succeeded:
        event = run.event
        with_location, needs_generation = partition_items(unique_by_id(event.dialcodes))

        self._transition(run, EventState.DOWNLOADING)
        available = self._acquire_existing(run, with_location, workspace)

        self._transition(run, EventState.GENERATING)
        available.extend(self._generate_missing(run, needs_generation, workspace))
        file_names = tuple(unique_file_names(available))

        if not event.has_process_id:
            self._logger.info("Skipping zip creation due to missing processId", run.context)
            return Succeeded(url=None, files=file_names)

        self._transition(run, EventState.ARCHIVING)
        archive_path = workspace.path_for(event.archive_name)
        self._archiver.zip(archive_path, file_names, workspace.directory)

        self._transition(run, EventState.UPLOADING)
        url = self._uploader.upload(
            archive_path,
            event.storage_container,
            event.storage_path,
            overwrite=self._settings.overwrite_archive,
        )

        self._transition(run, EventState.RECORDING)
        self._write_status(
            StatusUpdate(process_id=event.process_id, status_code=StatusCode.SUCCESS, url=url)
        )
        return Succeeded(url=url, files=file_names)

    def _acquire_existing(
        self, run: _Run, items: Sequence[WorkItem], workspace: EventWorkspace
    ) -> List[Path]:
        image_format = run.event.image_format

        def fetch(item: WorkItem) -> Path:
            if not item.id:
                raise DownloadError("Dialcode without id", url=item.location or "")
            dest = workspace.path_for(item.file_name(image_format))
            try:
                path = self._downloader.fetch(item.location or "", dest)
            except Exception:
                self.counters.incr("download_fail")
                raise
            self.counters.incr("download_hit")
            return path

        paths = self._map(fetch, items)
        self._logger.debug(f"Available images after download: {[p.name for p in paths]}", run.context)
        return paths

    def _generate_missing(
        self, run: _Run, items: Sequence[WorkItem], workspace: EventWorkspace
    ) -> List[Path]:
        if not items:
            return []
        if any(not item.id for item in items):
            raise RenderError("Dialcode without id cannot be generated")
        config = self.resolve_image_config(run.event)
        request = GenerationRequest(
            items=list(items),
            config=config,
            output_dir=workspace.directory,
            destinations=[workspace.path_for(item.file_name(config.image_format)) for item in items],
        )
        self._logger.info(
            "Generating QR images",
            run.context,
            count=len(request.items),
            image_format=config.image_format,
        )

        if self._settings.max_workers > 1:
            return self._map(
                lambda target: self._renderer.render(target[0], config, target[1]),
                request.targets(),
            )
        return self._renderer.render_all(request)

    def resolve_image_config(self, event: QRImageEvent) -> ImageConfig:
        """Event options over process defaults; the event's format always wins."""
        config = ImageConfig.resolve(event.image_config, self._settings.image_defaults)
        if config.image_format != event.image_format:
            config = config.model_copy(update={"image_format": event.image_format})
        return config

    def _map(self, func: Callable[[S], T], items: Sequence[S]) -> List[T]:
        """Apply ``func`` to every item, serially or on a thread pool.

        In the pooled case every task is awaited before the first error is
        re-raised so that no worker is still writing during cleanup.
        """
        if self._settings.max_workers <= 1 or len(items) <= 1:
            return [func(item) for item in items]

        with ThreadPoolExecutor(max_workers=min(self._settings.max_workers, len(items))) as executor:
            futures = [executor.submit(func, item) for item in items]
            wait(futures)
        for future in futures:
            exc = future.exception()
            if exc is not None:
                raise exc
        return [future.result() for future in futures]

    def _write_status(self, update: StatusUpdate) -> None:
        self._status_recorder.record_status(
            self._settings.status_table,
            update.status_code,
            update.url,
            self._settings.status_key_column,
            update.process_id,
        )

    def _fail(self, run: _Run, exc: Exception) -> Failed:
        event = run.event
        stage = run.state
        self._transition(run, EventState.FAILED)
        self.counters.incr("failed")
        self._logger.error(
            f"Processing failed during {stage.value}: {exc}",
            run.context,
            error_type=type(exc).__name__,
            partition=event.partition,
            offset=event.offset,
        )

        if event.has_process_id:
            try:
                self._write_status(
                    StatusUpdate(process_id=event.process_id, status_code=StatusCode.FAILURE, url="")
                )
            except Exception as status_exc:  # noqa: BLE001
                self.counters.incr("status_write_fail")
                self._logger.error(
                    f"Could not record failure status: {status_exc}", run.context
                )

        error = EventProcessingError(
            str(exc),
            stage=stage.value,
            partition=event.partition,
            offset=event.offset,
            process_id=event.process_id,
        )
        error.__cause__ = exc
        return Failed(error=error)

    def _transition(self, run: _Run, state: EventState) -> None:
        self._logger.debug(
            f"State {run.state.value} -> {state.value}", run.context.with_operation(state.value)
        )
        run.state = state
