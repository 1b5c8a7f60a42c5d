"""Custom exceptions for the QR image pipeline."""

from __future__ import annotations

from typing import Any, Dict, Optional


class QRImagePipelineError(Exception):
    """Base exception for all QR image pipeline errors."""


class ConfigurationError(QRImagePipelineError):
    """Error raised for invalid configuration options."""


class InvalidEventError(QRImagePipelineError):
    """Error raised when an event payload cannot be turned into a model."""


class DownloadError(QRImagePipelineError):
    """Error raised when an existing image cannot be fetched."""

    def __init__(self, message: str, url: str = "", dest_path: str = "") -> None:
        super().__init__(f"{message} (url={url}, dest={dest_path})")
        self.url = url
        self.dest_path = dest_path


class RenderError(QRImagePipelineError):
    """Error raised when a QR image cannot be generated."""

    def __init__(self, message: str, item_id: str = "") -> None:
        super().__init__(f"{message} (item={item_id})" if item_id else message)
        self.item_id = item_id


class ArchiveError(QRImagePipelineError):
    """Error raised when the zip archive cannot be built."""


class UploadError(QRImagePipelineError):
    """Error raised for object storage failures."""


class StatusStoreError(QRImagePipelineError):
    """Error raised when a status row update cannot be confirmed."""


class EventProcessingError(QRImagePipelineError):
    """Error surfaced to the consuming runtime when an event fails.

    Carries the routing metadata the runtime needs to decide between retry,
    dead-lettering and offset commit.
    """

    def __init__(
        self,
        message: str,
        stage: str = "",
        partition: Optional[int] = None,
        offset: Optional[int] = None,
        process_id: str = "",
    ) -> None:
        super().__init__(message)
        self.stage = stage
        self.partition = partition
        self.offset = offset
        self.process_id = process_id

    @property
    def context(self) -> Dict[str, Any]:
        return {
            "stage": self.stage,
            "partition": self.partition,
            "offset": self.offset,
            "process_id": self.process_id,
        }
