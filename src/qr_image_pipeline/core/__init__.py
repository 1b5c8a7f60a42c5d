"""Core components of the QR image pipeline."""

from .archiver import ZipArchiver
from .downloader import HttpDownloader
from .exceptions import (
    ArchiveError,
    ConfigurationError,
    DownloadError,
    EventProcessingError,
    InvalidEventError,
    QRImagePipelineError,
    RenderError,
    StatusStoreError,
    UploadError,
)
from .logging_config import get_logger, setup_logger
from .models import (
    GenerationRequest,
    ImageConfig,
    PipelineSettings,
    QRImageEvent,
    StatusCode,
    StatusUpdate,
    WorkItem,
)
from .pipeline import EventState, Failed, Outcome, QRImagePipeline, Skipped, Succeeded
from .renderer import QRCodeRenderer
from .status import DynamoStatusRecorder
from .uploader import S3Uploader

__all__ = [
    "ArchiveError",
    "ConfigurationError",
    "DownloadError",
    "DynamoStatusRecorder",
    "EventProcessingError",
    "EventState",
    "Failed",
    "GenerationRequest",
    "HttpDownloader",
    "ImageConfig",
    "InvalidEventError",
    "Outcome",
    "PipelineSettings",
    "QRCodeRenderer",
    "QRImageEvent",
    "QRImagePipeline",
    "QRImagePipelineError",
    "RenderError",
    "S3Uploader",
    "Skipped",
    "StatusCode",
    "StatusStoreError",
    "StatusUpdate",
    "Succeeded",
    "UploadError",
    "WorkItem",
    "ZipArchiver",
    "get_logger",
    "setup_logger",
]
