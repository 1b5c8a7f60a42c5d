"""Factory classes for creating configured service instances."""

from typing import Any, Optional

import boto3
import requests

from .archiver import ZipArchiver
from .downloader import HttpDownloader
from .models import PipelineSettings
from .observability import EventCounters, StructuredLogger
from .pipeline import QRImagePipeline
from .protocols import (
    DynamoDBClientProtocol,
    HttpSessionProtocol,
    LoggerProtocol,
    S3ClientProtocol,
)
from .renderer import QRCodeRenderer
from .status import DynamoStatusRecorder
from .uploader import S3Uploader


class AwsClientFactory:
    """Factory for creating boto3 client instances."""

    @staticmethod
    def create_s3_client(**kwargs: Any) -> S3ClientProtocol:
        session = boto3.Session()
        return session.client("s3", **kwargs)  # type: ignore

    @staticmethod
    def create_dynamodb_client(**kwargs: Any) -> DynamoDBClientProtocol:
        session = boto3.Session()
        return session.client("dynamodb", **kwargs)  # type: ignore


class QRImagePipelineFactory:
    """Factory for creating the complete processing pipeline."""

    @staticmethod
    def create_pipeline(
        settings: Optional[PipelineSettings] = None,
        s3_client: Optional[S3ClientProtocol] = None,
        dynamodb_client: Optional[DynamoDBClientProtocol] = None,
        http_session: Optional[HttpSessionProtocol] = None,
        logger: Optional[LoggerProtocol] = None,
        counters: Optional[EventCounters] = None,
    ) -> QRImagePipeline:
        """Create a fully configured pipeline, building real clients where none are given."""
        settings = settings or PipelineSettings.from_env()

        if s3_client is None:
            s3_client = AwsClientFactory.create_s3_client()
        if dynamodb_client is None:
            dynamodb_client = AwsClientFactory.create_dynamodb_client()
        if http_session is None:
            http_session = requests.Session()
        if logger is None:
            logger = StructuredLogger("pipeline")

        return QRImagePipeline(
            downloader=HttpDownloader(http_session, timeout=settings.download_timeout),
            renderer=QRCodeRenderer(),
            archiver=ZipArchiver(),
            uploader=S3Uploader(s3_client, public_base_url=settings.storage_base_url),
            status_recorder=DynamoStatusRecorder(
                dynamodb_client,
                status_column=settings.status_column,
                url_column=settings.url_column,
            ),
            logger=logger,
            settings=settings,
            counters=counters,
        )
