"""Testing utilities and fakes for the QR image pipeline."""

from .fakes import (
    FakeDynamoDBClient,
    FakeHttpResponse,
    FakeHttpSession,
    FakeLogger,
    FakeS3Client,
    S3Bucket,
    S3Object,
    create_test_image,
)

__all__ = [
    "FakeDynamoDBClient",
    "FakeHttpResponse",
    "FakeHttpSession",
    "FakeLogger",
    "FakeS3Client",
    "S3Bucket",
    "S3Object",
    "create_test_image",
]
