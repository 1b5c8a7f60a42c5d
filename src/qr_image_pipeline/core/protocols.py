"""Protocol definitions for dependency injection and testability."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol, Union

from .models import GenerationRequest, ImageConfig, StatusCode, WorkItem


class S3ClientProtocol(Protocol):
    """Protocol for the S3 operations the uploader needs."""

    def head_object(self, Bucket: str, Key: str) -> Dict[str, Any]:
        """Get object metadata from S3."""
        ...

    def put_object(
        self,
        Bucket: str,
        Key: str,
        Body: bytes,
        ContentType: str,
        Metadata: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """Put object to S3."""
        ...


class DynamoDBClientProtocol(Protocol):
    """Protocol for the DynamoDB operation the status recorder needs."""

    def update_item(self, **kwargs: Any) -> Dict[str, Any]:
        """Update a single item."""
        ...


class HttpResponseProtocol(Protocol):
    status_code: int

    def raise_for_status(self) -> None: ...

    def iter_content(self, chunk_size: int = 1) -> Iterable[bytes]: ...

    def close(self) -> None: ...


class HttpSessionProtocol(Protocol):
    """Subset of ``requests.Session`` used by the downloader."""

    def get(self, url: str, **kwargs: Any) -> HttpResponseProtocol: ...


class LoggerProtocol(Protocol):
    """Protocol for logging operations."""

    def debug(self, message: str, context: Any = None, **kwargs: Any) -> None: ...

    def info(self, message: str, context: Any = None, **kwargs: Any) -> None: ...

    def warning(self, message: str, context: Any = None, **kwargs: Any) -> None: ...

    def error(self, message: str, context: Any = None, **kwargs: Any) -> None: ...


class Downloader(ABC):
    """Fetches a remote image into a local file."""

    @abstractmethod
    def fetch(self, url: str, dest_path: Union[str, Path]) -> Path:
        """Download ``url`` to ``dest_path`` and return the local path."""
        ...


class ImageRenderer(ABC):
    """Produces QR image files."""

    @abstractmethod
    def render(self, item: WorkItem, config: ImageConfig, dest_path: Path) -> Path:
        """Render one item to ``dest_path``."""
        ...

    def render_all(self, request: GenerationRequest) -> List[Path]:
        """Render every item of ``request`` to its target path."""
        return [self.render(item, request.config, dest) for item, dest in request.targets()]


class Archiver(ABC):
    """Bundles local files into one archive."""

    @abstractmethod
    def zip(
        self, archive_path: Union[str, Path], file_names: Iterable[str], base_dir: Union[str, Path]
    ) -> Path:
        """Write ``file_names`` (relative to ``base_dir``) into ``archive_path``."""
        ...


class Uploader(ABC):
    """Pushes local files to object storage."""

    @abstractmethod
    def upload(
        self,
        local_file: Union[str, Path],
        container: str,
        remote_path: str,
        overwrite: bool = False,
    ) -> str:
        """Upload ``local_file`` and return its resolvable URL."""
        ...


class StatusRecorder(ABC):
    """Writes batch completion status."""

    @abstractmethod
    def record_status(
        self,
        table: str,
        status_code: StatusCode,
        url: str,
        key_column: str,
        key_value: str,
    ) -> None:
        """Update the row keyed by ``key_column = key_value``."""
        ...
