"""HTTP downloader for images that already exist remotely."""

from pathlib import Path
from typing import Optional, Union

import requests

from .exceptions import DownloadError
from .logging_config import get_logger
from .protocols import Downloader, HttpSessionProtocol


class HttpDownloader(Downloader):
    """Streams a remote resource verbatim into a local file."""

    def __init__(
        self,
        session: Optional[HttpSessionProtocol] = None,
        timeout: float = 30.0,
        chunk_size: int = 64 * 1024,
    ):
        self._session = session or requests.Session()
        self._timeout = timeout
        self._chunk_size = chunk_size
        self._logger = get_logger("downloader")

    def fetch(self, url: str, dest_path: Union[str, Path]) -> Path:
        dest = Path(dest_path)
        if not url:
            raise DownloadError("Empty download URL", url=url, dest_path=str(dest))

        self._logger.debug(f"Downloading {url} to {dest}")
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            response = self._session.get(url, stream=True, timeout=self._timeout)
            try:
                response.raise_for_status()
                with open(dest, "wb") as fh:
                    for chunk in response.iter_content(chunk_size=self._chunk_size):
                        if chunk:
                            fh.write(chunk)
            finally:
                response.close()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else "?"
            raise DownloadError(
                f"HTTP {status} while downloading", url=url, dest_path=str(dest)
            ) from e
        except requests.RequestException as e:
            raise DownloadError(
                f"Transport error while downloading: {e}", url=url, dest_path=str(dest)
            ) from e
        except OSError as e:
            raise DownloadError(
                f"Could not write downloaded file: {e}", url=url, dest_path=str(dest)
            ) from e

        self._logger.info(f"Created file {dest}")
        return dest
