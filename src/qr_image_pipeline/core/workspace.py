"""Scoped ownership of the temporary files one event creates."""

import re
import threading
import uuid
from pathlib import Path
from types import TracebackType
from typing import List, Optional, Type, Union

from .error_handling import safe_unlink
from .logging_config import get_logger

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


class EventWorkspace:
    """A private directory under ``root`` whose registered files die with it.

    Every path handed out by :meth:`path_for` is registered before any
    download or render writes to it, so partially written files are removed
    on every exit path, including exceptions raised by the caller's deadline.
    """

    def __init__(self, root: Union[str, Path], key: str = ""):
        safe_key = _UNSAFE.sub("_", key).strip("._") or "event"
        self.directory = Path(root) / f"{safe_key}-{uuid.uuid4().hex}"
        self._files: List[Path] = []
        self._lock = threading.Lock()
        self._logger = get_logger("workspace")

    def __enter__(self) -> "EventWorkspace":
        self.directory.mkdir(parents=True, exist_ok=True)
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> bool:
        self.cleanup()
        return False

    def path_for(self, file_name: str) -> Path:
        """Register and return ``<directory>/<file_name>``."""
        path = self.directory / Path(file_name).name
        with self._lock:
            if path not in self._files:
                self._files.append(path)
        return path

    @property
    def files(self) -> List[Path]:
        with self._lock:
            return list(self._files)

    def cleanup(self) -> None:
        removed = sum(1 for path in self.files if safe_unlink(path))
        with self._lock:
            self._files.clear()
        try:
            self.directory.rmdir()
        except FileNotFoundError:
            pass
        except OSError as e:
            self._logger.warning(f"Workspace {self.directory} not removed: {e}")
        self._logger.debug(f"Removed {removed} temporary files from {self.directory}")
