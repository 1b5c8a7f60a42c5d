"""Zip archiver for the per-batch image bundle."""

import zipfile
from pathlib import Path
from typing import Iterable, Union

from .exceptions import ArchiveError
from .logging_config import get_logger
from .protocols import Archiver

# Fixed member timestamp so identical inputs give byte-identical archives.
_ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)


class ZipArchiver(Archiver):
    """Writes a flat zip of files taken from one directory."""

    def __init__(self, compression: int = zipfile.ZIP_DEFLATED):
        self._compression = compression
        self._logger = get_logger("archiver")

    def zip(
        self,
        archive_path: Union[str, Path],
        file_names: Iterable[str],
        base_dir: Union[str, Path],
    ) -> Path:
        archive = Path(archive_path)
        base = Path(base_dir)
        names = list(file_names)

        missing = [name for name in names if not (base / name).is_file()]
        if missing:
            raise ArchiveError(f"Cannot archive missing files: {', '.join(missing)}")

        try:
            archive.parent.mkdir(parents=True, exist_ok=True)
            with zipfile.ZipFile(archive, "w", compression=self._compression) as zf:
                for name in names:
                    info = zipfile.ZipInfo(Path(name).name, date_time=_ZIP_EPOCH)
                    info.compress_type = self._compression
                    info.external_attr = 0o644 << 16
                    zf.writestr(info, (base / name).read_bytes())
        except (OSError, zipfile.BadZipFile) as e:
            raise ArchiveError(f"Failed to write archive {archive}: {e}") from e

        self._logger.info(f"Created archive {archive} with {len(names)} files")
        return archive
