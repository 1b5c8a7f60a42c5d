"""Shared data models for the QR image pipeline."""

import os
import tempfile
from enum import IntEnum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import ConfigurationError, InvalidEventError

DEFAULT_EID = "BE_QR_IMAGE_GENERATOR"


class StatusCode(IntEnum):
    """Values written to the status column of the batch table."""

    SUCCESS = 2
    FAILURE = 3


class ImageConfig(BaseModel):
    """Rendering options for one generated QR image."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    error_correction_level: str = Field("H", alias="errorCorrectionLevel")
    pixels_per_block: int = Field(2, alias="pixelsPerBlock", gt=0)
    qr_code_margin: int = Field(3, alias="qrCodeMargin", ge=0)
    qr_code_margin_bottom: int = Field(1, alias="qrCodeMarginBottom", ge=0)
    image_margin: int = Field(1, alias="imageMargin", ge=0)
    image_border_size: int = Field(0, alias="imageBorderSize", ge=0)
    text_font_name: str = Field("Verdana", alias="textFontName")
    text_font_size: int = Field(11, alias="textFontSize", gt=0)
    text_character_spacing: float = Field(0.1, alias="textCharacterSpacing", ge=0)
    colour_model: str = Field("Grayscale", alias="colourModel")
    image_format: str = Field("png", alias="imageFormat")

    @classmethod
    def resolve(
        cls, overrides: Optional[Mapping[str, Any]], defaults: "ImageConfig"
    ) -> "ImageConfig":
        """Overlay the event's camelCase options on the process-wide defaults.

        Blank strings and ``None`` count as absent.
        """
        values = defaults.model_dump(by_alias=True)
        for key, value in (overrides or {}).items():
            if value is None or value == "":
                continue
            if key in values:
                values[key] = value
        try:
            return cls.model_validate(values)
        except ValidationError as e:
            raise InvalidEventError(f"Invalid image configuration: {e}") from e


class WorkItem(BaseModel):
    """One dialcode entry of an event."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str = ""
    location: Optional[str] = None
    data: Optional[str] = None
    text: Optional[str] = None

    @field_validator("id")
    @classmethod
    def _plain_file_name(cls, value: str) -> str:
        # The id becomes a file name inside the event's workspace.
        if "/" in value or "\\" in value or value in (".", ".."):
            raise ValueError(f"dialcode id {value!r} is not a plain file name")
        return value

    @property
    def has_location(self) -> bool:
        return bool(self.location and self.location.strip())

    @property
    def payload(self) -> str:
        """Content encoded in the QR code."""
        return self.data or self.id

    @property
    def caption(self) -> str:
        """Text printed under the QR code."""
        return self.text if self.text is not None else self.id

    def file_name(self, image_format: str) -> str:
        return f"{self.id}.{image_format}"


class QRImageEvent(BaseModel):
    """A batch-publish event asking for QR images of a set of dialcodes."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    eid: str = ""
    process_id: str = Field("", alias="processId")
    object_id: str = Field("", alias="objectId")
    image_format: str = Field("png", alias="imageFormat")
    image_config: Mapping[str, Any] = Field(default_factory=dict, alias="imageConfig")
    dialcodes: Tuple[WorkItem, ...] = ()
    storage_container: str = Field("", alias="storageContainer")
    storage_path: str = Field("", alias="storagePath")
    storage_file_name: str = Field("", alias="storageFileName")
    partition: Optional[int] = None
    offset: Optional[int] = None

    @field_validator("image_config", mode="after")
    @classmethod
    def _read_only_config(cls, value: Mapping[str, Any]) -> Mapping[str, Any]:
        return MappingProxyType(dict(value))

    @classmethod
    def from_message(
        cls,
        payload: Mapping[str, Any],
        partition: Optional[int] = None,
        offset: Optional[int] = None,
        default_image_format: str = "png",
    ) -> "QRImageEvent":
        """Build an event from a decoded queue message.

        Accepts both the flat storage fields and the nested
        ``storage: {container, path, fileName}`` block, and ``config`` as an
        alias for ``imageConfig``.
        """
        data = dict(payload)
        storage = data.pop("storage", None) or {}
        data.setdefault("storageContainer", storage.get("container", ""))
        data.setdefault("storagePath", storage.get("path", ""))
        data.setdefault("storageFileName", storage.get("fileName", ""))
        if "imageConfig" not in data and "config" in data:
            data["imageConfig"] = data.pop("config")
        if not data.get("imageFormat"):
            data["imageFormat"] = default_image_format
        for key, empty in (
            ("processId", ""),
            ("storageFileName", ""),
            ("dialcodes", ()),
            ("imageConfig", {}),
        ):
            if data.get(key) is None:
                data[key] = empty
        if partition is not None:
            data["partition"] = partition
        if offset is not None:
            data["offset"] = offset
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise InvalidEventError(
                f"Malformed event at partition={partition} offset={offset}: {e}"
            ) from e

    def is_valid(self, expected_eid: str = DEFAULT_EID) -> bool:
        return self.eid == expected_eid and len(self.dialcodes) > 0

    @property
    def has_process_id(self) -> bool:
        return bool(self.process_id.strip())

    @property
    def archive_name(self) -> str:
        base = self.storage_file_name.strip() or self.process_id
        return f"{base}.zip"

    @property
    def correlation_id(self) -> str:
        return self.process_id or self.object_id or "unknown"


class StatusUpdate(BaseModel):
    """One row update written to the batch status table."""

    model_config = ConfigDict(frozen=True)

    process_id: str
    status_code: StatusCode
    url: str = ""


class GenerationRequest(BaseModel):
    """Items the renderer must draw, with the resolved options."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    items: List[WorkItem]
    config: ImageConfig
    output_dir: Path
    destinations: List[Path] = Field(default_factory=list)

    def targets(self) -> List[Tuple[WorkItem, Path]]:
        """Each item paired with the file it is rendered to.

        Explicit ``destinations`` are used position by position; otherwise
        every item lands directly in ``output_dir``.
        """
        if self.destinations:
            if len(self.destinations) != len(self.items):
                raise ValueError(
                    f"{len(self.items)} items but {len(self.destinations)} destinations"
                )
            return list(zip(self.items, self.destinations))
        return [
            (item, self.output_dir / Path(item.file_name(self.config.image_format)).name)
            for item in self.items
        ]


def unique_by_id(items: Sequence[WorkItem]) -> List[WorkItem]:
    """Work items with repeated ids dropped, first occurrence kept."""
    seen: Dict[str, WorkItem] = {}
    for item in items:
        seen.setdefault(item.id, item)
    return list(seen.values())


def _default_temp_dir() -> Path:
    return Path(tempfile.gettempdir()) / "qr-image-pipeline"


class PipelineSettings(BaseModel):
    """Process-wide settings resolved once at start-up."""

    temp_dir: Path = Field(default_factory=_default_temp_dir)
    expected_eid: str = DEFAULT_EID
    default_image_format: str = "png"
    status_table: str = "dialcode_batch"
    status_key_column: str = "processid"
    status_column: str = "status"
    url_column: str = "url"
    overwrite_archive: bool = False
    download_timeout: float = Field(30.0, gt=0)
    max_workers: int = Field(1, ge=1)
    storage_base_url: Optional[str] = None
    image_defaults: ImageConfig = Field(default_factory=ImageConfig)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "PipelineSettings":
        """Read ``QR_*`` environment variables on top of the defaults."""
        env = os.environ if environ is None else environ
        mapping = {
            "QR_TEMP_DIR": "temp_dir",
            "QR_EXPECTED_EID": "expected_eid",
            "QR_DEFAULT_IMAGE_FORMAT": "default_image_format",
            "QR_STATUS_TABLE": "status_table",
            "QR_OVERWRITE_ARCHIVE": "overwrite_archive",
            "QR_DOWNLOAD_TIMEOUT": "download_timeout",
            "QR_MAX_WORKERS": "max_workers",
            "QR_STORAGE_BASE_URL": "storage_base_url",
        }
        values: Dict[str, Any] = {
            field: env[var] for var, field in mapping.items() if env.get(var)
        }
        if "default_image_format" in values:
            values["image_defaults"] = ImageConfig(
                image_format=values["default_image_format"]
            )
        try:
            return cls.model_validate(values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid pipeline settings: {e}") from e
