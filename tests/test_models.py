"""Tests for the shared data models."""

import pytest
from pydantic import ValidationError

from qr_image_pipeline.core.exceptions import ConfigurationError, InvalidEventError
from qr_image_pipeline.core.models import (
    DEFAULT_EID,
    ImageConfig,
    PipelineSettings,
    QRImageEvent,
    StatusCode,
    StatusUpdate,
    WorkItem,
    unique_by_id,
)


def _payload(**overrides):
    payload = {
        "eid": DEFAULT_EID,
        "processId": "proc-1",
        "objectId": "do_123",
        "imageFormat": "png",
        "imageConfig": {"pixelsPerBlock": 4},
        "dialcodes": [
            {"id": "A1B2C3", "location": "https://cdn.example.com/A1B2C3.png"},
            {"id": "D4E5F6", "data": "https://dial.example.com/D4E5F6", "text": "D4E5F6"},
        ],
        "storageContainer": "dial-bucket",
        "storagePath": "dialcode/proc-1",
    }
    payload.update(overrides)
    return payload


class TestWorkItem:
    """Tests for WorkItem."""

    def test_location_routing(self):
        assert WorkItem(id="X", location="https://a/b.png").has_location
        assert not WorkItem(id="X").has_location
        assert not WorkItem(id="X", location="   ").has_location

    def test_payload_and_caption_default_to_id(self):
        item = WorkItem(id="ABC123")

        assert item.payload == "ABC123"
        assert item.caption == "ABC123"
        assert item.file_name("png") == "ABC123.png"

    def test_explicit_payload_and_caption(self):
        item = WorkItem(id="ABC123", data="https://x/ABC123", text="")

        assert item.payload == "https://x/ABC123"
        assert item.caption == ""

    @pytest.mark.parametrize("item_id", ["sub/X1", "../../ESC", "a\\b", "..", "."])
    def test_id_must_be_a_plain_file_name(self, item_id):
        with pytest.raises(ValidationError, match="not a plain file name"):
            WorkItem(id=item_id)

    def test_unique_by_id_keeps_first_occurrence(self):
        located = WorkItem(id="A1", location="https://cdn/A1.png")
        items = [located, WorkItem(id="C3"), WorkItem(id="A1"), WorkItem(id="C3", text="x")]

        unique = unique_by_id(items)

        assert [item.id for item in unique] == ["A1", "C3"]
        assert unique[0] is located
        assert unique[1].text is None


class TestQRImageEvent:
    """Tests for QRImageEvent parsing and validation."""

    def test_from_message_flat_fields(self):
        event = QRImageEvent.from_message(_payload(), partition=3, offset=42)

        assert event.process_id == "proc-1"
        assert event.object_id == "do_123"
        assert event.storage_container == "dial-bucket"
        assert event.storage_path == "dialcode/proc-1"
        assert event.partition == 3
        assert event.offset == 42
        assert [d.id for d in event.dialcodes] == ["A1B2C3", "D4E5F6"]
        assert event.is_valid()

    def test_from_message_nested_storage_and_config_alias(self):
        payload = _payload(storage={"container": "c", "path": "p", "fileName": "batch"})
        del payload["storageContainer"]
        del payload["storagePath"]
        payload["config"] = payload.pop("imageConfig")

        event = QRImageEvent.from_message(payload)

        assert event.storage_container == "c"
        assert event.storage_path == "p"
        assert event.storage_file_name == "batch"
        assert event.image_config == {"pixelsPerBlock": 4}

    def test_missing_image_format_uses_default(self):
        payload = _payload()
        del payload["imageFormat"]

        event = QRImageEvent.from_message(payload, default_image_format="jpg")

        assert event.image_format == "jpg"

    def test_null_process_id_becomes_empty(self):
        event = QRImageEvent.from_message(_payload(processId=None))

        assert event.process_id == ""
        assert not event.has_process_id

    @pytest.mark.parametrize(
        "overrides",
        [
            {"eid": "BE_JOB_REQUEST"},
            {"dialcodes": []},
        ],
    )
    def test_is_valid_false(self, overrides):
        event = QRImageEvent.from_message(_payload(**overrides))

        assert not event.is_valid()

    def test_null_dialcodes_and_image_config_become_empty(self):
        event = QRImageEvent.from_message(_payload(dialcodes=None, imageConfig=None))

        assert event.dialcodes == ()
        assert dict(event.image_config) == {}
        assert not event.is_valid()

    def test_path_like_dialcode_id_is_malformed(self):
        dialcodes = [{"id": "sub/X1"}, {"id": "../../ESC"}]

        with pytest.raises(InvalidEventError, match="not a plain file name"):
            QRImageEvent.from_message(_payload(dialcodes=dialcodes))

    def test_archive_name_defaults_to_process_id(self):
        event = QRImageEvent.from_message(_payload())

        assert event.archive_name == "proc-1.zip"

    def test_archive_name_uses_storage_file_name(self):
        event = QRImageEvent.from_message(_payload(storageFileName="my-batch"))

        assert event.archive_name == "my-batch.zip"

    def test_event_is_immutable(self):
        event = QRImageEvent.from_message(_payload())

        with pytest.raises(ValidationError):
            event.process_id = "other"

    def test_event_collections_are_read_only(self):
        event = QRImageEvent.from_message(_payload())

        assert isinstance(event.dialcodes, tuple)
        with pytest.raises(TypeError):
            event.image_config["pixelsPerBlock"] = 9
        with pytest.raises(AttributeError):
            event.dialcodes.append(WorkItem(id="Z9"))

    def test_malformed_event_raises_invalid_event(self):
        with pytest.raises(InvalidEventError, match="partition=1 offset=7"):
            QRImageEvent.from_message(_payload(dialcodes="not-a-list"), partition=1, offset=7)


class TestImageConfig:
    """Tests for ImageConfig resolution."""

    def test_resolve_overlays_event_values(self):
        defaults = ImageConfig()

        config = ImageConfig.resolve(
            {"pixelsPerBlock": 5, "errorCorrectionLevel": "M", "unknownKey": 1}, defaults
        )

        assert config.pixels_per_block == 5
        assert config.error_correction_level == "M"
        assert config.qr_code_margin == defaults.qr_code_margin

    def test_resolve_ignores_blank_values(self):
        defaults = ImageConfig(text_font_name="Arial")

        config = ImageConfig.resolve({"textFontName": "", "colourModel": None}, defaults)

        assert config.text_font_name == "Arial"
        assert config.colour_model == "Grayscale"

    def test_resolve_none_returns_defaults(self):
        defaults = ImageConfig(image_margin=7)

        assert ImageConfig.resolve(None, defaults) == defaults

    def test_resolve_bad_type_raises(self):
        with pytest.raises(InvalidEventError):
            ImageConfig.resolve({"pixelsPerBlock": "many"}, ImageConfig())

    def test_resolve_rejects_non_positive_block_size(self):
        with pytest.raises(InvalidEventError):
            ImageConfig.resolve({"pixelsPerBlock": 0}, ImageConfig())


class TestStatusUpdate:
    def test_status_codes(self):
        assert int(StatusCode.SUCCESS) == 2
        assert int(StatusCode.FAILURE) == 3

    def test_defaults(self):
        update = StatusUpdate(process_id="p", status_code=StatusCode.FAILURE)

        assert update.url == ""


class TestPipelineSettings:
    """Tests for PipelineSettings."""

    def test_defaults(self):
        settings = PipelineSettings()

        assert settings.expected_eid == "BE_QR_IMAGE_GENERATOR"
        assert settings.status_table == "dialcode_batch"
        assert settings.status_key_column == "processid"
        assert settings.overwrite_archive is False
        assert settings.max_workers == 1

    def test_from_env(self, tmp_path):
        settings = PipelineSettings.from_env(
            {
                "QR_TEMP_DIR": str(tmp_path),
                "QR_STATUS_TABLE": "batches",
                "QR_OVERWRITE_ARCHIVE": "true",
                "QR_MAX_WORKERS": "4",
                "QR_DEFAULT_IMAGE_FORMAT": "jpg",
            }
        )

        assert settings.temp_dir == tmp_path
        assert settings.status_table == "batches"
        assert settings.overwrite_archive is True
        assert settings.max_workers == 4
        assert settings.image_defaults.image_format == "jpg"

    def test_from_env_invalid_value(self):
        with pytest.raises(ConfigurationError):
            PipelineSettings.from_env({"QR_MAX_WORKERS": "zero"})
