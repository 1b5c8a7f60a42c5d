"""QR image rendering with qrcode and Pillow."""

from pathlib import Path
from typing import Dict, Tuple, Union

import qrcode
from PIL import Image, ImageDraw, ImageFont

from .exceptions import RenderError
from .logging_config import get_logger
from .models import ImageConfig, WorkItem
from .protocols import ImageRenderer

ERROR_CORRECTION: Dict[str, int] = {
    "L": qrcode.constants.ERROR_CORRECT_L,
    "M": qrcode.constants.ERROR_CORRECT_M,
    "Q": qrcode.constants.ERROR_CORRECT_Q,
    "H": qrcode.constants.ERROR_CORRECT_H,
}

COLOUR_MODELS: Dict[str, str] = {
    "grayscale": "L",
    "greyscale": "L",
    "gray": "L",
    "rgb": "RGB",
}


def pil_format(image_format: str) -> str:
    """Map a file extension such as ``png`` or ``jpg`` to a Pillow format name."""
    ext = "." + image_format.lower().lstrip(".")
    formats = Image.registered_extensions()
    if ext not in formats:
        raise RenderError(f"Unsupported image format: {image_format}")
    return formats[ext]


def load_font(name: str, size: int) -> Union[ImageFont.FreeTypeFont, ImageFont.ImageFont]:
    """Load a TrueType font by name, falling back to Pillow's bundled font."""
    for candidate in (name, f"{name}.ttf"):
        try:
            return ImageFont.truetype(candidate, size)
        except OSError:
            continue
    return ImageFont.load_default(size=size)


class QRCodeRenderer(ImageRenderer):
    """Draws a QR code with an optional caption underneath."""

    def __init__(self) -> None:
        self._logger = get_logger("renderer")

    def build_qr(self, payload: str, config: ImageConfig) -> Image.Image:
        level = config.error_correction_level.upper()
        if level not in ERROR_CORRECTION:
            raise RenderError(f"Unknown error correction level: {config.error_correction_level}")

        qr = qrcode.QRCode(
            error_correction=ERROR_CORRECTION[level],
            box_size=config.pixels_per_block,
            border=config.qr_code_margin,
        )
        qr.add_data(payload)
        qr.make(fit=True)
        return qr.make_image(fill_color="black", back_color="white").get_image()

    def _caption_size(self, text: str, font, spacing: float) -> Tuple[int, int]:
        if not text:
            return 0, 0
        width = sum(font.getlength(ch) for ch in text) + spacing * (len(text) - 1)
        top, bottom = font.getbbox("Ag")[1], font.getbbox("Ag")[3]
        return int(round(width)), bottom - top

    def compose(self, item: WorkItem, config: ImageConfig) -> Image.Image:
        mode = COLOUR_MODELS.get(config.colour_model.lower())
        if mode is None:
            raise RenderError(f"Unknown colour model: {config.colour_model}", item.id)

        qr_image = self.build_qr(item.payload, config).convert(mode)
        qr_w, qr_h = qr_image.size

        caption = item.caption
        font = load_font(config.text_font_name, config.text_font_size)
        spacing = config.text_character_spacing * config.text_font_size
        text_w, text_h = self._caption_size(caption, font, spacing)

        margin = config.image_margin
        border = config.image_border_size
        gap = config.qr_code_margin_bottom if caption else 0
        width = max(qr_w, text_w) + 2 * (margin + border)
        height = qr_h + gap + text_h + 2 * (margin + border)

        canvas = Image.new(mode, (width, height), "white")
        canvas.paste(qr_image, ((width - qr_w) // 2, margin + border))

        draw = ImageDraw.Draw(canvas)
        if caption:
            x = (width - text_w) / 2
            y = margin + border + qr_h + gap - font.getbbox("Ag")[1]
            for ch in caption:
                draw.text((x, y), ch, font=font, fill="black")
                x += font.getlength(ch) + spacing
        if border:
            draw.rectangle((0, 0, width - 1, height - 1), outline="black", width=border)
        return canvas

    def render(self, item: WorkItem, config: ImageConfig, dest_path: Path) -> Path:
        if not item.id:
            raise RenderError("Work item without id cannot be rendered")
        dest = Path(dest_path)
        try:
            image = self.compose(item, config)
            dest.parent.mkdir(parents=True, exist_ok=True)
            image.save(dest, format=pil_format(config.image_format))
        except RenderError:
            raise
        except Exception as e:  # noqa: BLE001
            raise RenderError(f"Failed to render QR image: {e}", item.id) from e

        self._logger.debug(f"Rendered {item.id} to {dest}")
        return dest
