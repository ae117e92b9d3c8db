import io
import logging
from pathlib import Path
from typing import Optional

from PIL import Image, ImageDraw, ImageFont

from .. import config
from ..exceptions import FileReadError, TransformError
from ..metadata.naming import generated_names
from ..models import TransformResult


class Watermarker:
    """
    Produces the public copy of an image: the mark is pasted into the bottom
    right corner and the result is written under <root>/watermarked/.
    """

    def __init__(self, root: Path, mark_path: Optional[Path] = None):
        self.root = Path(root)
        self.mark_path = Path(mark_path) if mark_path else None

    def transform(self, path: Path, file_name: str, relative_path: str) -> TransformResult:
        try:
            original = Path(path).read_bytes()
        except OSError as e:
            raise FileReadError(path, e) from e

        try:
            with Image.open(io.BytesIO(original)) as src:
                base = src.convert('RGB')
        except Exception as e:
            raise TransformError(f"Cannot decode {relative_path}: {e}") from e

        mark = self._scaled_mark(base.width, base.height)
        base.paste(mark, (base.width - mark.width, base.height - mark.height), mark)

        out = io.BytesIO()
        base.save(out, format='JPEG', quality=config.WATERMARK_QUALITY)
        transformed = out.getvalue()

        new_rel, new_name = generated_names(relative_path, file_name)
        new_path = self.root / new_rel
        new_path.parent.mkdir(parents=True, exist_ok=True)
        new_path.write_bytes(transformed)
        logging.debug(f"Watermarked {relative_path} -> {new_rel}")

        return TransformResult(
            original_bytes=original,
            transformed_bytes=transformed,
            transformed_path=new_path,
            transformed_relative_path=new_rel,
            transformed_file_name=new_name,
        )

    def _scaled_mark(self, width: int, height: int) -> Image.Image:
        ratio = config.WATERMARK_RATIO_LANDSCAPE if width >= height else config.WATERMARK_RATIO_PORTRAIT
        mark = self._load_mark()
        target_w = max(1, int(width * ratio))
        target_h = max(1, round(mark.height * target_w / mark.width))
        return mark.resize((target_w, target_h), Image.Resampling.LANCZOS)

    def _load_mark(self) -> Image.Image:
        if self.mark_path:
            with Image.open(self.mark_path) as m:
                return m.convert('RGBA')
        return self._text_mark()

    def _text_mark(self) -> Image.Image:
        """Fallback mark when no watermark image is configured."""
        font = ImageFont.load_default()
        probe = ImageDraw.Draw(Image.new('RGBA', (1, 1)))
        left, top, right, bottom = probe.textbbox((0, 0), config.WATERMARK_TEXT, font=font)
        mark = Image.new('RGBA', (max(1, right - left), max(1, bottom - top)), (0, 0, 0, 0))
        draw = ImageDraw.Draw(mark)
        draw.text((-left, -top), config.WATERMARK_TEXT, font=font,
                  fill=(255, 255, 255, config.WATERMARK_TEXT_OPACITY))
        return mark
