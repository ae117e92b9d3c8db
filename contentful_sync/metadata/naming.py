"""
File naming rules: which files are synced, and how a file name maps to the
asset title/description in Contentful.
"""
from pathlib import Path
from typing import Tuple, Union

from .. import config


def is_generated(name: str) -> bool:
    """True for copies produced by the watermark step."""
    return name.lower().endswith(config.GENERATED_SUFFIX + config.IMAGE_EXT)


def has_image_ext(name: str) -> bool:
    return name.lower().endswith(config.IMAGE_EXT)


def is_qualifying(name: str) -> bool:
    """Marker prefix + image extension, and not a generated copy."""
    return (
        name.startswith(config.SYNC_MARKER)
        and has_image_ext(name)
        and not is_generated(name)
    )


def parse_display_name(file_name: str) -> Tuple[str, str]:
    """
    Splits a file name into (display_name, description).

        '$Fern-Green leaves-extra.jpg' -> ('Fern', 'Green leaves')
        '$Rose.jpg'                    -> ('Rose', '')

    The description runs from the first hyphen to the second one (or the
    end); anything after a second hyphen is dropped.
    """
    stem = file_name
    if stem.startswith(config.SYNC_MARKER):
        stem = stem[len(config.SYNC_MARKER):]
    if has_image_ext(stem):
        stem = stem[:-len(config.IMAGE_EXT)]

    first = stem.find('-')
    if first == -1:
        return stem, ''

    name = stem[:first]
    second = stem.find('-', first + 1)
    description = stem[first + 1:second] if second != -1 else stem[first + 1:]
    return name, description


def generated_names(relative_path: str, file_name: str) -> Tuple[str, str]:
    """
    Returns (relative_path, file_name) of the watermarked copy of an image.

        'trees/$Oak.jpg' -> ('watermarked/trees/$Oak-watermarked.jpg', '$Oak-watermarked.jpg')
    """
    ext_len = len(config.IMAGE_EXT)
    new_name = f"{file_name[:-ext_len]}{config.GENERATED_SUFFIX}{config.IMAGE_EXT}"
    rel_parent = Path(relative_path).parent
    new_rel = Path(config.GENERATED_DIR_NAME) / rel_parent / new_name
    return new_rel.as_posix(), new_name


def relative_to_root(path: Union[str, Path], root: Path) -> str:
    return Path(path).relative_to(root).as_posix()
