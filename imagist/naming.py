from __future__ import annotations

import re
from pathlib import Path

INVALID_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1F]')


def sanitize_token(value: str | None, fallback: str = "NA") -> str:
    text = (value or "").strip()
    if not text:
        text = fallback
    text = INVALID_FILENAME_CHARS.sub("_", text)
    text = re.sub(r"\s+", "_", text)
    text = text.strip(" ._")
    return text or fallback


def sanitize_filename(value: str, fallback: str = "output") -> str:
    text = INVALID_FILENAME_CHARS.sub("_", value).strip()
    text = text.strip(" .")
    return text or fallback


def build_output_name(
    name_template: str,
    source: Path,
    extension: str | None = None,
    size: tuple[int, int] | None = None,
) -> str:
    """Render an output file name such as ``"{stem}_{width}x{height}.{ext}"``.

    ``extension`` defaults to the source's own suffix.
    """
    ext = (extension or source.suffix or "png").lower().lstrip(".")
    width, height = size if size else (0, 0)
    values = {
        "stem": sanitize_token(source.stem, fallback="image"),
        "name": sanitize_token(source.name, fallback="image"),
        "width": width,
        "height": height,
        "ext": ext,
    }
    try:
        rendered = name_template.format(**values)
    except KeyError as exc:
        missing = str(exc).strip("'")
        raise ValueError(f"name template contains unknown key: {missing}") from exc

    rendered = sanitize_filename(rendered, fallback=f"{source.stem}.{ext}")
    if not Path(rendered).suffix:
        rendered = f"{rendered}.{ext}"
    return rendered
