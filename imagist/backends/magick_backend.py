from __future__ import annotations

import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path

from imagist.constants import BACKEND_MAGICK
from imagist.errors import BackendFailureError
from imagist.subprocess_utils import decode_subprocess_output, run_command

LOGGER = logging.getLogger(__name__)
MAGICK_ENV = "IMAGIST_MAGICK"

# Lossless ImageMagick-native format for the working copy
_WORK_SUFFIX = ".miff"


@dataclass(frozen=True, slots=True)
class MagickToolchain:
    convert: list[str]
    identify: list[str]


def _identify_beside(convert: str) -> str:
    sibling = Path(convert).with_name("identify" + Path(convert).suffix)
    if sibling.is_file():
        return str(sibling)
    found = shutil.which("identify")
    if found:
        return found
    raise BackendFailureError(f"{MAGICK_ENV}={convert} needs an `identify` next to it or on PATH")


def detect_toolchain() -> MagickToolchain:
    """Locate ImageMagick.

    $IMAGIST_MAGICK may name either the v7 `magick` binary or a v6 `convert`;
    for the latter the matching `identify` is looked up beside it, then on PATH.
    """
    override = os.environ.get(MAGICK_ENV)
    if override:
        if Path(override).stem.lower() == "convert":
            return MagickToolchain(convert=[override], identify=[_identify_beside(override)])
        return MagickToolchain(convert=[override], identify=[override, "identify"])
    magick = shutil.which("magick")
    if magick:
        return MagickToolchain(convert=[magick], identify=[magick, "identify"])
    convert = shutil.which("convert")
    identify = shutil.which("identify")
    if convert and identify:
        return MagickToolchain(convert=[convert], identify=[identify])
    raise BackendFailureError("missing ImageMagick (need `magick` or both `convert` + `identify`)")


def _parse_size(output: bytes, source: str) -> tuple[int, int]:
    text = decode_subprocess_output(output).strip()
    first = text.splitlines()[0] if text else ""
    parts = first.split()
    try:
        return (int(parts[0]), int(parts[1]))
    except (IndexError, ValueError) as exc:
        raise BackendFailureError(f"identify returned no size for {source}", diagnostic=text) from exc


class MagickBackend:
    """External-process backend driving ImageMagick on a private temp file.

    Every transform writes a fresh temp file which replaces the working copy
    only after the command succeeded, so a failed command leaves the previous
    image untouched.
    """

    name = BACKEND_MAGICK

    def __init__(self, toolchain: MagickToolchain | None = None) -> None:
        self._toolchain = toolchain
        self._work: Path | None = None

    @property
    def toolchain(self) -> MagickToolchain:
        if self._toolchain is None:
            self._toolchain = detect_toolchain()
        return self._toolchain

    @property
    def work_path(self) -> Path | None:
        return self._work

    def _require(self) -> Path:
        if self._work is None:
            raise BackendFailureError("no image has been decoded")
        return self._work

    @staticmethod
    def _new_temp() -> Path:
        fd, name = tempfile.mkstemp(prefix="imagist-", suffix=_WORK_SUFFIX)
        os.close(fd)
        return Path(name)

    def _apply(self, args: list[str]) -> None:
        work = self._require()
        target = self._new_temp()
        try:
            run_command([*self.toolchain.convert, str(work), *args, str(target)], tool="ImageMagick")
            os.replace(target, work)
        finally:
            target.unlink(missing_ok=True)

    def decode(self, path: Path) -> tuple[int, int]:
        if not path.exists():
            raise FileNotFoundError(path)
        target = self._new_temp()
        try:
            run_command([*self.toolchain.convert, str(path), "-auto-orient", str(target)], tool="ImageMagick")
        except BaseException:
            target.unlink(missing_ok=True)
            raise
        self.close()
        self._work = target
        return self.size()

    def size(self) -> tuple[int, int]:
        work = self._require()
        output = run_command(
            [*self.toolchain.identify, "-ping", "-format", "%w %h\n", f"{work}[0]"],
            tool="ImageMagick identify",
        )
        return _parse_size(output, str(work))

    def resize(self, width: int, height: int) -> None:
        self._apply(["-resize", f"{width}x{height}!"])

    def crop(self, left: int, top: int, width: int, height: int) -> None:
        self._apply(["-crop", f"{width}x{height}+{left}+{top}", "+repage"])

    def composite(
        self,
        overlay_path: Path,
        gravity: str,
        x_offset: int,
        y_offset: int,
        opacity: float,
    ) -> None:
        if not overlay_path.exists():
            raise FileNotFoundError(overlay_path)
        self._apply(
            [
                str(overlay_path),
                "-gravity",
                gravity,
                "-geometry",
                f"{int(x_offset):+d}{int(y_offset):+d}",
                "-compose",
                "dissolve",
                "-define",
                f"compose:args={opacity:g}",
                "-composite",
            ]
        )

    def encode(self, path: Path, quality: int) -> None:
        work = self._require()
        path.parent.mkdir(parents=True, exist_ok=True)
        run_command(
            [*self.toolchain.convert, str(work), "-quality", str(int(quality)), str(path)],
            tool="ImageMagick",
        )

    def to_bytes(self, image_format: str, quality: int) -> bytes:
        work = self._require()
        return run_command(
            [*self.toolchain.convert, str(work), "-quality", str(int(quality)), f"{image_format.upper()}:-"],
            tool="ImageMagick",
        )

    def close(self) -> None:
        if self._work is not None:
            self._work.unlink(missing_ok=True)
            LOGGER.debug("removed working copy %s", self._work)
            self._work = None
