from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

import typer

from imagist.config import load_config, write_default_config
from imagist.discover import discover_inputs
from imagist.image import Imagist
from imagist.naming import build_output_name
from imagist.optimizer import compress

app = typer.Typer(add_completion=False, no_args_is_help=True, help="Imagist image resize / crop / optimize CLI.")
LOGGER = logging.getLogger("imagist")

OPTIMIZE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".bmp"}


@dataclass(slots=True)
class _Result:
    source: Path
    status: str          # ok | skipped | failed
    output: Path | None = None
    elapsed: float = 0.0
    error: str | None = None
    detail: str | None = None


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


def _default_out_dir(input_path: Path) -> Path:
    return (input_path / "output") if input_path.is_dir() else (input_path.parent / "output")


def _run_batch(files: list[Path], process_one: Callable[[Path], _Result]) -> list[_Result]:
    results: list[_Result] = []
    for f in files:
        t0 = time.perf_counter()
        try:
            r = process_one(f)
        except Exception as exc:
            r = _Result(source=f, status="failed", error=str(exc))
        r.elapsed = time.perf_counter() - t0
        results.append(r)
        if r.status == "ok":
            LOGGER.info(
                "OK   %s -> %s  %s(%.2fs)",
                r.source.name,
                r.output.name if r.output else "-",
                f"{r.detail} " if r.detail else "",
                r.elapsed,
            )
        elif r.status == "skipped":
            LOGGER.info("SKIP %s (exists)", r.source.name)
        else:
            LOGGER.error("FAIL %s  %s", r.source.name, r.error)
    return results


def _report(results: list[_Result]) -> None:
    ok = sum(1 for r in results if r.status == "ok")
    skip = sum(1 for r in results if r.status == "skipped")
    failed = [r for r in results if r.status == "failed"]
    typer.echo(f"Done. success={ok} skipped={skip} failed={len(failed)}")
    if failed:
        typer.secho("Failures:", fg=typer.colors.RED)
        for r in failed:
            typer.secho(f"  {r.source}: {r.error}", fg=typer.colors.RED)
        raise typer.Exit(1)


def _coordinate(value: Any) -> Any:
    """CLI and YAML values arrive as strings or numbers; blank means absent."""
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return value


@app.command()
def demo(
    input_path: Path = typer.Argument(Path("images"), exists=True, file_okay=False, resolve_path=True),
    out: Path | None = typer.Option(None, "--out", help="Output directory (default: output/ next to the input folder)."),
    backend: str | None = typer.Option(None, "--backend", help="auto|pillow|magick"),
    log_level: str = typer.Option("info", "--log-level"),
) -> None:
    """Resize every image in a folder to cover 300x300, then crop the centre 200x200."""
    _setup_logging(log_level)
    cfg = load_config()
    demo_cfg = cfg["demo"]
    backend_name = backend or str(cfg.get("backend", "auto"))
    quality = int(cfg.get("quality", 90))

    files = discover_inputs(input_path)
    if not files:
        typer.echo("No supported image files found.")
        raise typer.Exit(0)

    out_dir = out or (input_path.parent / "output")
    out_dir.mkdir(parents=True, exist_ok=True)

    def process_one(source: Path) -> _Result:
        output_file = out_dir / source.name
        with Imagist(source, backend=backend_name, quality=quality) as image:
            image.resize(
                _coordinate(demo_cfg.get("resize_width")),
                _coordinate(demo_cfg.get("resize_height")),
                demo_cfg.get("fit"),
                demo_cfg.get("scale"),
            ).crop(
                demo_cfg.get("crop_left", "center"),
                demo_cfg.get("crop_top", "middle"),
                demo_cfg.get("crop_width", 200),
                demo_cfg.get("crop_height", 200),
            )
            image.save(output_file)
            detail = f"{image.width}x{image.height}"
        return _Result(source=source, status="ok", output=output_file, detail=detail)

    _report(_run_batch(files, process_one))


@app.command()
def process(
    input_path: Path = typer.Argument(..., exists=True, resolve_path=True),
    out: Path | None = typer.Option(None, "--out", help="Output directory."),
    recursive: bool = typer.Option(False, "--recursive", help="Recursively scan input directories."),
    width: str | None = typer.Option(None, "--width", help='Resize width, e.g. 300, "50%", "50% - 20".'),
    height: str | None = typer.Option(None, "--height", help="Resize height (smart coordinate)."),
    fit: str | None = typer.Option(None, "--fit", help="inside|outside|fill"),
    scale: str | None = typer.Option(None, "--scale", help="down|up|any"),
    crop_left: str = typer.Option("0", "--crop-left", help='Crop left, e.g. 10, "center", "right - 5".'),
    crop_top: str = typer.Option("0", "--crop-top", help="Crop top (smart coordinate)."),
    crop_width: str | None = typer.Option(None, "--crop-width", help="Crop width; crop runs when width and height are set."),
    crop_height: str | None = typer.Option(None, "--crop-height", help="Crop height (smart coordinate)."),
    watermark: Path | None = typer.Option(None, "--watermark", exists=True, dir_okay=False, help="Overlay image."),
    edge_x: str | None = typer.Option(None, "--edge-x", help="left|right"),
    edge_y: str | None = typer.Option(None, "--edge-y", help="top|bottom"),
    padding_x: int | None = typer.Option(None, "--padding-x"),
    padding_y: int | None = typer.Option(None, "--padding-y"),
    opacity: float | None = typer.Option(None, "--opacity", help="Overlay opacity 0-100."),
    backend: str | None = typer.Option(None, "--backend", help="auto|pillow|magick"),
    quality: int | None = typer.Option(None, "--quality", min=1, max=100),
    name_template: str | None = typer.Option(None, "--name", help='Output filename template, e.g. "{stem}_{width}x{height}.{ext}"'),
    skip_existing: bool | None = typer.Option(None, "--skip-existing/--no-skip-existing"),
    log_level: str = typer.Option("info", "--log-level"),
) -> None:
    """Resize, crop and watermark images, in that order."""
    _setup_logging(log_level)
    cfg = load_config()
    wm_cfg = cfg["watermark"]

    backend_name = backend or str(cfg.get("backend", "auto"))
    quality_val = int(quality if quality is not None else cfg.get("quality", 90))
    fit_val = fit or cfg.get("fit")
    scale_val = scale or cfg.get("scale")
    name_tmpl = name_template or str(cfg.get("name_template", "{stem}.{ext}"))
    skip = bool(cfg.get("skip_existing", False)) if skip_existing is None else skip_existing
    do_resize = _coordinate(width) is not None or _coordinate(height) is not None
    do_crop = _coordinate(crop_width) is not None and _coordinate(crop_height) is not None

    out_dir = out or _default_out_dir(input_path)
    files = discover_inputs(input_path, recursive=recursive, exclude=out_dir)
    if not files:
        typer.echo("No supported image files found.")
        raise typer.Exit(0)
    out_dir.mkdir(parents=True, exist_ok=True)

    def process_one(source: Path) -> _Result:
        with Imagist(source, backend=backend_name, quality=quality_val) as image:
            if do_resize:
                image.resize(_coordinate(width), _coordinate(height), fit_val, scale_val)
            if do_crop:
                image.crop(crop_left, crop_top, crop_width, crop_height)
            if watermark is not None:
                image.watermark(
                    watermark,
                    horizontal=edge_x or wm_cfg.get("horizontal", "right"),
                    vertical=edge_y or wm_cfg.get("vertical", "bottom"),
                    padding_x=padding_x if padding_x is not None else int(wm_cfg.get("padding_x", 0)),
                    padding_y=padding_y if padding_y is not None else int(wm_cfg.get("padding_y", 0)),
                    opacity=opacity if opacity is not None else wm_cfg.get("opacity", 100),
                )
            output_file = out_dir / build_output_name(name_tmpl, source, size=image.size)
            if skip and output_file.exists():
                return _Result(source=source, status="skipped", output=output_file)
            image.save(output_file)
            detail = f"{image.width}x{image.height}"
        return _Result(source=source, status="ok", output=output_file, detail=detail)

    _report(_run_batch(files, process_one))


@app.command()
def optimize(
    input_path: Path = typer.Argument(..., exists=True, resolve_path=True),
    out: Path | None = typer.Option(None, "--out", help="Output directory (default: optimize in place)."),
    recursive: bool = typer.Option(False, "--recursive", help="Recursively scan input directories."),
    engine: str | None = typer.Option(None, "--engine", help="auto|external|pillow"),
    log_level: str = typer.Option("info", "--log-level"),
) -> None:
    """Shrink JPEG/PNG/BMP (to JPEG) and GIF files."""
    _setup_logging(log_level)
    opt_cfg = load_config()["optimizer"]
    engine_val = engine or str(opt_cfg.get("engine", "auto"))

    files = discover_inputs(input_path, recursive=recursive, extensions=OPTIMIZE_EXTENSIONS, exclude=out)
    if not files:
        typer.echo("No supported image files found.")
        raise typer.Exit(0)

    def process_one(source: Path) -> _Result:
        dest = (out / source.name) if out is not None else None
        result = compress(
            source,
            dest,
            engine=engine_val,
            max_width=int(opt_cfg.get("max_width", 2816)),
            max_height=int(opt_cfg.get("max_height", 2112)),
            quality=int(opt_cfg.get("quality", 80)),
        )
        LOGGER.debug("optimize result %s", json.dumps(result.to_dict(), ensure_ascii=False))
        detail = f"{result.original_bytes} -> {result.final_bytes} bytes"
        if result.kept_original:
            detail += " (kept original)"
        return _Result(source=source, status="ok", output=result.output, detail=detail)

    _report(_run_batch(files, process_one))


@app.command("inspect")
def inspect_file(
    file: Path = typer.Argument(..., exists=True, resolve_path=True, dir_okay=False),
    backend: str = typer.Option("auto", "--backend", help="auto|pillow|magick"),
) -> None:
    try:
        with Imagist(file, backend=backend) as image:
            payload = {
                "file": str(file),
                "backend": image.backend.name,
                "width": image.width,
                "height": image.height,
                "mime_type": image.mime_type,
            }
    except Exception as exc:
        typer.secho(f"Cannot read image: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(1)
    typer.echo(json.dumps(payload, ensure_ascii=False, indent=2))


@app.command("init-config")
def init_config(
    force: bool = typer.Option(False, "--force", help="Overwrite existing config file."),
) -> None:
    path = write_default_config(force=force)
    typer.echo(f"Config initialized: {path}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
