"""subprep CLI entry point.

Commands:
  typeset   detect typesetting in one subtitle and write its bookmark list
  prepare   build a comparison workspace for every release in a directory
  fonts     inspect, load and install the fonts a comparison needs
"""

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, TimeElapsedColumn
from rich.table import Table

from subprep.config import resolve_config
from subprep.errors import SubprepError
from subprep.fonts.install import FontInstaller
from subprep.fonts.inventory import FONT_EXTS, list_installed_families, missing_fonts, scan_font_dir, unresolved_fonts
from subprep.ingestion.subtitles import fonts_used
from subprep.typesetting import default_bookmark_path, detect_typesetting
from subprep.workspace.prepare import prepare_directory

app = typer.Typer(
    name="subprep",
    help="Prepare subtitle and font comparison workspaces for video releases.",
    add_completion=False,
)
fonts_app = typer.Typer(help="Check, load and install fonts.", add_completion=False)
app.add_typer(fonts_app, name="fonts")

console = Console()
err_console = Console(stderr=True)

_VALID_SUBTITLE_EXTS = {".ass", ".ssa"}


def _input_error(message: str) -> None:
    err_console.print(Panel(message, title="[red]Input Error[/red]", border_style="red"))
    raise typer.Exit(1)


def _pipeline_error(e: SubprepError) -> None:
    # Typed errors carry their own cause/check text; never show a traceback
    err_console.print(Panel(str(e), title="[red]Error[/red]", border_style="red"))
    raise typer.Exit(1)


def _require_file(path: Path, exts: Optional[set[str]] = None, kind: str = "file") -> None:
    if exts is not None and path.suffix.lower() not in exts:
        _input_error(
            f"Unsupported {kind} format: [bold]{path.suffix}[/bold]\n"
            f"Supported formats: {', '.join(sorted(exts))}"
        )
    if not path.is_file():
        _input_error(
            f"File not found: [bold]{path}[/bold]\n"
            f"Check that the path is correct and the file is accessible."
        )


def _require_dir(path: Path) -> None:
    if not path.is_dir():
        _input_error(
            f"Directory not found: [bold]{path}[/bold]\n"
            f"Check that the path is correct and the directory is accessible."
        )


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging.")] = False,
) -> None:
    """Prepare subtitle and font comparison workspaces for video releases."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


@app.command()
def typeset(
    subtitle: Annotated[Path, typer.Argument(resolve_path=True, help="ASS/SSA subtitle file.")],
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", resolve_path=True, help="Bookmark file (default: <subtitle>.bookmarks)."),
    ] = None,
    score_threshold: Annotated[Optional[int], typer.Option(min=0, help="Minimum override-tag score.")] = None,
    time_gap: Annotated[Optional[float], typer.Option(min=0.0, help="Minimum seconds between bookmarks.")] = None,
    line_gap: Annotated[Optional[int], typer.Option(min=0, help="Minimum dialogue lines between bookmarks.")] = None,
    effect_qualifies: Annotated[
        Optional[bool],
        typer.Option("--effect-qualifies/--no-effect-qualifies", help="Treat a non-empty Effect field as typesetting."),
    ] = None,
    config: Annotated[Optional[Path], typer.Option("--config", "-c", help="JSON config file.")] = None,
) -> None:
    """Detect typesetting lines in SUBTITLE and write an editor bookmark list."""
    _require_file(subtitle, _VALID_SUBTITLE_EXTS, kind="subtitle")

    try:
        settings = resolve_config(config, subtitle.parent).detection
        overrides = {
            "score_threshold": score_threshold,
            "time_gap_s": time_gap,
            "line_gap": line_gap,
            "effect_qualifies": effect_qualifies,
        }
        settings = settings.model_copy(update={k: v for k, v in overrides.items() if v is not None})

        destination = output or default_bookmark_path(subtitle)
        entries = detect_typesetting(subtitle, destination, settings)
    except SubprepError as e:
        _pipeline_error(e)

    console.print(
        f"[green]{len(entries)} typesetting bookmark(s)[/green] written to [dim]{destination}[/dim]"
    )


@app.command()
def prepare(
    directory: Annotated[Path, typer.Argument(resolve_path=True, help="Directory holding the releases.")],
    template: Annotated[
        Optional[Path], typer.Option("--template", "-t", resolve_path=True, help="Playback script template."),
    ] = None,
    target_height: Annotated[
        Optional[int], typer.Option(min=1, help="Output height (default: tallest release)."),
    ] = None,
    no_index: Annotated[bool, typer.Option("--no-index", help="Skip seek index creation.")] = False,
    config: Annotated[Optional[Path], typer.Option("--config", "-c", help="JSON config file.")] = None,
) -> None:
    """Index, extract, script and bookmark every release in DIRECTORY."""
    _require_dir(directory)
    if template is not None:
        _require_file(template, kind="template")

    try:
        cfg = resolve_config(config, directory)
        updates: dict = {}
        if template is not None:
            updates["template"] = str(template)
        if target_height is not None:
            updates["target_height"] = target_height
        if no_index:
            updates["build_index"] = False
        cfg = cfg.model_copy(update={"prepare": cfg.prepare.model_copy(update=updates)})

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("{task.completed}/{task.total}"),
            TimeElapsedColumn(),
            console=console,
        ) as progress:
            task = progress.add_task("Preparing releases...", total=None)

            def _progress_callback(done: int, total: int) -> None:
                progress.update(task, completed=done, total=total)

            reports = prepare_directory(directory, cfg, progress_callback=_progress_callback)
    except SubprepError as e:
        _pipeline_error(e)

    if not reports:
        _input_error(f"No video files found in [bold]{directory}[/bold]")

    table = Table(title="Releases")
    table.add_column("Release")
    table.add_column("Group")
    table.add_column("Index")
    table.add_column("Subtitle")
    table.add_column("Fonts", justify="right")
    table.add_column("Bookmarks", justify="right")
    for r in reports:
        if r.ok:
            table.add_row(
                r.video.name, r.group, r.index.value, r.subtitle.value,
                str(r.font_count), str(r.bookmark_count),
            )
        else:
            table.add_row(r.video.name, r.group, "[red]failed[/red]", "", "", "")
    console.print(table)

    failed = [r for r in reports if not r.ok]
    for r in failed:
        err_console.print(Panel(r.error, title=f"[red]{r.video.name}[/red]", border_style="red"))
    if failed:
        raise typer.Exit(1)


@fonts_app.command("missing")
def fonts_missing(
    directory: Annotated[Path, typer.Argument(resolve_path=True, help="Directory of font files.")],
) -> None:
    """List fonts in DIRECTORY that are not installed on this host."""
    _require_dir(directory)
    try:
        missing = missing_fonts(directory, list_installed_families())
    except SubprepError as e:
        _pipeline_error(e)

    if not missing:
        console.print("[green]All fonts are installed.[/green]")
        return
    for f in missing:
        console.print(f"{f.path.name}  [dim]{', '.join(sorted(f.families))}[/dim]")


@fonts_app.command("check")
def fonts_check(
    subtitle: Annotated[Path, typer.Argument(resolve_path=True, help="ASS/SSA subtitle file.")],
    fonts_dir: Annotated[
        Optional[Path], typer.Option("--fonts-dir", "-f", resolve_path=True, help="Extracted attachments."),
    ] = None,
) -> None:
    """Report fonts SUBTITLE uses that are neither installed nor in --fonts-dir."""
    _require_file(subtitle, _VALID_SUBTITLE_EXTS, kind="subtitle")
    if fonts_dir is not None:
        _require_dir(fonts_dir)
    try:
        available = scan_font_dir(fonts_dir) if fonts_dir is not None else []
        unresolved = unresolved_fonts(fonts_used(subtitle), list_installed_families(), available)
    except SubprepError as e:
        _pipeline_error(e)

    if not unresolved:
        console.print("[green]Every font used by the subtitle is available.[/green]")
        return
    console.print(Panel("\n".join(unresolved), title="[yellow]Unavailable fonts[/yellow]", border_style="yellow"))
    raise typer.Exit(1)


def _font_paths(paths: list[Path]) -> list[Path]:
    """Expand directories into the font files they contain."""
    fonts: list[Path] = []
    for p in paths:
        if p.is_dir():
            fonts.extend(sorted(f for f in p.iterdir() if f.suffix.lower() in FONT_EXTS))
        elif p.is_file():
            fonts.append(p)
        else:
            _input_error(f"File not found: [bold]{p}[/bold]")
    return fonts


_PathsArg = Annotated[list[Path], typer.Argument(resolve_path=True, help="Font files or directories.")]


@fonts_app.command("load")
def fonts_load(paths: _PathsArg) -> None:
    """Load fonts for the current session."""
    installer = FontInstaller()
    try:
        for font in _font_paths(paths):
            installer.load(font)
            console.print(f"[green]loaded[/green] {font.name}")
    except SubprepError as e:
        _pipeline_error(e)


@fonts_app.command("unload")
def fonts_unload(paths: _PathsArg) -> None:
    """Unload fonts previously loaded with `fonts load`."""
    installer = FontInstaller()
    try:
        for font in _font_paths(paths):
            state = "unloaded" if installer.unload(font) else "[dim]not loaded[/dim]"
            console.print(f"{state} {font.name}")
    except SubprepError as e:
        _pipeline_error(e)


@fonts_app.command("install")
def fonts_install(paths: _PathsArg) -> None:
    """Install fonts into the user font directory."""
    installer = FontInstaller()
    try:
        for font in _font_paths(paths):
            dest = installer.install(font)
            console.print(f"[green]installed[/green] {font.name} [dim]{dest}[/dim]")
    except SubprepError as e:
        _pipeline_error(e)


@fonts_app.command("uninstall")
def fonts_uninstall(paths: _PathsArg) -> None:
    """Remove fonts installed with `fonts install`."""
    installer = FontInstaller()
    try:
        for font in _font_paths(paths):
            state = "uninstalled" if installer.uninstall(font) else "[dim]not installed[/dim]"
            console.print(f"{state} {font.name}")
    except SubprepError as e:
        _pipeline_error(e)
