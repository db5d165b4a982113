"""
Human-readable output formatting.

Centralizes all CLI output so commands stay thin. Results go to stdout,
errors to stderr.
"""
from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Tuple

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..download import DownloadResult
from ..errors import HTTPStatusError
from ..packages import UploadResult

_console = Console()
_err_console = Console(stderr=True)

# Keep error bodies readable in a terminal
MAX_BODY_CHARS = 2000


def print_download_summary(result: DownloadResult, image: str, reference: str) -> None:
    """
    Print download summary.

    Args:
        result: Paths written by the download
        image: Image path that was downloaded
        reference: Tag or digest that was requested
    """
    _console.print(f"[bold]Image:[/] {escape(image)}:{escape(reference)}")
    if result.manifest_list_path is not None:
        _console.print(f"[bold]Manifest list:[/] {result.manifest_list_path}")
        _console.print(f"[bold]Selected manifest:[/] [dim]{result.selected_digest}[/]")
    _console.print(f"[bold]Manifest:[/] {result.manifest_path}")
    _console.print(f"[bold]Config:[/] {result.config_path}")

    if result.layer_paths:
        table = Table(title=f"Layers ({len(result.layer_paths)})")
        table.add_column("File", style="cyan")
        table.add_column("Size", style="yellow", justify="right")
        for path in result.layer_paths:
            table.add_row(path.name, _format_bytes(path.stat().st_size))
        _console.print(table)
    else:
        _console.print("[dim]No layers[/]")

    _console.print(f"All components saved in {result.output_dir.resolve()}")


def print_extract_summary(member: str, target: Path) -> None:
    _console.print(f"Extracted {escape(member)} to {target}")


def print_upload_summary(result: UploadResult) -> None:
    """
    Print upload summary.

    Args:
        result: Successful upload
    """
    _console.print(f"Uploaded {_format_bytes(result.size)} to {escape(result.url)}")
    _console.print(f"[bold]Status:[/] {result.status_code}")
    _console.print(f"[bold]Auth:[/] {'direct token' if result.direct else 'registry token'}")
    if result.attempts > 1:
        _console.print("[dim]Token was refreshed once during upload[/]")


def print_error(message: str) -> None:
    _err_console.print(f"[bold red]Error:[/] {escape(message)}")


def _diagnostic_headers(headers: Dict[str, str]) -> List[Tuple[str, str]]:
    """Auth challenge and registry headers worth showing on failure."""
    return [
        (name, value) for name, value in headers.items()
        if name.lower() == "www-authenticate" or name.lower().startswith("docker-")
    ]


def print_http_error(error: HTTPStatusError) -> None:
    """Print an HTTP failure with selected response headers and the body for diagnostics."""
    print_error(str(error))
    headers = _diagnostic_headers(error.headers)
    if headers:
        _err_console.print("[bold]Response headers:[/]")
        for name, value in headers:
            _err_console.print(f"  {escape(name)}: {escape(value)}", highlight=False, soft_wrap=True)
    body = error.body.strip()
    if body:
        if len(body) > MAX_BODY_CHARS:
            body = body[:MAX_BODY_CHARS] + "…"
        _err_console.print("[bold]Response body:[/]")
        _err_console.print(escape(body), highlight=False)


def _format_bytes(size_bytes: int) -> str:
    """
    Format byte count as human-readable string.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted string (e.g., "1.5 MB", "42 KB")
    """
    if size_bytes == 0:
        return "0 B"
    elif size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / (1024 * 1024):.1f} MB"
    else:
        return f"{size_bytes / (1024 * 1024 * 1024):.1f} GB"
