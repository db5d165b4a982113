"""
glregistry CLI

Implements 3 CLI verbs against a GitLab instance:
- download: Download an image's manifest, config and layers without Docker
- extract: Extract one file from a layer archive (local or from the registry)
- upload: Upload a file as a generic package

Exit code 0 on success, 1 on any failure (including missing arguments).
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from .auth import LongLivedCredential
from .cli_context import CLIContext
from .download import download_image
from .errors import ConfigurationError
from .extract import extract_file, extract_layer_file
from .operations import run_and_exit
from .operations.printers import print_download_summary, print_extract_summary, print_upload_summary
from .packages import PackageUpload, upload_generic_package
from .registry import RegistryClient

app = typer.Typer(name="glregistry", help="GitLab Container Registry and generic package tools")

TOKEN_ENVVAR = "GLREGISTRY_TOKEN"


def _configure_logging(level: int) -> None:
    """Route package logs to stderr through rich."""
    pkg_logger = logging.getLogger("glregistry")
    for handler in list(pkg_logger.handlers):
        if isinstance(handler, RichHandler):
            pkg_logger.removeHandler(handler)
    pkg_logger.addHandler(
        RichHandler(console=Console(stderr=True), show_time=False, show_path=False, markup=False)
    )
    pkg_logger.setLevel(level)


def _require(**options: Optional[str]) -> None:
    """
    Validate mandatory options.

    Options are declared optional so that missing ones exit with 1 through
    run_and_exit instead of click's usage error code.
    """
    missing = [f"--{name.replace('_', '-')}" for name, value in options.items() if not value]
    if missing:
        raise ConfigurationError(f"Missing mandatory arguments: {', '.join(missing)}")


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-V", help="Show progress messages on stderr")
) -> None:
    """GitLab Container Registry and generic package tools."""
    _configure_logging(logging.INFO if verbose else logging.WARNING)


@app.command()
def download(
    registry: Optional[str] = typer.Option(None, "--registry", "-r", help="Registry FQDN, e.g. registry.gitlab.com"),
    image: Optional[str] = typer.Option(None, "--image", "-i", help="Image path, e.g. mygroup/myproject/myimage"),
    tag: Optional[str] = typer.Option(None, "--tag", "-t", help="Image tag or digest"),
    token: Optional[str] = typer.Option(None, "--token", "-k", envvar=TOKEN_ENVVAR, help="GitLab token with read_registry scope"),
    username: Optional[str] = typer.Option(None, "--username", "-U", help="Username for Basic auth (token becomes the password)"),
    output: Path = typer.Option(Path("./docker_image_download"), "--output", "-o", help="Output directory"),
    auth_realm: Optional[str] = typer.Option(None, "--auth-realm", "-A", help="Override the token realm URL"),
    auth_service: Optional[str] = typer.Option(None, "--auth-service", "-S", help="Override the token service name"),
    arch: Optional[str] = typer.Option(None, "--arch", help="Platform architecture for multi-arch images"),
    os_name: Optional[str] = typer.Option(None, "--os", help="Platform OS for multi-arch images"),
) -> None:
    """Download an image's manifest, config and layers."""

    def _download() -> None:
        _require(registry=registry, image=image, tag=tag, token=token)
        with CLIContext.from_env() as context:
            settings = context.settings
            client = RegistryClient.connect(
                context.client,
                settings,
                registry,
                image,
                LongLivedCredential(token=token, username=username or None),
                realm_override=auth_realm,
                service_override=auth_service,
            )
            result = download_image(
                client,
                tag,
                output,
                architecture=arch or settings.platform_architecture,
                os=os_name or settings.platform_os,
            )
        print_download_summary(result, image, tag)

    run_and_exit(_download)


@app.command()
def extract(
    path: Optional[str] = typer.Option(None, "--path", "-p", help="File path inside the layer, e.g. /etc/os-release"),
    output: Path = typer.Option(Path("."), "--output", "-o", help="Destination file or directory"),
    archive: Optional[Path] = typer.Option(None, "--archive", "-a", help="Local layer archive"),
    registry: Optional[str] = typer.Option(None, "--registry", "-r", help="Registry FQDN (when fetching the layer)"),
    image: Optional[str] = typer.Option(None, "--image", "-i", help="Image path (when fetching the layer)"),
    digest: Optional[str] = typer.Option(None, "--digest", "-d", help="Layer digest (when fetching the layer)"),
    token: Optional[str] = typer.Option(None, "--token", "-k", envvar=TOKEN_ENVVAR, help="GitLab token with read_registry scope"),
    username: Optional[str] = typer.Option(None, "--username", "-U", help="Username for Basic auth"),
    auth_realm: Optional[str] = typer.Option(None, "--auth-realm", "-A", help="Override the token realm URL"),
    auth_service: Optional[str] = typer.Option(None, "--auth-service", "-S", help="Override the token service name"),
) -> None:
    """Extract a single file from a layer archive."""

    def _extract() -> None:
        _require(path=path)
        if archive is not None:
            target = extract_file(archive, path, output)
        else:
            _require(registry=registry, image=image, digest=digest, token=token)
            with CLIContext.from_env() as context:
                client = RegistryClient.connect(
                    context.client,
                    context.settings,
                    registry,
                    image,
                    LongLivedCredential(token=token, username=username or None),
                    realm_override=auth_realm,
                    service_override=auth_service,
                )
                target = extract_layer_file(client, digest, path, output)
        print_extract_summary(path, target)

    run_and_exit(_extract)


@app.command()
def upload(
    gitlab: Optional[str] = typer.Option(None, "--gitlab", "-g", help="GitLab instance URL, e.g. gitlab.com"),
    project: Optional[str] = typer.Option(None, "--project", "-p", help="Project ID or path, e.g. 12345 or mygroup/myproject"),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Generic package name"),
    version: Optional[str] = typer.Option(None, "--version", "-v", help="Generic package version"),
    file: Optional[Path] = typer.Option(None, "--file", "-f", help="Local file to upload"),
    token: Optional[str] = typer.Option(None, "--token", "-k", envvar=TOKEN_ENVVAR, help="GitLab token (PAT, deploy or CI job token)"),
    username: Optional[str] = typer.Option(None, "--username", "-U", help="Username for Basic auth to the token endpoint"),
    auth_realm: Optional[str] = typer.Option(None, "--auth-realm", "-A", help="Token realm URL, skips discovery together with -S"),
    auth_service: Optional[str] = typer.Option(None, "--auth-service", "-S", help="Token service name"),
    scope: Optional[str] = typer.Option(None, "--scope", help="Token scope (default: api)"),
    debug: bool = typer.Option(False, "--debug", "-D", help="Enable debug output"),
) -> None:
    """Upload a file as a generic package."""

    def _upload() -> None:
        if debug:
            _configure_logging(logging.DEBUG)
        _require(gitlab=gitlab, project=project, name=name, version=version,
                 file=str(file) if file else None, token=token)
        with CLIContext.from_env() as context:
            result = upload_generic_package(
                context.client,
                context.settings,
                PackageUpload(gitlab_url=gitlab, project=project, name=name, version=version, file_path=file),
                LongLivedCredential(token=token, username=username or None),
                scope=scope,
                realm_override=auth_realm,
                service_override=auth_service,
            )
        print_upload_summary(result)

    run_and_exit(_upload)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
