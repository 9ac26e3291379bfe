from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer

from vendorize.config import merge_payload, settings_from_table, vendorize_defaults
from vendorize.exceptions import ConfigurationError
from vendorize.runner import run_vendorize
from vendorize.schema import report_from_result

app = typer.Typer(add_completion=False)

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=_LOG_FORMAT,
        force=True,
    )


@app.command()
def vendorize(
    package: str = typer.Argument("", help="Import path of the package to vendorize."),
    destination: str = typer.Argument("", help="Prefix the dependencies are copied under."),
    exclude: Optional[List[str]] = typer.Option(
        None, "--exclude", "-x", help="Package prefix not to copy. Can be given multiple times."
    ),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite packages already vendorized."),
    update_imports: bool = typer.Option(
        False, "--update-imports", "-u", help="Rewrite imports to the vendorized locations."
    ),
    dry_run: bool = typer.Option(False, "--dry-run", "-d", help="Report actions without writing."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every action at debug level."),
    search_path: Optional[List[Path]] = typer.Option(None, "--search-path", help="Directory to resolve imports in."),
    output_root: Optional[Path] = typer.Option(
        None, "--output-root", help="Directory the destination prefix is created under."
    ),
    jobs: Optional[int] = typer.Option(None, "--jobs", "-j", min=1, help="Number of worker threads."),
    root: Path = typer.Option(Path("."), "--root", help="Directory holding vendorize.toml."),
    config: Optional[Path] = typer.Option(None, "--config", help="Config file to read instead of ROOT/vendorize.toml."),
    report: Optional[Path] = typer.Option(None, "--report", help="Write a JSON run report."),
) -> None:
    """Copy the external dependencies of PACKAGE below DESTINATION."""
    _configure_logging(verbose)
    payload = {
        "exclude": list(exclude or []) or None,
        "force": force or None,
        "update_imports": update_imports or None,
        "dry_run": dry_run or None,
        "search_path": [str(entry) for entry in search_path or []] or None,
        "output_root": str(output_root) if output_root is not None else None,
        "jobs": jobs,
    }
    settings = settings_from_table(
        merge_payload(payload, vendorize_defaults(root=root, config_path=config))
    )
    try:
        result = run_vendorize(
            package,
            destination,
            settings.exclude,
            force=settings.force,
            update_imports=settings.update_imports,
            dry_run=settings.dry_run,
            search_path=settings.search_path,
            output_root=settings.output_root,
            jobs=settings.jobs,
        )
    except ConfigurationError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=2)

    if report is not None:
        dto = report_from_result(
            result, root=package, destination=destination, dry_run=settings.dry_run
        )
        report.parent.mkdir(parents=True, exist_ok=True)
        report.write_text(dto.model_dump_json(indent=2) + "\n", encoding="utf-8")

    for error in result.errors:
        typer.echo(str(error), err=True)
    prefix = "DRY RUN: " if settings.dry_run else ""
    typer.echo(f"{prefix}Vendorized {result.rewrite_count} imports in {result.elapsed:.2f}s")
    if result.errors:
        raise typer.Exit(code=result.exit_code)


def main() -> None:
    app()
