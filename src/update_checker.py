#!/usr/bin/env python3
"""
Synology Update Checker - Command Line Entry Point
Checks DSM/BSM and package updates and installs the selected packages.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click

from resolver.controller import InstallationController
from resolver.engine import UpdateEngine
from resolver.notifications import EmailNotifier, save_debug_copy
from resolver.rendering import html_document, render_html, render_text
from resolver.report import FilterConflictError, ItemFilter
from resolver.workspace import DownloadWorkspace

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(debug: bool = False, verbose: bool = False, log_file: Optional[Path] = None) -> None:
    """Configure root logging once per process."""
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    handlers = [logging.StreamHandler()]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)
    if not debug:
        logging.getLogger("urllib3").setLevel(logging.WARNING)


def _prompt(text: str) -> str:
    try:
        return click.prompt(text, default="", show_default=False, prompt_suffix="")
    except click.Abort:
        return "q"


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("-i", "--info", is_flag=True,
              help="Display system and update information only, without downloads or installation.")
@click.option("-e", "--email", is_flag=True,
              help="Email the report instead of printing it (implies --info).")
@click.option("-r", "--running", is_flag=True,
              help="Check updates only for packages that are currently running.")
@click.option("-c", "--community", "communities", multiple=True, metavar="NAME",
              help="Community repository to check for community packages, e.g. synocommunity "
                   "(repeatable, tried in order).")
@click.option("--official-only", is_flag=True, help="Only check packages published by Synology.")
@click.option("--community-only", is_flag=True, help="Only check community packages.")
@click.option("--os-only", is_flag=True, help="Only check the operating system.")
@click.option("--packages-only", is_flag=True, help="Only check installed packages.")
@click.option("-n", "--dry-run", is_flag=True,
              help="Perform a dry run without downloading or installing updates.")
@click.option("-v", "--verbose", is_flag=True, help="Enable informational log output.")
@click.option("-d", "--debug", is_flag=True, help="Enable debug logging.")
@click.option("--config", "config_path", type=click.Path(dir_okay=False, path_type=Path),
              default=None, help="Path to a JSON configuration file.")
@click.option("--download-dir", type=click.Path(file_okay=False, path_type=Path),
              default=None, help="Directory for downloaded packages (removed after the run).")
@click.option("--log-file", type=click.Path(dir_okay=False, path_type=Path),
              default=None, help="Also write log output to this file.")
def main(
    info: bool,
    email: bool,
    running: bool,
    communities: tuple[str, ...],
    official_only: bool,
    community_only: bool,
    os_only: bool,
    packages_only: bool,
    dry_run: bool,
    verbose: bool,
    debug: bool,
    config_path: Optional[Path],
    download_dir: Optional[Path],
    log_file: Optional[Path],
) -> None:
    """Check for Synology DSM and package updates from the Synology archive."""
    if os_only and packages_only:
        raise click.UsageError("--os-only and --packages-only are mutually exclusive")
    item_filter = ItemFilter(
        running_only=running,
        official_only=official_only,
        community_only=community_only,
    )
    try:
        item_filter.validate()
    except FilterConflictError as e:
        raise click.UsageError(str(e))
    if email:
        info = True

    setup_logging(debug=debug, verbose=verbose, log_file=log_file)

    engine = UpdateEngine(config_path)
    if download_dir:
        engine.config["download_dir"] = str(download_dir)

    if dry_run and not info:
        click.echo("\n[SIMULATION MODE] Running in dry-run mode. No changes will be made.\n")

    device = engine.read_device()
    inventory = [] if os_only else engine.list_inventory()
    report = engine.resolve(
        device,
        inventory,
        item_filter=item_filter,
        check_os=not packages_only,
        check_packages=not os_only,
        communities=list(communities) if communities else None,
    )

    text = render_text(report, include_packages=not os_only)
    if not email:
        click.echo(text)

    if info:
        if email:
            html = html_document(render_html(report, include_packages=not os_only))
            if debug:
                save_debug_copy(html, engine.download_dir.parent / "debug")
            if not EmailNotifier().send(html, text):
                click.echo("Error: Failed to send email", err=True)
                sys.exit(1)
        return

    if os_only:
        return

    workspace = DownloadWorkspace(engine.download_dir)
    tasks = report.build_download_tasks(workspace.packages_dir)
    if not tasks:
        click.echo("\n\nNo packages to update. Exiting.")
        return

    with workspace:
        click.echo("\n\nDownloading updateable packages")
        click.echo("=============================================")
        ready = workspace.download_all(tasks, engine.fetcher.download, dry_run=dry_run, echo=click.echo)
        if not ready:
            click.echo("\nNo packages could be downloaded. Exiting.")
            return

        if dry_run:
            click.echo("\n\n[SIMULATION MODE] Running in dry-run mode. No changes will be made.")
        click.echo("\nSelect packages to update:")
        click.echo("==========================")

        controller = InstallationController(
            ready,
            engine.package_manager,
            dry_run=dry_run,
            echo=click.echo,
            prompt=_prompt,
        )
        outcomes = controller.run()

    installed = sum(1 for o in outcomes if o.installed)
    failed = [o.task.item_name for o in outcomes if not o.installed and o.message != "dry run"]
    logger.info(f"Installed {installed} package(s), {len(failed)} failed")
    if failed:
        click.echo(f"\nFailed: {', '.join(failed)}")


if __name__ == "__main__":
    main()
