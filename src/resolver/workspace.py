"""
Synology Update Checker - Download Workspace
Owns the download directory for one run and fetches queued artifacts.
"""

import logging
import shutil
from pathlib import Path
from typing import Callable, Optional

from resolver.models import DownloadTask, TaskStatus

logger = logging.getLogger(__name__)


class DownloadWorkspace:
    """
    Download directory created fresh for a run and removed afterwards.

    Use as a context manager so early exits clean up too:

        with DownloadWorkspace(path) as ws:
            ws.download_all(tasks, fetcher.download)
    """

    def __init__(self, root: Path):
        self.root = Path(root)
        self.os_dir = self.root / "os"
        self.packages_dir = self.root / "packages"

    def prepare(self) -> None:
        if self.root.exists():
            logger.debug(f"Removing stale download directory {self.root}")
            shutil.rmtree(self.root)
        self.os_dir.mkdir(parents=True, exist_ok=True)
        self.packages_dir.mkdir(parents=True, exist_ok=True)

    def cleanup(self) -> None:
        """Remove the directory and every downloaded file."""
        if not self.root.exists():
            return
        try:
            shutil.rmtree(self.root)
            logger.debug(f"Cleaned up: {self.root}")
        except OSError as e:
            logger.warning(f"Failed to clean up {self.root}: {e}")

    def __enter__(self) -> "DownloadWorkspace":
        self.prepare()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()

    def download_all(
        self,
        tasks: list[DownloadTask],
        download: Callable[[str, Path], bool],
        dry_run: bool = False,
        echo: Optional[Callable[[str], None]] = None,
    ) -> list[DownloadTask]:
        """
        Download every pending task.

        Returns:
            Tasks ready for installation: downloaded ones, or all of them
            in dry-run mode where nothing is fetched.
        """
        echo = echo or (lambda message: None)
        ready = []
        for task in tasks:
            if dry_run:
                echo(f"Dry run mode: Skipping download of {task.filename}")
                ready.append(task)
                continue

            echo("")
            echo(f"Downloading {task.filename}...")
            echo(f"Package: {task.item_name}")
            echo(f"Path: {task.destination_path}")
            if download(task.url, task.destination_path):
                task.status = TaskStatus.DOWNLOADED
                ready.append(task)
            else:
                task.status = TaskStatus.FAILED
                task.error_message = f"Download failed: {task.url}"
                echo(f"Error: download of {task.filename} failed")
                logger.error(f"Download failed for {task.item_name}: {task.url}")
        return ready
