"""
Synology Update Checker - Resolution Report
Aggregates per-item results, counts, and the download tasks to run.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import NamedTuple, Optional

from resolver.catalog import artifact_filename
from resolver.models import (
    DeviceIdentity,
    DownloadTask,
    InventoryItem,
    ResolutionResult,
    RunningState,
    SourceClass,
)

logger = logging.getLogger(__name__)


class FilterConflictError(ValueError):
    """Raised for contradictory caller filters before any resolution."""


@dataclass(frozen=True)
class ItemFilter:
    """Which installed packages take part in a run."""
    running_only: bool = False
    official_only: bool = False
    community_only: bool = False

    def validate(self) -> None:
        if self.official_only and self.community_only:
            raise FilterConflictError("official-only and community-only are mutually exclusive")

    def includes(self, item: InventoryItem) -> bool:
        if self.running_only and item.running_state is not RunningState.RUNNING:
            return False
        if self.official_only and item.source_class is not SourceClass.OFFICIAL:
            return False
        if self.community_only and item.source_class is not SourceClass.COMMUNITY:
            return False
        return True

    def apply(self, inventory: list[InventoryItem]) -> list[InventoryItem]:
        selected = []
        for item in inventory:
            if self.includes(item):
                selected.append(item)
            else:
                logger.debug(f"Skipping {item.name} (status: {item.running_state.value}, "
                             f"source: {item.source_class.value})")
        return selected


class ReportRow(NamedTuple):
    """One presentation row; field order is fixed."""
    name: str
    source_label: str
    installed: str
    latest: str
    update_available: bool
    url: Optional[str]


def _row(result: ResolutionResult) -> ReportRow:
    return ReportRow(
        name=result.name,
        source_label=result.source_class.value,
        installed=str(result.installed_version),
        latest=str(result.latest_version),
        update_available=result.update_available,
        url=result.url,
    )


@dataclass
class ResolutionReport:
    """Results of one run, in inventory order."""
    device: DeviceIdentity
    os_result: Optional[ResolutionResult] = None
    results: list[ResolutionResult] = field(default_factory=list)
    total_installed: int = 0

    @property
    def considered(self) -> int:
        return len(self.results)

    @property
    def items_with_updates(self) -> list[ResolutionResult]:
        return [r for r in self.results if r.update_available]

    @property
    def updates_available(self) -> int:
        return len(self.items_with_updates)

    @property
    def os_update_available(self) -> bool:
        return bool(self.os_result and self.os_result.update_available)

    def os_row(self) -> Optional[ReportRow]:
        return _row(self.os_result) if self.os_result else None

    def rows(self) -> list[ReportRow]:
        return [_row(r) for r in self.results]

    def build_download_tasks(self, download_dir: Path) -> list[DownloadTask]:
        """
        One pending task per package with an update, in inventory order.

        The OS image is reported but never queued; installing it stays a
        manual step.
        """
        tasks = []
        for result in self.items_with_updates:
            filename = artifact_filename(result.url) or f"{result.name}-{result.latest_version}.spk"
            tasks.append(DownloadTask(
                item_name=result.name,
                version=result.latest_version,
                url=result.url,
                destination_path=download_dir / filename,
            ))
        return tasks
