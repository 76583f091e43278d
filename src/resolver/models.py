"""
Synology Update Checker - Data Model
Value types passed between the resolution stages and the installer.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from resolver.version import VersionKey

DEFAULT_MODEL_PREFIXES = ("DS", "RS", "FS", "SA", "DVA")
DEFAULT_VENDOR_DISTRIBUTORS = ("Synology Inc.", "Synology")


class SourceClass(Enum):
    """Who publishes an installed package."""
    OFFICIAL = "Official"
    COMMUNITY = "Community"
    UNKNOWN = "Unknown"


class RunningState(Enum):
    """Package service state as reported by synopkg."""
    RUNNING = "running"
    STOPPED = "stopped"
    UNKNOWN = "unknown"

    @classmethod
    def from_status(cls, status: Optional[str]) -> "RunningState":
        if not status:
            return cls.UNKNOWN
        status = status.strip().lower()
        if status == "running":
            return cls.RUNNING
        if status in ("stop", "stopped"):
            return cls.STOPPED
        return cls.UNKNOWN


class SourceStage(Enum):
    """Origins consulted by the source chain, in default order."""
    LOCAL_CHANNEL = "local"
    VENDOR_CATALOG = "vendor"
    COMMUNITY_CATALOG = "community"


class TaskStatus(Enum):
    """Lifecycle of a download task."""
    PENDING = "pending"
    DOWNLOADED = "downloaded"
    INSTALLED = "installed"
    FAILED = "failed"
    CANCELLED = "cancelled"


def strip_model_prefix(model: str, prefixes=DEFAULT_MODEL_PREFIXES) -> str:
    """Return the model series, e.g. "1817+" for "DS1817+"."""
    for prefix in sorted(prefixes, key=len, reverse=True):
        if model.startswith(prefix) and len(model) > len(prefix):
            return model[len(prefix):]
    return model


def classify_distributor(distributor: Optional[str],
                         vendor_names=DEFAULT_VENDOR_DISTRIBUTORS) -> SourceClass:
    """Absent or vendor distributor means Official, anything else Community."""
    if distributor is None or not distributor.strip():
        return SourceClass.OFFICIAL
    vendor = {name.lower() for name in vendor_names}
    if distributor.strip().lower() in vendor:
        return SourceClass.OFFICIAL
    return SourceClass.COMMUNITY


@dataclass(frozen=True)
class DeviceIdentity:
    """Facts about the appliance used to judge artifact compatibility."""
    product: str
    model: str
    model_series: str
    platform_codename: str
    architecture: str
    os_variant: str                  # "DSM" or "BSM"
    installed_os_version: VersionKey

    @property
    def is_virtual(self) -> bool:
        return self.product.lower() == "virtualdsm" or self.model.lower() == "virtualdsm"

    @property
    def os_major(self) -> int:
        return self.installed_os_version.major


@dataclass(frozen=True)
class InventoryItem:
    """An installed package."""
    name: str
    installed_version: VersionKey
    source_class: SourceClass = SourceClass.UNKNOWN
    running_state: RunningState = RunningState.UNKNOWN
    distributor: Optional[str] = None


@dataclass(frozen=True)
class ArtifactRef:
    """A downloadable file (.pat OS image or .spk package)."""
    filename: str
    url: str


@dataclass
class CatalogEntry:
    """One version directory of a catalog."""
    version: VersionKey
    path: str = ""
    candidate_artifacts: list[ArtifactRef] = field(default_factory=list)


@dataclass(frozen=True)
class ResolutionResult:
    """Outcome of resolving one inventory item (or the OS)."""
    name: str
    installed_version: VersionKey
    latest_version: VersionKey
    update_available: bool = False
    selected_artifact: Optional[ArtifactRef] = None
    source_used: Optional[SourceStage] = None
    source_key: Optional[str] = None
    source_class: SourceClass = SourceClass.UNKNOWN

    def __post_init__(self):
        if self.update_available:
            if self.selected_artifact is None:
                raise ValueError(f"{self.name}: update without a selected artifact")
            if not self.latest_version > self.installed_version:
                raise ValueError(
                    f"{self.name}: update {self.latest_version} is not newer "
                    f"than {self.installed_version}"
                )

    @classmethod
    def no_update(cls, name: str, installed: VersionKey,
                  source_class: SourceClass = SourceClass.UNKNOWN) -> "ResolutionResult":
        return cls(
            name=name,
            installed_version=installed,
            latest_version=installed,
            source_class=source_class,
        )

    @classmethod
    def found(cls, name: str, installed: VersionKey, latest: VersionKey,
              artifact: ArtifactRef, stage: SourceStage,
              source_key: Optional[str] = None,
              source_class: SourceClass = SourceClass.UNKNOWN) -> "ResolutionResult":
        return cls(
            name=name,
            installed_version=installed,
            latest_version=latest,
            update_available=True,
            selected_artifact=artifact,
            source_used=stage,
            source_key=source_key,
            source_class=source_class,
        )

    @property
    def url(self) -> Optional[str]:
        return self.selected_artifact.url if self.selected_artifact else None


@dataclass
class DownloadTask:
    """An artifact queued for download and interactive installation."""
    item_name: str
    version: VersionKey
    url: str
    destination_path: Path
    status: TaskStatus = TaskStatus.PENDING
    error_message: Optional[str] = None

    @property
    def filename(self) -> str:
        return self.destination_path.name
