"""
Synology Update Checker - Source Base
Abstract base class for catalog sources and result types of the package tools.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional
import logging

from resolver.matcher import ArtifactKind, CompatibilityMatcher
from resolver.models import ArtifactRef, CatalogEntry, SourceStage
from resolver.version import VersionKey

logger = logging.getLogger(__name__)

Fetcher = Callable[[str], Optional[str]]


@dataclass
class CommandResult:
    """Result of a synopkg install/start call."""
    success: bool
    error_code: Optional[int] = None
    error_message: Optional[str] = None


@dataclass
class LocalUpdate:
    """An update offered by the device's own package channel."""
    version: VersionKey
    artifact: ArtifactRef


class CatalogSource(ABC):
    """
    Abstract base class for remote catalogs.

    A catalog lists versions per package (or OS family) and, for each
    version, the artifact files. Sources only harvest; the source chain
    decides which version wins.
    """

    kind: ArtifactKind = ArtifactKind.PACKAGE

    def __init__(self, fetch: Fetcher, base_url: str):
        self.fetch = fetch
        self.base_url = base_url.rstrip("/")

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name (e.g., 'Synology Archive')."""
        pass

    @property
    @abstractmethod
    def key(self) -> str:
        """Short identifier used in configuration (e.g., 'synocommunity')."""
        pass

    @property
    def stage(self) -> SourceStage:
        return SourceStage.VENDOR_CATALOG

    @abstractmethod
    def entries(self, item_name: str) -> list[CatalogEntry]:
        """
        List the versions available for an item.

        Returns:
            CatalogEntry list, newest first. Empty when the catalog is
            unreachable or does not know the item.
        """
        pass

    def artifacts(self, item_name: str, entry: CatalogEntry) -> list[ArtifactRef]:
        """Artifact candidates of one version (already harvested by default)."""
        return entry.candidate_artifacts

    def select(self, matcher: CompatibilityMatcher,
               artifacts: list[ArtifactRef]) -> Optional[ArtifactRef]:
        """Pick the compatible artifact among a version's candidates."""
        return matcher.select(artifacts, kind=self.kind, base_url=self.base_url)

    def _get(self, url: str) -> Optional[str]:
        body = self.fetch(url)
        if not body:
            logger.debug(f"{self.name}: no catalog data at {url}")
            return None
        return body
