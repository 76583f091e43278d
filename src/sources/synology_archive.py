"""
Synology Update Checker - Synology Archive Source
Scrapes archive.synology.com for package and OS versions.
"""

import logging
from typing import Optional

from resolver.catalog import (
    OS_IMAGE_SUFFIXES,
    PACKAGE_SUFFIXES,
    parse_artifacts,
    parse_catalog,
)
from resolver.matcher import ArtifactKind, CompatibilityMatcher
from resolver.models import ArtifactRef, CatalogEntry

from .base import CatalogSource, Fetcher

logger = logging.getLogger(__name__)

ARCHIVE_URL = "https://archive.synology.com"


class SynologyPackageArchive(CatalogSource):
    """Vendor catalog: /download/Package/<name>/<version>."""

    SECTION = "Package"
    SUFFIXES = PACKAGE_SUFFIXES
    kind = ArtifactKind.PACKAGE

    def __init__(self, fetch: Fetcher, base_url: str = ARCHIVE_URL):
        super().__init__(fetch, base_url)

    @property
    def name(self) -> str:
        return "Synology Archive"

    @property
    def key(self) -> str:
        return "synology"

    def path_prefix(self, item_name: str) -> str:
        return f"/download/{self.SECTION}/{item_name}"

    def entries(self, item_name: str) -> list[CatalogEntry]:
        prefix = self.path_prefix(item_name)
        body = self._get(self.base_url + prefix)
        entries = parse_catalog(body, prefix)
        logger.debug(f"{self.name}: {len(entries)} versions for {item_name}")
        return entries

    def artifacts(self, item_name: str, entry: CatalogEntry) -> list[ArtifactRef]:
        if entry.candidate_artifacts:
            return entry.candidate_artifacts
        url = f"{self.base_url}{self.path_prefix(item_name)}/{entry.path}"
        entry.candidate_artifacts = parse_artifacts(self._get(url), self.SUFFIXES)
        if entry.candidate_artifacts:
            logger.debug(
                f"{self.name}: {item_name} {entry.path} offers "
                f"{', '.join(a.filename for a in entry.candidate_artifacts)}"
            )
        return entry.candidate_artifacts


class SynologyOsArchive(SynologyPackageArchive):
    """Vendor catalog of OS images: /download/Os/<family>/<version>."""

    SECTION = "Os"
    SUFFIXES = OS_IMAGE_SUFFIXES
    kind = ArtifactKind.OS_IMAGE

    @property
    def name(self) -> str:
        return "Synology OS Archive"

    def select(self, matcher: CompatibilityMatcher,
               artifacts: list[ArtifactRef]) -> Optional[ArtifactRef]:
        return matcher.select(
            artifacts,
            kind=self.kind,
            base_url=self.base_url,
            require_family=True,
        )
