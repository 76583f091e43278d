"""
Synology Update Checker - SynoCommunity Source
Reads the SynoCommunity package pages for community-distributed packages.
"""

import logging
import re
from typing import Optional

from resolver.catalog import parse_release_notes
from resolver.matcher import CompatibilityMatcher, MatchStep, has_token
from resolver.models import ArtifactRef, CatalogEntry, SourceStage

from .base import CatalogSource, Fetcher

logger = logging.getLogger(__name__)

SYNOCOMMUNITY_URL = "https://synocommunity.com"

# DSM major version -> firmware code used in SynoCommunity file names
FIRMWARE_CODES = {
    5: "f5644",
    6: "f25556",
    7: "f42661",
}

NOT_FOUND = re.compile(r"404|Not Found", re.IGNORECASE)


class SynoCommunitySource(CatalogSource):
    """
    Community catalog: one page per package listing every version.

    Artifacts are chosen for the device's DSM firmware code first
    (platform codename, then architecture); failing that, any artifact
    built for the platform codename is accepted.
    """

    def __init__(self, fetch: Fetcher, base_url: str = SYNOCOMMUNITY_URL):
        super().__init__(fetch, base_url)

    @property
    def name(self) -> str:
        return "SynoCommunity"

    @property
    def key(self) -> str:
        return "synocommunity"

    @property
    def stage(self) -> SourceStage:
        return SourceStage.COMMUNITY_CATALOG

    def package_url(self, item_name: str) -> str:
        return f"{self.base_url}/package/{item_name}"

    def entries(self, item_name: str) -> list[CatalogEntry]:
        body = self._get(self.package_url(item_name))
        if body is None:
            return []

        entries = parse_release_notes(body)
        if not entries and NOT_FOUND.search(body):
            logger.debug(f"{self.name}: package {item_name} not found")
            return []

        logger.debug(
            f"{self.name}: versions for {item_name}: "
            f"{', '.join(str(e.version) for e in entries) or 'none'}"
        )
        return entries

    def select(self, matcher: CompatibilityMatcher,
               artifacts: list[ArtifactRef]) -> Optional[ArtifactRef]:
        firmware = FIRMWARE_CODES.get(matcher.device.os_major)
        if firmware:
            built_for_firmware = [a for a in artifacts if has_token(a.filename, firmware)]
            artifact = matcher.select(
                built_for_firmware,
                kind=self.kind,
                base_url=self.base_url,
                steps=[MatchStep.PLATFORM, MatchStep.ARCHITECTURE],
            )
            if artifact:
                return artifact
            logger.debug(f"{self.name}: nothing built for {firmware}, trying platform only")

        return matcher.select(
            artifacts,
            kind=self.kind,
            base_url=self.base_url,
            steps=[MatchStep.PLATFORM],
        )
