"""
Synology Update Checker - Source Chain
Tries the update origins of an item in order and stops at the first hit.
"""

import logging
from typing import Callable, Optional

from resolver.matcher import CompatibilityMatcher
from resolver.models import (
    ArtifactRef,
    CatalogEntry,
    DeviceIdentity,
    InventoryItem,
    ResolutionResult,
    SourceClass,
    SourceStage,
)
from resolver.version import VersionKey, is_newer

logger = logging.getLogger(__name__)


def scan_catalog(source, matcher: CompatibilityMatcher, item_name: str,
                 installed: VersionKey) -> Optional[tuple[CatalogEntry, ArtifactRef]]:
    """
    Find the latest compatible version strictly newer than installed.

    Entries are walked newest first; a version whose artifacts do not fit
    the device is skipped in favour of the next older one. Iteration stops
    at the first entry that is not newer than installed. An unparseable
    installed version matches nothing, since no entry can be proven newer.
    """
    if not installed.is_valid:
        logger.debug(f"{source.name}: installed version of {item_name} is unparseable, skipping")
        return None

    for entry in source.entries(item_name):
        if not is_newer(entry.version, installed):
            logger.debug(f"{source.name}: {item_name} {entry.version} is not newer than {installed}")
            break

        artifacts = source.artifacts(item_name, entry)
        artifact = source.select(matcher, artifacts)
        if artifact:
            step = matcher.explain(artifact, source.kind)
            logger.debug(f"{source.name}: {item_name} {entry.version} -> {artifact.url} "
                         f"(matched by {step.name.lower() if step else 'unknown'})")
            return entry, artifact

        logger.debug(
            f"{source.name}: {item_name} {entry.version} has no artifact for "
            f"{matcher.device.model or matcher.device.platform_codename}, trying older"
        )
    return None


class SourceChain:
    """
    Ordered origins for package updates.

    1. The device's own update channel (trusted as-is).
    2. The vendor catalog, for Official and Unknown items.
    3. Community catalogs in configured order, for Community items.
    """

    def __init__(
        self,
        device: DeviceIdentity,
        vendor=None,
        communities: Optional[dict] = None,
        community_order: Optional[list[str]] = None,
        local_channel: Optional[Callable[[str], object]] = None,
    ):
        self.device = device
        self.matcher = CompatibilityMatcher(device)
        self.vendor = vendor
        self.communities = communities or {}
        self.community_order = list(community_order or [])
        self.local_channel = local_channel

    def _scan(self, source, item: InventoryItem) -> Optional[ResolutionResult]:
        try:
            hit = scan_catalog(source, self.matcher, item.name, item.installed_version)
        except Exception as e:
            logger.debug(f"{source.name}: resolving {item.name} failed: {e}", exc_info=True)
            return None
        if not hit:
            return None
        entry, artifact = hit
        return ResolutionResult.found(
            name=item.name,
            installed=item.installed_version,
            latest=entry.version,
            artifact=artifact,
            stage=source.stage,
            source_key=source.key,
            source_class=item.source_class,
        )

    def _check_local(self, item: InventoryItem) -> Optional[ResolutionResult]:
        if self.local_channel is None:
            return None
        try:
            update = self.local_channel(item.name)
        except Exception as e:
            logger.debug(f"Local update check for {item.name} failed: {e}", exc_info=True)
            return None
        if update is None:
            return None
        if not is_newer(update.version, item.installed_version):
            logger.debug(f"Local channel offers {update.version} for {item.name}, not newer")
            return None
        return ResolutionResult.found(
            name=item.name,
            installed=item.installed_version,
            latest=update.version,
            artifact=update.artifact,
            stage=SourceStage.LOCAL_CHANNEL,
            source_class=item.source_class,
        )

    def resolve(self, item: InventoryItem) -> ResolutionResult:
        """Resolve the latest compatible update of one installed package."""
        if not item.installed_version.is_valid:
            logger.debug(f"Cannot compare versions for {item.name}: installed version "
                         f"{item.installed_version.raw!r} is unparseable")
            return ResolutionResult.no_update(item.name, item.installed_version, item.source_class)

        result = self._check_local(item)
        if result:
            return result

        if item.source_class in (SourceClass.OFFICIAL, SourceClass.UNKNOWN) and self.vendor:
            result = self._scan(self.vendor, item)
            if result:
                return result

        if item.source_class is SourceClass.COMMUNITY:
            for key in self.community_order:
                source = self.communities.get(key)
                if source is None:
                    logger.debug(f"Unknown community source {key!r}, skipping")
                    continue
                result = self._scan(source, item)
                if result:
                    return result

        logger.debug(f"No update found for {item.name}")
        return ResolutionResult.no_update(item.name, item.installed_version, item.source_class)


def resolve_os(device: DeviceIdentity, os_source) -> ResolutionResult:
    """
    Resolve the latest compatible OS image for the device.

    Only the vendor catalog of the device's OS family is consulted.
    """
    installed = device.installed_os_version
    matcher = CompatibilityMatcher(device)
    try:
        hit = scan_catalog(os_source, matcher, device.os_variant, installed)
    except Exception as e:
        logger.debug(f"OS update check failed: {e}", exc_info=True)
        hit = None

    if not hit:
        return ResolutionResult.no_update(device.os_variant, installed, SourceClass.OFFICIAL)

    entry, artifact = hit
    return ResolutionResult.found(
        name=device.os_variant,
        installed=installed,
        latest=entry.version,
        artifact=artifact,
        stage=os_source.stage,
        source_key=os_source.key,
        source_class=SourceClass.OFFICIAL,
    )
