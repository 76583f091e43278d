"""
Synology Update Checker - Update Engine
Loads configuration, wires the sources, and resolves the whole inventory.
"""

import json
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Optional

from resolver.chain import SourceChain, resolve_os
from resolver.models import (
    DEFAULT_MODEL_PREFIXES,
    DEFAULT_VENDOR_DISTRIBUTORS,
    DeviceIdentity,
    InventoryItem,
    ResolutionResult,
)
from resolver.report import ItemFilter, ResolutionReport
from sources.device import read_device_identity
from sources.http import HttpConfig, HttpFetcher
from sources.synocommunity import SYNOCOMMUNITY_URL, SynoCommunitySource
from sources.synology_archive import ARCHIVE_URL, SynologyOsArchive, SynologyPackageArchive
from sources.synopkg import SynoPkg

logger = logging.getLogger(__name__)

COMMUNITY_SOURCES = {
    "synocommunity": SynoCommunitySource,
}

DEFAULT_DOWNLOAD_DIR = Path.home() / ".cache" / "synopkg-update-checker" / "downloads"


class UpdateEngine:
    """
    Core engine that resolves OS and package updates for one device.
    """

    def __init__(
        self,
        config_path: Optional[Path] = None,
        fetcher=None,
        package_manager=None,
    ):
        """
        Initialize the update engine.

        Args:
            config_path: Path to a JSON configuration file.
            fetcher: Catalog fetch callable (defaults to an HttpFetcher).
            package_manager: synopkg-like adapter (defaults to SynoPkg).
        """
        self.config_path = config_path
        self.config = self._load_config(config_path)
        self.fetcher = fetcher or HttpFetcher(HttpConfig.from_dict(self.config.get("http")))
        self.package_manager = package_manager or SynoPkg(
            vendor_distributors=self.config.get("vendor_distributors", DEFAULT_VENDOR_DISTRIBUTORS)
        )
        self.package_archive = None
        self.os_archive = None
        self.communities: dict = {}
        self._init_sources()

    def _load_config(self, config_path: Optional[Path]) -> dict:
        """Load configuration from file over the defaults."""
        config = self._default_config()
        if config_path and config_path.exists():
            try:
                with open(config_path) as f:
                    config.update(json.load(f))
            except (json.JSONDecodeError, IOError) as e:
                logger.warning(f"Failed to load config: {e}")
        elif config_path:
            logger.warning(f"Config file {config_path} not found, using defaults")
        return config

    def _default_config(self) -> dict:
        """Return default configuration."""
        return {
            "archive_url": ARCHIVE_URL,
            "vendor_distributors": list(DEFAULT_VENDOR_DISTRIBUTORS),
            "model_prefixes": list(DEFAULT_MODEL_PREFIXES),
            "community_sources": {
                "synocommunity": {"url": SYNOCOMMUNITY_URL},
            },
            "communities": [],
            "local_channel": True,
            "download_dir": str(DEFAULT_DOWNLOAD_DIR),
            "max_workers": 4,
            "http": {
                "timeout": 15,
                "download_timeout": 300,
                "retries": 1,
            },
        }

    def _fetch(self, url: str) -> Optional[str]:
        return self.fetcher(url)

    def _init_sources(self) -> None:
        """Initialize the vendor and configured community sources."""
        archive_url = self.config.get("archive_url", ARCHIVE_URL)
        self.package_archive = SynologyPackageArchive(self._fetch, archive_url)
        self.os_archive = SynologyOsArchive(self._fetch, archive_url)

        self.communities = {}
        for key, settings in self.config.get("community_sources", {}).items():
            source_cls = COMMUNITY_SOURCES.get(key)
            if source_cls is None:
                logger.warning(f"No community source implementation for {key!r}")
                continue
            url = (settings or {}).get("url")
            self.communities[key] = source_cls(self._fetch, url) if url else source_cls(self._fetch)

    @property
    def download_dir(self) -> Path:
        return Path(self.config.get("download_dir", DEFAULT_DOWNLOAD_DIR))

    def read_device(self) -> DeviceIdentity:
        return read_device_identity(model_prefixes=self.config.get("model_prefixes", DEFAULT_MODEL_PREFIXES))

    def list_inventory(self) -> list[InventoryItem]:
        return self.package_manager.list_inventory()

    def source_chain(self, device: DeviceIdentity,
                     communities: Optional[list[str]] = None) -> SourceChain:
        local_channel = None
        if self.config.get("local_channel", True):
            local_channel = self.package_manager.check_local_update
        order = communities if communities is not None else self.config.get("communities", [])
        return SourceChain(
            device,
            vendor=self.package_archive,
            communities=self.communities,
            community_order=order,
            local_channel=local_channel,
        )

    def resolve_items(self, chain: SourceChain, items: list[InventoryItem],
                      parallel: bool = True) -> list[ResolutionResult]:
        """
        Resolve every item, keeping inventory order.

        Args:
            parallel: Whether to resolve on a bounded thread pool.
        """
        if not parallel or len(items) < 2:
            return [self._resolve_single(chain, item) for item in items]

        results: dict[int, ResolutionResult] = {}
        with ThreadPoolExecutor(max_workers=int(self.config.get("max_workers", 4))) as executor:
            futures = {
                executor.submit(self._resolve_single, chain, item): index
                for index, item in enumerate(items)
            }
            for future in as_completed(futures):
                index = futures[future]
                results[index] = future.result()
        return [results[index] for index in range(len(items))]

    def _resolve_single(self, chain: SourceChain, item: InventoryItem) -> ResolutionResult:
        try:
            return chain.resolve(item)
        except Exception as e:
            logger.debug(f"Resolving {item.name} failed: {e}", exc_info=True)
            return ResolutionResult.no_update(item.name, item.installed_version, item.source_class)

    def resolve(
        self,
        device: DeviceIdentity,
        inventory: list[InventoryItem],
        item_filter: Optional[ItemFilter] = None,
        check_os: bool = True,
        check_packages: bool = True,
        communities: Optional[list[str]] = None,
        parallel: bool = True,
    ) -> ResolutionReport:
        """
        Resolve the OS and the selected packages into a report.

        Raises:
            FilterConflictError: if the filters contradict each other.
        """
        item_filter = item_filter or ItemFilter()
        item_filter.validate()

        os_result = None
        if check_os:
            logger.info(f"Checking {device.os_variant} updates...")
            os_result = resolve_os(device, self.os_archive)

        results = []
        if check_packages:
            items = item_filter.apply(inventory)
            logger.info(f"Checking {len(items)} packages for updates...")
            results = self.resolve_items(self.source_chain(device, communities), items, parallel)

        report = ResolutionReport(
            device=device,
            os_result=os_result,
            results=results,
            total_installed=len(inventory),
        )
        logger.info(f"Found {report.updates_available} package updates")
        return report
