"""
Synology Update Checker - Sources Package
"""

from sources.base import (
    CatalogSource,
    CommandResult,
    LocalUpdate,
)
from sources.http import HttpConfig, HttpFetcher
from sources.synology_archive import SynologyPackageArchive, SynologyOsArchive
from sources.synocommunity import SynoCommunitySource
from sources.synopkg import SynoPkg

__all__ = [
    "CatalogSource",
    "CommandResult",
    "LocalUpdate",
    "HttpConfig",
    "HttpFetcher",
    "SynologyPackageArchive",
    "SynologyOsArchive",
    "SynoCommunitySource",
    "SynoPkg",
]
