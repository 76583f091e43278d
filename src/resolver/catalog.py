"""
Synology Update Checker - Catalog Index
Harvests version directories and artifact links from catalog pages.
"""

import logging
import posixpath
import re
from html.parser import HTMLParser
from typing import Optional
from urllib.parse import unquote, urlparse

from resolver.models import ArtifactRef, CatalogEntry
from resolver.version import parse

logger = logging.getLogger(__name__)

ARTIFACT_SUFFIXES = (".pat", ".spk")
OS_IMAGE_SUFFIXES = (".pat",)
PACKAGE_SUFFIXES = (".spk",)

VERSION_HEADING = re.compile(r"^\s*Version\s+v?(\d[\w.\-]*)", re.IGNORECASE)


class LinkCollector(HTMLParser):
    """Collect anchors and version headings in document order."""

    HEADING_TAGS = {"dt", "h1", "h2", "h3", "h4", "h5"}

    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.events: list[tuple] = []
        self._heading_tag: Optional[str] = None
        self._heading_text: list[str] = []
        self._link_href: Optional[str] = None
        self._link_text: list[str] = []

    def handle_starttag(self, tag, attrs):
        if tag in self.HEADING_TAGS and self._heading_tag is None:
            self._heading_tag = tag
            self._heading_text = []
        if tag == "a":
            href = dict(attrs).get("href")
            if href:
                self._flush_link()
                self._link_href = href.strip()
                self._link_text = []

    def handle_endtag(self, tag):
        if tag == "a":
            self._flush_link()
        if tag == self._heading_tag:
            text = "".join(self._heading_text).strip()
            if text:
                self.events.append(("heading", text))
            self._heading_tag = None

    def handle_data(self, data):
        if self._heading_tag is not None:
            self._heading_text.append(data)
        if self._link_href is not None:
            self._link_text.append(data)

    def close(self):
        super().close()
        self._flush_link()

    def _flush_link(self):
        if self._link_href is not None:
            self.events.append(("link", self._link_href, "".join(self._link_text).strip()))
            self._link_href = None
            self._link_text = []

    @property
    def hrefs(self) -> list[str]:
        return [event[1] for event in self.events if event[0] == "link"]


def collect(body: Optional[str]) -> LinkCollector:
    """Feed a document to a LinkCollector; malformed markup is tolerated."""
    collector = LinkCollector()
    if not body:
        return collector
    collector.feed(body)
    collector.close()
    return collector


def href_path(href: str) -> str:
    """Decoded path component of an href."""
    return unquote(urlparse(href).path)


def artifact_filename(href: str) -> str:
    return posixpath.basename(href_path(href))


def _is_artifact(href: str, suffixes) -> bool:
    return href_path(href).lower().endswith(tuple(s.lower() for s in suffixes))


def parse_catalog(body: Optional[str], path_prefix: str) -> list[CatalogEntry]:
    """
    Extract version directories listed under path_prefix.

    Args:
        body: Catalog page, e.g. the listing for /download/Package/<name>/
        path_prefix: URL path prefix of the version sub-directories

    Returns:
        CatalogEntry list sorted newest first. Unparseable versions are dropped.
    """
    if not body:
        return []

    prefix = path_prefix.rstrip("/") + "/"
    entries: dict = {}
    for href in collect(body).hrefs:
        path = href_path(href)
        if not path.startswith(prefix):
            continue
        segment = path[len(prefix):].strip("/").split("/")[0]
        if not segment:
            continue
        version = parse(segment)
        if not version.is_valid:
            logger.debug(f"Dropping unparseable catalog version {segment!r}")
            continue
        entries.setdefault(version, CatalogEntry(version=version, path=segment))

    return sorted(entries.values(), key=lambda e: e.version, reverse=True)


def parse_artifacts(body: Optional[str], suffixes=ARTIFACT_SUFFIXES) -> list[ArtifactRef]:
    """Extract artifact links from a version page in document order."""
    artifacts = []
    seen = set()
    for href in collect(body).hrefs:
        if not _is_artifact(href, suffixes) or href in seen:
            continue
        seen.add(href)
        artifacts.append(ArtifactRef(filename=artifact_filename(href), url=href))
    return artifacts


def parse_release_notes(body: Optional[str], suffixes=PACKAGE_SUFFIXES) -> list[CatalogEntry]:
    """
    Extract versions and their artifacts from a single release-notes page.

    Each "Version X" heading opens a section; artifact links that follow
    belong to it. Links found before the first heading are attached to the
    newest version.
    """
    sections: dict = {}
    orphans: list[ArtifactRef] = []
    current: Optional[CatalogEntry] = None
    in_section = False

    for event in collect(body).events:
        if event[0] == "heading":
            match = VERSION_HEADING.match(event[1])
            if not match:
                continue
            in_section = True
            version = parse(match.group(1))
            if not version.is_valid:
                logger.debug(f"Dropping unparseable release version {match.group(1)!r}")
                current = None
                continue
            current = sections.setdefault(
                version, CatalogEntry(version=version, path=match.group(1))
            )
            continue

        href = event[1]
        if not _is_artifact(href, suffixes):
            continue
        if in_section and current is None:
            continue
        artifact = ArtifactRef(filename=artifact_filename(href), url=href)
        target = current.candidate_artifacts if current else orphans
        if artifact not in target:
            target.append(artifact)

    entries = sorted(sections.values(), key=lambda e: e.version, reverse=True)
    if entries and orphans:
        newest = entries[0]
        newest.candidate_artifacts = orphans + [
            a for a in newest.candidate_artifacts if a not in orphans
        ]
    return entries
