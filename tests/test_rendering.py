"""
Tests for resolver.rendering — terminal and HTML reports.
"""

import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import unittest
from helpers import make_device
from resolver.models import ArtifactRef, ResolutionResult, SourceClass, SourceStage
from resolver.rendering import html_document, render_html, render_text, update_flag
from resolver.report import ResolutionReport
from resolver.version import parse


def make_report(**kwargs):
    update = ResolutionResult.found(
        name="SurveillanceStation",
        installed=parse("9.1.1-10728"),
        latest=parse("9.1.2-10854"),
        artifact=ArtifactRef("SurveillanceStation-x86_64-9.1.2-10854.spk",
                             "https://example.com/SurveillanceStation-x86_64-9.1.2-10854.spk"),
        stage=SourceStage.VENDOR_CATALOG,
        source_class=SourceClass.OFFICIAL,
    )
    current = ResolutionResult.no_update("<Tricky & Co>", parse("1.0-1"), SourceClass.COMMUNITY)
    defaults = dict(
        device=make_device(),
        os_result=ResolutionResult.no_update("DSM", parse("7.2.1-69057"), SourceClass.OFFICIAL),
        results=[update, current],
        total_installed=4,
    )
    defaults.update(kwargs)
    return ResolutionReport(**defaults)


class TestRenderText(unittest.TestCase):
    """Tests for render_text()."""

    def setUp(self):
        self.text = render_text(make_report())

    def test_flag(self):
        self.assertEqual(update_flag(True), "X")
        self.assertEqual(update_flag(False), "-")

    def test_system_information(self):
        self.assertIn("System Information", self.text)
        self.assertIn(f"{'Model':<30} | DS1817+", self.text)
        self.assertIn(f"{'Version':<30} | 7.2.1-69057", self.text)

    def test_package_row_and_link(self):
        row = f"{'SurveillanceStation':<30} | {'9.1.1-10728':<15} | {'9.1.2-10854':<15} | X"
        self.assertIn(row, self.text)
        self.assertIn("Download Link: https://example.com/SurveillanceStation-x86_64-9.1.2-10854.spk",
                      self.text)

    def test_up_to_date_row(self):
        row = f"{'<Tricky & Co>':<30} | {'1.0-1':<15} | {'1.0-1':<15} | -"
        self.assertIn(row, self.text)

    def test_totals(self):
        self.assertIn("Total installed packages: 4", self.text)
        self.assertIn("Total packages with updates available: 1", self.text)

    def test_download_links_section(self):
        self.assertIn("Download Links for Available Updates:", self.text)

    def test_no_download_links_without_updates(self):
        text = render_text(make_report(results=[]))
        self.assertNotIn("Download Links for Available Updates:", text)

    def test_os_only(self):
        text = render_text(make_report(), include_packages=False)
        self.assertIn("Operating System Update Check", text)
        self.assertNotIn("Package Update Check", text)
        self.assertNotIn("Total installed packages", text)

    def test_no_trailing_whitespace(self):
        self.assertTrue(all(line == line.rstrip() for line in self.text.splitlines()))


class TestRenderHtml(unittest.TestCase):
    """Tests for render_html()."""

    def setUp(self):
        self.html = render_html(make_report())

    def test_sections(self):
        self.assertIn("1. System Information", self.html)
        self.assertIn("2. Operating System", self.html)
        self.assertIn("3. Packages", self.html)

    def test_update_link(self):
        self.assertIn("<a href='https://example.com/SurveillanceStation-x86_64-9.1.2-10854.spk'>"
                      "9.1.2-10854</a>", self.html)

    def test_escaped(self):
        self.assertIn("&lt;Tricky &amp; Co&gt;", self.html)
        self.assertNotIn("<Tricky", self.html)

    def test_document(self):
        doc = html_document(self.html, title="Report")
        self.assertTrue(doc.startswith("<!DOCTYPE html>"))
        self.assertIn("<title>Report</title>", doc)
        self.assertIn(self.html, doc)


if __name__ == "__main__":
    unittest.main()
