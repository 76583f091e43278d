"""
Tests for the update_checker command line.
"""

import logging
import sys
import tempfile
from pathlib import Path
from unittest.mock import patch

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import unittest
from click.testing import CliRunner
from helpers import make_device
from resolver.models import ArtifactRef, ResolutionResult, RunningState, SourceClass, SourceStage
from resolver.report import ResolutionReport
from resolver.version import parse
from sources.base import CommandResult
import update_checker


def update(name, installed="1.0-1", latest="2.0-2"):
    filename = f"{name}-x86_64-{latest}.spk"
    return ResolutionResult.found(
        name=name,
        installed=parse(installed),
        latest=parse(latest),
        artifact=ArtifactRef(filename, f"https://example.com/{filename}"),
        stage=SourceStage.VENDOR_CATALOG,
        source_class=SourceClass.OFFICIAL,
    )


class FakeFetcher:

    def __init__(self):
        self.downloads = []

    def download(self, url, destination):
        self.downloads.append(url)
        destination.write_bytes(b"spk")
        return True


class FakePackageManager:

    def __init__(self):
        self.installed = []

    def status(self, name):
        return RunningState.STOPPED

    def install(self, path):
        self.installed.append(path.name)
        return CommandResult(success=True, error_code=0)

    def start(self, name):
        return CommandResult(success=True, error_code=0)


class FakeEngine:
    """Stands in for UpdateEngine; returns a canned report."""

    def __init__(self, report, download_dir):
        self.config = {"download_dir": str(download_dir)}
        self.report = report
        self.fetcher = FakeFetcher()
        self.package_manager = FakePackageManager()
        self.resolve_kwargs = None

    @property
    def download_dir(self):
        return Path(self.config["download_dir"])

    def read_device(self):
        return make_device()

    def list_inventory(self):
        return []

    def resolve(self, device, inventory, **kwargs):
        kwargs["item_filter"].validate()
        self.resolve_kwargs = kwargs
        return self.report


class CliTestCase(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self.tmp.name)
        self.runner = CliRunner()

    def tearDown(self):
        self.tmp.cleanup()
        # setup_logging binds a handler to the runner's captured stream
        root = logging.getLogger()
        for handler in root.handlers[:]:
            root.removeHandler(handler)
        root.setLevel(logging.WARNING)

    def invoke(self, args, results=None, input=None):
        report = ResolutionReport(
            device=make_device(),
            os_result=ResolutionResult.no_update("DSM", parse("7.2.1-69057"), SourceClass.OFFICIAL),
            results=results or [],
            total_installed=len(results or []),
        )
        self.engine = FakeEngine(report, self.dir / "downloads")
        with patch("update_checker.UpdateEngine", lambda config_path: self.engine):
            return self.runner.invoke(update_checker.main, args, input=input)


class TestOptions(CliTestCase):
    """Tests for option handling."""

    def test_help(self):
        result = self.runner.invoke(update_checker.main, ["--help"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("--community", result.output)

    def test_conflicting_filters(self):
        result = self.invoke(["--official-only", "--community-only"])
        self.assertEqual(result.exit_code, 2)
        self.assertIn("mutually exclusive", result.output)

    def test_conflicting_scopes(self):
        result = self.invoke(["--os-only", "--packages-only"])
        self.assertEqual(result.exit_code, 2)

    def test_options_passed_to_engine(self):
        result = self.invoke(["-i", "-r", "-c", "synocommunity", "-c", "other"])
        self.assertEqual(result.exit_code, 0)
        kwargs = self.engine.resolve_kwargs
        self.assertEqual(kwargs["communities"], ["synocommunity", "other"])
        self.assertTrue(kwargs["item_filter"].running_only)
        self.assertTrue(kwargs["check_os"])

    def test_download_dir_override(self):
        target = self.dir / "elsewhere"
        self.invoke(["-i", "--download-dir", str(target)])
        self.assertEqual(self.engine.download_dir, target)


class TestInfoMode(CliTestCase):
    """Tests for --info and --email."""

    def test_info_prints_report_only(self):
        result = self.invoke(["-i"], results=[update("A")])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("System Information", result.output)
        self.assertIn("Download Link: https://example.com/A-x86_64-2.0-2.spk", result.output)
        self.assertNotIn("Select packages to update", result.output)
        self.assertEqual(self.engine.fetcher.downloads, [])

    def test_email_sends_instead_of_printing(self):
        with patch("update_checker.EmailNotifier") as notifier:
            notifier.return_value.send.return_value = True
            result = self.invoke(["-e"], results=[update("A")])
        self.assertEqual(result.exit_code, 0)
        self.assertNotIn("System Information", result.output)
        html, text = notifier.return_value.send.call_args[0]
        self.assertIn("3. Packages", html)
        self.assertIn("System Information", text)

    def test_email_failure_exits_nonzero(self):
        with patch("update_checker.EmailNotifier") as notifier:
            notifier.return_value.send.return_value = False
            result = self.invoke(["-e"])
        self.assertEqual(result.exit_code, 1)

    def test_email_debug_copy(self):
        with patch("update_checker.EmailNotifier") as notifier:
            notifier.return_value.send.return_value = True
            self.invoke(["-e", "-d"])
        self.assertEqual(len(list((self.dir / "debug").glob("email_*.html"))), 1)


class TestInstallMode(CliTestCase):
    """Tests for the download and install flow."""

    def test_nothing_to_update(self):
        result = self.invoke([])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("No packages to update. Exiting.", result.output)

    def test_select_and_install(self):
        result = self.invoke([], results=[update("A"), update("B")], input="1\ny\nq\n")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(len(self.engine.fetcher.downloads), 2)
        self.assertEqual(self.engine.package_manager.installed, ["A-x86_64-2.0-2.spk"])
        self.assertIn("Installation successful", result.output)
        self.assertFalse((self.dir / "downloads").exists())

    def test_end_of_input_quits(self):
        result = self.invoke([], results=[update("A")], input="")
        self.assertEqual(result.exit_code, 0)
        self.assertEqual(self.engine.package_manager.installed, [])
        self.assertFalse((self.dir / "downloads").exists())

    def test_dry_run(self):
        result = self.invoke(["-n"], results=[update("A")], input="2\ny\n")
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("SIMULATION MODE", result.output)
        self.assertIn("Dry run mode: Skipping installation", result.output)
        self.assertEqual(self.engine.fetcher.downloads, [])
        self.assertEqual(self.engine.package_manager.installed, [])


if __name__ == "__main__":
    unittest.main()
