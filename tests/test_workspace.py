"""
Tests for resolver.workspace — download directory lifecycle.
"""

import sys
import tempfile
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import unittest
from resolver.models import DownloadTask, TaskStatus
from resolver.version import parse
from resolver.workspace import DownloadWorkspace


class TestDownloadWorkspace(unittest.TestCase):
    """Tests for DownloadWorkspace."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.root = Path(self.tmp.name) / "downloads"
        self.workspace = DownloadWorkspace(self.root)

    def tearDown(self):
        self.tmp.cleanup()

    def task(self, name):
        return DownloadTask(item_name=name, version=parse("1.0-1"), url=f"https://e/{name}.spk",
                            destination_path=self.workspace.packages_dir / f"{name}.spk")

    def test_prepare_removes_stale_files(self):
        self.root.mkdir(parents=True)
        (self.root / "stale.spk").write_text("old")
        self.workspace.prepare()
        self.assertFalse((self.root / "stale.spk").exists())
        self.assertTrue(self.workspace.os_dir.is_dir())
        self.assertTrue(self.workspace.packages_dir.is_dir())

    def test_context_manager_cleans_up(self):
        with self.workspace as ws:
            (ws.packages_dir / "a.spk").write_text("x")
        self.assertFalse(self.root.exists())

    def test_cleanup_on_error(self):
        with self.assertRaises(RuntimeError):
            with self.workspace:
                raise RuntimeError("boom")
        self.assertFalse(self.root.exists())

    def test_download_all(self):
        def download(url, destination):
            if "bad" in url:
                return False
            destination.write_text("spk")
            return True

        good, bad = self.task("good"), self.task("bad")
        with self.workspace as ws:
            ready = ws.download_all([good, bad], download)
            self.assertTrue(good.destination_path.exists())
        self.assertEqual(ready, [good])
        self.assertEqual(good.status, TaskStatus.DOWNLOADED)
        self.assertEqual(bad.status, TaskStatus.FAILED)
        self.assertIn("bad.spk", bad.error_message)

    def test_dry_run_downloads_nothing(self):
        calls = []
        tasks = [self.task("a")]
        with self.workspace as ws:
            ready = ws.download_all(tasks, lambda url, dest: calls.append(url), dry_run=True)
        self.assertEqual(ready, tasks)
        self.assertEqual(calls, [])
        self.assertEqual(tasks[0].status, TaskStatus.PENDING)


if __name__ == "__main__":
    unittest.main()
