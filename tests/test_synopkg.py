"""
Tests for sources.synopkg — the synopkg CLI adapter.
"""

import json
import subprocess
import sys
import tempfile
from pathlib import Path
from unittest.mock import patch

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import unittest
from resolver.models import RunningState, SourceClass
from resolver.version import parse
from sources.synopkg import SynoPkg


def completed(stdout="", returncode=0, stderr=""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


class FakeSynopkg:
    """Answers synopkg sub-commands from a table."""

    def __init__(self, responses):
        self.responses = responses
        self.commands = []

    def __call__(self, command, **kwargs):
        self.commands.append(command[1:])
        key = tuple(command[1:])
        if key not in self.responses:
            return completed("", returncode=1)
        value = self.responses[key]
        if isinstance(value, dict):
            return completed(json.dumps(value), returncode=0 if value.get("success", True) else 1)
        return completed(value)


class TestSynoPkg(unittest.TestCase):
    """Tests for SynoPkg."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.packages_dir = Path(self.tmp.name)
        self.pm = SynoPkg(packages_dir=self.packages_dir)

    def tearDown(self):
        self.tmp.cleanup()

    def write_info(self, name, distributor):
        (self.packages_dir / name).mkdir()
        (self.packages_dir / name / "INFO").write_text(
            f'package="{name}"\ndistributor="{distributor}"\n'
        )

    def test_list_inventory(self):
        self.write_info("sabnzbd", "SynoCommunity")
        self.write_info("SurveillanceStation", "Synology Inc.")
        fake = FakeSynopkg({
            ("list", "--name"): "sabnzbd\nSurveillanceStation\n\n",
            ("version", "sabnzbd"): "4.1.0-65\n",
            ("version", "SurveillanceStation"): "9.1.1-10728\n",
            ("status", "sabnzbd"): {"status": "stop"},
            ("status", "SurveillanceStation"): {"status": "running"},
        })
        with patch("sources.synopkg.subprocess.run", side_effect=fake):
            inventory = self.pm.list_inventory()

        self.assertEqual([i.name for i in inventory], ["SurveillanceStation", "sabnzbd"])
        surveillance, sab = inventory
        self.assertEqual(surveillance.installed_version, parse("9.1.1-10728"))
        self.assertEqual(surveillance.source_class, SourceClass.OFFICIAL)
        self.assertEqual(surveillance.running_state, RunningState.RUNNING)
        self.assertEqual(sab.source_class, SourceClass.COMMUNITY)
        self.assertEqual(sab.running_state, RunningState.STOPPED)
        self.assertEqual(sab.distributor, "SynoCommunity")

    def test_missing_info_is_official(self):
        self.assertIsNone(self.pm.distributor("Ghost"))

    def test_status_unparseable(self):
        with patch("sources.synopkg.subprocess.run", return_value=completed("not json")):
            self.assertEqual(self.pm.status("A"), RunningState.UNKNOWN)

    def test_install_success(self):
        fake = FakeSynopkg({("install", "/tmp/A.spk"): {"success": True, "error": {"code": 0}}})
        with patch("sources.synopkg.subprocess.run", side_effect=fake):
            result = self.pm.install(Path("/tmp/A.spk"))
        self.assertTrue(result.success)
        self.assertEqual(result.error_code, 0)

    def test_install_failure_reads_json_from_failed_exit(self):
        fake = FakeSynopkg({("install", "/tmp/A.spk"): {
            "success": False, "error": {"code": 4501, "description": "incompatible"},
        }})
        with patch("sources.synopkg.subprocess.run", side_effect=fake):
            result = self.pm.install(Path("/tmp/A.spk"))
        self.assertFalse(result.success)
        self.assertEqual(result.error_code, 4501)
        self.assertEqual(result.error_message, "incompatible")

    def test_install_no_output(self):
        with patch("sources.synopkg.subprocess.run", return_value=completed("", returncode=1)):
            self.assertFalse(self.pm.install(Path("/tmp/A.spk")).success)

    def test_binary_missing(self):
        with patch("sources.synopkg.subprocess.run", side_effect=FileNotFoundError("synopkg")):
            self.assertEqual(self.pm.list_names(), [])
            self.assertFalse(self.pm.start("A").success)

    def test_timeout(self):
        with patch("sources.synopkg.subprocess.run",
                   side_effect=subprocess.TimeoutExpired(cmd="synopkg", timeout=1)):
            self.assertEqual(self.pm.status("A"), RunningState.UNKNOWN)

    def test_unexpected_error_is_a_failed_result(self):
        with patch("sources.synopkg.subprocess.run", side_effect=PermissionError("synopkg")):
            self.assertEqual(self.pm.status("A"), RunningState.UNKNOWN)
            result = self.pm.install(Path("/tmp/A.spk"))
            self.assertFalse(result.success)
            self.assertEqual(result.error_message, "No response from synopkg")

    def test_undecodable_output(self):
        error = UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")
        with patch("sources.synopkg.subprocess.run", side_effect=error):
            self.assertEqual(self.pm.list_names(), [])
            self.assertFalse(self.pm.start("A").success)

    def test_check_local_update(self):
        fake = FakeSynopkg({
            ("checkupdate", "A"): {"version": "2.0-2", "link": "https://u.example.com/A-2.0-2.spk"},
            ("version", "A"): "1.0-1",
        })
        with patch("sources.synopkg.subprocess.run", side_effect=fake):
            update = self.pm.check_local_update("A")
        self.assertEqual(update.version, parse("2.0-2"))
        self.assertEqual(update.artifact.filename, "A-2.0-2.spk")

    def test_check_local_update_without_link(self):
        fake = FakeSynopkg({("checkupdate", "A"): {"version": "2.0-2"}, ("version", "A"): "1.0-1"})
        with patch("sources.synopkg.subprocess.run", side_effect=fake):
            self.assertIsNone(self.pm.check_local_update("A"))

    def test_check_local_update_not_newer(self):
        fake = FakeSynopkg({
            ("checkupdate", "A"): {"version": "1.0-1", "link": "https://u/A.spk"},
            ("version", "A"): "1.0-1",
        })
        with patch("sources.synopkg.subprocess.run", side_effect=fake):
            self.assertIsNone(self.pm.check_local_update("A"))


if __name__ == "__main__":
    unittest.main()
