"""
Synology Update Checker - synopkg Adapter
Lists, inspects, installs and starts packages through the synopkg tool.
"""

import json
import logging
import subprocess
from pathlib import Path
from typing import Optional

from resolver.models import (
    DEFAULT_VENDOR_DISTRIBUTORS,
    ArtifactRef,
    InventoryItem,
    RunningState,
    classify_distributor,
)
from resolver.catalog import artifact_filename
from resolver.version import is_newer, parse

from .base import CommandResult, LocalUpdate
from .device import read_key_values

logger = logging.getLogger(__name__)

PACKAGES_DIR = Path("/var/packages")


class SynoPkg:
    """Package lifecycle operations backed by the synopkg CLI."""

    def __init__(self, packages_dir: Path = PACKAGES_DIR,
                 vendor_distributors=DEFAULT_VENDOR_DISTRIBUTORS,
                 binary: str = "synopkg"):
        self.packages_dir = packages_dir
        self.vendor_distributors = tuple(vendor_distributors)
        self.binary = binary

    def _run(self, *args, timeout: int = 60) -> Optional[str]:
        """Run synopkg and return stdout (also on non-zero exit, it carries JSON errors)."""
        try:
            result = subprocess.run(
                [self.binary] + list(args),
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except FileNotFoundError:
            logger.error(f"{self.binary} not available on this system")
            return None
        except subprocess.TimeoutExpired as e:
            logger.warning(f"{self.binary} {args[0]} timed out: {e}")
            return None
        except Exception as e:
            logger.error(f"{self.binary} {args[0]} failed: {e}")
            return None

        if result.returncode != 0:
            logger.debug(f"{self.binary} {args[0]} exited {result.returncode}: {result.stderr.strip()}")
        return result.stdout

    def _run_json(self, *args, timeout: int = 60) -> Optional[dict]:
        output = self._run(*args, timeout=timeout)
        if not output:
            return None
        try:
            data = json.loads(output)
        except json.JSONDecodeError:
            logger.debug(f"{self.binary} {args[0]} returned non-JSON output: {output.strip()!r}")
            return None
        return data if isinstance(data, dict) else None

    def _command_result(self, data: Optional[dict]) -> CommandResult:
        if data is None:
            return CommandResult(success=False, error_message="No response from synopkg")
        error = data.get("error")
        if not isinstance(error, dict):
            error = {}
        try:
            code = int(error["code"]) if "code" in error else None
        except (TypeError, ValueError):
            code = None
        success = data.get("success") is True and code in (0, None)
        return CommandResult(
            success=success,
            error_code=code,
            error_message=None if success else error.get("description"),
        )

    def list_names(self) -> list[str]:
        output = self._run("list", "--name") or ""
        return sorted(line.strip() for line in output.splitlines() if line.strip())

    def installed_version(self, name: str) -> str:
        return (self._run("version", name) or "").strip()

    def distributor(self, name: str) -> Optional[str]:
        info = read_key_values(self.packages_dir / name / "INFO")
        return info.get("distributor") or None

    def status(self, name: str) -> RunningState:
        data = self._run_json("status", name, timeout=30)
        return RunningState.from_status(data.get("status") if data else None)

    def list_inventory(self) -> list[InventoryItem]:
        """All installed packages, sorted by name."""
        inventory = []
        for name in self.list_names():
            distributor = self.distributor(name)
            inventory.append(InventoryItem(
                name=name,
                installed_version=parse(self.installed_version(name)),
                source_class=classify_distributor(distributor, self.vendor_distributors),
                running_state=self.status(name),
                distributor=distributor,
            ))
        logger.debug(f"Found {len(inventory)} installed packages")
        return inventory

    def check_local_update(self, name: str) -> Optional[LocalUpdate]:
        """
        Ask the device's own update channel for a newer version.

        Only a response naming both a newer version and a download link is
        returned; anything else means the channel has nothing to offer.
        """
        data = self._run_json("checkupdate", name, timeout=60)
        if not data:
            return None
        version = parse(str(data.get("version", "")))
        link = data.get("link") or data.get("url")
        if not link or not version.is_valid:
            return None
        installed = parse(self.installed_version(name))
        if not is_newer(version, installed):
            return None
        return LocalUpdate(
            version=version,
            artifact=ArtifactRef(filename=artifact_filename(link), url=link),
        )

    def install(self, path: Path) -> CommandResult:
        return self._command_result(self._run_json("install", str(path), timeout=600))

    def start(self, name: str) -> CommandResult:
        return self._command_result(self._run_json("start", name, timeout=120))
