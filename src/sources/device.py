"""
Synology Update Checker - Device Identity
Reads model, platform and DSM version facts from the appliance.
"""

import logging
import os
import platform
import subprocess
from pathlib import Path
from typing import Optional

from resolver.models import DEFAULT_MODEL_PREFIXES, DeviceIdentity, strip_model_prefix
from resolver.version import parse

logger = logging.getLogger(__name__)

SYNOINFO_PATH = Path("/etc.defaults/synoinfo.conf")
VERSION_PATH = Path("/etc.defaults/VERSION")


def read_key_values(path: Path) -> dict[str, str]:
    """
    Parse a Synology key="value" file (synoinfo.conf, VERSION, package INFO).

    Missing or unreadable files yield an empty dict.
    """
    values = {}
    try:
        text = path.read_text(errors="ignore")
    except OSError as e:
        logger.debug(f"Cannot read {path}: {e}")
        return values

    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        values[key.strip()] = value.strip().strip('"')
    return values


def os_version_string(version_info: dict[str, str]) -> str:
    """Build major.minor.micro-build[-smallfix] from VERSION keys."""
    major = version_info.get("majorversion", "0")
    minor = version_info.get("minorversion", "0")
    micro = version_info.get("micro", "0")
    build = version_info.get("buildnumber", "0")
    smallfix = version_info.get("smallfixnumber", "0") or "0"
    version = f"{major}.{minor}.{micro}-{build}"
    if smallfix != "0":
        version += f"-{smallfix}"
    return version


def _dmidecode_model() -> Optional[str]:
    try:
        result = subprocess.run(
            ["dmidecode", "-s", "system-product-name"],
            capture_output=True,
            text=True,
            timeout=10,
        )
        if result.returncode == 0 and result.stdout.strip():
            return result.stdout.strip()
    except (subprocess.TimeoutExpired, FileNotFoundError) as e:
        logger.debug(f"dmidecode unavailable: {e}")
    return None


def read_device_identity(
    synoinfo_path: Path = SYNOINFO_PATH,
    version_path: Path = VERSION_PATH,
    model_prefixes=DEFAULT_MODEL_PREFIXES,
) -> DeviceIdentity:
    """
    Collect the device identity.

    The DEBUG_OS_VERSION environment variable overrides the installed OS
    version, which is handy for exercising the OS update check.
    """
    synoinfo = read_key_values(synoinfo_path)
    version_info = read_key_values(version_path)

    product = synoinfo.get("product", "")
    if product == "VirtualDSM":
        model = "VirtualDSM"
    else:
        model = synoinfo.get("upnpmodelname") or _dmidecode_model() or ""

    os_version = os.environ.get("DEBUG_OS_VERSION") or os_version_string(version_info)
    if os.environ.get("DEBUG_OS_VERSION"):
        logger.debug(f"Using debug OS version: {os_version}")

    device = DeviceIdentity(
        product=product,
        model=model,
        model_series=strip_model_prefix(model, model_prefixes),
        platform_codename=synoinfo.get("platform_name", ""),
        architecture=platform.machine(),
        os_variant=version_info.get("os_name", "DSM") or "DSM",
        installed_os_version=parse(os_version),
    )
    logger.debug(f"Device identity: {device}")
    return device
