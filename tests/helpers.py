"""
Shared builders for the test suite.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from resolver.models import (
    DeviceIdentity,
    InventoryItem,
    RunningState,
    SourceClass,
    strip_model_prefix,
)
from resolver.version import parse

FIXTURES = Path(__file__).parent / "fixtures"


def fixture(name: str) -> str:
    return (FIXTURES / name).read_text()


def make_device(model="DS1817+", platform_codename="broadwell", architecture="x86_64",
                os_variant="DSM", version="7.2.1-69057", product="DiskStation"):
    return DeviceIdentity(
        product=product,
        model=model,
        model_series=strip_model_prefix(model),
        platform_codename=platform_codename,
        architecture=architecture,
        os_variant=os_variant,
        installed_os_version=parse(version),
    )


def make_item(name="SurveillanceStation", version="9.1.1-10728",
              source_class=SourceClass.OFFICIAL, running_state=RunningState.RUNNING):
    return InventoryItem(
        name=name,
        installed_version=parse(version),
        source_class=source_class,
        running_state=running_state,
    )


class FakeFetcher:
    """URL -> body map that records every request."""

    def __init__(self, pages=None):
        self.pages = dict(pages or {})
        self.calls = []

    def __call__(self, url):
        self.calls.append(url)
        return self.pages.get(url)
