"""
Synology Update Checker - Compatibility Matcher
Picks the one artifact of a version that fits this device.
"""

import logging
import re
from enum import Enum
from typing import Iterable, Optional
from urllib.parse import unquote, urljoin

from resolver.models import ArtifactRef, DeviceIdentity

logger = logging.getLogger(__name__)

BSM_MARKER = "bsm"
NOARCH = "noarch"

# Architecture names used by package builders for each `uname -m` value.
ARCH_ALIASES = {
    "x86_64": ("x64",),
    "aarch64": ("armv8",),
    "armv7l": ("armv7",),
}


class ArtifactKind(Enum):
    """Packaging convention of the artifacts being matched."""
    OS_IMAGE = "pat"
    PACKAGE = "spk"


class MatchStep(Enum):
    """Acceptance steps, in priority order."""
    MODEL = 1
    MODEL_SERIES = 2
    PLATFORM = 3
    ARCHITECTURE = 4


def token_pattern(token: str) -> Optional[re.Pattern]:
    """Case-insensitive pattern for a token bounded by non-alphanumerics."""
    if not token:
        return None
    return re.compile(
        r"(?<![a-z0-9])" + re.escape(token) + r"(?![a-z0-9+])",
        re.IGNORECASE,
    )


def has_token(text: str, token: str) -> bool:
    pattern = token_pattern(token)
    return bool(pattern and pattern.search(text))


def resolve_url(href: str, base_url: Optional[str] = None) -> str:
    """Decode an artifact href and make it absolute against base_url."""
    decoded = unquote(href)
    if base_url:
        return urljoin(base_url, decoded)
    return decoded


class CompatibilityMatcher:
    """
    Decides artifact compatibility for one device.

    Steps run in MatchStep order and the first step with any matching
    candidate wins; within a step, document order decides.
    """

    def __init__(self, device: DeviceIdentity):
        self.device = device

    def is_other_variant(self, candidate: ArtifactRef) -> bool:
        """True when the artifact belongs to the other kernel family."""
        marked_bsm = has_token(candidate.filename, BSM_MARKER)
        if self.device.os_variant.upper() == "BSM":
            return not marked_bsm
        return marked_bsm

    def matches_family(self, candidate: ArtifactRef) -> bool:
        """True when the OS family name appears verbatim in the artifact URL."""
        family = self.device.os_variant
        url = unquote(candidate.url)
        return bool(re.search(r"(?<![A-Za-z])" + re.escape(family) + r"(?![A-Za-z])", url))

    def _has_model_evidence(self, filename: str) -> bool:
        return (has_token(filename, self.device.model)
                or has_token(filename, self.device.model_series))

    def matches_step(self, step: MatchStep, candidate: ArtifactRef) -> bool:
        filename = candidate.filename
        device = self.device

        if step is MatchStep.MODEL:
            return has_token(filename, device.model)

        if step is MatchStep.MODEL_SERIES:
            if device.model_series == device.model:
                return False
            return has_token(filename, device.model_series)

        if step is MatchStep.PLATFORM:
            if not has_token(filename, device.platform_codename):
                return False
            if device.is_virtual:
                return self._has_model_evidence(filename)
            return True

        if step is MatchStep.ARCHITECTURE:
            names = (device.architecture,) + ARCH_ALIASES.get(device.architecture, ()) + (NOARCH,)
            return any(has_token(filename, name) for name in names)

        return False

    def steps_for(self, kind: ArtifactKind) -> list[MatchStep]:
        if kind is ArtifactKind.OS_IMAGE:
            return [MatchStep.MODEL, MatchStep.MODEL_SERIES, MatchStep.PLATFORM]
        return list(MatchStep)

    def eligible(self, candidates: Iterable[ArtifactRef],
                 require_family: bool = False) -> list[ArtifactRef]:
        """Drop candidates of the other OS variant (and wrong family if required)."""
        result = []
        for candidate in candidates:
            if self.is_other_variant(candidate):
                logger.debug(f"Excluding {candidate.filename}: other OS variant")
                continue
            if require_family and not self.matches_family(candidate):
                logger.debug(f"Excluding {candidate.filename}: not a {self.device.os_variant} image")
                continue
            result.append(candidate)
        return result

    def explain(self, candidate: ArtifactRef, kind: ArtifactKind = ArtifactKind.PACKAGE) -> Optional[MatchStep]:
        """Return the first step accepting this candidate, if any."""
        if self.is_other_variant(candidate):
            return None
        for step in self.steps_for(kind):
            if self.matches_step(step, candidate):
                return step
        return None

    def select(
        self,
        candidates: Iterable[ArtifactRef],
        kind: ArtifactKind = ArtifactKind.PACKAGE,
        base_url: Optional[str] = None,
        require_family: bool = False,
        steps: Optional[list[MatchStep]] = None,
    ) -> Optional[ArtifactRef]:
        """
        Select the compatible artifact.

        Args:
            candidates: Artifact links of one version, in document order
            kind: OS images never fall back to the architecture step
            base_url: Origin for relative hrefs
            require_family: Require the OS family name in the URL
            steps: Restrict matching to these steps

        Returns:
            ArtifactRef with a decoded absolute URL, or None if incompatible.
        """
        pool = self.eligible(candidates, require_family=require_family)
        allowed = self.steps_for(kind)
        if steps is not None:
            allowed = [step for step in allowed if step in steps]

        for step in allowed:
            for candidate in pool:
                if self.matches_step(step, candidate):
                    return ArtifactRef(
                        filename=candidate.filename,
                        url=resolve_url(candidate.url, base_url),
                    )
        return None
