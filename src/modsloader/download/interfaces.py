"""
Core Interfaces for the mods-loader Download Subsystem

This module defines the data structures passed between release sources,
the asset resolver, the artifact downloader and the catalog, plus the
abstract interface every release source implements.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from modsloader.constants import VARIANT_KINDS, VARIANT_MT, VARIANT_WOT


@dataclass(frozen=True)
class ModSource:
    """Upstream location of a mod's releases."""

    type: str
    """Source kind, e.g. 'github' or 'gitlab-description'"""

    owner: Optional[str] = None
    """GitHub repository owner"""

    repo: Optional[str] = None
    """GitHub repository name, or GitLab project path (informational)"""

    repo_id: Optional[int] = None
    """Numeric GitLab project id"""


@dataclass(frozen=True)
class ModEntry:
    """One configured catalog entry."""

    tag: str
    """Stable catalog key of the mod"""

    variant_restriction: Optional[str] = None
    """'mt-only', 'wot-only', or None for both variants"""

    source: Optional[ModSource] = None
    """Upstream source; None marks a placeholder that accepts manual uploads only"""


@dataclass(frozen=True)
class CandidateAsset:
    """A release asset whose filename matched the mod artifact pattern."""

    full_name: str
    """Filename including extension"""

    name_without_extension: str
    """Filename with the variant extension removed"""

    tag_prefix: str
    """Name part before the optional version ('' when absent)"""

    version: str
    """Dotted numeric version parsed from the filename ('' when absent)"""

    variant_kind: str
    """'mtmod' or 'wotmod'"""

    download_url: str
    """Direct URL to download the asset"""


@dataclass
class ResolvedAssets:
    """Highest-version candidate per variant kind for one mod."""

    mtmod: Optional[CandidateAsset] = None
    wotmod: Optional[CandidateAsset] = None

    def get(self, variant_kind: str) -> Optional[CandidateAsset]:
        if variant_kind == VARIANT_MT:
            return self.mtmod
        if variant_kind == VARIANT_WOT:
            return self.wotmod
        raise ValueError(f"Unknown variant kind: {variant_kind}")

    def is_empty(self) -> bool:
        return self.mtmod is None and self.wotmod is None

    def present_kinds(self) -> List[str]:
        return [kind for kind in VARIANT_KINDS if self.get(kind) is not None]


@dataclass
class SourceResult:
    """What a release source reports for one mod in one pass."""

    assets: ResolvedAssets = field(default_factory=ResolvedAssets)
    """Resolved candidates per variant kind"""

    canary_percent: Optional[float] = None
    """Declared canary percentage; None when no canary marker was found"""


@dataclass
class ResolvedArtifact:
    """A downloaded artifact with its content hash and manifest metadata."""

    blob: bytes
    """Raw downloaded bytes"""

    logical_id: str
    """Manifest id, or the filename tag prefix when no manifest id exists"""

    logical_version: Optional[str]
    """Manifest version, or None"""

    content_hash: str
    """SHA-256 hex digest of the raw bytes"""

    full_name: str
    """Original filename"""

    name_without_extension: str
    """Original filename without its variant extension"""


class ReleaseSource(ABC):
    """
    Abstract base class for upstream release sources.

    A ReleaseSource turns a mod's source descriptor into resolved candidate
    assets and an optional declared canary percentage. Sources never write to
    the catalog.
    """

    source_type: str = ""

    @abstractmethod
    def fetch_latest(self, source: ModSource) -> SourceResult:
        """
        Discover the latest eligible artifacts for a mod.

        Parameters:
            source (ModSource): The mod's configured upstream location.

        Returns:
            SourceResult: Resolved candidates per variant kind and the declared canary percentage.

        Raises:
            FetchError: When the upstream feed is unreachable or returns a non-success status.
        """


def group_by_variant(assets: List[CandidateAsset]) -> Dict[str, List[CandidateAsset]]:
    """Group candidates by variant kind, preserving input order within each group."""
    grouped: Dict[str, List[CandidateAsset]] = {kind: [] for kind in VARIANT_KINDS}
    for asset in assets:
        grouped.setdefault(asset.variant_kind, []).append(asset)
    return grouped
