"""
mods-loader Download Subsystem

Leaf components that turn a configured mod into downloaded artifacts:

- interfaces: Data structures and the release source interface
- version: Dotted numeric version comparison
- assets: Asset filename parsing and per-variant resolution
- github_source / gitlab_source: Release source strategies
- registry: Source kind -> strategy lookup
- downloader: Artifact download, hashing and manifest inspection
- files: Hash-addressed content store
"""

from .assets import parse_asset_name, resolve_assets
from .downloader import ArtifactDownloader, build_artifact, read_manifest
from .files import ContentStore
from .github_source import GithubReleaseSource, parse_canary_percent
from .gitlab_source import GitlabDescriptionSource
from .interfaces import (
    CandidateAsset,
    ModEntry,
    ModSource,
    ReleaseSource,
    ResolvedArtifact,
    ResolvedAssets,
    SourceResult,
)
from .registry import SourceRegistry
from .version import compare_versions

__all__ = [
    # Interfaces
    "ModSource",
    "ModEntry",
    "CandidateAsset",
    "ResolvedAssets",
    "SourceResult",
    "ResolvedArtifact",
    "ReleaseSource",
    # Sources
    "GithubReleaseSource",
    "GitlabDescriptionSource",
    "SourceRegistry",
    "parse_canary_percent",
    # Parsing and resolution
    "parse_asset_name",
    "resolve_assets",
    "compare_versions",
    # Download and storage
    "ArtifactDownloader",
    "build_artifact",
    "read_manifest",
    "ContentStore",
]
