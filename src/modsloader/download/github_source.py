"""
GitHub Release Source

This module fetches the latest GitHub release of a mod repository, turns its
assets into resolved candidates and reads the declared canary percentage from
the release notes.
"""

import re
from typing import Any, Dict, List, Optional

import requests

from modsloader.constants import (
    CANARY_MARKER_PATTERN,
    CANARY_MAX_PERCENT,
    GITHUB_API_BASE,
    SOURCE_GITHUB,
)
from modsloader.exceptions import ConfigValidationError, FetchError
from modsloader.log_utils import logger
from modsloader.utils import make_github_api_request

from .assets import parse_asset_name, resolve_assets
from .interfaces import CandidateAsset, ModSource, ReleaseSource, SourceResult

CANARY_MARKER_RX = re.compile(CANARY_MARKER_PATTERN, re.IGNORECASE)


def parse_canary_percent(body: Optional[str]) -> Optional[float]:
    """
    Extract the declared canary percentage from release notes.

    The first "[canary: <percent>]" marker wins. A bare "[canary]" declares 0,
    meaning no partial rollout. Values above 100 are clamped to 100.

    Returns:
        Optional[float]: The declared percentage, or None when no marker is present.
    """
    if not body:
        return None
    match = CANARY_MARKER_RX.search(body)
    if not match:
        return None

    raw = match.group(1)
    if raw is None:
        return 0.0

    percent = float(raw)
    if percent > CANARY_MAX_PERCENT:
        logger.warning(
            f"Canary percent {raw} exceeds {CANARY_MAX_PERCENT:g}; clamping to {CANARY_MAX_PERCENT:g}"
        )
        percent = CANARY_MAX_PERCENT
    return percent


def create_candidates_from_github_data(
    release_data: Dict[str, Any],
) -> List[CandidateAsset]:
    """
    Parse every asset of a GitHub release payload into candidates.

    Assets whose names do not match the artifact pattern, and malformed asset
    entries, are skipped.
    """
    candidates: List[CandidateAsset] = []
    assets_data = release_data.get("assets")
    if not isinstance(assets_data, list):
        return candidates

    for asset_data in assets_data:
        if not isinstance(asset_data, dict):
            continue
        name = asset_data.get("name")
        url = asset_data.get("browser_download_url")
        if not isinstance(name, str) or not isinstance(url, str):
            continue
        candidate = parse_asset_name(name, url)
        if candidate is None:
            logger.debug(f"Ignoring non-mod asset: {name}")
            continue
        candidates.append(candidate)

    return candidates


class GithubReleaseSource(ReleaseSource):
    """
    Release source backed by the GitHub "latest release" endpoint.

    Usage:
        source = GithubReleaseSource(session, github_token=token)
        result = source.fetch_latest(ModSource(type="github", owner="o", repo="r"))
    """

    source_type = SOURCE_GITHUB

    def __init__(
        self,
        session: requests.Session,
        github_token: Optional[str] = None,
        allow_env_token: bool = True,
        api_base: str = GITHUB_API_BASE,
        timeout: Optional[float] = None,
    ):
        """
        Initialize the GitHub release source.

        Parameters:
            session (requests.Session): Session used for API requests.
            github_token (Optional[str]): Token for authenticated requests.
            allow_env_token (bool): Whether GITHUB_TOKEN from the environment may be used.
            api_base (str): Base URL of the repos API.
            timeout (Optional[float]): Per-request timeout in seconds.
        """
        self.session = session
        self.github_token = github_token
        self.allow_env_token = allow_env_token
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout

    def get_latest_release_url(self, source: ModSource) -> str:
        if not source.owner or not source.repo:
            raise ConfigValidationError(
                "GitHub source requires 'owner' and 'repo'",
                f"owner={source.owner!r}, repo={source.repo!r}",
            )
        return f"{self.api_base}/{source.owner}/{source.repo}/releases/latest"

    def fetch_latest(self, source: ModSource) -> SourceResult:
        url = self.get_latest_release_url(source)
        release_data = make_github_api_request(
            self.session,
            url,
            github_token=self.github_token,
            allow_env_token=self.allow_env_token,
            timeout=self.timeout,
        )
        if not isinstance(release_data, dict):
            raise FetchError(
                "Unexpected release payload",
                url=url,
                details=f"expected object, got {type(release_data).__name__}",
            )

        candidates = create_candidates_from_github_data(release_data)
        logger.debug(
            f"GitHub release {release_data.get('tag_name')} for {source.owner}/{source.repo}: "
            f"{len(candidates)} mod asset(s)"
        )
        return SourceResult(
            assets=resolve_assets(candidates),
            canary_percent=parse_canary_percent(release_data.get("body")),
        )
