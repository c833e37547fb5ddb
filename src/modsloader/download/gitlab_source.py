"""
GitLab Release Description Source

Some mods publish their artifacts as project uploads linked from the release
description rather than as release assets. This source reads the most recent
release's description and turns the linked uploads into candidates.
"""

import re
from typing import List, Optional

import requests

from modsloader.constants import (
    GITLAB_API_BASE,
    GITLAB_BASE,
    GITLAB_UPLOAD_LINK_PATTERN,
    SOURCE_GITLAB_DESCRIPTION,
)
from modsloader.exceptions import ConfigValidationError, FetchError
from modsloader.log_utils import logger
from modsloader.utils import make_api_request

from .assets import parse_asset_name, resolve_assets
from .interfaces import CandidateAsset, ModSource, ReleaseSource, SourceResult

GITLAB_UPLOAD_LINK_RX = re.compile(GITLAB_UPLOAD_LINK_PATTERN)


def extract_candidates_from_description(
    description: Optional[str], project_id: int, gitlab_base: str = GITLAB_BASE
) -> List[CandidateAsset]:
    """
    Find markdown links to artifact uploads in a release description.

    Each link target like "/uploads/<secret>/mod_1.0.wotmod" becomes a candidate
    downloadable from "<gitlab_base>/-/project/<id>/uploads/<secret>/mod_1.0.wotmod".
    """
    candidates: List[CandidateAsset] = []
    if not description:
        return candidates

    base = gitlab_base.rstrip("/")
    for match in GITLAB_UPLOAD_LINK_RX.finditer(description):
        upload_path, filename = match.group(1), match.group(2)
        url = f"{base}/-/project/{project_id}{upload_path}"
        candidate = parse_asset_name(filename, url)
        if candidate is not None:
            candidates.append(candidate)
    return candidates


class GitlabDescriptionSource(ReleaseSource):
    """Release source that scans the latest GitLab release description for upload links."""

    source_type = SOURCE_GITLAB_DESCRIPTION

    def __init__(
        self,
        session: requests.Session,
        api_base: str = GITLAB_API_BASE,
        gitlab_base: str = GITLAB_BASE,
        timeout: Optional[float] = None,
    ):
        self.session = session
        self.api_base = api_base.rstrip("/")
        self.gitlab_base = gitlab_base
        self.timeout = timeout

    def get_releases_url(self, source: ModSource) -> str:
        if source.repo_id is None:
            raise ConfigValidationError(
                "GitLab description source requires 'repo_id'", f"repo={source.repo!r}"
            )
        return f"{self.api_base}/{source.repo_id}/releases"

    def fetch_latest(self, source: ModSource) -> SourceResult:
        url = self.get_releases_url(source)
        releases = make_api_request(self.session, url, timeout=self.timeout)
        if not isinstance(releases, list):
            raise FetchError(
                "Unexpected releases payload",
                url=url,
                details=f"expected list, got {type(releases).__name__}",
            )
        if not releases:
            logger.info(f"No releases published for GitLab project {source.repo_id}")
            return SourceResult()

        latest = releases[0]
        description = latest.get("description") if isinstance(latest, dict) else None
        candidates = extract_candidates_from_description(
            description if isinstance(description, str) else None,
            source.repo_id,
            self.gitlab_base,
        )
        logger.debug(
            f"GitLab project {source.repo_id} latest release: {len(candidates)} linked mod upload(s)"
        )
        # Declared canary percentages are not supported for this source yet.
        return SourceResult(assets=resolve_assets(candidates), canary_percent=None)
