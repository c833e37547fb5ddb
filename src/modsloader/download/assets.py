"""
Asset name parsing and per-variant resolution.

Release assets are recognised purely by filename: an optional tag prefix,
an optional "_<version>" suffix and a `.mtmod` / `.wotmod` extension that
names the variant kind. Anything else is ignored.
"""

import re
from typing import Iterable, Optional

from modsloader.constants import ASSET_NAME_PATTERN, VARIANT_KINDS
from modsloader.log_utils import logger

from .interfaces import CandidateAsset, ResolvedAssets, group_by_variant
from .version import compare_versions

ASSET_NAME_RX = re.compile(ASSET_NAME_PATTERN)
_EXTENSION_RX = re.compile(r"\.(?:mtmod|wotmod)$")


def parse_asset_name(name: str, download_url: str) -> Optional[CandidateAsset]:
    """
    Parse a raw asset filename into a candidate.

    Parameters:
        name (str): Asset filename, e.g. "wotstat.analytics_1.4.2.wotmod".
        download_url (str): URL the asset can be downloaded from.

    Returns:
        Optional[CandidateAsset]: The parsed candidate, or None when the filename
        does not match the mod artifact pattern.
    """
    match = ASSET_NAME_RX.match(name or "")
    if not match:
        return None

    return CandidateAsset(
        full_name=name,
        name_without_extension=_EXTENSION_RX.sub("", name),
        tag_prefix=match.group(1) or "",
        version=match.group(2) or "",
        variant_kind=match.group(3),
        download_url=download_url,
    )


def resolve_assets(candidates: Iterable[CandidateAsset]) -> ResolvedAssets:
    """
    Pick the highest-version candidate for each variant kind.

    Ties on version resolve to the candidate that appears last in input order.
    A variant kind with no candidates stays unresolved.
    """
    grouped = group_by_variant(list(candidates))
    resolved = ResolvedAssets()

    for kind in VARIANT_KINDS:
        best: Optional[CandidateAsset] = None
        for candidate in grouped.get(kind, []):
            if best is None or compare_versions(candidate.version, best.version) >= 0:
                best = candidate
        if best is not None:
            logger.debug(f"Resolved {kind}: {best.full_name} ({best.version or 'no version'})")
        setattr(resolved, kind, best)

    return resolved
