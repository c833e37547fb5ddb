"""
The catalog write primitive shared by reconciliation passes and manual uploads.
"""

from typing import Dict, Iterable, Optional

from modsloader.constants import RESTRICTION_TO_VARIANT, VARIANT_KINDS
from modsloader.download.files import ContentStore
from modsloader.download.interfaces import ResolvedArtifact
from modsloader.exceptions import ConfigValidationError

from .canary import WriteAction
from .store import CatalogStore


def plan_variant_targets(
    available_kinds: Iterable[str], restriction: Optional[str] = None
) -> Dict[str, str]:
    """
    Decide which artifact is written under which variant kind.

    A kind without its own artifact is served by the other kind's artifact, so
    a single binary covers both platforms. A restriction keeps only its kind.

    Returns:
        Dict[str, str]: Target variant kind -> variant kind of the artifact to store there.

    Raises:
        ConfigValidationError: If the restriction is not recognised.
    """
    available = [kind for kind in VARIANT_KINDS if kind in set(available_kinds)]
    if not available:
        return {}

    targets = {kind: (kind if kind in available else available[0]) for kind in VARIANT_KINDS}

    if restriction is None:
        return targets
    allowed = RESTRICTION_TO_VARIANT.get(restriction)
    if allowed is None:
        raise ConfigValidationError("Unknown variant restriction", repr(restriction))
    return {allowed: targets[allowed]}


class CatalogWriter:
    """Writes blobs to the content store, then indexes them in the catalog."""

    def __init__(self, store: CatalogStore, content_store: ContentStore):
        self.store = store
        self.content_store = content_store

    def save_artifact(
        self,
        tag: str,
        artifact: ResolvedArtifact,
        variant_kind: str,
        canary_percent: Optional[float],
    ) -> WriteAction:
        storage_url, _written = self.content_store.write(tag, artifact, variant_kind)
        return self.store.commit_variant(
            tag, artifact, variant_kind, storage_url, canary_percent
        )

    def save_variants(
        self,
        tag: str,
        artifacts: Dict[str, ResolvedArtifact],
        canary_percent: Optional[float],
    ) -> Dict[str, WriteAction]:
        """
        Save one artifact per target variant kind.

        Parameters:
            artifacts (Dict[str, ResolvedArtifact]): Target variant kind -> artifact to store.

        Returns:
            Dict[str, WriteAction]: The action taken per variant kind.
        """
        return {
            kind: self.save_artifact(tag, artifacts[kind], kind, canary_percent)
            for kind in VARIANT_KINDS
            if kind in artifacts
        }
