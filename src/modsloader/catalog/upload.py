"""
Manual artifact uploads for placeholder catalog entries.

Tags without an upstream source are filled by hand. An upload is validated
synchronously and, once accepted, committed through the same write path as a
reconciliation pass while holding the catalog's writer lock.
"""

import hmac
from dataclasses import dataclass
from numbers import Real
from typing import Dict, Mapping, Optional, Sequence

from modsloader.constants import CANARY_MAX_PERCENT, RESTRICTION_TO_VARIANT
from modsloader.download.assets import parse_asset_name
from modsloader.download.downloader import build_artifact
from modsloader.download.interfaces import ModEntry
from modsloader.exceptions import CatalogBusyError, UploadValidationError
from modsloader.log_utils import logger

from .writer import CatalogWriter, plan_variant_targets


@dataclass
class UploadSubmission:
    """A manually submitted artifact."""

    file_bytes: bytes
    filename: str
    tag: str
    token: str
    canary_percent: Optional[float] = None
    variant_restriction: Optional[str] = None


class UploadHandler:
    """Validates uploads and writes accepted artifacts to the catalog."""

    def __init__(
        self,
        entries: Sequence[ModEntry],
        upload_tokens: Mapping[str, str],
        writer: CatalogWriter,
        lock_timeout: float,
    ):
        self.entries = {entry.tag: entry for entry in entries}
        self.upload_tokens = dict(upload_tokens)
        self.writer = writer
        self.lock_timeout = lock_timeout

    def validate(self, submission: UploadSubmission) -> Optional[str]:
        """
        Check a submission without touching any state.

        Returns:
            Optional[str]: The effective variant restriction for the write.

        Raises:
            UploadValidationError: On the first failed check.
        """
        entry = self.entries.get(submission.tag)
        if entry is None:
            raise UploadValidationError("Unknown tag", field="tag", details=submission.tag)
        if entry.source is not None:
            raise UploadValidationError(
                "Tag is synchronized from upstream and does not accept uploads",
                field="tag",
                details=submission.tag,
            )

        expected = self.upload_tokens.get(submission.tag)
        if not expected or not hmac.compare_digest(
            (submission.token or "").encode("utf-8"), expected.encode("utf-8")
        ):
            raise UploadValidationError("Not authorized to upload for this tag", field="token")

        if not submission.file_bytes:
            raise UploadValidationError("Missing file", field="file")
        if parse_asset_name(submission.filename, "") is None:
            raise UploadValidationError(
                "File name is not a mod artifact", field="filename", details=submission.filename
            )

        percent = submission.canary_percent
        if percent is not None:
            if isinstance(percent, bool) or not isinstance(percent, Real):
                raise UploadValidationError("Canary percent must be a number", field="canary_percent")
            if not 0 <= percent <= CANARY_MAX_PERCENT:
                raise UploadValidationError(
                    f"Canary percent must be between 0 and {CANARY_MAX_PERCENT:g}",
                    field="canary_percent",
                    details=str(percent),
                )

        restriction = submission.variant_restriction
        if restriction is None:
            return entry.variant_restriction
        if restriction not in RESTRICTION_TO_VARIANT:
            raise UploadValidationError(
                "Unknown variant restriction", field="variant_restriction", details=restriction
            )
        if entry.variant_restriction is not None and restriction != entry.variant_restriction:
            raise UploadValidationError(
                f"Tag is restricted to {entry.variant_restriction}",
                field="variant_restriction",
                details=restriction,
            )
        return restriction

    def submit(self, submission: UploadSubmission) -> Dict[str, str]:
        """
        Validate and commit an upload.

        Returns:
            Dict[str, str]: Variant kind -> write action taken.

        Raises:
            UploadValidationError: If the submission is rejected; nothing is written.
            CatalogBusyError: If a reconciliation pass holds the writer lock past the timeout.
        """
        restriction = self.validate(submission)
        candidate = parse_asset_name(submission.filename, "")
        artifact = build_artifact(submission.file_bytes, candidate)
        targets = plan_variant_targets([candidate.variant_kind], restriction)

        if not self.writer.store.writer_lock.acquire(timeout=self.lock_timeout):
            raise CatalogBusyError(
                "Catalog is busy", f"could not acquire writer lock within {self.lock_timeout:g}s"
            )
        try:
            written = self.writer.save_variants(
                submission.tag,
                {kind: artifact for kind in targets},
                submission.canary_percent,
            )
        finally:
            self.writer.store.writer_lock.release()

        logger.info(f"Accepted upload {submission.filename} for {submission.tag}")
        return {kind: action.value for kind, action in written.items()}
