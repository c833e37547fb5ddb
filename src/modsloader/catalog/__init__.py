"""
mods-loader Catalog

Stateful components: the SQLite catalog store and its view cache, the canary
rollout state machine, reconciliation passes, manual uploads and the pass
scheduler.
"""

from .cache import CatalogViewCache
from .canary import WriteAction, next_canary_state, plan_variant_write
from .models import CanaryState, ModVariantRecord
from .reconciler import ModSyncResult, PassReport, Reconciler
from .scheduler import PassScheduler, next_run_after
from .service import IntegrityIssue, ModCatalog
from .store import CatalogStore
from .upload import UploadHandler, UploadSubmission
from .writer import CatalogWriter, plan_variant_targets

__all__ = [
    "CanaryState",
    "ModVariantRecord",
    "WriteAction",
    "next_canary_state",
    "plan_variant_write",
    "CatalogStore",
    "CatalogViewCache",
    "CatalogWriter",
    "plan_variant_targets",
    "ModCatalog",
    "IntegrityIssue",
    "Reconciler",
    "ModSyncResult",
    "PassReport",
    "UploadHandler",
    "UploadSubmission",
    "PassScheduler",
    "next_run_after",
]
