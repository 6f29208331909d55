from __future__ import annotations

import logging

from .outcomes import Applied, NotFound, WriteOutcome
from .records import Product, VersionedProduct
from .store import ProductStore, VersionedProductStore

logger = logging.getLogger(__name__)


def attempt_save(store: VersionedProductStore, record: VersionedProduct) -> WriteOutcome:
    """Write the record's dirty fields guarded by the token it was loaded with.

    On ``Applied`` the copy adopts the new token and becomes clean. On
    ``ConflictDetected`` or ``NotFound`` the copy is left as it was, local
    changes included, and nothing is retried: the caller picks a resolution
    (reload and discard, overwrite, merge) and saves again with a freshly read
    token.
    """
    if record.row_version is None:
        raise ValueError("record was not loaded from a store; it has no row_version")
    outcome = store.write(record.id, record.pending_changes(), record.row_version)
    if isinstance(outcome, Applied):
        record._adopt(outcome.row_version)
    else:
        logger.warning("save of %s row %s rejected: %s", store.table, record.id, outcome.kind)
    return outcome


def save(store: ProductStore, record: Product) -> Applied | NotFound:
    """Bare counterpart of :func:`attempt_save`; never conflicts."""
    outcome = store.write(record.id, record.pending_changes())
    if isinstance(outcome, Applied):
        record.mark_clean()
    return outcome
