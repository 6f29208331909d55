from .async_store import AsyncRowGuardDB, AsyncVersionedProductStore, async_attempt_save
from .config import Settings, configure_logging, get_settings
from .conflicts import attempt_save, save
from .db import RowGuardDB
from .errors import RecordNotFoundError, RowGuardError, StaleVersionError, StoreUnavailableError
from .outcomes import Applied, ConflictDetected, NotFound, WriteOutcome, raise_for_outcome
from .records import Product, VersionedProduct
from .scenarios import ScenarioReport, ScenarioState, run_no_overlap, run_overlap, run_versioned
from .snapshots import FieldChange, Snapshot, Stage, capture, diff
from .store import ProductStore, VersionedProductStore
from .token import VersionToken

__all__ = [
    "Applied",
    "AsyncRowGuardDB",
    "AsyncVersionedProductStore",
    "ConflictDetected",
    "FieldChange",
    "NotFound",
    "Product",
    "ProductStore",
    "RecordNotFoundError",
    "RowGuardDB",
    "RowGuardError",
    "ScenarioReport",
    "ScenarioState",
    "Settings",
    "Snapshot",
    "Stage",
    "StaleVersionError",
    "StoreUnavailableError",
    "VersionToken",
    "VersionedProduct",
    "VersionedProductStore",
    "WriteOutcome",
    "async_attempt_save",
    "attempt_save",
    "capture",
    "configure_logging",
    "diff",
    "get_settings",
    "raise_for_outcome",
    "run_no_overlap",
    "run_overlap",
    "run_versioned",
    "save",
]
