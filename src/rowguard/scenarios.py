from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel, Field

from .conflicts import attempt_save, save
from .db import RowGuardDB
from .outcomes import Applied, ConflictDetected, NotFound
from .records import TrackedRecord
from .snapshots import FieldChange, Snapshot, Stage, capture, diff
from .schema import PRODUCTS, VERSIONED_PRODUCTS

"""
The three demonstrated workflows: load, change locally, let another writer
change the row, then save.

English: Each run returns a report with numbered steps, the states walked and
a snapshot per stage.
日本語: 各シナリオは手順・状態遷移・各段階のスナップショットを含むレポートを返します。
"""

logger = logging.getLogger(__name__)


class ScenarioState(str, Enum):
    LOADED = "loaded"
    LOCALLY_MODIFIED = "locally_modified"
    EXTERNALLY_WRITTEN = "externally_written"
    SAVE_ATTEMPTED = "save_attempted"
    APPLIED = "applied"
    CONFLICT_DETECTED = "conflict_detected"


_NEXT: dict[Optional[ScenarioState], tuple[ScenarioState, ...]] = {
    None: (ScenarioState.LOADED,),
    ScenarioState.LOADED: (ScenarioState.LOCALLY_MODIFIED,),
    ScenarioState.LOCALLY_MODIFIED: (ScenarioState.EXTERNALLY_WRITTEN,),
    ScenarioState.EXTERNALLY_WRITTEN: (ScenarioState.SAVE_ATTEMPTED,),
    ScenarioState.SAVE_ATTEMPTED: (ScenarioState.APPLIED, ScenarioState.CONFLICT_DETECTED),
}


class Explanation(BaseModel):
    what_happened: str
    sql_generated: Optional[str] = None
    lesson: Optional[str] = None
    protection: Optional[str] = None
    next_steps: Optional[str] = None


class ScenarioReport(BaseModel):
    scenario: str
    message: str = ""
    steps: list[str] = Field(default_factory=list)
    states: list[ScenarioState] = Field(default_factory=list)
    snapshots: dict[Stage, Snapshot] = Field(default_factory=dict)
    outcome: Optional[Union[Applied, ConflictDetected, NotFound]] = None
    explanation: Optional[Explanation] = None

    @property
    def state(self) -> Optional[ScenarioState]:
        return self.states[-1] if self.states else None

    @property
    def conflict_detected(self) -> bool:
        return self.state is ScenarioState.CONFLICT_DETECTED

    def advance(self, state: ScenarioState, step: Optional[str] = None) -> None:
        if state not in _NEXT.get(self.state, ()):
            raise RuntimeError(f"{self.scenario}: cannot move from {self.state} to {state}")
        self.states.append(state)
        if step:
            self.steps.append(f"{len(self.steps) + 1}. {step}")

    def snap(self, stage: Stage, record: TrackedRecord) -> Snapshot:
        snapshot = capture(record, stage)
        self.snapshots[stage] = snapshot
        return snapshot

    def changes(self, before: Stage, after: Stage) -> set[FieldChange]:
        return diff(self.snapshots[before], self.snapshots[after])


def sql_preview(table: str, record_id: int, changes: Mapping[str, Any], guarded: bool = False) -> str:
    """Human-readable form of the UPDATE a save issues (values inlined)."""

    def literal(value: Any) -> str:
        return f"'{value}'" if isinstance(value, str) else str(value)

    assignments = ", ".join(f"{k} = {literal(v)}" for k, v in changes.items())
    where = f"id = {record_id}" + (" AND row_version = @expected" if guarded else "")
    return f"UPDATE {table} SET {assignments} WHERE {where}"


def _run_bare(
    name: str,
    db: RowGuardDB,
    local: Mapping[str, Any],
    external: Mapping[str, Any],
    external_db: Optional[RowGuardDB],
) -> ScenarioReport:
    writer = external_db or db
    report = ScenarioReport(scenario=name)

    product = db.products.first()
    report.advance(ScenarioState.LOADED, "Loaded product into a private copy")
    report.snap(Stage.INITIAL_LOAD, product)

    for field, value in local.items():
        setattr(product, field, value)
    report.advance(
        ScenarioState.LOCALLY_MODIFIED,
        f"Modified {', '.join(sorted(product.dirty_fields))} in the private copy (not saved yet)",
    )
    report.snap(Stage.AFTER_LOCAL_MUTATION, product)

    writer.products.write_direct(product.id, external)
    report.advance(
        ScenarioState.EXTERNALLY_WRITTEN,
        f"Another writer changed {', '.join(f'{k}={v}' for k, v in external.items())} directly",
    )
    report.snap(Stage.AFTER_EXTERNAL_WRITE, db.products.get(product.id))

    sql = sql_preview(PRODUCTS, product.id, product.pending_changes())
    overlap = sorted(product.dirty_fields & set(external))
    report.advance(ScenarioState.SAVE_ATTEMPTED)
    outcome = save(db.products, product)
    report.outcome = outcome
    if isinstance(outcome, NotFound):
        raise RuntimeError(f"product {product.id} disappeared during the demo")
    report.advance(
        ScenarioState.APPLIED,
        "Saved the private copy ("
        + (f"{', '.join(overlap)} overwritten" if overlap else "external change untouched")
        + ")",
    )
    report.snap(Stage.AFTER_SAVE_ATTEMPT, product)
    report.snap(Stage.FINAL, db.products.get(product.id))
    logger.info("%s finished: %s", name, report.state.value)

    if overlap:
        report.message = f"Demo completed: the save overwrote {', '.join(overlap)}"
        what = (
            f"The external {', '.join(overlap)} change was overwritten because the "
            "private copy also assigned it"
        )
        lesson = "A field marked dirty is written back and silently replaces concurrent changes"
    else:
        report.message = "Demo completed: the save did not touch the external change"
        what = (
            f"The external {', '.join(sorted(external))} change survived because the save "
            f"only wrote {', '.join(sorted(local))}"
        )
        lesson = "Fields that were never assigned locally are not part of the write"
    report.explanation = Explanation(what_happened=what, sql_generated=sql, lesson=lesson)
    return report


def run_no_overlap(db: RowGuardDB, *, external_db: Optional[RowGuardDB] = None) -> ScenarioReport:
    """Scenario A: local name/price change, external stock change; both survive."""
    return _run_bare(
        "no_overlap",
        db,
        {"name": "Super Widget", "price": "29.99"},
        {"stock": 75},
        external_db,
    )


def run_overlap(db: RowGuardDB, *, external_db: Optional[RowGuardDB] = None) -> ScenarioReport:
    """Scenario B: the local change also sets stock, so the external stock is lost."""
    return _run_bare(
        "overlap",
        db,
        {"name": "Super Widget", "price": "29.99", "stock": 1000},
        {"stock": 75},
        external_db,
    )


def run_versioned(db: RowGuardDB, *, external_db: Optional[RowGuardDB] = None) -> ScenarioReport:
    """Scenario C: the external write advances the token and the save is rejected."""
    writer = external_db or db
    store = db.versioned_products
    report = ScenarioReport(scenario="versioned")

    product = store.first()
    report.advance(ScenarioState.LOADED, "Loaded product with its row_version")
    report.snap(Stage.INITIAL_LOAD, product)

    product.name = "Super Widget v2"
    product.price = "35.99"
    report.advance(ScenarioState.LOCALLY_MODIFIED, "Modified name, price in the private copy")
    report.snap(Stage.AFTER_LOCAL_MUTATION, product)

    writer.versioned_products.write_direct(product.id, {"stock": 50})
    report.advance(
        ScenarioState.EXTERNALLY_WRITTEN,
        "Another writer changed stock=50 directly; the store advanced row_version",
    )
    report.snap(Stage.AFTER_EXTERNAL_WRITE, store.get(product.id))

    sql = sql_preview(VERSIONED_PRODUCTS, product.id, product.pending_changes(), guarded=True)
    report.advance(ScenarioState.SAVE_ATTEMPTED)
    outcome = attempt_save(store, product)
    report.outcome = outcome
    if isinstance(outcome, ConflictDetected):
        report.advance(ScenarioState.CONFLICT_DETECTED, "Save rejected: row_version no longer matches")
        report.message = "Concurrency conflict detected and prevented data loss"
        what = "The external write changed row_version, so the guarded UPDATE matched no row"
    elif isinstance(outcome, Applied):
        report.advance(ScenarioState.APPLIED, "Save applied: row_version still matched")
        report.message = "Unexpected: no concurrency conflict detected"
        what = "The row_version was unchanged at save time"
    else:
        raise RuntimeError(f"versioned product {product.id} disappeared during the demo")
    report.snap(Stage.AFTER_SAVE_ATTEMPT, product)
    report.snap(Stage.FINAL, store.get(product.id))
    logger.info("versioned finished: %s", report.state.value)

    report.explanation = Explanation(
        what_happened=what,
        sql_generated=sql,
        protection="row_version prevents silent overwrites of concurrent changes",
        next_steps="Reload the row, reapply or merge the local changes, and save with the new row_version",
    )
    return report
