"""
GatePilot SQLite Stores

File-backed implementations of the repository protocols. Every write
runs inside an immediate transaction on its own connection, so the
compare-and-swap on gate forms and first-user role registration are
atomic across threads and processes sharing the database file.

Schema is created on first use.
"""
from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Iterator, Optional, Union

from ..exceptions import InvalidInputError, VersionConflictError
from ..models import (
    FormStatus,
    GateAction,
    GateForm,
    GateFormEvent,
    Initiative,
    InitiativeStatus,
    Milestone,
    MilestoneStatus,
    RAGStatus,
    UserRole,
    UserRoleRecord,
)
from .base import Repositories

logger = logging.getLogger(__name__)


SCHEMA = """
CREATE TABLE IF NOT EXISTS initiatives (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    value_stream TEXT,
    l_gate TEXT,
    priority_category TEXT,
    priority_rank INTEGER NOT NULL DEFAULT 0,
    budgeted_cost REAL NOT NULL DEFAULT 0,
    targeted_benefit REAL NOT NULL DEFAULT 0,
    cost_center TEXT,
    created_at TEXT,
    updated_at TEXT
);

CREATE TABLE IF NOT EXISTS gate_forms (
    id TEXT NOT NULL,
    initiative_id TEXT NOT NULL,
    gate TEXT NOT NULL,
    status TEXT NOT NULL,
    form_data TEXT,
    version INTEGER NOT NULL,
    submitted_by TEXT,
    submitted_at TEXT,
    approved_by TEXT,
    approved_at TEXT,
    rejection_reason TEXT,
    rejected_by TEXT,
    rejected_at TEXT,
    change_request_reason TEXT,
    change_requested_by TEXT,
    change_requested_at TEXT,
    created_at TEXT,
    updated_by TEXT,
    updated_at TEXT,
    PRIMARY KEY (initiative_id, gate)
);

CREATE INDEX IF NOT EXISTS idx_gate_forms_status ON gate_forms (status);

CREATE TABLE IF NOT EXISTS gate_form_events (
    id TEXT PRIMARY KEY,
    form_id TEXT NOT NULL,
    initiative_id TEXT NOT NULL,
    gate TEXT NOT NULL,
    action TEXT NOT NULL,
    from_status TEXT NOT NULL,
    to_status TEXT NOT NULL,
    actor_id TEXT NOT NULL,
    occurred_at TEXT NOT NULL,
    version INTEGER NOT NULL,
    reason TEXT
);

CREATE INDEX IF NOT EXISTS idx_gate_form_events_form
    ON gate_form_events (initiative_id, gate, version);

CREATE TABLE IF NOT EXISTS initiative_status (
    initiative_id TEXT PRIMARY KEY,
    cost_status TEXT NOT NULL,
    benefit_status TEXT NOT NULL,
    timeline_status TEXT NOT NULL,
    scope_status TEXT NOT NULL,
    updated_by TEXT,
    updated_at TEXT
);

CREATE TABLE IF NOT EXISTS user_roles (
    user_id TEXT PRIMARY KEY,
    role TEXT NOT NULL,
    value_stream TEXT,
    created_at TEXT,
    updated_at TEXT,
    seq INTEGER
);

CREATE TABLE IF NOT EXISTS milestones (
    id TEXT PRIMARY KEY,
    initiative_id TEXT NOT NULL,
    name TEXT NOT NULL,
    start_date TEXT,
    end_date TEXT,
    status TEXT NOT NULL,
    notes TEXT
);

CREATE INDEX IF NOT EXISTS idx_milestones_initiative ON milestones (initiative_id);
"""


# =============================================================================
# Value Conversion
# =============================================================================

def _ts(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _day(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_day(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value else None


def _form_from_row(row: sqlite3.Row) -> GateForm:
    return GateForm(
        id=row["id"],
        initiative_id=row["initiative_id"],
        gate=row["gate"],
        status=FormStatus(row["status"]),
        form_data=json.loads(row["form_data"]) if row["form_data"] else None,
        version=row["version"],
        submitted_by=row["submitted_by"],
        submitted_at=_parse_ts(row["submitted_at"]),
        approved_by=row["approved_by"],
        approved_at=_parse_ts(row["approved_at"]),
        rejection_reason=row["rejection_reason"],
        rejected_by=row["rejected_by"],
        rejected_at=_parse_ts(row["rejected_at"]),
        change_request_reason=row["change_request_reason"],
        change_requested_by=row["change_requested_by"],
        change_requested_at=_parse_ts(row["change_requested_at"]),
        created_at=_parse_ts(row["created_at"]),
        updated_by=row["updated_by"],
        updated_at=_parse_ts(row["updated_at"]),
    )


def _form_params(form: GateForm) -> dict[str, Any]:
    return {
        "id": form.id,
        "initiative_id": form.initiative_id,
        "gate": form.gate,
        "status": form.status.value,
        "form_data": json.dumps(form.form_data) if form.form_data is not None else None,
        "version": form.version,
        "submitted_by": form.submitted_by,
        "submitted_at": _ts(form.submitted_at),
        "approved_by": form.approved_by,
        "approved_at": _ts(form.approved_at),
        "rejection_reason": form.rejection_reason,
        "rejected_by": form.rejected_by,
        "rejected_at": _ts(form.rejected_at),
        "change_request_reason": form.change_request_reason,
        "change_requested_by": form.change_requested_by,
        "change_requested_at": _ts(form.change_requested_at),
        "created_at": _ts(form.created_at),
        "updated_by": form.updated_by,
        "updated_at": _ts(form.updated_at),
    }


def _event_from_row(row: sqlite3.Row) -> GateFormEvent:
    return GateFormEvent(
        id=row["id"],
        form_id=row["form_id"],
        initiative_id=row["initiative_id"],
        gate=row["gate"],
        action=GateAction(row["action"]),
        from_status=FormStatus(row["from_status"]),
        to_status=FormStatus(row["to_status"]),
        actor_id=row["actor_id"],
        occurred_at=datetime.fromisoformat(row["occurred_at"]),
        version=row["version"],
        reason=row["reason"],
    )


def _status_from_row(row: sqlite3.Row) -> InitiativeStatus:
    return InitiativeStatus(
        initiative_id=row["initiative_id"],
        cost_status=RAGStatus(row["cost_status"]),
        benefit_status=RAGStatus(row["benefit_status"]),
        timeline_status=RAGStatus(row["timeline_status"]),
        scope_status=RAGStatus(row["scope_status"]),
        updated_by=row["updated_by"],
        updated_at=_parse_ts(row["updated_at"]),
    )


def _role_from_row(row: sqlite3.Row) -> UserRoleRecord:
    return UserRoleRecord(
        user_id=row["user_id"],
        role=UserRole(row["role"]),
        value_stream=row["value_stream"],
        created_at=_parse_ts(row["created_at"]),
        updated_at=_parse_ts(row["updated_at"]),
    )


def _initiative_from_row(row: sqlite3.Row) -> Initiative:
    return Initiative(
        id=row["id"],
        name=row["name"],
        value_stream=row["value_stream"],
        l_gate=row["l_gate"],
        priority_category=row["priority_category"],
        priority_rank=row["priority_rank"],
        budgeted_cost=row["budgeted_cost"],
        targeted_benefit=row["targeted_benefit"],
        cost_center=row["cost_center"],
        created_at=_parse_ts(row["created_at"]),
        updated_at=_parse_ts(row["updated_at"]),
    )


def _milestone_from_row(row: sqlite3.Row) -> Milestone:
    return Milestone(
        id=row["id"],
        initiative_id=row["initiative_id"],
        name=row["name"],
        start_date=_parse_day(row["start_date"]),
        end_date=_parse_day(row["end_date"]),
        status=MilestoneStatus(row["status"]),
        notes=row["notes"],
    )


# =============================================================================
# Database Handle
# =============================================================================

class SQLiteDatabase:
    """Connection factory and schema owner for one database file."""

    def __init__(self, db_path: Union[str, Path]) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.init_schema()

    def _get_db(self) -> sqlite3.Connection:
        """Open DB connection with row factory."""
        conn = sqlite3.connect(str(self.db_path), timeout=10.0, isolation_level=None)
        conn.row_factory = sqlite3.Row
        return conn

    def init_schema(self) -> None:
        conn = self._get_db()
        try:
            conn.executescript(SCHEMA)
        finally:
            conn.close()
        logger.debug("SQLite schema ready at %s", self.db_path)

    @contextmanager
    def read(self) -> Iterator[sqlite3.Connection]:
        conn = self._get_db()
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Immediate write transaction; rolled back on any exception."""
        conn = self._get_db()
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
        finally:
            conn.close()


# =============================================================================
# Gate Forms
# =============================================================================

_FORM_COLUMNS = (
    "id", "initiative_id", "gate", "status", "form_data", "version",
    "submitted_by", "submitted_at", "approved_by", "approved_at",
    "rejection_reason", "rejected_by", "rejected_at",
    "change_request_reason", "change_requested_by", "change_requested_at",
    "created_at", "updated_by", "updated_at",
)


class SQLiteFormStore:
    """FormStore backed by the gate_forms and gate_form_events tables."""

    def __init__(self, db: SQLiteDatabase) -> None:
        self.db = db

    def get(self, initiative_id: str, gate: str) -> Optional[GateForm]:
        with self.db.read() as conn:
            row = conn.execute(
                "SELECT * FROM gate_forms WHERE initiative_id = ? AND gate = ?",
                (initiative_id, gate),
            ).fetchone()
        return _form_from_row(row) if row else None

    def list_for_initiative(self, initiative_id: str) -> list[GateForm]:
        with self.db.read() as conn:
            rows = conn.execute(
                "SELECT * FROM gate_forms WHERE initiative_id = ? ORDER BY gate",
                (initiative_id,),
            ).fetchall()
        return [_form_from_row(r) for r in rows]

    def list_by_status(self, status: FormStatus) -> list[GateForm]:
        with self.db.read() as conn:
            rows = conn.execute(
                "SELECT * FROM gate_forms WHERE status = ? ORDER BY initiative_id, gate",
                (status.value,),
            ).fetchall()
        return [_form_from_row(r) for r in rows]

    def save(
        self,
        form: GateForm,
        expected_version: int,
        event: Optional[GateFormEvent] = None,
    ) -> GateForm:
        params = _form_params(form)
        with self.db.transaction() as conn:
            if expected_version == 0:
                placeholders = ", ".join(f":{c}" for c in _FORM_COLUMNS)
                cursor = conn.execute(
                    f"INSERT OR IGNORE INTO gate_forms ({', '.join(_FORM_COLUMNS)}) "
                    f"VALUES ({placeholders})",
                    params,
                )
            else:
                assignments = ", ".join(
                    f"{c} = :{c}" for c in _FORM_COLUMNS
                    if c not in ("id", "initiative_id", "gate")
                )
                cursor = conn.execute(
                    f"UPDATE gate_forms SET {assignments} "
                    "WHERE initiative_id = :initiative_id AND gate = :gate "
                    "AND version = :expected_version",
                    {**params, "expected_version": expected_version},
                )

            if cursor.rowcount == 0:
                row = conn.execute(
                    "SELECT version FROM gate_forms WHERE initiative_id = ? AND gate = ?",
                    (form.initiative_id, form.gate),
                ).fetchone()
                current_version = row["version"] if row else 0
                raise VersionConflictError(
                    message=(
                        f"Form {form.id} was modified concurrently "
                        f"(expected version {expected_version}, found {current_version})"
                    ),
                    details={
                        "expected_version": expected_version,
                        "current_version": current_version,
                    },
                    initiative_id=form.initiative_id,
                )

            if event is not None:
                conn.execute(
                    "INSERT INTO gate_form_events (id, form_id, initiative_id, gate, "
                    "action, from_status, to_status, actor_id, occurred_at, version, reason) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        event.id, event.form_id, event.initiative_id, event.gate,
                        event.action.value, event.from_status.value, event.to_status.value,
                        event.actor_id, event.occurred_at.isoformat(), event.version,
                        event.reason,
                    ),
                )
        return form.clone()

    def events(self, initiative_id: str, gate: str) -> list[GateFormEvent]:
        with self.db.read() as conn:
            rows = conn.execute(
                "SELECT * FROM gate_form_events WHERE initiative_id = ? AND gate = ? "
                "ORDER BY version",
                (initiative_id, gate),
            ).fetchall()
        return [_event_from_row(r) for r in rows]

    def delete_for_initiative(self, initiative_id: str) -> int:
        with self.db.transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM gate_forms WHERE initiative_id = ?", (initiative_id,)
            )
            conn.execute(
                "DELETE FROM gate_form_events WHERE initiative_id = ?", (initiative_id,)
            )
            return cursor.rowcount


# =============================================================================
# Initiative Status
# =============================================================================

class SQLiteStatusStore:
    """StatusStore backed by the initiative_status table."""

    def __init__(self, db: SQLiteDatabase) -> None:
        self.db = db

    def get(self, initiative_id: str) -> Optional[InitiativeStatus]:
        with self.db.read() as conn:
            row = conn.execute(
                "SELECT * FROM initiative_status WHERE initiative_id = ?",
                (initiative_id,),
            ).fetchone()
        return _status_from_row(row) if row else None

    def list_all(self) -> list[InitiativeStatus]:
        with self.db.read() as conn:
            rows = conn.execute("SELECT * FROM initiative_status").fetchall()
        return [_status_from_row(r) for r in rows]

    def upsert(self, status: InitiativeStatus) -> InitiativeStatus:
        with self.db.transaction() as conn:
            conn.execute(
                "INSERT INTO initiative_status (initiative_id, cost_status, benefit_status, "
                "timeline_status, scope_status, updated_by, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?) "
                "ON CONFLICT(initiative_id) DO UPDATE SET "
                "cost_status = excluded.cost_status, "
                "benefit_status = excluded.benefit_status, "
                "timeline_status = excluded.timeline_status, "
                "scope_status = excluded.scope_status, "
                "updated_by = excluded.updated_by, "
                "updated_at = excluded.updated_at",
                (
                    status.initiative_id,
                    status.cost_status.value,
                    status.benefit_status.value,
                    status.timeline_status.value,
                    status.scope_status.value,
                    status.updated_by,
                    _ts(status.updated_at),
                ),
            )
        return status

    def delete(self, initiative_id: str) -> bool:
        with self.db.transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM initiative_status WHERE initiative_id = ?", (initiative_id,)
            )
            return cursor.rowcount > 0


# =============================================================================
# User Roles
# =============================================================================

class SQLiteRoleStore:
    """RoleStore backed by the user_roles table."""

    def __init__(self, db: SQLiteDatabase) -> None:
        self.db = db

    def get(self, user_id: str) -> Optional[UserRoleRecord]:
        with self.db.read() as conn:
            row = conn.execute(
                "SELECT * FROM user_roles WHERE user_id = ?", (user_id,)
            ).fetchone()
        return _role_from_row(row) if row else None

    def list_all(self) -> list[UserRoleRecord]:
        with self.db.read() as conn:
            rows = conn.execute("SELECT * FROM user_roles ORDER BY seq").fetchall()
        return [_role_from_row(r) for r in rows]

    def count(self) -> int:
        with self.db.read() as conn:
            row = conn.execute("SELECT COUNT(*) AS n FROM user_roles").fetchone()
        return row["n"]

    def register(
        self,
        user_id: str,
        first_role: UserRole,
        default_role: UserRole,
    ) -> tuple[UserRoleRecord, bool]:
        with self.db.transaction() as conn:
            row = conn.execute(
                "SELECT * FROM user_roles WHERE user_id = ?", (user_id,)
            ).fetchone()
            if row is not None:
                return _role_from_row(row), False

            total = conn.execute("SELECT COUNT(*) AS n FROM user_roles").fetchone()["n"]
            now = datetime.now(timezone.utc)
            record = UserRoleRecord(
                user_id=user_id,
                role=first_role if total == 0 else default_role,
                created_at=now,
                updated_at=now,
            )
            conn.execute(
                "INSERT INTO user_roles (user_id, role, value_stream, created_at, "
                "updated_at, seq) VALUES (?, ?, ?, ?, ?, ?)",
                (record.user_id, record.role.value, record.value_stream,
                 _ts(now), _ts(now), total + 1),
            )
        return record, True

    def update(self, record: UserRoleRecord) -> Optional[UserRoleRecord]:
        with self.db.transaction() as conn:
            cursor = conn.execute(
                "UPDATE user_roles SET role = ?, value_stream = ?, updated_at = ? "
                "WHERE user_id = ?",
                (record.role.value, record.value_stream, _ts(record.updated_at),
                 record.user_id),
            )
            if cursor.rowcount == 0:
                return None
        return record


# =============================================================================
# Initiatives
# =============================================================================

_INITIATIVE_COLUMNS = (
    "id", "name", "value_stream", "l_gate", "priority_category", "priority_rank",
    "budgeted_cost", "targeted_benefit", "cost_center", "created_at", "updated_at",
)


def _initiative_params(initiative: Initiative) -> dict[str, Any]:
    return {
        "id": initiative.id,
        "name": initiative.name,
        "value_stream": initiative.value_stream,
        "l_gate": initiative.l_gate,
        "priority_category": initiative.priority_category,
        "priority_rank": initiative.priority_rank,
        "budgeted_cost": initiative.budgeted_cost,
        "targeted_benefit": initiative.targeted_benefit,
        "cost_center": initiative.cost_center,
        "created_at": _ts(initiative.created_at),
        "updated_at": _ts(initiative.updated_at),
    }


class SQLiteInitiativeStore:
    """InitiativeStore backed by the initiatives table."""

    def __init__(self, db: SQLiteDatabase) -> None:
        self.db = db

    def get(self, initiative_id: str) -> Optional[Initiative]:
        with self.db.read() as conn:
            row = conn.execute(
                "SELECT * FROM initiatives WHERE id = ?", (initiative_id,)
            ).fetchone()
        return _initiative_from_row(row) if row else None

    def list_all(self) -> list[Initiative]:
        with self.db.read() as conn:
            rows = conn.execute("SELECT * FROM initiatives ORDER BY id").fetchall()
        return [_initiative_from_row(r) for r in rows]

    def create(self, initiative: Initiative) -> Initiative:
        placeholders = ", ".join(f":{c}" for c in _INITIATIVE_COLUMNS)
        try:
            with self.db.transaction() as conn:
                conn.execute(
                    f"INSERT INTO initiatives ({', '.join(_INITIATIVE_COLUMNS)}) "
                    f"VALUES ({placeholders})",
                    _initiative_params(initiative),
                )
        except sqlite3.IntegrityError as e:
            raise InvalidInputError(
                message=f"Initiative '{initiative.id}' already exists",
                initiative_id=initiative.id,
            ) from e
        return initiative

    def update(self, initiative: Initiative) -> Optional[Initiative]:
        assignments = ", ".join(f"{c} = :{c}" for c in _INITIATIVE_COLUMNS if c != "id")
        with self.db.transaction() as conn:
            cursor = conn.execute(
                f"UPDATE initiatives SET {assignments} WHERE id = :id",
                _initiative_params(initiative),
            )
            if cursor.rowcount == 0:
                return None
        return initiative

    def delete(self, initiative_id: str) -> bool:
        with self.db.transaction() as conn:
            cursor = conn.execute("DELETE FROM initiatives WHERE id = ?", (initiative_id,))
            return cursor.rowcount > 0


# =============================================================================
# Milestones
# =============================================================================

def _milestone_params(milestone: Milestone) -> tuple[Any, ...]:
    return (
        milestone.initiative_id,
        milestone.name,
        _day(milestone.start_date),
        _day(milestone.end_date),
        milestone.status.value,
        milestone.notes,
        milestone.id,
    )


class SQLiteMilestoneStore:
    """MilestoneStore backed by the milestones table."""

    def __init__(self, db: SQLiteDatabase) -> None:
        self.db = db

    def get(self, milestone_id: str) -> Optional[Milestone]:
        with self.db.read() as conn:
            row = conn.execute(
                "SELECT * FROM milestones WHERE id = ?", (milestone_id,)
            ).fetchone()
        return _milestone_from_row(row) if row else None

    def list_all(self) -> list[Milestone]:
        with self.db.read() as conn:
            rows = conn.execute(
                "SELECT * FROM milestones ORDER BY initiative_id, start_date"
            ).fetchall()
        return [_milestone_from_row(r) for r in rows]

    def list_for_initiative(self, initiative_id: str) -> list[Milestone]:
        with self.db.read() as conn:
            rows = conn.execute(
                "SELECT * FROM milestones WHERE initiative_id = ? ORDER BY start_date",
                (initiative_id,),
            ).fetchall()
        return [_milestone_from_row(r) for r in rows]

    def create(self, milestone: Milestone) -> Milestone:
        try:
            with self.db.transaction() as conn:
                conn.execute(
                    "INSERT INTO milestones (initiative_id, name, start_date, end_date, "
                    "status, notes, id) VALUES (?, ?, ?, ?, ?, ?, ?)",
                    _milestone_params(milestone),
                )
        except sqlite3.IntegrityError as e:
            raise InvalidInputError(
                message=f"Milestone '{milestone.id}' already exists"
            ) from e
        return milestone

    def update(self, milestone: Milestone) -> Optional[Milestone]:
        with self.db.transaction() as conn:
            cursor = conn.execute(
                "UPDATE milestones SET initiative_id = ?, name = ?, start_date = ?, "
                "end_date = ?, status = ?, notes = ? WHERE id = ?",
                _milestone_params(milestone),
            )
            if cursor.rowcount == 0:
                return None
        return milestone

    def delete(self, milestone_id: str) -> bool:
        with self.db.transaction() as conn:
            cursor = conn.execute("DELETE FROM milestones WHERE id = ?", (milestone_id,))
            return cursor.rowcount > 0

    def delete_for_initiative(self, initiative_id: str) -> int:
        with self.db.transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM milestones WHERE initiative_id = ?", (initiative_id,)
            )
            return cursor.rowcount


def sqlite_repositories(db_path: Union[str, Path]) -> Repositories:
    """All stores sharing one database file."""
    db = SQLiteDatabase(db_path)
    return Repositories(
        forms=SQLiteFormStore(db),
        statuses=SQLiteStatusStore(db),
        roles=SQLiteRoleStore(db),
        initiatives=SQLiteInitiativeStore(db),
        milestones=SQLiteMilestoneStore(db),
    )
