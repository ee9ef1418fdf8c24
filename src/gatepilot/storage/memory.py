"""
GatePilot In-Memory Stores

Dict-backed implementations of the repository protocols. Each store
guards its state with a lock so compare-and-swap writes stay atomic when
the API serves requests from a thread pool.

Stores hand out copies; callers never mutate stored instances.
"""
from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional

from ..exceptions import InvalidInputError, VersionConflictError
from ..models import (
    FormStatus,
    GateForm,
    GateFormEvent,
    Initiative,
    InitiativeStatus,
    Milestone,
    UserRole,
    UserRoleRecord,
)
from .base import Repositories


def _now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Gate Forms
# =============================================================================

class InMemoryFormStore:
    """FormStore keyed by (initiative_id, gate)."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._forms: dict[tuple[str, str], GateForm] = {}
        self._events: dict[tuple[str, str], list[GateFormEvent]] = {}

    def get(self, initiative_id: str, gate: str) -> Optional[GateForm]:
        with self._lock:
            form = self._forms.get((initiative_id, gate))
            return form.clone() if form else None

    def list_for_initiative(self, initiative_id: str) -> list[GateForm]:
        with self._lock:
            forms = [f.clone() for (init, _), f in self._forms.items() if init == initiative_id]
        return sorted(forms, key=lambda f: f.gate)

    def list_by_status(self, status: FormStatus) -> list[GateForm]:
        with self._lock:
            forms = [f.clone() for f in self._forms.values() if f.status == status]
        return sorted(forms, key=lambda f: (f.initiative_id, f.gate))

    def save(
        self,
        form: GateForm,
        expected_version: int,
        event: Optional[GateFormEvent] = None,
    ) -> GateForm:
        key = (form.initiative_id, form.gate)
        with self._lock:
            current = self._forms.get(key)
            current_version = current.version if current else 0
            if current_version != expected_version:
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
            self._forms[key] = form.clone()
            if event is not None:
                self._events.setdefault(key, []).append(event)
            return form.clone()

    def events(self, initiative_id: str, gate: str) -> list[GateFormEvent]:
        with self._lock:
            return list(self._events.get((initiative_id, gate), []))

    def delete_for_initiative(self, initiative_id: str) -> int:
        with self._lock:
            keys = [k for k in self._forms if k[0] == initiative_id]
            for key in keys:
                del self._forms[key]
            for key in [k for k in self._events if k[0] == initiative_id]:
                del self._events[key]
            return len(keys)


# =============================================================================
# Initiative Status
# =============================================================================

class InMemoryStatusStore:
    """StatusStore keyed by initiative id."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._statuses: dict[str, InitiativeStatus] = {}

    def get(self, initiative_id: str) -> Optional[InitiativeStatus]:
        with self._lock:
            status = self._statuses.get(initiative_id)
            return replace(status) if status else None

    def list_all(self) -> list[InitiativeStatus]:
        with self._lock:
            return [replace(s) for s in self._statuses.values()]

    def upsert(self, status: InitiativeStatus) -> InitiativeStatus:
        with self._lock:
            self._statuses[status.initiative_id] = replace(status)
            return replace(status)

    def delete(self, initiative_id: str) -> bool:
        with self._lock:
            return self._statuses.pop(initiative_id, None) is not None


# =============================================================================
# User Roles
# =============================================================================

class InMemoryRoleStore:
    """RoleStore keyed by user id."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._roles: dict[str, UserRoleRecord] = {}

    def get(self, user_id: str) -> Optional[UserRoleRecord]:
        with self._lock:
            record = self._roles.get(user_id)
            return replace(record) if record else None

    def list_all(self) -> list[UserRoleRecord]:
        with self._lock:
            return [replace(r) for r in self._roles.values()]

    def count(self) -> int:
        with self._lock:
            return len(self._roles)

    def register(
        self,
        user_id: str,
        first_role: UserRole,
        default_role: UserRole,
    ) -> tuple[UserRoleRecord, bool]:
        with self._lock:
            existing = self._roles.get(user_id)
            if existing is not None:
                return replace(existing), False
            now = _now()
            record = UserRoleRecord(
                user_id=user_id,
                role=first_role if not self._roles else default_role,
                created_at=now,
                updated_at=now,
            )
            self._roles[user_id] = record
            return replace(record), True

    def update(self, record: UserRoleRecord) -> Optional[UserRoleRecord]:
        with self._lock:
            if record.user_id not in self._roles:
                return None
            self._roles[record.user_id] = replace(record)
            return replace(record)


# =============================================================================
# Initiatives
# =============================================================================

class InMemoryInitiativeStore:
    """InitiativeStore keyed by initiative id."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._initiatives: dict[str, Initiative] = {}

    def get(self, initiative_id: str) -> Optional[Initiative]:
        with self._lock:
            initiative = self._initiatives.get(initiative_id)
            return replace(initiative) if initiative else None

    def list_all(self) -> list[Initiative]:
        with self._lock:
            items = [replace(i) for i in self._initiatives.values()]
        return sorted(items, key=lambda i: i.id)

    def create(self, initiative: Initiative) -> Initiative:
        with self._lock:
            if initiative.id in self._initiatives:
                raise InvalidInputError(
                    message=f"Initiative '{initiative.id}' already exists",
                    initiative_id=initiative.id,
                )
            self._initiatives[initiative.id] = replace(initiative)
            return replace(initiative)

    def update(self, initiative: Initiative) -> Optional[Initiative]:
        with self._lock:
            if initiative.id not in self._initiatives:
                return None
            self._initiatives[initiative.id] = replace(initiative)
            return replace(initiative)

    def delete(self, initiative_id: str) -> bool:
        with self._lock:
            return self._initiatives.pop(initiative_id, None) is not None


# =============================================================================
# Milestones
# =============================================================================

class InMemoryMilestoneStore:
    """MilestoneStore keyed by milestone id."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._milestones: dict[str, Milestone] = {}

    def get(self, milestone_id: str) -> Optional[Milestone]:
        with self._lock:
            milestone = self._milestones.get(milestone_id)
            return replace(milestone) if milestone else None

    def list_all(self) -> list[Milestone]:
        with self._lock:
            return [replace(m) for m in self._milestones.values()]

    def list_for_initiative(self, initiative_id: str) -> list[Milestone]:
        with self._lock:
            return [replace(m) for m in self._milestones.values()
                    if m.initiative_id == initiative_id]

    def create(self, milestone: Milestone) -> Milestone:
        with self._lock:
            if milestone.id in self._milestones:
                raise InvalidInputError(message=f"Milestone '{milestone.id}' already exists")
            self._milestones[milestone.id] = replace(milestone)
            return replace(milestone)

    def update(self, milestone: Milestone) -> Optional[Milestone]:
        with self._lock:
            if milestone.id not in self._milestones:
                return None
            self._milestones[milestone.id] = replace(milestone)
            return replace(milestone)

    def delete(self, milestone_id: str) -> bool:
        with self._lock:
            return self._milestones.pop(milestone_id, None) is not None

    def delete_for_initiative(self, initiative_id: str) -> int:
        with self._lock:
            ids = [m.id for m in self._milestones.values() if m.initiative_id == initiative_id]
            for milestone_id in ids:
                del self._milestones[milestone_id]
            return len(ids)


def memory_repositories() -> Repositories:
    """A fresh, empty set of in-memory stores."""
    return Repositories(
        forms=InMemoryFormStore(),
        statuses=InMemoryStatusStore(),
        roles=InMemoryRoleStore(),
        initiatives=InMemoryInitiativeStore(),
        milestones=InMemoryMilestoneStore(),
    )
