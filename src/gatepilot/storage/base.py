"""
GatePilot Repository Protocols

The workflow and services depend only on these interfaces, so tests can
substitute in-memory fakes and deployments can choose a backend.

Every write method is a single atomic operation: it either fully applies
or raises and leaves the store unchanged.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable

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


@runtime_checkable
class FormStore(Protocol):
    """Persistence for gate forms and their transition history."""

    def get(self, initiative_id: str, gate: str) -> Optional[GateForm]:
        """Stored form for the pair, or None if never written."""
        ...

    def list_for_initiative(self, initiative_id: str) -> list[GateForm]:
        ...

    def list_by_status(self, status: FormStatus) -> list[GateForm]:
        ...

    def save(
        self,
        form: GateForm,
        expected_version: int,
        event: Optional[GateFormEvent] = None,
    ) -> GateForm:
        """
        Compare-and-swap write.

        Stores ``form`` (and ``event``) only if the currently stored
        version equals ``expected_version`` (0 meaning "not stored yet").

        Raises:
            VersionConflictError: If the stored version differs
        """
        ...

    def events(self, initiative_id: str, gate: str) -> list[GateFormEvent]:
        """Transition history, oldest first."""
        ...

    def delete_for_initiative(self, initiative_id: str) -> int:
        """Remove every form and event of an initiative; returns forms removed."""
        ...


@runtime_checkable
class StatusStore(Protocol):
    """Persistence for initiative red/yellow/green indicators."""

    def get(self, initiative_id: str) -> Optional[InitiativeStatus]:
        ...

    def list_all(self) -> list[InitiativeStatus]:
        ...

    def upsert(self, status: InitiativeStatus) -> InitiativeStatus:
        """Replace all four axes in one write."""
        ...

    def delete(self, initiative_id: str) -> bool:
        ...


@runtime_checkable
class RoleStore(Protocol):
    """Persistence for user role assignments."""

    def get(self, user_id: str) -> Optional[UserRoleRecord]:
        ...

    def list_all(self) -> list[UserRoleRecord]:
        ...

    def count(self) -> int:
        ...

    def register(
        self,
        user_id: str,
        first_role: UserRole,
        default_role: UserRole,
    ) -> tuple[UserRoleRecord, bool]:
        """
        Atomically register a user if absent.

        The very first user in the store receives ``first_role``; every
        later one ``default_role``. Returns (record, created).
        """
        ...

    def update(self, record: UserRoleRecord) -> Optional[UserRoleRecord]:
        """Overwrite an existing record; None if the user is unknown."""
        ...


@runtime_checkable
class InitiativeStore(Protocol):
    """Persistence for initiatives."""

    def get(self, initiative_id: str) -> Optional[Initiative]:
        ...

    def list_all(self) -> list[Initiative]:
        ...

    def create(self, initiative: Initiative) -> Initiative:
        """
        Raises:
            InvalidInputError: If the id is already taken
        """
        ...

    def update(self, initiative: Initiative) -> Optional[Initiative]:
        ...

    def delete(self, initiative_id: str) -> bool:
        ...


@runtime_checkable
class MilestoneStore(Protocol):
    """Persistence for milestones."""

    def get(self, milestone_id: str) -> Optional[Milestone]:
        ...

    def list_all(self) -> list[Milestone]:
        ...

    def list_for_initiative(self, initiative_id: str) -> list[Milestone]:
        ...

    def create(self, milestone: Milestone) -> Milestone:
        ...

    def update(self, milestone: Milestone) -> Optional[Milestone]:
        ...

    def delete(self, milestone_id: str) -> bool:
        ...

    def delete_for_initiative(self, initiative_id: str) -> int:
        ...


@dataclass
class Repositories:
    """The full set of stores a GatePilot service runs on."""
    forms: FormStore
    statuses: StatusStore
    roles: RoleStore
    initiatives: InitiativeStore
    milestones: MilestoneStore

    def ping(self) -> bool:
        """Cheap reachability probe used by the readiness check."""
        self.roles.count()
        return True
