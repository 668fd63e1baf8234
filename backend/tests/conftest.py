"""
Pytest Configuration and Fixtures

In-memory stand-ins for the MongoDB repositories, plus builders for
clients, partners and quarters. Services under test receive these through
their constructors, with a no-op unit of work.
"""
import os

# Settings are read once at import time
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("ENVIRONMENT", "development")

from contextlib import nullcontext
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Set

import pytest

from vat_automation.domain.enums import QuarterGroup, UserRole, VatWorkflowStage
from vat_automation.domain.errors import AlreadyExistsError, ConcurrencyError
from vat_automation.domain.models import (
    ActivityLogEntry, Client, EmailLogEntry, User, VatQuarter, WorkflowHistoryEntry
)
from vat_automation.engine.audit_writer import AuditWriter
from vat_automation.engine.period_calculator import compute_period
from vat_automation.services.assignment_service import AutoAssignmentService
from vat_automation.services.notification_service import VatNotificationService
from vat_automation.services.quarter_creation_service import QuarterCreationService
from vat_automation.services.transition_service import VatTransitionService
from tests.helpers import fixed_calendar, london


# ============================================================================
# In-memory repositories
# ============================================================================

class InMemoryQuarterRepository:
    def __init__(self):
        self.quarters: Dict[str, VatQuarter] = {}
        self.fail_update_ids: Set[str] = set()
        self.fail_assign_ids: Set[str] = set()
        self.fail_create_client_ids: Set[str] = set()

    def add(self, quarter: VatQuarter) -> VatQuarter:
        self.quarters[quarter.vat_quarter_id] = quarter
        return quarter

    def create_quarter(self, quarter: VatQuarter, session=None) -> VatQuarter:
        if quarter.client_id in self.fail_create_client_ids:
            raise RuntimeError("insert rejected")
        for existing in self.quarters.values():
            if existing.client_id == quarter.client_id and existing.quarter_period == quarter.quarter_period:
                raise AlreadyExistsError(f"Quarter {quarter.quarter_period} already exists")
        return self.add(quarter)

    def get_quarter(self, vat_quarter_id: str) -> Optional[VatQuarter]:
        return self.quarters.get(vat_quarter_id)

    def find_waiting_ended_before(self, cutoff: datetime) -> List[VatQuarter]:
        found = [
            q for q in self.quarters.values()
            if q.current_stage == VatWorkflowStage.WAITING_FOR_QUARTER_END
            and not q.is_completed
            and q.quarter_end_date < cutoff
        ]
        return sorted(found, key=lambda q: (q.quarter_end_date, q.vat_quarter_id))

    def find_unassigned_pending_chase(self) -> List[VatQuarter]:
        found = [
            q for q in self.quarters.values()
            if q.current_stage == VatWorkflowStage.PAPERWORK_PENDING_CHASE
            and q.assigned_user_id is None
            and not q.is_completed
        ]
        return sorted(found, key=lambda q: (q.quarter_end_date, q.created_at, q.vat_quarter_id))

    def find_existing_quarter(self, client_id, quarter_period, start, end) -> Optional[VatQuarter]:
        for q in self.quarters.values():
            if q.client_id != client_id:
                continue
            if q.quarter_period == quarter_period:
                return q
            if not q.is_completed and q.quarter_start_date <= end and q.quarter_end_date >= start:
                return q
        return None

    def get_last_assigned_user_id(self, client_id: str) -> Optional[str]:
        assigned = [
            q for q in self.quarters.values()
            if q.client_id == client_id and q.assigned_user_id is not None
        ]
        if not assigned:
            return None
        return max(assigned, key=lambda q: q.created_at).assigned_user_id

    def update_stage(self, vat_quarter_id, from_stage, to_stage, updated_at, session=None) -> None:
        if vat_quarter_id in self.fail_update_ids:
            raise RuntimeError("write failed")
        quarter = self.quarters.get(vat_quarter_id)
        if quarter is None or quarter.current_stage != from_stage:
            raise ConcurrencyError(f"VAT quarter {vat_quarter_id} is no longer in {from_stage.value}")
        self.quarters[vat_quarter_id] = quarter.model_copy(
            update={"current_stage": to_stage, "updated_at": updated_at}
        )

    def assign_if_unassigned(self, vat_quarter_id, user, assigned_at, session=None) -> None:
        if vat_quarter_id in self.fail_assign_ids:
            raise RuntimeError("write failed")
        quarter = self.quarters.get(vat_quarter_id)
        if quarter is None or quarter.assigned_user_id is not None:
            raise ConcurrencyError(f"VAT quarter {vat_quarter_id} is already assigned")
        self.quarters[vat_quarter_id] = quarter.model_copy(update={
            "assigned_user_id": user.user_id,
            "chase_started_date": assigned_at,
            "chase_started_by_user_id": user.user_id,
            "chase_started_by_user_name": user.name,
            "updated_at": assigned_at,
        })


class InMemoryClientRepository:
    def __init__(self):
        self.clients: Dict[str, Client] = {}

    def add(self, client: Client) -> Client:
        self.clients[client.client_id] = client
        return client

    def get_client(self, client_id: str) -> Optional[Client]:
        return self.clients.get(client_id)

    def get_clients_by_ids(self, client_ids) -> Dict[str, Client]:
        return {cid: self.clients[cid] for cid in set(client_ids) if cid in self.clients}

    def get_vat_enabled_clients(self) -> List[Client]:
        enabled = [c for c in self.clients.values() if c.is_vat_enabled and c.vat_quarter_group]
        return sorted(enabled, key=lambda c: c.client_code)


class InMemoryUserRepository:
    def __init__(self):
        self.users: Dict[str, User] = {}

    def add(self, user: User) -> User:
        self.users[user.user_id] = user
        return user

    def get_user(self, user_id: str) -> Optional[User]:
        return self.users.get(user_id)

    def get_active_partners(self, require_email_notifications: bool = False) -> List[User]:
        partners = [
            u for u in self.users.values()
            if u.role == UserRole.PARTNER and u.is_active
            and (u.email_notifications or not require_email_notifications)
        ]
        return sorted(partners, key=lambda u: (u.created_at, u.user_id))


class InMemoryHistoryRepository:
    def __init__(self):
        self.entries: List[WorkflowHistoryEntry] = []

    def create_entry(self, entry, session=None):
        self.entries.append(entry)
        return entry

    def for_quarter(self, vat_quarter_id: str) -> List[WorkflowHistoryEntry]:
        return [e for e in self.entries if e.vat_quarter_id == vat_quarter_id]


class InMemoryActivityRepository:
    def __init__(self):
        self.entries: List[ActivityLogEntry] = []

    def create_entry(self, entry, session=None):
        self.entries.append(entry)
        return entry

    def for_quarter(self, vat_quarter_id: str) -> List[ActivityLogEntry]:
        return [e for e in self.entries if e.resource_id == vat_quarter_id]


class InMemoryEmailLogRepository:
    def __init__(self):
        self.emails: List[EmailLogEntry] = []
        self.fail_for: Set[str] = set()

    def create_email_log(self, email_log, session=None):
        if email_log.recipient_email in self.fail_for:
            raise RuntimeError("mail queue unavailable")
        self.emails.append(email_log)
        return email_log


# ============================================================================
# Store and builders
# ============================================================================

class InMemoryStore:
    """All repositories plus service factories bound to them"""

    def __init__(self):
        self.quarters = InMemoryQuarterRepository()
        self.clients = InMemoryClientRepository()
        self.users = InMemoryUserRepository()
        self.history = InMemoryHistoryRepository()
        self.activity = InMemoryActivityRepository()
        self.emails = InMemoryEmailLogRepository()
        self._sequence = 0

    def _next(self) -> int:
        self._sequence += 1
        return self._sequence

    # -- builders -----------------------------------------------------------

    def add_client(
        self,
        company_name: str,
        client_code: str,
        group: Optional[str] = QuarterGroup.JAN_APR_JUL_OCT.value,
        is_vat_enabled: bool = True
    ) -> Client:
        return self.clients.add(Client(
            client_id=f"CLI-{client_code}",
            client_code=client_code,
            company_name=company_name,
            email=f"accounts@{client_code.lower()}.co.uk",
            is_vat_enabled=is_vat_enabled,
            vat_quarter_group=group,
            created_at=datetime(2023, 1, 1, tzinfo=timezone.utc)
        ))

    def add_user(
        self,
        name: str,
        role: UserRole = UserRole.PARTNER,
        is_active: bool = True,
        email_notifications: bool = True
    ) -> User:
        n = self._next()
        return self.users.add(User(
            user_id=f"USR-{n:03d}",
            name=name,
            email=f"{name.split()[0].lower()}@practice.co.uk",
            role=role,
            is_active=is_active,
            email_notifications=email_notifications,
            created_at=datetime(2023, 1, 1, tzinfo=timezone.utc) + timedelta(minutes=n)
        ))

    def add_quarter(
        self,
        client: Client,
        reference,
        stage: VatWorkflowStage = VatWorkflowStage.WAITING_FOR_QUARTER_END,
        is_completed: bool = False,
        assigned_user_id: Optional[str] = None,
        group: Optional[QuarterGroup] = None
    ) -> VatQuarter:
        """Quarter for ``client`` ending in or before the month of ``reference``"""
        calendar = fixed_calendar(london(2024, 1, 1))
        info = compute_period(group or client.vat_quarter_group, reference)
        n = self._next()
        created = datetime(2023, 1, 1, tzinfo=timezone.utc) + timedelta(minutes=n)
        return self.quarters.add(VatQuarter(
            vat_quarter_id=f"VQ-{n:03d}",
            client_id=client.client_id,
            quarter_period=info.quarter_period,
            quarter_start_date=calendar.start_of_day(info.start_date),
            quarter_end_date=calendar.start_of_day(info.end_date),
            filing_due_date=calendar.start_of_day(info.filing_due_date),
            quarter_group=info.quarter_group,
            current_stage=stage,
            is_completed=is_completed,
            assigned_user_id=assigned_user_id,
            created_at=created,
            updated_at=created
        ))

    # -- services -----------------------------------------------------------

    def notifier(self, now: datetime) -> VatNotificationService:
        return VatNotificationService(
            user_repo=self.users, email_repo=self.emails, calendar=fixed_calendar(now)
        )

    def audit_writer(self) -> AuditWriter:
        return AuditWriter(history_repo=self.history, activity_repo=self.activity)

    def transition_service(self, now: datetime) -> VatTransitionService:
        return VatTransitionService(
            quarter_repo=self.quarters,
            client_repo=self.clients,
            audit_writer=self.audit_writer(),
            notifier=self.notifier(now),
            calendar=fixed_calendar(now),
            unit_of_work_factory=nullcontext
        )

    def assignment_service(self, now: datetime) -> AutoAssignmentService:
        return AutoAssignmentService(
            quarter_repo=self.quarters,
            client_repo=self.clients,
            user_repo=self.users,
            audit_writer=self.audit_writer(),
            notifier=self.notifier(now),
            calendar=fixed_calendar(now),
            unit_of_work_factory=nullcontext
        )

    def creation_service(self, now: datetime, **kwargs) -> QuarterCreationService:
        kwargs.setdefault("creation_day", 1)
        kwargs.setdefault("carry_forward_assignee", False)
        return QuarterCreationService(
            quarter_repo=self.quarters,
            client_repo=self.clients,
            user_repo=self.users,
            audit_writer=self.audit_writer(),
            notifier=self.notifier(now),
            calendar=fixed_calendar(now),
            unit_of_work_factory=nullcontext,
            **kwargs
        )


@pytest.fixture
def store() -> InMemoryStore:
    """Empty in-memory record store"""
    return InMemoryStore()
