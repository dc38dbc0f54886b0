"""
Event approval chain unit tests (in-memory repository).

Tests cover:
  - Chain resolution per event type, urgent escalation
  - Opening a chain / auto-approval
  - Level-by-level decisions, rejection short-circuit
  - Role checks and exhausted chains
"""
from datetime import date, datetime, time, timezone

import pytest

from grievance_desk.core.context import CallerContext
from grievance_desk.core.exceptions import (
    ApprovalChainExhaustedError,
    PermissionDeniedError,
    ValidationError,
)
from grievance_desk.models.event import Event
from grievance_desk.services.approval_engine import (
    APPROVAL_CHAINS,
    ApprovalWorkflowEngine,
    approver_role_for,
    resolve_approval_chain,
)
from tests.fakes import InMemoryWorkflowRepository

TENANT = 1
NOW = datetime(2026, 5, 4, 18, 0, tzinfo=timezone.utc)

EVENT_MANAGER = CallerContext(tenant_id=TENANT, actor_id="11", role="admin")
DIRECTOR = CallerContext(tenant_id=TENANT, actor_id="12", role="supervisor")
CHIEF = CallerContext(tenant_id=TENANT, actor_id="13", role="super_admin")
CLERK = CallerContext(tenant_id=TENANT, actor_id="14", role="staff")


@pytest.fixture()
def repo():
    return InMemoryWorkflowRepository()


def _open(repo, event_type="town_hall", priority="medium", requires_approval=True):
    event = repo.add_event(Event(
        tenant_id=TENANT,
        title="Ward 12 town hall",
        type=event_type,
        scheduled_date=date(2026, 6, 1),
        scheduled_time=time(18, 30),
        location="Community Hall",
        priority=priority,
        requires_approval=requires_approval,
        created_by="5",
    ))
    records = ApprovalWorkflowEngine(repo).open_chain(event)
    return event, records


# ═════════════════════════════════════════════════════════════════════════
# CHAIN RESOLUTION
# ═════════════════════════════════════════════════════════════════════════

class TestResolveApprovalChain:
    @pytest.mark.parametrize("event_type,expected", [
        ("emergency_meeting", ["chief_of_staff"]),
        ("press_conference", ["event_manager", "campaign_director", "chief_of_staff"]),
        ("rally", ["event_manager", "campaign_director", "chief_of_staff"]),
        ("town_hall", ["event_manager", "campaign_director"]),
        ("meeting", ["event_manager"]),
        ("community_event", ["event_manager"]),
        ("workshop", ["event_manager"]),
    ])
    def test_chain_per_type(self, event_type, expected):
        assert resolve_approval_chain(event_type) == expected

    def test_urgent_appends_chief_of_staff(self):
        assert resolve_approval_chain("meeting", "urgent") == ["event_manager", "chief_of_staff"]
        assert resolve_approval_chain("town_hall", "urgent") == [
            "event_manager", "campaign_director", "chief_of_staff",
        ]

    def test_urgent_does_not_duplicate_chief_of_staff(self):
        assert resolve_approval_chain("emergency_meeting", "urgent") == ["chief_of_staff"]
        assert resolve_approval_chain("rally", "urgent").count("chief_of_staff") == 1

    def test_returned_chain_is_a_copy(self):
        chain = resolve_approval_chain("meeting", "urgent")
        chain.append("mayor")
        assert APPROVAL_CHAINS["meeting"] == ("event_manager",)
        assert resolve_approval_chain("meeting") == ["event_manager"]

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            resolve_approval_chain("picnic")

    def test_role_mapping(self):
        assert approver_role_for("admin") == "event_manager"
        assert approver_role_for("supervisor") == "campaign_director"
        assert approver_role_for("staff") == "staff"


# ═════════════════════════════════════════════════════════════════════════
# OPENING
# ═════════════════════════════════════════════════════════════════════════

class TestOpenChain:
    def test_creates_pending_record_per_level(self, repo):
        event, records = _open(repo, "press_conference")

        assert [(r.level, r.approver_role, r.status) for r in records] == [
            (1, "event_manager", "pending"),
            (2, "campaign_director", "pending"),
            (3, "chief_of_staff", "pending"),
        ]
        assert event.status == "pending"
        assert event.current_level == 1
        assert event.current_stage == "event_manager"

    def test_no_approval_needed_auto_approves(self, repo):
        event, records = _open(repo, "meeting", requires_approval=False)
        assert records == []
        assert event.status == "approved"
        assert event.current_level is None
        assert event.current_stage == "completed"


# ═════════════════════════════════════════════════════════════════════════
# DECISIONS
# ═════════════════════════════════════════════════════════════════════════

class TestDecide:
    def test_full_approval_walks_every_level(self, repo):
        event, _ = _open(repo, "town_hall")
        engine = ApprovalWorkflowEngine(repo)

        record, nxt = engine.decide(event, 1, "approve", EVENT_MANAGER, comments="Venue ok", now=NOW)
        assert record.status == "approved"
        assert record.decided_by == "11"
        assert record.decided_at == NOW
        assert record.comments == "Venue ok"
        assert nxt.level == 2
        assert event.status == "pending"
        assert event.current_stage == "campaign_director"

        record, nxt = engine.decide(event, 2, "approve", DIRECTOR, now=NOW)
        assert nxt is None
        assert event.status == "approved"
        assert event.current_level is None

    def test_reject_skips_remaining_levels(self, repo):
        event, records = _open(repo, "rally")
        ApprovalWorkflowEngine(repo).decide(event, 1, "reject", EVENT_MANAGER, comments="Clash", now=NOW)

        assert [r.status for r in records] == ["rejected", "skipped", "skipped"]
        assert event.status == "rejected"
        assert event.current_stage == "rejected"

    def test_levels_must_be_decided_in_order(self, repo):
        event, records = _open(repo, "town_hall")
        with pytest.raises(ValidationError) as exc_info:
            ApprovalWorkflowEngine(repo).decide(event, 2, "approve", DIRECTOR, now=NOW)
        assert exc_info.value.status == 422
        assert exc_info.value.details["current_level"] == 1
        assert records[1].status == "pending"

    def test_wrong_role_is_denied(self, repo):
        event, records = _open(repo, "town_hall")
        with pytest.raises(PermissionDeniedError) as exc_info:
            ApprovalWorkflowEngine(repo).decide(event, 1, "approve", CLERK, now=NOW)
        assert exc_info.value.details["required_role"] == "event_manager"
        assert records[0].status == "pending"

    def test_super_admin_may_decide_any_level(self, repo):
        event, _ = _open(repo, "town_hall")
        record, _ = ApprovalWorkflowEngine(repo).decide(event, 1, "approve", CHIEF, now=NOW)
        assert record.status == "approved"

    def test_decided_event_is_exhausted(self, repo):
        event, _ = _open(repo, "meeting")
        engine = ApprovalWorkflowEngine(repo)
        engine.decide(event, 1, "approve", EVENT_MANAGER, now=NOW)

        with pytest.raises(ApprovalChainExhaustedError):
            engine.decide(event, 1, "reject", EVENT_MANAGER, now=NOW)

    def test_level_outside_chain_is_exhausted(self, repo):
        event, _ = _open(repo, "meeting")
        with pytest.raises(ApprovalChainExhaustedError) as exc_info:
            ApprovalWorkflowEngine(repo).decide(event, 4, "approve", EVENT_MANAGER, now=NOW)
        assert exc_info.value.details["status"] is None

    def test_unknown_decision_rejected(self, repo):
        event, _ = _open(repo, "meeting")
        with pytest.raises(ValidationError):
            ApprovalWorkflowEngine(repo).decide(event, 1, "maybe", EVENT_MANAGER, now=NOW)

    def test_urgent_meeting_needs_chief_of_staff(self, repo):
        event, records = _open(repo, "meeting", priority="urgent")
        engine = ApprovalWorkflowEngine(repo)
        engine.decide(event, 1, "approve", EVENT_MANAGER, now=NOW)

        assert event.status == "pending"
        assert event.current_stage == "chief_of_staff"
        with pytest.raises(PermissionDeniedError):
            engine.decide(event, 2, "approve", DIRECTOR, now=NOW)

        engine.decide(event, 2, "approve", CHIEF, now=NOW)
        assert event.status == "approved"
