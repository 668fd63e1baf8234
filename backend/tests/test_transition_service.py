"""Tests for the daily quarter-end transition."""
from datetime import date, datetime, timezone

import pytest
from pymongo.errors import ServerSelectionTimeoutError

from vat_automation.domain.enums import ActivityAction, EmailType, UserRole, VatWorkflowStage
from vat_automation.domain.errors import ConcurrencyError
from tests.helpers import london


WAITING = VatWorkflowStage.WAITING_FOR_QUARTER_END
PENDING_CHASE = VatWorkflowStage.PAPERWORK_PENDING_CHASE


@pytest.fixture
def june_quarter(store):
    """Quarter ending 30 June 2024 for a 3_6_9_12 client"""
    client = store.add_client("Harbour Foods Ltd", "HAR001", group="3_6_9_12")
    return store.add_quarter(client, date(2024, 7, 1))


class TestFindTransitionCandidates:
    """Tests for the detector."""

    def test_not_a_candidate_before_end_date(self, store, june_quarter):
        """A quarter whose end date is still ahead is left alone."""
        service = store.transition_service(london(2024, 6, 29, 23, 59))

        assert service.find_transition_candidates(london(2024, 6, 29, 23, 59)) == []

    def test_not_a_candidate_at_exactly_end_date(self, store, june_quarter):
        """The end date must be strictly before now."""
        service = store.transition_service(london(2024, 6, 30))

        assert service.find_transition_candidates(london(2024, 6, 30)) == []

    def test_candidate_once_end_date_has_passed(self, store, june_quarter):
        """Midday on the end day is already after the stored end date."""
        now = london(2024, 6, 30, 12, 0)
        service = store.transition_service(now)

        candidates = service.find_transition_candidates(now)

        assert june_quarter.quarter_end_date < now
        assert [c.vat_quarter_id for c in candidates] == [june_quarter.vat_quarter_id]

    def test_candidate_on_the_following_day(self, store, june_quarter):
        """On the day after the quarter end the quarter is a candidate."""
        service = store.transition_service(london(2024, 7, 1))

        candidates = service.find_transition_candidates(london(2024, 7, 1))

        assert [c.vat_quarter_id for c in candidates] == [june_quarter.vat_quarter_id]
        assert candidates[0].client_code == "HAR001"
        assert candidates[0].company_name == "Harbour Foods Ltd"

    def test_utc_time_compared_as_an_instant(self, store, june_quarter):
        """23:30 UTC on 29 June is 00:30 on 30 June in London, after the end date."""
        now = datetime(2024, 6, 29, 23, 30, tzinfo=timezone.utc)
        service = store.transition_service(now)

        assert len(service.find_transition_candidates(now)) == 1

    def test_ignores_completed_and_advanced_quarters(self, store):
        """Only open quarters still waiting are picked up."""
        client = store.add_client("Harbour Foods Ltd", "HAR001", group="3_6_9_12")
        store.add_quarter(client, date(2024, 4, 1), is_completed=True)
        store.add_quarter(client, date(2024, 1, 1), stage=VatWorkflowStage.WORK_IN_PROGRESS)
        service = store.transition_service(london(2024, 7, 1))

        assert service.find_transition_candidates(london(2024, 7, 1)) == []

    def test_drops_quarters_without_a_client(self, store, june_quarter):
        """A quarter pointing at a missing client is ignored."""
        store.clients.clients.clear()
        service = store.transition_service(london(2024, 7, 1))

        assert service.find_transition_candidates(london(2024, 7, 1)) == []

    def test_ordered_by_end_date(self, store):
        """Older quarters come first."""
        june = store.add_quarter(store.add_client("Harbour Foods Ltd", "HAR001", group="3_6_9_12"), date(2024, 7, 1))
        may = store.add_quarter(store.add_client("Birch Joinery", "BIR001", group="2_5_8_11"), date(2024, 6, 1))
        service = store.transition_service(london(2024, 7, 2))

        candidates = service.find_transition_candidates(london(2024, 7, 2))

        assert [c.vat_quarter_id for c in candidates] == [may.vat_quarter_id, june.vat_quarter_id]


class TestCheckVatQuarterTransitions:
    """Tests for the daily transition run."""

    def test_moves_quarter_and_writes_audit(self, store, june_quarter):
        """The quarter moves to pending chase with a SYSTEM history entry and activity log."""
        store.add_user("Sarah Whitfield")
        now = london(2024, 7, 1, 6, 0)

        result = store.transition_service(now).check_vat_quarter_transitions(now)

        assert result.candidates == 1
        assert result.transitioned == 1
        assert result.transitioned_quarter_ids == [june_quarter.vat_quarter_id]
        assert result.errors == []
        assert store.quarters.get_quarter(june_quarter.vat_quarter_id).current_stage == PENDING_CHASE

        [history] = store.history.for_quarter(june_quarter.vat_quarter_id)
        assert history.from_stage == WAITING
        assert history.to_stage == PENDING_CHASE
        assert history.user_id == "SYSTEM"
        assert history.user_role == UserRole.SYSTEM
        assert history.notes == (
            "Automatically transitioned to pending chase - quarter end date (30/06/2024) passed"
        )

        [activity] = store.activity.for_quarter(june_quarter.vat_quarter_id)
        assert activity.action == ActivityAction.VAT_QUARTER_AUTO_TRANSITIONED
        assert activity.details["quarter_end_date"] == "2024-06-30"
        assert activity.details["client_code"] == "HAR001"

    def test_does_not_assign(self, store, june_quarter):
        """Transition alone leaves the quarter unassigned."""
        store.add_user("Sarah Whitfield")
        now = london(2024, 7, 1, 6, 0)

        store.transition_service(now).check_vat_quarter_transitions(now)

        assert store.quarters.get_quarter(june_quarter.vat_quarter_id).assigned_user_id is None

    def test_emails_only_partners_with_notifications(self, store, june_quarter):
        """Active partners who opted in each get one email; others get none."""
        store.add_user("Sarah Whitfield")
        store.add_user("James Okafor")
        store.add_user("Priya Shah", email_notifications=False)
        store.add_user("Tom Reed", is_active=False)
        store.add_user("Mia Clarke", role=UserRole.MANAGER)
        now = london(2024, 7, 1, 6, 0)

        result = store.transition_service(now).check_vat_quarter_transitions(now)

        assert result.notified == 1
        assert result.emails_queued == 2
        assert sorted(e.recipient_email for e in store.emails.emails) == [
            "james@practice.co.uk", "sarah@practice.co.uk"
        ]
        email = store.emails.emails[0]
        assert email.email_type == EmailType.VAT_QUARTER_TRANSITION
        assert email.subject == "VAT Quarter Ready for Chase - Harbour Foods Ltd (HAR001)"
        assert email.workflow_id == june_quarter.vat_quarter_id
        assert email.triggered_by == "SYSTEM"
        assert "Quarter End Date: 30 June 2024" in email.content

    def test_rerun_is_a_no_op(self, store, june_quarter):
        """A second run finds nothing and writes nothing."""
        store.add_user("Sarah Whitfield")
        now = london(2024, 7, 1, 6, 0)
        store.transition_service(now).check_vat_quarter_transitions(now)

        again = store.transition_service(now).check_vat_quarter_transitions(now)

        assert again.candidates == 0
        assert again.transitioned == 0
        assert len(store.history.entries) == 1
        assert len(store.emails.emails) == 1

    def test_failure_on_one_quarter_does_not_stop_others(self, store):
        """A failed write is reported and the rest of the batch still moves."""
        client_a = store.add_client("Harbour Foods Ltd", "HAR001", group="3_6_9_12")
        client_b = store.add_client("Birch Joinery", "BIR001", group="3_6_9_12")
        broken = store.add_quarter(client_a, date(2024, 7, 1))
        healthy = store.add_quarter(client_b, date(2024, 7, 1))
        store.quarters.fail_update_ids.add(broken.vat_quarter_id)
        now = london(2024, 7, 1, 6, 0)

        result = store.transition_service(now).check_vat_quarter_transitions(now)

        assert result.transitioned == 1
        assert result.transitioned_quarter_ids == [healthy.vat_quarter_id]
        assert len(result.errors) == 1
        assert result.errors[0].vat_quarter_id == broken.vat_quarter_id
        assert result.errors[0].company_name == "Harbour Foods Ltd"
        assert store.quarters.get_quarter(broken.vat_quarter_id).current_stage == WAITING
        assert store.history.for_quarter(broken.vat_quarter_id) == []

    def test_store_outage_aborts_run(self, store, june_quarter, monkeypatch):
        """Connectivity errors propagate instead of being recorded per quarter."""
        def unreachable(*args, **kwargs):
            raise ServerSelectionTimeoutError("no servers")

        monkeypatch.setattr(store.quarters, "update_stage", unreachable)
        now = london(2024, 7, 1, 6, 0)

        with pytest.raises(ServerSelectionTimeoutError):
            store.transition_service(now).check_vat_quarter_transitions(now)

    def test_no_partners_still_transitions(self, store, june_quarter):
        """Without an audience the move happens and no email is queued."""
        now = london(2024, 7, 1, 6, 0)

        result = store.transition_service(now).check_vat_quarter_transitions(now)

        assert result.transitioned == 1
        assert result.notified == 0
        assert result.emails_queued == 0
        assert store.emails.emails == []

    def test_partial_email_failure(self, store, june_quarter):
        """One partner's email failing does not block the other."""
        store.add_user("Sarah Whitfield")
        store.add_user("James Okafor")
        store.emails.fail_for.add("sarah@practice.co.uk")
        now = london(2024, 7, 1, 6, 0)

        result = store.transition_service(now).check_vat_quarter_transitions(now)

        assert result.transitioned == 1
        assert result.notified == 1
        assert result.emails_queued == 1
        assert [e.recipient_email for e in store.emails.emails] == ["james@practice.co.uk"]

    def test_notifier_failure_is_recorded_and_run_continues(self, store, monkeypatch):
        """A notifier error after a saved transition is reported and later quarters are still notified."""
        store.add_user("Sarah Whitfield")
        first = store.add_quarter(store.add_client("A Ltd", "AAA001", group="3_6_9_12"), date(2024, 7, 1))
        second = store.add_quarter(store.add_client("B Ltd", "BBB001", group="3_6_9_12"), date(2024, 7, 1))
        real_lookup = store.users.get_active_partners
        calls = []

        def failing_once(*args, **kwargs):
            calls.append(1)
            if len(calls) == 1:
                raise ValueError("bad user document")
            return real_lookup(*args, **kwargs)

        monkeypatch.setattr(store.users, "get_active_partners", failing_once)
        now = london(2024, 7, 1, 6, 0)

        result = store.transition_service(now).check_vat_quarter_transitions(now)

        assert result.transitioned == 2
        assert result.notified == 1
        assert len(result.errors) == 1
        assert result.errors[0].vat_quarter_id == first.vat_quarter_id
        assert "bad user document" in result.errors[0].error
        assert store.quarters.get_quarter(first.vat_quarter_id).current_stage == PENDING_CHASE
        assert [e.workflow_id for e in store.emails.emails] == [second.vat_quarter_id]

    def test_notify_disabled(self, store, june_quarter):
        """With notify off no email is queued."""
        store.add_user("Sarah Whitfield")
        now = london(2024, 7, 1, 6, 0)

        result = store.transition_service(now).check_vat_quarter_transitions(now, notify=False)

        assert result.transitioned == 1
        assert store.emails.emails == []

    def test_defaults_to_calendar_now(self, store, june_quarter):
        """Without an explicit time the calendar's clock is used."""
        service = store.transition_service(london(2024, 6, 29, 12, 0))

        assert service.check_vat_quarter_transitions().candidates == 0


class TestTransition:
    """Tests for a single transition."""

    def test_raises_when_quarter_moved_meanwhile(self, store, june_quarter):
        """A quarter that left the waiting stage after detection is not overwritten."""
        now = london(2024, 7, 1, 6, 0)
        service = store.transition_service(now)
        [candidate] = service.find_transition_candidates(now)
        store.quarters.quarters[june_quarter.vat_quarter_id] = june_quarter.model_copy(
            update={"current_stage": VatWorkflowStage.PAPERWORK_CHASED}
        )

        with pytest.raises(ConcurrencyError):
            service.transition(candidate, now)

        assert store.history.entries == []
        assert store.quarters.get_quarter(june_quarter.vat_quarter_id).current_stage == (
            VatWorkflowStage.PAPERWORK_CHASED
        )
