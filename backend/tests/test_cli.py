"""Tests for the command-line entry points."""
import json
from datetime import date, datetime
from unittest.mock import MagicMock

import pytest

from scripts import auto_create_vat_quarters, vat_quarter_automation
from vat_automation.domain.models import (
    AssignmentDetail, AssignmentRunResult, DailyRunResult, QuarterCreationResult,
    RunError, TransitionRunResult
)


@pytest.fixture
def service():
    mock = MagicMock()
    mock.run_daily.return_value = DailyRunResult(
        run_id="RUN-1",
        transitions=TransitionRunResult(
            candidates=2,
            transitioned=1,
            notified=1,
            emails_queued=2,
            errors=[RunError(vat_quarter_id="VQ-2", company_name="Birch Joinery", error="write failed")],
        ),
        assignment=AssignmentRunResult(
            candidates=1,
            partners=1,
            assigned=1,
            assignments=[AssignmentDetail(
                vat_quarter_id="VQ-1",
                client_code="ACM001",
                company_name="Acme Ltd",
                assigned_user_id="USR-001",
                assigned_user_name="Alice Grant",
            )],
        ),
    )
    mock.run_monthly.return_value = QuarterCreationResult(
        run_id="RUN-2", reference_date=date(2024, 5, 1), processed=1, created=1
    )
    return mock


class TestDailyCommand:
    """Tests for vat_quarter_automation.main."""

    def test_transitions_only(self, service, capsys):
        """Without the flag the configured default decides whether to assign."""
        assert vat_quarter_automation.main([], service=service) == 0

        service.run_daily.assert_called_once_with(auto_assign=None)
        assert "Transitioned:  1" in capsys.readouterr().out

    def test_auto_assign_flag(self, service, capsys):
        """--auto-assign chains the assigner and prints its outcome."""
        assert vat_quarter_automation.main(["--auto-assign"], service=service) == 0

        service.run_daily.assert_called_once_with(auto_assign=True)
        out = capsys.readouterr().out
        assert "Acme Ltd (ACM001) -> Alice Grant" in out
        assert "Birch Joinery: write failed" in out

    def test_failure_exit_code(self, service, capsys):
        """An aborted run exits non-zero."""
        service.run_daily.side_effect = RuntimeError("database unreachable")

        assert vat_quarter_automation.main([], service=service) == 1
        assert "database unreachable" in capsys.readouterr().err


class TestCreationCommand:
    """Tests for auto_create_vat_quarters.main."""

    def test_defaults(self, service):
        """Without options creation runs for today with emails."""
        assert auto_create_vat_quarters.main([], service=service) == 0

        service.run_monthly.assert_called_once_with(reference=None, skip_emails=False)

    def test_simulated_date_and_skip_emails(self, service):
        """Options pass through to the run."""
        code = auto_create_vat_quarters.main(
            ["--simulated-date", "2024-05-01", "--skip-emails"], service=service
        )

        assert code == 0
        service.run_monthly.assert_called_once_with(reference=datetime(2024, 5, 1), skip_emails=True)

    def test_invalid_simulated_date(self, service, capsys):
        """A bad date is a usage error and nothing runs."""
        assert auto_create_vat_quarters.main(["--simulated-date", "soon"], service=service) == 2

        service.run_monthly.assert_not_called()
        assert "Invalid --simulated-date" in capsys.readouterr().err

    def test_json_output(self, service, capsys):
        """--json prints the result model."""
        auto_create_vat_quarters.main(["--json"], service=service)

        payload = json.loads(capsys.readouterr().out)
        assert payload["created"] == 1
        assert payload["reference_date"] == "2024-05-01"

    def test_failure_exit_code(self, service):
        """An aborted run exits non-zero."""
        service.run_monthly.side_effect = RuntimeError("database unreachable")

        assert auto_create_vat_quarters.main([], service=service) == 1
