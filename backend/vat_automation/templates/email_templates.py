"""
Email Templates - Plain-text VAT automation emails

Pure composition: callers supply every value, including dates already in
the business timezone and the dashboard URL.
"""
from datetime import date, datetime
from typing import List, NamedTuple, Optional

from ..utils.time import format_display_date


SIGNATURE = "Best regards,\nPractice Automation System"


class ComposedEmail(NamedTuple):
    subject: str
    body: str


def format_period_for_email(quarter_period: str) -> str:
    """'2024-04-01_to_2024-06-30' -> '2024-04-01 to 2024-06-30'"""
    return quarter_period.replace("_to_", " to ")


def format_event_time(moment: datetime) -> str:
    """Event timestamp, e.g. '31/07/2024, 06:00:00'"""
    return moment.strftime("%d/%m/%Y, %H:%M:%S")


def _client_block(
    company_name: str,
    client_code: str,
    quarter_period: str,
    quarter_end: date,
    filing_due: date
) -> List[str]:
    return [
        "Client Details:",
        f"- Company: {company_name}",
        f"- Client Code: {client_code}",
        f"- Quarter Period: {format_period_for_email(quarter_period)}",
        f"- Quarter End Date: {format_display_date(quarter_end)}",
        f"- Filing Due Date: {format_display_date(filing_due)}",
    ]


def compose_transition_email(
    recipient_name: str,
    company_name: str,
    client_code: str,
    quarter_period: str,
    quarter_end: date,
    filing_due: date,
    transitioned_at: datetime,
    dashboard_url: str
) -> ComposedEmail:
    """Tell a partner that a quarter has ended and paperwork can be chased"""
    subject = f"VAT Quarter Ready for Chase - {company_name} ({client_code})"
    lines = [
        f"Dear {recipient_name},",
        "",
        "A VAT quarter has been automatically moved to \"Paperwork Pending Chase\" "
        "because its quarter end date has passed.",
        "",
        *_client_block(company_name, client_code, quarter_period, quarter_end, filing_due),
        "",
        "Status Change:",
        "- From: Waiting for Quarter End",
        "- To: Paperwork Pending Chase",
        f"- Transitioned: {format_event_time(transitioned_at)}",
        "",
        "This quarter is now ready for paperwork chasing. Please assign it to a "
        "team member if it has not been assigned already.",
        "",
        f"View VAT deadlines: {dashboard_url}",
        "",
        SIGNATURE,
    ]
    return ComposedEmail(subject=subject, body="\n".join(lines))


def compose_assignment_email(
    recipient_name: str,
    company_name: str,
    client_code: str,
    quarter_period: str,
    quarter_end: date,
    filing_due: date,
    assigned_at: datetime,
    dashboard_url: str
) -> ComposedEmail:
    """Tell a partner they have been auto-assigned a quarter"""
    subject = f"VAT Quarter Assigned - {company_name} ({client_code})"
    lines = [
        f"Dear {recipient_name},",
        "",
        "A VAT quarter has been automatically assigned to you after its quarter end.",
        "",
        *_client_block(company_name, client_code, quarter_period, quarter_end, filing_due),
        "",
        "Assignment:",
        "- Current Stage: Paperwork Pending Chase",
        f"- Assigned: {format_event_time(assigned_at)}",
        "",
        "Next Steps:",
        "1. Chase the client for their VAT paperwork",
        "2. Reassign the quarter to a team member if needed",
        "3. Update the stage as work progresses",
        "",
        f"View VAT deadlines: {dashboard_url}",
        "",
        SIGNATURE,
    ]
    return ComposedEmail(subject=subject, body="\n".join(lines))


def compose_creation_email(
    recipient_name: str,
    company_name: str,
    client_code: str,
    quarter_period: str,
    quarter_end: date,
    filing_due: date,
    created_at: datetime,
    dashboard_url: str,
    assigned_to: Optional[str] = None
) -> ComposedEmail:
    """Tell the client's previous assignee that the next quarter was created"""
    subject = f"New VAT Quarter Created - {company_name} ({client_code})"
    lines = [
        f"Dear {recipient_name},",
        "",
        "A new VAT quarter has been created automatically for a client you worked on last quarter.",
        "",
        *_client_block(company_name, client_code, quarter_period, quarter_end, filing_due),
        "",
        "Quarter Status:",
        "- Stage: Waiting for Quarter End",
        f"- Assigned To: {assigned_to or 'Unassigned'}",
        f"- Created: {format_event_time(created_at)}",
        "",
        "The quarter will move to \"Paperwork Pending Chase\" automatically once its end date passes.",
        "",
        f"View VAT deadlines: {dashboard_url}",
        "",
        SIGNATURE,
    ]
    return ComposedEmail(subject=subject, body="\n".join(lines))
