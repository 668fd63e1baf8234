"""
Seed Data Script - Creates sample partners and VAT clients for local testing
Run: python -m scripts.seed_data
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from datetime import timedelta
from vat_automation.repositories.mongo_client import get_collection, create_indexes
from vat_automation.repositories.client_repo import ClientRepository
from vat_automation.repositories.user_repo import UserRepository
from vat_automation.domain.models import Client, User
from vat_automation.domain.enums import QuarterGroup, UserRole
from vat_automation.utils.idgen import generate_client_id, generate_user_id
from vat_automation.utils.time import utc_now


PARTNERS = [
    ("Sarah Whitfield", "sarah.whitfield@practice.co.uk"),
    ("James Okafor", "james.okafor@practice.co.uk"),
]

CLIENTS = [
    ("ACM001", "Acme Ltd", QuarterGroup.JAN_APR_JUL_OCT),
    ("BRB002", "Bramble & Birch LLP", QuarterGroup.FEB_MAY_AUG_NOV),
    ("CTR003", "Cotswold Traders Ltd", QuarterGroup.MAR_JUN_SEP_DEC),
    ("DLW004", "Dalewood Joinery Ltd", QuarterGroup.JAN_APR_JUL_OCT),
]


def seed():
    """Insert partners and clients unless the database already has users"""
    if get_collection("users").count_documents({}) > 0:
        print("Database already has data. Skipping seed.")
        return

    create_indexes()
    now = utc_now()

    user_repo = UserRepository()
    for offset, (name, email) in enumerate(PARTNERS):
        user_repo.create_user(User(
            user_id=generate_user_id(),
            name=name,
            email=email,
            role=UserRole.PARTNER,
            is_active=True,
            email_notifications=True,
            created_at=now + timedelta(seconds=offset)
        ))
        print(f"Created partner: {name}")

    client_repo = ClientRepository()
    for code, company, group in CLIENTS:
        client_repo.create_client(Client(
            client_id=generate_client_id(),
            client_code=code,
            company_name=company,
            email=f"accounts@{code.lower()}.example.co.uk",
            is_vat_enabled=True,
            vat_quarter_group=group.value,
            created_at=now
        ))
        print(f"Created client: {company} ({group.value})")


if __name__ == "__main__":
    seed()
