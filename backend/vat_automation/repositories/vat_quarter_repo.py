"""VAT Quarter Repository - Data access for VAT quarters"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pymongo.client_session import ClientSession
from pymongo.collection import Collection
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import DuplicateKeyError

from .mongo_client import get_collection, to_document
from ..domain.models import User, VatQuarter
from ..domain.enums import VatWorkflowStage
from ..domain.errors import AlreadyExistsError, ConcurrencyError
from ..utils.logger import get_logger

logger = get_logger(__name__)


def _to_quarter(doc: Dict[str, Any]) -> VatQuarter:
    doc.pop("_id", None)
    return VatQuarter.model_validate(doc)


class VatQuarterRepository:
    """Repository for VAT quarter operations"""

    def __init__(self, collection: Optional[Collection] = None):
        self._quarters: Collection = collection if collection is not None else get_collection("vat_quarters")

    def create_quarter(self, quarter: VatQuarter, session: Optional[ClientSession] = None) -> VatQuarter:
        """
        Insert a new quarter.

        Raises:
            AlreadyExistsError: the client already has a quarter for this period
        """
        try:
            self._quarters.insert_one(to_document(quarter, "vat_quarter_id"), session=session)
        except DuplicateKeyError as e:
            raise AlreadyExistsError(
                f"Quarter {quarter.quarter_period} already exists for client {quarter.client_id}",
                details={"client_id": quarter.client_id, "quarter_period": quarter.quarter_period}
            ) from e

        logger.info(
            f"Created VAT quarter {quarter.quarter_period}",
            extra={"vat_quarter_id": quarter.vat_quarter_id, "client_id": quarter.client_id}
        )
        return quarter

    def get_quarter(self, vat_quarter_id: str) -> Optional[VatQuarter]:
        """Get quarter by ID"""
        doc = self._quarters.find_one({"vat_quarter_id": vat_quarter_id})
        return _to_quarter(doc) if doc else None

    def find_waiting_ended_before(self, cutoff: datetime) -> List[VatQuarter]:
        """Open quarters still waiting whose end date is strictly before ``cutoff``"""
        cursor = self._quarters.find({
            "current_stage": VatWorkflowStage.WAITING_FOR_QUARTER_END.value,
            "is_completed": False,
            "quarter_end_date": {"$lt": cutoff},
        }).sort([("quarter_end_date", ASCENDING), ("vat_quarter_id", ASCENDING)])
        return [_to_quarter(doc) for doc in cursor]

    def find_unassigned_pending_chase(self) -> List[VatQuarter]:
        """Open quarters awaiting a chase with nobody assigned"""
        cursor = self._quarters.find({
            "current_stage": VatWorkflowStage.PAPERWORK_PENDING_CHASE.value,
            "assigned_user_id": None,
            "is_completed": False,
        }).sort([
            ("quarter_end_date", ASCENDING),
            ("created_at", ASCENDING),
            ("vat_quarter_id", ASCENDING),
        ])
        return [_to_quarter(doc) for doc in cursor]

    def find_existing_quarter(
        self,
        client_id: str,
        quarter_period: str,
        start: datetime,
        end: datetime
    ) -> Optional[VatQuarter]:
        """
        Find a quarter that blocks creating ``quarter_period`` for a client:
        the same period in any state, or an open quarter overlapping it.
        """
        doc = self._quarters.find_one({
            "client_id": client_id,
            "$or": [
                {"quarter_period": quarter_period},
                {
                    "is_completed": False,
                    "quarter_start_date": {"$lte": end},
                    "quarter_end_date": {"$gte": start},
                },
            ],
        })
        return _to_quarter(doc) if doc else None

    def get_last_assigned_user_id(self, client_id: str) -> Optional[str]:
        """Assignee of the client's most recently created assigned quarter"""
        doc = self._quarters.find_one(
            {"client_id": client_id, "assigned_user_id": {"$ne": None}},
            sort=[("created_at", DESCENDING)],
            projection={"assigned_user_id": 1},
        )
        return doc["assigned_user_id"] if doc else None

    def update_stage(
        self,
        vat_quarter_id: str,
        from_stage: VatWorkflowStage,
        to_stage: VatWorkflowStage,
        updated_at: datetime,
        session: Optional[ClientSession] = None
    ) -> None:
        """
        Move a quarter between stages, only if it is still in ``from_stage``.

        Raises:
            ConcurrencyError: the quarter is gone or no longer in ``from_stage``
        """
        result = self._quarters.update_one(
            {"vat_quarter_id": vat_quarter_id, "current_stage": from_stage.value},
            {"$set": {"current_stage": to_stage.value, "updated_at": updated_at}},
            session=session,
        )
        if result.matched_count == 0:
            raise ConcurrencyError(
                f"VAT quarter {vat_quarter_id} is no longer in {from_stage.value}",
                details={"vat_quarter_id": vat_quarter_id, "expected_stage": from_stage.value}
            )

    def assign_if_unassigned(
        self,
        vat_quarter_id: str,
        user: User,
        assigned_at: datetime,
        session: Optional[ClientSession] = None
    ) -> None:
        """
        Assign a quarter and start its chase, only if nobody holds it yet.

        Raises:
            ConcurrencyError: the quarter is gone or already assigned
        """
        result = self._quarters.update_one(
            {"vat_quarter_id": vat_quarter_id, "assigned_user_id": None},
            {"$set": {
                "assigned_user_id": user.user_id,
                "chase_started_date": assigned_at,
                "chase_started_by_user_id": user.user_id,
                "chase_started_by_user_name": user.name,
                "updated_at": assigned_at,
            }},
            session=session,
        )
        if result.matched_count == 0:
            raise ConcurrencyError(
                f"VAT quarter {vat_quarter_id} is already assigned",
                details={"vat_quarter_id": vat_quarter_id}
            )

        logger.info(
            f"Assigned VAT quarter to {user.name}",
            extra={"vat_quarter_id": vat_quarter_id, "user_id": user.user_id}
        )
