"""User Repository - Read access to staff users"""
from typing import Any, Dict, List, Optional
from pymongo.collection import Collection
from pymongo import ASCENDING

from .mongo_client import get_collection, to_document
from ..domain.models import User
from ..domain.enums import UserRole
from ..utils.logger import get_logger

logger = get_logger(__name__)


class UserRepository:
    """Repository for user lookups"""

    def __init__(self, collection: Optional[Collection] = None):
        self._users: Collection = collection if collection is not None else get_collection("users")

    def create_user(self, user: User) -> User:
        """Create a user (used by seeding)"""
        self._users.insert_one(to_document(user, "user_id"))
        logger.info(f"Created user {user.name}", extra={"user_id": user.user_id})
        return user

    def get_user(self, user_id: str) -> Optional[User]:
        """Get user by ID"""
        doc = self._users.find_one({"user_id": user_id})
        if doc:
            doc.pop("_id", None)
            return User.model_validate(doc)
        return None

    def get_active_partners(self, require_email_notifications: bool = False) -> List[User]:
        """
        Active partners in stable (created_at, user_id) order

        Args:
            require_email_notifications: only partners who opted in to emails
        """
        query: Dict[str, Any] = {"role": UserRole.PARTNER.value, "is_active": True}
        if require_email_notifications:
            query["email_notifications"] = True

        cursor = self._users.find(query).sort([("created_at", ASCENDING), ("user_id", ASCENDING)])

        users = []
        for doc in cursor:
            doc.pop("_id", None)
            users.append(User.model_validate(doc))
        return users
