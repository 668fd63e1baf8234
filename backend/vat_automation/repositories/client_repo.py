"""Client Repository - Read access to practice clients"""
from typing import Dict, Iterable, List, Optional
from pymongo.collection import Collection
from pymongo import ASCENDING

from .mongo_client import get_collection, to_document
from ..domain.models import Client
from ..utils.logger import get_logger

logger = get_logger(__name__)


class ClientRepository:
    """Repository for client lookups"""

    def __init__(self, collection: Optional[Collection] = None):
        self._clients: Collection = collection if collection is not None else get_collection("clients")

    def create_client(self, client: Client) -> Client:
        """Create a client (used by seeding)"""
        self._clients.insert_one(to_document(client, "client_id"))
        logger.info(f"Created client {client.client_code}", extra={"client_id": client.client_id})
        return client

    def get_client(self, client_id: str) -> Optional[Client]:
        """Get client by ID"""
        doc = self._clients.find_one({"client_id": client_id})
        if doc:
            doc.pop("_id", None)
            return Client.model_validate(doc)
        return None

    def get_clients_by_ids(self, client_ids: Iterable[str]) -> Dict[str, Client]:
        """Get clients keyed by ID; unknown IDs are simply absent"""
        ids = list(set(client_ids))
        if not ids:
            return {}

        clients: Dict[str, Client] = {}
        for doc in self._clients.find({"client_id": {"$in": ids}}):
            doc.pop("_id", None)
            client = Client.model_validate(doc)
            clients[client.client_id] = client
        return clients

    def get_vat_enabled_clients(self) -> List[Client]:
        """VAT-registered clients that carry a quarter group, by client code"""
        cursor = self._clients.find({
            "is_vat_enabled": True,
            "vat_quarter_group": {"$nin": [None, ""]},
        }).sort("client_code", ASCENDING)

        clients = []
        for doc in cursor:
            doc.pop("_id", None)
            clients.append(Client.model_validate(doc))
        return clients
