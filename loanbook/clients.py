"""
Client Registry Module

Stores client identity records (name, phone, notes). Clients are created and
deleted independently of loans; loans keep only a weak reference to them.
"""

from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Dict, List, Optional, Any
import logging
import uuid

from .exceptions import NotFoundError, ValidationError
from .storage import StorageInterface, StorageRecord


logger = logging.getLogger(__name__)


@dataclass
class Client(StorageRecord):
    """A borrower's identity record"""
    name: str
    phone: Optional[str] = None
    notes: Optional[str] = None

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValidationError("Client name is required")


class ClientRegistry:
    """
    Manages client records
    """

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.table_name = "clients"

    def add_client(
        self,
        name: str,
        phone: Optional[str] = None,
        notes: Optional[str] = None
    ) -> Client:
        """
        Register a new client

        Args:
            name: Client's name (required)
            phone: Optional phone number
            notes: Optional free text (address, references...)

        Returns:
            Created Client object
        """
        name = name.strip() if name else ""
        if not name:
            logger.warning("Client registration rejected: empty name")
            raise ValidationError("Client name is required")

        now = datetime.now(timezone.utc)

        client = Client(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            name=name,
            phone=phone or None,
            notes=notes or None
        )

        self.storage.save(self.table_name, client.id, self._client_to_dict(client))
        logger.info("Client %s registered", client.id)

        return client

    def get_client(self, client_id: str) -> Optional[Client]:
        """Get client by ID, None if it does not exist (or no longer exists)"""
        if not client_id:
            return None
        client_dict = self.storage.load(self.table_name, client_id)
        if client_dict:
            return self._client_from_dict(client_dict)
        return None

    def require_client(self, client_id: str) -> Client:
        """Get client by ID, raising NotFoundError if absent"""
        client = self.get_client(client_id)
        if not client:
            raise NotFoundError(f"Client {client_id} not found")
        return client

    def list_clients(self) -> List[Client]:
        """All clients ordered by name ascending"""
        clients = [self._client_from_dict(data) for data in self.storage.load_all(self.table_name)]
        return sorted(clients, key=lambda c: c.name.lower())

    def search_clients(self, term: str) -> List[Client]:
        """Clients whose name contains term (case-insensitive) or whose phone contains it"""
        clients = self.list_clients()
        if not term:
            return clients

        needle = term.lower()
        return [
            c for c in clients
            if needle in c.name.lower() or (c.phone and term in c.phone)
        ]

    def update_client(
        self,
        client_id: str,
        name: Optional[str] = None,
        phone: Optional[str] = None,
        notes: Optional[str] = None
    ) -> Client:
        """Update client information. Existing loans keep their name snapshot."""
        if name is not None and not name.strip():
            logger.warning("Client %s update rejected: empty name", client_id)
            raise ValidationError("Client name cannot be empty")

        client = self.require_client(client_id)

        fields: Dict[str, Any] = {}
        if name is not None:
            client.name = name.strip()
            fields["name"] = client.name
        if phone is not None:
            client.phone = phone or None
            fields["phone"] = client.phone
        if notes is not None:
            client.notes = notes or None
            fields["notes"] = client.notes

        if fields:
            client.updated_at = datetime.now(timezone.utc)
            fields["updated_at"] = client.updated_at.isoformat()
            self.storage.update_fields(self.table_name, client_id, fields)
            logger.info("Client %s updated: %s", client_id, sorted(fields))

        return client

    def delete_client(self, client_id: str) -> None:
        """
        Permanently delete a client record. Loans referencing the client are
        left untouched and keep their clientName snapshot.
        """
        if not self.storage.delete(self.table_name, client_id):
            raise NotFoundError(f"Client {client_id} not found")
        logger.info("Client %s deleted", client_id)

    def _client_to_dict(self, client: Client) -> Dict[str, Any]:
        return {
            "id": client.id,
            "created_at": client.created_at.isoformat(),
            "updated_at": client.updated_at.isoformat(),
            "name": client.name,
            "phone": client.phone,
            "notes": client.notes
        }

    def _client_from_dict(self, data: Dict[str, Any]) -> Client:
        return Client(
            id=data["id"],
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
            name=data["name"],
            phone=data.get("phone"),
            notes=data.get("notes")
        )
