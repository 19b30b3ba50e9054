"""Client persistence with upsert-on-email semantics."""

import logging
from typing import Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.booking import Booking
from app.models.client import Client, canonical_name
from app.schemas.client import ClientResponse, ClientUpdate
from app.services.results import ActionResult

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class ClientService:
    """CRUD over clients. Email is the conflict key."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_email(self, email: str) -> Optional[Client]:
        result = await self.db.execute(
            select(Client).where(Client.email == normalize_email(email))
        )
        return result.scalar_one_or_none()

    async def upsert_client(
        self,
        email: str,
        name: Optional[str] = None,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> Client:
        """Insert a client or update name/phone of the one holding this email.

        Flushes but does not commit, so the caller decides the transaction
        boundary. Raises SQLAlchemyError on store failure.
        """
        email = normalize_email(email)
        full_name = canonical_name(name, first_name, last_name) or email

        client = await self.get_by_email(email)
        if client is not None:
            client.name = full_name
            if phone:
                client.phone = phone
            await self.db.flush()
            logger.info(f"[CLIENTS] Client updated by email: {client.id}")
            return client

        # A concurrent insert of the same email surfaces as IntegrityError here
        client = Client(name=full_name, email=email, phone=phone)
        self.db.add(client)
        await self.db.flush()

        logger.info(f"[CLIENTS] Client created: {client.id}")
        return client

    async def list_clients(self) -> list[ClientResponse]:
        try:
            result = await self.db.execute(
                select(Client, func.count(Booking.id))
                .outerjoin(Booking, Booking.client_id == Client.id)
                .group_by(Client.id)
                .order_by(Client.id)
            )
        except SQLAlchemyError as e:
            logger.error(f"[CLIENTS] Error fetching clients: {e}")
            return []

        responses = []
        for client, booking_count in result.all():
            response = ClientResponse.model_validate(client)
            response.booking_count = booking_count
            responses.append(response)
        return responses

    async def get_client(self, client_id: int) -> Optional[Client]:
        result = await self.db.execute(select(Client).where(Client.id == client_id))
        return result.scalar_one_or_none()

    async def update_client(self, client_id: int, data: ClientUpdate) -> ActionResult:
        client = await self.get_client(client_id)
        if client is None:
            return ActionResult(success=False, error="Client not found")

        update_data = data.model_dump(exclude_unset=True)
        if "email" in update_data and update_data["email"]:
            update_data["email"] = normalize_email(update_data["email"])
        for field, value in update_data.items():
            setattr(client, field, value)

        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            return ActionResult(success=False, error="A client with this email already exists.")
        await self.db.refresh(client)
        return ActionResult(success=True, data=client)

    async def delete_client(self, client_id: int) -> ActionResult:
        client = await self.get_client(client_id)
        if client is None:
            return ActionResult(success=False, error="Client not found")
        try:
            await self.db.execute(delete(Client).where(Client.id == client_id))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"[CLIENTS] Error deleting client {client_id}: {e}")
            return ActionResult(success=False, error="Failed to delete client.")
        return ActionResult(success=True)
