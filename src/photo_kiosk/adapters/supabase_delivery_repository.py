"""Supabase repository for delivery analytics records."""

from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from photo_kiosk.domain.delivery import DeliveryRecord
from photo_kiosk.services.delivery import DeliveryRepository

DELIVERIES_TABLE = "email_deliveries"


@dataclass
class SupabaseDeliveryRepository(DeliveryRepository):
    """Supabase-backed delivery analytics repository."""

    client: Client

    def create_delivery(self, record: DeliveryRecord) -> UUID:
        """Insert a delivery row; ``created_at`` is assigned by the database."""
        response = self.client.table(DELIVERIES_TABLE).insert(record.to_row()).execute()
        if not response.data:
            raise RuntimeError("Failed to create delivery record")
        return UUID(response.data[0]["id"])
