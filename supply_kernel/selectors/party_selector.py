"""
Module: supply_kernel.selectors.party_selector
Responsibility: Read-only party lookups used to address notifications and
    to validate supplier choices.
Architecture position: Kernel > Selectors.  Read-only.
"""

from uuid import UUID

from sqlalchemy import select

from supply_kernel.domain.access import Role
from supply_kernel.models.party import Party, RetailerAssignment
from supply_kernel.selectors.base import BaseSelector


class PartySelector(BaseSelector[Party]):
    """Who is active, and who may supply whom."""

    def active_ids_by_role(self, role: Role) -> list[UUID]:
        """Ids of every active party holding ``role``, ordered by party code."""
        return list(
            self.session.execute(
                select(Party.id)
                .where(Party.role == Role(role).value, Party.is_active.is_(True))
                .order_by(Party.party_code)
            ).scalars().all()
        )

    def manufacturers_for_retailer(self, retailer_id: UUID) -> list[UUID]:
        """Active manufacturers with an active assignment to ``retailer_id``."""
        return list(
            self.session.execute(
                select(RetailerAssignment.manufacturer_id)
                .join(Party, Party.id == RetailerAssignment.manufacturer_id)
                .where(
                    RetailerAssignment.retailer_id == retailer_id,
                    RetailerAssignment.is_active.is_(True),
                    Party.is_active.is_(True),
                )
                .order_by(Party.party_code)
            ).scalars().all()
        )
