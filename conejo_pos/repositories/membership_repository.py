# ==============================================================================
# REPOSITORIO DE MEMBRESÍAS
# ==============================================================================

from typing import List, Optional

from conejo_pos.models.entities import Membership, MembershipRecordStatus

from .base import BaseRepository


class MembershipRepository(BaseRepository[Membership]):
    """Colección 'memberships'."""

    collection = 'memberships'
    entity_cls = Membership
    id_prefix = 'membership'
    entity_name = 'Membresía'

    def get_by_customer(self, customer_id: str) -> List[Membership]:
        return self.get_all(filters={'customerId': customer_id})

    def get_active(self) -> List[Membership]:
        return self.get_all(filters={'status': MembershipRecordStatus.ACTIVE.value})

    def get_active_for_customer(self, customer_id: str) -> Optional[Membership]:
        """La membresía activa más reciente de un cliente."""
        active = [
            m for m in self.get_by_customer(customer_id)
            if m.status == MembershipRecordStatus.ACTIVE.value
        ]
        return active[-1] if active else None
