# ==============================================================================
# REPOSITORIO DE CORTES DE CAJA
# ==============================================================================

from typing import Optional

from conejo_pos.models.entities import CashCut

from .base import BaseRepository


class CashCutRepository(BaseRepository[CashCut]):
    """Colección 'cashcuts'."""

    collection = 'cashcuts'
    entity_cls = CashCut
    id_prefix = 'cashcut'
    entity_name = 'Corte de caja'

    def get_latest(self) -> Optional[CashCut]:
        """Último corte registrado (por fecha de fin)."""
        cuts = self.get_all()
        if not cuts:
            return None
        return max(cuts, key=lambda c: c.end_date or '')
