# ==============================================================================
# REPOSITORIO DE VENTAS (registros)
# ==============================================================================
# Colección 'records'. Los registros borrados quedan con isDeleted=True
# y no cuentan en reportes ni cortes.
# ==============================================================================

from datetime import datetime
from typing import List, Optional

from conejo_pos.models.entities import SaleRecord
from conejo_pos.utils.dates import parse_iso

from .base import BaseRepository


class SalesRepository(BaseRepository[SaleRecord]):
    """Repositorio de registros de venta."""

    collection = 'records'
    entity_cls = SaleRecord
    id_prefix = 'record'
    entity_name = 'Registro'

    def get_by_date_range(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        include_deleted: bool = False
    ) -> List[SaleRecord]:
        """
        Registros cuya fecha cae en [start, end] (límites opcionales).
        """
        result = []
        for record in self.get_all(include_deleted=include_deleted):
            date = parse_iso(record.date)
            if date is None:
                continue
            if start is not None and date < start:
                continue
            if end is not None and date > end:
                continue
            result.append(record)
        return result

    def get_by_session(self, session_id: str) -> Optional[SaleRecord]:
        for record in self.get_all(filters={'sessionId': session_id}):
            return record
        return None

    def get_by_client(self, client: str) -> List[SaleRecord]:
        target = (client or '').strip().lower()
        return [r for r in self.get_all() if r.client.strip().lower() == target]
