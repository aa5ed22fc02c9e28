# ==============================================================================
# REPOSITORIO DE SESIONES DE COWORKING
# ==============================================================================

from typing import List

from conejo_pos.models.entities import CoworkingSession, SessionStatus

from .base import BaseRepository


class SessionRepository(BaseRepository[CoworkingSession]):
    """Colección 'coworking_sessions'. No tiene eliminación lógica propia."""

    collection = 'coworking_sessions'
    entity_cls = CoworkingSession
    id_prefix = 'session'
    entity_name = 'Sesión'

    def get_open(self) -> List[CoworkingSession]:
        """Sesiones activas o pausadas."""
        return [s for s in self.get_all() if s.is_open]

    def get_by_status(self, status: str) -> List[CoworkingSession]:
        return [s for s in self.get_all() if s.status == SessionStatus(status).value]
