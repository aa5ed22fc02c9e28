# ==============================================================================
# REPOSITORIO DE USUARIOS
# ==============================================================================

from typing import Optional

from conejo_pos.models.entities import User

from .base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Colección 'users'. El email es único y se guarda en minúsculas."""

    collection = 'users'
    entity_cls = User
    id_prefix = 'user'
    entity_name = 'Usuario'

    def get_by_email(self, email: str, include_deleted: bool = False) -> Optional[User]:
        target = (email or '').strip().lower()
        for user in self.get_all(include_deleted=include_deleted):
            if user.email == target:
                return user
        return None
