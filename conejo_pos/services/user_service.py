# ==============================================================================
# SERVICIO DE USUARIOS
# ==============================================================================
# Alta y baja de usuarios con contraseñas hasheadas (werkzeug).
# El login, las sesiones y los permisos por request viven fuera del núcleo:
# aquí solo se expone verify_credentials para esa capa.
# ==============================================================================

from typing import Callable, List, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from conejo_pos.errors import ValidationError
from conejo_pos.models.entities import ROLE_PERMISSIONS, User
from conejo_pos.repositories.user_repository import UserRepository
from conejo_pos.services.customer_service import EMAIL_RE
from conejo_pos.utils.dates import utcnow
from conejo_pos.utils.logger import get_logger

logger = get_logger("UserService")

MIN_PASSWORD_LENGTH = 6


class UserService:
    """
    Servicio para gestión de usuarios.

    Responsabilidades:
    - Crear usuarios (email único, rol válido, hash de contraseña)
    - Listar y desactivar usuarios
    - Verificar credenciales
    """

    def __init__(self, user_repo: UserRepository, clock: Callable = utcnow):
        self.user_repo = user_repo
        self.clock = clock

    def create_user(
        self,
        name: str,
        email: str,
        password: str,
        role: str = 'employee',
        actor: Optional[str] = None
    ) -> User:
        """
        Crea un usuario nuevo.

        Raises:
            ValidationError: Datos inválidos o email repetido
        """
        errors = []
        if not isinstance(name, str) or not name.strip():
            errors.append('El nombre es requerido')
        email = (email or '').strip().lower()
        if not EMAIL_RE.match(email):
            errors.append(f"Email inválido: {email!r}")
        if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
            errors.append(f"La contraseña debe tener al menos {MIN_PASSWORD_LENGTH} caracteres")
        if role not in ROLE_PERMISSIONS:
            errors.append(f"Rol inválido: {role!r}")
        if not errors and self.user_repo.get_by_email(email, include_deleted=True):
            errors.append(f"El email {email} ya está registrado")
        if errors:
            raise ValidationError(errors)

        user = self.user_repo.create({
            'name': name.strip(),
            'email': email,
            'passwordHash': generate_password_hash(password),
            'role': role,
            'permissions': list(ROLE_PERMISSIONS[role]),
            'isActive': True,
        })
        logger.info(f"Usuario creado: {user.email} ({user.role}) por {actor or 'sistema'}")
        return user

    def get_user(self, user_id: str) -> User:
        return self.user_repo.require(user_id)

    def list_users(self, include_inactive: bool = False) -> List[User]:
        users = self.user_repo.get_all(include_deleted=include_inactive)
        if not include_inactive:
            users = [u for u in users if u.is_active]
        return users

    def deactivate_user(self, user_id: str, actor: Optional[str] = None) -> User:
        """Desactiva y elimina lógicamente un usuario."""
        self.user_repo.update(user_id, {'isActive': False})
        user = self.user_repo.soft_delete(user_id, actor)
        logger.info(f"Usuario desactivado: {user.email} por {actor or 'sistema'}")
        return user

    def verify_credentials(self, email: str, password: str) -> Optional[User]:
        """
        Retorna el usuario si la contraseña coincide y está activo.
        """
        user = self.user_repo.get_by_email(email)
        if user is None or not user.is_active:
            return None
        if not check_password_hash(user.password_hash, password or ''):
            logger.warning(f"Contraseña incorrecta para {user.email}")
            return None
        return user
