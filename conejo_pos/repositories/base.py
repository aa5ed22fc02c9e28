# ==============================================================================
# REPOSITORIO BASE - Funcionalidad común sobre un backend de colecciones
# ==============================================================================

from typing import Any, Callable, Dict, Generic, List, Optional, Type, TypeVar

from conejo_pos.errors import NotFoundError, ValidationError
from conejo_pos.ids import generate_id
from conejo_pos.utils.dates import to_iso, utcnow

from .interfaces import IStorageBackend

T = TypeVar('T')


class BaseRepository(Generic[T]):
    """
    Clase base para todos los repositorios.

    Cada repositorio es dueño de UNA colección. Toda mutación corre dentro
    de backend.locked(colección): se relee, se modifica y se reescribe la
    colección completa, sin estado en memoria entre llamadas.

    Subclases definen:
        collection: Nombre de la colección ('products', 'records'...)
        entity_cls: Dataclass con to_dict/from_dict
        id_prefix: Prefijo de los ids generados
        entity_name: Nombre legible para mensajes de error
    """

    collection: str = ''
    entity_cls: Type[T] = None
    id_prefix: str = ''
    entity_name: str = 'Registro'

    def __init__(self, backend: IStorageBackend, clock: Callable = utcnow):
        """
        Args:
            backend: Backend de almacenamiento (JSON, SQL o memoria)
            clock: Función que retorna la hora actual (UTC)
        """
        self.backend = backend
        self.clock = clock

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _now_iso(self) -> str:
        return to_iso(self.clock())

    def _load(self) -> List[Dict[str, Any]]:
        return self.backend.read_all(self.collection)

    def _save(self, docs: List[Dict[str, Any]]) -> None:
        self.backend.write_all(self.collection, docs)

    def _to_entity(self, doc: Dict[str, Any]) -> T:
        return self.entity_cls.from_dict(doc)

    def _is_deleted(self, doc: Dict[str, Any]) -> bool:
        return bool(doc.get('isDeleted', False))

    def _deleted_fields(self, actor: Optional[str]) -> Dict[str, Any]:
        return {
            'isDeleted': True,
            'deletedAt': self._now_iso(),
            'deletedBy': actor,
        }

    @staticmethod
    def _matches(doc: Dict[str, Any], filters: Optional[Dict[str, Any]]) -> bool:
        if not filters:
            return True
        return all(doc.get(key) == value for key, value in filters.items())

    def _find_index(
        self,
        docs: List[Dict[str, Any]],
        entity_id: str,
        include_deleted: bool = False
    ) -> int:
        for index, doc in enumerate(docs):
            if doc.get('id') == entity_id:
                if not include_deleted and self._is_deleted(doc):
                    break
                return index
        raise NotFoundError(self.entity_name, entity_id)

    # =========================================================================
    # LECTURA
    # =========================================================================

    def get_all(
        self,
        filters: Optional[Dict[str, Any]] = None,
        include_deleted: bool = False
    ) -> List[T]:
        """
        Obtiene todas las entidades en orden de inserción.

        Args:
            filters: Igualdad exacta por campo del documento (camelCase)
            include_deleted: Incluir eliminadas lógicamente

        Returns:
            Lista de entidades
        """
        return [
            self._to_entity(doc)
            for doc in self._load()
            if (include_deleted or not self._is_deleted(doc)) and self._matches(doc, filters)
        ]

    def get_by_id(self, entity_id: str, include_deleted: bool = False) -> Optional[T]:
        """Obtiene una entidad por id, o None si no existe."""
        for doc in self._load():
            if doc.get('id') == entity_id:
                if not include_deleted and self._is_deleted(doc):
                    return None
                return self._to_entity(doc)
        return None

    def require(self, entity_id: str) -> T:
        """
        Igual que get_by_id pero la ausencia es un error.

        Raises:
            NotFoundError: Si no existe o está eliminada
        """
        entity = self.get_by_id(entity_id)
        if entity is None:
            raise NotFoundError(self.entity_name, entity_id)
        return entity

    def count(self, include_deleted: bool = False) -> int:
        return len(self.get_all(include_deleted=include_deleted))

    # =========================================================================
    # ESCRITURA
    # =========================================================================

    def create(self, data: Dict[str, Any]) -> T:
        """
        Crea una entidad nueva (asigna id y timestamps).

        Args:
            data: Documento camelCase (sin id o con id propio)

        Returns:
            Entidad persistida

        Raises:
            ValidationError: Si el id ya existe
        """
        with self.backend.locked(self.collection):
            docs = self._load()
            doc = dict(data)
            doc['id'] = doc.get('id') or generate_id(self.id_prefix)
            if any(d.get('id') == doc['id'] for d in docs):
                raise ValidationError(f"{self.entity_name} {doc['id']} ya existe")

            now = self._now_iso()
            doc.setdefault('createdAt', now)
            doc['updatedAt'] = now

            entity = self._to_entity(doc)
            docs.append(entity.to_dict())
            self._save(docs)
            return entity

    def update(self, entity_id: str, partial: Dict[str, Any]) -> T:
        """
        Mezcla campos sobre una entidad existente.

        Raises:
            NotFoundError: Si no existe o está eliminada
        """
        with self.backend.locked(self.collection):
            docs = self._load()
            index = self._find_index(docs, entity_id)
            merged = dict(docs[index])
            merged.update(partial)
            merged['id'] = entity_id
            merged['updatedAt'] = self._now_iso()

            entity = self._to_entity(merged)
            docs[index] = entity.to_dict()
            self._save(docs)
            return entity

    def mutate(
        self,
        entity_id: str,
        change: Callable[[T], Any],
        include_deleted: bool = False
    ) -> T:
        """
        Leer-modificar-escribir de una entidad bajo el lock de la colección.

        Args:
            entity_id: Id de la entidad
            change: Función que modifica la entidad en sitio
            include_deleted: Permitir modificar entidades eliminadas

        Returns:
            Entidad modificada y persistida
        """
        with self.backend.locked(self.collection):
            docs = self._load()
            index = self._find_index(docs, entity_id, include_deleted)
            entity = self._to_entity(docs[index])
            change(entity)
            if hasattr(entity, 'updated_at'):
                entity.updated_at = self._now_iso()
            docs[index] = entity.to_dict()
            self._save(docs)
            return entity

    def soft_delete(self, entity_id: str, actor: Optional[str] = None) -> T:
        """Eliminación lógica: queda fuera de get_all por defecto."""
        return self.update(entity_id, self._deleted_fields(actor))

    def purge(self, entity_id: str) -> bool:
        """
        Eliminación PERMANENTE. Solo para limpieza explícita.

        Returns:
            True si existía
        """
        with self.backend.locked(self.collection):
            docs = self._load()
            remaining = [d for d in docs if d.get('id') != entity_id]
            if len(remaining) == len(docs):
                return False
            self._save(remaining)
            return True
