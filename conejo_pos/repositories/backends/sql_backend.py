# ==============================================================================
# BACKEND RELACIONAL (SQLAlchemy Core)
# ==============================================================================
# Una tabla por colección con tres columnas:
#   position  → PK autoincremental (preserva el orden de inserción)
#   id        → id del documento (indexado)
#   data      → documento completo como JSON
#
# write_all borra y reinserta dentro de UNA transacción, así que el
# reemplazo de colección es atómico igual que en el backend de archivos.
#
# Mapeo de errores:
#   sqlalchemy.exc.TimeoutError / OperationalError con timeout o lock
#                                   → StorageTimeout
#   cualquier otro SQLAlchemyError  → StorageError
# ==============================================================================

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List

from sqlalchemy import (
    JSON,
    Column,
    Integer,
    MetaData,
    String,
    Table,
    create_engine,
    delete,
    insert,
    inspect,
    select,
)
from sqlalchemy import exc as sa_exc
from sqlalchemy.pool import StaticPool

from conejo_pos.errors import StorageError, StorageTimeout
from conejo_pos.utils.logger import get_logger

from .base import LockingBackend

logger = get_logger("SQLBackend")


def _is_memory_sqlite(url: str) -> bool:
    return url in ('sqlite://', 'sqlite:///:memory:') or 'mode=memory' in url


class SQLBackend(LockingBackend):
    """
    Backend de documentos sobre cualquier base soportada por SQLAlchemy
    (SQLite, PostgreSQL, MySQL).

    Uso:
        backend = SQLBackend('sqlite:///conejo.db')
        backend.write_all('products', [...])
    """

    def __init__(self, database_url: str, timeout: float = 10.0, echo: bool = False):
        super().__init__(timeout)
        self.database_url = database_url

        connect_args: Dict[str, Any] = {}
        engine_options: Dict[str, Any] = {}

        if database_url.startswith('sqlite'):
            connect_args = {'check_same_thread': False, 'timeout': timeout}
            if _is_memory_sqlite(database_url):
                # Una sola conexión compartida: si no, cada conexión ve una BD vacía
                engine_options = {'poolclass': StaticPool}
            else:
                engine_options = {
                    'pool_pre_ping': True,
                    'pool_recycle': 1800,
                }
        else:
            engine_options = {
                'pool_pre_ping': True,
                'pool_timeout': timeout,
                'pool_recycle': 1800,
            }

        self.engine = create_engine(
            database_url,
            connect_args=connect_args,
            echo=echo,
            **engine_options,
        )
        self.metadata = MetaData()
        self._tables: Dict[str, Table] = {}

    # =========================================================================
    # TABLAS
    # =========================================================================

    def _table(self, collection: str) -> Table:
        """Obtiene (o crea de forma perezosa) la tabla de una colección."""
        table = self._tables.get(collection)
        if table is not None:
            return table

        with self._locks_guard:
            table = self._tables.get(collection)
            if table is None:
                table = Table(
                    collection,
                    self.metadata,
                    Column('position', Integer, primary_key=True, autoincrement=True),
                    Column('id', String(64), index=True),
                    Column('data', JSON, nullable=False),
                )
                with self._translate_errors(collection):
                    table.create(self.engine, checkfirst=True)
                self._tables[collection] = table
        return table

    @contextmanager
    def _translate_errors(self, collection: str) -> Iterator[None]:
        try:
            yield
        except sa_exc.TimeoutError as e:
            logger.error(f"Timeout de pool en '{collection}': {e}")
            raise StorageTimeout(f"Timeout de base de datos en '{collection}'") from e
        except sa_exc.OperationalError as e:
            message = str(e).lower()
            if 'timeout' in message or 'timed out' in message or 'locked' in message:
                logger.error(f"Timeout de base de datos en '{collection}': {e}")
                raise StorageTimeout(f"Timeout de base de datos en '{collection}'") from e
            logger.error(f"Error de base de datos en '{collection}': {e}")
            raise StorageError(f"Error de base de datos en '{collection}'") from e
        except sa_exc.SQLAlchemyError as e:
            logger.error(f"Error de base de datos en '{collection}': {e}")
            raise StorageError(f"Error de base de datos en '{collection}'") from e

    # =========================================================================
    # CONTRATO DEL BACKEND
    # =========================================================================

    def read_all(self, collection: str) -> List[Dict[str, Any]]:
        with self.locked(collection):
            table = self._table(collection)
            with self._translate_errors(collection):
                with self.engine.connect() as conn:
                    rows = conn.execute(
                        select(table.c.data).order_by(table.c.position)
                    ).all()
            return [dict(row.data) for row in rows]

    def write_all(self, collection: str, records: List[Dict[str, Any]]) -> None:
        with self.locked(collection):
            table = self._table(collection)
            rows = [{'id': r.get('id'), 'data': r} for r in records]
            with self._translate_errors(collection):
                with self.engine.begin() as conn:
                    conn.execute(delete(table))
                    if rows:
                        conn.execute(insert(table), rows)

    def collections(self) -> List[str]:
        with self._translate_errors('*'):
            return sorted(inspect(self.engine).get_table_names())

    def close(self) -> None:
        self.engine.dispose()
