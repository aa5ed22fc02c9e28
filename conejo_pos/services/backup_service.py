# ==============================================================================
# SERVICIO DE BACKUPS (backend de archivos JSON)
# ==============================================================================
# Crea backups diarios de los archivos de colecciones en formato ZIP.
# Mantiene solo los últimos N backups (rotación automática).
#
# FORMATO: <data>/backups/backup_YYYY-MM-DD.zip
#
# Con backend relacional no aplica: se usan los backups de la propia
# base de datos.
# ==============================================================================

import os
import zipfile
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from conejo_pos.errors import StorageError
from conejo_pos.repositories.backends.json_backend import JSONFileBackend
from conejo_pos.utils.dates import utcnow
from conejo_pos.utils.logger import get_logger

logger = get_logger("BackupService")


class BackupService:
    """
    Servicio para gestión de backups automáticos.

    Responsabilidades:
    - Crear backups diarios en formato ZIP
    - Rotar backups antiguos (mantener solo los últimos N)
    - Reportar el estado de los backups existentes

    Uso:
        backup_service = BackupService(JSONFileBackend('/app/data'))
        backup_service.run_daily_backup()
    """

    BACKUP_DIR_NAME = 'backups'

    def __init__(
        self,
        backend: JSONFileBackend,
        max_backups: int = 7,
        clock: Callable = utcnow
    ):
        """
        Args:
            backend: Backend de archivos cuyos JSON se respaldan
            max_backups: Cantidad de backups a mantener
            clock: Reloj inyectable (define el nombre del ZIP)
        """
        self.backend = backend
        self.max_backups = max_backups
        self.clock = clock
        self.backup_root = os.path.join(backend.data_path, self.BACKUP_DIR_NAME)
        os.makedirs(self.backup_root, exist_ok=True)

    def _today_zip_path(self) -> str:
        today = self.clock().strftime('%Y-%m-%d')
        return os.path.join(self.backup_root, f'backup_{today}.zip')

    def _backup_exists_today(self) -> bool:
        zip_path = self._today_zip_path()
        return os.path.exists(zip_path) and os.path.getsize(zip_path) > 0

    def _existing_backups(self) -> List[str]:
        """Nombres backup_YYYY-MM-DD.zip, más reciente primero."""
        backups = []
        for item in os.listdir(self.backup_root):
            if not (item.startswith('backup_') and item.endswith('.zip')):
                continue
            if not os.path.isfile(os.path.join(self.backup_root, item)):
                continue
            try:
                datetime.strptime(item[7:-4], '%Y-%m-%d')
            except ValueError:
                continue
            backups.append(item)
        backups.sort(reverse=True)
        return backups

    def _zip_data_files(self, zip_path: str) -> Tuple[int, List[str]]:
        """
        Escribe el ZIP con los archivos de colecciones.

        Returns:
            Tupla (archivos_agregados, lista_de_errores)
        """
        added = 0
        errors = []
        try:
            with zipfile.ZipFile(zip_path, 'w', zipfile.ZIP_DEFLATED) as zf:
                for filename in self.backend.data_files():
                    src = os.path.join(self.backend.data_path, filename)
                    # Bajo el lock para no copiar un archivo a medio escribir
                    with self.backend.locked(filename[:-5]):
                        try:
                            zf.write(src, filename)
                            added += 1
                        except OSError as e:
                            errors.append(f"{filename}: {e}")
        except (OSError, zipfile.BadZipFile) as e:
            errors.append(f"Error creando ZIP: {e}")
            if os.path.exists(zip_path):
                os.remove(zip_path)
        return added, errors

    def _delete_old_backups(self) -> int:
        deleted = 0
        for backup_name in self._existing_backups()[self.max_backups:]:
            try:
                os.remove(os.path.join(self.backup_root, backup_name))
                deleted += 1
                logger.info(f"Eliminado backup antiguo: {backup_name}")
            except OSError as e:
                logger.error(f"No se pudo eliminar {backup_name}: {e}")
        return deleted

    def create_backup(self, force: bool = False) -> Dict[str, Any]:
        """
        Crea un backup ZIP de los archivos de datos.

        Args:
            force: Si True, crea backup aunque ya exista uno hoy

        Returns:
            Dict con resultado: {success, message, filesAdded, errors, backupPath}
        """
        zip_path = self._today_zip_path()
        result = {
            'success': False,
            'message': '',
            'filesAdded': 0,
            'errors': [],
            'backupPath': zip_path,
        }

        if not force and self._backup_exists_today():
            result['success'] = True
            result['message'] = 'Backup del día ya existe'
            logger.info(f"Backup ya existe hoy: {os.path.basename(zip_path)}")
            return result

        added, errors = self._zip_data_files(zip_path)
        result['success'] = added > 0 and not errors
        result['filesAdded'] = added
        result['errors'] = errors

        if errors:
            result['message'] = 'Backup con errores'
            logger.error(f"Backup {os.path.basename(zip_path)} con errores: {errors}")
        elif added > 0:
            size_kb = round(os.path.getsize(zip_path) / 1024, 2)
            result['message'] = f'Backup creado: {added} archivos ({size_kb} KB)'
            logger.info(f"Backup creado: {os.path.basename(zip_path)} ({added} archivos, {size_kb} KB)")
        else:
            result['message'] = 'No se encontraron archivos para respaldar'
            logger.warning(result['message'])
        return result

    def rotate_backups(self) -> Dict[str, int]:
        deleted = self._delete_old_backups()
        return {'deletedCount': deleted, 'remainingCount': len(self._existing_backups())}

    def run_daily_backup(self) -> Dict[str, Any]:
        """
        Proceso completo de backup diario.

        1. Verifica si ya existe backup del día
        2. Si no existe, crea uno nuevo
        3. Rota backups antiguos
        """
        return {
            'backup': self.create_backup(),
            'rotation': self.rotate_backups(),
        }

    def get_backup_status(self) -> Dict[str, Any]:
        backups = []
        for backup_name in self._existing_backups():
            path = os.path.join(self.backup_root, backup_name)
            size_bytes = os.path.getsize(path)
            try:
                with zipfile.ZipFile(path, 'r') as zf:
                    file_count = len(zf.namelist())
            except zipfile.BadZipFile:
                logger.warning(f"Backup ilegible: {backup_name}")
                file_count = 0
            backups.append({
                'filename': backup_name,
                'date': backup_name[7:-4],
                'files': file_count,
                'sizeBytes': size_bytes,
                'sizeKb': round(size_bytes / 1024, 2),
            })

        return {
            'totalBackups': len(backups),
            'maxBackups': self.max_backups,
            'backupRoot': self.backup_root,
            'backups': backups,
            'todayExists': self._backup_exists_today(),
        }


def run_startup_backup(backup_service: Optional[BackupService]) -> None:
    """
    Ejecuta el backup al iniciar la aplicación. Un error de backup se
    registra pero no impide arrancar.
    """
    if backup_service is None:
        return
    try:
        result = backup_service.run_daily_backup()
    except (OSError, StorageError) as e:
        logger.error(f"No se pudo ejecutar backup: {e}")
        return
    if not result['backup']['success'] and result['backup']['errors']:
        logger.warning(f"Backup con errores: {result['backup']['errors']}")
