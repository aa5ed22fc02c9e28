# ==============================================================================
# WSGI Entry Point - Para Gunicorn en producción
# ==============================================================================
# USO:
#   gunicorn wsgi:app --bind 0.0.0.0:$PORT
#
# ESTRUCTURA DEL PROYECTO:
#   repo_root/           <- Directorio de trabajo (en sys.path automáticamente)
#   ├── wsgi.py          <- Este archivo
#   ├── pyproject.toml
#   └── conejo_pos/      <- Paquete Python
#       ├── main.py
#       ├── services/
#       └── repositories/
# ==============================================================================

from conejo_pos.config import Settings
from conejo_pos.database_manager import DatabaseManager
from conejo_pos.main import create_app
from conejo_pos.services.backup_service import run_startup_backup

settings = Settings.from_env()
manager = DatabaseManager(settings)

# Backup diario al arrancar (solo backend de archivos)
run_startup_backup(manager.container.backup_service)

app = create_app(manager=manager)

# ==============================================================================
# PUNTO DE ENTRADA
# ==============================================================================
# Para desarrollo local:
#   python wsgi.py
# ==============================================================================

if __name__ == '__main__':
    app.run(debug=not settings.is_production, host='0.0.0.0', port=5000)
