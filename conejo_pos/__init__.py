# ==============================================================================
# CONEJO POS - Núcleo de persistencia y reglas de negocio
# ==============================================================================
# Cafetería + coworking: inventario, ventas, sesiones de coworking,
# membresías, clientes, cortes de caja y gastos.
#
# ESTRUCTURA:
# ├── config.py            → Settings (variables de entorno)
# ├── errors.py            → Jerarquía de excepciones
# ├── models/              → Entidades (dataclasses)
# ├── repositories/        → Acceso a datos (JSON / SQL / memoria)
# ├── services/            → Reglas de negocio
# ├── app_container.py     → Inyección de dependencias
# ├── database_manager.py  → Fachada única
# └── main.py              → API JSON (Flask)
# ==============================================================================

__version__ = '1.0.0'
