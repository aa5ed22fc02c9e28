# ==============================================================================
# GENERADOR DE IDENTIFICADORES
# ==============================================================================
# IDs opacos de texto para todas las entidades: "<prefijo>_<hex>".
# El prefijo solo facilita leer los JSON a mano; nadie debe parsearlo.
# ==============================================================================

import uuid


def generate_id(prefix: str = '') -> str:
    """
    Genera un identificador único resistente a colisiones.

    Args:
        prefix: Prefijo de la entidad (ej: 'product', 'record')

    Returns:
        ID como string, ej: 'record_9f1c...'
    """
    token = uuid.uuid4().hex
    if prefix:
        return f"{prefix}_{token}"
    return token
