# ==============================================================================
# CONFIGURACIÓN
# ==============================================================================
# Valores por defecto sobreescribibles con variables de entorno TIENDA_*.
# create_app() acepta además un dict de overrides (usado en tests).
# ==============================================================================

import os
import secrets


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'si', 'sí')


BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# Directorio de los archivos JSON (products.json, sales.json, ...)
DATA_DIR = os.environ.get('TIENDA_DATA_DIR', os.path.join(os.path.dirname(BASE_DIR), 'data'))

# Logs de rendimiento
LOGS_DIR = os.environ.get('TIENDA_LOGS_DIR') or os.path.join(DATA_DIR, 'logs')

# En producción la cookie de sesión exige HTTPS
PRODUCTION = _env_flag('TIENDA_PRODUCTION', False)

ENABLE_PROFILING = _env_flag('TIENDA_ENABLE_PROFILING', True)

# Backup diario al iniciar la app
ENABLE_BACKUPS = _env_flag('TIENDA_ENABLE_BACKUPS', True)

STORE_NAME = os.environ.get('TIENDA_STORE_NAME', 'Mivis Studio')

# Se antepone a números locales de 9 dígitos (Perú)
STORE_COUNTRY_CODE = os.environ.get('TIENDA_STORE_COUNTRY_CODE', '51')

# Umbral de "stock bajo" del panel
LOW_STOCK_THRESHOLD = int(os.environ.get('TIENDA_LOW_STOCK_THRESHOLD', '2'))

SECRET_KEY = os.environ.get('TIENDA_SECRET_KEY')
if not SECRET_KEY:
    SECRET_KEY = secrets.token_hex(32)
    if PRODUCTION:
        print("[ADVERTENCIA] TIENDA_SECRET_KEY no definida: las sesiones se invalidan al reiniciar")


def flask_config() -> dict:
    """Configuración inicial de la app Flask."""
    return {
        'SECRET_KEY': SECRET_KEY,
        'DATA_DIR': DATA_DIR,
        'LOGS_DIR': LOGS_DIR,
        'ENABLE_BACKUPS': ENABLE_BACKUPS,
        'STORE_NAME': STORE_NAME,
        'STORE_COUNTRY_CODE': STORE_COUNTRY_CODE,
        'LOW_STOCK_THRESHOLD': LOW_STOCK_THRESHOLD,
        'SESSION_COOKIE_HTTPONLY': True,
        'SESSION_COOKIE_SAMESITE': 'Lax',
        'SESSION_COOKIE_SECURE': PRODUCTION,
        'PERMANENT_SESSION_LIFETIME': 60 * 60 * 12,
        'MAX_CONTENT_LENGTH': 16 * 1024 * 1024,
    }
