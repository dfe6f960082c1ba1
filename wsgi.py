# ==============================================================================
# WSGI Entry Point - Para Gunicorn en producción
# ==============================================================================
# USO:
#   gunicorn wsgi:app --bind 0.0.0.0:$PORT
#
# ESTRUCTURA DEL PROYECTO:
#   repo_root/           <- Directorio de trabajo
#   ├── wsgi.py          <- Este archivo
#   ├── pyproject.toml
#   └── app_tienda/      <- Paquete Python
#       ├── main.py      <- create_app() y rutas
#       ├── services/
#       └── repositories/
#
# Configuración por variables de entorno: ver app_tienda/config.py
# ==============================================================================

import atexit

from app_tienda.main import create_app
from app_tienda.performance_logger import write_function_stats_report

app = create_app()

# Reporte de funciones lentas al cerrar el proceso
atexit.register(write_function_stats_report)

if __name__ == '__main__':
    app.run(debug=True, host='0.0.0.0', port=5000)
