# ==============================================================================
# PROFILING INTERNO
# ==============================================================================
# Mide el tiempo de cada ruta y de las funciones clave del negocio.
# Escribe logs legibles en LOGS_DIR:
#   performance.log     -> todas las peticiones
#   slow_routes.log     -> rutas que superan los umbrales
#   slow_functions.log  -> llamadas lentas y reporte de estadísticas
#
# ACTIVAR/DESACTIVAR: TIENDA_ENABLE_PROFILING
# ==============================================================================

import os
import threading
import time
from collections import defaultdict
from datetime import datetime
from functools import wraps

from app_tienda import config

ENABLE_PROFILING = config.ENABLE_PROFILING

# Umbrales en milisegundos
THRESHOLD_WARNING = 300
THRESHOLD_CRITICAL = 700

LOGS_DIR = config.LOGS_DIR
PERFORMANCE_LOG = os.path.join(LOGS_DIR, 'performance.log')
SLOW_ROUTES_LOG = os.path.join(LOGS_DIR, 'slow_routes.log')
SLOW_FUNCTIONS_LOG = os.path.join(LOGS_DIR, 'slow_functions.log')

# Nombres legibles de las rutas (regla Flask -> acción)
ROUTE_NAMES = {
    # Tienda pública
    'GET /api/catalog': 'Ver catálogo',
    'GET /api/catalog/categories': 'Ver categorías',
    'GET /api/catalog/<product_id>': 'Ver producto',
    'GET /api/catalog/<product_id>/whatsapp': 'Consultar por WhatsApp',
    'GET /api/store': 'Ver datos de la tienda',

    # Sesión
    'POST /api/login': 'Iniciar sesión',
    'POST /api/logout': 'Cerrar sesión',

    # Inventario
    'GET /api/products': 'Ver inventario',
    'POST /api/products': 'Crear producto',
    'PATCH /api/products/<product_id>': 'Editar producto',
    'DELETE /api/products/<product_id>': 'Eliminar producto',
    'POST /api/products/<product_id>/stock': 'Ajustar stock',

    # Punto de venta y cobranza
    'POST /api/sales': 'Registrar venta',
    'GET /api/sales': 'Ver ventas',
    'DELETE /api/sales/<sale_id>': 'Eliminar venta',
    'POST /api/sales/<sale_id>/payments': 'Registrar abono',
    'POST /api/sales/<sale_id>/installments/pay': 'Pagar cuotas',
    'POST /api/customers/<customer_id>/payments': 'Abono de cliente',

    # Reportes
    'GET /api/reports/summary': 'Ver resumen financiero',
    'GET /api/reports/sales': 'Ver reporte de ventas',
    'GET /api/reports/sales.csv': 'Exportar ventas CSV',

    # Configuración
    'PUT /api/settings': 'Guardar configuración',
    'POST /api/reset': 'Reiniciar datos',
}

_function_stats = defaultdict(lambda: {'calls': 0, 'total_time': 0.0, 'max_time': 0.0})
_stats_lock = threading.Lock()
_write_lock = threading.Lock()


def configure(logs_dir: str = None, enabled: bool = None) -> None:
    """Cambia el directorio de logs y/o activa el profiling (create_app)."""
    global LOGS_DIR, PERFORMANCE_LOG, SLOW_ROUTES_LOG, SLOW_FUNCTIONS_LOG, ENABLE_PROFILING
    if enabled is not None:
        ENABLE_PROFILING = enabled
    if logs_dir:
        LOGS_DIR = logs_dir
        PERFORMANCE_LOG = os.path.join(LOGS_DIR, 'performance.log')
        SLOW_ROUTES_LOG = os.path.join(LOGS_DIR, 'slow_routes.log')
        SLOW_FUNCTIONS_LOG = os.path.join(LOGS_DIR, 'slow_functions.log')


def _get_timestamp():
    return datetime.now().strftime('%Y-%m-%d %H:%M:%S')


def _write_log(filepath, content):
    """Agrega texto a un log. Un error de disco no debe tumbar la petición."""
    try:
        with _write_lock:
            os.makedirs(os.path.dirname(filepath), exist_ok=True)
            with open(filepath, 'a', encoding='utf-8') as f:
                f.write(content)
    except OSError as e:
        print(f"[PROFILING] No se pudo escribir {os.path.basename(filepath)}: {e}")


def get_route_name(method, path, rule=None):
    """Nombre legible de una ruta; la ruta cruda si no está mapeada."""
    for candidate in (path, rule):
        if candidate and f"{method} {candidate}" in ROUTE_NAMES:
            return ROUTE_NAMES[f"{method} {candidate}"]
    return f"{method} {path}"


# ═══════════════════════════════════════════════════════════════════════════
# RUTAS
# ═══════════════════════════════════════════════════════════════════════════

def log_route_performance(method, path, rule, time_ms, user=None):
    if not ENABLE_PROFILING:
        return
    _write_log(PERFORMANCE_LOG, f"""
════════════════════════════════════════
[PERFORMANCE] {_get_timestamp()}
Acción: {get_route_name(method, path, rule)}
Usuario: {user or 'anónimo'}
Ruta: {method} {path}
Tiempo: {time_ms:.0f} ms
""")


def log_slow_route(method, path, rule, time_ms, user=None, level='WARNING'):
    """level: 'WARNING' (>300ms) o 'CRITICAL' (>700ms)"""
    if not ENABLE_PROFILING:
        return
    severity = 'LENTA' if level == 'WARNING' else 'MUY LENTA'
    threshold = THRESHOLD_WARNING if level == 'WARNING' else THRESHOLD_CRITICAL
    _write_log(SLOW_ROUTES_LOG, f"""
[{level}] {_get_timestamp()}
Ruta {severity}: {get_route_name(method, path, rule)}
Usuario: {user or 'anónimo'}
Detalle: {method} {path}
Tiempo: {time_ms:.0f} ms (umbral: {threshold} ms)
────────────────────────────────────────
""")


def init_profiling(app):
    """
    Registra los hooks before_request / after_request en la app.

    Uso:
        from app_tienda.performance_logger import init_profiling
        init_profiling(app)
    """
    from flask import g, request, session

    @app.before_request
    def _start_timer():
        g.start_time = time.perf_counter()

    @app.after_request
    def _log_request(response):
        if not ENABLE_PROFILING or not hasattr(g, 'start_time'):
            return response

        elapsed = (time.perf_counter() - g.start_time) * 1000
        method = request.method
        path = request.path
        rule = str(request.url_rule) if request.url_rule else path
        user = session.get('user')

        log_route_performance(method, path, rule, elapsed, user)
        if elapsed >= THRESHOLD_CRITICAL:
            log_slow_route(method, path, rule, elapsed, user, 'CRITICAL')
        elif elapsed >= THRESHOLD_WARNING:
            log_slow_route(method, path, rule, elapsed, user, 'WARNING')

        return response


# ═══════════════════════════════════════════════════════════════════════════
# FUNCIONES CLAVE
# ═══════════════════════════════════════════════════════════════════════════

def profile_function(func=None, name=None):
    """
    Decorador que acumula llamadas, tiempo promedio y máximo.

    Uso:
        @profile_function
        def mi_funcion(): ...

        @profile_function(name="Procesar venta")
        def process_sale(...): ...
    """
    def decorator(fn):
        func_name = name or fn.__name__

        @wraps(fn)
        def wrapper(*args, **kwargs):
            if not ENABLE_PROFILING:
                return fn(*args, **kwargs)
            start = time.perf_counter()
            try:
                return fn(*args, **kwargs)
            finally:
                elapsed_ms = (time.perf_counter() - start) * 1000
                with _stats_lock:
                    stats = _function_stats[func_name]
                    stats['calls'] += 1
                    stats['total_time'] += elapsed_ms
                    stats['max_time'] = max(stats['max_time'], elapsed_ms)
                if elapsed_ms >= THRESHOLD_WARNING:
                    _log_slow_function_call(func_name, elapsed_ms)

        return wrapper

    if func is not None:
        return decorator(func)
    return decorator


def _log_slow_function_call(func_name, time_ms):
    severity = 'CRÍTICO' if time_ms >= THRESHOLD_CRITICAL else 'LENTO'
    _write_log(SLOW_FUNCTIONS_LOG, f"""
[{severity}] {_get_timestamp()}
Función: {func_name}
Tiempo: {time_ms:.0f} ms
────────────────────────────────────────
""")


def get_function_stats():
    """
    Returns:
        dict: {nombre: {calls, avg_time, max_time}}
    """
    with _stats_lock:
        result = {}
        for func_name, stats in _function_stats.items():
            calls = stats['calls']
            result[func_name] = {
                'calls': calls,
                'avg_time': round(stats['total_time'] / calls, 2) if calls else 0,
                'max_time': round(stats['max_time'], 2),
            }
        return result


def write_function_stats_report():
    """Vuelca las estadísticas acumuladas a slow_functions.log."""
    stats = get_function_stats()
    if not ENABLE_PROFILING or not stats:
        return

    lines = [f"\nREPORTE DE RENDIMIENTO DE FUNCIONES - {_get_timestamp()}\n"]
    for func_name, data in sorted(stats.items(), key=lambda x: x[1]['avg_time'], reverse=True):
        status = ''
        if data['avg_time'] >= THRESHOLD_CRITICAL:
            status = ' [CRÍTICO]'
        elif data['avg_time'] >= THRESHOLD_WARNING:
            status = ' [LENTO]'
        elif data['max_time'] >= THRESHOLD_CRITICAL:
            status = ' [PICOS ALTOS]'
        lines.append(
            f"{func_name}{status}: {data['calls']} llamadas, "
            f"promedio {data['avg_time']:.0f} ms, máximo {data['max_time']:.0f} ms"
        )
    _write_log(SLOW_FUNCTIONS_LOG, '\n'.join(lines) + '\n')


def reset_stats():
    with _stats_lock:
        _function_stats.clear()


__all__ = [
    'configure',
    'init_profiling',
    'profile_function',
    'get_function_stats',
    'write_function_stats_report',
    'reset_stats',
]
