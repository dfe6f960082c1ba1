# ==============================================================================
# APLICACIÓN FLASK - API JSON DE LA TIENDA
# ==============================================================================
# Rutas públicas (catálogo) y rutas del panel administrativo.
# Las rutas solo orquestan: request -> servicio -> respuesta.
# Toda la lógica de negocio vive en services/.
#
# Respuestas: {"ok": bool, "error": str opcional, ...}
#   400 validación | 401 sin sesión | 403 CSRF inválido | 404 no existe
# ==============================================================================

import os
import uuid
from functools import wraps

from flask import Blueprint, Flask, Response, current_app, request, session

from app_tienda import config
from app_tienda import performance_logger
from app_tienda.app_container import AppContainer, get_container
from app_tienda.services import LastAdminError, run_startup_backup
from app_tienda.services.catalog_service import normalize_phone, whatsapp_link


api = Blueprint('api', __name__, url_prefix='/api')

# Métodos que modifican datos (requieren token CSRF)
UNSAFE_METHODS = frozenset(['POST', 'PUT', 'PATCH', 'DELETE'])


def container() -> AppContainer:
    return current_app.extensions['tienda']


def current_user() -> str:
    return session.get('user')


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def respond(result: dict, status: int = 200):
    """Resultado de un servicio: ok -> status, error -> 400."""
    if result.get('ok'):
        return result, status
    return result, 400


def not_found(message: str):
    return {"ok": False, "error": message}, 404


# ═══════════════════════════════════════════════════════════════════════════════
# SEGURIDAD: SESIÓN Y CSRF
# ═══════════════════════════════════════════════════════════════════════════════

def generate_csrf_token() -> str:
    if 'csrf_token' not in session:
        session['csrf_token'] = uuid.uuid4().hex
    return session['csrf_token']


def login_required(f):
    @wraps(f)
    def wrapper(*args, **kwargs):
        if 'user' not in session:
            return {"ok": False, "error": "Debes iniciar sesión"}, 401
        return f(*args, **kwargs)
    return wrapper


def verify_csrf(f):
    @wraps(f)
    def wrapper(*args, **kwargs):
        if request.method in UNSAFE_METHODS:
            token = session.get('csrf_token')
            sent = (
                request.headers.get('X-CSRF-Token') or
                request.headers.get('X-CSRFToken') or
                request.form.get('csrf_token')
            )
            if not sent and request.is_json:
                sent = json_body().get('csrf_token')
            if not token or not sent or token != sent:
                return {"ok": False, "error": "CSRF token inválido"}, 403
        return f(*args, **kwargs)
    return wrapper


def admin_route(f):
    """Sesión de administrador + CSRF en métodos que escriben."""
    return login_required(verify_csrf(f))


# ═══════════════════════════════════════════════════════════════════════════════
# TIENDA PÚBLICA
# ═══════════════════════════════════════════════════════════════════════════════

@api.route('/catalog', methods=['GET'])
def catalog():
    products = container().catalog_service.list_catalog(request.args.get('category'))
    return {"ok": True, "products": products, "count": len(products)}


@api.route('/catalog/categories', methods=['GET'])
def catalog_categories():
    return {"ok": True, "categories": container().catalog_service.list_categories()}


@api.route('/catalog/<product_id>', methods=['GET'])
def catalog_product(product_id):
    product = container().catalog_service.get_public_product(product_id)
    if not product:
        return not_found("Producto no disponible")
    return {"ok": True, "product": product}


@api.route('/catalog/<product_id>/whatsapp', methods=['GET'])
def catalog_whatsapp(product_id):
    catalog_service = container().catalog_service
    product = catalog_service.get_public_product(product_id)
    if not product:
        return not_found("Producto no disponible")
    return {
        "ok": True,
        "url": catalog_service.whatsapp_inquiry_link(product),
        "message": catalog_service.inquiry_message(product),
    }


@api.route('/store', methods=['GET'])
def store_info():
    c = container()
    info = c.settings_service.get_public_settings()
    info['whatsapp'] = c.catalog_service.whatsapp_number()
    info['name'] = c.store_name
    return {"ok": True, "store": info}


# ═══════════════════════════════════════════════════════════════════════════════
# SESIÓN
# ═══════════════════════════════════════════════════════════════════════════════

@api.route('/login', methods=['POST'])
def login():
    data = json_body() or request.form
    username = (data.get('username') or '').strip()
    password = data.get('password') or ''
    if not username or not password:
        return {"ok": False, "error": "Usuario y contraseña requeridos"}, 400

    user = container().settings_service.authenticate(username, password)
    if not user:
        return {"ok": False, "error": "Usuario o contraseña incorrecta"}, 401

    session.clear()
    session.permanent = True
    session['user'] = user
    return {"ok": True, "user": user, "csrf_token": generate_csrf_token()}


@api.route('/logout', methods=['POST'])
@login_required
@verify_csrf
def logout():
    session.clear()
    return {"ok": True}


@api.route('/session', methods=['GET'])
def session_info():
    if 'user' not in session:
        return {"ok": True, "authenticated": False}
    return {"ok": True, "authenticated": True, "user": current_user(), "csrf_token": generate_csrf_token()}


# ═══════════════════════════════════════════════════════════════════════════════
# INVENTARIO
# ═══════════════════════════════════════════════════════════════════════════════

@api.route('/products', methods=['GET'])
@admin_route
def list_products():
    products = container().inventory_service.search(request.args.get('q', ''), request.args.get('category'))
    return {"ok": True, "products": products, "count": len(products)}


@api.route('/products', methods=['POST'])
@admin_route
def create_product():
    return respond(container().inventory_service.create_product(json_body(), current_user()), 201)


@api.route('/products/low-stock', methods=['GET'])
@admin_route
def low_stock_products():
    threshold = request.args.get('threshold', type=int)
    if threshold is None:
        threshold = current_app.config['LOW_STOCK_THRESHOLD']
    return {"ok": True, "products": container().inventory_service.get_low_stock_products(threshold)}


@api.route('/products/barcode/<barcode>', methods=['GET'])
@admin_route
def product_by_barcode(barcode):
    product = container().inventory_service.find_by_barcode(barcode)
    if not product:
        return not_found("Producto no encontrado")
    return {"ok": True, "product": product}


@api.route('/products/<product_id>', methods=['GET'])
@admin_route
def get_product(product_id):
    product = container().inventory_service.get_product(product_id)
    if not product:
        return not_found("Producto no encontrado")
    return {"ok": True, "product": product}


@api.route('/products/<product_id>', methods=['PATCH', 'PUT'])
@admin_route
def update_product(product_id):
    inventory = container().inventory_service
    if not inventory.get_product(product_id):
        return not_found("Producto no encontrado")
    return respond(inventory.update_product(product_id, json_body(), current_user()))


@api.route('/products/<product_id>', methods=['DELETE'])
@admin_route
def delete_product(product_id):
    removed = container().inventory_service.delete_product(product_id, current_user())
    if not removed:
        return not_found("Producto no encontrado")
    return {"ok": True, "product_id": product_id}


@api.route('/products/<product_id>/stock', methods=['POST'])
@admin_route
def adjust_stock(product_id):
    inventory = container().inventory_service
    if not inventory.get_product(product_id):
        return not_found("Producto no encontrado")
    return respond(inventory.adjust_stock(product_id, json_body().get('delta'), current_user()))


# ═══════════════════════════════════════════════════════════════════════════════
# VENTAS (PUNTO DE VENTA)
# ═══════════════════════════════════════════════════════════════════════════════

@api.route('/sales', methods=['GET'])
@admin_route
def list_sales():
    sales = container().sales_service.list_sales(
        sale_type=request.args.get('type'),
        status=request.args.get('status'),
        customer_id=request.args.get('customer_id'),
        from_date=request.args.get('from'),
        to_date=request.args.get('to'),
    )
    return {"ok": True, "sales": sales, "count": len(sales)}


@api.route('/sales', methods=['POST'])
@admin_route
def create_sale():
    return respond(container().sales_service.process_sale(json_body(), current_user()), 201)


@api.route('/sales/<sale_id>', methods=['GET'])
@admin_route
def get_sale(sale_id):
    sale = container().sales_service.get_sale(sale_id)
    if not sale:
        return not_found("Venta no encontrada")
    return {"ok": True, "sale": sale}


@api.route('/sales/<sale_id>', methods=['DELETE'])
@admin_route
def delete_sale(sale_id):
    sales = container().sales_service
    if not sales.get_sale(sale_id):
        return not_found("Venta no encontrada")
    return respond(sales.delete_sale(sale_id, current_user()))


@api.route('/sales/<sale_id>/items/<int:index>', methods=['PATCH'])
@admin_route
def update_sale_item_price(sale_id, index):
    sales = container().sales_service
    if not sales.get_sale(sale_id):
        return not_found("Venta no encontrada")
    return respond(sales.update_sale_price(sale_id, index, json_body().get('unit_price'), current_user()))


# ═══════════════════════════════════════════════════════════════════════════════
# COBRANZA
# ═══════════════════════════════════════════════════════════════════════════════

@api.route('/sales/<sale_id>/payments', methods=['POST'])
@admin_route
def record_payment(sale_id):
    if not container().sales_service.get_sale(sale_id):
        return not_found("Venta no encontrada")
    data = json_body()
    return respond(container().payment_service.record_payment(
        sale_id, data.get('amount'), data.get('method'), current_user()
    ))


@api.route('/sales/<sale_id>/payments/<int:index>', methods=['DELETE'])
@admin_route
def delete_payment(sale_id, index):
    if not container().sales_service.get_sale(sale_id):
        return not_found("Venta no encontrada")
    return respond(container().payment_service.delete_payment(sale_id, index, current_user()))


@api.route('/sales/<sale_id>/installments/pay', methods=['POST'])
@admin_route
def pay_installments(sale_id):
    if not container().sales_service.get_sale(sale_id):
        return not_found("Venta no encontrada")
    data = json_body()
    return respond(container().payment_service.record_installment_payment(
        sale_id, data.get('numbers') or [], data.get('method'), current_user()
    ))


@api.route('/sales/<sale_id>/installments/<int:number>/reverse', methods=['POST'])
@admin_route
def reverse_installment(sale_id, number):
    if not container().sales_service.get_sale(sale_id):
        return not_found("Venta no encontrada")
    return respond(container().payment_service.reverse_installment_payment(sale_id, number, current_user()))


@api.route('/sales/<sale_id>/installments/<int:number>', methods=['PATCH'])
@admin_route
def update_installment(sale_id, number):
    if not container().sales_service.get_sale(sale_id):
        return not_found("Venta no encontrada")
    return respond(container().payment_service.update_installment_date(
        sale_id, number, json_body().get('due_date'), current_user()
    ))


# ═══════════════════════════════════════════════════════════════════════════════
# CLIENTES
# ═══════════════════════════════════════════════════════════════════════════════

@api.route('/customers', methods=['GET'])
@admin_route
def list_customers():
    with_debt = request.args.get('with_debt', '').lower() in ('1', 'true')
    customers = container().customer_service.list_customers(request.args.get('q', ''), with_debt)
    return {"ok": True, "customers": customers, "count": len(customers)}


@api.route('/customers', methods=['POST'])
@admin_route
def create_customer():
    result = container().customer_service.add_customer(json_body(), current_user())
    return respond(result, 201 if result.get('created') else 200)


@api.route('/customers/<customer_id>', methods=['GET'])
@admin_route
def get_customer(customer_id):
    customer = container().customer_service.get_customer(customer_id)
    if not customer:
        return not_found("Cliente no encontrado")
    return {"ok": True, "customer": customer}


@api.route('/customers/<customer_id>', methods=['PATCH', 'PUT'])
@admin_route
def update_customer(customer_id):
    customers = container().customer_service
    if not customers.get_customer(customer_id):
        return not_found("Cliente no encontrado")
    return respond(customers.update_customer(customer_id, json_body(), current_user()))


@api.route('/customers/<customer_id>', methods=['DELETE'])
@admin_route
def delete_customer(customer_id):
    if not container().customer_service.delete_customer(customer_id, current_user()):
        return not_found("Cliente no encontrado")
    return {"ok": True, "customer_id": customer_id}


@api.route('/customers/<customer_id>/statement', methods=['GET'])
@admin_route
def customer_statement(customer_id):
    statement = container().customer_service.get_statement(customer_id)
    if statement is None:
        return not_found("Cliente no encontrado")
    return {"ok": True, **statement}


@api.route('/customers/<customer_id>/reminder', methods=['GET'])
@admin_route
def customer_reminder(customer_id):
    c = container()
    message = c.customer_service.reminder_message(customer_id)
    if message is None:
        return not_found("Cliente no encontrado")
    contact = c.customer_service.get_customer(customer_id).get('contact')
    number = normalize_phone(contact, c.country_code)
    return {
        "ok": True,
        "message": message,
        "url": whatsapp_link(number, message) if number else None,
    }


@api.route('/customers/<customer_id>/payments', methods=['POST'])
@admin_route
def customer_payment(customer_id):
    if not container().customer_service.get_customer(customer_id):
        return not_found("Cliente no encontrado")
    data = json_body()
    return respond(container().payment_service.apply_customer_payment(
        customer_id, data.get('amount'), data.get('method'), current_user()
    ))


@api.route('/customers/<customer_id>/charge', methods=['POST'])
@admin_route
def customer_charge(customer_id):
    if not container().customer_service.get_customer(customer_id):
        return not_found("Cliente no encontrado")
    return respond(container().sales_service.register_product_to_customer(
        customer_id, json_body().get('product_id'), current_user()
    ), 201)


# ═══════════════════════════════════════════════════════════════════════════════
# REPORTES Y ACTIVIDAD
# ═══════════════════════════════════════════════════════════════════════════════

@api.route('/reports/summary', methods=['GET'])
@admin_route
def report_summary():
    return {"ok": True, "summary": container().report_service.financial_summary()}


@api.route('/reports/sales', methods=['GET'])
@admin_route
def report_sales():
    report = container().report_service.sales_breakdown(
        request.args.get('period', 'today'),
        request.args.get('start'),
        request.args.get('end'),
    )
    return {"ok": True, **report}


@api.route('/reports/sales.csv', methods=['GET'])
@admin_route
def export_sales_csv():
    output = container().report_service.export_sales_csv(
        from_date=request.args.get('from'),
        to_date=request.args.get('to'),
        sale_type=request.args.get('type'),
    )
    return Response(output, mimetype='text/csv', headers={'Content-Disposition': 'attachment;filename=ventas.csv'})


@api.route('/audit', methods=['GET'])
@admin_route
def audit_logs():
    logs = container().audit_service.get_logs(
        request.args.get('type'),
        request.args.get('q', ''),
        request.args.get('limit', 200, type=int),
    )
    return {"ok": True, "logs": logs, "count": len(logs)}


# ═══════════════════════════════════════════════════════════════════════════════
# CONFIGURACIÓN Y ADMINISTRADORES
# ═══════════════════════════════════════════════════════════════════════════════

@api.route('/settings', methods=['GET'])
@admin_route
def get_settings():
    settings = container().settings_service
    return {"ok": True, "settings": settings.get_public_settings(), "admins": settings.list_admins()}


@api.route('/settings', methods=['PUT', 'PATCH'])
@admin_route
def update_settings():
    return respond(container().settings_service.update_links(json_body(), current_user()))


@api.route('/admins', methods=['GET'])
@admin_route
def list_admins():
    return {"ok": True, "admins": container().settings_service.list_admins()}


@api.route('/admins', methods=['POST'])
@admin_route
def add_admin():
    data = json_body()
    return respond(container().settings_service.add_admin(
        data.get('username'), data.get('password'), current_user()
    ), 201)


@api.route('/admins/<username>', methods=['DELETE'])
@admin_route
def remove_admin(username):
    result = container().settings_service.remove_admin(username, current_user())
    if not result['ok']:
        return not_found(result['error'])
    return result


@api.route('/admins/<username>/password', methods=['POST'])
@admin_route
def change_admin_password(username):
    return respond(container().settings_service.change_password(
        username, json_body().get('password'), current_user()
    ))


@api.route('/backups', methods=['GET'])
@admin_route
def backup_status():
    return {"ok": True, **container().backup_service.get_backup_status()}


@api.route('/backups', methods=['POST'])
@admin_route
def create_backup():
    result = container().backup_service.create_backup(force=True)
    result['ok'] = result['success']
    return respond(result, 201)


@api.route('/reset', methods=['POST'])
@admin_route
def reset_data():
    """
    Borra colecciones completas.
    target: products | customers | sales | all
    """
    target = (json_body().get('target') or '').strip().lower()
    c = container()
    user = current_user()
    resets = {
        'products': c.inventory_service.reset,
        'customers': c.customer_service.reset,
        'sales': c.sales_service.reset,
    }
    if target == 'all':
        deleted = {name: fn(user) for name, fn in resets.items()}
    elif target in resets:
        deleted = {target: resets[target](user)}
    else:
        return {"ok": False, "error": "Destino no válido (products, customers, sales o all)"}, 400
    print(f"[ADVERTENCIA] Datos reiniciados por {user}: {deleted}")
    return {"ok": True, "deleted": deleted}


# ═══════════════════════════════════════════════════════════════════════════════
# FACTORY
# ═══════════════════════════════════════════════════════════════════════════════

def set_security_headers(response):
    response.headers['X-Frame-Options'] = 'DENY'
    response.headers['X-Content-Type-Options'] = 'nosniff'
    response.headers['Referrer-Policy'] = 'no-referrer-when-downgrade'
    response.headers['Permissions-Policy'] = 'geolocation=(), microphone=()'
    # HSTS solo con HTTPS real
    if request.is_secure:
        response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
    return response


def create_app(overrides: dict = None) -> Flask:
    """
    Crea la aplicación.

    Args:
        overrides: Claves de configuración que reemplazan a las de config.py
                   (DATA_DIR, ENABLE_BACKUPS, TESTING, ...)
    """
    app = Flask(__name__)
    app.config.update(config.flask_config())
    app.config['ENABLE_PROFILING'] = config.ENABLE_PROFILING
    if overrides:
        app.config.update(overrides)

    data_dir = app.config['DATA_DIR']
    # Los logs siguen al directorio de datos salvo que se indique otro
    if overrides and 'DATA_DIR' in overrides and 'LOGS_DIR' not in overrides:
        app.config['LOGS_DIR'] = os.path.join(data_dir, 'logs')
    performance_logger.configure(
        logs_dir=app.config['LOGS_DIR'],
        enabled=app.config['ENABLE_PROFILING'],
    )

    AppContainer.reset_instance()
    app.extensions['tienda'] = get_container(
        data_dir,
        store_name=app.config['STORE_NAME'],
        country_code=app.config['STORE_COUNTRY_CODE'],
    )

    # Crea la configuración por defecto y migra contraseñas heredadas
    app.extensions['tienda'].settings_service.load()

    if app.config['ENABLE_BACKUPS']:
        run_startup_backup(data_dir)

    performance_logger.init_profiling(app)
    app.after_request(set_security_headers)
    app.register_blueprint(api)

    @app.errorhandler(404)
    def _not_found(_error):
        return {"ok": False, "error": "Recurso no encontrado"}, 404

    @app.errorhandler(405)
    def _method_not_allowed(_error):
        return {"ok": False, "error": "Método no permitido"}, 405

    @app.errorhandler(LastAdminError)
    def _last_admin(error):
        return {"ok": False, "error": str(error)}, 400

    return app
