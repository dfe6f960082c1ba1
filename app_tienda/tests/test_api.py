"""
Tests de la API HTTP (Flask test client)
"""
import pytest


def login_admin(client, username='admin', password='secreto'):
    """Inicia sesión (el primer login registra al administrador) y retorna el token CSRF."""
    response = client.post('/api/login', json={'username': username, 'password': password})
    assert response.status_code == 200, response.get_json()
    return response.get_json()['csrf_token']


@pytest.fixture
def admin(client):
    token = login_admin(client)
    return {'X-CSRF-Token': token}


def create_product(client, headers, **data):
    payload = {'name': 'Blusa', 'category': 'ROPA PARA DAMAS', 'cost_price': 10, 'sale_price': 25, 'stock': 5}
    payload.update(data)
    response = client.post('/api/products', json=payload, headers=headers)
    assert response.status_code == 201, response.get_json()
    return response.get_json()['product']


# =============================================================================
# SESIÓN Y SEGURIDAD
# =============================================================================

def test_admin_routes_require_session(client):
    assert client.get('/api/products').status_code == 401
    assert client.get('/api/reports/summary').status_code == 401
    assert client.post('/api/sales', json={}).status_code == 401


def test_write_requires_csrf(client, admin):
    response = client.post('/api/products', json={'name': 'Blusa'})
    assert response.status_code == 403

    response = client.post('/api/products', json={'name': 'Blusa'}, headers={'X-CSRF-Token': 'otro'})
    assert response.status_code == 403

    # El token también se acepta en el cuerpo JSON
    response = client.post('/api/products', json={'name': 'Blusa', 'csrf_token': admin['X-CSRF-Token']})
    assert response.status_code == 201


def test_login_errors(client):
    assert client.post('/api/login', json={'username': 'admin'}).status_code == 400
    login_admin(client)
    client.post('/api/logout', headers={'X-CSRF-Token': client.get('/api/session').get_json()['csrf_token']})

    assert client.post('/api/login', json={'username': 'admin', 'password': 'mala'}).status_code == 401
    assert client.get('/api/session').get_json()['authenticated'] is False


def test_session_info(client, admin):
    data = client.get('/api/session').get_json()
    assert data['authenticated'] is True
    assert data['user'] == 'admin'
    assert data['csrf_token'] == admin['X-CSRF-Token']


def test_security_headers(client):
    response = client.get('/api/catalog')
    assert response.headers['X-Frame-Options'] == 'DENY'
    assert response.headers['X-Content-Type-Options'] == 'nosniff'
    assert 'Strict-Transport-Security' not in response.headers


def test_unknown_route_is_json_404(client):
    response = client.get('/api/no-existe')
    assert response.status_code == 404
    assert response.get_json()['ok'] is False


# =============================================================================
# TIENDA PÚBLICA
# =============================================================================

def test_public_catalog(client, admin):
    product = create_product(client, admin, name='Blusa Roja')
    create_product(client, admin, name='Agotada', stock=0)

    data = client.get('/api/catalog').get_json()
    assert [p['name'] for p in data['products']] == ['Blusa Roja']
    assert 'cost_price' not in data['products'][0]

    detail = client.get(f"/api/catalog/{product['id']}")
    assert detail.status_code == 200

    link = client.get(f"/api/catalog/{product['id']}/whatsapp").get_json()
    assert link['url'].startswith('https://wa.me/51999509661?text=')
    assert 'Blusa Roja' in link['message']

    assert client.get('/api/catalog/nope').status_code == 404


def test_store_info(client, admin):
    client.put('/api/settings', json={'whatsapp': '987 654 321', 'instagram': 'mivis'}, headers=admin)

    store = client.get('/api/store').get_json()['store']

    assert store['whatsapp'] == '51987654321'
    assert store['instagram'] == 'mivis'
    assert store['name'] == 'Mivis Studio'


# =============================================================================
# INVENTARIO, VENTAS Y COBRANZA
# =============================================================================

def test_product_crud(client, admin):
    product = create_product(client, admin, barcode='775')
    url = f"/api/products/{product['id']}"

    assert client.get('/api/products/barcode/775').get_json()['product']['id'] == product['id']
    assert client.patch(url, json={'sale_price': 30}, headers=admin).get_json()['product']['sale_price'] == 30
    assert client.patch(url, json={'category': 'ZAPATOS'}, headers=admin).status_code == 400
    assert client.post(f'{url}/stock', json={'delta': -4}, headers=admin).get_json()['stock'] == 1
    assert [p['id'] for p in client.get('/api/products/low-stock').get_json()['products']] == [product['id']]
    assert client.delete(url, headers=admin).status_code == 200
    assert client.get(url).status_code == 404
    assert client.patch(url, json={'name': 'X'}, headers=admin).status_code == 404


def test_credit_sale_flow(client, admin):
    product = create_product(client, admin, sale_price=30)

    response = client.post('/api/sales', json={
        'items': [{'product_id': product['id'], 'quantity': 1}],
        'type': 'credito',
        'customer': {'name': 'Ana', 'contact': '987654321'},
        'installments': 3,
        'frequency': 'semanal',
    }, headers=admin)
    assert response.status_code == 201, response.get_json()
    sale = response.get_json()['sale']
    assert sale['type'] == 'Credit'

    paid = client.post(f"/api/sales/{sale['id']}/installments/pay", json={'numbers': [1]}, headers=admin)
    assert paid.status_code == 200
    assert paid.get_json()['sale']['remaining_balance'] == 20

    partial = client.post(f"/api/sales/{sale['id']}/payments", json={'amount': 5, 'method': 'Yape'}, headers=admin)
    assert partial.get_json()['sale']['remaining_balance'] == 15

    too_much = client.post(f"/api/sales/{sale['id']}/payments", json={'amount': 100}, headers=admin)
    assert too_much.status_code == 400

    customer_id = sale['customer_id']
    statement = client.get(f'/api/customers/{customer_id}/statement').get_json()
    assert statement['balance'] == 15
    assert statement['paid_installments'] == 1

    reminder = client.get(f'/api/customers/{customer_id}/reminder').get_json()
    assert reminder['url'].startswith('https://wa.me/51987654321?text=')

    settled = client.post(f'/api/customers/{customer_id}/payments', json={'amount': 15}, headers=admin)
    assert settled.get_json()['balance'] == 0
    assert client.get(f"/api/sales/{sale['id']}").get_json()['sale']['status'] == 'Paid'


def test_sale_validation_and_not_found(client, admin):
    assert client.post('/api/sales', json={'items': []}, headers=admin).status_code == 400
    assert client.get('/api/sales/nope').status_code == 404
    assert client.delete('/api/sales/nope', headers=admin).status_code == 404
    assert client.post('/api/sales/nope/payments', json={'amount': 1}, headers=admin).status_code == 404
    assert client.post('/api/customers/nope/payments', json={'amount': 1}, headers=admin).status_code == 404


def test_charge_product_to_customer(client, admin):
    product = create_product(client, admin, sale_price=40)
    customer = client.post('/api/customers', json={'name': 'Rosa'}, headers=admin)
    assert customer.status_code == 201
    customer_id = customer.get_json()['customer']['id']

    response = client.post(f'/api/customers/{customer_id}/charge', json={'product_id': product['id']}, headers=admin)

    assert response.status_code == 201
    assert client.get(f'/api/customers/{customer_id}').get_json()['customer']['balance'] == 40
    assert client.post('/api/customers', json={'name': 'rosa'}, headers=admin).status_code == 200


# =============================================================================
# REPORTES, ADMINISTRADORES Y MANTENIMIENTO
# =============================================================================

def test_reports(client, admin):
    product = create_product(client, admin)
    client.post('/api/sales', json={'items': [{'product_id': product['id'], 'quantity': 2}]}, headers=admin)

    summary = client.get('/api/reports/summary').get_json()['summary']
    assert summary['total_sales'] == 50
    assert summary['inventory_value'] == 30

    breakdown = client.get('/api/reports/sales?period=today').get_json()
    assert breakdown['summary']['sales_count'] == 1

    csv_response = client.get('/api/reports/sales.csv')
    assert csv_response.mimetype == 'text/csv'
    assert 'ventas.csv' in csv_response.headers['Content-Disposition']
    assert csv_response.get_data(as_text=True).splitlines()[0].startswith('sale_id,date,type')

    logs = client.get('/api/audit?type=VENTA').get_json()['logs']
    assert len(logs) == 1


def test_admin_management(client, admin):
    assert client.get('/api/admins').get_json()['admins'] == ['admin']

    # No se puede quitar al único administrador
    response = client.delete('/api/admins/admin', headers=admin)
    assert response.status_code == 400
    assert response.get_json()['ok'] is False

    assert client.post('/api/admins', json={'username': 'rosa', 'password': 'clave'}, headers=admin).status_code == 201
    assert client.post('/api/admins', json={'username': 'rosa', 'password': 'clave'}, headers=admin).status_code == 400
    assert client.delete('/api/admins/nadie', headers=admin).status_code == 404
    assert client.delete('/api/admins/rosa', headers=admin).status_code == 200

    settings = client.get('/api/settings').get_json()
    assert settings['admins'] == ['admin']
    assert 'authorized_admins' not in settings['settings']


def test_reset(client, admin):
    create_product(client, admin)

    assert client.post('/api/reset', json={'target': 'todo'}, headers=admin).status_code == 400
    response = client.post('/api/reset', json={'target': 'all'}, headers=admin)

    assert response.get_json()['deleted'] == {'products': 1, 'customers': 0, 'sales': 0}
    assert client.get('/api/products').get_json()['count'] == 0


def test_backups(client, admin):
    response = client.post('/api/backups', headers=admin)
    assert response.status_code == 201
    assert client.get('/api/backups').get_json()['total_backups'] == 1
