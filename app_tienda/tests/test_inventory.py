import pytest


def test_create_product_normalizes_fields(container):
    result = container.inventory_service.create_product({
        'name': '  Blusa Roja ',
        'category': 'ropa para damas',
        'cost_price': '12.456',
        'sale_price': 30,
        'stock': '4',
        'barcode': ' 7750000000011 ',
        'unknown': 'x',
    }, 'admin')

    assert result['ok'], result
    product = result['product']
    assert product['name'] == 'Blusa Roja'
    assert product['category'] == 'ROPA PARA DAMAS'
    assert product['cost_price'] == pytest.approx(12.46)
    assert product['stock'] == 4
    assert product['barcode'] == '7750000000011'
    assert product['active'] is True
    assert 'unknown' not in product
    assert container.audit_service.get_logs('PRODUCTO')


def test_create_product_validation(container, add_product):
    service = container.inventory_service
    assert not service.create_product({'name': ''})['ok']
    assert not service.create_product({'name': 'X', 'category': 'ZAPATOS'})['ok']
    assert not service.create_product({'name': 'X', 'sale_price': -1})['ok']
    assert not service.create_product({'name': 'X', 'stock': 'muchos'})['ok']

    add_product(barcode='123')
    assert not service.create_product({'name': 'Otro', 'barcode': '123'})['ok']


def test_category_defaults_to_otros(container):
    result = container.inventory_service.create_product({'name': 'Vela'})
    assert result['product']['category'] == 'OTROS'


def test_update_product_partial(container, add_product):
    product = add_product(barcode='111')
    other = add_product(name='Falda', barcode='222')
    service = container.inventory_service

    result = service.update_product(product['id'], {'sale_price': 29.9, 'active': False})

    assert result['ok']
    assert result['product']['sale_price'] == pytest.approx(29.9)
    assert result['product']['active'] is False
    assert result['product']['name'] == 'Blusa'
    assert not service.update_product(product['id'], {'barcode': '222'})['ok']
    assert service.update_product(other['id'], {'barcode': '222'})['ok']
    assert not service.update_product('nope', {'name': 'X'})['ok']


def test_adjust_stock(container, add_product):
    product = add_product(stock=2)
    service = container.inventory_service

    assert service.adjust_stock(product['id'], 3, 'admin')['stock'] == 5
    assert service.adjust_stock(product['id'], -7)['stock'] == -2
    assert not service.adjust_stock(product['id'], 0)['ok']
    assert not service.adjust_stock(product['id'], 'x')['ok']
    assert not service.adjust_stock('nope', 1)['ok']
    assert len(container.audit_service.get_logs('STOCK')) == 1


def test_low_stock_and_barcode(container, add_product):
    add_product(name='Collar', stock=1, barcode='999')
    add_product(name='Blusa', stock=10)
    add_product(name='Pulsera', stock=0, active=False)
    service = container.inventory_service

    assert [p['name'] for p in service.get_low_stock_products()] == ['Collar']
    assert len(service.get_low_stock_products(threshold=10)) == 2
    assert service.find_by_barcode('999')['name'] == 'Collar'
    assert service.find_by_barcode('') is None


def test_search(container, add_product):
    add_product(name='Blusa Roja', barcode='A1')
    add_product(name='Billetera', category='CARTERAS/BILLETERAS', barcode='B2')
    service = container.inventory_service

    assert [p['name'] for p in service.search('blu')] == ['Blusa Roja']
    assert [p['name'] for p in service.search('b2')] == ['Billetera']
    assert [p['name'] for p in service.search(category='carteras/billeteras')] == ['Billetera']


def test_delete_and_reset(container, add_product):
    product = add_product()
    add_product(name='Otro')
    service = container.inventory_service

    assert service.delete_product(product['id'], 'admin')['id'] == product['id']
    assert service.delete_product(product['id']) is None
    assert service.reset('admin') == 1
    assert container.product_repo.list_all() == []
