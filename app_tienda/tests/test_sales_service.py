import pytest


def sell(container, product, quantity=1, **data):
    payload = {'items': [{'product_id': product['id'], 'quantity': quantity}]}
    payload.update(data)
    return container.sales_service.process_sale(payload, 'admin')


def stock_of(container, product):
    return container.product_repo.get_by_id(product['id'])['stock']


def test_cash_sale_totals_and_stock(container, add_product):
    product = add_product(cost=10, price=25, stock=5)

    result = sell(container, product, 2, discount=5, type='Cash', payment_method='Yape')

    assert result['ok'], result
    sale = result['sale']
    assert sale['total'] == pytest.approx(45)
    assert sale['cost_total'] == pytest.approx(20)
    assert sale['profit'] == pytest.approx(25)
    assert sale['status'] == 'Paid'
    assert sale['remaining_balance'] == 0
    assert len(sale['payments']) == 1
    assert sale['payments'][0]['method'] == 'Yape'
    assert sale['payments'][0]['amount'] == pytest.approx(45)
    assert 'installment_plan' not in sale
    assert stock_of(container, product) == 3


def test_cash_sale_with_customer_updates_history_only(container, add_product):
    product = add_product()
    customer = container.customer_service.add_customer({'name': 'Rosa'})['customer']

    result = sell(container, product, type='Cash', customer_id=customer['id'])

    saved = container.customer_repo.get_by_id(customer['id'])
    assert result['sale']['id'] in saved['history']
    assert saved['balance'] == 0
    assert result['sale']['client_name'] == 'Rosa'


def test_credit_sale_creates_customer_and_plan(container, add_product):
    product = add_product(price=30, stock=4)

    result = sell(
        container, product, 2,
        type='Credit',
        customer={'name': 'Ana Torres', 'contact': '987654321'},
        installments=3,
        frequency='Weekly',
        start_date='2024-06-01',
    )

    assert result['ok'], result
    sale = result['sale']
    assert sale['status'] == 'Pending'
    assert sale['remaining_balance'] == pytest.approx(60)
    assert sale['payments'] == []
    plan = sale['installment_plan']
    assert plan['number_of_installments'] == 3
    assert [i['amount'] for i in plan['installments']] == [20, 20, 20]
    assert plan['installments'][0]['due_date'].startswith('2024-06-01')

    customer = container.customer_repo.get_by_id(sale['customer_id'])
    assert customer['name'] == 'Ana Torres'
    assert customer['balance'] == pytest.approx(60)
    assert customer['history'] == [sale['id']]
    assert stock_of(container, product) == 2


def test_credit_sale_reuses_customer_by_name(container, add_product):
    product = add_product()
    existing = container.customer_service.add_customer({'name': 'Rosa Quispe'})['customer']

    result = sell(container, product, type='Credit', customer={'name': 'rosa quispe'})

    assert result['sale']['customer_id'] == existing['id']
    assert len(container.customer_repo.list_all()) == 1


def test_credit_sale_requires_customer(container, add_product):
    product = add_product()
    result = sell(container, product, type='Credit')
    assert not result['ok']
    assert stock_of(container, product) == 5
    assert container.sales_repo.list_all() == []


def test_credit_sale_unknown_customer(container, add_product):
    product = add_product()
    result = sell(container, product, type='Credit', customer_id='no-existe')
    assert not result['ok']


def test_empty_cart_rejected(container):
    result = container.sales_service.process_sale({'items': [], 'type': 'Cash'})
    assert not result['ok']
    assert 'vacío' in result['error']


def test_unknown_product_rejected(container):
    result = container.sales_service.process_sale({'items': [{'product_id': 'xyz', 'quantity': 1}]})
    assert not result['ok']


def test_invalid_quantity_rejected(container, add_product):
    product = add_product()
    assert not sell(container, product, 0)['ok']


def test_manual_item_skips_stock(container, add_product):
    product = add_product(cost=10, price=25)
    result = container.sales_service.process_sale({
        'items': [
            {'product_id': product['id'], 'quantity': 1},
            {'name': 'Arreglo de basta', 'unit_price': 15, 'quantity': 1},
        ],
        'type': 'Cash',
    })

    assert result['ok'], result
    items = result['sale']['items']
    assert items[1]['product_id'].startswith('manual-')
    assert result['sale']['total'] == pytest.approx(40)
    assert result['sale']['cost_total'] == pytest.approx(10)
    assert stock_of(container, product) == 4


def test_discount_larger_than_subtotal_gives_zero_total(container, add_product):
    product = add_product(price=25)
    result = sell(container, product, discount=100, type='Cash')
    assert result['sale']['total'] == 0


def test_stock_is_not_clamped(container, add_product):
    product = add_product(stock=1)
    result = sell(container, product, 3, type='Cash')
    assert result['ok']
    assert stock_of(container, product) == -2


def test_sale_date_is_kept(container, add_product):
    product = add_product()
    result = sell(container, product, type='Cash', date='2024-02-14')
    assert result['sale']['date'] == '2024-02-14T12:00:00+00:00'


def test_sale_is_audited(container, add_product):
    product = add_product()
    sell(container, product, type='Cash')
    logs = container.audit_service.get_logs('VENTA')
    assert len(logs) == 1
    assert 'al contado' in logs[0]['message']


def test_delete_credit_sale_reverts_stock_and_balance(container, add_product):
    product = add_product(price=30, stock=4)
    sale = sell(container, product, 2, type='Credit', customer={'name': 'Ana'})['sale']

    result = container.sales_service.delete_sale(sale['id'], 'admin')

    assert result['ok']
    assert container.sales_repo.get_by_id(sale['id']) is None
    assert stock_of(container, product) == 4
    assert container.customer_repo.get_by_id(sale['customer_id'])['balance'] == 0


def test_delete_unknown_sale(container):
    assert not container.sales_service.delete_sale('nope')['ok']


def test_update_price_on_credit_sale(container, add_product):
    product = add_product(cost=10, price=25)
    sale = sell(container, product, 2, type='Credit', customer={'name': 'Ana'})['sale']

    result = container.sales_service.update_sale_price(sale['id'], 0, 30, 'admin')

    assert result['ok'], result
    updated = result['sale']
    assert updated['items'][0]['unit_price'] == 30
    assert updated['total'] == pytest.approx(60)
    assert updated['profit'] == pytest.approx(40)
    assert updated['remaining_balance'] == pytest.approx(60)
    assert container.customer_repo.get_by_id(sale['customer_id'])['balance'] == pytest.approx(60)


def test_update_price_on_cash_sale_stays_paid_when_lowered(container, add_product):
    product = add_product(price=25)
    sale = sell(container, product, 2, type='Cash')['sale']

    updated = container.sales_service.update_sale_price(sale['id'], 0, 20)['sale']

    assert updated['total'] == pytest.approx(40)
    assert updated['remaining_balance'] == 0
    assert updated['status'] == 'Paid'


def test_update_price_invalid_index(container, add_product):
    product = add_product()
    sale = sell(container, product, type='Cash')['sale']
    assert not container.sales_service.update_sale_price(sale['id'], 5, 10)['ok']
    assert not container.sales_service.update_sale_price(sale['id'], 0, -1)['ok']


def test_register_product_to_customer(container, add_product):
    product = add_product(price=35, stock=2)
    customer = container.customer_service.add_customer({'name': 'Lucía'})['customer']

    result = container.sales_service.register_product_to_customer(customer['id'], product['id'], 'admin')

    assert result['ok'], result
    sale = result['sale']
    assert sale['type'] == 'Credit'
    assert sale['items'][0]['quantity'] == 1
    plan = sale['installment_plan']
    assert plan['number_of_installments'] == 1
    assert plan['frequency'] == 'Monthly'
    assert plan['installments'][0]['amount'] == pytest.approx(35)
    assert stock_of(container, product) == 1
    assert container.customer_repo.get_by_id(customer['id'])['balance'] == pytest.approx(35)


def test_list_sales_filters(container, add_product):
    product = add_product(stock=10)
    sell(container, product, type='Cash', date='2024-01-10')
    credit = sell(container, product, type='Credit', customer={'name': 'Ana'}, date='2024-02-10')['sale']

    service = container.sales_service
    assert [s['id'] for s in service.list_sales(sale_type='Credit')] == [credit['id']]
    assert len(service.list_sales(status='Paid')) == 1
    assert len(service.list_sales(customer_id=credit['customer_id'])) == 1
    assert len(service.list_sales(from_date='2024-02-01')) == 1
    assert len(service.list_sales(to_date='2024-01-31')) == 1
    # Más recientes primero
    assert service.list_sales()[0]['id'] == credit['id']


def test_reset_sales(container, add_product):
    product = add_product()
    sell(container, product, type='Cash')
    assert container.sales_service.reset('admin') == 1
    assert container.sales_repo.list_all() == []


def test_rejected_credit_sale_creates_no_customer(container, add_product):
    product = add_product()

    result = sell(container, product, type='Credit', customer={'name': 'Nueva'}, frequency='diario')

    assert not result['ok']
    assert container.customer_repo.list_all() == []
    assert container.sales_repo.list_all() == []
    assert stock_of(container, product) == 5


def test_rejected_cash_sale_creates_no_customer(container, add_product):
    product = add_product()

    result = sell(container, product, type='Cash', customer={'name': 'Nueva'}, payment_method='Bitcoin')

    assert not result['ok']
    assert container.customer_repo.list_all() == []
    assert stock_of(container, product) == 5
