import pytest


@pytest.fixture
def credit_sale(container, add_product):
    """Venta al crédito de S/ 30 en 3 cuotas de S/ 10."""
    def _make(name='Ana', date='2024-01-10'):
        product = add_product(name=f'Cartera {date}', price=30, stock=10)
        result = container.sales_service.process_sale({
            'items': [{'product_id': product['id'], 'quantity': 1}],
            'type': 'Credit',
            'customer': {'name': name},
            'installments': 3,
            'frequency': 'Weekly',
            'date': date,
        }, 'admin')
        assert result['ok'], result
        return result['sale']
    return _make


def balance(container, sale):
    return container.customer_repo.get_by_id(sale['customer_id'])['balance']


def installment_status(sale):
    return [i['status'] for i in sale['installment_plan']['installments']]


def test_pay_one_installment(container, credit_sale):
    sale = credit_sale()

    result = container.payment_service.record_installment_payment(sale['id'], [1], 'Yape', 'admin')

    assert result['ok'], result
    updated = result['sale']
    assert result['applied'] == pytest.approx(10)
    assert updated['remaining_balance'] == pytest.approx(20)
    assert updated['status'] == 'Pending'
    assert installment_status(updated) == ['Paid', 'Pending', 'Pending']
    assert updated['payments'][0]['amount'] == pytest.approx(10)
    assert updated['payments'][0]['method'] == 'Yape'
    assert balance(container, sale) == pytest.approx(20)


def test_pay_all_installments_marks_sale_paid(container, credit_sale):
    sale = credit_sale()

    updated = container.payment_service.record_installment_payment(sale['id'], [1, 2, 3])['sale']

    assert updated['status'] == 'Paid'
    assert updated['remaining_balance'] == 0
    assert balance(container, sale) == 0


def test_paid_installments_are_ignored(container, credit_sale):
    sale = credit_sale()
    service = container.payment_service
    service.record_installment_payment(sale['id'], [1])

    result = service.record_installment_payment(sale['id'], [1, 2])

    assert result['applied'] == pytest.approx(10)
    assert result['sale']['remaining_balance'] == pytest.approx(10)
    assert not service.record_installment_payment(sale['id'], [1, 2])['ok']


def test_empty_selection_is_error(container, credit_sale):
    sale = credit_sale()
    result = container.payment_service.record_installment_payment(sale['id'], [])
    assert not result['ok']


def test_installment_payment_capped_at_remaining(container, credit_sale):
    sale = credit_sale()
    service = container.payment_service
    service.record_payment(sale['id'], 25, 'Cash')

    result = service.record_installment_payment(sale['id'], [1])

    assert result['applied'] == pytest.approx(5)
    assert result['sale']['remaining_balance'] == 0
    assert result['sale']['status'] == 'Paid'
    assert balance(container, sale) == 0


def test_reverse_installment_payment(container, credit_sale):
    sale = credit_sale()
    service = container.payment_service
    service.record_installment_payment(sale['id'], [1])

    result = service.reverse_installment_payment(sale['id'], 1, 'admin')

    assert result['ok'], result
    updated = result['sale']
    assert installment_status(updated) == ['Pending', 'Pending', 'Pending']
    assert updated['payments'] == []
    assert updated['remaining_balance'] == pytest.approx(30)
    assert updated['status'] == 'Pending'
    assert balance(container, sale) == pytest.approx(30)


def test_reverse_unpaid_installment_is_error(container, credit_sale):
    sale = credit_sale()
    assert not container.payment_service.reverse_installment_payment(sale['id'], 2)['ok']
    assert not container.payment_service.reverse_installment_payment(sale['id'], 9)['ok']


def test_record_payment(container, credit_sale):
    sale = credit_sale()

    result = container.payment_service.record_payment(sale['id'], 5, 'Plin', 'admin')

    assert result['ok'], result
    assert result['sale']['remaining_balance'] == pytest.approx(25)
    assert balance(container, sale) == pytest.approx(25)
    # Un abono libre no marca cuotas
    assert installment_status(result['sale']) == ['Pending', 'Pending', 'Pending']
    assert container.audit_service.get_logs('PAGO')


def test_record_payment_validation(container, credit_sale):
    sale = credit_sale()
    service = container.payment_service
    assert not service.record_payment(sale['id'], 0)['ok']
    assert not service.record_payment(sale['id'], -3)['ok']
    assert not service.record_payment(sale['id'], 31)['ok']
    assert not service.record_payment(sale['id'], 'abc')['ok']
    assert not service.record_payment(sale['id'], 5, 'Bitcoin')['ok']
    assert not service.record_payment('nope', 5)['ok']


def test_delete_payment_restores_balance(container, credit_sale):
    sale = credit_sale()
    service = container.payment_service
    service.record_payment(sale['id'], 30)
    assert balance(container, sale) == 0

    result = service.delete_payment(sale['id'], 0, 'admin')

    assert result['ok']
    assert result['sale']['payments'] == []
    assert result['sale']['remaining_balance'] == pytest.approx(30)
    assert result['sale']['status'] == 'Pending'
    assert balance(container, sale) == pytest.approx(30)
    assert not service.delete_payment(sale['id'], 0)['ok']


def test_update_installment_date(container, credit_sale):
    sale = credit_sale()

    result = container.payment_service.update_installment_date(sale['id'], 2, '2030-01-15', 'admin')

    assert result['ok'], result
    due = result['sale']['installment_plan']['installments'][1]['due_date']
    assert due == '2030-01-15T12:00:00+00:00'
    assert not container.payment_service.update_installment_date(sale['id'], 2, 'mañana')['ok']


def test_customer_payment_spreads_oldest_first(container, credit_sale):
    first = credit_sale(date='2024-01-10')
    second = credit_sale(date='2024-02-10')
    customer_id = first['customer_id']
    assert second['customer_id'] == customer_id
    assert balance(container, first) == pytest.approx(60)

    result = container.payment_service.apply_customer_payment(customer_id, 45, 'Cash', 'admin')

    assert result['ok'], result
    assert result['applied'] == [
        {'sale_id': first['id'], 'amount': 30},
        {'sale_id': second['id'], 'amount': 15},
    ]
    assert result['leftover'] == 0
    assert result['balance'] == pytest.approx(15)

    first_after = container.sales_repo.get_by_id(first['id'])
    second_after = container.sales_repo.get_by_id(second['id'])
    assert first_after['status'] == 'Paid'
    assert installment_status(first_after) == ['Paid', 'Paid', 'Paid']
    assert second_after['remaining_balance'] == pytest.approx(15)
    # La cuota cubierta a medias sigue pendiente
    assert installment_status(second_after) == ['Paid', 'Pending', 'Pending']


def test_customer_overpayment_floors_balance(container, credit_sale):
    sale = credit_sale()

    result = container.payment_service.apply_customer_payment(sale['customer_id'], 50)

    assert result['leftover'] == pytest.approx(20)
    assert result['balance'] == 0


def test_customer_payment_validation(container, credit_sale):
    sale = credit_sale()
    service = container.payment_service
    assert not service.apply_customer_payment(sale['customer_id'], 0)['ok']
    assert not service.apply_customer_payment('nope', 10)['ok']


def two_installment_sale(container, add_product):
    product = add_product(name='Casaca', price=100, stock=3)
    result = container.sales_service.process_sale({
        'items': [{'product_id': product['id'], 'quantity': 1}],
        'type': 'Credit',
        'customer': {'name': 'Rosa'},
        'installments': 2,
        'frequency': 'Weekly',
        'date': '2024-01-10',
    }, 'admin')
    assert result['ok'], result
    return result['sale']


def ledger_total(sale):
    return sale['remaining_balance'] + sum(p['amount'] for p in sale['payments'])


def test_reverse_capped_installment_returns_applied_amount(container, add_product):
    sale = two_installment_sale(container, add_product)
    service = container.payment_service
    service.record_payment(sale['id'], 80)

    paid = service.record_installment_payment(sale['id'], [1])
    assert paid['applied'] == pytest.approx(20)
    assert paid['sale']['installment_plan']['installments'][0]['paid_amount'] == pytest.approx(20)

    updated = service.reverse_installment_payment(sale['id'], 1)['sale']

    assert updated['remaining_balance'] == pytest.approx(20)
    assert [p['amount'] for p in updated['payments']] == [80]
    assert ledger_total(updated) == pytest.approx(100)
    assert balance(container, sale) == pytest.approx(20)


def test_reverse_one_of_several_paid_together(container, add_product):
    sale = two_installment_sale(container, add_product)
    service = container.payment_service

    paid = service.record_installment_payment(sale['id'], [1, 2])['sale']
    assert [p['amount'] for p in paid['payments']] == [50, 50]

    updated = service.reverse_installment_payment(sale['id'], 1)['sale']

    assert updated['remaining_balance'] == pytest.approx(50)
    assert [p['amount'] for p in updated['payments']] == [50]
    assert updated['status'] == 'Pending'
    assert installment_status(updated) == ['Pending', 'Paid']
    assert ledger_total(updated) == pytest.approx(100)
    assert balance(container, sale) == pytest.approx(50)


def test_reverse_installment_covered_by_customer_payment(container, credit_sale):
    sale = credit_sale()
    service = container.payment_service
    service.apply_customer_payment(sale['customer_id'], 25)

    updated = service.reverse_installment_payment(sale['id'], 2)['sale']

    assert installment_status(updated) == ['Paid', 'Pending', 'Pending']
    assert [p['amount'] for p in updated['payments']] == [15]
    assert updated['remaining_balance'] == pytest.approx(15)
    assert ledger_total(updated) == pytest.approx(30)
    assert balance(container, sale) == pytest.approx(15)
