# ==============================================================================
# SERVICIO DE VENTAS (PUNTO DE VENTA)
# ==============================================================================
# Registra ventas al contado y al crédito, descuenta stock y actualiza la
# deuda del cliente. Cada documento se escribe por separado: no hay
# transacciones entre colecciones.
# ==============================================================================

import uuid
from typing import Any, Dict, List, Optional, Tuple

from app_tienda.models import (
    MANUAL_ITEM_PREFIX,
    PaymentDetails,
    PaymentFrequency,
    PaymentMethod,
    Product,
    Sale,
    SaleItem,
    SaleStatus,
    SaleType,
    utc_now_iso,
)
from app_tienda.performance_logger import profile_function
from app_tienda.repositories.interfaces import (
    ICustomerRepository,
    IProductRepository,
    ISalesRepository,
)
from app_tienda.services.audit_service import AuditService
from app_tienda.services.customer_service import CustomerService
from app_tienda.services.installments import build_installment_plan, parse_start_date


VALID_PAYMENT_METHODS = frozenset(m.value for m in PaymentMethod)


def normalize_sale_type(value: Any) -> Optional[str]:
    """'Cash'/'contado' -> Cash, 'Credit'/'credito' -> Credit, otro -> None."""
    low = str(value or 'Cash').strip().lower()
    if low in ('cash', 'contado'):
        return SaleType.CASH.value
    if low in ('credit', 'credito', 'crédito'):
        return SaleType.CREDIT.value
    return None


def normalize_payment_method(value: Any) -> Optional[str]:
    """Método de pago canónico o None si no es válido."""
    if not value:
        return PaymentMethod.CASH.value
    for method in VALID_PAYMENT_METHODS:
        if str(value).strip().lower() == method.lower():
            return method
    return None


class SalesService:
    """
    Servicio de ventas.

    Responsabilidades:
    - Crear ventas (contado / crédito con plan de cuotas)
    - Eliminar ventas revirtiendo stock y deuda
    - Corregir precios de ítems
    """

    def __init__(
        self,
        sales_repo: ISalesRepository,
        product_repo: IProductRepository,
        customer_repo: ICustomerRepository,
        customer_service: CustomerService,
        audit_service: AuditService = None
    ):
        self.sales_repo = sales_repo
        self.product_repo = product_repo
        self.customer_repo = customer_repo
        self.customer_service = customer_service
        self.audit_service = audit_service

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    def get_sale(self, sale_id: str) -> Optional[Dict[str, Any]]:
        return self.sales_repo.get_by_id(sale_id)

    def list_sales(
        self,
        sale_type: Optional[str] = None,
        status: Optional[str] = None,
        customer_id: Optional[str] = None,
        from_date: Optional[str] = None,
        to_date: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """
        Ventas más recientes primero, con filtros opcionales.
        Las fechas se comparan como texto ISO ('YYYY-MM-DD' incluido).
        """
        result = []
        for sale in self.sales_repo.list_recent():
            if sale_type and sale.get('type') != sale_type:
                continue
            if status and sale.get('status') != status:
                continue
            if customer_id and sale.get('customer_id') != customer_id:
                continue
            date = sale.get('date', '')
            if from_date and date[:10] < from_date[:10]:
                continue
            if to_date and date[:10] > to_date[:10]:
                continue
            result.append(sale)
        return result

    # =========================================================================
    # CREACIÓN DE VENTAS
    # =========================================================================

    def _build_items(
        self,
        raw_items: List[Dict[str, Any]]
    ) -> Tuple[List[SaleItem], float, Optional[str]]:
        """
        Valida el carrito y arma las líneas de la venta.

        Returns:
            Tupla (items, costo_total, error)
        """
        items = []
        cost_total = 0.0
        errors = []

        for raw in raw_items:
            try:
                quantity = int(raw.get('quantity', 1))
            except (TypeError, ValueError):
                errors.append('Cantidad inválida')
                continue
            if quantity < 1:
                errors.append('La cantidad debe ser al menos 1')
                continue

            product_id = str(raw.get('product_id') or '')

            # Ítem libre: sin producto ni stock
            if not product_id or product_id.startswith(MANUAL_ITEM_PREFIX):
                name = (raw.get('name') or '').strip()
                try:
                    price = round(float(raw.get('unit_price')), 2)
                except (TypeError, ValueError):
                    errors.append(f"Precio inválido para '{name or 'ítem manual'}'")
                    continue
                if not name or price < 0:
                    errors.append('Los ítems manuales requieren nombre y precio')
                    continue
                items.append(SaleItem(
                    product_id=product_id or f'{MANUAL_ITEM_PREFIX}{uuid.uuid4().hex[:12]}',
                    name=name,
                    quantity=quantity,
                    unit_price=price,
                ))
                continue

            data = self.product_repo.get_by_id(product_id)
            if not data:
                errors.append(f'Producto {product_id} no encontrado')
                continue
            product = Product.from_dict(data)

            # El stock no se valida aquí: puede quedar negativo
            price = raw.get('unit_price')
            try:
                price = round(float(product.sale_price if price is None else price), 2)
            except (TypeError, ValueError):
                errors.append(f'Precio inválido para {product.name}')
                continue

            items.append(SaleItem(
                product_id=product_id,
                name=product.name,
                quantity=quantity,
                unit_price=price,
            ))
            cost_total += product.cost_price * quantity

        if errors:
            return [], 0.0, '; '.join(errors)
        return items, round(cost_total, 2), None

    def _resolve_customer(self, data: Dict[str, Any], user: str) -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
        """
        Cliente de la venta: por ID, o creado al vuelo con los datos enviados
        (reutilizando uno existente con el mismo nombre).

        Returns:
            Tupla (cliente, error)
        """
        customer_id = data.get('customer_id')
        if customer_id:
            customer = self.customer_repo.get_by_id(customer_id)
            if not customer:
                return None, 'Cliente no encontrado'
            return customer, None

        new_customer = data.get('customer') or {}
        if new_customer.get('name'):
            result = self.customer_service.add_customer(new_customer, user)
            if not result['ok']:
                return None, result['error']
            return result['customer'], None

        return None, None

    @profile_function(name="Procesar venta")
    def process_sale(self, data: Dict[str, Any], user: str = None) -> Dict[str, Any]:
        """
        Registra una venta desde el punto de venta.

        Args:
            data: items, discount, type (Cash|Credit), customer_id o customer,
                  date, payment_method (contado), installments, frequency,
                  start_date (crédito)
            user: Usuario que vende

        Returns:
            Dict con ok, sale o error
        """
        raw_items = data.get('items') or []
        if not raw_items:
            return {'ok': False, 'error': 'El carrito está vacío'}

        sale_type = normalize_sale_type(data.get('type'))
        if sale_type is None:
            return {'ok': False, 'error': 'Tipo de venta no válido'}

        try:
            discount = round(max(0.0, float(data.get('discount') or 0)), 2)
        except (TypeError, ValueError):
            return {'ok': False, 'error': 'Descuento inválido'}

        items, cost_total, error = self._build_items(raw_items)
        if error:
            return {'ok': False, 'error': error}

        try:
            sale_date = parse_start_date(data.get('date')).isoformat() if data.get('date') else utc_now_iso()
        except ValueError as e:
            return {'ok': False, 'error': str(e)}

        subtotal = sum(item.line_total for item in items)
        total = round(max(0.0, subtotal - discount), 2)

        # Toda la validación antes de crear al cliente al vuelo
        method = None
        plan = None
        if sale_type == SaleType.CASH.value:
            method = normalize_payment_method(data.get('payment_method'))
            if method is None:
                return {'ok': False, 'error': 'Método de pago no válido'}
        else:
            try:
                plan = build_installment_plan(
                    total,
                    data.get('installments') or 1,
                    data.get('frequency') or PaymentFrequency.WEEKLY.value,
                    data.get('start_date') or sale_date,
                )
            except (TypeError, ValueError) as e:
                return {'ok': False, 'error': str(e)}
            if not data.get('customer_id') and not (data.get('customer') or {}).get('name'):
                return {'ok': False, 'error': 'Las ventas al crédito requieren un cliente'}

        customer, error = self._resolve_customer(data, user)
        if error:
            return {'ok': False, 'error': error}

        sale = Sale(
            id='',
            date=sale_date,
            total=total,
            type=sale_type,
            items=items,
            discount=discount,
            cost_total=cost_total,
            profit=round(total - cost_total, 2),
            customer_id=customer['id'] if customer else None,
            client_name=customer.get('name', '') if customer else '',
        )

        if sale_type == SaleType.CASH.value:
            sale.status = SaleStatus.PAID.value
            sale.remaining_balance = 0.0
            sale.payments = [PaymentDetails(method=method, amount=total)]
        else:
            sale.installment_plan = plan
            sale.status = SaleStatus.PENDING.value if total > 0 else SaleStatus.PAID.value
            sale.remaining_balance = total

        # 1. Documento de la venta
        sale_id = self.sales_repo.add(sale.to_dict())
        sale.id = sale_id

        # 2. Stock de productos
        for item in items:
            if not item.is_manual:
                self.product_repo.adjust_stock(item.product_id, -item.quantity)

        # 3. Historial y deuda del cliente
        if customer:
            self.customer_repo.append_history(customer['id'], sale_id)
            if sale.is_credit and sale.remaining_balance:
                self.customer_repo.adjust_balance(customer['id'], sale.remaining_balance)

        saved = self.sales_repo.get_by_id(sale_id)
        if self.audit_service and user:
            self.audit_service.log_sale_created(user, saved)

        return {'ok': True, 'sale': saved}

    def register_product_to_customer(
        self,
        customer_id: str,
        product_id: str,
        user: str = None
    ) -> Dict[str, Any]:
        """
        Cargo rápido: una unidad de un producto a la cuenta del cliente,
        como venta al crédito de una sola cuota que vence hoy.
        """
        product = self.product_repo.get_by_id(product_id)
        if not product:
            return {'ok': False, 'error': 'Producto no encontrado'}
        return self.process_sale({
            'items': [{'product_id': product_id, 'quantity': 1}],
            'type': SaleType.CREDIT.value,
            'customer_id': customer_id,
            'installments': 1,
            'frequency': PaymentFrequency.MONTHLY.value,
        }, user)

    # =========================================================================
    # MODIFICACIONES
    # =========================================================================

    def delete_sale(self, sale_id: str, user: str = None) -> Dict[str, Any]:
        """
        Elimina una venta devolviendo el stock y, si era al crédito,
        descontando su saldo pendiente de la deuda del cliente.
        """
        data = self.get_sale(sale_id)
        if not data:
            return {'ok': False, 'error': 'Venta no encontrada'}
        sale = Sale.from_dict(data)

        for item in sale.items:
            if not item.is_manual:
                self.product_repo.adjust_stock(item.product_id, item.quantity)

        if sale.is_credit and sale.customer_id and sale.remaining_balance:
            self.customer_repo.adjust_balance(sale.customer_id, -sale.remaining_balance)

        self.sales_repo.delete(sale_id)

        if self.audit_service and user:
            self.audit_service.log_sale_deleted(user, data)

        return {'ok': True, 'sale_id': sale_id}

    def update_sale_price(
        self,
        sale_id: str,
        item_index: Any,
        new_price: Any,
        user: str = None
    ) -> Dict[str, Any]:
        """
        Corrige el precio unitario de un ítem.
        Total, ganancia y saldo se desplazan por (nuevo - anterior) x cantidad;
        la deuda del cliente sigue el cambio del saldo. El plan de cuotas
        no se recalcula.
        """
        data = self.get_sale(sale_id)
        if not data:
            return {'ok': False, 'error': 'Venta no encontrada'}
        sale = Sale.from_dict(data)

        try:
            index = int(item_index)
            price = round(float(new_price), 2)
        except (TypeError, ValueError):
            return {'ok': False, 'error': 'Datos inválidos'}
        if not 0 <= index < len(sale.items):
            return {'ok': False, 'error': 'Ítem no encontrado'}
        if price < 0:
            return {'ok': False, 'error': 'El precio no puede ser negativo'}

        item = sale.items[index]
        old_price = item.unit_price
        diff = round((price - old_price) * item.quantity, 2)
        item.unit_price = price

        old_remaining = sale.remaining_balance
        sale.total = round(sale.total + diff, 2)
        sale.profit = round(sale.profit + diff, 2)
        sale.remaining_balance = round(max(0.0, old_remaining + diff), 2)
        sale.refresh_status()

        self.sales_repo.put(sale_id, sale.to_dict())

        balance_change = round(sale.remaining_balance - old_remaining, 2)
        if sale.customer_id and balance_change:
            self.customer_repo.adjust_balance(sale.customer_id, balance_change, floor_zero=True)

        if self.audit_service and user:
            self.audit_service.log_sale_price_changed(user, sale_id, item.name, old_price, price)

        return {'ok': True, 'sale': self.get_sale(sale_id)}

    def reset(self, user: str = None) -> int:
        count = self.sales_repo.clear()
        if self.audit_service and user:
            self.audit_service.log_system(user, f"Ventas reiniciadas por {user} ({count} eliminadas)")
        return count
