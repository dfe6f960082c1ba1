# ==============================================================================
# SERVICIO DE COBRANZA (ABONOS Y CUOTAS)
# ==============================================================================
# Toda entrada o devolución de dinero sobre una venta pasa por aquí:
# - El saldo de la venta y la deuda del cliente se mueven juntos
# - Cada cuota pagada guarda lo que realmente se le aplicó (paid_amount)
# ==============================================================================

from typing import Any, Dict, List, Optional

from app_tienda.models import (
    InstallmentStatus,
    PaymentDetails,
    Sale,
)
from app_tienda.performance_logger import profile_function
from app_tienda.repositories.interfaces import ICustomerRepository, ISalesRepository
from app_tienda.services.audit_service import AuditService
from app_tienda.services.installments import parse_start_date
from app_tienda.services.sales_service import normalize_payment_method


# Tolerancia de redondeo para comparar montos en soles
CENT = 0.005


def _parse_amount(value: Any) -> Optional[float]:
    try:
        return round(float(value), 2)
    except (TypeError, ValueError):
        return None


def _take_back_payment(sale: Sale, amount: float) -> float:
    """
    Quita `amount` del historial de abonos de la venta.
    Si hay un abono exacto por ese monto (el más reciente) se elimina;
    si no, se descuenta de los abonos más recientes hacia atrás.

    Returns:
        Monto realmente devuelto (no supera lo abonado)
    """
    if amount <= 0:
        return 0.0
    for index in range(len(sale.payments) - 1, -1, -1):
        if abs(sale.payments[index].amount - amount) < CENT:
            return round(sale.payments.pop(index).amount, 2)

    left = amount
    for index in range(len(sale.payments) - 1, -1, -1):
        if left <= 0:
            break
        payment = sale.payments[index]
        taken = min(payment.amount, left)
        payment.amount = round(payment.amount - taken, 2)
        left = round(left - taken, 2)
        if payment.amount <= 0:
            del sale.payments[index]
    return round(amount - left, 2)


class PaymentService:
    """
    Servicio de abonos sobre ventas al crédito.

    Cada operación escribe primero la venta y después ajusta el
    balance del cliente; si la venta no tiene cliente solo cambia la venta.
    """

    def __init__(
        self,
        sales_repo: ISalesRepository,
        customer_repo: ICustomerRepository,
        audit_service: AuditService = None
    ):
        self.sales_repo = sales_repo
        self.customer_repo = customer_repo
        self.audit_service = audit_service

    def _load_sale(self, sale_id: str) -> Optional[Sale]:
        data = self.sales_repo.get_by_id(sale_id)
        return Sale.from_dict(data) if data else None

    def _save_sale(self, sale: Sale) -> Dict[str, Any]:
        self.sales_repo.put(sale.id, sale.to_dict())
        return self.sales_repo.get_by_id(sale.id)

    def _move_customer_balance(self, sale: Sale, delta: float) -> None:
        if sale.customer_id and delta:
            self.customer_repo.adjust_balance(sale.customer_id, delta, floor_zero=True)

    # =========================================================================
    # ABONOS SOBRE UNA VENTA
    # =========================================================================

    def record_payment(
        self,
        sale_id: str,
        amount: Any,
        method: str = None,
        user: str = None
    ) -> Dict[str, Any]:
        """
        Abono libre sobre una venta.

        Returns:
            Dict con ok, sale o error
        """
        amount = _parse_amount(amount)
        if amount is None or amount <= 0:
            return {'ok': False, 'error': 'El monto debe ser mayor a 0'}
        method = normalize_payment_method(method)
        if method is None:
            return {'ok': False, 'error': 'Método de pago no válido'}

        sale = self._load_sale(sale_id)
        if not sale:
            return {'ok': False, 'error': 'Venta no encontrada'}
        if amount > sale.remaining_balance + CENT:
            return {
                'ok': False,
                'error': f'El monto excede el saldo pendiente (S/ {sale.remaining_balance:.2f})'
            }

        sale.payments.append(PaymentDetails(method=method, amount=amount))
        sale.remaining_balance = round(max(0.0, sale.remaining_balance - amount), 2)
        sale.refresh_status()
        saved = self._save_sale(sale)
        self._move_customer_balance(sale, -amount)

        if self.audit_service and user:
            self.audit_service.log_payment(user, sale_id, amount, method, sale.remaining_balance)

        return {'ok': True, 'sale': saved}

    @profile_function(name="Pago de cuotas")
    def record_installment_payment(
        self,
        sale_id: str,
        numbers: List[Any],
        method: str = None,
        user: str = None
    ) -> Dict[str, Any]:
        """
        Paga las cuotas seleccionadas por su monto programado.
        Las cuotas ya pagadas se ignoran. El monto aplicado no supera
        el saldo pendiente de la venta.
        """
        method = normalize_payment_method(method)
        if method is None:
            return {'ok': False, 'error': 'Método de pago no válido'}

        sale = self._load_sale(sale_id)
        if not sale:
            return {'ok': False, 'error': 'Venta no encontrada'}
        if not sale.installment_plan:
            return {'ok': False, 'error': 'La venta no tiene plan de cuotas'}

        try:
            wanted = {int(n) for n in (numbers or [])}
        except (TypeError, ValueError):
            return {'ok': False, 'error': 'Número de cuota inválido'}

        selected = [
            inst for inst in sale.installment_plan.installments
            if inst.number in wanted and not inst.is_paid
        ]
        if not selected:
            return {'ok': False, 'error': 'Seleccione al menos una cuota pendiente'}

        # Un abono por cuota: cada cuota guarda lo que realmente se le aplicó
        available = sale.remaining_balance
        applied = 0.0
        for inst in selected:
            portion = round(max(0.0, min(inst.amount, available)), 2)
            inst.status = InstallmentStatus.PAID.value
            inst.paid_amount = portion
            if portion > 0:
                sale.payments.append(PaymentDetails(method=method, amount=portion))
            available = round(available - portion, 2)
            applied = round(applied + portion, 2)
        sale.remaining_balance = round(max(0.0, sale.remaining_balance - applied), 2)
        sale.refresh_status()

        saved = self._save_sale(sale)
        self._move_customer_balance(sale, -applied)

        if self.audit_service and user:
            self.audit_service.log_payment(
                user, sale_id, applied, method, sale.remaining_balance,
                installments=sorted(inst.number for inst in selected)
            )

        return {'ok': True, 'sale': saved, 'applied': applied}

    def reverse_installment_payment(self, sale_id: str, number: Any, user: str = None) -> Dict[str, Any]:
        """
        Anula el pago de una cuota: vuelve a Pendiente y lo que se le
        aplicó (paid_amount) sale del historial de abonos y vuelve al saldo.
        """
        sale = self._load_sale(sale_id)
        if not sale:
            return {'ok': False, 'error': 'Venta no encontrada'}
        if not sale.installment_plan:
            return {'ok': False, 'error': 'La venta no tiene plan de cuotas'}

        try:
            inst = sale.installment_plan.get(int(number))
        except (TypeError, ValueError):
            inst = None
        if inst is None:
            return {'ok': False, 'error': 'Cuota no encontrada'}
        if not inst.is_paid:
            return {'ok': False, 'error': 'La cuota no está pagada'}

        returned = _take_back_payment(sale, inst.paid_amount)
        inst.status = InstallmentStatus.PENDING.value
        inst.paid_amount = 0.0

        sale.remaining_balance = round(sale.remaining_balance + returned, 2)
        sale.refresh_status()
        saved = self._save_sale(sale)
        self._move_customer_balance(sale, returned)

        if self.audit_service and user:
            self.audit_service.log_payment_reverted(user, sale_id, returned, f'cuota #{inst.number}')

        return {'ok': True, 'sale': saved}

    def delete_payment(self, sale_id: str, index: Any, user: str = None) -> Dict[str, Any]:
        """Quita un abono del historial; su monto vuelve al saldo."""
        sale = self._load_sale(sale_id)
        if not sale:
            return {'ok': False, 'error': 'Venta no encontrada'}
        try:
            index = int(index)
        except (TypeError, ValueError):
            return {'ok': False, 'error': 'Abono no encontrado'}
        if not 0 <= index < len(sale.payments):
            return {'ok': False, 'error': 'Abono no encontrado'}

        payment = sale.payments.pop(index)
        sale.remaining_balance = round(sale.remaining_balance + payment.amount, 2)
        sale.refresh_status()
        saved = self._save_sale(sale)
        self._move_customer_balance(sale, payment.amount)

        if self.audit_service and user:
            self.audit_service.log_payment_reverted(user, sale_id, payment.amount, 'abono eliminado')

        return {'ok': True, 'sale': saved}

    def update_installment_date(
        self,
        sale_id: str,
        number: Any,
        new_date: Any,
        user: str = None
    ) -> Dict[str, Any]:
        """Reprograma el vencimiento de una cuota."""
        sale = self._load_sale(sale_id)
        if not sale or not sale.installment_plan:
            return {'ok': False, 'error': 'Venta no encontrada'}
        try:
            inst = sale.installment_plan.get(int(number))
            due = parse_start_date(new_date) if new_date else None
        except (TypeError, ValueError):
            return {'ok': False, 'error': 'Datos inválidos'}
        if inst is None:
            return {'ok': False, 'error': 'Cuota no encontrada'}
        if due is None:
            return {'ok': False, 'error': 'La fecha es obligatoria'}

        inst.due_date = due.isoformat()
        saved = self._save_sale(sale)

        if self.audit_service and user:
            self.audit_service.log(
                'PAGO', user,
                f"Vencimiento de la cuota #{inst.number} movido al {due.date().isoformat()} por {user}",
                sale_id,
            )

        return {'ok': True, 'sale': saved}

    # =========================================================================
    # ABONO GENERAL DEL CLIENTE
    # =========================================================================

    @profile_function(name="Abono de cliente")
    def apply_customer_payment(
        self,
        customer_id: str,
        amount: Any,
        method: str = None,
        user: str = None
    ) -> Dict[str, Any]:
        """
        Reparte un abono entre las ventas al crédito con saldo del cliente,
        de la más antigua a la más reciente. En cada venta las cuotas
        pendientes se marcan pagadas en orden mientras el monto aplicado
        las cubra completas.

        Returns:
            Dict con ok, applied (lista de {sale_id, amount}), leftover y balance
        """
        amount = _parse_amount(amount)
        if amount is None or amount <= 0:
            return {'ok': False, 'error': 'El monto debe ser mayor a 0'}
        method = normalize_payment_method(method)
        if method is None:
            return {'ok': False, 'error': 'Método de pago no válido'}
        if not self.customer_repo.get_by_id(customer_id):
            return {'ok': False, 'error': 'Cliente no encontrado'}

        left = amount
        applied = []
        for data in self.sales_repo.list_by_customer(customer_id):
            if left <= 0:
                break
            sale = Sale.from_dict(data)
            if not sale.is_credit or sale.remaining_balance <= 0:
                continue

            portion = round(min(left, sale.remaining_balance), 2)
            sale.payments.append(PaymentDetails(method=method, amount=portion))
            sale.remaining_balance = round(max(0.0, sale.remaining_balance - portion), 2)

            if sale.installment_plan:
                cover = portion
                for inst in sale.installment_plan.pending:
                    if sale.remaining_balance <= 0 or cover + CENT >= inst.amount:
                        inst.paid_amount = round(max(0.0, min(inst.amount, cover)), 2)
                        cover = round(cover - inst.paid_amount, 2)
                        inst.status = InstallmentStatus.PAID.value
                    else:
                        break

            sale.refresh_status()
            self.sales_repo.put(sale.id, sale.to_dict())
            applied.append({'sale_id': sale.id, 'amount': portion})
            left = round(left - portion, 2)

            if self.audit_service and user:
                self.audit_service.log_payment(user, sale.id, portion, method, sale.remaining_balance)

        balance = self.customer_repo.adjust_balance(customer_id, -amount, floor_zero=True)

        return {'ok': True, 'applied': applied, 'leftover': left, 'balance': balance}
