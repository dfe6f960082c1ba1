# ==============================================================================
# SERVICIO DE CLIENTES
# ==============================================================================
# Clientes de la tienda, su deuda (balance) y su estado de cuenta.
# El balance solo se mueve con ventas al crédito y abonos, nunca a mano.
# ==============================================================================

from datetime import datetime
from typing import Any, Dict, List, Optional

from app_tienda.models import Customer, Sale
from app_tienda.repositories.interfaces import ICustomerRepository, ISalesRepository
from app_tienda.services.audit_service import AuditService, format_money
from app_tienda.services.installments import overdue_installments


EDITABLE_FIELDS = ('name', 'contact', 'email', 'address')


def _short_date(iso_value: str) -> str:
    """'2024-05-01T12:00:00+00:00' -> '01/05'"""
    try:
        return datetime.fromisoformat(iso_value.replace('Z', '+00:00')).strftime('%d/%m')
    except (AttributeError, ValueError):
        return iso_value or ''


class CustomerService:
    """
    Servicio para gestión de clientes.

    Responsabilidades:
    - Alta (evitando duplicados por nombre), edición y baja
    - Estado de cuenta: cuotas pagadas y pendientes
    - Mensaje de recordatorio de pago
    """

    def __init__(
        self,
        customer_repo: ICustomerRepository,
        sales_repo: ISalesRepository,
        audit_service: AuditService = None,
        store_name: str = 'la tienda'
    ):
        self.customer_repo = customer_repo
        self.sales_repo = sales_repo
        self.audit_service = audit_service
        self.store_name = store_name

    # =========================================================================
    # CRUD
    # =========================================================================

    def get_customer(self, customer_id: str) -> Optional[Dict[str, Any]]:
        return self.customer_repo.get_by_id(customer_id)

    def list_customers(self, query: str = '', with_debt: bool = False) -> List[Dict[str, Any]]:
        """
        Clientes ordenados por nombre.

        Args:
            query: Texto a buscar en nombre o contacto
            with_debt: Solo clientes con saldo pendiente
        """
        q = (query or '').strip().lower()
        result = []
        for customer in self.customer_repo.list_all():
            if with_debt and float(customer.get('balance', 0) or 0) <= 0:
                continue
            if q and q not in (customer.get('name') or '').lower() and q not in (customer.get('contact') or ''):
                continue
            result.append(customer)
        return sorted(result, key=lambda c: (c.get('name') or '').lower())

    def add_customer(self, data: Dict[str, Any], user: str = None) -> Dict[str, Any]:
        """
        Registra un cliente. Si ya existe uno con el mismo nombre
        (sin distinguir mayúsculas) se retorna el existente.

        Returns:
            Dict con ok, customer, created (False si ya existía) o error
        """
        name = (data.get('name') or '').strip()
        if not name:
            return {'ok': False, 'error': 'El nombre del cliente es obligatorio'}

        existing = self.customer_repo.find_by_name(name)
        if existing:
            return {'ok': True, 'customer': existing, 'created': False}

        customer = Customer(
            id='',
            name=name,
            contact=(data.get('contact') or '').strip(),
            email=(data.get('email') or '').strip(),
            address=(data.get('address') or '').strip(),
        )
        customer_id = self.customer_repo.add(customer.to_dict())
        saved = self.customer_repo.get_by_id(customer_id)

        if self.audit_service and user:
            self.audit_service.log_customer(user, 'registrado', saved)

        return {'ok': True, 'customer': saved, 'created': True}

    def update_customer(self, customer_id: str, updates: Dict[str, Any], user: str = None) -> Dict[str, Any]:
        """Edita datos de contacto (no el balance ni el historial)."""
        customer = self.get_customer(customer_id)
        if not customer:
            return {'ok': False, 'error': 'Cliente no encontrado'}

        clean = {k: (str(v or '')).strip() for k, v in (updates or {}).items() if k in EDITABLE_FIELDS}
        if 'name' in clean and not clean['name']:
            return {'ok': False, 'error': 'El nombre del cliente es obligatorio'}

        self.customer_repo.update(customer_id, clean)
        saved = self.get_customer(customer_id)

        if self.audit_service and user:
            self.audit_service.log_customer(user, 'editado', saved)

        return {'ok': True, 'customer': saved}

    def delete_customer(self, customer_id: str, user: str = None) -> Optional[Dict[str, Any]]:
        """
        Elimina un cliente. Sus ventas se conservan y siguen apuntando a su ID.

        Returns:
            Datos eliminados o None
        """
        removed = self.customer_repo.delete(customer_id)
        if removed and self.audit_service and user:
            self.audit_service.log_customer(user, 'eliminado', removed)
        return removed

    def reset(self, user: str = None) -> int:
        count = self.customer_repo.clear()
        if self.audit_service and user:
            self.audit_service.log_system(user, f"Clientes reiniciados por {user} ({count} eliminados)")
        return count

    # =========================================================================
    # ESTADO DE CUENTA
    # =========================================================================

    def credit_sales(self, customer_id: str) -> List[Sale]:
        """Ventas al crédito del cliente, más antiguas primero."""
        return [
            Sale.from_dict(s) for s in self.sales_repo.list_by_customer(customer_id)
            if s.get('type') == 'Credit'
        ]

    def get_statement(self, customer_id: str) -> Optional[Dict[str, Any]]:
        """
        Estado de cuenta del cliente.

        Returns:
            Dict con customer, sales (ventas al crédito con saldo),
            paid_installments, pending_installments y overdue_installments
            (vencidas, subconjunto de las pendientes) o None
        """
        customer = self.get_customer(customer_id)
        if not customer:
            return None

        paid_count = 0
        pending = []
        overdue = []
        open_sales = []
        for sale in self.credit_sales(customer_id):
            if sale.remaining_balance > 0:
                open_sales.append(sale.to_dict())
            if not sale.installment_plan:
                continue
            late = {inst.number for inst in overdue_installments(sale.installment_plan)}
            for inst in sale.installment_plan.installments:
                if inst.is_paid:
                    paid_count += 1
                else:
                    pending.append({
                        'sale_id': sale.id,
                        'number': inst.number,
                        'amount': inst.amount,
                        'due_date': inst.due_date,
                    })
                    if inst.number in late:
                        overdue.append(pending[-1])

        pending.sort(key=lambda i: i['due_date'])
        overdue.sort(key=lambda i: i['due_date'])
        return {
            'customer': customer,
            'balance': round(float(customer.get('balance', 0) or 0), 2),
            'open_sales': open_sales,
            'paid_installments': paid_count,
            'pending_installments': pending,
            'overdue_installments': overdue,
        }

    def reminder_message(self, customer_id: str) -> Optional[str]:
        """Texto de recordatorio de pago para enviar por WhatsApp."""
        statement = self.get_statement(customer_id)
        if statement is None:
            return None

        customer = statement['customer']
        lines = [
            f"Hola *{customer.get('name', '')}*, le saludamos de *{self.store_name}*.",
            "",
            f"Le recordamos que tiene un saldo pendiente total de *{format_money(statement['balance'])}*.",
            "",
            "*Estado de sus cuotas:*",
            f"Pagadas: {statement['paid_installments']}",
            f"Pendientes: {len(statement['pending_installments'])}",
            f"Vencidas: {len(statement['overdue_installments'])}",
        ]
        for inst in statement['pending_installments']:
            lines.append(
                f"• Cuota #{inst['number']}: {format_money(inst['amount'])} (Vence: {_short_date(inst['due_date'])})"
            )
        lines.extend([
            "",
            "Agradeceríamos que pudiera realizar su pago a la brevedad. ¡Que tenga un excelente día!",
        ])
        return '\n'.join(lines)
