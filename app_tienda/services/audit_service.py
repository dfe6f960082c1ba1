# ==============================================================================
# SERVICIO DE AUDITORÍA
# ==============================================================================
# Centraliza el registro de actividad del panel administrativo.
# Formatea mensajes humanizados y categoriza eventos.
# ==============================================================================

from typing import Any, Dict, List, Optional

from app_tienda.models import AuditType
from app_tienda.repositories.interfaces import IAuditRepository


def format_money(amount: float) -> str:
    """Formato de moneda usado en mensajes: S/ 12.50"""
    try:
        return f"S/ {float(amount):.2f}"
    except (TypeError, ValueError):
        return "S/ 0.00"


class AuditService:
    """
    Servicio para registro y consulta de auditoría.

    La regla de oro: si entra (o se devuelve) dinero, siempre hay log de PAGO.
    """

    def __init__(self, audit_repo: IAuditRepository):
        self.audit_repo = audit_repo

    # =========================================================================
    # REGISTRO DE EVENTOS
    # =========================================================================

    def log(
        self,
        log_type: str,
        user: str,
        message: str,
        related_id: str = '',
        details: Dict[str, Any] = None
    ) -> None:
        """Registra un evento genérico."""
        if isinstance(log_type, AuditType):
            log_type = log_type.value
        self.audit_repo.log(log_type, user, message, related_id, details)

    def log_sale_created(self, user: str, sale: Dict[str, Any]) -> None:
        """Registra una venta nueva."""
        kind = 'al crédito' if sale.get('type') == 'Credit' else 'al contado'
        items_count = sum(int(i.get('quantity', 0) or 0) for i in sale.get('items', []))
        message = (
            f"Venta {kind} registrada por {user} - Total: {format_money(sale.get('total', 0))}"
            f" - {items_count} unidades"
        )
        if sale.get('client_name'):
            message += f" - Cliente: {sale['client_name']}"
        self.log(
            AuditType.VENTA,
            user,
            message,
            sale.get('id', ''),
            {'total': sale.get('total'), 'type': sale.get('type'), 'customer_id': sale.get('customer_id')}
        )

    def log_sale_deleted(self, user: str, sale: Dict[str, Any]) -> None:
        """Registra la eliminación de una venta (stock y saldo revertidos)."""
        message = f"Venta eliminada por {user} - Total: {format_money(sale.get('total', 0))} - stock revertido"
        self.log(AuditType.VENTA, user, message, sale.get('id', ''), {'total': sale.get('total')})

    def log_sale_price_changed(
        self,
        user: str,
        sale_id: str,
        item_name: str,
        old_price: float,
        new_price: float
    ) -> None:
        message = (
            f"Precio de '{item_name}' cambiado de {format_money(old_price)} a "
            f"{format_money(new_price)} por {user}"
        )
        self.log(AuditType.VENTA, user, message, sale_id, {'from': old_price, 'to': new_price})

    def log_payment(
        self,
        user: str,
        sale_id: str,
        amount: float,
        method: str,
        remaining_after: float,
        installments: Optional[List[int]] = None
    ) -> None:
        """Registra un abono recibido."""
        message = f"Abono de {format_money(amount)} ({method}) registrado por {user}"
        if installments:
            message += f" - Cuotas: {', '.join(f'#{n}' for n in installments)}"
        message += f" - Saldo: {format_money(remaining_after)}"
        self.log(
            AuditType.PAGO,
            user,
            message,
            sale_id,
            {'amount': amount, 'method': method, 'remaining': remaining_after, 'installments': installments or []}
        )

    def log_payment_reverted(self, user: str, sale_id: str, amount: float, reason: str) -> None:
        """Registra la anulación de un abono."""
        message = f"Abono de {format_money(amount)} anulado por {user} ({reason})"
        self.log(AuditType.PAGO, user, message, sale_id, {'amount': amount, 'reason': reason})

    def log_stock_change(self, user: str, product: Dict[str, Any], delta: int, new_stock: int) -> None:
        sign = '+' if delta >= 0 else ''
        message = f"Stock de '{product.get('name', '')}': {sign}{delta} (nuevo: {new_stock}) por {user}"
        self.log(AuditType.STOCK, user, message, product.get('id', ''), {'delta': delta, 'stock': new_stock})

    def log_product(self, user: str, action: str, product: Dict[str, Any]) -> None:
        """action: 'creado', 'editado' o 'eliminado'."""
        message = f"Producto '{product.get('name', '')}' {action} por {user}"
        self.log(AuditType.PRODUCTO, user, message, product.get('id', ''))

    def log_customer(self, user: str, action: str, customer: Dict[str, Any]) -> None:
        message = f"Cliente '{customer.get('name', '')}' {action} por {user}"
        self.log(AuditType.CLIENTE, user, message, customer.get('id', ''))

    def log_system(self, user: str, message: str, details: Dict[str, Any] = None) -> None:
        self.log(AuditType.SISTEMA, user, message, '', details)

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    def get_logs(self, log_type: Optional[str] = None, query: str = '', limit: int = 200) -> List[Dict[str, Any]]:
        """Logs filtrados, más recientes primero."""
        return self.audit_repo.search(log_type=log_type, query=query, limit=limit)
