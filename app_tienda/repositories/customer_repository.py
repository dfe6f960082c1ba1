# ==============================================================================
# REPOSITORIO DE CLIENTES
# ==============================================================================
# Encapsula todo el acceso a customers.json
# ==============================================================================

from typing import Any, Dict, Optional

from app_tienda.repositories.base import DocumentRepository


class CustomerRepository(DocumentRepository):
    """
    Repositorio de clientes.

    Formato de datos en customers.json:
    {
        "c19e...": {
            "id": "c19e...",
            "name": "Rosa Quispe",
            "contact": "987654321",
            "balance": 150.0,
            "history": ["a81c...", ...]
        }
    }
    """

    FILE_NAME = 'customers.json'

    def find_by_name(self, name: str) -> Optional[Dict[str, Any]]:
        """Busca un cliente por nombre (sin distinguir mayúsculas)."""
        wanted = (name or '').strip().lower()
        if not wanted:
            return None
        for customer in self.list_all():
            if (customer.get('name') or '').strip().lower() == wanted:
                return customer
        return None

    def adjust_balance(self, customer_id: str, delta: float, floor_zero: bool = False) -> Optional[float]:
        """
        Suma `delta` a la deuda del cliente.

        Args:
            customer_id: ID del cliente
            delta: Monto a sumar (negativo para restar)
            floor_zero: Si True, el saldo no baja de 0

        Returns:
            Saldo resultante o None si el cliente no existe
        """
        with self._file_lock:
            data = self.get_all()
            customer = data.get(str(customer_id))
            if customer is None:
                return None
            balance = round(float(customer.get('balance', 0) or 0) + delta, 2)
            if floor_zero:
                balance = max(0.0, balance)
            customer['balance'] = balance
            self._write_raw(data)
            return balance

    def append_history(self, customer_id: str, sale_id: str) -> bool:
        """Agrega una venta al historial (sin duplicar)."""
        with self._file_lock:
            data = self.get_all()
            customer = data.get(str(customer_id))
            if customer is None:
                return False
            history = customer.setdefault('history', [])
            if sale_id not in history:
                history.append(sale_id)
            self._write_raw(data)
            return True
