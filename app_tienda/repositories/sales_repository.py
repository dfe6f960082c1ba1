# ==============================================================================
# REPOSITORIO DE VENTAS
# ==============================================================================
# Encapsula todo el acceso a sales.json
# ==============================================================================

from typing import Any, Dict, List

from app_tienda.repositories.base import DocumentRepository


class SalesRepository(DocumentRepository):
    """
    Repositorio de ventas.

    Formato de datos en sales.json:
    {
        "a81c...": {
            "id": "a81c...",
            "date": "2024-05-01T12:00:00+00:00",
            "type": "Credit",
            "status": "Pending",
            "items": [...],
            "payments": [...],
            "remaining_balance": 120.0,
            "installment_plan": {...}
        }
    }
    """

    FILE_NAME = 'sales.json'

    def list_recent(self) -> List[Dict[str, Any]]:
        """Ventas ordenadas por fecha, más recientes primero."""
        return sorted(self.list_all(), key=lambda s: s.get('date', ''), reverse=True)

    def list_by_customer(self, customer_id: str) -> List[Dict[str, Any]]:
        """Ventas de un cliente, más antiguas primero."""
        sales = [s for s in self.list_all() if s.get('customer_id') == customer_id]
        return sorted(sales, key=lambda s: s.get('date', ''))
