# ==============================================================================
# REPOSITORIO DE PRODUCTOS
# ==============================================================================
# Encapsula todo el acceso a products.json
# ==============================================================================

from typing import Any, Dict, Optional

from app_tienda.repositories.base import DocumentRepository


class ProductRepository(DocumentRepository):
    """
    Repositorio de productos.

    Formato de datos en products.json:
    {
        "3f2a9c...": {
            "id": "3f2a9c...",
            "name": "Cartera de cuero",
            "category": "CARTERAS/BILLETERAS",
            "cost_price": 40.0,
            "sale_price": 75.0,
            "stock": 3,
            "barcode": "7750000000011",
            "images": [...],
            "active": true
        }
    }
    """

    FILE_NAME = 'products.json'

    def find_by_barcode(self, barcode: str) -> Optional[Dict[str, Any]]:
        """
        Busca un producto por código de barras (coincidencia exacta).

        Returns:
            Datos del producto o None
        """
        code = (barcode or '').strip()
        if not code:
            return None
        for product in self.list_all():
            if str(product.get('barcode', '')).strip() == code:
                return product
        return None

    def adjust_stock(self, product_id: str, delta: int) -> Optional[int]:
        """
        Suma (o resta) unidades al stock de un producto.
        El stock no se limita a >= 0.

        Returns:
            Stock resultante o None si el producto no existe
        """
        with self._file_lock:
            data = self.get_all()
            product = data.get(str(product_id))
            if product is None:
                return None
            product['stock'] = int(product.get('stock', 0) or 0) + int(delta)
            self._write_raw(data)
            return product['stock']
