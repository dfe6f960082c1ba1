# ==============================================================================
# SERVICIO DE INVENTARIO
# ==============================================================================
# Centraliza la lógica de productos y stock.
# ==============================================================================

from typing import Any, Dict, List, Optional, Tuple

from app_tienda.models import Category, Product
from app_tienda.repositories.interfaces import IProductRepository
from app_tienda.services.audit_service import AuditService


# Campos que se pueden editar desde el panel
EDITABLE_FIELDS = frozenset([
    'name', 'description', 'category', 'cost_price', 'sale_price',
    'stock', 'barcode', 'images', 'tags', 'active',
])

VALID_CATEGORIES = frozenset(c.value for c in Category)


def normalize_category(value: Any) -> Optional[str]:
    """
    Normaliza una categoría (sin distinguir mayúsculas).
    Retorna None si no es una categoría válida.
    """
    if value is None:
        return None
    text = str(value).strip().upper()
    return text if text in VALID_CATEGORIES else None


class InventoryService:
    """
    Servicio para gestión de productos.

    Responsabilidades:
    - CRUD de productos con validación de campos
    - Ajustes de stock
    - Búsqueda por nombre y código de barras
    """

    def __init__(
        self,
        product_repo: IProductRepository,
        audit_service: AuditService = None
    ):
        """
        Args:
            product_repo: Repositorio de productos
            audit_service: Servicio de auditoría (opcional)
        """
        self.product_repo = product_repo
        self.audit_service = audit_service

    # =========================================================================
    # VALIDACIÓN
    # =========================================================================

    def _clean_fields(self, data: Dict[str, Any], partial: bool) -> Tuple[Dict[str, Any], Optional[str]]:
        """
        Filtra y normaliza los campos de un producto.

        Returns:
            Tupla (campos_limpios, error)
        """
        clean = {k: v for k, v in (data or {}).items() if k in EDITABLE_FIELDS}

        if 'name' in clean or not partial:
            name = (clean.get('name') or '').strip()
            if not name:
                return {}, 'El nombre del producto es obligatorio'
            clean['name'] = name

        if 'category' in clean or not partial:
            category = normalize_category(clean.get('category', Category.OTROS.value))
            if category is None:
                return {}, f"Categoría no válida: {clean.get('category')}"
            clean['category'] = category

        for price_field in ('cost_price', 'sale_price'):
            if price_field in clean:
                try:
                    clean[price_field] = round(float(clean[price_field] or 0), 2)
                except (TypeError, ValueError):
                    return {}, 'Precio inválido'
                if clean[price_field] < 0:
                    return {}, 'El precio no puede ser negativo'

        if 'stock' in clean:
            try:
                clean['stock'] = int(clean['stock'] or 0)
            except (TypeError, ValueError):
                return {}, 'Stock inválido'

        if 'barcode' in clean:
            clean['barcode'] = str(clean['barcode'] or '').strip()

        for list_field in ('images', 'tags'):
            if list_field in clean:
                value = clean[list_field] or []
                if not isinstance(value, list):
                    return {}, f'El campo {list_field} debe ser una lista'
                clean[list_field] = [str(v) for v in value]

        if 'active' in clean:
            clean['active'] = bool(clean['active'])

        return clean, None

    # =========================================================================
    # OPERACIONES DE PRODUCTOS
    # =========================================================================

    def get_all_products(self) -> List[Dict[str, Any]]:
        """Todos los productos, ordenados por nombre."""
        return sorted(self.product_repo.list_all(), key=lambda p: (p.get('name') or '').lower())

    def get_product(self, product_id: str) -> Optional[Dict[str, Any]]:
        """Producto por ID o None."""
        return self.product_repo.get_by_id(product_id)

    def find_by_barcode(self, barcode: str) -> Optional[Dict[str, Any]]:
        """Búsqueda exacta por código de barras (lector del punto de venta)."""
        return self.product_repo.find_by_barcode(barcode)

    def search(self, query: str = '', category: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Filtra productos por texto (nombre o código) y categoría.

        Args:
            query: Texto libre
            category: Categoría exacta (None = todas)
        """
        q = (query or '').strip().lower()
        cat = normalize_category(category) if category else None
        result = []
        for product in self.get_all_products():
            if cat and product.get('category') != cat:
                continue
            if q and q not in (product.get('name') or '').lower() and q not in str(product.get('barcode', '')).lower():
                continue
            result.append(product)
        return result

    def create_product(self, data: Dict[str, Any], user: str = None) -> Dict[str, Any]:
        """
        Crea un producto.

        Returns:
            Dict con ok, product o error
        """
        clean, error = self._clean_fields(data, partial=False)
        if error:
            return {'ok': False, 'error': error}

        if clean.get('barcode') and self.product_repo.find_by_barcode(clean['barcode']):
            return {'ok': False, 'error': f"Ya existe un producto con el código {clean['barcode']}"}

        product = Product(id='', **clean)
        product_id = self.product_repo.add(product.to_dict())
        saved = self.product_repo.get_by_id(product_id)

        if self.audit_service and user:
            self.audit_service.log_product(user, 'creado', saved)

        return {'ok': True, 'product': saved}

    def update_product(self, product_id: str, updates: Dict[str, Any], user: str = None) -> Dict[str, Any]:
        """
        Actualización parcial de un producto.

        Returns:
            Dict con ok, product o error
        """
        product = self.get_product(product_id)
        if not product:
            return {'ok': False, 'error': 'Producto no encontrado'}

        clean, error = self._clean_fields(updates, partial=True)
        if error:
            return {'ok': False, 'error': error}

        if clean.get('barcode'):
            other = self.product_repo.find_by_barcode(clean['barcode'])
            if other and other.get('id') != product_id:
                return {'ok': False, 'error': f"Ya existe un producto con el código {clean['barcode']}"}

        self.product_repo.update(product_id, clean)
        saved = self.get_product(product_id)

        if self.audit_service and user:
            self.audit_service.log_product(user, 'editado', saved)

        return {'ok': True, 'product': saved}

    def delete_product(self, product_id: str, user: str = None) -> Optional[Dict[str, Any]]:
        """
        Elimina un producto. Las ventas que lo referencian no se tocan.

        Returns:
            Datos del producto eliminado o None
        """
        removed = self.product_repo.delete(product_id)
        if removed and self.audit_service and user:
            self.audit_service.log_product(user, 'eliminado', removed)
        return removed

    # =========================================================================
    # STOCK
    # =========================================================================

    def adjust_stock(self, product_id: str, delta: Any, user: str = None) -> Dict[str, Any]:
        """
        Suma o resta unidades al stock.

        Returns:
            Dict con ok, stock o error
        """
        try:
            delta = int(delta)
        except (TypeError, ValueError):
            return {'ok': False, 'error': 'Cantidad inválida'}
        if delta == 0:
            return {'ok': False, 'error': 'La cantidad no puede ser 0'}

        product = self.get_product(product_id)
        if not product:
            return {'ok': False, 'error': 'Producto no encontrado'}

        new_stock = self.product_repo.adjust_stock(product_id, delta)

        if self.audit_service and user:
            self.audit_service.log_stock_change(user, product, delta, new_stock)

        return {'ok': True, 'product_id': product_id, 'stock': new_stock}

    def get_low_stock_products(self, threshold: int = 2) -> List[Dict[str, Any]]:
        """Productos activos con stock menor o igual al umbral."""
        return [
            p for p in self.get_all_products()
            if p.get('active', True) and int(p.get('stock', 0) or 0) <= threshold
        ]

    def inventory_value(self) -> float:
        """Valor del inventario a precio de costo: suma de costo x stock."""
        products = [Product.from_dict(p) for p in self.product_repo.list_all()]
        return round(sum(p.cost_price * p.stock for p in products), 2)

    def reset(self, user: str = None) -> int:
        """Elimina todos los productos. Retorna cuántos se borraron."""
        count = self.product_repo.clear()
        if self.audit_service and user:
            self.audit_service.log_system(user, f"Productos reiniciados por {user} ({count} eliminados)")
        return count
