# ==============================================================================
# SERVICIO DE CATÁLOGO PÚBLICO
# ==============================================================================
# Lo que ve el visitante de la tienda: productos activos con stock, en el
# orden fijo de categorías, y el enlace de WhatsApp para consultar un producto.
# ==============================================================================

import re
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from app_tienda.models import CATEGORY_ORDER, Product
from app_tienda.repositories.interfaces import IProductRepository, ISettingsRepository
from app_tienda.services.inventory_service import normalize_category


def _category_rank(category: str) -> int:
    """Posición de la categoría en el catálogo (desconocidas al final)."""
    try:
        return CATEGORY_ORDER.index(category)
    except ValueError:
        return len(CATEGORY_ORDER)


def normalize_phone(raw: Any, country_code: str = '51') -> str:
    """
    Teléfono solo con dígitos.
    Un número local de 9 dígitos recibe el código de país.
    """
    digits = re.sub(r'\D', '', str(raw or ''))
    if len(digits) == 9:
        digits = f'{country_code}{digits}'
    return digits


def whatsapp_link(number: str, message: str) -> str:
    """Enlace wa.me con el mensaje ya escrito."""
    return f"https://wa.me/{number}?text={quote(message, safe='')}"


def _public_product(product: Dict[str, Any]) -> Dict[str, Any]:
    """Producto sin datos internos (precio de costo)."""
    return {k: v for k, v in product.items() if k != 'cost_price'}


class CatalogService:
    """Consultas del catálogo público (sin autenticación)."""

    def __init__(
        self,
        product_repo: IProductRepository,
        settings_repo: ISettingsRepository,
        store_name: str = 'la tienda',
        country_code: str = '51',
        default_whatsapp: str = ''
    ):
        self.product_repo = product_repo
        self.settings_repo = settings_repo
        self.store_name = store_name
        self.country_code = country_code
        self.default_whatsapp = default_whatsapp

    def list_catalog(self, category: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Productos visibles: activos y con stock > 0.
        Ordenados por categoría (orden fijo) y luego por nombre.

        Args:
            category: Filtra por una categoría (None o 'all' = todas)
        """
        wanted = None
        if category and str(category).lower() != 'all':
            wanted = normalize_category(category) or str(category)

        visible = []
        for data in self.product_repo.list_all():
            product = Product.from_dict(data)
            if not product.is_available:
                continue
            if wanted and product.category != wanted:
                continue
            visible.append(data)

        visible.sort(key=lambda p: (_category_rank(p.get('category', '')), (p.get('name') or '').lower()))
        return [_public_product(p) for p in visible]

    def list_categories(self) -> List[str]:
        """
        Categorías presentes en el inventario: primero las del orden fijo,
        luego cualquier otra que aparezca en los datos.
        """
        present = {p.get('category', '') for p in self.product_repo.list_all()}
        ordered = [c for c in CATEGORY_ORDER if c in present]
        others = sorted(c for c in present if c and c not in CATEGORY_ORDER)
        return ordered + others

    def get_public_product(self, product_id: str) -> Optional[Dict[str, Any]]:
        """Detalle de un producto visible en la tienda, o None."""
        data = self.product_repo.get_by_id(product_id)
        if not data or not Product.from_dict(data).is_available:
            return None
        return _public_product(data)

    # =========================================================================
    # WHATSAPP
    # =========================================================================

    def whatsapp_number(self) -> str:
        """Número de WhatsApp de la tienda, solo dígitos."""
        raw = self.settings_repo.load().get('whatsapp') or self.default_whatsapp
        return normalize_phone(raw, self.country_code)

    def inquiry_message(self, product: Dict[str, Any]) -> str:
        """Mensaje de consulta de compra de un producto."""
        lines = [
            f"¡Hola! Estoy interesado/a en el siguiente producto de *{self.store_name}*:",
            "",
            f"*Producto:* {product.get('name', '')}",
            f"*Código:* {product.get('barcode', '')}",
            f"*Categoría:* {product.get('category', '')}",
        ]
        if product.get('description'):
            lines.append(f"*Descripción:* {product['description']}")
        lines.extend([
            f"*Precio:* S/ {float(product.get('sale_price', 0) or 0):.2f}",
            "",
            "¿Está disponible? Me gustaría coordinar la compra y el envío. ¡Gracias!",
        ])
        return '\n'.join(lines)

    def whatsapp_inquiry_link(self, product: Dict[str, Any]) -> str:
        """Enlace wa.me con el mensaje de consulta ya escrito."""
        return whatsapp_link(self.whatsapp_number(), self.inquiry_message(product))
