# ==============================================================================
# CAPA DE REPOSITORIOS - Acceso a datos
# ==============================================================================
# Esta capa encapsula todo el acceso a la persistencia (archivos JSON,
# uno por colección). Los servicios solo conocen las interfaces.
#
# ESTRUCTURA:
# ├── interfaces.py           → Protocolos (contratos)
# ├── base.py                 → DocumentRepository, ListRepository
# ├── product_repository.py   → products.json
# ├── sales_repository.py     → sales.json
# ├── customer_repository.py  → customers.json
# ├── settings_repository.py  → settings.json
# └── audit_repository.py     → audit.json
# ==============================================================================

from .interfaces import (
    IDocumentRepository,
    IProductRepository,
    ISalesRepository,
    ICustomerRepository,
    ISettingsRepository,
    IAuditRepository,
)

from .base import BaseRepository, DocumentRepository, ListRepository
from .product_repository import ProductRepository
from .sales_repository import SalesRepository
from .customer_repository import CustomerRepository
from .settings_repository import SettingsRepository
from .audit_repository import AuditRepository

__all__ = [
    # Interfaces
    'IDocumentRepository',
    'IProductRepository',
    'ISalesRepository',
    'ICustomerRepository',
    'ISettingsRepository',
    'IAuditRepository',

    # Clases base
    'BaseRepository',
    'DocumentRepository',
    'ListRepository',

    # Implementaciones JSON
    'ProductRepository',
    'SalesRepository',
    'CustomerRepository',
    'SettingsRepository',
    'AuditRepository',
]
