# ==============================================================================
# CONTENEDOR DE DEPENDENCIAS
# ==============================================================================
# Punto único para obtener repositorios y servicios ya conectados entre sí.
# Las rutas piden servicios al contenedor; los servicios dependen de las
# interfaces de repositorios, no del almacenamiento en JSON.
# ==============================================================================

import os
from typing import Optional

from app_tienda import config
from app_tienda.repositories import (
    AuditRepository,
    CustomerRepository,
    ProductRepository,
    SalesRepository,
    SettingsRepository,
)
from app_tienda.services import (
    AuditService,
    BackupService,
    CatalogService,
    CustomerService,
    InventoryService,
    PaymentService,
    ReportService,
    SalesService,
    SettingsService,
)


class AppContainer:
    """
    Contenedor de dependencias (singleton, creación perezosa).

    Uso:
        container = get_container('/ruta/data')
        container.sales_service.process_sale({...}, user)
    """

    _instance: Optional['AppContainer'] = None

    def __new__(cls, base_path: str = None, **options):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, base_path: str = None, store_name: str = None, country_code: str = None):
        """
        Args:
            base_path: Directorio de los archivos JSON
            store_name: Nombre de la tienda en mensajes de WhatsApp
            country_code: Código de país para números locales
        """
        if self._initialized:
            return

        self._base_path = base_path or config.DATA_DIR
        os.makedirs(self._base_path, exist_ok=True)
        self.store_name = store_name or config.STORE_NAME
        self.country_code = country_code or config.STORE_COUNTRY_CODE
        self._cache = {}
        self._initialized = True

    @property
    def base_path(self) -> str:
        return self._base_path

    def _get(self, key: str, factory):
        if key not in self._cache:
            self._cache[key] = factory()
        return self._cache[key]

    # =========================================================================
    # REPOSITORIOS
    # =========================================================================

    @property
    def product_repo(self) -> ProductRepository:
        return self._get('product_repo', lambda: ProductRepository(self._base_path))

    @property
    def sales_repo(self) -> SalesRepository:
        return self._get('sales_repo', lambda: SalesRepository(self._base_path))

    @property
    def customer_repo(self) -> CustomerRepository:
        return self._get('customer_repo', lambda: CustomerRepository(self._base_path))

    @property
    def settings_repo(self) -> SettingsRepository:
        return self._get('settings_repo', lambda: SettingsRepository(self._base_path))

    @property
    def audit_repo(self) -> AuditRepository:
        return self._get('audit_repo', lambda: AuditRepository(self._base_path))

    # =========================================================================
    # SERVICIOS
    # =========================================================================

    @property
    def audit_service(self) -> AuditService:
        return self._get('audit_service', lambda: AuditService(self.audit_repo))

    @property
    def inventory_service(self) -> InventoryService:
        return self._get('inventory_service', lambda: InventoryService(self.product_repo, self.audit_service))

    @property
    def settings_service(self) -> SettingsService:
        return self._get('settings_service', lambda: SettingsService(self.settings_repo, self.audit_service))

    @property
    def catalog_service(self) -> CatalogService:
        """Catálogo público; el número por defecto es el de la configuración inicial."""
        return self._get('catalog_service', lambda: CatalogService(
            self.product_repo,
            self.settings_repo,
            store_name=self.store_name,
            country_code=self.country_code,
            default_whatsapp=self.settings_service.default_whatsapp,
        ))

    @property
    def customer_service(self) -> CustomerService:
        return self._get('customer_service', lambda: CustomerService(
            self.customer_repo,
            self.sales_repo,
            self.audit_service,
            store_name=self.store_name,
        ))

    @property
    def sales_service(self) -> SalesService:
        return self._get('sales_service', lambda: SalesService(
            self.sales_repo,
            self.product_repo,
            self.customer_repo,
            self.customer_service,
            self.audit_service,
        ))

    @property
    def payment_service(self) -> PaymentService:
        return self._get('payment_service', lambda: PaymentService(
            self.sales_repo,
            self.customer_repo,
            self.audit_service,
        ))

    @property
    def report_service(self) -> ReportService:
        return self._get('report_service', lambda: ReportService(
            self.product_repo,
            self.sales_repo,
            self.customer_repo,
        ))

    @property
    def backup_service(self) -> BackupService:
        return self._get('backup_service', lambda: BackupService(self._base_path))

    # =========================================================================
    # UTILIDADES
    # =========================================================================

    def reset(self) -> None:
        """Descarta las instancias creadas (se recrean al pedirlas)."""
        self._cache = {}

    @classmethod
    def get_instance(cls, base_path: str = None, **options) -> 'AppContainer':
        if cls._instance is None:
            return cls(base_path, **options)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Elimina la instancia singleton (create_app y tests)."""
        if cls._instance is not None:
            cls._instance.reset()
            cls._instance = None


def get_container(base_path: str = None, **options) -> AppContainer:
    """Contenedor global de dependencias."""
    return AppContainer.get_instance(base_path, **options)
