# ==============================================================================
# CAPA DE SERVICIOS - Lógica de negocio
# ==============================================================================
# Las reglas de la tienda viven aquí, no en las rutas.
# Los servicios reciben repositorios (interfaces) y devuelven dicts
# {'ok': bool, 'error': str} para errores de validación.
#
# ESTRUCTURA:
# ├── installments.py       → Cálculo de planes de cuotas
# ├── audit_service.py      → Registro de actividad
# ├── inventory_service.py  → Productos y stock
# ├── catalog_service.py    → Catálogo público y WhatsApp
# ├── customer_service.py   → Clientes y estado de cuenta
# ├── sales_service.py      → Punto de venta
# ├── payment_service.py    → Abonos y cuotas
# ├── settings_service.py   → Configuración y administradores
# ├── report_service.py     → Resumen financiero y CSV
# └── backup_service.py     → Backups diarios en ZIP
# ==============================================================================

from .audit_service import AuditService
from .inventory_service import InventoryService
from .catalog_service import CatalogService
from .customer_service import CustomerService
from .sales_service import SalesService
from .payment_service import PaymentService
from .settings_service import SettingsService, LastAdminError
from .report_service import ReportService
from .backup_service import BackupService, run_startup_backup

__all__ = [
    'AuditService',
    'InventoryService',
    'CatalogService',
    'CustomerService',
    'SalesService',
    'PaymentService',
    'SettingsService',
    'LastAdminError',
    'ReportService',
    'BackupService',
    'run_startup_backup',
]
