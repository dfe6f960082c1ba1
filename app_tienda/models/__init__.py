# ==============================================================================
# CAPA DE MODELOS - Estructuras de datos del sistema
# ==============================================================================
# Entidades del dominio como dataclasses, independientes de la persistencia.
# Cada una sabe convertirse a/desde el diccionario que se guarda en JSON.
# ==============================================================================

from .entities import (
    # Productos
    Product,
    Category,
    CATEGORY_ORDER,

    # Ventas
    Sale,
    SaleItem,
    SaleType,
    SaleStatus,
    MANUAL_ITEM_PREFIX,

    # Pagos y cuotas
    PaymentDetails,
    PaymentMethod,
    PaymentFrequency,
    Installment,
    InstallmentPlan,
    InstallmentStatus,

    # Clientes
    Customer,

    # Configuración
    StoreSettings,
    AdminCredential,

    # Auditoría
    AuditLog,
    AuditType,

    utc_now_iso,
)

__all__ = [
    'Product',
    'Category',
    'CATEGORY_ORDER',
    'Sale',
    'SaleItem',
    'SaleType',
    'SaleStatus',
    'MANUAL_ITEM_PREFIX',
    'PaymentDetails',
    'PaymentMethod',
    'PaymentFrequency',
    'Installment',
    'InstallmentPlan',
    'InstallmentStatus',
    'Customer',
    'StoreSettings',
    'AdminCredential',
    'AuditLog',
    'AuditType',
    'utc_now_iso',
]
