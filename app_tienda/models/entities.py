# ==============================================================================
# ENTIDADES DEL DOMINIO - Definiciones de dataclasses
# ==============================================================================
# Cada entidad representa un documento de una colección (products, sales,
# customers, settings). Los registros no tienen integridad referencial:
# una venta puede apuntar a un cliente que ya fue eliminado.
# ==============================================================================

from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any
from enum import Enum
from datetime import datetime, timezone


# ==============================================================================
# ENUMERACIONES - Valores válidos
# ==============================================================================

class Category(str, Enum):
    """Categorías del catálogo, en el orden en que se muestran en la tienda."""
    ROPA_DAMAS = "ROPA PARA DAMAS"
    CARTERAS = "CARTERAS/BILLETERAS"
    ACCESORIOS = "ACCESORIOS"
    CUIDADO_PERSONAL = "CUIDADO PERSONAL"
    SALUD = "SALUD"
    OTROS = "OTROS"


# Orden fijo de categorías en el catálogo público
CATEGORY_ORDER = [c.value for c in Category]


class SaleType(str, Enum):
    """Tipo de venta."""
    CASH = "Cash"      # Contado
    CREDIT = "Credit"  # Crédito (cuotas)


class SaleStatus(str, Enum):
    """Estado de cobro de una venta."""
    PAID = "Paid"
    PENDING = "Pending"


class InstallmentStatus(str, Enum):
    """Estado de una cuota."""
    PENDING = "Pending"
    PAID = "Paid"


class PaymentFrequency(str, Enum):
    """Frecuencia de las cuotas."""
    WEEKLY = "Weekly"
    BIWEEKLY = "Bi-weekly"
    MONTHLY = "Monthly"


class PaymentMethod(str, Enum):
    """Métodos de pago aceptados."""
    CASH = "Cash"
    CARD = "Card"
    TRANSFER = "Transfer"
    YAPE = "Yape"
    PLIN = "Plin"
    OTHER = "Other"


class AuditType(str, Enum):
    """Tipos de eventos de auditoría."""
    VENTA = "VENTA"
    PAGO = "PAGO"
    STOCK = "STOCK"
    PRODUCTO = "PRODUCTO"
    CLIENTE = "CLIENTE"
    SISTEMA = "SISTEMA"


# Prefijo de ítems libres (sin producto ni control de stock)
MANUAL_ITEM_PREFIX = 'manual-'


def utc_now_iso() -> str:
    """Timestamp actual en ISO 8601 (UTC)."""
    return datetime.now(timezone.utc).isoformat()


def _to_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _to_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


# ==============================================================================
# PRODUCTOS
# ==============================================================================

@dataclass
class Product:
    """
    Producto del inventario.

    Attributes:
        id: ID del documento
        name: Nombre del producto
        category: Categoría (ver Category)
        cost_price: Precio de costo
        sale_price: Precio de venta
        stock: Unidades disponibles (se espera >= 0, no se fuerza)
        barcode: Código de barras
        images: Imágenes codificadas (se guardan tal cual llegan)
        active: Si aparece en el catálogo público
    """
    id: str
    name: str
    category: str = Category.OTROS.value
    cost_price: float = 0.0
    sale_price: float = 0.0
    stock: int = 0
    barcode: str = ''
    images: List[str] = field(default_factory=list)
    active: bool = True
    description: str = ''
    tags: List[str] = field(default_factory=list)

    @property
    def is_available(self) -> bool:
        """Visible en la tienda: activo y con stock."""
        return self.active and self.stock > 0

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para persistencia."""
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'category': self.category,
            'cost_price': self.cost_price,
            'sale_price': self.sale_price,
            'stock': self.stock,
            'barcode': self.barcode,
            'images': list(self.images),
            'tags': list(self.tags),
            'active': self.active,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Product':
        """Crea instancia desde diccionario."""
        return cls(
            id=str(data.get('id', '')),
            name=data.get('name', ''),
            description=data.get('description', ''),
            category=data.get('category', Category.OTROS.value),
            cost_price=_to_float(data.get('cost_price')),
            sale_price=_to_float(data.get('sale_price')),
            stock=_to_int(data.get('stock')),
            barcode=str(data.get('barcode', '') or ''),
            images=list(data.get('images') or []),
            tags=list(data.get('tags') or []),
            active=bool(data.get('active', True)),
        )


# ==============================================================================
# VENTAS
# ==============================================================================

@dataclass
class SaleItem:
    """Línea de una venta."""
    product_id: str
    name: str
    quantity: int
    unit_price: float

    @property
    def is_manual(self) -> bool:
        """Ítem libre, no descuenta stock."""
        return self.product_id.startswith(MANUAL_ITEM_PREFIX)

    @property
    def line_total(self) -> float:
        return round(self.quantity * self.unit_price, 2)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'product_id': self.product_id,
            'name': self.name,
            'quantity': self.quantity,
            'unit_price': self.unit_price,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SaleItem':
        return cls(
            product_id=str(data.get('product_id', '')),
            name=data.get('name', ''),
            quantity=_to_int(data.get('quantity')),
            unit_price=_to_float(data.get('unit_price')),
        )


@dataclass
class PaymentDetails:
    """
    Registro de un pago (abono) sobre una venta.

    Attributes:
        method: Método de pago
        amount: Monto pagado
        date: Fecha del pago (ISO)
    """
    method: str
    amount: float
    date: str = ''

    def __post_init__(self):
        if not self.date:
            self.date = utc_now_iso()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'method': self.method,
            'amount': round(self.amount, 2),
            'date': self.date,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PaymentDetails':
        return cls(
            method=data.get('method', PaymentMethod.CASH.value),
            amount=_to_float(data.get('amount')),
            date=data.get('date', ''),
        )


@dataclass
class Installment:
    """
    Cuota de un plan de pagos.

    Attributes:
        amount: Monto programado
        paid_amount: Lo que realmente se abonó al marcarla pagada
            (puede ser menor al programado si el saldo ya era menor)
    """
    number: int
    amount: float
    due_date: str
    status: str = InstallmentStatus.PENDING.value
    paid_amount: float = 0.0

    @property
    def is_paid(self) -> bool:
        return self.status == InstallmentStatus.PAID.value

    def to_dict(self) -> Dict[str, Any]:
        return {
            'number': self.number,
            'amount': self.amount,
            'due_date': self.due_date,
            'status': self.status,
            'paid_amount': round(self.paid_amount, 2),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Installment':
        amount = _to_float(data.get('amount'))
        status = data.get('status', InstallmentStatus.PENDING.value)
        # Cuotas guardadas sin paid_amount: se asume el monto programado
        if 'paid_amount' in data:
            paid_amount = _to_float(data.get('paid_amount'))
        else:
            paid_amount = amount if status == InstallmentStatus.PAID.value else 0.0
        return cls(
            number=_to_int(data.get('number')),
            amount=amount,
            due_date=data.get('due_date', ''),
            status=status,
            paid_amount=paid_amount,
        )


@dataclass
class InstallmentPlan:
    """
    Plan de cuotas de una venta al crédito.
    Se calcula una sola vez al momento de la venta.
    """
    number_of_installments: int
    frequency: str
    installments: List[Installment] = field(default_factory=list)

    def get(self, number: int) -> Optional[Installment]:
        """Busca una cuota por su número."""
        for inst in self.installments:
            if inst.number == number:
                return inst
        return None

    @property
    def pending(self) -> List[Installment]:
        return [i for i in self.installments if not i.is_paid]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'number_of_installments': self.number_of_installments,
            'frequency': self.frequency,
            'installments': [i.to_dict() for i in self.installments],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'InstallmentPlan':
        return cls(
            number_of_installments=_to_int(data.get('number_of_installments'), 1),
            frequency=data.get('frequency', PaymentFrequency.WEEKLY.value),
            installments=[Installment.from_dict(i) for i in data.get('installments', [])],
        )


@dataclass
class Sale:
    """
    Venta registrada en el punto de venta.

    Attributes:
        id: ID del documento
        date: Fecha de la venta (ISO)
        total: Total cobrado (subtotal - descuento)
        discount: Descuento aplicado
        cost_total: Costo total de los ítems
        profit: Ganancia (total - cost_total)
        type: Cash o Credit
        items: Líneas de la venta
        customer_id: Cliente asociado (opcional)
        status: Paid o Pending
        payments: Historial de abonos
        remaining_balance: Saldo pendiente
        installment_plan: Plan de cuotas (solo crédito)
    """
    id: str
    date: str
    total: float
    type: str = SaleType.CASH.value
    items: List[SaleItem] = field(default_factory=list)
    discount: float = 0.0
    cost_total: float = 0.0
    profit: float = 0.0
    customer_id: Optional[str] = None
    client_name: str = ''
    status: str = SaleStatus.PAID.value
    payments: List[PaymentDetails] = field(default_factory=list)
    remaining_balance: float = 0.0
    installment_plan: Optional[InstallmentPlan] = None

    @property
    def is_credit(self) -> bool:
        return self.type == SaleType.CREDIT.value

    def refresh_status(self) -> None:
        """Recalcula el estado a partir del saldo pendiente."""
        self.status = SaleStatus.PAID.value if self.remaining_balance <= 0 else SaleStatus.PENDING.value

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para persistencia JSON."""
        d = {
            'id': self.id,
            'date': self.date,
            'total': self.total,
            'discount': self.discount,
            'cost_total': self.cost_total,
            'profit': self.profit,
            'type': self.type,
            'items': [i.to_dict() for i in self.items],
            'customer_id': self.customer_id,
            'client_name': self.client_name,
            'status': self.status,
            'payments': [p.to_dict() for p in self.payments],
            'remaining_balance': self.remaining_balance,
        }
        if self.installment_plan:
            d['installment_plan'] = self.installment_plan.to_dict()
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Sale':
        """Crea instancia desde diccionario."""
        plan = None
        if data.get('installment_plan'):
            plan = InstallmentPlan.from_dict(data['installment_plan'])
        return cls(
            id=str(data.get('id', '')),
            date=data.get('date', ''),
            total=_to_float(data.get('total')),
            discount=_to_float(data.get('discount')),
            cost_total=_to_float(data.get('cost_total')),
            profit=_to_float(data.get('profit')),
            type=data.get('type', SaleType.CASH.value),
            items=[SaleItem.from_dict(i) for i in data.get('items', [])],
            customer_id=data.get('customer_id') or None,
            client_name=data.get('client_name', ''),
            status=data.get('status', SaleStatus.PAID.value),
            payments=[PaymentDetails.from_dict(p) for p in data.get('payments', [])],
            remaining_balance=_to_float(data.get('remaining_balance')),
            installment_plan=plan,
        )


# ==============================================================================
# CLIENTES
# ==============================================================================

@dataclass
class Customer:
    """
    Cliente de la tienda.

    Attributes:
        id: ID del documento
        name: Nombre
        contact: Teléfono / WhatsApp
        balance: Deuda acumulada
        history: IDs de ventas del cliente
    """
    id: str
    name: str
    contact: str = ''
    email: str = ''
    address: str = ''
    balance: float = 0.0
    history: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'contact': self.contact,
            'email': self.email,
            'address': self.address,
            'balance': round(self.balance, 2),
            'history': list(self.history),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Customer':
        return cls(
            id=str(data.get('id', '')),
            name=data.get('name', ''),
            contact=data.get('contact', ''),
            email=data.get('email', ''),
            address=data.get('address', ''),
            balance=_to_float(data.get('balance')),
            history=list(data.get('history') or []),
        )


# ==============================================================================
# CONFIGURACIÓN DE LA TIENDA
# ==============================================================================

@dataclass
class AdminCredential:
    """Credencial de administrador (la contraseña nunca se guarda en texto plano)."""
    username: str
    password_hash: str

    def to_dict(self) -> Dict[str, Any]:
        return {'username': self.username, 'password_hash': self.password_hash}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AdminCredential':
        return cls(
            username=data.get('username', ''),
            password_hash=data.get('password_hash', ''),
        )


@dataclass
class StoreSettings:
    """Enlaces de contacto/redes y administradores autorizados."""
    whatsapp: str = ''
    instagram: str = ''
    tiktok: str = ''
    facebook: str = ''
    authorized_admins: List[AdminCredential] = field(default_factory=list)

    def public_dict(self) -> Dict[str, Any]:
        """Datos visibles en la tienda pública (sin credenciales)."""
        return {
            'whatsapp': self.whatsapp,
            'instagram': self.instagram,
            'tiktok': self.tiktok,
            'facebook': self.facebook,
        }

    def to_dict(self) -> Dict[str, Any]:
        d = self.public_dict()
        d['authorized_admins'] = [a.to_dict() for a in self.authorized_admins]
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StoreSettings':
        return cls(
            whatsapp=data.get('whatsapp', ''),
            instagram=data.get('instagram', ''),
            tiktok=data.get('tiktok', ''),
            facebook=data.get('facebook', ''),
            authorized_admins=[
                AdminCredential.from_dict(a) for a in data.get('authorized_admins', [])
            ],
        )


# ==============================================================================
# AUDITORÍA
# ==============================================================================

@dataclass
class AuditLog:
    """
    Registro de auditoría.

    Attributes:
        type: Tipo de evento (VENTA, PAGO, STOCK, etc.)
        user: Usuario que realizó la acción
        message: Mensaje descriptivo humanizado
        timestamp: Fecha y hora del evento
        related_id: ID relacionado (venta, producto, cliente)
        details: Detalles adicionales
    """
    type: str
    user: str
    message: str
    timestamp: str = ''
    related_id: str = ''
    details: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.timestamp:
            self.timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.type,
            'user': self.user,
            'message': self.message,
            'timestamp': self.timestamp,
            'related_id': self.related_id,
            'details': self.details,
        }
