# ==============================================================================
# INTERFACES DE REPOSITORIOS
# ==============================================================================
# Contratos (Protocol) que usan los servicios en sus type hints.
# Los servicios dependen de estas interfaces, no de los archivos JSON:
# otra implementación (p.ej. una base de documentos remota) solo tiene que
# cumplir estos métodos y registrarse en app_container.py.
# ==============================================================================

from typing import Any, Dict, List, Optional, Protocol, runtime_checkable


@runtime_checkable
class IDocumentRepository(Protocol):
    """Operaciones comunes de una colección de documentos."""

    def get_all(self) -> Dict[str, Dict[str, Any]]:
        ...

    def list_all(self) -> List[Dict[str, Any]]:
        ...

    def get_by_id(self, doc_id: str) -> Optional[Dict[str, Any]]:
        ...

    def add(self, record: Dict[str, Any]) -> str:
        ...

    def put(self, doc_id: str, record: Dict[str, Any]) -> None:
        ...

    def update(self, doc_id: str, updates: Dict[str, Any]) -> bool:
        ...

    def delete(self, doc_id: str) -> Optional[Dict[str, Any]]:
        ...

    def clear(self) -> int:
        ...


@runtime_checkable
class IProductRepository(IDocumentRepository, Protocol):

    def find_by_barcode(self, barcode: str) -> Optional[Dict[str, Any]]:
        ...

    def adjust_stock(self, product_id: str, delta: int) -> Optional[int]:
        ...


@runtime_checkable
class ISalesRepository(IDocumentRepository, Protocol):

    def list_recent(self) -> List[Dict[str, Any]]:
        ...

    def list_by_customer(self, customer_id: str) -> List[Dict[str, Any]]:
        ...


@runtime_checkable
class ICustomerRepository(IDocumentRepository, Protocol):

    def find_by_name(self, name: str) -> Optional[Dict[str, Any]]:
        ...

    def adjust_balance(self, customer_id: str, delta: float, floor_zero: bool = False) -> Optional[float]:
        ...

    def append_history(self, customer_id: str, sale_id: str) -> bool:
        ...


@runtime_checkable
class ISettingsRepository(Protocol):

    def load(self) -> Dict[str, Any]:
        ...

    def save(self, config: Dict[str, Any]) -> None:
        ...

    def exists(self) -> bool:
        ...


@runtime_checkable
class IAuditRepository(Protocol):

    def load(self) -> List[Dict[str, Any]]:
        ...

    def log(
        self,
        log_type: str,
        user: str,
        message: str,
        related_id: str = '',
        details: Dict[str, Any] = None
    ) -> None:
        ...

    def search(self, log_type: Optional[str] = None, query: str = '', limit: int = 200) -> List[Dict[str, Any]]:
        ...
