# ==============================================================================
# REPOSITORIO DE AUDITORÍA
# ==============================================================================
# Encapsula todo el acceso a audit.json
# La auditoría se almacena como lista: [{log1}, {log2}, ...]
# ==============================================================================

from typing import Any, Dict, List, Optional

from app_tienda.models import AuditLog
from .base import ListRepository


class AuditRepository(ListRepository):
    """
    Repositorio del log de actividad.

    Formato de datos en audit.json:
    [
        {
            "type": "VENTA",
            "user": "admin",
            "message": "Venta al crédito registrada ...",
            "timestamp": "2024-01-01 10:00:00",
            "related_id": "a81c...",
            "details": {...}
        }
    ]
    """

    FILE_NAME = 'audit.json'

    # Límite de registros para evitar archivos muy grandes
    MAX_LOGS = 10000

    def load(self) -> List[Dict[str, Any]]:
        """Logs ordenados del más reciente al más antiguo."""
        return sorted(self.get_all(), key=lambda x: x.get('timestamp', ''), reverse=True)

    def log(
        self,
        log_type: str,
        user: str,
        message: str,
        related_id: str = '',
        details: Dict[str, Any] = None
    ) -> None:
        """Registra un nuevo evento."""
        entry = AuditLog(
            type=log_type,
            user=user or 'sistema',
            message=message,
            related_id=related_id or '',
            details=details or {},
        )
        with self._file_lock:
            logs = self.get_all()
            logs.append(entry.to_dict())
            # Conservar solo los MAX_LOGS más recientes
            if len(logs) > self.MAX_LOGS:
                logs = logs[-self.MAX_LOGS:]
            self.save_all(logs)

    def search(
        self,
        log_type: Optional[str] = None,
        query: str = '',
        limit: int = 200
    ) -> List[Dict[str, Any]]:
        """
        Filtra logs por tipo y texto libre.

        Args:
            log_type: Tipo de evento (VENTA, PAGO, ...)
            query: Texto a buscar en mensaje, usuario o ID relacionado
            limit: Máximo de resultados
        """
        q = (query or '').strip().lower()
        result = []
        for entry in self.load():
            if log_type and entry.get('type') != log_type:
                continue
            if q:
                haystack = ' '.join(
                    str(entry.get(k, '')) for k in ('message', 'user', 'related_id')
                ).lower()
                if q not in haystack:
                    continue
            result.append(entry)
            if len(result) >= limit:
                break
        return result
