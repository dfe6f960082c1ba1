# ==============================================================================
# REPOSITORIO BASE - Colecciones de documentos sobre archivos JSON
# ==============================================================================
# Cada colección (products, sales, customers...) vive en un archivo JSON.
# Las escrituras son atómicas por archivo: se escribe a un temporal y se
# reemplaza el original. No hay transacciones entre archivos.
# ==============================================================================

import json
import os
import uuid
from typing import Any, Dict, List, Optional
from abc import ABC, abstractmethod
import threading


class BaseRepository(ABC):
    """
    Clase base abstracta para todos los repositorios.
    Proporciona lectura/escritura de archivos JSON con un lock de proceso.
    """

    # Lock global para evitar escrituras concurrentes a archivos
    _file_lock = threading.RLock()

    # Nombre del archivo dentro del directorio de datos
    FILE_NAME = ''

    def __init__(self, base_path: str):
        """
        Args:
            base_path: Directorio de datos donde viven los JSON
        """
        self.file_path = os.path.join(base_path, self.FILE_NAME)
        self._ensure_file_exists()

    def _ensure_file_exists(self) -> None:
        """Crea el archivo con datos vacíos si no existe."""
        if not os.path.exists(self.file_path):
            os.makedirs(os.path.dirname(self.file_path) or '.', exist_ok=True)
            self._write_raw(self._empty_data())

    @abstractmethod
    def _empty_data(self) -> Any:
        """Estructura vacía de este repositorio (dict o list)."""

    def _read_raw(self) -> Any:
        """
        Lee los datos crudos del archivo JSON.
        Un archivo corrupto o ausente se lee como colección vacía.
        """
        with self._file_lock:
            try:
                with open(self.file_path, 'r', encoding='utf-8') as f:
                    return json.load(f)
            except (json.JSONDecodeError, FileNotFoundError):
                return self._empty_data()

    def _write_raw(self, data: Any) -> None:
        """
        Escribe datos al archivo JSON de forma atómica.

        Raises:
            OSError: Si hay error de escritura
        """
        with self._file_lock:
            temp_path = self.file_path + '.tmp'
            try:
                with open(temp_path, 'w', encoding='utf-8') as f:
                    json.dump(data, f, indent=2, ensure_ascii=False)
                os.replace(temp_path, self.file_path)
            except Exception:
                if os.path.exists(temp_path):
                    os.remove(temp_path)
                raise


class DocumentRepository(BaseRepository):
    """
    Colección de documentos indexados por ID autogenerado.

    Ejemplo: products.json -> {"3f2a...": {...}, "9bc1...": {...}}
    """

    def _empty_data(self) -> Dict:
        return {}

    @staticmethod
    def new_id() -> str:
        """Genera un ID de documento."""
        return uuid.uuid4().hex

    def get_all(self) -> Dict[str, Dict[str, Any]]:
        """Todos los documentos {id: datos}."""
        data = self._read_raw()
        return data if isinstance(data, dict) else {}

    def list_all(self) -> List[Dict[str, Any]]:
        """Todos los documentos como lista."""
        return list(self.get_all().values())

    def get_by_id(self, doc_id: str) -> Optional[Dict[str, Any]]:
        """Obtiene un documento o None si no existe."""
        return self.get_all().get(str(doc_id))

    def add(self, record: Dict[str, Any]) -> str:
        """
        Inserta un documento nuevo.

        Returns:
            ID asignado
        """
        with self._file_lock:
            data = self.get_all()
            doc_id = self.new_id()
            record = dict(record)
            record['id'] = doc_id
            data[doc_id] = record
            self._write_raw(data)
        return doc_id

    def put(self, doc_id: str, record: Dict[str, Any]) -> None:
        """Reemplaza (o crea) el documento con ese ID."""
        with self._file_lock:
            data = self.get_all()
            record = dict(record)
            record['id'] = str(doc_id)
            data[str(doc_id)] = record
            self._write_raw(data)

    def update(self, doc_id: str, updates: Dict[str, Any]) -> bool:
        """
        Actualiza campos de un documento existente.

        Returns:
            True si el documento existía
        """
        with self._file_lock:
            data = self.get_all()
            record = data.get(str(doc_id))
            if record is None:
                return False
            record.update(updates)
            record['id'] = str(doc_id)
            self._write_raw(data)
        return True

    def delete(self, doc_id: str) -> Optional[Dict[str, Any]]:
        """
        Elimina un documento.

        Returns:
            Datos eliminados o None si no existía
        """
        with self._file_lock:
            data = self.get_all()
            removed = data.pop(str(doc_id), None)
            if removed is not None:
                self._write_raw(data)
        return removed

    def clear(self) -> int:
        """Vacía la colección. Retorna cuántos documentos se borraron."""
        with self._file_lock:
            count = len(self.get_all())
            self._write_raw(self._empty_data())
        return count


class ListRepository(BaseRepository):
    """
    Repositorio para datos almacenados como lista (ej: audit.json).
    """

    def _empty_data(self) -> List:
        return []

    def get_all(self) -> List[Dict[str, Any]]:
        data = self._read_raw()
        return data if isinstance(data, list) else []

    def save_all(self, data: List[Dict[str, Any]]) -> None:
        self._write_raw(data)

    def append(self, record: Dict[str, Any]) -> None:
        with self._file_lock:
            data = self.get_all()
            data.append(record)
            self._write_raw(data)
