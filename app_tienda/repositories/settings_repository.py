# ==============================================================================
# REPOSITORIO DE CONFIGURACIÓN DE LA TIENDA
# ==============================================================================
# Encapsula todo el acceso a settings.json
# Un único documento "config" con enlaces de contacto y administradores.
# ==============================================================================

from typing import Any, Dict

from .base import BaseRepository


class SettingsRepository(BaseRepository):
    """
    Repositorio de la configuración de la tienda.

    Formato de datos en settings.json:
    {
        "config": {
            "whatsapp": "51999999999",
            "instagram": "https://www.instagram.com/...",
            "tiktok": "",
            "facebook": "",
            "authorized_admins": [{"username": "admin", "password_hash": "scrypt:..."}]
        }
    }
    """

    FILE_NAME = 'settings.json'
    DOC_ID = 'config'

    def _empty_data(self) -> Dict:
        return {}

    def load(self) -> Dict[str, Any]:
        """
        Obtiene el documento de configuración.

        Returns:
            Diccionario de configuración (vacío si nunca se guardó)
        """
        data = self._read_raw()
        if not isinstance(data, dict):
            return {}
        return data.get(self.DOC_ID, {})

    def save(self, config: Dict[str, Any]) -> None:
        """
        Reemplaza el documento de configuración completo.

        Args:
            config: Configuración a guardar
        """
        with self._file_lock:
            data = self._read_raw()
            if not isinstance(data, dict):
                data = {}
            data[self.DOC_ID] = config
            self._write_raw(data)

    def exists(self) -> bool:
        """True si el documento de configuración ya fue creado."""
        data = self._read_raw()
        return isinstance(data, dict) and self.DOC_ID in data
