# ==============================================================================
# SERVICIO DE BACKUPS
# ==============================================================================
# Un ZIP diario con las colecciones de la tienda: backup_YYYY-MM-DD.zip
# Solo se conservan los últimos MAX_BACKUPS archivos.
# ==============================================================================

import os
import zipfile
from datetime import datetime
from typing import Any, Dict, List, Tuple


class BackupService:
    """
    Backups de los archivos JSON del directorio de datos.

    Uso:
        service = BackupService(data_dir)
        service.run_daily_backup()
    """

    DATA_FILES = [
        'products.json',
        'sales.json',
        'customers.json',
        'settings.json',
        'audit.json',
    ]

    MAX_BACKUPS = 7

    BACKUP_DIR_NAME = 'backups'

    def __init__(self, base_path: str):
        self.base_path = base_path
        self.backup_root = os.path.join(base_path, self.BACKUP_DIR_NAME)
        os.makedirs(self.backup_root, exist_ok=True)

    @staticmethod
    def backup_name(day: datetime = None) -> str:
        return f"backup_{(day or datetime.now()).strftime('%Y-%m-%d')}.zip"

    def _today_path(self) -> str:
        return os.path.join(self.backup_root, self.backup_name())

    def list_backups(self) -> List[str]:
        """Nombres de backups válidos, más reciente primero."""
        backups = []
        for item in os.listdir(self.backup_root):
            if not (item.startswith('backup_') and item.endswith('.zip')):
                continue
            if not os.path.isfile(os.path.join(self.backup_root, item)):
                continue
            try:
                datetime.strptime(item[7:-4], '%Y-%m-%d')
            except ValueError:
                continue
            backups.append(item)
        return sorted(backups, reverse=True)

    def _write_zip(self, zip_path: str) -> Tuple[int, List[str]]:
        """
        Returns:
            Tupla (archivos_agregados, errores)
        """
        added = 0
        errors = []
        try:
            with zipfile.ZipFile(zip_path, 'w', zipfile.ZIP_DEFLATED) as zf:
                for filename in self.DATA_FILES:
                    src = os.path.join(self.base_path, filename)
                    if os.path.exists(src):
                        zf.write(src, filename)
                        added += 1
        except (OSError, zipfile.BadZipFile) as e:
            errors.append(f"Error creando ZIP: {e}")
            if os.path.exists(zip_path):
                os.remove(zip_path)
        return added, errors

    def create_backup(self, force: bool = False) -> Dict[str, Any]:
        """
        Crea el backup del día (no lo repite salvo force=True).

        Returns:
            Dict con success, message, files_added, errors, backup_path
        """
        zip_path = self._today_path()
        if not force and os.path.exists(zip_path) and os.path.getsize(zip_path) > 0:
            print(f"[BACKUP] Backup ya existe hoy: {os.path.basename(zip_path)}")
            return {
                'success': True,
                'message': 'Backup del día ya existe',
                'files_added': 0,
                'errors': [],
                'backup_path': zip_path,
            }

        added, errors = self._write_zip(zip_path)
        if added > 0:
            size_kb = round(os.path.getsize(zip_path) / 1024, 2)
            message = f'Backup creado: {added} archivos ({size_kb} KB)'
            print(f"[BACKUP] {os.path.basename(zip_path)} ({added} archivos, {size_kb} KB)")
        else:
            message = 'No se encontraron archivos para respaldar'

        return {
            'success': added > 0,
            'message': message,
            'files_added': added,
            'errors': errors,
            'backup_path': zip_path if added > 0 else None,
        }

    def rotate_backups(self) -> Dict[str, int]:
        """Elimina los backups que exceden MAX_BACKUPS (los más antiguos)."""
        backups = self.list_backups()
        deleted = 0
        for name in backups[self.MAX_BACKUPS:]:
            try:
                os.remove(os.path.join(self.backup_root, name))
                deleted += 1
                print(f"[BACKUP] Eliminado backup antiguo: {name}")
            except OSError as e:
                print(f"[BACKUP ERROR] No se pudo eliminar {name}: {e}")
        return {'deleted_count': deleted, 'remaining_count': len(self.list_backups())}

    def run_daily_backup(self) -> Dict[str, Any]:
        return {
            'backup': self.create_backup(),
            'rotation': self.rotate_backups(),
        }

    def get_backup_status(self) -> Dict[str, Any]:
        backups = []
        for name in self.list_backups():
            path = os.path.join(self.backup_root, name)
            try:
                with zipfile.ZipFile(path, 'r') as zf:
                    files = len(zf.namelist())
            except zipfile.BadZipFile:
                files = 0
            backups.append({
                'filename': name,
                'date': name[7:-4],
                'files': files,
                'size_kb': round(os.path.getsize(path) / 1024, 2),
            })
        return {
            'total_backups': len(backups),
            'max_backups': self.MAX_BACKUPS,
            'backups': backups,
            'today_exists': os.path.exists(self._today_path()),
        }


def run_startup_backup(base_path: str) -> None:
    """
    Backup al iniciar la aplicación. Un fallo solo se informa por consola.
    """
    try:
        result = BackupService(base_path).run_daily_backup()
        if result['backup']['errors']:
            print(f"[BACKUP] Errores: {result['backup']['errors']}")
    except OSError as e:
        print(f"[BACKUP ERROR] No se pudo ejecutar backup: {e}")
