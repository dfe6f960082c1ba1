# ==============================================================================
# SERVICIO DE CONFIGURACIÓN Y ADMINISTRADORES
# ==============================================================================
# Enlaces de contacto de la tienda y la lista de administradores autorizados.
#
# SEGURIDAD:
# - Las contraseñas se guardan siempre como hash (werkzeug)
# - Contraseñas en texto plano heredadas se migran al cargar
# - Nunca se puede eliminar al último administrador
# ==============================================================================

from typing import Any, Dict, List, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from app_tienda.models import AdminCredential, StoreSettings
from app_tienda.repositories.interfaces import ISettingsRepository
from app_tienda.services.audit_service import AuditService


class LastAdminError(Exception):
    """Excepción lanzada cuando se intenta eliminar al último administrador."""
    pass


# Campos públicos editables
LINK_FIELDS = ('whatsapp', 'instagram', 'tiktok', 'facebook')

DEFAULT_WHATSAPP = '51999509661'


def normalize_username(username: Optional[str]) -> str:
    """Usuarios sin espacios y en minúsculas."""
    return (username or '').strip().lower()


def is_password_hashed(value: str) -> bool:
    """True si el valor ya es un hash de werkzeug (pbkdf2: o scrypt:)."""
    if not value:
        return False
    return value.startswith('pbkdf2:') or value.startswith('scrypt:')


class SettingsService:
    """
    Servicio de configuración de la tienda.

    Responsabilidades:
    - Leer / actualizar enlaces de contacto
    - Alta y baja de administradores
    - Autenticación con registro del primer administrador
    """

    def __init__(
        self,
        settings_repo: ISettingsRepository,
        audit_service: AuditService = None,
        default_whatsapp: str = DEFAULT_WHATSAPP
    ):
        self.settings_repo = settings_repo
        self.audit_service = audit_service
        self.default_whatsapp = default_whatsapp

    # =========================================================================
    # CARGA / GUARDADO
    # =========================================================================

    def load(self) -> StoreSettings:
        """
        Configuración actual. Si no existe se crea con los valores por defecto.
        """
        if not self.settings_repo.exists():
            settings = StoreSettings(whatsapp=self.default_whatsapp)
            self.settings_repo.save(settings.to_dict())
            return settings

        self.migrate_plaintext_passwords()
        return StoreSettings.from_dict(self.settings_repo.load())

    def _save(self, settings: StoreSettings) -> None:
        self.settings_repo.save(settings.to_dict())

    def get_public_settings(self) -> Dict[str, Any]:
        """Enlaces visibles en la tienda (sin credenciales)."""
        return self.load().public_dict()

    def update_links(self, updates: Dict[str, Any], user: str = None) -> Dict[str, Any]:
        """
        Actualiza los enlaces de contacto. Campos desconocidos se ignoran.

        Returns:
            Dict con ok y settings públicos
        """
        settings = self.load()
        changed = []
        for key in LINK_FIELDS:
            if key in (updates or {}):
                setattr(settings, key, str(updates[key] or '').strip())
                changed.append(key)
        self._save(settings)

        if self.audit_service and user and changed:
            self.audit_service.log_system(
                user, f"Configuración de la tienda actualizada por {user}", {'fields': changed}
            )

        return {'ok': True, 'settings': settings.public_dict()}

    # =========================================================================
    # MIGRACIÓN DE SEGURIDAD
    # =========================================================================

    def migrate_plaintext_passwords(self) -> int:
        """
        Convierte contraseñas en texto plano a hash.
        Acepta el formato heredado {'username', 'password'}.

        Returns:
            Cantidad de contraseñas migradas
        """
        config = self.settings_repo.load()
        admins = config.get('authorized_admins') or []
        migrated = 0

        kept = []
        for admin in admins:
            plain = admin.pop('password', None)
            stored_hash = admin.get('password_hash') or ''
            if not plain and not stored_hash:
                # Sin contraseña nunca podría iniciar sesión y bloquearía el primer registro
                print(f"[ADVERTENCIA] Administrador '{admin.get('username', '')}' sin contraseña eliminado")
                migrated += 1
                continue
            if plain and not is_password_hashed(stored_hash):
                print(f"[SEGURIDAD] Migrando contraseña de '{admin.get('username', '')}' a hash seguro")
                admin['password_hash'] = generate_password_hash(plain)
                migrated += 1
            elif plain is not None:
                migrated += 1
            elif not is_password_hashed(stored_hash):
                print(f"[SEGURIDAD] Migrando contraseña de '{admin.get('username', '')}' a hash seguro")
                admin['password_hash'] = generate_password_hash(stored_hash)
                migrated += 1
            kept.append(admin)

        if migrated > 0:
            config['authorized_admins'] = kept
            self.settings_repo.save(config)
            print(f"[SEGURIDAD] {migrated} contraseña(s) migrada(s) a hash")
            if self.audit_service:
                self.audit_service.log_system(
                    'system',
                    f'Migración de contraseñas: {migrated} contraseñas actualizadas a hash seguro'
                )

        return migrated

    # =========================================================================
    # ADMINISTRADORES
    # =========================================================================

    def list_admins(self) -> List[str]:
        """Usuarios autorizados (sin hashes)."""
        return [a.username for a in self.load().authorized_admins]

    def _find_admin(self, settings: StoreSettings, username: str) -> Optional[AdminCredential]:
        wanted = normalize_username(username)
        for admin in settings.authorized_admins:
            if normalize_username(admin.username) == wanted:
                return admin
        return None

    def add_admin(self, username: str, password: str, user: str = None) -> Dict[str, Any]:
        """
        Autoriza a un nuevo administrador.

        Returns:
            Dict con ok, username o error
        """
        username = normalize_username(username)
        if not username or not password:
            return {'ok': False, 'error': 'Usuario y contraseña son obligatorios'}
        if len(password) < 4:
            return {'ok': False, 'error': 'La contraseña debe tener al menos 4 caracteres'}

        settings = self.load()
        if self._find_admin(settings, username):
            return {'ok': False, 'error': 'El usuario ya existe'}

        settings.authorized_admins.append(
            AdminCredential(username=username, password_hash=generate_password_hash(password))
        )
        self._save(settings)

        if self.audit_service and user:
            self.audit_service.log_system(user, f"Administrador '{username}' autorizado por {user}")

        return {'ok': True, 'username': username}

    def remove_admin(self, username: str, user: str = None) -> Dict[str, Any]:
        """
        Quita un administrador.

        Raises:
            LastAdminError: Si es el único administrador que queda
        """
        settings = self.load()
        admin = self._find_admin(settings, username)
        if not admin:
            return {'ok': False, 'error': 'Usuario no encontrado'}
        if len(settings.authorized_admins) <= 1:
            raise LastAdminError('No se puede eliminar el último administrador')

        settings.authorized_admins.remove(admin)
        self._save(settings)

        if self.audit_service and user:
            self.audit_service.log_system(user, f"Administrador '{admin.username}' eliminado por {user}")

        return {'ok': True, 'username': admin.username}

    def change_password(self, username: str, new_password: str, user: str = None) -> Dict[str, Any]:
        if not new_password or len(new_password) < 4:
            return {'ok': False, 'error': 'La contraseña debe tener al menos 4 caracteres'}
        settings = self.load()
        admin = self._find_admin(settings, username)
        if not admin:
            return {'ok': False, 'error': 'Usuario no encontrado'}

        admin.password_hash = generate_password_hash(new_password)
        self._save(settings)

        if self.audit_service and user:
            self.audit_service.log_system(user, f"Contraseña de '{admin.username}' cambiada por {user}")

        return {'ok': True}

    # =========================================================================
    # AUTENTICACIÓN
    # =========================================================================

    def authenticate(self, username: str, password: str) -> Optional[str]:
        """
        Verifica credenciales.

        Si todavía no hay administradores, el primer login válido
        (usuario y contraseña no vacíos) queda registrado como administrador.

        Returns:
            Nombre de usuario normalizado o None
        """
        username = normalize_username(username)
        if not username or not password:
            return None

        settings = self.load()
        if not settings.authorized_admins:
            result = self.add_admin(username, password)
            if not result['ok']:
                return None
            print(f"[ADVERTENCIA] Primer administrador registrado: '{username}'")
            if self.audit_service:
                self.audit_service.log_system(username, f"Primer administrador registrado: {username}")
            return username

        admin = self._find_admin(settings, username)
        if not admin:
            return None
        if not is_password_hashed(admin.password_hash):
            print(f"[SEGURIDAD] Usuario '{username}' tiene contraseña sin hash. Ejecutar migración.")
            return None
        if not check_password_hash(admin.password_hash, password):
            return None

        if self.audit_service:
            self.audit_service.log_system(username, f"Inicio de sesión de {username}")

        return admin.username
