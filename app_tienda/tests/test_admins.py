"""
Tests de administradores y configuración de la tienda
"""
import json
import os

import pytest

from app_tienda.services.settings_service import LastAdminError, is_password_hashed


def read_settings_file(container):
    with open(os.path.join(container.base_path, 'settings.json'), encoding='utf-8') as f:
        return json.load(f)['config']


def test_load_creates_defaults(container):
    settings = container.settings_service.load()
    assert settings.whatsapp == '51999509661'
    assert settings.authorized_admins == []
    assert read_settings_file(container)['whatsapp'] == '51999509661'


def test_first_login_registers_admin(container):
    service = container.settings_service

    assert service.authenticate('Admin', 'secreto') == 'admin'

    stored = read_settings_file(container)['authorized_admins']
    assert [a['username'] for a in stored] == ['admin']
    assert is_password_hashed(stored[0]['password_hash'])
    assert 'secreto' not in json.dumps(stored)


def test_authenticate_after_bootstrap(container):
    service = container.settings_service
    service.authenticate('admin', 'secreto')

    assert service.authenticate('ADMIN ', 'secreto') == 'admin'
    assert service.authenticate('admin', 'otra') is None
    assert service.authenticate('intruso', 'secreto') is None
    assert service.authenticate('', '') is None


def test_add_admin_validation(container):
    service = container.settings_service
    assert service.add_admin('admin', 'secreto')['ok']

    assert not service.add_admin('Admin', 'secreto')['ok']
    assert not service.add_admin('otro', '123')['ok']
    assert not service.add_admin('', 'secreto')['ok']
    assert service.list_admins() == ['admin']


def test_cannot_remove_last_admin(container):
    service = container.settings_service
    service.add_admin('admin', 'secreto')
    service.add_admin('rosa', 'clave1')

    assert service.remove_admin('ROSA', 'admin')['ok']
    with pytest.raises(LastAdminError):
        service.remove_admin('admin')
    assert not service.remove_admin('nadie')['ok']
    assert service.list_admins() == ['admin']


def test_change_password(container):
    service = container.settings_service
    service.add_admin('admin', 'secreto')

    assert service.change_password('admin', 'nueva', 'admin')['ok']
    assert service.authenticate('admin', 'nueva') == 'admin'
    assert service.authenticate('admin', 'secreto') is None
    assert not service.change_password('admin', 'x')['ok']
    assert not service.change_password('nadie', 'nueva')['ok']


def test_plaintext_passwords_are_migrated(container):
    container.settings_repo.save({
        'whatsapp': '',
        'authorized_admins': [{'username': 'admin', 'password': 'adminpassword'}],
    })

    assert container.settings_service.migrate_plaintext_passwords() == 1

    stored = read_settings_file(container)['authorized_admins'][0]
    assert 'password' not in stored
    assert is_password_hashed(stored['password_hash'])
    assert container.settings_service.authenticate('admin', 'adminpassword') == 'admin'
    assert container.settings_service.migrate_plaintext_passwords() == 0


def test_update_links_ignores_unknown_fields(container):
    service = container.settings_service
    service.add_admin('admin', 'secreto')

    result = service.update_links({
        'instagram': ' https://instagram.com/mivis ',
        'authorized_admins': [],
        'color': 'rojo',
    }, 'admin')

    assert result['ok']
    assert result['settings']['instagram'] == 'https://instagram.com/mivis'
    assert 'authorized_admins' not in result['settings']
    assert service.list_admins() == ['admin']
    assert service.get_public_settings()['whatsapp'] == '51999509661'


def test_legacy_admin_without_password_is_dropped(container):
    container.settings_repo.save({
        'whatsapp': '',
        'authorized_admins': [{'username': 'viejo', 'password': ''}],
    })

    assert container.settings_service.migrate_plaintext_passwords() == 1

    assert read_settings_file(container)['authorized_admins'] == []
    assert container.settings_service.list_admins() == []
    # Sin administradores vuelve a funcionar el primer registro
    assert container.settings_service.authenticate('nuevo', 'secreto') == 'nuevo'
