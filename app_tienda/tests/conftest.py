import pytest

from app_tienda import performance_logger
from app_tienda.app_container import AppContainer, get_container
from app_tienda.main import create_app


@pytest.fixture(autouse=True)
def no_profiling():
    performance_logger.configure(enabled=False)
    yield


@pytest.fixture
def container(tmp_path):
    AppContainer.reset_instance()
    c = get_container(str(tmp_path), store_name='Mivis Studio', country_code='51')
    yield c
    AppContainer.reset_instance()


@pytest.fixture
def add_product(container):
    def _add(name='Blusa', category='ROPA PARA DAMAS', cost=10.0, price=25.0, stock=5, **extra):
        data = {
            'name': name,
            'category': category,
            'cost_price': cost,
            'sale_price': price,
            'stock': stock,
        }
        data.update(extra)
        result = container.inventory_service.create_product(data, 'admin')
        assert result['ok'], result
        return result['product']
    return _add


@pytest.fixture
def app(tmp_path):
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-secret',
        'DATA_DIR': str(tmp_path),
        'ENABLE_BACKUPS': False,
        'ENABLE_PROFILING': False,
    })
    yield app
    AppContainer.reset_instance()


@pytest.fixture
def client(app):
    with app.test_client() as c:
        yield c
