import pytest

from config import Configuration
from database import KeyValueStore
from dawg import Address, OrderingError, OrderingService, Product, ServiceMethod, Store
from lifecycle import Context

menu = {
    "12SCMEATZA": Product(
        "12SCMEATZA", 'Medium (12") Hand Tossed MeatZZa', 13.99, {"X": "1", "C": "1"}
    ),
    "W08PBNLW": Product("W08PBNLW", "8-Piece Boneless Chicken", 10.04),
    "W08PPLNW": Product("W08PPLNW", "8-Piece Plain Boneless Chicken", 10.04),
}


# a store with a fixed menu that prices orders by adding up menu prices
class FakeStore(Store):
    def get_product(self, code):
        if code not in menu:
            raise OrderingError(f"could not find product '{code}'")
        return menu[code]

    def price(self, order):
        return round(sum(menu[p.code].price * p.qty for p in order.products), 2)


class FakeService(OrderingService):
    def __init__(self):
        self.lookups = 0

    def nearest_store(self, address, service_method):
        self.lookups += 1
        return FakeStore("4336", address, service_method)

    def get_store(self, store_id):
        return FakeStore(store_id)


def make_config() -> Configuration:
    config = Configuration()
    config.name = "joe"
    config.email = "nojoe@mail.com"
    config.address = Address("1600 Pennsylvania Ave NW", "Washington DC", "", "20500")
    config.service = ServiceMethod.CARRYOUT
    return config


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "cache" / "test.db")


@pytest.fixture
def db(db_path):
    store = KeyValueStore.open(db_path)
    yield store
    store.close()


@pytest.fixture
def service():
    return FakeService()


@pytest.fixture
def context(db_path, service):
    ctx = Context(db_path, service).open()
    ctx.config_repo.save(make_config())
    yield ctx
    ctx.close()
