from enum import Enum
import logging
import typing

from config import Configuration
from database import KeyValueStore, StoreClosedError
from dawg import Order, OrderingService, Store
from repository import ConfigRepository, OrderRepository

logger = logging.getLogger(__name__)


# Where a context is in its life
# UNINITIALIZED: Nothing has been opened yet
# OPEN: The database is open and the configuration is loaded
# CLEARED: The database file has been deleted, nothing more can be stored
# CLOSED: The configuration has been saved and the database closed
class State(Enum):
    UNINITIALIZED = 1
    OPEN = 2
    CLEARED = 3
    CLOSED = 4


# a context object which owns the database and everything built on it
# it is passed to every command, so nothing is kept in global variables
# and it is easy to test commands (as we can just build a new context)
class Context:
    path: str
    service: OrderingService
    state: State

    def __init__(self, path: str, service: OrderingService):
        self.path = path
        self.service = service
        self.state = State.UNINITIALIZED
        self._db: typing.Optional[KeyValueStore] = None
        self._orders: typing.Optional[OrderRepository] = None
        self._config_repo: typing.Optional[ConfigRepository] = None
        self._vendor: typing.Optional[Store] = None

    # opens the database and loads the configuration
    # any error here is fatal, nothing works without a database
    def open(self) -> "Context":
        if self.state != State.UNINITIALIZED:
            raise StoreClosedError(f"cannot open a context that is {self.state.name.lower()}")
        self._db = KeyValueStore.open(self.path)
        self.path = self._db.path
        self._orders = OrderRepository(self._db)
        self._config_repo = ConfigRepository(self._db)
        try:
            self._config_repo.load()
        except Exception:
            self._db.close()
            raise
        self.state = State.OPEN
        logger.debug("context open at %s", self.path)
        return self

    def _require_open(self):
        if self.state != State.OPEN:
            raise StoreClosedError(f"database {self.path} is {self.state.name.lower()}")

    @property
    def db(self) -> KeyValueStore:
        self._require_open()
        return self._db

    @property
    def orders(self) -> OrderRepository:
        self._require_open()
        return self._orders

    @property
    def config_repo(self) -> ConfigRepository:
        self._require_open()
        return self._config_repo

    @property
    def config(self) -> Configuration:
        return self.config_repo.config

    # deletes the database file, returns the path that was removed
    # the context can not be used for storage afterwards
    def clear(self) -> str:
        self._require_open()
        try:
            self._db.destroy()
        finally:
            self.state = State.CLEARED
        logger.debug("cleared context at %s", self.path)
        return self.path

    # saves the configuration and closes the database
    # only the first close does anything, and a cleared context has nothing to save
    def close(self, save: bool = True):
        if self.state != State.OPEN:
            return
        try:
            if save:
                self._config_repo.save()
        finally:
            self._db.close()
            self.state = State.CLOSED
            logger.debug("context closed")

    def __enter__(self) -> "Context":
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close(save=exc_type is None)

    # the store nearest the configured address, looked up once per context
    def vendor(self) -> Store:
        if self._vendor is None:
            self._vendor = self.service.nearest_store(
                self.config.address, self.config.service
            )
        return self._vendor

    # attaches the order's store so it can be priced
    def bind(self, order: Order) -> Order:
        vendor = self._vendor
        if vendor is None or vendor.store_id != order.store_id:
            vendor = self.service.get_store(order.store_id)
        order.store = vendor
        return order
