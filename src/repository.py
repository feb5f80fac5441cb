import json
import logging
import typing

from config import Configuration, get_field, set_field
from database import DataError, IStore, NotFoundError
from dawg import Order

logger = logging.getLogger(__name__)

# orders share the store with other records, their keys all start with this
ORDER_PREFIX = "user_order_"

# the single key the configuration is saved under, must not start with ORDER_PREFIX
CONFIG_KEY = "apizza_config"


# raised when there is no saved order with a name
class OrderNotFoundError(NotFoundError):
    name: str

    def __init__(self, name: str):
        super().__init__(ORDER_PREFIX + name, f"no order named '{name}'")
        self.name = name


# an object could not be encoded for storage
class SerializationError(DataError):
    pass


# stored bytes could not be decoded back into an object
class DeserializationError(DataError):
    pass


def encode(obj, what: str) -> bytes:
    try:
        return json.dumps(obj.toJSON()).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise SerializationError(f"could not encode {what}: {e}") from e


def decode(raw: bytes, into, what: str):
    try:
        into.fromJSON(json.loads(raw.decode("utf-8")))
    except (UnicodeDecodeError, ValueError, KeyError, TypeError, AttributeError) as e:
        raise DeserializationError(f"stored {what} is malformed: {e}") from e
    return into


# saves, loads and lists named orders
class OrderRepository:
    store: IStore

    def __init__(self, store: IStore):
        self.store = store

    # saves the order under name, replacing any order already saved with that name
    def save(self, name: str, order: Order):
        self.store.put(ORDER_PREFIX + name, encode(order, f"order '{name}'"))
        logger.debug("saved order %s", name)

    def load(self, name: str) -> Order:
        try:
            raw = self.store.get(ORDER_PREFIX + name)
        except NotFoundError as e:
            raise OrderNotFoundError(name) from e
        return decode(raw, Order(), f"order '{name}'")

    def delete(self, name: str):
        try:
            self.store.delete(ORDER_PREFIX + name)
        except NotFoundError as e:
            raise OrderNotFoundError(name) from e
        logger.debug("deleted order %s", name)

    def exists(self, name: str) -> bool:
        try:
            self.store.get(ORDER_PREFIX + name)
        except NotFoundError:
            return False
        return True

    # returns the names of all saved orders, sorted
    def list_names(self) -> list[str]:
        return sorted(
            key[len(ORDER_PREFIX):]
            for key in self.store.get_all()
            if key.startswith(ORDER_PREFIX)
        )


# loads and saves the single configuration record
# config: the configuration loaded last, which get and set work on
class ConfigRepository:
    store: IStore
    config: Configuration

    def __init__(self, store: IStore):
        self.store = store
        self.config = Configuration()

    # reads the saved configuration, or the default one on first run
    def load(self) -> Configuration:
        try:
            raw = self.store.get(CONFIG_KEY)
        except NotFoundError:
            logger.debug("no saved configuration, using defaults")
            self.config = Configuration()
        else:
            self.config = decode(raw, Configuration(), "configuration")
        return self.config

    def save(self, config: typing.Optional[Configuration] = None):
        if config is not None:
            self.config = config
        self.store.put(CONFIG_KEY, encode(self.config, "configuration"))
        logger.debug("saved configuration")

    def get(self, path: str) -> str:
        return get_field(self.config, path)

    def set(self, path: str, value: str):
        set_field(self.config, path, value)
