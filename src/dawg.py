from abc import ABC, abstractmethod
from enum import Enum
import logging
import typing

import httpx

from database import DataError

logger = logging.getLogger(__name__)


# raised when the ordering service cannot be reached or rejects a request
class OrderingError(DataError):
    pass


# How an order is handed to the customer
# DELIVERY: The order is brought to the order's address
# CARRYOUT: The customer picks the order up from the store
class ServiceMethod(Enum):
    DELIVERY = "Delivery"
    CARRYOUT = "Carryout"

    # case-insensitive lookup by value, e.g. "carryout" -> CARRYOUT
    @classmethod
    def parse(cls, value: str) -> "ServiceMethod":
        for method in cls:
            if method.value.lower() == value.strip().lower():
                return method
        raise ValueError(
            f"unknown service method '{value}', expected one of: "
            + ", ".join(m.value for m in cls)
        )


# A street address used for finding stores and delivering orders
class Address:
    def __init__(
        self, street: str = "", city_name: str = "", state: str = "", zipcode: str = ""
    ):
        self.street = street
        self.city_name = city_name
        self.state = state
        self.zipcode = zipcode

    def __str__(self):
        return f"{self.street}, {self.city_line()}"

    def __eq__(self, other):
        if not isinstance(other, Address):
            return NotImplemented
        return self.toJSON() == other.toJSON()

    # the second line of the address, e.g. "Washington DC, 20500"
    def city_line(self) -> str:
        region = " ".join(part for part in (self.state, self.zipcode) if part)
        return ", ".join(part for part in (self.city_name, region) if part)

    # parses "street, city, [state] zipcode"
    @classmethod
    def parse(cls, text: str) -> "Address":
        parts = [part.strip() for part in text.split(",")]
        if len(parts) != 3 or not all(parts):
            raise ValueError(
                f"could not parse address '{text}', use 'street, city, [state] zipcode'"
            )
        street, city_name, region = parts
        region_parts = region.split()
        zipcode = region_parts[-1]
        state = " ".join(region_parts[:-1])
        return cls(street, city_name, state, zipcode)

    def toJSON(self):
        return {
            "Street": self.street,
            "CityName": self.city_name,
            "State": self.state,
            "Zipcode": self.zipcode,
        }

    def fromJSON(self, data):
        self.street = data["Street"]
        self.city_name = data["CityName"]
        self.state = data.get("State", "")
        self.zipcode = data["Zipcode"]


# A product on a store's menu
# code: The menu code of the product, e.g. "12SCMEATZA"
# name: The display name of the product
# price: The menu price of one of the product
# options: The default toppings/options the product comes with
class Product:
    def __init__(
        self,
        code: str,
        name: str = "",
        price: float = 0.0,
        options: typing.Optional[dict[str, str]] = None,
    ):
        self.code = code
        self.name = name
        self.price = price
        self.options = options or {}

    def __str__(self):
        return f"{self.code} - {self.name} (${self.price:.2f})"


# One line of an order: a product code, how many, and which options
class OrderProduct:
    def __init__(
        self, code: str, qty: int = 1, options: typing.Optional[dict[str, str]] = None
    ):
        self.code = code
        self.qty = qty
        self.options = options or {}

    def toJSON(self):
        return {"Code": self.code, "Qty": self.qty, "Options": dict(self.options)}

    def fromJSON(self, data):
        self.code = data["Code"]
        self.qty = int(data["Qty"])
        self.options = dict(data.get("Options") or {})


# Represents an order that can be priced and placed at a store
# store_id: The id of the store the order is placed with
# service_method: Delivery or carryout
# address: Where the order is delivered, or the customer's address for carryout
# products: The products in the order
# store: The store handle used for pricing, never serialized
class Order:
    store: typing.Optional["Store"]

    def __init__(
        self,
        store_id: str = "",
        service_method: ServiceMethod = ServiceMethod.CARRYOUT,
        address: typing.Optional[Address] = None,
        products: typing.Optional[list[OrderProduct]] = None,
    ):
        self.store_id = store_id
        self.service_method = service_method
        self.address = address or Address()
        self.products = products or []
        self.store = None

    def __eq__(self, other):
        if not isinstance(other, Order):
            return NotImplemented
        return self.toJSON() == other.toJSON()

    # adds a menu product to the order with its default options
    def add_product(self, product: Product):
        self.products.append(OrderProduct(product.code, 1, dict(product.options)))

    # removes every line with the given product code, returns how many were removed
    def remove_product(self, code: str) -> int:
        before = len(self.products)
        self.products = [p for p in self.products if p.code != code]
        return before - len(self.products)

    # asks the bound store for the price of the order
    def price(self) -> float:
        if self.store is None:
            raise OrderingError("order is not bound to a store and cannot be priced")
        return self.store.price(self)

    # serializes the order to a JSON object for saving/loading
    def toJSON(self):
        return {
            "Products": [p.toJSON() for p in self.products],
            "StoreID": self.store_id,
            "ServiceMethod": self.service_method.value,
            "Address": self.address.toJSON(),
        }

    # deserializes the order from a JSON object
    # note: will not bind a store, as it is not stored in the JSON object
    def fromJSON(self, data):
        products = []
        for raw in data.get("Products") or []:
            product = OrderProduct("")
            product.fromJSON(raw)
            products.append(product)
        self.products = products
        self.store_id = str(data["StoreID"])
        self.service_method = ServiceMethod(data["ServiceMethod"])
        self.address = Address()
        self.address.fromJSON(data["Address"])


# Abstract class for a vendor store, the place an order is priced and placed
class Store(ABC):
    def __init__(
        self,
        store_id: str,
        address: typing.Optional[Address] = None,
        service_method: ServiceMethod = ServiceMethod.CARRYOUT,
    ):
        self.store_id = store_id
        self.address = address or Address()
        self.service_method = service_method

    # get_product: returns a product from the store's menu, raises OrderingError if unknown
    @abstractmethod
    def get_product(self, code: str) -> Product:
        pass

    # price: returns the price the store charges for an order
    @abstractmethod
    def price(self, order: Order) -> float:
        pass

    # new_order: returns an empty order bound to this store
    def new_order(self) -> Order:
        order = Order(self.store_id, self.service_method, self.address)
        order.store = self
        return order


# Abstract class for the service that locates stores
class OrderingService(ABC):
    # nearest_store: returns the closest open store serving an address
    @abstractmethod
    def nearest_store(self, address: Address, service_method: ServiceMethod) -> Store:
        pass

    # get_store: returns the store with a known id
    @abstractmethod
    def get_store(self, store_id: str) -> Store:
        pass


# parses a default toppings tag, e.g. "X=1,C=1" -> {"X": "1", "C": "1"}
def parse_options(tag: str) -> dict[str, str]:
    options = {}
    for pair in tag.split(","):
        if "=" not in pair:
            continue
        key, value = pair.split("=", 1)
        options[key.strip()] = value.strip()
    return options


# A store reached through the dominos web api, the menu is fetched once per store
class DominosStore(Store):
    def __init__(
        self,
        service: "DominosService",
        store_id: str,
        address: typing.Optional[Address] = None,
        service_method: ServiceMethod = ServiceMethod.CARRYOUT,
    ):
        super().__init__(store_id, address, service_method)
        self.service = service
        self._menu: typing.Optional[dict] = None

    def menu(self) -> dict:
        if self._menu is None:
            self._menu = self.service.request(
                "GET",
                f"/store/{self.store_id}/menu",
                params={"lang": "en", "structured": "true"},
            )
        return self._menu

    def get_product(self, code: str) -> Product:
        variant = (self.menu().get("Variants") or {}).get(code)
        if variant is None:
            raise OrderingError(
                f"could not find product '{code}' at store {self.store_id}"
            )
        tags = variant.get("Tags") or {}
        return Product(
            code,
            variant.get("Name", ""),
            float(variant.get("Price") or 0),
            parse_options(tags.get("DefaultToppings", "")),
        )

    def price(self, order: Order) -> float:
        data = self.service.request(
            "POST", "/price-order", json={"Order": self.service.order_payload(order)}
        )
        if data.get("Status") == -1:
            codes = [item.get("Code", "") for item in data.get("StatusItems") or []]
            raise OrderingError(f"could not price order: {', '.join(codes) or 'unknown error'}")
        try:
            return float(data["Order"]["Amounts"]["Customer"])
        except (KeyError, TypeError, ValueError) as e:
            raise OrderingError("price response has no customer amount") from e


# OrderingService backed by the dominos web api
# timeout: seconds before any request is abandoned
class DominosService(OrderingService):
    BASE_URL = "https://order.dominos.com/power"

    client: httpx.Client

    def __init__(self, timeout: float = 10.0, client: typing.Optional[httpx.Client] = None):
        self.client = client or httpx.Client(
            base_url=self.BASE_URL,
            timeout=timeout,
            headers={"Accept": "application/json"},
        )

    def close(self):
        self.client.close()

    # sends a request and returns the decoded JSON body
    def request(self, method: str, path: str, **kwargs) -> dict:
        logger.debug("%s %s", method, path)
        try:
            response = self.client.request(method, path, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            raise OrderingError(f"request to {path} failed: {e}") from e
        except ValueError as e:
            raise OrderingError(f"bad response from {path}: {e}") from e

    # the wire format the price endpoint expects
    def order_payload(self, order: Order) -> dict:
        return {
            "Address": {
                "Street": order.address.street,
                "City": order.address.city_name,
                "Region": order.address.state,
                "PostalCode": order.address.zipcode,
            },
            "Products": [p.toJSON() for p in order.products],
            "ServiceMethod": order.service_method.value,
            "StoreID": order.store_id,
            "LanguageCode": "en",
            "OrderChannel": "OLO",
            "OrderMethod": "Web",
            "Version": "1.0",
        }

    def nearest_store(self, address: Address, service_method: ServiceMethod) -> Store:
        data = self.request(
            "GET",
            "/store-locator",
            params={
                "s": address.street,
                "c": address.city_line(),
                "type": service_method.value,
            },
        )
        for store in data.get("Stores") or []:
            if store.get("IsOnlineNow", True):
                return DominosStore(self, str(store["StoreID"]), address, service_method)
        raise OrderingError(f"no open store found near {address}")

    def get_store(self, store_id: str) -> Store:
        return DominosStore(self, store_id)
