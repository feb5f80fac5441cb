import re
import typing

from database import DataError
from dawg import Address, ServiceMethod


# raised for a configuration field path that does not exist
class UnknownFieldError(DataError):
    pass


# raised when a value cannot be stored in a configuration field
class ValidationError(DataError):
    pass


# Payment card details, only placeholders until orders can be placed
class Card:
    def __init__(self, number: str = "", expiration: str = "", cvv: str = ""):
        self.number = number
        self.expiration = expiration
        self.cvv = cvv

    def toJSON(self):
        return {"Number": self.number, "Expiration": self.expiration, "CVV": self.cvv}

    def fromJSON(self, data):
        self.number = data.get("Number", "")
        self.expiration = data.get("Expiration", "")
        self.cvv = data.get("CVV", "")


# The user's profile and default order preferences
# name: The name orders are placed under
# email: The email receipts are sent to
# address: Used to find the nearest store and for delivery
# card: Payment placeholder
# service: The default service method for new orders
class Configuration:
    def __init__(self):
        self.name = ""
        self.email = ""
        self.address = Address()
        self.card = Card()
        self.service = ServiceMethod.CARRYOUT

    def __eq__(self, other):
        if not isinstance(other, Configuration):
            return NotImplemented
        return self.toJSON() == other.toJSON()

    def toJSON(self):
        return {
            "Name": self.name,
            "Email": self.email,
            "Address": self.address.toJSON(),
            "Card": self.card.toJSON(),
            "Service": self.service.value,
        }

    def fromJSON(self, data):
        self.name = data.get("Name", "")
        self.email = data.get("Email", "")
        self.address = Address()
        if data.get("Address"):
            self.address.fromJSON(data["Address"])
        self.card = Card()
        if data.get("Card"):
            self.card.fromJSON(data["Card"])
        self.service = ServiceMethod(data.get("Service") or ServiceMethod.CARRYOUT.value)


Getter = typing.Callable[[Configuration], str]
Setter = typing.Callable[[Configuration, str], None]


# a settable configuration field, set values are validated before they are stored
class Field:
    def __init__(self, path: str, getter: Getter, setter: Setter):
        self.path = path
        self.getter = getter
        self.setter = setter


# every field reachable through `config get` and `config set`, keyed by dotted path
all_fields: dict[str, Field] = {}

_path_pattern = re.compile(r"[a-z]+(\.[a-z]+)*")


def register_field(path: str, getter: Getter, setter: Setter):
    if not _path_pattern.fullmatch(path):
        raise ValueError(f"invalid field path '{path}'")
    if path in all_fields:
        raise ValueError(f"field '{path}' is already registered")
    if not callable(getter) or not callable(setter):
        raise TypeError(f"field '{path}' needs a callable getter and setter")
    all_fields[path] = Field(path, getter, setter)


def _lookup(path: str) -> Field:
    field = all_fields.get(path.strip().lower())
    if field is None:
        raise UnknownFieldError(
            f"unknown config field '{path}', fields are: " + ", ".join(sorted(all_fields))
        )
    return field


def get_field(config: Configuration, path: str) -> str:
    return _lookup(path).getter(config)


def set_field(config: Configuration, path: str, value: str):
    _lookup(path).setter(config, value)


# builds a setter that checks value against pattern before assigning it
def _checked(
    assign: typing.Callable[[Configuration, str], None],
    pattern: typing.Optional[str] = None,
    expected: str = "",
) -> Setter:
    def setter(config: Configuration, value: str):
        value = value.strip()
        if pattern and value and not re.fullmatch(pattern, value):
            raise ValidationError(f"'{value}' is not a valid {expected}")
        assign(config, value)

    return setter


state_pattern = r"[A-Za-z]{2}"
zipcode_pattern = r"\d{5}(-\d{4})?"


# parses a whole address, its state and zipcode must pass the same checks as
# address.state and address.zipcode
def _set_address(config: Configuration, value: str):
    try:
        address = Address.parse(value)
    except ValueError as e:
        raise ValidationError(str(e)) from e
    if address.state and not re.fullmatch(state_pattern, address.state):
        raise ValidationError(f"'{address.state}' is not a valid state code")
    if not re.fullmatch(zipcode_pattern, address.zipcode):
        raise ValidationError(f"'{address.zipcode}' is not a valid zipcode")
    config.address = address


def _set_service(config: Configuration, value: str):
    try:
        config.service = ServiceMethod.parse(value)
    except ValueError as e:
        raise ValidationError(str(e)) from e


def _assign(*attrs: str) -> typing.Callable[[Configuration, str], None]:
    def assign(config: Configuration, value: str):
        target = config
        for attr in attrs[:-1]:
            target = getattr(target, attr)
        setattr(target, attrs[-1], value)

    return assign


register_field("name", lambda c: c.name, _checked(_assign("name")))
register_field(
    "email",
    lambda c: c.email,
    _checked(_assign("email"), r"[^@\s]+@[^@\s]+\.[^@\s]+", "email address"),
)
register_field("address", lambda c: str(c.address), _set_address)
register_field(
    "address.street", lambda c: c.address.street, _checked(_assign("address", "street"))
)
register_field(
    "address.cityname",
    lambda c: c.address.city_name,
    _checked(_assign("address", "city_name")),
)
register_field(
    "address.state",
    lambda c: c.address.state,
    _checked(_assign("address", "state"), state_pattern, "state code"),
)
register_field(
    "address.zipcode",
    lambda c: c.address.zipcode,
    _checked(_assign("address", "zipcode"), zipcode_pattern, "zipcode"),
)
register_field(
    "card.number",
    lambda c: c.card.number,
    _checked(_assign("card", "number"), r"\d{12,19}", "card number"),
)
register_field(
    "card.expiration",
    lambda c: c.card.expiration,
    _checked(_assign("card", "expiration"), r"(0[1-9]|1[0-2])/?\d{2}", "expiration date"),
)
register_field(
    "card.cvv",
    lambda c: c.card.cvv,
    _checked(_assign("card", "cvv"), r"\d{3,4}", "cvv"),
)
register_field("service", lambda c: c.service.value, _set_service)
