from faker import Faker

from config import Configuration
from dawg import Address, Order, OrderProduct, ServiceMethod

fake = Faker("en_US")

# product codes that fake orders are made from
sample_products = [
    "12SCMEATZA",
    "14SCREEN",
    "P12IPAZA",
    "W08PBNLW",
    "W08PPLNW",
    "B8PCSCB",
    "2LCOKE",
]


def fake_address() -> Address:
    return Address(
        fake.street_address(), fake.city(), fake.state_abbr(), fake.postcode()
    )


def fake_config() -> Configuration:
    config = Configuration()
    config.name = fake.name()
    config.email = fake.email()
    config.address = fake_address()
    config.service = fake.random_element(list(ServiceMethod))
    return config


def fake_order_name() -> str:
    return f"{fake.word()}-{fake.random_int(100, 999)}"


def fake_order(store_id: str = "") -> Order:
    products = []
    for _ in range(fake.random_int(1, 5)):
        code = fake.random_element(sample_products)
        products.append(OrderProduct(code, fake.random_int(1, 3)))
    return Order(
        store_id or str(fake.random_int(1000, 9999)),
        fake.random_element(list(ServiceMethod)),
        fake_address(),
        products,
    )
