import json
import os

import pytest

from cli import Command, UsageError, run
from dawg import OrderingError
from lifecycle import State
from repository import OrderNotFoundError

from conftest import FakeStore


def test_order_lifecycle(context):
    assert run(context, ["new", "--name=testorder", "--products=12SCMEATZA"]) == "Price: 13.99"

    assert run(context, ["cart", "testorder"]) == (
        "testorder\n"
        "  Products:\n"
        "    12SCMEATZA\n"
        "  StoreID: 4336\n"
        "  Method:  Carryout\n"
        "  Address: 1600 Pennsylvania Ave NW\n"
        "           Washington DC, 20500"
    )
    assert run(context, ["cart"]) == "Your Orders:\n  testorder"

    assert run(context, ["cart", "--add", "W08PBNLW,W08PPLNW", "testorder"]) == (
        "updated order successfully saved."
    )
    assert run(context, ["cart", "testorder", "-p"]) == (
        "testorder\n"
        "  Price: 34.070000\n"
        "  Products:\n"
        "    12SCMEATZA\n"
        "    W08PBNLW\n"
        "    W08PPLNW\n"
        "  StoreID: 4336\n"
        "  Method:  Carryout\n"
        "  Address: 1600 Pennsylvania Ave NW\n"
        "           Washington DC, 20500"
    )
    assert len(context.orders.load("testorder").products) == 3

    assert run(context, ["cart", "testorder", "-d"]) == "testorder successfully deleted."
    assert run(context, ["cart"]) == "No orders saved."
    with pytest.raises(OrderNotFoundError):
        run(context, ["cart", "not_a_real_order"])


def test_cart_too_many_args(context):
    with pytest.raises(UsageError):
        run(context, ["cart", "to-many", "args"])


def test_cart_delete_missing(context):
    with pytest.raises(OrderNotFoundError):
        run(context, ["cart", "-d", "ghost"])


def test_cart_remove(context):
    run(context, ["new", "-n", "lunch", "-p", "12SCMEATZA,W08PBNLW"])
    assert run(context, ["cart", "lunch", "-r", "12SCMEATZA"]) == (
        "updated order successfully saved."
    )
    assert [p.code for p in context.orders.load("lunch").products] == ["W08PBNLW"]
    with pytest.raises(UsageError):
        run(context, ["cart", "lunch", "-r", "12SCMEATZA"])


def test_cart_add_unknown_product(context):
    run(context, ["new", "-n", "lunch"])
    with pytest.raises(OrderingError):
        run(context, ["cart", "lunch", "--add", "NOTFOOD"])
    assert context.orders.load("lunch").products == []


def test_new_without_name(context):
    with pytest.raises(UsageError) as info:
        run(context, ["new", "--products=12SCMEATZA"])
    assert "--name" in info.value.message
    assert context.orders.list_names() == []


def test_new_rejects_positional_args(context):
    with pytest.raises(UsageError):
        run(context, ["new", "testing"])


def test_new_without_products(context):
    assert run(context, ["new", "--name", "empty"]) is None
    assert context.orders.load("empty").products == []


def test_new_test_output(context):
    output = run(context, ["new", "-n", "testorder", "-p", "12SCMEATZA", "--test"])
    name, raw, price = output.split("\n")
    assert name == "testorder:"
    assert json.loads(raw) == context.orders.load("testorder").toJSON()
    assert price == "Price: 13.99"


def test_new_overwrites(context):
    run(context, ["new", "-n", "dinner", "-p", "12SCMEATZA"])
    run(context, ["new", "-n", "dinner", "-p", "W08PBNLW"])
    assert [p.code for p in context.orders.load("dinner").products] == ["W08PBNLW"]


def test_new_unknown_product(context):
    with pytest.raises(OrderingError):
        run(context, ["new", "-n", "bad", "-p", "NOTFOOD"])
    assert context.orders.list_names() == []


def test_clear_cache(context):
    path = context.path
    assert run(context, ["--clear-cache"]) == f"removing {path}"
    assert context.state == State.CLEARED
    assert not os.path.exists(path)


def test_clear_cache_with_command(context):
    with pytest.raises(UsageError):
        run(context, ["--clear-cache", "cart"])
    assert os.path.exists(context.path)


def test_config_show(context):
    output = run(context, ["config"]).split("\n")
    assert "name: joe" in output
    assert "email: nojoe@mail.com" in output
    assert "service: Carryout" in output


def test_config_get_set(context):
    assert run(context, ["config", "get", "name", "email"]) == "joe\nnojoe@mail.com"
    assert run(context, ["config", "set", "name=bob", "service=delivery"]) is None
    assert context.config.name == "bob"
    assert run(context, ["config", "get", "service"]) == "Delivery"


def test_config_usage(context):
    with pytest.raises(UsageError):
        run(context, ["config", "get"])
    with pytest.raises(UsageError):
        run(context, ["config", "set", "name"])
    with pytest.raises(UsageError):
        run(context, ["config", "delete", "name"])


def test_menu(context):
    output = run(context, ["menu", "12SCMEATZA"])
    assert output.startswith("12SCMEATZA - ")
    assert "options: X=1, C=1" in output
    with pytest.raises(UsageError):
        run(context, ["menu"])


def test_fake_orders(context):
    assert run(context, ["fake_orders", "3"]) == "Added 3 orders"
    names = context.orders.list_names()
    assert len(names) == 3
    for name in names:
        assert context.orders.load(name).products
    with pytest.raises(UsageError):
        run(context, ["fake_orders", "lots"])
    with pytest.raises(UsageError):
        run(context, ["fake_orders", "0"])


def test_help(context):
    assert run(context, ["help"]).startswith("Available commands: ")
    assert "usage: cart" in run(context, ["help", "cart"])
    assert run(context, ["help", "dance"]) == "Command dance not found"


def test_no_command(context):
    assert run(context, []).startswith("apizza")


def test_unknown_command(context):
    with pytest.raises(UsageError):
        run(context, ["dance"])


def test_all_commands_registered():
    assert set(Command.all_commands) == {
        "help",
        "cart",
        "new",
        "config",
        "menu",
        "fake_orders",
    }


def test_fake_orders_never_overwrite(context, monkeypatch):
    run(context, ["new", "-n", "taken", "-p", "12SCMEATZA"])
    monkeypatch.setattr("cli.fake_order_name", lambda: "taken")

    assert run(context, ["fake_orders", "3"]) == "Added 0 orders"
    assert context.orders.list_names() == ["taken"]
    assert [p.code for p in context.orders.load("taken").products] == ["12SCMEATZA"]


def test_fake_orders_counts_distinct_names(context, monkeypatch):
    names = iter(["same", "same", "same", "other"] + ["same"] * 40)
    monkeypatch.setattr("cli.fake_order_name", lambda: next(names))

    assert run(context, ["fake_orders", "3"]) == "Added 2 orders"
    assert context.orders.list_names() == ["other", "same"]


def test_new_not_saved_when_pricing_fails(context, monkeypatch):
    def reject(store, order):
        raise OrderingError("could not price order: PosOrderIncomplete")

    monkeypatch.setattr(FakeStore, "price", reject)
    with pytest.raises(OrderingError):
        run(context, ["new", "-n", "half", "-p", "12SCMEATZA"])
    assert context.orders.list_names() == []
