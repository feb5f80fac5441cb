import argparse
import json
import logging
import typing
from abc import abstractmethod

from config import Configuration, all_fields
from database import DataError
from dawg import Order
from fake import fake_order, fake_order_name
from lifecycle import Context

logger = logging.getLogger(__name__)


# raised for bad command line arguments
class UsageError(DataError):
    pass


# an argument parser that raises UsageError instead of exiting the program
class ArgumentParser(argparse.ArgumentParser):
    def error(self, message: str):
        raise UsageError(f"{message}\n{self.format_usage().strip()}")


# splits a comma separated list of product codes, e.g. "W08PBNLW,W08PPLNW"
def product_codes(value: str) -> list[str]:
    return [code.strip() for code in value.split(",") if code.strip()]


# a parent class for all commands
# it will register all commands in a dictionary
class Command:
    name: str
    description: str
    parser: ArgumentParser

    all_commands: dict[str, "Command"] = {}

    def __init__(self, name: str, description: str):
        self.name = name
        self.description = description
        self.parser = ArgumentParser(prog=name, description=description, add_help=False)
        self.add_arguments(self.parser)
        self.all_commands[name] = self

    # adds the command's flags and positional arguments to its parser
    def add_arguments(self, parser: ArgumentParser):
        pass

    def run(self, context: Context, args: typing.List[str]) -> typing.Optional[str]:
        return self.execute(context, self.parser.parse_args(args))

    @abstractmethod
    def execute(
        self, context: Context, args: argparse.Namespace
    ) -> typing.Optional[str]:
        pass


# a help command to direct users to other commands and show their usage
class HelpCommand(Command):
    def __init__(self):
        super().__init__("help", "Prints a help message, usage: help <command>?")

    def add_arguments(self, parser: ArgumentParser):
        parser.add_argument("command", nargs="?")

    def execute(
        self, context: Context, args: argparse.Namespace
    ) -> typing.Optional[str]:
        if args.command:
            command = Command.all_commands.get(args.command)
            if command:
                return command.parser.format_help().strip()
            return f"Command {args.command} not found"
        return "Available commands: " + ", ".join(Command.all_commands.keys())


# the text shown for one saved order
# e.g.
# testorder
#   Products:
#     12SCMEATZA
#   StoreID: 4336
#   Method:  Carryout
#   Address: 1600 Pennsylvania Ave NW
#            Washington DC, 20500
def format_order(name: str, order: Order, price: typing.Optional[float] = None) -> str:
    lines = [name]
    if price is not None:
        lines.append(f"  Price: {price:f}")
    lines.append("  Products:")
    for product in order.products:
        line = f"    {product.code}"
        if product.qty > 1:
            line += f" x {product.qty}"
        lines.append(line)
    lines.append(f"  StoreID: {order.store_id}")
    lines.append(f"  Method:  {order.service_method.value}")
    lines.append(f"  Address: {order.address.street}")
    lines.append(f"           {order.address.city_line()}")
    return "\n".join(lines)


# lists, shows, prices, edits and deletes saved orders
class CartCommand(Command):
    def __init__(self):
        super().__init__(
            "cart",
            "Manage saved orders, lists them all when no order is given, usage: cart <order name>?",
        )

    def add_arguments(self, parser: ArgumentParser):
        parser.add_argument("names", nargs="*", metavar="name")
        parser.add_argument(
            "-p", "--price", action="store_true", help="show the price of the order"
        )
        parser.add_argument(
            "-d", "--delete", action="store_true", help="delete the order"
        )
        parser.add_argument(
            "-a",
            "--add",
            type=product_codes,
            default=[],
            help="product codes to add to the order",
        )
        parser.add_argument(
            "-r",
            "--remove",
            type=product_codes,
            default=[],
            help="product codes to remove from the order",
        )

    def execute(
        self, context: Context, args: argparse.Namespace
    ) -> typing.Optional[str]:
        if len(args.names) > 1:
            raise UsageError("cart takes at most one order name")
        if not args.names:
            names = context.orders.list_names()
            if not names:
                return "No orders saved."
            return "\n".join(["Your Orders:"] + [f"  {name}" for name in names])

        name = args.names[0]
        if args.delete:
            context.orders.delete(name)
            return f"{name} successfully deleted."

        order = context.orders.load(name)
        if args.add or args.remove:
            context.bind(order)
            for code in args.add:
                order.add_product(order.store.get_product(code))
            for code in args.remove:
                if order.remove_product(code) == 0:
                    raise UsageError(f"{code} is not in {name}")
            context.orders.save(name, order)
            return "updated order successfully saved."

        price = None
        if args.price:
            price = context.bind(order).price()
        return format_order(name, order, price)


# creates a new order at the store nearest the configured address and saves it
class NewOrderCommand(Command):
    def __init__(self):
        super().__init__(
            "new",
            "Create a new order that will be stored in the cache, usage: new --name <order name> --products <codes>?",
        )

    def add_arguments(self, parser: ArgumentParser):
        parser.add_argument("-n", "--name", default="", help="the name of the new order")
        parser.add_argument(
            "-p",
            "--products",
            type=product_codes,
            default=[],
            help="product codes for the new order",
        )
        parser.add_argument(
            "--test", action="store_true", help="print the order as it is stored"
        )

    def execute(
        self, context: Context, args: argparse.Namespace
    ) -> typing.Optional[str]:
        if not args.name:
            raise UsageError("No order name... use '--name=<order name>'")

        store = context.vendor()
        order = store.new_order()
        for code in args.products:
            order.add_product(store.get_product(code))

        # priced before saving so an order the store rejects is never kept
        price = order.price() if order.products else None

        if context.orders.exists(args.name):
            logger.info("replacing saved order %s", args.name)
        context.orders.save(args.name, order)

        lines = []
        if args.test:
            lines.append(f"{args.name}:")
            lines.append(json.dumps(order.toJSON()))
        if price is not None:
            lines.append(f"Price: {price}")
        return "\n".join(lines) or None


def format_config(config: Configuration) -> str:
    return "\n".join(
        f"{path}: {field.getter(config)}" for path, field in all_fields.items()
    )


# shows and edits the configuration
class ConfigCommand(Command):
    def __init__(self):
        super().__init__(
            "config",
            "Show or edit the configuration, usage: config get <field>... | config set <field>=<value>...",
        )

    def add_arguments(self, parser: ArgumentParser):
        parser.add_argument("action", nargs="?", choices=["get", "set"])
        parser.add_argument("fields", nargs="*")

    def execute(
        self, context: Context, args: argparse.Namespace
    ) -> typing.Optional[str]:
        if args.action is None:
            if args.fields:
                raise UsageError("use 'config get' or 'config set'")
            return format_config(context.config)
        if not args.fields:
            raise UsageError(f"no fields given to config {args.action}")

        repo = context.config_repo
        if args.action == "get":
            return "\n".join(repo.get(field) for field in args.fields)

        for pair in args.fields:
            path, sep, value = pair.partition("=")
            if not sep:
                raise UsageError(f"'{pair}' should look like <field>=<value>")
            repo.set(path, value)
        repo.save()
        return None


# looks up products on the nearest store's menu
class MenuCommand(Command):
    def __init__(self):
        super().__init__(
            "menu", "Find products on the nearest store's menu, usage: menu <code>..."
        )

    def add_arguments(self, parser: ArgumentParser):
        parser.add_argument("codes", nargs="+", metavar="code")

    def execute(
        self, context: Context, args: argparse.Namespace
    ) -> typing.Optional[str]:
        store = context.vendor()
        lines = []
        for code in args.codes:
            product = store.get_product(code)
            lines.append(str(product))
            if product.options:
                options = ", ".join(f"{k}={v}" for k, v in product.options.items())
                lines.append(f"    options: {options}")
        return "\n".join(lines)


# testing, just generates a lot of orders
class FakeOrdersCommand(Command):
    name_attempts = 20

    def __init__(self):
        super().__init__(
            "fake_orders",
            "Generate fake orders and add them to the cache, usage: fake_orders <count>",
        )

    def add_arguments(self, parser: ArgumentParser):
        parser.add_argument("count")

    def execute(
        self, context: Context, args: argparse.Namespace
    ) -> typing.Optional[str]:
        try:
            count = int(args.count)
        except ValueError:
            raise UsageError("Invalid count")
        if count < 1:
            raise UsageError("Invalid count, must be at least 1")

        added = 0
        for _ in range(count):
            name = self.unused_name(context)
            if name is None:
                logger.warning("could not find an unused order name")
                continue
            context.orders.save(name, fake_order())
            added += 1
        return f"Added {added} orders"

    # a fake name no saved order has, or None after too many collisions
    def unused_name(self, context: Context) -> typing.Optional[str]:
        for _ in range(self.name_attempts):
            name = fake_order_name()
            if not context.orders.exists(name):
                return name
        return None


# register all commands
for c in Command.__subclasses__():
    c()


initial_prompt = """apizza - order pizza from the command line

usage: apizza [--clear-cache] <command> [args]

Some basic information:
new --name <name> --products <codes> - create and save a new order
cart - list saved orders
cart <name> - show a saved order
cart <name> --price - show a saved order with its price
cart <name> --add <codes> - add products to a saved order
cart <name> --remove <codes> - remove products from a saved order
cart <name> --delete - delete a saved order
config - show the configuration
config get <field>... - show configuration fields, i.e. `config get address.street`
config set <field>=<value>... - change configuration fields, i.e. `config set name=joe`
menu <code>... - look up products at the nearest store

utility commands:
fake_orders <count> - generate fake orders
help <command>? - get help on a specific command, i.e. `help cart`
--clear-cache - delete the cache file and everything saved in it
"""


def _root_parser() -> ArgumentParser:
    parser = ArgumentParser(prog="apizza", add_help=False)
    parser.add_argument("--clear-cache", action="store_true")
    parser.add_argument("command", nargs="?")
    parser.add_argument("args", nargs=argparse.REMAINDER)
    return parser


# runs one command line against an open context and returns what should be printed
def run(context: Context, argv: typing.List[str]) -> typing.Optional[str]:
    ns = _root_parser().parse_args(argv)
    if ns.clear_cache:
        if ns.command:
            raise UsageError("--clear-cache cannot be combined with a command")
        return f"removing {context.clear()}"
    if ns.command is None:
        return initial_prompt.strip()

    command = Command.all_commands.get(ns.command)
    if command is None:
        raise UsageError(
            f"Unknown command `{ns.command}`, use `help` to see available commands"
        )
    return command.run(context, ns.args)
