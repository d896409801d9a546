"""Command-line interface for storefront."""

import argparse
import json
import logging
import os
import sys
from pathlib import Path

from . import __version__
from .auth import AuthService
from .catalog import CatalogService
from .errors import ProductNotFoundError, OrderNotFoundError, StorefrontError
from .models import OrderItem, OrderStatus, Product, Role
from .orders import OrderService
from .store import Store
from .utils import format_money, format_order, format_product, parse_order_line


def open_store(args: argparse.Namespace) -> Store:
    """Open the Store for --data-dir (or the default data directory)."""
    return Store.open(args.data_dir)


def resolve_product(catalog: CatalogService, product_ref: str) -> Product:
    """
    Find a product by ID or ID prefix.

    Raises:
        ProductNotFoundError: If nothing matches, or the prefix is ambiguous.
    """
    matches = [p for p in catalog.list_all() if p.id.startswith(product_ref)]
    if not matches:
        raise ProductNotFoundError(product_ref)
    if len(matches) > 1:
        raise ProductNotFoundError(
            f"{product_ref} (ambiguous, matches {len(matches)} products)"
        )
    return matches[0]


def resolve_order_id(orders: OrderService, order_ref: str) -> str:
    """Find an order ID by ID or ID prefix."""
    matches = [o.id for o in orders.get_all_orders() if o.id.startswith(order_ref)]
    if len(matches) != 1:
        raise OrderNotFoundError(order_ref)
    return matches[0]


def cmd_init(args: argparse.Namespace) -> int:
    """Create the snapshot with default data."""
    try:
        store = Store(args.data_dir)
        if store.exists() and not args.force:
            print(
                f"Error: Store already exists at {store.snapshot_path}. Use --force to reset it.",
                file=sys.stderr,
            )
            return 1

        if not store.reset():
            print(f"Error: Could not write {store.snapshot_path}", file=sys.stderr)
            return 1

        print(f"Initialized store at {store.snapshot_path}")
        print(f"  {len(store.data.users)} users, {len(store.data.products)} products")
        return 0

    except StorefrontError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_products_list(args: argparse.Namespace) -> int:
    """List or search products."""
    try:
        catalog = CatalogService(open_store(args))
        products = catalog.search(getattr(args, "query", ""), args.category)

        if args.json:
            print(json.dumps([p.to_dict() for p in products], indent=2))
        elif not products:
            print("No products found.")
        else:
            print(f"Products ({len(products)}):")
            print()
            for p in products:
                print(f"  {format_product(p)}")

        return 0

    except StorefrontError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_products_add(args: argparse.Namespace) -> int:
    """Add a product."""
    try:
        catalog = CatalogService(open_store(args))
        product = catalog.add(args.name, args.desc, args.price, args.stock, args.category)

        print(f"Added product: {product.id[:8]}")
        print(f"  {format_product(product)}")
        return 0

    except StorefrontError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_products_update(args: argparse.Namespace) -> int:
    """Change product fields."""
    try:
        catalog = CatalogService(open_store(args))
        product = resolve_product(catalog, args.product_id)

        fields = {
            key: getattr(args, arg)
            for key, arg in (
                ("name", "name"),
                ("description", "desc"),
                ("price", "price"),
                ("stock", "stock"),
                ("category", "category"),
            )
            if getattr(args, arg) is not None
        }
        if not fields:
            print("Nothing to update.")
            return 0

        product = catalog.update_product(product.id, **fields)
        print(f"Updated product: {product.id[:8]}")
        print(f"  {format_product(product)}")
        return 0

    except StorefrontError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_products_remove(args: argparse.Namespace) -> int:
    """Remove a product."""
    try:
        catalog = CatalogService(open_store(args))
        product = resolve_product(catalog, args.product_id)
        catalog.remove(product.id)

        print(f"Removed product: {product.id[:8]}  {product.name}")
        return 0

    except StorefrontError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_users_register(args: argparse.Namespace) -> int:
    """Register a user."""
    try:
        auth = AuthService(open_store(args))
        role = Role.ADMIN if args.admin else Role.CUSTOMER
        user = auth.register(args.name, args.email, args.password, role)

        print(f"Registered user: {user.id[:8]}  {user}")
        return 0

    except StorefrontError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_users_list(args: argparse.Namespace) -> int:
    """List users."""
    try:
        auth = AuthService(open_store(args))
        users = auth.list_users()

        if args.json:
            data = [
                {"id": u.id, "name": u.name, "email": u.email, "role": u.role.value}
                for u in users
            ]
            print(json.dumps(data, indent=2))
        else:
            print(f"Users ({len(users)}):")
            for u in users:
                print(f"  {u.id[:8]}  {u}")

        return 0

    except StorefrontError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_orders_place(args: argparse.Namespace) -> int:
    """Log in and place an order."""
    try:
        store = open_store(args)
        auth = AuthService(store)
        catalog = CatalogService(store)
        orders = OrderService(store)

        user = auth.login(args.email, args.password)

        items = []
        for line in args.items:
            product_ref, quantity = parse_order_line(line)
            product = resolve_product(catalog, product_ref)
            items.append(OrderItem(product.id, product.name, quantity, product.price))

        order = orders.place_order(user, items)

        print(f"Placed order: {order.id[:8]}")
        print(f"  Total: {format_money(order.total)}")
        print(f"  Status: {order.status.value}")
        return 0

    except StorefrontError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_orders_list(args: argparse.Namespace) -> int:
    """List orders, optionally for one user."""
    try:
        store = open_store(args)
        orders = OrderService(store)

        if args.user:
            email = args.user.strip().lower()
            matches = [u for u in AuthService(store).list_users() if u.email == email]
            result = orders.get_orders_for_user(matches[0].id) if matches else []
        else:
            result = orders.get_all_orders()

        if args.json:
            print(json.dumps([o.to_dict() for o in result], indent=2))
        elif not result:
            print("No orders found.")
        else:
            print(f"Orders ({len(result)}):")
            print()
            for order in result:
                print(f"  {format_order(order, verbose=args.lines)}")

        return 0

    except StorefrontError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_orders_status(args: argparse.Namespace) -> int:
    """Change an order's status."""
    try:
        orders = OrderService(open_store(args), strict_transitions=args.strict)
        order_id = resolve_order_id(orders, args.order_id)
        order = orders.update_order_status(order_id, OrderStatus(args.status))
        if order is None:
            raise OrderNotFoundError(args.order_id)

        print(f"Order {order.id[:8]} is now {order.status.value}")
        return 0

    except StorefrontError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_serve(args: argparse.Namespace) -> int:
    """Start the API server."""
    try:
        import uvicorn

        if args.data_dir:
            # Reloaded workers re-import the app and read the data dir from here.
            os.environ["STOREFRONT_DATA_DIR"] = str(args.data_dir)

        print("Starting storefront API server...")
        print(f"API docs: http://{args.host}:{args.port}/docs")
        print()

        # When reload is enabled, uvicorn requires the app as an import string
        if args.reload:
            app_target = "storefront.api:app"
        else:
            from .api import create_app
            app_target = create_app(args.data_dir)

        uvicorn.run(
            app_target,
            host=args.host,
            port=args.port,
            reload=args.reload,
            workers=1,  # Single worker: the snapshot has one writer
        )
        return 0

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="storefront",
        description="Manage the store catalog, users and orders.",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "--data-dir", type=Path, default=None,
        help="Directory holding store.json (default: $STOREFRONT_DATA_DIR or ./data)",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # init
    init_parser = subparsers.add_parser("init", help="Create the store with default data")
    init_parser.add_argument(
        "--force", "-f", action="store_true", help="Reset an existing store"
    )

    # products (subcommand group)
    products_parser = subparsers.add_parser("products", help="Manage the catalog")
    products_subparsers = products_parser.add_subparsers(dest="products_command")

    products_list_parser = products_subparsers.add_parser("list", help="List products")
    products_list_parser.add_argument("--category", "-c", default="", help="Only this category")
    products_list_parser.add_argument("--json", action="store_true", help="Output as JSON")

    products_search_parser = products_subparsers.add_parser("search", help="Search products")
    products_search_parser.add_argument("query", help="Substring of name or description")
    products_search_parser.add_argument("--category", "-c", default="", help="Only this category")
    products_search_parser.add_argument("--json", action="store_true", help="Output as JSON")

    products_add_parser = products_subparsers.add_parser("add", help="Add a product")
    products_add_parser.add_argument("name", help="Product name")
    products_add_parser.add_argument("--price", "-p", type=float, required=True, help="Unit price")
    products_add_parser.add_argument("--stock", "-s", type=int, required=True, help="Units in stock")
    products_add_parser.add_argument("--desc", "-d", default="", help="Description")
    products_add_parser.add_argument("--category", "-c", default="", help="Category")

    products_update_parser = products_subparsers.add_parser("update", help="Change product fields")
    products_update_parser.add_argument("product_id", help="Product ID (or prefix)")
    products_update_parser.add_argument("--name", "-n", help="New name")
    products_update_parser.add_argument("--price", "-p", type=float, help="New unit price")
    products_update_parser.add_argument("--stock", "-s", type=int, help="New stock level")
    products_update_parser.add_argument("--desc", "-d", help="New description")
    products_update_parser.add_argument("--category", "-c", help="New category")

    products_remove_parser = products_subparsers.add_parser("remove", help="Remove a product")
    products_remove_parser.add_argument("product_id", help="Product ID (or prefix)")

    # users (subcommand group)
    users_parser = subparsers.add_parser("users", help="Manage users")
    users_subparsers = users_parser.add_subparsers(dest="users_command")

    users_register_parser = users_subparsers.add_parser("register", help="Register a user")
    users_register_parser.add_argument("name", help="Display name")
    users_register_parser.add_argument("email", help="Email (unique, case-insensitive)")
    users_register_parser.add_argument("password", help="Password")
    users_register_parser.add_argument("--admin", action="store_true", help="Register as ADMIN")

    users_list_parser = users_subparsers.add_parser("list", help="List users")
    users_list_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # orders (subcommand group)
    orders_parser = subparsers.add_parser("orders", help="Place and manage orders")
    orders_subparsers = orders_parser.add_subparsers(dest="orders_command")

    orders_place_parser = orders_subparsers.add_parser("place", help="Place an order")
    orders_place_parser.add_argument("--email", "-e", required=True, help="Customer email")
    orders_place_parser.add_argument("--password", required=True, help="Customer password")
    orders_place_parser.add_argument(
        "items", nargs="+", help="Order lines: 'product_id' or 'product_id:quantity' (ID prefixes allowed)"
    )

    orders_list_parser = orders_subparsers.add_parser("list", help="List orders")
    orders_list_parser.add_argument("--user", "-u", help="Only orders for this email")
    orders_list_parser.add_argument("--json", action="store_true", help="Output as JSON")
    orders_list_parser.add_argument(
        "--lines", "-l", action="store_true", help="Show order lines"
    )

    orders_status_parser = orders_subparsers.add_parser("status", help="Change order status")
    orders_status_parser.add_argument("order_id", help="Order ID (or prefix)")
    orders_status_parser.add_argument(
        "status", choices=[s.value for s in OrderStatus], help="New status"
    )
    orders_status_parser.add_argument(
        "--strict", action="store_true",
        help="Only allow PENDING->SHIPPED/CANCELLED and SHIPPED->DELIVERED",
    )

    # serve
    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument(
        "--host", default="127.0.0.1", help="Host to bind to (default: 127.0.0.1)"
    )
    serve_parser.add_argument(
        "--port", "-p", type=int, default=8000, help="Port to bind to (default: 8000)"
    )
    serve_parser.add_argument(
        "--reload", action="store_true", help="Enable auto-reload for development"
    )

    return parser


def main() -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return 0

    groups = {
        "products": ("products_command", {
            "list": cmd_products_list,
            "search": cmd_products_list,
            "add": cmd_products_add,
            "update": cmd_products_update,
            "remove": cmd_products_remove,
        }),
        "users": ("users_command", {
            "register": cmd_users_register,
            "list": cmd_users_list,
        }),
        "orders": ("orders_command", {
            "place": cmd_orders_place,
            "list": cmd_orders_list,
            "status": cmd_orders_status,
        }),
    }

    # Handle subcommand groups
    if args.command in groups:
        dest, handlers = groups[args.command]
        sub_command = getattr(args, dest, None)
        if not sub_command:
            parser.parse_args([args.command, "--help"])
            return 0
        return handlers[sub_command](args)

    commands = {
        "init": cmd_init,
        "serve": cmd_serve,
    }

    cmd_func = commands.get(args.command)
    if cmd_func:
        return cmd_func(args)

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
