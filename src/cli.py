"""
Command-line interface for the checkout application.

This script wires a ``Catalog``, a ``Customer`` and a ``CheckoutService``
into an interactive menu loop.  It prompts for input, calls into the
domain objects and prints the results.  All business rules live in the
domain modules; this file only translates between them and the console.

Run it with an optional catalog feed path:

.. code:: bash

    python3 src/cli.py [catalog.csv]

Without a feed (and without ``CHECKOUT_CATALOG_PATH``) the demo catalog
is used.
"""

import logging
import sys
from datetime import date
from typing import List, Optional

import logging_config
from cart import Cart
from catalog import Catalog
from catalog_feed import load_catalog_feed
from checkout import CheckoutService
from config import load_settings
from customer import Customer
from errors import CheckoutError

logger = logging.getLogger(__name__)

DEMO_CUSTOMER_NAME = "Sara"
DEMO_CUSTOMER_BALANCE = 20000


def seed_demo_catalog(catalog: Catalog) -> Catalog:
    """Register the demo goods used when no catalog feed is configured."""
    catalog.add_product("Cheese", 300, 70, expiration_date=date(2028, 12, 31), weight=0.5)
    catalog.add_product("Biscuits", 200, 50, expiration_date=date(2026, 1, 15), weight=0.10)
    catalog.add_product("TV", 2000, 1, weight=10.0)
    catalog.add_product("Scratch Card", 100, 50, weight=0.01)
    catalog.add_product("Hamada", 500, 10, expiration_date=date(2027, 12, 31), weight=0.5)
    return catalog


def _describe(product) -> str:
    traits = []
    if product.is_perishable:
        traits.append(f"expires {product.expiration_date.isoformat()}")
    if product.is_shippable:
        traits.append(f"{product.weight:g}kg")
    suffix = f" [{', '.join(traits)}]" if traits else ""
    return f"{product.sku}. {product.name} - {product.unit_price} (Stock: {product.quantity}){suffix}"


def interactive_cli(catalog: Catalog, customer: Customer, service: CheckoutService) -> None:
    """Provide a simple command-line shop around ``catalog`` for ``customer``."""
    cart = Cart()

    def print_menu() -> None:
        print("\n-- Checkout --")
        print(f"Customer: {customer.name} (balance {customer.balance:.0f})")
        print("1. List Products")
        print("2. Add Product to Cart")
        print("3. View Cart")
        print("4. Remove Product from Cart")
        print("5. Add Balance")
        print("6. Checkout")
        print("0. Exit")

    while True:
        print_menu()
        choice = input("Select an option: ").strip()
        if choice == "1":
            products = catalog.list_products()
            if not products:
                print("No products available.")
            else:
                print("\nAvailable Products:")
                for p in products:
                    print(_describe(p))
        elif choice == "2":
            sku = input("Enter Product SKU: ").strip()
            product = catalog.get_product(sku) or catalog.get_product_by_name(sku)
            if product is None:
                print("Product not found.")
                continue
            try:
                qty = int(input("Enter quantity: "))
            except ValueError:
                print("Please enter a valid numeric quantity.")
                continue
            try:
                line = cart.add(product, qty)
            except CheckoutError as e:
                print(e)
                continue
            print(f"Added {qty} x {product.name} to cart ({line.quantity} in cart)")
        elif choice == "3":
            if cart.is_empty():
                print("Cart is empty.")
            else:
                print("\nCart Contents:")
                for line in cart.lines():
                    print(f"{line.product.name} x {line.quantity} = {line.line_total:.0f}")
                print(f"Subtotal: {cart.subtotal():.0f}")
        elif choice == "4":
            sku = input("Enter Product SKU: ").strip()
            cart.remove(sku)
            print("Removed.")
        elif choice == "5":
            try:
                amount = float(input("Amount: "))
                customer.add_balance(amount)
            except ValueError as e:
                # InvalidArgument is a ValueError too
                print(f"Invalid amount: {e}")
                continue
            print(f"Balance is now {customer.balance:.0f}")
        elif choice == "6":
            try:
                service.checkout(customer, cart)
            except CheckoutError as e:
                print(f"Checkout failed: {e}")
                continue
            cart.clear()
        elif choice == "0":
            print("Exiting.")
            break
        else:
            print("Invalid option. Please try again.")


def main(argv: Optional[List[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    settings = load_settings()
    logging_config.configure_logging(settings.log_dir, settings.log_level_number)

    catalog = Catalog()
    feed_path = argv[0] if argv else settings.catalog_path
    if feed_path:
        load_catalog_feed(feed_path, catalog)
    else:
        seed_demo_catalog(catalog)

    customer = Customer(DEMO_CUSTOMER_NAME, DEMO_CUSTOMER_BALANCE)
    service = CheckoutService(fee_policy=settings.fee_policy())
    logger.info(
        "Shop started",
        extra={"customer": customer.name, "extra": {"products": len(catalog), "fee_policy": repr(service.fee_policy)}},
    )
    interactive_cli(catalog, customer, service)
    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted by user. Exiting.")
        sys.exit(0)
