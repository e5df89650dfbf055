# app/client/cli.py
import argparse
import sys
import time

import requests

from app.client.cart_client import CartClient
from app.utils.settings import CART_SERVICE_URL


def render_cart(cart: dict) -> str:
    lines = [
        "╔══════════════════════════╗",
        f"║ CART: {cart['id']}",
        "║══════════════════════════║",
        f"║ UserId: {cart['user_id']}",
        "║──────────────────────────║",
        "║ #\tProduct\tQuantity",
    ]
    for i, item in enumerate(cart["items"]):
        lines.append(f"║ {i}:\t{item['product_id']}\t{item['quantity']}")
    lines.append("╚══════════════════════════╝")
    return "\n".join(lines)


def _show(client: CartClient, cart_id: int) -> None:
    try:
        print(render_cart(client.get_cart(cart_id)))
    except requests.HTTPError as e:
        if e.response is not None and e.response.status_code == 404:
            print(f"Cart {cart_id} not found")
            return
        raise
    print()


def run_demo(client: CartClient, user_id: int) -> int:
    cart_id = client.create_cart(user_id)["id"]
    _show(client, cart_id)

    steps = [
        lambda: client.add_product(cart_id, 42, 10),
        lambda: client.add_product(cart_id, 95, 1),
        lambda: client.add_product(cart_id, 95, 1),
        lambda: client.delete_product(cart_id, 42),
        lambda: client.empty_cart(cart_id),
        lambda: client.delete_cart(cart_id),
    ]
    for step in steps:
        step()
        _show(client, cart_id)

    return cart_id


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Cart service demo client")
    parser.add_argument("--url", default=CART_SERVICE_URL, help="Cart service base URL")
    parser.add_argument("--user-id", type=int, default=-int(time.time()), help="Owner of the demo cart")
    parser.add_argument("--timeout", type=int, default=5, help="HTTP timeout in seconds")
    args = parser.parse_args(argv)

    client = CartClient(base_url=args.url, timeout=args.timeout)
    try:
        run_demo(client, args.user_id)
    except requests.RequestException as e:
        print(f"Demo failed: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
