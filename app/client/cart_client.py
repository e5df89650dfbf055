# app/client/cart_client.py
import requests

from app.utils.retry import http_retry
from app.utils.settings import CART_SERVICE_URL
from app.utils.logging import get_logger

logger = get_logger(__name__)


class CartClient:
    """
    Klient HTTP serwisu koszykow.
    Ponawiamy tylko operacje idempotentne (GET/DELETE), create i add nie.
    """

    def __init__(self, base_url: str | None = None, timeout: int = 5, session: requests.Session | None = None):
        self.base_url = (base_url or CART_SERVICE_URL).rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def create_cart(self, user_id: int) -> dict:
        url = self._url("/carts/")
        logger.info(f"CartClient POST {url}")

        resp = self.session.post(url, json={"user_id": user_id}, timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()

    @http_retry()
    def get_cart(self, cart_id: int) -> dict:
        url = self._url(f"/carts/{cart_id}")
        logger.info(f"CartClient GET {url}")

        resp = self.session.get(url, timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()

    def add_product(self, cart_id: int, product_id: int, quantity: int) -> None:
        url = self._url(f"/carts/{cart_id}/items")
        logger.info(f"CartClient POST {url}")

        resp = self.session.post(
            url,
            json={"product_id": product_id, "quantity": quantity},
            timeout=self.timeout,
        )
        resp.raise_for_status()

    @http_retry()
    def delete_product(self, cart_id: int, product_id: int) -> None:
        url = self._url(f"/carts/{cart_id}/items/{product_id}")
        logger.info(f"CartClient DELETE {url}")

        resp = self.session.delete(url, timeout=self.timeout)
        resp.raise_for_status()

    @http_retry()
    def empty_cart(self, cart_id: int) -> None:
        url = self._url(f"/carts/{cart_id}/items")
        logger.info(f"CartClient DELETE {url}")

        resp = self.session.delete(url, timeout=self.timeout)
        resp.raise_for_status()

    @http_retry()
    def delete_cart(self, cart_id: int) -> None:
        url = self._url(f"/carts/{cart_id}")
        logger.info(f"CartClient DELETE {url}")

        resp = self.session.delete(url, timeout=self.timeout)
        resp.raise_for_status()
