import logging
from typing import Any, Callable

import requests
from pydantic import TypeAdapter

from freshcart.errors import ApiError, ConflictError, NetworkError, NotFoundError
from freshcart.product import Category, Product

logger = logging.getLogger(__name__)

_CONFLICT_STATUSES = (400, 409)


class StoreClient:
    def __init__(self, base_url: str, timeout: float = 5.0):
        self._base_url = base_url.rstrip("/")
        self._products_endpoint = f"{self._base_url}/products"
        self._categories_endpoint = f"{self._base_url}/categories"
        self._auth_endpoint = f"{self._base_url}/auth"
        self._timeout = timeout
        self._session = requests.Session()

    def get_products(self) -> list[Product]:
        response = self._call(self._session.get, self._products_endpoint)
        return TypeAdapter(list[Product]).validate_python(response.json())

    def create_product(self, payload: dict[str, Any]) -> Product:
        response = self._call(self._session.post, self._products_endpoint, json=payload)
        return Product.model_validate(response.json())

    def update_product(self, product_id: int, payload: dict[str, Any]) -> Product:
        response = self._call(self._session.put, f"{self._products_endpoint}/{product_id}", json=payload)
        return Product.model_validate(response.json())

    def delete_product(self, product_id: int):
        self._call(self._session.delete, f"{self._products_endpoint}/{product_id}")

    def get_categories(self) -> list[Category]:
        response = self._call(self._session.get, self._categories_endpoint)
        return TypeAdapter(list[Category]).validate_python(response.json())

    def create_category(self, payload: dict[str, Any]) -> Category:
        response = self._call(self._session.post, self._categories_endpoint, json=payload)
        return Category.model_validate(response.json())

    def delete_category(self, category_id: int):
        self._call(self._session.delete, f"{self._categories_endpoint}/{category_id}")

    def login(self, username: str, password: str) -> str:
        payload = {"username": username, "password": password}
        response = self._call(self._session.post, f"{self._auth_endpoint}/login", json=payload)
        return response.json().get("role", "")

    def logout(self):
        self._call(self._session.post, f"{self._auth_endpoint}/logout")

    def close(self):
        self._session.close()

    def _call(self, send: Callable[..., requests.Response], url: str, **kwargs) -> requests.Response:
        try:
            response = send(url, timeout=self._timeout, **kwargs)
        except requests.exceptions.Timeout as e:
            raise NetworkError("Request timed out, please try again", {"url": url, "detailed_info": str(e)})
        except requests.exceptions.RequestException as e:
            raise NetworkError("Network error, please try again", {"url": url, "detailed_info": str(e)})
        if not response.ok:
            raise self._error_from_response(url, response)
        return response

    @staticmethod
    def _error_from_response(url: str, response: requests.Response) -> ApiError:
        msg = _extract_message(response) or f"Request failed with status {response.status_code}"
        logger.debug("Request to %s failed: %s", url, msg)
        extra = {"url": url}
        if response.status_code == 404:
            return NotFoundError(msg, response.status_code, extra)
        if response.status_code in _CONFLICT_STATUSES:
            return ConflictError(msg, response.status_code, extra)
        return ApiError(msg, response.status_code, extra)


def _extract_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return ""
    if not isinstance(body, dict):
        return ""
    message = body.get("error") or body.get("message") or ""
    return message if isinstance(message, str) else ""
