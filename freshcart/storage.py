import logging
from abc import ABC, abstractmethod
from pathlib import Path

logger = logging.getLogger(__name__)

CART_KEY = "cart"


class CartStorage(ABC):
    """Key-value blob store standing in for the browser's local storage."""

    @abstractmethod
    def get_item(self, key: str) -> str | None: ...

    @abstractmethod
    def set_item(self, key: str, value: str): ...

    @abstractmethod
    def remove_item(self, key: str): ...


class InMemoryCartStorage(CartStorage):
    def __init__(self, items: dict[str, str] | None = None):
        self._items: dict[str, str] = dict(items or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str):
        self._items[key] = value

    def remove_item(self, key: str):
        self._items.pop(key, None)


class FileCartStorage(CartStorage):
    """Stores every key as a separate `<key>.json` file inside a folder."""

    def __init__(self, folder_path: str):
        self._folder_path = Path(folder_path)
        self._folder_path.mkdir(parents=True, exist_ok=True)

    def get_item(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set_item(self, key: str, value: str):
        path = self._path(key)
        # readers only ever see a complete file
        tmp_path = path.with_name(f"{path.name}.tmp")
        try:
            tmp_path.write_text(value, encoding="utf-8")
            tmp_path.replace(path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise
        logger.debug("Stored %s (%d bytes)", key, len(value))

    def remove_item(self, key: str):
        self._path(key).unlink(missing_ok=True)

    def _path(self, key: str) -> Path:
        return self._folder_path / f"{key}.json"
