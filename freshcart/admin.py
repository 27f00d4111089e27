import logging
import threading
from concurrent.futures import Executor, Future
from typing import Any, Callable, Literal

from freshcart.clients.store_api_client import StoreClient
from freshcart.errors import FormValidationError, StoreError
from freshcart.images import product_image
from freshcart.notifications import Notifier, ToastLogger
from freshcart.product import Category, CategoryForm, Product, ProductForm, slugify

logger = logging.getLogger(__name__)

SyncStatus = Literal["synced", "pending_write", "reconciling"]


class _TrackedList:
    """
    Entities as currently shown, their per-entity sync status and the last list the
    server confirmed. Rollback always restores that confirmed snapshot.
    """

    def __init__(self):
        self.items: list[Any] = []
        self.status: dict[int, SyncStatus] = {}
        self._synced: list[Any] = []

    def reset(self, items: list[Any]):
        self.items = list(items)
        self._synced = list(items)
        self.status = {item.id: "synced" for item in items}

    def restore_snapshot(self):
        self.reset(self._synced)

    def find(self, entity_id: int) -> Any | None:
        return next((item for item in self.items if item.id == entity_id), None)

    def put(self, item: Any, status: SyncStatus, replaces: int | None = None):
        # a resync may already have loaded the server copy under its real id
        keys = {item.id, item.id if replaces is None else replaces}
        items, placed = [], False
        for current in self.items:
            if current.id not in keys:
                items.append(current)
            elif not placed:
                items.append(item)
                placed = True
        if not placed:
            items.append(item)
        self.items = items
        for key in keys:
            self.status.pop(key, None)
        self.status[item.id] = status

    def drop(self, entity_id: int, status: SyncStatus):
        self.items = [item for item in self.items if item.id != entity_id]
        self.status[entity_id] = status

    def confirm_put(self, item: Any, replaces: int):
        self.put(item, "synced", replaces=replaces)
        self._synced = [current for current in self._synced if current.id not in (item.id, replaces)] + [item]

    def confirm_drop(self, entity_id: int):
        self.status.pop(entity_id, None)
        self._synced = [current for current in self._synced if current.id != entity_id]

    def mark(self, entity_id: int, status: SyncStatus):
        self.status[entity_id] = status


class AdminController:
    """
    Admin dashboard state. Changes are applied locally first and confirmed by the
    server afterwards; a failed write triggers a resync and, when that fails too,
    a rollback to the last server-confirmed lists.
    """

    def __init__(
        self,
        client: StoreClient,
        notifier: Notifier | None = None,
        executor: Executor | None = None,
        resync_on_success: bool = False,
    ):
        self._client = client
        self._notifier = notifier or ToastLogger()
        self._executor = executor
        self._resync_on_success = resync_on_success
        self._lock = threading.RLock()
        self._products = _TrackedList()
        self._categories = _TrackedList()
        self._next_temp_id = -1
        self.form_error: str | None = None
        self.pending_category_delete: int | None = None

    @property
    def products(self) -> list[Product]:
        with self._lock:
            return list(self._products.items)

    @property
    def categories(self) -> list[Category]:
        with self._lock:
            return list(self._categories.items)

    def product_status(self, product_id: int) -> SyncStatus | None:
        with self._lock:
            return self._products.status.get(product_id)

    def category_status(self, category_id: int) -> SyncStatus | None:
        with self._lock:
            return self._categories.status.get(category_id)

    def login(self, username: str, password: str) -> str | None:
        if not username or not password:
            self.form_error = "Username and password required"
            return None
        try:
            role = self._client.login(username, password)
        except StoreError as e:
            self._notifier.error(e.msg)
            return None
        self.form_error = None
        return role

    def logout(self):
        try:
            self._client.logout()
        except StoreError as e:
            self._notifier.error(e.msg)

    def load(self) -> bool:
        try:
            categories = self._client.get_categories()
            products = self._client.get_products()
        except StoreError as e:
            logger.error(msg=e.msg, extra=e.extra)
            self._notifier.error("Failed to load products")
            return False
        with self._lock:
            self._categories.reset(categories)
            self._products.reset(products)
        return True

    def create_product(self, form: ProductForm) -> bool:
        with self._lock:
            category = self._validate_product_form(form)
            if category is None:
                return False
            temp_id = self._take_temp_id()
            self._products.put(self._optimistic_product(temp_id, form, category), "pending_write")
        self._notifier.success("Product added successfully!")
        self._submit(
            lambda: self._client.create_product(form.to_payload()),
            on_success=lambda created: self._confirm_product(created, replaces=temp_id),
            on_failure=lambda error: self._reconcile_products(temp_id, error),
        )
        return True

    def update_product(self, product_id: int, form: ProductForm) -> bool:
        with self._lock:
            if self._products.find(product_id) is None:
                self._notifier.error("Product not found")
                return False
            category = self._validate_product_form(form)
            if category is None:
                return False
            self._products.put(self._optimistic_product(product_id, form, category), "pending_write")
        self._notifier.success("Product updated!")
        self._submit(
            lambda: self._client.update_product(product_id, form.to_payload()),
            on_success=lambda updated: self._confirm_product(updated, replaces=product_id),
            on_failure=lambda error: self._reconcile_products(product_id, error),
        )
        return True

    def delete_product(self, product_id: int) -> bool:
        with self._lock:
            if self._products.find(product_id) is None:
                self._notifier.error("Product not found")
                return False
            self._products.drop(product_id, "pending_write")
        self._notifier.success("Product deleted!")
        self._submit(
            lambda: self._client.delete_product(product_id),
            on_success=lambda _: self._confirm_product_drop(product_id),
            on_failure=lambda error: self._reconcile_products(product_id, error),
        )
        return True

    def create_category(self, form: CategoryForm) -> bool:
        with self._lock:
            try:
                form.ensure_valid()
                self._ensure_unique_category(form.label)
            except FormValidationError as e:
                self.form_error = e.msg
                return False
            self.form_error = None
            temp_id = self._take_temp_id()
            optimistic = Category(id=temp_id, label=form.label.strip(), value=slugify(form.label), unit=form.unit)
            self._categories.put(optimistic, "pending_write")
        self._notifier.success("Category added")
        self._submit(
            lambda: self._client.create_category(form.to_payload()),
            on_success=lambda created: self._confirm_category(created, replaces=temp_id),
            on_failure=lambda error: self._reconcile_categories(temp_id, error),
        )
        return True

    def request_category_delete(self, category_id: int) -> bool:
        """Opens the delete confirmation unless a loaded product still uses the category."""
        with self._lock:
            in_use = self._count_products_in(category_id)
            if in_use:
                self._notifier.error(f"Category is used by {in_use} product(s)")
                self.pending_category_delete = None
                return False
            self.pending_category_delete = category_id
            return True

    def cancel_category_delete(self):
        self.pending_category_delete = None

    def delete_category(self, category_id: int) -> bool:
        if not self.request_category_delete(category_id):
            return False
        with self._lock:
            self.pending_category_delete = None
            if self._categories.find(category_id) is None:
                self._notifier.error("Category not found")
                return False
            self._categories.drop(category_id, "pending_write")
        self._notifier.success("Category deleted")
        self._submit(
            lambda: self._client.delete_category(category_id),
            on_success=lambda _: self._confirm_category_drop(category_id),
            on_failure=lambda error: self._reconcile_categories(category_id, error),
        )
        return True

    def _validate_product_form(self, form: ProductForm) -> Category | None:
        try:
            form.ensure_valid()
        except FormValidationError as e:
            self.form_error = e.msg
            return None
        category = self._categories.find(form.category_id)
        # an unconfirmed category has no server id yet
        if category is None or self._categories.status.get(category.id) == "pending_write":
            self.form_error = "Category is required"
            return None
        self.form_error = None
        return category

    def _ensure_unique_category(self, label: str):
        value = slugify(label)
        if any(category.value == value for category in self._categories.items):
            raise FormValidationError("Category already exists", {"field": "label"})

    def _count_products_in(self, category_id: int) -> int:
        return sum(1 for product in self._products.items if product.category_id == category_id)

    def _take_temp_id(self) -> int:
        temp_id = self._next_temp_id
        self._next_temp_id -= 1
        return temp_id

    @staticmethod
    def _optimistic_product(product_id: int, form: ProductForm, category: Category) -> Product:
        label = form.label.strip()
        return Product(
            id=product_id,
            label=label,
            pricePerUnit=form.price(),
            category=category,
            image=product_image(label, category.label),
        )

    def _submit(
        self,
        request: Callable[[], Any],
        on_success: Callable[[Any], None],
        on_failure: Callable[[StoreError], None],
    ) -> Future | None:
        if self._executor is None:
            self._run(request, on_success, on_failure)
            return None
        return self._executor.submit(self._run, request, on_success, on_failure)

    def _run(self, request: Callable[[], Any], on_success: Callable[[Any], None], on_failure: Callable[[StoreError], None]):
        try:
            result = request()
        except StoreError as e:
            on_failure(e)
            return
        except Exception as e:
            on_failure(StoreError("Something went wrong, please try again", {"detailed_info": str(e)}))
            return
        on_success(result)

    def _confirm_product(self, product: Product, replaces: int):
        with self._lock:
            self._products.confirm_put(product, replaces)
        if self._resync_on_success:
            self._resync_products()

    def _confirm_product_drop(self, product_id: int):
        with self._lock:
            self._products.confirm_drop(product_id)
        if self._resync_on_success:
            self._resync_products()

    def _confirm_category(self, category: Category, replaces: int):
        with self._lock:
            self._categories.confirm_put(category, replaces)
            for i, product in enumerate(self._products.items):
                if product.category_id == replaces:
                    self._products.items[i] = product.model_copy(update={"category": category})

    def _confirm_category_drop(self, category_id: int):
        with self._lock:
            self._categories.confirm_drop(category_id)

    def _reconcile_products(self, product_id: int, error: StoreError):
        logger.warning("Product write failed: %s", error.msg, extra=error.extra)
        self._notifier.error(error.msg)
        with self._lock:
            self._products.mark(product_id, "reconciling")
        self._resync_products()

    def _reconcile_categories(self, category_id: int, error: StoreError):
        logger.warning("Category write failed: %s", error.msg, extra=error.extra)
        self._notifier.error(error.msg)
        with self._lock:
            self._categories.mark(category_id, "reconciling")
        self._resync_categories()

    def _resync_products(self) -> bool:
        try:
            products = self._client.get_products()
        except StoreError as e:
            logger.warning("Product resync failed, restoring last synced state: %s", e.msg)
            with self._lock:
                self._products.restore_snapshot()
            return False
        with self._lock:
            self._products.reset(products)
        return True

    def _resync_categories(self) -> bool:
        try:
            categories = self._client.get_categories()
        except StoreError as e:
            logger.warning("Category resync failed, restoring last synced state: %s", e.msg)
            with self._lock:
                self._categories.restore_snapshot()
            return False
        with self._lock:
            self._categories.reset(categories)
        return True
