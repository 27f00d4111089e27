import threading
from concurrent.futures import ThreadPoolExecutor
from unittest import TestCase
from unittest.mock import Mock

from freshcart.admin import AdminController
from freshcart.clients.store_api_client import StoreClient
from freshcart.errors import ApiError, ConflictError, NetworkError, NotFoundError
from freshcart.notifications import ToastCollector
from freshcart.product import Category, CategoryForm, Product, ProductForm

BOILER = Category(id=1, label="Boiler Chicken", value="boiler", unit="kg")
EGGS = Category(id=2, label="Eggs", value="egg", unit="piece")
FISH = Category(id=3, label="Fish", value="fish", unit="kg")


class _RecordingExecutor(ThreadPoolExecutor):
    def __init__(self):
        super().__init__(max_workers=2)
        self.futures = []

    def submit(self, *args, **kwargs):
        future = super().submit(*args, **kwargs)
        self.futures.append(future)
        return future


def _product(product_id: int, label: str, price: float, category: Category) -> Product:
    return Product(id=product_id, label=label, pricePerUnit=price, category=category)


class _AdminControllerTestCase(TestCase):
    def setUp(self):
        self._products = [
            _product(1, "Curry Cut", 240, BOILER),
            _product(2, "Farm Eggs", 7, EGGS),
        ]
        self._client = Mock(spec=StoreClient)
        self._client.get_products.return_value = list(self._products)
        self._client.get_categories.return_value = [BOILER, EGGS, FISH]
        self._notifier = ToastCollector()
        self._controller = AdminController(self._client, self._notifier)
        self.assertTrue(self._controller.load())

    def _product_ids(self) -> list[int]:
        return [product.id for product in self._controller.products]


class TestLoad(_AdminControllerTestCase):
    def test_load_marks_everything_synced(self):
        self.assertEqual(self._product_ids(), [1, 2])
        self.assertEqual(self._controller.product_status(1), "synced")
        self.assertEqual(self._controller.category_status(3), "synced")

    def test_load_failure(self):
        self._client.get_products.side_effect = NetworkError("Request timed out, please try again")
        self.assertFalse(self._controller.load())
        self.assertEqual(self._notifier.last.msg, "Failed to load products")
        self.assertEqual(self._product_ids(), [1, 2])


class TestCreateProduct(_AdminControllerTestCase):
    def test_empty_label_is_refused_locally(self):
        created = self._controller.create_product(ProductForm(label="", categoryId=1, pricePerUnit=100))
        self.assertFalse(created)
        self.assertEqual(self._controller.form_error, "Product name required")
        self._client.create_product.assert_not_called()
        self.assertEqual(self._product_ids(), [1, 2])

    def test_unknown_category_is_refused_locally(self):
        self.assertFalse(self._controller.create_product(ProductForm(label="Pomfret", categoryId=9, pricePerUnit=100)))
        self.assertEqual(self._controller.form_error, "Category is required")
        self._client.create_product.assert_not_called()

    def test_create_success_replaces_optimistic_record(self):
        server_product = _product(10, "Pomfret", 450, FISH)
        self._client.create_product.return_value = server_product
        created = self._controller.create_product(ProductForm(label=" Pomfret ", categoryId=3, pricePerUnit="450"))
        self.assertTrue(created)
        self.assertIsNone(self._controller.form_error)
        self._client.create_product.assert_called_once_with({"label": "Pomfret", "categoryId": 3, "pricePerUnit": 450.0})
        self.assertEqual(self._product_ids(), [1, 2, 10])
        self.assertEqual(self._controller.product_status(10), "synced")
        self.assertEqual(self._notifier.messages("success"), ["Product added successfully!"])

    def test_create_is_visible_before_confirmation(self):
        executor = Mock()
        self._controller = AdminController(self._client, self._notifier, executor=executor)
        self._controller.load()
        self._controller.create_product(ProductForm(label="Pomfret", categoryId=3, pricePerUnit=450))
        optimistic = self._controller.products[-1]
        self.assertLess(optimistic.id, 0)
        self.assertEqual(optimistic.label, "Pomfret")
        self.assertEqual(optimistic.image, "/images/products/pomfret.webp")
        self.assertEqual(self._controller.product_status(optimistic.id), "pending_write")
        executor.submit.assert_called_once()
        self._client.create_product.assert_not_called()

    def test_create_failure_resyncs(self):
        self._client.create_product.side_effect = ConflictError("Category not found", 400)
        self._controller.create_product(ProductForm(label="Pomfret", categoryId=3, pricePerUnit=450))
        self.assertEqual(self._product_ids(), [1, 2])
        self.assertEqual(self._notifier.last.msg, "Category not found")
        self.assertEqual(self._client.get_products.call_count, 2)

    def test_create_failure_with_failed_resync_restores_snapshot(self):
        self._client.create_product.side_effect = NetworkError("Request timed out, please try again")
        self._client.get_products.side_effect = NetworkError("Network error, please try again")
        self._controller.create_product(ProductForm(label="Pomfret", categoryId=3, pricePerUnit=450))
        self.assertEqual(self._product_ids(), [1, 2])
        self.assertEqual({self._controller.product_status(i) for i in (1, 2)}, {"synced"})


    def test_confirmed_create_after_resync_is_not_duplicated(self):
        pomfret = _product(7, "Pomfret", 450, FISH)
        release_pomfret = threading.Event()

        def create(payload):
            if payload["label"] == "Pomfret":
                release_pomfret.wait(5)
                return pomfret
            raise NetworkError("Request timed out, please try again")

        self._client.create_product.side_effect = create
        with _RecordingExecutor() as executor:
            controller = AdminController(self._client, self._notifier, executor=executor)
            controller.load()
            self._client.get_products.return_value = self._products + [pomfret]
            controller.create_product(ProductForm(label="Pomfret", categoryId=3, pricePerUnit=450))
            controller.create_product(ProductForm(label="Mackerel", categoryId=3, pricePerUnit=300))
            executor.futures[1].result(timeout=5)
            self.assertEqual([product.id for product in controller.products], [1, 2, 7])
            release_pomfret.set()
            executor.futures[0].result(timeout=5)
        self.assertEqual([product.id for product in controller.products], [1, 2, 7])
        self.assertEqual(controller.product_status(7), "synced")

    def test_category_awaiting_confirmation_is_refused(self):
        executor = Mock()
        controller = AdminController(self._client, self._notifier, executor=executor)
        controller.load()
        controller.create_category(CategoryForm(label="Mutton", unit="kg"))
        pending = controller.categories[-1]
        self.assertEqual(controller.category_status(pending.id), "pending_write")
        form = ProductForm(label="Mutton Curry Cut", categoryId=pending.id, pricePerUnit=700)
        created = controller.create_product(form)
        self.assertFalse(created)
        self.assertEqual(controller.form_error, "Category is required")
        executor.submit.assert_called_once()
        self._client.create_product.assert_not_called()


class TestUpdateProduct(_AdminControllerTestCase):
    def test_update_success(self):
        updated = _product(1, "Curry Cut Premium", 260, BOILER)
        self._client.update_product.return_value = updated
        self.assertTrue(
            self._controller.update_product(1, ProductForm(label="Curry Cut Premium", categoryId=1, pricePerUnit=260))
        )
        self._client.update_product.assert_called_once_with(
            1, {"label": "Curry Cut Premium", "categoryId": 1, "pricePerUnit": 260.0}
        )
        self.assertEqual(self._controller.products[0], updated)
        self.assertEqual(self._notifier.messages("success"), ["Product updated!"])

    def test_update_unknown_product(self):
        self.assertFalse(self._controller.update_product(42, ProductForm(label="X", categoryId=1, pricePerUnit=1)))
        self._client.update_product.assert_not_called()

    def test_update_failure_with_failed_resync_restores_last_synced(self):
        self._client.update_product.side_effect = NotFoundError("Product not found", 404)
        self._client.get_products.side_effect = NetworkError("Network error, please try again")
        self._controller.update_product(1, ProductForm(label="Renamed", categoryId=1, pricePerUnit=999))
        self.assertEqual(self._controller.products, self._products)
        self.assertEqual(self._notifier.messages("error"), ["Product not found"])

    def test_confirmed_update_becomes_new_snapshot(self):
        updated = _product(1, "Renamed", 250, BOILER)
        self._client.update_product.return_value = updated
        self._controller.update_product(1, ProductForm(label="Renamed", categoryId=1, pricePerUnit=250))
        self._client.delete_product.side_effect = NetworkError("Request timed out, please try again")
        self._client.get_products.side_effect = NetworkError("Network error, please try again")
        self._controller.delete_product(2)
        self.assertIn(updated, self._controller.products)
        self.assertEqual(sorted(self._product_ids()), [1, 2])


class TestDeleteProduct(_AdminControllerTestCase):
    def test_delete_success(self):
        self.assertTrue(self._controller.delete_product(1))
        self._client.delete_product.assert_called_once_with(1)
        self.assertEqual(self._product_ids(), [2])
        self.assertIsNone(self._controller.product_status(1))
        self.assertEqual(self._notifier.messages("success"), ["Product deleted!"])

    def test_delete_is_applied_before_request(self):
        seen_ids = []
        self._client.delete_product.side_effect = lambda _: seen_ids.extend(self._product_ids())
        self._controller.delete_product(1)
        self.assertEqual(seen_ids, [2])

    def test_failed_delete_product_reappears_after_refetch(self):
        self._client.delete_product.side_effect = NetworkError("Request timed out, please try again")
        self._controller.delete_product(1)
        self.assertEqual(self._product_ids(), [1, 2])
        self.assertEqual(self._controller.product_status(1), "synced")
        self.assertEqual(self._notifier.messages("error"), ["Request timed out, please try again"])

    def test_reconciling_status_while_refetching(self):
        statuses = []

        def refetch():
            statuses.append(self._controller.product_status(1))
            return list(self._products)

        self._client.delete_product.side_effect = NetworkError("Request timed out, please try again")
        self._client.get_products.side_effect = refetch
        self._controller.delete_product(1)
        self.assertEqual(statuses, ["reconciling"])

    def test_unexpected_error_is_handled(self):
        self._client.delete_product.side_effect = RuntimeError("boom")
        self._controller.delete_product(1)
        self.assertEqual(self._product_ids(), [1, 2])
        self.assertEqual(self._notifier.last.msg, "Something went wrong, please try again")

    def test_resync_on_success(self):
        controller = AdminController(self._client, self._notifier, resync_on_success=True)
        controller.load()
        self._client.get_products.reset_mock()
        self._client.get_products.return_value = [self._products[1]]
        controller.delete_product(1)
        self._client.get_products.assert_called_once()
        self.assertEqual([product.id for product in controller.products], [2])

    def test_background_executor(self):
        with ThreadPoolExecutor(max_workers=1) as executor:
            controller = AdminController(self._client, self._notifier, executor=executor)
            controller.load()
            self._client.delete_product.side_effect = NetworkError("Request timed out, please try again")
            controller.delete_product(1)
        self.assertEqual([product.id for product in controller.products], [1, 2])


class TestCategories(_AdminControllerTestCase):
    def test_create_category(self):
        self._client.create_category.return_value = Category(id=4, label="Mutton", value="mutton", unit="kg")
        self.assertTrue(self._controller.create_category(CategoryForm(label="Mutton", unit="kg")))
        self._client.create_category.assert_called_once_with({"label": "Mutton", "unit": "kg"})
        self.assertEqual([category.id for category in self._controller.categories], [1, 2, 3, 4])
        self.assertEqual(self._controller.category_status(4), "synced")

    def test_create_category_validation(self):
        self.assertFalse(self._controller.create_category(CategoryForm(label="", unit="kg")))
        self.assertEqual(self._controller.form_error, "Category name required")
        self.assertFalse(self._controller.create_category(CategoryForm(label="Boiler", unit="kg")))
        self.assertEqual(self._controller.form_error, "Category already exists")
        self._client.create_category.assert_not_called()

    def test_delete_refused_while_products_reference_category(self):
        self.assertFalse(self._controller.request_category_delete(1))
        self.assertIsNone(self._controller.pending_category_delete)
        self.assertFalse(self._controller.delete_category(1))
        self._client.delete_category.assert_not_called()
        self.assertEqual(self._notifier.last.msg, "Category is used by 1 product(s)")

    def test_delete_unused_category(self):
        self.assertTrue(self._controller.request_category_delete(3))
        self.assertEqual(self._controller.pending_category_delete, 3)
        self.assertTrue(self._controller.delete_category(3))
        self._client.delete_category.assert_called_once_with(3)
        self.assertIsNone(self._controller.pending_category_delete)
        self.assertEqual([category.id for category in self._controller.categories], [1, 2])

    def test_server_refusal_restores_category(self):
        self._client.delete_category.side_effect = ConflictError("Category is used by 2 product(s)", 400)
        self._controller.delete_category(3)
        self.assertEqual([category.id for category in self._controller.categories], [1, 2, 3])
        self.assertEqual(self._notifier.last.msg, "Category is used by 2 product(s)")


class TestSession(_AdminControllerTestCase):
    def test_login(self):
        self._client.login.return_value = "admin"
        self.assertEqual(self._controller.login("admin", "secret"), "admin")

    def test_login_missing_fields(self):
        self.assertIsNone(self._controller.login("admin", ""))
        self.assertEqual(self._controller.form_error, "Username and password required")
        self._client.login.assert_not_called()

    def test_login_rejected(self):
        self._client.login.side_effect = ApiError("Invalid credentials", 401)
        self.assertIsNone(self._controller.login("admin", "wrong"))
        self.assertEqual(self._notifier.last.msg, "Invalid credentials")

    def test_logout_failure_is_toasted(self):
        self._client.logout.side_effect = NetworkError("Network error, please try again")
        self._controller.logout()
        self.assertEqual(self._notifier.last.msg, "Network error, please try again")
