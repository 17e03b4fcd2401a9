from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework.test import APIRequestFactory, force_authenticate

from catalog.models import Product, ProductStatus, stock_status_for
from catalog.views import ProductViewSet
from common.models import ActionLog
from kiosks.models import Kiosk, StaffMember
from kiosks.views import KioskViewSet


class StockStatusTests(TestCase):
    def setUp(self):
        self.kiosk = Kiosk.objects.create(name="Ларьок 1", address="вул. Хрещатик, 1")

    def test_status_follows_quantity(self):
        self.assertEqual(stock_status_for(0), ProductStatus.OUT_OF_STOCK)
        self.assertEqual(stock_status_for(None), ProductStatus.OUT_OF_STOCK)
        self.assertEqual(stock_status_for(1), ProductStatus.AVAILABLE)

    def test_save_keeps_status_in_sync(self):
        product = Product.objects.create(kiosk=self.kiosk, name="Liquid", price=Decimal("100.00"), quantity=0)
        self.assertEqual(product.status, "out_of_stock")

        product.quantity = 4
        product.save(update_fields=["quantity"])
        product.refresh_from_db()
        self.assertEqual(product.status, "available")

    def test_set_quantity(self):
        product = Product.objects.create(kiosk=self.kiosk, name="Pod", price=Decimal("500.00"), quantity=3)
        product.set_quantity("0")
        self.assertEqual((product.quantity, product.status), (0, "out_of_stock"))


class CatalogApiTests(TestCase):
    def setUp(self):
        self.factory = APIRequestFactory()
        self.user = get_user_model().objects.create_user(username="seller", password="test-pass")
        self.kiosk = Kiosk.objects.create(name="Ларьок 1", address="вул. Хрещатик, 1")
        self.other = Kiosk.objects.create(name="Ларьок 2", address="вул. Садова, 2")
        self.closed = Kiosk.objects.create(name="Закритий", address="-", is_active=False)
        self.mango = Product.objects.create(
            kiosk=self.kiosk, name="Liquid Mango", brand="Chaser", price=Decimal("250.00"), quantity=3,
        )
        self.empty = Product.objects.create(
            kiosk=self.kiosk, name="Pod Xros", brand="Vaporesso", price=Decimal("900.00"), quantity=0,
        )
        Product.objects.create(
            kiosk=self.other, name="Cartridge", brand="Vaporesso", price=Decimal("120.00"), quantity=9,
        )

    def _list_products(self, params=None):
        request = self.factory.get("/api/v1/products", params or {})
        force_authenticate(request, user=self.user)
        return ProductViewSet.as_view({"get": "list"})(request)

    def test_filters(self):
        response = self._list_products({"kiosk_id": self.kiosk.id})
        self.assertEqual({p["id"] for p in response.data}, {self.mango.id, self.empty.id})

        response = self._list_products({"status": "out_of_stock"})
        self.assertEqual([p["id"] for p in response.data], [self.empty.id])

        response = self._list_products({"q": "vapor"})
        self.assertEqual(len(response.data), 2)

        response = self._list_products({"kiosk_id": "nope"})
        self.assertEqual(response.data, [])

    def test_kiosk_products(self):
        request = self.factory.get(f"/api/v1/kiosks/{self.kiosk.id}/products")
        force_authenticate(request, user=self.user)
        response = KioskViewSet.as_view({"get": "products"})(request, pk=self.kiosk.id)
        self.assertEqual(response.status_code, 200)
        self.assertEqual([p["name"] for p in response.data], ["Liquid Mango", "Pod Xros"])
        self.assertEqual(response.data[0]["kiosk_name"], "Ларьок 1")

    def test_inactive_kiosks_are_hidden(self):
        request = self.factory.get("/api/v1/kiosks")
        force_authenticate(request, user=self.user)
        response = KioskViewSet.as_view({"get": "list"})(request)
        self.assertEqual([k["name"] for k in response.data], ["Ларьок 1", "Ларьок 2"])


class ProductWriteApiTests(TestCase):
    def setUp(self):
        self.factory = APIRequestFactory()
        User = get_user_model()
        self.admin = User.objects.create_user(username="admin", password="test-pass")
        StaffMember.objects.create(user=self.admin, full_name="Олена Адмін", role="admin")
        self.seller = User.objects.create_user(username="seller", password="test-pass")
        self.kiosk = Kiosk.objects.create(name="Ларьок 1", address="вул. Хрещатик, 1")
        StaffMember.objects.create(user=self.seller, role="seller", kiosk=self.kiosk)
        self.product = Product.objects.create(
            kiosk=self.kiosk, name="Liquid Mango", brand="Chaser", price=Decimal("250.00"), quantity=3,
        )

    def _call(self, method, action, data=None, user=None, pk=None):
        path = "/api/v1/products" if pk is None else f"/api/v1/products/{pk}"
        request = getattr(self.factory, method)(path, data or {}, format="json")
        force_authenticate(request, user=user or self.admin)
        kwargs = {} if pk is None else {"pk": pk}
        return ProductViewSet.as_view({method: action})(request, **kwargs)

    def test_admin_creates_product_with_synced_status(self):
        response = self._call("post", "create", {
            "kiosk": self.kiosk.id, "name": "Pod Xros", "brand": "Vaporesso",
            "price": "900.00", "quantity": 0,
        })
        self.assertEqual(response.status_code, 201, response.data)
        self.assertEqual(response.data["status"], "out_of_stock")
        self.assertEqual(response.data["kiosk_name"], "Ларьок 1")

        response = self._call("post", "create", {
            "kiosk": self.kiosk.id, "name": "Cartridge", "price": "120.00", "quantity": 12,
            "status": "out_of_stock",
        })
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["status"], "available")
        product = Product.objects.get(id=response.data["id"])
        self.assertEqual((product.quantity, product.status), (12, "available"))
        self.assertEqual(ActionLog.objects.filter(action_type="PRODUCT_CREATE").count(), 2)

    def test_create_validation(self):
        response = self._call("post", "create", {"kiosk": self.kiosk.id, "price": "10.00"})
        self.assertEqual(response.status_code, 400)
        self.assertIn("Назва, ціна та ларьок обов'язкові", response.data["error"])

        response = self._call("post", "create", {"name": "Pod", "price": "10.00"})
        self.assertEqual(response.status_code, 400)
        self.assertIn("Назва, ціна та ларьок обов'язкові", response.data["error"])

        response = self._call("post", "create", {
            "kiosk": self.kiosk.id, "name": "Pod", "price": "10.00", "quantity": -1,
        })
        self.assertEqual(response.status_code, 400)
        self.assertIn("Кількість не може бути від'ємною", response.data["error"])

        response = self._call("post", "create", {
            "kiosk": self.kiosk.id, "name": "Pod", "price": "10.00", "quantity": 10**20,
        })
        self.assertEqual(response.status_code, 400)
        self.assertIn("Невірна кількість", response.data["error"])
        self.assertEqual(Product.objects.count(), 1)

    def test_update_is_partial_and_resyncs_status(self):
        response = self._call("put", "update", {"quantity": 0}, pk=self.product.id)

        self.assertEqual(response.status_code, 200, response.data)
        self.product.refresh_from_db()
        self.assertEqual(self.product.name, "Liquid Mango")
        self.assertEqual((self.product.quantity, self.product.status), (0, "out_of_stock"))
        log = ActionLog.objects.get(action_type="PRODUCT_UPDATE")
        self.assertEqual(log.entity_id, self.product.id)
        self.assertEqual(log.changes["quantity"], {"from": 3, "to": 0})

        response = self._call("put", "update", {"price": "199.00"}, pk=self.product.id)
        self.assertEqual(response.status_code, 200)
        self.product.refresh_from_db()
        self.assertEqual(self.product.price, Decimal("199.00"))
        self.assertEqual(self.product.quantity, 0)

    def test_delete(self):
        response = self._call("delete", "destroy", pk=self.product.id)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data, {"message": "Товар видалено"})
        self.assertFalse(Product.objects.filter(id=self.product.id).exists())
        self.assertTrue(ActionLog.objects.filter(action_type="PRODUCT_DELETE", entity_id=self.product.id).exists())

        response = self._call("get", "retrieve", pk=self.product.id)
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data["error"], "Товар не знайдено")

    def test_seller_reads_but_cannot_write(self):
        self.assertEqual(self._call("get", "list", user=self.seller).status_code, 200)

        response = self._call("post", "create", {
            "kiosk": self.kiosk.id, "name": "Pod", "price": "10.00",
        }, user=self.seller)
        self.assertEqual(response.status_code, 403)
        response = self._call("put", "update", {"quantity": 99}, user=self.seller, pk=self.product.id)
        self.assertEqual(response.status_code, 403)
        response = self._call("delete", "destroy", user=self.seller, pk=self.product.id)
        self.assertEqual(response.status_code, 403)

        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, 3)
