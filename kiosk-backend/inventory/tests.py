from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient, APIRequestFactory, force_authenticate

from catalog.models import Product
from common.models import ActionLog
from kiosks.models import Kiosk, StaffMember
from inventory.api import (
    InventoryCancelView,
    InventoryCompleteView,
    InventoryItemUpdateView,
    InventorySessionDetailView,
    InventorySessionListCreateView,
)
from inventory.models import InventorySession


class InventoryApiTestBase(TestCase):
    def setUp(self):
        self.factory = APIRequestFactory()
        User = get_user_model()
        self.admin = User.objects.create_user(username="admin", email="admin@example.com", password="test-pass")
        StaffMember.objects.create(user=self.admin, full_name="Олена Адмін", role="admin")
        self.seller = User.objects.create_user(username="seller", email="seller@example.com", password="test-pass")
        self.kiosk = Kiosk.objects.create(name="Ларьок 1", address="вул. Хрещатик, 1")
        StaffMember.objects.create(user=self.seller, full_name="Петро", role="seller", kiosk=self.kiosk)

        self.liquid = Product.objects.create(
            kiosk=self.kiosk, name="Liquid Mango", brand="Chaser", type="liquid",
            price=Decimal("250.00"), quantity=10,
        )
        self.pod = Product.objects.create(
            kiosk=self.kiosk, name="Pod Xros", brand="Vaporesso", type="pod",
            price=Decimal("900.00"), quantity=5,
        )

    def _call(self, view_cls, method, path, data=None, user=None, **kwargs):
        request = getattr(self.factory, method)(path, data or {}, format="json")
        force_authenticate(request, user=user or self.admin)
        return view_cls.as_view()(request, **kwargs)

    def _create_session(self, notes=None):
        response = self._call(
            InventorySessionListCreateView, "post", "/api/v1/inventory",
            {"kiosk_id": self.kiosk.id, "notes": notes},
        )
        self.assertEqual(response.status_code, 201, response.data)
        return response.data

    def _item_id(self, data, product):
        return next(it["id"] for it in data["items"] if it["product_id"] == product.id)

    def _put_count(self, session_id, item_id, qty, notes=None):
        return self._call(
            InventoryItemUpdateView, "put", f"/api/v1/inventory/{session_id}/items/{item_id}",
            {"actual_quantity": qty, "notes": notes},
            pk=session_id, item_id=item_id,
        )

    def _complete(self, session_id):
        return self._call(
            InventoryCompleteView, "post", f"/api/v1/inventory/{session_id}/complete", pk=session_id,
        )

    def _cancel(self, session_id):
        return self._call(
            InventoryCancelView, "post", f"/api/v1/inventory/{session_id}/cancel", pk=session_id,
        )

    def _age_completion(self, session_id, hours):
        InventorySession.objects.filter(id=session_id).update(
            completed_at=timezone.now() - timedelta(hours=hours)
        )


class InventoryCreateApiTests(InventoryApiTestBase):

    def test_create_returns_session_with_items(self):
        data = self._create_session(notes="Вечірня перевірка")

        self.assertEqual(data["status"], "draft")
        self.assertEqual(data["kiosk_id"], self.kiosk.id)
        self.assertEqual(data["kiosk_name"], "Ларьок 1")
        self.assertEqual(data["created_by_name"], "Олена Адмін")
        self.assertEqual(data["notes"], "Вечірня перевірка")
        self.assertTrue(data["can_edit"])
        self.assertIsNone(data["editable_until"])
        self.assertEqual(len(data["items"]), 2)
        by_product = {it["product_id"]: it for it in data["items"]}
        self.assertEqual(by_product[self.liquid.id]["system_quantity"], 10)
        self.assertIsNone(by_product[self.liquid.id]["actual_quantity"])
        self.assertEqual(by_product[self.pod.id]["product_name"], "Pod Xros")
        self.assertEqual(data["summary"]["items_count"], 2)

    def test_create_requires_kiosk(self):
        response = self._call(InventorySessionListCreateView, "post", "/api/v1/inventory", {"notes": "x"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data, {"error": "Ларьок обов'язковий"})
        self.assertFalse(InventorySession.objects.exists())

    def test_create_unknown_kiosk(self):
        response = self._call(InventorySessionListCreateView, "post", "/api/v1/inventory", {"kiosk_id": 424242})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data["error"], "Ларьок не знайдено")

    def test_create_malformed_kiosk_id(self):
        response = self._call(InventorySessionListCreateView, "post", "/api/v1/inventory", {"kiosk_id": "abc"})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data["error"], "Ларьок не знайдено")

    def test_create_is_logged(self):
        data = self._create_session()
        log = ActionLog.objects.get(action_type="INVENTORY_CREATE")
        self.assertEqual(log.user, self.admin)
        self.assertEqual(log.entity_type, "inventory")
        self.assertEqual(log.entity_id, data["id"])
        self.assertEqual(log.changes["items_count"], 2)

    def test_non_admin_is_forbidden(self):
        response = self._call(
            InventorySessionListCreateView, "post", "/api/v1/inventory",
            {"kiosk_id": self.kiosk.id}, user=self.seller,
        )
        self.assertEqual(response.status_code, 403)
        self.assertIn("error", response.data)
        self.assertFalse(InventorySession.objects.exists())

    def test_anonymous_is_rejected(self):
        request = self.factory.get("/api/v1/inventory")
        response = InventorySessionListCreateView.as_view()(request)
        self.assertIn(response.status_code, (401, 403))
        self.assertIn("error", response.data)


class InventoryListDetailApiTests(InventoryApiTestBase):

    def test_list_includes_counts(self):
        data = self._create_session()
        self._put_count(data["id"], self._item_id(data, self.liquid), 8)
        self._put_count(data["id"], self._item_id(data, self.pod), 5)

        response = self._call(InventorySessionListCreateView, "get", "/api/v1/inventory")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.data), 1)
        row = response.data[0]
        self.assertEqual(row["items_count"], 2)
        self.assertEqual(row["discrepancies_count"], 1)
        self.assertNotIn("items", row)

    def test_list_filters_by_status(self):
        first = self._create_session()
        self._create_session()
        self._complete(first["id"])

        response = self._call(InventorySessionListCreateView, "get", "/api/v1/inventory?status=completed")
        self.assertEqual([r["id"] for r in response.data], [first["id"]])

        response = self._call(InventorySessionListCreateView, "get", "/api/v1/inventory?status=bogus")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["error"], "Невірний статус")

    def test_detail(self):
        data = self._create_session()
        response = self._call(
            InventorySessionDetailView, "get", f"/api/v1/inventory/{data['id']}", pk=data["id"],
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.data["items"]), 2)
        self.assertIn("summary", response.data)

    def test_detail_not_found(self):
        response = self._call(InventorySessionDetailView, "get", "/api/v1/inventory/999", pk=999)
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data, {"error": "Інвентаризація не знайдена"})


class InventoryItemApiTests(InventoryApiTestBase):

    def test_update_item(self):
        data = self._create_session()
        item_id = self._item_id(data, self.liquid)

        response = self._put_count(data["id"], item_id, 7, notes="розбита пляшка")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["message"], "Оновлено успішно")
        self.assertEqual(response.data["item"]["actual_quantity"], 7)
        self.assertEqual(response.data["item"]["difference"], -3)
        self.assertEqual(response.data["item"]["notes"], "розбита пляшка")

    def test_negative_and_garbage_quantities(self):
        data = self._create_session()
        item_id = self._item_id(data, self.liquid)

        response = self._put_count(data["id"], item_id, -2)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["error"], "Кількість не може бути від'ємною")

        response = self._put_count(data["id"], item_id, "багато")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["error"], "Невірна кількість")

        response = self._put_count(data["id"], item_id, 10**20)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["error"], "Невірна кількість")

    def test_missing_session_wins_over_bad_quantity(self):
        response = self._put_count(999999, 1, "abc")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data["error"], "Інвентаризація не знайдена")

    def test_unknown_item(self):
        data = self._create_session()
        response = self._put_count(data["id"], 987654, 1)
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data["error"], "Товар не знайдено")

    def test_cancelled_session_rejects_edits(self):
        data = self._create_session()
        self._cancel(data["id"])
        response = self._put_count(data["id"], self._item_id(data, self.liquid), 1)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["error"], "Не можна редагувати скасовані інвентаризації")

    def test_completed_session_edit_window(self):
        data = self._create_session()
        item_id = self._item_id(data, self.liquid)
        self._complete(data["id"])

        response = self._put_count(data["id"], item_id, 4)
        self.assertEqual(response.status_code, 200)

        self._age_completion(data["id"], 3)
        response = self._put_count(data["id"], item_id, 2)
        self.assertEqual(response.status_code, 400)
        self.assertTrue(response.data["error"].startswith("Можна редагувати тільки протягом 2 годин"))


class InventoryCompleteCancelApiTests(InventoryApiTestBase):

    def test_complete_updates_stock(self):
        data = self._create_session()
        self._put_count(data["id"], self._item_id(data, self.liquid), 7)

        response = self._complete(data["id"])

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["message"], "Інвентаризація завершена, залишки оновлено")
        self.assertEqual(response.data["inventory"]["status"], "completed")
        self.assertIsNotNone(response.data["inventory"]["completed_at"])
        self.assertTrue(response.data["inventory"]["can_edit"])
        self.liquid.refresh_from_db()
        self.pod.refresh_from_db()
        self.assertEqual(self.liquid.quantity, 7)
        self.assertEqual(self.pod.quantity, 5)
        self.assertTrue(ActionLog.objects.filter(action_type="INVENTORY_COMPLETE", entity_id=data["id"]).exists())

    def test_recomplete_and_expiry(self):
        data = self._create_session()
        item_id = self._item_id(data, self.liquid)
        self._put_count(data["id"], item_id, 5)
        self._complete(data["id"])
        self._put_count(data["id"], item_id, 8)
        self.assertEqual(self._complete(data["id"]).status_code, 200)
        self.liquid.refresh_from_db()
        self.assertEqual(self.liquid.quantity, 8)

        self._age_completion(data["id"], 2.5)
        response = self._complete(data["id"])
        self.assertEqual(response.status_code, 400)
        self.assertIn("повторно завершити", response.data["error"])
        self.liquid.refresh_from_db()
        self.assertEqual(self.liquid.quantity, 8)

    def test_cancel_draft(self):
        data = self._create_session()
        response = self._cancel(data["id"])
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["message"], "Інвентаризація скасована")
        self.assertEqual(response.data["inventory"]["status"], "cancelled")
        self.assertFalse(response.data["inventory"]["can_edit"])

        response = self._cancel(data["id"])
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["error"], "Інвентаризація вже скасована")

    def test_cancel_completed_reverts_stock(self):
        data = self._create_session()
        self._put_count(data["id"], self._item_id(data, self.pod), 0)
        self._complete(data["id"])
        self.pod.refresh_from_db()
        self.assertEqual(self.pod.status, "out_of_stock")

        response = self._cancel(data["id"])

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["message"], "Інвентаризація скасована, залишки відкочено")
        self.pod.refresh_from_db()
        self.assertEqual((self.pod.quantity, self.pod.status), (5, "available"))
        log = ActionLog.objects.get(action_type="INVENTORY_CANCEL")
        self.assertTrue(log.changes["stock_reverted"])

    def test_complete_cancelled_is_rejected(self):
        data = self._create_session()
        self._cancel(data["id"])
        response = self._complete(data["id"])
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["error"], "Інвентаризація вже скасована")

    def test_complete_unknown(self):
        response = self._complete(31337)
        self.assertEqual(response.status_code, 404)


class InventoryDeleteApiTests(InventoryApiTestBase):

    def _delete(self, session_id):
        return self._call(
            InventorySessionDetailView, "delete", f"/api/v1/inventory/{session_id}", pk=session_id,
        )

    def test_delete_draft(self):
        data = self._create_session()
        response = self._delete(data["id"])
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data, {"message": "Інвентаризація видалена"})
        self.assertFalse(InventorySession.objects.filter(id=data["id"]).exists())
        self.assertTrue(ActionLog.objects.filter(action_type="INVENTORY_DELETE", entity_id=data["id"]).exists())

    def test_delete_completed_is_rejected(self):
        data = self._create_session()
        self._complete(data["id"])
        response = self._delete(data["id"])
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["error"], "Можна видалити тільки чернетки інвентаризацій")
        self.assertTrue(InventorySession.objects.filter(id=data["id"]).exists())


class InventoryRoutingTests(InventoryApiTestBase):

    def setUp(self):
        super().setUp()
        self.client = APIClient()
        self.client.force_authenticate(user=self.admin)

    def test_full_cycle_through_urls(self):
        response = self.client.post("/api/v1/inventory", {"kiosk_id": self.kiosk.id}, format="json")
        self.assertEqual(response.status_code, 201)
        session_id = response.data["id"]
        item_id = self._item_id(response.data, self.liquid)

        response = self.client.put(
            f"/api/v1/inventory/{session_id}/items/{item_id}", {"actual_quantity": 3}, format="json",
        )
        self.assertEqual(response.status_code, 200)

        response = self.client.post(f"/api/v1/inventory/{session_id}/complete")
        self.assertEqual(response.status_code, 200)

        response = self.client.get(f"/api/v1/inventory/{session_id}")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["status"], "completed")

        response = self.client.get("/api/v1/inventory", {"kiosk_id": self.kiosk.id})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.data), 1)

        self.liquid.refresh_from_db()
        self.assertEqual(self.liquid.quantity, 3)
