"""
Inventory session lifecycle: snapshot, counting, completion, revert, deletion
"""
from datetime import timedelta
from decimal import Decimal
from unittest import mock

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from django.utils import timezone

from catalog.models import Product
from kiosks.models import Kiosk, StaffMember
from inventory import sessions
from inventory.models import InventorySession, InventoryLineItem
from inventory.sessions import (
    EditWindowExpired,
    InvalidQuantity,
    InvalidRequest,
    InvalidTransition,
    KioskNotFound,
    LineItemNotFound,
    SessionNotFound,
)


class InventoryTestBase(TestCase):
    """Kiosk with two products plus one product in another kiosk"""

    def setUp(self):
        self.user = get_user_model().objects.create_user(
            username="admin",
            email="admin@example.com",
            password="test-pass",
        )
        StaffMember.objects.create(user=self.user, full_name="Олена Адмін", role="admin")
        self.kiosk = Kiosk.objects.create(name="Ларьок 1", address="вул. Хрещатик, 1")
        self.other_kiosk = Kiosk.objects.create(name="Ларьок 2", address="вул. Садова, 2")
        self.liquid = Product.objects.create(
            kiosk=self.kiosk, name="Liquid Mango", brand="Chaser", type="liquid",
            price=Decimal("250.00"), quantity=10,
        )
        self.pod = Product.objects.create(
            kiosk=self.kiosk, name="Pod Xros", brand="Vaporesso", type="pod",
            price=Decimal("900.00"), quantity=5,
        )
        self.foreign = Product.objects.create(
            kiosk=self.other_kiosk, name="Cartridge", brand="Vaporesso", type="cartridge",
            price=Decimal("120.00"), quantity=40,
        )
        self.t0 = timezone.now()

    def _create(self, **kwargs):
        return sessions.create_session(self.kiosk.id, created_by=self.user, now=self.t0, **kwargs)

    def _item_for(self, session, product):
        return session.items.get(product=product)

    def _count(self, session, product, qty, now=None):
        item = self._item_for(session, product)
        return sessions.record_count(session.id, item.id, qty, now=now or self.t0)

    def _reload(self, *objs):
        for obj in objs:
            obj.refresh_from_db()


class CreateSessionTests(InventoryTestBase):

    def test_snapshots_every_product_of_the_kiosk(self):
        s = self._create(notes="Щотижнева")
        self.assertEqual(s.status, "draft")
        self.assertEqual(s.notes, "Щотижнева")
        self.assertIsNone(s.completed_at)
        self.assertEqual(s.created_by, self.user)

        items = {it.product_id: it for it in s.items.all()}
        self.assertEqual(set(items), {self.liquid.id, self.pod.id})
        self.assertEqual(items[self.liquid.id].system_quantity, 10)
        self.assertEqual(items[self.pod.id].system_quantity, 5)
        for it in items.values():
            self.assertIsNone(it.actual_quantity)
            self.assertIsNone(it.difference)

    def test_kiosk_without_products_gets_empty_session(self):
        empty = Kiosk.objects.create(name="Порожній", address="-")
        s = sessions.create_session(empty.id, now=self.t0)
        self.assertEqual(s.items.count(), 0)

    def test_missing_kiosk_is_rejected(self):
        with self.assertRaises(InvalidRequest) as ctx:
            sessions.create_session(None)
        self.assertEqual(ctx.exception.message, "Ларьок обов'язковий")
        with self.assertRaises(InvalidRequest):
            sessions.create_session("")
        self.assertEqual(InventorySession.objects.count(), 0)

    def test_unknown_kiosk_is_not_found(self):
        with self.assertRaises(KioskNotFound):
            sessions.create_session(999999)
        with self.assertRaises(KioskNotFound) as ctx:
            sessions.create_session("abc")
        self.assertEqual(ctx.exception.message, "Ларьок не знайдено")
        self.assertEqual(InventorySession.objects.count(), 0)

    def test_failed_item_insert_leaves_nothing_behind(self):
        with mock.patch.object(InventoryLineItem.objects, "bulk_create", side_effect=RuntimeError("boom")):
            with self.assertRaises(RuntimeError):
                self._create()
        self.assertEqual(InventorySession.objects.count(), 0)
        self.assertEqual(InventoryLineItem.objects.count(), 0)


class RecordCountTests(InventoryTestBase):

    def test_difference_tracks_actual_quantity(self):
        s = self._create()
        item = self._count(s, self.liquid, 7)
        self.assertEqual(item.actual_quantity, 7)
        self.assertEqual(item.difference, -3)

        item = self._count(s, self.liquid, "12")
        self.assertEqual(item.actual_quantity, 12)
        self.assertEqual(item.difference, 2)

        item = self._count(s, self.liquid, None)
        self.assertIsNone(item.actual_quantity)
        self.assertIsNone(item.difference)

        item.refresh_from_db()
        self.assertIsNone(item.difference)

    def test_recording_does_not_touch_stock(self):
        s = self._create()
        self._count(s, self.liquid, 1)
        self._reload(self.liquid)
        self.assertEqual(self.liquid.quantity, 10)

    def test_notes_are_stored(self):
        s = self._create()
        item = self._item_for(s, self.pod)
        sessions.record_count(s.id, item.id, 4, notes="одна зламана", now=self.t0)
        item.refresh_from_db()
        self.assertEqual(item.notes, "одна зламана")

    def test_invalid_quantities_are_rejected(self):
        s = self._create()
        item = self._item_for(s, self.liquid)
        for bad in (-1, "-3", "abc", 7.5, True, [1], 10**20, "2147483648"):
            with self.assertRaises(InvalidQuantity):
                sessions.record_count(s.id, item.id, bad, now=self.t0)
        item.refresh_from_db()
        self.assertIsNone(item.actual_quantity)

    def test_largest_storable_quantity_is_accepted(self):
        s = self._create()
        item = self._count(s, self.pod, sessions.MAX_QUANTITY)
        item.refresh_from_db()
        self.assertEqual(item.actual_quantity, 2147483647)

    def test_blank_string_clears_the_count(self):
        s = self._create()
        self._count(s, self.liquid, 4)
        item = self._count(s, self.liquid, "")
        self.assertIsNone(item.actual_quantity)

    def test_unknown_session_or_item(self):
        s = self._create()
        with self.assertRaises(SessionNotFound):
            sessions.record_count(999999, 1, 3)
        with self.assertRaises(SessionNotFound):
            sessions.record_count(999999, 1, "abc")
        other = sessions.create_session(self.other_kiosk.id, now=self.t0)
        foreign_item = other.items.get()
        with self.assertRaises(LineItemNotFound):
            sessions.record_count(s.id, foreign_item.id, 3)
        with self.assertRaises(LineItemNotFound):
            sessions.record_count(s.id, foreign_item.id, -5)

    def test_cancelled_session_is_read_only(self):
        s = self._create()
        sessions.cancel_session(s.id, now=self.t0)
        with self.assertRaises(InvalidTransition):
            self._count(s, self.liquid, 3)

    def test_completed_session_editable_inside_window_only(self):
        s = self._create()
        sessions.complete_session(s.id, now=self.t0)

        item = self._count(s, self.liquid, 6, now=self.t0 + timedelta(hours=2))
        self.assertEqual(item.difference, -4)

        with self.assertRaises(EditWindowExpired) as ctx:
            self._count(s, self.liquid, 1, now=self.t0 + timedelta(hours=2, minutes=6))
        self.assertIn("2 годин", ctx.exception.message)
        self.assertIn("2.1", ctx.exception.message)
        item.refresh_from_db()
        self.assertEqual(item.actual_quantity, 6)


class CompleteSessionTests(InventoryTestBase):

    def test_counted_items_overwrite_stock_uncounted_stay(self):
        s = self._create()
        self._count(s, self.liquid, 7)

        sessions.complete_session(s.id, now=self.t0)

        self._reload(s, self.liquid, self.pod, self.foreign)
        self.assertEqual(s.status, "completed")
        self.assertEqual(s.completed_at, self.t0)
        self.assertEqual(self.liquid.quantity, 7)
        self.assertEqual(self.liquid.status, "available")
        self.assertEqual(self.pod.quantity, 5)
        self.assertEqual(self.foreign.quantity, 40)

    def test_zero_counts_mark_products_out_of_stock(self):
        s = self._create()
        self._count(s, self.liquid, 0)
        self._count(s, self.pod, 0)

        sessions.complete_session(s.id, now=self.t0)

        self._reload(self.liquid, self.pod)
        self.assertEqual((self.liquid.quantity, self.liquid.status), (0, "out_of_stock"))
        self.assertEqual((self.pod.quantity, self.pod.status), (0, "out_of_stock"))

    def test_recompletion_replaces_instead_of_accumulating(self):
        s = self._create()
        self._count(s, self.liquid, 5)
        sessions.complete_session(s.id, now=self.t0)

        later = self.t0 + timedelta(minutes=30)
        self._count(s, self.liquid, 8, now=later)
        sessions.complete_session(s.id, now=later)

        self._reload(s, self.liquid)
        self.assertEqual(self.liquid.quantity, 8)
        self.assertEqual(s.completed_at, later)

    def test_recompletion_reverts_items_whose_count_was_cleared(self):
        s = self._create()
        self._count(s, self.pod, 0)
        sessions.complete_session(s.id, now=self.t0)
        self._reload(self.pod)
        self.assertEqual(self.pod.status, "out_of_stock")

        self._count(s, self.pod, None, now=self.t0)
        sessions.complete_session(s.id, now=self.t0 + timedelta(minutes=5))

        self._reload(self.pod)
        self.assertEqual((self.pod.quantity, self.pod.status), (5, "available"))

    def test_recompletion_after_window_changes_nothing(self):
        s = self._create()
        self._count(s, self.liquid, 5)
        sessions.complete_session(s.id, now=self.t0)

        late = self.t0 + timedelta(hours=3)
        with self.assertRaises(EditWindowExpired):
            sessions.complete_session(s.id, now=late)

        self._reload(s, self.liquid)
        self.assertEqual(s.completed_at, self.t0)
        self.assertEqual(self.liquid.quantity, 5)

    @override_settings(INVENTORY_EDIT_WINDOW_HOURS=1)
    def test_window_follows_settings(self):
        s = self._create()
        sessions.complete_session(s.id, now=self.t0)
        with self.assertRaises(EditWindowExpired) as ctx:
            sessions.complete_session(s.id, now=self.t0 + timedelta(minutes=90))
        self.assertIn("1 годин", ctx.exception.message)

    def test_cancelled_session_cannot_be_completed(self):
        s = self._create()
        sessions.cancel_session(s.id, now=self.t0)
        with self.assertRaises(InvalidTransition) as ctx:
            sessions.complete_session(s.id, now=self.t0)
        self.assertEqual(ctx.exception.message, "Інвентаризація вже скасована")

    def test_completed_without_timestamp_is_rejected(self):
        s = self._create()
        InventorySession.objects.filter(id=s.id).update(status="completed", completed_at=None)
        with self.assertRaises(InvalidTransition) as ctx:
            sessions.complete_session(s.id, now=self.t0)
        self.assertIn("дата завершення відсутня", ctx.exception.message)

    def test_failure_rolls_back_stock_changes(self):
        s = self._create()
        self._count(s, self.liquid, 1)
        with mock.patch.object(InventorySession, "save", side_effect=RuntimeError("boom")):
            with self.assertRaises(RuntimeError):
                sessions.complete_session(s.id, now=self.t0)

        self._reload(s, self.liquid)
        self.assertEqual(s.status, "draft")
        self.assertEqual(self.liquid.quantity, 10)

    def test_unknown_session(self):
        with self.assertRaises(SessionNotFound):
            sessions.complete_session(999999)


class CancelSessionTests(InventoryTestBase):

    def test_cancelling_draft_has_no_stock_effect(self):
        s = self._create()
        self._count(s, self.liquid, 2)
        s, reverted = sessions.cancel_session(s.id, now=self.t0)
        self.assertFalse(reverted)
        self.assertEqual(s.status, "cancelled")
        self.assertIsNone(s.completed_at)
        self._reload(self.liquid)
        self.assertEqual(self.liquid.quantity, 10)

    def test_cancelling_completed_restores_snapshot(self):
        s = self._create()
        self._count(s, self.liquid, 3)
        self._count(s, self.pod, 0)
        sessions.complete_session(s.id, now=self.t0)

        s, reverted = sessions.cancel_session(s.id, now=self.t0 + timedelta(hours=1))

        self.assertTrue(reverted)
        self._reload(s, self.liquid, self.pod)
        self.assertEqual(s.status, "cancelled")
        self.assertEqual(s.completed_at, self.t0)
        self.assertEqual((self.liquid.quantity, self.liquid.status), (10, "available"))
        self.assertEqual((self.pod.quantity, self.pod.status), (5, "available"))

    def test_revert_uses_snapshot_even_if_stock_moved_since(self):
        s = self._create()
        self._count(s, self.liquid, 3)
        sessions.complete_session(s.id, now=self.t0)
        Product.objects.filter(id=self.liquid.id).update(quantity=1)

        sessions.cancel_session(s.id, now=self.t0)

        self._reload(self.liquid)
        self.assertEqual(self.liquid.quantity, 10)

    def test_snapshot_of_zero_reverts_to_out_of_stock(self):
        self.pod.set_quantity(0)
        self.pod.save()
        s = self._create()
        self._count(s, self.pod, 4)
        sessions.complete_session(s.id, now=self.t0)
        self._reload(self.pod)
        self.assertEqual(self.pod.status, "available")

        sessions.cancel_session(s.id, now=self.t0)

        self._reload(self.pod)
        self.assertEqual((self.pod.quantity, self.pod.status), (0, "out_of_stock"))

    def test_cancelling_completed_after_window_is_rejected(self):
        s = self._create()
        self._count(s, self.liquid, 3)
        sessions.complete_session(s.id, now=self.t0)

        with self.assertRaises(EditWindowExpired) as ctx:
            sessions.cancel_session(s.id, now=self.t0 + timedelta(hours=5))
        self.assertIn("скасувати", ctx.exception.message)

        self._reload(s, self.liquid)
        self.assertEqual(s.status, "completed")
        self.assertEqual(self.liquid.quantity, 3)

    def test_cancel_is_terminal(self):
        s = self._create()
        sessions.cancel_session(s.id, now=self.t0)
        with self.assertRaises(InvalidTransition):
            sessions.cancel_session(s.id, now=self.t0)


class DeleteSessionTests(InventoryTestBase):

    def test_draft_is_deleted_with_items(self):
        s = self._create()
        sid = s.id
        self.assertEqual(sessions.delete_session(sid), sid)
        self.assertFalse(InventorySession.objects.filter(id=sid).exists())
        self.assertFalse(InventoryLineItem.objects.filter(session_id=sid).exists())
        self.assertTrue(Product.objects.filter(id=self.liquid.id).exists())

    def test_completed_and_cancelled_are_kept(self):
        completed = self._create()
        sessions.complete_session(completed.id, now=self.t0)
        cancelled = self._create()
        sessions.cancel_session(cancelled.id, now=self.t0)

        for s in (completed, cancelled):
            with self.assertRaises(InvalidTransition) as ctx:
                sessions.delete_session(s.id)
            self.assertEqual(ctx.exception.message, "Можна видалити тільки чернетки інвентаризацій")
            self.assertEqual(InventoryLineItem.objects.filter(session_id=s.id).count(), 2)

    def test_unknown_session(self):
        with self.assertRaises(SessionNotFound):
            sessions.delete_session(999999)


class ListAndSummaryTests(InventoryTestBase):

    def test_list_reports_item_and_discrepancy_counts(self):
        s = self._create()
        self._count(s, self.liquid, 9)
        self._count(s, self.pod, 5)
        other = sessions.create_session(self.other_kiosk.id, now=self.t0 + timedelta(minutes=1))

        rows = list(sessions.list_sessions())
        self.assertEqual([r.id for r in rows], [other.id, s.id])
        row = rows[1]
        self.assertEqual(row.items_count, 2)
        self.assertEqual(row.discrepancies_count, 1)

    def test_list_filters(self):
        s = self._create()
        sessions.complete_session(s.id, now=self.t0)
        draft = sessions.create_session(self.other_kiosk.id, now=self.t0)

        self.assertEqual([r.id for r in sessions.list_sessions(status="completed")], [s.id])
        self.assertEqual([r.id for r in sessions.list_sessions(kiosk_id=str(self.other_kiosk.id))], [draft.id])
        with self.assertRaises(InvalidRequest):
            list(sessions.list_sessions(status="archived"))
        with self.assertRaises(InvalidRequest) as ctx:
            list(sessions.list_sessions(kiosk_id="x"))
        self.assertEqual(ctx.exception.message, "Невірний ідентифікатор ларька")

    def test_summary_totals(self):
        s = self._create()
        self._count(s, self.liquid, 7)
        summary = sessions.session_summary(s)
        self.assertEqual(summary, {
            "items_count": 2,
            "counted_count": 1,
            "discrepancies_count": 1,
            "total_system_quantity": 15,
            "total_actual_quantity": 7,
            "total_difference": -3,
        })


class EditWindowHelperTests(InventoryTestBase):

    def test_is_editable_at(self):
        s = self._create()
        self.assertTrue(s.is_editable_at(self.t0 + timedelta(days=30)))
        self.assertIsNone(s.editable_until())

        s = sessions.complete_session(s.id, now=self.t0)
        self.assertEqual(s.editable_until(), self.t0 + timedelta(hours=2))
        self.assertTrue(s.is_editable_at(self.t0 + timedelta(hours=2)))
        self.assertFalse(s.is_editable_at(self.t0 + timedelta(hours=2, seconds=1)))

        s, _ = sessions.cancel_session(s.id, now=self.t0)
        self.assertFalse(s.is_editable_at(self.t0))
