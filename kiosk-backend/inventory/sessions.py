# inventory/sessions.py
"""
Inventory (stock count) sessions.

A session snapshots the on-hand quantity of every product in a kiosk, lets an
operator record the counted quantities, and on completion overwrites product
stock with the counted values. A completed session stays editable for
INVENTORY_EDIT_WINDOW_HOURS: it can be re-completed (the previous completion
is reverted before the new counts are applied) or cancelled (stock goes back
to the snapshot). After that window it is frozen.

    draft --complete--> completed --complete--> completed   (within window)
    draft --cancel----> cancelled <--cancel---- completed   (within window)
    draft --delete----> (gone)
"""
import logging

from django.db import transaction
from django.db.models import Count, Q
from django.utils import timezone

from catalog.models import MAX_QUANTITY, Product
from kiosks.models import Kiosk
from .models import InventorySession, InventoryLineItem, SessionStatus, edit_window_hours

logger = logging.getLogger(__name__)


class InventorySessionError(Exception):
    """Base exception for inventory session operations"""

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class InvalidRequest(InventorySessionError):
    """Raised when required input is missing or malformed"""
    pass


class InvalidTransition(InventorySessionError):
    """Raised when the session status does not allow the operation"""
    pass


class EditWindowExpired(InvalidTransition):
    """Raised when a completed session is older than the edit window"""
    pass


class InvalidQuantity(InventorySessionError):
    """Raised when a counted quantity is not a non-negative integer"""
    pass


class NotFoundError(InventorySessionError):
    pass


class SessionNotFound(NotFoundError):
    pass


class LineItemNotFound(NotFoundError):
    pass


class KioskNotFound(NotFoundError):
    pass


MSG_KIOSK_REQUIRED = "Ларьок обов'язковий"
MSG_KIOSK_NOT_FOUND = "Ларьок не знайдено"
MSG_SESSION_NOT_FOUND = "Інвентаризація не знайдена"
MSG_ITEM_NOT_FOUND = "Товар не знайдено"
MSG_ALREADY_CANCELLED = "Інвентаризація вже скасована"
MSG_CANNOT_EDIT_CANCELLED = "Не можна редагувати скасовані інвентаризації"
MSG_MISSING_COMPLETED_AT = "Інвентаризація завершена, але дата завершення відсутня"
MSG_DELETE_DRAFT_ONLY = "Можна видалити тільки чернетки інвентаризацій"
MSG_INVALID_QUANTITY = "Невірна кількість"
MSG_NEGATIVE_QUANTITY = "Кількість не може бути від'ємною"
MSG_INVALID_STATUS = "Невірний статус"
MSG_INVALID_KIOSK_ID = "Невірний ідентифікатор ларька"

_WINDOW_MESSAGES = {
    "edit": "Можна редагувати тільки протягом {hours} годин після завершення. Пройшло {elapsed:.1f} годин.",
    "complete": "Можна повторно завершити тільки протягом {hours} годин після завершення. Пройшло {elapsed:.1f} годин.",
    "cancel": "Можна скасувати тільки протягом {hours} годин після завершення. Пройшло {elapsed:.1f} годин.",
}


def parse_quantity(value):
    """
    Normalize a counted quantity coming from a request body.

    None and "" mean "not counted yet". Ints, integral floats and numeric
    strings are accepted; anything negative or non-numeric is rejected.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise InvalidQuantity(MSG_INVALID_QUANTITY)
    if isinstance(value, str):
        value = value.strip()
        if value == "":
            return None
        try:
            qty = int(value)
        except ValueError:
            raise InvalidQuantity(MSG_INVALID_QUANTITY)
    elif isinstance(value, int):
        qty = value
    elif isinstance(value, float):
        if not value.is_integer():
            raise InvalidQuantity(MSG_INVALID_QUANTITY)
        qty = int(value)
    else:
        raise InvalidQuantity(MSG_INVALID_QUANTITY)
    if qty < 0:
        raise InvalidQuantity(MSG_NEGATIVE_QUANTITY)
    if qty > MAX_QUANTITY:
        raise InvalidQuantity(MSG_INVALID_QUANTITY)
    return qty


def _locked_session(session_id):
    try:
        return InventorySession.objects.select_for_update().get(id=session_id)
    except InventorySession.DoesNotExist:
        raise SessionNotFound(MSG_SESSION_NOT_FOUND)


def _check_window(session, now, action):
    if not session.completed_at:
        raise InvalidTransition(MSG_MISSING_COMPLETED_AT)
    hours = edit_window_hours()
    elapsed = session.hours_since_completion(now)
    if elapsed > hours:
        logger.warning(
            "Inventory #%s: %s rejected, completed %.1fh ago (window %sh)",
            session.id, action, elapsed, hours,
        )
        raise EditWindowExpired(_WINDOW_MESSAGES[action].format(hours=hours, elapsed=elapsed))


def _set_product_quantities(quantities):
    """
    quantities: {product_id: new on-hand quantity}. Status follows quantity.
    """
    if not quantities:
        return 0
    products = Product.objects.select_for_update().filter(id__in=list(quantities))
    updated = 0
    for product in products:
        product.set_quantity(quantities[product.id])
        product.save(update_fields=["quantity", "status", "updated_at"])
        updated += 1
    return updated


def _revert_to_snapshot(session):
    snapshot = dict(session.items.values_list("product_id", "system_quantity"))
    reverted = _set_product_quantities(snapshot)
    logger.info("Inventory #%s: reverted %s product(s) to snapshot", session.id, reverted)
    return reverted


def _apply_counts(session):
    counted = dict(
        session.items.filter(actual_quantity__isnull=False).values_list("product_id", "actual_quantity")
    )
    return _set_product_quantities(counted)


def create_session(kiosk_id, notes=None, created_by=None, now=None):
    """
    Start a count for a kiosk: a draft session plus one line item per product
    currently in the kiosk, each snapshotting the product's quantity.

    Raises:
        InvalidRequest: kiosk_id missing
        KioskNotFound: kiosk_id malformed or no such kiosk
    """
    if kiosk_id in (None, ""):
        raise InvalidRequest(MSG_KIOSK_REQUIRED)
    try:
        kiosk = Kiosk.objects.get(id=int(kiosk_id))
    except (TypeError, ValueError, Kiosk.DoesNotExist):
        raise KioskNotFound(MSG_KIOSK_NOT_FOUND)

    now = now or timezone.now()
    with transaction.atomic():
        session = InventorySession.objects.create(
            kiosk=kiosk,
            created_by=created_by,
            notes=notes or "",
            status=SessionStatus.DRAFT,
            created_at=now,
        )
        products = Product.objects.filter(kiosk=kiosk).order_by("name", "id")
        InventoryLineItem.objects.bulk_create([
            InventoryLineItem(
                session=session,
                product=p,
                system_quantity=p.quantity,
                created_at=now,
            )
            for p in products
        ])

    logger.info("Inventory #%s created for kiosk %s", session.id, kiosk.id)
    return session


def get_session(session_id):
    try:
        return InventorySession.objects.select_related("kiosk", "created_by").get(id=session_id)
    except InventorySession.DoesNotExist:
        raise SessionNotFound(MSG_SESSION_NOT_FOUND)


def session_items(session):
    return (
        session.items
        .select_related("product")
        .order_by("product__name", "id")
    )


def list_sessions(kiosk_id=None, status=None):
    """
    Sessions, newest first, with item and discrepancy counts.
    """
    qs = InventorySession.objects.select_related("kiosk", "created_by")
    if kiosk_id not in (None, ""):
        try:
            qs = qs.filter(kiosk_id=int(kiosk_id))
        except (TypeError, ValueError):
            raise InvalidRequest(MSG_INVALID_KIOSK_ID)
    if status:
        if status not in SessionStatus.values:
            raise InvalidRequest(MSG_INVALID_STATUS)
        qs = qs.filter(status=status)
    return qs.annotate(
        items_count=Count("items"),
        discrepancies_count=Count(
            "items", filter=Q(items__difference__gt=0) | Q(items__difference__lt=0)
        ),
    ).order_by("-created_at", "-id")


def session_summary(session):
    summary = {
        "items_count": 0,
        "counted_count": 0,
        "discrepancies_count": 0,
        "total_system_quantity": 0,
        "total_actual_quantity": 0,
        "total_difference": 0,
    }
    for item in session.items.all():
        summary["items_count"] += 1
        summary["total_system_quantity"] += item.system_quantity
        if item.actual_quantity is None:
            continue
        summary["counted_count"] += 1
        summary["total_actual_quantity"] += item.actual_quantity
        summary["total_difference"] += item.difference or 0
        if item.difference:
            summary["discrepancies_count"] += 1
    return summary


def record_count(session_id, item_id, actual_quantity, notes=None, now=None):
    """
    Record the counted quantity of one line item. Product stock is untouched
    until the session is completed.

    Raises:
        SessionNotFound / LineItemNotFound
        InvalidTransition: session cancelled
        EditWindowExpired: session completed too long ago
        InvalidQuantity: negative, oversized or non-numeric quantity
    """
    now = now or timezone.now()

    with transaction.atomic():
        session = _locked_session(session_id)
        if session.is_cancelled:
            raise InvalidTransition(MSG_CANNOT_EDIT_CANCELLED)
        if session.is_completed:
            _check_window(session, now, "edit")

        try:
            item = session.items.select_for_update().get(id=item_id)
        except InventoryLineItem.DoesNotExist:
            raise LineItemNotFound(MSG_ITEM_NOT_FOUND)

        item.set_actual(parse_quantity(actual_quantity))
        item.notes = notes or ""
        item.save(update_fields=["actual_quantity", "difference", "notes"])

    return item


def complete_session(session_id, now=None):
    """
    Write counted quantities to product stock and mark the session completed.

    Re-completing a completed session (inside the edit window) first restores
    every product to its snapshot, so counts are applied as absolute values
    and never accumulate.
    """
    now = now or timezone.now()

    with transaction.atomic():
        session = _locked_session(session_id)
        if session.is_cancelled:
            raise InvalidTransition(MSG_ALREADY_CANCELLED)

        recompleting = session.is_completed
        if recompleting:
            _check_window(session, now, "complete")
            _revert_to_snapshot(session)

        applied = _apply_counts(session)

        session.status = SessionStatus.COMPLETED
        session.completed_at = now
        session.save(update_fields=["status", "completed_at"])

    logger.info(
        "Inventory #%s %s: %s product(s) updated",
        session.id, "re-completed" if recompleting else "completed", applied,
    )
    return session


def cancel_session(session_id, now=None):
    """
    Cancel a session. A completed session (inside the edit window) has its
    stock changes rolled back to the snapshot; a draft has none to undo.

    Returns:
        (session, reverted) where reverted tells whether stock was restored
    """
    now = now or timezone.now()

    with transaction.atomic():
        session = _locked_session(session_id)
        if session.is_cancelled:
            raise InvalidTransition(MSG_ALREADY_CANCELLED)

        reverted = False
        if session.is_completed:
            _check_window(session, now, "cancel")
            _revert_to_snapshot(session)
            reverted = True

        session.status = SessionStatus.CANCELLED
        session.save(update_fields=["status"])

    logger.info("Inventory #%s cancelled (stock reverted: %s)", session.id, reverted)
    return session, reverted


def delete_session(session_id):
    """
    Delete a draft session and its items. Completed and cancelled sessions
    are kept as history.
    """
    with transaction.atomic():
        session = _locked_session(session_id)
        if not session.is_draft:
            raise InvalidTransition(MSG_DELETE_DRAFT_ONLY)
        deleted_id = session.id
        session.delete()

    logger.info("Inventory #%s deleted", deleted_id)
    return deleted_id
