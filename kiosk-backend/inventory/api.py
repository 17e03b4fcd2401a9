# inventory/api.py
from rest_framework.views import APIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework import status

from common.permissions import IsAdminRole
from .audit import log_inventory_action
from . import sessions
from .sessions import InventorySessionError, NotFoundError


def _error(exc: InventorySessionError):
    code = status.HTTP_404_NOT_FOUND if isinstance(exc, NotFoundError) else status.HTTP_400_BAD_REQUEST
    return Response({"error": exc.message}, status=code)


def _user_name(user):
    if user is None:
        return None
    profile = getattr(user, "staff_profile", None)
    if profile and profile.full_name:
        return profile.full_name
    return user.get_full_name() or user.get_username()


def _item_payload(item):
    p = item.product
    return {
        "id": item.id,
        "inventory_id": item.session_id,
        "product_id": item.product_id,
        "product_name": p.name,
        "brand": p.brand,
        "type": p.type,
        "price": str(p.price),
        "system_quantity": item.system_quantity,
        "actual_quantity": item.actual_quantity,
        "difference": item.difference,
        "notes": item.notes or "",
    }


def _session_payload(s, with_items=False):
    data = {
        "id": s.id,
        "kiosk_id": s.kiosk_id,
        "kiosk_name": s.kiosk.name,
        "created_by": s.created_by_id,
        "created_by_name": _user_name(s.created_by),
        "status": s.status,
        "notes": s.notes or "",
        "created_at": s.created_at,
        "completed_at": s.completed_at,
        "editable_until": s.editable_until(),
        "can_edit": s.is_editable_at(),
    }
    if hasattr(s, "items_count"):
        data["items_count"] = s.items_count
        data["discrepancies_count"] = s.discrepancies_count
    if with_items:
        data["items"] = [_item_payload(it) for it in sessions.session_items(s)]
        data["summary"] = sessions.session_summary(s)
    return data


class InventorySessionListCreateView(APIView):
    """
    GET  /api/v1/inventory?kiosk_id=&status=
    POST /api/v1/inventory  { kiosk_id, notes? }
    """
    permission_classes = [IsAuthenticated, IsAdminRole]

    def get(self, request):
        try:
            qs = sessions.list_sessions(
                kiosk_id=request.GET.get("kiosk_id"),
                status=(request.GET.get("status") or "").strip(),
            )
        except InventorySessionError as e:
            return _error(e)
        return Response([_session_payload(s) for s in qs], status=200)

    def post(self, request):
        try:
            s = sessions.create_session(
                kiosk_id=request.data.get("kiosk_id"),
                notes=request.data.get("notes"),
                created_by=request.user,
            )
        except InventorySessionError as e:
            return _error(e)

        s = sessions.get_session(s.id)
        data = _session_payload(s, with_items=True)
        log_inventory_action(
            request, s, "create",
            description=f"Інвентаризація #{s.id} створена",
            changes={"items_count": data["summary"]["items_count"]},
        )
        return Response(data, status=201)


class InventorySessionDetailView(APIView):
    """
    GET    /api/v1/inventory/<id>
    DELETE /api/v1/inventory/<id>   (drafts only)
    """
    permission_classes = [IsAuthenticated, IsAdminRole]

    def get(self, request, pk):
        try:
            s = sessions.get_session(pk)
        except InventorySessionError as e:
            return _error(e)
        return Response(_session_payload(s, with_items=True), status=200)

    def delete(self, request, pk):
        try:
            s = sessions.get_session(pk)
            sessions.delete_session(pk)
        except InventorySessionError as e:
            return _error(e)
        log_inventory_action(request, s, "delete", description=f"Інвентаризація #{pk} видалена")
        return Response({"message": "Інвентаризація видалена"}, status=200)


class InventoryItemUpdateView(APIView):
    """
    PUT /api/v1/inventory/<id>/items/<item_id>
      { actual_quantity?, notes? }
    """
    permission_classes = [IsAuthenticated, IsAdminRole]

    def put(self, request, pk, item_id):
        payload = request.data or {}
        try:
            item = sessions.record_count(
                pk, item_id,
                actual_quantity=payload.get("actual_quantity"),
                notes=payload.get("notes"),
            )
        except InventorySessionError as e:
            return _error(e)
        return Response({"message": "Оновлено успішно", "item": _item_payload(item)}, status=200)


class InventoryCompleteView(APIView):
    """
    POST /api/v1/inventory/<id>/complete
    Writes counted quantities to product stock. A completed session can be
    completed again inside the edit window.
    """
    permission_classes = [IsAuthenticated, IsAdminRole]

    def post(self, request, pk):
        try:
            s = sessions.complete_session(pk)
        except InventorySessionError as e:
            return _error(e)

        s = sessions.get_session(s.id)
        summary = sessions.session_summary(s)
        log_inventory_action(
            request, s, "complete",
            description=f"Інвентаризація #{s.id} завершена",
            changes={
                "counted_count": summary["counted_count"],
                "total_difference": summary["total_difference"],
            },
        )
        return Response({
            "message": "Інвентаризація завершена, залишки оновлено",
            "inventory": _session_payload(s),
        }, status=200)


class InventoryCancelView(APIView):
    """
    POST /api/v1/inventory/<id>/cancel
    Cancelling a completed session (inside the edit window) restores stock.
    """
    permission_classes = [IsAuthenticated, IsAdminRole]

    def post(self, request, pk):
        try:
            s, reverted = sessions.cancel_session(pk)
        except InventorySessionError as e:
            return _error(e)

        s = sessions.get_session(s.id)
        log_inventory_action(
            request, s, "cancel",
            description=f"Інвентаризація #{s.id} скасована",
            changes={"stock_reverted": reverted},
        )
        message = "Інвентаризація скасована" + (", залишки відкочено" if reverted else "")
        return Response({"message": message, "inventory": _session_payload(s)}, status=200)
