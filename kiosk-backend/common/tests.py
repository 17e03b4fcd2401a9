from datetime import timedelta

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.test import APIClient, APIRequestFactory, force_authenticate
from rest_framework.views import APIView

from common.api import ActionLogListView, ActionLogStatsView
from common.audit import log_action
from common.auth_views import StaffTokenObtainPairView
from common.models import ActionLog
from common.permissions import IsAdminRole, IsAdminRoleOrReadOnly, user_role
from kiosks.models import Kiosk, StaffMember


class _BoomView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request):
        raise RuntimeError("database exploded")


class _InvalidView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request):
        raise ValidationError({"quantity": ["Must be positive."]})


class _OkView(APIView):
    permission_classes = [IsAdminRole]

    def get(self, request):
        return Response({"ok": True})


class _ReadOrAdminView(APIView):
    permission_classes = [IsAdminRoleOrReadOnly]

    def get(self, request):
        return Response({"ok": True})

    def post(self, request):
        return Response({"ok": True}, status=201)


class ExceptionHandlerTests(TestCase):
    def setUp(self):
        self.factory = APIRequestFactory()

    def test_unhandled_error_becomes_500(self):
        with self.assertLogs("common.exceptions", level="ERROR"):
            response = _BoomView.as_view()(self.factory.get("/boom"))
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.data, {"error": "Помилка сервера"})

    @override_settings(DEBUG=True)
    def test_debug_adds_detail(self):
        with self.assertLogs("common.exceptions", level="ERROR"):
            response = _BoomView.as_view()(self.factory.get("/boom"))
        self.assertEqual(response.data["detail"], "database exploded")

    def test_drf_errors_get_error_key(self):
        response = _InvalidView.as_view()(self.factory.get("/invalid"))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["error"], "quantity: Must be positive.")


class AdminRoleTests(TestCase):
    def setUp(self):
        self.factory = APIRequestFactory()
        User = get_user_model()
        self.kiosk = Kiosk.objects.create(name="Ларьок 1", address="вул. Хрещатик, 1")
        self.admin = User.objects.create_user(username="admin", password="pw-admin-1")
        StaffMember.objects.create(user=self.admin, role="admin")
        self.seller = User.objects.create_user(username="seller", password="pw-seller-1")
        StaffMember.objects.create(user=self.seller, role="seller", kiosk=self.kiosk)
        self.root = User.objects.create_superuser(username="root", password="pw-root-1")
        self.stranger = User.objects.create_user(username="stranger", password="pw-stranger-1")

    def _get(self, user):
        request = self.factory.get("/ok")
        force_authenticate(request, user=user)
        return _OkView.as_view()(request)

    def test_roles(self):
        self.assertEqual(user_role(self.admin), "admin")
        self.assertEqual(user_role(self.seller), "seller")
        self.assertIsNone(user_role(self.stranger))

        self.assertEqual(self._get(self.admin).status_code, 200)
        self.assertEqual(self._get(self.root).status_code, 200)

        response = self._get(self.seller)
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.data["error"], IsAdminRole.message)
        self.assertEqual(self._get(self.stranger).status_code, 403)

    def test_read_or_admin(self):
        def call(method, user):
            request = getattr(self.factory, method)("/thing")
            force_authenticate(request, user=user)
            return _ReadOrAdminView.as_view()(request).status_code

        self.assertEqual(call("get", self.seller), 200)
        self.assertEqual(call("get", self.stranger), 200)
        self.assertEqual(call("post", self.seller), 403)
        self.assertEqual(call("post", self.admin), 201)
        self.assertEqual(_ReadOrAdminView.as_view()(self.factory.get("/thing")).status_code, 401)

    def test_token_carries_role_and_kiosk(self):
        request = self.factory.post(
            "/api/v1/auth/token/", {"username": "seller", "password": "pw-seller-1"}, format="json",
        )
        response = StaffTokenObtainPairView.as_view()(request)
        self.assertEqual(response.status_code, 200)
        self.assertIn("access", response.data)
        self.assertEqual(response.data["user"]["role"], "seller")
        self.assertEqual(response.data["user"]["kiosk_id"], self.kiosk.id)

    def test_token_superuser_without_profile(self):
        request = self.factory.post(
            "/api/v1/auth/token/", {"username": "root", "password": "pw-root-1"}, format="json",
        )
        response = StaffTokenObtainPairView.as_view()(request)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["user"]["role"], "admin")

    def test_token_requires_staff_profile(self):
        request = self.factory.post(
            "/api/v1/auth/token/", {"username": "stranger", "password": "pw-stranger-1"}, format="json",
        )
        response = StaffTokenObtainPairView.as_view()(request)
        self.assertEqual(response.status_code, 401)
        self.assertIn("error", response.data)


class ActionLogTests(TestCase):
    def test_record(self):
        user = get_user_model().objects.create_user(username="admin", password="pw")
        log = ActionLog.record(
            user=user,
            action_type="INVENTORY_CREATE",
            entity_type="inventory",
            entity_id=7,
            changes={"kiosk_id": 1},
            ip_address="10.0.0.1",
        )
        log.refresh_from_db()
        self.assertEqual(log.changes, {"kiosk_id": 1})
        self.assertEqual(list(user.action_logs.all()), [log])


class PublicEndpointTests(TestCase):

    def test_health(self):
        response = self.client.get("/api/v1/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ok"})

    def test_api_info(self):
        response = self.client.get("/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["endpoints"]["inventory"], "/api/v1/inventory")

    def test_cors_preflight(self):
        response = self.client.options(
            "/api/v1/inventory",
            HTTP_ORIGIN="http://localhost:5173",
            HTTP_ACCESS_CONTROL_REQUEST_METHOD="POST",
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response["Access-Control-Allow-Origin"], "http://localhost:5173")
        self.assertIn("PUT", response["Access-Control-Allow-Methods"])

    @override_settings(CORS_ALLOWED_ORIGIN="https://kiosk.example.com")
    def test_cors_foreign_origin_gets_no_header(self):
        response = self.client.get("/api/v1/health", HTTP_ORIGIN="https://evil.example.com")
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.has_header("Access-Control-Allow-Origin"))


class LogActionTests(TestCase):
    def setUp(self):
        self.factory = APIRequestFactory()
        self.user = get_user_model().objects.create_user(username="admin", password="pw")

    def test_records_request_metadata(self):
        request = self.factory.post(
            "/x", HTTP_X_FORWARDED_FOR="203.0.113.9, 10.0.0.1", HTTP_USER_AGENT="kiosk-tablet",
        )
        request.user = self.user
        log = log_action(request, "PRODUCT_UPDATE", "product", 5, changes={"quantity": 1})
        self.assertEqual(log.ip_address, "203.0.113.9")
        self.assertEqual(log.user_agent, "kiosk-tablet")
        self.assertEqual(log.changes, {"quantity": 1})

    def test_anonymous_requests_are_not_logged(self):
        from django.contrib.auth.models import AnonymousUser

        request = self.factory.post("/x")
        request.user = AnonymousUser()
        self.assertIsNone(log_action(request, "PRODUCT_UPDATE", "product", 5))
        self.assertFalse(ActionLog.objects.exists())


class ActionLogApiTests(TestCase):
    def setUp(self):
        self.factory = APIRequestFactory()
        User = get_user_model()
        self.admin = User.objects.create_user(username="admin", password="pw-admin-1")
        StaffMember.objects.create(user=self.admin, full_name="Олена Адмін", role="admin")
        self.seller = User.objects.create_user(username="seller", password="pw-seller-1")
        StaffMember.objects.create(user=self.seller, full_name="Петро", role="seller")

        ActionLog.record(user=self.admin, action_type="INVENTORY_CREATE", entity_type="inventory", entity_id=1)
        ActionLog.record(user=self.admin, action_type="INVENTORY_COMPLETE", entity_type="inventory", entity_id=1)
        ActionLog.record(user=self.seller, action_type="INVENTORY_COMPLETE", entity_type="inventory", entity_id=2)
        self.old = ActionLog.record(user=self.admin, action_type="PRODUCT_UPDATE", entity_type="product", entity_id=9)
        ActionLog.objects.filter(id=self.old.id).update(created_at=timezone.now() - timedelta(days=30))

    def _get(self, view_cls, params=None, user=None):
        request = self.factory.get("/api/v1/action-logs", params or {})
        force_authenticate(request, user=user or self.admin)
        return view_cls.as_view()(request)

    def test_list_newest_first_with_user_details(self):
        response = self._get(ActionLogListView)
        self.assertEqual(response.status_code, 200)
        logs = response.data["logs"]
        self.assertEqual(len(logs), 4)
        self.assertEqual(logs[-1]["id"], self.old.id)
        self.assertEqual(logs[0]["username"], "seller")
        self.assertEqual(logs[0]["full_name"], "Петро")
        self.assertEqual(logs[0]["role"], "seller")
        self.assertEqual(response.data["pagination"], {"page": 1, "limit": 50, "total": 4, "total_pages": 1})

    def test_filters(self):
        response = self._get(ActionLogListView, {"entity_type": "inventory"})
        self.assertEqual(response.data["pagination"]["total"], 3)

        response = self._get(ActionLogListView, {"action_type": "INVENTORY_COMPLETE", "user_id": self.seller.id})
        self.assertEqual(len(response.data["logs"]), 1)

        since = (timezone.localdate() - timedelta(days=7)).isoformat()
        response = self._get(ActionLogListView, {"start_date": since})
        self.assertNotIn(self.old.id, [log["id"] for log in response.data["logs"]])

        until = (timezone.localdate() - timedelta(days=7)).isoformat()
        response = self._get(ActionLogListView, {"end_date": until})
        self.assertEqual([log["id"] for log in response.data["logs"]], [self.old.id])

        response = self._get(ActionLogListView, {"user_id": "abc"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["error"], "Невірний користувач")

    def test_pagination(self):
        response = self._get(ActionLogListView, {"limit": 3, "page": 2})
        self.assertEqual(len(response.data["logs"]), 1)
        self.assertEqual(response.data["pagination"]["total_pages"], 2)

    def test_stats(self):
        response = self._get(ActionLogStatsView, {"period": 7})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["period_days"], 7)
        self.assertEqual(response.data["action_types"], [
            {"action_type": "INVENTORY_COMPLETE", "count": 2},
            {"action_type": "INVENTORY_CREATE", "count": 1},
        ])
        self.assertEqual(response.data["entity_types"], [{"entity_type": "inventory", "count": 3}])
        top = response.data["top_users"]
        self.assertEqual([(u["username"], u["action_count"]) for u in top], [("admin", 2), ("seller", 1)])
        self.assertEqual(top[0]["full_name"], "Олена Адмін")

    def test_admin_only(self):
        self.assertEqual(self._get(ActionLogListView, user=self.seller).status_code, 403)
        self.assertEqual(self._get(ActionLogStatsView, user=self.seller).status_code, 403)

    def test_routes(self):
        client = APIClient()
        client.force_authenticate(user=self.admin)
        self.assertEqual(client.get("/api/v1/action-logs").status_code, 200)
        self.assertEqual(client.get("/api/v1/action-logs/stats").status_code, 200)
