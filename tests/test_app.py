# tests/test_app.py
import io
import json
import pytest
from unittest.mock import patch
from wsgiref.util import setup_testing_defaults

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from orgaccess import app as app_module
from orgaccess.database.db_init import initialize_db

ADMIN_ID = 1  # 기본 데이터의 슈퍼 관리자 (TI 그룹)

# ===================================================================
#  Fixture 설정
# ===================================================================

@pytest.fixture
def client():
    """기본 데이터가 들어간 인메모리 DB로 WSGI 애플리케이션을 호출하는 함수를 반환합니다."""
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    initialize_db(session_factory=session_factory, bind=engine)

    def call(method, path, body=None, user_id=ADMIN_ID, query=""):
        environ = {}
        setup_testing_defaults(environ)
        payload = json.dumps(body).encode("utf-8") if body is not None else b""
        environ.update({
            "REQUEST_METHOD": method,
            "PATH_INFO": path,
            "QUERY_STRING": query,
            "CONTENT_LENGTH": str(len(payload)),
            "wsgi.input": io.BytesIO(payload),
        })
        if user_id is not None:
            environ["HTTP_X_USER_ID"] = str(user_id)

        captured = {}
        def start_response(status, headers):
            captured["status"] = status
        raw = b"".join(app_module.application(environ, start_response)).decode("utf-8")
        return int(captured["status"].split()[0]), json.loads(raw) if raw else None

    with patch.object(app_module, "SessionLocal", session_factory):
        yield call
    engine.dispose()

def create_user(client, email, group_id, **flags):
    status, user = client("POST", "/v1/users", {"email": email, "group_id": group_id, **flags})
    assert status == 201
    return user["id"]

# ===================================================================
#  그룹 API
# ===================================================================
class TestGroupApi:
    def test_requires_user_header(self, client):
        status, body = client("GET", "/v1/groups", user_id=None)
        assert status == 403
        assert body["kind"] == "permission_denied"

    def test_list_and_tree(self, client):
        status, body = client("GET", "/v1/groups")
        assert status == 200
        assert len(body["groups"]) == 7

        status, body = client("GET", "/v1/groups", query="tree=true")
        ti = next(g for g in body["groups"] if g["name"] == "TI")
        assert sorted(c["name"] for c in ti["children"]) == ["Desenvolvimento", "Infraestrutura"]

    def test_circular_move_is_conflict(self, client):
        status, body = client("PATCH", "/v1/groups/1", {"parent_id": 2})
        assert status == 409
        assert body["kind"] == "circular_reference"

    def test_delete_with_children_is_conflict(self, client):
        status, _ = client("DELETE", "/v1/groups/1")
        assert status == 409

    def test_rename_cascades_to_children(self, client):
        status, _ = client("PATCH", "/v1/groups/1", {"name": "Tecnologia"})
        assert status == 200
        status, child = client("GET", "/v1/groups/2")
        assert child["path"] == "Tecnologia > Desenvolvimento"

    def test_group_admin_cannot_create_root(self, client):
        manager = create_user(client, "manager@example.com", 1, is_group_admin=True)
        status, _ = client("POST", "/v1/groups", {"name": "Vendas"}, user_id=manager)
        assert status == 403
        status, group = client("POST", "/v1/groups", {"name": "Suporte", "parent_id": 3}, user_id=manager)
        assert status == 201
        assert group["path"] == "TI > Infraestrutura > Suporte"

    def test_unknown_group(self, client):
        status, body = client("GET", "/v1/groups/99")
        assert status == 404
        assert body["id"] == 99

    def test_unknown_parent_is_not_found(self, client):
        """존재하지 않는 부모 그룹은 범위 검사보다 먼저 404로 처리됩니다."""
        status, body = client("POST", "/v1/groups", {"name": "Vendas", "parent_id": 999})
        assert status == 404
        assert body["id"] == 999

        status, body = client("PATCH", "/v1/groups/1", {"parent_id": 999})
        assert status == 404
        assert body["kind"] == "not_found"

    def test_unknown_group_update_and_delete(self, client):
        assert client("PATCH", "/v1/groups/999", {"name": "x"})[0] == 404
        assert client("DELETE", "/v1/groups/999")[0] == 404

    def test_non_boolean_flag_is_rejected(self, client):
        status, body = client("PATCH", "/v1/groups/2", {"is_active": "false"})
        assert status == 400
        assert body["kind"] == "validation_error"
        assert client("GET", "/v1/groups/2")[1]["is_active"] is True

# ===================================================================
#  사용자 API
# ===================================================================
class TestUserApi:
    def test_manageable_groups_of_group_admin(self, client):
        manager = create_user(client, "manager@example.com", 1, is_group_admin=True)
        status, body = client("GET", "/v1/users/manageable-groups", user_id=manager)
        assert status == 200
        assert [g["group_id"] for g in body["groups"]] == [1, 2, 3]

    def test_out_of_scope_filter_returns_empty_page(self, client):
        """홈 그룹이 Recrutamento(5)인 일반 사용자가 TI(1) 사용자 목록을 요청합니다."""
        create_user(client, "ana@example.com", 1)
        plain = create_user(client, "bia@example.com", 5)

        status, body = client("GET", "/v1/users", user_id=plain, query="group_id=1")

        assert status == 200
        assert body == {"items": [], "total": 0}

    def test_group_admin_lists_only_scope(self, client):
        manager = create_user(client, "manager@example.com", 1, is_group_admin=True)
        create_user(client, "dev@example.com", 2)
        create_user(client, "rh@example.com", 4)

        status, body = client("GET", "/v1/users", user_id=manager)

        emails = {u["email"] for u in body["items"]}
        assert "dev@example.com" in emails
        assert "rh@example.com" not in emails
        assert body["total"] == len(body["items"])

    def test_invalid_filter_is_bad_request(self, client):
        status, _ = client("GET", "/v1/users", query="limit=0")
        assert status == 400
        status, _ = client("GET", "/v1/users", query="role=admin")
        assert status == 400

    def test_deactivate_user(self, client):
        user_id = create_user(client, "ana@example.com", 2)
        status, _ = client("DELETE", f"/v1/users/{user_id}")
        assert status == 204
        status, user = client("GET", f"/v1/users/{user_id}")
        assert user["is_active"] is False

    def test_single_user_routes_hide_out_of_scope_users(self, client):
        """RH(4)의 일반 사용자는 TI 관리자의 정보, 역할, 권한을 볼 수 없습니다."""
        plain = create_user(client, "rh@example.com", 4)

        assert client("GET", f"/v1/users/{ADMIN_ID}", user_id=plain)[0] == 404
        assert client("GET", f"/v1/users/{ADMIN_ID}/roles", user_id=plain)[0] == 404
        assert client("GET", f"/v1/users/{ADMIN_ID}/permissions", user_id=plain)[0] == 404

        status, me = client("GET", f"/v1/users/{plain}", user_id=plain)
        assert status == 200
        assert me["email"] == "rh@example.com"
        assert client("GET", f"/v1/users/{plain}/permissions", user_id=plain) == (200, {"permissions": []})

    def test_non_boolean_user_flags_are_rejected(self, client):
        user_id = create_user(client, "ana@example.com", 2)

        status, _ = client("PATCH", f"/v1/users/{user_id}", {"is_active": "false"})
        assert status == 400
        status, _ = client("POST", "/v1/users", {"email": "bia@example.com", "group_id": 2, "is_group_admin": "true"})
        assert status == 400
        assert client("GET", f"/v1/users/{user_id}")[1]["is_active"] is True

# ===================================================================
#  역할/권한 API
# ===================================================================
class TestRbacApi:
    def test_assign_role_twice_is_conflict(self, client):
        user_id = create_user(client, "ana@example.com", 2)
        assert client("PUT", f"/v1/users/{user_id}/roles/2")[0] == 204
        assert client("PUT", f"/v1/users/{user_id}/roles/2")[0] == 409

        status, body = client("GET", f"/v1/users/{user_id}/permissions")
        assert body["permissions"] == ["ticket:read", "ticket:resolve"]

    def test_role_management_requires_permission(self, client):
        user_id = create_user(client, "ana@example.com", 2)
        status, _ = client("POST", "/v1/roles", {"name": "Auditor"}, user_id=user_id)
        assert status == 403

        client("PUT", f"/v1/users/{user_id}/roles/1")
        status, role = client("POST", "/v1/roles", {"name": "Auditor"}, user_id=user_id)
        assert status == 201
        assert role["name"] == "Auditor"

    def test_delete_role_drops_assignments(self, client):
        user_id = create_user(client, "ana@example.com", 2)
        client("PUT", f"/v1/users/{user_id}/roles/2")

        assert client("DELETE", "/v1/roles/2")[0] == 204

        status, body = client("GET", f"/v1/users/{user_id}/roles")
        assert body["roles"] == []

    def test_unknown_route(self, client):
        status, body = client("GET", "/v1/nothing")
        assert status == 404
