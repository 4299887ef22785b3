# orgaccess/app.py
from wsgiref.simple_server import make_server
from urllib.parse import parse_qs
import json
import logging
import re

from pydantic import ValidationError as PydanticValidationError

from orgaccess.config import get_settings, configure_logging
from orgaccess.database.database import SessionLocal
from orgaccess.repositories.sqlalchemy.sqlalchemy_group_repository import SqlalchemyGroupRepository
from orgaccess.repositories.sqlalchemy.sqlalchemy_role_repository import SqlalchemyRoleRepository
from orgaccess.repositories.sqlalchemy.sqlalchemy_permission_repository import SqlalchemyPermissionRepository
from orgaccess.repositories.sqlalchemy.sqlalchemy_user_role_repository import SqlalchemyUserRoleRepository
from orgaccess.repositories.sqlalchemy.sqlalchemy_user_repository import SqlalchemyUserRepository
from orgaccess.services.accessible_entities import EntityFilter
from orgaccess.services.group_service import GroupHierarchyService
from orgaccess.services.manageable_groups import ManageableGroupsResolver
from orgaccess.services.permission_context import PermissionContextFactory
from orgaccess.services.rbac_service import RBACService
from orgaccess.services.user_service import UserService
from orgaccess.services.exceptions import (
    OrgAccessError, NotFoundError, GroupNotFoundError, ValidationError, CircularReferenceError,
    ChildGroupsExistError, AlreadyAssignedError, NotAssignedError, PermissionDenied
)

logger = logging.getLogger(__name__)

GROUP_UPDATE_FIELDS = ("name", "description", "parent_id", "is_active")
BOOLEAN_FIELDS = ("is_active", "is_group_admin", "is_super_admin")
USER_UPDATE_FIELDS = ("name", "email", "group_id", "is_group_admin", "is_super_admin", "is_active")

# --------------------------------------------------------------------------
## 요청 처리 유틸리티 함수
# --------------------------------------------------------------------------

def get_request_data(environ):
    try:
        content_length = int(environ.get("CONTENT_LENGTH") or 0)
        return json.loads(environ["wsgi.input"].read(content_length)) if content_length > 0 else {}
    except (ValueError, json.JSONDecodeError):
        raise ValueError("Invalid or missing JSON body.")

def get_query_params(environ):
    return {k: v[-1] for k, v in parse_qs(environ.get("QUERY_STRING", "")).items()}

def get_context(environ):
    """X-User-Id 헤더(상위 계층에서 인증 완료)로 권한 컨텍스트를 만듭니다."""
    user_id = environ.get('HTTP_X_USER_ID')
    if not user_id or not user_id.isdigit():
        raise PermissionDenied("Missing or invalid 'X-User-Id' header.")
    return environ['services']['contexts'].for_user(int(user_id))

def require_boolean_fields(data):
    """JSON 불리언이 아닌 값(예: "false" 문자열)은 거부합니다."""
    for field in BOOLEAN_FIELDS:
        if field in data and not isinstance(data[field], bool):
            raise ValueError(f"Field '{field}' must be a boolean.")

def require_group_exists(context, group_id, label="Group"):
    if group_id not in context.hierarchy:
        raise GroupNotFoundError(f"{label} with id '{group_id}' not found.", group_id)

def require_permission(environ, context, resource, action):
    if context.is_super_admin:
        return
    if not environ['services']['rbac'].has_permission(context.user_id, resource, action):
        raise PermissionDenied(f"Missing permission: {resource}:{action}")

def require_group_scope(environ, context, group_id):
    if not environ['services']['resolver'].can_manage_group(context, group_id):
        raise PermissionDenied(f"Group '{group_id}' is outside of your manageable scope.", group_id)

def handle_exception(e):
    error_map = [
        (NotFoundError, "404 Not Found"),
        (PermissionDenied, "403 Forbidden"),
        (CircularReferenceError, "409 Conflict"),
        (ChildGroupsExistError, "409 Conflict"),
        (AlreadyAssignedError, "409 Conflict"),
        (NotAssignedError, "409 Conflict"),
        (ValidationError, "400 Bad Request"),
    ]
    if isinstance(e, OrgAccessError):
        status = next((s for cls, s in error_map if isinstance(e, cls)), "400 Bad Request")
        return status, json.dumps(e.to_dict())
    if isinstance(e, PydanticValidationError):
        return "400 Bad Request", json.dumps({"error": "Invalid query parameters.", "kind": "validation_error"})
    if isinstance(e, ValueError):
        return "400 Bad Request", json.dumps({"error": str(e), "kind": "validation_error"})
    logger.exception("Unhandled error while processing request")
    return "500 Internal Server Error", json.dumps({"error": "Internal Server Error"})

def build_services(db_session):
    """요청마다 리포지토리와 서비스를 생성합니다. (Repositories -> Services)"""
    settings = get_settings()
    group_repo = SqlalchemyGroupRepository(db_session)
    role_repo = SqlalchemyRoleRepository(db_session)
    permission_repo = SqlalchemyPermissionRepository(db_session)
    user_role_repo = SqlalchemyUserRoleRepository(db_session)
    user_repo = SqlalchemyUserRepository(db_session, max_page_size=settings.max_page_size)

    group_service = GroupHierarchyService(group_repo)
    resolver = ManageableGroupsResolver()
    return {
        'groups': group_service,
        'contexts': PermissionContextFactory(group_service, user_repo),
        'resolver': resolver,
        'rbac': RBACService(user_role_repo, role_repo, permission_repo),
        'users': UserService(user_repo, resolver),
    }

# --------------------------------------------------------------------------
## WSGI 애플리케이션 (의존성 주입 및 라우팅)
# --------------------------------------------------------------------------

def application(environ, start_response):
    db_session = SessionLocal()
    try:
        environ['services'] = build_services(db_session)

        path = environ.get("PATH_INFO", "")
        method = environ.get("REQUEST_METHOD", "")

        handler, path_args = None, []
        for route_method, pattern, route_handler in ROUTES:
            if method == route_method and (match := re.match(pattern, path)):
                handler, path_args = route_handler, match.groups()
                break

        if handler:
            status, response_body = handler(environ, *path_args)
        else:
            status, response_body = '404 Not Found', json.dumps({'error': 'Not Found'})

    except Exception as e:
        status, response_body = handle_exception(e)
    finally:
        db_session.close()

    start_response(status, [("Content-Type", "application/json")])
    return [response_body.encode("utf-8")]

# --------------------------------------------------------------------------
## 그룹 핸들러
# --------------------------------------------------------------------------

def list_groups_handler(environ, *args):
    get_context(environ)
    params = get_query_params(environ)
    include_inactive = params.get("include_inactive", "true").lower() != "false"
    groups = environ['services']['groups']
    if params.get("tree", "").lower() == "true":
        return '200 OK', json.dumps({"groups": groups.get_tree(include_inactive)})
    return '200 OK', json.dumps({"groups": groups.list_groups(include_inactive)})

def group_stats_handler(environ, *args):
    get_context(environ)
    return '200 OK', json.dumps(environ['services']['groups'].get_statistics())

def create_group_handler(environ, *args):
    context = get_context(environ)
    data = get_request_data(environ)
    parent_id = data.get('parent_id')
    if parent_id is None:
        if not context.is_super_admin:
            raise PermissionDenied("Only super admins can create root groups.")
    else:
        require_group_exists(context, parent_id, "Parent group")
        require_group_scope(environ, context, parent_id)
    group = environ['services']['groups'].create_group(data.get('name'), data.get('description'), parent_id)
    return '201 Created', json.dumps(group)

def get_group_handler(environ, group_id):
    get_context(environ)
    return '200 OK', json.dumps(environ['services']['groups'].get_group(int(group_id)))

def update_group_handler(environ, group_id):
    context = get_context(environ)
    data = get_request_data(environ)
    require_boolean_fields(data)
    require_group_exists(context, int(group_id))
    require_group_scope(environ, context, int(group_id))
    if 'parent_id' in data:
        if data['parent_id'] is None:
            if not context.is_super_admin:
                raise PermissionDenied("Only super admins can move groups to the root.")
        else:
            require_group_exists(context, data['parent_id'], "Parent group")
            require_group_scope(environ, context, data['parent_id'])
    changes = {k: v for k, v in data.items() if k in GROUP_UPDATE_FIELDS}
    group = environ['services']['groups'].update_group(int(group_id), **changes)
    return '200 OK', json.dumps(group)

def delete_group_handler(environ, group_id):
    context = get_context(environ)
    require_group_exists(context, int(group_id))
    require_group_scope(environ, context, int(group_id))
    environ['services']['groups'].delete_group(int(group_id))
    return '204 No Content', ''

def group_descendants_handler(environ, group_id):
    get_context(environ)
    return '200 OK', json.dumps({"groups": environ['services']['groups'].descendants_of(int(group_id))})

def group_ancestors_handler(environ, group_id):
    get_context(environ)
    return '200 OK', json.dumps({"groups": environ['services']['groups'].ancestors_of(int(group_id))})

# --------------------------------------------------------------------------
## 사용자 핸들러
# --------------------------------------------------------------------------

def manageable_groups_handler(environ, *args):
    context = get_context(environ)
    return '200 OK', json.dumps({"groups": environ['services']['resolver'].manageable_groups(context)})

def list_users_handler(environ, *args):
    context = get_context(environ)
    entity_filter = EntityFilter(**get_query_params(environ))
    page = environ['services']['users'].list_accessible_users(context, entity_filter)
    return '200 OK', json.dumps(page)

def create_user_handler(environ, *args):
    context = get_context(environ)
    data = get_request_data(environ)
    require_boolean_fields(data)
    user = environ['services']['users'].create_user(
        context,
        email=data.get('email'),
        group_id=data.get('group_id'),
        name=data.get('name'),
        is_super_admin=data.get('is_super_admin', False),
        is_group_admin=data.get('is_group_admin', False),
    )
    return '201 Created', json.dumps(user)

def get_user_handler(environ, user_id):
    context = get_context(environ)
    return '200 OK', json.dumps(environ['services']['users'].get_user(context, int(user_id)))

def update_user_handler(environ, user_id):
    context = get_context(environ)
    data = get_request_data(environ)
    require_boolean_fields(data)
    changes = {k: v for k, v in data.items() if k in USER_UPDATE_FIELDS}
    user = environ['services']['users'].update_user(context, int(user_id), **changes)
    return '200 OK', json.dumps(user)

def deactivate_user_handler(environ, user_id):
    context = get_context(environ)
    environ['services']['users'].deactivate_user(context, int(user_id))
    return '204 No Content', ''

def user_roles_handler(environ, user_id):
    context = get_context(environ)
    # 범위 밖 사용자는 404로 숨깁니다.
    environ['services']['users'].get_user(context, int(user_id))
    return '200 OK', json.dumps({"roles": environ['services']['rbac'].get_user_roles(int(user_id))})

def user_permissions_handler(environ, user_id):
    context = get_context(environ)
    environ['services']['users'].get_user(context, int(user_id))
    return '200 OK', json.dumps({"permissions": environ['services']['rbac'].get_user_permissions(int(user_id))})

def assign_role_handler(environ, user_id, role_id):
    context = get_context(environ)
    require_permission(environ, context, "role", "manage")
    environ['services']['rbac'].assign_role_to_user(int(user_id), int(role_id))
    return '204 No Content', ''

def remove_role_handler(environ, user_id, role_id):
    context = get_context(environ)
    require_permission(environ, context, "role", "manage")
    environ['services']['rbac'].remove_role_from_user(int(user_id), int(role_id))
    return '204 No Content', ''

# --------------------------------------------------------------------------
## 역할/권한 핸들러
# --------------------------------------------------------------------------

def list_roles_handler(environ, *args):
    get_context(environ)
    return '200 OK', json.dumps({"roles": environ['services']['rbac'].list_roles()})

def create_role_handler(environ, *args):
    context = get_context(environ)
    require_permission(environ, context, "role", "manage")
    data = get_request_data(environ)
    role = environ['services']['rbac'].create_role(data.get('name'), data.get('description'))
    return '201 Created', json.dumps(role)

def get_role_handler(environ, role_id):
    get_context(environ)
    return '200 OK', json.dumps(environ['services']['rbac'].get_role(int(role_id)))

def update_role_handler(environ, role_id):
    context = get_context(environ)
    require_permission(environ, context, "role", "manage")
    data = get_request_data(environ)
    role = environ['services']['rbac'].update_role(int(role_id), data.get('name'), data.get('description'))
    return '200 OK', json.dumps(role)

def delete_role_handler(environ, role_id):
    context = get_context(environ)
    require_permission(environ, context, "role", "manage")
    environ['services']['rbac'].delete_role(int(role_id))
    return '204 No Content', ''

def add_role_permission_handler(environ, role_id, permission_id):
    context = get_context(environ)
    require_permission(environ, context, "role", "manage")
    environ['services']['rbac'].add_permission_to_role(int(role_id), int(permission_id))
    return '204 No Content', ''

def remove_role_permission_handler(environ, role_id, permission_id):
    context = get_context(environ)
    require_permission(environ, context, "role", "manage")
    environ['services']['rbac'].remove_permission_from_role(int(role_id), int(permission_id))
    return '204 No Content', ''

def list_permissions_handler(environ, *args):
    get_context(environ)
    return '200 OK', json.dumps({"permissions": environ['services']['rbac'].list_permissions()})

def create_permission_handler(environ, *args):
    context = get_context(environ)
    require_permission(environ, context, "role", "manage")
    data = get_request_data(environ)
    permission = environ['services']['rbac'].create_permission(
        data.get('resource'), data.get('action'), data.get('name'), data.get('description')
    )
    return '201 Created', json.dumps(permission)

def update_permission_handler(environ, permission_id):
    context = get_context(environ)
    require_permission(environ, context, "role", "manage")
    data = get_request_data(environ)
    permission = environ['services']['rbac'].update_permission(int(permission_id), data.get('name'), data.get('description'))
    return '200 OK', json.dumps(permission)

def delete_permission_handler(environ, permission_id):
    context = get_context(environ)
    require_permission(environ, context, "role", "manage")
    environ['services']['rbac'].delete_permission(int(permission_id))
    return '204 No Content', ''

ROUTES = [
    ('GET', r'^/v1/groups$', list_groups_handler),
    ('POST', r'^/v1/groups$', create_group_handler),
    ('GET', r'^/v1/groups/stats$', group_stats_handler),
    ('GET', r'^/v1/groups/([0-9]+)$', get_group_handler),
    ('PATCH', r'^/v1/groups/([0-9]+)$', update_group_handler),
    ('DELETE', r'^/v1/groups/([0-9]+)$', delete_group_handler),
    ('GET', r'^/v1/groups/([0-9]+)/descendants$', group_descendants_handler),
    ('GET', r'^/v1/groups/([0-9]+)/ancestors$', group_ancestors_handler),
    ('GET', r'^/v1/users/manageable-groups$', manageable_groups_handler),
    ('GET', r'^/v1/users$', list_users_handler),
    ('POST', r'^/v1/users$', create_user_handler),
    ('GET', r'^/v1/users/([0-9]+)$', get_user_handler),
    ('PATCH', r'^/v1/users/([0-9]+)$', update_user_handler),
    ('DELETE', r'^/v1/users/([0-9]+)$', deactivate_user_handler),
    ('GET', r'^/v1/users/([0-9]+)/roles$', user_roles_handler),
    ('GET', r'^/v1/users/([0-9]+)/permissions$', user_permissions_handler),
    ('PUT', r'^/v1/users/([0-9]+)/roles/([0-9]+)$', assign_role_handler),
    ('DELETE', r'^/v1/users/([0-9]+)/roles/([0-9]+)$', remove_role_handler),
    ('GET', r'^/v1/roles$', list_roles_handler),
    ('POST', r'^/v1/roles$', create_role_handler),
    ('GET', r'^/v1/roles/([0-9]+)$', get_role_handler),
    ('PATCH', r'^/v1/roles/([0-9]+)$', update_role_handler),
    ('DELETE', r'^/v1/roles/([0-9]+)$', delete_role_handler),
    ('PUT', r'^/v1/roles/([0-9]+)/permissions/([0-9]+)$', add_role_permission_handler),
    ('DELETE', r'^/v1/roles/([0-9]+)/permissions/([0-9]+)$', remove_role_permission_handler),
    ('GET', r'^/v1/permissions$', list_permissions_handler),
    ('POST', r'^/v1/permissions$', create_permission_handler),
    ('PATCH', r'^/v1/permissions/([0-9]+)$', update_permission_handler),
    ('DELETE', r'^/v1/permissions/([0-9]+)$', delete_permission_handler),
]

# --------------------------------------------------------------------------
## 서버 실행
# --------------------------------------------------------------------------

def main():
    settings = get_settings()
    configure_logging(settings)
    try:
        with make_server(settings.host, settings.port, application) as httpd:
            logger.info("Serving orgaccess on port %s...", settings.port)
            httpd.serve_forever()
    except OSError:
        logger.exception("Error starting server on %s:%s", settings.host or "0.0.0.0", settings.port)
        raise

if __name__ == "__main__":
    main()
