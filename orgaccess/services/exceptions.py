# orgaccess/services/exceptions.py
from typing import Any, Optional


class OrgAccessError(Exception):
    """엔진이 발생시키는 모든 예외의 기반 클래스. kind와 문제가 된 ID를 함께 전달합니다."""
    kind = "error"

    def __init__(self, message: str, entity_id: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.entity_id = entity_id

    def to_dict(self):
        detail = {"error": self.message, "kind": self.kind}
        if self.entity_id is not None:
            detail["id"] = self.entity_id
        return detail

# --- Not Found Exceptions ---
class NotFoundError(OrgAccessError):
    """참조한 그룹/역할/권한/사용자가 존재하지 않을 때"""
    kind = "not_found"

class GroupNotFoundError(NotFoundError):
    """그룹을 찾을 수 없을 때"""
    pass

class RoleNotFoundError(NotFoundError):
    """역할을 찾을 수 없을 때"""
    pass

class PermissionNotFoundError(NotFoundError):
    """권한을 찾을 수 없을 때"""
    pass

class UserNotFoundError(NotFoundError):
    """사용자를 찾을 수 없을 때"""
    pass

# --- Validation / Hierarchy Exceptions ---
class ValidationError(OrgAccessError):
    """빈 값, 잘못된 필드, 중복된 역할 이름 등"""
    kind = "validation_error"

class CircularReferenceError(OrgAccessError):
    """새 부모가 그룹 자신이거나 그 하위 그룹일 때"""
    kind = "circular_reference"

class ChildGroupsExistError(OrgAccessError):
    """하위 그룹이 남아 있는 그룹을 삭제하려고 할 때"""
    kind = "child_groups_exist"

# --- Assignment Exceptions ---
class AlreadyAssignedError(OrgAccessError):
    """사용자가 이미 해당 역할을 가지고 있을 때"""
    kind = "already_assigned"

class NotAssignedError(OrgAccessError):
    """사용자가 해당 역할을 가지고 있지 않을 때"""
    kind = "not_assigned"

# --- Authorization Exceptions ---
class PermissionDenied(OrgAccessError):
    """호출자가 관리 범위 또는 권한 검사를 통과하지 못했을 때 (엔진의 호출자가 발생시킴)"""
    kind = "permission_denied"
