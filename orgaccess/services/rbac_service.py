import logging
from typing import Any, Dict, List, Optional

from orgaccess.database import models
from orgaccess.repositories.interfaces import (
    IRoleRepository, IPermissionRepository, IUserRoleRepository
)
from orgaccess.services.exceptions import (
    RoleNotFoundError, PermissionNotFoundError, ValidationError,
    AlreadyAssignedError, NotAssignedError
)

logger = logging.getLogger(__name__)


def role_to_dict(role: models.Role) -> Dict[str, Any]:
    return {"id": role.id, "name": role.name, "description": role.description}


def permission_to_dict(permission: models.Permission) -> Dict[str, Any]:
    return {
        "id": permission.id,
        "name": permission.name,
        "resource": permission.resource,
        "action": permission.action,
        "description": permission.description,
    }


class RBACService:
    """역할/권한의 생명주기, 사용자-역할 할당, 권한 검사를 제공합니다."""

    def __init__(self, user_role_repo: IUserRoleRepository, role_repo: IRoleRepository, permission_repo: IPermissionRepository):
        """
        RBACService를 초기화합니다.

        Args:
            user_role_repo: 사용자-역할 연관 데이터에 접근하기 위한 리포지토리.
            role_repo: 역할 데이터에 접근하기 위한 리포지토리.
            permission_repo: 권한 데이터에 접근하기 위한 리포지토리.
        """
        self.user_role_repo = user_role_repo
        self.role_repo = role_repo
        self.permission_repo = permission_repo

    # --- 사용자-역할 할당 ---

    def assign_role_to_user(self, user_id: int, role_id: int) -> bool:
        """
        사용자에게 역할을 부여합니다.

        Raises:
            RoleNotFoundError: 해당 ID의 역할을 찾을 수 없을 때.
            AlreadyAssignedError: 사용자가 이미 해당 역할을 가지고 있을 때.
        """
        self._get_role_or_raise(role_id)
        if self.user_role_repo.find_by_user_and_role(user_id, role_id):
            raise AlreadyAssignedError(f"User '{user_id}' already has role '{role_id}'.", role_id)
        self.user_role_repo.create(models.UserRole(user_id=user_id, role_id=role_id))
        logger.info("Assigned role %s to user %s", role_id, user_id)
        return True

    def remove_role_from_user(self, user_id: int, role_id: int) -> bool:
        """
        사용자의 역할을 회수합니다.

        Raises:
            NotAssignedError: 사용자가 해당 역할을 가지고 있지 않을 때.
        """
        assignment = self.user_role_repo.find_by_user_and_role(user_id, role_id)
        if not assignment:
            raise NotAssignedError(f"User '{user_id}' does not have role '{role_id}'.", role_id)
        self.user_role_repo.delete(assignment)
        logger.info("Removed role %s from user %s", role_id, user_id)
        return True

    def get_user_roles(self, user_id: int) -> List[Dict[str, Any]]:
        return [role_to_dict(r) for r in self._user_role_models(user_id)]

    def get_user_permissions(self, user_id: int) -> List[str]:
        """사용자가 가진 모든 역할의 권한 합집합을 'resource:action' 문자열로 반환합니다. (정렬, 중복 제거)"""
        role_ids = [r.id for r in self._user_role_models(user_id)]
        if not role_ids:
            return []
        permissions = self.permission_repo.find_by_role_ids(role_ids)
        return sorted({f"{p.resource}:{p.action}" for p in permissions})

    def has_permission(self, user_id: int, resource: str, action: str) -> bool:
        """'resource:action'이 사용자의 권한 집합에 정확히 포함되는지 확인합니다. (와일드카드 없음)"""
        return f"{resource}:{action}" in set(self.get_user_permissions(user_id))

    # --- 역할 관리 ---

    def list_roles(self) -> List[Dict[str, Any]]:
        """모든 역할과 각 역할의 권한 문자열 목록을 조회합니다."""
        roles = []
        for role in self.role_repo.find_all():
            data = role_to_dict(role)
            data["permissions"] = sorted(
                f"{p.resource}:{p.action}" for p in self.permission_repo.find_by_role_ids([role.id])
            )
            roles.append(data)
        return roles

    def get_role(self, role_id: int) -> Dict[str, Any]:
        role = self._get_role_or_raise(role_id)
        data = role_to_dict(role)
        data["permissions"] = sorted(
            f"{p.resource}:{p.action}" for p in self.permission_repo.find_by_role_ids([role.id])
        )
        return data

    def create_role(self, name: str, description: Optional[str] = None) -> Dict[str, Any]:
        """
        새로운 역할을 생성합니다.

        Raises:
            ValidationError: 이름이 비어 있거나 같은 이름의 역할이 이미 존재할 때.
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Role name must not be empty.")
        if self.role_repo.find_by_name(name):
            raise ValidationError("Role already exists")
        created = self.role_repo.create(models.Role(name=name, description=description))
        logger.info("Created role id=%s name=%r", created.id, created.name)
        return role_to_dict(created)

    def update_role(self, role_id: int, name: Optional[str] = None, description: Optional[str] = None) -> Dict[str, Any]:
        """
        역할의 이름/설명을 변경합니다.

        Raises:
            RoleNotFoundError: 해당 ID의 역할을 찾을 수 없을 때.
            ValidationError: 새 이름이 비어 있거나, 다른 역할이 이미 사용 중인 이름일 때.
        """
        role = self._get_role_or_raise(role_id)
        if name is not None:
            name = name.strip()
            if not name:
                raise ValidationError("Role name must not be empty.", role_id)
            existing = self.role_repo.find_by_name(name)
            if existing and existing.id != role_id:
                raise ValidationError("Role name already exists", role_id)
            role.name = name
        if description is not None:
            role.description = description
        return role_to_dict(self.role_repo.update(role))

    def delete_role(self, role_id: int) -> bool:
        """
        역할을 삭제합니다. 연결된 사용자 할당과 권한 연결은 저장소에서 함께 삭제됩니다.

        Raises:
            RoleNotFoundError: 해당 ID의 역할을 찾을 수 없을 때.
        """
        role = self._get_role_or_raise(role_id)
        self.role_repo.delete(role)
        logger.info("Deleted role id=%s", role_id)
        return True

    def add_permission_to_role(self, role_id: int, permission_id: int) -> bool:
        """
        Raises:
            RoleNotFoundError: 역할을 찾을 수 없을 때.
            PermissionNotFoundError: 권한을 찾을 수 없을 때.
        """
        self._get_role_or_raise(role_id)
        self._get_permission_or_raise(permission_id)
        self.role_repo.add_permission(role_id, permission_id)
        return True

    def remove_permission_from_role(self, role_id: int, permission_id: int) -> bool:
        self._get_role_or_raise(role_id)
        self.role_repo.remove_permission(role_id, permission_id)
        return True

    # --- 권한 관리 ---

    def list_permissions(self) -> List[Dict[str, Any]]:
        return [permission_to_dict(p) for p in self.permission_repo.find_all()]

    def create_permission(self, resource: str, action: str, name: Optional[str] = None, description: Optional[str] = None) -> Dict[str, Any]:
        """
        새로운 (resource, action) 권한을 생성합니다. name을 생략하면 'resource:action'이 됩니다.

        Raises:
            ValidationError: resource/action이 비어 있거나, 이름 또는 (resource, action) 쌍이 중복될 때.
        """
        resource = (resource or "").strip()
        action = (action or "").strip()
        if not resource or not action:
            raise ValidationError("Permission resource and action must not be empty.")
        name = (name or f"{resource}:{action}").strip()
        if self.permission_repo.find_by_name(name) or self.permission_repo.find_by_resource_action(resource, action):
            raise ValidationError("Permission already exists")
        created = self.permission_repo.create(
            models.Permission(name=name, resource=resource, action=action, description=description)
        )
        return permission_to_dict(created)

    def update_permission(self, permission_id: int, name: Optional[str] = None, description: Optional[str] = None) -> Dict[str, Any]:
        permission = self._get_permission_or_raise(permission_id)
        if name is not None:
            name = name.strip()
            if not name:
                raise ValidationError("Permission name must not be empty.", permission_id)
            existing = self.permission_repo.find_by_name(name)
            if existing and existing.id != permission_id:
                raise ValidationError("Permission name already exists", permission_id)
            permission.name = name
        if description is not None:
            permission.description = description
        return permission_to_dict(self.permission_repo.update(permission))

    def delete_permission(self, permission_id: int) -> bool:
        permission = self._get_permission_or_raise(permission_id)
        self.permission_repo.delete(permission)
        return True

    # --- 내부 헬퍼 ---

    def _user_role_models(self, user_id: int) -> List[models.Role]:
        role_ids = [ur.role_id for ur in self.user_role_repo.find_by_user_id(user_id)]
        if not role_ids:
            return []
        return self.role_repo.find_by_ids(role_ids)

    def _get_role_or_raise(self, role_id: int) -> models.Role:
        role = self.role_repo.find_by_id(role_id)
        if not role:
            raise RoleNotFoundError(f"Role with id '{role_id}' not found.", role_id)
        return role

    def _get_permission_or_raise(self, permission_id: int) -> models.Permission:
        permission = self.permission_repo.find_by_id(permission_id)
        if not permission:
            raise PermissionNotFoundError(f"Permission with id '{permission_id}' not found.", permission_id)
        return permission
