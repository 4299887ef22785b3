import logging
from typing import Any, Dict, Optional

from orgaccess.database import models
from orgaccess.repositories.interfaces import IUserRepository
from orgaccess.services.accessible_entities import AccessibleEntityResolver, EntityFilter
from orgaccess.services.manageable_groups import ManageableGroupsResolver
from orgaccess.services.permission_context import PermissionContext
from orgaccess.services.exceptions import (
    UserNotFoundError, GroupNotFoundError, ValidationError, PermissionDenied
)

logger = logging.getLogger(__name__)


def user_to_dict(user: models.User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "is_active": bool(user.is_active),
        "is_super_admin": bool(user.is_super_admin),
        "is_group_admin": bool(user.is_group_admin),
        "group_id": user.group_id,
    }


class UserService:
    """관리 범위 안에서 사용자를 생성/수정/비활성화하고, 범위가 적용된 사용자 목록을 제공합니다."""

    def __init__(self, user_repo: IUserRepository, resolver: Optional[ManageableGroupsResolver] = None):
        """
        UserService를 초기화합니다.

        Args:
            user_repo: 사용자 데이터에 접근하기 위한 리포지토리.
            resolver: 관리 범위 계산기. 생략하면 기본 구현을 사용합니다.
        """
        self.user_repo = user_repo
        self.resolver = resolver or ManageableGroupsResolver()
        self.entity_resolver = AccessibleEntityResolver(user_repo, self.resolver)

    def get_user(self, context: PermissionContext, user_id: int) -> Dict[str, Any]:
        """
        호출자의 조회 범위 안에 있는 사용자를 조회합니다.

        Raises:
            UserNotFoundError: 사용자가 없거나 범위 밖에 있을 때. (존재 여부를 드러내지 않음)
        """
        user = self._get_or_raise(user_id)
        if not self.resolver.can_view_user(context, user):
            logger.debug("User %s requested user %s outside of scope", context.user_id, user_id)
            raise UserNotFoundError(f"User with id '{user_id}' not found.", user_id)
        return user_to_dict(user)

    def list_accessible_users(self, context: PermissionContext, entity_filter: Optional[EntityFilter] = None) -> Dict[str, Any]:
        """호출자의 관리 범위로 제한된 사용자 페이지를 조회합니다."""
        page = self.entity_resolver.list(context, entity_filter)
        return {"items": [user_to_dict(u) for u in page["items"]], "total": page["total"]}

    def create_user(
        self,
        context: PermissionContext,
        email: str,
        group_id: int,
        name: Optional[str] = None,
        is_super_admin: bool = False,
        is_group_admin: bool = False,
    ) -> Dict[str, Any]:
        """
        관리 범위 안의 그룹에 새 사용자를 생성합니다.

        Raises:
            ValidationError: 이메일이 비어 있거나 이미 사용 중일 때.
            GroupNotFoundError: group_id에 해당하는 그룹이 없을 때.
            PermissionDenied: 호출자가 대상 그룹을 관리할 수 없거나,
                슈퍼 관리자가 아닌데 슈퍼 관리자를 만들려고 할 때.
        """
        email = (email or "").strip()
        if not email:
            raise ValidationError("Email must not be empty.")
        if group_id not in context.hierarchy:
            raise GroupNotFoundError(f"Group with id '{group_id}' not found.", group_id)
        if not self.resolver.can_manage_group(context, group_id):
            raise PermissionDenied("You can only create users in groups you manage.", group_id)
        if is_super_admin and not context.is_super_admin:
            raise PermissionDenied("Only super admins can grant super admin.")
        if self.user_repo.find_by_email(email):
            raise ValidationError(f"Email '{email}' is already in use.")

        created = self.user_repo.create(models.User(
            email=email,
            name=name,
            group_id=group_id,
            is_active=True,
            is_super_admin=bool(is_super_admin),
            is_group_admin=bool(is_group_admin),
        ))
        logger.info("User %s created user %s in group %s", context.user_id, created.id, group_id)
        return user_to_dict(created)

    def update_user(
        self,
        context: PermissionContext,
        user_id: int,
        name: Optional[str] = None,
        email: Optional[str] = None,
        group_id: Optional[int] = None,
        is_group_admin: Optional[bool] = None,
        is_super_admin: Optional[bool] = None,
        is_active: Optional[bool] = None,
    ) -> Dict[str, Any]:
        """
        관리 범위 안의 다른 사용자를 수정합니다.

        Raises:
            UserNotFoundError: 대상 사용자를 찾을 수 없을 때.
            PermissionDenied: 수정 권한이 없거나, 관리하지 않는 그룹으로 옮기려 할 때.
        """
        user = self._get_or_raise(user_id)
        if not self.resolver.can_edit_user(context, user):
            raise PermissionDenied("You are not allowed to edit this user.", user_id)
        move_group = group_id is not None and group_id != user.group_id
        if move_group:
            if group_id not in context.hierarchy:
                raise GroupNotFoundError(f"Group with id '{group_id}' not found.", group_id)
            if not self.resolver.can_change_user_group(context, user, group_id):
                raise PermissionDenied("You can only assign users to groups you manage.", group_id)
        if is_super_admin is not None and bool(is_super_admin) != bool(user.is_super_admin):
            if not context.is_super_admin:
                raise PermissionDenied("Only super admins can change super admin status.", user_id)
        if email is not None:
            email = email.strip()
            existing = self.user_repo.find_by_email(email)
            if not email or (existing and existing.id != user_id):
                raise ValidationError(f"Email '{email}' is invalid or already in use.", user_id)

        # 모든 검사를 통과한 뒤에만 변경을 반영합니다.
        if move_group:
            user.group_id = group_id
        if is_super_admin is not None:
            user.is_super_admin = bool(is_super_admin)
        if email is not None:
            user.email = email
        if name is not None:
            user.name = name
        if is_group_admin is not None:
            user.is_group_admin = bool(is_group_admin)
        if is_active is not None:
            user.is_active = bool(is_active)
        return user_to_dict(self.user_repo.update(user))

    def deactivate_user(self, context: PermissionContext, user_id: int) -> bool:
        """사용자를 비활성화(소프트 삭제)합니다."""
        user = self._get_or_raise(user_id)
        if not self.resolver.can_edit_user(context, user):
            raise PermissionDenied("You are not allowed to deactivate this user.", user_id)
        user.is_active = False
        self.user_repo.update(user)
        logger.info("User %s deactivated user %s", context.user_id, user_id)
        return True

    def _get_or_raise(self, user_id: int) -> models.User:
        user = self.user_repo.find_by_id(user_id)
        if not user:
            raise UserNotFoundError(f"User with id '{user_id}' not found.", user_id)
        return user
