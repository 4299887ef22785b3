from dataclasses import dataclass
from typing import Optional

from orgaccess.repositories.interfaces import IUserRepository
from orgaccess.services.group_service import GroupHierarchyService
from orgaccess.services.exceptions import GroupNotFoundError, UserNotFoundError
from orgaccess.utils.group_tree import GroupTree


@dataclass(frozen=True)
class PermissionContext:
    """
    한 요청에서 사용하는 행위자의 불변 권한 컨텍스트입니다.

    hierarchy는 생성 시점의 스냅샷이며, 이후 계층이 바뀌어도 갱신되지 않습니다.
    최신 상태가 필요하면 PermissionContextFactory로 새로 만들어야 합니다.
    """
    user_id: int
    is_super_admin: bool
    is_group_admin: bool
    home_group_id: int
    hierarchy: GroupTree

    @property
    def is_admin(self) -> bool:
        return self.is_super_admin or self.is_group_admin


class PermissionContextFactory:
    """PermissionContext를 만드는 유일한 경로."""

    def __init__(self, group_service: GroupHierarchyService, user_repo: Optional[IUserRepository] = None):
        self.group_service = group_service
        self.user_repo = user_repo

    def create(self, user_id: int, is_super_admin: bool, is_group_admin: bool, home_group_id: Optional[int]) -> PermissionContext:
        """
        신원 플래그와 홈 그룹으로 컨텍스트를 만듭니다. 저장소에 쓰지 않습니다.

        Raises:
            GroupNotFoundError: home_group_id가 없거나 존재하지 않는 그룹일 때.
        """
        hierarchy = self.group_service.snapshot()
        if home_group_id is None or home_group_id not in hierarchy:
            raise GroupNotFoundError(
                f"Home group '{home_group_id}' of user '{user_id}' not found.", home_group_id
            )
        return PermissionContext(
            user_id=user_id,
            is_super_admin=bool(is_super_admin),
            is_group_admin=bool(is_group_admin),
            home_group_id=home_group_id,
            hierarchy=hierarchy,
        )

    def for_user(self, user_id: int) -> PermissionContext:
        """
        UserStore에서 사용자 신원을 읽어 컨텍스트를 만듭니다.

        Raises:
            UserNotFoundError: 사용자를 찾을 수 없을 때.
            GroupNotFoundError: 사용자의 홈 그룹이 없을 때.
        """
        user = self.user_repo.find_by_id(user_id) if self.user_repo else None
        if not user:
            raise UserNotFoundError(f"User with id '{user_id}' not found.", user_id)
        return self.create(user.id, user.is_super_admin, user.is_group_admin, user.group_id)
