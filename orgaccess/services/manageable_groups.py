"""
행위자의 관리 범위(manageable groups) 계산.

- 슈퍼 관리자: 계층의 모든 그룹
- 그룹 관리자: 홈 그룹과 그 하위 그룹 전체
- 일반 사용자: 홈 그룹만 (조회 범위일 뿐, 관리 권한은 없음)

모든 계산은 컨텍스트의 스냅샷만 사용하며 부수 효과가 없습니다. 결과를 캐시하지 않습니다.
"""
from typing import Any, Dict, List, Optional

from orgaccess.services.permission_context import PermissionContext


class ManageableGroupsResolver:

    def resolve(self, context: PermissionContext) -> List[int]:
        """관리 범위에 속한 그룹 ID를 순서대로 반환합니다. 관리자라면 홈 그룹이 항상 포함됩니다."""
        hierarchy = context.hierarchy
        if context.is_super_admin:
            ids = hierarchy.ids()
            # 홈 그룹을 맨 앞에 둡니다.
            return [context.home_group_id] + [i for i in ids if i != context.home_group_id]
        if context.is_group_admin:
            return hierarchy.subtree_ids(context.home_group_id)
        return [context.home_group_id]

    def can_manage_group(self, context: PermissionContext, group_id: int) -> bool:
        """사용자 생성/수정 등 관리 작업을 group_id에서 할 수 있는지 확인합니다."""
        if context.is_super_admin:
            return group_id in context.hierarchy
        if context.is_group_admin:
            return group_id in self.resolve(context)
        return False

    def manageable_groups(self, context: PermissionContext) -> List[Dict[str, Any]]:
        """관리 가능한 그룹의 요약 정보를 반환합니다. 일반 사용자는 빈 목록입니다."""
        if not context.is_admin:
            return []
        hierarchy = context.hierarchy
        result = []
        for group_id in self.resolve(context):
            node = hierarchy.get(group_id)
            result.append({
                "group_id": node.id,
                "group_name": node.name,
                "path": node.path,
                "is_root_group": node.parent_id is None,
                "is_active": node.is_active,
                "can_manage": True,
            })
        return result

    def can_view_user(self, context: PermissionContext, target: Any) -> bool:
        """자기 자신, 슈퍼 관리자, 또는 대상의 홈 그룹이 조회 범위 안일 때만 볼 수 있습니다."""
        if context.user_id == target.id or context.is_super_admin:
            return True
        return target.group_id is not None and target.group_id in self.resolve(context)

    def can_edit_user(self, context: PermissionContext, target: Any) -> bool:
        """
        다른 사용자를 수정할 수 있는지 확인합니다.

        target은 id, is_super_admin, group_id 속성을 가진 객체여야 합니다.
        자기 자신은 수정할 수 없고, 그룹 관리자는 슈퍼 관리자를 수정할 수 없습니다.
        """
        if context.user_id == target.id:
            return False
        if context.is_super_admin:
            return True
        if target.is_super_admin:
            return False
        if context.is_group_admin and target.group_id is not None:
            return target.group_id in self.resolve(context)
        return False

    def can_change_user_group(self, context: PermissionContext, target: Any, new_group_id: Optional[int]) -> bool:
        if not self.can_edit_user(context, target):
            return False
        if context.is_super_admin:
            return True
        if context.is_group_admin:
            return new_group_id in self.resolve(context)
        return False
