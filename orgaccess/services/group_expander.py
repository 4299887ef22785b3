from typing import Any, Iterable, List

from orgaccess.services.group_service import GroupHierarchyService


class RecursiveGroupExpander:
    """
    기본 그룹 ID 집합을 하위 그룹까지 포함한 집합으로 확장합니다.

    부서(department)처럼 '재귀' 플래그가 있는 소비자가 사용합니다.
    """

    def __init__(self, group_service: GroupHierarchyService):
        self.group_service = group_service

    def expand(self, group_ids: Iterable[int], recursive: bool) -> List[int]:
        """
        Args:
            group_ids: 기본 그룹 ID 목록.
            recursive: True이면 각 그룹의 모든 하위 그룹을 합칩니다.

        Returns:
            중복이 제거된 그룹 ID 리스트. 기본 ID가 먼저, 하위 그룹이 그 뒤에 옵니다.
            저장소에 없는 기본 ID는 하위 그룹 없이 그대로 유지됩니다.
        """
        base = list(dict.fromkeys(group_ids))
        if not recursive:
            return base

        # 확장 전체를 한 번의 스냅샷으로 계산
        tree = self.group_service.snapshot()
        expanded = dict.fromkeys(base)
        for group_id in base:
            if group_id in tree:
                expanded.update(dict.fromkeys(tree.descendant_ids(group_id)))
        return list(expanded)

    def expand_department(self, department: Any) -> List[int]:
        """groups와 is_recursive를 가진 부서 정의(객체 또는 딕셔너리)를 확장합니다."""
        if isinstance(department, dict):
            return self.expand(department.get("groups", []), bool(department.get("is_recursive")))
        return self.expand(getattr(department, "groups", []), bool(getattr(department, "is_recursive", False)))
