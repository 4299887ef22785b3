import logging
import threading
from typing import Any, Dict, List, Optional

from orgaccess.database import models
from orgaccess.repositories.interfaces import IGroupRepository
from orgaccess.utils.group_tree import GroupTree, build_path
from orgaccess.services.exceptions import (
    GroupNotFoundError, ValidationError, CircularReferenceError, ChildGroupsExistError
)

logger = logging.getLogger(__name__)

# update_group에서 "전달되지 않음"과 "None으로 설정"을 구분하기 위한 표식
UNSET = object()


def group_to_dict(group) -> Dict[str, Any]:
    return {
        "id": group.id,
        "name": group.name,
        "description": group.description,
        "parent_id": group.parent_id,
        "is_active": bool(group.is_active),
        "path": group.path,
    }


class GroupHierarchyService:
    """그룹 트리의 변경(생성/수정/삭제)과 탐색을 담당하며, 순환이 없는 트리를 유지합니다."""

    # 검증부터 쓰기까지를 직렬화하는 프로세스 전역 쓰기 잠금.
    # 서비스는 요청마다 새로 생성되므로 클래스 속성으로 공유합니다.
    _write_lock = threading.RLock()

    def __init__(self, group_repo: IGroupRepository):
        """
        GroupHierarchyService를 초기화합니다.

        Args:
            group_repo: 그룹 데이터에 접근하기 위한 리포지토리.
        """
        self.group_repo = group_repo

    # ------------------------------------------------------------------
    # 조회
    # ------------------------------------------------------------------

    def snapshot(self) -> GroupTree:
        """현재 저장소의 모든 그룹(활성/비활성)으로 불변 스냅샷을 만듭니다."""
        return GroupTree.from_models(self.group_repo.find_all())

    def get_group(self, group_id: int) -> Dict[str, Any]:
        """
        ID로 특정 그룹을 조회합니다.

        Raises:
            GroupNotFoundError: 해당 ID의 그룹을 찾을 수 없을 때.
        """
        return group_to_dict(self._get_or_raise(group_id))

    def list_groups(self, include_inactive: bool = True) -> List[Dict[str, Any]]:
        """모든 그룹을 path 순서의 평면 목록으로 조회합니다."""
        groups = self.group_repo.find_all()
        return [group_to_dict(g) for g in groups if include_inactive or g.is_active]

    def get_tree(self, include_inactive: bool = True) -> List[Dict[str, Any]]:
        """루트 그룹부터 children을 중첩한 트리 형태로 조회합니다."""
        return self.snapshot().as_nested(include_inactive=include_inactive)

    def get_statistics(self) -> Dict[str, int]:
        """전체/루트/활성 그룹 수와 트리의 최대 깊이를 계산합니다."""
        tree = self.snapshot()
        nodes = list(tree.nodes.values())
        return {
            "total_groups": len(nodes),
            "root_groups": len(tree.roots()),
            "active_groups": sum(1 for n in nodes if n.is_active),
            "max_depth": max((tree.depth(n.id) for n in nodes), default=0),
        }

    def descendant_ids(self, group_id: int) -> List[int]:
        """
        group_id의 모든 하위 그룹 ID를 반환합니다. (자기 자신 제외)

        Raises:
            GroupNotFoundError: 해당 ID의 그룹을 찾을 수 없을 때.
        """
        tree = self.snapshot()
        if group_id not in tree:
            raise GroupNotFoundError(f"Group with id '{group_id}' not found.", group_id)
        return tree.descendant_ids(group_id)

    def descendants_of(self, group_id: int) -> List[Dict[str, Any]]:
        """하위 그룹 전체를 너비 우선 순서로 조회합니다."""
        tree = self.snapshot()
        if group_id not in tree:
            raise GroupNotFoundError(f"Group with id '{group_id}' not found.", group_id)
        return [self._node_to_dict(tree.get(i)) for i in tree.descendant_ids(group_id)]

    def ancestor_ids(self, group_id: int) -> List[int]:
        tree = self.snapshot()
        if group_id not in tree:
            raise GroupNotFoundError(f"Group with id '{group_id}' not found.", group_id)
        return tree.ancestor_ids(group_id)

    def ancestors_of(self, group_id: int) -> List[Dict[str, Any]]:
        """부모부터 루트까지의 조상 그룹을 가까운 순서로 조회합니다."""
        tree = self.snapshot()
        if group_id not in tree:
            raise GroupNotFoundError(f"Group with id '{group_id}' not found.", group_id)
        return [self._node_to_dict(tree.get(i)) for i in tree.ancestor_ids(group_id)]

    # ------------------------------------------------------------------
    # 변경
    # ------------------------------------------------------------------

    def create_group(self, name: str, description: Optional[str] = None, parent_id: Optional[int] = None) -> Dict[str, Any]:
        """
        새로운 그룹을 활성 상태로 생성합니다.

        Args:
            name: 그룹 이름. 앞뒤 공백은 제거됩니다.
            description: 설명 (선택).
            parent_id: 부모 그룹 ID. 없으면 루트 그룹이 됩니다.

        Returns:
            생성된 그룹의 정보를 담은 딕셔너리.

        Raises:
            ValidationError: 이름이 비어 있을 때.
            GroupNotFoundError: parent_id에 해당하는 그룹이 없을 때.
        """
        clean_name = self._clean_name(name)
        with self._write_lock:
            parent_path = None
            if parent_id is not None:
                parent = self._get_or_raise(parent_id, "Parent group")
                parent_path = parent.path

            new_group = models.Group(
                name=clean_name,
                description=description,
                parent_id=parent_id,
                is_active=True,
                path=build_path(clean_name, parent_path),
            )
            created = self.group_repo.create(new_group)
        logger.info("Created group id=%s path=%r", created.id, created.path)
        return group_to_dict(created)

    def update_group(
        self,
        group_id: int,
        name: Any = UNSET,
        description: Any = UNSET,
        parent_id: Any = UNSET,
        is_active: Any = UNSET,
    ) -> Dict[str, Any]:
        """
        그룹의 이름, 설명, 부모, 활성 여부를 변경합니다.

        이름이나 부모가 바뀌면 그룹 자신과 모든 하위 그룹의 path를 다시 계산하여
        하나의 트랜잭션으로 저장합니다. parent_id=None은 루트로 이동을 의미합니다.

        Raises:
            GroupNotFoundError: 그룹 또는 새 부모 그룹을 찾을 수 없을 때.
            ValidationError: 새 이름이 비어 있을 때.
            CircularReferenceError: 새 부모가 자기 자신이거나 하위 그룹일 때.
        """
        if name is not UNSET:
            name = self._clean_name(name)

        with self._write_lock:
            group = self._get_or_raise(group_id)
            tree = self.snapshot()

            if parent_id is not UNSET and parent_id is not None:
                self._get_or_raise(parent_id, "Parent group")
                if parent_id == group_id or parent_id in tree.descendant_ids(group_id):
                    logger.warning("Rejected reparent of group %s under %s (circular reference)", group_id, parent_id)
                    raise CircularReferenceError(
                        f"Cannot set parent of group '{group_id}' to '{parent_id}': "
                        "a group cannot be moved under itself or one of its descendants.",
                        group_id,
                    )

            path_changed = False
            if name is not UNSET and name != group.name:
                group.name = name
                path_changed = True
            if description is not UNSET:
                group.description = description
            if parent_id is not UNSET and parent_id != group.parent_id:
                group.parent_id = parent_id
                path_changed = True
            if is_active is not UNSET:
                group.is_active = bool(is_active)

            changed = [group]
            if path_changed:
                changed.extend(self._recompute_paths(group, tree))
            self.group_repo.update_many(changed)

        logger.info("Updated group id=%s (%d rows written)", group_id, len(changed))
        return group_to_dict(group)

    def delete_group(self, group_id: int) -> bool:
        """
        그룹을 삭제합니다. 하위 그룹(활성/비활성 불문)이 없을 때만 가능합니다.

        Raises:
            GroupNotFoundError: 해당 ID의 그룹을 찾을 수 없을 때.
            ChildGroupsExistError: 하위 그룹이 하나 이상 존재할 때.
        """
        with self._write_lock:
            group = self._get_or_raise(group_id)
            children = self.group_repo.find_by_parent_id(group_id)
            if children:
                logger.warning("Rejected delete of group %s: %d child group(s)", group_id, len(children))
                raise ChildGroupsExistError(
                    f"Group '{group_id}' has child groups. Delete or move child groups first.",
                    group_id,
                )
            self.group_repo.delete(group)
        logger.info("Deleted group id=%s", group_id)
        return True

    # ------------------------------------------------------------------
    # 내부 헬퍼
    # ------------------------------------------------------------------

    def _get_or_raise(self, group_id: int, label: str = "Group") -> models.Group:
        group = self.group_repo.find_by_id(group_id)
        if not group:
            raise GroupNotFoundError(f"{label} with id '{group_id}' not found.", group_id)
        return group

    def _recompute_paths(self, group: models.Group, tree: GroupTree) -> List[models.Group]:
        """
        group의 path를 새 부모 기준으로 다시 계산하고, 하위 그룹에 전파합니다.

        group 객체는 이미 새 이름/부모가 반영된 상태여야 합니다.
        변경된 하위 그룹 모델 목록을 반환합니다. (group 자신 제외)
        """
        parent_path = None
        if group.parent_id is not None:
            parent_path = self.group_repo.find_by_id(group.parent_id).path
        group.path = build_path(group.name, parent_path)

        new_paths = {group.id: group.path}
        changed: List[models.Group] = []
        # descendant_ids는 너비 우선 순서이므로 부모의 새 path가 항상 먼저 계산됩니다.
        for descendant_id in tree.descendant_ids(group.id):
            descendant = self.group_repo.find_by_id(descendant_id)
            if descendant is None:
                continue
            descendant.path = build_path(descendant.name, new_paths.get(descendant.parent_id))
            new_paths[descendant.id] = descendant.path
            changed.append(descendant)
        return changed

    @staticmethod
    def _clean_name(name: Optional[str]) -> str:
        clean = (name or "").strip()
        if not clean:
            raise ValidationError("Group name must not be empty.")
        return clean

    @staticmethod
    def _node_to_dict(node) -> Dict[str, Any]:
        return {
            "id": node.id,
            "name": node.name,
            "description": node.description,
            "parent_id": node.parent_id,
            "is_active": node.is_active,
            "path": node.path,
        }
