# orgaccess/utils/group_tree.py
"""
그룹 계층 구조의 불변 스냅샷과 탐색 알고리즘.

모든 탐색은 명시적인 큐/스택과 방문 집합(visited set)을 사용하는 반복 방식입니다.
정상적인 트리는 순환이 없지만, 손상된 저장소에서도 반드시 종료되어야 합니다.
"""
from collections import deque
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

PATH_SEPARATOR = " > "


@dataclass(frozen=True)
class GroupNode:
    """스냅샷에 담기는 그룹 노드 (ORM 세션과 분리된 값 객체)."""
    id: int
    name: str
    parent_id: Optional[int] = None
    is_active: bool = True
    path: str = ""
    description: Optional[str] = None

    @classmethod
    def from_model(cls, group) -> "GroupNode":
        return cls(
            id=group.id,
            name=group.name,
            parent_id=group.parent_id,
            is_active=bool(group.is_active),
            path=group.path or group.name,
            description=group.description,
        )


def build_path(name: str, parent_path: Optional[str] = None) -> str:
    """부모 경로에 이름을 이어 붙여 materialized path를 만듭니다."""
    if not parent_path:
        return name
    return f"{parent_path}{PATH_SEPARATOR}{name}"


class GroupTree:
    """
    특정 시점의 그룹 계층 스냅샷입니다.

    생성 이후에는 변경되지 않습니다. 계층이 바뀌면 새 스냅샷을 만들어야 합니다.
    노드 순서는 입력 순서를 그대로 유지합니다.
    """

    def __init__(self, nodes: Iterable[GroupNode]):
        by_id: Dict[int, GroupNode] = {}
        children: Dict[int, List[int]] = {}
        for node in nodes:
            by_id[node.id] = node
        for node in by_id.values():
            if node.parent_id is not None:
                children.setdefault(node.parent_id, []).append(node.id)

        self._nodes = MappingProxyType(by_id)
        self._children = MappingProxyType({k: tuple(v) for k, v in children.items()})

    @classmethod
    def from_models(cls, groups) -> "GroupTree":
        return cls(GroupNode.from_model(g) for g in groups)

    def __contains__(self, group_id) -> bool:
        return group_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    @property
    def nodes(self) -> Mapping[int, GroupNode]:
        return self._nodes

    def get(self, group_id: int) -> Optional[GroupNode]:
        return self._nodes.get(group_id)

    def ids(self) -> List[int]:
        return list(self._nodes.keys())

    def children_ids(self, group_id: int) -> Tuple[int, ...]:
        return self._children.get(group_id, ())

    def roots(self) -> List[GroupNode]:
        """부모가 없거나 부모가 스냅샷에 없는 노드를 루트로 취급합니다."""
        return [n for n in self._nodes.values() if n.parent_id is None or n.parent_id not in self._nodes]

    def descendant_ids(self, group_id: int) -> List[int]:
        """
        group_id 아래로 도달 가능한 모든 그룹의 ID를 너비 우선 순서로 반환합니다.

        group_id 자신은 포함하지 않습니다. 손상된 데이터로 인해 자기 자신에게
        되돌아오는 경로가 있어도 방문 집합 덕분에 결과에 포함되지 않고 종료됩니다.
        """
        result: List[int] = []
        visited = {group_id}
        frontier = deque(self.children_ids(group_id))
        while frontier:
            current = frontier.popleft()
            if current in visited:
                continue
            visited.add(current)
            result.append(current)
            frontier.extend(self.children_ids(current))
        return result

    def ancestor_ids(self, group_id: int) -> List[int]:
        """부모부터 루트까지의 ID 체인을 반환합니다. (가까운 순서, 자기 자신 제외)"""
        result: List[int] = []
        visited = {group_id}
        node = self._nodes.get(group_id)
        while node is not None and node.parent_id is not None:
            parent_id = node.parent_id
            if parent_id in visited:
                break
            visited.add(parent_id)
            parent = self._nodes.get(parent_id)
            if parent is None:
                break
            result.append(parent_id)
            node = parent
        return result

    def subtree_ids(self, group_id: int) -> List[int]:
        """group_id 자신과 모든 하위 그룹의 ID."""
        return [group_id] + self.descendant_ids(group_id)

    def depth(self, group_id: int) -> int:
        """루트의 깊이는 1입니다."""
        return len(self.ancestor_ids(group_id)) + 1

    def compute_path(self, group_id: int) -> str:
        """저장된 path 대신 조상 이름으로부터 경로를 다시 계산합니다."""
        node = self._nodes[group_id]
        names = [self._nodes[a].name for a in reversed(self.ancestor_ids(group_id))]
        names.append(node.name)
        return PATH_SEPARATOR.join(names)

    def as_nested(self, include_inactive: bool = True) -> List[Dict[str, Any]]:
        """
        children 목록을 포함한 중첩 딕셔너리 트리로 변환합니다.

        비활성 그룹을 제외하면 그 하위 그룹도 함께 제외됩니다.
        """
        def to_dict(node: GroupNode, visited: set) -> Dict[str, Any]:
            visited.add(node.id)
            children = []
            for child_id in self.children_ids(node.id):
                child = self._nodes[child_id]
                if child_id in visited or (not include_inactive and not child.is_active):
                    continue
                children.append(to_dict(child, visited))
            return {
                "id": node.id,
                "name": node.name,
                "description": node.description,
                "parent_id": node.parent_id,
                "is_active": node.is_active,
                "path": node.path,
                "children": children,
            }

        visited: set = set()
        return [
            to_dict(root, visited)
            for root in self.roots()
            if include_inactive or root.is_active
        ]
