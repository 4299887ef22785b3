# tests/conftest.py
import pytest
from unittest.mock import MagicMock

from orgaccess.database import models
from orgaccess.repositories.interfaces import IGroupRepository
from orgaccess.utils.group_tree import GroupNode, GroupTree

# (id, name, parent_id, path)
SAMPLE_GROUPS = [
    (1, "TI", None, "TI"),
    (2, "Desenvolvimento", 1, "TI > Desenvolvimento"),
    (3, "Infraestrutura", 1, "TI > Infraestrutura"),
    (4, "RH", None, "RH"),
    (5, "Recrutamento", 4, "RH > Recrutamento"),
    (6, "Financeiro", None, "Financeiro"),
    (7, "Contabilidade", 6, "Financeiro > Contabilidade"),
]


def make_groups():
    """샘플 트리의 그룹 모델을 새로 만듭니다. (테스트마다 독립된 객체)"""
    return [
        models.Group(id=gid, name=name, parent_id=parent_id, path=path, is_active=True)
        for gid, name, parent_id, path in SAMPLE_GROUPS
    ]


def configure_group_repo(repo: MagicMock, groups):
    """
    IGroupRepository 모의 객체가 주어진 그룹 리스트를 저장소처럼 반환하도록 설정합니다.
    find_all/find_by_id/find_by_parent_id는 호출 시점의 리스트 내용을 반영합니다.
    """
    repo.find_all.side_effect = lambda: list(groups)
    repo.find_by_id.side_effect = lambda gid: next((g for g in groups if g.id == gid), None)
    repo.find_by_parent_id.side_effect = lambda pid: [g for g in groups if g.parent_id == pid]
    repo.update_many.side_effect = lambda changed: changed
    return repo


@pytest.fixture
def sample_groups():
    return make_groups()


@pytest.fixture
def mock_group_repo(sample_groups) -> MagicMock:
    """샘플 트리를 담은 IGroupRepository 모의 객체를 생성합니다."""
    return configure_group_repo(MagicMock(spec=IGroupRepository), sample_groups)


@pytest.fixture
def sample_tree() -> GroupTree:
    return GroupTree(
        GroupNode(id=gid, name=name, parent_id=parent_id, path=path)
        for gid, name, parent_id, path in SAMPLE_GROUPS
    )


@pytest.fixture
def make_group_service():
    """원래 샘플 트리로 초기화된 새 GroupHierarchyService를 만드는 팩토리."""
    from orgaccess.services.group_service import GroupHierarchyService

    def factory():
        repo = configure_group_repo(MagicMock(spec=IGroupRepository), make_groups())
        return GroupHierarchyService(repo)
    return factory
