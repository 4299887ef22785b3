# tests/services/test_accessible_entities.py
import pytest
from unittest.mock import MagicMock, patch
from pydantic import ValidationError as PydanticValidationError

from orgaccess.config import Settings
from orgaccess.services.accessible_entities import AccessibleEntityResolver, EntityFilter
from orgaccess.services.permission_context import PermissionContext
from orgaccess.repositories.interfaces import IScopedEntityRepository


@pytest.fixture
def mock_entity_repo() -> MagicMock:
    """IScopedEntityRepository에 대한 모의 객체를 생성합니다."""
    repo = MagicMock(spec=IScopedEntityRepository)
    repo.max_page_size = 100
    repo.search.return_value = (["a", "b"], 12)
    return repo


@pytest.fixture
def entity_resolver(mock_entity_repo: MagicMock) -> AccessibleEntityResolver:
    return AccessibleEntityResolver(mock_entity_repo)


def context_for(tree, is_super_admin=False, is_group_admin=False, home_group_id=1):
    return PermissionContext(
        user_id=1,
        is_super_admin=is_super_admin,
        is_group_admin=is_group_admin,
        home_group_id=home_group_id,
        hierarchy=tree,
    )


def test_out_of_scope_group_returns_empty_page(entity_resolver, mock_entity_repo, sample_tree):
    """시나리오: 홈 그룹이 5인 일반 사용자가 group_id=1을 요청하면 빈 페이지를 받습니다."""
    context = context_for(sample_tree, home_group_id=5)

    result = entity_resolver.list(context, EntityFilter(group_id=1))

    assert result == {"items": [], "total": 0}
    mock_entity_repo.search.assert_not_called()


def test_in_scope_group_narrows_query(entity_resolver, mock_entity_repo, sample_tree):
    context = context_for(sample_tree, is_group_admin=True, home_group_id=1)

    result = entity_resolver.list(context, EntityFilter(group_id=3, search="ana", status="ACTIVE", limit=10, offset=20))

    assert result == {"items": ["a", "b"], "total": 12}
    mock_entity_repo.search.assert_called_once_with([3], search="ana", status="ACTIVE", limit=10, offset=20)


def test_no_group_filter_uses_whole_scope(entity_resolver, mock_entity_repo, sample_tree):
    context = context_for(sample_tree, is_group_admin=True, home_group_id=1)

    entity_resolver.list(context)

    mock_entity_repo.search.assert_called_once_with([1, 2, 3], search=None, status=None, limit=50, offset=0)


def test_super_admin_is_unrestricted(entity_resolver, mock_entity_repo, sample_tree):
    context = context_for(sample_tree, is_super_admin=True, home_group_id=1)

    entity_resolver.list(context, EntityFilter())

    assert mock_entity_repo.search.call_args[0][0] is None


def test_limit_is_clamped_to_store_maximum(entity_resolver, mock_entity_repo, sample_tree):
    context = context_for(sample_tree, home_group_id=1)

    entity_resolver.list(context, EntityFilter(limit=5000))

    assert mock_entity_repo.search.call_args.kwargs["limit"] == 100


def test_filter_rejects_unknown_keys_and_bad_ranges():
    with pytest.raises(PydanticValidationError):
        EntityFilter(role="admin")
    with pytest.raises(PydanticValidationError):
        EntityFilter(limit=0)
    with pytest.raises(PydanticValidationError):
        EntityFilter(offset=-1)
    with pytest.raises(PydanticValidationError):
        EntityFilter(status="DELETED")


def test_default_limit_comes_from_settings(entity_resolver, mock_entity_repo, sample_tree):
    context = context_for(sample_tree, home_group_id=1)

    with patch("orgaccess.services.accessible_entities.get_settings", return_value=Settings(default_page_size=25)):
        entity_filter = EntityFilter()
    entity_resolver.list(context, entity_filter)

    assert entity_filter.limit == 25
    assert mock_entity_repo.search.call_args.kwargs["limit"] == 25
