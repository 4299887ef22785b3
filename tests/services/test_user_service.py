# tests/services/test_user_service.py
import pytest
from unittest.mock import MagicMock

from orgaccess.services.user_service import UserService
from orgaccess.services.accessible_entities import EntityFilter
from orgaccess.services.permission_context import PermissionContext
from orgaccess.services.exceptions import *
from orgaccess.repositories.interfaces import IUserRepository
from orgaccess.database import models

# ===================================================================
#  Fixture 설정
# ===================================================================

@pytest.fixture
def mock_user_repo() -> MagicMock:
    """IUserRepository에 대한 모의 객체를 생성합니다."""
    repo = MagicMock(spec=IUserRepository)
    repo.max_page_size = 200
    return repo

@pytest.fixture
def user_service(mock_user_repo: MagicMock) -> UserService:
    return UserService(mock_user_repo)

@pytest.fixture
def group_admin(sample_tree) -> PermissionContext:
    """TI(1) 그룹의 그룹 관리자."""
    return PermissionContext(user_id=1, is_super_admin=False, is_group_admin=True, home_group_id=1, hierarchy=sample_tree)

@pytest.fixture
def super_admin(sample_tree) -> PermissionContext:
    return PermissionContext(user_id=1, is_super_admin=True, is_group_admin=False, home_group_id=1, hierarchy=sample_tree)

def make_user(user_id=20, group_id=2, **kwargs):
    values = dict(id=user_id, email=f"user{user_id}@example.com", name="User",
                  is_active=True, is_super_admin=False, is_group_admin=False, group_id=group_id)
    values.update(kwargs)
    return models.User(**values)

# ===================================================================
#  사용자 생성 테스트
# ===================================================================
class TestCreateUser:
    def test_create_in_managed_group(self, user_service, mock_user_repo, group_admin):
        # === Arrange ===
        mock_user_repo.find_by_email.return_value = None
        mock_user_repo.create.side_effect = lambda u: u

        # === Act ===
        user = user_service.create_user(group_admin, " ana@example.com ", group_id=3, name="Ana")

        # === Assert ===
        assert user["email"] == "ana@example.com"
        assert user["group_id"] == 3
        assert user["is_active"] is True
        mock_user_repo.create.assert_called_once()

    def test_create_outside_scope_is_denied(self, user_service, mock_user_repo, group_admin):
        with pytest.raises(PermissionDenied):
            user_service.create_user(group_admin, "ana@example.com", group_id=4)
        mock_user_repo.create.assert_not_called()

    def test_group_admin_cannot_create_super_admin(self, user_service, mock_user_repo, group_admin):
        with pytest.raises(PermissionDenied):
            user_service.create_user(group_admin, "ana@example.com", group_id=2, is_super_admin=True)

    def test_create_in_unknown_group(self, user_service, super_admin):
        with pytest.raises(GroupNotFoundError):
            user_service.create_user(super_admin, "ana@example.com", group_id=99)

    def test_create_with_duplicate_email(self, user_service, mock_user_repo, super_admin):
        mock_user_repo.find_by_email.return_value = make_user()
        with pytest.raises(ValidationError):
            user_service.create_user(super_admin, "user20@example.com", group_id=2)
        mock_user_repo.create.assert_not_called()

    def test_create_with_blank_email(self, user_service, super_admin):
        with pytest.raises(ValidationError):
            user_service.create_user(super_admin, "  ", group_id=2)

# ===================================================================
#  사용자 수정/비활성화 테스트
# ===================================================================
class TestUpdateUser:
    def test_move_user_within_scope(self, user_service, mock_user_repo, group_admin):
        mock_user_repo.find_by_id.return_value = make_user(group_id=2)
        mock_user_repo.update.side_effect = lambda u: u

        result = user_service.update_user(group_admin, 20, group_id=3, name="Bia")

        assert result["group_id"] == 3
        assert result["name"] == "Bia"

    def test_move_user_outside_scope_changes_nothing(self, user_service, mock_user_repo, group_admin):
        """범위 밖으로 옮기려 하면 거부되고, 다른 필드도 바뀌지 않아야 합니다."""
        user = make_user(group_id=2)
        mock_user_repo.find_by_id.return_value = user

        with pytest.raises(PermissionDenied):
            user_service.update_user(group_admin, 20, group_id=5, name="Changed")

        assert user.name == "User"
        assert user.group_id == 2
        mock_user_repo.update.assert_not_called()

    def test_group_admin_cannot_edit_super_admin(self, user_service, mock_user_repo, group_admin):
        mock_user_repo.find_by_id.return_value = make_user(group_id=2, is_super_admin=True)
        with pytest.raises(PermissionDenied):
            user_service.update_user(group_admin, 20, name="x")

    def test_group_admin_cannot_promote_to_super_admin(self, user_service, mock_user_repo, group_admin):
        mock_user_repo.find_by_id.return_value = make_user(group_id=2)
        with pytest.raises(PermissionDenied):
            user_service.update_user(group_admin, 20, is_super_admin=True)

    def test_cannot_edit_self(self, user_service, mock_user_repo, super_admin):
        mock_user_repo.find_by_id.return_value = make_user(user_id=1, group_id=1)
        with pytest.raises(PermissionDenied):
            user_service.update_user(super_admin, 1, name="me")

    def test_update_email_taken_by_other_user(self, user_service, mock_user_repo, super_admin):
        mock_user_repo.find_by_id.return_value = make_user(user_id=20)
        mock_user_repo.find_by_email.return_value = make_user(user_id=21)

        with pytest.raises(ValidationError):
            user_service.update_user(super_admin, 20, email="user21@example.com")
        mock_user_repo.update.assert_not_called()

    def test_update_unknown_user(self, user_service, mock_user_repo, super_admin):
        mock_user_repo.find_by_id.return_value = None
        with pytest.raises(UserNotFoundError):
            user_service.update_user(super_admin, 404, name="x")

    def test_deactivate_user(self, user_service, mock_user_repo, group_admin):
        user = make_user(group_id=3)
        mock_user_repo.find_by_id.return_value = user

        assert user_service.deactivate_user(group_admin, 20) is True
        assert user.is_active is False
        mock_user_repo.update.assert_called_once_with(user)

# ===================================================================
#  범위 조회 테스트
# ===================================================================
class TestListAccessibleUsers:
    def test_list_uses_manageable_scope(self, user_service, mock_user_repo, group_admin):
        mock_user_repo.search.return_value = ([make_user(group_id=2)], 1)

        page = user_service.list_accessible_users(group_admin, EntityFilter(search="user"))

        assert page["total"] == 1
        assert page["items"][0]["id"] == 20
        mock_user_repo.search.assert_called_once_with([1, 2, 3], search="user", status=None, limit=50, offset=0)

# ===================================================================
#  단일 사용자 조회 범위 테스트
# ===================================================================
class TestGetUser:
    @pytest.fixture
    def plain_user(self, sample_tree) -> PermissionContext:
        """RH(4) 그룹의 일반 사용자."""
        return PermissionContext(user_id=30, is_super_admin=False, is_group_admin=False, home_group_id=4, hierarchy=sample_tree)

    def test_user_outside_scope_is_hidden(self, user_service, mock_user_repo, plain_user):
        """범위 밖 사용자는 존재 여부를 드러내지 않고 UserNotFoundError로 처리됩니다."""
        # === Arrange ===
        mock_user_repo.find_by_id.return_value = make_user(user_id=1, group_id=1, is_super_admin=True)

        # === Act & Assert ===
        with pytest.raises(UserNotFoundError) as exc_info:
            user_service.get_user(plain_user, 1)
        assert exc_info.value.entity_id == 1

    def test_user_in_home_group_is_visible(self, user_service, mock_user_repo, plain_user):
        mock_user_repo.find_by_id.return_value = make_user(user_id=31, group_id=4)
        assert user_service.get_user(plain_user, 31)["id"] == 31

    def test_user_can_see_self(self, user_service, mock_user_repo, plain_user):
        mock_user_repo.find_by_id.return_value = make_user(user_id=30, group_id=None)
        assert user_service.get_user(plain_user, 30)["id"] == 30

    def test_group_admin_sees_subtree_only(self, user_service, mock_user_repo, group_admin):
        mock_user_repo.find_by_id.return_value = make_user(group_id=3)
        assert user_service.get_user(group_admin, 20)["group_id"] == 3

        mock_user_repo.find_by_id.return_value = make_user(group_id=5)
        with pytest.raises(UserNotFoundError):
            user_service.get_user(group_admin, 20)

    def test_super_admin_sees_ungrouped_user(self, user_service, mock_user_repo, super_admin):
        mock_user_repo.find_by_id.return_value = make_user(group_id=None)
        assert user_service.get_user(super_admin, 20)["group_id"] is None
