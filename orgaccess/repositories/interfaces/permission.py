from abc import ABC, abstractmethod
from typing import List, Optional
from orgaccess.database import models

class IPermissionRepository(ABC):
    @abstractmethod
    def find_by_id(self, permission_id: int) -> Optional[models.Permission]:
        pass

    @abstractmethod
    def find_by_name(self, name: str) -> Optional[models.Permission]:
        pass

    @abstractmethod
    def find_by_resource_action(self, resource: str, action: str) -> Optional[models.Permission]:
        pass

    @abstractmethod
    def create(self, permission_model: models.Permission) -> models.Permission:
        pass

    @abstractmethod
    def update(self, permission_model: models.Permission) -> models.Permission:
        pass

    @abstractmethod
    def delete(self, permission: models.Permission) -> bool:
        """권한을 삭제합니다. 연결된 RolePermission 행도 함께 삭제됩니다."""
        pass

    @abstractmethod
    def find_all(self) -> List[models.Permission]:
        pass

    @abstractmethod
    def find_by_role_ids(self, role_ids: List[int]) -> List[models.Permission]:
        """주어진 역할들 중 하나 이상에 연결된 권한을 중복 없이 조회합니다."""
        pass
