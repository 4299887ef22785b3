from abc import ABC, abstractmethod
from typing import List, Optional
from orgaccess.database import models

class IRoleRepository(ABC):
    @abstractmethod
    def find_by_id(self, role_id: int) -> Optional[models.Role]:
        """고유 ID로 특정 역할을 조회합니다."""
        pass

    @abstractmethod
    def find_by_name(self, name: str) -> Optional[models.Role]:
        """이름으로 특정 역할을 조회합니다. (대소문자 구분)"""
        pass

    @abstractmethod
    def create(self, role_model: models.Role) -> models.Role:
        pass

    @abstractmethod
    def update(self, role_model: models.Role) -> models.Role:
        pass

    @abstractmethod
    def delete(self, role: models.Role) -> bool:
        """역할을 삭제합니다. 연결된 UserRole, RolePermission 행도 함께 삭제됩니다."""
        pass

    @abstractmethod
    def find_all(self) -> List[models.Role]:
        pass

    @abstractmethod
    def find_by_ids(self, role_ids: List[int]) -> List[models.Role]:
        pass

    @abstractmethod
    def add_permission(self, role_id: int, permission_id: int):
        """역할에 권한을 연결합니다. 이미 연결되어 있으면 무시합니다."""
        pass

    @abstractmethod
    def remove_permission(self, role_id: int, permission_id: int):
        """역할에서 권한 연결을 해제합니다."""
        pass
