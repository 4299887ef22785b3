from abc import ABC, abstractmethod
from typing import List, Optional
from orgaccess.database import models

class IUserRoleRepository(ABC):
    @abstractmethod
    def find_by_user_and_role(self, user_id: int, role_id: int) -> Optional[models.UserRole]:
        pass

    @abstractmethod
    def find_by_user_id(self, user_id: int) -> List[models.UserRole]:
        pass

    @abstractmethod
    def create(self, user_role_model: models.UserRole) -> models.UserRole:
        pass

    @abstractmethod
    def delete(self, user_role: models.UserRole) -> bool:
        pass
