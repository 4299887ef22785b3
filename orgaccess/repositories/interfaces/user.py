from abc import abstractmethod
from typing import Optional
from orgaccess.database import models
from .scoped import IScopedEntityRepository

class IUserRepository(IScopedEntityRepository):
    @abstractmethod
    def find_by_id(self, user_id: int) -> Optional[models.User]:
        """고유 ID로 특정 사용자를 조회합니다."""
        pass

    @abstractmethod
    def find_by_email(self, email: str) -> Optional[models.User]:
        """이메일로 특정 사용자를 조회합니다."""
        pass

    @abstractmethod
    def create(self, user_model: models.User) -> models.User:
        pass

    @abstractmethod
    def update(self, user_model: models.User) -> models.User:
        pass
