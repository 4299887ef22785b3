from abc import ABC, abstractmethod
from typing import List, Optional
from orgaccess.database import models

class IGroupRepository(ABC):
    @abstractmethod
    def find_by_id(self, group_id: int) -> Optional[models.Group]:
        """고유 ID로 특정 그룹을 조회합니다."""
        pass

    @abstractmethod
    def find_by_parent_id(self, parent_id: int) -> List[models.Group]:
        """parent_id가 일치하는 모든 그룹(활성/비활성 모두)을 조회합니다."""
        pass

    @abstractmethod
    def find_all(self) -> List[models.Group]:
        """모든 그룹을 path 순서로 조회합니다."""
        pass

    @abstractmethod
    def create(self, group_model: models.Group) -> models.Group:
        """새로운 그룹을 데이터베이스에 생성합니다."""
        pass

    @abstractmethod
    def update(self, group_model: models.Group) -> models.Group:
        """변경된 그룹 하나를 저장합니다."""
        pass

    @abstractmethod
    def update_many(self, group_models: List[models.Group]) -> List[models.Group]:
        """
        여러 그룹의 변경 사항을 하나의 트랜잭션으로 저장합니다.

        path 변경이 하위 그룹으로 전파될 때 사용되며, 일부만 반영된 상태가
        외부에 보이지 않도록 전부 커밋되거나 전부 롤백되어야 합니다.
        """
        pass

    @abstractmethod
    def delete(self, group: models.Group) -> bool:
        """
        그룹을 삭제합니다. 해당 그룹을 홈 그룹으로 가리키는 사용자 참조도
        같은 트랜잭션 안에서 해제합니다.
        """
        pass
