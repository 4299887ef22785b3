from typing import List, Optional
from sqlalchemy.orm import Session
from orgaccess.database import models
from orgaccess.repositories.interfaces import IGroupRepository

class SqlalchemyGroupRepository(IGroupRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def find_by_id(self, group_id: int) -> Optional[models.Group]:
        return self.db.query(models.Group).filter(models.Group.id == group_id).first()

    def find_by_parent_id(self, parent_id: int) -> List[models.Group]:
        return self.db.query(models.Group).filter(models.Group.parent_id == parent_id).order_by(models.Group.name.asc()).all()

    def find_all(self) -> List[models.Group]:
        return self.db.query(models.Group).order_by(models.Group.path.asc(), models.Group.id.asc()).all()

    def create(self, group_model: models.Group) -> models.Group:
        self.db.add(group_model)
        self.db.commit()
        self.db.refresh(group_model)
        return group_model

    def update(self, group_model: models.Group) -> models.Group:
        return self.update_many([group_model])[0]

    def update_many(self, group_models: List[models.Group]) -> List[models.Group]:
        try:
            for group in group_models:
                self.db.add(group)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        for group in group_models:
            self.db.refresh(group)
        return group_models

    def delete(self, group: models.Group) -> bool:
        if not group:
            return False
        try:
            # 홈 그룹 참조 해제와 그룹 삭제를 하나의 커밋으로 처리
            self.db.query(models.User).filter(models.User.group_id == group.id).update(
                {models.User.group_id: None}, synchronize_session="fetch"
            )
            self.db.delete(group)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return True
