from typing import List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from orgaccess.database import models
from orgaccess.repositories.interfaces import IUserRoleRepository
from orgaccess.services.exceptions import AlreadyAssignedError

class SqlalchemyUserRoleRepository(IUserRoleRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def find_by_user_and_role(self, user_id: int, role_id: int) -> Optional[models.UserRole]:
        return self.db.query(models.UserRole).filter(
            models.UserRole.user_id == user_id,
            models.UserRole.role_id == role_id
        ).first()

    def find_by_user_id(self, user_id: int) -> List[models.UserRole]:
        return self.db.query(models.UserRole).filter(models.UserRole.user_id == user_id).all()

    def create(self, user_role_model: models.UserRole) -> models.UserRole:
        self.db.add(user_role_model)
        try:
            self.db.commit()
        except IntegrityError:
            # 동시에 들어온 같은 할당이 먼저 커밋된 경우 (user_id, role_id) 기본 키 충돌
            self.db.rollback()
            raise AlreadyAssignedError(
                f"User '{user_role_model.user_id}' already has role '{user_role_model.role_id}'.",
                user_role_model.role_id,
            )
        self.db.refresh(user_role_model)
        return user_role_model

    def delete(self, user_role: models.UserRole) -> bool:
        if user_role:
            self.db.delete(user_role)
            self.db.commit()
            return True
        return False
