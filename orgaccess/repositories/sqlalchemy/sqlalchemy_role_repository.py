from typing import List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from orgaccess.database import models
from orgaccess.repositories.interfaces import IRoleRepository
from orgaccess.services.exceptions import ValidationError

class SqlalchemyRoleRepository(IRoleRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def find_by_id(self, role_id: int) -> Optional[models.Role]:
        return self.db.query(models.Role).filter(models.Role.id == role_id).first()

    def find_by_name(self, name: str) -> Optional[models.Role]:
        return self.db.query(models.Role).filter(models.Role.name == name).first()

    def create(self, role_model: models.Role) -> models.Role:
        self.db.add(role_model)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ValidationError("Role already exists")
        self.db.refresh(role_model)
        return role_model

    def update(self, role_model: models.Role) -> models.Role:
        self.db.add(role_model)
        self.db.commit()
        self.db.refresh(role_model)
        return role_model

    def delete(self, role: models.Role) -> bool:
        if not role:
            return False
        try:
            # UserRole, RolePermission 행은 relationship cascade로 함께 삭제됩니다.
            self.db.delete(role)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return True

    def find_all(self) -> List[models.Role]:
        return self.db.query(models.Role).order_by(models.Role.name.asc()).all()

    def find_by_ids(self, role_ids: List[int]) -> List[models.Role]:
        if not role_ids:
            return []
        return self.db.query(models.Role).filter(models.Role.id.in_(role_ids)).order_by(models.Role.name.asc()).all()

    def add_permission(self, role_id: int, permission_id: int):
        association = models.RolePermission(role_id=role_id, permission_id=permission_id)
        self.db.merge(association) # INSERT OR IGNORE와 유사한 동작
        self.db.commit()

    def remove_permission(self, role_id: int, permission_id: int):
        association = self.db.query(models.RolePermission).filter(
            models.RolePermission.role_id == role_id,
            models.RolePermission.permission_id == permission_id
        ).first()
        if association:
            self.db.delete(association)
            self.db.commit()
