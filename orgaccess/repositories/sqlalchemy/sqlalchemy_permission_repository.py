from typing import List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from orgaccess.database import models
from orgaccess.repositories.interfaces import IPermissionRepository
from orgaccess.services.exceptions import ValidationError

class SqlalchemyPermissionRepository(IPermissionRepository):
    def __init__(self, db_session: Session):
        self.db = db_session

    def find_by_id(self, permission_id: int) -> Optional[models.Permission]:
        return self.db.query(models.Permission).filter(models.Permission.id == permission_id).first()

    def find_by_name(self, name: str) -> Optional[models.Permission]:
        return self.db.query(models.Permission).filter(models.Permission.name == name).first()

    def find_by_resource_action(self, resource: str, action: str) -> Optional[models.Permission]:
        return self.db.query(models.Permission).filter(
            models.Permission.resource == resource,
            models.Permission.action == action
        ).first()

    def create(self, permission_model: models.Permission) -> models.Permission:
        self.db.add(permission_model)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ValidationError("Permission already exists")
        self.db.refresh(permission_model)
        return permission_model

    def update(self, permission_model: models.Permission) -> models.Permission:
        self.db.add(permission_model)
        self.db.commit()
        self.db.refresh(permission_model)
        return permission_model

    def delete(self, permission: models.Permission) -> bool:
        if not permission:
            return False
        try:
            self.db.delete(permission)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return True

    def find_all(self) -> List[models.Permission]:
        return self.db.query(models.Permission).order_by(models.Permission.resource.asc(), models.Permission.action.asc()).all()

    def find_by_role_ids(self, role_ids: List[int]) -> List[models.Permission]:
        if not role_ids:
            return []
        return (
            self.db.query(models.Permission)
            .join(models.RolePermission, models.RolePermission.permission_id == models.Permission.id)
            .filter(models.RolePermission.role_id.in_(role_ids))
            .distinct()
            .order_by(models.Permission.resource.asc(), models.Permission.action.asc())
            .all()
        )
