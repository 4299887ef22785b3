from sqlalchemy import Column, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship
from ..database import Base

class Role(Base):
    """
    사용자에게 부여할 수 있는 권한(Permission)의 묶음입니다.
    (예: 'Support', 'Manager').
    이름은 전역적으로 유일하며 대소문자를 구분합니다.
    """
    __tablename__ = "roles"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False)
    description = Column(String, nullable=True)

    permission_associations = relationship("RolePermission", back_populates="role", cascade="all, delete-orphan")
    user_associations = relationship("UserRole", back_populates="role", cascade="all, delete-orphan")

class Permission(Base):
    """
    원자적인 (resource, action) 권한입니다.
    비교 시에는 'resource:action' 문자열로 직렬화하여 사용합니다. (예: 'ticket:resolve')
    """
    __tablename__ = "permissions"
    __table_args__ = (UniqueConstraint("resource", "action", name="uq_permissions_resource_action"),)
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False)
    resource = Column(String, nullable=False)
    action = Column(String, nullable=False)
    description = Column(String, nullable=True)

    role_associations = relationship("RolePermission", back_populates="permission", cascade="all, delete-orphan")
