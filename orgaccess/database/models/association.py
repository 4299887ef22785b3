from sqlalchemy import Column, Integer, ForeignKey
from sqlalchemy.orm import relationship
from ..database import Base

class UserRole(Base):
    """
    사용자(User)와 역할(Role) 사이의 다대다 관계를 연결하는 연관 테이블 모델입니다.
    (user_id, role_id) 쌍은 유일합니다. 같은 역할을 두 번 가질 수 없습니다.
    """
    __tablename__ = 'user_roles'
    user_id = Column(Integer, ForeignKey('users.id'), primary_key=True)
    role_id = Column(Integer, ForeignKey('roles.id'), primary_key=True)

    user = relationship("User", back_populates="role_associations")
    role = relationship("Role", back_populates="user_associations")

class RolePermission(Base):
    """역할(Role)과 권한(Permission) 사이의 다대다 연관 테이블 모델입니다."""
    __tablename__ = 'role_permissions'
    role_id = Column(Integer, ForeignKey('roles.id'), primary_key=True)
    permission_id = Column(Integer, ForeignKey('permissions.id'), primary_key=True)

    role = relationship("Role", back_populates="permission_associations")
    permission = relationship("Permission", back_populates="role_associations")
