from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from ..database import Base

class User(Base):
    """
    시스템 사용자를 나타냅니다. 인증은 상위 계층에서 끝난 상태로 가정합니다.
    group_id는 사용자의 소속(홈) 그룹이며, 관리 범위 계산의 기준이 됩니다.
    is_super_admin, is_group_admin 플래그는 서로 배타적이지 않습니다.
    """
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    is_super_admin = Column(Boolean, nullable=False, default=False)
    is_group_admin = Column(Boolean, nullable=False, default=False)
    group_id = Column(Integer, ForeignKey("groups.id"), nullable=True, index=True)
    created_at = Column(DateTime, server_default=func.now())

    group = relationship("Group")
    role_associations = relationship("UserRole", back_populates="user", cascade="all, delete-orphan")
