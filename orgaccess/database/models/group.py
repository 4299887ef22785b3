from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, func
from ..database import Base

class Group(Base):
    """
    조직 트리의 한 노드(부서, 팀 등)를 나타냅니다.
    부모는 최대 하나이며, 자식은 여러 개일 수 있습니다. (parent_id가 없으면 루트)
    path는 루트부터 자신까지의 이름을 이어 붙인 값입니다. (예: 'TI > Desenvolvimento')
    """
    __tablename__ = "groups"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    parent_id = Column(Integer, ForeignKey("groups.id"), nullable=True, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    path = Column(String, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
