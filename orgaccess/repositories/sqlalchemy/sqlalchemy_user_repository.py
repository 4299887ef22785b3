from typing import List, Optional, Tuple
from sqlalchemy import or_
from sqlalchemy.orm import Session
from orgaccess.database import models
from orgaccess.repositories.interfaces import IUserRepository

class SqlalchemyUserRepository(IUserRepository):
    def __init__(self, db_session: Session, max_page_size: int = 200):
        self.db = db_session
        self.max_page_size = max_page_size

    def find_by_id(self, user_id: int) -> Optional[models.User]:
        return self.db.query(models.User).filter(models.User.id == user_id).first()

    def find_by_email(self, email: str) -> Optional[models.User]:
        return self.db.query(models.User).filter(models.User.email == email).first()

    def create(self, user_model: models.User) -> models.User:
        self.db.add(user_model)
        self.db.commit()
        self.db.refresh(user_model)
        return user_model

    def update(self, user_model: models.User) -> models.User:
        self.db.add(user_model)
        self.db.commit()
        self.db.refresh(user_model)
        return user_model

    def search(
        self,
        group_ids: Optional[List[int]],
        search: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[models.User], int]:
        query = self.db.query(models.User)
        if group_ids is not None:
            if not group_ids:
                return [], 0
            query = query.filter(models.User.group_id.in_(group_ids))
        if status:
            query = query.filter(models.User.is_active == (status == "ACTIVE"))
        if search:
            # 검색어의 %, _ 는 와일드카드가 아닌 문자 그대로 비교합니다.
            escaped = search.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
            pattern = f"%{escaped}%"
            query = query.filter(or_(
                models.User.name.ilike(pattern, escape="\\"),
                models.User.email.ilike(pattern, escape="\\"),
            ))

        total = query.count()
        limit = max(1, min(limit, self.max_page_size))
        items = query.order_by(models.User.created_at.desc(), models.User.id.desc()).limit(limit).offset(offset).all()
        return items, total
