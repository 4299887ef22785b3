import logging
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from orgaccess.config import get_settings
from orgaccess.repositories.interfaces import IScopedEntityRepository
from orgaccess.services.manageable_groups import ManageableGroupsResolver
from orgaccess.services.permission_context import PermissionContext

logger = logging.getLogger(__name__)


class EntityFilter(BaseModel):
    """범위 조회에 허용되는 필터. 정의되지 않은 키는 거부합니다."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    search: Optional[str] = None
    status: Optional[Literal["ACTIVE", "INACTIVE"]] = None
    group_id: Optional[int] = None
    limit: int = Field(default_factory=lambda: get_settings().default_page_size, ge=1)
    offset: int = Field(default=0, ge=0)


class AccessibleEntityResolver:
    """호출자의 관리 범위와 요청 필터를 합쳐 그룹 소속 엔티티 조회 범위를 결정합니다."""

    def __init__(self, entity_repo: IScopedEntityRepository, resolver: Optional[ManageableGroupsResolver] = None):
        self.entity_repo = entity_repo
        self.resolver = resolver or ManageableGroupsResolver()

    def list(self, context: PermissionContext, entity_filter: Optional[EntityFilter] = None) -> Dict[str, Any]:
        """
        Args:
            context: 호출자의 권한 컨텍스트.
            entity_filter: 검색/상태/그룹/페이지 필터.

        Returns:
            {"items": [...], "total": n}. total은 범위와 필터 적용 후, 페이지네이션 전 개수입니다.
            범위 밖의 group_id를 요청하면 오류 대신 빈 페이지를 반환합니다.
        """
        entity_filter = entity_filter or EntityFilter()
        manageable = self.resolver.resolve(context)

        if entity_filter.group_id is not None:
            if entity_filter.group_id not in manageable:
                logger.debug(
                    "User %s requested group %s outside of scope", context.user_id, entity_filter.group_id
                )
                return {"items": [], "total": 0}
            group_ids = [entity_filter.group_id]
        elif context.is_super_admin:
            group_ids = None
        else:
            group_ids = manageable

        max_page_size = getattr(self.entity_repo, "max_page_size", None) or entity_filter.limit
        items, total = self.entity_repo.search(
            group_ids,
            search=entity_filter.search or None,
            status=entity_filter.status,
            limit=min(entity_filter.limit, max_page_size),
            offset=entity_filter.offset,
        )
        return {"items": items, "total": total}
