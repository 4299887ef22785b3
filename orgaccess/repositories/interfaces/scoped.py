from abc import ABC, abstractmethod
from typing import Any, List, Optional, Tuple

class IScopedEntityRepository(ABC):
    """그룹에 소속된 엔티티(사용자, 고객 등)를 그룹 범위로 조회할 수 있는 저장소."""

    max_page_size: int = 200

    @abstractmethod
    def search(
        self,
        group_ids: Optional[List[int]],
        search: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[Any], int]:
        """
        그룹 범위와 필터를 적용하여 엔티티를 조회합니다.

        Args:
            group_ids: 허용할 그룹 ID 목록. None이면 그룹 제한이 없습니다.
            search: 이름/이메일 등 식별 텍스트에 대한 대소문자 무시 부분 일치.
            status: 'ACTIVE' 또는 'INACTIVE'.
            limit: 페이지 크기.
            offset: 건너뛸 항목 수.

        Returns:
            (페이지 항목 리스트, 페이지네이션 적용 전 전체 개수) 튜플.
        """
        pass
