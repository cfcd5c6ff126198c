from typing import Dict, Generic, List, Optional, TypeVar
from urllib.parse import urlencode
from pydantic import BaseModel

T = TypeVar('T')


class PaginationParams(BaseModel):
    page: int = 1
    size: int = 50
    search: Optional[str] = None

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.size

    def slice(self, items: List[T]) -> List[T]:
        return items[self.offset:self.offset + self.size]

    def query_for(self, page: int) -> Dict[str, object]:
        # La búsqueda viaja en todos los links para no perder el filtro
        query: Dict[str, object] = {'page': page, 'size': self.size}
        if self.search:
            query['search'] = self.search
        return query


class PaginationLinks(BaseModel):
    first: Optional[str] = None
    prev: Optional[str] = None
    next: Optional[str] = None
    last: Optional[str] = None

    @classmethod
    def build(cls, params: PaginationParams, total_pages: int, base_url: str) -> "PaginationLinks":
        def to_url(page: int) -> str:
            return f"{base_url}?{urlencode(params.query_for(page))}"

        return cls(
            first=to_url(1),
            last=to_url(max(total_pages, 1)),
            prev=to_url(params.page - 1) if params.page > 1 else None,
            next=to_url(params.page + 1) if params.page < total_pages else None,
        )


class PaginatedResponse(BaseModel, Generic[T]):
    """Sobre de respuesta paginada: totales, links de navegación y la página pedida"""
    total: int
    total_pages: int
    current_page: int
    page_size: int
    has_next: bool
    has_prev: bool
    links: PaginationLinks
    results: List[T]

    @classmethod
    def create(cls, items: List[T], total: int, params: PaginationParams, base_url: str):
        total_pages = -(-total // params.size)
        return cls(
            total=total,
            total_pages=total_pages,
            current_page=params.page,
            page_size=params.size,
            has_next=params.page < total_pages,
            has_prev=params.page > 1,
            links=PaginationLinks.build(params, total_pages, base_url),
            results=items,
        )
