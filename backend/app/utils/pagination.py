from dataclasses import dataclass, field
from math import ceil
from typing import Collection, Dict, Generic, List, Optional, Tuple, TypeVar

T = TypeVar("T")


@dataclass
class PageParams:
    """Zero-based page number, page size and sort order"""
    page: int = 0
    size: int = 20
    sort_field: str = "username"
    ascending: bool = True

    @property
    def offset(self) -> int:
        return self.page * self.size


def parse_sort(sort: Optional[str], allowed: Collection[str], default: str) -> Tuple[str, bool]:
    """
    Parse a "field" or "field,asc|desc" sort parameter.

    Raises ValueError when the field is not in `allowed` or the direction
    is neither asc nor desc.
    """
    if not sort:
        return default, True
    field_name, _, direction = sort.partition(",")
    field_name = field_name.strip()
    direction = direction.strip().lower() or "asc"
    if field_name not in allowed:
        raise ValueError(f"Cannot sort by '{field_name}'")
    if direction not in ("asc", "desc"):
        raise ValueError(f"Unknown sort direction '{direction}'")
    return field_name, direction == "asc"


@dataclass
class Page(Generic[T]):
    content: List[T]
    number: int
    size: int
    total_elements: int

    @property
    def total_pages(self) -> int:
        if self.size <= 0:
            return 1
        return max(1, ceil(self.total_elements / self.size))


def generate_pagination_headers(page: Page, base_url: str) -> Dict[str, str]:
    """
    Build X-Total-Count and an RFC 5988 Link header for a page.

    Links are emitted for next/prev when they exist, and always for last/first.
    """
    links: List[str] = []
    if page.number + 1 < page.total_pages:
        links.append(_link(base_url, page.number + 1, page.size, "next"))
    if page.number > 0:
        links.append(_link(base_url, page.number - 1, page.size, "prev"))
    links.append(_link(base_url, page.total_pages - 1, page.size, "last"))
    links.append(_link(base_url, 0, page.size, "first"))
    return {
        "X-Total-Count": str(page.total_elements),
        "Link": ",".join(links),
    }


def _link(base_url: str, page: int, size: int, rel: str) -> str:
    return f'<{base_url}?page={page}&size={size}>; rel="{rel}"'
