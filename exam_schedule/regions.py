"""
Static region lookup tables.
시험 지역 코드 및 지역 그룹(수도권, 영남 등) 매핑 테이블.
"""

import re
from typing import NamedTuple


class Region(NamedTuple):
    code: str
    name: str


# Registry region codes (pageType values on the exam registry)
REGIONS: tuple[Region, ...] = (
    Region("10", "서울"),
    Region("12", "인천"),
    Region("55", "제주"),
    Region("30", "부산"),
    Region("32", "울산"),
    Region("40", "대구"),
    Region("50", "광주"),
    Region("87", "전주"),
    Region("60", "대전"),
    Region("65", "서산"),
    Region("70", "강릉"),
    Region("71", "원주"),
    Region("78", "춘천"),
)

# Region groups printed on schedule images -> concrete registry cities
REGION_GROUPS: dict[str, tuple[str, ...]] = {
    "수도권": ("서울", "인천", "제주"),
    "영남": ("부산", "울산"),
    "대구": ("대구",),
    "호남": ("광주", "전주"),
    "중부": ("대전", "서산"),
    "원주": ("원주", "강릉", "춘천"),
}

_CODE_BY_NAME = {r.name: r.code for r in REGIONS}
_NAME_BY_CODE = {r.code: r.name for r in REGIONS}
_SPLIT_RE = re.compile(r"[(),/·\s]+")


def region_code(name: str) -> str | None:
    """Registry code for a city name, or None."""
    return _CODE_BY_NAME.get(name.strip())


def region_name(code: str) -> str | None:
    return _NAME_BY_CODE.get(code.strip())


def _expand_one(token: str) -> tuple[str, ...]:
    if token in REGION_GROUPS:
        return REGION_GROUPS[token]
    if token in _CODE_BY_NAME:
        return (token,)
    return ()


def expand_locations(names: list[str]) -> list[str]:
    """
    Expand region-group names into registry cities.

    "수도권" -> 서울, 인천, 제주; "서울(인천)" -> 서울, 인천.
    Unknown names are dropped; order of first appearance is kept.
    """
    result: list[str] = []
    for raw in names:
        if not isinstance(raw, str) or not raw.strip():
            continue
        name = raw.strip()
        expanded = _expand_one(name)
        if not expanded:
            for token in _SPLIT_RE.split(name):
                expanded += _expand_one(token)
        for city in expanded:
            if city not in result:
                result.append(city)
    return result
