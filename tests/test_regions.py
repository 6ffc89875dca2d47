"""지역 코드/그룹 테스트"""

from exam_schedule.regions import REGION_GROUPS, REGIONS, expand_locations, region_code, region_name


class TestRegionTables:
    """지역 테이블 테스트"""

    def test_thirteen_registry_regions(self):
        assert len(REGIONS) == 13
        assert len({r.code for r in REGIONS}) == 13

    def test_code_lookup(self):
        assert region_code("서울") == "10"
        assert region_code("춘천") == "78"
        assert region_name("87") == "전주"
        assert region_code("평양") is None

    def test_every_group_city_is_a_registry_region(self):
        names = {r.name for r in REGIONS}
        for cities in REGION_GROUPS.values():
            assert set(cities) <= names


class TestExpandLocations:
    """지역 그룹 확장 테스트"""

    def test_capital_area_expands(self):
        assert expand_locations(["수도권"]) == ["서울", "인천", "제주"]

    def test_groups_and_cities_are_deduplicated_in_order(self):
        assert expand_locations(["서울", "수도권", "영남"]) == ["서울", "인천", "제주", "부산", "울산"]

    def test_compound_tokens_are_split(self):
        assert expand_locations(["서울(인천)", "광주/전주"]) == ["서울", "인천", "광주", "전주"]

    def test_unknown_names_dropped(self):
        assert expand_locations(["해외", "", "대전"]) == ["대전"]

    def test_non_string_entries_dropped(self):
        assert expand_locations([1, None, "부산", ["서울"]]) == ["부산"]
