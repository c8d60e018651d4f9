import pytest

from repositories.location_repository import LocationRepository, build_location_rows
from schemas.location import LocationGroup, LocationRule


@pytest.mark.unit
class TestLocationRepository:

    @pytest.fixture(autouse=True)
    def _repository(self, db_session):
        self.db = db_session
        self.repository = LocationRepository(db_session)

    def test_build_rows_skips_empty_types_and_reindexes(self):
        """Test rules without a type are dropped and group ids stay contiguous."""
        rows = build_location_rows(1, [
            {"rules": [{"type": "", "value": "x"}]},
            [{"type": "post_type", "operator": "==", "value": "post"}],
            LocationGroup(rules=[
                LocationRule(type="post_category", operator="!=", value="news"),
                LocationRule(type="user_role", value="editor"),
            ]),
        ])

        assert [(row.param, row.operator, row.value, row.group_id) for row in rows] == [
            ("post_type", "==", "post", 0),
            ("post_category", "!=", "news", 1),
            ("user_role", "==", "editor", 1),
        ]

    def test_get_groups(self, sample_fieldset, sample_locations):
        """Test stored rows come back as ordered groups."""
        groups = self.repository.get_groups(sample_fieldset)

        assert groups == [
            {"id": "group_0", "rules": [{"type": "post_type", "operator": "==", "value": "page"}]},
            {"id": "group_1", "rules": [
                {"type": "post_type", "operator": "==", "value": "post"},
                {"type": "post_category", "operator": "==", "value": "news"},
            ]},
        ]

    def test_replace_groups(self, sample_fieldset, sample_locations):
        """Test replacing drops the previous rules."""
        result = self.repository.replace_groups(sample_fieldset, [
            {"rules": [{"type": "page_template", "operator": "==", "value": "default"}]},
        ])

        expected = [{"id": "group_0", "rules": [{"type": "page_template", "operator": "==", "value": "default"}]}]
        assert result == expected
        assert self.repository.get_groups(sample_fieldset) == expected
        assert sample_fieldset.location_groups == expected

    def test_replace_with_nothing_clears_rules(self, sample_fieldset, sample_locations):
        """Test an empty list removes every rule."""
        assert self.repository.replace_groups(sample_fieldset, []) == []
        assert sample_fieldset.location_groups == []
