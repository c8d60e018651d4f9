import json
import pytest
from unittest.mock import Mock

from schemas.location import LocationContext, LocationGroup, LocationRule
from services.location_rule_service import (
    HostCatalog,
    LocationRuleEvaluator,
    create_default_location_evaluator,
    list_fieldsets_for_context,
    load_host_catalog,
)


def group(*rules):
    return {"rules": [{"type": t, "operator": o, "value": v} for t, o, v in rules]}


@pytest.mark.unit
class TestLocationRuleEvaluator:

    def setup_method(self):
        self.evaluator = create_default_location_evaluator(HostCatalog())

    def test_empty_rules_match_everywhere(self):
        assert self.evaluator.matches([], {}) is True
        assert self.evaluator.matches(None, {"post_type": "attachment"}) is True

    def test_or_of_and(self):
        groups = [group(("post_type", "==", "page")), group(("post_type", "==", "post"))]

        assert self.evaluator.matches(groups, {"post_type": "post"}) is True
        assert self.evaluator.matches(groups, {"post_type": "attachment"}) is False

    def test_rules_within_group_are_and(self):
        groups = [group(("post_type", "==", "post"), ("post_category", "==", "news"))]

        assert self.evaluator.matches(groups, {"post_type": "post", "categories": ["news"]}) is True
        assert self.evaluator.matches(groups, {"post_type": "post", "categories": ["sport"]}) is False

    def test_page_template_default_normalization(self):
        groups = [group(("page_template", "==", "default"))]

        assert self.evaluator.matches(groups, {"page_template": ""}) is True
        assert self.evaluator.matches(groups, {"page_template": "default"}) is True
        assert self.evaluator.matches(groups, {"page_template": "templates/full.php"}) is False

    def test_page_template_empty_rule_value(self):
        assert self.evaluator.matches([group(("page_template", "==", ""))], {"page_template": "default"}) is True

    def test_unknown_rule_type_is_vacuous(self):
        assert self.evaluator.matches([group(("nonexistent_type", "==", "x"))], {}) is True

    def test_unknown_rule_type_does_not_fail_group(self):
        groups = [group(("nonexistent_type", "==", "x"), ("post_type", "==", "page"))]

        assert self.evaluator.matches(groups, {"post_type": "page"}) is True
        assert self.evaluator.matches(groups, {"post_type": "post"}) is False

    def test_membership_semantics(self):
        context = {"categories": ["news", "featured"], "user_roles": ["editor"], "taxonomies": ["post_tag"]}

        assert self.evaluator.matches([group(("post_category", "==", "news"))], context) is True
        assert self.evaluator.matches([group(("post_category", "!=", "news"))], context) is False
        assert self.evaluator.matches([group(("post_category", "!=", "sport"))], context) is True
        assert self.evaluator.matches([group(("user_role", "==", "editor"))], context) is True
        assert self.evaluator.matches([group(("user_role", "!=", "administrator"))], context) is True
        assert self.evaluator.matches([group(("taxonomy", "==", "post_tag"))], context) is True

    def test_scalar_inequality(self):
        assert self.evaluator.matches([group(("post_type", "!=", "page"))], {"post_type": "post"}) is True
        assert self.evaluator.matches([group(("options_page", "==", "theme"))], {"options_page": "theme"}) is True

    def test_post_format_defaults_to_standard(self):
        assert self.evaluator.matches([group(("post_format", "==", "standard"))], {}) is True

    def test_invalid_operator_is_non_match(self):
        assert self.evaluator.matches([group(("post_type", "contains", "po"))], {"post_type": "post"}) is False
        assert self.evaluator.matches([group(("post_category", ">", "news"))], {"categories": ["news"]}) is False

    def test_invalid_operator_does_not_abort_sibling_groups(self):
        groups = [group(("post_type", "===", "post")), group(("post_type", "==", "post"))]

        assert self.evaluator.matches(groups, {"post_type": "post"}) is True

    def test_malformed_group_degrades_to_non_match(self):
        groups = [42, {"rules": [{"type": "post_type", "value": {"bad": "value"}}]}, group(("post_type", "==", "page"))]

        assert self.evaluator.matches(groups, {"post_type": "page"}) is True
        assert self.evaluator.matches(groups[:2], {"post_type": "page"}) is False

    def test_matcher_exception_degrades_to_non_match(self):
        self.evaluator.register_location_type("broken", "Broken", Mock(side_effect=RuntimeError("boom")))

        assert self.evaluator.matches([group(("broken", "==", "x"))], {}) is False

    def test_accepts_models_and_plain_rule_lists(self):
        groups = [
            LocationGroup(id="group_0", rules=[LocationRule(type="post_type", value="page")]),
            [{"type": "post_type", "operator": "==", "value": "post"}],
        ]
        context = LocationContext(post_type="post")

        assert self.evaluator.matches(groups, context) is True

    def test_custom_location_type(self):
        evaluator = LocationRuleEvaluator()
        evaluator.register_location_type(
            "language",
            "Language",
            lambda value, operator, context: (getattr(context, "language", "") == value) == (operator == "=="),
            lambda: [{"value": "nl", "label": "Dutch"}],
        )

        assert evaluator.matches([group(("language", "==", "nl"))], {"language": "nl"}) is True
        assert evaluator.matches([group(("language", "==", "nl"))], {"language": "en"}) is False

        evaluator.unregister_location_type("language")
        evaluator.unregister_location_type("language")
        assert evaluator.matches([group(("language", "==", "nl"))], {"language": "en"}) is True

    def test_location_types_for_api(self):
        types = {location_type.key: location_type for location_type in self.evaluator.get_location_types_for_api()}

        assert list(types) == [
            "post_type", "page_template", "post_category", "post_format", "taxonomy", "user_role", "options_page",
        ]
        assert types["page_template"].options[0].value == "default"
        assert {option.value for option in types["user_role"].options} >= {"administrator", "editor"}

    def test_failing_options_provider_returns_empty_options(self):
        self.evaluator.register_location_type("broken", "Broken", None, Mock(side_effect=RuntimeError("boom")))

        types = {location_type.key: location_type for location_type in self.evaluator.get_location_types_for_api()}

        assert types["broken"].options == []

    def test_filter_fieldsets_keeps_active_matches_in_menu_order(self):
        def fieldset(id, menu_order, is_active, groups):
            return Mock(id=id, menu_order=menu_order, is_active=is_active, location_groups=groups)

        pages = fieldset(1, 2, True, [group(("post_type", "==", "page"))])
        everywhere = fieldset(2, 0, True, [])
        inactive = fieldset(3, 1, False, [])
        posts = fieldset(4, 1, True, [group(("post_type", "==", "post"))])

        result = self.evaluator.filter_fieldsets([pages, everywhere, inactive, posts], {"post_type": "page"})

        assert result == [everywhere, pages]

    def test_list_fieldsets_for_context_uses_active_fieldsets(self):
        repository = Mock()
        repository.get_all.return_value = []

        assert list_fieldsets_for_context({"post_type": "page"}, repository, self.evaluator) == []
        repository.get_all.assert_called_once_with(active_only=True)


@pytest.mark.unit
class TestHostCatalog:

    def test_defaults_without_path(self):
        catalog = load_host_catalog("")

        assert [option.value for option in catalog.post_types] == ["post", "page", "attachment"]

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps({
            "post_types": [{"value": "product", "label": "Product"}],
            "page_templates": [{"value": "templates/landing.php", "label": "Landing"}],
        }))

        catalog = load_host_catalog(str(path))
        evaluator = create_default_location_evaluator(catalog)
        types = {location_type.key: location_type for location_type in evaluator.get_location_types_for_api()}

        assert [option.value for option in types["post_type"].options] == ["product"]
        assert [option.value for option in types["page_template"].options] == ["default", "templates/landing.php"]

    def test_invalid_file_falls_back_to_defaults(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text("not json")

        assert load_host_catalog(str(path)) == HostCatalog()
