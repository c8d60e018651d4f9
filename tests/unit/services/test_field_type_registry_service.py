import pytest

from schemas.field_type import FieldCategory
from services.field_type_registry_service import (
    BUILTIN_FIELD_TYPES,
    FieldTypeRegistry,
    create_default_field_type_registry,
)


@pytest.mark.unit
class TestFieldTypeRegistry:

    def setup_method(self):
        self.registry = create_default_field_type_registry()

    def test_builtin_types_registered_in_order(self):
        keys = [field_type.key for field_type in self.registry.get_all()]

        assert keys == list(BUILTIN_FIELD_TYPES)
        for key in ("text", "textarea", "number", "email", "url", "link", "select", "radio",
                    "checkbox", "switch", "repeater", "post_object", "taxonomy", "user",
                    "relationship", "wysiwyg", "image", "gallery", "file", "date", "datetime", "color"):
            assert self.registry.exists(key)

    def test_only_containers_have_sub_fields(self):
        containers = {field_type.key for field_type in self.registry.get_all() if field_type.has_sub_fields}

        assert containers == {"repeater", "group"}

    def test_get_unknown_returns_none(self):
        assert self.registry.get("nonexistent") is None

    def test_applicable_settings_include_universal_structural_and_schema(self):
        settings = self.registry.get_applicable_settings("text")

        assert {"placeholder", "default_value", "instructions", "required"} <= settings
        assert {"conditional_logic", "wrapper"} <= settings
        assert {"max_length", "prepend", "append"} <= settings
        assert "button_label" not in settings

    def test_applicable_settings_unknown_type_is_empty(self):
        assert self.registry.get_applicable_settings("nonexistent") == set()

    def test_supports(self):
        assert self.registry.supports("repeater", "button_label") is True
        assert self.registry.supports("text", "button_label") is False
        assert self.registry.supports("nonexistent", "placeholder") is False

    def test_defaults(self):
        assert self.registry.get_default("repeater", "button_label") == "Add Row"
        assert self.registry.get_default("textarea", "rows") == 4
        assert self.registry.get_default("text", "nonexistent") is None
        assert self.registry.get_defaults("switch") == {"on_text": "Yes", "off_text": "No"}

    def test_register_overwrites_existing_key(self):
        self.registry.register("text", {"label": "Plain Text", "category": FieldCategory.BASIC})

        assert self.registry.get("text").label == "Plain Text"
        assert self.registry.get_applicable_settings("text") == {
            "placeholder", "default_value", "instructions", "required", "conditional_logic", "wrapper",
        }

    def test_register_custom_type(self):
        field_type = self.registry.register("rating", {
            "label": "Rating",
            "category": "choice",
            "schema": {"max_stars": {"type": "number", "label": "Stars", "default": 5}},
        })

        assert field_type.category == FieldCategory.CHOICE
        assert self.registry.get_all()[-1].key == "rating"
        assert self.registry.supports("rating", "max_stars")

    def test_register_requires_key(self):
        with pytest.raises(ValueError):
            self.registry.register("", {"label": "Nothing"})

    def test_unregister_is_idempotent(self):
        self.registry.unregister("color")
        self.registry.unregister("color")

        assert not self.registry.exists("color")

    def test_registries_are_isolated(self):
        other = FieldTypeRegistry()
        other.register("text", {"label": "Other"})

        assert self.registry.get("text").label == "Text"
        assert len(other.get_all()) == 1

    def test_catalog_and_grouping(self):
        catalog = self.registry.get_catalog()
        grouped = self.registry.get_grouped_by_category()

        assert catalog["date"] == {"label": "Date Picker", "category": "date_time"}
        assert [field_type.key for field_type in grouped["layout"]] == ["repeater", "group"]
        assert set(grouped) == {category.value for category in FieldCategory}

    def test_filter_settings(self):
        filtered = self.registry.filter_settings("text", {
            "placeholder": "",
            "max_length": 20,
            "button_label": "Add",
        })

        assert filtered == {"placeholder": "", "max_length": 20}
