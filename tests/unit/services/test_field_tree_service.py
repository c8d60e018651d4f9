import pytest
from types import SimpleNamespace

from schemas.field import EditorField
from services.field_tree_service import (
    KNOWN_SETTING_KEYS,
    FieldForest,
    can_have_children,
    from_wire,
    get_child_fields,
    get_root_fields,
    to_wire,
)


def wire_record(**overrides):
    record = {
        "id": 7,
        "fieldset_id": 1,
        "parent_id": None,
        "label": "Title",
        "name": "title",
        "type": "text",
        "placeholder": "Enter a title",
        "default_value": "",
        "instructions": "Shown in the header",
        "required": True,
        "conditional_logic": [[{"field": "show", "operator": "==", "value": "1"}]],
        "wrapper_config": {"width": "50", "class": "half", "id": ""},
        "field_config": {"max_length": 80, "prepend": "#"},
        "menu_order": 3,
    }
    record.update(overrides)
    return record


@pytest.mark.unit
class TestWireTranslation:

    def test_from_wire_nests_settings(self):
        field = from_wire(wire_record())

        assert field.id == 7
        assert field.menu_order == 3
        assert field.settings == {
            "placeholder": "Enter a title",
            "default_value": "",
            "instructions": "Shown in the header",
            "required": True,
            "conditional_logic": [[{"field": "show", "operator": "==", "value": "1"}]],
            "wrapper": {"width": "50", "class": "half", "id": ""},
            "max_length": 80,
            "prepend": "#",
        }

    def test_from_wire_skips_absent_structural_settings(self):
        field = from_wire(wire_record(conditional_logic=None, wrapper_config=None))

        assert "conditional_logic" not in field.settings
        assert "wrapper" not in field.settings

    def test_from_wire_reads_orm_rows(self):
        row = SimpleNamespace(**wire_record())

        field = from_wire(row)

        assert field.settings["max_length"] == 80
        assert field.settings["wrapper"]["class"] == "half"

    @pytest.mark.parametrize("parent_id", [None, 0, "0"])
    def test_from_wire_normalizes_absent_parent(self, parent_id):
        assert from_wire(wire_record(parent_id=parent_id)).parent_id is None

    def test_from_wire_missing_parent_is_root(self):
        record = wire_record()
        del record["parent_id"]

        assert from_wire(record).parent_id is None

    @pytest.mark.parametrize("parent_id", [5, "12", "temp-1-abc"])
    def test_from_wire_keeps_real_parent(self, parent_id):
        assert from_wire(wire_record(parent_id=parent_id)).parent_id == parent_id

    def test_to_wire_sends_present_empty_values(self):
        field = EditorField(id=7, label="Title", name="title", type="text", settings={
            "placeholder": "",
            "default_value": "",
            "instructions": "",
            "required": False,
            "conditional_logic": [],
            "wrapper": {},
        })

        record = to_wire(field)

        assert record["placeholder"] == ""
        assert record["default_value"] == ""
        assert record["instructions"] == ""
        assert record["required"] is False
        assert record["conditional_logic"] == []
        assert record["wrapper_config"] == {}
        assert record["field_config"] == {}

    def test_to_wire_omits_absent_settings(self):
        record = to_wire(EditorField(id=7, settings={"max_length": 10}))

        for key in ("placeholder", "default_value", "instructions", "required", "conditional_logic", "wrapper_config"):
            assert key not in record
        assert record["field_config"] == {"max_length": 10}

    def test_to_wire_null_scalars_become_empty_strings(self):
        record = to_wire(EditorField(id=7, settings={"placeholder": None, "wrapper": None, "conditional_logic": None}))

        assert record["placeholder"] == ""
        assert record["wrapper_config"] == {}
        assert record["conditional_logic"] == []

    def test_to_wire_collects_unknown_keys_into_field_config(self):
        record = to_wire(EditorField(id=7, settings={"placeholder": "x", "layout": "table", "min": 1}))

        assert record["field_config"] == {"layout": "table", "min": 1}
        assert not set(record["field_config"]) & KNOWN_SETTING_KEYS

    def test_to_wire_parent_only_when_present_in_partial(self):
        assert "parent_id" not in to_wire({"label": "Only label"})
        assert to_wire({"parent_id": 0})["parent_id"] is None
        assert to_wire({"parent_id": 4})["parent_id"] == 4

    def test_round_trip_preserves_settings(self):
        settings = {
            "placeholder": "",
            "default_value": "",
            "instructions": "",
            "required": False,
            "conditional_logic": [],
            "wrapper": {},
            "max_length": 0,
            "prepend": "",
        }
        field = EditorField(id=9, fieldset_id=1, label="Code", name="code", type="text", settings=settings)

        assert from_wire(to_wire(field)).settings == settings

    def test_from_wire_accepts_record_without_id(self):
        record = wire_record()
        del record["id"]

        field = from_wire(record)

        assert field.id is None
        assert field.name == "title"


@pytest.mark.unit
class TestFieldTree:

    def setup_method(self):
        self.fields = [
            EditorField(id=1, name="title", type="text", menu_order=1),
            EditorField(id=2, name="slides", type="repeater", menu_order=0),
            EditorField(id=3, name="caption", type="text", parent_id=2, menu_order=1),
            EditorField(id=4, name="image", type="image", parent_id="2", menu_order=0),
            EditorField(id="temp-1-a", name="row", type="group", parent_id=2, menu_order=2),
            EditorField(id="temp-2-b", name="deep", type="text", parent_id="temp-1-a", menu_order=0),
        ]

    def test_root_fields_in_menu_order(self):
        assert [field.name for field in get_root_fields(self.fields)] == ["slides", "title"]

    def test_child_fields_compare_ids_as_strings(self):
        assert [field.name for field in get_child_fields(self.fields, 2)] == ["image", "caption", "row"]
        assert [field.name for field in get_child_fields(self.fields, "2")] == ["image", "caption", "row"]

    def test_can_have_children(self, registry):
        assert can_have_children(self.fields[1], registry) is True
        assert can_have_children(self.fields[0], registry) is False
        assert can_have_children(EditorField(id=9, type="nonexistent"), registry) is False

    def test_forest_walk_has_no_depth_limit(self):
        forest = FieldForest(self.fields)

        assert [(field.name, depth) for field, depth in forest.walk()] == [
            ("slides", 0), ("image", 1), ("caption", 1), ("row", 1), ("deep", 2), ("title", 0),
        ]

    def test_forest_descendants(self):
        forest = FieldForest(self.fields)

        assert forest.descendant_ids(2) == {"3", "4", "temp-1-a", "temp-2-b"}
        assert forest.is_descendant("temp-2-b", 2) is True
        assert forest.is_descendant(1, 2) is False

    def test_forest_survives_cycles(self):
        looped = [
            EditorField(id=1, name="a", type="group", parent_id=2),
            EditorField(id=2, name="b", type="group", parent_id=1),
        ]

        forest = FieldForest(looped)

        assert forest.roots() == []
        assert forest.descendant_ids(1) == {"1", "2"}
