import pytest
from fastapi import HTTPException
from sqlalchemy import func, select

from models import Field
from repositories.field_repository import FieldRepository
from schemas.field import FieldCreate, FieldOrderItem


@pytest.mark.unit
class TestFieldRepository:

    @pytest.fixture(autouse=True)
    def _repository(self, db_session, registry):
        self.db = db_session
        self.repository = FieldRepository(db_session, registry)

    def test_get_or_404_not_found(self):
        """Test missing field raises 404."""
        with pytest.raises(HTTPException) as exc_info:
            self.repository.get_or_404(999)

        assert exc_info.value.status_code == 404

    def test_create_filters_type_settings(self, sample_fieldset):
        """Test field_config keeps only settings the type supports."""
        field = self.repository.create(FieldCreate(
            label="Body",
            name="body",
            type="textarea",
            field_config={"rows": 8, "button_label": "Nope"},
        ), sample_fieldset)

        assert field.id is not None
        assert field.fieldset_id == sample_fieldset.id
        assert field.field_config == {"rows": 8}

    def test_create_unknown_type(self, sample_fieldset):
        """Test unknown field type raises 400."""
        with pytest.raises(HTTPException) as exc_info:
            self.repository.create(FieldCreate(label="X", name="x", type="nonexistent"), sample_fieldset)

        assert exc_info.value.status_code == 400

    def test_create_under_container(self, sample_fieldset, sample_repeater):
        """Test sub fields can be created under a repeater."""
        field = self.repository.create(FieldCreate(
            label="Image", name="image", type="image", parent_id=sample_repeater.id,
        ), sample_fieldset)

        children = self.repository.get_children(sample_repeater)
        assert [child.name for child in children] == ["caption", "image"]
        assert field.parent_id == sample_repeater.id

    def test_create_under_non_container(self, sample_fieldset, sample_field):
        """Test a text field cannot hold sub fields."""
        with pytest.raises(HTTPException) as exc_info:
            self.repository.create(FieldCreate(
                label="Inner", name="inner", type="text", parent_id=sample_field.id,
            ), sample_fieldset)

        assert exc_info.value.status_code == 400

    def test_name_unique_per_level(self, sample_fieldset, sample_field, sample_repeater):
        """Test names conflict among siblings only."""
        with pytest.raises(HTTPException) as exc_info:
            self.repository.create(FieldCreate(label="Title", name="title", type="text"), sample_fieldset)
        assert exc_info.value.status_code == 409

        nested = self.repository.create(FieldCreate(
            label="Title", name="title", type="text", parent_id=sample_repeater.id,
        ), sample_fieldset)
        assert nested.parent_id == sample_repeater.id

    def test_update_merges_and_keeps_orphans(self, sample_field):
        """Test a type change keeps stored settings that no longer apply."""
        updated = self.repository.update(sample_field, {
            "type": "switch",
            "field_config": {"on_text": "On", "rows": 6},
        })

        assert updated.type == "switch"
        assert updated.field_config == {"max_length": 80, "on_text": "On"}

    def test_update_skips_unsent_and_null_required(self, sample_field):
        """Test partial updates leave other columns alone."""
        updated = self.repository.update(sample_field, {"label": "Heading", "placeholder": "", "required": None})

        assert updated.label == "Heading"
        assert updated.placeholder == ""
        assert updated.required is True
        assert updated.name == "title"

    def test_update_move_into_own_sub_field(self, sample_fieldset, sample_repeater):
        """Test moving a container under its own descendant raises 400."""
        row = self.repository.create(FieldCreate(
            label="Row", name="row", type="group", parent_id=sample_repeater.id,
        ), sample_fieldset)

        with pytest.raises(HTTPException) as exc_info:
            self.repository.update(sample_repeater, {"parent_id": row.id})
        assert exc_info.value.status_code == 400

        with pytest.raises(HTTPException):
            self.repository.update(sample_repeater, {"parent_id": sample_repeater.id})

    def test_update_move_to_root(self, sample_fieldset, sample_repeater):
        """Test parent_id None moves a sub field to the root level."""
        caption = self.repository.get_children(sample_repeater)[0]

        updated = self.repository.update(caption, {"parent_id": None})

        assert updated.parent_id is None

    def test_delete_removes_sub_fields(self, sample_fieldset, sample_field, sample_repeater):
        """Test deleting a container deletes everything nested under it."""
        self.repository.delete(sample_repeater)

        remaining = self.repository.get_all_by_fieldset(sample_fieldset)
        assert [field.name for field in remaining] == ["title"]
        assert self.db.scalar(select(func.count()).select_from(Field)) == 1

    def test_bulk_reorder(self, sample_fieldset, sample_field, sample_repeater):
        """Test menu_order is applied and the list comes back reordered."""
        fields = self.repository.bulk_reorder(sample_fieldset, [
            FieldOrderItem(id=sample_repeater.id, menu_order=0),
            FieldOrderItem(id=sample_field.id, menu_order=2),
        ])

        root_names = [field.name for field in fields if field.parent_id is None]
        assert root_names == ["slides", "title"]

    def test_bulk_reorder_foreign_field(self, sample_fieldset):
        """Test ids outside the fieldset raise 400."""
        with pytest.raises(HTTPException) as exc_info:
            self.repository.bulk_reorder(sample_fieldset, [FieldOrderItem(id=999, menu_order=0)])

        assert exc_info.value.status_code == 400
