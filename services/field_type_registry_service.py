"""Field Type Registry - catalog of field types, their legal settings and defaults"""

from typing import Any, Optional

from core.logging_config import get_logger
from schemas.field_type import FieldCategory, FieldTypeDefinition, SettingDefinition

logger = get_logger(__name__)

# Settings every field type carries
UNIVERSAL_SETTINGS = ("placeholder", "default_value", "instructions", "required")
# Settings that shape the field rather than its input
STRUCTURAL_SETTINGS = ("conditional_logic", "wrapper")


class FieldTypeRegistry:
    """
    Registry of available field types.

    Entries keep insertion order so the "add field" palette can list them as
    registered. Re-registering a key overwrites it, which is how custom field
    types are added or replaced.
    """

    def __init__(self):
        self._field_types: dict[str, FieldTypeDefinition] = {}

    def register(self, key: str, config: dict[str, Any]) -> FieldTypeDefinition:
        """Register (or overwrite) a field type"""
        if not isinstance(key, str) or not key:
            raise ValueError("Field type key must be a non-empty string")

        schema = {
            name: definition if isinstance(definition, SettingDefinition) else SettingDefinition(**definition)
            for name, definition in (config.get("schema") or {}).items()
        }
        field_type = FieldTypeDefinition(
            key=key,
            label=config.get("label") or key,
            category=config.get("category", FieldCategory.BASIC),
            description=config.get("description", ""),
            icon=config.get("icon"),
            has_sub_fields=bool(config.get("has_sub_fields", False)),
            settings_schema=schema,
        )

        if key in self._field_types:
            logger.debug(f"Overwriting field type: {key}")
        self._field_types[key] = field_type
        return field_type

    def unregister(self, key: str) -> None:
        self._field_types.pop(key, None)

    def get(self, key: str) -> Optional[FieldTypeDefinition]:
        return self._field_types.get(key)

    def exists(self, key: str) -> bool:
        return key in self._field_types

    def get_all(self) -> list[FieldTypeDefinition]:
        return list(self._field_types.values())

    def get_grouped_by_category(self) -> dict[str, list[FieldTypeDefinition]]:
        grouped: dict[str, list[FieldTypeDefinition]] = {category.value: [] for category in FieldCategory}
        for field_type in self._field_types.values():
            grouped[field_type.category.value].append(field_type)
        return grouped

    def get_catalog(self) -> dict[str, dict[str, str]]:
        """Palette payload: {key: {label, category}}"""
        return {
            key: {"label": field_type.label, "category": field_type.category.value}
            for key, field_type in self._field_types.items()
        }

    def get_applicable_settings(self, key: str) -> set[str]:
        field_type = self._field_types.get(key)
        if field_type is None:
            return set()
        return set(UNIVERSAL_SETTINGS) | set(STRUCTURAL_SETTINGS) | set(field_type.settings_schema)

    def supports(self, key: str, setting_name: str) -> bool:
        return setting_name in self.get_applicable_settings(key)

    def get_default(self, key: str, setting_name: str) -> Any:
        field_type = self._field_types.get(key)
        if field_type is None or setting_name not in field_type.settings_schema:
            return None
        return field_type.settings_schema[setting_name].default

    def get_defaults(self, key: str) -> dict[str, Any]:
        field_type = self._field_types.get(key)
        if field_type is None:
            return {}
        return {name: definition.default for name, definition in field_type.settings_schema.items()}

    def filter_settings(self, key: str, settings: dict[str, Any]) -> dict[str, Any]:
        """Keep only the settings that apply to the given type"""
        applicable = self.get_applicable_settings(key)
        return {name: value for name, value in settings.items() if name in applicable}

    def has_sub_fields(self, key: str) -> bool:
        field_type = self._field_types.get(key)
        return bool(field_type and field_type.has_sub_fields)


def _setting(type_: str, label: str, default: Any = "", **extra) -> dict[str, Any]:
    return {"type": type_, "label": label, "default": default, **extra}


RETURN_FORMAT_MEDIA = {"array": "Array", "url": "URL", "id": "ID"}
LAYOUT_CHOICES = {"vertical": "Vertical", "horizontal": "Horizontal"}

BUILTIN_FIELD_TYPES: dict[str, dict[str, Any]] = {
    # Basic
    "text": {
        "label": "Text",
        "description": "Single line text input.",
        "category": FieldCategory.BASIC,
        "icon": "type",
        "schema": {
            "max_length": _setting("number", "Max Length"),
            "prepend": _setting("text", "Prepend"),
            "append": _setting("text", "Append"),
        },
    },
    "textarea": {
        "label": "Textarea",
        "description": "Multi-line text area.",
        "category": FieldCategory.BASIC,
        "icon": "align-left",
        "schema": {
            "rows": _setting("number", "Rows", 4),
            "max_length": _setting("number", "Max Length"),
            "new_lines": _setting("select", "New Lines", "wpautop", choices={"wpautop": "Paragraphs", "br": "Line breaks"}),
        },
    },
    "number": {
        "label": "Number",
        "description": "Numeric input field.",
        "category": FieldCategory.BASIC,
        "icon": "hash",
        "schema": {
            "min": _setting("number", "Minimum"),
            "max": _setting("number", "Maximum"),
            "step": _setting("number", "Step", 1),
            "prepend": _setting("text", "Prepend"),
            "append": _setting("text", "Append"),
        },
    },
    "email": {
        "label": "Email",
        "description": "Email address input.",
        "category": FieldCategory.BASIC,
        "icon": "mail",
        "schema": {},
    },
    "url": {
        "label": "URL",
        "description": "URL input with validation.",
        "category": FieldCategory.BASIC,
        "icon": "link",
        "schema": {},
    },
    "link": {
        "label": "Link",
        "description": "URL, title and target picker.",
        "category": FieldCategory.BASIC,
        "icon": "external-link",
        "schema": {
            "return_format": _setting("select", "Return Format", "array", choices={"array": "Link Array", "url": "Link URL"}),
        },
    },
    "color": {
        "label": "Color Picker",
        "description": "Color selection.",
        "category": FieldCategory.BASIC,
        "icon": "palette",
        "schema": {
            "enable_opacity": _setting("boolean", "Enable Opacity", False),
            "return_format": _setting("select", "Return Format", "string", choices={"string": "Hex String", "array": "RGBA Array"}),
        },
    },
    # Choice
    "select": {
        "label": "Select",
        "description": "Dropdown select field.",
        "category": FieldCategory.CHOICE,
        "icon": "chevron-down",
        "schema": {
            "choices": _setting("repeater", "Choices", []),
            "multiple": _setting("boolean", "Allow Multiple", False),
            "allow_null": _setting("boolean", "Allow Null", False),
            "return_format": _setting("select", "Return Format", "value", choices={"value": "Value", "label": "Label", "array": "Both"}),
        },
    },
    "radio": {
        "label": "Radio",
        "description": "Radio button group.",
        "category": FieldCategory.CHOICE,
        "icon": "circle-dot",
        "schema": {
            "choices": _setting("repeater", "Choices", []),
            "layout": _setting("select", "Layout", "vertical", choices=LAYOUT_CHOICES),
            "allow_other": _setting("boolean", "Allow Other", False),
        },
    },
    "checkbox": {
        "label": "Checkbox",
        "description": "Checkbox group.",
        "category": FieldCategory.CHOICE,
        "icon": "check-square",
        "schema": {
            "choices": _setting("repeater", "Choices", []),
            "layout": _setting("select", "Layout", "vertical", choices=LAYOUT_CHOICES),
            "toggle_all": _setting("boolean", "Toggle All", False),
        },
    },
    "switch": {
        "label": "Switch",
        "description": "True/False toggle switch.",
        "category": FieldCategory.CHOICE,
        "icon": "toggle-left",
        "schema": {
            "on_text": _setting("text", "On Text", "Yes"),
            "off_text": _setting("text", "Off Text", "No"),
        },
    },
    # Content
    "wysiwyg": {
        "label": "WYSIWYG Editor",
        "description": "Rich text editor.",
        "category": FieldCategory.CONTENT,
        "icon": "file-text",
        "schema": {
            "tabs": _setting("select", "Tabs", "all", choices={"all": "Visual & Text", "visual": "Visual Only", "text": "Text Only"}),
            "toolbar": _setting("select", "Toolbar", "full", choices={"full": "Full", "basic": "Basic"}),
            "media_upload": _setting("boolean", "Show Media Upload Buttons", True),
        },
    },
    "image": {
        "label": "Image",
        "description": "Image from the media library.",
        "category": FieldCategory.CONTENT,
        "icon": "image",
        "schema": {
            "return_format": _setting("select", "Return Format", "array", choices=RETURN_FORMAT_MEDIA),
            "preview_size": _setting("text", "Preview Size", "medium"),
            "library": _setting("select", "Library", "all", choices={"all": "All", "uploadedTo": "Uploaded to post"}),
            "mime_types": _setting("text", "Allowed File Types"),
        },
    },
    "gallery": {
        "label": "Gallery",
        "description": "Ordered collection of images.",
        "category": FieldCategory.CONTENT,
        "icon": "images",
        "schema": {
            "return_format": _setting("select", "Return Format", "array", choices=RETURN_FORMAT_MEDIA),
            "preview_size": _setting("text", "Preview Size", "medium"),
            "min": _setting("number", "Minimum Selection", 0),
            "max": _setting("number", "Maximum Selection", 0),
            "mime_types": _setting("text", "Allowed File Types"),
        },
    },
    "file": {
        "label": "File",
        "description": "File from the media library.",
        "category": FieldCategory.CONTENT,
        "icon": "paperclip",
        "schema": {
            "return_format": _setting("select", "Return Format", "array", choices=RETURN_FORMAT_MEDIA),
            "library": _setting("select", "Library", "all", choices={"all": "All", "uploadedTo": "Uploaded to post"}),
            "mime_types": _setting("text", "Allowed File Types"),
        },
    },
    # Date & time
    "date": {
        "label": "Date Picker",
        "description": "Calendar date selection.",
        "category": FieldCategory.DATE_TIME,
        "icon": "calendar",
        "schema": {
            "display_format": _setting("text", "Display Format", "d/m/Y"),
            "return_format": _setting("text", "Return Format", "Ymd"),
            "first_day": _setting("number", "Week Starts On", 1),
        },
    },
    "datetime": {
        "label": "Date Time",
        "description": "Date and time selection.",
        "category": FieldCategory.DATE_TIME,
        "icon": "calendar-clock",
        "schema": {
            "display_format": _setting("text", "Display Format", "d/m/Y g:i a"),
            "return_format": _setting("text", "Return Format", "Y-m-d H:i:s"),
            "first_day": _setting("number", "Week Starts On", 1),
        },
    },
    # Relational
    "post_object": {
        "label": "Post Object",
        "description": "Select posts from a searchable dropdown.",
        "category": FieldCategory.RELATIONAL,
        "icon": "file-text",
        "schema": {
            "post_type": _setting("select", "Post Type", ["post"], choices={}, multiple=True),
            "multiple": _setting("boolean", "Select Multiple", False),
            "return_format": _setting("select", "Return Format", "object", choices={"object": "Post Object", "id": "Post ID"}),
            "allow_null": _setting("boolean", "Allow Null", False),
        },
    },
    "relationship": {
        "label": "Relationship",
        "description": "A dual-column interface to select multiple posts.",
        "category": FieldCategory.RELATIONAL,
        "icon": "git-branch",
        "schema": {
            "post_type": _setting("select", "Post Type", ["post"], choices={}, multiple=True),
            "taxonomy": _setting("select", "Filter by Taxonomy", "", choices={}, multiple=True),
            "min": _setting("number", "Minimum Posts", 0),
            "max": _setting("number", "Maximum Posts", 0),
            "return_format": _setting("select", "Return Format", "object", choices={"object": "Post Object", "id": "Post ID"}),
        },
    },
    "taxonomy": {
        "label": "Taxonomy",
        "description": "Select taxonomy terms.",
        "category": FieldCategory.RELATIONAL,
        "icon": "folder-tree",
        "schema": {
            "taxonomy": _setting("select", "Taxonomy", "category", choices={}),
            "field_type": _setting("select", "Appearance", "select", choices={"select": "Select", "checkbox": "Checkbox", "radio": "Radio Buttons"}),
            "multiple": _setting("boolean", "Select Multiple", False),
            "return_format": _setting("select", "Return Format", "id", choices={"object": "Term Object", "id": "Term ID"}),
            "add_term": _setting("boolean", "Allow Add Term", False),
            "load_terms": _setting("boolean", "Load Value from Post Terms", False),
            "save_terms": _setting("boolean", "Connect Selected Terms to Post", False),
        },
    },
    "user": {
        "label": "User",
        "description": "Select users from a searchable dropdown.",
        "category": FieldCategory.RELATIONAL,
        "icon": "user",
        "schema": {
            "role": _setting("select", "Filter by Role", "", choices={}, multiple=True),
            "multiple": _setting("boolean", "Select Multiple", False),
            "return_format": _setting("select", "Return Format", "array", choices={"object": "User Object", "id": "User ID", "array": "User Array"}),
            "allow_null": _setting("boolean", "Allow Null", False),
        },
    },
    # Layout
    "repeater": {
        "label": "Repeater",
        "description": "Repeatable group of sub-fields.",
        "category": FieldCategory.LAYOUT,
        "icon": "list",
        "has_sub_fields": True,
        "schema": {
            "min": _setting("number", "Minimum Rows", 0),
            "max": _setting("number", "Maximum Rows", 0),
            "layout": _setting("select", "Layout", "table", choices={"table": "Table", "block": "Block", "row": "Row"}),
            "button_label": _setting("text", "Button Label", "Add Row"),
            "collapsed": _setting("text", "Collapsed Field"),
        },
    },
    "group": {
        "label": "Group",
        "description": "Fixed set of sub-fields stored together.",
        "category": FieldCategory.LAYOUT,
        "icon": "box",
        "has_sub_fields": True,
        "schema": {
            "layout": _setting("select", "Layout", "block", choices={"table": "Table", "block": "Block", "row": "Row"}),
        },
    },
}


def create_default_field_type_registry() -> FieldTypeRegistry:
    """Build a registry holding the built-in field types"""
    registry = FieldTypeRegistry()
    for key, config in BUILTIN_FIELD_TYPES.items():
        registry.register(key, config)
    logger.info(f"Registered {len(registry.get_all())} built-in field types")
    return registry


_field_type_registry: Optional[FieldTypeRegistry] = None


def get_field_type_registry() -> FieldTypeRegistry:
    """Shared registry for the API process (override the dependency in tests)"""
    global _field_type_registry
    if _field_type_registry is None:
        _field_type_registry = create_default_field_type_registry()
    return _field_type_registry
