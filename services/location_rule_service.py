"""Location Rule Service - decides on which screens a fieldset is shown"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterable, Optional

from pydantic import BaseModel, Field as PydanticField, ValidationError

from core.logging_config import get_logger
from core.settings import settings
from schemas.location import LocationContext, LocationGroup, LocationOption, LocationRule, LocationTypeRead

logger = get_logger(__name__)

VALID_OPERATORS = ("==", "!=")
DEFAULT_TEMPLATE = "default"

Matcher = Callable[[str, str, LocationContext], bool]
OptionsProvider = Callable[[], list[dict[str, str]]]


class HostCatalog(BaseModel):
    """
    What the host platform exposes to location rules.

    Every list is a sequence of {value, label} entries.
    """
    post_types: list[LocationOption] = PydanticField(default_factory=lambda: [
        LocationOption(value="post", label="Post"),
        LocationOption(value="page", label="Page"),
        LocationOption(value="attachment", label="Media"),
    ])
    page_templates: list[LocationOption] = PydanticField(default_factory=list)
    categories: list[LocationOption] = PydanticField(default_factory=lambda: [
        LocationOption(value="uncategorized", label="Uncategorized"),
    ])
    post_formats: list[LocationOption] = PydanticField(default_factory=lambda: [
        LocationOption(value=key, label=label) for key, label in (
            ("standard", "Standard"), ("aside", "Aside"), ("chat", "Chat"),
            ("gallery", "Gallery"), ("link", "Link"), ("image", "Image"),
            ("quote", "Quote"), ("status", "Status"), ("video", "Video"),
            ("audio", "Audio"),
        )
    ])
    taxonomies: list[LocationOption] = PydanticField(default_factory=lambda: [
        LocationOption(value="category", label="Categories"),
        LocationOption(value="post_tag", label="Tags"),
    ])
    user_roles: list[LocationOption] = PydanticField(default_factory=lambda: [
        LocationOption(value=key, label=label) for key, label in (
            ("administrator", "Administrator"), ("editor", "Editor"),
            ("author", "Author"), ("contributor", "Contributor"),
            ("subscriber", "Subscriber"),
        )
    ])
    options_pages: list[LocationOption] = PydanticField(default_factory=list)


def load_host_catalog(path: Optional[str] = None) -> HostCatalog:
    """Read the host catalog from a JSON file, falling back to core defaults"""
    path = path or settings.HOST_CATALOG_PATH
    if not path:
        return HostCatalog()

    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        return HostCatalog.model_validate(data)
    except (OSError, ValueError, ValidationError) as e:
        logger.warning(f"Could not load host catalog from {path}: {e}")
        return HostCatalog()


@dataclass
class LocationType:
    key: str
    label: str
    matcher: Optional[Matcher] = None
    options_provider: Optional[OptionsProvider] = field(default=None, repr=False)


def compare(current: str, expected: str, operator: str) -> bool:
    if operator == "==":
        return current == expected
    if operator == "!=":
        return current != expected
    return False


def _membership(value: str, operator: str, members: Iterable[str]) -> bool:
    if operator not in VALID_OPERATORS:
        return False
    is_member = value in members
    return is_member if operator == "==" else not is_member


def _normalize_template(value: str) -> str:
    return DEFAULT_TEMPLATE if value in ("", DEFAULT_TEMPLATE) else value


def match_post_type(value: str, operator: str, context: LocationContext) -> bool:
    return compare(context.post_type, value, operator)


def match_page_template(value: str, operator: str, context: LocationContext) -> bool:
    return compare(_normalize_template(context.page_template), _normalize_template(value), operator)


def match_post_category(value: str, operator: str, context: LocationContext) -> bool:
    return _membership(value, operator, context.categories)


def match_post_format(value: str, operator: str, context: LocationContext) -> bool:
    return compare(context.post_format or "standard", value, operator)


def match_taxonomy(value: str, operator: str, context: LocationContext) -> bool:
    return _membership(value, operator, context.taxonomies)


def match_user_role(value: str, operator: str, context: LocationContext) -> bool:
    return _membership(value, operator, context.user_roles)


def match_options_page(value: str, operator: str, context: LocationContext) -> bool:
    return compare(context.options_page, value, operator)


class LocationRuleEvaluator:
    """
    Evaluates OR-of-AND location groups against a runtime context.

    Never raises for malformed input: a broken rule counts as a non-match
    for its group and evaluation continues with the next group.
    """

    def __init__(self):
        self._location_types: dict[str, LocationType] = {}

    def register_location_type(
        self,
        key: str,
        label: str,
        matcher: Optional[Matcher] = None,
        options_provider: Optional[OptionsProvider] = None,
    ) -> LocationType:
        location_type = LocationType(key=key, label=label, matcher=matcher, options_provider=options_provider)
        self._location_types[key] = location_type
        logger.debug(f"Registered location type: {key}")
        return location_type

    def unregister_location_type(self, key: str) -> None:
        self._location_types.pop(key, None)

    def get_location_type(self, key: str) -> Optional[LocationType]:
        return self._location_types.get(key)

    def get_location_types(self) -> list[LocationType]:
        return list(self._location_types.values())

    def get_location_types_for_api(self) -> list[LocationTypeRead]:
        types = []
        for location_type in self._location_types.values():
            options = []
            if location_type.options_provider is not None:
                try:
                    options = [LocationOption.model_validate(option) for option in location_type.options_provider()]
                except Exception as e:
                    logger.warning_ctx(
                        "Location options provider failed",
                        location_type=location_type.key,
                        error=str(e),
                    )
            types.append(LocationTypeRead(key=location_type.key, label=location_type.label, options=options))
        return types

    def matches(self, groups: Optional[Iterable[Any]], context: Any) -> bool:
        """True if any group matches; an empty rule list matches everywhere"""
        groups = list(groups or [])
        if not groups:
            return True

        if not isinstance(context, LocationContext):
            context = LocationContext.model_validate(context or {})

        for group in groups:
            if self._group_matches(group, context):
                return True
        return False

    def _group_matches(self, group: Any, context: LocationContext) -> bool:
        try:
            rules = self._rules_of(group)
        except (TypeError, ValueError, ValidationError) as e:
            logger.warning(f"Skipping malformed location group: {e}")
            return False

        for rule in rules:
            location_type = self._location_types.get(rule.type)
            if location_type is None or location_type.matcher is None:
                # Unknown rule types do not constrain the group
                continue

            if rule.operator not in VALID_OPERATORS:
                logger.warning_ctx("Invalid location operator", rule_type=rule.type, operator=rule.operator)
                return False

            try:
                if not location_type.matcher(rule.value, rule.operator, context):
                    return False
            except Exception as e:
                logger.warning_ctx("Location matcher failed", rule_type=rule.type, error=str(e))
                return False
        return True

    @staticmethod
    def _rules_of(group: Any) -> list[LocationRule]:
        if isinstance(group, LocationGroup):
            return group.rules
        if isinstance(group, dict):
            raw_rules = group.get("rules", [])
        elif isinstance(group, (list, tuple)):
            raw_rules = group
        else:
            raise TypeError(f"Unsupported location group: {type(group).__name__}")

        return [
            rule if isinstance(rule, LocationRule) else LocationRule.model_validate(rule)
            for rule in raw_rules
        ]

    def filter_fieldsets(self, fieldsets: Iterable[Any], context: Any) -> list[Any]:
        """Active fieldsets whose location groups match, in menu_order order"""
        if not isinstance(context, LocationContext):
            context = LocationContext.model_validate(context or {})

        candidates = sorted(
            (fieldset for fieldset in fieldsets if fieldset.is_active),
            key=lambda fieldset: (fieldset.menu_order, fieldset.id),
        )
        return [fieldset for fieldset in candidates if self.matches(fieldset.location_groups, context)]


def _options(entries: list[LocationOption]) -> OptionsProvider:
    return lambda: [entry.model_dump() for entry in entries]


def create_default_location_evaluator(catalog: Optional[HostCatalog] = None) -> LocationRuleEvaluator:
    """Evaluator with the built-in location types wired to a host catalog"""
    catalog = catalog or load_host_catalog()
    templates = [LocationOption(value=DEFAULT_TEMPLATE, label="Default Template")] + [
        template for template in catalog.page_templates if template.value != DEFAULT_TEMPLATE
    ]

    evaluator = LocationRuleEvaluator()
    evaluator.register_location_type("post_type", "Post Type", match_post_type, _options(catalog.post_types))
    evaluator.register_location_type("page_template", "Page Template", match_page_template, _options(templates))
    evaluator.register_location_type("post_category", "Post Category", match_post_category, _options(catalog.categories))
    evaluator.register_location_type("post_format", "Post Format", match_post_format, _options(catalog.post_formats))
    evaluator.register_location_type("taxonomy", "Taxonomy", match_taxonomy, _options(catalog.taxonomies))
    evaluator.register_location_type("user_role", "User Role", match_user_role, _options(catalog.user_roles))
    evaluator.register_location_type("options_page", "Options Page", match_options_page, _options(catalog.options_pages))
    return evaluator


_location_evaluator: Optional[LocationRuleEvaluator] = None


def get_location_evaluator() -> LocationRuleEvaluator:
    """Shared evaluator for the API process (override the dependency in tests)"""
    global _location_evaluator
    if _location_evaluator is None:
        _location_evaluator = create_default_location_evaluator()
    return _location_evaluator


def list_fieldsets_for_context(context: Any, fieldset_repository, evaluator: Optional[LocationRuleEvaluator] = None) -> list[Any]:
    """Stored active fieldsets shown for a screen context, in menu_order order"""
    evaluator = evaluator or get_location_evaluator()
    return evaluator.filter_fieldsets(fieldset_repository.get_all(active_only=True), context)
