"""Recommendation: one recipe definition paired with one project, configured by the caller."""
from __future__ import annotations

import copy
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from deploycore.common.errors import SettingNotFoundError
from deploycore.common.project import ProjectDefinition
from deploycore.recipes import dependencies
from deploycore.recipes.models import (
    OptionSettingItem,
    OptionSettingValueType,
    RecipeDefinition,
    convert_value,
    find_option_setting,
)
from deploycore.recipes.tokens import collect_replacement_tokens
from deploycore.recipes.validation.results import ValidationResult

logger = logging.getLogger(__name__)


class Recommendation:
    """A recipe definition bound to a project.

    The recommendation owns deep copies of the recipe's option setting tree and
    of the deployment bundle settings, so overrides never leak back into the
    catalog or into other recommendations built from the same definition.
    """

    def __init__(
        self,
        recipe: RecipeDefinition,
        project_definition: ProjectDefinition,
        deployment_bundle_settings: Optional[Iterable[OptionSettingItem]] = None,
        computed_priority: int = 0,
        additional_replacements: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.recipe = recipe.model_copy(deep=True)
        self.project_definition = project_definition
        self.computed_priority = computed_priority
        self.deployment_bundle_settings: List[OptionSettingItem] = [
            s.model_copy(deep=True) for s in (deployment_bundle_settings or [])
        ]
        self.replacement_tokens: Dict[str, str] = {}
        self._is_existing_cloud_application = False

        collect_replacement_tokens(self.get_configurable_option_setting_items(), self.replacement_tokens)
        for key, value in (additional_replacements or {}).items():
            self.replacement_tokens[key] = value

    @property
    def project_path(self) -> str:
        return self.project_definition.project_path

    @property
    def name(self) -> str:
        return self.recipe.name

    @property
    def description(self) -> str:
        return self.recipe.description

    @property
    def short_description(self) -> str:
        return self.recipe.short_description

    @property
    def is_existing_cloud_application(self) -> bool:
        return self._is_existing_cloud_application

    def __repr__(self) -> str:
        return f"Recommendation(recipe={self.recipe.id!r}, priority={self.computed_priority})"

    def add_replacement_token(self, key: str, value: str) -> None:
        self.replacement_tokens[key] = value

    def get_configurable_option_setting_items(self) -> List[OptionSettingItem]:
        items = list(self.recipe.option_settings)
        seen = {id(item) for item in items}
        for item in self.deployment_bundle_settings:
            if id(item) not in seen:
                seen.add(id(item))
                items.append(item)
        return items

    def get_option_setting(self, json_path: Optional[str]) -> OptionSettingItem:
        """Return the option setting at the dot separated ``json_path``.

        Raises SettingNotFoundError when the path is empty or any segment does
        not match. Reaching a KeyValue setting stops the walk: a trailing
        segment is the dictionary key, which the caller handles.
        """
        option_setting = find_option_setting(self.get_configurable_option_setting_items(), json_path)
        if option_setting is None:
            raise SettingNotFoundError(json_path, self.recipe.name)
        return option_setting

    def get_option_setting_value(self, option_setting: OptionSettingItem, as_type: Optional[type] = None) -> Any:
        displayable_option_settings: Dict[str, bool] = {}
        if option_setting.type == OptionSettingValueType.Object:
            for child in option_setting.child_option_settings:
                displayable_option_settings[child.id] = self.is_option_setting_displayable(child)
        value = option_setting.get_value(self.replacement_tokens, displayable_option_settings)
        if as_type is None:
            return value
        return convert_value(value, as_type)

    def get_option_setting_default_value(self, option_setting: OptionSettingItem, as_type: Optional[type] = None) -> Any:
        value = option_setting.get_default_value(self.replacement_tokens)
        if as_type is None:
            return value
        return convert_value(value, as_type)

    def set_option_setting_value(self, json_path: str, value: Any, *, validate: bool = True) -> OptionSettingItem:
        option_setting = self.get_option_setting(json_path)
        option_setting.set_value_override(value, validate=validate)
        return option_setting

    def is_option_setting_displayable(self, option_setting: OptionSettingItem) -> bool:
        # TODO: decide whether a dependency on an unset (None) value should hide the setting
        return dependencies.is_option_setting_displayable(
            option_setting,
            self.get_option_setting,
            self.get_option_setting_value,
        )

    def is_summary_displayable(self, option_setting: OptionSettingItem) -> bool:
        """Whether the setting belongs in the summary of a previous deployment."""
        if not self.is_option_setting_displayable(option_setting):
            return False
        value = self.get_option_setting_value(option_setting)
        return value is not None and str(value) != ""

    def validate(self) -> List[ValidationResult]:
        """Run the recipe-level validators and return the failures."""
        failures: List[ValidationResult] = []
        for validator in self.recipe.build_validators():
            result = validator.validate_recommendation(self)
            if not result.is_valid:
                failures.append(result)
        return failures

    def apply_previous_settings(self, previous_settings: Mapping[str, Any]) -> "Recommendation":
        """Return a copy of this recommendation carrying a prior deployment's values.

        Only top-level recipe settings are matched by Id. A nested setting
        changes only through its parent Object's value. The receiver is left
        untouched.
        """
        recommendation = copy.deepcopy(self)
        recommendation._apply_previous_settings(previous_settings)
        return recommendation

    def _apply_previous_settings(self, previous_settings: Mapping[str, Any]) -> None:
        self._is_existing_cloud_application = True

        applied = 0
        for option_setting in self.recipe.option_settings:
            if option_setting.id in previous_settings:
                option_setting.set_value_override(previous_settings[option_setting.id], validate=False)
                applied += 1
        logger.info(
            "recommendation.previous_settings_applied recipe=%s applied=%d provided=%d",
            self.recipe.id,
            applied,
            len(previous_settings),
        )
