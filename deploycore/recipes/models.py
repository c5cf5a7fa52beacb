"""Pydantic models for recipe definition documents and their option setting trees."""
from __future__ import annotations

import copy
from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr
from pydantic.alias_generators import to_camel

from deploycore.common import metrics
from deploycore.common.errors import ValidationFailedError
from deploycore.recipes.tokens import apply_replacement_tokens


class _Document(BaseModel):
    # camelCase on the wire, snake_case in Python
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DeploymentTypes(str, Enum):
    CdkProject = "CdkProject"
    BeanstalkEnvironment = "BeanstalkEnvironment"
    ElasticContainerRegistryImage = "ElasticContainerRegistryImage"


class DeploymentBundleTypes(str, Enum):
    Container = "Container"
    DotnetPublishZipFile = "DotnetPublishZipFile"


class OptionSettingValueType(str, Enum):
    String = "String"
    Int = "Int"
    Double = "Double"
    Bool = "Bool"
    KeyValue = "KeyValue"
    List = "List"
    Object = "Object"


class OptionSettingItemValidatorKind(str, Enum):
    Range = "Range"
    Regex = "Regex"
    Required = "Required"
    StringLength = "StringLength"
    DirectoryExists = "DirectoryExists"
    DockerBuildArgs = "DockerBuildArgs"
    DotnetPublishArgs = "DotnetPublishArgs"


class RecipeValidatorKind(str, Enum):
    FargateTaskSizeCpuMemoryLimits = "FargateTaskSizeCpuMemoryLimits"
    MinMaxConstraint = "MinMaxConstraint"


class OptionSettingItemValidatorConfig(_Document):
    """Serialized setting validator: ``kind`` picks the class, ``configuration`` is opaque."""

    kind: OptionSettingItemValidatorKind
    configuration: Any = None


class RecipeValidatorConfig(_Document):
    kind: RecipeValidatorKind
    configuration: Any = None


class DependencyRule(_Document):
    id: str
    value: Any = None


def convert_value(value: Any, as_type: type) -> Any:
    """Coerce a resolved setting value to ``as_type`` (int, float, bool or str)."""
    if value is None:
        return None
    if as_type is bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in ("true", "false"):
                return lowered == "true"
            raise ValueError(f"cannot convert {value!r} to bool")
        if isinstance(value, (int, float)):
            return bool(value)
        raise ValueError(f"cannot convert {value!r} to bool")
    if isinstance(value, as_type) and not isinstance(value, bool):
        return value
    return as_type(value)


class OptionSettingItem(_Document):
    id: str
    name: str = ""
    description: str = ""
    type: OptionSettingValueType = OptionSettingValueType.String
    default_value: Any = None
    advanced: bool = False
    updatable: bool = True
    child_option_settings: List[OptionSettingItem] = Field(default_factory=list)
    depends_on: List[DependencyRule] = Field(default_factory=list)
    validators: List[OptionSettingItemValidatorConfig] = Field(default_factory=list)

    _value_override: Any = PrivateAttr(default=None)

    @property
    def has_value_override(self) -> bool:
        return self._value_override is not None

    def get_default_value(self, replacement_tokens: Mapping[str, str]) -> Any:
        if self.default_value is None:
            return None
        return apply_replacement_tokens(copy.deepcopy(self.default_value), replacement_tokens)

    def get_value(
        self,
        replacement_tokens: Mapping[str, str],
        displayable_option_settings: Optional[Mapping[str, bool]] = None,
    ) -> Any:
        """Resolve the override, the Object children, or the default, in that order.

        For Object settings ``displayable_option_settings`` maps child Ids to
        whether the child is currently shown; hidden children are left out.
        """
        if self._value_override is not None:
            return apply_replacement_tokens(copy.deepcopy(self._value_override), replacement_tokens)

        if self.type == OptionSettingValueType.Object:
            object_value: Dict[str, Any] = {}
            for child in self.child_option_settings:
                if displayable_option_settings is not None and not displayable_option_settings.get(child.id, True):
                    continue
                child_value = child.get_value(replacement_tokens)
                if child_value is not None:
                    object_value[child.id] = child_value
            return object_value or None

        return self.get_default_value(replacement_tokens)

    def set_value_override(self, value: Any, *, validate: bool = True) -> None:
        """Install ``value`` as this setting's override.

        Object settings take a mapping of child Id to value and push each entry
        down to the matching child; keys with no matching child are ignored.
        """
        if self.type == OptionSettingValueType.Object:
            if value is None:
                for child in self.child_option_settings:
                    child.clear_value_override()
                return
            if not isinstance(value, Mapping):
                raise ValidationFailedError(self.id, "Object option settings expect a mapping of child Ids to values")
            for child in self.child_option_settings:
                if child.id in value:
                    child.set_value_override(value[child.id], validate=validate)
            return

        if validate:
            for validator in self.build_validators():
                result = validator.validate_value(value)
                if not result.is_valid:
                    metrics.VALIDATION_FAILURES_TOTAL.labels(kind=type(validator).__name__).inc()
                    raise ValidationFailedError(self.id, result.validation_failed_message or "")
        self._value_override = value

    def clear_value_override(self) -> None:
        self._value_override = None
        for child in self.child_option_settings:
            child.clear_value_override()

    def build_validators(self) -> list:
        # Late import; the validation package imports this module
        from deploycore.recipes.validation import build_option_setting_item_validators

        return build_option_setting_item_validators(self.validators)

    def walk(self) -> Iterator[OptionSettingItem]:
        yield self
        for child in self.child_option_settings:
            yield from child.walk()


class RecipeDefinition(_Document):
    id: str
    version: str = ""
    name: str = ""
    deployment_type: DeploymentTypes = DeploymentTypes.CdkProject
    deployment_bundle_type: DeploymentBundleTypes = DeploymentBundleTypes.Container
    cdk_project_template: Optional[str] = None
    cdk_project_template_id: Optional[str] = None
    description: str = ""
    short_description: str = ""
    target_service: str = ""
    option_settings: List[OptionSettingItem] = Field(default_factory=list)
    validators: List[RecipeValidatorConfig] = Field(default_factory=list)

    def build_validators(self) -> list:
        from deploycore.recipes.validation import build_recipe_validators

        return build_recipe_validators(self.validators)


def find_option_setting(option_settings: Sequence[OptionSettingItem], path: Optional[str]) -> Optional[OptionSettingItem]:
    """Walk a dotted path through ``option_settings``; None when a segment is missing.

    A ``KeyValue`` node ends the walk even if segments remain: the rest of the
    path names a key inside that setting's dictionary.
    """
    if not path:
        return None
    candidates: Sequence[OptionSettingItem] = option_settings
    option_setting: Optional[OptionSettingItem] = None
    for segment in path.split("."):
        option_setting = next((os_ for os_ in candidates if os_.id == segment), None)
        if option_setting is None:
            return None
        if option_setting.type == OptionSettingValueType.KeyValue:
            return option_setting
        candidates = option_setting.child_option_settings
    return option_setting


OptionSettingItem.model_rebuild()
