"""Validator factory: turns serialized validator configs into validator instances.

Construction dispatches on ``kind`` alone. The ``configuration`` payload is
reduced to plain field data and handed to the class registered for ``kind``,
which keeps the fields it declares and ignores the rest. A payload written
for a different validator therefore produces the ``kind``'s validator with
any shared fields (typically ``validationFailedMessage``) borrowed from it.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, MutableMapping, Type

from pydantic import BaseModel

from deploycore.common import metrics
from deploycore.common.errors import ValidatorKindUnmappedError
from deploycore.recipes.models import (
    OptionSettingItemValidatorConfig,
    OptionSettingItemValidatorKind,
    RecipeValidatorConfig,
    RecipeValidatorKind,
)
from deploycore.recipes.validation.option_settings import (
    DirectoryExistsValidator,
    DockerBuildArgsValidator,
    DotnetPublishArgsValidator,
    OptionSettingItemValidator,
    RangeValidator,
    RegexValidator,
    RequiredValidator,
    StringLengthValidator,
)
from deploycore.recipes.validation.recipe import (
    FargateTaskSizeCpuMemoryLimitsValidator,
    MinMaxConstraintValidator,
    RecipeValidator,
)
from deploycore.recipes.validation.results import ValidationResult

__all__ = [
    "OPTION_SETTING_ITEM_VALIDATORS",
    "RECIPE_VALIDATORS",
    "ValidationResult",
    "OptionSettingItemValidator",
    "RecipeValidator",
    "build_option_setting_item_validators",
    "build_recipe_validators",
    "register_option_setting_item_validator",
    "register_recipe_validator",
]

logger = logging.getLogger(__name__)


OPTION_SETTING_ITEM_VALIDATORS: Dict[OptionSettingItemValidatorKind, Type[OptionSettingItemValidator]] = {
    OptionSettingItemValidatorKind.Range: RangeValidator,
    OptionSettingItemValidatorKind.Regex: RegexValidator,
    OptionSettingItemValidatorKind.Required: RequiredValidator,
    OptionSettingItemValidatorKind.StringLength: StringLengthValidator,
    OptionSettingItemValidatorKind.DirectoryExists: DirectoryExistsValidator,
    OptionSettingItemValidatorKind.DockerBuildArgs: DockerBuildArgsValidator,
    OptionSettingItemValidatorKind.DotnetPublishArgs: DotnetPublishArgsValidator,
}

RECIPE_VALIDATORS: Dict[RecipeValidatorKind, Type[RecipeValidator]] = {
    RecipeValidatorKind.FargateTaskSizeCpuMemoryLimits: FargateTaskSizeCpuMemoryLimitsValidator,
    RecipeValidatorKind.MinMaxConstraint: MinMaxConstraintValidator,
}


def _register(registry: MutableMapping[Any, Any], kind: Any, validator_cls: Any, overwrite: bool) -> None:
    if not overwrite and kind in registry:
        raise ValueError(f"Validator kind '{kind}' is already registered")
    registry[kind] = validator_cls


def register_option_setting_item_validator(
    kind: OptionSettingItemValidatorKind,
    validator_cls: Type[OptionSettingItemValidator],
    *,
    overwrite: bool = False,
) -> None:
    _register(OPTION_SETTING_ITEM_VALIDATORS, kind, validator_cls, overwrite)


def register_recipe_validator(
    kind: RecipeValidatorKind,
    validator_cls: Type[RecipeValidator],
    *,
    overwrite: bool = False,
) -> None:
    _register(RECIPE_VALIDATORS, kind, validator_cls, overwrite)


def _configuration_fields(configuration: Any) -> Dict[str, Any]:
    if configuration is None:
        return {}
    if isinstance(configuration, BaseModel):
        return configuration.model_dump(by_alias=True)
    if isinstance(configuration, Mapping):
        return dict(configuration)
    raise TypeError(f"Unsupported validator configuration payload: {type(configuration).__name__}")


def _build(kind: Any, configuration: Any, registry: Mapping[Any, Type[BaseModel]], scope: str) -> Any:
    validator_cls = registry.get(kind)
    if validator_cls is None:
        raise ValidatorKindUnmappedError(kind, scope)
    validator = validator_cls.model_validate(_configuration_fields(configuration))
    metrics.VALIDATORS_BUILT_TOTAL.labels(scope=scope).inc()
    logger.debug("validator.built scope=%s kind=%s class=%s", scope, getattr(kind, "value", kind), validator_cls.__name__)
    return validator


def build_option_setting_item_validators(
    configs: Iterable[OptionSettingItemValidatorConfig],
) -> List[OptionSettingItemValidator]:
    return [_build(c.kind, c.configuration, OPTION_SETTING_ITEM_VALIDATORS, "option_setting") for c in configs]


def build_recipe_validators(configs: Iterable[RecipeValidatorConfig]) -> List[RecipeValidator]:
    return [_build(c.kind, c.configuration, RECIPE_VALIDATORS, "recipe") for c in configs]
