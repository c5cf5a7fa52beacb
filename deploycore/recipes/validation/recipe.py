"""Validators that inspect a whole recommendation rather than one value."""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from deploycore.recipes.validation.results import ValidationResult

if TYPE_CHECKING:  # pragma: no cover
    from deploycore.recipes.recommendation import Recommendation


class RecipeValidator(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    validation_failed_message: str = ""

    def validate_recommendation(self, recommendation: "Recommendation") -> ValidationResult:
        raise NotImplementedError


def _setting_value(recommendation: "Recommendation", setting_id: str) -> Any:
    option_setting = recommendation.get_option_setting(setting_id)
    return recommendation.get_option_setting_value(option_setting)


class MinMaxConstraintValidator(RecipeValidator):
    min_value_option_settings_id: str = ""
    max_value_option_settings_id: str = ""
    validation_failed_message: str = (
        "The value specified for {{MinValueOptionSettingsId}} must be less than or equal to "
        "the value specified for {{MaxValueOptionSettingsId}}"
    )

    def validate_recommendation(self, recommendation: "Recommendation") -> ValidationResult:
        message = (
            self.validation_failed_message
            .replace("{{MinValueOptionSettingsId}}", self.min_value_option_settings_id)
            .replace("{{MaxValueOptionSettingsId}}", self.max_value_option_settings_id)
        )
        min_value = _setting_value(recommendation, self.min_value_option_settings_id)
        max_value = _setting_value(recommendation, self.max_value_option_settings_id)
        if min_value is None or max_value is None:
            return ValidationResult.valid()
        try:
            if float(min_value) <= float(max_value):
                return ValidationResult.valid()
        except (TypeError, ValueError):
            pass
        return ValidationResult.failed(message)


# Fargate task sizes: CPU units -> allowed memory (MiB)
FARGATE_CPU_MEMORY_LIMITS: Dict[str, List[str]] = {
    "256": ["512", "1024", "2048"],
    "512": [str(m) for m in range(1024, 4096 + 1, 1024)],
    "1024": [str(m) for m in range(2048, 8192 + 1, 1024)],
    "2048": [str(m) for m in range(4096, 16384 + 1, 1024)],
    "4096": [str(m) for m in range(8192, 30720 + 1, 1024)],
}


def _normalize_size(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    try:
        return str(int(float(text)))
    except ValueError:
        return text


class FargateTaskSizeCpuMemoryLimitsValidator(RecipeValidator):
    cpu_option_settings_id: str = "TaskCpu"
    memory_option_settings_id: str = "TaskMemory"
    invalid_cpu_value_validation_failed_message: str = "Cpu value {{cpu}} is not valid. Valid values are {{validCpuValues}}"
    validation_failed_message: str = (
        "Cpu value {{cpu}} is not compatible with memory value {{memory}}. "
        "Allowed memory values are {{memoryList}}"
    )

    def validate_recommendation(self, recommendation: "Recommendation") -> ValidationResult:
        cpu = _normalize_size(_setting_value(recommendation, self.cpu_option_settings_id))
        memory = _normalize_size(_setting_value(recommendation, self.memory_option_settings_id))
        if cpu is None or memory is None:
            return ValidationResult.valid()

        allowed = FARGATE_CPU_MEMORY_LIMITS.get(cpu)
        if allowed is None:
            return ValidationResult.failed(
                self.invalid_cpu_value_validation_failed_message
                .replace("{{cpu}}", cpu)
                .replace("{{validCpuValues}}", ", ".join(FARGATE_CPU_MEMORY_LIMITS))
            )
        if memory in allowed:
            return ValidationResult.valid()
        return ValidationResult.failed(
            self.validation_failed_message
            .replace("{{cpu}}", cpu)
            .replace("{{memory}}", memory)
            .replace("{{memoryList}}", ", ".join(allowed))
        )
