"""Validators applied to a single option setting value."""
from __future__ import annotations

import os
import re
import shlex
from typing import Any, ClassVar, List, Tuple

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from deploycore.recipes.validation.results import ValidationResult

INT32_MIN = -2147483648
INT32_MAX = 2147483647


def _as_text(value: Any) -> str:
    return "" if value is None else str(value)


class OptionSettingItemValidator(BaseModel):
    """Base class; fields are read from the validator config's ``configuration``.

    Unknown configuration fields are ignored so a payload written for another
    validator still yields whatever fields this one shares with it.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    validation_failed_message: str = ""

    def validate_value(self, value: Any) -> ValidationResult:
        raise NotImplementedError


class RequiredValidator(OptionSettingItemValidator):
    validation_failed_message: str = "Value can not be empty"

    def validate_value(self, value: Any) -> ValidationResult:
        if _as_text(value) == "":
            return ValidationResult.failed(self.validation_failed_message)
        return ValidationResult.valid()


class RangeValidator(OptionSettingItemValidator):
    min: int = INT32_MIN
    max: int = INT32_MAX
    allow_empty_string: bool = False
    validation_failed_message: str = "Value must be greater than or equal to {{Min}} and less than or equal to {{Max}}"

    def validate_value(self, value: Any) -> ValidationResult:
        message = (
            self.validation_failed_message
            .replace("{{Min}}", str(self.min))
            .replace("{{Max}}", str(self.max))
        )
        text = _as_text(value)
        if self.allow_empty_string and text == "":
            return ValidationResult.valid()
        if isinstance(value, bool):
            return ValidationResult.failed(message)
        try:
            number = value if isinstance(value, int) else int(text.strip())
        except ValueError:
            return ValidationResult.failed(message)
        if self.min <= number <= self.max:
            return ValidationResult.valid()
        return ValidationResult.failed(message)


class RegexValidator(OptionSettingItemValidator):
    regex: str = ""
    allow_empty_string: bool = False
    validation_failed_message: str = "Value must match Regex {{Regex}}"

    def validate_value(self, value: Any) -> ValidationResult:
        text = _as_text(value)
        if self.allow_empty_string and text == "":
            return ValidationResult.valid()
        if re.search(self.regex, text):
            return ValidationResult.valid()
        return ValidationResult.failed(self.validation_failed_message.replace("{{Regex}}", self.regex))


class StringLengthValidator(OptionSettingItemValidator):
    min_length: int = 0
    max_length: int = INT32_MAX
    validation_failed_message: str = "Value must be between {{MinLength}} and {{MaxLength}} characters."

    def validate_value(self, value: Any) -> ValidationResult:
        length = len(_as_text(value))
        if self.min_length <= length <= self.max_length:
            return ValidationResult.valid()
        message = (
            self.validation_failed_message
            .replace("{{MinLength}}", str(self.min_length))
            .replace("{{MaxLength}}", str(self.max_length))
        )
        return ValidationResult.failed(message)


class DirectoryExistsValidator(OptionSettingItemValidator):
    validation_failed_message: str = "The specified directory does not exist."

    def validate_value(self, value: Any) -> ValidationResult:
        text = _as_text(value).strip()
        # Empty means "not configured"; Required covers mandatory paths
        if not text or os.path.isdir(os.path.expanduser(text)):
            return ValidationResult.valid()
        return ValidationResult.failed(self.validation_failed_message)


class _BlockedArgumentsValidator(OptionSettingItemValidator):
    blocked_args: ClassVar[Tuple[str, ...]] = ()

    def _invalid_args(self, text: str) -> List[str]:
        invalid: List[str] = []
        for arg in shlex.split(text):
            for blocked in self.blocked_args:
                if arg == blocked or arg.startswith(blocked + "="):
                    if blocked not in invalid:
                        invalid.append(blocked)
        return invalid

    def validate_value(self, value: Any) -> ValidationResult:
        text = _as_text(value).strip()
        if not text:
            return ValidationResult.valid()
        try:
            invalid = self._invalid_args(text)
        except ValueError as e:
            return ValidationResult.failed(f"Arguments could not be parsed: {e}")
        if invalid:
            return ValidationResult.failed(self.validation_failed_message.replace("{{InvalidArgs}}", ", ".join(invalid)))
        return ValidationResult.valid()


class DockerBuildArgsValidator(_BlockedArgumentsValidator):
    blocked_args: ClassVar[Tuple[str, ...]] = ("-t", "--tag", "-f", "--file")
    validation_failed_message: str = "The Docker build arguments {{InvalidArgs}} are set by the deployment tool and cannot be overridden."


class DotnetPublishArgsValidator(_BlockedArgumentsValidator):
    blocked_args: ClassVar[Tuple[str, ...]] = (
        "-o",
        "--output",
        "-c",
        "--configuration",
        "--self-contained",
        "--no-self-contained",
    )
    validation_failed_message: str = "The dotnet publish arguments {{InvalidArgs}} are set by the deployment tool and cannot be overridden."
