"""Exception types raised by deploycore."""
from __future__ import annotations

from typing import Optional


class DeployCoreError(Exception):
    """Base class for every error raised by deploycore."""


class SettingNotFoundError(DeployCoreError, KeyError):
    """A dotted option setting path did not resolve against the recommendation."""

    def __init__(self, path: Optional[str], recipe_name: str = "") -> None:
        self.path = path
        self.recipe_name = recipe_name
        super().__init__(f"The Option Setting Item {path} does not exist as part of the {recipe_name} recipe")

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return str(self.args[0])


class ValidatorKindUnmappedError(DeployCoreError):
    """A validator kind has no registered implementation."""

    def __init__(self, kind: object, scope: str) -> None:
        self.kind = kind
        self.scope = scope
        super().__init__(f"No {scope} validator is registered for kind '{kind}'")


class ValidationFailedError(DeployCoreError, ValueError):
    """A value override was rejected by one of the setting's validators."""

    def __init__(self, setting_id: str, message: str) -> None:
        self.setting_id = setting_id
        self.validation_failed_message = message
        super().__init__(f"Invalid value for option setting '{setting_id}': {message}")


class InvalidDeploymentManifestError(DeployCoreError):
    """The deployment manifest document could not be parsed."""


class FailedToUpdateDeploymentManifestError(DeployCoreError):
    """The deployment manifest document could not be updated."""
