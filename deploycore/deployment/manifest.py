"""Deployment manifest document (``aws-deployments.json``) and pure update helpers.

The helpers take a parsed manifest (or None when no manifest exists yet) and
return an updated copy. Reading and writing the file is left to the caller.
"""
from __future__ import annotations

import logging
import os
from typing import Callable, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from deploycore.common.errors import FailedToUpdateDeploymentManifestError, InvalidDeploymentManifestError

logger = logging.getLogger(__name__)

DEPLOYMENT_MANIFEST_FILE_NAME = "aws-deployments.json"


class _ManifestDocument(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LastDeployedStack(_ManifestDocument):
    aws_account_id: str
    aws_region: str
    stacks: List[str] = Field(default_factory=list)


class DeploymentManifestEntry(_ManifestDocument):
    save_cdk_directory_relative_path: Optional[str] = None


class DeploymentManifestModel(_ManifestDocument):
    last_deployed_stacks: Optional[List[LastDeployedStack]] = None
    deployment_manifest_entries: Optional[List[DeploymentManifestEntry]] = None


def manifest_file_path(target_application_path: str) -> str:
    """The manifest lives next to the target project file."""
    return os.path.join(os.path.dirname(os.path.abspath(target_application_path)), DEPLOYMENT_MANIFEST_FILE_NAME)


def parse_manifest(text: str) -> Optional[DeploymentManifestModel]:
    """Parse manifest JSON; a literal ``null`` document yields None."""
    try:
        if text.strip() == "null":
            return None
        return DeploymentManifestModel.model_validate_json(text)
    except (ValidationError, ValueError) as e:
        raise InvalidDeploymentManifestError("The Deployment Manifest File is invalid.") from e


def dump_manifest(manifest: DeploymentManifestModel) -> str:
    return manifest.model_dump_json(by_alias=True, exclude_none=True, indent=2)


def _find_stacks(
    manifest: Optional[DeploymentManifestModel],
    aws_account_id: Optional[str],
    aws_region: Optional[str],
) -> Optional[LastDeployedStack]:
    if manifest is None or not manifest.last_deployed_stacks:
        return None
    return next(
        (
            entry
            for entry in manifest.last_deployed_stacks
            if entry.aws_account_id == aws_account_id and entry.aws_region == aws_region
        ),
        None,
    )


def update_last_deployed_stack(
    manifest: Optional[DeploymentManifestModel],
    stack_name: str,
    aws_account_id: Optional[str],
    aws_region: Optional[str],
) -> DeploymentManifestModel:
    """Record ``stack_name`` as the most recent deployment for the account/region."""
    if not aws_account_id or not aws_region:
        raise FailedToUpdateDeploymentManifestError(
            f"Failed to update the deployment manifest file to include the last deployed to stack '{stack_name}'. "
            "The AWS Account Id or Region is not defined."
        )

    updated = manifest.model_copy(deep=True) if manifest is not None else DeploymentManifestModel(
        last_deployed_stacks=[], deployment_manifest_entries=[]
    )
    entry = _find_stacks(updated, aws_account_id, aws_region)
    if entry is None:
        entry = LastDeployedStack(aws_account_id=aws_account_id, aws_region=aws_region, stacks=[])
        if updated.last_deployed_stacks is None:
            updated.last_deployed_stacks = []
        updated.last_deployed_stacks.append(entry)

    if stack_name in entry.stacks:
        entry.stacks.remove(stack_name)
    entry.stacks.insert(0, stack_name)
    logger.debug("manifest.last_deployed_stack stack=%s account=%s region=%s", stack_name, aws_account_id, aws_region)
    return updated


def delete_last_deployed_stack(
    manifest: Optional[DeploymentManifestModel],
    stack_name: str,
    aws_account_id: Optional[str],
    aws_region: Optional[str],
) -> Optional[DeploymentManifestModel]:
    if manifest is None:
        return None
    updated = manifest.model_copy(deep=True)
    entry = _find_stacks(updated, aws_account_id, aws_region)
    if entry is not None and stack_name in entry.stacks:
        entry.stacks.remove(stack_name)
    return updated


def clean_orphan_stacks(
    manifest: Optional[DeploymentManifestModel],
    deployed_stacks: Iterable[str],
    aws_account_id: Optional[str],
    aws_region: Optional[str],
) -> Optional[DeploymentManifestModel]:
    """Drop stacks from the account/region entry that are no longer deployed."""
    if manifest is None:
        return None
    updated = manifest.model_copy(deep=True)
    entry = _find_stacks(updated, aws_account_id, aws_region)
    if entry is None:
        return updated
    live = set(deployed_stacks)
    orphans = [s for s in entry.stacks if s not in live]
    entry.stacks = [s for s in entry.stacks if s in live]
    if orphans:
        logger.info("manifest.orphan_stacks_removed count=%d account=%s region=%s", len(orphans), aws_account_id, aws_region)
    return updated


def add_save_cdk_project(
    manifest: Optional[DeploymentManifestModel],
    target_application_path: str,
    save_cdk_directory_path: str,
    exists: Callable[[str], bool] = os.path.isdir,
) -> Optional[DeploymentManifestModel]:
    """Add a saved CDK project directory, stored relative to the project's directory.

    Nothing is added when ``save_cdk_directory_path`` does not exist.
    """
    if not exists(save_cdk_directory_path):
        return manifest.model_copy(deep=True) if manifest is not None else None

    project_directory = os.path.dirname(os.path.abspath(target_application_path))
    relative_path = os.path.relpath(os.path.abspath(save_cdk_directory_path), project_directory)
    entry = DeploymentManifestEntry(save_cdk_directory_relative_path=relative_path)

    if manifest is None:
        return DeploymentManifestModel(last_deployed_stacks=[], deployment_manifest_entries=[entry])
    updated = manifest.model_copy(deep=True)
    if updated.deployment_manifest_entries is None:
        updated.deployment_manifest_entries = []
    updated.deployment_manifest_entries.append(entry)
    return updated


def get_recipe_definition_paths(
    manifest: Optional[DeploymentManifestModel],
    target_application_path: str,
    exists: Callable[[str], bool] = os.path.isdir,
) -> List[str]:
    """Absolute paths of saved CDK project directories that still exist."""
    if manifest is None or not manifest.deployment_manifest_entries:
        return []
    project_directory = os.path.dirname(os.path.abspath(target_application_path))
    paths: List[str] = []
    for entry in manifest.deployment_manifest_entries:
        if not entry.save_cdk_directory_relative_path:
            continue
        absolute_path = os.path.normpath(os.path.join(project_directory, entry.save_cdk_directory_relative_path))
        if exists(absolute_path):
            paths.append(absolute_path)
    return paths
