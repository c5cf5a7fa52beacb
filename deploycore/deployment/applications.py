"""Select the stacks that are applications previously deployed by this tool."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from deploycore.deployment.manifest import DeploymentManifestModel
from deploycore.recipes.recommendation import Recommendation

logger = logging.getLogger(__name__)

# Tag carrying the recipe id on stacks this tool created
STACK_TAG = "aws-dotnet-deploy"
STACK_DESCRIPTION_PREFIX = "AWSDotnetDeployCDKStack"
EXCLUDED_STACK_STATUSES = frozenset({"DELETE_IN_PROGRESS", "ROLLBACK_COMPLETE"})


@dataclass(frozen=True)
class StackSummary:
    stack_name: str
    description: str = ""
    status: str = ""
    tags: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class CloudApplication:
    name: str
    recipe_id: str
    stack_status: str = ""


def get_existing_deployed_applications(
    stacks: Iterable[StackSummary],
    recommendations: Optional[Iterable[Recommendation]] = None,
    manifest: Optional[DeploymentManifestModel] = None,
    aws_account_id: Optional[str] = None,
    aws_region: Optional[str] = None,
) -> List[CloudApplication]:
    """Filter ``stacks`` down to applications that can be redeployed.

    When ``recommendations`` is given, even empty, a stack survives only if
    its recipe id matches one of them. Stacks named in the manifest's entry
    for the account/region come first, most recent first.
    """
    compatible_recipe_ids = None
    if recommendations is not None:
        compatible_recipe_ids = {r.recipe.id for r in recommendations}

    applications: List[CloudApplication] = []
    for stack in stacks:
        recipe_id = stack.tags.get(STACK_TAG)
        if not recipe_id:
            continue
        if not (stack.description or "").startswith(STACK_DESCRIPTION_PREFIX):
            continue
        if stack.status in EXCLUDED_STACK_STATUSES:
            continue
        if compatible_recipe_ids is not None and recipe_id not in compatible_recipe_ids:
            continue
        applications.append(CloudApplication(name=stack.stack_name, recipe_id=recipe_id, stack_status=stack.status))

    if manifest is not None and aws_account_id and aws_region:
        recent: List[str] = []
        for entry in manifest.last_deployed_stacks or []:
            if entry.aws_account_id == aws_account_id and entry.aws_region == aws_region:
                recent = list(entry.stacks)
                break
        rank = {name: i for i, name in enumerate(recent)}
        # sorted() is stable, so unlisted applications keep their input order
        applications = sorted(applications, key=lambda app: rank.get(app.name, len(rank)))

    logger.debug("applications.existing count=%d", len(applications))
    return applications
