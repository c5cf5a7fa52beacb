import copy

import pytest

from deploycore.common.errors import SettingNotFoundError, ValidationFailedError
from deploycore.common.project import ProjectDefinition
from deploycore.recipes.models import (
    OptionSettingItem,
    OptionSettingItemValidatorConfig,
    OptionSettingItemValidatorKind,
    RecipeDefinition,
)
from deploycore.recipes.recommendation import Recommendation

RECIPE = {
    "id": "AspNetAppEcsFargate",
    "version": "0.1.0",
    "name": "ASP.NET Core App to Amazon ECS using AWS Fargate",
    "deploymentType": "CdkProject",
    "deploymentBundleType": "Container",
    "optionSettings": [
        {
            "id": "ApplicationIAMRole",
            "name": "Application IAM Role",
            "type": "Object",
            "childOptionSettings": [
                {"id": "CreateNew", "type": "Bool", "defaultValue": True},
                {
                    "id": "RoleArn",
                    "type": "String",
                    "defaultValue": "arn:aws:iam::{AccountId}:role/x",
                    "dependsOn": [{"id": "ApplicationIAMRole.CreateNew", "value": False}],
                },
            ],
        },
        {"id": "EnvironmentVariables", "type": "KeyValue", "defaultValue": {}},
        {"id": "A", "type": "String", "defaultValue": "a"},
        {"id": "B", "type": "String", "defaultValue": "b"},
        {
            "id": "DesiredCount",
            "type": "Int",
            "defaultValue": 3,
            "validators": [{"kind": "Range", "configuration": {"min": 1, "max": 5}}],
        },
    ],
}


def make_recommendation(recipe_doc=RECIPE, **kwargs):
    recipe = RecipeDefinition.model_validate(copy.deepcopy(recipe_doc))
    return Recommendation(recipe, ProjectDefinition(project_path="/src/App/App.csproj"), **kwargs)


def test_path_resolution():
    rec = make_recommendation()
    assert rec.get_option_setting("ApplicationIAMRole.RoleArn").id == "RoleArn"
    assert rec.get_option_setting("A").id == "A"


def test_missing_path_raises():
    rec = make_recommendation()
    with pytest.raises(SettingNotFoundError) as exc:
        rec.get_option_setting("ApplicationIAMRole.Foo")
    assert str(exc.value) == (
        "The Option Setting Item ApplicationIAMRole.Foo does not exist as part of the "
        "ASP.NET Core App to Amazon ECS using AWS Fargate recipe"
    )
    with pytest.raises(KeyError):
        rec.get_option_setting("")


def test_key_value_setting_ends_the_walk():
    rec = make_recommendation()
    assert rec.get_option_setting("EnvironmentVariables.ASPNETCORE_ENVIRONMENT").id == "EnvironmentVariables"


def test_tokens_are_seeded_empty_and_stay_literal():
    rec = make_recommendation()
    assert rec.replacement_tokens == {"{AccountId}": ""}
    role_arn = rec.get_option_setting("ApplicationIAMRole.RoleArn")
    assert rec.get_option_setting_value(role_arn) == "arn:aws:iam::{AccountId}:role/x"


def test_tokens_substitute_once_set():
    rec = make_recommendation()
    rec.add_replacement_token("{AccountId}", "123456789012")
    role_arn = rec.get_option_setting("ApplicationIAMRole.RoleArn")
    assert rec.get_option_setting_value(role_arn) == "arn:aws:iam::123456789012:role/x"
    assert rec.get_option_setting_default_value(role_arn) == "arn:aws:iam::123456789012:role/x"


def test_additional_replacements_override_seeded_tokens():
    rec = make_recommendation(additional_replacements={"{AccountId}": "999"})
    assert rec.replacement_tokens["{AccountId}"] == "999"


def test_dependency_hides_setting_and_object_value():
    rec = make_recommendation()
    role = rec.get_option_setting("ApplicationIAMRole")
    role_arn = rec.get_option_setting("ApplicationIAMRole.RoleArn")

    assert rec.is_option_setting_displayable(role_arn) is False
    assert rec.get_option_setting_value(role) == {"CreateNew": True}

    rec.set_option_setting_value("ApplicationIAMRole.CreateNew", False)
    assert rec.is_option_setting_displayable(role_arn) is True
    assert rec.get_option_setting_value(role) == {
        "CreateNew": False,
        "RoleArn": "arn:aws:iam::{AccountId}:role/x",
    }


def test_setting_without_rules_is_displayable():
    rec = make_recommendation()
    assert rec.is_option_setting_displayable(rec.get_option_setting("A")) is True


def test_unknown_dependency_target_raises():
    doc = copy.deepcopy(RECIPE)
    doc["optionSettings"].append({"id": "C", "dependsOn": [{"id": "Nope", "value": True}]})
    rec = make_recommendation(doc)
    with pytest.raises(SettingNotFoundError):
        rec.is_option_setting_displayable(rec.get_option_setting("C"))


def test_object_override_distributes_to_children():
    rec = make_recommendation()
    rec.set_option_setting_value("ApplicationIAMRole", {"CreateNew": False, "RoleArn": "arn:custom", "Unknown": 1})
    assert rec.get_option_setting_value(rec.get_option_setting("ApplicationIAMRole.RoleArn")) == "arn:custom"
    assert rec.get_option_setting_value(rec.get_option_setting("ApplicationIAMRole")) == {
        "CreateNew": False,
        "RoleArn": "arn:custom",
    }


def test_object_override_requires_mapping():
    rec = make_recommendation()
    with pytest.raises(ValidationFailedError):
        rec.set_option_setting_value("ApplicationIAMRole", "not-a-mapping")


def test_validated_override():
    rec = make_recommendation()
    with pytest.raises(ValidationFailedError) as exc:
        rec.set_option_setting_value("DesiredCount", 10)
    assert exc.value.validation_failed_message == "Value must be greater than or equal to 1 and less than or equal to 5"
    desired = rec.get_option_setting("DesiredCount")
    assert rec.get_option_setting_value(desired) == 3

    rec.set_option_setting_value("DesiredCount", "4")
    assert rec.get_option_setting_value(desired, int) == 4


def test_recommendations_do_not_share_settings():
    recipe = RecipeDefinition.model_validate(copy.deepcopy(RECIPE))
    project = ProjectDefinition(project_path="/src/App/App.csproj")
    first = Recommendation(recipe, project)
    second = Recommendation(recipe, project)

    first.set_option_setting_value("A", "changed")

    assert second.get_option_setting_value(second.get_option_setting("A")) == "a"
    assert recipe.option_settings[2].has_value_override is False


def test_apply_previous_settings_returns_isolated_copy():
    rec = make_recommendation()
    redeploy = rec.apply_previous_settings({"A": "x"})

    assert redeploy is not rec
    assert redeploy.is_existing_cloud_application is True
    assert redeploy.get_option_setting_value(redeploy.get_option_setting("A")) == "x"
    assert redeploy.get_option_setting_value(redeploy.get_option_setting("B")) == "b"

    assert rec.is_existing_cloud_application is False
    assert rec.get_option_setting_value(rec.get_option_setting("A")) == "a"
    assert redeploy.project_definition is rec.project_definition

    redeploy.set_option_setting_value("B", "changed")
    redeploy.add_replacement_token("{AccountId}", "1")
    assert rec.get_option_setting_value(rec.get_option_setting("B")) == "b"
    assert rec.replacement_tokens["{AccountId}"] == ""

    rec.set_option_setting_value("A", "orig-change")
    rec.add_replacement_token("{AccountId}", "2")
    assert redeploy.get_option_setting_value(redeploy.get_option_setting("A")) == "x"
    assert redeploy.replacement_tokens["{AccountId}"] == "1"


def test_apply_previous_settings_skips_validation_and_nested_ids():
    rec = make_recommendation()
    redeploy = rec.apply_previous_settings(
        {"DesiredCount": 10, "RoleArn": "ignored", "ApplicationIAMRole": {"CreateNew": False}}
    )
    assert redeploy.get_option_setting_value(redeploy.get_option_setting("DesiredCount")) == 10
    assert redeploy.get_option_setting_value(redeploy.get_option_setting("ApplicationIAMRole.CreateNew")) is False
    assert redeploy.get_option_setting_value(redeploy.get_option_setting("ApplicationIAMRole.RoleArn")) == (
        "arn:aws:iam::{AccountId}:role/x"
    )


def test_deployment_bundle_settings_are_configurable():
    bundle = [
        OptionSettingItem(
            id="DockerBuildArgs",
            validators=[OptionSettingItemValidatorConfig(kind=OptionSettingItemValidatorKind.DockerBuildArgs)],
        )
    ]
    rec = make_recommendation(deployment_bundle_settings=bundle)
    assert len(rec.get_configurable_option_setting_items()) == len(RECIPE["optionSettings"]) + 1

    with pytest.raises(ValidationFailedError):
        rec.set_option_setting_value("DockerBuildArgs", "--tag mine")
    rec.set_option_setting_value("DockerBuildArgs", "--no-cache")
    assert bundle[0].has_value_override is False


def test_summary_displayable():
    rec = make_recommendation()
    assert rec.is_summary_displayable(rec.get_option_setting("A")) is True
    assert rec.is_summary_displayable(rec.get_option_setting("ApplicationIAMRole.RoleArn")) is False


def test_recipe_properties():
    rec = make_recommendation(computed_priority=100)
    assert rec.name == "ASP.NET Core App to Amazon ECS using AWS Fargate"
    assert rec.project_path == "/src/App/App.csproj"
    assert rec.computed_priority == 100
    assert rec.validate() == []
