from deploycore.common.project import ProjectDefinition
from deploycore.recipes.models import RecipeDefinition
from deploycore.recipes.recommendation import Recommendation


def fargate_recommendation(cpu="256", memory="512"):
    recipe = RecipeDefinition.model_validate(
        {
            "id": "AspNetAppEcsFargate",
            "name": "Fargate",
            "optionSettings": [
                {"id": "TaskCpu", "defaultValue": cpu},
                {"id": "TaskMemory", "defaultValue": memory},
                {"id": "MinCount", "type": "Int", "defaultValue": 1},
                {"id": "MaxCount", "type": "Int", "defaultValue": 5},
            ],
            "validators": [
                {"kind": "FargateTaskSizeCpuMemoryLimits"},
                {
                    "kind": "MinMaxConstraint",
                    "configuration": {
                        "minValueOptionSettingsId": "MinCount",
                        "maxValueOptionSettingsId": "MaxCount",
                    },
                },
            ],
        }
    )
    return Recommendation(recipe, ProjectDefinition(project_path="App.csproj"))


def test_valid_recommendation():
    assert fargate_recommendation().validate() == []


def test_fargate_memory_mismatch():
    failures = fargate_recommendation(cpu="256", memory="4096").validate()
    assert len(failures) == 1
    assert failures[0].validation_failed_message == (
        "Cpu value 256 is not compatible with memory value 4096. Allowed memory values are 512, 1024, 2048"
    )


def test_fargate_invalid_cpu():
    failures = fargate_recommendation(cpu="300").validate()
    assert len(failures) == 1
    assert failures[0].validation_failed_message == (
        "Cpu value 300 is not valid. Valid values are 256, 512, 1024, 2048, 4096"
    )


def test_fargate_numeric_values_are_normalized():
    assert fargate_recommendation(cpu=1024, memory="2048.0").validate() == []


def test_min_max_constraint():
    rec = fargate_recommendation()
    rec.set_option_setting_value("MinCount", 10)
    failures = rec.validate()
    assert [f.validation_failed_message for f in failures] == [
        "The value specified for MinCount must be less than or equal to the value specified for MaxCount"
    ]

    rec.set_option_setting_value("MaxCount", 10)
    assert rec.validate() == []
