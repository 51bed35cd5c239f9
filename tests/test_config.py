import pulumi
import pytest

from nodegroup.config import (
    NodeGroupSettings,
    _parse_labels,
    _parse_list,
    build_settings,
    load_node_group_config,
)
from nodegroup.errors import ConfigurationError


@pytest.fixture
def stack_config():
    def configure(values):
        pulumi.runtime.set_all_config({f"project:{key}": value for key, value in values.items()})

    yield configure
    pulumi.runtime.set_all_config({})


def test_settings_defaults():
    settings = NodeGroupSettings()

    assert settings.instance_type == "t2.medium"
    assert settings.node_root_volume_size == 20
    assert (settings.desired_capacity, settings.min_size, settings.max_size) == (2, 1, 2)
    assert settings.spot_price is None
    assert settings.labels == {}


def test_capacity_bounds_are_enforced():
    with pytest.raises(ConfigurationError, match="min_size <= desired_capacity <= max_size"):
        build_settings("ng1", {"desired_capacity": 6, "min_size": 1, "max_size": 5})


def test_invalid_ami_id_is_rejected():
    with pytest.raises(ConfigurationError) as excinfo:
        build_settings("ng1", {"ami_id": "not-an-ami"})

    assert excinfo.value.node_group == "ng1"


def test_unset_values_fall_back_to_defaults():
    settings = build_settings("ng1", {"instance_type": None, "max_size": 4, "desired_capacity": 3})

    assert settings.instance_type == "t2.medium"
    assert (settings.desired_capacity, settings.max_size) == (3, 4)


def test_parse_list():
    assert _parse_list(None) is None
    assert _parse_list("subnet-a, subnet-b,,") == ["subnet-a", "subnet-b"]


def test_parse_labels_keeps_order():
    assert list(_parse_labels("ng1", '{"zone": "a", "role": "worker"}')) == ["zone", "role"]
    assert _parse_labels("ng1", None) == {}


def test_parse_labels_rejects_non_objects():
    with pytest.raises(ConfigurationError, match="labels"):
        _parse_labels("ng1", '["a"]')
    with pytest.raises(ConfigurationError, match="labels"):
        _parse_labels("ng1", "{not json")


def test_load_node_group_config(stack_config):
    stack_config(
        {
            "nodeGroupName": "ng1",
            "clusterStack": "org/cluster/prod",
            "nodeSubnetIds": "subnet-a,subnet-b",
            "spotPrice": "0.05",
            "desiredCapacity": "3",
            "maxSize": "5",
            "labels": '{"a": "1", "b": "2"}',
        }
    )

    config = load_node_group_config()

    assert config.name == "ng1"
    assert config.cluster_stack == "org/cluster/prod"
    assert config.aws_region == "us-east-1"
    assert config.role_arn is None
    assert config.node_subnet_ids == ["subnet-a", "subnet-b"]
    assert config.settings.spot_price == "0.05"
    assert (config.settings.desired_capacity, config.settings.min_size, config.settings.max_size) == (3, 1, 5)
    assert config.settings.labels == {"a": "1", "b": "2"}


def test_cluster_stack_is_required(stack_config):
    stack_config({"nodeGroupName": "ng1"})

    with pytest.raises(pulumi.ConfigMissingError):
        load_node_group_config()
