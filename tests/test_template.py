import yaml

from nodegroup.components.template import min_instances_in_service, render_stack_template


def render(**overrides):
    kwargs = {
        "launch_configuration": "ng1-nodeLaunchConfiguration-1234",
        "desired_capacity": 3,
        "min_size": 1,
        "max_size": 5,
        "subnet_ids": ["subnet-b", "subnet-a"],
        "cluster_name": "demo",
    }
    kwargs.update(overrides)
    return render_stack_template(**kwargs)


def test_autoscaling_group_properties():
    template = yaml.safe_load(render())

    assert template["AWSTemplateFormatVersion"] == "2010-09-09"
    assert list(template["Resources"]) == ["NodeGroup"]
    group = template["Resources"]["NodeGroup"]
    assert group["Type"] == "AWS::AutoScaling::AutoScalingGroup"
    assert group["Properties"]["DesiredCapacity"] == 3
    assert group["Properties"]["MinSize"] == 1
    assert group["Properties"]["MaxSize"] == 5
    assert group["Properties"]["LaunchConfigurationName"] == "ng1-nodeLaunchConfiguration-1234"
    assert group["Properties"]["VPCZoneIdentifier"] == ["subnet-b", "subnet-a"]


def test_subnets_are_json_encoded():
    assert 'VPCZoneIdentifier: ["subnet-b", "subnet-a"]' in render()


def test_tags_propagate_at_launch():
    tags = yaml.safe_load(render())["Resources"]["NodeGroup"]["Properties"]["Tags"]

    assert tags == [
        {"Key": "Name", "Value": "demo-worker", "PropagateAtLaunch": "true"},
        {"Key": "kubernetes.io/cluster/demo", "Value": "owned", "PropagateAtLaunch": "true"},
    ]


def test_on_demand_keeps_one_instance_in_service():
    body = render()
    policy = yaml.safe_load(body)["Resources"]["NodeGroup"]["UpdatePolicy"]["AutoScalingRollingUpdate"]

    assert policy == {"MinInstancesInService": "1", "MaxBatchSize": "1"}
    assert "MinInstancesInService: '1'" in body
    assert "MaxBatchSize: '1'" in body


def test_spot_price_allows_zero_instances_in_service():
    body = render(spot_price="0.05")
    policy = yaml.safe_load(body)["Resources"]["NodeGroup"]["UpdatePolicy"]["AutoScalingRollingUpdate"]

    assert policy["MinInstancesInService"] == "0"
    assert "MinInstancesInService: '0'" in body


def test_min_instances_in_service():
    assert min_instances_in_service(None) == 1
    assert min_instances_in_service("") == 1
    assert min_instances_in_service("0.10") == 0


def test_node_group_output_references_group():
    outputs = yaml.safe_load(render())["Outputs"]

    assert outputs == {"NodeGroup": {"Value": {"Ref": "NodeGroup"}}}


def test_rendering_is_deterministic():
    assert render() == render()
