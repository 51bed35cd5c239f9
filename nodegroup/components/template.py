"""CloudFormation template for the worker AutoScalingGroup."""

import yaml

TEMPLATE_FORMAT_VERSION = "2010-09-09"
ASG_LOGICAL_ID = "NodeGroup"


class _JsonList(list):
    """Sequence emitted inline with double-quoted items, i.e. as JSON."""


class _QuotedStr(str):
    pass


class _TemplateDumper(yaml.SafeDumper):
    pass


def _represent_json_list(dumper: yaml.SafeDumper, data: _JsonList) -> yaml.Node:
    items = [_QuotedStr(item) for item in data]
    return dumper.represent_sequence("tag:yaml.org,2002:seq", items, flow_style=True)


def _represent_quoted_str(dumper: yaml.SafeDumper, data: _QuotedStr) -> yaml.Node:
    return dumper.represent_scalar("tag:yaml.org,2002:str", str(data), style='"')


_TemplateDumper.add_representer(_JsonList, _represent_json_list)
_TemplateDumper.add_representer(_QuotedStr, _represent_quoted_str)


def min_instances_in_service(spot_price: str | None) -> int:
    # Spot capacity can vanish mid-update, so no instance can be guaranteed
    return 0 if spot_price else 1


def render_stack_template(
    launch_configuration: str,
    desired_capacity: int,
    min_size: int,
    max_size: int,
    subnet_ids: list[str],
    cluster_name: str,
    spot_price: str | None = None,
) -> str:
    """Render the stack template holding the node group's AutoScalingGroup.

    The group replaces instances one at a time on launch configuration
    changes, and its name is exported as the `NodeGroup` stack output.
    """
    template = {
        "AWSTemplateFormatVersion": TEMPLATE_FORMAT_VERSION,
        "Outputs": {
            ASG_LOGICAL_ID: {"Value": {"Ref": ASG_LOGICAL_ID}},
        },
        "Resources": {
            ASG_LOGICAL_ID: {
                "Type": "AWS::AutoScaling::AutoScalingGroup",
                "Properties": {
                    "DesiredCapacity": desired_capacity,
                    "LaunchConfigurationName": launch_configuration,
                    "MinSize": min_size,
                    "MaxSize": max_size,
                    "VPCZoneIdentifier": _JsonList(subnet_ids),
                    "Tags": [
                        {
                            "Key": "Name",
                            "Value": f"{cluster_name}-worker",
                            "PropagateAtLaunch": "true",
                        },
                        {
                            "Key": f"kubernetes.io/cluster/{cluster_name}",
                            "Value": "owned",
                            "PropagateAtLaunch": "true",
                        },
                    ],
                },
                "UpdatePolicy": {
                    "AutoScalingRollingUpdate": {
                        "MinInstancesInService": str(min_instances_in_service(spot_price)),
                        "MaxBatchSize": "1",
                    },
                },
            },
        },
    }
    return yaml.dump(
        template,
        Dumper=_TemplateDumper,
        default_flow_style=False,
        sort_keys=False,
        width=float("inf"),
    )
