"""Self-managed EKS worker node group."""

from dataclasses import dataclass, field

import pulumi
import pulumi_aws as aws

from nodegroup.cluster import ClusterReference, resolve_cluster
from nodegroup.components.naming import StackName
from nodegroup.components.security_group import resolve_security_group
from nodegroup.components.subnets import AwsRouteLookup, compute_worker_subnets
from nodegroup.components.template import ASG_LOGICAL_ID, render_stack_template
from nodegroup.components.userdata import render_user_data
from nodegroup.errors import ConfigurationError, ProvisioningError

DEFAULT_INSTANCE_TYPE = "t2.medium"
DEFAULT_ROOT_VOLUME_SIZE = 20  # GiB

EKS_WORKER_AMI_NAME = "amazon-eks-node-*"
EKS_WORKER_AMI_OWNER = "602401143452"  # Amazon


@dataclass
class NodeGroupArgs:
    """Configuration of a worker node group."""

    cluster: ClusterReference

    # Overrides the cluster's subnets and skips placement inference
    node_subnet_ids: pulumi.Input[list[str]] | None = None
    instance_type: pulumi.Input[str] = DEFAULT_INSTANCE_TYPE
    # Bid price; if set only spot instances are launched
    spot_price: pulumi.Input[str] | None = None

    # Pre-existing security group, requires cluster_ingress_rule as well
    node_security_group: aws.ec2.SecurityGroup | None = None
    cluster_ingress_rule: aws.ec2.SecurityGroupRule | None = None

    # SSH access: public key material for a new key pair, or an existing key pair name
    node_public_key: pulumi.Input[str] | None = None
    key_name: pulumi.Input[str] | None = None

    node_root_volume_size: pulumi.Input[int] = DEFAULT_ROOT_VOLUME_SIZE
    # Runs after the EKS bootstrap and before the readiness signal; must start with `#!`
    node_user_data: pulumi.Input[str] | None = None

    desired_capacity: pulumi.Input[int] = 2
    min_size: pulumi.Input[int] = 1
    max_size: pulumi.Input[int] = 2

    # Defaults to the most recent EKS optimized AMI
    ami_id: pulumi.Input[str] | None = None
    labels: dict[str, str] = field(default_factory=dict)


@dataclass
class NodeGroupData:
    node_security_group: aws.ec2.SecurityGroup
    cluster_ingress_rule: aws.ec2.SecurityGroupRule
    # Node security group id, resolved only once the cluster ingress rule exists
    node_security_group_id: pulumi.Output[str]
    cfn_stack: aws.cloudformation.Stack
    auto_scaling_group_name: pulumi.Output[str]


class NodeGroup(pulumi.ComponentResource):
    """EC2 instances providing compute capacity for an EKS cluster.

    Creates:
    - Node security group and cluster ingress rule (unless supplied)
    - Optional EC2 key pair for SSH access
    - Launch configuration with the node bootstrap script
    - CloudFormation stack holding the AutoScalingGroup

    A `kubernetes` provider for the target cluster must be passed in `opts`.
    """

    def __init__(
        self,
        name: str,
        args: NodeGroupArgs,
        opts: pulumi.ResourceOptions | None = None,
    ):
        super().__init__("eksnodegroup:compute:NodeGroup", name, None, opts)

        if self.get_provider("kubernetes:core/v1:ConfigMap") is None:
            raise ConfigurationError(
                name, "kubernetes provider", "a 'kubernetes' provider must be specified for a NodeGroup"
            )

        group = create_node_group(name, args, self)
        self.node_security_group = group.node_security_group
        self.cluster_ingress_rule = group.cluster_ingress_rule
        self.node_security_group_id = group.node_security_group_id
        self.cfn_stack = group.cfn_stack
        self.auto_scaling_group_name = group.auto_scaling_group_name

        self.register_outputs(
            {
                "node_security_group_id": self.node_security_group_id,
                "cfn_stack_name": self.cfn_stack.name,
                "auto_scaling_group_name": self.auto_scaling_group_name,
            }
        )


def create_node_group(name: str, args: NodeGroupArgs, parent: pulumi.Resource) -> NodeGroupData:
    """Create the resources of a node group under `parent`.

    Nothing is rolled back on failure; resources created so far are left to
    the next `pulumi up` or `pulumi destroy`.
    """
    core = resolve_cluster(name, args.cluster)
    child_opts = pulumi.ResourceOptions(parent=parent)
    invoke_opts = pulumi.InvokeOptions(parent=parent)

    node_security_group, cluster_ingress_rule = resolve_security_group(name, args, core, parent)

    # The launch configuration must depend on the ingress rule, or nodes may
    # boot before they are allowed to reach the API server.
    node_security_group_id = pulumi.Output.all(
        node_security_group.id, cluster_ingress_rule.id
    ).apply(lambda ids: ids[0])

    key_name = args.key_name
    if args.node_public_key is not None:
        key_pair = aws.ec2.KeyPair(
            f"{name}-keyPair",
            public_key=args.node_public_key,
            opts=child_opts,
        )
        key_name = key_pair.key_name

    stack_name = StackName(f"{name}-cfnStackName", prefix=name, opts=child_opts).stack_name

    region = aws.get_region_output(opts=invoke_opts)
    labels = dict(args.labels)

    user_data = pulumi.Output.all(
        region.name,
        core.cluster_name,
        core.endpoint,
        core.certificate_authority,
        stack_name,
        args.node_user_data if args.node_user_data is not None else "",
    ).apply(
        lambda values: render_user_data(
            region=values[0],
            cluster_name=values[1],
            endpoint=values[2],
            certificate_authority=values[3],
            stack_name=values[4],
            custom_user_data=values[5],
            labels=labels,
        )
    )

    ami_id = args.ami_id
    if ami_id is None:
        ami_id = aws.ec2.get_ami_output(
            filters=[
                aws.ec2.GetAmiFilterArgs(
                    name="name",
                    values=[EKS_WORKER_AMI_NAME],
                )
            ],
            most_recent=True,
            owners=[EKS_WORKER_AMI_OWNER],
            opts=invoke_opts,
        ).image_id.apply(lambda image_id: _require(image_id, name, f"{name}-ami", "no EKS worker AMI found"))

    if args.node_subnet_ids is not None:
        worker_subnet_ids = pulumi.Output.from_input(args.node_subnet_ids)
    else:
        lookup = AwsRouteLookup(name, parent)
        worker_subnet_ids = pulumi.Output.from_input(core.subnet_ids).apply(
            lambda ids: compute_worker_subnets(ids, lookup)
        )

    launch_configuration = aws.ec2.LaunchConfiguration(
        f"{name}-nodeLaunchConfiguration",
        associate_public_ip_address=True,
        image_id=ami_id,
        instance_type=args.instance_type or DEFAULT_INSTANCE_TYPE,
        iam_instance_profile=core.instance_profile,
        key_name=key_name,
        security_groups=[node_security_group_id],
        spot_price=args.spot_price,
        root_block_device=aws.ec2.LaunchConfigurationRootBlockDeviceArgs(
            volume_size=args.node_root_volume_size or DEFAULT_ROOT_VOLUME_SIZE,
            volume_type="gp2",
            delete_on_termination=True,
        ),
        user_data=user_data,
        opts=child_opts,
    )

    template_body = pulumi.Output.all(
        launch_configuration.id,
        args.desired_capacity,
        args.min_size,
        args.max_size,
        core.cluster_name,
        worker_subnet_ids,
        args.spot_price,
    ).apply(
        lambda values: render_stack_template(
            launch_configuration=values[0],
            desired_capacity=values[1],
            min_size=values[2],
            max_size=values[3],
            cluster_name=values[4],
            subnet_ids=values[5],
            spot_price=values[6],
        )
    )

    cfn_stack = aws.cloudformation.Stack(
        f"{name}-nodes",
        name=stack_name,
        template_body=template_body,
        opts=pulumi.ResourceOptions(parent=parent, depends_on=core.stack_dependencies()),
    )

    auto_scaling_group_name = cfn_stack.outputs.apply(
        lambda outputs: _require(
            (outputs or {}).get(ASG_LOGICAL_ID),
            name,
            f"{name}-nodes",
            f"stack outputs have no {ASG_LOGICAL_ID} entry",
        )
    )

    pulumi.log.info(f"node group {name} submitted", resource=parent)

    return NodeGroupData(
        node_security_group=node_security_group,
        cluster_ingress_rule=cluster_ingress_rule,
        node_security_group_id=node_security_group_id,
        cfn_stack=cfn_stack,
        auto_scaling_group_name=auto_scaling_group_name,
    )


def _require(value, node_group: str, resource: str, message: str):
    if not value:
        raise ProvisioningError(node_group, resource, message)
    return value
