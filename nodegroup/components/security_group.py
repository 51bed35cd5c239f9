"""Network access for worker nodes."""

from typing import TYPE_CHECKING

import pulumi
import pulumi_aws as aws

from nodegroup.cluster import ClusterCoreData
from nodegroup.errors import ConfigurationError

if TYPE_CHECKING:
    from nodegroup.components.node_group import NodeGroupArgs


def create_node_security_group(
    name: str,
    vpc_id: pulumi.Input[str],
    cluster_security_group_id: pulumi.Input[str],
    cluster_name: pulumi.Input[str],
    parent: pulumi.Resource,
) -> aws.ec2.SecurityGroup:
    """Create the security group shared by all nodes of a node group.

    Nodes may talk to each other freely, the control plane may reach kubelets
    and extension API servers, and nodes have unrestricted egress.
    """
    opts = pulumi.ResourceOptions(parent=parent)

    security_group = aws.ec2.SecurityGroup(
        f"{name}-nodeSecurityGroup",
        vpc_id=vpc_id,
        revoke_rules_on_delete=True,
        tags=pulumi.Output.from_input(cluster_name).apply(
            lambda cn: {
                "Name": f"{name}-nodeSecurityGroup",
                f"kubernetes.io/cluster/{cn}": "owned",
            }
        ),
        opts=opts,
    )

    aws.ec2.SecurityGroupRule(
        f"{name}-eksNodeIngressRule",
        description="Allow nodes to communicate with each other",
        type="ingress",
        from_port=0,
        to_port=0,
        protocol="-1",
        security_group_id=security_group.id,
        self=True,
        opts=opts,
    )

    aws.ec2.SecurityGroupRule(
        f"{name}-eksNodeClusterIngressRule",
        description="Allow worker Kubelets and pods to receive communication from the cluster control plane",
        type="ingress",
        from_port=1025,
        to_port=65535,
        protocol="tcp",
        security_group_id=security_group.id,
        source_security_group_id=cluster_security_group_id,
        opts=opts,
    )

    aws.ec2.SecurityGroupRule(
        f"{name}-eksExtApiServerClusterIngressRule",
        description="Allow pods running extension API servers on port 443 to receive communication from cluster control plane",
        type="ingress",
        from_port=443,
        to_port=443,
        protocol="tcp",
        security_group_id=security_group.id,
        source_security_group_id=cluster_security_group_id,
        opts=opts,
    )

    aws.ec2.SecurityGroupRule(
        f"{name}-eksNodeInternetEgressRule",
        description="Allow internet access.",
        type="egress",
        from_port=0,
        to_port=0,
        protocol="-1",
        cidr_blocks=["0.0.0.0/0"],
        security_group_id=security_group.id,
        opts=opts,
    )

    return security_group


def create_cluster_ingress_rule(
    name: str,
    node_security_group: aws.ec2.SecurityGroup,
    cluster_security_group_id: pulumi.Input[str],
    parent: pulumi.Resource,
) -> aws.ec2.SecurityGroupRule:
    """Let nodes reach the cluster API server on TCP/443."""
    return aws.ec2.SecurityGroupRule(
        f"{name}-eksClusterIngressRule",
        description="Allow pods to communicate with the cluster API Server",
        type="ingress",
        from_port=443,
        to_port=443,
        protocol="tcp",
        security_group_id=cluster_security_group_id,
        source_security_group_id=node_security_group.id,
        opts=pulumi.ResourceOptions(parent=parent),
    )


def resolve_security_group(
    name: str,
    args: "NodeGroupArgs",
    core: ClusterCoreData,
    parent: pulumi.Resource,
) -> tuple[aws.ec2.SecurityGroup, aws.ec2.SecurityGroupRule]:
    """Return the node security group and its cluster ingress rule.

    A caller supplied security group must come with its ingress rule, since
    nothing else guarantees the nodes can reach the API server. Otherwise
    both are created.
    """
    if args.node_security_group is not None:
        if args.cluster_ingress_rule is None:
            raise ConfigurationError(
                name,
                "cluster_ingress_rule",
                "cluster_ingress_rule is required when node_security_group is specified",
            )
        return args.node_security_group, args.cluster_ingress_rule

    node_security_group = create_node_security_group(
        name,
        vpc_id=core.vpc_id,
        cluster_security_group_id=core.cluster_security_group_id,
        cluster_name=core.cluster_name,
        parent=parent,
    )
    ingress_rule = create_cluster_ingress_rule(
        name,
        node_security_group=node_security_group,
        cluster_security_group_id=core.cluster_security_group_id,
        parent=parent,
    )
    return node_security_group, ingress_rule
