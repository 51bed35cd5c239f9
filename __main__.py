"""EKS worker node group - Main entry point for Pulumi infrastructure deployment."""

import pulumi

from nodegroup.cluster import ClusterCoreData, ClusterHandle
from nodegroup.components import NodeGroup, NodeGroupArgs
from nodegroup.config import load_node_group_config
from nodegroup.providers import create_aws_provider, create_k8s_provider

# Load node group configuration from stack config
config = load_node_group_config()

# Cluster core data exported by the stack that created the EKS cluster
cluster_stack = pulumi.StackReference(config.cluster_stack)
cluster = ClusterHandle(
    core=ClusterCoreData(
        cluster_name=cluster_stack.require_output("clusterName"),
        endpoint=cluster_stack.require_output("endpoint"),
        certificate_authority=cluster_stack.require_output("certificateAuthority"),
        vpc_id=cluster_stack.require_output("vpcId"),
        cluster_security_group_id=cluster_stack.require_output("clusterSecurityGroupId"),
        instance_profile=cluster_stack.require_output("instanceProfile"),
        subnet_ids=cluster_stack.require_output("subnetIds"),
    ),
    kubeconfig=cluster_stack.require_output("kubeconfig"),
)

aws_provider = create_aws_provider(config)
k8s_provider = create_k8s_provider(name=config.name, kubeconfig=cluster.kubeconfig)

settings = config.settings
node_group = NodeGroup(
    config.name,
    NodeGroupArgs(
        cluster=cluster,
        node_subnet_ids=config.node_subnet_ids,
        instance_type=settings.instance_type,
        spot_price=settings.spot_price,
        node_public_key=config.node_public_key,
        key_name=config.key_name,
        node_root_volume_size=settings.node_root_volume_size,
        node_user_data=config.node_user_data,
        desired_capacity=settings.desired_capacity,
        min_size=settings.min_size,
        max_size=settings.max_size,
        ami_id=settings.ami_id,
        labels=settings.labels,
    ),
    opts=pulumi.ResourceOptions(providers=[aws_provider, k8s_provider]),
)

# Exports
pulumi.export("node_security_group_id", node_group.node_security_group.id)
pulumi.export("cfn_stack_name", node_group.cfn_stack.name)
pulumi.export("auto_scaling_group_name", node_group.auto_scaling_group_name)
