"""EKS worker node group components."""

from nodegroup.components.node_group import NodeGroup, NodeGroupArgs, NodeGroupData, create_node_group
from nodegroup.components.subnets import AwsRouteLookup, compute_worker_subnets

__all__ = [
    "NodeGroup",
    "NodeGroupArgs",
    "NodeGroupData",
    "create_node_group",
    "AwsRouteLookup",
    "compute_worker_subnets",
]
