"""Read-only view of the EKS cluster a node group attaches to."""

from dataclasses import dataclass
from typing import Union

import pulumi

from nodegroup.errors import ConfigurationError


@dataclass(frozen=True)
class ClusterCoreData:
    """Connection and network facts of an already provisioned EKS cluster."""

    cluster_name: pulumi.Input[str]
    endpoint: pulumi.Input[str]
    # Base64 encoded certificate authority data
    certificate_authority: pulumi.Input[str]
    vpc_id: pulumi.Input[str]
    cluster_security_group_id: pulumi.Input[str]
    instance_profile: pulumi.Input[str]
    subnet_ids: pulumi.Input[list[str]]

    # Resources the worker stack must wait for (CNI plugin, aws-auth mapping)
    vpc_cni: pulumi.Resource | None = None
    node_access: pulumi.Resource | None = None

    def stack_dependencies(self) -> list[pulumi.Resource]:
        return [r for r in (self.vpc_cni, self.node_access) if r is not None]


@dataclass(frozen=True)
class ClusterHandle:
    """A cluster object: core data plus the kubeconfig used to reach it."""

    core: ClusterCoreData
    kubeconfig: pulumi.Input[str] | None = None


ClusterReference = Union[ClusterCoreData, ClusterHandle]


def resolve_cluster(name: str, cluster: ClusterReference) -> ClusterCoreData:
    """Unwrap the cluster reference of node group `name` to its core data."""
    if isinstance(cluster, ClusterHandle):
        return cluster.core
    if isinstance(cluster, ClusterCoreData):
        return cluster
    raise ConfigurationError(
        name,
        "cluster",
        f"cluster must be a ClusterCoreData or ClusterHandle, got {type(cluster).__name__}",
    )
