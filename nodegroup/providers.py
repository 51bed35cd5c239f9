"""AWS and Kubernetes provider configuration for node group deployments."""

import pulumi
import pulumi_aws as aws
import pulumi_kubernetes as k8s

from nodegroup.config import NodeGroupConfig


def create_aws_provider(config: NodeGroupConfig) -> aws.Provider:
    """Create the AWS provider for the node group's account and region.

    When a role ARN is configured the provider assumes it, so node groups can
    be deployed into the account that owns the cluster.
    """
    assume_roles = None
    if config.role_arn:
        assume_roles = [
            aws.ProviderAssumeRoleArgs(
                role_arn=config.role_arn,
                session_name=f"pulumi-{pulumi.get_stack()}",
                duration="1h",
            )
        ]

    return aws.Provider(
        f"{config.name}-aws",
        region=config.aws_region,
        assume_roles=assume_roles,
        default_tags=aws.ProviderDefaultTagsArgs(
            tags={
                "ManagedBy": "Pulumi",
                "NodeGroup": config.name,
                "Stack": pulumi.get_stack(),
            },
        ),
    )


def create_k8s_provider(
    name: str,
    kubeconfig: pulumi.Input[str],
    parent: pulumi.Resource | None = None,
) -> k8s.Provider:
    """Create Kubernetes provider from EKS kubeconfig.

    Args:
        name: Provider name prefix
        kubeconfig: EKS cluster kubeconfig (as JSON string)
        parent: Parent resource for dependency tracking
    """
    return k8s.Provider(
        f"{name}-k8s",
        kubeconfig=kubeconfig,
        opts=pulumi.ResourceOptions(parent=parent),
    )
