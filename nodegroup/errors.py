"""Error kinds raised while provisioning a worker node group."""


class NodeGroupError(Exception):
    """Base error for node group provisioning.

    Every error names the node group and the sub-resource that failed so a
    failed `pulumi up` can be traced back to a single resource.
    """

    def __init__(self, node_group: str, resource: str, message: str):
        self.node_group = node_group
        self.resource = resource
        super().__init__(f"node group {node_group} ({resource}): {message}")


class ConfigurationError(NodeGroupError):
    """Invalid or incomplete node group arguments. Never retried."""


class LookupAmbiguityError(NodeGroupError):
    """A route table, subnet or VPC lookup failed for a reason other than a
    missing explicit route table association."""


class ProvisioningError(NodeGroupError):
    """A resource could not be created or read back."""
