"""Node group configuration schema and loader."""

import json
from dataclasses import dataclass
from typing import Optional

import pulumi
from pydantic import BaseModel, Field, ValidationError, model_validator

from nodegroup.errors import ConfigurationError


class NodeGroupSettings(BaseModel):
    """Sizing and machine settings of a configured node group."""

    instance_type: str = Field(default="t2.medium")
    spot_price: Optional[str] = Field(default=None, pattern=r"^\d+(\.\d+)?$")
    node_root_volume_size: int = Field(default=20, ge=8, le=16384)
    desired_capacity: int = Field(default=2, ge=0, le=1000)
    min_size: int = Field(default=1, ge=0, le=1000)
    max_size: int = Field(default=2, ge=1, le=1000)
    ami_id: Optional[str] = Field(default=None, pattern=r"^ami-[0-9a-f]+$")
    labels: dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_capacity(self) -> "NodeGroupSettings":
        if not self.min_size <= self.desired_capacity <= self.max_size:
            raise ValueError(
                f"capacity must satisfy min_size <= desired_capacity <= max_size, "
                f"got {self.min_size}/{self.desired_capacity}/{self.max_size}"
            )
        return self


@dataclass
class NodeGroupConfig:
    """Configuration for a node group deployment."""

    name: str

    # Stack exporting the cluster's core data
    cluster_stack: str

    aws_region: str
    role_arn: Optional[str]

    settings: NodeGroupSettings

    node_subnet_ids: Optional[list[str]] = None
    node_public_key: Optional[pulumi.Output[str]] = None
    key_name: Optional[str] = None
    node_user_data: Optional[str] = None


def _parse_list(value: Optional[str]) -> Optional[list[str]]:
    """Parse a comma-separated string into a list."""
    if value is None:
        return None
    return [item.strip() for item in value.split(",") if item.strip()]


def _parse_labels(name: str, value: Optional[str]) -> dict[str, str]:
    """Parse a JSON object of node labels, keeping its key order."""
    if not value:
        return {}
    try:
        labels = json.loads(value)
    except json.JSONDecodeError as e:
        raise ConfigurationError(name, "labels", f"labels must be a JSON object: {e}") from e
    if not isinstance(labels, dict):
        raise ConfigurationError(name, "labels", "labels must be a JSON object")
    return {str(k): str(v) for k, v in labels.items()}


def build_settings(name: str, values: dict) -> NodeGroupSettings:
    """Validate raw settings, dropping unset keys so defaults apply."""
    try:
        return NodeGroupSettings(**{k: v for k, v in values.items() if v is not None})
    except ValidationError as e:
        raise ConfigurationError(name, "settings", str(e)) from e


def load_node_group_config() -> NodeGroupConfig:
    """Load and validate node group configuration from Pulumi stack config."""
    config = pulumi.Config()
    name = config.get("nodeGroupName") or pulumi.get_stack()

    settings = build_settings(
        name,
        {
            "instance_type": config.get("instanceType"),
            "spot_price": config.get("spotPrice"),
            "node_root_volume_size": config.get_int("nodeRootVolumeSize"),
            "desired_capacity": config.get_int("desiredCapacity"),
            "min_size": config.get_int("minSize"),
            "max_size": config.get_int("maxSize"),
            "ami_id": config.get("amiId"),
            "labels": _parse_labels(name, config.get("labels")),
        },
    )

    return NodeGroupConfig(
        name=name,
        cluster_stack=config.require("clusterStack"),
        aws_region=config.get("awsRegion") or "us-east-1",
        role_arn=config.get("roleArn"),
        settings=settings,
        node_subnet_ids=_parse_list(config.get("nodeSubnetIds")),
        node_public_key=config.get_secret("nodePublicKey"),
        key_name=config.get("keyName"),
        node_user_data=config.get("nodeUserData"),
    )
