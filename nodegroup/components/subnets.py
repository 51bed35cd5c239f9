"""Worker subnet placement.

An EKS cluster attached to both public and private subnets only exposes its
API server to workers in the private ones, so workers placed in a public
subnet of a mixed set can never join. A subnet is public iff its route table
(the explicitly associated one, else its VPC's main table) holds a route to
an internet gateway.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol, Sequence

import pulumi
import pulumi_aws as aws

from nodegroup.errors import LookupAmbiguityError

logger = logging.getLogger(__name__)


class RouteTableAssociation(str, Enum):
    """How a route table came to apply to a subnet."""

    EXPLICIT = "explicit"
    MAIN = "main"


@dataclass(frozen=True)
class Route:
    gateway_id: str | None = None


@dataclass(frozen=True)
class RouteTable:
    route_table_id: str
    association: RouteTableAssociation
    routes: tuple[Route, ...] = ()


@dataclass
class SubnetPartition:
    public: list[str] = field(default_factory=list)
    private: list[str] = field(default_factory=list)


class RouteLookup(Protocol):
    """Routing metadata queries used to classify subnets.

    `explicit_route_table` returns None when the subnet has no explicit
    association. Any other failure must raise LookupAmbiguityError.
    """

    async def explicit_route_table(self, subnet_id: str) -> RouteTable | None: ...

    async def subnet_vpc_id(self, subnet_id: str) -> str: ...

    async def main_route_table(self, vpc_id: str) -> RouteTable: ...


def has_internet_gateway_route(table: RouteTable) -> bool:
    return any(route.gateway_id for route in table.routes)


async def resolve_route_table(subnet_id: str, lookup: RouteLookup) -> RouteTable:
    """Return the route table in effect for a subnet."""
    table = await lookup.explicit_route_table(subnet_id)
    if table is not None:
        return table
    vpc_id = await lookup.subnet_vpc_id(subnet_id)
    return await lookup.main_route_table(vpc_id)


async def classify_subnets(subnet_ids: Sequence[str], lookup: RouteLookup) -> SubnetPartition:
    """Split subnets into public and private, keeping input order.

    Every lookup runs to completion; if any failed, the failure of the first
    subnet in input order is raised.
    """
    tables = await asyncio.gather(
        *(resolve_route_table(subnet_id, lookup) for subnet_id in subnet_ids),
        return_exceptions=True,
    )
    for table in tables:
        if isinstance(table, BaseException):
            raise table

    partition = SubnetPartition()
    for subnet_id, table in zip(subnet_ids, tables):
        public = has_internet_gateway_route(table)
        logger.debug(
            "subnet %s uses %s route table %s: %s",
            subnet_id,
            table.association.value,
            table.route_table_id,
            "public" if public else "private",
        )
        if public:
            partition.public.append(subnet_id)
        else:
            partition.private.append(subnet_id)
    return partition


async def compute_worker_subnets(subnet_ids: Sequence[str], lookup: RouteLookup) -> list[str]:
    """Pick the subnets worker nodes should be placed in.

    If any subnet is private only the private subnets are returned, otherwise
    every subnet is public and the input is returned as-is.
    """
    partition = await classify_subnets(list(subnet_ids), lookup)
    if partition.private:
        if partition.public:
            logger.info(
                "placing workers in private subnets %s, skipping public subnets %s",
                partition.private,
                partition.public,
            )
        return partition.private
    return partition.public


def _route_table_from_result(result, association: RouteTableAssociation) -> RouteTable:
    return RouteTable(
        route_table_id=result.route_table_id,
        association=association,
        routes=tuple(Route(gateway_id=route.gateway_id) for route in result.routes or []),
    )


class AwsRouteLookup:
    """RouteLookup backed by the AWS provider's EC2 data sources."""

    def __init__(self, node_group_name: str, parent: pulumi.Resource | None = None):
        self.node_group_name = node_group_name
        self.invoke_opts = pulumi.InvokeOptions(parent=parent)

    async def explicit_route_table(self, subnet_id: str) -> RouteTable | None:
        try:
            ids = await aws.ec2.get_route_tables_output(
                filters=[
                    aws.ec2.GetRouteTablesFilterArgs(
                        name="association.subnet-id",
                        values=[subnet_id],
                    )
                ],
                opts=self.invoke_opts,
            ).ids.future()
        except Exception as e:
            raise LookupAmbiguityError(
                self.node_group_name, subnet_id, f"route table lookup failed: {e}"
            ) from e

        # No explicit association: the subnet falls back to its VPC's main table
        if not ids:
            return None
        return await self._route_table(ids[0], subnet_id, RouteTableAssociation.EXPLICIT)

    async def subnet_vpc_id(self, subnet_id: str) -> str:
        try:
            return await aws.ec2.get_subnet_output(id=subnet_id, opts=self.invoke_opts).vpc_id.future()
        except Exception as e:
            raise LookupAmbiguityError(
                self.node_group_name, subnet_id, f"subnet lookup failed: {e}"
            ) from e

    async def main_route_table(self, vpc_id: str) -> RouteTable:
        try:
            ids = await aws.ec2.get_route_tables_output(
                vpc_id=vpc_id,
                filters=[
                    aws.ec2.GetRouteTablesFilterArgs(
                        name="association.main",
                        values=["true"],
                    )
                ],
                opts=self.invoke_opts,
            ).ids.future()
        except Exception as e:
            raise LookupAmbiguityError(
                self.node_group_name, vpc_id, f"main route table lookup failed: {e}"
            ) from e

        if not ids:
            raise LookupAmbiguityError(
                self.node_group_name, vpc_id, "VPC has no main route table"
            )
        return await self._route_table(ids[0], vpc_id, RouteTableAssociation.MAIN)

    async def _route_table(
        self, route_table_id: str, owner: str, association: RouteTableAssociation
    ) -> RouteTable:
        try:
            result = await aws.ec2.get_route_table_output(
                route_table_id=route_table_id, opts=self.invoke_opts
            ).future()
        except Exception as e:
            raise LookupAmbiguityError(
                self.node_group_name, owner, f"reading route table {route_table_id} failed: {e}"
            ) from e
        return _route_table_from_result(result, association)
