"""Randomized, state-persisted names for node group resources."""

import secrets

import pulumi
from pulumi.dynamic import CreateResult, DiffResult, ResourceProvider


def random_suffix() -> str:
    """8 hex characters from a cryptographically secure source."""
    return secrets.token_hex(4)


class _StackNameProvider(ResourceProvider):
    def create(self, props):
        stack_name = f"{props['prefix']}-{random_suffix()}"
        return CreateResult(id_=stack_name, outs={"prefix": props["prefix"], "stack_name": stack_name})

    def diff(self, _id, olds, news):
        changed = olds.get("prefix") != news.get("prefix")
        return DiffResult(changes=changed, replaces=["prefix"] if changed else [])


class StackName(pulumi.dynamic.Resource):
    """`<prefix>-<8 hex>` generated once and kept in the stack state.

    Later updates reuse the stored name, so the CloudFormation stack and the
    bootstrap script that signals it are not replaced on every run. A new
    name is only drawn when the prefix changes.
    """

    stack_name: pulumi.Output[str]

    def __init__(self, name: str, prefix: pulumi.Input[str], opts: pulumi.ResourceOptions | None = None):
        super().__init__(_StackNameProvider(), name, {"prefix": prefix, "stack_name": None}, opts)
