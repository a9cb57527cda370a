"""Either use a role the caller handed in, or synthesize one."""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from ol_appflow.plan.graph import DependencyGraph
from ol_appflow.plan.models import (
    AccessRole,
    ManagedPolicy,
    RoleAttachmentAction,
    RoleReference,
    provided_role_node,
)

Params = TypeVar("Params")
Entity = AccessRole | ManagedPolicy | RoleAttachmentAction


@dataclass(frozen=True)
class Resolution:
    """A resolved role together with everything created and ordered to obtain it.

    ``edges`` are ordering edges among the new entities themselves, while
    ``profile_dependencies`` lists the nodes the consuming profile has to wait for.
    """

    role_arn: str
    node: str
    entities: tuple[Entity, ...] = ()
    edges: tuple[tuple[str, str], ...] = ()
    profile_dependencies: tuple[str, ...] = field(default=())

    def apply(self, graph: DependencyGraph, profile_node: str) -> None:
        for dependent, dependency in self.edges:
            graph.add_edge(dependent, dependency)
        for dependency in self.profile_dependencies:
            graph.add_edge(profile_node, dependency)


@dataclass(frozen=True)
class Provided:
    role: RoleReference


@dataclass(frozen=True)
class Synthesized(Generic[Params]):
    params: Params


RoleSource = Provided | Synthesized


def role_source(override: RoleReference | None, params: Params) -> RoleSource:
    if override is not None:
        return Provided(override)
    return Synthesized(params)


def resolve(
    source: RoleSource, synthesize: Callable[[Params], Resolution]
) -> Resolution:
    """Turn a role source into a resolution.

    A provided role passes through untouched; no entity is created for it and the
    profile is only ordered after the role itself.
    """
    if isinstance(source, Provided):
        node = provided_role_node(source.role)
        return Resolution(
            role_arn=source.role.arn, node=node, profile_dependencies=(node,)
        )
    return synthesize(source.params)
