"""Field level cache policies driven by the ``@cacheControl`` directive.

Every resolved field gets an effective :class:`CachePolicy`. The response as a
whole is only as cacheable as its least cacheable field, and becomes PRIVATE
as soon as a single touched field is PRIVATE.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from graphql import GraphQLField, GraphQLResolveInfo, get_named_type, is_leaf_type

from walletgraph import log
from walletgraph.utils.directive import get_directive_arguments

CACHE_CONTROL_DIRECTIVE = "cacheControl"
NO_STORE = "no-store"


class CacheScope(str, Enum):
    PUBLIC = "PUBLIC"
    PRIVATE = "PRIVATE"


@dataclass(frozen=True)
class CachePolicy:
    """A declared or effective cache policy.

    Args:
        max_age: Seconds the value may be cached, None when uncacheable
        scope: PUBLIC or PRIVATE, None on a declared policy that does not set it
        inherit_max_age: Take the max age of the parent field when none is set
    """

    max_age: int | None = None
    scope: CacheScope | None = None
    inherit_max_age: bool = False

    @property
    def is_cacheable(self) -> bool:
        return self.max_age is not None and self.max_age > 0

    @property
    def is_private(self) -> bool:
        return self.scope == CacheScope.PRIVATE


UNCACHEABLE = CachePolicy(max_age=None, scope=CacheScope.PUBLIC)


def effective_cache_policy(declared: CachePolicy | None, parent_effective: CachePolicy | None) -> CachePolicy:
    """Resolve the effective policy of a field from its declaration and its parent.

    Only the max age can be inherited. The scope is never taken from the
    parent: a field without an explicit scope is PUBLIC, even below a PRIVATE
    field.
    """
    if declared is None:
        return UNCACHEABLE

    max_age = declared.max_age
    if max_age is None and declared.inherit_max_age and parent_effective is not None:
        max_age = parent_effective.max_age

    return CachePolicy(
        max_age=max_age,
        scope=declared.scope or CacheScope.PUBLIC,
        inherit_max_age=declared.inherit_max_age,
    )


def aggregate_cache_policy(policies: Iterable[CachePolicy]) -> CachePolicy:
    """Combine the effective policies of all touched fields into the response policy.

    The minimum max age wins and any PRIVATE field makes the response PRIVATE.
    An uncacheable field, or no field at all, makes the response uncacheable.
    """
    policies = list(policies)
    if not policies:
        return UNCACHEABLE

    scope = CacheScope.PRIVATE if any(policy.is_private for policy in policies) else CacheScope.PUBLIC
    max_ages = [policy.max_age for policy in policies]
    if any(max_age is None for max_age in max_ages):
        return CachePolicy(max_age=None, scope=scope)
    return CachePolicy(max_age=min(max_age for max_age in max_ages if max_age is not None), scope=scope)


def cache_control_header(policy: CachePolicy) -> str:
    """Render a policy as the value of an HTTP ``Cache-Control`` header."""
    if not policy.is_cacheable:
        return NO_STORE
    scope = policy.scope or CacheScope.PUBLIC
    return f"max-age={policy.max_age}, {scope.value.lower()}"


def _policy_from_arguments(args: dict[str, Any]) -> CachePolicy:
    scope = args.get("scope")
    return CachePolicy(
        max_age=args.get("maxAge"),
        scope=CacheScope(scope) if scope is not None else None,
        inherit_max_age=bool(args.get("inheritMaxAge", False)),
    )


def declared_cache_policy(field: GraphQLField) -> CachePolicy | None:
    """Read the policy a schema author declared for ``field``.

    The directive on the field overrides the one on the type the field
    returns. Leaf fields (scalars and enums) without any directive inherit
    their parent's max age. Other fields without a directive declare nothing.
    """
    named_type = get_named_type(field.type)

    args: dict[str, Any] = {}
    if not is_leaf_type(named_type):
        args.update(get_directive_arguments(named_type, CACHE_CONTROL_DIRECTIVE))
    args.update(get_directive_arguments(field, CACHE_CONTROL_DIRECTIVE))

    if args:
        return _policy_from_arguments(args)
    if is_leaf_type(named_type):
        return CachePolicy(inherit_max_age=True)
    return None


def _parent_field_path(path: list[str | int]) -> tuple[str | int, ...]:
    parent = path[:-1]
    while parent and isinstance(parent[-1], int):
        parent = parent[:-1]
    return tuple(parent)


class CacheControlMiddleware:
    """Graphql-core middleware recording the effective policy of every resolved field.

    Create one instance per request and read :attr:`policy` after execution.
    """

    def __init__(self) -> None:
        self._effective: dict[tuple[str | int, ...], CachePolicy] = {}
        self._declared: dict[tuple[str, str], CachePolicy | None] = {}

    def _declared_for(self, info: GraphQLResolveInfo) -> CachePolicy | None:
        key = (info.parent_type.name, info.field_name)
        if key not in self._declared:
            field = info.parent_type.fields.get(info.field_name)
            # meta fields such as __typename carry no definition on the parent type
            if field is None:
                self._declared[key] = CachePolicy(inherit_max_age=True)
            else:
                self._declared[key] = declared_cache_policy(field)
        return self._declared[key]

    def resolve(self, next_: Callable[..., Any], root: Any, info: GraphQLResolveInfo, **args: Any) -> Any:
        path = info.path.as_list()
        parent_policy = self._effective.get(_parent_field_path(path))
        policy = effective_cache_policy(self._declared_for(info), parent_policy)
        self._effective[tuple(path)] = policy
        log.debug(f"Cache policy of {'.'.join(map(str, path))}: {policy}")
        return next_(root, info, **args)

    @property
    def field_policies(self) -> dict[tuple[str | int, ...], CachePolicy]:
        return dict(self._effective)

    @property
    def policy(self) -> CachePolicy:
        return aggregate_cache_policy(self._effective.values())

    @property
    def header(self) -> str:
        return cache_control_header(self.policy)
