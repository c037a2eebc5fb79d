from graphql import (
    GraphQLField,
    GraphQLInterfaceType,
    GraphQLList,
    GraphQLNamedType,
    GraphQLNonNull,
    GraphQLObjectType,
    GraphQLSchema,
    GraphQLType,
    get_named_type,
)

from walletgraph.cache_control import CACHE_CONTROL_DIRECTIVE, CacheScope
from walletgraph.identity import NodeKeyRegistry
from walletgraph.utils.directive import get_directive_arguments, has_given_directive
from walletgraph.utils.graphql_type import (
    NODE_INTERFACE,
    edge_type_name_for,
    is_connection_type_name,
    is_edge_type_name,
    is_introspection_type,
)

PAGINATION_ARGUMENTS = {"first": "Int", "last": "Int", "after": "String", "before": "String"}


def _is_non_null_named(field_type: GraphQLType, type_name: str) -> bool:
    return isinstance(field_type, GraphQLNonNull) and getattr(field_type.of_type, "name", None) == type_name


def _is_non_null_list_of_non_null(field_type: GraphQLType, type_name: str) -> bool:
    if not isinstance(field_type, GraphQLNonNull) or not isinstance(field_type.of_type, GraphQLList):
        return False
    return _is_non_null_named(field_type.of_type.of_type, type_name)


class ContractChecker:
    """Checks the cross-cutting contracts every part of the schema must follow.

    - every ``Node`` implementation exposes ``id: ID!`` (and has a natural key function)
    - every ``*Connection`` exposes ``edges: [*Edge!]!`` and ``pageInfo: PageInfo!``
    - every ``*Edge`` exposes ``cursor: String!`` and a non-null ``node``
    - every connection field accepts ``first``/``after``/``last``/``before``
    - every ``@cacheControl`` has a non-negative ``maxAge``
    """

    def __init__(self, schema: GraphQLSchema, node_keys: NodeKeyRegistry | None = None):
        self.schema = schema
        self.node_keys = node_keys

    def object_types(self) -> list[GraphQLObjectType]:
        return [
            type_obj
            for type_name, type_obj in self.schema.type_map.items()
            if isinstance(type_obj, GraphQLObjectType) and not is_introspection_type(type_name)
        ]

    def check_nodes(self, objects: list[GraphQLObjectType]) -> list[str]:
        errors = []
        for obj in objects:
            if not any(interface.name == NODE_INTERFACE for interface in obj.interfaces):
                continue
            id_field = obj.fields.get("id")
            if id_field is None or not _is_non_null_named(id_field.type, "ID"):
                errors.append(f"[Node] {obj.name}.id must be of type ID!")
            if self.node_keys is not None and obj.name not in self.node_keys:
                errors.append(f"[Node] {obj.name} implements Node but has no natural key function")
        return errors

    def check_connections(self, objects: list[GraphQLObjectType]) -> list[str]:
        errors = []
        for obj in objects:
            if is_connection_type_name(obj.name):
                edge_type_name = edge_type_name_for(obj.name)
                edges = obj.fields.get("edges")
                if edges is None or not _is_non_null_list_of_non_null(edges.type, edge_type_name):
                    errors.append(f"[Connection] {obj.name}.edges must be of type [{edge_type_name}!]!")
                page_info = obj.fields.get("pageInfo")
                if page_info is None or not _is_non_null_named(page_info.type, "PageInfo"):
                    errors.append(f"[Connection] {obj.name}.pageInfo must be of type PageInfo!")

            elif is_edge_type_name(obj.name):
                cursor = obj.fields.get("cursor")
                if cursor is None or not _is_non_null_named(cursor.type, "String"):
                    errors.append(f"[Edge] {obj.name}.cursor must be of type String!")
                node = obj.fields.get("node")
                if node is None or not isinstance(node.type, GraphQLNonNull):
                    errors.append(f"[Edge] {obj.name}.node must be non-null")

            for field_name, field in obj.fields.items():
                if is_connection_type_name(get_named_type(field.type).name):
                    errors += self._check_pagination_arguments(obj, field_name, field)
        return errors

    def _check_pagination_arguments(self, obj: GraphQLObjectType, field_name: str, field: GraphQLField) -> list[str]:
        errors = []
        for arg_name, type_name in PAGINATION_ARGUMENTS.items():
            arg = field.args.get(arg_name)
            if arg is None or getattr(arg.type, "name", None) != type_name:
                errors.append(f"[Connection] {obj.name}.{field_name} must accept '{arg_name}: {type_name}'")
        return errors

    def check_cache_control(self) -> list[str]:
        errors = []
        elements: list[tuple[str, GraphQLNamedType | GraphQLField]] = []
        for type_obj in self.schema.type_map.values():
            if isinstance(type_obj, GraphQLObjectType | GraphQLInterfaceType):
                elements.append((type_obj.name, type_obj))
                elements.extend((f"{type_obj.name}.{name}", field) for name, field in type_obj.fields.items())

        for label, element in elements:
            if not has_given_directive(element, CACHE_CONTROL_DIRECTIVE):
                continue
            args = get_directive_arguments(element, CACHE_CONTROL_DIRECTIVE)
            max_age = args.get("maxAge")
            if max_age is not None and max_age < 0:
                errors.append(f"[{CACHE_CONTROL_DIRECTIVE}] {label} has a negative maxAge ({max_age})")
            scope = args.get("scope")
            if scope is not None and scope not in CacheScope.__members__:
                errors.append(f"[{CACHE_CONTROL_DIRECTIVE}] {label} has an unknown scope ({scope})")
            if max_age is not None and args.get("inheritMaxAge"):
                errors.append(f"[{CACHE_CONTROL_DIRECTIVE}] {label} sets both maxAge and inheritMaxAge")
        return errors

    def run(self) -> list[str]:
        objects = self.object_types()
        errors: list[str] = []
        errors += self.check_nodes(objects)
        errors += self.check_connections(objects)
        errors += self.check_cache_control()
        return errors
