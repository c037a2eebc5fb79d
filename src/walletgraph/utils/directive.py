import re
from typing import Any

from graphql import (
    BooleanValueNode,
    FloatValueNode,
    GraphQLEnumType,
    GraphQLField,
    GraphQLInputObjectType,
    GraphQLInterfaceType,
    GraphQLNamedType,
    GraphQLObjectType,
    GraphQLSchema,
    IntValueNode,
)
from graphql.language.ast import DirectiveNode, StringValueNode

# Directives graphql-core prints on its own
BUILTIN_PRINTED_DIRECTIVES = {"deprecated", "specifiedBy"}


def has_given_directive(element: GraphQLNamedType | GraphQLField, directive_name: str) -> bool:
    """Check whether a GraphQL element (field, named type) carries the given directive."""
    ast_node = getattr(element, "ast_node", None)
    if ast_node is None or not getattr(ast_node, "directives", None):
        return False
    return any(directive.name.value == directive_name for directive in ast_node.directives)


def get_directive_arguments(element: GraphQLNamedType | GraphQLField, directive_name: str) -> dict[str, Any]:
    """
    Extracts the arguments of a directive applied to a GraphQL element.

    Args:
        element: The field or named type carrying the directive.
        directive_name: The name of the directive, without ``@``.
    Returns:
        dict[str, Any]: The directive arguments converted to Python values,
        empty when the directive is not applied.
    """
    if not has_given_directive(element, directive_name):
        return {}

    directives = element.ast_node.directives  # type: ignore[union-attr]
    directive = next(d for d in directives if d.name.value == directive_name)
    args: dict[str, Any] = {}

    for arg in directive.arguments:
        value = arg.value
        if isinstance(value, IntValueNode):
            args[arg.name.value] = int(value.value)
        elif isinstance(value, FloatValueNode):
            args[arg.name.value] = float(value.value)
        elif isinstance(value, BooleanValueNode):
            args[arg.name.value] = value.value
        elif hasattr(value, "value"):
            args[arg.name.value] = value.value
        else:
            args[arg.name.value] = value

    return args


def format_directive_from_ast(directive_node: DirectiveNode) -> str:
    directive_name = directive_node.name.value
    if directive_name in BUILTIN_PRINTED_DIRECTIVES:
        return ""

    args_str = ""
    if directive_node.arguments:
        args_list = []
        for arg_node in directive_node.arguments:
            value = arg_node.value
            if isinstance(value, StringValueNode):
                arg_value = f'"{value.value}"'
            elif isinstance(value, BooleanValueNode):
                arg_value = "true" if value.value else "false"
            elif hasattr(value, "value"):
                arg_value = str(value.value)
            else:
                arg_value = str(value)
            args_list.append(f"{arg_node.name.value}: {arg_value}")
        args_str = f"({', '.join(args_list)})"

    return f"@{directive_name}{args_str}"


def _directive_strings(element: Any) -> list[str]:
    ast_node = getattr(element, "ast_node", None)
    if ast_node is None or not getattr(ast_node, "directives", None):
        return []
    return [directive for directive in map(format_directive_from_ast, ast_node.directives) if directive]


def build_directive_map(schema: GraphQLSchema) -> dict[str | tuple[str, str], list[str]]:
    """Collect the applied directives that ``print_schema`` drops, keyed by type or (type, field)."""
    directive_map: dict[str | tuple[str, str], list[str]] = {}

    for type_name, type_obj in schema.type_map.items():
        if type_name.startswith("__"):
            continue

        directive_strings = _directive_strings(type_obj)
        if directive_strings:
            directive_map[type_name] = directive_strings

        if isinstance(type_obj, GraphQLObjectType | GraphQLInterfaceType | GraphQLInputObjectType):
            for field_name, field in type_obj.fields.items():
                directive_strings = _directive_strings(field)
                if directive_strings:
                    directive_map[(type_name, field_name)] = directive_strings

        if isinstance(type_obj, GraphQLEnumType):
            for value_name, enum_value in type_obj.values.items():
                directive_strings = _directive_strings(enum_value)
                if directive_strings:
                    directive_map[(type_name, value_name)] = directive_strings

    return directive_map


def add_directives_to_schema(schema_str: str, directive_map: dict[str | tuple[str, str], list[str]]) -> str:
    """Re-insert the directives of ``directive_map`` into printed SDL."""
    result_lines = []
    current_type = None

    for line in schema_str.split("\n"):
        type_match = re.match(r"^(type|interface|input|enum|union|scalar)\s+(\w+)", line)
        if type_match:
            type_name = type_match.group(2)
            current_type = type_name
            if type_name in directive_map:
                # directives follow the implemented interfaces
                directives_str = " ".join(directive_map[type_name])
                line = f"{line[:-2]} {directives_str} {{" if line.endswith(" {") else f"{line} {directives_str}"

        elif current_type:
            member_match = re.match(r"^\s+(\w+)(?:\(.*\))?\s*(?::|$)", line)
            if member_match and (current_type, member_match.group(1)) in directive_map:
                line = line.rstrip() + " " + " ".join(directive_map[(current_type, member_match.group(1))])

        if line.strip() == "}":
            current_type = None

        result_lines.append(line)

    return "\n".join(result_lines)
