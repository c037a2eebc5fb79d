CONNECTION_SUFFIX = "Connection"
EDGE_SUFFIX = "Edge"
NODE_INTERFACE = "Node"


def is_introspection_type(type_name: str) -> bool:
    return type_name.startswith("__")


def is_builtin_scalar_type(type_name: str) -> bool:
    return type_name in {
        "ID",
        "String",
        "Int",
        "Float",
        "Boolean",
    }


def is_connection_type_name(type_name: str) -> bool:
    return type_name.endswith(CONNECTION_SUFFIX) and type_name != CONNECTION_SUFFIX


def is_edge_type_name(type_name: str) -> bool:
    return type_name.endswith(EDGE_SUFFIX) and type_name != EDGE_SUFFIX


def edge_type_name_for(connection_type_name: str) -> str:
    """``NftConnection`` -> ``NftEdge``"""
    return connection_type_name.removesuffix(CONNECTION_SUFFIX) + EDGE_SUFFIX
