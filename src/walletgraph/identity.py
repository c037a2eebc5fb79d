"""Global object identification for types implementing the ``Node`` interface.

A node id is the url-safe base64 encoding of ``"<TypeName>:<natural key>"``.
GraphQL type names cannot contain ``:``, so splitting at the first colon always
recovers the pair and two distinct (type, key) pairs never share an id.
"""

import base64
import binascii
import re
from collections.abc import Callable, Iterator
from typing import Any
from urllib.parse import quote, unquote

from walletgraph import log

NodeKeyFunction = Callable[[Any], str]

GRAPHQL_NAME_PATTERN = re.compile(r"^[_A-Za-z][_0-9A-Za-z]*$")
GLOBAL_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]+={0,2}$")
TYPE_KEY_SEPARATOR = ":"
KEY_PART_SEPARATOR = ":"


class IdentityError(ValueError):
    """Base class for errors raised while deriving or resolving node ids."""


class MissingKeyError(IdentityError):
    """Raised when a natural key (or one of its parts) is absent or empty.

    Producing an id from an empty key would collide with every other record
    of the same type that is missing its key, so the computation fails instead.
    """


class InvalidGlobalIdError(IdentityError):
    """Raised when a node id does not decode to a (type name, natural key) pair."""


class IdentityErrorMessages:
    """Standard error messages for identity errors."""

    MISSING_KEY = "Cannot derive a node id without a natural key"
    MISSING_KEY_PART = "Natural key part {index} is empty"
    INVALID_TYPE_NAME = "Not a valid GraphQL type name"
    INVALID_GLOBAL_ID = "Not a valid node id"
    UNKNOWN_NODE_TYPE = "No natural key function registered for type"


def _check_type_name(type_name: str) -> None:
    if not type_name or not GRAPHQL_NAME_PATTERN.match(type_name):
        raise IdentityError(f"{IdentityErrorMessages.INVALID_TYPE_NAME}: '{type_name}'")


def natural_key(*parts: Any) -> str:
    """Build a composite natural key from its parts, e.g. ``natural_key(chain_id, address)``.

    Each part is percent-encoded before joining, so the separator never appears
    inside a part and different part tuples always produce different keys.

    Raises:
        MissingKeyError: If no parts are given or any part is None or empty.
    """
    if not parts:
        raise MissingKeyError(IdentityErrorMessages.MISSING_KEY)

    encoded_parts = []
    for index, part in enumerate(parts):
        value = getattr(part, "value", part)  # enums contribute their value
        if value is None or str(value) == "":
            raise MissingKeyError(IdentityErrorMessages.MISSING_KEY_PART.format(index=index))
        encoded_parts.append(quote(str(value), safe=""))

    return KEY_PART_SEPARATOR.join(encoded_parts)


def split_natural_key(key: str) -> list[str]:
    """Inverse of :func:`natural_key`."""
    return [unquote(part) for part in key.split(KEY_PART_SEPARATOR)]


def identify(type_name: str, key: str | None) -> str:
    """Derive the global id of a node from its type name and natural key.

    Deterministic across processes and needs no counter or lookup, so it can be
    called from any nested resolver.

    Args:
        type_name: The GraphQL type name of the node, e.g. ``Wallet``
        key: The natural key of the record, e.g. ``natural_key("ethereum", "0xabc")``

    Returns:
        The opaque node id

    Raises:
        MissingKeyError: If the natural key is None or empty
        IdentityError: If the type name is not a GraphQL name
    """
    _check_type_name(type_name)
    if key is None or key == "":
        raise MissingKeyError(f"{IdentityErrorMessages.MISSING_KEY}: type '{type_name}'")

    raw = f"{type_name}{TYPE_KEY_SEPARATOR}{key}"
    return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii")


def resolve_global_id(node_id: str) -> tuple[str, str]:
    """Decode a node id back into its ``(type name, natural key)`` pair.

    Raises:
        InvalidGlobalIdError: If the id was not produced by :func:`identify`
    """
    if not node_id or not GLOBAL_ID_PATTERN.match(node_id):
        raise InvalidGlobalIdError(f"{IdentityErrorMessages.INVALID_GLOBAL_ID}: '{node_id}'")

    try:
        raw = base64.urlsafe_b64decode(node_id.encode("ascii")).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as e:
        raise InvalidGlobalIdError(f"{IdentityErrorMessages.INVALID_GLOBAL_ID}: '{node_id}'") from e

    type_name, separator, key = raw.partition(TYPE_KEY_SEPARATOR)
    if not separator or not key or not GRAPHQL_NAME_PATTERN.match(type_name):
        raise InvalidGlobalIdError(f"{IdentityErrorMessages.INVALID_GLOBAL_ID}: '{node_id}'")

    return type_name, key


class NodeKeyRegistry:
    """Maps each ``Node`` type name to the pure function deriving its natural key.

    A type takes part in global identification only by registering here; the
    schema composition step checks that every ``Node`` implementation did.
    """

    def __init__(self) -> None:
        self._key_functions: dict[str, NodeKeyFunction] = {}

    def register(self, type_name: str, key_function: NodeKeyFunction) -> None:
        _check_type_name(type_name)
        if type_name in self._key_functions:
            log.warning(f"Replacing natural key function for node type '{type_name}'")
        self._key_functions[type_name] = key_function

    def natural_key_of(self, type_name: str, record: Any) -> str:
        try:
            key_function = self._key_functions[type_name]
        except KeyError:
            raise IdentityError(f"{IdentityErrorMessages.UNKNOWN_NODE_TYPE}: '{type_name}'") from None
        return key_function(record)

    def node_id(self, type_name: str, record: Any) -> str:
        """Compute the global id of ``record`` as a node of type ``type_name``."""
        return identify(type_name, self.natural_key_of(type_name, record))

    def __contains__(self, type_name: object) -> bool:
        return type_name in self._key_functions

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._key_functions))

    def __len__(self) -> int:
        return len(self._key_functions)
