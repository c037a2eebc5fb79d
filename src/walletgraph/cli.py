import json
import logging
import sys
from pathlib import Path
from typing import Any

import rich_click as click
from ariadne import make_executable_schema
from graphql import GraphQLSchema, print_schema
from pydantic import ValidationError
from rich.traceback import install

from walletgraph import __version__, log
from walletgraph.config import LOG_LEVELS, WalletGraphConfig, load_config
from walletgraph.executor import execute_query
from walletgraph.feature_gates import evaluate
from walletgraph.identity import IdentityError, identify, natural_key, resolve_global_id, split_natural_key
from walletgraph.logger import get_logger
from walletgraph.registry import (
    NODE_KEYS,
    SDL_DIR_PATH,
    SchemaCompositionError,
    check_composition,
    compose_schema,
    load_type_defs,
)
from walletgraph.sources import InMemoryDataSource, RequestContext
from walletgraph.utils.directive import add_directives_to_schema, build_directive_map
from walletgraph.utils.graphql_type import is_builtin_scalar_type, is_introspection_type

console = get_logger()


sdl_option = click.option(
    "--sdl",
    "sdl_path",
    type=click.Path(exists=True, path_type=Path),
    default=SDL_DIR_PATH,
    help="GraphQL SDL file or directory to compose the schema from",
)


optional_output_option = click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, writable=True, path_type=Path),
    required=False,
    help="Output file",
)


def _load_schema(sdl_path: Path) -> GraphQLSchema:
    try:
        return compose_schema(sdl_path)
    except SchemaCompositionError as e:
        raise click.ClickException(str(e)) from e


def print_schema_with_directives_preserved(schema: GraphQLSchema) -> str:
    """Print schema SDL including the applied ``@cacheControl`` directives."""
    return add_directives_to_schema(print_schema(schema), build_directive_map(schema))


@click.group(context_settings={"auto_envvar_prefix": "walletgraph"})
@click.option(
    "-l",
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Log level, overrides the config file",
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, writable=True, path_type=Path),
    help="Log file",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML configuration file",
)
@click.version_option(__version__)
@click.pass_context
def cli(ctx: click.Context, log_level: str | None, log_file: Path | None, config_path: Path | None) -> None:
    if log_file:
        file_handler = logging.FileHandler(log_file, mode="w")
        file_handler.setFormatter(logging.Formatter("%(asctime)s:%(levelname)s:%(message)s"))
        log.addHandler(file_handler)

    try:
        config = load_config(config_path)
    except (OSError, TypeError, ValidationError) as e:
        raise click.ClickException(f"Invalid config file '{config_path}': {e}") from e

    level = (log_level or config.log_level).upper()
    log.setLevel(level)
    if level == "DEBUG":
        _ = install(show_locals=True)

    ctx.obj = config


@click.group()
def schema() -> None:
    """Commands on the composed GraphQL schema."""
    pass


@click.group()
def check() -> None:
    """Check commands for the schema contracts."""
    pass


@click.group(name="id")
def id_group() -> None:
    """Encode and decode global node ids."""
    pass


# schema -> print
# ----------
@schema.command(name="print")
@sdl_option
@optional_output_option
def schema_print(sdl_path: Path, output: Path | None) -> None:
    """Print the composed schema, keeping the @cacheControl directives."""
    sdl = print_schema_with_directives_preserved(_load_schema(sdl_path))
    if output is None:
        click.echo(sdl)
        return
    output.write_text(sdl + "\n", encoding="utf-8")
    console.success(f"Schema written to {output}")


# schema -> stats
# ----------
@schema.command(name="stats")
@sdl_option
def schema_stats(sdl_path: Path) -> None:
    """Count the types of the composed schema by kind."""
    gql_schema = _load_schema(sdl_path)

    type_counts: dict[str, Any] = {
        "object": 0,
        "interface": 0,
        "enum": 0,
        "scalar": 0,
        "input_object": 0,
        "union": 0,
        "node": len(NODE_KEYS),
        "connection": 0,
        "custom_scalars": [],
    }
    kinds = {
        "GraphQLObjectType": "object",
        "GraphQLInterfaceType": "interface",
        "GraphQLEnumType": "enum",
        "GraphQLScalarType": "scalar",
        "GraphQLInputObjectType": "input_object",
        "GraphQLUnionType": "union",
    }
    for name, type_obj in gql_schema.type_map.items():
        if is_introspection_type(name):
            continue
        kind = kinds[type(type_obj).__name__]
        type_counts[kind] += 1
        if kind == "object" and name.endswith("Connection"):
            type_counts["connection"] += 1
        if kind == "scalar" and not is_builtin_scalar_type(name):
            type_counts["custom_scalars"].append(name)

    console.rule("GraphQL Schema Type Counts")
    console.print_dict(type_counts)


# check -> contract
# ----------
@check.command(name="contract")
@sdl_option
def check_contract(sdl_path: Path) -> None:
    """
    Enforce the node, connection and cache-control contracts.
    Checks:
    - Node types expose id: ID! and have a natural key function
    - Connection and Edge types have the edges/pageInfo/cursor/node shape
    - Connection fields accept first/after/last/before
    - @cacheControl arguments are consistent
    """
    gql_schema = make_executable_schema(load_type_defs(sdl_path))
    errors = check_composition(gql_schema)

    if errors:
        console.rule("Contract Violations", style="bold red")
        for err in errors:
            log.error(f"- {err}")
        sys.exit(1)
    else:
        console.success("All contracts passed!")


# features
# ----------
@click.command()
@click.option("--user-id", "-u", help="Id of the authenticated user, omit for an anonymous request")
@click.option(
    "--cohort",
    "-c",
    multiple=True,
    help="Dropzone cohort member, can be given multiple times. Defaults to the config file's dropzoneUsers",
)
@click.pass_obj
def features(config: WalletGraphConfig, user_id: str | None, cohort: tuple[str, ...]) -> None:
    """Evaluate the feature gates for a user."""
    dropzone_cohort = frozenset(cohort) if cohort else config.dropzone_cohort
    flags = evaluate(user_id, dropzone_cohort)

    console.rule(f"Feature gates for {user_id or 'anonymous'}")
    for name, enabled in flags.items():
        console.key_value(name, "[green]enabled[/green]" if enabled else "[red]disabled[/red]")


# id -> encode / decode
# ----------
@id_group.command(name="encode")
@click.argument("type_name")
@click.argument("key_parts", nargs=-1, required=True)
def id_encode(type_name: str, key_parts: tuple[str, ...]) -> None:
    """Compute the node id of TYPE_NAME for the natural key KEY_PARTS."""
    try:
        click.echo(identify(type_name, natural_key(*key_parts)))
    except IdentityError as e:
        raise click.ClickException(str(e)) from e


@id_group.command(name="decode")
@click.argument("node_id")
def id_decode(node_id: str) -> None:
    """Decode a node id into its type name and natural key."""
    try:
        type_name, key = resolve_global_id(node_id)
    except IdentityError as e:
        raise click.ClickException(str(e)) from e

    console.key_value("Type", type_name)
    console.key_value("Natural key", " | ".join(split_natural_key(key)))


# query
# ----------
@click.command()
@sdl_option
@click.option(
    "--data",
    "-d",
    "data_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="JSON or YAML fixture backing the in-memory data source",
)
@click.option(
    "--query",
    "-q",
    "query_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="GraphQL query file",
)
@click.option("--variables", "-v", help="Query variables as a JSON object")
@click.option("--user-id", "-u", help="Id of the authenticated user")
@optional_output_option
@click.pass_obj
def query(
    config: WalletGraphConfig,
    sdl_path: Path,
    data_path: Path,
    query_path: Path,
    variables: str | None,
    user_id: str | None,
    output: Path | None,
) -> None:
    """Execute a query against a data fixture and show the response with its Cache-Control header."""
    try:
        parsed_variables = json.loads(variables) if variables else None
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"Variables are not valid JSON: {e}", param_hint="--variables") from e

    try:
        data_source = InMemoryDataSource.from_file(data_path)
    except ValidationError as e:
        raise click.ClickException(f"Invalid data fixture '{data_path}': {e}") from e

    context = RequestContext(data_source=data_source, user_id=user_id, config=config)
    outcome = execute_query(
        _load_schema(sdl_path),
        query_path.read_text(encoding="utf-8"),
        context,
        variables=parsed_variables,
    )

    response = outcome.to_response()
    if output is not None:
        with open(output, "w", encoding="utf-8") as output_file:
            log.info(f"Writing response to '{output}'")
            json.dump(response, output_file, indent=2)
    else:
        console.print_dict(response)

    console.key_value("Cache-Control", outcome.cache_control_header)
    if outcome.errors:
        log.warning(f"Query resolved with {len(outcome.errors)} error(s)")


cli.add_command(check)
cli.add_command(features)
cli.add_command(id_group)
cli.add_command(query)
cli.add_command(schema)

if __name__ == "__main__":
    cli()
