"""Interactive inspector for an instrumented MongoDB collection.

Every line typed at the prompt is looked up in the collection and the
matching documents are printed. The commands the client sends are
measured, logged and exposed at the metrics endpoint.

Example:
    $ mongoapm-inspector --uri mongodb://localhost:27017
    > golang
    < {'_id': ObjectId('...'), 'key': 'golang', ...}

Environment Variables:
    MONGOAPM_URI: MongoDB connection string
    MONGOAPM_DATABASE: Database name
    MONGOAPM_COLLECTION: Collection name
    MONGOAPM_KEY: Field matched against each input line
    MONGOAPM_SERVER_TIMEOUT: Server selection timeout in milliseconds
    MONGOAPM_VERBOSE: Enable debug logging
    MONGOAPM_METRICS_PORT: Prometheus endpoint port
    MONGOAPM_OTLP_ENDPOINT: OTLP collector endpoint (enables tracing)
"""

import logging

import click
from pymongo import MongoClient
from pymongo.errors import PyMongoError
from rich.console import Console

from mongoapm.observability.config import ObservabilityConfig
from mongoapm.observability.manager import ObservabilityManager

logger = logging.getLogger(__name__)

console = Console(highlight=False)


def build_config(
    metrics_port: int,
    otlp_endpoint: str,
    verbose: bool,
) -> ObservabilityConfig:
    """Environment configuration with command-line overrides applied."""
    config = ObservabilityConfig.from_env()
    config.metrics.port = metrics_port
    if otlp_endpoint:
        config.tracing.enabled = True
        config.tracing.otlp_endpoint = otlp_endpoint
    if verbose:
        config.logging.level = "DEBUG"
    return config


def run_repl(collection, key: str, obs: ObservabilityManager) -> None:
    """Read lines until EOF and print the documents matching each one."""
    tracer = obs.tracer if obs.config.tracing.enabled else None

    while True:
        try:
            line = click.prompt("", prompt_suffix="> ", default="", show_default=False)
        except (EOFError, click.Abort):
            break

        try:
            if tracer is not None:
                with tracer.start_span("inspector/find", attributes={"query.key": key}):
                    documents = list(collection.find({key: line}))
            else:
                documents = list(collection.find({key: line}))
        except PyMongoError as e:
            console.print(f"[red]Query failed:[/red] {e}")
            continue

        for document in documents:
            console.print(f"< {document}", markup=False)


@click.command()
@click.option(
    "--uri",
    default="mongodb://localhost:27017",
    envvar="MONGOAPM_URI",
    help="MongoDB connection string",
)
@click.option(
    "--database",
    "-d",
    default="media-searches",
    envvar="MONGOAPM_DATABASE",
    help="Database to query (default: media-searches)",
)
@click.option(
    "--collection",
    "-c",
    default="youtube_searches",
    envvar="MONGOAPM_COLLECTION",
    help="Collection to query (default: youtube_searches)",
)
@click.option(
    "--key",
    "-k",
    default="key",
    envvar="MONGOAPM_KEY",
    help="Field matched against each input line (default: key)",
)
@click.option(
    "--metrics-port",
    default=9464,
    type=int,
    envvar="MONGOAPM_METRICS_PORT",
    help="Port of the Prometheus metrics endpoint (default: 9464)",
)
@click.option(
    "--otlp-endpoint",
    default="",
    envvar="MONGOAPM_OTLP_ENDPOINT",
    help="OTLP collector endpoint; enables command tracing",
)
@click.option(
    "--server-timeout",
    default=5000,
    type=int,
    envvar="MONGOAPM_SERVER_TIMEOUT",
    help="Server selection timeout in milliseconds (default: 5000)",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    envvar="MONGOAPM_VERBOSE",
    help="Enable debug logging",
)
def cli(
    uri: str,
    database: str,
    collection: str,
    key: str,
    metrics_port: int,
    otlp_endpoint: str,
    server_timeout: int,
    verbose: bool,
) -> None:
    """Query a MongoDB collection interactively with command metrics enabled."""
    obs = ObservabilityManager(build_config(metrics_port, otlp_endpoint, verbose))
    try:
        obs.initialize()
    except (ValueError, OSError) as e:
        raise click.ClickException(f"Error while enabling observability: {e}")

    client = None
    try:
        listener = obs.create_listener()
        client = MongoClient(
            uri,
            event_listeners=[listener],
            serverSelectionTimeoutMS=server_timeout,
        )
        info = client.server_info()
        listener.set_server_version(None, info.get("versionArray", [])[:3])
        logger.info("Connected to MongoDB %s at %s", info.get("version"), uri)

        run_repl(client[database][collection], key, obs)
    except PyMongoError as e:
        raise click.ClickException(f"MongoDB error: {e}")
    finally:
        if client is not None:
            client.close()
        obs.shutdown()


def main() -> None:
    """Console script entry point."""
    cli()


if __name__ == "__main__":
    main()
