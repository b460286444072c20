import click
import json

from pydantic import ValidationError

from .config_loader import load_settings
from .errors import SetupError
from .logging_setup import setup_logging
from .mongo_client import describe_collection, get_db


def _load(config, log, stage):
    try:
        return load_settings(config)
    except ValidationError as exc:
        log.error("invalid configuration", extra={"stage": stage}, exc_info=True)
        raise click.ClickException(f"invalid configuration in {config}: {exc}") from exc


@click.group()
def cli():
    pass


@cli.group(help="Initialize external resources.")
def bootstrap():
    """Initialize external resources."""
    pass


@bootstrap.command()
@click.option("--config", default="config.yaml", show_default=True)
@click.option("--no-seed", is_flag=True, help="Skip demonstration readings.")
def mongo(config, no_seed):
    """Create the vitals time-series collection, its indexes and seed data."""
    log = setup_logging()
    s = _load(config, log, "bootstrap.mongo")
    try:
        from .bootstrap.mongo_bootstrap import bootstrap_mongo

        res = bootstrap_mongo(s, seed=False if no_seed else None, progress=click.echo)
        log.info("mongo bootstrap complete", extra={"stage": "bootstrap.mongo", **res})
    except SetupError as exc:
        log.error(
            "bootstrap mongo failed",
            extra={"stage": "bootstrap.mongo"},
            exc_info=True,
        )
        raise click.ClickException(str(exc)) from exc


@bootstrap.command("seed")
@click.option("--config", default="config.yaml", show_default=True)
def seed_cmd(config):
    """Insert demonstration readings into an existing collection."""
    log = setup_logging()
    s = _load(config, log, "bootstrap.seed")
    try:
        from .bootstrap.mongo_bootstrap import seed_vitals

        inserted = seed_vitals(get_db(s), s)
    except SetupError as exc:
        log.error("seeding failed", extra={"stage": "bootstrap.seed"}, exc_info=True)
        raise click.ClickException(str(exc)) from exc
    if inserted:
        click.echo(f"✅ Sample data inserted ({inserted} documents)")
    else:
        click.echo("Sample data skipped")


@cli.command(help="Compare the vitals collection with its declared layout.")
@click.option("--config", default="config.yaml", show_default=True)
def inspect(config):
    log = setup_logging()
    s = _load(config, log, "inspect")
    try:
        report = describe_collection(get_db(s), s)
    except SetupError as exc:
        log.error("inspect failed", extra={"stage": "inspect"}, exc_info=True)
        raise click.ClickException(str(exc)) from exc

    click.echo(json.dumps(report, indent=2, default=str))
    if report["drift"]:
        log.warning(
            "collection layout drift detected",
            extra={"stage": "inspect", "drift": report["drift"]},
        )
        click.get_current_context().exit(1)


def main():
    cli()


if __name__ == "__main__":
    main()
