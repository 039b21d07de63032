#!/usr/bin/env python3
"""
CLI for the FOIA Agency Directory

Commands:
    fetch-registry - Enumerate registry components and save them as JSON
    scrape         - Scrape unit pages and save the scraped snapshot
    merge          - Reconcile the scraped snapshot with a fresh registry fetch
    run            - Full pipeline: fetch, scrape, reconcile, store
    resolve        - Resolve an agency to EMAIL or PORTAL
    search         - Search the stored directory
    compose        - Build the email or portal manifest for a request

Usage:
    python cli.py fetch-registry --output data/agencies.json
    python cli.py run --limit 25 --dry-run
    python cli.py resolve --name "Office of Information Policy"
    python cli.py compose --name "FBI" --request-file request.txt --requester me.json
"""

import json
import logging
import sys

import click

from config import Config


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


def _get_store(ctx):
    from services.directory_store import DirectoryStore

    return DirectoryStore(ctx.obj["directory"])


def _print_run(run) -> None:
    click.echo("=" * 60)
    click.secho(f"RUN {run.run_id} ({run.mode})", fg="cyan", bold=True)
    click.echo("=" * 60)
    for key, value in run.stats.items():
        click.echo(f"  {key}: {value}")
    if run.diff_summary:
        click.echo()
        click.echo(click.style("  Unchanged: ", fg="white") + click.style(str(run.diff_summary.get("unchanged", 0)), fg="green"))
        click.echo(click.style("  Changed:   ", fg="white") + click.style(str(run.diff_summary.get("changed", 0)), fg="yellow"))
        click.echo(click.style("  New:       ", fg="white") + click.style(str(run.diff_summary.get("new", 0)), fg="blue"))
        click.echo(click.style("  Missing:   ", fg="white") + click.style(str(run.diff_summary.get("missing", 0)), fg="magenta"))
    click.echo()
    if run.dry_run:
        click.secho("  Dry run - nothing written", fg="yellow")
    click.echo(f"  Duration: {run.duration_seconds:.1f}s")


@click.group()
@click.version_option(version="1.0.0", prog_name="foia-directory")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
@click.option(
    "--directory",
    type=click.Path(dir_okay=False),
    default=None,
    help="Directory JSON file (defaults to DIRECTORY_PATH)",
)
@click.pass_context
def cli(ctx, verbose, directory):
    """FOIA Agency Directory CLI - Build and query the agency directory."""
    _configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["directory"] = directory or Config.DIRECTORY_PATH


# =============================================================================
# Acquisition
# =============================================================================

@cli.command("fetch-registry")
@click.option("--output", "-o", type=click.Path(dir_okay=False), default="data/agencies.json", help="Output file")
@click.option("--page-size", type=int, default=None, help="Components per request")
def fetch_registry(output, page_size):
    """Enumerate all registry components and save them."""
    from scrapers.registry_client import RegistryAPIClient, RegistryAPIError
    from services.directory_store import write_json_atomic

    try:
        client = RegistryAPIClient()
    except RegistryAPIError as e:
        click.secho(f"Error: {e}", fg="red")
        sys.exit(1)

    with client:
        records = client.fetch_all(page_size)

    write_json_atomic(output, [r.to_dict() for r in records])
    with_email = sum(1 for r in records if r.structured_emails)
    click.secho(f"Saved {len(records)} components to {output}", fg="green")
    click.echo(f"  With structured email: {with_email}")


@cli.command("scrape")
@click.option("--limit", type=int, default=None, help="Only the first N units")
@click.option("--concurrency", type=int, default=None, help="Browser pages in parallel")
@click.option("--output", "-o", type=click.Path(dir_okay=False), default=None, help="Snapshot file")
def scrape(limit, concurrency, output):
    """Scrape unit pages and save the scraped snapshot."""
    from scrapers.orchestrator import save_scraped_snapshot
    from scrapers.registry_client import RegistryAPIClient, RegistryAPIError
    from scrapers.scraper_pool import ScraperPool

    try:
        client = RegistryAPIClient()
    except RegistryAPIError as e:
        click.secho(f"Error: {e}", fg="red")
        sys.exit(1)

    with client:
        unit_ids = client.fetch_unit_ids()
    if limit is not None:
        unit_ids = unit_ids[:limit]

    records = ScraperPool(concurrency=concurrency).scrape(unit_ids)
    save_scraped_snapshot(output or Config.SCRAPED_SNAPSHOT_PATH, records)

    with_email = sum(1 for r in records if r.extracted_email)
    failed = sum(1 for r in records if r.is_placeholder)
    click.secho(f"Scraped {len(records)} units", fg="green")
    click.echo(f"  With email: {with_email}")
    click.echo(f"  Failed:     {failed}")


@cli.command("merge")
@click.option("--snapshot", type=click.Path(exists=True, dir_okay=False), default=None, help="Scraped snapshot")
@click.option("--dry-run", is_flag=True, help="Show the diff without writing the directory")
@click.pass_context
def merge(ctx, snapshot, dry_run):
    """Reconcile the scraped snapshot with a fresh registry fetch."""
    from scrapers.models import RunStatus
    from scrapers.orchestrator import DirectoryPipeline

    pipeline = DirectoryPipeline(store=_get_store(ctx), snapshot_path=snapshot)
    run = pipeline.merge(dry_run=dry_run)

    if run.status == RunStatus.FAILED:
        click.secho(f"Error: {run.error_message}", fg="red")
        sys.exit(1)
    _print_run(run)


@cli.command("run")
@click.option("--limit", type=int, default=None, help="Only scrape the first N units")
@click.option("--dry-run", is_flag=True, help="Do not write the snapshot or directory")
@click.pass_context
def run_pipeline(ctx, limit, dry_run):
    """Full pipeline: fetch, scrape, reconcile, store."""
    from scrapers.models import RunStatus
    from scrapers.orchestrator import DirectoryPipeline

    pipeline = DirectoryPipeline(store=_get_store(ctx))
    run = pipeline.run(limit=limit, dry_run=dry_run)

    if run.status == RunStatus.FAILED:
        click.secho(f"Error: {run.error_message}", fg="red")
        sys.exit(1)
    _print_run(run)


# =============================================================================
# Lookup
# =============================================================================

@cli.command("resolve")
@click.option("--unit-id", default=None, help="Registry unit id")
@click.option("--name", default=None, help="Agency or unit name")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
def resolve(ctx, unit_id, name, output_json):
    """Resolve an agency to a delivery channel."""
    from services.agency_resolver import AgencyResolver, ResolverQueryError

    resolver = AgencyResolver(_get_store(ctx).get_records)
    try:
        result = resolver.resolve(unit_id=unit_id, name=name)
    except ResolverQueryError as e:
        raise click.UsageError(str(e))

    if output_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    color = "green" if result.channel.value == "email" else "yellow"
    click.secho(f"Channel: {result.channel.value.upper()}", fg=color, bold=True)
    if result.record:
        click.echo(f"  Unit:    {result.record.name} ({result.record.unit_id})")
        click.echo(f"  Matched: {result.matched_by.value}")
    else:
        click.echo("  No directory match")
    if result.email_address:
        click.echo(f"  Email:   {result.email_address}")


@cli.command("search")
@click.argument("term", required=False, default="")
@click.option("--limit", type=int, default=20, help="Maximum results")
@click.option("--all", "include_all", is_flag=True, help="Include units without an email")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
def search(ctx, term, limit, include_all, output_json):
    """Search the directory by unit or parent name/abbreviation."""
    records = _get_store(ctx).search(term, limit=limit, with_email_only=not include_all)

    if output_json:
        click.echo(json.dumps([r.to_dict() for r in records], indent=2))
        return

    if not records:
        click.secho("No matching agencies", fg="yellow")
        return
    for record in records:
        parent = f" [{record.parent_abbreviation or record.parent_agency_name}]" if (
            record.parent_abbreviation or record.parent_agency_name
        ) else ""
        click.echo(f"{record.unit_id}  {record.name}{parent}  {record.primary_email or '-'}")


# =============================================================================
# Composition
# =============================================================================

@cli.command("compose")
@click.option("--unit-id", default=None, help="Registry unit id")
@click.option("--name", default=None, help="Agency or unit name")
@click.option("--request-file", type=click.File("r"), required=True, help="Text of the records request")
@click.option("--requester", "requester_file", type=click.File("r"), required=True, help="Requester details JSON")
@click.option("--subject", default="", help="Brief description for the email subject")
@click.pass_context
def compose(ctx, unit_id, name, request_file, requester_file, subject):
    """Print the email payload or portal manifest for a request."""
    from services.agency_resolver import AgencyResolver, ResolverQueryError
    from services.submission_composer import PortalManifest, RequesterDetails, compose_for

    try:
        requester = RequesterDetails(**json.load(requester_file))
    except (ValueError, TypeError) as e:
        raise click.BadParameter(f"Invalid requester details: {e}", param_hint="--requester")

    resolver = AgencyResolver(_get_store(ctx).get_records)
    try:
        resolution = resolver.resolve(unit_id=unit_id, name=name)
    except ResolverQueryError as e:
        raise click.UsageError(str(e))

    payload = compose_for(resolution, request_file.read(), requester, brief_description=subject)

    if isinstance(payload, PortalManifest):
        click.secho(f"PORTAL: {payload.portal_url or 'foia.gov'}", fg="yellow", bold=True)
        click.echo(json.dumps(payload.to_dict(), indent=2))
    else:
        click.secho(f"EMAIL: {payload.to}", fg="green", bold=True)
        click.echo(json.dumps(payload.to_dict(), indent=2, ensure_ascii=False))


if __name__ == "__main__":
    cli()
