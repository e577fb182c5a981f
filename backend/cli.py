#!/usr/bin/env python3
"""
CLI for the Chairman Dashboard

Commands:
    serve        - Run the API with Flask's development server
    options      - Walk the cascading filters against a running API
    metrics      - Show server cache and performance counters
    clear-cache  - Clear the server filter cache

Usage:
    python cli.py serve --port 5000
    python cli.py options --vertical Energy --business "Grid Ops"
    python cli.py options --year 2024 --json
    python cli.py metrics
    python cli.py clear-cache

Client commands read DASHBOARD_API_URL, DASHBOARD_BUCKET_ID,
DASHBOARD_USER_ID and DASHBOARD_CACHE_FILE from the environment.
"""

import json
import sys

import click

DEFAULT_API_URL = "http://localhost:5000"

LEVEL_COLUMNS = {
    "vertical": "VNAME",
    "business": "BUNAME",
    "site": "SINAME",
    "years": "YEAR",
    "months": "MONTHNAME",
}


def build_api(api_url):
    from dashboard_client.api import DashboardAPI
    return DashboardAPI(api_url)


@click.group()
@click.version_option(version="1.0.0", prog_name="dashboard-cli")
def cli():
    """Chairman Dashboard CLI - serve the API and inspect filter options."""
    pass


@cli.command("serve")
@click.option("--host", default="0.0.0.0", show_default=True)
@click.option("--port", type=int, default=5000, show_default=True)
@click.option("--debug", is_flag=True, help="Enable Flask debug mode")
def serve(host, port, debug):
    """Run the dashboard API (development server)."""
    from app import create_app
    app = create_app()
    app.run(debug=debug, host=host, port=port)


@cli.command("options")
@click.option("--api-url", envvar="DASHBOARD_API_URL", default=DEFAULT_API_URL, show_default=True)
@click.option("--bucket-id", envvar="DASHBOARD_BUCKET_ID", type=int, default=1, show_default=True)
@click.option("--user-id", envvar="DASHBOARD_USER_ID", type=int, default=1, show_default=True)
@click.option("--cache-file", envvar="DASHBOARD_CACHE_FILE", type=click.Path(), default=None,
              help="Persist client cache between runs")
@click.option("--vertical", default=None, help="Vertical to select ('All' for every vertical)")
@click.option("--business", default=None, help="Business to select")
@click.option("--year", default=None, help="Year to select")
@click.option("--refresh", is_flag=True, help="Clear both caches and re-fetch")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def options(api_url, bucket_id, user_id, cache_file, vertical, business, year, refresh, output_json):
    """
    Load filter options the way the dashboard does.

    Selections cascade: --vertical loads businesses, --business loads
    sites, --year loads months.
    """
    from dashboard_client.cache import ClientCache
    from dashboard_client.filter_state import FilterStateCoordinator

    cache = ClientCache(storage_path=cache_file)
    coordinator = FilterStateCoordinator(
        build_api(api_url), cache, bucket_id=bucket_id, user_id=user_id,
    )
    try:
        coordinator.load_initial()
        if vertical:
            coordinator.set_filter("vertical", vertical)
        if business:
            coordinator.set_filter("business", business)
        if year:
            coordinator.set_filter("year", year)
        if refresh:
            coordinator.refresh()
        snapshot = coordinator.snapshot()
    finally:
        coordinator.close()
        cache.close()

    errors = {lvl: str(err) for lvl, err in snapshot["errors"].items() if err is not None}

    if output_json:
        click.echo(json.dumps({
            "filters": snapshot["filters"],
            "data": snapshot["data"],
            "cached": snapshot["cached"],
            "errors": errors,
        }, indent=2, default=str))
    else:
        click.echo("=" * 60)
        click.secho("FILTER OPTIONS", fg="cyan", bold=True)
        click.echo("=" * 60)
        click.echo(f"Bucket: {bucket_id}  User: {user_id}")
        for lvl, column in LEVEL_COLUMNS.items():
            rows = snapshot["data"][lvl]
            if lvl in errors:
                click.secho(f"  {lvl:<9} error: {errors[lvl]}", fg="red")
                continue
            if not rows:
                continue
            values = ", ".join(str(r.get(column)) for r in rows)
            tag = " (cached)" if snapshot["cached"][lvl] else ""
            click.echo(f"  {lvl:<9} {values}{tag}")

    if errors:
        sys.exit(1)


@cli.command("metrics")
@click.option("--api-url", envvar="DASHBOARD_API_URL", default=DEFAULT_API_URL, show_default=True)
def metrics(api_url):
    """Show server cache and performance counters."""
    from dashboard_client.api import ApiError

    try:
        data = build_api(api_url).get_metrics()
    except ApiError as e:
        click.secho(f"Error: {e}", fg="red")
        sys.exit(1)

    cache = data.get("cache", {})
    perf = data.get("performance", {})
    click.secho("CACHE", fg="cyan", bold=True)
    click.echo(f"  Size:     {cache.get('size', 0)}/{cache.get('maxSize', 0)}")
    click.echo(f"  Hits:     {cache.get('hits', 0)}")
    click.echo(f"  Misses:   {cache.get('misses', 0)}")
    click.echo(f"  Hit rate: {cache.get('hitRate', 0)}%")
    click.secho("PERFORMANCE", fg="cyan", bold=True)
    click.echo(f"  API calls:      {perf.get('apiCalls', 0)}")
    click.echo(f"  Errors:         {perf.get('errors', 0)}")
    click.echo(f"  Avg query (ms): {perf.get('averageQueryTime', 0)}")


@cli.command("clear-cache")
@click.option("--api-url", envvar="DASHBOARD_API_URL", default=DEFAULT_API_URL, show_default=True)
def clear_cache(api_url):
    """Clear the server filter cache."""
    from dashboard_client.api import ApiError

    try:
        result = build_api(api_url).clear_server_cache()
    except ApiError as e:
        click.secho(f"Error: {e}", fg="red")
        sys.exit(1)
    click.secho(result.get("status", "cache cleared"), fg="green")


if __name__ == "__main__":
    cli()
