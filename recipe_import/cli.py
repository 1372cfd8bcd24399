"""Typer CLI for recipe-import (fetch, sites)."""

from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from dotenv import load_dotenv
# load .env immediately so subsequent imports (which read settings at import time)
# pick up values from the .env file
load_dotenv()

# Configure top-level logging early so other modules pick it up.
import logging
from recipe_import.settings import settings

log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
handlers = [logging.StreamHandler()]
if settings.LOG_FILE:
    handlers.append(logging.FileHandler(settings.LOG_FILE))
logging.basicConfig(
    level=log_level,
    format="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
    handlers=handlers,
)

# Quiet noisy third-party loggers while keeping our app logs
logging.getLogger("urllib3").setLevel(logging.WARNING)
logging.getLogger("charset_normalizer").setLevel(logging.WARNING)

from recipe_import.errors import RecipeImportError
from recipe_import.ingest.site_rules import load_site_rules
from recipe_import.models.recipe_schema import Recipe
from recipe_import.orchestrate.run import import_recipe_from_url
from recipe_import.settings import validate_settings

app = typer.Typer()
console = Console()


def _print_recipe(recipe: Recipe) -> None:
    console.print(f"[bold]{recipe.title}[/bold]")
    console.print(f"Source: {recipe.source_url}")
    facts = [
        ("Servings", recipe.servings),
        ("Prep", recipe.prep_time),
        ("Cook", recipe.cook_time),
        ("Rest", recipe.rest_time),
        ("Total", recipe.total_time),
        ("Calories", recipe.calories),
    ]
    console.print("  ".join(f"{k}: {v if v is not None else '-'}" for k, v in facts))

    table = Table(title="Ingredients")
    table.add_column("Amount", justify="right")
    table.add_column("Unit")
    table.add_column("Name")
    table.add_column("Group")
    for ing in recipe.ingredients:
        table.add_row(
            "" if ing.amount is None else str(ing.amount),
            ing.unit or "",
            ing.name,
            ing.group_label or "",
        )
    console.print(table)

    for n, step in enumerate(recipe.instructions, start=1):
        console.print(f"{n}. {step}")
    for img in recipe.images:
        console.print(f"[dim]{img}[/dim]")


@app.command()
def fetch(
    url: str,
    as_json: bool = typer.Option(False, "--json", help="Print the recipe as JSON."),
    timeout: Optional[float] = typer.Option(None, help="Fetch timeout in seconds."),
):
    """Import a recipe from URL and print it."""
    try:
        recipe = import_recipe_from_url(url, timeout=timeout)
    except RecipeImportError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(code=2 if e.transient else 1)
    if as_json:
        typer.echo(recipe.model_dump_json(by_alias=True, indent=2))
    else:
        _print_recipe(recipe)


@app.command()
def sites():
    """List the sites that have scraping rules."""
    table = Table(title="Site rules")
    table.add_column("Name")
    table.add_column("Domains")
    for rule in load_site_rules():
        table.add_row(rule.name, ", ".join(rule.domains))
    console.print(table)


def main() -> None:
    # dotenv already loaded at module import
    validate_settings()
    app()


if __name__ == "__main__":
    main()
