import logging

from typer import Typer, Option, Argument, Exit
from typing import Annotated
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .backfill import EmbeddingBackfill
from .config import SearchSettings, resolve_db_path
from .embeddings import EmbeddingProvider
from .errors import CatalogSearchError
from .models import build_query
from .search import ProductCandidate
from .server import build_services
from .storage import DuckDBCatalog

app = Typer(help="Hybrid keyword and semantic product search.")
console = Console()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _embedding_provider() -> EmbeddingProvider:
    try:
        return EmbeddingProvider()
    except ValueError as exc:
        console.print(f"[bold red]Embedding provider unavailable:[/] {exc}")
        raise Exit(code=1)


def _candidate_table(title: str, candidates: list[ProductCandidate]) -> Table:
    table = Table(title=title, title_justify="left")
    table.add_column("Score", justify="right")
    table.add_column("Match")
    table.add_column("Name")
    table.add_column("Category")
    table.add_column("Price", justify="right")
    for candidate in candidates:
        table.add_row(
            f"{candidate.score:.3f}",
            candidate.match_type,
            candidate.product.name,
            candidate.product.category,
            f"{candidate.product.price:.2f}",
        )
    return table


@app.command()
def search(
    query: Annotated[str, Argument(help="Free-text product query.")],
    mode: Annotated[str, Option("--mode", "-m", help="hybrid or semantic")] = "hybrid",
    limit: Annotated[int, Option("--limit", "-n")] = 20,
    category: Annotated[str | None, Option("--category", "-c")] = None,
    min_similarity: Annotated[float, Option("--min-similarity")] = 0.5,
    vector_index: Annotated[
        bool,
        Option("--vector-index/--no-vector-index", help="Try the HNSW similarity index first."),
    ] = True,
    db_path: Annotated[str | None, Option("--db-path", help="DuckDB catalog path.")] = None,
    verbose: Annotated[bool, Option("--verbose", "-v")] = False,
) -> None:
    """Search the catalog and print ranked results."""
    _configure_logging(verbose)
    if mode not in ("hybrid", "semantic"):
        console.print(f"[bold red]Unknown mode:[/] {mode}")
        raise Exit(code=2)
    provider = _embedding_provider()
    catalog = DuckDBCatalog(resolve_db_path(db_path), dim=provider.dim)
    try:
        if vector_index:
            catalog.enable_vector_index()
        services = build_services(catalog, provider, SearchSettings.from_env())
        parsed = build_query(
            query, category=category, limit=limit, min_similarity=min_similarity
        )
        if mode == "semantic":
            result = services.semantic.search(parsed)
            table = Table(title=f"Semantic results ({result.semantic_source})", title_justify="left")
            table.add_column("Relevance", justify="right")
            table.add_column("Name")
            table.add_column("Category")
            for hit in result.hits:
                table.add_row(f"{hit.similarity:.3f}", hit.product.name, hit.product.category)
            console.print(table)
            console.print(f"[dim]{result.count} results in {result.timing_ms}ms[/]")
        else:
            result = services.hybrid.search(parsed)
            console.print(_candidate_table("Exact matches", result.exact_matches))
            console.print(_candidate_table("Suggestions", result.suggestions))
            if result.degraded:
                console.print("[bold yellow]Embeddings unavailable: keyword results only.[/]")
            console.print(f"[dim]{result.count} exact, {result.suggestions_count} suggestions in {result.timing_ms}ms[/]")
    except (CatalogSearchError, ValueError) as exc:
        console.print(f"[bold red]Search failed:[/] {exc}")
        raise Exit(code=1)
    finally:
        catalog.close()


@app.command()
def backfill(
    batch_size: Annotated[int, Option("--batch-size", "-b")] = 10,
    pause: Annotated[float, Option("--pause", help="Seconds between batches.")] = 1.0,
    product_ids: Annotated[
        list[str] | None,
        Option("--product-id", "-p", help="Re-embed these products instead of missing ones."),
    ] = None,
    db_path: Annotated[str | None, Option("--db-path", help="DuckDB catalog path.")] = None,
    verbose: Annotated[bool, Option("--verbose", "-v")] = False,
) -> None:
    """Generate embeddings for products that do not have one yet, or refresh given ones."""
    _configure_logging(verbose)
    provider = _embedding_provider()
    catalog = DuckDBCatalog(resolve_db_path(db_path), dim=provider.dim)
    try:
        with console.status(status="Generating product embeddings..."):
            job = EmbeddingBackfill(catalog, provider)
            if product_ids:
                result = job.refresh(product_ids, batch_size=batch_size, pause=pause)
            else:
                result = job.run(batch_size=batch_size, pause=pause)
    except (CatalogSearchError, ValueError) as exc:
        console.print(f"[bold red]Backfill failed:[/] {exc}")
        raise Exit(code=1)
    finally:
        catalog.close()

    console.print(
        f"[bold green]{result.success}[/] of {result.total} products embedded, "
        f"[bold red]{result.failed}[/] failed."
    )
    for error in result.errors:
        console.print(f"  [red]✗[/] {error['product_id']}: {error['error']}")


@app.command()
def serve(
    host: Annotated[str, Option("--host")] = "127.0.0.1",
    port: Annotated[int, Option("--port")] = 8000,
) -> None:
    """Run the HTTP search API."""
    from .server import run_server

    run_server(host=host, port=port)
