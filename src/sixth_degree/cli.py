import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from sixth_degree.config import CrawlerConfig
from sixth_degree.crawler import CrawlPipeline, load_valid_names
from sixth_degree.exceptions import GraphLoadError, SixthDegreeException
from sixth_degree.graph import GraphStore, PathFinder
from sixth_degree.logging_config import setup_logging
from sixth_degree.models import PathQuery, encode_message
from sixth_degree.progress import SearchSession
from sixth_degree.wikipedia import WikiLinkClient

app = typer.Typer(help="Crawl a Wikipedia link graph of people and search it.")
console = Console()
logger = logging.getLogger(__name__)


@app.command()
def crawl(
    seed_file: Optional[Path] = typer.Option(None, "--seed-file", "-i", help="Newline-delimited seed names."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Where to write the graph JSON."),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", min=1, help="Number of fetch workers."),
):
    """
    Build graph.json from the seed list.
    """
    config = CrawlerConfig.from_env()
    setup_logging(level=config.log_level, progress_level=config.progress_log_level)

    seed_path = seed_file or config.seed_file
    output_path = output or config.graph_file
    if workers is not None:
        config = config.model_copy(update={"num_workers": workers})

    try:
        report = asyncio.run(run_crawl(config, seed_path, output_path))
    except SixthDegreeException as e:
        logger.error(f"Crawl failed: {e.message}")
        raise typer.Exit(code=1)

    console.print(
        f"[bold green]Crawled {report.jobs_processed} pages[/] -> {report.output_path} "
        f"({report.node_count} nodes, {len(report.failed_nodes)} failures)"
    )


async def run_crawl(config: CrawlerConfig, seed_path: Path, output_path: Path):
    valid_names = load_valid_names(seed_path)
    async with WikiLinkClient(config) as client:
        pipeline = CrawlPipeline.from_config(client, valid_names, config)
        return await pipeline.run(seed_path, output_path)


@app.command()
def search(
    start: str = typer.Argument(..., help="Start node name."),
    end: str = typer.Argument(..., help="End node name."),
    graph_file: Optional[Path] = typer.Option(None, "--graph-file", "-g", help="Graph JSON to search."),
):
    """
    Find the shortest path between two people and print the progress stream.
    """
    config = CrawlerConfig.from_env()
    setup_logging(level=config.log_level)

    try:
        store = GraphStore.load(graph_file or config.graph_file)
    except GraphLoadError as e:
        logger.error(e.message)
        raise typer.Exit(code=1)

    session = SearchSession(PathFinder(store), lambda message: console.print_json(encode_message(message)))
    result = session.run(PathQuery(start_node=start, end_node=end))
    if result is None:
        raise typer.Exit(code=1)
    console.print(" -> ".join(result.path))


if __name__ == "__main__":
    app()
