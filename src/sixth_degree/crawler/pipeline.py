"""
CrawlPipeline - turns a seed list into a persisted adjacency map.

Roles, all asyncio tasks communicating only through two bounded queues:

    producer     seed file -> jobs queue, then closes jobs
    workers (N)  jobs -> fetch + filter -> results
    coordinator  waits for every worker to exit, then closes results
    aggregator   results -> graph, writes the graph once, returns a report

Only the aggregator touches the output graph. Closing a queue means putting
the _CLOSED sentinel on it; only the producer closes jobs and only the
coordinator closes results.
"""

import asyncio
import logging
from pathlib import Path
from typing import AbstractSet, List, Optional, Union

from sixth_degree.config import CrawlerConfig
from sixth_degree.exceptions import FetchError
from sixth_degree.graph.store import save_graph
from sixth_degree.models import CrawlReport, Graph, JobRequest, JobResult
from sixth_degree.wikipedia.link_client import WikiLinkClient

from .seeds import iter_seed_names

logger = logging.getLogger(__name__)

_CLOSED = object()


class CrawlPipeline:
    """Bounded worker pool crawl of every name in a seed file."""

    def __init__(
        self,
        client: WikiLinkClient,
        valid_names: AbstractSet[str],
        num_workers: int = 10,
        queue_size: int = 100,
    ):
        if num_workers < 1:
            raise ValueError("num_workers must be at least 1")
        if queue_size < 1:
            raise ValueError("queue_size must be at least 1")
        self.client = client
        self.valid_names = valid_names
        self.num_workers = num_workers
        self.queue_size = queue_size

    @classmethod
    def from_config(cls, client: WikiLinkClient, valid_names: AbstractSet[str],
                    config: CrawlerConfig) -> "CrawlPipeline":
        return cls(client, valid_names, num_workers=config.num_workers, queue_size=config.queue_size)

    async def run(self, seed_path: Union[str, Path], output_path: Union[str, Path]) -> CrawlReport:
        """
        Crawl every seed and write the graph to output_path.

        Per-node fetch failures are recorded and logged; the node is kept with
        whatever neighbors were collected. A seed file that cannot be read or
        an output that cannot be written aborts the whole run.
        """
        jobs: asyncio.Queue = asyncio.Queue(maxsize=self.queue_size)
        results: asyncio.Queue = asyncio.Queue(maxsize=self.queue_size)

        logger.info(f"Starting crawl of {seed_path} with {self.num_workers} workers")

        producer = asyncio.create_task(self._produce(seed_path, jobs), name="crawl-producer")
        workers = [
            asyncio.create_task(self._work(worker_id, jobs, results), name=f"crawl-worker-{worker_id}")
            for worker_id in range(self.num_workers)
        ]
        coordinator = asyncio.create_task(self._close_when_done(workers, results), name="crawl-coordinator")
        aggregator = asyncio.create_task(self._aggregate(results, Path(output_path)), name="crawl-aggregator")
        tasks = [producer, *workers, coordinator, aggregator]

        try:
            _, _, report = await asyncio.gather(producer, coordinator, aggregator)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        logger.info(
            f"Crawl complete: {report.jobs_processed} results, "
            f"{len(report.failed_nodes)} failures, graph written to {report.output_path}"
        )
        return report

    async def _produce(self, seed_path: Union[str, Path], jobs: asyncio.Queue) -> int:
        """Emit one JobRequest per seed line, then close the jobs queue."""
        total = 0
        for name in iter_seed_names(seed_path):
            total += 1
            await jobs.put(JobRequest(name=name, sequence=total))
        await jobs.put(_CLOSED)
        logger.info(f"Producer queued {total} jobs")
        return total

    async def _work(self, worker_id: int, jobs: asyncio.Queue, results: asyncio.Queue):
        """Process jobs until the jobs queue is closed and drained."""
        while True:
            job = await jobs.get()
            if job is _CLOSED:
                # Leave the sentinel for the remaining workers
                await jobs.put(_CLOSED)
                logger.debug(f"Worker {worker_id} exiting")
                return
            await results.put(await self._process(job))

    async def _process(self, job: JobRequest) -> JobResult:
        try:
            links = await self.client.fetch_all_links(job.name)
            error: Optional[str] = None
        except FetchError as e:
            links = e.partial_links
            error = f"{type(e).__name__}: {e.message}"

        return JobResult(
            name=job.name,
            sequence=job.sequence,
            connections=self._filter_links(links),
            error=error,
        )

    def _filter_links(self, links: List[str]) -> List[str]:
        """Keep only links to valid names, in fetch order."""
        return [link for link in links if link in self.valid_names]

    async def _close_when_done(self, workers: List[asyncio.Task], results: asyncio.Queue):
        """Close results only once every worker has exited."""
        await asyncio.gather(*workers)
        await results.put(_CLOSED)

    async def _aggregate(self, results: asyncio.Queue, output_path: Path) -> CrawlReport:
        """Sole owner of the output graph. Writes it exactly once."""
        graph: Graph = {}
        failed_nodes: List[str] = []
        processed = 0

        while True:
            result = await results.get()
            if result is _CLOSED:
                break
            processed += 1
            graph[result.name] = result.connections
            logger.info(f"{processed} results processed (job #{result.sequence}: {result.name})")

            if result.failed:
                failed_nodes.append(result.name)
                logger.error(f"Error on {result.name}: {result.error}")

        await asyncio.to_thread(save_graph, graph, output_path)
        return CrawlReport(
            output_path=output_path,
            jobs_processed=processed,
            node_count=len(graph),
            failed_nodes=failed_nodes,
        )
