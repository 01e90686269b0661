"""
CrawlPipeline tests with an in-memory link client.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

import httpx
import pytest

from sixth_degree.config import CrawlerConfig
from sixth_degree.crawler import CrawlPipeline, iter_seed_names, load_valid_names
from sixth_degree.exceptions import (
    FetchError,
    GraphWriteError,
    RetryExhaustedError,
    SeedFileError,
    TerminalFetchError,
)
from sixth_degree.wikipedia import WikiLinkClient

logger = logging.getLogger(__name__)


class FakeLinkClient:
    """Serves links from a dict; names in `failures` raise the given error."""

    def __init__(self, links: Dict[str, List[str]], failures: Optional[Dict[str, FetchError]] = None):
        self.links = links
        self.failures = failures or {}
        self.calls: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def fetch_all_links(self, page_title: str) -> List[str]:
        self.calls.append(page_title)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            if page_title in self.failures:
                raise self.failures[page_title]
            return list(self.links.get(page_title, []))
        finally:
            self.in_flight -= 1


PEOPLE = ["Albert Einstein", "Isaac Newton", "Marie Curie", "Niels Bohr", "Max Planck"]

LINKS = {
    "Albert Einstein": ["Physics", "Max Planck", "Niels Bohr", "Isaac Newton", "Max Planck"],
    "Isaac Newton": ["Gottfried Leibniz", "Albert Einstein"],
    "Marie Curie": ["Pierre Curie", "Albert Einstein", "Warsaw"],
    "Niels Bohr": ["Albert Einstein", "Copenhagen", "Max Planck"],
    "Max Planck": ["Quantum mechanics"],
}


def read_graph(path: Path) -> Dict[str, List[str]]:
    return json.loads(path.read_text(encoding="utf-8"))


@pytest.mark.unit
class TestSeeds:

    def test_blank_lines_and_whitespace_are_skipped(self, write_seed_file):
        path = write_seed_file(["Albert Einstein", "", "  Isaac Newton  ", "\t", "Marie Curie\r"])
        assert list(iter_seed_names(path)) == ["Albert Einstein", "Isaac Newton", "Marie Curie"]

    def test_valid_names_are_case_sensitive(self, write_seed_file):
        names = load_valid_names(write_seed_file(["Albert Einstein"]))
        assert "Albert Einstein" in names
        assert "albert einstein" not in names

    def test_missing_seed_file(self, tmp_path: Path):
        with pytest.raises(SeedFileError):
            load_valid_names(tmp_path / "nope.txt")

    def test_undecodable_seed_file(self, tmp_path: Path):
        path = tmp_path / "seed_names.txt"
        path.write_bytes(b"A\n\xff\xfe\n")

        with pytest.raises(SeedFileError) as exc_info:
            load_valid_names(path)
        assert isinstance(exc_info.value.__cause__, UnicodeDecodeError)


@pytest.mark.integration
class TestCrawlPipeline:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("num_workers", [1, 3, 10, 25])
    async def test_one_result_per_seed_for_any_worker_count(self, write_seed_file, tmp_path, num_workers):
        seed_path = write_seed_file(PEOPLE)
        output = tmp_path / "graph.json"
        client = FakeLinkClient(LINKS)

        pipeline = CrawlPipeline(client, load_valid_names(seed_path), num_workers=num_workers, queue_size=2)
        report = await pipeline.run(seed_path, output)

        assert report.jobs_processed == len(PEOPLE)
        assert report.node_count == len(PEOPLE)
        assert report.failed_nodes == []
        assert sorted(client.calls) == sorted(PEOPLE)
        assert client.max_in_flight <= num_workers

        graph = read_graph(output)
        assert set(graph) == set(PEOPLE)

    @pytest.mark.asyncio
    async def test_links_are_filtered_in_fetch_order(self, write_seed_file, tmp_path):
        seed_path = write_seed_file(PEOPLE)
        output = tmp_path / "graph.json"

        await CrawlPipeline(FakeLinkClient(LINKS), load_valid_names(seed_path), num_workers=2).run(seed_path, output)

        graph = read_graph(output)
        assert graph["Albert Einstein"] == ["Max Planck", "Niels Bohr", "Isaac Newton", "Max Planck"]
        assert graph["Marie Curie"] == ["Albert Einstein"]
        assert graph["Max Planck"] == []

    @pytest.mark.asyncio
    async def test_failed_nodes_are_kept_and_run_completes(self, write_seed_file, tmp_path, caplog):
        seed_path = write_seed_file(PEOPLE)
        output = tmp_path / "graph.json"
        failures = {
            "Isaac Newton": RetryExhaustedError("gave up", "Isaac Newton", attempts=3, last_error="HTTP 503"),
            "Niels Bohr": TerminalFetchError("forbidden", "Niels Bohr", status_code=403,
                                             partial_links=["Copenhagen", "Max Planck"]),
        }
        client = FakeLinkClient(LINKS, failures)

        with caplog.at_level(logging.ERROR):
            report = await CrawlPipeline(client, load_valid_names(seed_path), num_workers=3).run(seed_path, output)

        assert report.jobs_processed == len(PEOPLE)
        assert sorted(report.failed_nodes) == ["Isaac Newton", "Niels Bohr"]

        graph = read_graph(output)
        assert len(graph) == len(PEOPLE)
        assert graph["Isaac Newton"] == []
        assert graph["Niels Bohr"] == ["Max Planck"]
        assert "Error on Isaac Newton" in caplog.text

    @pytest.mark.asyncio
    async def test_more_seeds_than_queue_capacity(self, write_seed_file, tmp_path):
        names = [f"Person {i}" for i in range(250)]
        links = {name: [names[(i + 1) % len(names)], "Elsewhere"] for i, name in enumerate(names)}
        seed_path = write_seed_file(names)
        output = tmp_path / "graph.json"

        report = await CrawlPipeline(
            FakeLinkClient(links), load_valid_names(seed_path), num_workers=4, queue_size=3
        ).run(seed_path, output)

        assert report.jobs_processed == 250
        graph = read_graph(output)
        assert len(graph) == 250
        assert graph["Person 249"] == ["Person 0"]

    @pytest.mark.asyncio
    async def test_missing_seed_file_is_fatal(self, tmp_path):
        pipeline = CrawlPipeline(FakeLinkClient(LINKS), frozenset(PEOPLE), num_workers=3)

        with pytest.raises(SeedFileError):
            await asyncio.wait_for(pipeline.run(tmp_path / "missing.txt", tmp_path / "graph.json"), timeout=5)

        assert not (tmp_path / "graph.json").exists()

    @pytest.mark.asyncio
    async def test_unwritable_output_is_fatal(self, write_seed_file, tmp_path):
        seed_path = write_seed_file(PEOPLE)
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("file in the way")

        pipeline = CrawlPipeline(FakeLinkClient(LINKS), load_valid_names(seed_path), num_workers=2)

        with pytest.raises(GraphWriteError):
            await asyncio.wait_for(pipeline.run(seed_path, blocker / "graph.json"), timeout=5)

    def test_rejects_empty_worker_pool(self):
        with pytest.raises(ValueError):
            CrawlPipeline(FakeLinkClient({}), frozenset(), num_workers=0)

    def test_from_config(self):
        config = CrawlerConfig(num_workers=7, queue_size=11)
        pipeline = CrawlPipeline.from_config(FakeLinkClient({}), frozenset(), config)
        assert pipeline.num_workers == 7
        assert pipeline.queue_size == 11


@pytest.mark.integration
class TestCrawlPipelineOverHttp:
    """Pipeline and real WikiLinkClient over a mock transport."""

    @pytest.mark.asyncio
    async def test_end_to_end(self, write_seed_file, tmp_path, recording_sleep):
        attempts: Dict[str, int] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            title = request.url.params["titles"]
            attempts[title] = attempts.get(title, 0) + 1
            if title == "Isaac Newton" and attempts[title] == 1:
                return httpx.Response(503)
            if title == "Marie Curie":
                return httpx.Response(500)
            links = [{"ns": 0, "title": link} for link in LINKS.get(title, [])]
            return httpx.Response(200, json={"query": {"pages": {"1": {"title": title, "links": links}}}})

        seed_path = write_seed_file(PEOPLE)
        output = tmp_path / "graph.json"
        config = CrawlerConfig(api_url="https://wiki.test/w/api.php", num_workers=3)
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))

        async with WikiLinkClient(config, http_client=http_client, sleep=recording_sleep) as client:
            report = await CrawlPipeline.from_config(client, load_valid_names(seed_path), config).run(seed_path, output)
        await http_client.aclose()

        assert report.failed_nodes == ["Marie Curie"]
        assert attempts["Marie Curie"] == 3
        assert attempts["Isaac Newton"] == 2

        graph = read_graph(output)
        assert graph["Isaac Newton"] == ["Albert Einstein"]
        assert graph["Marie Curie"] == []

    @pytest.mark.asyncio
    async def test_corrupt_response_body_fails_only_that_node(self, write_seed_file, tmp_path, recording_sleep):
        def handler(request: httpx.Request) -> httpx.Response:
            title = request.url.params["titles"]
            if title == "B":
                return httpx.Response(
                    200,
                    content=b"not gzip",
                    headers={"Content-Type": "application/json", "Content-Encoding": "gzip"},
                )
            links = [{"ns": 0, "title": link} for link in ("A", "B", "C") if link != title]
            return httpx.Response(200, json={"query": {"pages": {"1": {"title": title, "links": links}}}})

        seed_path = write_seed_file(["A", "B", "C"])
        output = tmp_path / "graph.json"
        config = CrawlerConfig(api_url="https://wiki.test/w/api.php", num_workers=2)
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))

        async with WikiLinkClient(config, http_client=http_client, sleep=recording_sleep) as client:
            report = await CrawlPipeline.from_config(client, load_valid_names(seed_path), config).run(seed_path, output)
        await http_client.aclose()

        assert report.failed_nodes == ["B"]
        assert report.jobs_processed == 3
        assert recording_sleep.delays == []

        graph = read_graph(output)
        assert sorted(graph) == ["A", "B", "C"]
        assert graph["A"] == ["B", "C"]
        assert graph["B"] == []
