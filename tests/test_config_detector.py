"""Tests for deploy config probing and extraction."""

import asyncio
import json

import httpx

from fakes import BROKEN, SLOW, FakeContentSource, make_repo

from repo_dashboard.domain.entities import BoundResource
from repo_dashboard.infrastructure.github_contents_adapter import GitHubContentsAdapter
from repo_dashboard.services.config_detector import (
    CANDIDATE_FILES,
    ConfigDetector,
    extract_deploy_config,
)

TOML_SVC = 'name = "svc"\nmain = "src/index.ts"\npattern = "svc.example.com/*"\n'
JSON_SVC = json.dumps(
    {"name": "svc", "main": "src/index.ts", "route": {"pattern": "svc.example.com/*"}}
)


def _detect(files, repo=None, token=None, timeout=0.05):
    source = FakeContentSource(files)
    detector = ConfigDetector(source, probe_timeout=timeout)
    result = asyncio.run(detector.detect(repo or make_repo("svc"), token))
    return result, source


class TestProbing:
    """Tests for the ordered candidate walk."""

    def test_candidate_order(self):
        """The markup form is tried first, then the two structured forms."""
        assert CANDIDATE_FILES == ("wrangler.toml", "wrangler.json", "wrangler.jsonc")

    def test_no_candidates_present(self):
        """A repository without any config file is not deployable."""
        config, source = _detect({})
        assert config is None
        assert [c[2] for c in source.calls] == list(CANDIDATE_FILES)

    def test_first_hit_wins(self):
        """Once a file parses, later candidates are never requested."""
        files = {
            ("alice", "svc", "wrangler.toml"): TOML_SVC,
            ("alice", "svc", "wrangler.json"): '{"name": "other"}',
        }
        config, source = _detect(files)
        assert config is not None
        assert config.source_file == "wrangler.toml"
        assert config.name == "svc"
        assert [c[2] for c in source.calls] == ["wrangler.toml"]

    def test_timeout_moves_to_next_candidate(self):
        """A timed-out probe is a miss; the structured-data file is used instead."""
        files = {
            ("alice", "svc", "wrangler.toml"): SLOW,
            ("alice", "svc", "wrangler.json"): '{"name": "from-json", "routes": ["json.example.com/*"]}',
        }
        config, _ = _detect(files)
        assert config is not None
        assert config.source_file == "wrangler.json"
        assert config.name == "from-json"
        assert config.routes == ("json.example.com/*",)

    def test_transport_error_moves_to_next_candidate(self):
        """A failing request does not abort detection."""
        files = {
            ("alice", "svc", "wrangler.toml"): BROKEN,
            ("alice", "svc", "wrangler.jsonc"): '{"name": "svc" // trailing\n}',
        }
        config, _ = _detect(files)
        assert config is not None
        assert config.source_file == "wrangler.jsonc"

    def test_parse_error_moves_to_next_candidate(self):
        """A malformed file is treated like a missing one."""
        files = {
            ("alice", "svc", "wrangler.json"): "{broken",
            ("alice", "svc", "wrangler.jsonc"): '{"name": "svc"}',
        }
        config, _ = _detect(files)
        assert config is not None
        assert config.source_file == "wrangler.jsonc"

    def test_every_candidate_malformed(self):
        """If nothing parses, the repository has no config."""
        files = {
            ("alice", "svc", "wrangler.json"): "[]",
            ("alice", "svc", "wrangler.jsonc"): "nope",
        }
        config, _ = _detect(files)
        assert config is None

    def test_token_is_forwarded(self):
        """The credential reaches the content source."""
        _, source = _detect({}, token="t0k")
        assert all(call[3] == "t0k" for call in source.calls)

    def test_annotate_attaches_config(self):
        """annotate() returns a copy carrying the DeployConfig."""
        repo = make_repo("svc")
        detector = ConfigDetector(FakeContentSource({("alice", "svc", "wrangler.toml"): TOML_SVC}))
        annotated = asyncio.run(detector.annotate(repo))
        assert annotated.is_deployable
        assert not repo.is_deployable

    def test_hostile_repository_name_is_not_deployable(self):
        """A name the contents API cannot address resolves to no config."""

        async def _main():
            transport = httpx.MockTransport(lambda request: httpx.Response(404))
            async with httpx.AsyncClient(transport=transport) as client:
                detector = ConfigDetector(GitHubContentsAdapter(client, "https://gh.test"))
                return await detector.detect(make_repo("a\x00b"))

        assert asyncio.run(_main()) is None


class TestExtraction:
    """Tests for pulling DeployConfig fields out of parsed data."""

    def test_markup_and_structured_forms_agree_on_routes(self):
        """A single-route TOML file and its JSON equivalent yield the same patterns."""
        toml_config, _ = _detect({("alice", "svc", "wrangler.toml"): TOML_SVC})
        json_config, _ = _detect({("alice", "svc", "wrangler.json"): JSON_SVC})
        assert toml_config is not None and json_config is not None
        assert set(toml_config.routes) == set(json_config.routes) == {"svc.example.com/*"}
        assert toml_config.name == json_config.name
        assert toml_config.main == json_config.main

    def test_routes_list_and_single_route(self):
        """Both the list and the singular form contribute, without duplicates."""
        data = {
            "routes": [{"pattern": "a.com/*"}, "b.com/*", {"zone_name": "x"}],
            "route": {"pattern": "a.com/*"},
        }
        config = extract_deploy_config(data, "wrangler.json")
        assert config.routes == ("a.com/*", "b.com/*")

    def test_bound_resources(self):
        """KV, R2 and D1 bindings become kind + identifier pairs."""
        data = {
            "kv_namespaces": [{"binding": "CACHE", "id": "abc123"}],
            "r2_buckets": [{"binding": "FILES", "bucket_name": "files"}],
            "d1_databases": [
                {"binding": "DB", "database_name": "main", "database_id": "x"},
                "garbage",
            ],
        }
        config = extract_deploy_config(data, "wrangler.json")
        assert config.resources == (
            BoundResource("kv_namespace", "abc123"),
            BoundResource("r2_bucket", "files"),
            BoundResource("d1_database", "main"),
        )

    def test_wrong_types_are_ignored(self):
        """Non-string names and non-list collections do not break extraction."""
        config = extract_deploy_config({"name": 5, "routes": "x", "kv_namespaces": {}}, "w.json")
        assert config.name is None
        assert config.routes == ()
        assert config.resources == ()
