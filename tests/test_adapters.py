"""Tests for the httpx-backed adapters, driven through httpx.MockTransport."""

import asyncio
import base64

import httpx
import pytest

from repo_dashboard.domain.exceptions import ContentFetchError, UpstreamFetchError
from repo_dashboard.infrastructure.aggregation_adapter import AggregationAdapter, parse_listing
from repo_dashboard.infrastructure.github_contents_adapter import GitHubContentsAdapter


def _repo_json(name, private=False, **extra):
    data = {
        "id": 1,
        "name": name,
        "owner": {"login": "alice", "id": 7},
        "html_url": f"https://github.com/alice/{name}",
        "description": None,
        "default_branch": "main",
        "created_at": "2024-01-01T00:00:00Z",
        "updated_at": "2024-06-01T00:00:00Z",
        "topics": ["cli"],
        "archived": False,
        "private": private,
        "homepage": "",
        "stargazers_count": 3,
        "watchers_count": 3,
        "forks": 1,
        "forks_count": 1,
        "open_issues": 2,
        "size": 2048,
        "language": "Python",
    }
    data.update(extra)
    return data


def _run_with(handler, coro_factory):
    async def _main():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await coro_factory(client)

    return asyncio.run(_main())


class TestAggregationAdapter:
    """Tests for AggregationAdapter.fetch_repositories()."""

    def test_bare_list(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("authorization")
            return httpx.Response(200, json=[_repo_json("svc"), _repo_json("notes")])

        listing = _run_with(
            handler,
            lambda c: AggregationAdapter(c, "https://agg.test/").fetch_repositories("alice"),
        )
        assert seen == {"url": "https://agg.test/repos/alice", "auth": None}
        assert [r.name for r in listing.repositories] == ["svc", "notes"]
        first = listing.repositories[0]
        assert first.owner == "alice"
        assert first.description is None
        assert first.homepage is None
        assert first.topics == ("cli",)
        assert first.forks == 1
        assert first.open_issues == 2
        assert first.size_kb == 2048

    def test_credential_sent_as_bearer(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("authorization")
            return httpx.Response(200, json=[_repo_json("secret", private=True)])

        listing = _run_with(
            handler,
            lambda c: AggregationAdapter(c, "https://agg.test").fetch_repositories("alice", "tok"),
        )
        assert seen["auth"] == "Bearer tok"
        assert listing.repositories[0].private

    def test_non_success_is_fetch_error(self):
        def handler(request):
            return httpx.Response(503, text="down")

        with pytest.raises(UpstreamFetchError) as info:
            _run_with(
                handler,
                lambda c: AggregationAdapter(c, "https://agg.test").fetch_repositories("alice"),
            )
        assert info.value.status_code == 503

    def test_transport_failure_is_fetch_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(UpstreamFetchError):
            _run_with(
                handler,
                lambda c: AggregationAdapter(c, "https://agg.test").fetch_repositories("alice"),
            )

    def test_invalid_json_is_fetch_error(self):
        def handler(request):
            return httpx.Response(200, text="<html>")

        with pytest.raises(UpstreamFetchError):
            _run_with(
                handler,
                lambda c: AggregationAdapter(c, "https://agg.test").fetch_repositories("alice"),
            )


class TestParseListing:
    """Tests for payload shape handling."""

    def test_composite_payload_with_lists(self):
        payload = {
            "repositories": [_repo_json("svc")],
            "lists": [{"name": "Favourites", "repos": ["alice/svc"]}, {"bad": True}],
        }
        listing = parse_listing(payload)
        assert [r.name for r in listing.repositories] == ["svc"]
        assert [(lst.name, lst.members) for lst in listing.lists] == [
            ("Favourites", ("alice/svc",))
        ]

    def test_malformed_entries_are_skipped(self):
        payload = [_repo_json("svc"), {"name": "no-owner"}, "junk"]
        assert [r.name for r in parse_listing(payload).repositories] == ["svc"]

    def test_nulls_fall_back_to_defaults(self):
        listing = parse_listing([_repo_json("svc", topics=None, default_branch=None, language=None)])
        repo = listing.repositories[0]
        assert repo.topics == ()
        assert repo.default_branch == "main"
        assert repo.language is None

    @pytest.mark.parametrize("payload", [None, "x", {"items": []}, {"repositories": {}}])
    def test_unrecognised_shapes(self, payload):
        with pytest.raises(UpstreamFetchError):
            parse_listing(payload)


class TestGitHubContentsAdapter:
    """Tests for GitHubContentsAdapter.fetch_file()."""

    def _fetch(self, handler, token=None):
        return _run_with(
            handler,
            lambda c: GitHubContentsAdapter(c, "https://gh.test").fetch_file(
                "alice", "svc", "wrangler.toml", token
            ),
        )

    def test_decodes_wrapped_base64(self):
        encoded = base64.b64encode(b'name = "svc"\n' * 10).decode()
        wrapped = "\n".join(encoded[i : i + 60] for i in range(0, len(encoded), 60))
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("authorization")
            return httpx.Response(
                200, json={"type": "file", "encoding": "base64", "content": wrapped}
            )

        content = self._fetch(handler, token="tok")
        assert content == 'name = "svc"\n' * 10
        assert seen == {
            "url": "https://gh.test/repos/alice/svc/contents/wrangler.toml",
            "auth": "Bearer tok",
        }

    def test_not_found_is_a_miss(self):
        assert self._fetch(lambda request: httpx.Response(404)) is None

    def test_other_status_is_an_error(self):
        with pytest.raises(ContentFetchError):
            self._fetch(lambda request: httpx.Response(500))

    def test_directory_is_an_error(self):
        with pytest.raises(ContentFetchError):
            self._fetch(lambda request: httpx.Response(200, json=[{"type": "file"}]))

    def test_bad_base64_is_an_error(self):
        with pytest.raises(ContentFetchError):
            self._fetch(
                lambda request: httpx.Response(200, json={"type": "file", "content": "!!!"})
            )

    def _raw_path(self, owner, repo, path="wrangler.toml"):
        seen = {}

        def handler(request):
            seen["path"] = request.url.raw_path
            return httpx.Response(404)

        _run_with(
            handler,
            lambda c: GitHubContentsAdapter(c, "https://gh.test").fetch_file(owner, repo, path),
        )
        return seen["path"]

    def test_names_are_quoted_as_single_segments(self):
        assert self._raw_path("alice", "../x") == b"/repos/alice/..%2Fx/contents/wrangler.toml"
        assert self._raw_path("..", "svc") == b"/repos/%2E%2E/svc/contents/wrangler.toml"

    def test_nested_path_keeps_its_separators(self):
        raw = self._raw_path("alice", "svc", "deploy/wrangler.toml")
        assert raw == b"/repos/alice/svc/contents/deploy/wrangler.toml"

    def test_control_characters_are_quoted(self):
        assert self._raw_path("alice", "a\x00b") == b"/repos/alice/a%00b/contents/wrangler.toml"

    def test_unbuildable_url_is_a_content_error(self):
        with pytest.raises(ContentFetchError):
            _run_with(
                lambda request: httpx.Response(404),
                lambda c: GitHubContentsAdapter(c, "https://gh\x00.test").fetch_file(
                    "alice", "svc", "wrangler.toml"
                ),
            )
