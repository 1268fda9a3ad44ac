import pytest
import responses
from responses import matchers

from src.config import ImdbConfig, NetflixConfig
from src.enrichment.imdb_client import ImdbClient
from src.errors import InvalidIdentifier, RemoteError
from src.fetchers.http_client import create_session

BASE_URL = "https://api.imdbapi.dev"


def _client(imdb_config: ImdbConfig = ImdbConfig()) -> ImdbClient:
    session = create_session(NetflixConfig(retry_count=0), imdb_config)
    return ImdbClient(session, imdb_config)


class TestSearch:
    @responses.activate
    def test_returns_titles(self):
        responses.add(
            responses.GET,
            f"{BASE_URL}/search/titles",
            json={"titles": [{"id": "tt1234567", "primaryTitle": "Steve"}]},
            match=[matchers.query_param_matcher({"query": "Steve", "limit": "1"})],
        )
        titles = _client().search("Steve", 1)
        assert titles == [{"id": "tt1234567", "primaryTitle": "Steve"}]

    @responses.activate
    def test_no_titles_key(self):
        responses.add(responses.GET, f"{BASE_URL}/search/titles", json={})
        assert _client().search("Nothing") == []

    def test_blank_query(self):
        with pytest.raises(ValueError):
            _client().search("   ")

    @responses.activate
    def test_http_error_raises_remote_error(self):
        responses.add(
            responses.GET,
            f"{BASE_URL}/search/titles",
            status=403,
            body="forbidden",
        )
        with pytest.raises(RemoteError) as excinfo:
            _client().search("Steve")
        assert excinfo.value.status == 403
        assert excinfo.value.text == "forbidden"

    @responses.activate
    def test_query_api_key(self):
        responses.add(
            responses.GET,
            f"{BASE_URL}/search/titles",
            json={"titles": []},
            match=[
                matchers.query_param_matcher(
                    {"query": "Steve", "apiKey": "secret"}
                )
            ],
        )
        client = _client(ImdbConfig(api_key="secret", auth_style="query"))
        assert client.search("Steve") == []

    @responses.activate
    def test_header_api_key(self):
        responses.add(
            responses.GET,
            f"{BASE_URL}/search/titles",
            json={"titles": []},
            match=[
                matchers.header_matcher({"Authorization": "Bearer secret"})
            ],
        )
        client = _client(ImdbConfig(api_key="secret", auth_style="header"))
        assert client.search("Steve") == []


class TestFetchById:
    @responses.activate
    def test_returns_record(self):
        responses.add(
            responses.GET,
            f"{BASE_URL}/titles/tt1234567",
            json={"id": "tt1234567", "type": "movie", "genres": ["Drama"]},
        )
        record = _client().fetch_by_id("tt1234567")
        assert record["genres"] == ["Drama"]

    @responses.activate
    def test_invalid_id_fails_before_request(self):
        with pytest.raises(InvalidIdentifier):
            _client().fetch_by_id("nm1234567")
        with pytest.raises(InvalidIdentifier):
            _client().fetch_by_id("tt12")
        assert len(responses.calls) == 0

    @responses.activate
    def test_not_found(self):
        responses.add(
            responses.GET,
            f"{BASE_URL}/titles/tt7654321",
            status=404,
            body="not found",
        )
        with pytest.raises(RemoteError) as excinfo:
            _client().fetch_by_id("tt7654321")
        assert excinfo.value.status == 404


class TestBatchGet:
    @responses.activate
    def test_repeats_title_ids(self):
        responses.add(
            responses.GET,
            f"{BASE_URL}/titles:batchGet",
            json={"titles": [{"id": "tt0000001"}, {"id": "tt0000002"}]},
        )
        titles = _client().batch_get(["tt0000001", "tt0000002"])
        assert [t["id"] for t in titles] == ["tt0000001", "tt0000002"]
        assert responses.calls[0].request.url.count("titleIds=") == 2

    def test_too_many_ids(self):
        ids = [f"tt000000{i}" for i in range(6)]
        with pytest.raises(ValueError):
            _client().batch_get(ids)
