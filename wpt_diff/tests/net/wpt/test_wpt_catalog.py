import pytest
import requests

from wpt_diff.errors import CatalogError, FetchError, ParseError, SchemaError
from wpt_diff.models.wpt_models import UpdateManifest
from wpt_diff.net.wpt.wpt_catalog import (
    fetch_manifest_timeouts,
    manifest_timeouts,
    normalize_manifest_url,
    resolve_catalog,
)
from wpt_diff.tests.fakes import FakeHttpResponse, FakeHttpSession

API_URL = "https://wpt.example"
RUNS_URL = "https://wpt.example/api/run?label=master&label=stable&product=chrome&aligned"
REPORT_URL = "https://storage.example/chrome-report.json"
MANIFEST_URL = "https://wpt.live/tools/runner/update_manifest.py"


def chrome_report():
    return {
        "run_info": {"product": "chrome", "browser_version": "120"},
        "results": [
            {"test": "/a.html", "status": "OK", "subtests": [{"name": "t1", "status": "PASS"}]},
            {"test": "bad-path.html", "status": "OK", "subtests": []},
            {"test": "/b.html", "status": "ERROR", "subtests": [{"name": "t1", "status": "FAIL", "message": "x"}]},
        ],
    }


def test_resolve_catalog(logger):
    session = FakeHttpSession({
        RUNS_URL: FakeHttpResponse({"id": 1, "raw_results_url": REPORT_URL}),
        REPORT_URL: FakeHttpResponse(chrome_report()),
    })

    catalog = resolve_catalog(API_URL, session=session, logger=logger)

    assert catalog.test_paths == ["/a.html", "/b.html"]
    assert catalog.chrome_report.run_info["browser_version"] == "120"
    assert [result.test for result in catalog.chrome_report.results] == ["/a.html", "bad-path.html", "/b.html"]
    assert session.requests == [("GET", RUNS_URL), ("GET", REPORT_URL)]
    assert any("bad-path.html" in message for message in logger.messages("warn"))


def test_network_failure_is_a_fetch_error():
    session = FakeHttpSession({RUNS_URL: requests.exceptions.ConnectionError("connection refused")})

    with pytest.raises(FetchError) as error:
        resolve_catalog(API_URL, session=session)

    assert error.value.url == RUNS_URL


def test_http_error_status_is_a_fetch_error():
    session = FakeHttpSession({RUNS_URL: FakeHttpResponse({}, status_code=503)})

    with pytest.raises(FetchError):
        resolve_catalog(API_URL, session=session)


def test_invalid_json_is_a_parse_error():
    session = FakeHttpSession({
        RUNS_URL: FakeHttpResponse({"raw_results_url": REPORT_URL}),
        REPORT_URL: FakeHttpResponse("<html>not json</html>"),
    })

    with pytest.raises(ParseError) as error:
        resolve_catalog(API_URL, session=session)

    assert error.value.url == REPORT_URL


def test_missing_raw_results_url_is_a_schema_error():
    session = FakeHttpSession({RUNS_URL: FakeHttpResponse({"id": 1})})

    with pytest.raises(SchemaError):
        resolve_catalog(API_URL, session=session)


def test_catalog_errors_share_a_base():
    session = FakeHttpSession({RUNS_URL: FakeHttpResponse([1, 2, 3])})

    with pytest.raises(CatalogError):
        resolve_catalog(API_URL, session=session)


@pytest.mark.parametrize("url, url_base, expected", [
    ("/dom/a.html", "/", "/dom/a.html"),
    ("dom/a.html", "/", "/dom/a.html"),
    ("dom/a.html", None, "/dom/a.html"),
    ("dom/a.html", "/wpt/", "/wpt/dom/a.html"),
    ("/wpt/dom/a.html", "/wpt/", "/wpt/dom/a.html"),
])
def test_normalize_manifest_url(url, url_base, expected):
    assert normalize_manifest_url(url, url_base) == expected


def test_manifest_timeouts():
    manifest = UpdateManifest.model_validate({
        "items": {
            "testharness": {
                "fetch/api/basic.any.js": [
                    ["fetch/api/basic.any.html", {}],
                    ["fetch/api/basic.any.worker.html", {"timeout": "long"}],
                ],
                "dom/nodes/Node-appendChild.html": [[None, {}]],
                "xhr/slow.htm": [["/xhr/slow.htm", {"timeout": "long"}]],
            },
        },
        "url_base": "/",
    })

    assert manifest_timeouts(manifest) == {
        "/fetch/api/basic.any.html": 10,
        "/fetch/api/basic.any.worker.html": 60,
        "/dom/nodes/Node-appendChild.html": 10,
        "/xhr/slow.htm": 60,
    }


def test_fetch_manifest_timeouts_posts_to_the_update_endpoint(logger):
    session = FakeHttpSession({
        MANIFEST_URL: FakeHttpResponse({"items": {"testharness": {"a.html": [["a.html", {}]]}}, "url_base": "/"}),
    })

    timeouts = fetch_manifest_timeouts("https://wpt.live/", session=session, logger=logger)

    assert timeouts == {"/a.html": 10}
    assert session.requests == [("POST", MANIFEST_URL)]


def test_malformed_manifest_is_a_schema_error():
    session = FakeHttpSession({MANIFEST_URL: FakeHttpResponse({"items": {"testharness": ["not", "a", "map"]}})})

    with pytest.raises(SchemaError):
        fetch_manifest_timeouts("https://wpt.live", session=session)
