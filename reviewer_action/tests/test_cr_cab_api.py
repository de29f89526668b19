import pytest
import requests

from ..common import actions, cr_cab_api  # noqa: TID252
from ..common.errors import ApiFetchError, ApiResponseFormatError  # noqa: TID252

API_KEY = "test-api-key"


class FakeResponse:
    def __init__(self, status_code, data=None, reason="OK"):
        self.status_code = status_code
        self.reason = reason
        self._data = data

    def json(self):
        if isinstance(self._data, Exception):
            raise self._data
        return self._data


def server_error():
    return FakeResponse(500, {}, "Internal Server Error")


@pytest.fixture(autouse=True)
def no_secrets():
    actions.clear_secrets()
    yield
    actions.clear_secrets()


@pytest.fixture
def sleeps(monkeypatch):
    delays = []
    monkeypatch.setattr(cr_cab_api.time, "sleep", delays.append)
    return delays


@pytest.fixture
def responses(monkeypatch):
    """Queue of responses (or exceptions) returned by successive requests.get calls."""
    queue = []
    calls = []

    def fake_get(url, **kwargs):
        calls.append({"url": url, **kwargs})
        result = queue.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    monkeypatch.setattr(cr_cab_api.requests, "get", fake_get)
    return queue, calls


def test_array_response(responses, sleeps):
    queue, calls = responses
    queue.append(FakeResponse(200, ["reviewer1", "reviewer2"]))
    assert cr_cab_api.fetch_reviewers(API_KEY, "p2") == ["reviewer1", "reviewer2"]
    assert len(calls) == 1
    assert sleeps == []


def test_object_response_with_usernames(responses, sleeps):
    queue, _ = responses
    queue.append(
        FakeResponse(
            200,
            {
                "reviewers": [{"githubUsername": "reviewer1"}, {"githubUsername": "reviewer2"}],
                "count": 2,
                "severity": "p2",
            },
        )
    )
    assert cr_cab_api.fetch_reviewers(API_KEY, "p2") == ["reviewer1", "reviewer2"]


def test_array_and_object_responses_are_equivalent(responses, sleeps):
    queue, _ = responses
    queue.append(FakeResponse(200, ["a", "b"]))
    queue.append(FakeResponse(200, {"reviewers": ["a", "b"], "count": 2}))
    assert cr_cab_api.fetch_reviewers(API_KEY, "p1") == cr_cab_api.fetch_reviewers(API_KEY, "p1")


def test_request_shape(responses, sleeps):
    queue, calls = responses
    queue.append(FakeResponse(200, []))
    assert cr_cab_api.fetch_reviewers(API_KEY, "p1") == []
    call = calls[0]
    assert call["url"] == "https://cr-cab.com/api/reviewers/available"
    assert call["params"] == {"severity": "p1"}
    assert call["headers"]["Authorization"] == f"Bearer {API_KEY}"
    assert call["headers"]["Content-Type"] == "application/json"
    assert call["timeout"] == cr_cab_api.REQUEST_TIMEOUT


@pytest.mark.parametrize("fail_on_api_error", [False, True])
def test_invalid_shape_always_raises(responses, sleeps, fail_on_api_error):
    queue, _ = responses
    queue.append(FakeResponse(200, {"data": []}))
    with pytest.raises(ApiResponseFormatError, match="Invalid API response format"):
        cr_cab_api.fetch_reviewers(API_KEY, "p1", fail_on_api_error)


def test_invalid_entry_raises(responses, sleeps):
    queue, _ = responses
    queue.append(FakeResponse(200, ["ok", {"login": "nope"}]))
    with pytest.raises(ApiResponseFormatError, match="index 1"):
        cr_cab_api.fetch_reviewers(API_KEY, "p1")


def test_non_json_body_raises(responses, sleeps):
    queue, _ = responses
    queue.append(FakeResponse(200, ValueError("Expecting value")))
    with pytest.raises(ApiResponseFormatError):
        cr_cab_api.fetch_reviewers(API_KEY, "p1")


def test_retries_on_500_then_succeeds(responses, sleeps, capsys):
    queue, calls = responses
    queue.extend([server_error(), FakeResponse(200, ["reviewer1"])])
    assert cr_cab_api.fetch_reviewers(API_KEY, "p2") == ["reviewer1"]
    assert len(calls) == 2
    assert sleeps == [0.25]
    assert "retrying in 250ms" in capsys.readouterr().out


def test_succeeds_on_last_attempt(responses, sleeps, capsys):
    queue, calls = responses
    queue.extend([server_error(), FakeResponse(503, {}, "Service Unavailable"), FakeResponse(200, ["r"])])
    assert cr_cab_api.fetch_reviewers(API_KEY, "p0") == ["r"]
    assert len(calls) == 3
    assert sleeps == [0.25, 0.75]
    out = capsys.readouterr().out
    assert "retrying in 250ms" in out
    assert "retrying in 750ms" in out


def test_500_exhausted_returns_none(responses, sleeps, capsys):
    queue, calls = responses
    queue.extend([server_error(), server_error(), server_error()])
    assert cr_cab_api.fetch_reviewers(API_KEY, "p2", False) is None
    assert len(calls) == 3
    assert sleeps == [0.25, 0.75]
    assert "::warning::CR Cab API unavailable (status=500)" in capsys.readouterr().out


def test_500_exhausted_raises_when_strict(responses, sleeps):
    queue, calls = responses
    queue.extend([server_error(), server_error(), server_error()])
    with pytest.raises(ApiFetchError, match="CR Cab API error: 500 Internal Server Error") as exc_info:
        cr_cab_api.fetch_reviewers(API_KEY, "p2", True)
    assert exc_info.value.status_code == 500
    assert exc_info.value.status_text == "Internal Server Error"
    assert len(calls) == 3


@pytest.mark.parametrize("fail_on_api_error", [False, True])
def test_404_is_not_retried(responses, sleeps, capsys, fail_on_api_error):
    queue, calls = responses
    queue.append(FakeResponse(404, {}, "Not Found"))
    if fail_on_api_error:
        with pytest.raises(ApiFetchError, match="404 Not Found"):
            cr_cab_api.fetch_reviewers(API_KEY, "p2", True)
    else:
        assert cr_cab_api.fetch_reviewers(API_KEY, "p2", False) is None
        assert "CR Cab API error (status=404)" in capsys.readouterr().out
    assert len(calls) == 1
    assert sleeps == []


def test_401_raises_when_strict(responses, sleeps):
    queue, _ = responses
    queue.append(FakeResponse(401, {}, "Unauthorized"))
    with pytest.raises(ApiFetchError, match="CR Cab API error: 401 Unauthorized"):
        cr_cab_api.fetch_reviewers(API_KEY, "p2", True)


def test_network_error_retried_then_succeeds(responses, sleeps):
    queue, calls = responses
    queue.extend([requests.ConnectionError("refused"), FakeResponse(200, ["reviewer1"])])
    assert cr_cab_api.fetch_reviewers(API_KEY, "p2") == ["reviewer1"]
    assert len(calls) == 2
    assert sleeps == [0.25]


def test_network_error_exhausted_returns_none(responses, sleeps, capsys):
    queue, calls = responses
    queue.extend([requests.ConnectionError("refused")] * 3)
    assert cr_cab_api.fetch_reviewers(API_KEY, "p2", False) is None
    assert len(calls) == 3
    assert "::warning::CR Cab API network error" in capsys.readouterr().out


def test_network_error_exhausted_raises_when_strict(responses, sleeps):
    queue, _ = responses
    queue.extend([requests.Timeout("slow")] * 3)
    with pytest.raises(ApiFetchError, match="CR Cab API network error") as exc_info:
        cr_cab_api.fetch_reviewers(API_KEY, "p2", True)
    assert exc_info.value.status_code is None


def test_diagnostics_never_contain_key(responses, sleeps, capsys):
    queue, _ = responses
    queue.extend([server_error(), server_error(), server_error()])
    queue.append(FakeResponse(404, {"error": "secret body"}, "Not Found"))
    queue.extend([requests.ConnectionError(f"Bearer {API_KEY}")] * 3)

    cr_cab_api.fetch_reviewers(API_KEY, "p2", False)
    cr_cab_api.fetch_reviewers(API_KEY, "p2", False)
    cr_cab_api.fetch_reviewers(API_KEY, "p2", False)

    out = capsys.readouterr().out
    assert out
    assert API_KEY not in out
    assert "Bearer" not in out
    assert "secret body" not in out


@pytest.mark.parametrize(
    "entry",
    ["", "   ", "bob\nurgency=p2", "bob smith", "bob\r", {"githubUsername": ""}, {"githubUsername": "a\tb"}],
)
@pytest.mark.parametrize("fail_on_api_error", [False, True])
def test_invalid_login_always_raises(responses, sleeps, entry, fail_on_api_error):
    queue, _ = responses
    queue.append(FakeResponse(200, ["alice", entry]))
    with pytest.raises(ApiResponseFormatError, match="index 1: login is empty or contains whitespace"):
        cr_cab_api.fetch_reviewers(API_KEY, "p1", fail_on_api_error)


def test_logins_with_dashes_are_accepted():
    assert cr_cab_api.normalize_reviewers(["octo-cat", {"githubUsername": "dependabot[bot]"}]) == [
        "octo-cat",
        "dependabot[bot]",
    ]
