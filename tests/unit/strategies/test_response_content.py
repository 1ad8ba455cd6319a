r"""Unit tests for ResponseContentStrategy and its helpers."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import Mock

import httpx
import pytest

from aretry.strategies import FixedDelayStrategy, ResponseContentStrategy
from aretry.strategies.response_content import _get_nested, extract_response, read_body


class InnerDenies(FixedDelayStrategy):
    def should_retry(self, attempt, max_attempts, last_error=None) -> bool:  # noqa: ARG002
        return False


def make_error(response: object, attribute: str = "response") -> Exception:
    error = RuntimeError("request failed")
    setattr(error, attribute, response)
    return error


def make_http_error(status_code: int = 400, **kwargs) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "https://api.example.com/data")
    response = httpx.Response(status_code, request=request, **kwargs)
    return httpx.HTTPStatusError("error", request=request, response=response)


######################################
#     Tests for extract_response     #
######################################


@pytest.mark.parametrize("attribute", ["response", "http_response", "client_response"])
def test_extract_response_attributes(attribute: str) -> None:
    assert extract_response(make_error("body", attribute)) == "body"


def test_extract_response_none() -> None:
    assert extract_response(None) is None
    assert extract_response(ValueError("boom")) is None


def test_extract_response_httpx_error() -> None:
    error = make_http_error(text="busy")
    assert extract_response(error) is error.response


###############################
#     Tests for read_body     #
###############################


def test_read_body_str_and_bytes() -> None:
    assert read_body("text") == "text"
    assert read_body(b"bytes") == "bytes"
    assert read_body(bytearray(b"array")) == "array"


def test_read_body_attributes() -> None:
    assert read_body(SimpleNamespace(text="from text")) == "from text"
    assert read_body(SimpleNamespace(content=b"from content")) == "from content"
    assert read_body(SimpleNamespace(body="from body")) == "from body"
    assert read_body(SimpleNamespace(get_body=lambda: b"from method")) == "from method"


def test_read_body_skips_failing_reader() -> None:
    response = SimpleNamespace(text=Mock(side_effect=RuntimeError("not read")), body="fallback")
    assert read_body(response) == "fallback"


def test_read_body_unreadable() -> None:
    assert read_body(object()) is None


def test_read_body_httpx_response() -> None:
    assert read_body(httpx.Response(503, text="server busy")) == "server busy"


#################################
#     Tests for _get_nested     #
#################################


def test_get_nested() -> None:
    data = {"error": {"code": "SERVER_BUSY"}, "errors": [{"code": 503}]}
    assert _get_nested(data, "error.code") == "SERVER_BUSY"
    assert _get_nested(data, "errors.0.code") == 503
    assert _get_nested(data, "errors.1.code") is None
    assert _get_nested(data, "missing.code") is None
    assert _get_nested("text", "code") is None


#############################################
#     Tests for ResponseContentStrategy     #
#############################################


def test_response_content_error_code_forces_retry() -> None:
    strategy = ResponseContentStrategy(InnerDenies(), error_codes=["SERVER_BUSY"])
    assert strategy.should_retry(0, 3, make_http_error(json={"error": {"code": "SERVER_BUSY"}}))


def test_response_content_numeric_error_code() -> None:
    strategy = ResponseContentStrategy(InnerDenies(), error_codes=[503])
    assert strategy.should_retry(0, 3, make_error('{"status": 503}'))


def test_response_content_pattern_forces_retry() -> None:
    strategy = ResponseContentStrategy(InnerDenies(), patterns=["try again later"])
    assert strategy.should_retry(0, 3, make_error(b"Please TRY AGAIN LATER"))


def test_response_content_checker_forces_retry() -> None:
    checker = Mock(return_value=True)
    strategy = ResponseContentStrategy(InnerDenies(), content_checker=checker)
    response = SimpleNamespace(status_code=418)
    assert strategy.should_retry(0, 3, make_error(response))
    checker.assert_called_once_with(response)


def test_response_content_delegates_when_nothing_matches() -> None:
    strategy = ResponseContentStrategy(
        FixedDelayStrategy(), patterns=["busy"], error_codes=["SERVER_BUSY"]
    )
    error = make_error('{"error": {"code": "NOT_FOUND"}}')
    assert strategy.should_retry(0, 3, error)
    assert not ResponseContentStrategy(InnerDenies(), error_codes=["SERVER_BUSY"]).should_retry(
        0, 3, error
    )


def test_response_content_delegates_without_response() -> None:
    strategy = ResponseContentStrategy(InnerDenies(), patterns=["timeout"])
    assert not strategy.should_retry(0, 3, TimeoutError("timeout"))


def test_response_content_invalid_json_is_not_retryable() -> None:
    strategy = ResponseContentStrategy(InnerDenies(), error_codes=["SERVER_BUSY"])
    assert not strategy.should_retry(0, 3, make_error("<html>SERVER BUSY</html>"))


def test_response_content_denies_at_max_attempts() -> None:
    strategy = ResponseContentStrategy(FixedDelayStrategy(), patterns=["busy"])
    assert not strategy.should_retry(3, 3, make_error("server busy"))


def test_response_content_custom_paths() -> None:
    strategy = ResponseContentStrategy(
        InnerDenies(), error_codes=["THROTTLED"], error_code_paths=()
    ).with_error_code_paths(["meta.reason"])
    assert strategy.should_retry(0, 3, make_error('{"meta": {"reason": "THROTTLED"}}'))


def test_response_content_fluent_setters() -> None:
    checker = Mock(return_value=False)
    strategy = (
        ResponseContentStrategy(FixedDelayStrategy(), patterns=["busy"], error_codes=["A"])
        .with_patterns(["busy", "overloaded"])
        .with_error_codes(["A", "B"])
        .with_content_checker(checker)
    )
    assert [pattern.pattern for pattern in strategy.patterns] == ["busy", "overloaded"]
    assert strategy.error_codes == ("A", "B")
    assert strategy.content_checker is checker


def test_response_content_delay_delegates() -> None:
    assert ResponseContentStrategy(FixedDelayStrategy(base_delay=3.0)).delay(2) == 3.0
