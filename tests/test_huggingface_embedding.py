"""Test HuggingFace Inference API embedding: request format, cold start, error wrapping."""

import http.client
import io
import json
import socket
import urllib.error
from unittest.mock import MagicMock, patch

import pytest

from shelf.config import EmbeddingConfig
from shelf.core.exceptions import EmbeddingGenerationError
from shelf.embedding.huggingface import HuggingFaceEmbedding


def _make_config(**overrides):
    defaults = {"dimensions": 4, "huggingface_max_wait": 30.0}
    defaults.update(overrides)
    return EmbeddingConfig(**defaults)


def _mock_response(data):
    mock = MagicMock()
    mock.read.return_value = json.dumps(data).encode() if not isinstance(data, bytes) else data
    mock.__enter__ = MagicMock(return_value=mock)
    mock.__exit__ = MagicMock(return_value=False)
    return mock


def _http_error(code, body=b""):
    return urllib.error.HTTPError("url", code, "error", {}, io.BytesIO(body))


# ── Request format ────────────────────────────────────────────


@patch("shelf.embedding.huggingface.urllib.request.urlopen")
def test_request_format(mock_urlopen):
    mock_urlopen.return_value = _mock_response([0.1, 0.2, 0.3, 0.4])

    engine = HuggingFaceEmbedding(_make_config())
    result = engine.embed("The Hobbit by Tolkien. 310 pages.")

    assert result == [0.1, 0.2, 0.3, 0.4]
    req = mock_urlopen.call_args[0][0]
    assert req.full_url == (
        "https://api-inference.huggingface.co/models/sentence-transformers/all-MiniLM-L6-v2"
    )
    assert req.get_method() == "POST"
    body = json.loads(req.data)
    assert body == {
        "inputs": "The Hobbit by Tolkien. 310 pages.",
        "options": {"wait_for_model": True},
    }


@patch("shelf.embedding.huggingface.urllib.request.urlopen")
def test_token_sent_as_bearer(mock_urlopen):
    mock_urlopen.return_value = _mock_response([0.1] * 4)
    HuggingFaceEmbedding(_make_config(huggingface_token="hf_abc")).embed("x")
    req = mock_urlopen.call_args[0][0]
    assert req.headers.get("Authorization") == "Bearer hf_abc"


@patch("shelf.embedding.huggingface.urllib.request.urlopen")
def test_no_auth_header_without_token(mock_urlopen):
    mock_urlopen.return_value = _mock_response([0.1] * 4)
    HuggingFaceEmbedding(_make_config()).embed("x")
    assert "Authorization" not in mock_urlopen.call_args[0][0].headers


@patch("shelf.embedding.huggingface.urllib.request.urlopen")
def test_single_nested_vector_is_unwrapped(mock_urlopen):
    mock_urlopen.return_value = _mock_response([[0.1, 0.2, 0.3, 0.4]])
    assert HuggingFaceEmbedding(_make_config()).embed("x") == [0.1, 0.2, 0.3, 0.4]


@patch("shelf.embedding.huggingface.urllib.request.urlopen")
def test_blank_text_makes_no_request(mock_urlopen):
    with pytest.raises(EmbeddingGenerationError):
        HuggingFaceEmbedding(_make_config()).embed("   ")
    mock_urlopen.assert_not_called()


# ── Cold start ────────────────────────────────────────────────


@patch("shelf.embedding.huggingface.time.sleep")
@patch("shelf.embedding.huggingface.urllib.request.urlopen")
def test_cold_start_waits_once_then_succeeds(mock_urlopen, mock_sleep):
    mock_urlopen.side_effect = [
        _http_error(503, b'{"error": "Model is loading", "estimated_time": 12.5}'),
        _mock_response([0.1] * 4),
    ]
    result = HuggingFaceEmbedding(_make_config()).embed("x")

    assert len(result) == 4
    assert mock_urlopen.call_count == 2
    mock_sleep.assert_called_once_with(12.5)


@patch("shelf.embedding.huggingface.time.sleep")
@patch("shelf.embedding.huggingface.urllib.request.urlopen")
def test_cold_start_wait_is_capped(mock_urlopen, mock_sleep):
    mock_urlopen.side_effect = [
        _http_error(503, b'{"estimated_time": 500}'),
        _mock_response([0.1] * 4),
    ]
    HuggingFaceEmbedding(_make_config(huggingface_max_wait=5.0)).embed("x")
    mock_sleep.assert_called_once_with(5.0)


@patch("shelf.embedding.huggingface.time.sleep")
@patch("shelf.embedding.huggingface.urllib.request.urlopen")
def test_second_503_is_a_failure(mock_urlopen, mock_sleep):
    mock_urlopen.side_effect = [
        _http_error(503, b'{"estimated_time": 1}'),
        _http_error(503, b'{"estimated_time": 1}'),
    ]
    with pytest.raises(EmbeddingGenerationError, match="HTTP 503"):
        HuggingFaceEmbedding(_make_config()).embed("x")
    assert mock_urlopen.call_count == 2
    mock_sleep.assert_called_once()


@patch("shelf.embedding.huggingface.time.sleep")
@patch("shelf.embedding.huggingface.urllib.request.urlopen")
def test_503_without_estimate_is_not_waited_on(mock_urlopen, mock_sleep):
    mock_urlopen.side_effect = [_http_error(503, b"Service Unavailable")]
    with pytest.raises(EmbeddingGenerationError):
        HuggingFaceEmbedding(_make_config()).embed("x")
    assert mock_urlopen.call_count == 1
    mock_sleep.assert_not_called()


# ── Failures are wrapped, never retried ───────────────────────


@patch("shelf.embedding.huggingface.urllib.request.urlopen")
def test_http_error_wrapped_with_cause(mock_urlopen):
    error = _http_error(429, b"rate limited")
    mock_urlopen.side_effect = [error]

    with pytest.raises(EmbeddingGenerationError) as exc:
        HuggingFaceEmbedding(_make_config()).embed("x")

    assert exc.value.cause is error
    assert exc.value.__cause__ is error
    assert mock_urlopen.call_count == 1


@patch("shelf.embedding.huggingface.urllib.request.urlopen")
def test_timeout_wrapped(mock_urlopen):
    mock_urlopen.side_effect = socket.timeout("timed out")
    with pytest.raises(EmbeddingGenerationError, match="unreachable") as exc:
        HuggingFaceEmbedding(_make_config()).embed("x")
    assert isinstance(exc.value.cause, TimeoutError)


@patch("shelf.embedding.huggingface.urllib.request.urlopen")
def test_connection_refused_wrapped(mock_urlopen):
    mock_urlopen.side_effect = urllib.error.URLError(ConnectionRefusedError("refused"))
    with pytest.raises(EmbeddingGenerationError):
        HuggingFaceEmbedding(_make_config()).embed("x")


@patch("shelf.embedding.huggingface.urllib.request.urlopen")
def test_truncated_body_wrapped(mock_urlopen):
    resp = _mock_response([0.1] * 4)
    resp.read.side_effect = http.client.IncompleteRead(b"[0.1,")
    mock_urlopen.return_value = resp

    with patch("shelf.embedding.huggingface.stats") as stats_mod:
        with pytest.raises(EmbeddingGenerationError) as exc:
            HuggingFaceEmbedding(_make_config()).embed("x")

    assert isinstance(exc.value.cause, http.client.IncompleteRead)
    stats_mod.record_failure.assert_called_once()


@patch("shelf.embedding.huggingface.urllib.request.urlopen")
def test_garbled_status_line_wrapped(mock_urlopen):
    mock_urlopen.side_effect = http.client.BadStatusLine("HTTP/1.1 ???")
    with pytest.raises(EmbeddingGenerationError):
        HuggingFaceEmbedding(_make_config()).embed("x")


@patch("shelf.embedding.huggingface.urllib.request.urlopen")
def test_invalid_json_wrapped(mock_urlopen):
    mock_urlopen.return_value = _mock_response(b"<html>oops</html>")
    with pytest.raises(EmbeddingGenerationError, match="invalid JSON"):
        HuggingFaceEmbedding(_make_config()).embed("x")


@patch("shelf.embedding.huggingface.urllib.request.urlopen")
def test_error_body_wrapped(mock_urlopen):
    mock_urlopen.return_value = _mock_response({"error": "Authorization header is invalid"})
    with pytest.raises(EmbeddingGenerationError, match="Authorization header is invalid"):
        HuggingFaceEmbedding(_make_config()).embed("x")


@patch("shelf.embedding.huggingface.urllib.request.urlopen")
def test_wrong_dimensions_rejected(mock_urlopen):
    mock_urlopen.return_value = _mock_response([0.1, 0.2])
    with pytest.raises(EmbeddingGenerationError, match="2 dimensions, expected 4"):
        HuggingFaceEmbedding(_make_config()).embed("x")


@patch("shelf.embedding.huggingface.urllib.request.urlopen")
def test_batch_of_vectors_for_single_input_rejected(mock_urlopen):
    mock_urlopen.return_value = _mock_response([[0.1] * 4, [0.2] * 4])
    with pytest.raises(EmbeddingGenerationError):
        HuggingFaceEmbedding(_make_config()).embed("x")


# ── Stats ─────────────────────────────────────────────────────


@patch("shelf.embedding.huggingface.urllib.request.urlopen")
def test_stats_recorded(mock_urlopen):
    mock_urlopen.side_effect = [_mock_response([0.1] * 4), _http_error(500)]
    with patch("shelf.embedding.huggingface.stats") as stats_mod:
        engine = HuggingFaceEmbedding(_make_config())
        engine.embed("hello")
        with pytest.raises(EmbeddingGenerationError):
            engine.embed("hello")

    stats_mod.record_success.assert_called_once_with("hello")
    stats_mod.record_failure.assert_called_once()
