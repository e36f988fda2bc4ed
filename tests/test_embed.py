"""Tests for relmap.embed — ChromaDBEmbedder, OllamaEmbedder, and OpenAICompatEmbedder."""

from __future__ import annotations

import http.client
import json
from unittest.mock import MagicMock, patch
from urllib.error import HTTPError, URLError

import pytest

from relmap.config import RelmapConfig
from relmap.embed.base import BaseEmbedder
from relmap.embed.chromadb_embed import ChromaDBEmbedder
from relmap.embed.ollama import OllamaEmbedder
from relmap.embed.openai_compat import OpenAICompatEmbedder
from relmap.exceptions import EmbeddingError

# --- Helpers ---

_FAKE_VECTOR = [0.1, 0.2, 0.3, 0.4, 0.5]


def _ollama_response(embeddings: list[list[float]]) -> bytes:
    """Build a mock Ollama /api/embed response body."""
    return json.dumps({"embeddings": embeddings}).encode("utf-8")


def _openai_response(embeddings: list[list[float]]) -> bytes:
    """Build a mock OpenAI /v1/embeddings response body."""
    data = [{"object": "embedding", "index": i, "embedding": e} for i, e in enumerate(embeddings)]
    return json.dumps({"object": "list", "data": data, "model": "test"}).encode("utf-8")


class _FakeResponse:
    """Minimal mock for urllib.request.urlopen return value."""

    def __init__(self, data: bytes, status: int = 200) -> None:
        self._data = data
        self.status = status

    def read(self) -> bytes:
        return self._data

    def __enter__(self) -> _FakeResponse:
        return self

    def __exit__(self, *args: object) -> None:
        pass


def _http_error(code: int = 500, reason: str = "Server Error") -> HTTPError:
    return HTTPError("http://test", code, reason, hdrs=None, fp=None)  # type: ignore[arg-type]


def _ollama_config() -> RelmapConfig:
    config = RelmapConfig()
    config.embedding.provider = "ollama"
    config.embedding.model = "nomic-embed-text"
    config.embedding.api_key_env = ""
    return config


def _openai_config(api_key_env: str = "") -> RelmapConfig:
    config = RelmapConfig()
    config.embedding.api_key_env = api_key_env
    return config


# --- ChromaDBEmbedder Tests ---


def _mock_ef(texts):
    """Mock ChromaDB DefaultEmbeddingFunction returning 384-dim vectors."""
    return [[0.1] * 384 for _ in texts]


def _chromadb_embedder(config: RelmapConfig | None = None) -> ChromaDBEmbedder:
    with patch(
        "relmap.embed.chromadb_embed.DefaultEmbeddingFunction",
        return_value=MagicMock(side_effect=_mock_ef),
    ):
        return ChromaDBEmbedder(config or RelmapConfig())


class TestChromaDBEmbedder:
    def test_is_base_embedder(self):
        assert isinstance(_chromadb_embedder(), BaseEmbedder)

    def test_warns_on_unsupported_model(self, caplog):
        config = RelmapConfig()
        config.embedding.model = "bge-large-en"
        _chromadb_embedder(config)
        assert "ignoring model='bge-large-en'" in caplog.text

    def test_no_warning_on_fixed_model(self, caplog):
        config = RelmapConfig()
        config.embedding.model = "all-MiniLM-L6-v2"
        _chromadb_embedder(config)
        assert "ignoring model" not in caplog.text

    def test_raises_on_init_failure(self):
        with (
            patch(
                "relmap.embed.chromadb_embed.DefaultEmbeddingFunction",
                side_effect=RuntimeError("ONNX not available"),
            ),
            pytest.raises(EmbeddingError, match="Failed to initialize"),
        ):
            ChromaDBEmbedder(RelmapConfig())

    def test_embed_returns_floats(self):
        vec = _chromadb_embedder().embed("File: a.py\n\nprint(1)")
        assert len(vec) == 384
        assert all(isinstance(v, float) for v in vec)

    def test_embed_failure_wrapped(self):
        embedder = _chromadb_embedder()
        embedder._ef = MagicMock(side_effect=RuntimeError("boom"))
        with pytest.raises(EmbeddingError, match="ChromaDB embedding failed"):
            embedder.embed("text")


# --- OllamaEmbedder Tests ---


class TestOllamaEmbedder:
    def test_embed(self):
        embedder = OllamaEmbedder(_ollama_config())
        with patch(
            "relmap.embed.ollama.urlopen",
            return_value=_FakeResponse(_ollama_response([_FAKE_VECTOR])),
        ) as mock_urlopen:
            vec = embedder.embed("hello")

        assert vec == _FAKE_VECTOR
        req = mock_urlopen.call_args[0][0]
        assert req.full_url == "http://localhost:11434/api/embed"
        assert json.loads(req.data) == {"model": "nomic-embed-text", "input": ["hello"]}

    def test_uses_configured_timeout(self):
        config = _ollama_config()
        config.embedding.timeout = 7.5
        embedder = OllamaEmbedder(config)
        with patch(
            "relmap.embed.ollama.urlopen",
            return_value=_FakeResponse(_ollama_response([_FAKE_VECTOR])),
        ) as mock_urlopen:
            embedder.embed("hello")
        assert mock_urlopen.call_args.kwargs["timeout"] == 7.5

    def test_custom_base_url(self):
        config = _ollama_config()
        config.embedding.base_url = "http://gpu-box:11434/"
        embedder = OllamaEmbedder(config)
        with patch(
            "relmap.embed.ollama.urlopen",
            return_value=_FakeResponse(_ollama_response([_FAKE_VECTOR])),
        ) as mock_urlopen:
            embedder.embed("hello")
        assert mock_urlopen.call_args[0][0].full_url == "http://gpu-box:11434/api/embed"

    def test_connection_error(self):
        embedder = OllamaEmbedder(_ollama_config())
        with (
            patch("relmap.embed.ollama.urlopen", side_effect=URLError("refused")),
            pytest.raises(EmbeddingError, match="not reachable"),
        ):
            embedder.embed("hello")

    def test_timeout_error(self):
        embedder = OllamaEmbedder(_ollama_config())
        with (
            patch("relmap.embed.ollama.urlopen", side_effect=TimeoutError("slow")),
            pytest.raises(EmbeddingError, match="not reachable"),
        ):
            embedder.embed("hello")

    def test_http_error(self):
        embedder = OllamaEmbedder(_ollama_config())
        with (
            patch("relmap.embed.ollama.urlopen", side_effect=_http_error(404, "Not Found")),
            pytest.raises(EmbeddingError, match="HTTP 404"),
        ):
            embedder.embed("hello")

    def test_invalid_json(self):
        embedder = OllamaEmbedder(_ollama_config())
        with (
            patch("relmap.embed.ollama.urlopen", return_value=_FakeResponse(b"not json")),
            pytest.raises(EmbeddingError, match="invalid JSON"),
        ):
            embedder.embed("hello")

    def test_wrong_count(self):
        embedder = OllamaEmbedder(_ollama_config())
        with (
            patch(
                "relmap.embed.ollama.urlopen",
                return_value=_FakeResponse(_ollama_response([])),
            ),
            pytest.raises(EmbeddingError, match="0 embeddings"),
        ):
            embedder.embed("hello")


# --- OpenAICompatEmbedder Tests ---


class TestOpenAICompatEmbedder:
    def test_embed(self):
        embedder = OpenAICompatEmbedder(_openai_config())
        with patch(
            "relmap.embed.openai_compat.urlopen",
            return_value=_FakeResponse(_openai_response([_FAKE_VECTOR])),
        ) as mock_urlopen:
            vec = embedder.embed("hello")

        assert vec == _FAKE_VECTOR
        req = mock_urlopen.call_args[0][0]
        assert req.full_url == "https://api.openai.com/v1/embeddings"
        assert json.loads(req.data)["model"] == "text-embedding-3-small"
        assert req.get_header("Authorization") is None

    def test_sends_bearer_token(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("TEST_EMBED_KEY", "sk-test")
        embedder = OpenAICompatEmbedder(_openai_config("TEST_EMBED_KEY"))
        with patch(
            "relmap.embed.openai_compat.urlopen",
            return_value=_FakeResponse(_openai_response([_FAKE_VECTOR])),
        ) as mock_urlopen:
            embedder.embed("hello")
        assert mock_urlopen.call_args[0][0].get_header("Authorization") == "Bearer sk-test"

    def test_warns_on_missing_key(self, monkeypatch: pytest.MonkeyPatch, caplog):
        monkeypatch.delenv("TEST_EMBED_KEY", raising=False)
        OpenAICompatEmbedder(_openai_config("TEST_EMBED_KEY"))
        assert "TEST_EMBED_KEY is not set" in caplog.text

    def test_missing_embedding_field(self):
        embedder = OpenAICompatEmbedder(_openai_config())
        with (
            patch(
                "relmap.embed.openai_compat.urlopen",
                return_value=_FakeResponse(json.dumps({"data": [{"index": 0}]}).encode()),
            ),
            pytest.raises(EmbeddingError, match="missing 'embedding'"),
        ):
            embedder.embed("hello")

    def test_http_error(self):
        embedder = OpenAICompatEmbedder(_openai_config())
        with (
            patch(
                "relmap.embed.openai_compat.urlopen",
                side_effect=_http_error(429, "Too Many Requests"),
            ),
            pytest.raises(EmbeddingError, match="HTTP 429"),
        ):
            embedder.embed("hello")

    def test_connection_error(self):
        embedder = OpenAICompatEmbedder(_openai_config())
        with (
            patch("relmap.embed.openai_compat.urlopen", side_effect=URLError("dns")),
            pytest.raises(EmbeddingError, match="not reachable"),
        ):
            embedder.embed("hello")

    def test_truncated_body(self):
        response = MagicMock()
        response.__enter__.return_value.read.side_effect = http.client.IncompleteRead(b"pa")
        with (
            patch("relmap.embed.openai_compat.urlopen", return_value=response),
            pytest.raises(EmbeddingError),
        ):
            OpenAICompatEmbedder(_openai_config()).embed("hello")
