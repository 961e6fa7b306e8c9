"""Property-based fuzz tests for the secretwatch HTTP surfaces.

Uses hypothesis to generate randomised paths and methods for the operator
API and validates that:
 1. No 500s from arbitrary requests
 2. Unknown paths are 404, wrong methods 405
 3. Known probes always answer with JSON
"""

from __future__ import annotations

from unittest.mock import MagicMock

from fastapi.testclient import TestClient
from hypothesis import given, settings
from hypothesis import strategies as st

from secretwatch.api.app import create_app
from secretwatch.observability.metrics import PrometheusMetrics

_KNOWN_PATHS = {"/healthz", "/readyz", "/metrics"}

_path_segment = st.text(alphabet="abcdefghijklmnopqrstuvwxyz0123456789-_", min_size=1, max_size=16)


def _make_client() -> TestClient:
    queue = MagicMock()
    queue.running = True
    queue.__len__.return_value = 0
    return TestClient(create_app(metrics=PrometheusMetrics(), queue=queue))


_CLIENT = _make_client()


@settings(max_examples=75, deadline=None)
@given(st.lists(_path_segment, min_size=1, max_size=4))
def test_unknown_paths_are_404(segments: list[str]) -> None:
    path = "/" + "/".join(segments)
    response = _CLIENT.get(path)
    if path in _KNOWN_PATHS:
        assert response.status_code in (200, 503)
    else:
        assert response.status_code == 404


@settings(max_examples=30, deadline=None)
@given(st.sampled_from(sorted(_KNOWN_PATHS)), st.sampled_from(["POST", "PUT", "DELETE", "PATCH"]))
def test_write_methods_are_rejected(path: str, method: str) -> None:
    response = _CLIENT.request(method, path)
    assert response.status_code == 405


@settings(max_examples=20, deadline=None)
@given(st.sampled_from(["/healthz", "/readyz"]), st.dictionaries(_path_segment, _path_segment, max_size=3))
def test_probes_ignore_query_strings(path: str, params: dict[str, str]) -> None:
    response = _CLIENT.get(path, params=params)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/json")
    assert "status" in response.json()
