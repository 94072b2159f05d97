"""
Compliance Evaluator Gateway.

Both readiness pillars are computed by external evaluators:

    legal  → LEGAL_EVALUATOR_URL   body {ok, readiness_flag, kpis, by_requirement}
    ops    → OPS_EVALUATOR_URL     body {ok, ops_readiness_flag, kpis, by_station}

Each call is a single GET with the shift scope as query params and the
tenant context forwarded as headers. One attempt per pillar: readiness is
an interactive read and the caller decides how to degrade.

Threading: the readiness service calls both pillars concurrently from a
thread pool. Each call uses its own requests.Session unless one was
injected, since Session is not guaranteed thread-safe.

Testability: patch ``evaluator_gateway.fetch_legal`` / ``fetch_ops`` with
``unittest.mock.patch.object``, or pass a mock ``session``.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

import requests
from flask import current_app

logger = logging.getLogger(__name__)

PILLAR_LEGAL = "legal"
PILLAR_OPS = "ops"

_DEFAULT_TIMEOUT = 10


@dataclass
class EvaluatorScope:
    org_id: str
    site_id: str | None
    date: str
    shift_code: str

    def params(self) -> dict:
        params = {"date": self.date, "shift_code": self.shift_code}
        if self.site_id:
            params["site_id"] = self.site_id
        return params

    def headers(self) -> dict:
        headers = {"Accept": "application/json", "X-Org-Id": self.org_id}
        if self.site_id:
            headers["X-Site-Id"] = self.site_id
        return headers


class EvaluatorResult:
    """Structured return value from EvaluatorGateway calls.

    Attributes:
        ok:           True if the call succeeded (HTTP 2xx, JSON body).
        status_code:  HTTP status code (None if network-level failure).
        data:         Parsed JSON body, else None.
        error:        Human-readable error message or None.
        duration_ms:  Round-trip latency in milliseconds.
    """

    def __init__(
        self,
        ok: bool,
        status_code: int | None,
        data: dict | None,
        error: str | None,
        duration_ms: int,
    ) -> None:
        self.ok = ok
        self.status_code = status_code
        self.data = data
        self.error = error
        self.duration_ms = duration_ms

    def __repr__(self) -> str:
        return f"<EvaluatorResult ok={self.ok} status={self.status_code}>"


class EvaluatorGateway:
    """Legal / operational evaluator client.

    Instantiate once at module level (module-level singleton pattern).

    Usage:
        from readiness_gov.integrations.evaluator_gateway import evaluator_gateway
        result = evaluator_gateway.fetch_legal(scope, url=..., timeout=10)
    """

    def __init__(self, session: requests.Session | None = None) -> None:
        self._session = session

    def _request(self, pillar: str, url: str, scope: EvaluatorScope, timeout: float) -> EvaluatorResult:
        if not url:
            return EvaluatorResult(False, None, None, f"{pillar} evaluator URL not configured", 0)

        session = self._session or requests.Session()
        t0 = time.perf_counter()
        try:
            resp = session.get(url, params=scope.params(), headers=scope.headers(), timeout=timeout)
        except requests.Timeout:
            logger.warning("Evaluator timed out pillar=%s url=%s", pillar, url,
                           extra={"org_id": scope.org_id, "site_id": scope.site_id})
            return EvaluatorResult(False, None, None, f"Request timed out after {timeout}s", int(timeout * 1000))
        except requests.RequestException as exc:
            logger.warning("Evaluator network error pillar=%s url=%s error=%s", pillar, url, exc,
                           extra={"org_id": scope.org_id, "site_id": scope.site_id})
            return EvaluatorResult(False, None, None, str(exc)[:500], 0)
        finally:
            if self._session is None:
                session.close()

        duration_ms = int((time.perf_counter() - t0) * 1000)
        if not resp.ok:
            logger.warning("Evaluator failed pillar=%s status=%d", pillar, resp.status_code,
                           extra={"org_id": scope.org_id, "duration_ms": duration_ms})
            return EvaluatorResult(False, resp.status_code, None,
                                   f"HTTP {resp.status_code}: {resp.text[:500]}", duration_ms)
        try:
            data = resp.json()
        except ValueError:
            return EvaluatorResult(False, resp.status_code, None, "Response body is not JSON", duration_ms)
        if not isinstance(data, dict):
            return EvaluatorResult(False, resp.status_code, None, "Response body is not an object", duration_ms)

        return EvaluatorResult(True, resp.status_code, data, None, duration_ms)

    def _config(self, key: str, default=None):
        return current_app.config.get(key, default)

    def fetch_legal(self, scope: EvaluatorScope, url: str | None = None, timeout: float | None = None) -> EvaluatorResult:
        return self._request(
            PILLAR_LEGAL,
            url if url is not None else self._config("LEGAL_EVALUATOR_URL"),
            scope,
            timeout or self._config("EVALUATOR_TIMEOUT_SECONDS", _DEFAULT_TIMEOUT),
        )

    def fetch_ops(self, scope: EvaluatorScope, url: str | None = None, timeout: float | None = None) -> EvaluatorResult:
        return self._request(
            PILLAR_OPS,
            url if url is not None else self._config("OPS_EVALUATOR_URL"),
            scope,
            timeout or self._config("EVALUATOR_TIMEOUT_SECONDS", _DEFAULT_TIMEOUT),
        )


evaluator_gateway = EvaluatorGateway()
