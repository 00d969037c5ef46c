"""
Shared fixtures for the churn risk dashboard tests.

Upstream payloads below mirror what the prediction service returns.
"""
import json

import httpx
import pytest

from src.upstream.settings import Settings


@pytest.fixture
def settings():
    return Settings(api_url="http://upstream.test/api", username="analyst", password="secret", timeout=5)


@pytest.fixture
def metrics_payload():
    return {
        "total_customers": 8000,
        "global_churn_rate": 25.0,
        "customers_at_risk": 2000,
        "revenue_at_risk": 47800.5,
        "model_accuracy": 0.6488,
        "churn_distribution": [6000, 2000],
        "feature_importance": [{"name": "Idade", "value": 0.6}, {"name": "País", "value": 0.4}],
        "risk_factors": [],
    }


@pytest.fixture
def client_records():
    return [
        {"clientId": "u1", "probability": 0.9, "primary_risk_factor": "num__skip_rate"},
        {"userId": "u2", "churnProbability": "0.5", "primaryRiskFactor": "skip_rate"},
        {"user_id": "u3", "churn_probability": 0.46, "main_factor": "cat__country"},
        {"clientId": "u4", "probabilidade": 0.2, "fator_risco": "age"},
    ]


def make_transport(routes):
    """
    Build an httpx.MockTransport from {"/path": payload_or_callable}.

    A callable receives the request and returns an httpx.Response.
    Unknown paths answer 404.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path.replace("/api", "", 1)
        target = routes.get(path)
        if target is None:
            return httpx.Response(404, json={"message": f"no route {path}"})
        if callable(target):
            return target(request)
        return httpx.Response(200, content=json.dumps(target).encode("utf-8"))

    return httpx.MockTransport(handler)


@pytest.fixture
def transport_for():
    return make_transport
