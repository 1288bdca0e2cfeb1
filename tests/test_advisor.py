from decimal import Decimal

import pytest
import requests

from conftest import make_report
from fleet_ledger import advisor
from fleet_ledger.engine import compute_report
from fleet_ledger.settings import Settings


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self._payload


@pytest.fixture
def calculated(drivers, vehicles):
    return compute_report(make_report(), drivers, vehicles)


@pytest.fixture
def settings():
    return Settings(gemini_api_key="test-key", gemini_model="gemini-test", advisor_timeout=5)


def test_prompt_contains_report_figures(calculated):
    prompt = advisor.build_analysis_prompt(calculated)
    assert "Motorista: João Silva" in prompt
    assert "Veículo: Zoe (AA-00-BB)" in prompt
    assert "Semana de: 2023-10-23" in prompt
    assert "Total Faturação: 1 200,00 €" in prompt
    assert "LUCRO LÍQUIDO FINAL: 885,00 €" in prompt


def test_missing_api_key(calculated):
    assert advisor.analyze_report(calculated, Settings()) == advisor.MISSING_KEY_MESSAGE


def test_returns_generated_text(calculated, settings, monkeypatch):
    calls = {}

    def fake_post(url, params, json, timeout):
        calls.update(url=url, params=params, json=json, timeout=timeout)
        return FakeResponse({"candidates": [{"content": {"parts": [{"text": "Semana "}, {"text": "saudável."}]}}]})

    monkeypatch.setattr(advisor.requests, "post", fake_post)
    assert advisor.analyze_report(calculated, settings) == "Semana saudável."
    assert calls["url"].endswith("/models/gemini-test:generateContent")
    assert calls["params"] == {"key": "test-key"}
    assert calls["timeout"] == 5
    assert "885,00 €" in calls["json"]["contents"][0]["parts"][0]["text"]


def test_empty_response(calculated, settings, monkeypatch):
    monkeypatch.setattr(advisor.requests, "post", lambda *a, **kw: FakeResponse({"candidates": []}))
    assert advisor.analyze_report(calculated, settings) == advisor.EMPTY_RESPONSE_MESSAGE


def test_http_error_becomes_message(calculated, settings, monkeypatch):
    monkeypatch.setattr(advisor.requests, "post", lambda *a, **kw: FakeResponse({}, status_code=500))
    assert advisor.analyze_report(calculated, settings) == advisor.REQUEST_FAILED_MESSAGE


def test_connection_error_becomes_message(calculated, settings, monkeypatch):
    def boom(*args, **kwargs):
        raise requests.ConnectionError("offline")

    monkeypatch.setattr(advisor.requests, "post", boom)
    assert advisor.analyze_report(calculated, settings) == advisor.REQUEST_FAILED_MESSAGE
    # computed values are untouched
    assert calculated.net_earnings == Decimal("885")
