"""AI-written commentary on a weekly report.

The prompt asks a Gemini model to act as a fleet manager and comment on a
driver's week. The call is advisory: failures come back as a readable
message instead of an exception, and nothing here changes computed values.
"""

from __future__ import annotations

import logging
from typing import Optional

import requests

from .data_models import CalculatedReport
from .settings import Settings, load_settings
from .utils import format_currency

logger = logging.getLogger(__name__)

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

MISSING_KEY_MESSAGE = "Erro: Chave de API não configurada. Por favor, verifique as configurações."
EMPTY_RESPONSE_MESSAGE = "Não foi possível gerar uma análise no momento."
REQUEST_FAILED_MESSAGE = "Ocorreu um erro ao contactar a IA. Tente novamente mais tarde."


def build_analysis_prompt(report: CalculatedReport) -> str:
    """Render a calculated report into the analysis prompt (pt-PT)."""
    return f"""
Atue como um gestor financeiro experiente para uma frota de TVDE (Uber/Bolt) em Portugal.
Analise o seguinte relatório semanal de um motorista:

Motorista: {report.driver_name}
Veículo: {report.vehicle_model} ({report.vehicle_plate})
Semana de: {report.week_start_date.isoformat()}

DADOS FINANCEIROS:
- Faturação Uber: {format_currency(report.uber_gross_earnings)}
- Faturação Bolt: {format_currency(report.bolt_gross_earnings)}
- Total Faturação: {format_currency(report.total_gross_earnings)}

DESPESAS:
- Custo Aluguer Viatura: {format_currency(report.rent_cost)}
- Custos Combustível/Energia: {format_currency(report.fuel_cost)}
- Portagens (Via Verde): {format_currency(report.tolls_cost)}
- Pagamento Dívidas: {format_currency(report.debt_payment)}
- Outros: {format_currency(report.misc_expenses)}

LUCRO LÍQUIDO FINAL: {format_currency(report.net_earnings)}

Por favor, forneça uma análise concisa (máximo 3 parágrafos):
1. O lucro é saudável considerando a média do mercado português?
2. A relação Faturação/Custos está eficiente?
3. Sugestão prática para melhorar a rentabilidade na próxima semana.

Responda em Português de Portugal. Use formatação Markdown.
""".strip()


def _extract_text(payload: dict) -> Optional[str]:
    candidates = payload.get("candidates") or []
    if not candidates:
        return None
    parts = (candidates[0].get("content") or {}).get("parts") or []
    text = "".join(p.get("text", "") for p in parts)
    return text or None


def analyze_report(report: CalculatedReport, settings: Optional[Settings] = None) -> str:
    """Ask the model for an analysis of ``report`` and return its text.

    Returns an error message (never raises) when no API key is configured,
    the request fails or the response holds no text.
    """
    settings = settings or load_settings()
    if not settings.gemini_api_key:
        logger.warning("Gemini API key not found in environment variables")
        return MISSING_KEY_MESSAGE

    url = GEMINI_URL.format(model=settings.gemini_model)
    body = {"contents": [{"parts": [{"text": build_analysis_prompt(report)}]}]}
    try:
        response = requests.post(
            url,
            params={"key": settings.gemini_api_key},
            json=body,
            timeout=settings.advisor_timeout,
        )
        response.raise_for_status()
        text = _extract_text(response.json())
    except (requests.RequestException, ValueError) as exc:
        logger.error("Error analyzing report %s: %s", report.id, exc)
        return REQUEST_FAILED_MESSAGE
    return text or EMPTY_RESPONSE_MESSAGE
