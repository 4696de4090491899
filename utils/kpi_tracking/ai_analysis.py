# utils/kpi_tracking/ai_analysis.py
"""
AI Performance Review (Gemini)

Builds a Vietnamese review prompt from one employee's monthly totals,
asks the model for a structured JSON answer and parses it with defaults
for every missing field.

Usage:
    totals = KPIMetrics(data).monthly_totals(employee_id, month, year)
    result = analyze_performance(employee.employee_name, totals)
    st.metric("Điểm", result.overall_score)
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

from google import genai
from google.genai import types

from ..config import config
from .exceptions import AIConfigurationError, AIResponseError
from .metrics import MonthlyTotals

logger = logging.getLogger(__name__)

DEFAULT_SUMMARY = "Không có dữ liệu tổng hợp."
ERROR_MESSAGE = "Không thể phân tích lúc này. Vui lòng kiểm tra API Key hoặc thử lại sau."

ANALYSIS_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        'overall_score': types.Schema(type=types.Type.NUMBER),
        'summary': types.Schema(type=types.Type.STRING),
        'strengths': types.Schema(type=types.Type.ARRAY, items=types.Schema(type=types.Type.STRING)),
        'weaknesses': types.Schema(type=types.Type.ARRAY, items=types.Schema(type=types.Type.STRING)),
        'recommendations': types.Schema(type=types.Type.ARRAY, items=types.Schema(type=types.Type.STRING)),
    },
    required=['overall_score', 'summary', 'strengths', 'weaknesses', 'recommendations'],
)


@dataclass
class AnalysisResult:
    overall_score: float = 0
    summary: str = DEFAULT_SUMMARY
    strengths: List[str] = field(default_factory=list)
    weaknesses: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)


# =============================================================================
# PROMPT
# =============================================================================

def build_prompt(employee_name: str, totals: MonthlyTotals) -> str:
    """Review prompt; revenue is shown in millions with one decimal."""
    comments = "; ".join(totals.manager_comments) if totals.manager_comments else "Chưa có"
    return f"""
Bạn là Giám đốc Kinh doanh cấp cao tại VNPT. Hãy đánh giá hiệu quả làm việc
tháng {totals.month}/{totals.year} của nhân viên {employee_name}.

Dữ liệu tổng hợp ({totals.count} kế hoạch):
- SIM: Kế hoạch {totals.sim_target}, Thực hiện {totals.sim_result}
- Fiber: Kế hoạch {totals.fiber_target}, Thực hiện {totals.fiber_result}
- MyTV: Kế hoạch {totals.mytv_target}, Thực hiện {totals.mytv_result}
- CNTT: Kế hoạch {totals.cntt_target}, Thực hiện {totals.cntt_result}
- Doanh thu CNTT: Kế hoạch {totals.revenue_target_millions} triệu, Thực hiện {totals.revenue_result_millions} triệu
- Nhận xét của quản lý: {comments}

Yêu cầu trả về JSON gồm:
- overall_score: điểm tổng thể từ 0 đến 100
- summary: nhận xét tổng quan ngắn gọn
- strengths: danh sách điểm mạnh
- weaknesses: danh sách điểm yếu
- recommendations: danh sách đề xuất cải thiện cụ thể
""".strip()


# =============================================================================
# RESPONSE PARSING
# =============================================================================

def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item is not None and str(item).strip()]


def _score(value: Any) -> float:
    if isinstance(value, bool):
        return 0
    try:
        score = float(value)
    except (TypeError, ValueError):
        return 0
    if score != score:
        return 0
    return int(score) if score.is_integer() else score


def parse_analysis(text: Optional[str]) -> AnalysisResult:
    """
    Parse the model's JSON answer.

    Missing or mistyped fields fall back to defaults; text that is not a
    JSON object raises AIResponseError.
    """
    if not text or not text.strip():
        raise AIResponseError("Phản hồi trống từ mô hình")

    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = cleaned.strip('`')
        if cleaned.lower().startswith('json'):
            cleaned = cleaned[4:]

    try:
        data = json.loads(cleaned)
    except ValueError as e:
        raise AIResponseError(f"Phản hồi không phải JSON: {e}") from e
    if not isinstance(data, dict):
        raise AIResponseError("Phản hồi không phải đối tượng JSON")

    summary = data.get('summary')
    return AnalysisResult(
        overall_score=_score(data.get('overall_score')),
        summary=summary.strip() if isinstance(summary, str) and summary.strip() else DEFAULT_SUMMARY,
        strengths=_string_list(data.get('strengths')),
        weaknesses=_string_list(data.get('weaknesses')),
        recommendations=_string_list(data.get('recommendations')),
    )


# =============================================================================
# MODEL CALL
# =============================================================================

def get_client(api_key: Optional[str] = None) -> genai.Client:
    key = api_key or config.get_ai_config().get('api_key')
    if not key:
        raise AIConfigurationError("Chưa cấu hình GEMINI_API_KEY")
    return genai.Client(api_key=key)


def analyze_performance(
    employee_name: str,
    totals: MonthlyTotals,
    client: Optional[genai.Client] = None,
    model: Optional[str] = None,
) -> AnalysisResult:
    """
    Ask the model for a structured review of one employee's month.

    Args:
        employee_name: Display name used in the prompt
        totals: Output of KPIMetrics.monthly_totals
        client: Injected client (tests); built from config otherwise
        model: Model name; defaults to the configured one

    Returns:
        AnalysisResult

    Raises:
        AIConfigurationError: no API key
        AIResponseError: the call failed or the answer was unusable
    """
    client = client or get_client()
    model = model or config.get_ai_config().get('model')
    prompt = build_prompt(employee_name, totals)

    logger.info(f"🤖 Requesting AI analysis for {totals.employee_id} ({totals.month}/{totals.year})")
    try:
        response = client.models.generate_content(
            model=model,
            contents=prompt,
            config=types.GenerateContentConfig(
                response_mime_type="application/json",
                response_schema=ANALYSIS_SCHEMA,
            ),
        )
    except Exception as e:
        logger.error(f"AI analysis failed: {e}")
        raise AIResponseError(str(e)) from e

    return parse_analysis(getattr(response, 'text', None))

