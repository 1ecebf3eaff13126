"""Suggestion generation chain.

One prompt per suggestion kind. The model returns JSON with a kind-specific
payload plus a confidence and a short reasoning, which is validated into a
SuggestionResult.
"""

import json
from typing import Any

from cortex.core.config import get_settings
from cortex.core.llm import parse_llm_json_dict
from cortex.core.logging import get_logger
from cortex.core.schemas_records import Record
from cortex.core.schemas_suggestions import SuggestionKind, SuggestionResult

logger = get_logger(__name__)

SYSTEM_PROMPT = (
    "You are an assistant for security pre-sales engineers reviewing "
    "Proof-of-Value (POV) and Technical Risk Review (TRR) records. "
    "Respond with JSON only."
)

KIND_INSTRUCTIONS: dict[SuggestionKind, str] = {
    SuggestionKind.CONTENT: """Suggest content improvements for this record.
Return JSON:
{
  "payload": {"suggestions": [<2-4 concrete additions or rewrites>], "category": "<section the suggestions target>"},
  "confidence": <0.0-1.0>,
  "reasoning": "<one sentence>"
}""",
    SuggestionKind.RISK: """Identify delivery and technical risks in this record.
Return JSON:
{
  "payload": {
    "risks": [{"category": "<technical|timeline|scope|stakeholder>", "description": "<risk>", "severity": "<low|medium|high>", "probability": <0.0-1.0>, "mitigation": "<action>"}],
    "overall_risk_score": <0.0-1.0>
  },
  "confidence": <0.0-1.0>,
  "reasoning": "<one sentence>"
}""",
    SuggestionKind.RECOMMENDATION: """Recommend next steps for this record.
Return JSON:
{
  "payload": {"recommendations": [{"title": "<short>", "description": "<detail>", "priority": "<low|medium|high>", "impact": "<expected effect>"}]},
  "confidence": <0.0-1.0>,
  "reasoning": "<one sentence>"
}""",
    SuggestionKind.ANOMALY: """Detect anything unusual in this record compared with a typical engagement.
Return JSON:
{
  "payload": {"anomalies": [{"field": "<field>", "detected": "<what is unusual>", "severity": "<low|medium|high>", "suggestion": "<fix>"}], "is_anomalous": <true|false>},
  "confidence": <0.0-1.0>,
  "reasoning": "<one sentence>"
}""",
    SuggestionKind.QUALITY_SCORE: """Score the quality of this record.
Return JSON:
{
  "payload": {
    "overall_score": <0.0-1.0>,
    "breakdown": {"completeness": <0.0-1.0>, "clarity": <0.0-1.0>, "feasibility": <0.0-1.0>, "alignment": <0.0-1.0>},
    "improvements": [<1-3 improvements>]
  },
  "confidence": <0.0-1.0>,
  "reasoning": "<one sentence>"
}""",
}


def build_prompt(kind: SuggestionKind, record: Record) -> str:
    """Render the user prompt for one kind."""
    payload = json.dumps(record.payload, default=str, sort_keys=True)[:4000]
    return f"""Record type: {record.kind.value.upper()}
Title: {record.title}
Status: {record.status}
Description: {record.description or 'No description'}
Fields: {payload}

{KIND_INSTRUCTIONS[kind]}"""


async def generate_suggestion(kind: SuggestionKind, record: Record) -> SuggestionResult:
    """
    Compute one suggestion for a record via Anthropic.

    Args:
        kind: Suggestion kind to compute
        record: Record snapshot the suggestion is derived from

    Returns:
        SuggestionResult

    Raises:
        RuntimeError: If no Anthropic API key is configured
        ValueError: If the model output cannot be parsed
    """
    from anthropic import AsyncAnthropic

    settings = get_settings()
    if not settings.ANTHROPIC_API_KEY:
        raise RuntimeError("ANTHROPIC_API_KEY is not configured")

    client = AsyncAnthropic(api_key=settings.ANTHROPIC_API_KEY)
    response = await client.messages.create(
        model=settings.SUGGESTION_MODEL,
        max_tokens=settings.SUGGESTION_MAX_TOKENS,
        temperature=0.3,
        system=SYSTEM_PROMPT,
        messages=[{"role": "user", "content": build_prompt(kind, record)}],
    )

    text = response.content[0].text if response.content else ""

    try:
        data: dict[str, Any] = parse_llm_json_dict(text)
    except (json.JSONDecodeError, ValueError) as e:
        logger.warning(
            f"Failed to parse {kind.value} suggestion: {text[:200]}",
            extra={"record_id": str(record.id), "kind": kind.value},
        )
        raise ValueError(f"Unparseable {kind.value} suggestion output") from e

    # Models sometimes return the payload fields at the top level
    if "payload" not in data:
        confidence = data.pop("confidence", 0.0)
        reasoning = data.pop("reasoning", None)
        data = {"payload": data, "confidence": confidence, "reasoning": reasoning}

    return SuggestionResult.model_validate(data)
