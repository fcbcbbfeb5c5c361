"""
Final-response extraction for agent jobs.

The agent platform returns results in several shapes depending on the agent
and API version. This module normalizes any of them into one display string.
Shapes are tried in priority order and the first one that yields text wins:

1. content_items: typed output_content entries (JSON objects describing a
   company are rendered as a key/value block)
2. single_text:   output.text
3. final_item:    the "final" entry in output.items
4. text_items:    every text-bearing output.items entry
5. segments:      text-bearing segments, tool traffic excluded
6. absent:        a fallback message echoing the prompt and status

extract_final_response never raises and never returns an empty string.
"""

import json
import logging
import re
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from pydantic import ValidationError

from stockflow.agents.agent_job import AgentJob

logger = logging.getLogger(__name__)

TICKER_KEYS = ("symbol", "ticker")
COMPANY_KEYS = ("company_name", "companyName", "company", "longName", "name")
TOOL_SEGMENT_TYPES = {"tool_call", "tool_result"}


def _label(key: str) -> str:
    """snake_case / camelCase key -> 'Title Case' label."""
    spaced = re.sub(r"(?<=[a-z0-9])(?=[A-Z])", " ", key).replace("_", " ")
    return " ".join(word if word.isupper() else word.capitalize() for word in spaced.split())


def _format_value(value: Any) -> str:
    if isinstance(value, list):
        return ", ".join(_format_value(v) for v in value)
    if isinstance(value, dict):
        return "; ".join(f"{_label(k)}: {_format_value(v)}" for k, v in value.items())
    if isinstance(value, float):
        return f"{value:,.2f}"
    if isinstance(value, int) and not isinstance(value, bool):
        return f"{value:,}"
    return str(value)


def _first_key(data: Dict[str, Any], keys: Tuple[str, ...]) -> Optional[str]:
    return next((k for k in keys if data.get(k) not in (None, "")), None)


def format_company_block(data: Dict[str, Any]) -> Optional[str]:
    """
    Render a company record as a readable block, or None if it isn't one.

    Example:
        {"symbol": "AAPL", "company_name": "Apple Inc.", "pe_ratio": 28.5}
        ->  "AAPL - Apple Inc.\\nPe Ratio: 28.50"
    """
    ticker_key = _first_key(data, TICKER_KEYS)
    company_key = _first_key(data, COMPANY_KEYS)
    if not ticker_key or not company_key:
        return None

    lines = [f"{data[ticker_key]} - {data[company_key]}"]
    for key, value in data.items():
        if key in (ticker_key, company_key) or value in (None, "", [], {}):
            continue
        lines.append(f"{_label(key)}: {_format_value(value)}")
    return "\n".join(lines)


def _content_to_text(content: Any) -> str:
    if content is None:
        return ""

    parsed = content
    if isinstance(content, str):
        stripped = content.strip()
        if not stripped.startswith(("{", "[")):
            return stripped
        try:
            parsed = json.loads(stripped)
        except ValueError:
            return stripped

    if isinstance(parsed, dict):
        block = format_company_block(parsed)
        if block:
            return block
    if isinstance(parsed, list) and parsed and all(isinstance(p, dict) for p in parsed):
        blocks = [format_company_block(p) for p in parsed]
        if all(blocks):
            return "\n\n".join(blocks)

    return content.strip() if isinstance(content, str) else json.dumps(parsed, indent=2, default=str)


# ---------- SHAPES (priority order) ----------
def _from_content_items(job: AgentJob) -> Optional[str]:
    parts = [_content_to_text(item.content) for item in job.output_content]
    return "\n\n".join(p for p in parts if p) or None


def _from_single_text(job: AgentJob) -> Optional[str]:
    return job.output.text if job.output and job.output.text else None


def _from_final_item(job: AgentJob) -> Optional[str]:
    if not job.output:
        return None
    final = next((item for item in job.output.items if item.type == "final" and item.text), None)
    return final.text if final else None


def _from_text_items(job: AgentJob) -> Optional[str]:
    if not job.output:
        return None
    return "\n".join(item.text for item in job.output.items if item.text) or None


def _from_segments(job: AgentJob) -> Optional[str]:
    texts = [seg.text for seg in job.segments if seg.text and seg.type not in TOOL_SEGMENT_TYPES]
    return "\n".join(texts) or None


SHAPES: List[Tuple[str, Callable[[AgentJob], Optional[str]]]] = [
    ("content_items", _from_content_items),
    ("single_text", _from_single_text),
    ("final_item", _from_final_item),
    ("text_items", _from_text_items),
    ("segments", _from_segments),
]


def _match(job: AgentJob) -> Tuple[str, Optional[str]]:
    for tag, extractor in SHAPES:
        text = extractor(job)
        if text and text.strip():
            return tag, text
    return "absent", None


def fallback_message(prompt: str, status: str, terminal: bool = True) -> str:
    request = f' "{prompt.strip()}"' if prompt and prompt.strip() else ""
    if not terminal:
        return f"Your request{request} is still {status}. Please check back shortly."
    return (
        f"The agent finished your request{request} with status '{status}' "
        "but did not return any readable content."
    )


def classify_payload(job: Union[AgentJob, Dict[str, Any]]) -> str:
    """Tag of the first payload shape that yields text ('absent' if none)."""
    try:
        if not isinstance(job, AgentJob):
            job = AgentJob.model_validate(job)
        return _match(job)[0]
    except Exception as e:
        logger.warning(f"Could not classify agent payload: {e}")
        return "absent"


def extract_final_response(job: Union[AgentJob, Dict[str, Any]]) -> str:
    """
    Normalize an agent job's result into a single display string.

    Args:
        job: AgentJob or the raw JSON dict returned by the platform

    Returns:
        Non-empty display text; a fallback message when no content is found
    """
    if not isinstance(job, AgentJob):
        try:
            job = AgentJob.model_validate(job)
        except (ValidationError, TypeError, ValueError) as e:
            logger.warning(f"Unparseable agent payload, using fallback: {e}")
            raw = job if isinstance(job, dict) else {}
            return fallback_message("", str(raw.get("status") or "unknown"))

    try:
        tag, text = _match(job)
    except Exception as e:
        logger.error(f"Response extraction failed for {job.id}: {e}", exc_info=True)
        tag, text = "absent", None

    if text:
        logger.debug(f"Extracted response for {job.id} from {tag}")
        return text

    logger.warning(f"No content found in response {job.id} (status {job.status.value}), using fallback")
    return fallback_message(job.input_content, job.status.value, job.is_terminal)
