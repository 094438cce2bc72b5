# server/parsing.py
# ---------------------------------------------------------
# Small text helpers shared by the generation pipeline.
#
#   - extract_json(text)          -> dict | None
#   - derive_subject_topic(text)  -> (subject, topic)
# ---------------------------------------------------------

import json
import re
from typing import Any, Dict, Optional, Tuple

DEFAULT_SUBJECT = "Subject"
DEFAULT_TOPIC = "Topic"

_OBJECT_SPAN = re.compile(r"\{.*\}", flags=re.S)

_SUBJECT_LABEL = re.compile(r"Subject:\s*([^\n]+)", flags=re.I)
_SUBJECT_LOOSE = re.compile(r"subject\s+([^.\n]+)", flags=re.I)
_TOPIC_LABEL = re.compile(r"Topic:\s*([^\n]+)", flags=re.I)
_TOPIC_LOOSE = re.compile(r"topic\s+([^.\n]+)", flags=re.I)


def _strip_code_fences(raw: str) -> str:
    s = raw.strip()
    if s.startswith("```"):
        lines = s.splitlines()
        if lines and lines[0].strip().startswith("```"):
            lines = lines[1:]
        if lines and lines[-1].strip().startswith("```"):
            lines = lines[:-1]
        s = "\n".join(lines).strip()
    return s


def extract_json(text: Optional[str]) -> Optional[Dict[str, Any]]:
    """
    Models often wrap JSON in ```json fences or add extra prose.
    Strip fences and parse the span from the first "{" to the last "}".

    Returns None when nothing usable is found; callers treat that as
    "no structured data" and move on to their fallback.
    """
    if not text:
        return None

    s = _strip_code_fences(text)
    m = _OBJECT_SPAN.search(s)
    if not m:
        return None

    try:
        data = json.loads(m.group(0))
    except ValueError:
        return None

    return data if isinstance(data, dict) else None


def _first_group(text: str, *patterns: re.Pattern) -> str:
    for pattern in patterns:
        m = pattern.search(text)
        if m and m.group(1).strip():
            return m.group(1).strip()
    return ""


def derive_subject_topic(text: Optional[str]) -> Tuple[str, str]:
    """Pull a (subject, topic) pair out of free text, e.g. 'Subject: Physics'."""
    text = text or ""
    subject = _first_group(text, _SUBJECT_LABEL, _SUBJECT_LOOSE) or DEFAULT_SUBJECT
    topic = _first_group(text, _TOPIC_LABEL, _TOPIC_LOOSE) or DEFAULT_TOPIC
    return subject, topic


def subject_from(payload: Any) -> str:
    return (
        getattr(payload, "subject", None)
        or derive_subject_topic(getattr(payload, "extracted_text", ""))[0]
        or DEFAULT_SUBJECT
    )


def topic_from(payload: Any) -> str:
    return (
        getattr(payload, "topic", None)
        or derive_subject_topic(getattr(payload, "extracted_text", ""))[1]
        or DEFAULT_TOPIC
    )
