# server/llm.py
# ---------------------------------------------------------
# Provider-backed generators for the study tools.
#
# Every tool runs in two stages:
#   1. enhance_*  -> Enhancement(value | error)   (never raises)
#   2. generate_* -> deterministic validate/repair of whatever stage 1 gave
#
# so the response shape is the same whether the provider answered,
# half-answered, or was never configured.
#
# Public helpers used by routes:
#   - generate_schedule(payload, provider, remainder_policy="last_day")
#   - generate_quiz(payload, provider)
# ---------------------------------------------------------

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from loguru import logger

from .parsing import extract_json, subject_from, topic_from
from .providers import ProviderError
from .quiz import clean_quiz, synthesize_quiz
from .schedule import build_schedule, now_ms
from .schemas import QuizRequest, ScheduleRequest

TEMPLATE_STRATEGY = "fallback_template"


@dataclass
class Enhancement:
    """Outcome of the optional provider stage."""

    value: Optional[Dict[str, Any]] = None
    error: Optional[ProviderError] = None

    @property
    def ok(self) -> bool:
        return self.value is not None


def _provider_name(provider: Any) -> str:
    return getattr(provider, "name", "provider")


def _call_provider_json(provider: Any, prompt: str) -> Enhancement:
    """Ask the provider for JSON and pull an object out of its reply."""
    if provider is None:
        return Enhancement()

    name = _provider_name(provider)
    try:
        raw = provider.generate(prompt, json_mode=True)
    except ProviderError as e:
        logger.warning(f"[llm] {name} call failed, using fallback: {e}")
        return Enhancement(error=e)

    logger.debug(f"[llm] {name} raw JSON (first 200 chars): {raw[:200]!r}")
    data = extract_json(raw)
    if data is None:
        logger.warning(f"[llm] {name} reply had no JSON object, using fallback")
        return Enhancement(error=ProviderError(name, "no JSON object in provider output"))
    return Enhancement(value=data)


# -------------------------------------------------------------------
# Schedule
# -------------------------------------------------------------------

def schedule_prompt(payload: ScheduleRequest) -> str:
    inputs = json.dumps(payload.model_dump(exclude_none=True), ensure_ascii=False)
    return (
        "You are Study Buddy, an expert study planner. Create an optimal weekly "
        "schedule with time blocks given the inputs. Output strict JSON with keys: "
        'schedule{view:"weekly", days:[{day:string, blocks:[{course:string, '
        "duration:number, milestone:string}]}]}, "
        "milestones:[{course,next:string[],deadline:string|null}], "
        "meta{generatedAt:number,strategy:string}. "
        f"Inputs: {inputs}"
    )


def enhance_schedule(payload: ScheduleRequest, provider: Any) -> Enhancement:
    return _call_provider_json(provider, schedule_prompt(payload))


def generate_schedule(
    payload: ScheduleRequest,
    provider: Any = None,
    remainder_policy: str = "last_day",
) -> Dict[str, Any]:
    """
    Provider schedule when one is configured and returns a JSON object,
    otherwise the proportional fallback. The provider object is passed through
    as-is apart from making sure meta.strategy / meta.generatedAt exist.
    """
    enhancement = enhance_schedule(payload, provider)
    if not enhancement.ok:
        return build_schedule(payload, remainder_policy=remainder_policy)

    out = dict(enhancement.value or {})
    meta = out.get("meta")
    meta = dict(meta) if isinstance(meta, dict) else {}
    meta.setdefault("generatedAt", now_ms())
    if not meta.get("strategy"):
        meta["strategy"] = f"provider:{_provider_name(provider)}"
    out["meta"] = meta
    return out


# -------------------------------------------------------------------
# Quiz
# -------------------------------------------------------------------

def quiz_prompt(payload: QuizRequest, subject: str, topic: str) -> str:
    n = payload.question_count
    return (
        "You are Study Buddy, an expert quiz generator. Given Subject and Topic "
        f"below, generate exactly {n} varied multiple-choice questions (no duplicates).\n"
        "- Do NOT echo instructions or meta text in questions.\n"
        "- Keep options concise and non-redundant; exactly 4 options per question, one correct.\n"
        "- Avoid repeating identical wording across questions; cover definitions, "
        "applications, examples, misconceptions.\n"
        "- Output ONLY strict JSON with schema:\n"
        '{ "questions": [ { "id": string, "type": "multiple_choice", "prompt": string, '
        '"options": string[4], "correct_answers": string[1], "explanations": string } ], '
        f'"meta": {{ "difficulty": "{payload.difficulty_level}", "count": {n} }} }}\n'
        f"Subject: {subject}\n"
        f"Topic: {topic}"
    )


def enhance_quiz(
    payload: QuizRequest, subject: str, topic: str, provider: Any
) -> Enhancement:
    enhancement = _call_provider_json(provider, quiz_prompt(payload, subject, topic))
    if not enhancement.ok:
        return enhancement

    questions = (enhancement.value or {}).get("questions")
    if not isinstance(questions, list) or not questions:
        name = _provider_name(provider)
        logger.warning(f"[llm] {name} returned no questions, using fallback")
        return Enhancement(error=ProviderError(name, "no questions in provider output"))
    return enhancement


def generate_quiz(payload: QuizRequest, provider: Any) -> Dict[str, Any]:
    """
    Exactly question_count multiple-choice questions: cleaned provider output
    when there is any, else template questions.
    """
    subject = subject_from(payload)
    topic = topic_from(payload)
    count = payload.question_count

    enhancement = enhance_quiz(payload, subject, topic, provider)
    questions: List[Dict[str, Any]]
    if enhancement.ok:
        raw = (enhancement.value or {}).get("questions")
        questions = clean_quiz(raw, subject, topic, count)
        strategy = f"provider:{_provider_name(provider)}+cleaned"
    else:
        questions = synthesize_quiz(subject, topic, count, payload.difficulty_level)
        strategy = TEMPLATE_STRATEGY

    return {
        "questions": questions,
        "meta": {
            "difficulty": payload.difficulty_level,
            "count": len(questions),
            "strategy": strategy,
        },
    }
