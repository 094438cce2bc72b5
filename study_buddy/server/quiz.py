# server/quiz.py
# ---------------------------------------------------------
# Deterministic quiz helpers.
#
#   - question_template / synthesize_quiz: template questions, no AI
#   - clean_quiz: repair model output into exactly N valid questions
# ---------------------------------------------------------

import re
from typing import Any, Dict, Iterable, List, Optional, Set

PROMPT_TEMPLATES = [
    "Which statement about {topic} in {subject} is most accurate?",
    "Which example best illustrates {topic} in {subject}?",
    "Which formula/fact is associated with {topic} in {subject}?",
    "Which misconception about {topic} in {subject} is FALSE?",
    "Which application uses {topic} most directly in {subject}?",
]

DISTRACTOR_POOL = [
    "{topic} is unrelated to {subject}",
    "{topic} only appears in biology",
    "{topic} cannot be measured",
    "{topic} is purely historical",
    "{topic} is always random",
    "{topic} has no real-world uses",
]

OPTIONS_PER_QUESTION = 4

# instructions the model sometimes echoes into the question text
_LEAKED_INSTRUCTIONS = [
    re.compile(r"include 4 options.*$", flags=re.I),
    re.compile(r"provide correct_answers.*$", flags=re.I),
]
_WHITESPACE = re.compile(r"\s+")
_SPACE_BEFORE_PERIOD = re.compile(r"\s+\.")


# -------------------------------------------------------------------
# Synthesizer
# -------------------------------------------------------------------

def question_template(subject: str, topic: str, i: int) -> Dict[str, Any]:
    """Question number i (1-based). Prompts cycle every 5; later cycles get a variant tag."""
    cycle, idx = divmod(i - 1, len(PROMPT_TEMPLATES))
    prompt = PROMPT_TEMPLATES[idx].format(subject=subject, topic=topic)
    if cycle:
        prompt = f"{prompt} (variant {cycle + 1})"

    options = [
        f"{topic} relates to {subject} fundamentals",
        f"{topic} is unrelated to {subject}",
        f"{topic} only appears in biology",
        f"{topic} cannot be measured",
    ]
    return {
        "id": f"q{i}",
        "type": "multiple_choice",
        "prompt": prompt,
        "options": options,
        "correct_answers": [options[0]],
        "explanations": f"{topic} is foundational within {subject}.",
    }


def synthesize_quiz(
    subject: str, topic: str, count: int, difficulty: str = "medium"
) -> List[Dict[str, Any]]:
    # The template bank does not vary by difficulty yet; it is only echoed in meta.
    return [question_template(subject, topic, i) for i in range(1, count + 1)]


def generate_distractor(topic: str, subject: str, n: int) -> str:
    return DISTRACTOR_POOL[n % len(DISTRACTOR_POOL)].format(topic=topic, subject=subject)


# -------------------------------------------------------------------
# Cleaner
# -------------------------------------------------------------------

def sanitize_prompt(prompt: Any) -> str:
    # collapse first so a leaked instruction spanning lines is cut in one pass
    s = _WHITESPACE.sub(" ", str(prompt or ""))
    for pattern in _LEAKED_INSTRUCTIONS:
        s = pattern.sub("", s)
    s = _SPACE_BEFORE_PERIOD.sub(".", s)
    return s.strip()


def resolve_correct(candidate: Dict[str, Any], subject: str, topic: str) -> str:
    answers = candidate.get("correct_answers")
    if isinstance(answers, (list, tuple)):
        first = answers[0] if answers else None
    else:
        first = answers
    correct = str(first or candidate.get("answer") or "").strip()
    return correct or f"{topic} relates to {subject}"


def uniq_options(
    options: Optional[Iterable[Any]], correct: str, subject: str, topic: str
) -> List[str]:
    """
    Dedupe options case-insensitively, pad with distractors up to 4, and make
    sure the correct answer is one of them.
    """
    out: List[str] = []
    seen: Set[str] = set()
    if isinstance(options, (list, tuple)):
        for o in options:
            t = str(o if o is not None else "").strip()
            if not t or t.lower() in seen:
                continue
            seen.add(t.lower())
            out.append(t)

    out = out[:OPTIONS_PER_QUESTION]
    seen = {o.lower() for o in out}

    skip = 0
    while len(out) < OPTIONS_PER_QUESTION:
        filler = generate_distractor(topic, subject, len(out) + skip)
        if filler.lower() in seen:
            skip += 1
            continue
        seen.add(filler.lower())
        out.append(filler)

    if correct not in out:
        lowered = [o.lower() for o in out]
        if correct.lower() in lowered:
            out[lowered.index(correct.lower())] = correct
        else:
            out[0] = correct
    return out


def _unique_id(preferred: Any, used: Set[str], position: int) -> str:
    qid = str(preferred or "").strip()
    if qid and qid not in used:
        return qid
    n = position
    while f"q{n}" in used:
        n += 1
    return f"q{n}"


def clean_quiz(
    raw: Any, subject: str, topic: str, count: int
) -> List[Dict[str, Any]]:
    """
    Turn loosely structured model output into exactly `count` questions:
    sanitized + deduplicated prompts, 4 unique options with the correct answer
    among them, unique ids. Missing questions are backfilled from templates.
    """
    cleaned: List[Dict[str, Any]] = []
    seen_prompts: Set[str] = set()
    used_ids: Set[str] = set()

    for q in raw if isinstance(raw, list) else []:
        if len(cleaned) >= count:
            break
        if not isinstance(q, dict):
            continue

        prompt = sanitize_prompt(q.get("prompt") or q.get("question") or "")
        if not prompt:
            continue
        key = prompt.lower()
        if key in seen_prompts:
            continue
        seen_prompts.add(key)

        correct = resolve_correct(q, subject, topic)
        qid = _unique_id(q.get("id"), used_ids, len(cleaned) + 1)
        used_ids.add(qid)
        cleaned.append(
            {
                "id": qid,
                "type": "multiple_choice",
                "prompt": prompt,
                "options": uniq_options(q.get("options"), correct, subject, topic),
                "correct_answers": [correct],
                "explanations": str(q.get("explanations") or ""),
            }
        )

    i = len(cleaned) + 1
    while len(cleaned) < count:
        base = question_template(subject, topic, i)
        i += 1
        if base["prompt"].lower() in seen_prompts:
            continue
        seen_prompts.add(base["prompt"].lower())
        base["id"] = _unique_id(base["id"], used_ids, len(cleaned) + 1)
        used_ids.add(base["id"])
        cleaned.append(base)

    return cleaned[:count]
