# server/schedule.py
# ---------------------------------------------------------
# Deterministic weekly schedule builder.
#
# Used on its own when no provider is configured and as the
# fallback whenever the provider path fails.
# ---------------------------------------------------------

import math
import time
from typing import Any, Dict, List, Optional, Sequence

from .schemas import WEEK_DAYS, Course, Deadline, ScheduleRequest

FALLBACK_STRATEGY = "fallback_proportional"
DEFAULT_NEXT_STEPS = ["Review notes", "Practice problems", "Self-quiz"]

# hours are spread over a 5-day study week, then applied to all 7 days
STUDY_DAYS_PER_WEEK = 5
PRIORITY_WEIGHT = 2


def round_half_up(x: float) -> int:
    """Math.round semantics: 2.5 -> 3, 0.5 -> 1 (Python's round() gives 2 and 0)."""
    return int(math.floor(x + 0.5))


def now_ms() -> int:
    return int(time.time() * 1000)


def block_milestone(course_name: str) -> str:
    return f"Focus on key topic for {course_name}"


def _weighted_courses(
    courses: Sequence[Course], priority_subjects: Optional[Sequence[str]]
) -> List[Dict[str, Any]]:
    priorities = set(priority_subjects or [])
    return [
        {"name": c.name, "weight": PRIORITY_WEIGHT if c.name in priorities else 1}
        for c in courses
    ]


def _plan_day(
    day: str, weighted: List[Dict[str, Any]], total_weight: int, hours_per_day: int
) -> Dict[str, Any]:
    blocks: List[Dict[str, Any]] = []
    remaining = hours_per_day
    for c in weighted:
        share = max(1, round_half_up(c["weight"] / total_weight * hours_per_day))
        duration = min(remaining, share)
        if duration <= 0:
            continue
        remaining -= duration
        blocks.append(
            {
                "course": c["name"],
                "duration": duration,
                "milestone": block_milestone(c["name"]),
            }
        )
        if remaining <= 0:
            break
    return {"day": day, "blocks": blocks, "_remaining": remaining}


def build_milestones(
    courses: Sequence[Course], deadlines: Sequence[Deadline]
) -> List[Dict[str, Any]]:
    """One milestone per course; first matching deadline wins."""
    out: List[Dict[str, Any]] = []
    for c in courses:
        deadline = next((d.date for d in deadlines if d.course == c.name), None)
        next_steps = (
            list(c.topics[:3]) if c.topics is not None else list(DEFAULT_NEXT_STEPS)
        )
        out.append({"course": c.name, "next": next_steps, "deadline": deadline})
    return out


def build_schedule(
    payload: ScheduleRequest,
    remainder_policy: str = "last_day",
    generated_at: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Proportional weekly plan.

    Each day gets max(1, round(available_hours / 5)) hours. Courses listed in
    priority_subjects weigh 2, others 1. Walking courses in input order, each
    gets max(1, round(weight / total * hours_per_day)) capped by what is left
    of the day.

    remainder_policy:
      - "last_day": leftover hours are added to the last block of the last
        day only (other days keep their leftover unallocated)
      - "daily": each day's leftover goes to that day's last block
    """
    hours_per_day = max(1, round_half_up(payload.available_hours / STUDY_DAYS_PER_WEEK))
    weighted = _weighted_courses(payload.courses, payload.priority_subjects)
    total_weight = sum(c["weight"] for c in weighted) or 1

    days = [_plan_day(d, weighted, total_weight, hours_per_day) for d in WEEK_DAYS]

    for i, day in enumerate(days):
        remaining = day.pop("_remaining")
        if remaining <= 0 or not day["blocks"]:
            continue
        if remainder_policy == "daily" or i == len(days) - 1:
            day["blocks"][-1]["duration"] += remaining

    return {
        "schedule": {"view": "weekly", "days": days},
        "milestones": build_milestones(payload.courses, payload.deadlines),
        "meta": {
            "generatedAt": generated_at if generated_at is not None else now_ms(),
            "strategy": FALLBACK_STRATEGY,
        },
    }
