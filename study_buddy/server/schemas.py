# server/schemas.py
"""
Pydantic schemas for the Study Buddy backend.

This file defines the structured payloads used by:
- /tools/schedule_generator   (ScheduleRequest, ScheduleOut)
- /tools/quiz_generator       (QuizRequest, QuizOut)
- /api/ai/*                   (ChatIn, ChatOut)
"""

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, StrictInt, confloat

WEEK_DAYS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
MAX_QUESTIONS = 50

Day = Literal["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
Difficulty = Literal["easy", "medium", "hard"]
QuestionType = Literal["multiple_choice", "short_answer", "essay"]


# ---------------------------------------------------------------------------
# /tools/schedule_generator
# ---------------------------------------------------------------------------

class Course(BaseModel):
    name: str = Field(..., min_length=1)
    topics: Optional[List[str]] = None


class Deadline(BaseModel):
    course: str
    # ISO date, may be empty
    date: str = ""


class ScheduleRequest(BaseModel):
    courses: List[Course] = Field(..., min_length=1)
    deadlines: List[Deadline] = Field(default_factory=list)
    # hours per week; strict so "10" or true are rejected like any non-number,
    # and finite so Infinity / NaN are rejected too
    available_hours: Union[StrictInt, confloat(strict=True, allow_inf_nan=False)]
    learning_style: Optional[str] = None
    priority_subjects: Optional[List[str]] = None


class TimeBlock(BaseModel):
    course: str
    duration: float = Field(..., gt=0)
    milestone: Optional[str] = None


class DayPlan(BaseModel):
    day: Day
    blocks: List[TimeBlock] = Field(default_factory=list)


class Milestone(BaseModel):
    course: str
    next: List[str] = Field(default_factory=list, max_length=3)
    deadline: Optional[str] = None


class ScheduleView(BaseModel):
    view: Literal["weekly"] = "weekly"
    days: List[DayPlan]


class ScheduleMeta(BaseModel):
    # epoch milliseconds
    generatedAt: int
    strategy: str


class ScheduleOut(BaseModel):
    schedule: ScheduleView
    milestones: List[Milestone]
    meta: ScheduleMeta


# ---------------------------------------------------------------------------
# /tools/quiz_generator
# ---------------------------------------------------------------------------

class QuizRequest(BaseModel):
    extracted_text: str = ""
    subject: Optional[str] = None
    topic: Optional[str] = None
    question_count: int = Field(..., gt=0, le=MAX_QUESTIONS)
    difficulty_level: Difficulty = "medium"
    question_types: List[QuestionType] = Field(..., min_length=1)


class Question(BaseModel):
    id: str
    type: Literal["multiple_choice"] = "multiple_choice"
    prompt: str = Field(..., min_length=1)
    options: List[str] = Field(..., min_length=4, max_length=4)
    correct_answers: List[str] = Field(..., min_length=1, max_length=1)
    explanations: str = ""


class QuizMeta(BaseModel):
    difficulty: str
    count: int
    strategy: str


class QuizOut(BaseModel):
    questions: List[Question]
    meta: QuizMeta


# ---------------------------------------------------------------------------
# /api/ai/* chat relay
# ---------------------------------------------------------------------------

class ChatMessage(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str


class ChatIn(BaseModel):
    messages: List[ChatMessage] = Field(default_factory=list)
    provider: str = "auto"


class ChatReply(BaseModel):
    role: Literal["assistant"] = "assistant"
    content: str


class ChatOut(BaseModel):
    message: ChatReply
    citations: List[Dict[str, Any]] = Field(default_factory=list)
    provider: str
    usage: Optional[Dict[str, Any]] = None
