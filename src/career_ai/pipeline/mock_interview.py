"""Mock Interviewer - generates questions for a job, scores answers and reviews whole sessions."""

from __future__ import annotations

import dataclasses
import logging
from functools import partial
from typing import Callable, Sequence, TypeVar

from career_ai.agents.executor import AgentExecutor, RetryPolicy
from career_ai.agents.extractor import extract
from career_ai.clients.llm_client import CompletionRequest, LLMClient
from career_ai.config import AgentConfig, AgentsConfig
from career_ai.models.interview import (
    DIFFICULTIES,
    AnsweredQuestion,
    AnswerEvaluation,
    InterviewQuestion,
    Interviewer,
    QuestionSet,
    SessionAnalysis,
)
from career_ai.models.job import JobDescriptor
from career_ai.models.outcome import AgentErr, AgentOutcome
from career_ai.utils.json_parser import ExtractionError, extract_json

logger = logging.getLogger(__name__)

QUESTIONS_OPERATION = "interview_questions"
EVALUATION_OPERATION = "answer_evaluation"
SESSION_OPERATION = "session_analysis"

MAX_QUESTIONS = 20
DESCRIPTION_CHARS = 2000
ANSWER_PREVIEW_CHARS = 200

T = TypeVar("T")

QUESTIONS_SYSTEM = """\
You are an experienced hiring manager preparing realistic interview questions.

Mix the categories behavioral, technical, situational, problem-solving and cultural-fit according to the interview type.
Match the requested difficulty. Tie every question to the job's actual responsibilities and stack.
When interviewers are listed, ask the questions they would plausibly ask given their titles.

Respond ONLY with JSON in this format:
{
  "questions": [
    {"id": "q1", "question": "string", "category": "behavioral | technical | situational | problem-solving | cultural-fit",
     "difficulty": "easy | medium | hard", "key_points_to_include": ["string"], "evaluation_criteria": ["string"]}
  ],
  "interview_context": "one paragraph on what this interview will focus on",
  "tips": ["string"]
}"""

QUESTIONS_PROMPT = """Generate {count} {interview_type} interview questions at {difficulty} difficulty.

# TARGET JOB

**Job Title:** {job_title}
**Company:** {company}

**Job Description:**
{description}

# INTERVIEWERS
{interviewers}

Respond with JSON only."""

EVALUATION_SYSTEM = """\
You are an interview coach scoring a candidate's answer honestly.

Score 0-100: 90+ outstanding, 75-89 strong, 60-74 adequate, below 60 needs work.
Judge structure (STAR for behavioral questions), relevance, specificity and evidence.

Respond ONLY with JSON in this format:
{
  "score": 0-100,
  "strengths": ["string"],
  "improvements": ["string"],
  "key_points_covered": ["string"],
  "key_points_missed": ["string"],
  "example_answer": "a stronger answer in the candidate's voice",
  "detailed_feedback": "string",
  "next_steps": ["string"]
}"""

EVALUATION_PROMPT = """Evaluate this interview answer.

**Job:** {job_title} at {company}
**Question ({category}, {difficulty}):** {question}
**Key points a strong answer includes:** {key_points}
**Evaluation criteria:** {criteria}

**Candidate's answer:**
{answer}

Respond with JSON only."""

SESSION_SYSTEM = """\
You are an interview coach reviewing a full mock interview session.

Give 0-100 scores for overall, technical, communication and problem-solving performance.
readiness_level is "highly-ready" (85+), "ready" (70-84) or "needs-practice" (below 70).

Respond ONLY with JSON in this format:
{
  "overall_score": 0-100,
  "technical_score": 0-100,
  "communication_score": 0-100,
  "problem_solving_score": 0-100,
  "strengths": ["string"],
  "areas_to_improve": ["string"],
  "detailed_analysis": "string",
  "recommendations": ["string"],
  "readiness_level": "highly-ready | ready | needs-practice"
}"""

SESSION_PROMPT = """Review this {interview_type} mock interview for {job_title} at {company}.

# QUESTIONS AND ANSWERS
{transcript}

Respond with JSON only."""


def _job_problems(job: JobDescriptor | None) -> list[str]:
    if job is None:
        return ["Job description is required"]
    errors = []
    if not job.title.strip():
        errors.append("Job title is required")
    if not job.company.strip():
        errors.append("Company name is required")
    return errors


def format_interviewers(interviewers: Sequence[Interviewer]) -> str:
    if not interviewers:
        return "Not specified"
    return "\n".join(
        f"- {person.name}" + (f", {person.title}" if person.title else "") for person in interviewers
    )


def format_transcript(answers: Sequence[AnsweredQuestion]) -> str:
    blocks = []
    for i, item in enumerate(answers, 1):
        answer = item.answer
        if len(answer) > ANSWER_PREVIEW_CHARS:
            answer = answer[:ANSWER_PREVIEW_CHARS] + "..."
        score = f"{item.evaluation.score}/100" if item.evaluation else "not scored"
        blocks.append(f"Q{i} [{item.category}]: {item.question}\nA{i}: {answer}\nScore: {score}")
    return "\n\n".join(blocks)


def extract_questions(raw_text: str) -> QuestionSet:
    questions = extract(raw_text, QuestionSet)
    if not questions.questions:
        raise ExtractionError("Response contains no interview questions", raw_text)
    return questions


def _require_key(model_cls: type[T], key: str, alias: str) -> Callable[[str], T]:
    """Extractor that retries when ``key`` is absent from the reply."""

    def _extract(raw_text: str) -> T:
        data = extract_json(raw_text)
        if not isinstance(data, dict) or (key not in data and alias not in data):
            raise ExtractionError(f"Response missing {key}", raw_text)
        return extract(raw_text, model_cls)

    return _extract


extract_evaluation = _require_key(AnswerEvaluation, "score", "score")
extract_session = _require_key(SessionAnalysis, "overall_score", "overallScore")


class MockInterviewer:
    def __init__(
        self,
        llm: LLMClient,
        configs: AgentsConfig | None = None,
        executor: AgentExecutor | None = None,
    ):
        self.llm = llm
        self.configs = configs or AgentsConfig()
        self.executor = executor or AgentExecutor()

    async def _run(
        self, config: AgentConfig, operation: str, system: str, prompt: str, extract_fn
    ) -> AgentOutcome:
        return await self.executor.run(
            build_prompt=lambda attempt: CompletionRequest(
                prompt=prompt,
                system=system,
                temperature=config.temperature,
                max_tokens=config.max_tokens,
                model=config.model,
            ),
            call=partial(self.llm.complete, timeout=config.timeout, operation=operation),
            extract=extract_fn,
            policy=RetryPolicy.from_config(config),
            operation=operation,
        )

    async def generate_questions(
        self,
        job: JobDescriptor,
        *,
        interview_type: str = "mixed",
        difficulty: str = "medium",
        count: int = 5,
        interviewers: Sequence[Interviewer] = (),
    ) -> AgentOutcome[QuestionSet]:
        """Generate ``count`` questions; a longer reply is cut down to ``count``."""
        errors = _job_problems(job)
        if not 1 <= count <= MAX_QUESTIONS:
            errors.append(f"Question count must be between 1 and {MAX_QUESTIONS}")
        if difficulty not in DIFFICULTIES:
            errors.append(f"Difficulty must be one of: {', '.join(DIFFICULTIES)}")
        if errors:
            return AgentErr.validation(f"Validation failed: {', '.join(errors)}", errors=errors)

        prompt = QUESTIONS_PROMPT.format(
            count=count,
            interview_type=interview_type,
            difficulty=difficulty,
            job_title=job.title,
            company=job.company,
            description=job.description[:DESCRIPTION_CHARS],
            interviewers=format_interviewers(interviewers),
        )
        logger.info("Generating %d %s questions for job=%s", count, interview_type, job.id)
        outcome = await self._run(
            self.configs.interview_questions, QUESTIONS_OPERATION, QUESTIONS_SYSTEM, prompt, extract_questions
        )
        if outcome.ok and len(outcome.data.questions) > count:
            extra = len(outcome.data.questions) - count
            outcome.data.questions = outcome.data.questions[:count]
            outcome = dataclasses.replace(
                outcome, warnings=(*outcome.warnings, f"Trimmed {extra} extra questions")
            )
        return outcome

    async def evaluate_answer(
        self, question: InterviewQuestion, answer: str, job: JobDescriptor
    ) -> AgentOutcome[AnswerEvaluation]:
        errors = _job_problems(job)
        if not question.question:
            errors.append("Question is required")
        if not answer or not answer.strip():
            errors.append("Answer is required")
        if errors:
            return AgentErr.validation(f"Validation failed: {', '.join(errors)}", errors=errors)

        prompt = EVALUATION_PROMPT.format(
            job_title=job.title,
            company=job.company,
            category=question.category,
            difficulty=question.difficulty,
            question=question.question,
            key_points=", ".join(question.key_points_to_include) or "Not specified",
            criteria=", ".join(question.evaluation_criteria) or "Not specified",
            answer=answer.strip(),
        )
        logger.info("Evaluating answer to %s (%d chars)", question.id, len(answer))
        outcome = await self._run(
            self.configs.answer_evaluation, EVALUATION_OPERATION, EVALUATION_SYSTEM, prompt, extract_evaluation
        )
        if outcome.ok:
            logger.info("Answer %s scored %d", question.id, outcome.data.score)
        return outcome

    async def analyze_session(
        self, answers: Sequence[AnsweredQuestion], job: JobDescriptor, *, interview_type: str = "mixed"
    ) -> AgentOutcome[SessionAnalysis]:
        errors = _job_problems(job)
        if not answers:
            errors.append("At least one answered question is required")
        if errors:
            return AgentErr.validation(f"Validation failed: {', '.join(errors)}", errors=errors)

        prompt = SESSION_PROMPT.format(
            interview_type=interview_type,
            job_title=job.title,
            company=job.company,
            transcript=format_transcript(answers),
        )
        logger.info("Analyzing interview session: %d answers job=%s", len(answers), job.id)
        outcome = await self._run(
            self.configs.session_analysis, SESSION_OPERATION, SESSION_SYSTEM, prompt, extract_session
        )
        if outcome.ok:
            logger.info(
                "Session scored %d (%s)", outcome.data.overall_score, outcome.data.readiness_level
            )
        return outcome
