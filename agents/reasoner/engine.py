"""
Observe -> think -> plan -> act -> reflect reasoning loop over the task store.

Each iteration records exactly one step per phase, so iteration ``k``
(0-based) writes steps ``5k+1 .. 5k+5``. The loop stops when reflection
reports the goal achieved or asks not to continue, after ``max_iterations``
iterations, or when the wall-clock limit is exceeded at the top of an
iteration. Only pre-session validation errors reach the caller; everything
else becomes a ``ReasoningResult``.
"""
from __future__ import annotations

import json
import time
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, Union
from uuid import uuid4

from agents.memory.context_memory import ContextMemory, ReasoningContext, TaskStats
from agents.models import ReasoningPhase, ReasoningResult, ReasoningStep
from agents.reasoner.base import BaseReasoner, Intent, PlannedAction, ReflectionResult
from agents.reasoner.exceptions import PhaseError
from agents.tools.base import ToolRegistry, ToolResult
from agents.tools.task_tools import utc_now
from agents.validators import ReasoningOptions, validate, validate_goal
from storage.base import StepLog, TaskStore
from utils.logger import get_logger

logger = get_logger(__name__)

# ----------------------------- Goal keywords ---------------------------

INTENT_KEYWORDS: Dict[Intent, Tuple[str, ...]] = {
    Intent.PRIORITIZATION: ("next", "work on"),
    Intent.DEADLINE: ("overdue", "late"),
    Intent.ORDERING: ("organize", "sort"),
    Intent.ANALYSIS: ("analyze", "review"),
}

INTENT_INSIGHTS: Dict[Intent, Tuple[str, str]] = {
    Intent.PRIORITIZATION: (
        "User wants task prioritization recommendations.",
        "Need to analyze tasks by priority and due date.",
    ),
    Intent.DEADLINE: (
        "User is concerned about overdue tasks.",
        "Need to identify and analyze overdue items.",
    ),
    Intent.ORDERING: (
        "User wants to organize or restructure tasks.",
        "Need to suggest an execution order.",
    ),
    Intent.ANALYSIS: (
        "User wants a general analysis of their tasks.",
        "Need to provide statistics and insights.",
    ),
    Intent.GENERAL: (
        "General task inquiry detected.",
        "Will provide overview and recommendations.",
    ),
}

ORDER_KEYWORDS = ("next", "order")

BASE_CONFIDENCE = 0.7
OVERDUE_PENALTY = 0.1
CONFIDENCE_FLOOR = 0.5
NO_REFLECTION_CONFIDENCE = 0.5
PENDING_BACKLOG_THRESHOLD = 5

RETRY_RECOMMENDATION = "Please try again or rephrase your goal"
TIMEOUT_RESULT = "No iterations completed before the timeout elapsed"
TIMEOUT_RECOMMENDATION = "Retry with a longer timeout"


def detect_intents(goal: str) -> List[Intent]:
    """Case-insensitive substring match; every matching intent is returned, in a fixed order."""
    lowered = goal.lower()
    intents = [
        intent
        for intent, keywords in INTENT_KEYWORDS.items()
        if any(keyword in lowered for keyword in keywords)
    ]
    return intents or [Intent.GENERAL]


def build_plan(goal: str, intents: List[Intent], stats: TaskStats) -> List[PlannedAction]:
    lowered = goal.lower()
    actions = [PlannedAction("analyze_priorities", "Understand current task priorities")]

    if Intent.DEADLINE in intents or stats.overdue_count > 0:
        actions.append(PlannedAction("find_overdue", "Identify overdue tasks"))

    if Intent.ORDERING in intents or any(keyword in lowered for keyword in ORDER_KEYWORDS):
        actions.append(PlannedAction("suggest_order", "Determine optimal task execution order"))

    return actions


def summarize_tool_result(result: ToolResult) -> str:
    if not result.data:
        return "No data"
    if "summary" in result.data:
        return str(result.data["summary"])
    if "count" in result.data:
        return f"Found {result.data['count']} items"
    return "Completed successfully"


def reflect_on_stats(stats: TaskStats) -> ReflectionResult:
    """Derive recommendations and confidence from context statistics alone."""
    recommendations: List[str] = []
    confidence = BASE_CONFIDENCE

    if stats.overdue_count > 0:
        recommendations.append(f"Address {stats.overdue_count} overdue task(s) immediately")
        confidence = max(CONFIDENCE_FLOOR, confidence - OVERDUE_PENALTY)

    urgent = stats.by_priority.get("urgent", 0)
    if urgent > 0:
        recommendations.append(f"Focus on {urgent} urgent task(s) first")

    if stats.total > 0:
        if stats.by_status.get("pending", 0) > PENDING_BACKLOG_THRESHOLD:
            recommendations.append("Consider breaking down large tasks or delegating")
        recommendations.append("Review and update task priorities regularly")
    else:
        recommendations.append("No tasks found. Create some tasks to get started!")

    # One pass answers every recognised intent.
    return ReflectionResult(
        goal_achieved=True,
        confidence=round(confidence, 2),
        recommendations=recommendations,
        summary=_summary(stats, recommendations),
        should_continue=False,
    )


def _summary(stats: TaskStats, recommendations: List[str]) -> str:
    lines = [f"Based on analysis of your {stats.total} tasks:", ""]

    if stats.overdue_count > 0:
        lines.append(f"⚠️  {stats.overdue_count} task(s) are overdue")

    urgent = stats.by_priority.get("urgent", 0)
    high = stats.by_priority.get("high", 0)
    if urgent > 0 or high > 0:
        lines.append(f"🔴 {urgent} urgent, {high} high priority")

    lines.append("")
    lines.append("Recommendations:")
    lines.extend(f"{i}. {rec}" for i, rec in enumerate(recommendations, start=1))
    return "\n".join(lines)


@dataclass
class _Session:
    id: str
    memory: ContextMemory
    step_number: int = 0


class ReasoningEngine(BaseReasoner):
    """
    Runs bounded reasoning sessions. Holds no per-session state: every call to
    ``reason`` gets its own session id and its own ``ContextMemory``.

    ``clock`` returns seconds from a monotonic source and drives durations and
    the timeout; ``now`` returns the aware UTC time used for overdue checks.
    """

    def __init__(
        self,
        store: TaskStore,
        step_log: StepLog,
        tools: ToolRegistry,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.step_log = step_log
        self.tools = tools
        self.clock = clock
        self.now = now

    def list_tools(self) -> List[Dict[str, str]]:
        return self.tools.list_tools()

    def reason(
        self,
        goal: str,
        options: Optional[Union[ReasoningOptions, Dict[str, Any]]] = None,
    ) -> ReasoningResult:
        goal = validate_goal(goal)
        opts = validate(ReasoningOptions, options)

        started = self.clock()
        session = _Session(id=uuid4().hex, memory=ContextMemory(self.store, self.step_log, self.now))
        logger.info(
            "reasoning_started",
            session_id=session.id,
            goal=goal,
            max_iterations=opts.max_iterations,
            timeout_ms=opts.timeout_ms,
        )

        try:
            return self._run(session, goal, opts, started)
        except Exception as exc:
            phase = exc.phase.value if isinstance(exc, PhaseError) else None
            logger.error("reasoning_failed", session_id=session.id, phase=phase, error=str(exc), exc_info=True)
            return ReasoningResult(
                goal=goal,
                result=f"Reasoning failed: {exc}",
                confidence=0.0,
                steps=session.memory.get_current_steps() if opts.include_steps else [],
                recommendations=[RETRY_RECOMMENDATION],
                session_id=session.id,
                total_duration_ms=self._elapsed_ms(started),
            )
        finally:
            session.memory.clear_session()

    # ----------------------------- loop ------------------------------------

    def _run(
        self,
        session: _Session,
        goal: str,
        opts: ReasoningOptions,
        started: float,
    ) -> ReasoningResult:
        context: Optional[ReasoningContext] = None
        reflection: Optional[ReflectionResult] = None
        timed_out = False

        for iteration in range(opts.max_iterations):
            elapsed = self._elapsed_ms(started)
            if elapsed > opts.timeout_ms:
                logger.warning("reasoning_timeout", session_id=session.id, iteration=iteration, elapsed_ms=elapsed)
                timed_out = True
                break

            logger.debug("iteration_started", session_id=session.id, iteration=iteration)
            context, reflection = self._iterate(session, goal, context)

            if reflection.goal_achieved or not reflection.should_continue:
                logger.info(
                    "reasoning_complete",
                    session_id=session.id,
                    iteration=iteration,
                    confidence=reflection.confidence,
                )
                break
        else:
            logger.warning("max_iterations_reached", session_id=session.id, max_iterations=opts.max_iterations)

        steps = session.memory.get_current_steps() if opts.include_steps else []
        total_ms = self._elapsed_ms(started)

        if reflection is None:
            if timed_out:
                result, confidence, recommendations = TIMEOUT_RESULT, 0.0, [TIMEOUT_RECOMMENDATION]
            else:
                result, confidence, recommendations = "Reasoning completed", NO_REFLECTION_CONFIDENCE, []
        else:
            result, confidence, recommendations = reflection.summary, reflection.confidence, reflection.recommendations

        logger.info(
            "reasoning_finished",
            session_id=session.id,
            confidence=confidence,
            steps=session.step_number,
            total_duration_ms=total_ms,
        )
        return ReasoningResult(
            goal=goal,
            result=result,
            confidence=confidence,
            steps=steps,
            recommendations=list(recommendations),
            session_id=session.id,
            total_duration_ms=total_ms,
        )

    def _iterate(
        self,
        session: _Session,
        goal: str,
        context: Optional[ReasoningContext],
    ) -> Tuple[ReasoningContext, ReflectionResult]:
        context, observation = self.observe(session, goal, context)
        thought, intents = self.think(session, context, observation)
        plan = self.plan(session, context, thought, intents)
        action_result = self.act(session, plan)
        reflection = self.reflect(session, context, action_result)
        return context, reflection

    # ----------------------------- phases ----------------------------------

    def observe(
        self,
        session: _Session,
        goal: str,
        context: Optional[ReasoningContext],
    ) -> Tuple[ReasoningContext, str]:
        with self._phase(ReasoningPhase.OBSERVE) as started:
            if context is None:
                context = session.memory.initialize_context(goal, session_id=session.id)
            else:
                context = session.memory.refresh_context(context)

            stats = context.stats
            observation = "\n".join([
                f"Goal: {context.goal}",
                "",
                "Current State:",
                f"- Total tasks: {stats.total}",
                f"- By status: {json.dumps(stats.by_status)}",
                f"- By priority: {json.dumps(stats.by_priority)}",
                f"- Overdue tasks: {stats.overdue_count}",
                "",
                f"Available tools: {', '.join(self.tools.list_names())}",
            ])
            self._record(session, ReasoningPhase.OBSERVE, f"Gathering context for goal: {context.goal}", observation, started)
        return context, observation

    def think(
        self,
        session: _Session,
        context: ReasoningContext,
        observation: str,
    ) -> Tuple[str, List[Intent]]:
        with self._phase(ReasoningPhase.THINK) as started:
            intents = detect_intents(context.goal)
            insights = [line for intent in intents for line in INTENT_INSIGHTS[intent]]
            thought = "\n".join([
                "Analysis of goal and current state:",
                "",
                *insights,
                "",
                "Key observations:",
                f"- {context.stats.total} tasks in system",
                f"- {context.stats.overdue_count} overdue tasks need attention",
                "- Priority distribution shows workload balance",
            ])
            self._record(session, ReasoningPhase.THINK, observation, thought, started)
        return thought, intents

    def plan(
        self,
        session: _Session,
        context: ReasoningContext,
        thought: str,
        intents: List[Intent],
    ) -> List[PlannedAction]:
        with self._phase(ReasoningPhase.PLAN) as started:
            actions = build_plan(context.goal, intents, context.stats)
            for action in actions:
                if not self.tools.has(action.tool):
                    logger.warning("planned_tool_unavailable", session_id=session.id, tool=action.tool)
            lines = "\n".join(f"{i}. {a.tool}: {a.reason}" for i, a in enumerate(actions, start=1))
            self._record(session, ReasoningPhase.PLAN, thought, f"Planned actions:\n{lines}", started)
        return actions

    def act(self, session: _Session, plan: List[PlannedAction]) -> str:
        with self._phase(ReasoningPhase.ACT) as started:
            lines = []
            for action in plan:
                result = self.tools.execute(action.tool, action.params)
                if result.success:
                    lines.append(f"✓ {action.tool}: {summarize_tool_result(result)}")
                else:
                    logger.warning("planned_action_failed", session_id=session.id, tool=action.tool, error=result.error)
                    lines.append(f"✗ {action.tool}: {result.error}")
            output = "\n".join(lines)
            self._record(session, ReasoningPhase.ACT, f"Executing {len(plan)} actions", output, started)
        return output

    def reflect(self, session: _Session, context: ReasoningContext, action_result: str) -> ReflectionResult:
        with self._phase(ReasoningPhase.REFLECT) as started:
            reflection = self.evaluate(context)
            output = json.dumps(asdict(reflection), indent=2, ensure_ascii=False)
            self._record(session, ReasoningPhase.REFLECT, action_result, output, started)
        return reflection

    def evaluate(self, context: ReasoningContext) -> ReflectionResult:
        return reflect_on_stats(context.stats)

    # ----------------------------- helpers ---------------------------------

    @contextmanager
    def _phase(self, phase: ReasoningPhase) -> Iterator[float]:
        try:
            yield self.clock()
        except PhaseError:
            raise
        except Exception as exc:
            raise PhaseError(phase, exc) from exc

    def _record(
        self,
        session: _Session,
        phase: ReasoningPhase,
        input: str,
        output: str,
        started: float,
    ) -> ReasoningStep:
        session.step_number += 1
        duration_ms = self._elapsed_ms(started)
        step = session.memory.add_step(session.id, session.step_number, phase, input, output, duration_ms)
        logger.debug("phase_completed", session_id=session.id, phase=phase.value, step_number=step.step_number)
        return step

    def _elapsed_ms(self, started: float) -> int:
        return max(0, int((self.clock() - started) * 1000))
