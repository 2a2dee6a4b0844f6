import json
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest

from agents.exceptions import ValidationError
from agents.memory.context_memory import TaskStats
from agents.models import ReasoningPhase, ReasoningResult
from agents.reasoner.base import Intent, ReflectionResult
from agents.reasoner.engine import (
    BASE_CONFIDENCE,
    RETRY_RECOMMENDATION,
    TIMEOUT_RECOMMENDATION,
    TIMEOUT_RESULT,
    ReasoningEngine,
    build_plan,
    detect_intents,
    reflect_on_stats,
)
from agents.tools.base import ToolRegistry
from agents.tools.task_tools import build_tool_registry
from tests.conftest import NOW, FailingStore, TickingClock, add_task

PHASES = [
    ReasoningPhase.OBSERVE,
    ReasoningPhase.THINK,
    ReasoningPhase.PLAN,
    ReasoningPhase.ACT,
    ReasoningPhase.REFLECT,
]


def _engine(storage, step_log=None, **kwargs) -> ReasoningEngine:
    tools = kwargs.pop("tools", None)
    if tools is None:
        tools = build_tool_registry(storage, clock=lambda: NOW)
    return ReasoningEngine(storage, step_log or storage, tools, now=lambda: NOW, **kwargs)


class KeepGoingEngine(ReasoningEngine):
    """Reflection never declares the goal achieved, so the loop runs until a limit stops it."""

    def evaluate(self, context):
        return ReflectionResult(
            goal_achieved=False,
            confidence=0.42,
            recommendations=[f"saw {context.stats.total} tasks"],
            summary="still thinking",
            should_continue=True,
        )


class BrokenReflectEngine(ReasoningEngine):
    def evaluate(self, context):
        raise KeyError("confidence")


# ----------------------------- keyword intents -------------------------


@pytest.mark.parametrize(
    "goal, expected",
    [
        ("What should I work on?", [Intent.PRIORITIZATION]),
        ("anything OVERDUE?", [Intent.DEADLINE]),
        ("Sort my list", [Intent.ORDERING]),
        ("review everything", [Intent.ANALYSIS]),
        ("hello there", [Intent.GENERAL]),
        ("what's next, and is anything late?", [Intent.PRIORITIZATION, Intent.DEADLINE]),
    ],
)
def test_detect_intents_is_case_insensitive_and_non_exclusive(goal, expected):
    assert detect_intents(goal) == expected


def test_plan_always_starts_with_analyze_priorities():
    plan = build_plan("hello", [Intent.GENERAL], TaskStats())
    assert [a.tool for a in plan] == ["analyze_priorities"]
    assert plan[0].reason == "Understand current task priorities"


def test_plan_adds_find_overdue_for_intent_or_overdue_count():
    by_intent = build_plan("overdue?", [Intent.DEADLINE], TaskStats())
    by_count = build_plan("hello", [Intent.GENERAL], TaskStats(total=1, overdue_count=1))

    assert [a.tool for a in by_intent] == ["analyze_priorities", "find_overdue"]
    assert [a.tool for a in by_count] == ["analyze_priorities", "find_overdue"]


@pytest.mark.parametrize("goal", ["organize my week", "what next", "in which order?"])
def test_plan_adds_suggest_order_for_ordering_goals(goal):
    plan = build_plan(goal, detect_intents(goal), TaskStats())
    assert [a.tool for a in plan][-1] == "suggest_order"


def test_plan_order_is_fixed():
    goal = "what is overdue and what next?"
    plan = build_plan(goal, detect_intents(goal), TaskStats())
    assert [a.tool for a in plan] == ["analyze_priorities", "find_overdue", "suggest_order"]


# ----------------------------- reflection ------------------------------


def test_reflection_with_no_tasks():
    reflection = reflect_on_stats(TaskStats())
    assert reflection.recommendations == ["No tasks found. Create some tasks to get started!"]
    assert reflection.confidence == 0.7
    assert reflection.goal_achieved is True
    assert reflection.should_continue is False


def test_reflection_overdue_urgent_and_backlog():
    stats = TaskStats(
        total=8,
        by_status={"pending": 6, "done": 2},
        by_priority={"urgent": 2, "high": 1, "low": 5},
        overdue_count=3,
    )

    reflection = reflect_on_stats(stats)

    assert reflection.recommendations == [
        "Address 3 overdue task(s) immediately",
        "Focus on 2 urgent task(s) first",
        "Consider breaking down large tasks or delegating",
        "Review and update task priorities regularly",
    ]
    assert reflection.confidence == 0.6
    assert reflection.summary.splitlines() == [
        "Based on analysis of your 8 tasks:",
        "",
        "⚠️  3 task(s) are overdue",
        "🔴 2 urgent, 1 high priority",
        "",
        "Recommendations:",
        "1. Address 3 overdue task(s) immediately",
        "2. Focus on 2 urgent task(s) first",
        "3. Consider breaking down large tasks or delegating",
        "4. Review and update task priorities regularly",
    ]


def test_reflection_five_pending_is_not_a_backlog():
    stats = TaskStats(total=5, by_status={"pending": 5}, by_priority={"medium": 5})
    assert reflect_on_stats(stats).recommendations == ["Review and update task priorities regularly"]


# ----------------------------- reason() --------------------------------


def test_empty_store_recommends_creating_tasks(storage):
    result = _engine(storage).reason("what next?")

    assert isinstance(result, ReasoningResult)
    assert "no tasks" in result.result.lower()
    assert result.recommendations == ["No tasks found. Create some tasks to get started!"]
    assert result.confidence == 0.7
    assert result.steps == []


def test_overdue_urgent_scenario(storage):
    add_task(storage, "Renew passport", priority="urgent", due_date=NOW - timedelta(days=1))
    add_task(storage, "Water plants", priority="low", due_date=NOW + timedelta(days=7))

    result = _engine(storage).reason("prioritize")

    assert "Address 1 overdue task(s) immediately" in result.recommendations
    assert "Focus on 1 urgent task(s) first" in result.recommendations
    assert result.confidence == 0.6


def test_single_iteration_records_five_ordered_steps(storage, step_log):
    add_task(storage, "t", priority="high")

    result = _engine(storage, step_log).reason("what next?", {"max_iterations": 1, "include_steps": True})

    assert [s.phase for s in result.steps] == PHASES
    assert [s.step_number for s in result.steps] == [1, 2, 3, 4, 5]
    assert {s.session_id for s in result.steps} == {result.session_id}
    assert result.total_duration_ms >= sum(s.duration_ms for s in result.steps)


def test_steps_are_logged_even_when_not_included(storage, step_log):
    result = _engine(storage, step_log).reason("what next?")

    assert result.steps == []
    assert len(step_log.saved) == 5
    assert [s.step_number for s in storage.get_steps(result.session_id)] == [1, 2, 3, 4, 5]


@pytest.mark.parametrize("goal", ["", "   ", "x" * 1001])
def test_invalid_goal_fails_before_any_step(storage, step_log, goal):
    with pytest.raises(ValidationError):
        _engine(storage, step_log).reason(goal)
    assert step_log.saved == []


def test_invalid_options_fail_before_any_step(storage, step_log):
    with pytest.raises(ValidationError):
        _engine(storage, step_log).reason("what next?", {"max_iterations": 0})
    assert step_log.saved == []


def test_repeated_calls_are_deterministic(storage):
    add_task(storage, "a", priority="urgent", due_date=NOW - timedelta(days=2))
    add_task(storage, "b", priority="medium")
    engine = _engine(storage)

    first = engine.reason("what should I work on next?")
    second = engine.reason("what should I work on next?")

    assert first.recommendations == second.recommendations
    assert first.confidence == second.confidence
    assert first.result == second.result
    assert first.session_id != second.session_id


def test_sessions_do_not_leak_between_calls(storage):
    engine = _engine(storage)

    first = engine.reason("what next?", {"include_steps": True})
    second = engine.reason("anything overdue?", {"include_steps": True})

    assert [s.step_number for s in second.steps] == [1, 2, 3, 4, 5]
    assert {s.session_id for s in second.steps} == {second.session_id}
    assert len(storage.get_steps(first.session_id)) == 5
    assert second.steps[0].input == "Gathering context for goal: anything overdue?"


def test_concurrent_calls_on_one_engine_keep_sessions_apart(storage):
    add_task(storage, "Shared backlog item")
    engine = _engine(storage)
    start = threading.Barrier(2)

    def run(goal):
        start.wait(timeout=5)
        return engine.reason(goal, {"include_steps": True})

    goals = ["what next?", "anything overdue?"]
    with ThreadPoolExecutor(max_workers=2) as pool:
        results = list(pool.map(run, goals))

    assert len({r.session_id for r in results}) == 2
    for goal, result in zip(goals, results):
        assert not result.result.startswith("Reasoning failed")
        assert result.confidence == BASE_CONFIDENCE
        assert [s.step_number for s in result.steps] == [1, 2, 3, 4, 5]
        assert {s.session_id for s in result.steps} == {result.session_id}
        assert [s.step_number for s in storage.get_steps(result.session_id)] == [1, 2, 3, 4, 5]
        assert result.steps[0].input == f"Gathering context for goal: {goal}"


def test_observe_think_plan_act_transcripts(storage):
    add_task(storage, "Late report", priority="urgent", due_date=NOW - timedelta(hours=5))

    result = _engine(storage).reason("What should I work on next?", {"include_steps": True})
    observe, think, plan, act, reflect = result.steps

    assert observe.output.splitlines() == [
        "Goal: What should I work on next?",
        "",
        "Current State:",
        "- Total tasks: 1",
        '- By status: {"pending": 1}',
        '- By priority: {"urgent": 1}',
        "- Overdue tasks: 1",
        "",
        "Available tools: query_tasks, analyze_priorities, find_overdue, "
        "find_dependencies, suggest_order, calculate_urgency",
    ]
    assert think.input == observe.output
    assert "User wants task prioritization recommendations." in think.output
    assert "- 1 overdue tasks need attention" in think.output
    assert plan.input == think.output
    assert plan.output == (
        "Planned actions:\n"
        "1. analyze_priorities: Understand current task priorities\n"
        "2. find_overdue: Identify overdue tasks\n"
        "3. suggest_order: Determine optimal task execution order"
    )
    assert act.input == "Executing 3 actions"
    assert act.output.splitlines() == [
        "✓ analyze_priorities: Analyzed 1 tasks. Top priority: Late report",
        "✓ find_overdue: Found 1 overdue task(s): Late report",
        "✓ suggest_order: Suggested order for 1 tasks based on priority and urgency",
    ]
    assert reflect.input == act.output
    assert json.loads(reflect.output)["goal_achieved"] is True


def test_general_goal_still_thinks_and_plans(storage):
    result = _engine(storage).reason("hello", {"include_steps": True})
    think, plan = result.steps[1], result.steps[2]

    assert "General task inquiry detected." in think.output
    assert "analyze_priorities" in plan.output


def test_tool_failures_are_recorded_and_loop_continues(storage):
    result = _engine(storage, tools=ToolRegistry()).reason("what next?", {"include_steps": True})

    act = result.steps[3]
    assert act.output.splitlines()[0] == "✗ analyze_priorities: Tool not found: analyze_priorities. Available: "
    assert result.confidence == 0.7
    assert len(result.steps) == 5


def test_fatal_error_before_first_step(step_log):
    engine = ReasoningEngine(FailingStore(), step_log, ToolRegistry())

    result = engine.reason("what next?", {"include_steps": True})

    assert result.result == "Reasoning failed: store unavailable"
    assert result.confidence == 0.0
    assert result.recommendations == [RETRY_RECOMMENDATION]
    assert result.steps == []


def test_fatal_error_mid_iteration_keeps_logged_steps(storage, step_log):
    tools = build_tool_registry(storage, clock=lambda: NOW)
    engine = BrokenReflectEngine(storage, step_log, tools, now=lambda: NOW)

    result = engine.reason("what next?", {"include_steps": True})

    assert result.result == "Reasoning failed: 'confidence'"
    assert result.confidence == 0.0
    assert [s.phase for s in result.steps] == PHASES[:4]
    assert len(storage.get_steps(result.session_id)) == 4


def test_multi_iteration_numbers_steps_per_iteration(storage):
    tools = build_tool_registry(storage, clock=lambda: NOW)
    engine = KeepGoingEngine(storage, storage, tools, now=lambda: NOW)

    result = engine.reason("hello", {"max_iterations": 3, "include_steps": True})

    assert [s.step_number for s in result.steps] == list(range(1, 16))
    assert [s.phase for s in result.steps] == PHASES * 3
    assert result.confidence == 0.42
    assert result.result == "still thinking"


def test_later_iterations_observe_a_refreshed_context(storage):
    tools = build_tool_registry(storage, clock=lambda: NOW)

    class AddsTaskEngine(KeepGoingEngine):
        def act(self, session, plan):
            add_task(storage, "created mid-session")
            return super().act(session, plan)

    result = AddsTaskEngine(storage, storage, tools, now=lambda: NOW).reason(
        "hello", {"max_iterations": 2, "include_steps": True}
    )

    assert "- Total tasks: 0" in result.steps[0].output
    assert "- Total tasks: 1" in result.steps[5].output
    assert result.recommendations == ["saw 1 tasks"]


def test_timeout_before_first_iteration(storage, step_log):
    clock = TickingClock(step=1.0)

    result = _engine(storage, step_log, clock=clock).reason("what next?", {"timeout_ms": 1, "include_steps": True})

    assert result.result == TIMEOUT_RESULT
    assert result.confidence == 0.0
    assert result.recommendations == [TIMEOUT_RECOMMENDATION]
    assert result.steps == []
    assert step_log.saved == []


def test_timeout_after_an_iteration_keeps_last_reflection(storage):
    tools = build_tool_registry(storage, clock=lambda: NOW)
    clock = TickingClock(step=0.001)
    engine = KeepGoingEngine(storage, storage, tools, clock=clock, now=lambda: NOW)

    # each phase reads the clock twice, so the time limit is spent after one iteration
    result = engine.reason("hello", {"max_iterations": 50, "timeout_ms": 10, "include_steps": True})

    assert len(result.steps) == 5
    assert result.result == "still thinking"
    assert result.confidence == 0.42


def test_tiny_timeout_with_real_clock_never_raises(storage):
    for i in range(20):
        add_task(storage, f"task {i}", priority="high")

    result = _engine(storage).reason("what next?", {"timeout_ms": 1})

    assert isinstance(result, ReasoningResult)
    assert 0.0 <= result.confidence <= 1.0
    assert result.recommendations


def test_list_tools_passes_through(storage):
    names = [tool["name"] for tool in _engine(storage).list_tools()]
    assert names[0] == "query_tasks"
    assert "calculate_urgency" in names
