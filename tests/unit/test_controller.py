"""Tests for the two-phase traversal controller."""

import asyncio

import pytest

from thoughttree.config import PlaybackConfig
from thoughttree.layout import compute_layout
from thoughttree.traversal import (
    AsyncioClock,
    CenterViewport,
    ClearAll,
    FadeSubtree,
    HighlightLayer,
    ManualClock,
    MarkDeleted,
    PulseNodes,
    Renderer,
    ShowCompletion,
    ShowStepSummary,
    TraversalController,
    TraversalMode,
    TraversalPhase,
)
from thoughttree.tree import HighlightState, build_tree

S = HighlightState


def states(controller, *node_ids):
    return tuple(controller.highlight_state(node_id) for node_id in node_ids)


class TestForwardStepping:
    """step_forward() return values and phase transitions."""

    def test_scenario_forward_count(self, scenario_tree, make_controller):
        """Three downward and two upward steps, then False for good."""
        controller = make_controller(scenario_tree)
        results = [controller.step_forward() for _ in range(7)]
        assert results == [True, True, True, True, True, False, False]
        assert controller.is_complete

    def test_single_node(self, single_tree, make_controller):
        controller = make_controller(single_tree)
        assert controller.downward_steps == [["root"]]
        assert controller.step_forward() is True
        assert controller.phase == TraversalPhase.DOWNWARD
        assert controller.step_forward() is True
        assert controller.upward_steps == [["root"]]
        assert controller.step_forward() is False

    def test_reasoning_tree_forward_count(self, reasoning_tree, make_controller):
        controller = make_controller(reasoning_tree)
        calls = 0
        while controller.step_forward():
            calls += 1
        assert calls == len(controller.downward_steps) + len(controller.upward_steps)

    def test_no_synthesis_candidates(self, make_controller, recorder):
        """Without productive or framing nodes the run ends after the downward phase."""
        tree = build_tree({"id": "r", "text": "root", "children": [{"id": "c", "text": "neutral"}]})
        controller = make_controller(tree)

        assert [controller.step_forward() for _ in range(3)] == [True, True, False]
        assert controller.phase == TraversalPhase.COMPLETE
        assert controller.upward_steps == []
        assert recorder.of_type(ShowCompletion) == []
        assert controller.step_forward() is False

    def test_idle_until_first_step(self, scenario_tree, make_controller):
        controller = make_controller(scenario_tree)
        assert controller.phase == TraversalPhase.IDLE
        assert controller.step_index == -1
        assert controller.current_step == []
        assert set(controller.highlight.values()) == {S.NONE}


class TestScenarioStates:
    """root -> {a, b}, a -> {a1}, a rejected."""

    def test_downward_states(self, scenario_tree, make_controller):
        controller = make_controller(scenario_tree)

        controller.step_forward()
        assert states(controller, "root", "a", "b", "a1") == (
            S.CURRENT, S.DIMMED, S.DIMMED, S.DIMMED)

        controller.step_forward()
        assert controller.current_step == ["a", "b"]
        assert states(controller, "root", "a", "b", "a1") == (
            S.VISITED, S.DELETED, S.CURRENT, S.FADED_OUT)
        assert controller.deleted == {"a"}
        assert controller.faded == {"a1"}

        controller.step_forward()
        assert states(controller, "root", "a", "b", "a1") == (
            S.VISITED, S.DELETED, S.VISITED, S.FADED_OUT)

    def test_upward_states(self, scenario_tree, make_controller):
        controller = make_controller(scenario_tree)
        for _ in range(3):
            controller.step_forward()
        assert controller.upward_steps is None

        controller.step_forward()
        assert controller.phase == TraversalPhase.UPWARD
        assert controller.upward_steps == [["b"], ["root"]]
        assert states(controller, "root", "a", "b", "a1") == (
            S.DIMMED, S.DELETED, S.UPWARD_HIGHLIGHTED, S.FADED_OUT)

        controller.step_forward()
        assert controller.phase == TraversalPhase.COMPLETE
        assert states(controller, "root", "a", "b", "a1") == (
            S.UPWARD_HIGHLIGHTED, S.DELETED, S.DIMMED, S.FADED_OUT)

    def test_sequential_mode(self, scenario_tree, make_controller):
        controller = make_controller(scenario_tree, mode=TraversalMode.SEQUENTIAL)
        assert controller.downward_steps == [["root"], ["a"], ["a1"], ["b"]]

        controller.step_forward()
        controller.step_forward()
        assert states(controller, "root", "a", "b", "a1") == (
            S.VISITED, S.DELETED, S.DIMMED, S.FADED_OUT)

        controller.step_forward()
        # A faded node stays faded when its own step comes up
        assert controller.highlight_state("a1") == S.FADED_OUT

        results = []
        while True:
            result = controller.step_forward()
            results.append(result)
            if not result:
                break
        assert results == [True, True, True, False]

    def test_mode_from_config(self, scenario_tree):
        layout = compute_layout(scenario_tree)
        controller = TraversalController(
            scenario_tree, layout, config=PlaybackConfig(traversal_mode="sequential"))
        assert len(controller.downward_steps) == 4


class TestCommands:
    """Commands sent to the renderer."""

    def test_deletion_effect(self, scenario_tree, make_controller, recorder):
        controller = make_controller(scenario_tree)
        controller.step_forward()
        assert recorder.of_type(MarkDeleted) == []

        controller.step_forward()
        assert recorder.of_type(MarkDeleted) == [
            MarkDeleted(node_id="a", reason="Greedy choice misses shorter detours")]
        assert recorder.of_type(FadeSubtree) == [FadeSubtree(root_id="a", node_ids=("a1",))]

    def test_default_rejection_reason(self, make_controller, recorder):
        tree = build_tree({"id": "r", "text": "root", "type": "input", "children": [
            {"id": "x", "text": "bad idea", "status": "rejected"}]})
        controller = make_controller(tree)
        controller.step_forward()
        controller.step_forward()
        assert recorder.last(MarkDeleted).reason == "Path rejected"

    def test_highlight_layers(self, scenario_tree, make_controller, recorder):
        controller = make_controller(scenario_tree)
        controller.step_forward()
        recorder.clear()
        controller.step_forward()

        layers = {c.role: c.node_ids for c in recorder.of_type(HighlightLayer)}
        assert layers == {
            S.VISITED: ("root",),
            S.FADED_OUT: ("a1",),
            S.DELETED: ("a",),
            S.CURRENT: ("b",),
        }

    def test_viewport_follows_step_centroid(self, scenario_tree, make_controller, recorder):
        controller = make_controller(scenario_tree)
        controller.step_forward()
        controller.step_forward()

        center = recorder.last(CenterViewport)
        cx, cy = controller.layout.centroid(["a", "b"])
        assert center == CenterViewport(x=cx, y=cy, scale=1.5)

    def test_downward_summary(self, scenario_tree, make_controller, recorder):
        controller = make_controller(scenario_tree)
        controller.step_forward()
        assert recorder.last(ShowStepSummary).title == "Root"

        controller.step_forward()
        summary = recorder.last(ShowStepSummary)
        assert summary.node_ids == ("a", "b")
        assert summary.phase == "downward"
        assert summary.depth == 1
        assert summary.title == "Find the shortest path"
        assert summary.counts == {"productive": 1, "rejected": 1, "neutral": 0}
        assert summary.rejected_count == 1

    def test_upward_pulse_summary_and_completion(self, scenario_tree, make_controller, recorder):
        controller = make_controller(scenario_tree)
        for _ in range(4):
            controller.step_forward()
        assert recorder.last(PulseNodes) == PulseNodes(node_ids=("b",))
        assert recorder.last(ShowStepSummary).title == "High-Level Synthesis"
        assert recorder.of_type(ShowCompletion) == []

        controller.step_forward()
        assert recorder.last(ShowStepSummary).title == "Final Summary"
        assert recorder.commands[-1] == ShowCompletion()

        count = len(recorder.commands)
        assert controller.step_forward() is False
        assert len(recorder.commands) == count

    def test_reentrant_calls_ignored(self, scenario_tree):
        """A renderer calling back into the controller mid-transition is a no-op."""
        results = []

        class Meddler(Renderer):
            def on_center_viewport(self, command):
                results.append(controller.step_forward())

        controller = TraversalController(scenario_tree, compute_layout(scenario_tree),
                                         renderer=Meddler())
        controller.step_forward()

        assert results == [False]
        assert controller.step_index == 0


class TestBackwardAndReset:

    def test_backward_reproduces_previous_snapshot(self, scenario_tree, make_controller):
        """Going back after k forward steps lands on the state after k-1."""
        reference = make_controller(scenario_tree)
        snapshots = [reference.snapshot()]
        while reference.step_forward():
            snapshots.append(reference.snapshot())

        for k in range(2, len(snapshots)):
            controller = make_controller(scenario_tree)
            for _ in range(k):
                controller.step_forward()
            assert controller.step_backward() is True
            assert controller.snapshot() == snapshots[k - 1], f"after {k} steps"

    def test_backward_on_deeper_tree(self, reasoning_tree, make_controller):
        reference = make_controller(reasoning_tree, mode=TraversalMode.SEQUENTIAL)
        snapshots = [reference.snapshot()]
        while reference.step_forward():
            snapshots.append(reference.snapshot())

        controller = make_controller(reasoning_tree, mode=TraversalMode.SEQUENTIAL)
        while controller.step_forward():
            pass
        for k in range(len(snapshots) - 1, 1, -1):
            assert controller.step_backward() is True
            assert controller.snapshot() == snapshots[k - 1]

    def test_backward_noops(self, scenario_tree, make_controller):
        controller = make_controller(scenario_tree)
        assert controller.step_backward() is False
        assert controller.phase == TraversalPhase.IDLE

        controller.step_forward()
        assert controller.step_backward() is False
        assert controller.step_index == 0

    def test_backward_out_of_upward_clears_upward_highlight(self, scenario_tree, make_controller):
        controller = make_controller(scenario_tree)
        for _ in range(4):
            controller.step_forward()
        controller.step_backward()

        assert controller.phase == TraversalPhase.DOWNWARD
        assert controller.step_index == 2
        assert S.UPWARD_HIGHLIGHTED not in controller.highlight.values()

    def test_forward_after_backward_from_complete(self, scenario_tree, make_controller, recorder):
        controller = make_controller(scenario_tree)
        while controller.step_forward():
            pass
        controller.step_backward()
        assert controller.phase == TraversalPhase.UPWARD

        assert controller.step_forward() is True
        assert controller.is_complete
        assert len(recorder.of_type(ShowCompletion)) == 2

    def test_reset_matches_fresh_controller(self, scenario_tree, make_controller, recorder):
        fresh = make_controller(scenario_tree).snapshot()
        controller = make_controller(scenario_tree)
        for _ in range(4):
            controller.step_forward()
        controller.step_backward()
        controller.step_forward()

        controller.reset()

        assert controller.snapshot() == fresh
        assert controller.upward_steps is None
        assert controller.deleted == frozenset()
        assert recorder.commands[-1] == ClearAll()

    def test_full_run_after_reset(self, scenario_tree, make_controller):
        controller = make_controller(scenario_tree)
        first = []
        while controller.step_forward():
            first.append(controller.snapshot())
        controller.reset()
        second = []
        while controller.step_forward():
            second.append(controller.snapshot())
        assert first == second


class TestPlayback:

    def test_speed_sets_interval(self, scenario_tree, make_controller):
        clock = ManualClock()
        controller = make_controller(scenario_tree, clock=clock)
        controller.play()
        assert clock.interval_s == pytest.approx(1.28)

        controller.set_speed(10)
        assert clock.interval_s == pytest.approx(0.38)
        assert controller.is_playing

    def test_out_of_range_speed_clamped(self, scenario_tree, make_controller):
        clock = ManualClock()
        controller = make_controller(scenario_tree, clock=clock, speed=0)
        assert controller.speed == 1
        controller.play(speed=99)
        assert controller.speed == 10
        assert clock.interval_s == pytest.approx(0.38)

    def test_play_stops_itself(self, scenario_tree, make_controller):
        """Playback runs every step and stops on the first False."""
        clock = ManualClock()
        controller = make_controller(scenario_tree, clock=clock)
        controller.play()

        fired = clock.run()

        assert fired == 6
        assert controller.is_complete
        assert not controller.is_playing

    def test_pause(self, scenario_tree, make_controller):
        clock = ManualClock()
        controller = make_controller(scenario_tree, clock=clock)
        controller.play()
        clock.tick()
        controller.pause()

        assert not controller.is_playing
        assert clock.tick() is False
        assert controller.step_index == 0

    def test_set_speed_while_paused(self, scenario_tree, make_controller):
        clock = ManualClock()
        controller = make_controller(scenario_tree, clock=clock)
        controller.set_speed(3)
        assert controller.speed == 3
        assert not controller.is_playing

    def test_step_backward_and_reset_stop_playback(self, scenario_tree, make_controller):
        clock = ManualClock()
        controller = make_controller(scenario_tree, clock=clock)
        controller.play()
        clock.tick()
        clock.tick()
        controller.step_backward()
        assert not controller.is_playing

        controller.play()
        controller.reset()
        assert not controller.is_playing
        assert clock.tick() is False

    def test_asyncio_playback(self, scenario_tree, monkeypatch):
        """The default clock drives playback on the running event loop."""
        monkeypatch.setattr("thoughttree.traversal.controller.speed_to_interval_ms",
                            lambda speed: 1)
        layout = compute_layout(scenario_tree)

        async def run():
            controller = TraversalController(scenario_tree, layout)
            controller.play()
            assert isinstance(controller.clock, AsyncioClock)
            for _ in range(500):
                if not controller.is_playing:
                    break
                await asyncio.sleep(0.005)
            return controller

        controller = asyncio.run(run())

        assert controller.is_complete
        assert not controller.is_playing

    def test_asyncio_pause_cancels_pending_tick(self, scenario_tree, monkeypatch):
        monkeypatch.setattr("thoughttree.traversal.controller.speed_to_interval_ms",
                            lambda speed: 1)
        layout = compute_layout(scenario_tree)

        async def run():
            controller = TraversalController(scenario_tree, layout)
            controller.play()
            controller.pause()
            await asyncio.sleep(0.05)
            return controller

        controller = asyncio.run(run())

        assert controller.phase == TraversalPhase.IDLE

    def test_asyncio_clock_stops_when_tick_raises(self):
        """A tick that raises leaves the clock inactive and unscheduled."""
        errors = []
        calls = []

        def tick():
            calls.append(1)
            raise RuntimeError("tick failed")

        async def run():
            asyncio.get_running_loop().set_exception_handler(
                lambda loop, context: errors.append(context["exception"]))
            clock = AsyncioClock()
            clock.schedule(0.001, tick)
            await asyncio.sleep(0.05)
            return clock

        clock = asyncio.run(run())

        assert clock.active is False
        assert len(calls) == 1
        assert [str(e) for e in errors] == ["tick failed"]
