import pytest

from screenpilot.core import timeutils
from screenpilot.core.persisted import Intervals
from screenpilot.modules.executor.context import RunContext
from screenpilot.modules.executor.runner import TaskRunner, has_stop_action
from screenpilot.modules.script.types import (
    Back,
    ClearData,
    Description,
    Home,
    Install,
    OpenApp,
    RecentApps,
    Step,
    StepTask,
    StepType,
    Uninstall,
    Wait,
)
from screenpilot.modules.vision.client import SummaryResponse, VisionApiError, VisionResponse

INTERVALS = Intervals(long_delay=3000, default_action_delay=1000, short_delay=500)


class _DummyDevice:
    def __init__(self, events, connected=True, failing=()):
        self.events = events
        self.connected = connected
        self.failing = set(failing)

    async def is_connected(self):
        return self.connected

    def _record(self, name, *args):
        self.events.append((name, *args))
        return name not in self.failing

    async def install(self):
        return self._record("install")

    async def uninstall(self, package_name):
        return self._record("uninstall", package_name)

    async def clear_data(self, package_name):
        return self._record("clear_data", package_name)

    async def open_app(self, package_name):
        return self._record("open_app", package_name)

    async def back(self):
        return self._record("back")

    async def home(self):
        return self._record("home")

    async def recent(self):
        return self._record("recent")


class _DummyVision:
    def __init__(self, summary=None):
        self.summary = summary
        self.summary_calls = []

    async def request_summary(self, script_text, context_text):
        self.summary_calls.append((script_text, context_text))
        if isinstance(self.summary, Exception):
            raise self.summary
        return self.summary or SummaryResponse(status="passed", summary="all good")


class _ScriptedProcessor:
    """按顺序返回预设响应的步骤处理器"""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = 0

    async def process(self, task):
        self.calls += 1
        return self.responses.pop(0)


@pytest.fixture()
def events(monkeypatch):
    recorded = []

    async def _fake_sleep_ms(milliseconds):
        recorded.append(("sleep", milliseconds))

    monkeypatch.setattr(timeutils, "sleep_ms", _fake_sleep_ms)
    return recorded


def _runner(events, vision=None, **device_kwargs):
    return TaskRunner(_DummyDevice(events, **device_kwargs), vision or _DummyVision(), INTERVALS)


def _step_task(step_type=StepType.NORMAL, max_repeats=10):
    return StepTask(Step("s", (), ("go",)), step_type, max_repeats)


@pytest.mark.asyncio
async def test_disconnected_device_runs_nothing(events):
    runner = _runner(events, connected=False)

    assert await runner.run([Home(), Back()]) is False
    assert events == []


@pytest.mark.asyncio
async def test_device_commands_settle_then_inter_task_delay(events):
    runner = _runner(events)

    ok = await runner.run(
        [
            Install(),
            Uninstall("pkg"),
            ClearData("pkg"),
            OpenApp("pkg"),
            Back(),
            Home(),
            RecentApps(),
        ]
    )

    assert ok is True
    assert events == [
        ("install",), ("sleep", 3000), ("sleep", 1000),
        ("uninstall", "pkg"), ("sleep", 500), ("sleep", 1000),
        ("clear_data", "pkg"), ("sleep", 500), ("sleep", 1000),
        ("open_app", "pkg"), ("sleep", 3000), ("sleep", 1000),
        ("back",), ("sleep", 1000), ("sleep", 1000),
        ("home",), ("sleep", 500), ("sleep", 1000),
        ("recent",), ("sleep", 1000), ("sleep", 1000),
    ]


@pytest.mark.asyncio
async def test_wait_sleeps_exact_seconds(events):
    runner = _runner(events)

    assert await runner.run([Wait(3)]) is True
    assert events == [("sleep", 3000), ("sleep", 1000)]


@pytest.mark.asyncio
async def test_failing_task_stops_run(events):
    vision = _DummyVision()
    runner = _runner(events, vision=vision, failing={"open_app"})

    ok = await runner.run([OpenApp("pkg"), Home()])

    assert ok is False
    assert ("home",) not in events
    assert vision.summary_calls == []


@pytest.mark.asyncio
async def test_description_resets_context():
    runner = _runner([])
    runner.context.accumulated_context = ["old", "older"]

    assert await runner._execute(Description("fresh start")) is True
    assert runner.context.description == "fresh start"
    assert runner.context.accumulated_context == ["fresh start"]


@pytest.mark.asyncio
async def test_summary_receives_script_and_context(events):
    vision = _DummyVision()
    runner = _runner(events, vision=vision)

    ok = await runner.run([Description("notes app")], script_text="description: notes app")

    assert ok is True
    assert vision.summary_calls == [("description: notes app", "notes app")]


@pytest.mark.asyncio
async def test_summary_failure_is_not_fatal(events):
    runner = _runner(events, vision=_DummyVision(summary=VisionApiError("down")))

    assert await runner.run([Home()]) is True


@pytest.mark.asyncio
async def test_normal_step_succeeds_when_processed(events):
    runner = _runner(events)
    runner.processor = _ScriptedProcessor([VisionResponse(actions=[], request_id="r")])

    assert await runner.run([_step_task()]) is True


@pytest.mark.asyncio
async def test_normal_step_failure_stops_run(events):
    runner = _runner(events)
    runner.processor = _ScriptedProcessor([None])

    assert await runner.run([_step_task(), Home()]) is False
    assert ("home",) not in events


@pytest.mark.asyncio
async def test_repeating_step_stops_on_stop_action(events):
    runner = _runner(events)
    processor = _ScriptedProcessor(
        [
            VisionResponse(actions=["tap 100,200"], request_id="1"),
            VisionResponse(actions=["swipe 1,2,3,4", "stop navigation"], request_id="2"),
            VisionResponse(actions=["tap 1,1"], request_id="3"),
        ]
    )
    runner.processor = processor

    assert await runner.run([_step_task(StepType.REPEATING)]) is True
    assert processor.calls == 2


@pytest.mark.asyncio
async def test_repeating_step_exhausts_max_repeats(events):
    runner = _runner(events)
    processor = _ScriptedProcessor(
        [VisionResponse(actions=["tap 100,200"], request_id=str(i)) for i in range(5)]
    )
    runner.processor = processor

    assert await runner.run([_step_task(StepType.REPEATING, max_repeats=3)]) is False
    assert processor.calls == 3


@pytest.mark.asyncio
async def test_repeating_step_fails_when_processor_fails(events):
    runner = _runner(events)
    processor = _ScriptedProcessor([VisionResponse(actions=["tap 1,1"], request_id="1"), None])
    runner.processor = processor

    assert await runner.run([_step_task(StepType.REPEATING)]) is False
    assert processor.calls == 2


def test_stop_detection_is_case_insensitive():
    assert has_stop_action(["STOP"]) is True
    assert has_stop_action(["tap 1,2"]) is False
    assert has_stop_action(None) is False


def test_runs_do_not_share_context():
    first = _runner([])
    second = _runner([])

    first.context.reset_description("a")

    assert second.context.accumulated_context == []
    assert isinstance(second.context, RunContext)


@pytest.mark.asyncio
async def test_unknown_task_type_is_rejected():
    runner = _runner([])

    with pytest.raises(TypeError):
        await runner._execute(object())


