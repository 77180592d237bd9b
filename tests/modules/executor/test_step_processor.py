import pytest

from screenpilot.core import timeutils
from screenpilot.core.persisted import Intervals
from screenpilot.modules.emu.base import Screenshot
from screenpilot.modules.executor.context import RunContext
from screenpilot.modules.executor.step import StepProcessor
from screenpilot.modules.script.types import Step, StepTask, StepType
from screenpilot.modules.vision.client import VisionApiError, VisionResponse


class _DummyDevice:
    def __init__(self, screenshot_path, scale_factor=0.5):
        self.screenshot_path = screenshot_path
        self.scale_factor = scale_factor
        self.taps = []

    async def screenshot(self, step):
        if self.screenshot_path is None:
            return None
        return Screenshot(path=str(self.screenshot_path), scale_factor=self.scale_factor)

    async def tap(self, x, y):
        self.taps.append((x, y))
        return True


class _DummyVision:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    async def process_step(self, request):
        self.requests.append(request)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture(autouse=True)
def _no_sleep(monkeypatch):
    async def _fake_sleep_ms(milliseconds):
        return None

    monkeypatch.setattr(timeutils, "sleep_ms", _fake_sleep_ms)


@pytest.fixture()
def screenshot_file(tmp_path):
    path = tmp_path / "step.png"
    path.write_bytes(b"png-bytes")
    return path


def _processor(device, vision, context=None):
    return StepProcessor(device, vision, context or RunContext(), Intervals())


def _task(step_type=StepType.NORMAL, is_last=False):
    step = Step("Login", ("Login button visible",), ("tap login",), is_last_step=is_last)
    return StepTask(step, step_type)


@pytest.mark.asyncio
async def test_request_carries_step_and_context(screenshot_file):
    context = RunContext(previous_request_id="req-0")
    context.reset_description("notes app")
    context.append_context("home screen")
    vision = _DummyVision(VisionResponse(actions=["tap 10,20"], request_id="req-1", context="login screen"))
    device = _DummyDevice(screenshot_file, scale_factor=0.5)

    response = await _processor(device, vision, context).process(_task(is_last=True))

    assert response is not None
    request = vision.requests[0]
    assert request.image == "cG5nLWJ5dGVz"
    assert request.step_name == "Login"
    assert request.description == "notes app"
    assert request.assertions == ["Login button visible"]
    assert request.actions == ["tap login"]
    assert request.temperature == 0.1
    assert request.context == "notes app\nhome screen"
    assert request.previous_request_id == "req-0"
    assert request.is_last_step is True

    assert context.previous_request_id == "req-1"
    assert context.scale_factor == 0.5
    assert context.accumulated_context[-1] == "login screen"
    assert device.taps == [(20, 40)]


@pytest.mark.asyncio
async def test_creative_step_uses_high_temperature(screenshot_file):
    vision = _DummyVision(VisionResponse(actions=[], request_id="r"))

    await _processor(_DummyDevice(screenshot_file), vision).process(_task(StepType.CREATIVE))

    assert vision.requests[0].temperature == 0.9


@pytest.mark.asyncio
async def test_optional_failed_assertions_continue(screenshot_file):
    vision = _DummyVision(
        VisionResponse(
            failed_assertions=["Dark mode toggle visible (optional)"],
            actions=["tap 1,1"],
            request_id="r",
        )
    )
    device = _DummyDevice(screenshot_file, scale_factor=1.0)

    response = await _processor(device, vision).process(_task())

    assert response is not None
    assert device.taps == [(1, 1)]


@pytest.mark.asyncio
async def test_required_failed_assertion_aborts_without_actions(screenshot_file):
    context = RunContext()
    vision = _DummyVision(
        VisionResponse(
            failed_assertions=["Login button visible"],
            actions=["tap 1,1"],
            context="should not be kept",
            request_id="r-9",
        )
    )
    device = _DummyDevice(screenshot_file)

    response = await _processor(device, vision, context).process(_task())

    assert response is None
    assert device.taps == []
    assert context.accumulated_context == []
    assert context.previous_request_id == "r-9"


@pytest.mark.asyncio
async def test_missing_action_list_fails(screenshot_file):
    vision = _DummyVision(VisionResponse(actions=None, request_id="r"))

    assert await _processor(_DummyDevice(screenshot_file), vision).process(_task()) is None


@pytest.mark.asyncio
async def test_screenshot_failure_skips_backend():
    vision = _DummyVision()

    assert await _processor(_DummyDevice(None), vision).process(_task()) is None
    assert vision.requests == []


@pytest.mark.asyncio
async def test_encoding_failure_fails(tmp_path):
    vision = _DummyVision()
    device = _DummyDevice(tmp_path / "missing.png")

    assert await _processor(device, vision).process(_task()) is None
    assert vision.requests == []


@pytest.mark.asyncio
async def test_backend_error_fails(screenshot_file):
    vision = _DummyVision(VisionApiError("boom"))

    assert await _processor(_DummyDevice(screenshot_file), vision).process(_task()) is None
