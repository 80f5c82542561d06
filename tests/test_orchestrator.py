import asyncio

import httpx
import pytest

from boatvision.app import app, get_pipeline
from boatvision.intake import intake_files
from boatvision.models import ProcessingStatus, StyleParameters
from boatvision.orchestrator import QueueOrchestrator, error_message
from boatvision.pipeline import BoatPipeline
from boatvision.queue_store import QueueStore

from tests.helpers import FakeModel, text_response

OK_PAYLOAD = {
    "generatedImage": "data:image/png;base64,iVBORw0KGgo=",
    "prompt": "Transform this vessel into a premium marketing render shot on the water.",
    "summary": "Trailer removed.",
    "qualityReport": "No artifacts detected.",
    "insights": {"boatOverview": "pontoon"},
}

STYLE = StyleParameters(location="Lake of the Ozarks, MO", lens="action-zoom", dynamic="harbor",
                        include_interiors=False)


@pytest.fixture
def store(make_photo):
    s = QueueStore()
    intake_files(s, [make_photo("one.jpg"), make_photo("two.jpg"), make_photo("three.jpg")])
    yield s
    s.clear()


def run_pass(store, handler, style=STYLE):
    async def scenario():
        transport = httpx.MockTransport(handler)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            return await QueueOrchestrator(store, client).process_queue(style)

    return asyncio.run(scenario())


def test_items_walk_every_status_to_complete(store) -> None:
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json=OK_PAYLOAD)

    report = run_pass(store, handler)

    assert len(report.completed) == 3 and report.failed == []
    for item in store:
        assert item.status == ProcessingStatus.COMPLETE
        assert item.result.final_image == OK_PAYLOAD["generatedImage"]
        assert item.result.insights.boatOverview == "pontoon"
        assert item.error is None
        assert item.logs == [
            "Queued for processing",
            "Starting processing pipeline",
            "Extracting vessel details and trailer remnants",
            "Rendering cinematic water shot",
            "Double-checking trailer removal and composition",
        ]

    body = requests[0].content
    assert requests[0].url.path == "/api/process"
    assert b'name="image"; filename="one.jpg"' in body
    assert b"Lake of the Ozarks, MO" in body
    assert b"action-zoom" in body and b"harbor" in body
    assert b'name="includeInteriors"\r\n\r\nfalse' in body


def test_requests_follow_queue_order_one_at_a_time(store) -> None:
    seen = []
    in_flight = 0

    async def handler(request):
        nonlocal in_flight
        in_flight += 1
        assert in_flight == 1
        await asyncio.sleep(0)
        seen.append(request.content.split(b'filename="')[1].split(b'"')[0])
        in_flight -= 1
        return httpx.Response(200, json=OK_PAYLOAD)

    run_pass(store, handler)

    assert seen == [b"one.jpg", b"two.jpg", b"three.jpg"]


def test_failures_are_recorded_and_pass_continues(store) -> None:
    responses = iter([
        httpx.Response(500, json={"detail": "An internal server error occurred: quota"}),
        httpx.Response(200, text="not json"),
        httpx.Response(200, json=OK_PAYLOAD),
    ])

    report = run_pass(store, lambda request: next(responses))

    first, second, third = store.items()
    assert first.status == ProcessingStatus.ERROR
    assert first.error == "An internal server error occurred: quota"
    assert first.logs[-1] == "Failed: An internal server error occurred: quota"
    assert second.status == ProcessingStatus.ERROR and second.result is None
    assert third.status == ProcessingStatus.COMPLETE
    assert report.completed == [third.id]
    assert report.failed == [first.id, second.id]


def test_transport_errors_are_caught(store) -> None:
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    report = run_pass(store, handler)

    assert len(report.failed) == 3
    for item in store:
        assert item.status == ProcessingStatus.ERROR
        assert item.error == "connection refused"
        assert item.result is None


def test_completed_and_failed_items_are_not_resubmitted(store) -> None:
    first, second, third = store.items()
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) == 2:
            return httpx.Response(422, json={"detail": {"error": "Source image rejected", "reason": "ramp"}})
        return httpx.Response(200, json=OK_PAYLOAD)

    run_pass(store, handler)
    assert len(calls) == 3
    assert second.error == "ramp"

    assert run_pass(store, handler) is None
    assert len(calls) == 3

    store.remove(second.id)
    [fresh] = intake_files(store, [second.source])
    run_pass(store, handler)
    assert len(calls) == 4
    assert fresh.status == ProcessingStatus.COMPLETE
    assert first.status == third.status == ProcessingStatus.COMPLETE


def test_reinvoking_during_a_pass_is_a_no_op(store) -> None:
    async def scenario():
        release = asyncio.Event()
        calls = []

        async def handler(request):
            calls.append(request)
            await release.wait()
            return httpx.Response(200, json=OK_PAYLOAD)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://test") as client:
            orchestrator = QueueOrchestrator(store, client)
            first = asyncio.create_task(orchestrator.process_queue(STYLE))
            while not calls:
                await asyncio.sleep(0)

            assert orchestrator.is_processing
            before = [(item.status, list(item.logs)) for item in store]
            assert await orchestrator.process_queue(STYLE) is None
            assert [(item.status, list(item.logs)) for item in store] == before
            assert len(calls) == 1

            release.set()
            report = await first
            assert not orchestrator.is_processing
            return report, len(calls)

    report, total_calls = asyncio.run(scenario())
    assert total_calls == 3
    assert len(report.completed) == 3


def test_empty_queue_does_not_start() -> None:
    def handler(request):
        raise AssertionError("no request expected")

    assert run_pass(QueueStore(), handler) is None


def test_rejection_reason_reaches_the_item(make_photo) -> None:
    rejection = '{"shouldReject": true, "rejectionReason": "trailer visible"}'
    analysis = FakeModel(text_response(rejection), text_response(rejection))
    app.dependency_overrides[get_pipeline] = lambda: BoatPipeline(analysis, FakeModel())
    statuses = []

    async def scenario(store):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.post(
                "/api/process", files={"image": ("boat.jpg", b"jpeg", "image/jpeg")}
            )
            statuses.append(response.status_code)
            return await QueueOrchestrator(store, client).process_queue(STYLE)

    try:
        with QueueStore() as store:
            [item] = intake_files(store, [make_photo()])
            report = asyncio.run(scenario(store))
            assert statuses == [422]
            assert report.failed == [item.id]
            assert item.status == ProcessingStatus.ERROR
            assert item.error == "trailer visible"
            assert item.result is None
    finally:
        app.dependency_overrides.clear()


def test_error_message_extraction() -> None:
    assert error_message(httpx.Response(422, json={"detail": {"error": "x", "reason": "ramp"}})) == "ramp"
    assert error_message(httpx.Response(422, json={"detail": {"error": "Source image rejected"}})) == \
        "Source image rejected"
    assert error_message(httpx.Response(400, json={"detail": "Missing upload"})) == "Missing upload"
    assert error_message(httpx.Response(502, text="Bad Gateway")) == "Bad Gateway"
    assert error_message(httpx.Response(504)) == "HTTP 504"
