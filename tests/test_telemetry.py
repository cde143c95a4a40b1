from __future__ import annotations

import logging
import threading

import pytest
import requests

from wearsync.config import EngineConfig
from wearsync.telemetry import TelemetryEventKind, TelemetryLogger
from wearsync.telemetry.async_bridge import BackgroundDispatcher
from wearsync.telemetry.cloud import CloudTelemetrySink, RetryPolicy, create_cloud_sink


@pytest.fixture
def no_sleep(monkeypatch: pytest.MonkeyPatch) -> None:
    import wearsync.telemetry.cloud as cloud_module

    monkeypatch.setattr(cloud_module.time, "sleep", lambda _: None)


def _response(mocker, status: int, text: str = ""):
    response = mocker.Mock()
    response.status_code = status
    response.text = text
    return response


def test_logger_forwards_to_sink_and_survives_sink_errors(caplog):
    received = []
    TelemetryLogger(received.append)(TelemetryEventKind.EMULATOR_BOUND)
    assert received == [TelemetryEventKind.EMULATOR_BOUND]

    def broken(_: TelemetryEventKind) -> None:
        raise RuntimeError("sink down")

    caplog.set_level(logging.ERROR)
    TelemetryLogger(broken).log(TelemetryEventKind.APPLY_CHANGES_FAILURE)
    assert any("event=APPLY_CHANGES_FAILURE" in record.message for record in caplog.records)


def test_cloud_sink_posts_event(mocker):
    session = mocker.Mock()
    session.post.return_value = _response(mocker, 204)
    sink = CloudTelemetrySink(session, "https://ingest.example/", "secret", timeout_s=1.5)

    assert sink.send(TelemetryEventKind.APPLY_CHANGES_SUCCESS) is True

    args, kwargs = session.post.call_args
    assert args == ("https://ingest.example/v1/events/ingest",)
    assert kwargs["json"]["kind"] == "APPLY_CHANGES_SUCCESS"
    assert kwargs["json"]["outcome"] == "success"
    assert kwargs["headers"]["Authorization"] == "Bearer secret"
    assert kwargs["timeout"] == 1.5


def test_cloud_sink_retries_server_errors(mocker, no_sleep):
    session = mocker.Mock()
    session.post.side_effect = [_response(mocker, 503), _response(mocker, 200)]
    sink = CloudTelemetrySink(session, "https://ingest.example", "secret", max_retries=2)

    assert sink.send(TelemetryEventKind.EMULATOR_BOUND) is True
    assert session.post.call_count == 2


def test_cloud_sink_gives_up_after_retries(mocker, no_sleep, caplog):
    session = mocker.Mock()
    session.post.side_effect = requests.ConnectionError("offline")
    sink = CloudTelemetrySink(session, "https://ingest.example", "secret", max_retries=2)

    caplog.set_level(logging.ERROR)
    assert sink.send(TelemetryEventKind.EMULATOR_BOUND) is False
    assert session.post.call_count == 3
    assert any("failed after retries" in record.message for record in caplog.records)


def test_retry_policy_backs_off_exponentially_with_cap():
    assert list(RetryPolicy(max_retries=5).delays()) == [0.1, 0.2, 0.4, 0.8, 1.0]
    assert list(RetryPolicy(max_retries=0).delays()) == []


def test_cloud_sink_sleeps_between_attempts(mocker, monkeypatch: pytest.MonkeyPatch):
    import wearsync.telemetry.cloud as cloud_module

    slept = []
    monkeypatch.setattr(cloud_module.time, "sleep", slept.append)
    session = mocker.Mock()
    session.post.return_value = _response(mocker, 500)
    retry = RetryPolicy(max_retries=2, initial_delay_s=0.5, max_delay_s=0.75)
    sink = CloudTelemetrySink(session, "https://ingest.example", "secret", retry=retry)

    assert sink.send(TelemetryEventKind.APPLY_CHANGES_FAILURE) is False
    assert session.post.call_count == 3
    assert slept == [0.5, 0.75]
    assert session.post.call_args.kwargs["json"]["outcome"] == "failure"


def test_cloud_sink_drops_client_errors(mocker, caplog):
    session = mocker.Mock()
    session.post.return_value = _response(mocker, 401, "unauthorized")
    sink = CloudTelemetrySink(session, "https://ingest.example", "bad")

    caplog.set_level(logging.WARNING)
    assert sink.send(TelemetryEventKind.EMULATOR_BOUND) is False
    assert session.post.call_count == 1
    assert any("non-2xx" in record.message for record in caplog.records)


def test_create_cloud_sink_requires_configuration():
    assert create_cloud_sink(EngineConfig()) is None
    sink = create_cloud_sink(
        EngineConfig(telemetry_base_url="https://ingest.example", telemetry_api_key="k", telemetry_max_retries=1)
    )
    assert isinstance(sink, CloudTelemetrySink)
    assert sink.max_retries == 1
    sink.close()


def test_logger_delivers_cloud_events_in_background(mocker):
    cloud = mocker.Mock(spec=CloudTelemetrySink)
    dispatcher = BackgroundDispatcher()
    telemetry = TelemetryLogger(None, cloud=cloud, dispatcher=dispatcher)

    telemetry.log(TelemetryEventKind.EMULATOR_BOUND)
    telemetry.log(TelemetryEventKind.APPLY_CHANGES_SUCCESS)
    dispatcher.join()

    assert [call.args[0] for call in cloud.send.call_args_list] == [
        TelemetryEventKind.EMULATOR_BOUND,
        TelemetryEventKind.APPLY_CHANGES_SUCCESS,
    ]
    telemetry.close()
    cloud.close.assert_called_once()


def test_dispatcher_drops_when_full(caplog):
    gate = threading.Event()
    dispatcher = BackgroundDispatcher(maxsize=1)
    dispatcher.enqueue(gate.wait)
    caplog.set_level(logging.WARNING)
    # the worker may already hold the first item; fill until something drops
    for _ in range(3):
        dispatcher.enqueue(lambda: None)
    assert dispatcher.dropped >= 1
    assert any("queue full" in record.message for record in caplog.records)
    gate.set()
    dispatcher.join()
    dispatcher.close()
