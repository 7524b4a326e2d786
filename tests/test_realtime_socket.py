import time

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

import spabook.main as main_module
from conftest import api, auth_headers, future_day
from spabook.main import app
from spabook.modules.chat.service import get_chat_client
from spabook.modules.notifications.email import get_email_sender
from spabook.modules.realtime.hub import get_hub
from spabook.modules.users.service import issue_tokens

TOPICS = "appointment-notifications,appointments-refetch"


@pytest.fixture
def live(hub, email_sender, chat_client, monkeypatch):
    # one event loop for HTTP calls and sockets, so publishes reach the socket's queue
    monkeypatch.setattr(main_module, "get_hub", lambda: hub)
    app.dependency_overrides[get_hub] = lambda: hub
    app.dependency_overrides[get_email_sender] = lambda: email_sender
    app.dependency_overrides[get_chat_client] = lambda: chat_client
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


def _socket_url(user=None, topics=TOPICS):
    url = api(f"/realtime?topics={topics}")
    if user is not None:
        url += f"&token={issue_tokens(user).access_token}"
    return url


def _wait_for_no_subscribers(hub, timeout=2.0):
    deadline = time.monotonic() + timeout
    while hub.subscriber_count() and time.monotonic() < deadline:
        time.sleep(0.01)
    return hub.subscriber_count()


@pytest.mark.parametrize("token", [None, "not-a-jwt"])
def test_socket_refuses_bad_token(live, hub, token):
    url = api("/realtime") if token is None else api(f"/realtime?token={token}")
    with pytest.raises(WebSocketDisconnect) as err:
        with live.websocket_connect(url):
            pass
    assert err.value.code == 1008
    assert hub.subscriber_count() == 0


def test_socket_refuses_unknown_topic(live, hub, patient):
    with pytest.raises(WebSocketDisconnect) as err:
        with live.websocket_connect(_socket_url(patient, topics="appointments-everything")):
            pass
    assert err.value.code == 1003
    assert hub.subscriber_count() == 0


def test_status_notification_reaches_owner_only(live, hub, patient, other_patient, admin, procedure):
    resp = live.post(
        api("/appointments"),
        json={"date": future_day().isoformat(), "time": "10:00", "procedure_id": str(procedure.id)},
        headers=auth_headers(patient),
    )
    assert resp.status_code == 201
    appt_id = resp.json()["appointment"]["id"]

    with live.websocket_connect(_socket_url(patient)) as owner, live.websocket_connect(_socket_url(other_patient)) as stranger:
        assert hub.subscriber_count() == 2

        resp = live.patch(
            api(f"/appointments/{appt_id}/status"), json={"status": "confirmed"}, headers=auth_headers(admin)
        )
        assert resp.status_code == 200

        note = owner.receive_json()
        assert note["topic"] == "appointment-notifications"
        assert note["event"] == "appointment_status_changed"
        assert note["payload"]["patientId"] == str(patient.id)
        assert note["payload"]["newStatus"] == "confirmed"
        assert owner.receive_json()["event"] == "refresh_appointments"

        # the other patient only gets the refresh broadcast
        assert stranger.receive_json() == {
            "topic": "appointments-refetch",
            "event": "refresh_appointments",
            "payload": {},
        }

    assert _wait_for_no_subscribers(hub) == 0
