from datetime import date

from conftest import BOOK_DAY, api, auth_headers
from spabook.modules.chat.service import build_system_prompt
from spabook.modules.notifications.templates import booking_confirmation_html, spanish_long_date


MAIL = {"to": "ana@bondusy.co", "subject": "Hola", "html": "<p>hola</p>"}


async def test_resend_is_admin_only(client, patient, email_sender):
    resp = await client.post(api("/functions/resend"), json=MAIL)
    assert resp.status_code == 401
    assert resp.json() == {"detail": "not_authenticated"}

    resp = await client.post(api("/functions/resend"), json=MAIL, headers=auth_headers(patient))
    assert resp.status_code == 403
    assert email_sender.sent == []


async def test_resend_requires_fields(client, admin, email_sender):
    resp = await client.post(
        api("/functions/resend"), json={"to": "ana@bondusy.co", "subject": "Hola"}, headers=auth_headers(admin)
    )
    assert resp.status_code == 400
    assert resp.json() == {"detail": "missing_required_fields"}
    assert email_sender.sent == []


async def test_resend_relays_email(client, admin, email_sender):
    resp = await client.post(
        api("/functions/resend"), json={**MAIL, "fromName": "Recepción"}, headers=auth_headers(admin)
    )
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "data": {"id": "email_1"}}
    assert email_sender.sent[0]["from_name"] == "Recepción"


async def test_resend_provider_failure(client, admin, email_sender):
    email_sender.fail = True
    resp = await client.post(api("/functions/resend"), json=MAIL, headers=auth_headers(admin))
    assert resp.status_code == 502
    assert resp.json() == {"detail": "email_failed"}


async def test_spa_chat(client, chat_client):
    resp = await client.post(api("/functions/spa-chat"), json={"message": "¿Qué me recomiendas?"})
    assert resp.status_code == 200
    assert resp.json() == {"response": "Te recomiendo el Masaje Relajante."}
    assert chat_client.messages == ["¿Qué me recomiendas?"]

    chat_client.fail = True
    resp = await client.post(api("/functions/spa-chat"), json={"message": "hola"})
    assert resp.status_code == 502
    assert resp.json() == {"detail": "chat_failed"}


def test_system_prompt_lists_catalogue():
    prompt = build_system_prompt()
    assert "1. Masaje Relajante - $80 (60 min)" in prompt
    assert "5. Manicura y Pedicura Spa - $55 (60 min)" in prompt


def test_spanish_long_date():
    assert spanish_long_date(BOOK_DAY) == "lunes, 10 de marzo de 2025"
    assert spanish_long_date(date(2025, 9, 13)) == "sábado, 13 de septiembre de 2025"


def test_confirmation_html_escapes_values():
    html = booking_confirmation_html("Facial <Oro>", BOOK_DAY, "10:00")
    assert "Facial &lt;Oro&gt;" in html
    assert "lunes, 10 de marzo de 2025" in html
    assert "<strong>Hora:</strong> 10:00" in html
