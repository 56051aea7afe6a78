import json

import httpx
import pytest

from educafric.services.communication.whatsapp_service import WhatsAppService
from tests.conftest import FakeWhatsAppApi, make_settings

PHONE = "+237656200472"


@pytest.fixture
def api():
    return FakeWhatsAppApi()


@pytest.fixture
def service(api):
    return WhatsAppService(make_settings(), transport=api.transport)


@pytest.mark.asyncio
class TestWhatsAppService:
    """WhatsApp Business API sender"""

    async def test_not_configured_makes_no_call(self, api):
        service = WhatsAppService(
            make_settings(WHATSAPP_PHONE_NUMBER_ID=None, WHATSAPP_ACCESS_TOKEN=None),
            transport=api.transport,
        )
        result = await service.send_absence_notification(PHONE, "Jean", "12/10/2026", "Lycée")

        assert result["success"] is False
        assert result["error"] == "whatsapp_not_configured"
        assert api.requests == []

    async def test_send_absence_notification(self, service, api):
        result = await service.send_absence_notification(
            PHONE, student_name="Jean Dupont", date="12/10/2026", school_name="Lycée de Bonabéri",
            reason="Malade")

        assert result["success"] is True
        assert result["messageId"] == "wamid.1"
        assert result["recipientPhone"] == PHONE

        request = api.requests[0]
        assert str(request.url) == "https://graph.facebook.com/v18.0/123456789/messages"
        assert request.headers["Authorization"] == "Bearer test-token"
        payload = json.loads(request.content)
        assert payload["to"] == "237656200472"
        assert payload["type"] == "text"
        assert "Jean Dupont" in payload["text"]["body"]
        assert "Motif: Malade" in payload["text"]["body"]

    async def test_english_template(self, service, api):
        await service.send_grade_notification(
            PHONE, student_name="Jean", subject_name="Maths", grade="15/20", school_name="Lycée",
            language="en")
        assert "New grade for Jean" in api.payloads[0]["text"]["body"]

    async def test_missing_fields_fail_without_call(self, service, api):
        result = await service.send_education_notification(PHONE, "grade", {"student_name": "Jean"})

        assert result["success"] is False
        assert result["error"].startswith("missing_fields: ")
        assert "subject_name" in result["error"]
        assert api.requests == []

    async def test_unknown_type(self, service):
        result = await service.send_education_notification(PHONE, "bogus", {})
        assert result["error"] == "unknown_message_type: bogus"

    async def test_invalid_phone(self, service, api):
        result = await service.send_message("abc", "Bonjour")
        assert result["error"] == "invalid_phone_number"
        assert api.requests == []

    async def test_api_error_is_reported(self, service, api):
        api.status_code = 400
        result = await service.send_message(PHONE, "Bonjour")
        assert result["success"] is False
        assert result["error"] == "Recipient not allowed"

    async def test_transport_error_is_caught(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        service = WhatsAppService(make_settings(), transport=httpx.MockTransport(refuse))
        result = await service.send_message(PHONE, "Bonjour")
        assert result["success"] is False
        assert result["error"] == "connection refused"

    async def test_non_object_json_body_does_not_raise(self):
        service = WhatsAppService(make_settings(), transport=httpx.MockTransport(
            lambda request: httpx.Response(200, json=["unexpected"])))

        result = await service.send_direct_message(PHONE, "Direction", "Director", "Réunion lundi")
        assert result["success"] is True
        assert result["messageId"] is None

    async def test_non_object_error_body_is_reported(self):
        service = WhatsAppService(make_settings(), transport=httpx.MockTransport(
            lambda request: httpx.Response(500, json="server exploded")))

        result = await service.send_message(PHONE, "Bonjour")
        assert result["success"] is False
        assert result["error"] == "http_500"

    async def test_malformed_messages_list_is_caught(self):
        service = WhatsAppService(make_settings(), transport=httpx.MockTransport(
            lambda request: httpx.Response(200, json={"messages": ["wamid.1"]})))

        result = await service.send_message(PHONE, "Bonjour")
        assert result["success"] is False
        assert result["error"] == "unexpected_error: AttributeError"

    async def test_stats(self, service, api):
        assert service.get_stats()["successRate"] == "0%"

        await service.send_direct_message(PHONE, "Direction", "Director", "Réunion lundi")
        await service.send_education_notification(PHONE, "payment", {"student_name": "Jean"})

        stats = service.get_stats()
        assert stats["totalSent"] == 2
        assert stats["successful"] == 1
        assert stats["failed"] == 1
        assert stats["byType"]["message"] == 1
        assert stats["byType"]["payment"] == 0
        assert stats["successRate"] == "50.00%"

        service.reset_stats()
        assert service.get_stats()["totalSent"] == 0


class TestBuildMessage:
    def test_geolocation_zone_line_is_optional(self, service):
        data = {"student_name": "Jean", "alert_type": "zone_exit", "location": "4.05, 9.76", "timestamp": "08:15"}
        assert "Zone:" not in service.build_message("geolocation", data)
        assert "Zone: École" in service.build_message("geolocation", {**data, "zone_name": "École"})

    def test_timetable_times(self, service):
        text = service.build_message("timetable", {
            "student_name": "Jean", "change_type": "Déplacement", "subject": "Maths",
            "class_name": "Tle A", "teacher_name": "M. Kamga", "new_time": "10:00",
        }, "en")
        assert "New time: 10:00" in text
        assert "Old time" not in text
        assert "\n\n\n" not in text

    def test_defaults_fill_optional_fields(self, service):
        text = service.build_message("absence", {"student_name": "Jean", "date": "12/10", "school_name": "Lycée"})
        assert "Total ce mois: N/A" in text
        assert "+237 656 200 472" in text
