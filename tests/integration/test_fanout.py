import pytest
from sqlalchemy import func, select

from educafric.models import InAppNotification


async def in_app_count(session_factory) -> int:
    async with session_factory() as session:
        return await session.scalar(select(func.count()).select_from(InAppNotification))


@pytest.mark.asyncio
class TestNotificationFanout:
    """Delivery of grades, payments, geolocation, online-class and subscription events"""

    async def test_payment_to_user(self, dispatcher, school_data, email_service, whatsapp_api):
        result = await dispatcher.process_event({
            "type": "payments",
            "data": {"userId": school_data.parent_fr_id, "amount": 50000, "paymentMethod": "cash",
                     "transactionId": "TX-1", "description": "Frais du 1er trimestre"},
        })

        assert result["success"] is True
        assert result["notificationsSent"] == 3
        subject = email_service.send_email.call_args.args[1]
        assert subject == "💳 Confirmation de paiement - 50\u202f000 XAF"
        body = whatsapp_api.payloads[0]["text"]["body"]
        assert "via Espèces" in body
        assert "Transaction: TX-1" in body

    async def test_geolocation_has_no_pwa(self, dispatcher, school_data, session_factory):
        result = await dispatcher.process_event({
            "type": "geolocation",
            "data": {"studentId": school_data.student_id, "alertType": "zone_exit", "zoneName": "École",
                     "location": "4.0511, 9.7679", "timestamp": "08:15"},
        })

        assert result["channels"] == ["email", "whatsapp"]
        assert await in_app_count(session_factory) == 0

    async def test_subscription_is_email_only(self, dispatcher, school_data, email_service, whatsapp_api):
        result = await dispatcher.process_event({
            "type": "subscriptions",
            "data": {"userId": school_data.parent_en_id, "planName": "Parent Premium",
                     "subscriptionStatus": "active"},
        })

        assert result["channels"] == ["email"]
        assert result["notificationsSent"] == 1
        assert email_service.send_email.call_args.args[1] == "📅 Educafric subscription - Parent Premium"
        assert whatsapp_api.requests == []

    async def test_online_class_in_parent_language(self, dispatcher, school_data, email_service):
        await dispatcher.process_event({
            "type": "onlineClasses",
            "data": {"studentId": school_data.student_id, "courseName": "Physique", "teacherName": "M. Kamga",
                     "startTime": "12/10/2026 10:00", "joinLink": "https://www.educafric.com/online-class/1"},
        })

        subjects = [call.args[1] for call in email_service.send_email.call_args_list]
        assert subjects == ["🎥 Cours en ligne - Physique", "🎥 Online class - Physique"]

    async def test_no_recipients(self, dispatcher, school_data):
        result = await dispatcher.process_event({"type": "payments", "data": {"userId": 9999, "amount": 100}})

        assert result["success"] is False
        assert result["errors"] == ["No recipients found"]

    async def test_all_channels_disabled(self, make_dispatcher, school_data):
        dispatcher = make_dispatcher(CHANNEL_EMAIL_ENABLED=False)
        result = await dispatcher.process_event({
            "type": "subscriptions", "data": {"userId": school_data.parent_fr_id},
        })
        assert result["errors"] == ["No enabled channel for this event type"]

    async def test_failure_on_one_channel_keeps_others(self, dispatcher, school_data, email_service,
                                                       session_factory):
        email_service.send_email.side_effect = ConnectionError("smtp down")
        result = await dispatcher.process_event({
            "type": "grades",
            "data": {"studentId": school_data.student_id, "subjectName": "SVT", "grade": "12/20"},
        })

        assert result["success"] is True
        assert result["channels"] == ["whatsapp", "pwa"]
        assert any("smtp down" in error for error in result["errors"])
        assert await in_app_count(session_factory) == 2
