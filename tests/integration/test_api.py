import pytest
from fastapi import status
from httpx import AsyncClient
from sqlalchemy import select

from educafric.models import AssignedFee, NotificationJob, StudentAttendance
from educafric.schemas.notification.notification_schema import NotificationJobResponse


async def add_fee(session_factory, school_data, balance=50000):
    async with session_factory() as session:
        fee = AssignedFee(
            school_id=school_data.school_id,
            student_id=school_data.student_id,
            final_amount=balance,
            paid_amount=0,
            balance_amount=balance,
            status="pending",
        )
        session.add(fee)
        await session.commit()
        return fee.id


@pytest.mark.asyncio
class TestTestNotificationEndpoints:
    """Debug endpoints under /api/test-notifications"""

    async def test_config(self, client: AsyncClient):
        response = await client.get("/api/test-notifications/config")
        assert response.status_code == status.HTTP_200_OK

        data = response.json()
        assert data["success"] is True
        assert data["config"]["autoNotify"]["attendance"] is True
        assert data["config"]["channels"]["sms"] is False
        assert data["config"]["defaultLanguage"] == "fr"
        assert data["stats"]["total"] == 0

    async def test_synthetic_events(self, client: AsyncClient):
        for path in ("test-attendance", "test-grades", "test-geolocation", "test-online-class"):
            response = await client.post(f"/api/test-notifications/{path}")
            assert response.status_code == status.HTTP_200_OK
            data = response.json()
            assert data["success"] is True, path
            assert data["result"]["notificationsSent"] > 0

        stats = (await client.get("/api/test-notifications/stats")).json()
        assert stats["success"] is True
        assert stats["stats"]["total"] == 4
        assert stats["stats"]["attendance"] == 1
        assert stats["whatsappStats"]["successful"] == 1

    async def test_payment_with_custom_payload(self, client: AsyncClient, school_data):
        response = await client.post("/api/test-notifications/test-payments", json={
            "userId": school_data.parent_en_id, "amount": 15000, "paymentMethod": "orange_money",
        })
        data = response.json()
        assert data["success"] is True
        assert data["result"]["channels"] == ["email", "pwa"]

    async def test_timetable_and_message(self, client: AsyncClient, whatsapp_api):
        response = await client.post("/api/test-notifications/test-timetable",
                                     json={"phone": "+237 656 200 472", "language": "en"})
        assert response.json()["success"] is True
        assert "Timetable Change" in whatsapp_api.payloads[0]["text"]["body"]

        response = await client.post("/api/test-notifications/test-message",
                                     json={"phone": "+237656200472", "messagePreview": "Réunion lundi"})
        assert response.json()["success"] is True
        assert "Réunion lundi" in whatsapp_api.payloads[1]["text"]["body"]

    async def test_direct_send_requires_phone(self, client: AsyncClient):
        response = await client.post("/api/test-notifications/test-message", json={})
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


@pytest.mark.asyncio
class TestPaymentEndpoints:
    """Fee payments and the notification queue"""

    async def test_full_payment_queues_receipt(self, client: AsyncClient, school_data, session_factory):
        fee_id = await add_fee(session_factory, school_data)

        response = await client.post("/api/v1/fees/payments", json={
            "studentId": school_data.student_id, "amount": 50000, "paymentMethod": "cash",
        })
        assert response.status_code == status.HTTP_200_OK

        data = response.json()
        assert data["success"] is True
        assert data["notificationQueued"] is True
        assert data["excessAmount"] == 0
        assert data["appliedTo"] == [
            {"assignedFeeId": fee_id, "amountApplied": 50000, "newBalance": 0, "newStatus": "paid"}]
        assert data["receipt"]["formattedAmount"] == "50\u202f000 XAF"
        assert data["receipt"]["paymentMethod"] == "Espèces"
        assert data["receipt"]["receiptNumber"].startswith(f"REC-{school_data.school_id}-")

        async with session_factory() as session:
            fee = await session.get(AssignedFee, fee_id)
            receipts = (await session.execute(
                select(NotificationJob).where(NotificationJob.notification_type == "receipt")
            )).scalars().all()
        assert fee.status == "paid"
        assert fee.balance_amount == 0
        assert len(receipts) == 1
        assert "50000" in receipts[0].message
        assert "Espèces" in receipts[0].message
        assert "Cash" in receipts[0].message

    async def test_partial_payment_and_excess(self, client: AsyncClient, school_data, session_factory):
        first = await add_fee(session_factory, school_data, balance=30000)
        second = await add_fee(session_factory, school_data, balance=30000)

        data = (await client.post("/api/v1/fees/payments", json={
            "studentId": school_data.student_id, "amount": 40000, "paymentMethod": "mtn_momo",
        })).json()
        assert [(row["assignedFeeId"], row["newStatus"]) for row in data["appliedTo"]] == [
            (first, "paid"), (second, "partial")]

        data = (await client.post("/api/v1/fees/payments", json={
            "studentId": school_data.student_id, "amount": 25000,
        })).json()
        assert data["appliedTo"][0]["newBalance"] == 0
        assert data["excessAmount"] == 5000

    async def test_invalid_payments(self, client: AsyncClient, school_data):
        response = await client.post("/api/v1/fees/payments", json={
            "studentId": school_data.student_id, "amount": 0})
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

        response = await client.post("/api/v1/fees/payments", json={
            "studentId": school_data.student_id, "amount": 100, "paymentMethod": "barter"})
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

        response = await client.post("/api/v1/fees/payments", json={"studentId": 9999, "amount": 100})
        assert response.status_code == status.HTTP_404_NOT_FOUND

    async def test_receipt_failure_keeps_payment(self, client: AsyncClient, school_data, session_factory,
                                                 monkeypatch):
        fee_id = await add_fee(session_factory, school_data)

        async def broken(*args, **kwargs):
            raise RuntimeError("queue unavailable")

        from educafric.services.notification import fee_notification_service

        monkeypatch.setattr(fee_notification_service.FeeNotificationService, "send_receipt_notification", broken)
        response = await client.post("/api/v1/fees/payments", json={
            "studentId": school_data.student_id, "amount": 50000})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["notificationQueued"] is False
        async with session_factory() as session:
            assert (await session.get(AssignedFee, fee_id)).status == "paid"

    async def test_resend_receipt(self, client: AsyncClient, school_data, session_factory):
        await add_fee(session_factory, school_data)
        payment = (await client.post("/api/v1/fees/payments", json={
            "studentId": school_data.student_id, "amount": 50000})).json()["payment"]

        response = await client.post(f"/api/v1/fees/payments/{payment['id']}/notify")
        assert response.json() == {"success": True, "notificationQueued": True}

        listing = (await client.get("/api/v1/fees/notifications", params={"type": "receipt"})).json()
        assert listing["total"] == 2

        response = await client.post("/api/v1/fees/payments/9999/notify")
        assert response.status_code == status.HTTP_404_NOT_FOUND

    async def test_run_cycle_on_demand(self, client: AsyncClient, school_data, session_factory):
        await add_fee(session_factory, school_data)
        await client.post("/api/v1/fees/payments", json={"studentId": school_data.student_id, "amount": 50000})

        response = await client.post("/api/v1/fees/notifications/run")
        data = response.json()
        assert data["success"] is True
        assert data["summary"]["queue"]["sent"] == 1

        listing = (await client.get("/api/v1/fees/notifications", params={"status": "sent"})).json()
        assert listing["notifications"][0]["notificationType"] == "receipt"
        assert listing["notifications"][0]["emailSent"] is True
        assert set(listing["notifications"][0]) == set(NotificationJobResponse.model_fields)

        health = (await client.get("/health")).json()
        assert health["lastCycle"]["queue"]["sent"] == 1


@pytest.mark.asyncio
class TestAttendanceEndpoint:
    async def test_mark_absence_notifies_parents(self, client: AsyncClient, school_data, session_factory,
                                                 email_service):
        response = await client.post("/api/v1/attendance/mark", json={
            "studentId": school_data.student_id,
            "status": "absent",
            "date": "2026-10-12",
            "className": "Terminale A",
            "notes": "Non justifiée",
            "markedBy": school_data.teacher_id,
        })
        assert response.status_code == status.HTTP_200_OK

        data = response.json()
        assert data["success"] is True
        assert data["attendance"]["status"] == "absent"
        assert data["attendance"]["date"] == "2026-10-12"
        assert data["notification"]["success"] is True
        assert data["notification"]["channels"] == ["email", "whatsapp", "pwa"]

        text = email_service.send_email.call_args_list[0].args[3]
        assert "Marqué par: Alain Kamga" in text
        assert "École: Lycée de Bonabéri" in text

        async with session_factory() as session:
            marks = (await session.execute(select(StudentAttendance))).scalars().all()
        assert len(marks) == 1

    async def test_mark_without_notification(self, client: AsyncClient, school_data, email_service):
        data = (await client.post("/api/v1/attendance/mark", json={
            "studentId": school_data.student_id, "status": "present", "notify": False,
        })).json()
        assert data["notification"] is None
        email_service.send_email.assert_not_called()

    async def test_unknown_student(self, client: AsyncClient):
        response = await client.post("/api/v1/attendance/mark", json={"studentId": 9999, "status": "absent"})
        assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.asyncio
class TestServiceEndpoints:
    async def test_health(self, client: AsyncClient):
        data = (await client.get("/health")).json()
        assert data["status"] == "healthy"
        assert data["components"]["scheduler"] == "disabled"
        assert data["components"]["whatsapp"] == "configured"

    async def test_metrics(self, client: AsyncClient):
        await client.post("/api/test-notifications/test-grades")
        response = await client.get("/metrics")
        assert response.status_code == status.HTTP_200_OK
        assert response.headers["content-type"].startswith("text/plain")
        assert 'educafric_notification_events_total{event_type="grades"} 1.0' in response.text
