from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from educafric.models import AssignedFee, FeeStructure, NotificationJob

NOW = datetime(2026, 10, 12, 8, 0, tzinfo=timezone.utc)


async def add_fee(session_factory, school_data, due_date, status="pending", balance=50000, student_id=None,
                  fee_name="Frais de scolarité 1er trimestre"):
    async with session_factory() as session:
        structure = FeeStructure(school_id=school_data.school_id, name=fee_name, amount=balance)
        session.add(structure)
        await session.flush()
        fee = AssignedFee(
            school_id=school_data.school_id,
            student_id=student_id or school_data.student_id,
            fee_structure_id=structure.id,
            final_amount=balance,
            paid_amount=0,
            balance_amount=balance,
            status=status,
            due_date=due_date,
        )
        session.add(fee)
        await session.commit()
        return fee.id


async def jobs_of_type(session_factory, notification_type):
    async with session_factory() as session:
        result = await session.execute(
            select(NotificationJob).where(NotificationJob.notification_type == notification_type))
        return list(result.scalars().all())


@pytest.mark.asyncio
class TestOverdueScan:
    """Overdue fee detection"""

    async def test_overdue_fee_flagged_once(self, dispatcher, school_data, session_factory):
        fee_id = await add_fee(session_factory, school_data, due_date=NOW - timedelta(days=1))

        async with session_factory() as session:
            assert await dispatcher.fee_service(session).check_overdue_fees(NOW) == 1

        async with session_factory() as session:
            fee = await session.get(AssignedFee, fee_id)
        assert fee.status == "overdue"
        assert fee.overdue_notice_sent is True

        jobs = await jobs_of_type(session_factory, "overdue")
        assert len(jobs) == 1
        job = jobs[0]
        assert job.assigned_fee_id == fee_id
        assert job.channels == ["email", "whatsapp", "pwa"]
        assert job.title == "URGENT: Frais de scolarité en retard / URGENT: School Fees Overdue"
        fr, en = job.message.split("\n\n")
        assert fr.startswith("Cher(e) Jean, le paiement de 50\u202f000 XAF")
        assert "11/10/2026" in fr
        assert en.startswith("Dear Jean, the payment of 50,000 XAF")
        assert "10/11/2026" in en

        # a second scan a day later finds nothing new
        async with session_factory() as session:
            assert await dispatcher.fee_service(session).check_overdue_fees(NOW + timedelta(days=1)) == 0
        assert len(await jobs_of_type(session_factory, "overdue")) == 1

    async def test_partial_included_paid_excluded(self, dispatcher, school_data, session_factory):
        await add_fee(session_factory, school_data, due_date=NOW - timedelta(days=3), status="partial")
        await add_fee(session_factory, school_data, due_date=NOW - timedelta(days=3), status="paid")
        await add_fee(session_factory, school_data, due_date=NOW + timedelta(days=3))

        async with session_factory() as session:
            assert await dispatcher.fee_service(session).check_overdue_fees(NOW) == 1

    async def test_fee_without_student_is_skipped(self, dispatcher, school_data, session_factory):
        fee_id = await add_fee(session_factory, school_data, due_date=NOW - timedelta(days=1), student_id=9999)

        async with session_factory() as session:
            assert await dispatcher.fee_service(session).check_overdue_fees(NOW) == 0

        async with session_factory() as session:
            fee = await session.get(AssignedFee, fee_id)
        assert fee.overdue_notice_sent is False
        assert await jobs_of_type(session_factory, "overdue") == []

    async def test_scan_limit(self, make_dispatcher, school_data, session_factory):
        dispatcher = make_dispatcher(NOTIFICATION_SCAN_LIMIT=2)
        for days in (1, 2, 3):
            await add_fee(session_factory, school_data, due_date=NOW - timedelta(days=days))

        async with session_factory() as session:
            assert await dispatcher.fee_service(session).check_overdue_fees(NOW) == 2
        async with session_factory() as session:
            assert await dispatcher.fee_service(session).check_overdue_fees(NOW) == 1


@pytest.mark.asyncio
class TestUpcomingDues:
    """Reminders for fees due soon"""

    async def test_fee_due_in_two_days_gets_one_reminder(self, dispatcher, school_data, session_factory):
        fee_id = await add_fee(session_factory, school_data, due_date=NOW + timedelta(days=2))
        await add_fee(session_factory, school_data, due_date=NOW + timedelta(days=5))

        async with session_factory() as session:
            assert await dispatcher.fee_service(session).check_upcoming_dues(NOW) == 1
        async with session_factory() as session:
            assert await dispatcher.fee_service(session).check_upcoming_dues(NOW) == 0

        jobs = await jobs_of_type(session_factory, "reminder")
        assert len(jobs) == 1
        assert jobs[0].assigned_fee_id == fee_id
        assert jobs[0].channels == ["email", "whatsapp", "pwa"]
        assert jobs[0].title == "Rappel: Frais de scolarité à échéance / Reminder: School Fees Due Soon"

        async with session_factory() as session:
            fee = await session.get(AssignedFee, fee_id)
        assert fee.reminder_sent is True
        assert fee.status == "pending"

    async def test_partial_fee_not_reminded(self, dispatcher, school_data, session_factory):
        await add_fee(session_factory, school_data, due_date=NOW + timedelta(days=1), status="partial")
        async with session_factory() as session:
            assert await dispatcher.fee_service(session).check_upcoming_dues(NOW) == 0


@pytest.mark.asyncio
class TestReceiptNotice:
    async def test_receipt_contains_amount_and_method(self, dispatcher, school_data, session_factory):
        async with session_factory() as session:
            job = await dispatcher.fee_service(session).send_receipt_notification(
                school_data.student_id, school_data.school_id, "REC-1-1760256000000-AB12", 50000, "cash")

        assert job.notification_type == "receipt"
        assert job.assigned_fee_id is None
        assert job.title == "Reçu de paiement - REC-1-1760256000000-AB12 / Payment Receipt - REC-1-1760256000000-AB12"
        assert "50000" in job.message
        assert "Espèces" in job.message
        assert "Cash" in job.message

    async def test_unknown_student_has_no_receipt(self, dispatcher, school_data, session_factory):
        async with session_factory() as session:
            job = await dispatcher.fee_service(session).send_receipt_notification(
                9999, school_data.school_id, "REC-X", 1000, "bank")
        assert job is None
