"""
Unit tests for job messages.

Tests:
- Messages list oldest first
- Length and emptiness validation after sanitization
- HTML is stripped before storage
- Ownership guard runs before any read or write
"""

import pytest
from sqlalchemy import func, select

from core.exceptions import ForbiddenError, NotFoundError, ValidationError
from core.sanitizer import strip_html
from db.enums import SenderType
from db.models import Message
from tests.factories import JobCacheFactory, servicem8_job_payload


@pytest.fixture
def owned_job(servicem8):
    return servicem8.add_job(servicem8_job_payload(uuid="J-1", company_uuid="CO-1"))


class TestSendMessage:
    """Tests for MessageService.send_message."""

    @pytest.mark.asyncio
    async def test_messages_list_in_send_order(self, db_session, owned_job, message_service, customer):
        await message_service.send_message(db_session, "J-1", customer, "M1")
        await message_service.send_message(db_session, "J-1", customer, "M2")

        messages = await message_service.list_messages(db_session, "J-1", customer)

        assert [m.content for m in messages] == ["M1", "M2"]
        assert [m.sequence_number for m in messages] == [1, 2]
        assert all(m.sender_type == SenderType.CUSTOMER.value for m in messages)

    @pytest.mark.asyncio
    async def test_exactly_max_length_is_accepted(self, db_session, owned_job, message_service, customer):
        message = await message_service.send_message(db_session, "J-1", customer, "a" * 1000)

        assert len(message.content) == 1000

    @pytest.mark.asyncio
    async def test_over_max_length_is_rejected(self, db_session, owned_job, message_service, customer):
        with pytest.raises(ValidationError) as exc_info:
            await message_service.send_message(db_session, "J-1", customer, "a" * 1001)

        assert exc_info.value.errors[0]["field"] == "content"

    @pytest.mark.asyncio
    async def test_whitespace_only_is_rejected(self, db_session, owned_job, message_service, customer):
        with pytest.raises(ValidationError):
            await message_service.send_message(db_session, "J-1", customer, "   \n\t ")

        count = (await db_session.execute(select(func.count()).select_from(Message))).scalar()
        assert count == 0

    @pytest.mark.asyncio
    async def test_markup_only_is_rejected(self, db_session, owned_job, message_service, customer):
        with pytest.raises(ValidationError):
            await message_service.send_message(db_session, "J-1", customer, "<script></script>")

    @pytest.mark.asyncio
    async def test_html_is_stripped_and_trimmed(self, db_session, owned_job, message_service, customer):
        message = await message_service.send_message(
            db_session, "J-1", customer, "  <b>Gate code</b> is 4821<script>alert(1)</script>  "
        )

        assert message.content == "Gate code is 4821"

    @pytest.mark.asyncio
    async def test_ampersand_and_angle_bracket_kept_verbatim(self, db_session, owned_job, message_service, customer):
        message = await message_service.send_message(db_session, "J-1", customer, "Tom & Jerry, 3 < 5")

        assert message.content == "Tom & Jerry, 3 < 5"

    @pytest.mark.asyncio
    async def test_max_length_counts_characters_not_entities(self, db_session, owned_job, message_service, customer):
        message = await message_service.send_message(db_session, "J-1", customer, "&" + "a" * 999)

        assert len(message.content) == 1000
        assert message.content.startswith("&a")

    @pytest.mark.asyncio
    async def test_foreign_job_is_forbidden(self, db_session, servicem8, message_service, customer):
        servicem8.add_job(servicem8_job_payload(uuid="J-9", company_uuid="CO-2"))

        with pytest.raises(ForbiddenError):
            await message_service.send_message(db_session, "J-9", customer, "hello")

        with pytest.raises(ForbiddenError):
            await message_service.list_messages(db_session, "J-9", customer)

    @pytest.mark.asyncio
    async def test_inactive_job_is_not_found(self, db_session, servicem8, message_service, customer):
        servicem8.add_job(servicem8_job_payload(uuid="J-1", company_uuid="CO-1", active=0))

        with pytest.raises(NotFoundError):
            await message_service.send_message(db_session, "J-1", customer, "hello")


class TestLocalJobIds:
    """Job-scoped calls accept the local booking id handed out by listings."""

    @pytest.mark.asyncio
    async def test_local_id_resolves_to_servicem8_uuid(self, db_session, owned_job, message_service, customer):
        row = JobCacheFactory.create(customer.id, servicem8_uuid="J-1")
        db_session.add(row)
        await db_session.commit()

        sent = await message_service.send_message(db_session, str(row.id), customer, "Running late?")
        messages = await message_service.list_messages(db_session, str(row.id), customer)

        assert sent.job_uuid == "J-1"
        assert [m.content for m in messages] == ["Running late?"]

    @pytest.mark.asyncio
    async def test_another_customers_local_id_does_not_resolve(
        self, db_session, servicem8, message_service, customer, other_customer
    ):
        servicem8.add_job(servicem8_job_payload(uuid="J-9", company_uuid="CO-2"))
        row = JobCacheFactory.create(other_customer.id, servicem8_uuid="J-9", company_uuid="CO-2")
        db_session.add(row)
        await db_session.commit()

        with pytest.raises(NotFoundError):
            await message_service.list_messages(db_session, str(row.id), customer)


class TestSystemMessages:
    """Tests for internal notices."""

    @pytest.mark.asyncio
    async def test_system_message_shares_sequence(self, db_session, owned_job, message_service, customer):
        await message_service.send_message(db_session, "J-1", customer, "Is Tuesday OK?")
        notice = await message_service.create_system_message(db_session, "J-1", customer.id, "Job cancelled")

        assert notice.sender_type == SenderType.SYSTEM.value
        assert notice.sequence_number == 2


class TestStripHtml:
    def test_plain_text_unchanged(self):
        assert strip_html("Gate code is 4821") == "Gate code is 4821"

    def test_tags_removed(self):
        assert strip_html("<p>Hello <i>there</i></p>") == "Hello there"

    def test_entities_are_decoded(self):
        assert strip_html("<p>Fish &amp; chips</p> a < b") == "Fish & chips a < b"
