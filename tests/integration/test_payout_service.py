"""Tests for the payout lifecycle: request, process, cancel."""

import uuid
from decimal import Decimal

import pytest
from sqlalchemy import select

from app.core.exceptions import (
    ConflictError,
    InvalidArgumentError,
    InvalidStateError,
    NotFoundError,
    UpstreamError,
)
from app.core.storage import StorageClient
from app.database import commit_or_conflict
from app.models.notification import Notification
from app.models.payout import PartnerPayout
from app.models.referral import Referral
from app.schemas.payment import PaymentCreate
from app.services.audit_service import AuditService
from app.services.eligibility import EligibilityService
from app.services.payment_service import PaymentService
from app.services.payout_service import PayoutService, ProofFile


def proof(content: bytes, content_type: str = "image/png", filename: str = "transfer.png") -> ProofFile:
    return ProofFile(content=content, filename=filename, content_type=content_type)


class TestRequestPayout:

    @pytest.mark.asyncio
    async def test_full_amount_by_default(self, db, partner, finalized_referral):
        payout = await PayoutService(db).request_payout(partner, finalized_referral.id)

        assert payout.status == "pending"
        assert payout.amount == Decimal("5000.00")
        assert payout.partner_id == partner.id
        assert finalized_referral.payout_requested is True
        assert finalized_referral.payout_requested_at is not None
        assert finalized_referral.total_commission_claimed == Decimal("5000.00")
        assert finalized_referral.unclaimed_commission == Decimal("0.00")

    @pytest.mark.asyncio
    async def test_partial_amount(self, db, partner, finalized_referral):
        payout = await PayoutService(db).request_payout(partner, finalized_referral.id, amount=Decimal("2000"))
        assert payout.amount == Decimal("2000.00")
        assert finalized_referral.total_commission_claimed == Decimal("2000.00")

    @pytest.mark.parametrize("amount", ["0", "-10", "5000.01"])
    @pytest.mark.asyncio
    async def test_amount_out_of_range(self, db, partner, finalized_referral, amount):
        with pytest.raises(InvalidArgumentError):
            await PayoutService(db).request_payout(partner, finalized_referral.id, amount=Decimal(amount))
        assert finalized_referral.payout_requested is False

    @pytest.mark.asyncio
    async def test_second_request_conflicts(self, db, partner, finalized_referral):
        service = PayoutService(db)
        await service.request_payout(partner, finalized_referral.id)

        with pytest.raises(ConflictError):
            await service.request_payout(partner, finalized_referral.id)

        result = await db.execute(select(PartnerPayout).where(PartnerPayout.referral_id == finalized_referral.id))
        assert len(result.scalars().all()) == 1

    @pytest.mark.asyncio
    async def test_not_finalized_is_invalid_state(self, db, partner, earning_referral):
        with pytest.raises(InvalidStateError) as exc:
            await PayoutService(db).request_payout(partner, earning_referral.id)
        assert "status: Deal has not been finalized" in exc.value.errors

    @pytest.mark.asyncio
    async def test_finalized_without_commission_is_invalid_state(self, db, partner, referral, staff):
        from app.services.referral_service import ReferralService

        await ReferralService(db).finalize_deal(referral.id, staff)

        with pytest.raises(InvalidStateError):
            await PayoutService(db).request_payout(partner, referral.id)

    @pytest.mark.asyncio
    async def test_someone_elses_referral_is_not_found(self, db, other_partner, finalized_referral):
        with pytest.raises(NotFoundError):
            await PayoutService(db).request_payout(other_partner, finalized_referral.id)

    @pytest.mark.asyncio
    async def test_staff_notified(self, db, partner, finalized_referral):
        payout = await PayoutService(db).request_payout(partner, finalized_referral.id)

        result = await db.execute(select(Notification).where(Notification.entity_id == payout.id))
        notification = result.scalar_one()
        assert notification.recipient_type == "internal"
        assert notification.notification_type == "payout_requested"
        assert finalized_referral.referral_code in notification.message

    @pytest.mark.asyncio
    async def test_active_payout_index_rejects_duplicate(self, db, partner, finalized_referral):
        """Two active payouts for one referral never both commit."""
        for _ in range(2):
            db.add(PartnerPayout(
                id=uuid.uuid4(),
                partner_id=partner.id,
                referral_id=finalized_referral.id,
                amount=Decimal("5000.00"),
                status="pending",
            ))
        with pytest.raises(ConflictError):
            await commit_or_conflict(db, "Payout")


class TestProcessPayout:

    @pytest.fixture
    async def payout(self, db, partner, finalized_referral):
        return await PayoutService(db).request_payout(partner, finalized_referral.id)

    @pytest.mark.asyncio
    async def test_paid_without_reference_changes_nothing(self, db, payout, staff):
        with pytest.raises(InvalidArgumentError) as exc:
            await PayoutService(db).process_payout(payout.id, "paid", staff)

        assert exc.value.errors == [
            "payment_reference: Payment reference is required to mark a payout as paid"
        ]
        refreshed = await PayoutService(db).get_payout(payout.id)
        assert refreshed.status == "pending"
        assert refreshed.processed_at is None

    @pytest.mark.asyncio
    async def test_paid_with_reference(self, db, payout, staff, partner):
        paid = await PayoutService(db).process_payout(payout.id, "paid", staff, payment_reference="PAY-001")

        assert paid.status == "paid"
        assert paid.payment_reference == "PAY-001"
        assert paid.processed_at is not None
        assert paid.processed_by == staff.id
        assert paid.amount_paid == Decimal("5000.00")

        result = await db.execute(
            select(Notification).where(
                Notification.partner_id == partner.id,
                Notification.notification_type == "payout_processed",
            )
        )
        assert "PAY-001" in result.scalar_one().message

    @pytest.mark.asyncio
    async def test_paid_keeps_claim_and_clears_in_flight_flag(self, db, payout, staff, partner, finalized_referral):
        await PayoutService(db).process_payout(payout.id, "paid", staff, payment_reference="PAY-001")

        assert finalized_referral.payout_requested is False
        assert finalized_referral.total_commission_claimed == Decimal("5000.00")
        with pytest.raises(InvalidStateError) as exc:
            await PayoutService(db).request_payout(partner, finalized_referral.id)
        assert exc.value.errors == ["unclaimed_commission: No unclaimed commission on this referral"]

    @pytest.mark.asyncio
    async def test_overlong_reference_rejected_before_upload(self, db, payout, staff, uploads, png_bytes):
        with pytest.raises(InvalidArgumentError) as exc:
            await PayoutService(db).process_payout(
                payout.id, "paid", staff, payment_reference="R" * 101, proof=proof(png_bytes)
            )

        assert exc.value.errors == [
            "payment_reference: Payment reference must be at most 100 characters"
        ]
        assert uploads == []
        refreshed = await PayoutService(db).get_payout(payout.id)
        assert refreshed.status == "pending"

    @pytest.mark.asyncio
    async def test_reference_at_column_limit_accepted(self, db, payout, staff):
        paid = await PayoutService(db).process_payout(payout.id, "paid", staff, payment_reference="R" * 100)
        assert paid.payment_reference == "R" * 100

    @pytest.mark.asyncio
    async def test_processing_then_paid(self, db, payout, staff):
        service = PayoutService(db)
        processing = await service.process_payout(payout.id, "processing", staff)
        assert processing.status == "processing"
        assert processing.processed_at is None

        paid = await service.process_payout(payout.id, "paid", staff, payment_reference="TRF-99",
                                            amount_paid=Decimal("4990"))
        assert paid.status == "paid"
        assert paid.amount_paid == Decimal("4990.00")

    @pytest.mark.asyncio
    async def test_paid_is_terminal(self, db, payout, staff):
        service = PayoutService(db)
        await service.process_payout(payout.id, "paid", staff, payment_reference="PAY-001")

        with pytest.raises(InvalidStateError):
            await service.process_payout(payout.id, "failed", staff)

    @pytest.mark.parametrize("target", ["cancelled", "pending", "refunded"])
    @pytest.mark.asyncio
    async def test_staff_cannot_request_other_targets(self, db, payout, staff, target):
        with pytest.raises(InvalidArgumentError):
            await PayoutService(db).process_payout(payout.id, target, staff)

    @pytest.mark.asyncio
    async def test_amount_paid_cannot_exceed_amount(self, db, payout, staff):
        with pytest.raises(InvalidArgumentError):
            await PayoutService(db).process_payout(
                payout.id, "paid", staff, payment_reference="PAY-001", amount_paid=Decimal("5000.01")
            )

    @pytest.mark.asyncio
    async def test_unknown_payout_not_found(self, db, staff):
        with pytest.raises(NotFoundError):
            await PayoutService(db).process_payout(uuid.uuid4(), "processing", staff)

    @pytest.mark.asyncio
    async def test_failed_makes_commission_claimable_again(self, db, payout, staff, partner, finalized_referral):
        await PayoutService(db).process_payout(payout.id, "failed", staff, notes="Account closed")

        assert finalized_referral.payout_requested is False
        assert finalized_referral.total_commission_claimed == Decimal("0.00")
        eligible = await EligibilityService(db).list_eligible(partner.id)
        assert [r.id for r in eligible.referrals] == [finalized_referral.id]

        retry = await PayoutService(db).request_payout(partner, finalized_referral.id)
        assert retry.status == "pending"

    @pytest.mark.asyncio
    async def test_proof_uploaded_and_stored(self, db, payout, staff, uploads, png_bytes):
        paid = await PayoutService(db).process_payout(
            payout.id, "paid", staff, payment_reference="PAY-001", proof=proof(png_bytes)
        )

        assert len(uploads) == 1
        assert uploads[0]["path"].startswith("payout-proofs/")
        assert uploads[0]["path"].endswith(".png")
        assert paid.proof_of_payment_url == f"https://storage.example.com/documents/{uploads[0]['path']}"

    @pytest.mark.asyncio
    async def test_pdf_proof_accepted(self, db, payout, staff, uploads, pdf_bytes):
        paid = await PayoutService(db).process_payout(
            payout.id, "paid", staff, payment_reference="PAY-001",
            proof=proof(pdf_bytes, "application/pdf", "receipt.pdf"),
        )
        assert paid.proof_of_payment_url.endswith(".pdf")

    @pytest.mark.parametrize("content,content_type", [
        (b"not an image", "image/png"),
        (b"GIF89a....", "image/gif"),
        (b"hello", "application/pdf"),
        (b"", "image/png"),
    ])
    @pytest.mark.asyncio
    async def test_bad_proof_rejected_before_upload(self, db, payout, staff, uploads, content, content_type):
        with pytest.raises(InvalidArgumentError):
            await PayoutService(db).process_payout(
                payout.id, "paid", staff, payment_reference="PAY-001", proof=proof(content, content_type)
            )
        assert uploads == []

    @pytest.mark.asyncio
    async def test_oversized_proof_rejected(self, db, payout, staff, uploads, monkeypatch, png_bytes):
        from app.config import settings

        monkeypatch.setattr(settings, "MAX_PROOF_FILE_SIZE", len(png_bytes) - 1)

        with pytest.raises(InvalidArgumentError):
            await PayoutService(db).process_payout(
                payout.id, "paid", staff, payment_reference="PAY-001", proof=proof(png_bytes)
            )
        assert uploads == []

    @pytest.mark.asyncio
    async def test_upload_failure_aborts_without_state_change(self, db, payout, staff, monkeypatch, png_bytes):
        def broken_upload(content, path, content_type):
            raise RuntimeError("storage unavailable")

        monkeypatch.setattr(StorageClient, "upload", staticmethod(broken_upload))

        with pytest.raises(UpstreamError):
            await PayoutService(db).process_payout(
                payout.id, "paid", staff, payment_reference="PAY-001", proof=proof(png_bytes)
            )

        refreshed = await PayoutService(db).get_payout(payout.id)
        assert refreshed.status == "pending"
        assert refreshed.payment_reference is None
        assert refreshed.proof_of_payment_url is None

    @pytest.mark.asyncio
    async def test_audit_failure_does_not_undo_payout(self, db, payout, staff, monkeypatch):
        async def broken_log(self, **kwargs):
            raise RuntimeError("audit table unavailable")

        monkeypatch.setattr(AuditService, "log", broken_log)

        paid = await PayoutService(db).process_payout(payout.id, "paid", staff, payment_reference="PAY-001")
        assert paid.status == "paid"

        await db.commit()
        result = await db.execute(select(PartnerPayout.status).where(PartnerPayout.id == payout.id))
        assert result.scalar_one() == "paid"

    @pytest.mark.asyncio
    async def test_stale_payout_write_conflicts(self, session_factory, payout, staff):
        async with session_factory() as first:
            stale = await first.get(PartnerPayout, payout.id)
            await first.commit()

            async with session_factory() as second:
                await PayoutService(second).process_payout(payout.id, "processing", staff)

            stale.status = "failed"
            with pytest.raises(ConflictError):
                await commit_or_conflict(first, "Payout")


class TestCancelPayout:

    @pytest.fixture
    async def payout(self, db, partner, finalized_referral):
        return await PayoutService(db).request_payout(partner, finalized_referral.id)

    @pytest.mark.asyncio
    async def test_cancel_pending_restores_claimability(self, db, payout, partner, finalized_referral):
        cancelled = await PayoutService(db).cancel_payout(partner, payout.id)

        assert cancelled.status == "cancelled"
        assert cancelled.notes == "Cancelled by partner"
        assert finalized_referral.payout_requested is False
        assert finalized_referral.total_commission_claimed == Decimal("0.00")

        eligible = await EligibilityService(db).list_eligible(partner.id)
        assert eligible.total_eligible == 1
        assert eligible.available_for_payout == Decimal("5000.00")

    @pytest.mark.asyncio
    async def test_cancel_by_other_partner_not_found(self, db, payout, other_partner):
        with pytest.raises(NotFoundError):
            await PayoutService(db).cancel_payout(other_partner, payout.id)

    @pytest.mark.asyncio
    async def test_cancel_processing_conflicts(self, db, payout, partner, staff):
        await PayoutService(db).process_payout(payout.id, "processing", staff)

        with pytest.raises(ConflictError):
            await PayoutService(db).cancel_payout(partner, payout.id)

    @pytest.mark.asyncio
    async def test_cancel_twice_conflicts(self, db, payout, partner):
        service = PayoutService(db)
        await service.cancel_payout(partner, payout.id, notes="Wrong amount")

        with pytest.raises(ConflictError):
            await service.cancel_payout(partner, payout.id)


class TestPartialPayouts:

    @staticmethod
    async def _pay(db, payout, staff, reference="PAY-001"):
        return await PayoutService(db).process_payout(payout.id, "paid", staff, payment_reference=reference)

    @pytest.mark.asyncio
    async def test_remainder_available_after_partial_payout_paid(self, db, partner, staff, finalized_referral):
        service = PayoutService(db)
        first = await service.request_payout(partner, finalized_referral.id, amount=Decimal("1000"))
        await self._pay(db, first, staff)

        assert finalized_referral.unclaimed_commission == Decimal("4000.00")
        eligible = await EligibilityService(db).list_eligible(partner.id)
        assert [r.id for r in eligible.referrals] == [finalized_referral.id]
        assert eligible.available_for_payout == Decimal("4000.00")

        summary = await EligibilityService(db).get_commission_summary(partner.id)
        assert summary["available_for_payout"] == Decimal("4000.00")
        assert summary["total_paid_out"] == Decimal("1000.00")
        assert summary["can_request_payout"] is True

        second = await service.request_payout(partner, finalized_referral.id)
        assert second.amount == Decimal("4000.00")
        await self._pay(db, second, staff, reference="PAY-002")

        summary = await EligibilityService(db).get_commission_summary(partner.id)
        assert summary["available_for_payout"] == Decimal("0.00")
        assert summary["total_paid_out"] == Decimal("5000.00")

    @pytest.mark.asyncio
    async def test_remainder_not_claimable_while_partial_in_flight(self, db, partner, finalized_referral):
        service = PayoutService(db)
        await service.request_payout(partner, finalized_referral.id, amount=Decimal("1000"))

        with pytest.raises(ConflictError):
            await service.request_payout(partner, finalized_referral.id)

        summary = await EligibilityService(db).get_commission_summary(partner.id)
        assert summary["available_for_payout"] == Decimal("0.00")
        assert summary["pending_commission"] == Decimal("4000.00")
        assert summary["requested_commission"] == Decimal("1000.00")

    @pytest.mark.asyncio
    async def test_failed_partial_returns_only_its_amount(self, db, partner, staff, finalized_referral):
        service = PayoutService(db)
        first = await service.request_payout(partner, finalized_referral.id, amount=Decimal("1000"))
        await self._pay(db, first, staff)
        second = await service.request_payout(partner, finalized_referral.id, amount=Decimal("1500"))

        await service.process_payout(second.id, "failed", staff, notes="Account closed")

        assert finalized_referral.total_commission_claimed == Decimal("1000.00")
        assert finalized_referral.unclaimed_commission == Decimal("4000.00")

    @pytest.mark.asyncio
    async def test_payment_after_paid_payout_becomes_claimable(self, db, partner, staff, finalized_referral):
        service = PayoutService(db)
        payout = await service.request_payout(partner, finalized_referral.id)
        await self._pay(db, payout, staff)

        await PaymentService(db).record_payment(
            PaymentCreate(referral_id=finalized_referral.id, amount=Decimal("100000")), staff
        )

        summary = await EligibilityService(db).get_commission_summary(partner.id)
        assert summary["total_commission_earned"] == Decimal("10000.00")
        assert summary["available_for_payout"] == Decimal("5000.00")
        assert summary["total_paid_out"] == Decimal("5000.00")

        late = await service.request_payout(partner, finalized_referral.id)
        assert late.amount == Decimal("5000.00")

    @pytest.mark.asyncio
    async def test_payment_during_payout_claimable_once_settled(self, db, partner, staff, finalized_referral):
        service = PayoutService(db)
        payout = await service.request_payout(partner, finalized_referral.id)

        await PaymentService(db).record_payment(
            PaymentCreate(referral_id=finalized_referral.id, amount=Decimal("20000")), staff
        )
        summary = await EligibilityService(db).get_commission_summary(partner.id)
        assert summary["pending_commission"] == Decimal("1000.00")
        assert summary["requested_commission"] == Decimal("5000.00")

        await self._pay(db, payout, staff)

        summary = await EligibilityService(db).get_commission_summary(partner.id)
        assert summary["available_for_payout"] == Decimal("1000.00")
        assert summary["pending_commission"] == Decimal("0.00")
        assert summary["requested_commission"] == Decimal("0.00")


class TestPayoutDetail:

    @pytest.mark.asyncio
    async def test_detail_with_bank_name(self, db, partner, finalized_referral, bank_service):
        payout = await PayoutService(db).request_payout(partner, finalized_referral.id)

        detail = await PayoutService(db, bank_service).get_payout_detail(payout.id)

        assert detail["referral_code"] == finalized_referral.referral_code
        assert detail["partner_name"] == "Ada Okafor"
        assert detail["bank"]["bank_name"] == "Guaranty Trust Bank"
        assert detail["bank"]["account_number"] == "0123456789"

    @pytest.mark.asyncio
    async def test_bank_lookup_failure_falls_back(self, db, partner, finalized_referral):
        import httpx
        from app.services.bank_service import BankService

        def down(request):
            raise httpx.ConnectError("down", request=request)

        banks = BankService(client=httpx.AsyncClient(transport=httpx.MockTransport(down)))
        payout = await PayoutService(db).request_payout(partner, finalized_referral.id)

        detail = await PayoutService(db, banks).get_payout_detail(payout.id)

        assert detail["bank"]["bank_name"] == "Bank (058)"


class TestConcurrentReferralWrites:

    @pytest.mark.asyncio
    async def test_stale_referral_update_conflicts(self, session_factory, referral):
        async with session_factory() as first:
            stale = await first.get(Referral, referral.id)
            await first.commit()

            async with session_factory() as second:
                fresh = await second.get(Referral, referral.id)
                fresh.status = "contacted"
                await second.commit()

            stale.status = "lost"
            with pytest.raises(ConflictError):
                await commit_or_conflict(first, "Referral")
