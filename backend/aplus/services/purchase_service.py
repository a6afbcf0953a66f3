"""
A+ Marketplace Backend — Note Purchase Settlement
===================================================

What:  Turns a paid invoice into a completed purchase: the sale record, the
       buyer's access grant, the download counter and the seller's credit.
How:   Everything happens in the caller's transaction. The unique
       (note_id, buyer_id) constraint on note_purchases and sales is the
       idempotency key; counters are in-database increments.
Who:   routes/notes.py (POST /notes/{id}/purchase, /notes/create-payment-link),
       routes/purchases.py (POST /purchase).

Settlement Flow:
    ┌───────────┐   ┌──────────────┐   ┌─────────────┐   ┌──────────────────┐
    │ load note │──▶│ self / dup   │──▶│ commission  │──▶│ INSERT sale +    │
    │ + buyer   │   │ checks       │   │ (pricing)   │   │ note_purchase    │
    └───────────┘   └──────────────┘   └─────────────┘   └────────┬─────────┘
                                                                  ▼
    ┌──────────────────────────┐   ┌─────────────────────────────────────────┐
    │ after commit: notify     │◀──│ UPDATE notes.downloads + 1,             │
    │ seller and buyer         │   │ users.balance + payout, sales + 1       │
    └──────────────────────────┘   └─────────────────────────────────────────┘

    A concurrent duplicate that slips past the precheck fails at the INSERT
    flush and the whole transaction rolls back.
"""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from aplus.config import settings
from aplus.database import flush_or_conflict
from aplus.exceptions import InvalidStateError, NotFoundError
from aplus.messages import translate
from aplus.models.note import Note, NotePurchase
from aplus.models.sale import SALE_STATUS_COMPLETED, Sale
from aplus.models.user import User
from aplus.services.notification_service import notification_service
from aplus.services.payment_gateway import INVOICE_PAID, Invoice, payment_gateway
from aplus.services.pricing import compute_commission

logger = logging.getLogger(__name__)

PAYMENT_METHOD_CARD = "credit_card"


class PurchaseService:

    async def _load_note(self, db: AsyncSession, note_id: UUID) -> Note:
        note = await db.get(Note, note_id)
        if note is None:
            raise NotFoundError(resource="note", resource_id=note_id)
        return note

    async def has_purchased(self, db: AsyncSession, note_id: UUID, buyer_id: UUID) -> bool:
        result = await db.execute(
            select(NotePurchase.id).where(
                NotePurchase.note_id == note_id,
                NotePurchase.buyer_id == buyer_id,
            )
        )
        return result.first() is not None

    async def _verify_invoice(self, invoice_id: str, note: Note) -> None:
        invoice = await payment_gateway.fetch_invoice(invoice_id)
        if invoice.status != INVOICE_PAID:
            raise InvalidStateError(code="payment.not_settled", invoice_id=invoice_id)
        if invoice.amount != note.price:
            raise InvalidStateError(code="payment.amount_mismatch", invoice_id=invoice_id)

    async def purchase(
        self,
        db: AsyncSession,
        note_id: UUID,
        buyer_id: UUID,
        invoice_id: str,
        status: Optional[str] = None,
    ) -> Sale:
        """
        Settle a purchase of `note_id` by `buyer_id`.

        Raises:
            NotFoundError: unknown note or buyer
            InvalidStateError: self-purchase, already purchased, unsettled invoice
        """
        note = await self._load_note(db, note_id)
        if note.owner_id == buyer_id:
            raise InvalidStateError(code="note.self_purchase")

        buyer = await db.get(User, buyer_id)
        if buyer is None:
            raise NotFoundError(resource="user", resource_id=buyer_id)

        if await self.has_purchased(db, note_id, buyer_id):
            raise InvalidStateError(code="note.already_purchased")

        if settings.payment_verify_invoices:
            await self._verify_invoice(invoice_id, note)

        split = compute_commission(
            note.price,
            settings.platform_decrement_percent,
            settings.platform_fixed_fee,
            settings.platform_decrement_payment_percent,
        )

        # ── Records ───────────────────────────────────────────────────────
        sale = Sale(
            seller_id=note.owner_id,
            buyer_id=buyer_id,
            note_id=note.id,
            note_title=note.title,
            amount=split.seller_payout,
            commission=split.commission,
            price=note.price,
            invoice_id=invoice_id,
            status=status or SALE_STATUS_COMPLETED,
            payment_method=PAYMENT_METHOD_CARD,
            message=translate("notify.note_purchased.message", note_title=note.title),
        )
        db.add(sale)
        await flush_or_conflict(db, code="note.already_purchased")

        db.add(
            NotePurchase(
                note_id=note.id,
                buyer_id=buyer_id,
                sale_id=sale.id,
                title=note.title,
                price=note.price,
                cover_url=note.cover_url,
                file_path=note.file_path,
            )
        )
        await flush_or_conflict(db, code="note.already_purchased")

        # ── Counters ──────────────────────────────────────────────────────
        await db.execute(
            update(Note)
            .where(Note.id == note.id)
            .values(downloads=Note.downloads + 1)
            .execution_options(synchronize_session=False)
        )
        credited = await db.execute(
            update(User)
            .where(User.id == note.owner_id)
            .values(
                balance=User.balance + split.seller_payout,
                number_of_sales=User.number_of_sales + 1,
            )
            .execution_options(synchronize_session=False)
        )
        if credited.rowcount == 0:
            # Seller account no longer exists; nobody to credit
            raise NotFoundError(resource="user", resource_id=note.owner_id)

        # ── Notifications (after commit) ──────────────────────────────────
        notification_service.notify(
            db,
            note.owner_id,
            translate("notify.note_sold.title"),
            translate("notify.note_sold.message", note_title=note.title, amount=split.seller_payout),
            type="purchase",
        )
        notification_service.notify(
            db,
            buyer_id,
            translate("notify.note_purchased.title"),
            translate("notify.note_purchased.message", note_title=note.title),
            type="sales",
        )

        logger.info(
            "Purchase settled: note=%s buyer=%s price=%s payout=%s commission=%s invoice=%s",
            note.id,
            buyer_id,
            note.price,
            split.seller_payout,
            split.commission,
            invoice_id,
        )
        return sale

    async def create_payment_link(self, db: AsyncSession, note_id: UUID, buyer_id: UUID) -> Invoice:
        """Create a hosted-checkout invoice for the note's current price."""
        note = await self._load_note(db, note_id)
        if note.owner_id == buyer_id:
            raise InvalidStateError(code="note.self_purchase")
        if await self.has_purchased(db, note_id, buyer_id):
            raise InvalidStateError(code="note.already_purchased")

        domain = settings.frontend_url.rstrip("/")
        invoice = await payment_gateway.create_invoice(
            amount=note.price,
            description=f"Note {note.id}: {note.title}",
            success_url=f"{domain}/payment-success?noteId={note.id}&userId={buyer_id}",
            back_url=f"{domain}/checkout?noteId={note.id}",
            callback_url=f"{domain}/api/payment/callback",
        )
        logger.info("Payment link created: note=%s buyer=%s invoice=%s", note.id, buyer_id, invoice.id)
        return invoice


# ── Singleton Instance ────────────────────────────────────────────────────
purchase_service = PurchaseService()
