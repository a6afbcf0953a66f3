"""
A+ Marketplace Backend — Note Service
=======================================

What:  The notes catalog: publishing notes with their files, owner edits,
       public listing and detail, reviews, likes, the buyer's library and
       document downloads.
How:   Stateless service taking the request session. Uploads go through
       FileService first; if the DB write then fails the stored files are
       removed again.
Who:   routes/notes.py.

Access rules:
    - update / delete: note owner only
    - publish / unpublish: admin (enforced by the route)
    - download: owner or a buyer with a note_purchases row
    - review edit / delete: review author only
"""

import logging
from pathlib import Path
from typing import List, Optional, Tuple
from urllib.parse import quote
from uuid import UUID

from sqlalchemy import and_, asc, delete, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from aplus.database import flush_or_conflict
from aplus.exceptions import AplusError, NotFoundError, PermissionDeniedError, ValidationError
from aplus.messages import translate
from aplus.models.note import Note, NoteLike, NotePurchase, NoteReview
from aplus.models.user import User
from aplus.schemas.note import NoteCreate, NoteListParams, NoteUpdate, ReviewCreate, ReviewUpdate
from aplus.services.file_service import DOCUMENT, IMAGE, StoredFile, file_service
from aplus.services.notification_service import notification_service

logger = logging.getLogger(__name__)

AVATAR_URL = "https://ui-avatars.com/api/?name={name}&background=random&length=1&size=128"

UploadedFile = Tuple[str, bytes]


def avatar_for(name: str) -> str:
    return AVATAR_URL.format(name=quote(name))


class NoteService:
    """
    Business logic for notes, reviews and likes.

    Listing uses offset pagination (page/limit) with total counts, which the
    catalog UI renders as numbered pages.
    """

    # ── Lookups ───────────────────────────────────────────────────────────

    async def get_note_or_404(self, db: AsyncSession, note_id: UUID) -> Note:
        note = await db.get(Note, note_id)
        if note is None:
            raise NotFoundError(resource="note", resource_id=note_id)
        return note

    def _ensure_owner(self, note: Note, user: User) -> None:
        if note.owner_id != user.id:
            raise PermissionDeniedError(code="note.not_owner")

    # ── Create / update / delete ──────────────────────────────────────────

    async def create_note(
        self,
        db: AsyncSession,
        owner: User,
        data: NoteCreate,
        document: Optional[UploadedFile],
        cover: Optional[UploadedFile] = None,
    ) -> Note:
        """
        Store the PDF (and optional cover image), then insert the note.

        Raises:
            ValidationError: missing or invalid document / cover
        """
        if document is None or not document[1]:
            raise ValidationError(field="file", code="note.document_required")

        stored: List[StoredFile] = []
        try:
            doc = await file_service.upload(document[0], document[1], DOCUMENT)
            stored.append(doc)
            cover_url = None
            if cover is not None and cover[1]:
                image = await file_service.upload(cover[0], cover[1], IMAGE)
                stored.append(image)
                cover_url = image.url

            note = Note(
                owner_id=owner.id,
                title=data.title,
                description=data.description,
                subject=data.subject,
                price=data.price,
                file_path=doc.url,
                cover_url=cover_url,
                contact_method=data.contact_method,
                pages_number=data.pages_number,
                year=data.year,
                college=data.college,
                university=data.university,
                terms_accepted=data.terms_accepted,
            )
            db.add(note)
            await db.flush()
        except Exception:
            for item in stored:
                await file_service.cleanup_file(item.absolute_path)
            raise

        logger.info("Note created: id=%s owner=%s price=%s", note.id, owner.id, note.price)
        return note

    async def update_note(self, db: AsyncSession, note_id: UUID, user: User, data: NoteUpdate) -> Note:
        note = await self.get_note_or_404(db, note_id)
        self._ensure_owner(note, user)
        for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(note, field, value)
        await db.flush()
        return note

    async def delete_note(self, db: AsyncSession, note_id: UUID, user: User) -> None:
        """
        Remove the note with its reviews and likes. Purchase snapshots and
        sales stay; stored files are kept so buyers can still download.
        """
        note = await self.get_note_or_404(db, note_id)
        self._ensure_owner(note, user)

        await db.execute(delete(NoteReview).where(NoteReview.note_id == note.id))
        await db.execute(delete(NoteLike).where(NoteLike.note_id == note.id))
        await db.delete(note)
        await db.flush()

        notification_service.notify(
            db,
            user.id,
            translate("notify.note_deleted.title"),
            translate("notify.note_deleted.message", note_title=note.title),
            type="notes",
        )
        logger.info("Note deleted: id=%s", note_id)

    async def set_published(self, db: AsyncSession, note_id: UUID, published: bool) -> Note:
        note = await self.get_note_or_404(db, note_id)
        note.is_publish = published
        await db.flush()
        return note

    # ── Reads ─────────────────────────────────────────────────────────────

    async def get_note_detail(self, db: AsyncSession, note_id: UUID) -> dict:
        """Note with owner summary, reviews, average rating, like count and buyer ids."""
        note = await self.get_note_or_404(db, note_id)
        owner = await db.get(User, note.owner_id)
        reviews = await self.list_reviews(db, note.id)
        likes = (await db.execute(select(func.count()).where(NoteLike.note_id == note.id))).scalar() or 0
        buyers = await db.execute(
            select(NotePurchase.buyer_id)
            .where(NotePurchase.note_id == note.id)
            .order_by(NotePurchase.purchased_at)
        )
        average = round(sum(r.rating for r in reviews) / len(reviews), 2) if reviews else None
        return {
            "note": note,
            "owner": owner,
            "reviews": reviews,
            "average_rating": average,
            "likes_count": likes,
            "purchased_by": list(buyers.scalars().all()),
        }

    async def list_notes(self, db: AsyncSession, params: NoteListParams) -> Tuple[List[Note], int]:
        """
        Published notes matching the filters, in the requested order.

        Ordering: max_downloads → downloads desc, max_price → price desc,
        min_price → price asc (first match wins), then sort_by/sort_order.
        """
        conditions = [Note.is_publish.is_(True)]
        if params.title:
            conditions.append(func.lower(Note.title).contains(params.title.lower()))
        if params.university:
            conditions.append(Note.university == params.university)
        if params.college:
            conditions.append(Note.college == params.college)
        if params.year is not None:
            conditions.append(Note.year == params.year)
        where = and_(*conditions)

        direction = asc if params.sort_order == "asc" else desc
        ordering = []
        if params.max_downloads:
            ordering.append(desc(Note.downloads))
        elif params.max_price:
            ordering.append(desc(Note.price))
        elif params.min_price:
            ordering.append(asc(Note.price))
        ordering.append(direction(getattr(Note, params.sort_by)))

        total = (await db.execute(select(func.count(Note.id)).where(where))).scalar() or 0
        result = await db.execute(
            select(Note)
            .where(where)
            .order_by(*ordering)
            .offset((params.page - 1) * params.limit)
            .limit(params.limit)
        )
        return list(result.scalars().all()), total

    async def list_user_notes(self, db: AsyncSession, user_id: UUID) -> List[Note]:
        result = await db.execute(
            select(Note).where(Note.owner_id == user_id).order_by(Note.created_at.desc())
        )
        return list(result.scalars().all())

    async def list_purchased_notes(self, db: AsyncSession, buyer_id: UUID) -> List[NotePurchase]:
        result = await db.execute(
            select(NotePurchase)
            .where(NotePurchase.buyer_id == buyer_id)
            .order_by(NotePurchase.purchased_at.desc())
        )
        return list(result.scalars().all())

    # ── Reviews ───────────────────────────────────────────────────────────

    async def list_reviews(self, db: AsyncSession, note_id: UUID) -> List[NoteReview]:
        result = await db.execute(
            select(NoteReview).where(NoteReview.note_id == note_id).order_by(NoteReview.created_at.desc())
        )
        return list(result.scalars().all())

    async def add_review(self, db: AsyncSession, note_id: UUID, user: User, data: ReviewCreate) -> NoteReview:
        """One review per user per note; the note owner is notified."""
        note = await self.get_note_or_404(db, note_id)
        review = NoteReview(
            note_id=note.id,
            user_id=user.id,
            user_name=user.full_name,
            user_avatar=user.avatar or avatar_for(user.full_name),
            rating=data.rating,
            comment=data.comment,
        )
        db.add(review)
        await flush_or_conflict(db, code="review.already_exists")

        notification_service.notify(
            db,
            note.owner_id,
            translate("notify.review_added.title"),
            translate("notify.review_added.message", note_title=note.title),
            type="reviews",
        )
        return review

    async def _get_own_review(self, db: AsyncSession, note_id: UUID, review_id: UUID, user: User) -> NoteReview:
        review = await db.get(NoteReview, review_id)
        if review is None or review.note_id != note_id:
            raise NotFoundError(resource="review", resource_id=review_id)
        if review.user_id != user.id:
            raise PermissionDeniedError(code="review.not_author")
        return review

    async def update_review(
        self, db: AsyncSession, note_id: UUID, review_id: UUID, user: User, data: ReviewUpdate
    ) -> NoteReview:
        review = await self._get_own_review(db, note_id, review_id, user)
        for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(review, field, value)
        await db.flush()
        return review

    async def delete_review(self, db: AsyncSession, note_id: UUID, review_id: UUID, user: User) -> None:
        review = await self._get_own_review(db, note_id, review_id, user)
        await db.delete(review)
        await db.flush()

    # ── Likes ─────────────────────────────────────────────────────────────

    async def is_liked(self, db: AsyncSession, note_id: UUID, user_id: UUID) -> bool:
        return await db.get(NoteLike, (user_id, note_id)) is not None

    async def like_note(self, db: AsyncSession, note_id: UUID, user: User) -> None:
        await self.get_note_or_404(db, note_id)
        if await self.is_liked(db, note_id, user.id):
            return
        db.add(NoteLike(user_id=user.id, note_id=note_id))
        await db.flush()

    async def unlike_note(self, db: AsyncSession, note_id: UUID, user: User) -> None:
        await self.get_note_or_404(db, note_id)
        await db.execute(
            delete(NoteLike).where(NoteLike.user_id == user.id, NoteLike.note_id == note_id)
        )

    async def list_liked_notes(self, db: AsyncSession, user_id: UUID) -> List[Note]:
        result = await db.execute(
            select(Note)
            .join(NoteLike, NoteLike.note_id == Note.id)
            .where(NoteLike.user_id == user_id)
            .order_by(NoteLike.created_at.desc())
        )
        return list(result.scalars().all())

    # ── Download ──────────────────────────────────────────────────────────

    async def download_note(self, db: AsyncSession, note_id: UUID, user: User) -> Tuple[Path, str]:
        """
        Resolve the stored document for the owner or a buyer.

        Deleted notes stay downloadable for buyers through their snapshot.

        Returns:
            (absolute path, download filename)
        """
        note = await db.get(Note, note_id)
        purchase = (
            await db.execute(
                select(NotePurchase).where(
                    NotePurchase.note_id == note_id,
                    NotePurchase.buyer_id == user.id,
                )
            )
        ).scalar_one_or_none()

        if note is None and purchase is None:
            raise NotFoundError(resource="note", resource_id=note_id)
        is_owner = note is not None and note.owner_id == user.id
        if not is_owner and purchase is None:
            raise PermissionDeniedError(code="note.download_forbidden")

        url = note.file_path if note is not None else purchase.file_path
        title = note.title if note is not None else purchase.title
        relative = file_service.relative_from_url(url)
        if relative is None:
            raise NotFoundError(resource="file", resource_id=url)
        try:
            path = file_service.resolve(relative)
        except AplusError:
            logger.error("Stored document missing for note %s: %s", note_id, url)
            raise
        return path, f"{title}.pdf"


# ── Singleton Instance ────────────────────────────────────────────────────
note_service = NoteService()
