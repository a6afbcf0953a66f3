"""
ORM models. Importing this package registers every table on `Base.metadata`
(used by Alembic autogenerate and by the test fixtures' create_all).
"""

from aplus.models.announcement import Announcement, AnnouncementResponse
from aplus.models.course import Course, CourseLesson, CourseModule
from aplus.models.customer_rating import CustomerRating
from aplus.models.note import Note, NoteLike, NotePurchase, NoteReview
from aplus.models.notification import Notification
from aplus.models.sale import Sale
from aplus.models.user import User
from aplus.models.withdrawal import Withdrawal

__all__ = [
    "Announcement",
    "AnnouncementResponse",
    "Course",
    "CourseLesson",
    "CourseModule",
    "CustomerRating",
    "Note",
    "NoteLike",
    "NotePurchase",
    "NoteReview",
    "Notification",
    "Sale",
    "User",
    "Withdrawal",
]
