"""
A+ Marketplace Backend — Message Catalog
==========================================

What:  User-facing texts (error messages and notification bodies) keyed by a
       stable code, in English and Arabic.
How:   `translate(code, **params)` looks the code up for the configured
       locale, falls back to English, and formats `{placeholders}`.
Who:   Used by the exception hierarchy and by services that emit notifications.
"""

from typing import Any, Dict, Optional

from aplus.config import settings


MESSAGES: Dict[str, Dict[str, str]] = {
    # ── Generic ──────────────────────────────────────────────────────────
    "error.unexpected": {
        "en": "An unexpected error occurred. Please try again or contact support.",
        "ar": "حدث خطأ غير متوقع، يرجى المحاولة مرة أخرى أو التواصل مع الدعم",
    },
    "error.validation": {
        "en": "Validation failed",
        "ar": "البيانات المرسلة غير صالحة",
    },
    "error.database": {
        "en": "A database error occurred. Please try again later.",
        "ar": "حدث خطأ في قاعدة البيانات، يرجى المحاولة لاحقاً",
    },
    "error.file_storage": {
        "en": "File storage operation failed",
        "ar": "فشل حفظ الملف",
    },
    "error.rate_limited": {
        "en": "Rate limit exceeded. Please wait {retry_after} seconds before making more requests.",
        "ar": "تم تجاوز الحد المسموح من الطلبات، يرجى الانتظار {retry_after} ثانية",
    },
    "error.gateway_unavailable": {
        "en": "The payment service is temporarily unavailable. Retry in about {recovery_time} seconds.",
        "ar": "خدمة الدفع غير متاحة مؤقتاً، أعد المحاولة بعد {recovery_time} ثانية تقريباً",
    },
    "error.payment_gateway": {
        "en": "The payment service could not process the request.",
        "ar": "تعذر على خدمة الدفع معالجة الطلب",
    },
    "record.duplicate": {
        "en": "This record already exists",
        "ar": "هذا السجل موجود مسبقاً",
    },
    "resource.not_found": {
        "en": "The requested {resource} was not found",
        "ar": "العنصر المطلوب ({resource}) غير موجود",
    },
    # ── Authentication ───────────────────────────────────────────────────
    "auth.missing_token": {
        "en": "Access denied: missing token",
        "ar": "غير مصرح لك بالوصول، يرجى تسجيل الدخول",
    },
    "auth.invalid_token": {
        "en": "Access denied: invalid token",
        "ar": "رمز المصادقة غير صالح",
    },
    "auth.token_expired": {
        "en": "Access denied: token expired",
        "ar": "انتهت صلاحية رمز المصادقة",
    },
    "auth.invalid_credentials": {
        "en": "Invalid email or password",
        "ar": "البريد الإلكتروني أو كلمة المرور غير صحيحة",
    },
    "auth.forbidden": {
        "en": "You are not allowed to perform this action",
        "ar": "ليس لديك صلاحية للقيام بهذا الإجراء",
    },
    # ── Users ────────────────────────────────────────────────────────────
    "user.not_found": {
        "en": "User not found",
        "ar": "المستخدم غير موجود",
    },
    "user.email_taken": {
        "en": "An account with this email already exists",
        "ar": "يوجد حساب مسجل بهذا البريد الإلكتروني",
    },
    "user.avatar_required": {
        "en": "An image file is required for the avatar",
        "ar": "يجب تحميل صورة",
    },
    # ── Notes ────────────────────────────────────────────────────────────
    "note.not_found": {
        "en": "Note not found",
        "ar": "الملخص المطلوب غير موجود",
    },
    "note.self_purchase": {
        "en": "You cannot purchase your own note",
        "ar": "لا يمكنك شراء ملخص خاص بك",
    },
    "note.already_purchased": {
        "en": "You have already purchased this note",
        "ar": "لقد قمت بشراء هذا الملخص مسبقاً",
    },
    "note.not_owner": {
        "en": "You are not allowed to modify this note",
        "ar": "غير مسموح لك بتعديل هذا الملخص",
    },
    "note.download_forbidden": {
        "en": "Purchase this note to download it",
        "ar": "يجب شراء الملخص لتتمكن من تحميله",
    },
    "note.document_required": {
        "en": "A PDF document is required to publish a note",
        "ar": "ملف PDF مطلوب لنشر الملخص",
    },
    "review.not_found": {
        "en": "Review not found",
        "ar": "المراجعة غير موجودة",
    },
    "review.already_exists": {
        "en": "You have already reviewed this note",
        "ar": "لقد قمت بتقييم هذا الملخص مسبقاً",
    },
    "review.not_author": {
        "en": "You are not allowed to change this review",
        "ar": "غير مسموح لك بتعديل هذه المراجعة",
    },
    # ── Sales & payments ─────────────────────────────────────────────────
    "sale.not_found": {
        "en": "Sale not found",
        "ar": "عملية البيع غير موجودة",
    },
    "sale.forbidden": {
        "en": "You are not allowed to view these sales",
        "ar": "غير مسموح لك بعرض تفاصيل هذه المبيعات",
    },
    "payment.not_settled": {
        "en": "Invoice {invoice_id} has not been paid",
        "ar": "الفاتورة {invoice_id} غير مدفوعة",
    },
    "payment.amount_mismatch": {
        "en": "Invoice {invoice_id} does not match the note price",
        "ar": "مبلغ الفاتورة {invoice_id} لا يطابق سعر الملخص",
    },
    # ── Withdrawals ──────────────────────────────────────────────────────
    "withdrawal.not_found": {
        "en": "Withdrawal request not found",
        "ar": "طلب السحب غير موجود",
    },
    "withdrawal.invalid_transition": {
        "en": "A {current} withdrawal cannot be marked as {target}",
        "ar": "لا يمكن تحويل طلب سحب بحالة {current} إلى {target}",
    },
    "withdrawal.insufficient_balance": {
        "en": "Insufficient balance for this withdrawal",
        "ar": "الرصيد غير كافٍ لإتمام عملية السحب",
    },
    "withdrawal.no_attempts_left": {
        "en": "You have used all withdrawal requests for this month",
        "ar": "رصيد مرات السحب المتاحة يساوي صفر",
    },
    "withdrawal.not_owner": {
        "en": "You are not allowed to access this withdrawal",
        "ar": "غير مسموح لك بالوصول إلى طلب السحب هذا",
    },
    "withdrawal.not_editable": {
        "en": "Only pending withdrawal requests can be changed",
        "ar": "يمكن تعديل طلبات السحب المعلقة فقط",
    },
    "withdrawal.not_deletable": {
        "en": "Only pending or rejected withdrawal requests can be deleted",
        "ar": "يمكن حذف طلبات السحب المعلقة أو المرفوضة فقط",
    },
    # ── Notifications ────────────────────────────────────────────────────
    "notification.not_found": {
        "en": "Notification not found",
        "ar": "الإشعار غير موجود",
    },
    # ── Courses & announcements ──────────────────────────────────────────
    "course.not_found": {
        "en": "Course not found",
        "ar": "الدورة غير موجودة",
    },
    "course.not_owner": {
        "en": "You are not allowed to modify this course",
        "ar": "عذرًا، لا تملك صلاحية لتعديل هذه الدورة",
    },
    "module.not_found": {
        "en": "Module not found",
        "ar": "عذرًا، لم يتم العثور على الوحدة المطلوبة",
    },
    "announcement.not_found": {
        "en": "Announcement not found",
        "ar": "الإعلان غير موجود",
    },
    "announcement.not_creator": {
        "en": "You are not allowed to delete this announcement",
        "ar": "ليس لديك صلاحية لحذف هذا الإعلان",
    },
    "announcement.question_options": {
        "en": "A question needs at least two options",
        "ar": "يجب إضافة خيارين على الأقل للسؤال",
    },
    "announcement.not_question": {
        "en": "This announcement is not a question",
        "ar": "هذا الإعلان ليس سؤالاً",
    },
    "announcement.already_responded": {
        "en": "You have already responded",
        "ar": "لقد قمت بالرد بالفعل",
    },
    "announcement.invalid_answer": {
        "en": "The selected answer is not one of the options",
        "ar": "الإجابة المختارة غير صالحة",
    },
    # ── Customer ratings ─────────────────────────────────────────────────
    "rating.not_found": {
        "en": "Rating not found",
        "ar": "لم يتم العثور على التقييم المطلوب",
    },
    "rating.already_exists": {
        "en": "You have already submitted a rating",
        "ar": "تمت إضافة تقييم لهذا العميل مسبقًا",
    },
    "rating.not_author": {
        "en": "You are not allowed to change this rating",
        "ar": "غير مسموح لك بتعديل هذا التقييم",
    },
    # ── Files ────────────────────────────────────────────────────────────
    "file.not_found": {
        "en": "File not found",
        "ar": "الملف غير موجود",
    },
    "file.invalid_path": {
        "en": "Invalid file path",
        "ar": "مسار الملف غير صالح",
    },
    "file.unsupported_type": {
        "en": "File type '{extension}' is not supported. Allowed types: {allowed}",
        "ar": "نوع الملف '{extension}' غير مدعوم. الأنواع المسموحة: {allowed}",
    },
    "file.unsupported_content": {
        "en": "File content type '{mime}' is not supported",
        "ar": "محتوى الملف من النوع '{mime}' غير مدعوم",
    },
    "file.too_large": {
        "en": "File size exceeds maximum of {max_mb}MB",
        "ar": "حجم الملف يتجاوز الحد الأقصى {max_mb} ميجابايت",
    },
    "file.empty": {
        "en": "The uploaded file is empty",
        "ar": "الملف المرفوع فارغ",
    },
    # ── Notification bodies ──────────────────────────────────────────────
    "notify.note_sold.title": {
        "en": "💰 One of your notes was sold!",
        "ar": "💰 تم بيع أحد ملخّصاتك!",
    },
    "notify.note_sold.message": {
        "en": "Congratulations! \"{note_title}\" was purchased. {amount} was added to your balance.",
        "ar": "مبروك! تم شراء \"{note_title}\" وأضيف {amount} إلى رصيدك 🎉",
    },
    "notify.note_purchased.title": {
        "en": "🎉 Purchase complete",
        "ar": "🎉 تهانينا! تمت عملية الشراء",
    },
    "notify.note_purchased.message": {
        "en": "You can now access \"{note_title}\" from your library 📚",
        "ar": "يمكنك الآن الوصول إلى \"{note_title}\" من مكتبتك 📚",
    },
    "notify.note_deleted.title": {
        "en": "Note deleted",
        "ar": "تم حذف الملخص بنجاح 🎉",
    },
    "notify.note_deleted.message": {
        "en": "Your note \"{note_title}\" was deleted.",
        "ar": "تم حذف الملخص \"{note_title}\" بنجاح",
    },
    "notify.review_added.title": {
        "en": "New review 🎉",
        "ar": "تم إضافة تقييم جديد 🎉",
    },
    "notify.review_added.message": {
        "en": "A new review was added to \"{note_title}\"",
        "ar": "تم إضافة تقييم جديد للملخص \"{note_title}\"",
    },
    "notify.withdrawal_accepted.title": {
        "en": "Withdrawal accepted 💸",
        "ar": "تم قبول طلب سحب 💸",
    },
    "notify.withdrawal_accepted.message": {
        "en": "Your withdrawal request was accepted and will be processed soon.",
        "ar": "تم قبول طلب السحب الخاص بك، وسيتم معالجة المبلغ في أقرب وقت ممكن",
    },
    "notify.withdrawal_rejected.title": {
        "en": "Withdrawal rejected 💸",
        "ar": "تم رفض طلب سحب 💸",
    },
    "notify.withdrawal_rejected.message": {
        "en": "Your withdrawal request was rejected. Contact support if you have questions.",
        "ar": "تم رفض طلب السحب الخاص بك. إذا كان لديك أي أسئلة، يرجى التواصل مع الدعم",
    },
    "notify.withdrawal_completed.title": {
        "en": "Withdrawal completed 💸",
        "ar": "تم إكمال طلب سحب 💸",
    },
    "notify.withdrawal_completed.message": {
        "en": "{amount} was transferred. Please check your bank account.",
        "ar": "تم تحويل {amount}. يرجى التحقق من حسابك المصرفي",
    },
}


def translate(code: str, locale: Optional[str] = None, **params: Any) -> str:
    """
    Resolve a message code to text in the requested (or configured) locale.

    Unknown codes are returned unchanged; missing placeholders leave the
    template as-is rather than raising.
    """
    entry = MESSAGES.get(code)
    if entry is None:
        return code
    template = entry.get(locale or settings.locale) or entry["en"]
    try:
        return template.format(**params)
    except (KeyError, IndexError):
        return template
