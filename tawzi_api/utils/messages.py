# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
User-facing messages (Arabic), kept in one place.
"""

BENEFICIARY_NOT_FOUND = "رقم الهوية غير موجود في النظام"
INVALID_PASSWORD = "كلمة المرور غير صحيحة"
INVALID_PHONE = "رقم الهاتف غير صحيح"
CURRENT_PASSWORD_INVALID = "كلمة المرور الحالية غير صحيحة"
LOGIN_SUCCEEDED = "تم تسجيل الدخول بنجاح"

PARCELS_LOAD_FAILED = "حدث خطأ أثناء تحميل الطرود"
STORE_UNAVAILABLE = "حدث خطأ في الاتصال، الرجاء المحاولة مرة أخرى"

COMPLAINT_EMPTY = "الرجاء كتابة نص الشكوى"
COMPLAINT_SENT = "تم إرسال الشكوى بنجاح"
COMPLAINT_FAILED = "حدث خطأ أثناء إرسال الشكوى"

PASSWORD_TOO_SHORT = "كلمة المرور يجب أن تكون {min_length} أحرف على الأقل"
PASSWORD_MISMATCH = "كلمتا المرور غير متطابقتين"
PASSWORD_CHANGED = "تم تغيير كلمة المرور بنجاح"
CREDENTIAL_VERIFIED = "تم التحقق بنجاح"

SESSION_REQUIRED = "الرجاء تسجيل الدخول"
SESSION_EXPIRED = "انتهت الجلسة، الرجاء تسجيل الدخول مرة أخرى"
LOGGED_OUT = "تم تسجيل الخروج"

BENEFICIARY_MISSING = "لم يتم العثور على بيانات المستفيد"
INVALID_REQUEST = "البيانات المدخلة غير صحيحة"
UNEXPECTED_ERROR = "حدث خطأ غير متوقع"


def invalid_credential(password_mode: bool, current: bool = False) -> str:
    """Mismatch message for the beneficiary's active credential mode."""
    if password_mode:
        return CURRENT_PASSWORD_INVALID if current else INVALID_PASSWORD
    return INVALID_PHONE


def password_too_short(min_length: int) -> str:
    return PASSWORD_TOO_SHORT.format(min_length=min_length)
