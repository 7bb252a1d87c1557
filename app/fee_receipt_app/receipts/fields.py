from __future__ import annotations

# Canonical column names expected in every uploaded data sheet, in template order.
NAME_OF_THE_STUDENT = "NAME OF THE STUDENT"
DATE = "DATE"
CAT = "CAT"
IN_WORDS = "IN WORDS"
YEAR_AND_COURSE = "YEAR & COURSE"
TUITION_FEE = "TUITION FEE"
DEV_FEE = "DEV. FEE"
EXAM_FEE = "EXAM FEE"
ENROLLMENT_FEE = "ENROLLMENT FEE"
OTHER_FEE = "OTHER FEE"
TOTAL = "TOTAL"
BANK_NAME = "BANK NAME"
PAY_ORDER_NO = "PAY ORDER NO."
EMAIL = "EMAIL"
STUDENT_ENROLLMENT_ID = "STUDENT_ENROLLMENT_ID"

REQUIRED_FIELDS: tuple[str, ...] = (
    NAME_OF_THE_STUDENT,
    DATE,
    CAT,
    IN_WORDS,
    YEAR_AND_COURSE,
    TUITION_FEE,
    DEV_FEE,
    EXAM_FEE,
    ENROLLMENT_FEE,
    OTHER_FEE,
    TOTAL,
    BANK_NAME,
    PAY_ORDER_NO,
    EMAIL,
    STUDENT_ENROLLMENT_ID,
)

# Canonical column -> StudentRecord attribute.
FIELD_ATTRIBUTES: dict[str, str] = {
    NAME_OF_THE_STUDENT: "student_name",
    DATE: "date",
    CAT: "category",
    IN_WORDS: "amount_in_words",
    YEAR_AND_COURSE: "year_and_course",
    TUITION_FEE: "tuition_fee",
    DEV_FEE: "development_fee",
    EXAM_FEE: "exam_fee",
    ENROLLMENT_FEE: "enrollment_fee",
    OTHER_FEE: "other_fee",
    TOTAL: "total",
    BANK_NAME: "bank_name",
    PAY_ORDER_NO: "pay_order_no",
    EMAIL: "email_address",
    STUDENT_ENROLLMENT_ID: "enrollment_id",
}

FEE_FIELDS: frozenset[str] = frozenset(
    {TUITION_FEE, DEV_FEE, EXAM_FEE, ENROLLMENT_FEE, OTHER_FEE, TOTAL}
)

# Rows missing any of these are dropped. The strict set applies unless disabled in config.
IDENTITY_FIELDS: tuple[str, ...] = (NAME_OF_THE_STUDENT,)
STRICT_IDENTITY_FIELDS: tuple[str, ...] = (NAME_OF_THE_STUDENT, EMAIL, PAY_ORDER_NO)

# Substrings that mark a raw header as the e-mail column.
EMAIL_HEADER_HINTS: tuple[str, ...] = ("email", "mail")

RECEIPT_NO_PLACEHOLDER = "receipt_no"
RECEIPT_NO_SOURCE_FIELD = STUDENT_ENROLLMENT_ID

# Template placeholder -> canonical column it is filled from.
PLACEHOLDER_FIELDS: dict[str, str] = {
    "date": DATE,
    "caste": CAT,
    "name": NAME_OF_THE_STUDENT,
    "In_words": IN_WORDS,
    "engineering": YEAR_AND_COURSE,
    "Tuition_Fee": TUITION_FEE,
    "Development": DEV_FEE,
    "Board_Exam": EXAM_FEE,
    "Enrollment_Fee": ENROLLMENT_FEE,
    "Others_fee": OTHER_FEE,
    "TOTAL": TOTAL,
    "Bank_Name": BANK_NAME,
    "Pay_Order": PAY_ORDER_NO,
}

PLACEHOLDER_NAMES: tuple[str, ...] = (RECEIPT_NO_PLACEHOLDER, *PLACEHOLDER_FIELDS)

SAMPLE_ROW: dict[str, str] = {
    NAME_OF_THE_STUDENT: "Asha Rao",
    DATE: "2024-01-15",
    CAT: "GEN",
    IN_WORDS: "Four Thousand Only",
    YEAR_AND_COURSE: "FY-CS",
    TUITION_FEE: "3000",
    DEV_FEE: "500",
    EXAM_FEE: "300",
    ENROLLMENT_FEE: "100",
    OTHER_FEE: "100",
    TOTAL: "4000",
    BANK_NAME: "SBI",
    PAY_ORDER_NO: "PO-1001",
    EMAIL: "asha@example.com",
    STUDENT_ENROLLMENT_ID: "ENR-1001",
}
