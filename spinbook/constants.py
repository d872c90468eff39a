"""Marketplace-wide constants"""

APP_NAME = "SpinBook HQ"
LAUNCH_REGION = "DMV"

DJ_GENRES = [
    "Afrobeats",
    "Amapiano",
    "Hip-Hop",
    "R&B",
    "House",
    "Reggae",
    "Dancehall",
    "Top 40",
    "Gospel",
    "Soca",
]

# Booking lifecycle
STATUS_NEW = "new"
STATUS_ACCEPTED = "accepted"
STATUS_DECLINED = "declined"
STATUS_CLOSED = "closed"
BOOKING_STATUSES = [STATUS_NEW, STATUS_ACCEPTED, STATUS_DECLINED, STATUS_CLOSED]
# Statuses a DJ may set directly; acceptance goes through the quote flow
DJ_SETTABLE_STATUSES = [STATUS_DECLINED, STATUS_CLOSED]

# Deposit and platform fee rules
DEPOSIT_AMOUNT_CENTS = 20000
DEPOSIT_CURRENCY = "usd"
DEPOSIT_SPLIT_PLATFORM_CENTS = 8000
DEPOSIT_SPLIT_DJ_CENTS = 12000
MIN_QUOTED_TOTAL = 450
PLATFORM_FEE_RATE = 0.10
PLATFORM_FEE_PAID_FROM_DEPOSIT = 80
BALANCE_DUE_DAYS_BEFORE_EVENT = 7
DEPOSIT_POLICY = (
    "Deposit is $200. $80 to SpinBook, $120 to DJ. Deposit is non-refundable if client "
    "fails to pay full balance 7 days before event. SpinBook earns 10% of agreed total; "
    "remaining fee owed by DJ."
)

EXPERIENCE_BANDS = {
    "1-3": "1–3 years",
    "3-5": "3–5 years",
    "5+": "5+ years",
}

BIO_MAX_LENGTH = 600
PUBLIC_TOKEN_MIN_LENGTH = 10

COMPANY_BCC = "spinbookhq@gmail.com"
DEFAULT_FROM_ADDRESS = "SpinBook HQ <no-reply@spinbookhq.com>"
SENDER_DOMAIN = "@spinbookhq.com"
