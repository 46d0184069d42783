"""
utils/constants.py

Purpose: Centralized static content

- Subscription tiers and job limits
- User-facing toast and push notification texts

(Prevents hardcoding across the codebase)
"""

# ============================================================
# SUBSCRIPTION TIERS
# ============================================================

TIERS = [
    {
        "id": "basic",
        "name": "Basic / Trial",
        "price": 0,
        "limit": 2,
        "features": ["2 Jobs Limit", "Basic Profile", "Standard Support"],
    },
    {
        "id": "lite",
        "name": "Verified Lite",
        "price": 3999,
        "limit": 6,
        "features": ["6 Jobs Limit", "Higher Visibility", "Basic Verification Badge"],
    },
    {
        "id": "standard",
        "name": "Verified Standard",
        "price": 6999,
        "limit": 10,
        "features": ["10 Jobs Limit", "Mid-Tier Priority", "Invoice Generator", "Dedicated Support"],
    },
    {
        "id": "pro",
        "name": "Verified Pro",
        "price": 9999,
        "limit": 15,
        "features": ["15 Jobs Limit", "High Priority", "Premium Alerts", "Insurance (Coming Soon)"],
    },
    {
        "id": "enterprise",
        "name": "Enterprise",
        "price": 14999,
        "limit": 999999,
        "features": ["Unlimited Jobs", "Max Priority", "Account Manager", "Bulk Tools"],
    },
]

DEFAULT_TIER = "basic"
DEFAULT_TIER_LIMIT = 2

# Paystack amounts are in kobo
KOBO_PER_NAIRA = 100

FALLBACK_EMAIL_DOMAIN = "velgo.ng"

# ============================================================
# TOASTS
# ============================================================

TOAST_KINDS = ("info", "success", "alert")

TOAST_NEW_MESSAGE = "New Message Received"
TOAST_NEW_JOB_REQUEST = "New Job Request!"
TOAST_WORKER_ACCEPTED = "Worker Accepted Your Job!"
TOAST_APPLICATION_ACCEPTED = "Hooray! Application Accepted."
TOAST_APPLICATION_DECLINED = "Update: Application Declined."

# ============================================================
# PUSH NOTIFICATIONS
# ============================================================

PUSH_DEFAULT_TITLE = "Velgo"
PUSH_DEFAULT_BODY = "New Activity"

PUSH_NEW_BOOKING_TITLE = "New Job Request! 🚀"
PUSH_NEW_BOOKING_BODY = "A client wants to hire you. Open to view details."

PUSH_BOOKING_ACCEPTED_TITLE = "Job Accepted! ✅"
PUSH_BOOKING_ACCEPTED_BODY = "Your worker has accepted. You can now chat."

PUSH_NEW_MESSAGE_TITLE = "New Message 💬"
PUSH_NEW_MESSAGE_BODY = "You received a new message."

# ============================================================
# PROFILE
# ============================================================

AVATAR_URL_TEMPLATE = "https://ui-avatars.com/api/?name={name}&background=10b981&color=fff"

SELF_SERVICE_ROLES = ("client", "worker")
CLIENT_TYPES = ("personal", "enterprise")
