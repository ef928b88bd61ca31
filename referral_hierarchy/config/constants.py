"""
Application constants.

Centralized constants for the referral hierarchy engine.
"""

# ========================================================================
# HIERARCHY
# ========================================================================

# Maximum hierarchy depth over which visibility is evaluated.
# Closure rows deeper than this are never created.
VISIBILITY_CAP = 2

DIRECT_DEPTH = 1
INDIRECT_DEPTH = 2

# ========================================================================
# PRIVACY
# ========================================================================

PRIVACY_PUBLIC = "public"
PRIVACY_PRIVATE = "private"
PRIVACY_VALUES = (PRIVACY_PUBLIC, PRIVACY_PRIVATE)

# user_configs.config keys
PROFILE_PRIVACY_KEY = "profile_privacy"
INFORMATION_PUBLICITY_KEY = "information_publicity"
EMAIL_SUBSCRIPTION_KEY = "email_subscription"
LANGUAGE_KEY = "language"

PRIVACY_KEYS = (PROFILE_PRIVACY_KEY, INFORMATION_PUBLICITY_KEY)

# Personal fields nulled when information exposure is private
CONTACT_FIELDS = (
    "email",
    "phone_number",
    "dob",
    "gender",
    "country",
    "bio",
    "website",
)

# ========================================================================
# CACHE
# ========================================================================

REFERRALS_CACHE_PREFIX = "referrals"
SUB_REFERRALS_CACHE_PREFIX = "sub-referrals"
LISTING_CACHE_PREFIXES = (REFERRALS_CACHE_PREFIX, SUB_REFERRALS_CACHE_PREFIX)

# SCAN batch size used by pattern invalidation
CACHE_SCAN_COUNT = 200
