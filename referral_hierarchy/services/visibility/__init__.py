"""
Visibility services package.

- policy: Visibility decisions for (viewer, target) pairs
- privacy_config: Lazily initialised per-user settings
- redaction: Record serialisation with contact-field redaction
"""

from referral_hierarchy.services.visibility.policy import (
    ProfileAccess,
    ViewerContext,
    VisibilityDecision,
    VisibilityPolicy,
)
from referral_hierarchy.services.visibility.privacy_config import (
    PrivacyConfigService,
    default_config,
    validate_setting,
)
from referral_hierarchy.services.visibility.redaction import (
    redact,
    serialize_profile,
    serialize_referral,
)


__all__ = [
    "PrivacyConfigService",
    "ProfileAccess",
    "ViewerContext",
    "VisibilityDecision",
    "VisibilityPolicy",
    "default_config",
    "redact",
    "serialize_profile",
    "serialize_referral",
    "validate_setting",
]
