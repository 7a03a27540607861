"""
tagcache Global Constants

Centralized location for constants shared across the package.
"""

# Application Constants
APP_NAME = "tagcache"
APP_VERSION = "0.1.0"

# Cache defaults
DEFAULT_EXPIRY_MINUTES = 30

# Index record prefixes
# tag:{tag}        -> set of keys carrying the tag (no expiry)
# key_tags:{key}   -> set of tags on the key (same expiry as the value)
TAG_PREFIX = "tag:"
KEY_TAGS_PREFIX = "key_tags:"

# Value object limits
MAX_KEY_LENGTH = 512
MAX_TAG_LENGTH = 128
