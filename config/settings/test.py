# config/settings/test.py
from .base import *  # noqa

DEBUG = False

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

# Generation is always faked in tests; these only need to be present.
OPENAI_API_KEY = "test-key"
OPENAI_BASE_URL = None
OPENAI_MODEL = "gpt-5"

AUDIT_ALLOW_CLOSE_FROM_DRAFT = True

LOGGING["root"]["level"] = "WARNING"  # noqa: F405
