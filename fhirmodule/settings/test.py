from .base import *

DJANGO_ENV = 'test'
DEBUG = False
ALLOWED_HOSTS = ["*"]
SECRET_KEY = "test-secret-key"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "fhirmodule-tests",
    }
}
SESSION_ENGINE = "django.contrib.sessions.backends.db"

# Pas de JWT en test : les rôles passent par le header X-Roles ou force_authenticate
REST_FRAMEWORK = {
    **REST_FRAMEWORK,
    "DEFAULT_AUTHENTICATION_CLASSES": (),
    "DEFAULT_PERMISSION_CLASSES": (),
    "UNAUTHENTICATED_USER": None,
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

LOGGING["loggers"]["diagnosticreport"]["level"] = "DEBUG"
# caplog écoute sur le logger racine
LOGGING["loggers"]["diagnosticreport"]["propagate"] = True
