import os
from pathlib import Path
from datetime import timedelta

BASE_DIR = Path(__file__).resolve().parent.parent.parent  # racine du projet
ENV = os.environ.get

# -----------------------
#  Sécurité de base
# -----------------------
SECRET_KEY = ENV("DJANGO_SECRET_KEY", "change-me-in-prod")
DEBUG = ENV("DJANGO_DEBUG", "False").lower() == "true"
ALLOWED_HOSTS = [h for h in ENV("DJANGO_ALLOWED_HOSTS", "").split(",") if h] or []

# -----------------------
#  Applications
# -----------------------
INSTALLED_APPS = [
    # Prometheus doit entourer Django pour collecter des métriques
    "django_prometheus",
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",

    # Tiers
    "import_export",
    "corsheaders",
    "rest_framework",
    "rest_framework_simplejwt",

    "clinical",
    "diagnosticreport",
]

# -----------------------
#  Middleware
# -----------------------
MIDDLEWARE = [
    "django_prometheus.middleware.PrometheusBeforeMiddleware",

    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "corsheaders.middleware.CorsMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",

    "django_prometheus.middleware.PrometheusAfterMiddleware",
]

ROOT_URLCONF = "fhirmodule.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "fhirmodule.wsgi.application"
ASGI_APPLICATION = "fhirmodule.asgi.application"

# -----------------------
#  Base de données
# -----------------------
DATABASES = {
    "default": {
        "ENGINE": "django_prometheus.db.backends.postgresql",
        "NAME": ENV("DATABASE_NAME", "emrdb"),
        "USER": ENV("DATABASE_USER", "emruser"),
        "PASSWORD": ENV("DATABASE_PASSWORD", "emrpass"),
        "HOST": ENV("DATABASE_HOST", "localhost"),
        "PORT": ENV("DATABASE_PORT", "5432"),
        "CONN_MAX_AGE": int(ENV("DJANGO_DB_CONN_MAX_AGE", "0")),
    }
}

# -----------------------
#  Cache / Sessions
# -----------------------
REDIS_URL = ENV("REDIS_URL", "redis://127.0.0.1:6379/1")

CACHES = {
    "default": {
        "BACKEND": "django_redis.cache.RedisCache",
        "LOCATION": REDIS_URL,
        "OPTIONS": {
            "CLIENT_CLASS": "django_redis.client.DefaultClient",
            "CONNECTION_POOL_KWARGS": {"max_connections": 100},
        },
        "TIMEOUT": int(ENV("CACHE_TIMEOUT", "300")),
    }
}

# Sessions stockées en cache Redis
SESSION_ENGINE = "django.contrib.sessions.backends.cache"
SESSION_CACHE_ALIAS = "default"

# -----------------------
#  Internationalisation
# -----------------------
LANGUAGE_CODE = ENV("LANGUAGE_CODE", "fr-fr")
TIME_ZONE = ENV("TIME_ZONE", "Africa/Abidjan")
USE_I18N = True
USE_TZ = True

# -----------------------
#  Static
# -----------------------
STATIC_URL = "/static/"
STATIC_ROOT = ENV("DJANGO_STATIC_ROOT", str(BASE_DIR / "staticfiles"))

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# -----------------------
#  Auth / OIDC / JWT
# -----------------------
# Les clients obtiennent un JWT OIDC signé par Keycloak ; DRF le valide via simplejwt + clé publique.
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": (
        "rest_framework_simplejwt.authentication.JWTAuthentication",
    ),
    "DEFAULT_PERMISSION_CLASSES": (
        "rest_framework.permissions.IsAuthenticated",
    ),
    "DEFAULT_RENDERER_CLASSES": (
        "rest_framework.renderers.JSONRenderer",
    ),
}

SIMPLE_JWT = {
    "ALGORITHM": "RS256",
    "SIGNING_KEY": None,  # on vérifie via la clé publique
    "VERIFYING_KEY": ENV("JWT_VERIFYING_KEY", ""),
    "AUDIENCE": ENV("OIDC_AUDIENCE", "emr-fhir"),
    "ISSUER": ENV("OIDC_ISSUER", "https://sso.example.org/realms/emr"),
    "AUTH_HEADER_TYPES": ("Bearer",),
    "ACCESS_TOKEN_LIFETIME": timedelta(minutes=int(ENV("JWT_ACCESS_MIN", "30"))),
    "USER_ID_CLAIM": "sub",
}

# -----------------------
#  CORS / CSRF
# -----------------------
CORS_ALLOW_ALL_ORIGINS = ENV("CORS_ALLOW_ALL", "False").lower() == "true"
if not CORS_ALLOW_ALL_ORIGINS:
    CORS_ALLOWED_ORIGINS = [o for o in ENV("CORS_ALLOWED_ORIGINS", "").split(",") if o]

CSRF_TRUSTED_ORIGINS = [o for o in ENV("CSRF_TRUSTED_ORIGINS", "").split(",") if o]

# -----------------------
#  Logging
# -----------------------
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{asctime} {levelname} {name} {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": ENV("ROOT_LOG_LEVEL", "WARNING"),
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": ENV("DJANGO_LOG_LEVEL", "INFO"),
            "propagate": False,
        },
        "django.db.backends": {
            "handlers": ["console"],
            "level": ENV("DJANGO_DB_LOG_LEVEL", "WARNING"),
            "propagate": False,
        },
        "diagnosticreport": {
            "handlers": ["console"],
            "level": ENV("FHIR_LOG_LEVEL", "INFO"),
            "propagate": False,
        },
    },
}

# -----------------------
#  FHIR DiagnosticReport
# -----------------------
# Chaque code de concept et le rôle peuvent être surchargés par propriété globale
# (fhir.diagnosticReport.*Concept, fhir.encounter.encounterRole).
FHIR_DIAGNOSTIC_REPORT = {
    "HANDLERS": {
        "LAB": "LaboratoryHandler",
        "DEFAULT": "DefaultDiagnosticReportHandler",
    },
    "ORDER_TYPE_TO_HANDLER_MAP": {
        "Test Order": "LAB",
        "Default": "DEFAULT",
    },
    "CONCEPTS": {
        "NAME": ENV("FHIR_REPORT_NAME_CONCEPT", "DIAGNOSTIC_REPORT_NAME"),
        "STATUS": ENV("FHIR_REPORT_STATUS_CONCEPT", "DIAGNOSTIC_REPORT_STATUS"),
        "RESULT": ENV("FHIR_REPORT_RESULT_CONCEPT", "DIAGNOSTIC_REPORT_RESULT"),
        "PRESENTED_FORM": ENV("FHIR_REPORT_PRESENTED_FORM_CONCEPT", "DIAGNOSTIC_REPORT_PRESENTED_FORM"),
        "IMAGING_STUDY": ENV("FHIR_REPORT_IMAGING_STUDY_CONCEPT", "DIAGNOSTIC_REPORT_IMAGING_STUDY"),
    },
    "ENCOUNTER_ROLE": ENV("FHIR_ENCOUNTER_ROLE", "Unknown"),
    "GLOBAL_PROPERTY_CACHE_TIMEOUT": int(ENV("FHIR_GLOBAL_PROPERTY_CACHE_TIMEOUT", "300")),
}

# -----------------------
#  Sécurité (base)
# -----------------------
SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")  # si derrière Traefik/Nginx
X_FRAME_OPTIONS = "DENY"
