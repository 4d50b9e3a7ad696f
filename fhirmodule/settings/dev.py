from .base import *

DJANGO_ENV = 'dev'
DEBUG = True
ALLOWED_HOSTS = ["*"]

# CORS dev : plus permissif
CORS_ALLOW_ALL_ORIGINS = True

# Logging verbeux en dev
LOGGING["loggers"]["diagnosticreport"]["level"] = ENV("FHIR_LOG_LEVEL", "DEBUG")

DATABASES = {
    "default": {
        "ENGINE": "django_prometheus.db.backends.postgresql",
        "NAME": os.environ.get("DATABASE_NAME", "emrdb"),
        "USER": os.environ.get("DATABASE_USER", "postgres"),
        "PASSWORD": os.environ.get("DATABASE_PASSWORD", "postgres"),
        "HOST": os.environ.get("DATABASE_HOST", "localhost"),
        "PORT": os.environ.get("DATABASE_PORT", "5432"),
        "CONN_MAX_AGE": 60,  # connexion persistante modérée en local
        "OPTIONS": {
            "sslmode": os.environ.get("PGSSLMODE", "prefer"),
            "application_name": "emr-fhir-local",
        },
    }
}
