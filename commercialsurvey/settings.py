"""Django settings for the Commercial Survey project.

These settings configure the behaviour of the seller survey application. It
defines installed apps, middleware, database configuration, static files
handling, template directories and the feature flags consumed by the
``survey`` app. Where appropriate, sensible defaults have been chosen to make
the project easy to run out of the box with SQLite as the database backend.
"""

from __future__ import annotations

import os
import warnings
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import parse_qsl, unquote, urlparse

from django.core.exceptions import ImproperlyConfigured

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent

# Load environment variables from a local .env file for development setups.
def load_env_file(path: Path) -> None:
    if not path.exists():
        return

    for line in path.read_text().splitlines():
        if not line or line.strip().startswith("#"):
            continue

        if "=" not in line:
            continue

        key, value = line.split("=", 1)
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
            value = value[1:-1]
        os.environ.setdefault(key.strip(), value)


# Prefer a local .env file but fall back to .env.sample for convenience when the
# project is first checked out. The sample values are intentionally insecure and
# should be overridden in real deployments.
env_path = BASE_DIR / ".env"
sample_env_path = BASE_DIR / ".env.sample"

if env_path.exists():
    load_env_file(env_path)
elif sample_env_path.exists():
    warnings.warn(
        ".env not found; using values from .env.sample. Create a .env file to "
        "override these defaults.",
        RuntimeWarning,
        stacklevel=2,
    )
    load_env_file(sample_env_path)


def env_required(name: str) -> str:
    """Fetch a required environment variable or raise a helpful error."""

    value = os.getenv(name)
    if not value:
        raise ImproperlyConfigured(
            f"Set the {name} environment variable (see .env.sample for defaults)."
        )
    return value


def env_bool(name: str, default: bool) -> bool:
    """Parse a boolean flag, keeping ``default`` for unset or unknown values."""

    raw = os.getenv(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    return default


def database_from_url(url: Optional[str]) -> Dict[str, Any]:
    """Translate a ``DATABASE_URL`` into a Django ``DATABASES`` entry.

    PostgreSQL URLs (``postgres://`` or ``postgresql://``) map onto the
    psycopg2 backend and keep any query string options such as ``sslmode``.
    An empty URL falls back to a SQLite file next to ``manage.py``.
    """

    if not url:
        return {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': BASE_DIR / 'db.sqlite3',
        }

    parsed = urlparse(url)
    if parsed.scheme == 'sqlite':
        name = unquote(parsed.path[1:] if parsed.path.startswith('//') else parsed.path)
        return {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': name or BASE_DIR / 'db.sqlite3',
        }
    if parsed.scheme not in ('postgres', 'postgresql'):
        raise ImproperlyConfigured(f"Unsupported DATABASE_URL scheme: {parsed.scheme!r}")

    options = dict(parse_qsl(parsed.query))
    # Prefer encrypted connections; can be overridden via ?sslmode= or PGSSLMODE
    options.setdefault('sslmode', os.getenv('PGSSLMODE', 'prefer'))
    return {
        'ENGINE': 'django.db.backends.postgresql',
        'NAME': unquote(parsed.path.lstrip('/')),
        'USER': unquote(parsed.username or ''),
        'PASSWORD': unquote(parsed.password or ''),
        'HOST': parsed.hostname or '',
        'PORT': str(parsed.port or ''),
        # Keep connections open for a minute to improve performance for repeated queries
        'CONN_MAX_AGE': 60,
        'OPTIONS': options,
    }


# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = env_required("DJANGO_SECRET_KEY")

# SECURITY WARNING: don't run with debug turned on in production!
# Default to disabled unless explicitly enabled via DJANGO_DEBUG.
DEBUG = os.getenv("DJANGO_DEBUG", "False").lower() in ("true", "1", "yes")

ALLOWED_HOSTS: list[str] = [
    host.strip()
    for host in os.getenv("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1").split(",")
    if host.strip()
]


# Application definition
INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'survey',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'whitenoise.middleware.WhiteNoiseMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'commercialsurvey.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        # Look for templates in the survey application's templates directory
        'DIRS': [os.path.join(BASE_DIR, 'survey', 'templates')],
        'APP_DIRS': True,
        'OPTIONS': {
            'builtins': [
                'django.templatetags.static',
            ],
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
                'survey.context_processors.survey_context',
            ],
        },
    },
]

WSGI_APPLICATION = 'commercialsurvey.wsgi.application'


# Database
# https://docs.djangoproject.com/en/5.1/ref/settings/#databases
# DATABASE_URL takes precedence, falling back to the legacy aliases used by
# earlier deployments so existing environments keep working unchanged.
DATABASE_URL = (
    os.getenv('DATABASE_URL')
    or os.getenv('commercial_survey_DATABASE_URL')
    or os.getenv('COMMERCIAL_SURVEY_DATABASE_URL')
)
DATABASES = {
    'default': database_from_url(DATABASE_URL),
}

# Password validation
# https://docs.djangoproject.com/en/5.1/ref/settings/#auth-password-validators
AUTH_PASSWORD_VALIDATORS = [
    {
        'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator',
        'OPTIONS': {'min_length': 8},
    },
]

# Sessions are kept in a signed cookie carrying the user id; the role is read
# from the profile on every request.
SESSION_ENGINE = 'django.contrib.sessions.backends.signed_cookies'
SESSION_COOKIE_HTTPONLY = True
SESSION_COOKIE_SECURE = env_bool('DJANGO_SECURE_COOKIES', not DEBUG)
CSRF_COOKIE_SECURE = SESSION_COOKIE_SECURE

# Internationalization
# https://docs.djangoproject.com/en/5.1/topics/i18n/

LANGUAGE_CODE = 'en-us'

TIME_ZONE = 'America/Sao_Paulo'

USE_I18N = True

USE_TZ = True


# Static files (CSS, JavaScript, Images)
# https://docs.djangoproject.com/en/5.1/howto/static-files/
STATIC_URL = '/static/'
STATICFILES_DIRS = [os.path.join(BASE_DIR, 'survey', 'static')]
STATIC_ROOT = os.path.join(BASE_DIR, 'staticfiles')

# Default primary key field type
# https://docs.djangoproject.com/en/5.1/ref/settings/#default-auto-field
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# Where Django should redirect after successful login
LOGIN_REDIRECT_URL = 'home'
LOGIN_URL = 'login'


# ---------------------------------------------------------------------------
# Survey behaviour
# ---------------------------------------------------------------------------

# When enabled, sellers that reached the results step can no longer navigate
# back to earlier steps and the step actions refuse further saves.
LOCK_RESULTS_NAV = env_bool('LOCK_RESULTS_NAV', True)

# Public base URL used in e-mailed links.  ``SITE_URL`` takes precedence,
# falling back to the legacy ``NEXTAUTH_URL`` variable.
SITE_URL = os.getenv('SITE_URL', os.getenv('NEXTAUTH_URL', '')).rstrip('/')

# Password reset links stay valid for thirty minutes.
PASSWORD_RESET_TTL_MINUTES = int(os.getenv('PASSWORD_RESET_TTL_MINUTES', '30'))


# ---------------------------------------------------------------------------
# Outgoing e-mail
# ---------------------------------------------------------------------------

# SMTP delivery is enabled when SMTP_HOST is present; otherwise messages are
# written to the console so development setups still show reset links.
SMTP_HOST = os.getenv('SMTP_HOST', '')
if SMTP_HOST:
    EMAIL_BACKEND = 'django.core.mail.backends.smtp.EmailBackend'
    EMAIL_HOST = SMTP_HOST
    EMAIL_PORT = int(os.getenv('SMTP_PORT', '587'))
    EMAIL_HOST_USER = os.getenv('SMTP_USER', '')
    EMAIL_HOST_PASSWORD = os.getenv('SMTP_PASS', '')
    # Port 465 implies implicit TLS; other ports upgrade with STARTTLS.
    EMAIL_USE_SSL = env_bool('SMTP_SECURE', False) or EMAIL_PORT == 465
    EMAIL_USE_TLS = not EMAIL_USE_SSL
    EMAIL_TIMEOUT = int(os.getenv('SMTP_TIMEOUT', '20'))
else:
    EMAIL_BACKEND = 'django.core.mail.backends.console.EmailBackend'
DEFAULT_FROM_EMAIL = os.getenv('EMAIL_FROM', 'Inventa <no-reply@inventa.shop>')


# ---------------------------------------------------------------------------
# Abuse protection (both optional and best-effort)
# ---------------------------------------------------------------------------

TURNSTILE_SITE_KEY = os.getenv('TURNSTILE_SITE_KEY', '')
TURNSTILE_SECRET_KEY = os.getenv('TURNSTILE_SECRET_KEY', '')
TURNSTILE_VERIFY_URL = 'https://challenges.cloudflare.com/turnstile/v0/siteverify'
UPSTASH_REDIS_REST_URL = os.getenv('UPSTASH_REDIS_REST_URL', '').rstrip('/')
UPSTASH_REDIS_REST_TOKEN = os.getenv('UPSTASH_REDIS_REST_TOKEN', '')
EXTERNAL_HTTP_TIMEOUT = int(os.getenv('EXTERNAL_HTTP_TIMEOUT', '5'))


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'plain': {
            'format': '%(asctime)s | %(levelname)s | %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'plain',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'survey': {
            'handlers': ['console'],
            'level': LOG_LEVEL,
            'propagate': False,
        },
    },
}
