from pathlib import Path

from environs import Env

env = Env()
env.read_env(recurse=False)

BASE_DIR = Path(__file__).resolve().parent.parent.parent

SECRET_KEY = env.str('SECRET_KEY', 'django-insecure-q7w!r2k#u0m8z$3v9p@x1c5n6b4t-dev-only')

ALLOWED_HOSTS = env.list('ALLOWED_HOSTS', [])

INSTALLED_APPS = [
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'catalog',
    'quotes',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'core.urls'

WSGI_APPLICATION = 'core.wsgi.application'

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# Logging
LOG_LEVEL = env.str('LOG_LEVEL', 'INFO')
LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'default': {
            'format': '%(asctime)s %(levelname)s %(name)s: %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'default',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'catalog': {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False},
        'quotes': {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False},
        'core': {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False},
    },
}

# Celery
CELERY_BROKER_URL = env.str('CELERY_BROKER_URL', 'redis://localhost:6379/0')
CELERY_RESULT_BACKEND = CELERY_BROKER_URL
CELERY_TASK_IGNORE_RESULT = True
CELERY_BEAT_SCHEDULE = {
    'sync-catalog-every-30-min': {
        'task': 'catalog.tasks.run_catalog_sync',
        'schedule': 1800,
        'kwargs': {'kind': 'incremental', 'triggered_by': 'scheduled'},
    },
    'cleanup-catalog-cache-daily': {
        'task': 'catalog.tasks.cleanup_catalog_cache',
        'schedule': 86400,
        'kwargs': {'days_to_keep': env.int('CATALOG_RETENTION_DAYS', 30)},
    },
}

# Public front-end that serves the signature page
APP_BASE_URL = env.str('APP_BASE_URL', 'http://localhost:5173')
QUOTE_LINK_TTL_DAYS = env.int('QUOTE_LINK_TTL_DAYS', 7)

# WooCommerce API
WOOCOMMERCE_URL = env.str('WOOCOMMERCE_URL', 'https://shop.example.com')
WOOCOMMERCE_KEY = env.str('WOOCOMMERCE_KEY', '')
WOOCOMMERCE_SECRET = env.str('WOOCOMMERCE_SECRET', '')
WOOCOMMERCE_TIMEOUT = env.float('WOOCOMMERCE_TIMEOUT', 30.0)

# Catalog sync; the source class can be swapped via env
CATALOG_SOURCE_CLASS = env.str('CATALOG_SOURCE_CLASS', 'catalog.sources.woocommerce.WooCommerceSource')
CATALOG_SYNC_BATCH_SIZE = env.int('CATALOG_SYNC_BATCH_SIZE', 100)
CATALOG_STALE_MINUTES = env.int('CATALOG_STALE_MINUTES', 60)

# Email
EMAIL_ENABLED = env.bool('EMAIL_ENABLED', False)
EMAIL_BACKEND = 'django.core.mail.backends.smtp.EmailBackend'
EMAIL_HOST = env.str('EMAIL_HOST', 'localhost')
EMAIL_PORT = env.int('EMAIL_PORT', 587)
EMAIL_HOST_USER = env.str('EMAIL_HOST_USER', '')
EMAIL_HOST_PASSWORD = env.str('EMAIL_HOST_PASSWORD', '')
EMAIL_USE_TLS = env.bool('EMAIL_USE_TLS', True)
EMAIL_TIMEOUT = env.int('EMAIL_TIMEOUT', 15)
DEFAULT_FROM_EMAIL = env.str('DEFAULT_FROM_EMAIL', 'noreply@localhost')
PRODUCTION_EMAILS = env.list('PRODUCTION_EMAILS', [])

# Webhooks
WEBHOOK_QUOTE_SIGNED = env.str('WEBHOOK_QUOTE_SIGNED', '')
WEBHOOK_QUOTE_REJECTED = env.str('WEBHOOK_QUOTE_REJECTED', '') or WEBHOOK_QUOTE_SIGNED
WEBHOOK_TIMEOUT = env.float('WEBHOOK_TIMEOUT', 10.0)
