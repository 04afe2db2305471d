from .base import *  # noqa: F401,F403

DEBUG = False

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'
EMAIL_ENABLED = True
PRODUCTION_EMAILS = ['producao@example.com']

WEBHOOK_QUOTE_SIGNED = 'https://hooks.example.com/quotes/signed'
WEBHOOK_QUOTE_REJECTED = 'https://hooks.example.com/quotes/rejected'

WOOCOMMERCE_URL = 'https://shop.example.com'
WOOCOMMERCE_KEY = 'ck_test'
WOOCOMMERCE_SECRET = 'cs_test'

APP_BASE_URL = 'https://app.example.com'

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = False
CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = None

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'handlers': {'null': {'class': 'logging.NullHandler'}},
    'root': {'handlers': ['null']},
}
