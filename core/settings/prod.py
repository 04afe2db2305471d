from .base import *  # noqa: F401,F403
from .base import env

DEBUG = False

SECRET_KEY = env.str('SECRET_KEY')  # required, no default

ALLOWED_HOSTS = env.list('ALLOWED_HOSTS')

APP_BASE_URL = env.str('APP_BASE_URL')

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.postgresql',
        'NAME': env.str('POSTGRES_DB', 'quotes'),
        'USER': env.str('POSTGRES_USER', 'postgres'),
        'PASSWORD': env.str('POSTGRES_PASSWORD', 'postgres'),
        'HOST': env.str('POSTGRES_HOST', 'db'),
        'PORT': env.str('POSTGRES_PORT', '5432'),
        'CONN_MAX_AGE': env.int('POSTGRES_CONN_MAX_AGE', 60),
    }
}

# Security
SECURE_SSL_REDIRECT = env.bool('SECURE_SSL_REDIRECT', True)
SECURE_HSTS_SECONDS = env.int('SECURE_HSTS_SECONDS', 31536000)
SECURE_PROXY_SSL_HEADER = ('HTTP_X_FORWARDED_PROTO', 'https')
SESSION_COOKIE_SECURE = True
CSRF_COOKIE_SECURE = True
