"""Test settings for the HostelHub project.

SQLite, in-memory email and cache, Celery tasks executed eagerly. The
Paystack key is a placeholder so the gateway client emulates Paystack
unless a test patches it; webhook signatures are still checked against it.
"""

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
ADMINS = [('Operations', 'ops@hostelhub.local')]

CACHES = {
    'default': {'BACKEND': 'django.core.cache.backends.locmem.LocMemCache'},
}

STORAGES = {
    'default': {'BACKEND': 'django.core.files.storage.FileSystemStorage'},
    'staticfiles': {'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage'},
}

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = 'cache+memory://'

PAYSTACK_SECRET_KEY = 'sk_test_placeholder'
PAYSTACK_PUBLIC_KEY = 'pk_test_placeholder'
PAYSTACK_BASE_URL = 'https://api.paystack.test'
PAYSTACK_TIMEOUT = 5
CURRENCY_CODE = 'GHS'

BOOKING_REVERIFY_MAX_RETRIES = 2
BOOKING_SWEEP_AGE_MINUTES = 30

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'handlers': {'null': {'class': 'logging.NullHandler'}},
    'root': {'handlers': ['null'], 'level': 'CRITICAL'},
}

REST_FRAMEWORK = {
    **REST_FRAMEWORK,  # noqa: F405
    'DEFAULT_THROTTLE_RATES': {'payments': '1000/minute'},
}
