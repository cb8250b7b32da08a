"""
Minimal Django settings for running the Larder test suite.
"""

SECRET_KEY = 'larder-tests'

INSTALLED_APPS = [
    'django.contrib.contenttypes',
    'larder',
]

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
    }
}

USE_TZ = True
TIME_ZONE = 'UTC'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

LARDER = {
    'DEFAULT_ALLOCATION_METHOD': 'FIFO',
}
