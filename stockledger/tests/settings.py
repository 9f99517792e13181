"""
Django settings for the Stockledger test suite.

The test database is a file (not :memory:) so threads opened by the
concurrency tests see the same data as the test itself.
"""

import os
import tempfile

SECRET_KEY = 'stockledger-tests'

USE_TZ = True

INSTALLED_APPS = [
    'stockledger',
]

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': os.path.join(tempfile.gettempdir(), 'stockledger.sqlite3'),
        'OPTIONS': {
            'timeout': 30,
            'transaction_mode': 'IMMEDIATE',
        },
        'TEST': {
            'NAME': os.path.join(tempfile.gettempdir(), 'test_stockledger.sqlite3'),
        },
    },
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

STOCKLEDGER = {
    'CATALOG_BACKEND': 'stockledger.adapters.noop.NoopCatalog',
    'VALIDATE_REFERENCES': True,
}

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'handlers': {
        'console': {'class': 'logging.StreamHandler'},
    },
    'loggers': {
        'stockledger': {'handlers': ['console'], 'level': 'WARNING'},
    },
}
