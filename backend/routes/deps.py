"""
Database dependencies (overridable in tests)
"""

import config


def get_client():
    return config.client


def get_db():
    return config.db
