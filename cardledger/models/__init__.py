"""
SQLAlchemy ORM models package.

All models are imported here so that:
  1. Base.metadata knows every table before create_all() runs
  2. Other modules can import from cardledger.models directly
"""

from cardledger.models.user import User, UserRole  # noqa: F401
from cardledger.models.card import Card, CardStatus  # noqa: F401
from cardledger.models.transfer import Transfer, TransferStatus  # noqa: F401
