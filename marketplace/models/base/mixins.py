"""
Reusable model mixins.
"""

from sqlalchemy import Integer
from sqlalchemy.orm import Mapped, mapped_column


class VersionMixin:
    """
    Mixin for optimistic concurrency.

    Guarded status transitions bump ``version`` in the same UPDATE that
    checks the expected status.
    """

    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        comment="Row version, incremented on every guarded transition"
    )
