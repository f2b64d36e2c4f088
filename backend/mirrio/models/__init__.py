"""ORM Models — SQLAlchemy declarative models for all domain entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - Group is the aggregate root for rounds, points and used-statement markers

Design Decisions:
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references and Base.metadata is complete before create_all / autogenerate
"""

from mirrio.models.content import Edition, Statement  # noqa: F401
from mirrio.models.group import Group, GroupMember  # noqa: F401
from mirrio.models.round import Round  # noqa: F401
from mirrio.models.vote import Vote  # noqa: F401
from mirrio.models.round_result import RoundResult  # noqa: F401
from mirrio.models.ledger import UsedStatement, Points, Comment  # noqa: F401
