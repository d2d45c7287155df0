"""
Entity dataclasses shared by unit and integration tests.

The sqlite and postgres fixtures create tables matching these entities.
"""
import datetime
from dataclasses import dataclass, field
from decimal import Decimal

import pytest
from entitydb import column


@dataclass
class User:
    id: int = 0
    name: str = ''
    email: str = column('mail', default='')
    age: int = 0
    score: float = 0.0
    active: bool = True
    created_at: datetime.datetime | None = None
    tags: list[str] = field(default_factory=list)
    profile: dict = field(default_factory=dict)
    balance: Decimal = Decimal(0)

    @classmethod
    def table_name(cls):
        return 'users'


@dataclass
class Purchase:
    purchase_id: int = column('id', default=0)
    user_id: int = 0
    amount: Decimal = Decimal(0)
    placed_on: datetime.date | None = None
    user: User | None = None


@dataclass(frozen=True)
class Tag:
    id: int = 0
    label: str = ''


@dataclass
class AuditLog:
    message: str = ''


@dataclass
class UserSummary:
    """Partial projection of users; unknown result columns are ignored."""
    name: str = ''
    age: int = 0
    rank: str = 'unranked'

    def table_name(self):
        return 'users'


@pytest.fixture
def make_users():
    """Factory for unsaved users."""
    def factory(*names):
        return [User(name=name, email=f'{name.lower()}@example.com', age=20 + i,
                     score=1.5 * i, tags=[name.lower()], profile={'n': i},
                     balance=Decimal('10.25') * i)
                for i, name in enumerate(names)]
    return factory
