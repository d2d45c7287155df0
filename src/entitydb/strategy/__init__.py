"""
Dialect strategy factory.
"""
from functools import lru_cache
from typing import Any

from entitydb.strategy.base import _STRATEGY_REGISTRY
from entitydb.strategy.base import DialectStrategy as DialectStrategy
from entitydb.strategy.base import register_strategy as register_strategy
from entitydb.strategy.postgres import PostgresStrategy as PostgresStrategy
from entitydb.strategy.sqlite import SQLiteStrategy as SQLiteStrategy
from entitydb.utils import get_dialect_name


def _validate_dialect(dialect: str) -> None:
    """Raise ValueError if dialect is not registered."""
    if dialect not in _STRATEGY_REGISTRY:
        available = list(_STRATEGY_REGISTRY.keys())
        raise ValueError(f'Unsupported dialect: {dialect}. Available: {available}')


@lru_cache(maxsize=8)
def _get_strategy(dialect: str, quote_identifiers: bool | None) -> DialectStrategy:
    """Get cached strategy instance for a dialect and quoting mode."""
    _validate_dialect(dialect)
    cls = _STRATEGY_REGISTRY[dialect]
    if quote_identifiers is None:
        return cls()
    return cls(quote_identifiers=quote_identifiers)


def get_strategy(dialect: str, quote_identifiers: bool | None = None) -> DialectStrategy:
    """Get strategy instance for a dialect name.

    This is the public interface for getting a strategy when you have a dialect
    name string but not a connection object. ``quote_identifiers=None`` keeps
    the dialect's default.
    """
    return _get_strategy(dialect, quote_identifiers)


def get_db_strategy(cn: Any) -> DialectStrategy:
    """Get dialect strategy for a connection wrapper or raw DBAPI connection.

    A wrapper's options decide identifier quoting.
    """
    dialect = get_dialect_name(cn)
    options = getattr(cn, 'options', None)
    quote_identifiers = getattr(options, 'quote_identifiers', None)
    return _get_strategy(dialect, quote_identifiers)


def get_available_dialects() -> list[str]:
    """Return list of registered dialect names."""
    return list(_STRATEGY_REGISTRY.keys())


def is_supported_dialect(dialect: str) -> bool:
    """Check if a dialect is supported."""
    return dialect in _STRATEGY_REGISTRY


def get_strategy_class(dialect: str) -> type['DialectStrategy']:
    """Get the strategy class for a dialect without instantiating."""
    _validate_dialect(dialect)
    return _STRATEGY_REGISTRY[dialect]
