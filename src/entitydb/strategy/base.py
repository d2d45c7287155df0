"""
Base strategy interface for SQL dialects.

Defines the abstract base class that every dialect implementation inherits
from. The statement builders and the execution façade work against this
interface only, so placeholder syntax, identifier quoting and generated-key
retrieval live in one place per dialect instead of in parallel code paths.
"""
import enum
import json
import re
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from entitydb.fields import FieldKind

if TYPE_CHECKING:
    from entitydb.options import DatabaseOptions

# Registry of dialect name -> strategy class
# Defined here to avoid circular imports (concrete strategies import from base)
_STRATEGY_REGISTRY: dict[str, type['DialectStrategy']] = {}


def register_strategy(dialect: str):
    """Decorator to register a strategy class for a dialect.

    Usage:
        @register_strategy('postgresql')
        class PostgresStrategy(DialectStrategy):
            ...
    """
    def decorator(cls: type['DialectStrategy']) -> type['DialectStrategy']:
        _STRATEGY_REGISTRY[dialect] = cls
        return cls
    return decorator


class DialectStrategy(ABC):
    """Base class for dialect-specific statement handling.
    """

    #: True when placeholders are numbered ($1, $2) rather than positional (?)
    numbered: bool = False

    #: Matches ``IN <placeholder>`` occurrences rewritten by IN expansion
    in_pattern: re.Pattern

    #: False when VALUES lists cannot hold the DEFAULT keyword; such columns
    #: are left out of the INSERT instead
    default_keyword: bool = True

    def __init__(self, quote_identifiers: bool = False) -> None:
        self.quote_identifiers = quote_identifiers

    @property
    @abstractmethod
    def dialect_name(self) -> str:
        """Return the dialect identifier (e.g., 'postgresql', 'sqlite')."""

    @abstractmethod
    def placeholder(self, position: int) -> str:
        """Return the placeholder for the 1-based parameter position.

        Args:
            position: Position of the parameter in the final parameter list
        """

    @abstractmethod
    def to_driver(self, sql: str, params: Sequence[Any]) -> tuple[str, tuple]:
        """Translate a statement into the driver's paramstyle.

        Args:
            sql: Statement using this dialect's placeholders
            params: Positional parameters

        Returns
            Tuple of (driver sql, driver params)
        """

    @abstractmethod
    def returning_clause(self, column: str) -> str:
        """Clause appended to INSERT to return the generated key, or ''.

        Args:
            column: Already quoted key column
        """

    @abstractmethod
    def last_insert_id(self, cursor: Any) -> Any:
        """Read the generated key after an INSERT has executed.

        Args:
            cursor: Raw DBAPI cursor that ran the INSERT

        Returns
            The generated key, or None when the driver reported nothing
        """

    @abstractmethod
    def enable_autocommit(self, raw_conn: Any) -> None:
        """Enable auto-commit mode on a raw database connection.

        Args:
            raw_conn: The raw DBAPI connection (not wrapped)
        """

    @abstractmethod
    def disable_autocommit(self, raw_conn: Any) -> None:
        """Disable auto-commit mode on a raw database connection.

        Args:
            raw_conn: The raw DBAPI connection (not wrapped)
        """

    @abstractmethod
    def is_autocommit(self, raw_conn: Any) -> bool:
        """Report whether the raw connection currently auto-commits.

        Args:
            raw_conn: The raw DBAPI connection (not wrapped)
        """

    @abstractmethod
    def configure_connection(self, conn: Any) -> None:
        """Configure connection settings.

        Args:
            conn: Database connection to configure with dialect-specific settings
        """

    @abstractmethod
    def build_connection_url(self, options: 'DatabaseOptions') -> sa.URL:
        """Build the database connection URL for this dialect.

        Args:
            options: DatabaseOptions containing connection parameters

        Returns
            SQLAlchemy URL
        """

    @abstractmethod
    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for this dialect.

        Args:
            options: DatabaseOptions containing connection parameters
        """

    @classmethod
    @abstractmethod
    def get_required_options(cls) -> list[str]:
        """Return list of required option field names for this dialect.

        Returns
            List of field names that must have non-None/non-zero values
        """

    @classmethod
    def validate_options(cls, options: 'DatabaseOptions') -> None:
        """Validate options for this dialect.

        Args:
            options: DatabaseOptions to validate

        Raises
            ValueError: If any required field is None or 0
        """
        for field in cls.get_required_options():
            if not getattr(options, field):
                raise ValueError(f'field {field} cannot be None or 0')

    def quote_identifier(self, identifier: str) -> str:
        """Quote a table or column name when the strategy is set to.

        Default implementation returns the identifier untouched.

        Args:
            identifier: Database identifier

        Returns
            str: Identifier as it goes into statement text
        """
        return identifier

    def order_params(self, values: Sequence[Any],
                     filter_params: Sequence[Any]) -> tuple[int, tuple]:
        """Combine SET values with the parameters of a filter fragment.

        Numbered dialects keep the caller's numbering for the filter and
        number the SET values after it. Positional dialects follow text
        order, where SET precedes WHERE.

        Returns
            Tuple of (offset for SET placeholder numbering, combined params)
        """
        if self.numbered:
            return len(filter_params), (*filter_params, *values)
        return 0, (*values, *filter_params)

    def adapt_value(self, kind: FieldKind, value: Any) -> Any:
        """Convert a field value into something the driver can bind.

        Sequences and mappings are stored as JSON text.
        """
        if value is None:
            return None
        if isinstance(value, enum.Enum):
            value = value.value
        if kind in {FieldKind.SEQUENCE, FieldKind.MAPPING}:
            if isinstance(value, (set, frozenset)):
                value = list(value)
            return json.dumps(value, default=str)
        return value
