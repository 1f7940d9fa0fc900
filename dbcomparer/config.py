"""
Configuration for dataset comparisons.

Connection settings come from the environment; per-table ordering and
ignore lists can be kept in a YAML options file next to the datasets:

    order_by:
      employee: [id]
    ignore_columns:
      employee: [updated_at]
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Union

import yaml

logger = logging.getLogger(__name__)

ColumnsByTable = Dict[str, List[str]]


@dataclass
class ComparerSettings:
    """
    Connection settings.

    Attributes:
        dsn: libpq connection string; takes precedence over Vault
        vault_path: KV path of the database credentials secret
        pool_min: Minimum pooled connections
        pool_max: Maximum pooled connections
    """

    dsn: Optional[str] = None
    vault_path: Optional[str] = None
    pool_min: int = 1
    pool_max: int = 4

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ComparerSettings":
        """
        Read settings from DBCOMPARER_* environment variables.

        Raises:
            ValueError: If a pool size is not a positive integer or
                DBCOMPARER_POOL_MIN exceeds DBCOMPARER_POOL_MAX
        """
        environ = os.environ if environ is None else environ

        settings = cls(
            dsn=environ.get("DBCOMPARER_DSN") or None,
            vault_path=environ.get("DBCOMPARER_VAULT_PATH") or None,
            pool_min=_positive_int(environ, "DBCOMPARER_POOL_MIN", 1),
            pool_max=_positive_int(environ, "DBCOMPARER_POOL_MAX", 4),
        )
        if settings.pool_min > settings.pool_max:
            raise ValueError(
                f"DBCOMPARER_POOL_MIN ({settings.pool_min}) exceeds DBCOMPARER_POOL_MAX ({settings.pool_max})"
            )
        return settings


@dataclass
class CompareOptions:
    """Per-table ordering columns and ignored columns."""

    order_by: ColumnsByTable = field(default_factory=dict)
    ignore_columns: ColumnsByTable = field(default_factory=dict)


def load_compare_options(path: Union[str, Path]) -> CompareOptions:
    """
    Read ordering and ignore lists from a YAML file.

    Args:
        path: Options file path

    Returns:
        CompareOptions; sections missing from the file are empty

    Raises:
        OSError: If the file cannot be read
        ValueError: If a section is not a mapping of table to column list
    """
    options_path = Path(path)
    document = yaml.safe_load(options_path.read_text(encoding="utf-8")) or {}
    if not isinstance(document, dict):
        raise ValueError(f"{options_path}: options must be a mapping")

    options = CompareOptions(
        order_by=_columns_by_table(document, "order_by", options_path),
        ignore_columns=_columns_by_table(document, "ignore_columns", options_path),
    )
    logger.info(
        f"Loaded options from {options_path}: ordering for {len(options.order_by)} tables, "
        f"ignore lists for {len(options.ignore_columns)} tables"
    )
    return options


def _columns_by_table(document: dict, section: str, source: Path) -> ColumnsByTable:
    raw = document.get(section) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"{source}: {section} must map table names to column lists")

    result = {}
    for table, columns in raw.items():
        if isinstance(columns, str):
            columns = [columns]
        if not isinstance(columns, list) or not all(isinstance(c, str) for c in columns):
            raise ValueError(f"{source}: {section}.{table} must be a list of column names")
        result[str(table)] = list(columns)
    return result


def _positive_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value < 1:
        raise ValueError(f"{name} must be positive, got {value}")
    return value
