"""
Expected Dataset Loading

Reads the YAML document describing the expected database state and decodes
it into tagged values. The top level maps table names to lists of rows;
each row maps column names to scalars, sequences or mappings.
"""

import logging
import re
from collections import OrderedDict
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml

from dbcomparer.exceptions import LoadError

logger = logging.getLogger(__name__)

_TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"
_INT_TAG = "tag:yaml.org,2002:int"
_FLOAT_TAG = "tag:yaml.org,2002:float"

# YAML 1.1 number patterns without the base-60 forms, so 10:30:00 stays text
_INT_PATTERN = re.compile(r"""^(?:[-+]?0b[0-1_]+
    |[-+]?0[0-7_]+
    |[-+]?(?:0|[1-9][0-9_]*)
    |[-+]?0x[0-9a-fA-F_]+)$""", re.X)
_FLOAT_PATTERN = re.compile(r"""^(?:[-+]?(?:[0-9][0-9_]*)\.[0-9_]*(?:[eE][-+][0-9]+)?
    |\.[0-9_]+(?:[eE][-+][0-9]+)?
    |[-+]?\.(?:inf|Inf|INF)
    |\.(?:nan|NaN|NAN))$""", re.X)


class _DatasetLoader(yaml.SafeLoader):
    """SafeLoader that keeps unquoted timestamps and clock times as plain strings."""
    pass


_DatasetLoader.yaml_implicit_resolvers = {
    first: [
        (tag, regexp) for tag, regexp in resolvers
        if tag not in (_TIMESTAMP_TAG, _INT_TAG, _FLOAT_TAG)
    ]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}
_DatasetLoader.add_implicit_resolver(_INT_TAG, _INT_PATTERN, list("-+0123456789"))
_DatasetLoader.add_implicit_resolver(_FLOAT_TAG, _FLOAT_PATTERN, list("-+0123456789."))


class ValueKind(Enum):
    """Kinds of loosely-typed values a dataset document can hold."""
    NULL = "null"
    BOOL = "bool"
    NUMBER = "number"
    STRING = "string"
    SEQUENCE = "sequence"
    MAPPING = "mapping"


@dataclass(frozen=True)
class ExpectedValue:
    """
    A decoded dataset value tagged with its kind.

    Attributes:
        kind: Which variant the value is
        value: The payload; nested ExpectedValue items for SEQUENCE and
            MAPPING, None for NULL
    """

    kind: ValueKind
    value: Any = None

    @classmethod
    def from_yaml(cls, raw: Any) -> "ExpectedValue":
        """Tag a value produced by the YAML loader."""
        if raw is None:
            return cls(ValueKind.NULL)
        if isinstance(raw, bool):
            return cls(ValueKind.BOOL, raw)
        if isinstance(raw, (int, float, Decimal)):
            return cls(ValueKind.NUMBER, raw)
        if isinstance(raw, str):
            return cls(ValueKind.STRING, raw)
        if isinstance(raw, list):
            return cls(ValueKind.SEQUENCE, tuple(cls.from_yaml(item) for item in raw))
        if isinstance(raw, dict):
            return cls(
                ValueKind.MAPPING,
                tuple((str(key), cls.from_yaml(item)) for key, item in raw.items())
            )
        # Explicitly tagged scalars (!!timestamp, !!binary) compare as text
        return cls(ValueKind.STRING, str(raw))

    @property
    def is_null(self) -> bool:
        return self.kind is ValueKind.NULL

    def to_python(self) -> Any:
        """Unwrap back into plain Python containers and scalars."""
        if self.kind is ValueKind.SEQUENCE:
            return [item.to_python() for item in self.value]
        if self.kind is ValueKind.MAPPING:
            return {key: item.to_python() for key, item in self.value}
        return self.value


ExpectedRow = Dict[str, ExpectedValue]
ExpectedDataset = Dict[str, List[ExpectedRow]]


def parse_dataset(document: Any) -> ExpectedDataset:
    """
    Decode a parsed YAML document into an expected dataset.

    Tables and columns keep their declaration order. A table declared with
    no rows (``employee:`` or ``employee: []``) expects the table to be empty.

    Args:
        document: Result of loading the YAML document

    Returns:
        Ordered mapping of table name to list of rows

    Raises:
        LoadError: If the document is not a mapping of table names to
            lists of mappings
    """
    if document is None:
        return OrderedDict()

    if not isinstance(document, dict):
        raise LoadError(
            f"dataset must be a mapping of table names to rows, got {type(document).__name__}"
        )

    dataset: ExpectedDataset = OrderedDict()
    for table, rows in document.items():
        if not isinstance(table, str):
            raise LoadError(f"table name must be a string, got {table!r}")
        if rows is None:
            rows = []
        if not isinstance(rows, list):
            raise LoadError(f"table {table} must hold a list of rows, got {type(rows).__name__}")

        decoded_rows = []
        for index, row in enumerate(rows):
            if not isinstance(row, dict):
                raise LoadError(f"row {index} of table {table} must be a mapping, got {type(row).__name__}")
            decoded_rows.append(OrderedDict(
                (str(column), ExpectedValue.from_yaml(value)) for column, value in row.items()
            ))
        dataset[table] = decoded_rows

    return dataset


def loads_dataset(text: str) -> ExpectedDataset:
    """Parse an expected dataset from YAML text."""
    try:
        document = yaml.load(text, Loader=_DatasetLoader)
    except yaml.YAMLError as e:
        raise LoadError(f"invalid dataset document: {e}") from e
    return parse_dataset(document)


def load_dataset(path: Union[str, Path]) -> ExpectedDataset:
    """
    Read and decode an expected dataset file.

    Args:
        path: Path of the YAML dataset file

    Returns:
        Ordered mapping of table name to list of rows

    Raises:
        LoadError: If the file cannot be read or is malformed
    """
    dataset_path = Path(path)
    try:
        text = dataset_path.read_text(encoding="utf-8")
    except OSError as e:
        logger.error(f"Failed to read dataset {dataset_path}: {e}")
        raise LoadError(f"cannot read dataset {dataset_path}: {e}") from e

    dataset = loads_dataset(text)
    logger.info(f"Loaded dataset {dataset_path} with {len(dataset)} tables")
    return dataset
