# inout/triplets.py
"""
Load and validate YAML triplet inputs for the assembly driver.

Expected layout::

    shape: [3, 3]
    options: {deduplicate: true, sort: true}
    triplets:
      - [0, 0, 2.4]
      - [0, 2, 0.6]
    refresh:
      - [4.8, 1.2]
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Tuple, Union

import yaml
from cerberus import Validator

from core.exceptions import ConfigError
from core.pipeline import AssemblyOptions
from utils.logging_config import get_logger

logger = get_logger(__name__)


TRIPLET_SCHEMA: Dict[str, Any] = {
    'shape': {
        'type': 'list',
        'required': True,
        'minlength': 2,
        'maxlength': 2,
        'schema': {'type': 'integer', 'min': 0},
    },
    'options': {
        'type': 'dict',
        'required': False,
        'schema': {
            'deduplicate': {'type': 'boolean', 'default': True},
            'sort': {'type': 'boolean', 'default': True},
        },
    },
    'triplets': {
        'type': 'list',
        'required': True,
        'schema': {
            'type': 'list',
            'items': [
                {'type': 'integer'},
                {'type': 'integer'},
                {'type': 'number'},
            ],
        },
    },
    'refresh': {
        'type': 'list',
        'required': False,
        'schema': {
            'type': 'list',
            'schema': {'type': 'number'},
        },
    },
}


@dataclass
class TripletInput:
    shape: Tuple[int, int]
    rows: List[int]
    cols: List[int]
    values: List[float]
    refresh_rounds: List[List[float]] = field(default_factory=list)
    options: AssemblyOptions = field(default_factory=AssemblyOptions)

    @property
    def n_triplets(self) -> int:
        return len(self.rows)


def parse_triplet_document(raw: Any) -> TripletInput:
    """
    Validate an already-loaded document against TRIPLET_SCHEMA.

    Raises:
        ConfigError: schema violations or refresh rounds of the wrong length.
    """
    validator = Validator(TRIPLET_SCHEMA, allow_unknown=False)
    if not isinstance(raw, dict) or not validator.validate(raw):
        errors = validator.errors if isinstance(raw, dict) else "document is not a mapping"
        raise ConfigError(f"Triplet schema validation errors: {errors}")
    doc: Dict[str, Any] = validator.document

    triplets = doc['triplets']
    rows = [int(t[0]) for t in triplets]
    cols = [int(t[1]) for t in triplets]
    values = [float(t[2]) for t in triplets]

    rounds: List[List[float]] = []
    for i, vals in enumerate(doc.get('refresh') or []):
        if len(vals) != len(triplets):
            raise ConfigError(
                f"Refresh round {i} has {len(vals)} values, expected {len(triplets)}"
            )
        rounds.append([float(x) for x in vals])

    opts = doc.get('options') or {}
    options = AssemblyOptions(
        deduplicate=opts.get('deduplicate', True),
        sort=opts.get('sort', True),
    )
    shape = (int(doc['shape'][0]), int(doc['shape'][1]))
    logger.debug("Parsed %d triplets for a %dx%d matrix, %d refresh rounds",
                 len(triplets), shape[0], shape[1], len(rounds))
    return TripletInput(shape=shape, rows=rows, cols=cols, values=values,
                        refresh_rounds=rounds, options=options)


def load_triplet_file(path: Union[str, Path]) -> TripletInput:
    """
    Load a YAML triplet file, validate its schema, and return a TripletInput.

    Raises:
        ConfigError: If file read fails or schema validation fails.
    """
    path = Path(path)
    try:
        raw = yaml.safe_load(path.read_text())
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to read triplet YAML '{path}': {e}") from e
    return parse_triplet_document(raw)
