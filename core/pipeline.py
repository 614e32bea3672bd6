# core/pipeline.py
"""
One-call assembly: triplets in, ready-to-refresh CSR matrix out.
"""
from dataclasses import dataclass
from typing import Sequence, Tuple

from core.csr.matrix import CsrMatrix
from utils.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class AssemblyOptions:
    """Which optional structural passes run after the counting sort."""
    deduplicate: bool = True
    sort: bool = True


def assemble_csr(
    rows: Sequence[int],
    cols: Sequence[int],
    values: Sequence[float],
    shape: Tuple[int, int],
    options: AssemblyOptions = AssemblyOptions(),
) -> CsrMatrix:
    """
    Build a CsrMatrix from triplets: assemble, then optionally deduplicate
    and sort. Deduplication always runs before sorting so that sorted rows
    hold unique columns.
    """
    matrix = CsrMatrix(shape[0], shape[1], len(rows))
    matrix.assemble(rows, cols, values)
    if options.deduplicate:
        matrix.deduplicate()
    if options.sort:
        matrix.sort()
    logger.debug("Assembled %r", matrix)
    return matrix
