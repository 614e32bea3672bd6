#!/usr/bin/env python
import argparse
import logging
import sys
import time
from dataclasses import replace

from utils.logging_config import setup_logging, get_logger
from inout.triplets import load_triplet_file
from core.pipeline import assemble_csr
from core.validation import check_structure
from core.csr._fingerprint import values_checksum
from core.exceptions import CsrError

logger = get_logger(__name__)

def main() -> int:
    """
    Assemble a CSR matrix from a YAML triplet file and apply its refresh rounds.

    Command-line arguments:
      --input: Path to the YAML triplet file.
      --no-dedup: Keep repeated coordinates in separate slots.
      --no-sort: Leave columns in assembly order within each row.
      --summary: Print a summary of the assembled matrix.
      --verbose: Enable DEBUG logging and audit the structure after assembly.
    """
    parser = argparse.ArgumentParser(description="Assemble a CSR matrix from coordinate triplets.")
    parser.add_argument("--input", required=True, help="Path to the YAML triplet file.")
    parser.add_argument("--no-dedup", action="store_true", help="Skip deduplication.")
    parser.add_argument("--no-sort", action="store_true", help="Skip in-row column sorting.")
    parser.add_argument("--summary", action="store_true", help="Print assembly summary.")
    parser.add_argument("--verbose", action="store_true", help="Enable DEBUG logging.")
    args = parser.parse_args()

    if args.verbose:
        setup_logging(level=logging.DEBUG)
        logger.debug("Verbose logging enabled.")
    else:
        setup_logging(level=logging.INFO)

    try:
        data = load_triplet_file(args.input)
        options = data.options
        if args.no_dedup:
            options = replace(options, deduplicate=False)
        if args.no_sort:
            options = replace(options, sort=False)

        start = time.time()
        matrix = assemble_csr(data.rows, data.cols, data.values, data.shape, options)
        if args.verbose:
            check_structure(matrix, data.rows, data.cols)
        for i, vals in enumerate(data.refresh_rounds):
            matrix.refresh(vals)
            logger.debug("Refresh round %d applied, checksum %#018x", i, values_checksum(matrix.values))
        elapsed = time.time() - start
    except CsrError as e:
        logger.error("Assembly failed: %s", e)
        return 1

    logger.info("Assembly completed.")

    if args.summary:
        m, n = matrix.shape
        print(f"Assembly completed: {m}x{n}, {matrix.n_triplets} triplets -> "
              f"{matrix.nnz} slots, {len(data.refresh_rounds)} refresh rounds in {elapsed:.3f} s")

    for row, col, value in matrix.entries():
        print(f"{row} {col} {value:g}")
    return 0

if __name__ == "__main__":
    sys.exit(main())
