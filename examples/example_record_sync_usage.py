#!/usr/bin/env python3
"""
Example usage of the RecordSyncManager programmatic API.

Loads a variant, edits it, adds a new one and writes both back in one commit.
"""

import logging

from record_sync import FieldKind, RecordSyncManager
from record_sync.config import Config
from record_sync.exceptions import RecordSyncError, SchemaMismatchError


def main():
    """Example of a read, modify and commit session."""
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    logger = logging.getLogger(__name__)

    # In production, load these with record_sync.config.load_config()
    config = Config(sqlite_db_path="variants.db", statement_timeout=5)

    try:
        with RecordSyncManager(config, logger=logger) as manager:
            for snv in manager.query("GHSNV", "SampleId = 'A2049602_1' and Gene = 'BRCA2'"):
                snv.set_field("Mutation_AA", "R232L")
                snv.print_record()

            snv = manager.new_record("GHSNV")
            snv.set_field("SampleId", "A2049602_1")
            snv.set_field("RunId", "160122_NB501062_0070_AHWNNNBGXX")
            snv.set_field("Gene", "EGFR")
            snv.set_field("Mutation_AA", "T790M")
            snv.set_field("Percentage", 9.3)
            snv.set_field("Chrom", 7)
            # Small values infer INT32, so BIGINT columns need the kind spelled out
            snv.set_field("Position", 55181378, FieldKind.INT64)

            result = manager.commit()
            logger.info(f"✓ {result.inserted} inserted, {result.updated} updated")
            return 0

    except SchemaMismatchError as e:
        logger.error(f"❌ Records do not match the table: {e}")
        return 1
    except RecordSyncError as e:
        logger.error(f"❌ Sync failed: {e}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
