"""
Staging pipeline for football source data.

Orchestrates CSV reading, record validation and transformation, and
inserts into the referential store.
"""

from footstage.etl.loader import LoadIssue, LoadReport, StagingLoader
from footstage.etl.pipeline import StagingPipeline, StoreSnapshot, run_staging

__all__ = [
    "LoadIssue",
    "LoadReport",
    "StagingLoader",
    "StagingPipeline",
    "StoreSnapshot",
    "run_staging",
]
