# /backend/app/utils/errors.py

"""
Ingestion pipeline error taxonomy.

  ConfigurationError : model-provider credential missing. Fatal, raised
                       before any blob is stored or model call is made.
  StorageError       : bucket check/create or upload failed after the
                       retry budget. Fatal, no row written.
  ExtractionError    : model/network/parse failure. Never leaves the
                       extraction service; recovered into a default
                       candidate that still reaches the review step.
  PersistenceError   : category table insert failed. Fatal, message kept
                       verbatim, blob stays in storage.
"""


class IngestionError(Exception):
    """Base class for ingestion pipeline failures."""


class ConfigurationError(IngestionError):
    pass


class StorageError(IngestionError):
    pass


class ExtractionError(IngestionError):
    pass


class PersistenceError(IngestionError):
    pass
