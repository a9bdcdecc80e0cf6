class LedgerError(Exception):
    """Base class for errors that abort a ledger run."""


class RecordSourceError(LedgerError):
    """The transaction input could not be read."""


class ReportSinkError(LedgerError):
    """The account report could not be written."""
