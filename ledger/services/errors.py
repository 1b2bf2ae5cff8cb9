"""
Exception hierarchy for the ledger services.

LLM transport errors live next to the clients in ledger.services.llm_client.
"""


class LedgerError(Exception):
    """Base exception for ledger service errors."""

    pass


class RecordNotFoundError(LedgerError):
    """Raised when a referenced record does not exist."""

    def __init__(self, kind: str, record_id: object):
        self.kind = kind
        self.record_id = str(record_id)
        super().__init__(f"{kind} not found: {record_id}")


class InvalidStateError(LedgerError):
    """Raised when a lifecycle transition is not allowed from the current state."""

    pass


class SnapshotError(LedgerError):
    """Raised when a source document snapshot cannot be captured."""

    pass


class PromptTemplateError(LedgerError):
    """Raised when the editor prompt template cannot be loaded."""

    pass


class EditorRunFailedError(LedgerError):
    """Raised by the scheduler when every processed item in a run errored."""

    def __init__(self, run_id: str, errors: int):
        self.run_id = run_id
        self.errors = errors
        super().__init__(f"Editor run {run_id} failed: all {errors} processed items errored")
