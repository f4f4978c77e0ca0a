class LedgerError(Exception):
    """Base class for ledger and document trust errors."""


class NotFoundError(LedgerError):
    """A key, certificate, block or document does not exist."""


class ValidationError(LedgerError):
    """Input was rejected before any state was changed."""


class BlockNotFoundError(NotFoundError):
    def __init__(self, index):
        super().__init__(f"Block {index} not found")
        self.index = index


class MiningCancelled(LedgerError):
    """Raised when a cooperative stop request interrupts proof of work."""
