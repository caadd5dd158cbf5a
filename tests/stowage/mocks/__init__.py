"""Mock implementations for testing."""

from tests.stowage.mocks.codec import MockCodec
from tests.stowage.mocks.ledger import MockLedger
from tests.stowage.mocks.storage import MockObjectStore

__all__ = [
    "MockCodec",
    "MockLedger",
    "MockObjectStore",
]
