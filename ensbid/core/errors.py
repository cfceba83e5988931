"""
Error taxonomy for ensbid operations.

Every failure the core reports is an ENSError carrying a `kind` tag and a
human-readable message. The CLI maps any ENSError to exit code 1.

    ENSError
    ├── InvalidInput          local, raised before any network call
    │   ├── InvalidAmount
    │   ├── InvalidGasPrice
    │   ├── InvalidName
    │   ├── InvalidAddress
    │   └── SaltRequired
    ├── InvalidState          name not in the state the operation needs
    │   ├── OwnerNotSet
    │   ├── NoResolver
    │   └── RevealMismatch
    ├── CredentialUnavailable no unlockable local keystore match
    ├── Rejected              ledger refused the transaction
    ├── NetworkError          ledger could not be reached
    ├── SubmissionTimeout     outcome unknown, transaction may still be pending
    └── OperationCancelled    cancelled before anything was broadcast
"""


class ENSError(Exception):
    """Base class for all ensbid failures."""

    kind = "Error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class InvalidInput(ENSError):
    kind = "InvalidInput"


class InvalidAmount(InvalidInput):
    kind = "InvalidAmount"


class InvalidGasPrice(InvalidInput):
    kind = "InvalidGasPrice"


class InvalidName(InvalidInput):
    kind = "InvalidName"


class InvalidAddress(InvalidInput):
    kind = "InvalidAddress"


class SaltRequired(InvalidInput):
    kind = "SaltRequired"


class InvalidState(ENSError):
    kind = "InvalidState"


class OwnerNotSet(InvalidState):
    kind = "OwnerNotSet"


class NoResolver(InvalidState):
    kind = "NoResolver"


class RevealMismatch(InvalidState):
    kind = "RevealMismatch"


class CredentialUnavailable(ENSError):
    kind = "CredentialUnavailable"


class Rejected(ENSError):
    """The ledger refused the transaction; `reason` is its own message."""

    kind = "Rejected"

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class NetworkError(ENSError):
    kind = "NetworkError"


class SubmissionTimeout(ENSError):
    kind = "SubmissionTimeout"


class OperationCancelled(ENSError):
    kind = "OperationCancelled"


__all__ = [
    "ENSError",
    "InvalidInput",
    "InvalidAmount",
    "InvalidGasPrice",
    "InvalidName",
    "InvalidAddress",
    "SaltRequired",
    "InvalidState",
    "OwnerNotSet",
    "NoResolver",
    "RevealMismatch",
    "CredentialUnavailable",
    "Rejected",
    "NetworkError",
    "SubmissionTimeout",
    "OperationCancelled",
]
