"""
Domain errors raised by the ledger services.

Every error is a local validation failure: the orchestrator rolls the unit of
work back before re-raising, so no partial state is ever committed.
"""


class LedgerError(Exception):
    code = "LedgerError"
    status_code = 400

    def __init__(self, message: str = ""):
        super().__init__(message or self.code)
        self.message = message or self.code


class InvalidState(LedgerError):
    code = "InvalidState"
    status_code = 409


class NotAuthorized(LedgerError):
    code = "NotAuthorized"
    status_code = 403


class TooEarly(LedgerError):
    code = "TooEarly"
    status_code = 409


class TooLate(LedgerError):
    code = "TooLate"
    status_code = 409


class SessionFull(LedgerError):
    code = "SessionFull"
    status_code = 409


class SessionNotJoinable(LedgerError):
    code = "SessionNotJoinable"
    status_code = 409


class InsufficientStake(LedgerError):
    code = "InsufficientStake"


class InsufficientFunds(LedgerError):
    code = "InsufficientFunds"


class DuplicateParticipant(LedgerError):
    code = "DuplicateParticipant"
    status_code = 409


class DuplicateRating(LedgerError):
    code = "DuplicateRating"
    status_code = 409


class UnregisteredSpeaker(LedgerError):
    code = "UnregisteredSpeaker"


class InvalidAmount(LedgerError):
    code = "InvalidAmount"


class InvalidAddress(LedgerError):
    code = "InvalidAddress"


class NotFound(LedgerError):
    code = "NotFound"
    status_code = 404


class Conflict(LedgerError):
    code = "Conflict"
    status_code = 409
