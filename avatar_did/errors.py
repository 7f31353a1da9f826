class DidError(RuntimeError):
    """Base class for every failure raised by the resolver and the state store.

    ``code`` is a stable identifier callers can branch on; the message is the
    human-readable explanation shown to the user.
    """

    code = "DidError"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class ResolutionError(DidError):
    code = "ResolutionError"


class NameInvalid(ResolutionError):
    code = "NameInvalid"


class DomainNotFound(ResolutionError):
    code = "DomainNotFound"


class AvatarNotFound(ResolutionError):
    code = "AvatarNotFound"


class AddressInvalid(ResolutionError):
    code = "AddressInvalid"


class NetworkUnavailable(ResolutionError):
    code = "NetworkUnavailable"


class StateError(DidError):
    code = "StateError"


class StateNotFound(StateError):
    code = "StateNotFound"


class StateCorrupt(StateError):
    code = "StateCorrupt"


class StateConflict(StateError):
    code = "StateConflict"


class InvalidInput(DidError):
    code = "InvalidInput"
