UNKNOWN_UID = "unknown"


class ApplicationError(Exception):
    """An error that is reported to the API server as a denied admission.

    The uid is the uid of the admission request, when we were able to read
    it before things went wrong.
    """

    def __init__(self, message, uid=UNKNOWN_UID):
        super().__init__(message)
        self.uid = uid


class MalformedEnvelope(ApplicationError):
    pass


class MissingRequest(ApplicationError):
    pass


class MalformedObject(ApplicationError):
    pass


class InjectionFailure(ApplicationError):
    pass


class SerializationFailure(ApplicationError):
    pass


class ConfigurationError(Exception):
    pass
