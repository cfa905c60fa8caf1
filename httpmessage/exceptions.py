"""
Every exception raised by httpmessage derives from HttpMessageException.

We split faults in two families and additionally inherit from the matching
builtin, so that callers who only care about ValueError/RuntimeError can keep
catching those:

- InvalidArgument (a ValueError): the caller passed something we cannot
  represent. Raised at construction or on a with_* call, the receiver is
  never modified.
- StateError (a RuntimeError): an operation was attempted on an object whose
  lifecycle no longer permits it, e.g. a detached stream or an upload that
  has already been moved.

Missing optional data is not an error: accessors return None or an empty
value instead.
"""


class HttpMessageException(Exception):
    """
    Base class for all exceptions thrown by httpmessage.
    """

    def __init__(self, message=None):
        super().__init__(message)


class InvalidArgument(HttpMessageException, ValueError):
    pass


class InvalidUri(InvalidArgument):
    pass


class InvalidHeader(InvalidArgument):
    pass


class InvalidBody(InvalidArgument):
    pass


class InvalidProtocol(InvalidArgument):
    pass


class InvalidMethod(InvalidArgument):
    pass


class InvalidStatus(InvalidArgument):
    pass


class InvalidParsedBody(InvalidArgument):
    pass


class InvalidUploadedFiles(InvalidArgument):
    pass


class InvalidUploadTarget(InvalidArgument):
    pass


class InvalidEnvironment(InvalidArgument):
    pass


class StateError(HttpMessageException, RuntimeError):
    pass


class StreamError(StateError):
    pass


class StreamDetached(StreamError):
    """
    Raised by every stream operation except close() and conversion to
    bytes/str once the underlying handle has been detached.
    """


class UploadError(StateError):
    pass


class UploadAlreadyMoved(UploadError):
    pass
