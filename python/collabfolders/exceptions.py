"""
Customized exceptions that allow code to handle error conditions
"""

class CollabFoldersException(Exception):
    """
    a base class for all exceptions raised by the collaborative folders service
    """

    def __init__(self, message: str=None):
        if not message:
            message = "Unspecified problem in the collaborative folders service"
        super(CollabFoldersException, self).__init__(message)


class AccessDenied(CollabFoldersException):
    """
    an exception indicating that the acting user lacks the capability to view an activity
    instance.  This is fatal for the request.
    """

    def __init__(self, message: str=None, user: str=None, instance=None):
        if not message:
            message = "User is not permitted to view this activity"
            if user:
                message += f" ({user})"
        super(AccessDenied, self).__init__(message)
        self.user = user
        self.instance = instance


class PreferenceStoreUnavailable(CollabFoldersException):
    """
    an exception indicating that the user preference store could not be read or written
    """

    def __init__(self, message: str=None, cause: Exception=None):
        if not message:
            message = "User preference store is unavailable"
            if cause:
                message += ": " + str(cause)
        super(PreferenceStoreUnavailable, self).__init__(message)
        self.cause = cause


class PlatformError(CollabFoldersException):
    """
    an exception indicating a failure to determine capabilities or course/group context
    from the learning platform
    """

    def __init__(self, message: str=None, cause: Exception=None):
        if not message:
            message = "Failure retrieving information from the learning platform"
            if cause:
                message += ": " + str(cause)
        super(PlatformError, self).__init__(message)
        self.cause = cause


class InstanceNotFound(PlatformError):
    """
    an exception indicating that the requested activity instance does not exist
    """

    def __init__(self, instance_id, message: str=None):
        if not message:
            message = f"Activity instance not found: {instance_id}"
        super(InstanceNotFound, self).__init__(message)
        self.instance_id = instance_id


class RemoteStorageException(CollabFoldersException):
    """
    an exception indicating a problem interacting with the remote storage service.

    This class serves as a base class for all exceptions raised by the remote clients
    """

    def __init__(self, message: str=None):
        if not message:
            message = "Unspecified problem accessing the remote storage service"
        super(RemoteStorageException, self).__init__(message)


class RemoteServiceError(RemoteStorageException):
    """
    an exception indicating an error occurred while accessing a remote storage service endpoint.

    This class serves as a base class for more specific service access errors.
    """

    def __init__(self, message: str=None, ep: str=None, code: int=0, resptext: str=None):
        """
        create the exception

        :param str message:  an explanation of the cause of the error
        :param str ep:       the service endpoint that was being accessed
        :param int code:     the HTTP response code that was returned (if service responded)
        :param str resptext: the erroroneous response body that was returned, as text (if service responded)
        """
        if not message:
            message = "Error accessing remote storage"
            if ep:
                message += f" at {ep}"
            if code:
                message += f" ({str(code)})"
            if resptext:
                message += f"; unhandlable response:\n{resptext}"
        super(RemoteServiceError, self).__init__(message)
        self.ep = ep
        self.code = code or 0
        self.response = resptext


class RemoteCommError(RemoteServiceError):
    """
    an error indicating a failure communicating with the remote storage service, such as a
    failure to connect, a dropped connection or a DNS error.  Typically, the remote service
    did not get a chance to respond directly to the request.
    """
    def __init__(self, message: str=None, ep: str=None):
        if not message:
            message = "Remote storage communication failure"
            if ep:
                message += f" while accessing {ep}"
        super(RemoteCommError, self).__init__(message, ep)


class RemoteTimeout(RemoteCommError):
    """
    an error indicating that the remote storage service did not respond within the allowed time
    """
    def __init__(self, message: str=None, ep: str=None, timeout: float=None):
        if not message:
            message = "Remote storage request timed out"
            if timeout:
                message += f" after {timeout} s"
            if ep:
                message += f" while accessing {ep}"
        super(RemoteTimeout, self).__init__(message, ep)
        self.timeout = timeout


class RemoteServerError(RemoteServiceError):
    """
    an error indicating a server-side error (i.e. code >= 500) during a request to the remote
    storage service.
    """

    def __init__(self, code: int=0, ep: str=None, resptext: str=None, message: str=None):
        if not message:
            message = "Unexpected remote storage server error"
            if ep:
                message += f" while accessing {ep}"
            if code:
                message += f": HTTP code: {str(code)}"
        super(RemoteServerError, self).__init__(message, ep, code, resptext)


class UnexpectedRemoteResponse(RemoteServerError):
    """
    an error that indicates that the remote service responded with unexpected or erroneous
    content.  The code may reflect a successful operation, but the returned content cannot
    be processed.
    """

    def __init__(self, message: str=None, ep: str=None, resptext: str=None, code: int=0):
        if not message:
            message = "Unexpected content returned from remote storage service"
            if ep:
                message += f" while accessing {ep}"
            if resptext:
                message += f"; unhandlable response:\n{resptext}"
        super(UnexpectedRemoteResponse, self).__init__(code, ep, resptext, message)


class RemoteClientError(RemoteServiceError):
    """
    an error indicating a client-side error (i.e. 400 <= code < 500) during a request to the
    remote storage service, such as providing bad input data.
    """

    def __init__(self, message: str=None, code: int=0, ep: str=None, resptext: str=None):
        if not message:
            message = "Bad request made to remote storage service"
            if code:
                message += f" ({str(code)})"
            if ep:
                message += f" at {ep}"
        super(RemoteClientError, self).__init__(message, ep, code, resptext)


class RemoteResourceNotFound(RemoteClientError):
    """
    an error indicating that the requested resource (file or folder) does not exist
    """

    def __init__(self, ep: str=None, message: str=None, resptext: str=None, code: int=404):
        if not message:
            message = "Requested resource not found"
            if ep:
                message += f": {ep}"
        super(RemoteResourceNotFound, self).__init__(message, code, ep, resptext)


class RemoteUserUnauthorized(RemoteClientError):
    """
    an error indicating that the identity represented by the supplied credentials is not
    authorized to access the resource as requested (401/403).
    """

    def __init__(self, ep: str=None, message: str=None, resptext: str=None, code: int=401):
        if not message:
            message = "User is not authorized for access as requested"
            if ep:
                message += f": {ep}"
        super(RemoteUserUnauthorized, self).__init__(message, code, ep, resptext)
