from httpmessage.environment import Environment
from httpmessage.http import Headers
from httpmessage.http import Message
from httpmessage.http import Request
from httpmessage.http import Response
from httpmessage.http import ServerRequest
from httpmessage.streams import Stream
from httpmessage.uploads import UploadedFile
from httpmessage.uri import Uri

__all__ = [
    "Environment",
    "Headers",
    "Message",
    "Request",
    "Response",
    "ServerRequest",
    "Stream",
    "UploadedFile",
    "Uri",
]
