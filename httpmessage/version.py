VERSION = "1.0.0"
HTTPMESSAGE = "httpmessage " + VERSION
