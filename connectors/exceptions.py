# connectors/exceptions.py

class PublishError(Exception):
    pass


class BusUnavailable(PublishError):
    pass


class PublishTimeout(PublishError):
    pass


class PublishRejected(PublishError):
    pass
