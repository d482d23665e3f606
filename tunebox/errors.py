from http import HTTPStatus


class TuneboxError(Exception):
    """Base class for errors reported to the immediate caller"""
    status = HTTPStatus.INTERNAL_SERVER_ERROR
    message = 'Internal server error'

    def __init__(self, message=None):
        super().__init__(message or self.message)
        self.message = message or self.message

    def to_dict(self):
        return {'error': self.message}


class BadRequest(TuneboxError):
    status = HTTPStatus.BAD_REQUEST
    message = 'Bad request'


class InvalidType(BadRequest):
    message = 'Invalid payment type'


class Unauthorized(TuneboxError):
    status = HTTPStatus.UNAUTHORIZED
    message = 'Unauthorized'


class NotFound(TuneboxError):
    status = HTTPStatus.NOT_FOUND
    message = 'Not found'


class Conflict(TuneboxError):
    status = HTTPStatus.CONFLICT
    message = 'Conflict'


class AlreadyOwned(Conflict):
    message = 'Track already purchased'


class Forbidden(TuneboxError):
    status = HTTPStatus.FORBIDDEN
    message = 'Access denied'


class UpstreamUnavailable(TuneboxError):
    """Payment provider failed or timed out; safe for the client to retry"""
    status = HTTPStatus.BAD_GATEWAY
    message = 'Payment provider unavailable, please retry'


class MalformedWebhook(TuneboxError):
    status = HTTPStatus.BAD_REQUEST
    message = 'Malformed webhook payload'
