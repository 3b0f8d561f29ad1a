# errors.py
from flask import jsonify


class DormAdminError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DormAdminError):
    """Local input problem; the store is never touched."""
    status_code = 400


class NotFoundError(DormAdminError):
    status_code = 404


def text_field(data: dict, key: str, default: str = '') -> str:
    """A stripped string from a JSON body; null counts as empty."""
    value = data.get(key, default)
    if value is None:
        return ''
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    return value.strip()


class StoreError(DormAdminError):
    """The document store could not be read or written."""
    status_code = 502


class StoreTimeout(StoreError):
    status_code = 504


def register_error_handlers(app):
    @app.errorhandler(ValidationError)
    @app.errorhandler(NotFoundError)
    def handle_client_error(err):
        return jsonify({'error': err.message}), err.status_code

    @app.errorhandler(StoreError)
    def handle_store_error(err):
        app.logger.error("Store failure: %s", err.message)
        if isinstance(err, StoreTimeout):
            return jsonify({'error': 'The data store did not respond in time'}), err.status_code
        return jsonify({'error': 'Could not reach the data store, please try again'}), err.status_code
