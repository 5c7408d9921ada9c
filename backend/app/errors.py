"""Typed failures shared by the query engine, API client, geocoder and map session."""


class CrimeBrowserError(Exception):
    """Base exception for crime browser errors."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(CrimeBrowserError):
    """Missing or malformed required input. Nothing was written."""

    status_code = 400


class DuplicateKey(CrimeBrowserError):
    """A record with the same case number already exists."""

    status_code = 409


class NotFound(CrimeBrowserError):
    """No record with the requested case number exists."""

    status_code = 404


class StoreError(CrimeBrowserError):
    """Underlying persistence failure."""

    status_code = 500


class UpstreamUnavailable(CrimeBrowserError):
    """Geocoding service could not be reached. Safe to retry."""

    status_code = 503
