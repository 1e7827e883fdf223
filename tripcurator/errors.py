from __future__ import annotations


class TripCuratorError(Exception):
    """Base class for every failure raised inside tripcurator."""


class TransportFailure(TripCuratorError):
    """Search, weather or AI call failed on the wire (error status, timeout, bad body)."""


class MalformedResponse(TripCuratorError):
    """AI reply was not JSON, did not match the rerank schema, or picked nothing."""


class ValidationFailure(TripCuratorError):
    """A source record is missing a mandatory field."""


class ConfigurationFailure(TripCuratorError):
    """A mandatory credential is missing when a collaborator is constructed."""
