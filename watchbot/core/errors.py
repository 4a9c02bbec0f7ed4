"""Exception types raised by watchbot."""


class WatchbotError(Exception):
    """Base class for watchbot errors."""


class ConfigError(WatchbotError):
    """Missing or invalid startup configuration. Fatal."""


class StoreLockedError(ConfigError):
    """Another process already holds the fingerprint store."""


class ConnectorError(WatchbotError):
    """Transport, auth or rate-limit failure talking to a source system."""


class MalformedResponseError(ConnectorError):
    """Source system returned data that could not be interpreted."""


class EmitError(WatchbotError):
    """Task sink could not durably write a task descriptor."""


class StoreCorruption(WatchbotError):
    """Persisted fingerprint state could not be decoded."""
