class KaraokeScoreError(Exception):
    """Base class for scoring engine errors."""


class DeviceUnavailable(KaraokeScoreError):
    """No input device, permission denied, or the stream could not be opened."""


class DeviceLost(KaraokeScoreError):
    """The input stream stopped while a session was running."""


class ConfigurationError(KaraokeScoreError, ValueError):
    """Invalid tolerance / threshold / cadence constants."""
