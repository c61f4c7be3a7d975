class RetargetError(Exception):
    """Base class for recoverable retargeting failures."""


class TrackingUnavailable(RetargetError):
    """Camera, permission or tracker initialization failure."""


class AssetLoadError(RetargetError):
    """Uploaded files could not be read or contain no robot description."""


class ModelLoadError(RetargetError):
    """The robot description could not be parsed into a model."""
