class ReviewScraperError(RuntimeError):
    """Base class for failures raised by the review extraction engine."""


class MalformedCardError(ReviewScraperError):
    """A review card is missing a child element that its shape requires."""


class UnresolvableSelectorError(ReviewScraperError):
    """No card-boundary descriptor matched and the structural fallback found nothing."""


class NavigationError(ReviewScraperError):
    """The host could not bring a target page into a state with a reviews panel."""


class ConfigurationError(ValueError):
    pass
