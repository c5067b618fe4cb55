"""Exception types shared across sysdash."""


class SysdashError(Exception):
    """Base class for sysdash errors."""


class ProviderError(SysdashError):
    """A metrics query against the operating system failed."""


class RenderSubsystemError(SysdashError):
    """The terminal could not be set up or failed while drawing."""
