from __future__ import annotations


class ImagistError(Exception):
    """Base class for every error raised by imagist."""


class MalformedCoordinateError(ImagistError, ValueError):
    pass


class InvalidFitPolicyError(ImagistError, ValueError):
    pass


class InvalidScalePolicyError(ImagistError, ValueError):
    pass


class InvalidDimensionsError(ImagistError, ValueError):
    pass


class CropOutOfBoundsError(ImagistError, ValueError):
    pass


class InvalidEdgeError(ImagistError, ValueError):
    pass


class InvalidOpacityError(ImagistError, ValueError):
    pass


class UnsupportedImageTypeError(ImagistError, ValueError):
    pass


class BackendFailureError(ImagistError, RuntimeError):
    """An image backend or external tool failed.

    ``command`` holds the argv of the failing process (empty for in-process
    backends) and ``diagnostic`` the captured stderr/stdout or library message.
    """

    def __init__(self, message: str, *, command: list[str] | None = None, diagnostic: str = "") -> None:
        self.command = list(command or [])
        self.diagnostic = diagnostic
        text = message
        if diagnostic:
            text = f"{message}: {diagnostic}"
        super().__init__(text)
