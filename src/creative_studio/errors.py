from __future__ import annotations


class CreativeStudioError(Exception):
    """Base error; `message` is safe to show to the user."""

    status_code: int = 500
    default_message: str = "Unexpected error generating the image."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_payload(self) -> dict[str, str]:
        return {"error": self.message}


class ValidationError(CreativeStudioError):
    status_code = 400
    default_message = "Prompt is required."


class UpstreamUnavailable(CreativeStudioError):
    status_code = 502
    default_message = "The image model is not available."


class UnexpectedError(CreativeStudioError):
    status_code = 500


class RenderError(CreativeStudioError):
    default_message = "Could not render the composition."


class ExportFailure(CreativeStudioError):
    default_message = "Could not export the image. Please try again."
