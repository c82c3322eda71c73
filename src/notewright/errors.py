from __future__ import annotations


class NotewrightError(RuntimeError):
    """Classified pipeline failure with a short user-facing message.

    `debug_summary` may carry engine output for diagnostics. It is surfaced
    transiently (logs, console) and never persisted to the vault.
    """

    default_message = "Meeting processing failed."

    def __init__(self, detail: str | None = None, *, user_message: str | None = None) -> None:
        self.user_message = user_message or self.default_message
        self.detail = detail
        super().__init__(detail or self.user_message)

    @property
    def debug_summary(self) -> str:
        return self.detail or self.user_message


class EngineMissing(NotewrightError):
    def __init__(self, component: str, detail: str | None = None) -> None:
        self.component = component
        super().__init__(
            detail or f"{component} engine is not available.",
            user_message=f"{component.capitalize()} component is missing.",
        )


class EngineFailed(NotewrightError):
    def __init__(self, component: str, *, exit_code: int | None = None, output: str = "") -> None:
        self.component = component
        self.exit_code = exit_code
        self.output = output
        super().__init__(
            f"{component} failed (exit_code={exit_code})",
            user_message=f"{component.capitalize()} failed.",
        )

    @property
    def debug_summary(self) -> str:
        return f"{self.component} failed (exit_code={self.exit_code})\n{self.output}".rstrip()


class JSONInvalid(NotewrightError):
    default_message = "Failed to structure the meeting note."


class ModelUnavailable(NotewrightError):
    default_message = "Required model files are missing."

    def __init__(self, model_ids: list[str] | None = None, detail: str | None = None) -> None:
        self.model_ids = list(model_ids or [])
        if detail is None and self.model_ids:
            detail = f"Missing or invalid models: {', '.join(self.model_ids)}"
        super().__init__(detail)


class DestinationUnavailable(NotewrightError):
    default_message = "The configured vault is not available."


class WriteFailed(NotewrightError):
    default_message = "Failed to write meeting files to the vault."

    def __init__(self, path: str, detail: str | None = None) -> None:
        self.path = path
        super().__init__(f"Write failed for {path}: {detail}" if detail else f"Write failed for {path}")


class CancelledRun(Exception):
    """Raised at a cancellation checkpoint; never surfaced as a failure."""
