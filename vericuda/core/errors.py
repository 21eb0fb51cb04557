from __future__ import annotations


class VericudaError(Exception):
    """Base class for fatal errors that abort a verification run."""


class ConfigurationError(VericudaError):
    pass


class TargetNotFoundError(VericudaError):
    def __init__(self, target: str, available: list[str] | None = None) -> None:
        self.target = target
        self.available = list(available or [])
        message = f"Target '{target}' not found"
        if self.available:
            message += f" (available: {', '.join(self.available)})"
        super().__init__(message)


class BundleFormatError(VericudaError, ValueError):
    pass
