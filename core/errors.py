from typing import Dict, Optional


class OrchestratorError(Exception):
    """Base exception class for the content orchestration core."""
    pass


class ConfigError(OrchestratorError):
    """Raised when there is an error in a configuration file."""
    pass


class NoRouteConfigured(OrchestratorError):
    """Raised when a task kind has no (or an empty) route."""

    def __init__(self, task: str):
        self.task = task
        super().__init__(f"no models configured for task: {task}")


class UnknownAdapter(OrchestratorError):
    """Raised when an adapter name is not registered with the router."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"model not found: {name}")


class BackendUnavailable(OrchestratorError):
    """Raised when a backend's liveness probe fails."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"model not available: {name}")


class BackendCallFailed(OrchestratorError):
    """Raised when a single backend call fails (transport, HTTP status or decode)."""

    def __init__(self, name: str, reason: str, status_code: Optional[int] = None):
        self.name = name
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"{name}: {reason}")


class AllBackendsFailed(OrchestratorError):
    """Raised when every candidate on a route was skipped or failed."""

    def __init__(self, task: str, failures: Optional[Dict[str, str]] = None):
        self.task = task
        self.failures = dict(failures or {})
        detail = ""
        if self.failures:
            detail = " (" + "; ".join(f"{k}: {v}" for k, v in self.failures.items()) + ")"
        super().__init__(f"all models failed for task: {task}{detail}")


class MalformedModelOutput(OrchestratorError):
    """Raised when a service cannot extract its expected structure from model text."""

    def __init__(self, message: str, raw: str = ""):
        self.raw = raw
        super().__init__(message)
