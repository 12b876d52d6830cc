"""
Pipeline error taxonomy.

Generation errors are classified once at the provider boundary. Only
GeneratorTransientFailure is absorbed by the orchestrator (it downgrades the
segment's strategy); every other class ends the run with a terminal error event.
"""

from typing import Any, Dict, Optional


RATE_LIMIT_ERROR_CODE = "ErrTooManyRequests"


class PipelineError(Exception):
    """Base class for errors surfaced to the caller as a terminal event."""

    code = "PIPELINE_ERROR"

    def __init__(
        self,
        message: str,
        step: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.step = step
        self.details = details or {}

    def to_event_data(self) -> Dict[str, Any]:
        """Structured payload for the terminal error event."""
        data = {"error": self.code}
        data.update(self.details)
        return data


class RateLimitExceeded(PipelineError):
    """External generator throttled the run. The user must retry later."""
    code = "RATE_LIMIT_EXCEEDED"


class PermissionDenied(PipelineError):
    """External generator rejected the credentials or integration."""
    code = "API_PERMISSION_DENIED"


class GeneratorTransientFailure(PipelineError):
    """Any other generator failure. Non-fatal: triggers per-segment fallback."""
    code = "GENERATOR_FAILURE"


class EncoderUnavailable(PipelineError):
    """FFmpeg binary missing or failed its version check."""
    code = "ENCODER_UNAVAILABLE"


class EncoderProcessFailure(PipelineError):
    """FFmpeg exited non-zero. Carries the captured diagnostic output."""

    code = "ENCODER_PROCESS_FAILURE"

    def __init__(
        self,
        message: str,
        returncode: Optional[int] = None,
        stderr: str = "",
        command: Optional[list] = None,
        step: Optional[str] = None
    ):
        super().__init__(
            message,
            step=step,
            details={"returncode": returncode, "stderr": stderr[-2000:]}
        )
        self.returncode = returncode
        self.stderr = stderr
        self.command = command or []


class WorkspaceInvalid(PipelineError):
    """Workspace is missing, not a directory, or outside the sandbox root."""
    code = "WORKSPACE_INVALID"


class SandboxViolation(WorkspaceInvalid):
    """Requested path escapes the sandbox root."""
    code = "PATH_OUTSIDE_SANDBOX"


class NetworkTimeout(PipelineError):
    """A bounded-time download or upload exceeded its limit."""
    code = "NETWORK_TIMEOUT"


class ProviderError(Exception):
    """
    Raw failure reported by a generator adapter.

    Attributes:
        status_code: HTTP status returned by the generator (None for local errors)
        error_code: Generator-specific error code from the response body
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code


def classify_provider_error(
    exc: Exception,
    step: Optional[str] = None,
    segment_index: Optional[int] = None
) -> PipelineError:
    """
    Map a generator failure onto the pipeline taxonomy.

    403 + ErrTooManyRequests is a rate limit, any other 403 a permission
    problem, everything else is transient.
    """
    details = {}
    if segment_index is not None:
        details["segmentIndex"] = segment_index

    if isinstance(exc, PipelineError):
        return exc

    status_code = getattr(exc, "status_code", None)
    error_code = getattr(exc, "error_code", None)

    if status_code == 403:
        if error_code == RATE_LIMIT_ERROR_CODE:
            return RateLimitExceeded(
                "Request rate limit exceeded, wait 5-10 minutes and retry.",
                step=step,
                details=details
            )
        details["errorCode"] = error_code
        return PermissionDenied(
            f"Generator permission denied (403), error code: {error_code}. "
            "Check the integration configuration.",
            step=step,
            details=details
        )

    return GeneratorTransientFailure(str(exc) or exc.__class__.__name__, step=step, details=details)


class DownloadFailed(PipelineError):
    """Artifact could not be fetched (non-timeout failure)."""
    code = "DOWNLOAD_FAILED"


class UploadFailed(PipelineError):
    """Object storage rejected the final video."""
    code = "UPLOAD_FAILED"


class NoUsableSegments(PipelineError):
    """Nothing left to assemble after dropping incomplete segments."""
    code = "NO_USABLE_SEGMENTS"
