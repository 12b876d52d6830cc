"""Unit tests for the error taxonomy"""

import asyncio

from core.errors import (
    EncoderProcessFailure,
    GeneratorTransientFailure,
    PermissionDenied,
    PipelineError,
    ProviderError,
    RateLimitExceeded,
    SandboxViolation,
    WorkspaceInvalid,
    classify_provider_error,
)


class TestClassifyProviderError:
    """Mapping generator failures onto the taxonomy"""

    def test_rate_limit(self):
        error = classify_provider_error(
            ProviderError("throttled", status_code=403, error_code="ErrTooManyRequests"),
            step="Generate video",
            segment_index=3
        )
        assert isinstance(error, RateLimitExceeded)
        assert error.code == "RATE_LIMIT_EXCEEDED"
        assert error.step == "Generate video"
        assert error.details["segmentIndex"] == 3

    def test_other_403_is_permission_denied(self):
        error = classify_provider_error(ProviderError("no", status_code=403, error_code="ErrNoAccess"))
        assert isinstance(error, PermissionDenied)
        assert error.to_event_data()["error"] == "API_PERMISSION_DENIED"
        assert error.details["errorCode"] == "ErrNoAccess"

    def test_other_status_is_transient(self):
        error = classify_provider_error(ProviderError("boom", status_code=500))
        assert isinstance(error, GeneratorTransientFailure)

    def test_plain_exceptions_are_transient(self):
        assert isinstance(classify_provider_error(asyncio.TimeoutError()), GeneratorTransientFailure)
        assert isinstance(classify_provider_error(ValueError("bad json")), GeneratorTransientFailure)

    def test_pipeline_errors_pass_through(self):
        original = RateLimitExceeded("already classified")
        assert classify_provider_error(original) is original


class TestPipelineError:

    def test_event_data_merges_details(self):
        error = PipelineError("msg", step="Concat", details={"missing": ["segment_1.mp4"]})
        assert error.to_event_data() == {"error": "PIPELINE_ERROR", "missing": ["segment_1.mp4"]}

    def test_encoder_failure_keeps_diagnostics(self):
        error = EncoderProcessFailure("failed", returncode=1, stderr="Invalid data", command=["ffmpeg"], step="Concat")
        assert error.returncode == 1
        assert "Invalid data" in error.stderr
        assert error.code == "ENCODER_PROCESS_FAILURE"

    def test_sandbox_violation_is_workspace_invalid(self):
        assert issubclass(SandboxViolation, WorkspaceInvalid)
        assert SandboxViolation("x").code == "PATH_OUTSIDE_SANDBOX"
