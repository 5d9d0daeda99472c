"""
NicheNav Backend: Error Taxonomy

Response errors raised while reading model output, the upstream failure raised
for LLM and persistence calls, and the one user-facing error per operation that
the pipelines re-raise them as.
"""


class ResponseError(Exception):
    """The model answered, but the answer could not be turned into a record."""

    pass


class NoJsonFound(ResponseError):
    """No '{...}' span in the model output. Raised before any parse attempt."""

    pass


class MalformedJson(ResponseError):
    """The extracted span is not a JSON object."""

    def __init__(self, raw_text: str, error: str):
        self.raw_text = raw_text
        super().__init__(f"Malformed JSON in model output: {error}")


class IncompleteResponse(ResponseError):
    """Required fields missing or the niche/competitor list is empty."""

    pass


class UpstreamFailure(Exception):
    """The LLM or persistence call itself failed (network, quota, auth)."""

    pass


# ─────────────────────────────────────────────────────────────────────────────
# User-facing errors (one per operation)
# ─────────────────────────────────────────────────────────────────────────────


class PipelineError(Exception):
    """Carries the message shown to the user and the error code logged with it."""

    def __init__(self, message: str, error_code: str, cause: Exception | None = None):
        self.message = message
        self.error_code = error_code
        self.cause = cause
        super().__init__(message)


class NicheAnalysisError(PipelineError):
    pass


class ReportGenerationError(PipelineError):
    pass


class ReportLimitReached(Exception):
    """Free account has used all of its validation reports."""

    def __init__(self, reports_used: int, reports_limit: int):
        self.reports_used = reports_used
        self.reports_limit = reports_limit
        super().__init__(f"Report limit reached ({reports_used}/{reports_limit})")
