"""
NicheNav Backend: Analysis & Report Pipelines

    analyze_niche:               prompt -> LLM -> parse -> trends -> save
    generate_validation_report:  prompt -> LLM -> parse -> save -> usage

Each stage runs once, in order. Any NoJsonFound / MalformedJson /
IncompleteResponse / UpstreamFailure is logged with an error code and
re-raised as the operation's single user-facing error. Nothing is saved
after a failure.
"""

import time

from nichenav import db, llm, prompts
from nichenav.config import generate_error_code, log
from nichenav.errors import (
    IncompleteResponse,
    MalformedJson,
    NicheAnalysisError,
    NoJsonFound,
    ReportGenerationError,
    ReportLimitReached,
    UpstreamFailure,
)
from nichenav.models import (
    MicroNiche,
    ModelConfig,
    NicheAnalysisResult,
    NicheQuery,
    UserAccount,
    ValidationReport,
)
from nichenav.parsing import parse_niche_analysis, parse_validation_report
from nichenav.trends import RandomSource, generate_trends

UNREADABLE_MESSAGE = "The AI response could not be read. Please try again."
INCOMPLETE_MESSAGE = "The AI response was incomplete. Please try again with a more specific topic."
ANALYSIS_FAILED_MESSAGE = "Failed to analyze niche. Please try again."
REPORT_FAILED_MESSAGE = "Failed to generate validation report. Please try again."

RAW_LOG_LIMIT = 500


def _user_message(error: Exception, upstream_message: str) -> str:
    if isinstance(error, (NoJsonFound, MalformedJson)):
        return UNREADABLE_MESSAGE
    if isinstance(error, IncompleteResponse):
        return INCOMPLETE_MESSAGE
    return upstream_message


def _log_failure(pipeline: str, error: Exception, code: str, **context) -> None:
    extra = {}
    if isinstance(error, MalformedJson):
        raw = error.raw_text
        extra["raw_output"] = raw[:RAW_LOG_LIMIT] + "..." if len(raw) > RAW_LOG_LIMIT else raw
    log(
        "ERROR",
        "pipeline failed",
        pipeline=pipeline,
        error_kind=type(error).__name__,
        error=str(error),
        error_code=code,
        **context,
        **extra,
    )


# -----------------------------------------------------------------------------
# Pipeline: Niche Analysis
# -----------------------------------------------------------------------------


async def analyze_niche(
    query: NicheQuery,
    model_config: ModelConfig,
    rng: RandomSource | None = None,
) -> NicheAnalysisResult:
    """
    Break a topic into micro-niches, chart each one, and save the result.

    Args:
        query: Topic and requesting user.
        model_config: Model settings for this call (from model_settings.load_model_config).
        rng: Random source for the trend series. None uses a fresh random.Random().

    Returns:
        The saved NicheAnalysisResult with its id set.

    Raises:
        NicheAnalysisError: any response or upstream failure, with the user-facing message.
    """
    start = time.perf_counter()
    log("INFO", "pipeline started", pipeline="analyze", user_id=query.user_id, topic=query.topic[:50])

    try:
        raw = await llm.call_llm(
            prompts.build_niche_analysis_prompt(query.topic),
            model_config,
            user_id=query.user_id,
        )
        result = parse_niche_analysis(raw, query.topic, query.user_id)

        for niche in result.micro_niches:
            niche.trends = generate_trends(niche.search_volume, rng=rng)

        analysis_id = await db.create_niche_analysis(result.model_dump(mode="json"))
        if not analysis_id:
            raise UpstreamFailure("Could not save niche analysis")
        result.id = analysis_id

    except (NoJsonFound, MalformedJson, IncompleteResponse, UpstreamFailure) as e:
        code = generate_error_code()
        _log_failure("analyze", e, code, user_id=query.user_id)
        raise NicheAnalysisError(_user_message(e, ANALYSIS_FAILED_MESSAGE), code, cause=e) from e

    log(
        "INFO",
        "pipeline completed",
        pipeline="analyze",
        user_id=query.user_id,
        analysis_id=result.id,
        micro_niches=len(result.micro_niches),
        duration_ms=int((time.perf_counter() - start) * 1000),
    )
    return result


# -----------------------------------------------------------------------------
# Report Quota
# -----------------------------------------------------------------------------


async def get_or_create_account(user_id: str) -> UserAccount:
    """
    Load the caller's account, creating a free one on first use.

    Raises:
        UpstreamFailure: the account read failed, or a new account could not be created.
    """
    row = await db.get_user(user_id)
    if row is None:
        row = await db.create_user(user_id)
        if row is None:
            raise UpstreamFailure("Could not load user account")
        log("INFO", "user account created", user_id=user_id)
    return UserAccount(**row)


async def ensure_report_quota(user_id: str) -> UserAccount:
    """
    Raises:
        ReportLimitReached: a free account has used all of its reports.
        UpstreamFailure: the account could not be loaded.
    """
    account = await get_or_create_account(user_id)
    if not account.can_generate_report:
        log("WARN", "report limit reached", user_id=user_id,
            reports_used=account.reports_used, reports_limit=account.reports_limit)
        raise ReportLimitReached(account.reports_used, account.reports_limit)
    return account


# -----------------------------------------------------------------------------
# Pipeline: Validation Report
# -----------------------------------------------------------------------------


async def generate_validation_report(
    niche_id: str,
    micro_niche: MicroNiche,
    user_id: str,
    model_config: ModelConfig,
    topic: str | None = None,
) -> ValidationReport:
    """
    Validate one micro-niche and save the report.

    niche_id is recorded as a back-reference to the analysis; it is not looked up.

    Raises:
        ReportLimitReached: the caller has no reports left (checked before any LLM call).
        ReportGenerationError: any response or upstream failure, with the user-facing message.
    """
    start = time.perf_counter()
    log("INFO", "pipeline started", pipeline="report", user_id=user_id, niche_id=niche_id,
        micro_niche=micro_niche.name[:50])

    try:
        await ensure_report_quota(user_id)

        raw = await llm.call_llm(
            prompts.build_validation_report_prompt(micro_niche, topic),
            model_config,
            user_id=user_id,
        )
        report = parse_validation_report(raw, niche_id, micro_niche.name, user_id)

        report_id = await db.create_validation_report(report.model_dump(mode="json"))
        if not report_id:
            raise UpstreamFailure("Could not save validation report")
        report.id = report_id

    except (NoJsonFound, MalformedJson, IncompleteResponse, UpstreamFailure) as e:
        code = generate_error_code()
        _log_failure("report", e, code, user_id=user_id, niche_id=niche_id)
        raise ReportGenerationError(_user_message(e, REPORT_FAILED_MESSAGE), code, cause=e) from e

    reports_used = await db.increment_reports_used(user_id)

    log(
        "INFO",
        "pipeline completed",
        pipeline="report",
        user_id=user_id,
        report_id=report.id,
        competitors=len(report.competitor_analysis),
        reports_used=reports_used,
        duration_ms=int((time.perf_counter() - start) * 1000),
    )
    return report
