"""Tests for run_stages: critical vs advisory stage handling."""

from dataclasses import dataclass, field

import pytest

from career_ai.jobs.stages import NotFoundError, PipelineError, Stage, StageError, run_stages


@dataclass
class Ctx:
    ran: list[str] = field(default_factory=list)
    skip: bool = False


def _ok(name):
    async def run(ctx):
        ctx.ran.append(name)

    return run


def _fail(exc):
    async def run(ctx):
        raise exc

    return run


async def test_runs_in_order_and_reports_progress():
    progress = []
    ctx = Ctx()
    failures = await run_stages(
        [Stage("a", _ok("a"), progress=20), Stage("b", _ok("b")), Stage("c", _ok("c"), progress=60)],
        ctx,
        progress.append,
    )
    assert ctx.ran == ["a", "b", "c"]
    assert progress == [20, 60]
    assert failures == []


async def test_advisory_failures_collected():
    ctx = Ctx()
    failures = await run_stages(
        [
            Stage("a", _fail(StageError("a", "nope")), advisory=True, progress=10),
            Stage("b", _fail(RuntimeError("boom")), advisory=True),
            Stage("c", _ok("c")),
        ],
        ctx,
        lambda p: None,
    )
    assert failures == ["a", "b"]
    assert ctx.ran == ["c"]


async def test_critical_failure_gets_stage_name():
    ctx = Ctx()
    with pytest.raises(NotFoundError) as info:
        await run_stages(
            [Stage("load", _fail(NotFoundError("missing"))), Stage("later", _ok("later"))],
            ctx,
            lambda p: None,
        )
    assert info.value.stage == "load"
    assert ctx.ran == []


async def test_unexpected_exception_wrapped():
    with pytest.raises(StageError) as info:
        await run_stages([Stage("download", _fail(OSError("disk")))], Ctx(), lambda p: None)
    assert info.value.stage == "download"
    assert "OSError: disk" in info.value.message
    assert isinstance(info.value.__cause__, OSError)
    assert info.value.retryable


async def test_disabled_stage_skipped_but_progress_reported():
    progress = []
    ctx = Ctx(skip=True)
    await run_stages(
        [Stage("a", _ok("a"), progress=50, enabled=lambda c: not c.skip)], ctx, progress.append
    )
    assert ctx.ran == []
    assert progress == [50]


def test_retryable_flags():
    assert PipelineError("x").retryable
    assert not NotFoundError("x").retryable
