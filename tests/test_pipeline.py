import asyncio

import pytest

from autofounder.pipeline import BestEffortPipeline, Stage


async def _add_one(x):
    return x + 1


async def _explode(x):
    raise RuntimeError("nope")


async def _slow(x):
    await asyncio.sleep(1)
    return x * 100


@pytest.mark.asyncio
async def test_failed_stage_keeps_last_good_value():
    result = await BestEffortPipeline([
        Stage("one", _add_one),
        Stage("explode", _explode),
        Stage("two", _add_one),
    ]).run(0)

    assert result.value == 2
    assert [o.ok for o in result.outcomes] == [True, False, True]
    assert result.outcomes[1].error == "nope"
    assert not result.succeeded("explode")
    assert result.succeeded("two")


@pytest.mark.asyncio
async def test_timed_out_stage_is_skipped():
    result = await BestEffortPipeline([Stage("slow", _slow, timeout=0.01), Stage("one", _add_one)]).run(1)
    assert result.value == 2
    assert result.outcomes[0].error == "timeout"


@pytest.mark.asyncio
async def test_empty_pipeline_returns_input():
    result = await BestEffortPipeline([]).run("x")
    assert result.value == "x"
    assert result.outcomes == []
