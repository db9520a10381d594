"""
Best-effort stage runner.
Each stage takes the current value and returns a new one. A stage that raises or
times out is logged and skipped: the next stage receives the last good value.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class Stage(Generic[T]):
    name: str
    run: Callable[[T], Awaitable[T]]
    timeout: Optional[float] = None


@dataclass
class StageOutcome:
    name: str
    ok: bool
    error: Optional[str] = None


@dataclass
class PipelineResult(Generic[T]):
    value: T
    outcomes: List[StageOutcome] = field(default_factory=list)

    def succeeded(self, name: str) -> bool:
        return any(o.name == name and o.ok for o in self.outcomes)


class BestEffortPipeline(Generic[T]):
    def __init__(self, stages: List[Stage[T]]):
        self.stages = stages

    async def run(self, value: T) -> PipelineResult[T]:
        result: PipelineResult[Any] = PipelineResult(value=value)
        for stage in self.stages:
            try:
                if stage.timeout is not None:
                    new_value = await asyncio.wait_for(stage.run(result.value), timeout=stage.timeout)
                else:
                    new_value = await stage.run(result.value)
            except asyncio.TimeoutError:
                logger.warning("Stage %s timed out after %.1fs; keeping previous value.", stage.name, stage.timeout)
                result.outcomes.append(StageOutcome(stage.name, False, "timeout"))
                continue
            except Exception as e:
                logger.warning("Stage %s failed; keeping previous value. Error: %s", stage.name, e)
                result.outcomes.append(StageOutcome(stage.name, False, str(e) or type(e).__name__))
                continue
            result.value = new_value
            result.outcomes.append(StageOutcome(stage.name, True))
        return result
