from __future__ import annotations

import logging
from typing import Dict, Iterable, Optional

from bingo.calculators.ba_gambles import calculate_ba_gambles
from bingo.calculators.chat import calculate_chat
from bingo.calculators.experience import calculate_experience
from bingo.calculators.interface import CalculatorContext, ProgressCalculator
from bingo.calculators.item_drop import calculate_item_drop
from bingo.calculators.pet import calculate_pet
from bingo.calculators.progress import unchanged
from bingo.calculators.puzzle import calculate_puzzle
from bingo.calculators.speedrun import calculate_speedrun
from bingo.calculators.value_drop import calculate_value_drop
from bingo.events.unified import UnifiedGameEvent
from bingo.requirements.metadata import ExistingProgress, ProgressResult
from bingo.requirements.types import RequirementDef, RequirementType
from bingo.utils.tracing import trace_span

logger = logging.getLogger(__name__)


class CalculatorRegistry:
    def __init__(self) -> None:
        self._calculators: Dict[str, ProgressCalculator] = {}

    def register(self, kind: str, calculator: ProgressCalculator) -> None:
        # First registration wins
        if kind not in self._calculators:
            self._calculators[kind] = calculator

    def get(self, kind: str) -> Optional[ProgressCalculator]:
        return self._calculators.get(kind)

    def kinds(self) -> Iterable[str]:
        return list(self._calculators)


registry = CalculatorRegistry()
registry.register(RequirementType.ITEM_DROP.value, calculate_item_drop)
registry.register(RequirementType.PET.value, calculate_pet)
registry.register(RequirementType.VALUE_DROP.value, calculate_value_drop)
registry.register(RequirementType.SPEEDRUN.value, calculate_speedrun)
registry.register(RequirementType.EXPERIENCE.value, calculate_experience)
registry.register(RequirementType.BA_GAMBLES.value, calculate_ba_gambles)
registry.register(RequirementType.CHAT.value, calculate_chat)
registry.register(RequirementType.PUZZLE.value, calculate_puzzle)


def calculate_progress(
    event: UnifiedGameEvent,
    requirement: RequirementDef,
    existing: Optional[ExistingProgress],
    context: CalculatorContext,
) -> ProgressResult:
    '''Dispatch to the calculator for the requirement's kind.

    Kinds without a calculator are inert: the existing progress comes back
    unchanged, or a zero placeholder when there is none.
    '''
    calculator = registry.get(requirement.type)
    if calculator is None:
        logger.debug(f'No calculator for requirement kind {requirement.type}')
        return unchanged(requirement, existing)

    with trace_span('calculators.calculate', {'kind': requirement.type}):
        return calculator(event, requirement, existing, context)
