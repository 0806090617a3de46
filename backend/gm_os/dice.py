from __future__ import annotations

import random
import re
from dataclasses import dataclass, field

DICE_PATTERN = re.compile(r"^\s*(\d*)d(\d+)([+-]\d+)?\s*$", re.IGNORECASE)
MAX_DICE = 100


@dataclass(frozen=True)
class DiceRoll:
    formula: str
    total: int
    rolls: list[int]
    modifier: int


@dataclass
class DiceRoller:
    seed: int | None = None
    rng: random.Random = field(init=False)

    def __post_init__(self) -> None:
        self.rng = random.Random(self.seed)

    def roll(self, dice_str: str = "1d6") -> DiceRoll:
        match = DICE_PATTERN.match(dice_str)
        if not match:
            raise ValueError(f"Invalid dice string: {dice_str}")

        count_text, sides_text, modifier_text = match.groups()
        count = int(count_text) if count_text else 1
        sides = int(sides_text)
        modifier = int(modifier_text) if modifier_text else 0

        if count <= 0 or sides <= 0 or count > MAX_DICE:
            raise ValueError(f"Invalid dice string: {dice_str}")

        rolls = [self.rng.randint(1, sides) for _ in range(count)]
        return DiceRoll(
            formula=dice_str.strip(),
            total=sum(rolls) + modifier,
            rolls=rolls,
            modifier=modifier,
        )
