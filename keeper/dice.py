# dice.py — Call of Cthulhu 7th edition dice utilities

import random
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

FORMULA_PATTERN = re.compile(r"^(\d+)?d(\d+)([+-]\d+)?$")
CONSTANT_PATTERN = re.compile(r"^\d+$")

MIN_DICE, MAX_DICE = 1, 100
MIN_SIDES, MAX_SIDES = 2, 1000


class DiceError(ValueError):
    """Base class for every dice formula problem."""


class DiceFormulaError(DiceError):
    """Formula doesn't match the dice notation."""


class DiceBoundsError(DiceError):
    """Dice count or die size is outside the allowed range."""


@dataclass(frozen=True)
class DiceResult:
    total: int
    rolls: List[int] = field(default_factory=list)
    formula: str = ""

    def to_dict(self):
        return {"total": self.total, "rolls": list(self.rolls), "formula": self.formula}


@dataclass(frozen=True)
class DiceFormula:
    count: int
    sides: int
    modifier: int = 0


@dataclass(frozen=True)
class CharacterStats:
    strength: int
    constitution: int
    size: int
    dexterity: int
    appearance: int
    intelligence: int
    power: int
    education: int
    luck: int

    def to_dict(self):
        return {name: getattr(self, name) for name in CHARACTERISTICS}


CHARACTERISTICS = (
    "strength",
    "constitution",
    "size",
    "dexterity",
    "appearance",
    "intelligence",
    "power",
    "education",
    "luck",
)


@dataclass(frozen=True)
class DerivedStats:
    hit_points: int
    sanity: int
    max_sanity: int
    magic_points: int
    damage_bonus: str
    build: int
    movement: int

    def to_dict(self):
        return {
            "hit_points": self.hit_points,
            "sanity": self.sanity,
            "max_sanity": self.max_sanity,
            "magic_points": self.magic_points,
            "damage_bonus": self.damage_bonus,
            "build": self.build,
            "movement": self.movement,
        }


class SuccessLevel(str, Enum):
    EXTREME = "extreme_success"
    HARD = "hard_success"
    SUCCESS = "success"
    FAILURE = "failure"


# Sanity ceiling before any Cthulhu Mythos knowledge is gained
MAX_SANITY = 99

# (exclusive upper bound on STR+SIZ, damage bonus, build)
DAMAGE_BONUS_TABLE = (
    (65, "-2", -2),
    (85, "-1", -1),
    (125, "0", 0),
    (165, "+1d4", 1),
    (205, "+1d6", 2),
)
DAMAGE_BONUS_MAX = ("+2d6", 3)


### 🎲 Dice Utilities ###
def parse_dice_formula(formula: str) -> Optional[DiceFormula]:
    """
    Parses 'XdY+Z' notation without raising. Returns None when the
    formula isn't dice notation (bare numbers included).
    """
    match = FORMULA_PATTERN.match(formula.lower().strip())
    if not match:
        return None
    return DiceFormula(
        count=int(match.group(1) or 1),
        sides=int(match.group(2)),
        modifier=int(match.group(3) or 0),
    )


def roll_dice(formula: str, rng=None) -> DiceResult:
    """
    Rolls dice using standard notation (e.g. '3d6', '1d100', '2d4+2').
    A bare number is a constant result.
    """
    rng = rng or random
    clean = formula.lower().strip()

    if CONSTANT_PATTERN.match(clean):
        value = int(clean)
        return DiceResult(total=value, rolls=[value], formula=formula)

    parsed = parse_dice_formula(clean)
    if parsed is None:
        raise DiceFormulaError(f"Invalid dice formula: {formula}")

    if not MIN_DICE <= parsed.count <= MAX_DICE:
        raise DiceBoundsError(f"Number of dice must be between {MIN_DICE} and {MAX_DICE}")
    if not MIN_SIDES <= parsed.sides <= MAX_SIDES:
        raise DiceBoundsError(f"Number of sides must be between {MIN_SIDES} and {MAX_SIDES}")

    rolls = [rng.randint(1, parsed.sides) for _ in range(parsed.count)]
    return DiceResult(total=sum(rolls) + parsed.modifier, rolls=rolls, formula=formula)


def roll_sanity_loss(formula: str, success: bool, rng=None) -> DiceResult:
    """
    Rolls sanity loss from 'success/failure' notation such as '1/1d6' or
    '1d4/1d8', evaluating the branch that matches the sanity roll.
    """
    parts = formula.split("/")
    if len(parts) != 2:
        raise DiceFormulaError(f"Sanity loss must look like 'success/failure': {formula}")
    success_loss, failure_loss = parts
    return roll_dice(success_loss if success else failure_loss, rng=rng)


### 🧬 Characteristics ###
def roll_characteristics(rng=None) -> CharacterStats:
    """INT, SIZ and EDU use (2d6+6)×5, everything else 3d6×5."""

    def standard():
        return roll_dice("3d6", rng=rng).total * 5

    def boosted():
        return (roll_dice("2d6", rng=rng).total + 6) * 5

    return CharacterStats(
        strength=standard(),
        constitution=standard(),
        size=boosted(),
        dexterity=standard(),
        appearance=standard(),
        intelligence=boosted(),
        power=standard(),
        education=boosted(),
        luck=standard(),
    )


def generate_quick_characteristics(rng=None) -> CharacterStats:
    """Spreads the quick-fire allocation randomly; luck is always rolled."""
    rng = rng or random
    values = [40, 50, 50, 50, 60, 60, 70, 80]
    rng.shuffle(values)
    allocated = dict(zip(CHARACTERISTICS[:-1], values))
    return CharacterStats(luck=roll_dice("3d6", rng=rng).total * 5, **allocated)


def damage_bonus_for(strength: int, size: int):
    total = strength + size
    for bound, bonus, build in DAMAGE_BONUS_TABLE:
        if total < bound:
            return bonus, build
    return DAMAGE_BONUS_MAX


def movement_rate(strength: int, dexterity: int, size: int) -> int:
    if strength < size and dexterity < size:
        return 7
    if strength > size and dexterity > size:
        return 9
    return 8


def calculate_derived_stats(stats: CharacterStats) -> DerivedStats:
    damage_bonus, build = damage_bonus_for(stats.strength, stats.size)
    return DerivedStats(
        hit_points=(stats.constitution + stats.size) // 10,
        sanity=stats.power,
        max_sanity=MAX_SANITY,
        magic_points=stats.power // 5,
        damage_bonus=damage_bonus,
        build=build,
        movement=movement_rate(stats.strength, stats.dexterity, stats.size),
    )


### 🎯 Percentile Checks ###
def determine_success_level(roll: int, skill_value: int) -> SuccessLevel:
    if roll <= skill_value / 5:
        return SuccessLevel.EXTREME
    if roll <= skill_value / 2:
        return SuccessLevel.HARD
    if roll <= skill_value:
        return SuccessLevel.SUCCESS
    return SuccessLevel.FAILURE
