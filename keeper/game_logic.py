# game_logic.py — Call of Cthulhu 7th edition status rules

import math
import random
from dataclasses import dataclass

# Sanity thresholds (fractions are of starting sanity)
SANITY_THRESHOLDS = {
    "INDEFINITE_INSANITY": 0,
    "MAJOR_MADNESS": 0.2,
    "TEMPORARY_INSANITY": 5,  # points lost in one go
    "PHOBIA_TRIGGER": 0.5,
}

# Hit point thresholds (fractions are of max HP)
HP_THRESHOLDS = {
    "DYING": 0,
    "UNCONSCIOUS": 2,
    "MAJOR_WOUND": 0.5,
    "MINOR_WOUND": 0.75,
}

CRITICAL_STATE_THRESHOLD = 0.3

HORROR_BASE_LOSS = {
    "minor": 1,      # a corpse
    "moderate": 3,   # a murder
    "major": 6,      # a monster
    "extreme": 10,   # a Great Old One
}

TEMPORARY_INSANITIES = (
    ("Amnesia", "Cannot remember the last few hours"),
    ("Catatonia", "Frozen by terror, unable to move"),
    ("Panicked Flight", "Flees headlong from the danger"),
    ("Panic Attack", "Uncontrollable shaking and hyperventilation"),
    ("Hallucinations", "Sees and hears things that are not there"),
)


@dataclass(frozen=True)
class StatusEffect:
    name: str
    description: str
    value: str
    duration: int = 0
    type: str = "debuff"


def _ratio(current, maximum):
    if maximum <= 0:
        return 0.0
    return current / maximum


def hit_point_status(current_hp, max_hp):
    ratio = _ratio(current_hp, max_hp)
    if current_hp <= HP_THRESHOLDS["DYING"]:
        return StatusEffect("Dead", "The character has died", "-100")
    if current_hp <= HP_THRESHOLDS["UNCONSCIOUS"]:
        return StatusEffect("Dying", "Unconscious and dying. Needs immediate care!", "-50")
    if ratio < HP_THRESHOLDS["MAJOR_WOUND"]:
        return StatusEffect("Major Wound", "-20% to every skill roll", "-20")
    if ratio < HP_THRESHOLDS["MINOR_WOUND"]:
        return StatusEffect("Minor Wound", "-10% to every skill roll", "-10")
    return None


def sanity_status(current_sanity, max_sanity):
    ratio = _ratio(current_sanity, max_sanity)
    if current_sanity <= SANITY_THRESHOLDS["INDEFINITE_INSANITY"]:
        return StatusEffect("Permanent Insanity", "The character's mind is broken for good", "-100")
    if ratio < SANITY_THRESHOLDS["MAJOR_MADNESS"]:
        return StatusEffect("Major Madness", "Extremely fragile. -30% to social rolls", "-30")
    if ratio < SANITY_THRESHOLDS["PHOBIA_TRIGGER"]:
        return StatusEffect(
            "Mental Instability",
            "Nervous and paranoid. -15% to Psychology and Persuade",
            "-15",
        )
    return None


def automatic_status_effects(current_hp, max_hp, current_sanity, max_sanity):
    """
    Debuffs implied by the current HP and sanity: at most one wound
    effect, one sanity effect and the combined critical state.
    """
    effects = [
        effect
        for effect in (
            hit_point_status(current_hp, max_hp),
            sanity_status(current_sanity, max_sanity),
        )
        if effect is not None
    ]

    if (
        _ratio(current_hp, max_hp) < CRITICAL_STATE_THRESHOLD
        and _ratio(current_sanity, max_sanity) < CRITICAL_STATE_THRESHOLD
    ):
        effects.append(
            StatusEffect(
                "Critical State",
                "Body and mind on the verge of collapse. -40% to every roll",
                "-40",
            )
        )
    return effects


def calculate_sanity_loss(horror_level, current_sanity, mythos=0):
    """
    Sanity lost for witnessing a horror. Mythos knowledge hardens the
    investigator; an already fragile mind loses half as much again.
    """
    if horror_level not in HORROR_BASE_LOSS:
        raise ValueError(f"Unknown horror level: {horror_level}")

    loss = HORROR_BASE_LOSS[horror_level]
    if mythos > 0:
        loss = max(1, loss - mythos // 20)
    if current_sanity < 20:
        loss = math.ceil(loss * 1.5)
    return loss


def should_make_sanity_roll(sanity_lost_this_round, max_sanity_per_round=SANITY_THRESHOLDS["TEMPORARY_INSANITY"]):
    return sanity_lost_this_round >= max_sanity_per_round


def triggers_temporary_insanity(sanity_lost):
    return abs(sanity_lost) >= SANITY_THRESHOLDS["TEMPORARY_INSANITY"]


def pick_temporary_insanity(rng=None):
    rng = rng or random
    name, description = rng.choice(TEMPORARY_INSANITIES)
    return StatusEffect(f"Temporary Insanity: {name}", description, "-25", duration=10)


def calculate_natural_healing(constitution, has_first_aid=False, has_medicine=False):
    healing = math.ceil(constitution / 10)
    if has_first_aid:
        healing += 1
    if has_medicine:
        healing += 2
    return healing


def calculate_damage_reduction(incoming_damage, size, has_armor=False):
    reduction = 0
    if size >= 80:
        reduction += 2
    if size >= 100:
        reduction += 1
    if has_armor:
        reduction += 3
    return max(1, incoming_damage - reduction)


def apply_recovery(current, amount, maximum):
    """Returns (final value, amount actually recovered), never above maximum."""
    final = min(current + amount, maximum)
    final = max(final, current)
    return final, final - current


def apply_loss(current, amount):
    """Lowers a pool by |amount|, floored at zero."""
    return max(0, current - abs(amount))
