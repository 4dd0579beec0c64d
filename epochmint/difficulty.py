"""
Difficulty controller for EpochMint

Retargeting:
- Runs every retarget_interval_epochs epochs
- Compares host blocks elapsed since the last retarget with the intended
  period length
- Faster than intended: target shrinks by (target / denominator) per percent
  of excess speed; slower: target grows the same way
- The percentage term is clamped to [0, MAX_ADJUSTMENT_PERCENT] and the result
  to [min_target, max_target]

Burn hysteresis:
- Once the host passes burn_activation_block, every retarget records the
  highest difficulty seen (difficulty = max_target // target)
- Burning switches on while difficulty sits below 70% of that peak and off
  again as soon as difficulty sets a new peak
"""

import logging
from typing import Optional, Dict, Any
from dataclasses import dataclass, asdict

from . import config

logger = logging.getLogger(__name__)


@dataclass
class DifficultyState:
    """Mining target and retargeting parameters."""
    current_target: int
    period_start_block: int
    retarget_interval_epochs: int = config.BLOCKS_PER_READJUSTMENT
    retarget_denominator: int = config.DIFFICULTY_DENOMINATOR
    target_blocks_per_period: int = config.TARGET_BLOCKS_PER_DIFF_PERIOD
    min_target: int = config.MIN_TARGET
    max_target: int = config.MAX_TARGET

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DifficultyState':
        return cls(**data)


@dataclass
class BurnState:
    """
    Burn flag and its watermark.

    Attributes:
        burn_enabled: Whether claims currently burn BURN_AMOUNT
        burn_activation_block: Host height after which hysteresis runs
            (None = never)
        max_observed_difficulty: Highest difficulty seen since activation
    """
    burn_enabled: bool = False
    burn_activation_block: Optional[int] = None
    max_observed_difficulty: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BurnState':
        return cls(**data)


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def mining_difficulty(max_target: int, target: int) -> int:
    """Difficulty as max_target // target (larger = harder)."""
    return max_target // target


def adjustment_percent(numerator: int, denominator: int) -> int:
    """How far numerator exceeds denominator, in whole percent, clamped."""
    percent = numerator * 100 // denominator - 100
    return clamp(percent, 0, config.MAX_ADJUSTMENT_PERCENT)


def update_burn_state(burn: BurnState, difficulty: int, current_block_height: int) -> bool:
    """
    Run one step of the burn hysteresis.

    Args:
        burn: Burn state to update in place
        difficulty: Difficulty after the retarget
        current_block_height: Host block height

    Returns:
        True if burn_enabled changed
    """
    if burn.burn_activation_block is None:
        return False
    if current_block_height <= burn.burn_activation_block:
        return False

    if difficulty > burn.max_observed_difficulty:
        burn.max_observed_difficulty = difficulty
        if burn.burn_enabled:
            burn.burn_enabled = False
            logger.info(f"Burning disabled: difficulty {difficulty} set a new peak")
            return True
    elif not burn.burn_enabled:
        peak = burn.max_observed_difficulty
        floor_line = peak - peak * config.BURN_WATERMARK_PERCENT // 100
        if difficulty < floor_line:
            burn.burn_enabled = True
            logger.info(f"Burning enabled: difficulty {difficulty} below watermark {floor_line} "
                        f"(peak {peak})")
            return True

    return False


def retarget(state: DifficultyState, burn: BurnState, current_block_height: int) -> int:
    """
    Recompute the mining target at a readjustment boundary.

    Args:
        state: Difficulty state to update in place
        burn: Burn state, updated by the hysteresis step
        current_block_height: Host block height of the boundary epoch

    Returns:
        The new mining target
    """
    elapsed = current_block_height - state.period_start_block
    if elapsed <= 0:
        logger.error(f"Retarget skipped: no blocks elapsed since block {state.period_start_block}")
        return state.current_target

    old_target = state.current_target
    step = old_target // state.retarget_denominator

    if elapsed < state.target_blocks_per_period:
        # Epochs came in too fast, make the puzzle harder
        excess_pct = adjustment_percent(state.target_blocks_per_period, elapsed)
        new_target = old_target - step * excess_pct
    else:
        shortage_pct = adjustment_percent(elapsed, state.target_blocks_per_period)
        new_target = old_target + step * shortage_pct

    state.current_target = clamp(new_target, state.min_target, state.max_target)
    state.period_start_block = current_block_height

    logger.info(f"Retarget at block {current_block_height}: {elapsed} blocks elapsed "
                f"(intended {state.target_blocks_per_period}), "
                f"target {old_target:#x} -> {state.current_target:#x}")

    update_burn_state(
        burn,
        mining_difficulty(state.max_target, state.current_target),
        current_block_height
    )
    return state.current_target
