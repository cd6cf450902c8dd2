"""XP rewards and level math"""

from capling_gateway.domain.models import Classification, LevelInfo

XP_PER_LEVEL = 50
MAX_LEVEL = 100
MAX_HAPPINESS_STREAK_XP = 100

XP_REWARDS = {
    "lesson_read": 25,
    "responsible_purchase": 15,
    "goal_achieved": 50,
    "daily_bonus": 5,
    "happiness_streak": 10,  # per day
}

LEVEL_TITLES = {
    1: "Capling Beginner",
    5: "Financial Learner",
    10: "Budget Builder",
    15: "Money Manager",
    20: "Smart Saver",
    30: "Budget Expert",
    40: "Investment Guru",
    50: "Financial Master",
}


def xp_for_transaction(is_deposit: bool, classification: Classification) -> int:
    """Only responsible spending earns XP; deposits do not"""
    if is_deposit or classification != Classification.RESPONSIBLE:
        return 0
    return XP_REWARDS["responsible_purchase"]


def happiness_streak_xp(consecutive_happy_days: int) -> int:
    days = max(0, consecutive_happy_days)
    return min(days * XP_REWARDS["happiness_streak"], MAX_HAPPINESS_STREAK_XP)


def level_title(level: int) -> str:
    reached = [threshold for threshold in LEVEL_TITLES if threshold <= level]
    return LEVEL_TITLES[max(reached)] if reached else LEVEL_TITLES[1]


def level_info(total_xp: int) -> LevelInfo:
    total_xp = max(0, total_xp)
    level = min(total_xp // XP_PER_LEVEL + 1, MAX_LEVEL)

    if level == MAX_LEVEL:
        xp_in_level = total_xp - (MAX_LEVEL - 1) * XP_PER_LEVEL
        progress = 100.0
    else:
        xp_in_level = total_xp % XP_PER_LEVEL
        progress = round(100 * xp_in_level / XP_PER_LEVEL, 1)

    return LevelInfo(
        level=level,
        xp=xp_in_level,
        total_xp=total_xp,
        xp_for_next_level=0 if level == MAX_LEVEL else XP_PER_LEVEL - xp_in_level,
        progress_percentage=progress,
        title=level_title(level),
    )
