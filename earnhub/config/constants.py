"""
Referral and money constants.

Static rules that are not configuration: the referral depth cap and the
level alphabet. Commission rates are not here, they are data in the
vip_tiers table.
"""

# Four tracked generations: A = direct referrer, D = great-great-grandparent
REFERRAL_LEVELS: tuple[str, ...] = ("A", "B", "C", "D")
MAX_REFERRAL_DEPTH = len(REFERRAL_LEVELS)

# Rank used for members without any VIP tier
NO_VIP_RANK = 0

# Referral code alphabet (no 0/O/1/I to keep codes readable)
REFERRAL_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"

# Decimal places stored for money columns; the currency minor unit
# must be representable at this scale
MONEY_SCALE = 2


def next_level(level: str) -> str | None:
    """
    Get the level one generation further up.

    Args:
        level: Current level (A-D)

    Returns:
        Next level, or None when level is already D
    """
    index = REFERRAL_LEVELS.index(level)
    if index + 1 >= MAX_REFERRAL_DEPTH:
        return None
    return REFERRAL_LEVELS[index + 1]
