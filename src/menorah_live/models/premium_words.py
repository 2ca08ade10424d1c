from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class PremiumTier(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    tier: int
    amount: int  # exact donation amount, in agorot
    slots: int


class PremiumWord(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    word: str
    tier: int


class PremiumWordAvailability(PremiumWord):
    amount: int
    available: bool
    donor_name: str | None = None


PREMIUM_TIERS: tuple[PremiumTier, ...] = (
    PremiumTier(tier=1, amount=180_000, slots=7),
    PremiumTier(tier=2, amount=360_000, slots=3),
    PremiumTier(tier=3, amount=1_800_000, slots=1),
)

PREMIUM_WORDS: tuple[PremiumWord, ...] = (
    PremiumWord(id="emuna", word="Emuna", tier=1),
    PremiumWord(id="tikva", word="Tikva", tier=1),
    PremiumWord(id="ahava", word="Ahava", tier=1),
    PremiumWord(id="shalom", word="Shalom", tier=1),
    PremiumWord(id="simcha", word="Simcha", tier=1),
    PremiumWord(id="chesed", word="Chesed", tier=1),
    PremiumWord(id="bracha", word="Bracha", tier=1),
    PremiumWord(id="tzedaka", word="Tzedaka", tier=2),
    PremiumWord(id="achdut", word="Achdut", tier=2),
    PremiumWord(id="gvura", word="Gvura", tier=2),
    PremiumWord(id="neshama", word="Neshama", tier=3),
)

_TIERS_BY_AMOUNT = {tier.amount: tier for tier in PREMIUM_TIERS}
_TIERS_BY_NUMBER = {tier.tier: tier for tier in PREMIUM_TIERS}
_WORDS_BY_ID = {word.id: word for word in PREMIUM_WORDS}


def tier_for_amount(amount: int) -> PremiumTier | None:
    return _TIERS_BY_AMOUNT.get(amount)


def tier_amount(tier: int) -> int:
    return _TIERS_BY_NUMBER[tier].amount


def get_word(word_id: str) -> PremiumWord | None:
    return _WORDS_BY_ID.get(word_id)


def resolve_premium_word(word_id: str | None, amount: int) -> str | None:
    """
    Returns the word id if it may be carried by a donation of ``amount``.

    Only the tier whose amount matches exactly is considered. Unknown words,
    words of another tier, and amounts that match no tier all resolve to None.
    """
    if not word_id:
        return None

    tier = tier_for_amount(amount)
    if tier is None:
        return None

    word = get_word(word_id)
    if word is None or word.tier != tier.tier:
        return None

    return word.id
