"""Keyword-based facet inference for magic items.

The source data carries no explicit type or rarity, so both are derived
from the item's name and description. Each facet is an ordered list of
(value, keywords) pairs; the first value with any keyword occurring as a
substring of the lower-cased text wins. Order is part of the contract:
"uncommon" contains "common" and "very rare" contains "rare", so an
uncommon item is tagged common and a very rare one is tagged rare.
"""

from .models import MagicItemRarity, MagicItemType

# =============================================================================
# KEYWORD TABLES - evaluated top to bottom, first match wins
# =============================================================================

TYPE_KEYWORDS: tuple[tuple[MagicItemType, tuple[str, ...]], ...] = (
    (
        MagicItemType.WEAPON,
        ("sword", "dagger", "bow", "arrow", "blade", "axe", "mace", "staff", "wand", "spear"),
    ),
    (MagicItemType.ARMOR, ("armor", "mail", "plate", "shield", "helm", "gauntlet", "boot")),
    (
        MagicItemType.ACCESSORY,
        ("ring", "amulet", "cloak", "belt", "bracelet", "necklace", "pendant", "crown"),
    ),
    (MagicItemType.CONSUMABLE, ("potion", "scroll", "elixir", "pill", "draught", "vial")),
    (MagicItemType.ARTIFACT, ("artifact", "relic", "ancient", "legendary")),
)

RARITY_KEYWORDS: tuple[tuple[MagicItemRarity, tuple[str, ...]], ...] = (
    (MagicItemRarity.COMMON, ("common", "simple", "basic")),
    (MagicItemRarity.UNCOMMON, ("uncommon", "minor")),
    (MagicItemRarity.RARE, ("rare", "greater")),
    (MagicItemRarity.VERY_RARE, ("very rare", "major", "powerful")),
    (MagicItemRarity.LEGENDARY, ("legendary", "epic", "ultimate")),
    (MagicItemRarity.ARTIFACT, ("artifact", "divine", "cosmic")),
)


def _facet_text(name: str, description: str) -> str:
    return f"{name or ''} {description or ''}".lower()


def infer_type(name: str, description: str) -> MagicItemType:
    """Infer an item's type from its name and description.

    Args:
        name: Item name
        description: Item description

    Returns:
        First matching type in TYPE_KEYWORDS order, or UNKNOWN
    """
    text = _facet_text(name, description)
    for item_type, keywords in TYPE_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return item_type
    return MagicItemType.UNKNOWN


def infer_rarity(name: str, description: str) -> MagicItemRarity:
    """Infer an item's rarity from its name and description.

    Args:
        name: Item name
        description: Item description

    Returns:
        First matching rarity in RARITY_KEYWORDS order, or UNKNOWN
    """
    text = _facet_text(name, description)
    for rarity, keywords in RARITY_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return rarity
    return MagicItemRarity.UNKNOWN
