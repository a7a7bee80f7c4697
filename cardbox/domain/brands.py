"""Catalogue of popular brands offered when adding a card."""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass
from enum import Enum

CUSTOM_BRAND_ID = "divers"


class BrandCategory(str, Enum):
    """Card categories, also used as the card type tag."""

    SUPERMARKET = "supermarche"
    PHARMACY = "pharmacie"
    RESTAURANT = "restaurant"
    SPORT = "sport"
    CLOTHING = "vetement"
    BEAUTY = "beaute"
    DIY = "bricolage"
    OTHER = "autre"


@dataclass(frozen=True)
class Brand:
    """A brand the user can pick for a new card."""

    id: str
    name: str
    category: BrandCategory
    logo_url: str
    description: str

    @property
    def is_custom(self) -> bool:
        """The catch-all entry whose name the user types in."""
        return self.id == CUSTOM_BRAND_ID


def _clearbit(domain: str) -> str:
    return f"https://logo.clearbit.com/{domain}"


POPULAR_BRANDS: tuple[Brand, ...] = (
    # Supermarkets
    Brand("carrefour", "Carrefour", BrandCategory.SUPERMARKET,
          _clearbit("carrefour.fr"), "Supermarchés et hypermarchés"),
    Brand("leclerc", "Leclerc", BrandCategory.SUPERMARKET,
          _clearbit("e-leclerc.com"), "Centres E.Leclerc"),
    Brand("auchan", "Auchan", BrandCategory.SUPERMARKET,
          _clearbit("auchan.fr"), "Hypermarchés Auchan"),
    Brand("intermarche", "Intermarché", BrandCategory.SUPERMARKET,
          _clearbit("intermarche.fr"), "Supermarchés Intermarché"),
    Brand("casino", "Casino", BrandCategory.SUPERMARKET,
          _clearbit("groupe-casino.fr"), "Supermarchés Casino"),
    Brand("lidl", "Lidl", BrandCategory.SUPERMARKET,
          _clearbit("lidl.fr"), "Supermarchés Lidl"),
    # Health
    Brand("pharmacie", "Pharmacie", BrandCategory.PHARMACY,
          "https://via.placeholder.com/64/22c55e/white?text=P",
          "Pharmacies de quartier"),
    # Restaurants
    Brand("mcdonalds", "McDonald's", BrandCategory.RESTAURANT,
          _clearbit("mcdonalds.com"), "Restauration rapide"),
    Brand("kfc", "KFC", BrandCategory.RESTAURANT,
          _clearbit("kfc.com"), "Poulet frit"),
    Brand("subway", "Subway", BrandCategory.RESTAURANT,
          _clearbit("subway.com"), "Sandwichs frais"),
    # Sport
    Brand("decathlon", "Decathlon", BrandCategory.SPORT,
          _clearbit("decathlon.fr"), "Équipements sportifs"),
    Brand("gosport", "Go Sport", BrandCategory.SPORT,
          _clearbit("go-sport.com"), "Articles de sport"),
    # Clothing
    Brand("zara", "Zara", BrandCategory.CLOTHING,
          _clearbit("zara.com"), "Mode et tendances"),
    Brand("hm", "H&M", BrandCategory.CLOTHING,
          _clearbit("hm.com"), "Mode accessible"),
    Brand("uniqlo", "Uniqlo", BrandCategory.CLOTHING,
          _clearbit("uniqlo.com"), "Vêtements casual"),
    # Beauty
    Brand("sephora", "Sephora", BrandCategory.BEAUTY,
          _clearbit("sephora.fr"), "Cosmétiques et parfums"),
    Brand("yves-rocher", "Yves Rocher", BrandCategory.BEAUTY,
          _clearbit("yves-rocher.fr"), "Cosmétiques naturels"),
    # DIY
    Brand("leroy-merlin", "Leroy Merlin", BrandCategory.DIY,
          _clearbit("leroymerlin.fr"), "Bricolage et jardinage"),
    Brand("castorama", "Castorama", BrandCategory.DIY,
          _clearbit("castorama.fr"), "Aménagement maison"),
    # Other
    Brand("fnac", "Fnac", BrandCategory.OTHER,
          _clearbit("fnac.com"), "Culture et high-tech"),
    Brand("darty", "Darty", BrandCategory.OTHER,
          _clearbit("darty.com"), "Électroménager"),
    Brand(CUSTOM_BRAND_ID, "Autre marque", BrandCategory.OTHER,
          "https://via.placeholder.com/64/6b7280/white?text=C",
          "Marque non référencée"),
)

_BY_ID = {brand.id: brand for brand in POPULAR_BRANDS}


def _fold(value: str) -> str:
    """Lowercase and strip accents and punctuation for name matching."""
    decomposed = unicodedata.normalize("NFKD", value.casefold())
    return "".join(c for c in decomposed if c.isalnum())


def get_brand(brand_id: str) -> Brand | None:
    return _BY_ID.get(brand_id)


def find_brand(query: str) -> Brand | None:
    """Look a brand up by id or by name, ignoring case and accents.

    ``find_brand("intermarche")`` and ``find_brand("Mc Donald's")`` both match.
    """
    if query in _BY_ID:
        return _BY_ID[query]
    folded = _fold(query)
    if not folded:
        return None
    for brand in POPULAR_BRANDS:
        if _fold(brand.name) == folded or _fold(brand.id) == folded:
            return brand
    return None


def brands_in_category(category: BrandCategory | str) -> list[Brand]:
    category = BrandCategory(category)
    return [brand for brand in POPULAR_BRANDS if brand.category == category]
