"""Map provider category labels onto the 12 canonical fund categories."""

from __future__ import annotations

from typing import Dict, Optional

from models.fund import FUND_CATEGORIES, FundCategory

# Static, append-only alias table. Keys are provider spellings.
CATEGORY_ALIASES: Dict[str, str] = {
    # Large Cap
    "Large Cap Equity": FundCategory.LARGE_CAP.value,
    "Large Cap": FundCategory.LARGE_CAP.value,
    "Large-Cap": FundCategory.LARGE_CAP.value,
    "LargeCap": FundCategory.LARGE_CAP.value,
    "Equity: Large Cap": FundCategory.LARGE_CAP.value,
    # Mid Cap
    "Mid Cap Equity": FundCategory.MID_CAP.value,
    "Mid Cap": FundCategory.MID_CAP.value,
    "Mid-Cap": FundCategory.MID_CAP.value,
    "MidCap": FundCategory.MID_CAP.value,
    "Equity: Mid Cap": FundCategory.MID_CAP.value,
    # Small Cap
    "Small Cap Equity": FundCategory.SMALL_CAP.value,
    "Small Cap": FundCategory.SMALL_CAP.value,
    "Small-Cap": FundCategory.SMALL_CAP.value,
    "SmallCap": FundCategory.SMALL_CAP.value,
    "Equity: Small Cap": FundCategory.SMALL_CAP.value,
    # Flexi / Multi Cap
    "Flexi-Cap / MultiCap": FundCategory.FLEXI_CAP.value,
    "Flexi Cap Equity": FundCategory.FLEXI_CAP.value,
    "Flexi Cap": FundCategory.FLEXI_CAP.value,
    "FlexiCap": FundCategory.FLEXI_CAP.value,
    "Flexi-Cap": FundCategory.FLEXI_CAP.value,
    "Multi Cap": FundCategory.FLEXI_CAP.value,
    "MultiCap": FundCategory.FLEXI_CAP.value,
    "Multi-Cap": FundCategory.FLEXI_CAP.value,
    "Equity: Flexi Cap": FundCategory.FLEXI_CAP.value,
    # Index / ETF
    "Index / ETF": FundCategory.INDEX_ETF.value,
    "Index Fund": FundCategory.INDEX_ETF.value,
    "ETF": FundCategory.INDEX_ETF.value,
    "Index": FundCategory.INDEX_ETF.value,
    "Equity: Index": FundCategory.INDEX_ETF.value,
    # International
    "International Equity": FundCategory.INTERNATIONAL.value,
    "International": FundCategory.INTERNATIONAL.value,
    "Global": FundCategory.INTERNATIONAL.value,
    "Foreign": FundCategory.INTERNATIONAL.value,
    "Equity: International": FundCategory.INTERNATIONAL.value,
    # Hybrid, conservative
    "Hybrid – Conservative": FundCategory.HYBRID_CONSERVATIVE.value,
    "Hybrid - Conservative": FundCategory.HYBRID_CONSERVATIVE.value,
    "Conservative Hybrid": FundCategory.HYBRID_CONSERVATIVE.value,
    "Hybrid: Conservative": FundCategory.HYBRID_CONSERVATIVE.value,
    # Hybrid, equity-oriented
    "Hybrid – Equity-Oriented": FundCategory.HYBRID_EQUITY.value,
    "Hybrid - Equity-Oriented": FundCategory.HYBRID_EQUITY.value,
    "Hybrid Equity Oriented": FundCategory.HYBRID_EQUITY.value,
    "Aggressive Hybrid": FundCategory.HYBRID_EQUITY.value,
    "Hybrid: Equity": FundCategory.HYBRID_EQUITY.value,
    # Debt, corporate
    "Debt – Corporate": FundCategory.DEBT_CORPORATE.value,
    "Debt - Corporate": FundCategory.DEBT_CORPORATE.value,
    "Corporate Bond": FundCategory.DEBT_CORPORATE.value,
    "Corporate Debt": FundCategory.DEBT_CORPORATE.value,
    "Debt: Corporate": FundCategory.DEBT_CORPORATE.value,
    # Debt, short / ultra short
    "Debt – Short/Ultra Short": FundCategory.DEBT_SHORT.value,
    "Debt - Short/Ultra Short": FundCategory.DEBT_SHORT.value,
    "Short Duration": FundCategory.DEBT_SHORT.value,
    "Ultra Short Duration": FundCategory.DEBT_SHORT.value,
    "Liquid": FundCategory.DEBT_SHORT.value,
    "Money Market": FundCategory.DEBT_SHORT.value,
    "Debt: Short": FundCategory.DEBT_SHORT.value,
    # Debt, banking / PSU
    "Debt – Banking / PSU": FundCategory.DEBT_BANKING_PSU.value,
    "Debt - Banking / PSU": FundCategory.DEBT_BANKING_PSU.value,
    "Banking & PSU": FundCategory.DEBT_BANKING_PSU.value,
    "Banking and PSU": FundCategory.DEBT_BANKING_PSU.value,
    "PSU": FundCategory.DEBT_BANKING_PSU.value,
    "Debt: Banking": FundCategory.DEBT_BANKING_PSU.value,
    # Debt, gilt
    "Debt – Gilt": FundCategory.DEBT_GILT.value,
    "Debt - Gilt": FundCategory.DEBT_GILT.value,
    "Gilt": FundCategory.DEBT_GILT.value,
    "Government Securities": FundCategory.DEBT_GILT.value,
    "G-Sec": FundCategory.DEBT_GILT.value,
    "Debt: Gilt": FundCategory.DEBT_GILT.value,
}

_CASEFOLDED_ALIASES: Dict[str, str] = {}
for _alias, _canonical in CATEGORY_ALIASES.items():
    _CASEFOLDED_ALIASES.setdefault(_alias.casefold(), _canonical)


def normalize_category(raw: Optional[str]) -> Optional[str]:
    """Return the canonical category for ``raw``.

    Unknown labels come back trimmed but otherwise untouched so that the
    validator can reject them with the provider's own spelling.
    """
    if not raw or not isinstance(raw, str):
        return raw
    trimmed = raw.strip()
    canonical = CATEGORY_ALIASES.get(trimmed)
    if canonical is not None:
        return canonical
    return _CASEFOLDED_ALIASES.get(trimmed.casefold(), trimmed)


def is_canonical_category(value: Optional[str]) -> bool:
    return isinstance(value, str) and value in FUND_CATEGORIES


def is_valid_category(raw: Optional[str]) -> bool:
    return is_canonical_category(normalize_category(raw))


__all__ = [
    "CATEGORY_ALIASES",
    "normalize_category",
    "is_canonical_category",
    "is_valid_category",
]
